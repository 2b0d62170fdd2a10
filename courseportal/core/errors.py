"""Application error taxonomy.

Every error carries a user-facing ``message`` and the HTTP ``status_code`` the
API answers with. Provider and database details belong in the logs, never in
``message``.
"""


class AppError(Exception):
    status_code = 500
    default_message = 'Internal Server Error'

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = 'Invalid input.'


class ConflictError(AppError):
    status_code = 409
    default_message = 'Username or email already registered.'


class InvalidCredentials(AppError):
    status_code = 401
    default_message = 'Invalid credentials'


class Unauthorized(AppError):
    status_code = 401
    default_message = 'Login required.'


class UpstreamError(AppError):
    status_code = 500
    default_message = 'The AI tutor is unavailable right now. Please try again later.'


class DeliveryError(AppError):
    status_code = 502
    default_message = 'Email delivery failed.'


class InternalError(AppError):
    pass


class ServiceUnavailable(AppError):
    status_code = 503
    default_message = 'Database unavailable. Please try again later.'
