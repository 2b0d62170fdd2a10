from datetime import datetime, timedelta, timezone

import jwt


def create_session_token(session_id: str, secret: str, expires_minutes: int, algorithm: str = "HS256") -> str:
    now = datetime.now(timezone.utc)
    payload = {"sid": session_id, "iat": now, "exp": now + timedelta(minutes=expires_minutes)}
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_session_token(
    token: str,
    secret: str,
    algorithm: str = "HS256",
    verify_exp: bool = True,
) -> str | None:
    """Return the session id carried by a cookie value, or None if it was tampered with or expired.

    ``verify_exp=False`` still checks the signature; logout uses it so an
    expired cookie can end its server-side session.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm], options={"verify_exp": verify_exp})
    except jwt.InvalidTokenError:
        return None
    session_id = payload.get("sid")
    return session_id if isinstance(session_id, str) and session_id else None
