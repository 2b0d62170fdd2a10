import logging
from dataclasses import dataclass

import openai
from openai import OpenAI

from courseportal.auth.sessions import SessionUser
from courseportal.core.errors import Unauthorized, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

MAX_QUESTION_LENGTH = 4000
SYSTEM_PROMPT = (
    'You are a patient programming and computer science tutor for university students. '
    'Explain concepts clearly, show short code examples when they help, and guide students '
    'toward understanding instead of handing over complete assignment solutions.'
)


@dataclass(frozen=True)
class TutorSettings:
    api_key: str
    model: str = 'gpt-4o-mini'
    timeout_seconds: float = 30.0


class AITutor:
    """Single-turn question answering; no conversation history is kept between calls."""

    def __init__(self, settings: TutorSettings, client: OpenAI | None = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.settings.api_key,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def ask(self, user: SessionUser | None, question: str | None) -> str:
        if user is None:
            raise Unauthorized()

        question = (question or '').strip()
        if not question:
            raise ValidationError('Question is required.')
        if len(question) > MAX_QUESTION_LENGTH:
            raise ValidationError(f'Question must be {MAX_QUESTION_LENGTH} characters or fewer.')

        if self._client is None and not self.settings.api_key:
            logger.error('OPENAI_API_KEY is not configured; cannot answer tutor question.')
            raise UpstreamError()

        try:
            response = self.client.chat.completions.create(
                model=self.settings.model,
                messages=[
                    {'role': 'system', 'content': SYSTEM_PROMPT},
                    {'role': 'user', 'content': question},
                ],
            )
        except openai.APIError as exc:
            logger.error('AI provider error for user %s: %s', user.id, exc)
            raise UpstreamError() from exc

        answer = ''
        if response.choices:
            answer = (response.choices[0].message.content or '').strip()
        if not answer:
            logger.error('AI provider returned an empty answer for user %s', user.id)
            raise UpstreamError()
        return answer
