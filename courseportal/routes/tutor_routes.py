from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError as PydanticValidationError

from courseportal.auth.dependencies import get_current_user, get_optional_user
from courseportal.auth.sessions import SessionUser
from courseportal.core.errors import Unauthorized, ValidationError
from courseportal.services.tutor import MAX_QUESTION_LENGTH, AITutor

router = APIRouter(tags=['ai-tutor'])


class AskRequest(BaseModel):
    question: str | None = None


class AskResponse(BaseModel):
    answer: str


def get_tutor(request: Request) -> AITutor:
    return request.app.state.tutor


async def get_raw_body(request: Request) -> bytes:
    # Parsed in the handler so a missing session is reported before a bad body.
    return await request.body()


def parse_ask_request(body: bytes) -> AskRequest:
    if not body.strip():
        return AskRequest()
    try:
        return AskRequest.model_validate_json(body)
    except PydanticValidationError as exc:
        raise ValidationError('Request body must be JSON with a text "question".') from exc


@router.get('/ask-ai')
def ask_ai_page(current_user: SessionUser = Depends(get_current_user)):
    return {
        'page': 'ask-ai',
        'user': current_user,
        'max_question_length': MAX_QUESTION_LENGTH,
    }


@router.post('/ask-ai', response_model=AskResponse)
def ask_ai(
    body: bytes = Depends(get_raw_body),
    user: SessionUser | None = Depends(get_optional_user),
    tutor: AITutor = Depends(get_tutor),
):
    if user is None:
        raise Unauthorized()

    data = parse_ask_request(body)
    answer = tutor.ask(user, data.question)
    return AskResponse(answer=answer)
