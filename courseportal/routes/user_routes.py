import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from courseportal.auth.dependencies import get_current_user, get_db
from courseportal.core.errors import ServiceUnavailable
from courseportal.models.user import User

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

DEFAULT_USER_LIST_LIMIT = 10


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str
    email: str
    phone: str | None = None
    age: int | None = None
    role: str


@router.get('/users', response_model=list[UserResponse], dependencies=[Depends(get_current_user)])
def list_users(
    limit: int = Query(default=DEFAULT_USER_LIST_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
):
    try:
        return db.query(User).order_by(User.id.asc()).limit(limit).all()
    except SQLAlchemyError as exc:
        logger.exception('User listing failed')
        raise ServiceUnavailable('Database Error') from exc
