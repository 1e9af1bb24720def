"""
FastAPI dependencies (DB session, authentication)
"""
from typing import Annotated, Optional

from fastapi import Depends, Request
from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from ourlittleworld.application.errors import Unauthorized
from ourlittleworld.infrastructure.db.session import get_db as _get_db
from ourlittleworld.infrastructure.db.models import User
from ourlittleworld.utils.validation import validate_and_normalize_amount


# Re-export get_db for routers and dependency_overrides in tests
get_db = _get_db

# Money on the way in: JSON number or string, at most 2 decimal places, kept as a string
Amount = Annotated[str, BeforeValidator(validate_and_normalize_amount)]


class CamelModel(BaseModel):
    """Request body accepting camelCase (coupleId) as well as snake_case keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Session user or None"""
    user_id = request.session.get("user_id")
    if not user_id:
        return None
    return db.get(User, user_id)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """
    Session user for API endpoints

    Raises:
        Unauthorized: not logged in, or the session points at a deleted user

    Usage:
        @router.get("/me")
        def me(user: User = Depends(get_current_user)):
            ...
    """
    if user is None:
        raise Unauthorized("Not authenticated")
    return user
