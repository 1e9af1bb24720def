"""
Access checks shared by every use case.

Order at each entry point: identity (Unauthorized), then couple membership
(Forbidden), then entity lookup (NotFound).
"""
from typing import Any, Optional, TypeVar

from ourlittleworld.application.errors import Unauthorized, Forbidden, NotFound, ValidationError
from ourlittleworld.infrastructure.db.models import User

T = TypeVar("T")


def require_user(user: Optional[User]) -> User:
    if user is None:
        raise Unauthorized("Not authenticated")
    return user


def require_membership(user: Optional[User], couple_id: Optional[str]) -> str:
    """
    Raises:
        Unauthorized: no user
        ValidationError: couple_id missing
        Forbidden: user is not in that couple
    """
    user = require_user(user)
    if not couple_id:
        raise ValidationError("coupleId is required")
    if user.couple_id != couple_id:
        raise Forbidden("Forbidden")
    return couple_id


def require_couple(user: Optional[User]) -> str:
    """The caller's own couple id; Forbidden when they have not joined one yet"""
    user = require_user(user)
    if not user.couple_id:
        raise Forbidden("No couple found")
    return user.couple_id


def require_owned(entity: Optional[T], user: Optional[User], label: str = "Entity") -> T:
    """
    Entity must exist and belong to the caller's couple.

    Both failures are reported as NotFound so other couples' ids cannot be probed.
    """
    user = require_user(user)
    owner: Any = getattr(entity, "couple_id", None) if entity is not None else None
    if entity is None or not user.couple_id or owner != user.couple_id:
        raise NotFound(f"{label} not found")
    return entity
