"""
Onboarding use cases: create a world, join it with an invite code, read it back
"""
import logging
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ourlittleworld.application.access import require_user
from ourlittleworld.application.errors import NotFound
from ourlittleworld.config import get_settings
from ourlittleworld.domain.budget import today_in
from ourlittleworld.domain.couple import (
    MAX_MEMBERS, CoupleValidationError,
    days_together, generate_invite_code, milestone_progress, next_milestone, normalize_invite_code,
)
from ourlittleworld.infrastructure.db.models import Couple, User

logger = logging.getLogger(__name__)

# Invite codes are random; a collision only costs a retry
_INVITE_CODE_ATTEMPTS = 5


def couple_to_dict(db: Session, couple: Couple, today: Optional[date] = None) -> Dict[str, Any]:
    members = db.query(User).filter(User.couple_id == couple.id).order_by(User.created_at.asc()).all()
    days = days_together(couple.start_date, today or today_in(get_settings().TIMEZONE))
    upcoming = next_milestone(days)
    return {
        "id": couple.id,
        "couple_name": couple.couple_name,
        "invite_code": couple.invite_code,
        "start_date": couple.start_date.isoformat() if couple.start_date else None,
        "couple_photo_url": couple.couple_photo_url,
        "partner_1_nickname": couple.partner_1_nickname,
        "partner_2_nickname": couple.partner_2_nickname,
        "world_theme": couple.world_theme,
        "members": [
            {"id": m.id, "full_name": m.full_name, "avatar_url": m.avatar_url}
            for m in members
        ],
        "days_together": days,
        "next_milestone": {
            "days": upcoming.days,
            "label": upcoming.label,
            "days_until": max(upcoming.days - days, 0),
            "progress": round(milestone_progress(days), 1),
        },
    }


class CreateWorldUseCase:
    """
    Use case: create a couple and attach the creator to it

    The couple row and the profile update are committed together.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user: Optional[User],
        world_name: Optional[str],
        start_date: Optional[date] = None,
        couple_photo_url: Optional[str] = None,
        partner_nickname: Optional[str] = None,
        theme: Optional[str] = None,
    ) -> Couple:
        user = require_user(user)
        if user.couple_id:
            raise CoupleValidationError("You already belong to a world")

        name = (world_name or "").strip()
        if not name:
            raise CoupleValidationError("World name is required")

        settings = get_settings()
        couple = Couple(
            invite_code=self._unused_invite_code(settings.INVITE_CODE_LENGTH),
            couple_name=name,
            start_date=start_date,
            couple_photo_url=couple_photo_url or None,
            partner_1_nickname=partner_nickname or None,
            world_theme=theme or settings.DEFAULT_WORLD_THEME,
        )
        self.db.add(couple)
        self.db.flush()

        user.couple_id = couple.id
        try:
            self.db.commit()
        except IntegrityError:
            # lost a race for the same code; the unique constraint caught it
            self.db.rollback()
            raise CoupleValidationError("Could not allocate an invite code, please try again")
        logger.info("World %s created by user %s", couple.id, user.id)
        return couple

    def _unused_invite_code(self, length: int) -> str:
        for attempt in range(_INVITE_CODE_ATTEMPTS):
            code = generate_invite_code(length)
            if not self.db.query(Couple.id).filter(Couple.invite_code == code).first():
                return code
            logger.warning("Invite code collision, retrying (attempt %d)", attempt + 1)
        raise CoupleValidationError("Could not allocate an invite code, please try again")


class JoinWorldUseCase:
    """Use case: second partner joins with the invite code"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user: Optional[User],
        invite_code: Optional[str],
        partner_nickname: Optional[str] = None,
    ) -> Couple:
        user = require_user(user)
        code = normalize_invite_code(invite_code)

        couple = self.db.query(Couple).filter(Couple.invite_code == code).first()
        if not couple:
            raise NotFound("Invalid invite code. Please check and try again.")

        if user.couple_id == couple.id:
            raise CoupleValidationError("You are already a member of this world!")
        if user.couple_id:
            raise CoupleValidationError("You already belong to another world")

        members = self.db.query(User).filter(User.couple_id == couple.id).count()
        if members >= MAX_MEMBERS:
            raise CoupleValidationError("This world is already complete. Please ask for a new invite code.")

        couple.partner_2_nickname = partner_nickname or None
        user.couple_id = couple.id
        self.db.commit()
        logger.info("User %s joined world %s", user.id, couple.id)
        return couple


def get_me(db: Session, user: Optional[User]) -> Dict[str, Any]:
    """Identity, profile and (if any) the couple with its members"""
    user = require_user(user)
    couple = db.get(Couple, user.couple_id) if user.couple_id else None
    return {
        "user": {"id": user.id, "email": user.email},
        "profile": {
            "id": user.id,
            "couple_id": user.couple_id,
            "full_name": user.full_name,
            "avatar_url": user.avatar_url,
            "email": user.email,
        },
        "couple": couple_to_dict(db, couple) if couple else None,
    }
