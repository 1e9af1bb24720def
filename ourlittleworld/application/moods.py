"""
Daily mood check-ins: one mood per person per day, visible to the partner
"""
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ourlittleworld.application.access import require_couple, require_membership
from ourlittleworld.application.errors import ValidationError
from ourlittleworld.config import get_settings
from ourlittleworld.domain.budget import today_in
from ourlittleworld.infrastructure.db.models import DailyMoodModel, User
from ourlittleworld.infrastructure.eventlog.repository import EventLogRepository

DEFAULT_MOOD_EMOJI = "❤️"


class MoodValidationError(ValidationError):
    pass


def mood_to_dict(mood: DailyMoodModel) -> Dict[str, Any]:
    return {
        "id": mood.id,
        "user_id": mood.user_id,
        "couple_id": mood.couple_id,
        "mood_date": mood.mood_date.isoformat(),
        "mood_emoji": mood.mood_emoji,
        "note": mood.note,
        "metadata": mood.meta,
    }


def _message_metadata(message: Optional[str]) -> Optional[Dict[str, str]]:
    text = (message or "").strip()
    return {"message": text} if text else None


class _MoodUseCase:

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def _find_today(self, user: User, today: date) -> Optional[DailyMoodModel]:
        return self.db.query(DailyMoodModel).filter(
            DailyMoodModel.user_id == user.id,
            DailyMoodModel.mood_date == today,
        ).first()

    def _publish(self, user: User, mood: DailyMoodModel) -> None:
        self.db.flush()
        self.event_repo.append_event(
            couple_id=mood.couple_id,
            event_type="mood_submitted",
            payload=mood_to_dict(mood),
            entity_id=mood.id,
            actor_user_id=user.id,
        )
        self.db.commit()


class SubmitDailyMoodUseCase(_MoodUseCase):
    """Create or replace today's mood for the caller"""

    def execute(
        self,
        user: Optional[User],
        mood_emoji: Optional[str],
        note: Optional[str] = None,
        message: Optional[str] = None,
        today: Optional[date] = None,
    ) -> DailyMoodModel:
        couple_id = require_couple(user)
        emoji = (mood_emoji or "").strip()
        if not emoji:
            raise MoodValidationError("mood_emoji is required")

        today = today or today_in(get_settings().TIMEZONE)
        metadata = _message_metadata(message)

        mood = self._find_today(user, today)
        if mood is None:
            mood = DailyMoodModel(user_id=user.id, couple_id=couple_id, mood_date=today, mood_emoji=emoji)
            self.db.add(mood)
        mood.mood_emoji = emoji
        mood.note = note or None
        # an omitted message leaves the stored one untouched
        if metadata is not None:
            mood.meta = metadata

        self._publish(user, mood)
        return mood


class UpdateTodayMoodMessageUseCase(_MoodUseCase):
    """Set (or clear, with an empty string) today's message; creates a default mood if needed"""

    def execute(self, user: Optional[User], message: str, today: Optional[date] = None) -> DailyMoodModel:
        couple_id = require_couple(user)
        today = today or today_in(get_settings().TIMEZONE)

        mood = self._find_today(user, today)
        if mood is None:
            mood = DailyMoodModel(
                user_id=user.id, couple_id=couple_id, mood_date=today, mood_emoji=DEFAULT_MOOD_EMOJI,
            )
            self.db.add(mood)
        mood.meta = _message_metadata(message)

        self._publish(user, mood)
        return mood


def get_today_moods(
    db: Session, user: Optional[User], couple_id: Optional[str], today: Optional[date] = None
) -> List[DailyMoodModel]:
    require_membership(user, couple_id)
    today = today or today_in(get_settings().TIMEZONE)
    return db.query(DailyMoodModel).filter(
        DailyMoodModel.couple_id == couple_id,
        DailyMoodModel.mood_date == today,
    ).all()
