"""
Daily mood check-in endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import CamelModel, get_current_user, get_db
from ourlittleworld.application.moods import (
    SubmitDailyMoodUseCase, UpdateTodayMoodMessageUseCase, get_today_moods, mood_to_dict,
)
from ourlittleworld.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/moods", tags=["moods"])


class SubmitMoodRequest(CamelModel):
    mood_emoji: str | None = None
    note: str | None = None
    message: str | None = None


class MoodMessageRequest(CamelModel):
    message: str = ""


@router.get("/today")
def today_moods(
    couple_id: str | None = Query(None, alias="coupleId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Both partners' moods for today (one entry per person who checked in)"""
    return [mood_to_dict(m) for m in get_today_moods(db, user, couple_id)]


@router.post("/today")
def submit_mood(
    req: SubmitMoodRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mood = SubmitDailyMoodUseCase(db).execute(user, req.mood_emoji, note=req.note, message=req.message)
    return mood_to_dict(mood)


@router.put("/today/message")
def update_mood_message(
    req: MoodMessageRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mood = UpdateTodayMoodMessageUseCase(db).execute(user, req.message)
    return mood_to_dict(mood)
