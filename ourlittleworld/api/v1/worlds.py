"""
Onboarding and identity: /me, create a world, join one with an invite code
"""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import CamelModel, get_current_user, get_db
from ourlittleworld.application.couples import CreateWorldUseCase, JoinWorldUseCase, couple_to_dict, get_me
from ourlittleworld.config import get_settings
from ourlittleworld.domain.budget import today_in
from ourlittleworld.domain.couple import suggest_world_name
from ourlittleworld.infrastructure.db.models import User

router = APIRouter(prefix="/api/v1", tags=["worlds"])


class CreateWorldRequest(CamelModel):
    world_name: str | None = None
    start_date: date | None = None
    couple_photo_url: str | None = None
    partner_nickname: str | None = None
    theme: str | None = None


class JoinWorldRequest(CamelModel):
    invite_code: str | None = None
    partner_nickname: str | None = None


@router.get("/me")
def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_me(db, user)


@router.post("/worlds", status_code=201)
def create_world(
    req: CreateWorldRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    couple = CreateWorldUseCase(db).execute(
        user,
        world_name=req.world_name,
        start_date=req.start_date,
        couple_photo_url=req.couple_photo_url,
        partner_nickname=req.partner_nickname,
        theme=req.theme,
    )
    return couple_to_dict(db, couple)


@router.post("/worlds/join")
def join_world(
    req: JoinWorldRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    couple = JoinWorldUseCase(db).execute(user, req.invite_code, req.partner_nickname)
    return couple_to_dict(db, couple)


@router.get("/worlds/name-suggestion")
def world_name_suggestion(user: User = Depends(get_current_user)):
    year = today_in(get_settings().TIMEZONE).year
    return {"name": suggest_world_name(year)}
