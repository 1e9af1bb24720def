"""
Authentication routes (register, login, logout)
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import CamelModel, get_db
from ourlittleworld.auth import authenticate, register_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class RegisterRequest(CamelModel):
    email: str
    password: str
    full_name: str | None = None


class LoginRequest(CamelModel):
    email: str
    password: str


@router.post("/register", status_code=201)
def register(request: Request, req: RegisterRequest, db: Session = Depends(get_db)):
    """Create the account and start a session; onboarding continues with /api/v1/worlds"""
    user = register_user(db, req.email, req.password, req.full_name)
    request.session["user_id"] = user.id
    logger.info("User %s registered", user.id)
    return {"id": user.id, "email": user.email, "couple_id": user.couple_id}


@router.post("/login")
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, req.email, req.password)
    request.session["user_id"] = user.id
    return {"id": user.id, "email": user.email, "couple_id": user.couple_id}


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"success": True}
