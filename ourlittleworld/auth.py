from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ourlittleworld.application.errors import Unauthorized, ValidationError
from ourlittleworld.infrastructure.db.models import User

# pbkdf2_sha256 needs no native deps; bcrypt only verifies legacy hashes
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated=["bcrypt"])

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def register_user(db: Session, email: str, password: str, full_name: Optional[str] = None) -> User:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if get_user_by_email(db, email):
        raise ValidationError("An account with this email already exists")

    user = User(email=email, password_hash=hash_password(password), full_name=(full_name or "").strip() or None)
    db.add(user)
    db.commit()
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Same error for unknown email and wrong password"""
    user = get_user_by_email(db, email or "")
    if not user or not verify_password(password or "", user.password_hash):
        raise Unauthorized("Invalid email or password")
    return user
