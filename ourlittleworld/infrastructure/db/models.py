"""
SQLAlchemy ORM models
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import (
    CheckConstraint, String, Integer, Text, TIMESTAMP, Date, Boolean, Numeric, ForeignKey, UniqueConstraint, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from ourlittleworld.infrastructure.db.session import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Authenticated identity + profile (one row per person)
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    couple_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("couples.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )


class Couple(Base):
    """
    Tenant boundary: exactly two profiles share budgets, posts and goals
    """
    __tablename__ = "couples"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    invite_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    couple_name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    couple_photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    partner_1_nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    partner_2_nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    world_theme: Mapped[str] = mapped_column(String(32), nullable=False, server_default="blush")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )


class TransactionModel(Base):
    """
    Ledger row: one income or expense attributed to a payer bucket
    """
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    couple_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couples.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    payer: Mapped[str] = mapped_column(String(16), nullable=False)  # HIS, HERS, SHARED
    type: Mapped[str] = mapped_column(String(16), nullable=False, server_default="EXPENSE")  # INCOME, EXPENSE
    created_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    transaction_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_transactions_couple_date", "couple_id", "transaction_date"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )


class BudgetModel(Base):
    """
    Monthly allocation. his + hers + shared == monthly_total is enforced on write,
    not by the database.
    """
    __tablename__ = "budgets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    couple_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couples.id", ondelete="CASCADE"), nullable=False, index=True
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM
    monthly_total: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    his_budget: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    hers_budget: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    shared_budget: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("couple_id", "month", name="uq_budget_couple_month"),
    )


class SavingsGoalModel(Base):
    __tablename__ = "savings_goals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    couple_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couples.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2), nullable=False, server_default="0"
    )
    icon: Mapped[str] = mapped_column(String(50), nullable=False, server_default="Target")
    color: Mapped[str] = mapped_column(String(50), nullable=False, server_default="purple")
    deadline: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, server_default="medium")
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )


class PostModel(Base):
    """
    Feed post. Likes and comments are embedded in `metadata`, not related tables.
    """
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    couple_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couples.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )


class DailyMoodModel(Base):
    __tablename__ = "daily_moods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    couple_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couples.id", ondelete="CASCADE"), nullable=False, index=True
    )
    mood_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    mood_emoji: Mapped[str] = mapped_column(String(16), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "mood_date", name="uq_daily_mood_user_date"),
    )


class EventLog(Base):
    """
    Change log - every mutation appends one immutable row.
    Clients poll it (after_id cursor) as their realtime source.
    """
    __tablename__ = "event_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    couple_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    actor_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    event_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    payload_json: Mapped[dict] = mapped_column(JSONB, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False, index=True
    )
