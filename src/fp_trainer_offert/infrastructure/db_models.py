"""SQLAlchemy ORM models for fp_trainer_offert.

These map to existing tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.fp_common.database import Base


class TrainerOffertORM(Base):
    __tablename__ = "trainer_offerts"
    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_trainer_offerts_price"),
        CheckConstraint("duration_in_days >= 1", name="ck_trainer_offerts_duration"),
        CheckConstraint(
            "NOT includes_bookings OR booking_quota > 0",
            name="ck_trainer_offerts_booking_quota",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    trainer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    duration_in_days: Mapped[int] = mapped_column(Integer, nullable=False)
    includes_bookings: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    booking_quota: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class TrainerSubscriptionORM(Base):
    __tablename__ = "trainer_subscriptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'cancelled', 'expired')",
            name="ck_trainer_subscriptions_status",
        ),
        CheckConstraint("valid_until >= valid_from", name="ck_trainer_subscriptions_window"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    offert_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trainer_offerts.id"), nullable=False
    )
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    # One subscription per payment: the de-duplication key for redelivered events
    payment_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
