"""Profile ORM model — one row per Telegram user, customer or performer."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, String, Text, Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column

from musorobot.api.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    role: Mapped[str | None] = mapped_column(PgEnum("customer", "performer", name="user_role"))

    # Customer convenience
    saved_address: Mapped[str | None] = mapped_column(Text)

    # Performer matching and schedule
    city: Mapped[str | None] = mapped_column(String(255))
    schedule_days: Mapped[str | None] = mapped_column(String(255))
    schedule_time: Mapped[str | None] = mapped_column(String(64))
    notification_filter: Mapped[str] = mapped_column(
        PgEnum("all", "urgent", "large", "none", name="notification_filter"),
        default="all",
    )

    # Roubles
    eco_points: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    average_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=Decimal("0"))
    rating_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
