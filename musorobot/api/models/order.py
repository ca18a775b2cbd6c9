"""Order ORM model — pickup request lifecycle."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer, SmallInteger, String, Text, Enum as PgEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from musorobot.api.db.database import Base

ORDER_STATUSES = ("new", "in_progress", "completed", "cancelled")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    # Customer snapshot at creation time
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str | None] = mapped_column(String(255))
    last_name: Mapped[str | None] = mapped_column(String(255))

    # What and when
    address: Mapped[str] = mapped_column(Text, nullable=False)
    size_option: Mapped[str] = mapped_column(
        PgEnum("one_bag", "two_bags", "three_bags", name="size_option"),
        default="one_bag",
    )
    bags: Mapped[list | None] = mapped_column(JSONB)
    time_option: Mapped[str] = mapped_column(
        PgEnum("within_hour", "custom", name="time_option"),
        default="custom",
    )
    custom_time: Mapped[str | None] = mapped_column(Text)

    # Kopecks
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        PgEnum(*ORDER_STATUSES, name="order_status"),
        default="new",
        index=True,
    )
    performer_id: Mapped[int | None] = mapped_column(BigInteger, index=True)

    # Proof of work (Telegram file ids)
    photo_door: Mapped[str | None] = mapped_column(Text)
    photo_bin: Mapped[str | None] = mapped_column(Text)

    # Customer feedback
    rating: Mapped[int | None] = mapped_column(SmallInteger)
    comment: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
