"""
Profile Store — customer/performer profiles and bot settings.

Upserts touch only the columns named in the call. Balance and rating changes
are read-modify-write under a row lock so concurrent updates do not get lost.
"""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from musorobot.api.config import settings
from musorobot.api.models.profile import Profile, _utcnow
from musorobot.api.models.user_state import BotSetting
from musorobot.bot.repository import ProfileRecord
from musorobot.bot.services.payouts import next_rating

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "role", "saved_address", "city", "schedule_days", "schedule_time",
    "notification_filter", "eco_points", "average_rating", "rating_count",
)
ADMIN_CHAT_KEY = "admin_chat_id"


def to_record(profile: Profile) -> ProfileRecord:
    return ProfileRecord(
        user_id=profile.user_id,
        role=profile.role,
        saved_address=profile.saved_address,
        city=profile.city,
        schedule_days=profile.schedule_days,
        schedule_time=profile.schedule_time,
        notification_filter=profile.notification_filter or "all",
        eco_points=profile.eco_points or Decimal("0"),
        average_rating=profile.average_rating or Decimal("0"),
        rating_count=profile.rating_count or 0,
    )


def upsert_profile_stmt(user_id: int, **fields: Any):
    """Insert the profile or update exactly the given columns."""
    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
    stmt = insert(Profile).values(user_id=user_id, updated_at=_utcnow(), **fields)
    update = {name: stmt.excluded[name] for name in fields}
    update["updated_at"] = stmt.excluded.updated_at
    return stmt.on_conflict_do_update(index_elements=[Profile.user_id], set_=update)


async def get_profile(db: AsyncSession, user_id: int) -> ProfileRecord | None:
    try:
        profile = await db.get(Profile, user_id, populate_existing=True)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Profile read failed: user_id=%s, error=%s", user_id, e)
        return None
    return to_record(profile) if profile else None


async def upsert_profile(db: AsyncSession, user_id: int, **fields: Any) -> bool:
    try:
        await db.execute(upsert_profile_stmt(user_id, **fields))
        await db.commit()
        return True
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Profile upsert failed: user_id=%s, fields=%s, error=%s", user_id, list(fields), e)
        return False


async def list_performers(db: AsyncSession) -> list[ProfileRecord]:
    """Performers that have told us their city."""
    stmt = select(Profile).where(Profile.role == "performer", Profile.city.is_not(None))
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Performer list failed: %s", e)
        return []
    return [to_record(profile) for profile in result.scalars().all()]


def locked_profile_stmt(user_id: int):
    """Row-locking read used for balance and rating read-modify-write."""
    return (
        select(Profile)
        .where(Profile.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def _locked_profile(db: AsyncSession, user_id: int) -> Profile:
    await db.execute(
        insert(Profile).values(user_id=user_id).on_conflict_do_nothing(index_elements=[Profile.user_id])
    )
    result = await db.execute(locked_profile_stmt(user_id))
    return result.scalar_one()


async def credit_balance(db: AsyncSession, user_id: int, amount: Decimal) -> Decimal | None:
    """Add ``amount`` roubles to the performer's balance; returns the new balance."""
    try:
        profile = await _locked_profile(db, user_id)
        profile.eco_points = (profile.eco_points or Decimal("0")) + amount
        profile.updated_at = _utcnow()
        balance = profile.eco_points
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Balance credit failed: user_id=%s, amount=%s, error=%s", user_id, amount, e)
        return None
    logger.info("Balance credited: user_id=%s, amount=%s, balance=%s", user_id, amount, balance)
    return balance


async def add_rating(db: AsyncSession, user_id: int, rating: int) -> ProfileRecord | None:
    """Fold one rating into the performer's running average."""
    try:
        profile = await _locked_profile(db, user_id)
        profile.average_rating, profile.rating_count = next_rating(
            profile.average_rating or Decimal("0"),
            profile.rating_count or 0,
            rating,
        )
        profile.updated_at = _utcnow()
        record = to_record(profile)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Rating update failed: user_id=%s, rating=%s, error=%s", user_id, rating, e)
        return None
    return record


# ── Bot settings ──────────────────────────────────────────

async def get_admin_chat_id(db: AsyncSession) -> int | None:
    """Admin chat from ``/adminid``, else the configured fallback."""
    value = None
    try:
        setting = await db.get(BotSetting, ADMIN_CHAT_KEY, populate_existing=True)
        value = setting.value if setting else None
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Bot setting read failed: key=%s, error=%s", ADMIN_CHAT_KEY, e)
    value = value or settings.TELEGRAM_ADMIN_CHAT_ID
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Admin chat ID is not numeric: %s", value)
        return None


async def set_admin_chat_id(db: AsyncSession, value: str) -> bool:
    stmt = insert(BotSetting).values(key=ADMIN_CHAT_KEY, value=value, updated_at=_utcnow())
    stmt = stmt.on_conflict_do_update(
        index_elements=[BotSetting.key],
        set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
    )
    try:
        await db.execute(stmt)
        await db.commit()
        return True
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Bot setting write failed: key=%s, error=%s", ADMIN_CHAT_KEY, e)
        return False
