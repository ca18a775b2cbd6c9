"""
Order Store — pickup request persistence.

Claim and completion are single conditional UPDATEs so two performers can
never both win the same order.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from musorobot.api.models.order import Order, _utcnow
from musorobot.bot.repository import OrderRecord

logger = logging.getLogger(__name__)

ORDER_FIELDS = (
    "user_id", "username", "first_name", "last_name", "address", "size_option",
    "bags", "time_option", "custom_time", "amount", "status", "performer_id",
    "photo_door", "photo_bin", "rating", "comment",
)


def parse_order_id(order_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(order_id))
    except (TypeError, ValueError):
        return None


def to_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=str(order.id),
        user_id=order.user_id,
        address=order.address,
        amount=order.amount,
        status=order.status,
        size_option=order.size_option,
        bags=list(order.bags or []),
        time_option=order.time_option,
        custom_time=order.custom_time,
        username=order.username,
        first_name=order.first_name,
        last_name=order.last_name,
        performer_id=order.performer_id,
        photo_door=order.photo_door,
        photo_bin=order.photo_bin,
        rating=order.rating,
        comment=order.comment,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# ── Statements ────────────────────────────────────────────

def claim_stmt(order_uuid: uuid.UUID, performer_id: int):
    return (
        update(Order)
        .where(Order.id == order_uuid, Order.status == "new")
        .values(status="in_progress", performer_id=performer_id, updated_at=_utcnow())
        .returning(Order)
    )


def complete_stmt(order_uuid: uuid.UUID, performer_id: int):
    return (
        update(Order)
        .where(
            Order.id == order_uuid,
            Order.performer_id == performer_id,
            Order.status == "in_progress",
        )
        .values(status="completed", updated_at=_utcnow())
        .returning(Order)
    )


def rate_stmt(order_uuid: uuid.UUID, customer_id: int, rating: int):
    return (
        update(Order)
        .where(
            Order.id == order_uuid,
            Order.user_id == customer_id,
            Order.status == "completed",
            Order.rating.is_(None),
        )
        .values(rating=rating, updated_at=_utcnow())
        .returning(Order)
    )


# ── Operations ────────────────────────────────────────────

async def create_order(db: AsyncSession, **fields: Any) -> OrderRecord | None:
    unknown = set(fields) - set(ORDER_FIELDS)
    if unknown:
        raise ValueError(f"Unknown order fields: {sorted(unknown)}")
    try:
        order = Order(**fields)
        db.add(order)
        await db.commit()
        await db.refresh(order)
        return to_record(order)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Order create failed: user_id=%s, error=%s", fields.get("user_id"), e)
        return None


async def get_order(db: AsyncSession, order_id: str) -> OrderRecord | None:
    order_uuid = parse_order_id(order_id)
    if order_uuid is None:
        return None
    try:
        order = await db.get(Order, order_uuid, populate_existing=True)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Order read failed: order_id=%s, error=%s", order_id, e)
        return None
    return to_record(order) if order else None


async def list_orders(
    db: AsyncSession,
    status: str | None = None,
    performer_id: int | None = None,
    limit: int = 10,
    newest_first: bool = False,
) -> list[OrderRecord]:
    """
    Orders filtered by status and performer.

    Oldest first by creation (the queue performers see); ``newest_first``
    orders by last update instead, for history screens.
    """
    stmt = select(Order)
    if status is not None:
        stmt = stmt.where(Order.status == status)
    if performer_id is not None:
        stmt = stmt.where(Order.performer_id == performer_id)
    if newest_first:
        stmt = stmt.order_by(Order.updated_at.desc())
    else:
        stmt = stmt.order_by(Order.created_at.asc())
    stmt = stmt.limit(limit)
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Order list failed: status=%s, performer_id=%s, error=%s", status, performer_id, e)
        return []
    return [to_record(order) for order in result.scalars().all()]


async def _returning_one(db: AsyncSession, stmt, action: str, order_id: str) -> OrderRecord | None:
    try:
        result = await db.execute(stmt, execution_options={"synchronize_session": False})
        order = result.scalar_one_or_none()
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Order %s failed: order_id=%s, error=%s", action, order_id, e)
        return None
    return to_record(order) if order else None


async def claim_order(db: AsyncSession, order_id: str, performer_id: int) -> OrderRecord | None:
    """Compare-and-swap ``new → in_progress``; None when someone else got there first."""
    order_uuid = parse_order_id(order_id)
    if order_uuid is None:
        return None
    return await _returning_one(db, claim_stmt(order_uuid, performer_id), "claim", order_id)


async def complete_order(db: AsyncSession, order_id: str, performer_id: int) -> OrderRecord | None:
    """``in_progress → completed``, only for the performer holding the order."""
    order_uuid = parse_order_id(order_id)
    if order_uuid is None:
        return None
    return await _returning_one(db, complete_stmt(order_uuid, performer_id), "complete", order_id)


async def rate_order(db: AsyncSession, order_id: str, customer_id: int, rating: int) -> OrderRecord | None:
    """Store the customer's rating once, on a completed order."""
    order_uuid = parse_order_id(order_id)
    if order_uuid is None:
        return None
    return await _returning_one(db, rate_stmt(order_uuid, customer_id, rating), "rate", order_id)


async def update_order(db: AsyncSession, order_id: str, held_by: int | None = None, **fields: Any) -> bool:
    """Set fields on one order, optionally only while performer ``held_by`` holds it."""
    unknown = set(fields) - set(ORDER_FIELDS)
    if unknown:
        raise ValueError(f"Unknown order fields: {sorted(unknown)}")
    order_uuid = parse_order_id(order_id)
    if order_uuid is None or not fields:
        return False
    stmt = update(Order).where(Order.id == order_uuid)
    if held_by is not None:
        stmt = stmt.where(Order.performer_id == held_by)
    stmt = stmt.values(**fields, updated_at=_utcnow())
    try:
        result = await db.execute(stmt, execution_options={"synchronize_session": False})
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Order update failed: order_id=%s, fields=%s, error=%s", order_id, list(fields), e)
        return False
    return result.rowcount > 0


async def count_by_status(db: AsyncSession) -> dict[str, int]:
    try:
        result = await db.execute(select(Order.status, func.count()).group_by(Order.status))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Order count failed: %s", e)
        return {}
    return {status: count for status, count in result.all()}
