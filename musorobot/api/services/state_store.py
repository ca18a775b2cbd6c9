"""
User State Store — one conversation state row per Telegram user.

Rows are created lazily on first read and upserted on every transition,
never deleted.
"""

import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from musorobot.api.models.user_state import UserState, _utcnow
from musorobot.bot.repository import StateRecord

logger = logging.getLogger(__name__)

DEFAULT_STATE = "start"


async def get_state(db: AsyncSession, user_id: int) -> StateRecord:
    """Stored state, creating the default ``start`` row if the user has none."""
    try:
        result = await db.execute(select(UserState).where(UserState.user_id == user_id))
        row = result.scalar_one_or_none()
        if row is not None:
            return StateRecord(user_id=user_id, state=row.state, data=dict(row.data or {}))

        await db.execute(
            insert(UserState)
            .values(user_id=user_id, state=DEFAULT_STATE, data={})
            .on_conflict_do_nothing(index_elements=[UserState.user_id])
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("State read failed: user_id=%s, error=%s", user_id, e)
    return StateRecord(user_id=user_id, state=DEFAULT_STATE, data={})


def upsert_state_stmt(user_id: int, state: str, data: dict | None = None):
    """``INSERT … ON CONFLICT DO UPDATE``; ``data=None`` keeps the stored accumulator."""
    values = {"user_id": user_id, "state": state, "updated_at": _utcnow()}
    if data is not None:
        values["data"] = data
    stmt = insert(UserState).values(**values)
    update = {"state": stmt.excluded.state, "updated_at": stmt.excluded.updated_at}
    if data is not None:
        update["data"] = stmt.excluded.data
    return stmt.on_conflict_do_update(index_elements=[UserState.user_id], set_=update)


async def set_state(db: AsyncSession, user_id: int, state: str, data: dict | None = None) -> bool:
    try:
        await db.execute(upsert_state_stmt(user_id, state, data))
        await db.commit()
        return True
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("State write failed: user_id=%s, state=%s, error=%s", user_id, state, e)
        return False


class SessionStateStore:
    """State backend for the FSM storage; one short session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_state(self, user_id: int) -> StateRecord:
        async with self.session_factory() as db:
            return await get_state(db, user_id)

    async def set_state(self, user_id: int, state: str, data: dict | None = None) -> None:
        async with self.session_factory() as db:
            await set_state(db, user_id, state, data)
