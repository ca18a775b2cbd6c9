"""SQL-backed ``Repository`` for the conversation engine, one per request session."""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from musorobot.api.services import order_store, profile_store
from musorobot.bot.repository import OrderRecord, ProfileRecord


class SqlRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Profiles ──
    async def get_profile(self, user_id: int) -> ProfileRecord | None:
        return await profile_store.get_profile(self.db, user_id)

    async def upsert_profile(self, user_id: int, **fields: Any) -> bool:
        return await profile_store.upsert_profile(self.db, user_id, **fields)

    async def list_performers(self) -> list[ProfileRecord]:
        return await profile_store.list_performers(self.db)

    async def credit_balance(self, user_id: int, amount: Decimal) -> Decimal | None:
        return await profile_store.credit_balance(self.db, user_id, amount)

    async def add_rating(self, user_id: int, rating: int) -> ProfileRecord | None:
        return await profile_store.add_rating(self.db, user_id, rating)

    # ── Orders ──
    async def create_order(self, **fields: Any) -> OrderRecord | None:
        return await order_store.create_order(self.db, **fields)

    async def get_order(self, order_id: str) -> OrderRecord | None:
        return await order_store.get_order(self.db, order_id)

    async def list_orders(
        self,
        status: str,
        performer_id: int | None = None,
        limit: int = 10,
        newest_first: bool = False,
    ) -> list[OrderRecord]:
        return await order_store.list_orders(self.db, status, performer_id, limit, newest_first)

    async def claim_order(self, order_id: str, performer_id: int) -> OrderRecord | None:
        return await order_store.claim_order(self.db, order_id, performer_id)

    async def update_order(self, order_id: str, held_by: int | None = None, **fields: Any) -> bool:
        return await order_store.update_order(self.db, order_id, held_by, **fields)

    async def complete_order(self, order_id: str, performer_id: int) -> OrderRecord | None:
        return await order_store.complete_order(self.db, order_id, performer_id)

    async def rate_order(self, order_id: str, customer_id: int, rating: int) -> OrderRecord | None:
        return await order_store.rate_order(self.db, order_id, customer_id, rating)

    # ── Bot settings ──
    async def get_admin_chat_id(self) -> int | None:
        return await profile_store.get_admin_chat_id(self.db)

    async def set_admin_chat_id(self, value: str) -> bool:
        return await profile_store.set_admin_chat_id(self.db, value)
