"""
Storage port used by the conversation engine.

The engine never talks to SQLAlchemy directly. It receives an object that
satisfies ``Repository`` (``SqlRepository`` in production, an in-memory fake
in tests) and works with the plain records below.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol


@dataclass
class StateRecord:
    user_id: int
    state: str = "start"
    data: dict = field(default_factory=dict)


@dataclass
class OrderRecord:
    id: str
    user_id: int
    address: str
    amount: int  # kopecks
    status: str = "new"
    size_option: str = "one_bag"
    bags: list[str] = field(default_factory=list)
    time_option: str = "custom"
    custom_time: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    performer_id: int | None = None
    photo_door: str | None = None
    photo_bin: str | None = None
    rating: int | None = None
    comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def short_id(self) -> str:
        return self.id[-8:]

    @property
    def amount_major(self) -> Decimal:
        return Decimal(self.amount) / 100

    @property
    def bag_count(self) -> int:
        return len(self.bags) if self.bags else 1

    @property
    def is_urgent(self) -> bool:
        return self.time_option == "within_hour"


@dataclass
class ProfileRecord:
    user_id: int
    role: str | None = None
    saved_address: str | None = None
    city: str | None = None
    schedule_days: str | None = None
    schedule_time: str | None = None
    notification_filter: str = "all"
    eco_points: Decimal = Decimal("0")
    average_rating: Decimal = Decimal("0")
    rating_count: int = 0


class Repository(Protocol):
    # ── Profiles ──
    async def get_profile(self, user_id: int) -> ProfileRecord | None: ...

    async def upsert_profile(self, user_id: int, **fields: Any) -> bool: ...

    async def list_performers(self) -> list[ProfileRecord]: ...

    async def credit_balance(self, user_id: int, amount: Decimal) -> Decimal | None: ...

    async def add_rating(self, user_id: int, rating: int) -> ProfileRecord | None: ...

    # ── Orders ──
    async def create_order(self, **fields: Any) -> OrderRecord | None: ...

    async def get_order(self, order_id: str) -> OrderRecord | None: ...

    async def list_orders(
        self,
        status: str,
        performer_id: int | None = None,
        limit: int = 10,
        newest_first: bool = False,
    ) -> list[OrderRecord]: ...

    async def claim_order(self, order_id: str, performer_id: int) -> OrderRecord | None: ...

    async def update_order(self, order_id: str, held_by: int | None = None, **fields: Any) -> bool: ...

    async def complete_order(self, order_id: str, performer_id: int) -> OrderRecord | None: ...

    async def rate_order(self, order_id: str, customer_id: int, rating: int) -> OrderRecord | None: ...

    # ── Bot settings ──
    async def get_admin_chat_id(self) -> int | None: ...

    async def set_admin_chat_id(self, value: str) -> bool: ...
