"""
Typed per-flow accumulators stored in ``user_states.data``.

Each flow owns one model; the ``flow`` field tags which one is stored so a
customer draft can never be read back as a provider task.
"""

import logging
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from musorobot.bot.services.payouts import MAXIMUM_ORDER_AMOUNT, MINIMUM_ORDER_AMOUNT

logger = logging.getLogger(__name__)

BagSize = Literal["small", "medium", "large"]


class Blank(BaseModel):
    flow: Literal["blank"] = "blank"


class OrderDraft(BaseModel):
    flow: Literal["order"] = "order"
    city: str | None = None
    address: str | None = None
    saved_address_available: str | None = None
    time_option: Literal["within_hour", "custom"] = "custom"
    time_text: str | None = None
    bags: list[BagSize] = Field(default_factory=list)
    bag_count: int = Field(default=0, ge=0, le=3)
    amount: int | None = None
    order_id: str | None = None

    @property
    def amount_set(self) -> bool:
        return self.amount is not None and MINIMUM_ORDER_AMOUNT <= self.amount <= MAXIMUM_ORDER_AMOUNT

    @property
    def next_bag_index(self) -> int:
        return len(self.bags) + 1


class ProviderTask(BaseModel):
    flow: Literal["provider_task"] = "provider_task"
    current_order_id: str | None = None
    photo_step: Literal["at_door", "at_bin"] | None = None
    handover_requested: bool = False


class ScheduleDraft(BaseModel):
    flow: Literal["schedule"] = "schedule"
    schedule_days: str | None = None
    schedule_time: str | None = None
    schedule_time_start: str | None = None


class SupportRequest(BaseModel):
    flow: Literal["support"] = "support"
    support_order_id: str | None = None


Accumulator = Annotated[
    Union[Blank, OrderDraft, ProviderTask, ScheduleDraft, SupportRequest],
    Field(discriminator="flow"),
]

_adapter: TypeAdapter = TypeAdapter(Accumulator)


def load_accumulator(data: dict | None) -> BaseModel:
    """Parse stored JSON; anything unrecognised reads as ``Blank``."""
    if not data or "flow" not in data:
        return Blank()
    try:
        return _adapter.validate_python(data)
    except ValidationError as e:
        logger.warning("Discarding unreadable accumulator: flow=%s, errors=%s", data.get("flow"), e.error_count())
        return Blank()


def dump_accumulator(accumulator: BaseModel) -> dict:
    return accumulator.model_dump(mode="json")
