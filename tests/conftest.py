"""Shared fixtures: an in-memory repository and a harness feeding updates through the dispatcher."""

import copy
import itertools
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from aiogram import Bot, Dispatcher
from aiogram.types import Update

from musorobot.bot.dispatcher import build_dispatcher
from musorobot.bot.engine import ConversationEngine
from musorobot.bot.flow import AnswerCallback, SendPhoto, SendText
from musorobot.bot.repository import OrderRecord, ProfileRecord, StateRecord
from musorobot.bot.services.payouts import next_rating
from musorobot.bot.storage import UserStateStorage

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
MESSAGE_DATE = 1767254400
BOT_TOKEN = "42:TEST"


class FakeRepository:
    """Dict-backed ``Repository`` and FSM state backend with the same conditional-update rules as the SQL stores."""

    def __init__(self):
        self.states: dict[int, StateRecord] = {}
        self.profiles: dict[int, ProfileRecord] = {}
        self.orders: dict[str, OrderRecord] = {}
        self.admin_chat_id: int | None = None
        self._ticks = itertools.count(1)

    def _now(self) -> datetime:
        return T0 + timedelta(seconds=next(self._ticks))

    # ── User state ──
    async def get_state(self, user_id):
        record = self.states.setdefault(user_id, StateRecord(user_id=user_id))
        return StateRecord(user_id=user_id, state=record.state, data=copy.deepcopy(record.data))

    async def set_state(self, user_id, state, data=None):
        record = self.states.setdefault(user_id, StateRecord(user_id=user_id))
        record.state = state
        if data is not None:
            record.data = copy.deepcopy(data)

    # ── Profiles ──
    async def get_profile(self, user_id):
        profile = self.profiles.get(user_id)
        return replace(profile) if profile else None

    async def upsert_profile(self, user_id, **fields):
        profile = self.profiles.setdefault(user_id, ProfileRecord(user_id=user_id))
        for name, value in fields.items():
            setattr(profile, name, value)
        return True

    async def list_performers(self):
        return [replace(p) for p in self.profiles.values() if p.role == "performer" and p.city]

    async def credit_balance(self, user_id, amount):
        profile = self.profiles.setdefault(user_id, ProfileRecord(user_id=user_id))
        profile.eco_points = profile.eco_points + amount
        return profile.eco_points

    async def add_rating(self, user_id, rating):
        profile = self.profiles.setdefault(user_id, ProfileRecord(user_id=user_id))
        profile.average_rating, profile.rating_count = next_rating(profile.average_rating, profile.rating_count, rating)
        return replace(profile)

    # ── Orders ──
    async def create_order(self, **fields):
        now = self._now()
        bags = fields.pop("bags", None) or []
        order = OrderRecord(id=str(uuid.uuid4()), bags=list(bags), created_at=now, updated_at=now, **fields)
        self.orders[order.id] = order
        return replace(order)

    async def get_order(self, order_id):
        order = self.orders.get(order_id)
        return replace(order) if order else None

    async def list_orders(self, status, performer_id=None, limit=10, newest_first=False):
        orders = [
            o for o in self.orders.values()
            if o.status == status and (performer_id is None or o.performer_id == performer_id)
        ]
        if newest_first:
            orders.sort(key=lambda o: o.updated_at, reverse=True)
        else:
            orders.sort(key=lambda o: o.created_at)
        return [replace(o) for o in orders[:limit]]

    async def claim_order(self, order_id, performer_id):
        order = self.orders.get(order_id)
        if order is None or order.status != "new":
            return None
        order.status = "in_progress"
        order.performer_id = performer_id
        order.updated_at = self._now()
        return replace(order)

    async def update_order(self, order_id, held_by=None, **fields):
        order = self.orders.get(order_id)
        if order is None or not fields:
            return False
        if held_by is not None and order.performer_id != held_by:
            return False
        for name, value in fields.items():
            setattr(order, name, value)
        order.updated_at = self._now()
        return True

    async def complete_order(self, order_id, performer_id):
        order = self.orders.get(order_id)
        if order is None or order.performer_id != performer_id or order.status != "in_progress":
            return None
        order.status = "completed"
        order.updated_at = self._now()
        return replace(order)

    async def rate_order(self, order_id, customer_id, rating):
        order = self.orders.get(order_id)
        if order is None or order.user_id != customer_id or order.status != "completed" or order.rating is not None:
            return None
        order.rating = rating
        return replace(order)

    # ── Bot settings ──
    async def get_admin_chat_id(self):
        return self.admin_chat_id

    async def set_admin_chat_id(self, value):
        self.admin_chat_id = int(value)
        return True


class BotHarness:
    """Feeds Telegram updates for private chats (chat id == user id) through the real dispatcher."""

    def __init__(self, repo: FakeRepository, dispatcher: Dispatcher, tg_bot: Bot):
        self.repo = repo
        self.tg_bot = tg_bot
        self.engine = ConversationEngine(repo, dispatcher, tg_bot)
        self._update_ids = itertools.count(1)
        self._message_ids = itertools.count(1)
        self._callback_ids = itertools.count(1)

    @staticmethod
    def user(user_id: int) -> dict:
        return {
            "id": user_id,
            "is_bot": False,
            "first_name": "Test",
            "last_name": str(user_id),
            "username": f"user{user_id}",
        }

    def message(self, user_id: int, **fields) -> dict:
        message = {
            "message_id": next(self._message_ids),
            "date": MESSAGE_DATE,
            "chat": {"id": user_id, "type": "private"},
            "from": self.user(user_id),
        }
        message.update(fields)
        return message

    async def feed(self, payload: dict):
        update = Update.model_validate(
            {"update_id": next(self._update_ids), **payload},
            context={"bot": self.tg_bot},
        )
        return await self.engine.handle(update)

    async def text(self, user_id: int, text: str):
        return await self.feed({"message": self.message(user_id, text=text)})

    async def press(self, user_id: int, token: str):
        callback = {
            "id": f"cb{next(self._callback_ids)}",
            "from": self.user(user_id),
            "chat_instance": f"ci{user_id}",
            "data": token,
            "message": self.message(user_id, text="menu"),
        }
        return await self.feed({"callback_query": callback})

    async def photo(self, user_id: int, file_id: str):
        sizes = [{"file_id": file_id, "file_unique_id": file_id, "width": 1280, "height": 960}]
        return await self.feed({"message": self.message(user_id, photo=sizes)})

    def state(self, user_id: int) -> str:
        return self.repo.states[user_id].state

    def data(self, user_id: int) -> dict:
        return self.repo.states[user_id].data

    # ── Inspecting actions ──
    @staticmethod
    def sends(actions, chat_id: int | None = None) -> list[SendText]:
        return [a for a in actions if isinstance(a, SendText) and (chat_id is None or a.chat_id == chat_id)]

    @staticmethod
    def photos(actions) -> list[SendPhoto]:
        return [a for a in actions if isinstance(a, SendPhoto)]

    @staticmethod
    def answers(actions) -> list[AnswerCallback]:
        return [a for a in actions if isinstance(a, AnswerCallback)]

    @staticmethod
    def tokens(send: SendText) -> list[str]:
        if send.keyboard is None:
            return []
        return [button.callback_data for row in send.keyboard.inline_keyboard for button in row]

    def last(self, actions, chat_id: int | None = None) -> SendText:
        return self.sends(actions, chat_id)[-1]


@pytest.fixture(scope="session")
def tg_bot():
    return Bot(BOT_TOKEN)


@pytest.fixture(scope="session")
def dispatcher():
    """Routers attach to one parent only, so the whole run shares a dispatcher."""
    return build_dispatcher(UserStateStorage(FakeRepository()))


@pytest.fixture
def repo(dispatcher, monkeypatch):
    fake = FakeRepository()
    monkeypatch.setattr(dispatcher.storage, "states", fake)
    return fake


@pytest.fixture
def bot(repo, dispatcher, tg_bot):
    return BotHarness(repo, dispatcher, tg_bot)


@pytest.fixture
def make_order(repo):
    """Insert an order straight into the fake store."""

    async def _make(**overrides):
        fields = dict(
            user_id=1,
            username="user1",
            first_name="Test",
            last_name="1",
            address="Москва, ул. Ленина, 1",
            size_option="one_bag",
            bags=["medium"],
            time_option="custom",
            custom_time="Сегодня 18:00–20:00",
            amount=20000,
            status="new",
        )
        fields.update(overrides)
        return await repo.create_order(**fields)

    return _make


@pytest.fixture
def performer(repo):
    """Register a performer profile."""

    def _performer(user_id: int, city: str = "Москва", notification_filter: str = "all", **fields):
        fields.setdefault("eco_points", Decimal("0"))
        repo.profiles[user_id] = ProfileRecord(
            user_id=user_id,
            role="performer",
            city=city,
            notification_filter=notification_filter,
            **fields,
        )
        return repo.profiles[user_id]

    return _performer
