"""
Building blocks shared by the conversation handlers.

  Event       who is acting and in which chat, with the text or photo sent
  Transition  what a handler decided: next state, accumulator, outbound actions
  Context     what a handler sees: the event, stored state, parsed accumulator
              and the storage port
"""

from dataclasses import dataclass, field
from typing import TypeVar, Union

from aiogram.fsm.state import State
from aiogram.types import InlineKeyboardMarkup
from pydantic import BaseModel

from musorobot.bot.repository import Repository


# ── Inbound ───────────────────────────────────────────────

@dataclass(frozen=True)
class Sender:
    id: int
    username: str | None = None
    first_name: str = ""
    last_name: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}" if self.last_name else self.first_name


class Signal:
    """Base for messages one user's transition sends to another user's machine."""


@dataclass(frozen=True)
class HandoverConfirmed(Signal):
    order_id: str


@dataclass(frozen=True)
class HandoverDenied(Signal):
    order_id: str


@dataclass(frozen=True)
class Event:
    sender: Sender
    chat_id: int
    text: str | None = None
    photo: str | None = None


# ── Outbound ──────────────────────────────────────────────

@dataclass(frozen=True)
class SendText:
    chat_id: int
    text: str
    keyboard: InlineKeyboardMarkup | None = None


@dataclass(frozen=True)
class SendPhoto:
    chat_id: int
    photo: str
    caption: str | None = None


@dataclass(frozen=True)
class AnswerCallback:
    callback_id: str
    text: str | None = None


@dataclass(frozen=True)
class Deliver:
    user_id: int
    signal: Signal


Action = Union[SendText, SendPhoto, AnswerCallback, Deliver]


@dataclass
class Transition:
    """
    Result of one handler.

    ``state=None`` leaves the stored state untouched; ``default_state`` goes
    back to start. ``accumulator=None`` with a state keeps the stored data;
    otherwise the data is replaced.
    """

    state: State | None = None
    accumulator: BaseModel | None = None
    actions: list[Action] = field(default_factory=list)
    toast: str | None = None


# ── Handler context ───────────────────────────────────────

M = TypeVar("M", bound=BaseModel)


@dataclass
class Context:
    event: Event
    state: str | None
    accumulator: BaseModel
    repo: Repository

    @property
    def user_id(self) -> int:
        return self.event.sender.id

    @property
    def chat_id(self) -> int:
        return self.event.chat_id

    @property
    def text(self) -> str:
        return (self.event.text or "").strip()

    def flow(self, model: type[M]) -> M:
        """Stored accumulator if it belongs to ``model``'s flow, else a fresh one."""
        if isinstance(self.accumulator, model):
            return self.accumulator.model_copy(deep=True)
        return model()

    def reply(self, text: str, keyboard: InlineKeyboardMarkup | None = None) -> SendText:
        return SendText(chat_id=self.chat_id, text=text, keyboard=keyboard)
