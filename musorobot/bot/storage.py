"""
aiogram FSM storage over the ``user_states`` table.

One row per Telegram user: the FSM state label and the JSON accumulator.
Keys are reduced to ``StorageKey.user_id``; every chat the bot serves is a
private chat.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from aiogram.fsm.state import State
from aiogram.fsm.storage.base import BaseStorage, StateType, StorageKey

from musorobot.bot.repository import StateRecord

START = "start"


class StateBackend(Protocol):
    async def get_state(self, user_id: int) -> StateRecord: ...

    async def set_state(self, user_id: int, state: str, data: dict | None = None) -> None: ...


def state_label(state: StateType) -> str:
    """Label stored for an aiogram state; no state is stored as ``start``."""
    if isinstance(state, State):
        state = state.state
    return state or START


class UserStateStorage(BaseStorage):
    def __init__(self, states: StateBackend):
        self.states = states

    async def set_state(self, key: StorageKey, state: StateType = None) -> None:
        await self.states.set_state(key.user_id, state_label(state))

    async def get_state(self, key: StorageKey) -> str | None:
        record = await self.states.get_state(key.user_id)
        return None if record.state == START else record.state

    async def set_data(self, key: StorageKey, data: Mapping[str, Any]) -> None:
        record = await self.states.get_state(key.user_id)
        await self.states.set_state(key.user_id, record.state, dict(data))

    async def get_data(self, key: StorageKey) -> dict[str, Any]:
        record = await self.states.get_state(key.user_id)
        return dict(record.data or {})

    async def save(self, key: StorageKey, state: StateType, data: Mapping[str, Any]) -> None:
        """State and data in one upsert."""
        await self.states.set_state(key.user_id, state_label(state), dict(data))

    async def close(self) -> None:
        pass
