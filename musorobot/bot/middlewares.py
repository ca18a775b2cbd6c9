"""
Conversation middleware.

Runs around every matched message and callback handler: builds the handler's
``Context`` from the FSM storage and persists the ``Transition`` it returns.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiogram import BaseMiddleware
from aiogram.dispatcher.event.bases import SkipHandler
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message, TelegramObject, User

from musorobot.bot.flow import Context, Event, Sender, Transition
from musorobot.bot.repository import Repository
from musorobot.bot.states.accumulators import dump_accumulator, load_accumulator
from musorobot.bot.storage import UserStateStorage

logger = logging.getLogger(__name__)


def sender_from(user: User) -> Sender:
    return Sender(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def event_from(event: TelegramObject) -> Event | None:
    """Engine view of a message or button press; None when there is no sender."""
    if isinstance(event, CallbackQuery):
        chat_id = event.message.chat.id if event.message else event.from_user.id
        return Event(sender=sender_from(event.from_user), chat_id=chat_id)

    if isinstance(event, Message) and event.from_user is not None:
        # Largest size is last
        photo = event.photo[-1].file_id if event.photo else None
        return Event(
            sender=sender_from(event.from_user),
            chat_id=event.chat.id,
            text=event.text,
            photo=photo,
        )
    return None


async def load_context(state: FSMContext, repo: Repository, event: Event) -> Context:
    return Context(
        event=event,
        state=await state.get_state(),
        accumulator=load_accumulator(await state.get_data()),
        repo=repo,
    )


async def save_transition(state: FSMContext, ctx: Context, transition: Transition) -> None:
    if transition.state is None:
        return
    if transition.accumulator is None:
        await state.set_state(transition.state)
    else:
        storage: UserStateStorage = state.storage
        await storage.save(state.key, transition.state, dump_accumulator(transition.accumulator))

    if transition.state.state != ctx.state:
        logger.debug("Transition: user_id=%s, %s -> %s", ctx.user_id, ctx.state, transition.state.state)


class ConversationMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        state: FSMContext | None = data.get("state")
        inbound = event_from(event)
        if state is None or inbound is None:
            logger.debug("Skipping update without a user: %s", type(event).__name__)
            raise SkipHandler()

        ctx = await load_context(state, data["repo"], inbound)
        data["ctx"] = ctx
        result = await handler(event, data)
        if isinstance(result, Transition):
            await save_transition(state, ctx, result)
        return result
