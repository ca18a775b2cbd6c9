"""
Conversation engine.

  transport → ConversationEngine.handle(update)
            → Dispatcher.feed_update: routers pick a handler, the conversation
              middleware loads and persists the sender's FSM state
            → run Deliver actions on the target user's own machine
            → return the sends for the transport to deliver
"""

import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.types import Update

from musorobot.bot.flow import Action, AnswerCallback, Deliver, Event, Sender, Transition
from musorobot.bot.handlers.provider import SIGNAL_HANDLERS
from musorobot.bot.middlewares import load_context, save_transition
from musorobot.bot.repository import Repository

logger = logging.getLogger(__name__)


class ConversationEngine:
    def __init__(self, repo: Repository, dispatcher: Dispatcher, bot: Bot):
        self.repo = repo
        self.dispatcher = dispatcher
        self.bot = bot

    async def handle(self, update: Update) -> list[Action]:
        """Process one Update and return the outbound actions in send order."""
        result = await self.dispatcher.feed_update(self.bot, update, repo=self.repo)
        if isinstance(result, Transition):
            transition = result
        else:
            logger.info("No handler: update_id=%s", update.update_id)
            transition = Transition()

        outbound: list[Action] = []
        if update.callback_query is not None:
            outbound.append(AnswerCallback(update.callback_query.id, transition.toast))
        for action in transition.actions:
            if isinstance(action, Deliver):
                outbound.extend(await self._deliver(action))
            else:
                outbound.append(action)
        return outbound

    async def _deliver(self, action: Deliver) -> list[Action]:
        """Run the target user's handler for a signal; only that handler writes the target's state."""
        handler = SIGNAL_HANDLERS.get(type(action.signal))
        if handler is None:
            logger.warning("No handler for signal %s", type(action.signal).__name__)
            return []

        key = StorageKey(bot_id=self.bot.id, chat_id=action.user_id, user_id=action.user_id)
        state = FSMContext(storage=self.dispatcher.storage, key=key)
        event = Event(sender=Sender(id=action.user_id), chat_id=action.user_id)
        ctx = await load_context(state, self.repo, event)
        transition = await handler(action.signal, ctx)
        await save_transition(state, ctx, transition)

        sends = []
        for nested in transition.actions:
            if isinstance(nested, Deliver):
                logger.warning("Dropping nested delivery to user_id=%s", nested.user_id)
                continue
            sends.append(nested)
        return sends
