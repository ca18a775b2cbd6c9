"""aiogram Dispatcher wiring: FSM storage, conversation middleware, handler routers."""

from aiogram import Dispatcher
from aiogram.fsm.storage.base import BaseStorage

from musorobot.bot.handlers import common, customer, feedback, navigation, provider, schedule
from musorobot.bot.middlewares import ConversationMiddleware


def build_dispatcher(storage: BaseStorage) -> Dispatcher:
    """
    One Dispatcher with every handler router.

    Routers attach to a single parent, so build this once per process.
    Commands and menu buttons are tried first, the catch-all menu last.
    """
    dp = Dispatcher(storage=storage)
    conversation = ConversationMiddleware()
    dp.message.middleware(conversation)
    dp.callback_query.middleware(conversation)
    dp.include_routers(
        common.router,
        navigation.router,
        customer.router,
        provider.router,
        schedule.router,
        feedback.router,
        common.fallback_router,
    )
    return dp
