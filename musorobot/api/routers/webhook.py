"""
Telegram webhook — one Update per call.

Parses the Update with aiogram types, feeds it to the dispatcher through the
conversation engine and sends the resulting actions back through the Bot API.
"""

import logging
from collections.abc import Awaitable, Callable
from functools import lru_cache

from aiogram import Bot, Dispatcher
from aiogram.types import Update
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from musorobot.api.config import settings
from musorobot.api.db.database import SessionLocal, get_db
from musorobot.api.services import bot_notifier
from musorobot.api.services.repository import SqlRepository
from musorobot.api.services.state_store import SessionStateStore
from musorobot.bot.dispatcher import build_dispatcher
from musorobot.bot.engine import ConversationEngine
from musorobot.bot.flow import Action
from musorobot.bot.repository import Repository
from musorobot.bot.storage import UserStateStorage

logger = logging.getLogger(__name__)

router = APIRouter()

DeliverFn = Callable[[list[Action]], Awaitable[int]]


async def get_repository(db: AsyncSession = Depends(get_db)) -> Repository:
    return SqlRepository(db)


def get_deliver() -> DeliverFn:
    return bot_notifier.deliver


@lru_cache(maxsize=1)
def get_bot() -> Bot:
    # Sends go through bot_notifier; the Bot only carries the token identity
    return Bot(settings.TELEGRAM_BOT_TOKEN)


@lru_cache(maxsize=1)
def get_dispatcher() -> Dispatcher:
    return build_dispatcher(UserStateStorage(SessionStateStore(SessionLocal)))


@router.api_route("/telegram", methods=["GET", "OPTIONS"], response_class=PlainTextResponse)
async def telegram_health_check():
    return "ok"


@router.post("/telegram", response_class=PlainTextResponse)
async def telegram_webhook(
    request: Request,
    repo: Repository = Depends(get_repository),
    deliver: DeliverFn = Depends(get_deliver),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    bot: Bot = Depends(get_bot),
):
    try:
        update = Update.model_validate(await request.json(), context={"bot": bot})
        actions = await ConversationEngine(repo, dispatcher, bot).handle(update)
        await deliver(actions)
    except Exception:
        logger.exception("Error processing Telegram update")
        return PlainTextResponse("Error", status_code=500)
    return PlainTextResponse("OK")
