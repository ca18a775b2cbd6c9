"""
Bot Notification Service — sends Telegram Bot API calls from the backend.

All outbound Telegram traffic is routed through this module.
Failures are logged but NEVER raise exceptions — fire-and-forget, no retries.
"""

import logging
from typing import Any

import httpx
from aiogram.types import InlineKeyboardMarkup

from musorobot.api.config import settings
from musorobot.bot.flow import Action, AnswerCallback, SendPhoto, SendText

logger = logging.getLogger(__name__)

TIMEOUT = 10.0


def _api_url(method: str) -> str:
    return f"{settings.TELEGRAM_API_URL}/bot{settings.TELEGRAM_BOT_TOKEN}/{method}"


async def _call(method: str, payload: dict[str, Any], client: httpx.AsyncClient | None = None) -> bool:
    """POST one Bot API method. True on HTTP 200."""
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN not configured — cannot call %s", method)
        return False

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=TIMEOUT) as own_client:
                resp = await own_client.post(_api_url(method), json=payload)
        else:
            resp = await client.post(_api_url(method), json=payload)
    except httpx.HTTPError as e:
        logger.error("Telegram %s error: chat_id=%s, error=%s", method, payload.get("chat_id"), str(e))
        return False

    if resp.status_code == 200:
        logger.info("Telegram %s ok: chat_id=%s", method, payload.get("chat_id"))
        return True
    logger.warning(
        "Telegram %s failed: chat_id=%s, status=%s, body=%s",
        method,
        payload.get("chat_id"),
        resp.status_code,
        resp.text[:200],
    )
    return False


async def send_message(
    chat_id: int,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str = "HTML",
    client: httpx.AsyncClient | None = None,
) -> bool:
    """
    Send a text message.

    Args:
        chat_id: Recipient chat (user id for private chats).
        text: Message text (HTML formatting supported).
        reply_markup: Optional inline keyboard.
        parse_mode: Telegram parse mode (default: HTML).

    Returns:
        True if the message was sent, False otherwise.
    """
    payload: dict[str, Any] = {"chat_id": chat_id, "text": text, "parse_mode": parse_mode}
    if reply_markup is not None:
        payload["reply_markup"] = reply_markup.model_dump(exclude_none=True)
    return await _call("sendMessage", payload, client)


async def send_photo(
    chat_id: int,
    photo: str,
    caption: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> bool:
    payload: dict[str, Any] = {"chat_id": chat_id, "photo": photo}
    if caption:
        payload["caption"] = caption
    return await _call("sendPhoto", payload, client)


async def answer_callback_query(
    callback_query_id: str,
    text: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> bool:
    payload: dict[str, Any] = {"callback_query_id": callback_query_id}
    if text:
        payload["text"] = text
    return await _call("answerCallbackQuery", payload, client)


async def deliver(actions: list[Action], client: httpx.AsyncClient | None = None) -> int:
    """Send engine actions in order over one connection. Returns how many succeeded."""
    if not actions:
        return 0
    if client is None:
        async with httpx.AsyncClient(timeout=TIMEOUT) as own_client:
            return await deliver(actions, own_client)

    sent = 0
    for action in actions:
        if isinstance(action, SendText):
            ok = await send_message(action.chat_id, action.text, action.keyboard, client=client)
        elif isinstance(action, SendPhoto):
            ok = await send_photo(action.chat_id, action.photo, action.caption, client=client)
        elif isinstance(action, AnswerCallback):
            ok = await answer_callback_query(action.callback_id, action.text, client=client)
        else:
            logger.warning("Unsupported outbound action: %r", action)
            ok = False
        sent += ok
    return sent
