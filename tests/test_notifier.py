"""Bot API calls made by the notifier, against a mocked transport."""

import json

import httpx
import pytest

from musorobot.api.config import settings
from musorobot.api.services import bot_notifier
from musorobot.bot.flow import AnswerCallback, Deliver, HandoverConfirmed, SendPhoto, SendText
from musorobot.bot.keyboards.user_kb import check_order_keyboard


@pytest.fixture
def token(monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setattr(settings, "TELEGRAM_API_URL", "https://tg.test")


def _client(calls, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.url.path, json.loads(request.content)))
        return httpx.Response(status, json={"ok": status == 200})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_deliver_sends_actions_in_order(token):
    calls = []
    actions = [
        AnswerCallback("cb-1", "Заказ уже взят"),
        SendText(7, "<b>Привет</b>", check_order_keyboard("o-1")),
        SendPhoto(7, "file-1", "📷 у двери"),
    ]

    async with _client(calls) as client:
        sent = await bot_notifier.deliver(actions, client)

    assert sent == 3
    assert [path for path, _ in calls] == [
        "/bot123:abc/answerCallbackQuery",
        "/bot123:abc/sendMessage",
        "/bot123:abc/sendPhoto",
    ]
    assert calls[0][1] == {"callback_query_id": "cb-1", "text": "Заказ уже взят"}
    message = calls[1][1]
    assert message["parse_mode"] == "HTML"
    assert message["reply_markup"]["inline_keyboard"][0][0]["callback_data"] == "check_order_o-1"
    assert calls[2][1] == {"chat_id": 7, "photo": "file-1", "caption": "📷 у двери"}


@pytest.mark.asyncio
async def test_silent_callback_answer_has_no_text(token):
    calls = []
    async with _client(calls) as client:
        await bot_notifier.answer_callback_query("cb-2", client=client)

    assert calls[0][1] == {"callback_query_id": "cb-2"}


@pytest.mark.asyncio
async def test_failed_calls_are_counted_not_raised(token):
    calls = []
    async with _client(calls, status=403) as client:
        sent = await bot_notifier.deliver([SendText(7, "a"), SendText(8, "b")], client)

    assert sent == 0
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_transport_error_is_logged(token):
    def handler(request):
        raise httpx.ConnectError("no route")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await bot_notifier.send_message(7, "a", client=client) is False


@pytest.mark.asyncio
async def test_missing_token_skips_network(monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "")
    calls = []
    async with _client(calls) as client:
        assert await bot_notifier.send_message(7, "a", client=client) is False
    assert calls == []


@pytest.mark.asyncio
async def test_unsupported_action_is_skipped(token):
    calls = []
    async with _client(calls) as client:
        sent = await bot_notifier.deliver([Deliver(1, HandoverConfirmed("x")), SendText(7, "a")], client)

    assert sent == 1
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_nothing_to_deliver():
    assert await bot_notifier.deliver([]) == 0
