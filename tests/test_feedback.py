"""Customer feedback after completion: proof photos, rating and support."""

from decimal import Decimal

import pytest

from musorobot.bot.states.user_states import SupportFlow

CUSTOMER = 1
PERFORMER = 10


@pytest.fixture
def completed_order(make_order, performer):
    async def _completed(**overrides):
        performer(PERFORMER)
        fields = dict(status="completed", performer_id=PERFORMER, photo_door="door-file", photo_bin="bin-file")
        fields.update(overrides)
        return await make_order(**fields)

    return _completed


@pytest.mark.asyncio
async def test_check_order_sends_photos_and_rating_keyboard(bot, completed_order):
    order = await completed_order()

    actions = await bot.press(CUSTOMER, f"check_order_{order.id}")

    photos = bot.photos(actions)
    assert [p.photo for p in photos] == ["door-file", "bin-file"]
    assert all(p.chat_id == CUSTOMER for p in photos)
    assert "Фото у двери: есть" in bot.sends(actions)[0].text
    assert bot.tokens(bot.last(actions)) == [f"rate_{order.id}_{value}" for value in range(1, 6)]


@pytest.mark.asyncio
async def test_check_order_without_photos(bot, completed_order):
    order = await completed_order(photo_door=None, photo_bin=None)

    actions = await bot.press(CUSTOMER, f"check_order_{order.id}")

    assert bot.photos(actions) == []
    assert "не загрузил фото" in bot.last(actions).text


@pytest.mark.asyncio
async def test_check_order_with_one_photo(bot, completed_order):
    order = await completed_order(photo_bin=None)

    actions = await bot.press(CUSTOMER, f"check_order_{order.id}")

    assert [p.photo for p in bot.photos(actions)] == ["door-file"]
    assert "Фото у мусорки: нет" in bot.sends(actions)[0].text


@pytest.mark.asyncio
async def test_other_user_cannot_check_order(bot, completed_order):
    order = await completed_order()

    actions = await bot.press(42, f"check_order_{order.id}")

    assert bot.photos(actions) == []
    assert "Заказ не найден" in bot.last(actions).text


@pytest.mark.asyncio
async def test_rating_is_stored_once(bot, repo, completed_order):
    order = await completed_order()

    actions = await bot.press(CUSTOMER, f"rate_{order.id}_4")

    assert repo.orders[order.id].rating == 4
    assert repo.profiles[PERFORMER].average_rating == Decimal("4.00")
    assert repo.profiles[PERFORMER].rating_count == 1
    assert bot.tokens(bot.last(actions)) == [f"support_{order.id}"]

    actions = await bot.press(CUSTOMER, f"rate_{order.id}_1")

    assert repo.orders[order.id].rating == 4
    assert repo.profiles[PERFORMER].rating_count == 1
    assert "Вы уже оценили этот заказ: 4/5" in bot.last(actions).text


@pytest.mark.asyncio
async def test_rated_order_check_shows_existing_rating(bot, completed_order):
    order = await completed_order(rating=5)

    actions = await bot.press(CUSTOMER, f"check_order_{order.id}")

    assert "уже оценили" in bot.last(actions).text
    assert bot.tokens(bot.last(actions)) == [f"support_{order.id}"]


@pytest.mark.asyncio
async def test_unfinished_order_cannot_be_rated(bot, repo, make_order):
    order = await make_order(status="in_progress", performer_id=PERFORMER)

    actions = await bot.press(CUSTOMER, f"rate_{order.id}_5")

    assert repo.orders[order.id].rating is None
    assert "только выполненный заказ" in bot.last(actions).text


@pytest.mark.asyncio
async def test_malformed_rating_token(bot, completed_order):
    order = await completed_order()

    actions = await bot.press(CUSTOMER, f"rate_{order.id}_9")

    assert "Заказ не найден" in bot.last(actions).text


@pytest.mark.asyncio
async def test_support_message_is_relayed_to_admin(bot, repo, completed_order):
    repo.admin_chat_id = -100500
    order = await completed_order(rating=2)

    await bot.press(CUSTOMER, f"support_{order.id}")
    assert bot.state(CUSTOMER) == SupportFlow.awaiting_support_message

    actions = await bot.text(CUSTOMER, "Пакет остался у двери")

    relay = bot.last(actions, -100500).text
    assert "ОБРАЩЕНИЕ В ПОДДЕРЖКУ" in relay
    assert order.id[-8:] in relay
    assert "@user1" in relay
    assert "2/5" in relay
    assert "Пакет остался у двери" in relay
    assert bot.state(CUSTOMER) == "start"
    assert "отправлено в поддержку" in bot.last(actions, CUSTOMER).text


@pytest.mark.asyncio
async def test_support_relay_escapes_customer_text(bot, repo, completed_order):
    repo.admin_chat_id = -100500
    order = await completed_order(address="Москва, ул. <Ленина> 1")

    await bot.press(CUSTOMER, f"support_{order.id}")
    actions = await bot.text(CUSTOMER, "Пакет < 5 кг & <b>порван</b>")

    relay = bot.last(actions, -100500).text
    assert "ул. &lt;Ленина&gt; 1" in relay
    assert "Пакет &lt; 5 кг &amp; &lt;b&gt;порван&lt;/b&gt;" in relay
    assert relay.count("<b>") == 1


@pytest.mark.asyncio
async def test_support_message_without_admin_still_acknowledged(bot, completed_order):
    order = await completed_order()
    await bot.press(CUSTOMER, f"support_{order.id}")

    actions = await bot.text(CUSTOMER, "Вопрос")

    assert [s.chat_id for s in bot.sends(actions)] == [CUSTOMER]
    assert bot.state(CUSTOMER) == "start"


@pytest.mark.asyncio
async def test_support_for_unknown_order(bot):
    await bot.press(CUSTOMER, "support_missing")

    actions = await bot.text(CUSTOMER, "Вопрос")

    assert "Заказ не найден" in bot.last(actions).text
    assert bot.state(CUSTOMER) == "start"
