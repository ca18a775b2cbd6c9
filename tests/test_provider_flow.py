"""Performer side: claiming, proof photos, handover, completion and schedule."""

from decimal import Decimal

import pytest

from musorobot.bot.states.user_states import Onboarding, ProviderFlow, ScheduleFlow

CUSTOMER = 1
PERFORMER = 10
RIVAL = 11


async def _claimed(bot, make_order, performer):
    performer(PERFORMER)
    order = await make_order()
    await bot.press(PERFORMER, f"provider_take_{order.id}")
    return order


@pytest.mark.asyncio
async def test_new_performer_is_asked_for_city(bot, repo):
    actions = await bot.press(PERFORMER, "role_performer")

    assert bot.state(PERFORMER) == ProviderFlow.awaiting_provider_city
    assert "укажите ваш город" in bot.last(actions).text
    assert repo.profiles[PERFORMER].role == "performer"

    actions = await bot.text(PERFORMER, "Москва")
    assert bot.state(PERFORMER) == "start"
    assert repo.profiles[PERFORMER].city == "Москва"
    assert "provider_new_orders" in bot.tokens(bot.last(actions))


@pytest.mark.asyncio
async def test_performer_with_city_goes_straight_to_menu(bot, performer):
    performer(PERFORMER, city="Казань")

    actions = await bot.press(PERFORMER, "role_performer")

    assert bot.state(PERFORMER) == "start"
    assert bot.tokens(bot.last(actions)) == [
        "provider_new_orders",
        "provider_my_orders",
        "provider_wallet",
        "provider_settings",
    ]


@pytest.mark.asyncio
async def test_short_city_is_rejected(bot):
    await bot.press(PERFORMER, "role_performer")

    actions = await bot.text(PERFORMER, "М")

    assert bot.state(PERFORMER) == ProviderFlow.awaiting_provider_city
    assert "слишком короткое" in bot.last(actions).text


@pytest.mark.asyncio
async def test_new_orders_are_listed_oldest_first(bot, make_order, performer):
    performer(PERFORMER)
    first = await make_order(address="Москва, ул. Ленина, 1")
    second = await make_order(address="Москва, ул. Мира, 2", time_option="within_hour", custom_time=None)
    await make_order(status="in_progress", performer_id=RIVAL)

    actions = await bot.press(PERFORMER, "provider_new_orders")

    send = bot.last(actions)
    assert bot.tokens(send) == [f"provider_take_{first.id}", f"provider_take_{second.id}", "provider_main_menu"]
    assert send.text.index("ул. Ленина") < send.text.index("ул. Мира")
    assert "Срочно" in send.text


@pytest.mark.asyncio
async def test_new_orders_list_escapes_customer_text(bot, make_order, performer):
    performer(PERFORMER)
    await make_order(address="Москва, <i>ул. Ленина</i>", custom_time="после 18 & до 20")

    actions = await bot.press(PERFORMER, "provider_new_orders")

    text = bot.last(actions).text
    assert "&lt;i&gt;ул. Ленина&lt;/i&gt;" in text
    assert "после 18 &amp; до 20" in text
    assert "<i>" not in text


@pytest.mark.asyncio
async def test_empty_new_orders_list(bot, performer):
    performer(PERFORMER)

    actions = await bot.press(PERFORMER, "provider_new_orders")

    assert "Пока нет новых заказов" in bot.last(actions).text


@pytest.mark.asyncio
async def test_second_claim_loses(bot, repo, make_order, performer):
    performer(PERFORMER)
    performer(RIVAL)
    order = await make_order()

    await bot.press(PERFORMER, f"provider_take_{order.id}")
    actions = await bot.press(RIVAL, f"provider_take_{order.id}")

    assert repo.orders[order.id].performer_id == PERFORMER
    assert repo.orders[order.id].status == "in_progress"
    assert bot.state(PERFORMER) == ProviderFlow.provider_working
    assert bot.answers(actions)[0].text == "Заказ уже взят"
    assert "Не удалось взять заказ" in bot.last(actions).text


@pytest.mark.asyncio
async def test_photo_path_to_completion(bot, repo, make_order, performer):
    order = await _claimed(bot, make_order, performer)
    assert bot.state(PERFORMER) == ProviderFlow.provider_working
    assert bot.data(PERFORMER)["current_order_id"] == order.id

    await bot.press(PERFORMER, f"photo_at_door_{order.id}")
    assert bot.state(PERFORMER) == ProviderFlow.awaiting_photo_at_door

    actions = await bot.text(PERFORMER, "вот фото")
    assert bot.state(PERFORMER) == ProviderFlow.awaiting_photo_at_door
    assert "не текст" in bot.last(actions).text

    await bot.photo(PERFORMER, "door-file")
    assert bot.state(PERFORMER) == ProviderFlow.awaiting_photo_at_bin
    assert repo.orders[order.id].photo_door == "door-file"

    actions = await bot.photo(PERFORMER, "bin-file")
    assert bot.state(PERFORMER) == ProviderFlow.provider_ready_to_complete
    assert repo.orders[order.id].photo_bin == "bin-file"
    assert bot.tokens(bot.last(actions))[0] == f"provider_complete_{order.id}"

    await bot.press(PERFORMER, f"provider_complete_{order.id}")
    assert bot.state(PERFORMER) == ProviderFlow.awaiting_completion_confirm

    actions = await bot.press(PERFORMER, f"final_confirm_{order.id}")

    assert repo.orders[order.id].status == "completed"
    assert repo.profiles[PERFORMER].eco_points == Decimal("170.00")
    assert bot.state(PERFORMER) == "start"
    assert bot.data(PERFORMER) == {"flow": "blank"}

    notice = bot.last(actions, CUSTOMER)
    assert bot.tokens(notice) == [f"check_order_{order.id}"]
    summary = bot.last(actions, PERFORMER).text
    assert "+170.00₽" in summary
    assert "30.00₽" in summary
    assert "Новый баланс: 170.00₽" in summary


@pytest.mark.asyncio
async def test_completion_is_paid_once(bot, repo, make_order, performer):
    order = await _claimed(bot, make_order, performer)

    await bot.press(PERFORMER, f"final_confirm_{order.id}")
    actions = await bot.press(PERFORMER, f"final_confirm_{order.id}")

    assert repo.profiles[PERFORMER].eco_points == Decimal("170.00")
    assert "Не удалось завершить заказ" in bot.last(actions).text
    assert bot.sends(actions, CUSTOMER) == []


@pytest.mark.asyncio
async def test_foreign_performer_cannot_touch_order(bot, repo, make_order, performer):
    order = await _claimed(bot, make_order, performer)
    performer(RIVAL)

    actions = await bot.press(RIVAL, f"provider_request_photos_{order.id}")
    assert "уже не в работе у вас" in bot.last(actions).text
    assert bot.state(RIVAL) == "start"

    await bot.press(RIVAL, f"final_confirm_{order.id}")
    assert repo.orders[order.id].status == "in_progress"
    assert repo.profiles[RIVAL].eco_points == Decimal("0")


@pytest.mark.asyncio
async def test_photo_for_reassigned_order_is_not_saved(bot, repo, make_order, performer):
    order = await _claimed(bot, make_order, performer)
    await bot.press(PERFORMER, f"photo_at_door_{order.id}")
    repo.orders[order.id].performer_id = RIVAL

    actions = await bot.photo(PERFORMER, "door-file")

    assert repo.orders[order.id].photo_door is None
    assert bot.state(PERFORMER) == ProviderFlow.awaiting_photo_at_door
    assert "Не удалось сохранить фото" in bot.last(actions).text


@pytest.mark.asyncio
async def test_handover_confirmation_moves_performer_only(bot, repo, make_order, performer):
    order = await _claimed(bot, make_order, performer)
    await bot.text(CUSTOMER, "/start")

    actions = await bot.press(PERFORMER, f"handed_over_{order.id}")
    assert bot.state(PERFORMER) == ProviderFlow.awaiting_handover_confirmation
    request = bot.last(actions, CUSTOMER)
    assert bot.tokens(request) == [f"confirm_handover_{order.id}", f"deny_handover_{order.id}"]

    actions = await bot.press(CUSTOMER, f"confirm_handover_{order.id}")

    assert bot.state(PERFORMER) == ProviderFlow.awaiting_photo_at_bin
    assert bot.data(PERFORMER)["current_order_id"] == order.id
    assert bot.state(CUSTOMER) == Onboarding.awaiting_role
    assert "Спасибо за подтверждение" in bot.last(actions, CUSTOMER).text
    assert "подтвердил получение" in bot.last(actions, PERFORMER).text

    await bot.photo(PERFORMER, "bin-file")
    assert bot.state(PERFORMER) == ProviderFlow.provider_ready_to_complete


@pytest.mark.asyncio
async def test_handover_denied_returns_performer_to_work(bot, make_order, performer):
    order = await _claimed(bot, make_order, performer)
    await bot.press(PERFORMER, f"handed_over_{order.id}")

    actions = await bot.press(CUSTOMER, f"deny_handover_{order.id}")

    assert bot.state(PERFORMER) == ProviderFlow.provider_working
    assert bot.tokens(bot.last(actions, PERFORMER))[0] == f"photo_at_door_{order.id}"
    assert "Исполнитель уведомлён" in bot.last(actions, CUSTOMER).text


@pytest.mark.asyncio
async def test_stranger_cannot_confirm_handover(bot, make_order, performer):
    order = await _claimed(bot, make_order, performer)
    await bot.press(PERFORMER, f"handed_over_{order.id}")

    actions = await bot.press(42, f"confirm_handover_{order.id}")

    assert bot.state(PERFORMER) == ProviderFlow.awaiting_handover_confirmation
    assert bot.sends(actions, PERFORMER) == []
    assert "Заказ не найден" in bot.last(actions, 42).text


@pytest.mark.asyncio
async def test_current_and_completed_lists(bot, make_order, performer):
    performer(PERFORMER)
    active = await make_order(status="in_progress", performer_id=PERFORMER, address="Москва, ул. Мира, 2")
    done = await make_order(
        status="completed",
        performer_id=PERFORMER,
        photo_door="d",
        photo_bin="b",
        address="Москва, ул. Тверская, 3",
    )

    actions = await bot.press(PERFORMER, "provider_current_orders")
    send = bot.last(actions)
    assert "ул. Мира" in send.text
    assert f"provider_request_photos_{active.id}" in bot.tokens(send)

    actions = await bot.press(PERFORMER, "provider_completed_orders")
    send = bot.last(actions)
    assert "ул. Тверская" in send.text
    assert "170.00₽" in send.text
    assert "Фото: доступны" in send.text
    assert done.id not in " ".join(bot.tokens(send))


@pytest.mark.asyncio
async def test_wallet_shows_balance(bot, performer):
    performer(PERFORMER, eco_points=Decimal("80.50"))

    actions = await bot.press(PERFORMER, "provider_wallet")

    assert "Баланс: 80.50₽" in bot.last(actions).text
    assert "provider_withdraw" in bot.tokens(bot.last(actions))


@pytest.mark.asyncio
async def test_change_city(bot, repo, performer):
    performer(PERFORMER, city="Москва")

    await bot.press(PERFORMER, "provider_change_city")
    await bot.text(PERFORMER, "Казань")

    assert repo.profiles[PERFORMER].city == "Казань"
    assert bot.state(PERFORMER) == "start"


# ── Schedule ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_custom_schedule_with_manual_hours(bot, repo, performer):
    performer(PERFORMER)

    await bot.press(PERFORMER, "provider_schedule")
    assert bot.state(PERFORMER) == ScheduleFlow.provider_schedule
    await bot.press(PERFORMER, "schedule_custom")
    await bot.press(PERFORMER, "days_weekdays")
    await bot.press(PERFORMER, "time_custom_input")
    assert bot.state(PERFORMER) == ScheduleFlow.awaiting_custom_time_start
    await bot.text(PERFORMER, "08:00")
    assert bot.state(PERFORMER) == ScheduleFlow.awaiting_custom_time_end

    actions = await bot.text(PERFORMER, "17:00")
    assert "пн–пт, с 08:00 до 17:00" in bot.last(actions).text

    actions = await bot.press(PERFORMER, "filter_urgent")

    profile = repo.profiles[PERFORMER]
    assert profile.schedule_days == "weekdays"
    assert profile.schedule_time == "08:00-17:00"
    assert profile.notification_filter == "urgent"
    assert bot.state(PERFORMER) == "start"
    assert "только срочные заказы" in bot.last(actions).text


@pytest.mark.asyncio
async def test_always_on_schedule_with_notifications_off(bot, repo, performer):
    performer(PERFORMER, schedule_days="weekend", schedule_time="10:00-20:00")

    await bot.press(PERFORMER, "provider_schedule")
    await bot.press(PERFORMER, "schedule_always")
    actions = await bot.press(PERFORMER, "filter_none")

    profile = repo.profiles[PERFORMER]
    assert profile.schedule_days == "always"
    assert profile.schedule_time is None
    assert profile.notification_filter == "none"
    assert "всегда на связи, круглосуточно" in bot.last(actions).text


@pytest.mark.asyncio
async def test_manual_days_with_preset_hours(bot, repo, performer):
    performer(PERFORMER)

    await bot.press(PERFORMER, "provider_schedule")
    await bot.press(PERFORMER, "schedule_custom")
    await bot.press(PERFORMER, "days_manual")
    assert bot.state(PERFORMER) == ScheduleFlow.awaiting_manual_days
    await bot.text(PERFORMER, "пн, ср, пт")
    await bot.press(PERFORMER, "time_9_18")
    await bot.press(PERFORMER, "filter_large")

    profile = repo.profiles[PERFORMER]
    assert profile.schedule_days == "пн, ср, пт"
    assert profile.schedule_time == "09:00-18:00"
    assert profile.notification_filter == "large"


@pytest.mark.asyncio
async def test_stale_filter_button_keeps_saved_schedule(bot, repo, performer):
    performer(PERFORMER, schedule_days="weekdays", schedule_time="09:00-18:00")

    await bot.press(PERFORMER, "provider_main_menu")
    actions = await bot.press(PERFORMER, "filter_urgent")

    profile = repo.profiles[PERFORMER]
    assert profile.schedule_days == "weekdays"
    assert profile.schedule_time == "09:00-18:00"
    assert profile.notification_filter == "urgent"
    assert "пн–пт, 09:00-18:00" in bot.last(actions).text


@pytest.mark.asyncio
async def test_manual_schedule_text_is_escaped(bot, repo, performer):
    performer(PERFORMER)

    await bot.press(PERFORMER, "provider_schedule")
    await bot.press(PERFORMER, "schedule_custom")
    await bot.press(PERFORMER, "days_manual")
    await bot.text(PERFORMER, "<b>пн</b>")
    actions = await bot.press(PERFORMER, "time_9_18")

    assert "&lt;b&gt;пн&lt;/b&gt;" in bot.last(actions).text
    assert repo.profiles[PERFORMER].schedule_days is None
