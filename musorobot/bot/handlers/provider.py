"""
Performer work flow.

Claim an order, prove the pickup with two photos (door, bin) or a customer
confirmed handover, then confirm completion and get paid.
"""

import logging

from aiogram import F, Router
from aiogram.filters import StateFilter
from aiogram.fsm.state import default_state
from aiogram.types import CallbackQuery, Message
from aiogram.utils.text_decorations import html_decoration as hd

from musorobot.bot.flow import (
    Context,
    HandoverConfirmed,
    HandoverDenied,
    SendText,
    Transition,
)
from musorobot.bot.keyboards.provider_kb import (
    back_to_my_orders_keyboard,
    change_city_keyboard,
    claimed_order_keyboard,
    completion_confirm_keyboard,
    current_orders_keyboard,
    handover_denied_keyboard,
    my_orders_keyboard,
    new_orders_keyboard,
    provider_main_menu_keyboard,
    ready_to_complete_keyboard,
    settings_keyboard,
    wallet_keyboard,
)
from musorobot.bot.keyboards.user_kb import check_order_keyboard, handover_confirm_keyboard
from musorobot.bot.repository import OrderRecord
from musorobot.bot.services.payouts import calculate_payout
from musorobot.bot.states.accumulators import Blank, ProviderTask
from musorobot.bot.states.user_states import PHOTO_STATES, ProviderFlow

logger = logging.getLogger(__name__)

router = Router(name="provider")

WELCOME = "🦸‍♂️ Добро пожаловать, герой чистоты!"
ORDER_UNAVAILABLE = "⚠️ Заказ не найден или уже не в работе у вас."


def main_menu(ctx: Context, text: str = "🦸‍♂️ Главное меню исполнителя\n\nВыбери действие:") -> Transition:
    return Transition(default_state, Blank(), [ctx.reply(text, provider_main_menu_keyboard())])


def _date(order: OrderRecord, attr: str) -> str:
    value = getattr(order, attr)
    return value.strftime("%d.%m.%Y") if value else "—"


async def _own_active_order(ctx: Context, order_id: str) -> OrderRecord | None:
    """The order if the caller is its performer and it is still in progress."""
    order = await ctx.repo.get_order(order_id)
    if order is None or order.performer_id != ctx.user_id or order.status != "in_progress":
        return None
    return order


# ── Role and city ─────────────────────────────────────────

@router.callback_query(F.data == "role_performer")
async def choose_performer(callback: CallbackQuery, ctx: Context) -> Transition:
    profile = await ctx.repo.get_profile(ctx.user_id)
    await ctx.repo.upsert_profile(ctx.user_id, role="performer")
    if profile is None or not profile.city:
        text = (
            f"{WELCOME}\n\n🌆 Для начала работы укажите ваш город:\n\n"
            "(Город можно будет изменить позже в настройках)"
        )
        return Transition(ProviderFlow.awaiting_provider_city, Blank(), [ctx.reply(text)])
    return main_menu(ctx, f"{WELCOME}\n\nГотов к новым подвигам по выносу мусора? 🚀\n\nВыбери действие:")


@router.message(ProviderFlow.awaiting_provider_city, F.text)
async def receive_city(message: Message, ctx: Context) -> Transition:
    city = ctx.text
    if len(city) < 2:
        return Transition(actions=[ctx.reply("❌ Название города слишком короткое. Попробуйте ещё раз.")])
    await ctx.repo.upsert_profile(ctx.user_id, city=city, role="performer")
    text = (
        f'✅ Отлично! Город "{hd.quote(city)}" сохранён.\n\n📍 Изменить город можно в настройках.\n\n'
        "🔔 Теперь вы будете получать уведомления о новых заказах в вашем городе "
        "согласно вашего графика работы."
    )
    return main_menu(ctx, text)


@router.callback_query(F.data == "provider_main_menu")
async def provider_main_menu(callback: CallbackQuery, ctx: Context) -> Transition:
    return main_menu(ctx)


# ── Browsing and claiming ─────────────────────────────────

@router.callback_query(F.data == "provider_new_orders")
async def new_orders(callback: CallbackQuery, ctx: Context) -> Transition:
    orders = await ctx.repo.list_orders("new", limit=10)
    if not orders:
        text = "📭 Пока нет новых заказов.\n\nКак только появятся свежие задачки, я сразу тебе сообщу!"
        return Transition(actions=[ctx.reply(text, provider_main_menu_keyboard())])

    lines = ["📦 Вот свежие задачки рядом с тобой:\n"]
    for i, order in enumerate(orders, 1):
        bags = ", ".join(order.bags) if order.bags else f"{order.amount_major:g}₽"
        when = "Срочно" if order.is_urgent else hd.quote(order.custom_time or "По согласованию")
        lines.append(f"{i}. 🏠 {hd.quote(order.address)}\n   📦 {bags}\n   ⏰ {when}\n")
    keyboard = new_orders_keyboard([order.id for order in orders])
    return Transition(actions=[ctx.reply("\n".join(lines), keyboard)])


@router.callback_query(F.data.startswith("provider_take_"))
async def take_order(callback: CallbackQuery, ctx: Context) -> Transition:
    order_id = callback.data.removeprefix("provider_take_")
    order = await ctx.repo.claim_order(order_id, ctx.user_id)
    if order is None:
        logger.info("Claim lost: order_id=%s, performer_id=%s", order_id, ctx.user_id)
        transition = main_menu(ctx, "❌ Не удалось взять заказ. Возможно, его уже взял другой исполнитель.")
        transition.toast = "Заказ уже взят"
        return transition

    logger.info("Order claimed: order_id=%s, performer_id=%s", order.id, ctx.user_id)
    text = (
        "🎉 Отличный выбор!\n\nЗаказ закреплён за тобой.\n\n"
        "📸 Теперь нужно сделать фото мусорного пакета:\n\n"
        "1️⃣ Фото пакета возле двери клиента\n"
        "2️⃣ Фото пакета на фоне мусорки\n\nНачнём?"
    )
    task = ProviderTask(current_order_id=order.id)
    return Transition(ProviderFlow.provider_working, task, [ctx.reply(text, claimed_order_keyboard(order.id))])


# ── Proof photos ──────────────────────────────────────────

@router.callback_query(F.data.startswith("photo_at_door_") | F.data.startswith("provider_request_photos_"))
async def request_door_photo(callback: CallbackQuery, ctx: Context) -> Transition:
    door_button = callback.data.startswith("photo_at_door_")
    order_id = callback.data.removeprefix("photo_at_door_" if door_button else "provider_request_photos_")
    order = await _own_active_order(ctx, order_id)
    if order is None:
        return main_menu(ctx, ORDER_UNAVAILABLE)

    if door_button:
        text = "📸 Отлично! Пришлите фото мусорного пакета возле двери клиента."
    else:
        text = (
            "📸 Для завершения заказа нужно загрузить 2 фото:\n\n"
            "1️⃣ Фото мусорного пакета возле двери клиента\n"
            "2️⃣ Фото пакета на фоне мусорки\n\nПришлите первое фото (у двери):"
        )
    task = ProviderTask(current_order_id=order.id, photo_step="at_door")
    return Transition(ProviderFlow.awaiting_photo_at_door, task, [ctx.reply(text)])


@router.message(ProviderFlow.awaiting_photo_at_door, F.photo)
async def receive_door_photo(message: Message, ctx: Context) -> Transition:
    task = ctx.flow(ProviderTask)
    if not task.current_order_id:
        return Transition(actions=[ctx.reply("⚠️ Не найден активный заказ.")])

    saved = await ctx.repo.update_order(task.current_order_id, held_by=ctx.user_id, photo_door=ctx.event.photo)
    if not saved:
        return Transition(actions=[ctx.reply("❌ Не удалось сохранить фото. Попробуйте ещё раз.")])

    task.photo_step = "at_bin"
    text = "✅ Отлично! Фото у двери получено.\n\n📸 Теперь пришлите фото этого мусорного пакета на фоне мусорки."
    return Transition(ProviderFlow.awaiting_photo_at_bin, task, [ctx.reply(text)])


@router.message(ProviderFlow.awaiting_photo_at_bin, F.photo)
async def receive_bin_photo(message: Message, ctx: Context) -> Transition:
    task = ctx.flow(ProviderTask)
    if not task.current_order_id:
        return Transition(actions=[ctx.reply("⚠️ Не найден активный заказ.")])

    saved = await ctx.repo.update_order(task.current_order_id, held_by=ctx.user_id, photo_bin=ctx.event.photo)
    if not saved:
        return Transition(actions=[ctx.reply("❌ Не удалось сохранить фото. Попробуйте ещё раз.")])

    text = "✅ Супер! Оба фото получены.\n\n🎯 Готов завершить заказ?"
    keyboard = ready_to_complete_keyboard(task.current_order_id)
    return Transition(ProviderFlow.provider_ready_to_complete, task, [ctx.reply(text, keyboard)])


@router.message(StateFilter(*PHOTO_STATES), F.text)
async def expect_photo(message: Message, ctx: Context) -> Transition:
    return Transition(actions=[ctx.reply("📸 Пожалуйста, пришлите фото (не текст).")])


# ── Handover to the customer ──────────────────────────────

@router.callback_query(F.data.startswith("handed_over_"))
async def handed_over(callback: CallbackQuery, ctx: Context) -> Transition:
    order = await _own_active_order(ctx, callback.data.removeprefix("handed_over_"))
    if order is None:
        return main_menu(ctx, ORDER_UNAVAILABLE)

    request = SendText(
        chat_id=order.user_id,
        text="🤝 Исполнитель сообщает, что передал вам мусорный пакет в руки.\n\nПодтвердите, пожалуйста:",
        keyboard=handover_confirm_keyboard(order.id),
    )
    task = ProviderTask(current_order_id=order.id, handover_requested=True)
    return Transition(
        ProviderFlow.awaiting_handover_confirmation,
        task,
        [request, ctx.reply("⏳ Запрос отправлен заказчику. Ожидайте подтверждения...")],
    )


# Customer answers arrive as signals, run by the engine on the performer's own state
async def handover_confirmed(signal: HandoverConfirmed, ctx: Context) -> Transition:
    task = ProviderTask(current_order_id=signal.order_id, photo_step="at_bin")
    text = "✅ Заказчик подтвердил получение!\n\n📸 Теперь пришлите фото этого мусорного пакета на фоне мусорки."
    return Transition(ProviderFlow.awaiting_photo_at_bin, task, [ctx.reply(text)])


async def handover_denied(signal: HandoverDenied, ctx: Context) -> Transition:
    order_id = signal.order_id
    text = (
        "❌ Заказчик не подтвердил передачу.\n\n"
        "Пожалуйста, попробуйте связаться с клиентом или сделайте фото у двери."
    )
    task = ProviderTask(current_order_id=order_id)
    return Transition(ProviderFlow.provider_working, task, [ctx.reply(text, handover_denied_keyboard(order_id))])


SIGNAL_HANDLERS = {
    HandoverConfirmed: handover_confirmed,
    HandoverDenied: handover_denied,
}


# ── Completion ────────────────────────────────────────────

@router.callback_query(F.data.startswith("provider_complete_"))
async def ask_completion(callback: CallbackQuery, ctx: Context) -> Transition:
    order = await _own_active_order(ctx, callback.data.removeprefix("provider_complete_"))
    if order is None:
        return main_menu(ctx, ORDER_UNAVAILABLE)

    text = "✅ Подтвердите выполнение заказа.\n\nПосле подтверждения средства будут зачислены на ваш счёт."
    task = ProviderTask(current_order_id=order.id)
    return Transition(ProviderFlow.awaiting_completion_confirm, task, [ctx.reply(text, completion_confirm_keyboard(order.id))])


@router.callback_query(F.data.startswith("final_confirm_"))
async def confirm_completion(callback: CallbackQuery, ctx: Context) -> Transition:
    order_id = callback.data.removeprefix("final_confirm_")
    order = await ctx.repo.complete_order(order_id, ctx.user_id)
    if order is None:
        logger.warning("Completion rejected: order_id=%s, performer_id=%s", order_id, ctx.user_id)
        return Transition(actions=[ctx.reply("❌ Не удалось завершить заказ.", provider_main_menu_keyboard())])

    payout = calculate_payout(order.amount)
    balance = await ctx.repo.credit_balance(ctx.user_id, payout.earnings)
    logger.info(
        "Order completed: order_id=%s, performer_id=%s, earnings=%s, commission=%s",
        order.id,
        ctx.user_id,
        payout.earnings,
        payout.commission,
    )

    notice = SendText(
        chat_id=order.user_id,
        text=(
            "✅ Ваш заказ выполнен!\n\n🎉 Спасибо за использование Мусоробота! 🤖✨\n\n"
            "Вы можете проверить, как был выполнен заказ:"
        ),
        keyboard=check_order_keyboard(order.id),
    )
    balance_text = f"{balance:.2f}₽" if balance is not None else "—"
    summary = (
        "🌟 Красота! Заказ закрыт.\n\n"
        f"💰 Заработано: +{payout.earnings:.2f}₽\n"
        f"💸 Комиссия сервиса: {payout.commission:.2f}₽\n\n"
        f"💵 Новый баланс: {balance_text}"
    )
    transition = main_menu(ctx, summary)
    transition.actions.insert(0, notice)
    return transition


# ── My orders, wallet, settings ───────────────────────────

@router.callback_query(F.data == "provider_my_orders")
async def my_orders(callback: CallbackQuery, ctx: Context) -> Transition:
    return Transition(actions=[ctx.reply("🛠 Мои заказы\n\nВыберите категорию:", my_orders_keyboard())])


@router.callback_query(F.data == "provider_current_orders")
async def current_orders(callback: CallbackQuery, ctx: Context) -> Transition:
    orders = await ctx.repo.list_orders("in_progress", performer_id=ctx.user_id, limit=10, newest_first=True)
    if not orders:
        text = "📭 У тебя пока нет заказов в работе.\n\nЗагляни в раздел «Новые заказы» 📦"
        return Transition(actions=[ctx.reply(text, back_to_my_orders_keyboard())])

    lines = ["⚡ Текущие заказы:\n"]
    for i, order in enumerate(orders, 1):
        lines.append(
            f"{i}. 🏠 {hd.quote(order.address)}\n"
            f"   📦 {order.amount_major:g}₽\n"
            f"   🕐 Создан: {_date(order, 'created_at')}\n"
        )
    keyboard = current_orders_keyboard([order.id for order in orders])
    return Transition(actions=[ctx.reply("\n".join(lines), keyboard)])


@router.callback_query(F.data == "provider_completed_orders")
async def completed_orders(callback: CallbackQuery, ctx: Context) -> Transition:
    orders = await ctx.repo.list_orders("completed", performer_id=ctx.user_id, limit=20, newest_first=True)
    if not orders:
        return Transition(actions=[ctx.reply("📭 У тебя пока нет выполненных заказов.", back_to_my_orders_keyboard())])

    lines = ["✅ История выполненных заказов:\n"]
    for i, order in enumerate(orders, 1):
        entry = (
            f"{i}. 🏠 {hd.quote(order.address)}\n"
            f"   💰 Заработано: {calculate_payout(order.amount).earnings:.2f}₽\n"
            f"   📅 {_date(order, 'updated_at')}\n"
        )
        if order.photo_door and order.photo_bin:
            entry += "   📸 Фото: доступны\n"
        lines.append(entry)
    return Transition(actions=[ctx.reply("\n".join(lines), back_to_my_orders_keyboard())])


@router.callback_query(F.data == "provider_wallet")
async def wallet(callback: CallbackQuery, ctx: Context) -> Transition:
    profile = await ctx.repo.get_profile(ctx.user_id)
    balance = profile.eco_points if profile else 0
    text = (
        f"💰 Твой кошелёк\n\n💵 Баланс: {balance:.2f}₽\n\n"
        "📊 История операций скоро будет доступна!\n\n"
        "💳 Хочешь вывести средства или оставить копить?"
    )
    return Transition(actions=[ctx.reply(text, wallet_keyboard())])


@router.callback_query(F.data == "provider_withdraw")
async def withdraw(callback: CallbackQuery, ctx: Context) -> Transition:
    text = "💳 Функция вывода средств будет доступна позже.\n\nМы работаем над этим!"
    return Transition(actions=[ctx.reply(text, provider_main_menu_keyboard())])


@router.callback_query(F.data == "provider_settings")
async def provider_settings(callback: CallbackQuery, ctx: Context) -> Transition:
    return Transition(actions=[ctx.reply("⚙️ Настройки исполнителя\n\nЗдесь можно настроить:", settings_keyboard())])


@router.callback_query(F.data == "provider_change_city")
async def change_city(callback: CallbackQuery, ctx: Context) -> Transition:
    return Transition(
        ProviderFlow.awaiting_provider_city,
        Blank(),
        [ctx.reply("🌆 Введите название вашего города:", change_city_keyboard())],
    )
