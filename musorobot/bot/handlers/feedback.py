"""Customer side after the pickup: handover answers, proof check, rating, support."""

import logging

from aiogram import F, Router
from aiogram.fsm.state import default_state
from aiogram.types import CallbackQuery, Message
from aiogram.utils.text_decorations import html_decoration as hd

from musorobot.bot.flow import (
    Context,
    Deliver,
    HandoverConfirmed,
    HandoverDenied,
    SendPhoto,
    SendText,
    Transition,
)
from musorobot.bot.keyboards.user_kb import main_menu_keyboard, rating_keyboard, support_keyboard
from musorobot.bot.repository import OrderRecord
from musorobot.bot.states.accumulators import Blank, SupportRequest
from musorobot.bot.states.user_states import SupportFlow

logger = logging.getLogger(__name__)

router = Router(name="feedback")

NOT_FOUND = "❌ Заказ не найден."


async def _own_order(ctx: Context, order_id: str) -> OrderRecord | None:
    order = await ctx.repo.get_order(order_id)
    if order is None or order.user_id != ctx.user_id:
        return None
    return order


def _already_rated(ctx: Context, order: OrderRecord) -> SendText:
    text = (
        f"{'⭐' * order.rating} Вы уже оценили этот заказ: {order.rating}/5\n\n"
        "Если у вас есть вопросы или замечания:"
    )
    return ctx.reply(text, support_keyboard(order.id))


# ── Handover answers ──────────────────────────────────────

@router.callback_query(F.data.startswith("confirm_handover_"))
async def confirm_handover(callback: CallbackQuery, ctx: Context) -> Transition:
    order = await _own_order(ctx, callback.data.removeprefix("confirm_handover_"))
    if order is None:
        return Transition(actions=[ctx.reply(NOT_FOUND)])

    actions = []
    if order.performer_id:
        actions.append(Deliver(order.performer_id, HandoverConfirmed(order.id)))
    actions.append(ctx.reply("✅ Спасибо за подтверждение!"))
    return Transition(actions=actions)


@router.callback_query(F.data.startswith("deny_handover_"))
async def deny_handover(callback: CallbackQuery, ctx: Context) -> Transition:
    order = await _own_order(ctx, callback.data.removeprefix("deny_handover_"))
    if order is None:
        return Transition(actions=[ctx.reply(NOT_FOUND)])

    actions = []
    if order.performer_id:
        actions.append(Deliver(order.performer_id, HandoverDenied(order.id)))
    actions.append(ctx.reply("Исполнитель уведомлён."))
    return Transition(actions=actions)


# ── Proof of work and rating ──────────────────────────────

@router.callback_query(F.data.startswith("check_order_"))
async def check_order(callback: CallbackQuery, ctx: Context) -> Transition:
    order = await _own_order(ctx, callback.data.removeprefix("check_order_"))
    if order is None:
        return Transition(actions=[ctx.reply(NOT_FOUND)])

    if not (order.photo_door or order.photo_bin):
        text = (
            "📭 К сожалению, исполнитель не загрузил фото выполнения заказа.\n\n"
            "Заказ был отмечен как выполненный."
        )
        return Transition(actions=[ctx.reply(text)])

    summary = (
        "📸 Фото выполнения заказа:\n\n"
        f"{'✅' if order.photo_door else '❌'} Фото у двери: {'есть' if order.photo_door else 'нет'}\n"
        f"{'✅' if order.photo_bin else '❌'} Фото у мусорки: {'есть' if order.photo_bin else 'нет'}"
    )
    actions = [ctx.reply(summary)]
    if order.photo_door:
        actions.append(SendPhoto(ctx.chat_id, order.photo_door, "📷 Фото мусорного пакета у двери"))
    if order.photo_bin:
        actions.append(SendPhoto(ctx.chat_id, order.photo_bin, "📷 Фото мусорного пакета у мусорки"))

    if order.rating:
        actions.append(_already_rated(ctx, order))
    else:
        actions.append(ctx.reply("Заказ выполнен качественно? 🌟", rating_keyboard(order.id)))
    return Transition(actions=actions)


@router.callback_query(F.data.startswith("rate_"))
async def rate_order(callback: CallbackQuery, ctx: Context) -> Transition:
    order_id, _, value = callback.data.removeprefix("rate_").rpartition("_")
    if not order_id or value not in {"1", "2", "3", "4", "5"}:
        logger.warning("Malformed rating token: %s", callback.data)
        return Transition(actions=[ctx.reply(NOT_FOUND)])
    rating = int(value)

    order = await ctx.repo.rate_order(order_id, ctx.user_id, rating)
    if order is None:
        existing = await _own_order(ctx, order_id)
        if existing is None:
            return Transition(actions=[ctx.reply(NOT_FOUND)])
        if existing.rating:
            return Transition(actions=[_already_rated(ctx, existing)])
        return Transition(actions=[ctx.reply("⏳ Оценить можно только выполненный заказ.")])

    if order.performer_id:
        await ctx.repo.add_rating(order.performer_id, rating)
    logger.info("Order rated: order_id=%s, rating=%s", order.id, rating)

    text = (
        f"{'⭐' * rating} Спасибо за вашу оценку!\n\n"
        "Ваше мнение помогает нам становиться лучше. 🙏\n\n"
        "Если у вас есть вопросы или замечания:"
    )
    return Transition(actions=[ctx.reply(text, support_keyboard(order.id))])


# ── Support ───────────────────────────────────────────────

@router.callback_query(F.data.startswith("support_"))
async def ask_support_message(callback: CallbackQuery, ctx: Context) -> Transition:
    request = SupportRequest(support_order_id=callback.data.removeprefix("support_"))
    return Transition(
        SupportFlow.awaiting_support_message,
        request,
        [ctx.reply("✍️ Напишите ваше сообщение для поддержки:")],
    )


@router.message(SupportFlow.awaiting_support_message, F.text)
async def relay_support_message(message: Message, ctx: Context) -> Transition:
    request = ctx.flow(SupportRequest)
    if not request.support_order_id or not ctx.text:
        return Transition(actions=[ctx.reply("❌ Ошибка при отправке сообщения.")])

    order = await ctx.repo.get_order(request.support_order_id)
    if order is None:
        return Transition(default_state, Blank(), [ctx.reply(NOT_FOUND, main_menu_keyboard())])

    actions = []
    admin_chat_id = await ctx.repo.get_admin_chat_id()
    if admin_chat_id is not None:
        sender = ctx.event.sender
        username = f" (@{sender.username})" if sender.username else ""
        created = order.created_at.strftime("%d.%m.%Y") if order.created_at else "—"
        rating = f"{order.rating}/5" if order.rating else "не оценен"
        text = (
            "📞 <b>ОБРАЩЕНИЕ В ПОДДЕРЖКУ</b>\n\n"
            f"👤 От: {hd.quote(sender.full_name)}{hd.quote(username)}\n"
            f"📦 Заказ ID: {order.short_id}\n"
            f"📍 Адрес: {hd.quote(order.address)}\n"
            f"📅 Дата заказа: {created}\n"
            f"⭐ Оценка: {rating}\n\n"
            f"💬 Сообщение:\n{hd.quote(ctx.text)}"
        )
        actions.append(SendText(chat_id=admin_chat_id, text=text))
    else:
        logger.warning("Support message for order %s dropped: admin chat ID not configured", order.id)

    actions.append(ctx.reply(
        "✅ Ваше сообщение отправлено в поддержку. Мы свяжемся с вами в ближайшее время.",
        main_menu_keyboard(),
    ))
    return Transition(default_state, Blank(), actions)
