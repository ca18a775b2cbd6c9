"""
Customer ordering flow.

role → greeting → (saved address | city → address → save?) → time →
bags → payment → order created → optional comment.

Every ``show_*`` screen returns the transition that both renders the prompt
and moves the user into the state that prompt waits in; the back button and
the duplicate-press guards reuse them through ``SCREENS``.
"""

import logging

from aiogram import F, Router
from aiogram.fsm.state import default_state
from aiogram.types import CallbackQuery, Message
from aiogram.utils.text_decorations import html_decoration as hd

from musorobot.bot.flow import Context, Transition
from musorobot.bot.keyboards.user_kb import (
    TIME_SLOTS,
    back_home_keyboard,
    bag_count_keyboard,
    bag_size_keyboard,
    comment_choice_keyboard,
    payment_keyboard,
    role_keyboard,
    save_address_keyboard,
    saved_address_keyboard,
    start_order_keyboard,
    time_choice_keyboard,
    time_slots_keyboard,
)
from musorobot.bot.services.fanout import new_order_notifications
from musorobot.bot.services.payouts import (
    MAXIMUM_ORDER_AMOUNT,
    MINIMUM_ORDER_AMOUNT,
    order_amount_minor,
    parse_amount,
    size_option_for,
)
from musorobot.bot.states.accumulators import Blank, OrderDraft
from musorobot.bot.states.user_states import Onboarding, OrderFlow

logger = logging.getLogger(__name__)

router = Router(name="customer")

ORDER_ACCEPTED = (
    "✅ Ваш заказ принят! Курьер скоро приедет и аккуратно вынесет ваш мусор. "
    "Спасибо, что выбираете Мусоробота 🤖✨"
)
AMOUNT_OUT_OF_RANGE = f"❌ Укажите корректную сумму (от {MINIMUM_ORDER_AMOUNT} до {MAXIMUM_ORDER_AMOUNT}₽)."


# ── Screens ───────────────────────────────────────────────

def show_role(ctx: Context, draft: OrderDraft | None = None) -> Transition:
    return Transition(
        Onboarding.awaiting_role,
        OrderDraft(),
        [ctx.reply("Кто вы? Выберите роль ниже:", role_keyboard())],
    )


def show_greeting(ctx: Context, draft: OrderDraft) -> Transition:
    text = (
        "👋 Привет! Я — Мусоробот 🤖. Готов помочь вам цивилизованно "
        "избавиться от мусора. Начнём заказ?"
    )
    return Transition(OrderFlow.customer_greeting, draft, [ctx.reply(text, start_order_keyboard())])


def show_ask_city(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(
        OrderFlow.awaiting_city,
        draft,
        [ctx.reply("🏙️ Укажите ваш город, пожалуйста.", back_home_keyboard())],
    )


def show_ask_address(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(
        OrderFlow.awaiting_address,
        draft,
        [ctx.reply("📍 Уточните адрес, пожалуйста (улица, дом, квартира).", back_home_keyboard())],
    )


def show_save_address(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(
        OrderFlow.ask_save_address,
        draft,
        [ctx.reply("Отлично, адрес записан ✅. Сохранить его для будущих заказов?", save_address_keyboard())],
    )


def show_time_choice(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(OrderFlow.awaiting_time_choice, draft, [ctx.reply("⏰ Когда вынести мусор?", time_choice_keyboard())])


def show_time_slots(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(
        OrderFlow.awaiting_time_slot,
        draft,
        [ctx.reply("Выберите удобный интервал или введите своё время:", time_slots_keyboard())],
    )


def show_bag_selection(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(
        OrderFlow.awaiting_bag_selection,
        draft,
        [ctx.reply("🛍️ Сколько и какие пакеты нужно вынести?", bag_count_keyboard())],
    )


def show_next_bag_size(ctx: Context, draft: OrderDraft) -> Transition:
    index = draft.next_bag_index
    return Transition(
        OrderFlow.awaiting_multi_bag_size,
        draft,
        [ctx.reply(f"Выберите размер для пакета {index}:", bag_size_keyboard(index))],
    )


def show_payment(ctx: Context, draft: OrderDraft, text: str = "💳 Как оплатим?") -> Transition:
    return Transition(OrderFlow.awaiting_payment, draft, [ctx.reply(text, payment_keyboard(draft.amount_set))])


def show_comment_choice(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(
        OrderFlow.awaiting_comment_choice,
        draft,
        [ctx.reply("🎁 Хотите оставить комментарий для курьера?", comment_choice_keyboard())],
    )


def show_custom_amount(ctx: Context, draft: OrderDraft) -> Transition:
    return Transition(
        OrderFlow.awaiting_custom_amount,
        draft,
        [ctx.reply(f"Введите желаемую сумму в рублях (от {MINIMUM_ORDER_AMOUNT} до {MAXIMUM_ORDER_AMOUNT}):", back_home_keyboard())],
    )


def show_comment_text(ctx: Context, draft: OrderDraft) -> Transition:
    text = 'Напишите комментарий (например: «Забрать с порога», «Позвонить в домофон»):'
    return Transition(OrderFlow.awaiting_comment_text, draft, [ctx.reply(text, back_home_keyboard())])


SCREENS = {
    Onboarding.awaiting_role.state: show_role,
    OrderFlow.customer_greeting.state: show_greeting,
    OrderFlow.awaiting_city.state: show_ask_city,
    OrderFlow.awaiting_address.state: show_ask_address,
    OrderFlow.ask_save_address.state: show_save_address,
    OrderFlow.awaiting_time_choice.state: show_time_choice,
    OrderFlow.awaiting_time_slot.state: show_time_slots,
    OrderFlow.awaiting_bag_selection.state: show_bag_selection,
    OrderFlow.awaiting_multi_bag_size.state: show_next_bag_size,
    OrderFlow.awaiting_payment.state: show_payment,
    OrderFlow.awaiting_custom_amount.state: show_custom_amount,
    OrderFlow.awaiting_comment_choice.state: show_comment_choice,
    OrderFlow.awaiting_comment_text.state: show_comment_text,
}


def show_current(ctx: Context) -> Transition:
    """Re-render the prompt of the state the user is already in, changing nothing."""
    screen = SCREENS.get(ctx.state)
    if screen is None:
        return Transition()
    return screen(ctx, ctx.flow(OrderDraft))


# ── Role and start ────────────────────────────────────────

@router.callback_query(F.data == "role_customer")
async def choose_customer(callback: CallbackQuery, ctx: Context) -> Transition:
    await ctx.repo.upsert_profile(ctx.user_id, role="customer")
    return show_greeting(ctx, ctx.flow(OrderDraft))


@router.callback_query(F.data == "start_order_yes")
async def start_order(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    profile = await ctx.repo.get_profile(ctx.user_id)
    if profile and profile.saved_address:
        draft.saved_address_available = profile.saved_address
        text = f"📍 У вас есть сохранённый адрес:\n\n{hd.quote(profile.saved_address)}\n\nИспользовать его?"
        return Transition(OrderFlow.choose_address_option, draft, [ctx.reply(text, saved_address_keyboard())])
    return show_ask_city(ctx, draft)


@router.callback_query(F.data == "start_order_no")
async def decline_order(callback: CallbackQuery, ctx: Context) -> Transition:
    return show_role(ctx)


# ── Address ───────────────────────────────────────────────

@router.callback_query(F.data == "use_saved_address")
async def use_saved_address(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    if not draft.saved_address_available:
        return show_ask_city(ctx, draft)
    draft.address = draft.saved_address_available
    return show_time_choice(ctx, draft)


@router.callback_query(F.data == "enter_new_address")
async def enter_new_address(callback: CallbackQuery, ctx: Context) -> Transition:
    return show_ask_city(ctx, ctx.flow(OrderDraft))


@router.message(OrderFlow.awaiting_city, F.text)
async def receive_city(message: Message, ctx: Context) -> Transition:
    if len(ctx.text) < 2:
        return Transition(actions=[ctx.reply("❌ Название города слишком короткое.", back_home_keyboard())])
    draft = ctx.flow(OrderDraft)
    draft.city = ctx.text
    return show_ask_address(ctx, draft)


@router.message(OrderFlow.awaiting_address, F.text)
async def receive_address(message: Message, ctx: Context) -> Transition:
    if len(ctx.text) < 5:
        return Transition(actions=[ctx.reply("❌ Адрес слишком короткий. Введите полный адрес.", back_home_keyboard())])
    draft = ctx.flow(OrderDraft)
    draft.address = ctx.text
    return show_save_address(ctx, draft)


@router.callback_query(F.data.in_({"save_address_yes", "save_address_no"}))
async def save_address(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    if callback.data == "save_address_yes" and draft.address:
        await ctx.repo.upsert_profile(ctx.user_id, saved_address=draft.address)
    return show_time_choice(ctx, draft)


# ── Pickup time ───────────────────────────────────────────

@router.callback_query(F.data == "time_choice_urgent")
async def choose_urgent(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    draft.time_option = "within_hour"
    draft.time_text = None
    return show_bag_selection(ctx, draft)


@router.callback_query(F.data == "time_choice_select")
async def choose_slot(callback: CallbackQuery, ctx: Context) -> Transition:
    return show_time_slots(ctx, ctx.flow(OrderDraft))


@router.callback_query(F.data.in_({token for token, _ in TIME_SLOTS}))
async def pick_slot(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    draft.time_option = "custom"
    draft.time_text = dict(TIME_SLOTS)[callback.data]
    return show_bag_selection(ctx, draft)


@router.callback_query(F.data == "time_enter_custom")
async def ask_custom_time(callback: CallbackQuery, ctx: Context) -> Transition:
    text = "✍️ Напишите желаемую дату и время (например: «завтра в 14:00»):"
    return Transition(OrderFlow.awaiting_custom_time_text, ctx.flow(OrderDraft), [ctx.reply(text, back_home_keyboard())])


@router.message(OrderFlow.awaiting_custom_time_text, F.text)
async def receive_custom_time(message: Message, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    draft.time_option = "custom"
    draft.time_text = ctx.text
    return show_bag_selection(ctx, draft)


# ── Bags ──────────────────────────────────────────────────

@router.callback_query(F.data.in_({"bag_1_small", "bag_1_medium", "bag_1_large"}))
async def pick_single_bag(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    draft.bags = [callback.data.removeprefix("bag_1_")]
    draft.bag_count = 1
    return show_payment(ctx, draft)


@router.callback_query(F.data.in_({"bag_2", "bag_3"}))
async def pick_bag_count(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    draft.bags = []
    draft.bag_count = int(callback.data.removeprefix("bag_"))
    return show_next_bag_size(ctx, draft)


@router.callback_query(F.data.in_({"bag_size_small", "bag_size_medium", "bag_size_large"}))
async def pick_bag_size(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    if ctx.state != OrderFlow.awaiting_multi_bag_size.state or len(draft.bags) >= draft.bag_count:
        return show_current(ctx)
    draft.bags.append(callback.data.removeprefix("bag_size_"))
    if len(draft.bags) < draft.bag_count:
        return show_next_bag_size(ctx, draft)
    return show_payment(ctx, draft)


# ── Payment ───────────────────────────────────────────────

@router.callback_query(F.data == "payment_min")
async def pay_minimum(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    draft.amount = 100
    return show_payment(ctx, draft, "Сумма установлена: 100₽")


@router.callback_query(F.data == "payment_custom")
async def ask_custom_amount(callback: CallbackQuery, ctx: Context) -> Transition:
    return show_custom_amount(ctx, ctx.flow(OrderDraft))


@router.message(OrderFlow.awaiting_custom_amount, F.text)
async def receive_custom_amount(message: Message, ctx: Context) -> Transition:
    amount = parse_amount(ctx.text)
    if amount is None:
        return Transition(actions=[ctx.reply(AMOUNT_OUT_OF_RANGE, back_home_keyboard())])
    draft = ctx.flow(OrderDraft)
    draft.amount = amount
    return show_payment(ctx, draft, f"Сумма установлена: {amount}₽")


@router.callback_query(F.data == "pay_now")
async def pay_now(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    if ctx.state != OrderFlow.awaiting_payment.state or not draft.amount_set or draft.order_id:
        return show_current(ctx)
    if not draft.address:
        return show_ask_address(ctx, draft)
    if draft.time_option == "custom" and not draft.time_text:
        return show_time_choice(ctx, draft)

    sender = ctx.event.sender
    order = await ctx.repo.create_order(
        user_id=ctx.user_id,
        username=sender.username,
        first_name=sender.first_name,
        last_name=sender.last_name,
        address=draft.address,
        size_option=size_option_for(len(draft.bags) or draft.bag_count),
        bags=list(draft.bags) or None,
        time_option=draft.time_option,
        custom_time=draft.time_text,
        amount=order_amount_minor(draft.amount),
        status="new",
    )
    if order is None:
        return Transition(actions=[ctx.reply("❌ Произошла ошибка при создании заказа. Попробуйте еще раз.")])

    logger.info("Order created: id=%s, user_id=%s, amount=%s", order.id, ctx.user_id, order.amount)
    draft.order_id = order.id
    actions = [
        ctx.reply(
            "✅ Ваш заказ оплачен и принят! Хотите добавить комментарий для курьера?",
            comment_choice_keyboard(),
        )
    ]
    admin_chat_id = await ctx.repo.get_admin_chat_id()
    if admin_chat_id is None:
        logger.info("Admin chat ID not configured, skipping admin alert for order %s", order.id)
    performers = await ctx.repo.list_performers()
    actions.extend(new_order_notifications(order, performers, admin_chat_id))
    return Transition(OrderFlow.awaiting_comment_choice, draft, actions)


# ── Comment ───────────────────────────────────────────────

@router.callback_query(F.data == "comment_yes")
async def ask_comment(callback: CallbackQuery, ctx: Context) -> Transition:
    return show_comment_text(ctx, ctx.flow(OrderDraft))


@router.callback_query(F.data == "comment_no")
async def skip_comment(callback: CallbackQuery, ctx: Context) -> Transition:
    text = f"{ORDER_ACCEPTED}\n\nВы можете оформить 🏠 Новый заказ командой /start."
    return Transition(default_state, Blank(), [ctx.reply(text)])


@router.message(OrderFlow.awaiting_comment_text, F.text)
async def receive_comment(message: Message, ctx: Context) -> Transition:
    draft = ctx.flow(OrderDraft)
    if not draft.order_id:
        return Transition(default_state, Blank(), [ctx.reply("⚠️ Не найден активный заказ. Начните заново: /start")])
    await ctx.repo.update_order(draft.order_id, comment=ctx.text)
    return Transition(default_state, Blank(), [ctx.reply(f"✅ Комментарий добавлен!\n\n{ORDER_ACCEPTED}")])
