"""Commands and the simple menu available in any state."""

import logging
import re

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.state import default_state
from aiogram.types import CallbackQuery, Message

from musorobot.api.config import settings
from musorobot.bot.flow import Context, Transition
from musorobot.bot.keyboards.user_kb import main_menu_keyboard, role_keyboard
from musorobot.bot.states.accumulators import Blank, OrderDraft
from musorobot.bot.states.user_states import Onboarding, OrderFlow

logger = logging.getLogger(__name__)

router = Router(name="common")
# Included last: anything no other router claimed
fallback_router = Router(name="fallback")

HELP_TEXT = """
❓ <b>Помощь</b>

<b>Как заказать вывоз мусора:</b>
1. Нажмите "Оформить заказ"
2. Укажите адрес
3. Выберите количество мусора
4. Выберите время вывоза
5. Подтвердите заказ

<b>Наши тарифы:</b>
• Один пакет (до 6 кг) - 100₽
• Два пакета - 200₽
• Три пакета - 300₽

<b>Контакты:</b>
📞 Для связи с оператором используйте кнопку в меню"""

ADMIN_ID_USAGE = "❌ Укажите ID администратора.\nИспользование: /adminid 123456789"


@router.message(Command("start", ignore_case=True, ignore_mention=True))
async def cmd_start(message: Message, ctx: Context) -> Transition:
    text = "👋 Привет! Я — <b>Мусоробот</b> 🤖\n\nКто вы? Выберите роль ниже:"
    return Transition(Onboarding.awaiting_role, OrderDraft(), [ctx.reply(text, role_keyboard())])


@router.message(Command("help", ignore_case=True, ignore_mention=True))
@router.callback_query(F.data == "help")
async def show_help(event: Message | CallbackQuery, ctx: Context) -> Transition:
    return Transition(actions=[ctx.reply(HELP_TEXT, main_menu_keyboard())])


@router.message(Command("adminid", ignore_case=True, ignore_mention=True))
async def cmd_admin_id(message: Message, ctx: Context, command: CommandObject) -> Transition:
    """Store the chat that receives new-order and support alerts."""
    args = (command.args or "").split()
    admin_id = args[0] if args else ""
    if not re.fullmatch(r"-?\d+", admin_id):
        return Transition(actions=[ctx.reply(ADMIN_ID_USAGE)])

    if not await ctx.repo.set_admin_chat_id(admin_id):
        return Transition(actions=[ctx.reply("❌ Ошибка при сохранении ID администратора.")])

    logger.info("Admin chat ID set: %s by user_id=%s", admin_id, ctx.user_id)
    return Transition(actions=[ctx.reply(f"✅ ID администратора успешно установлен: {admin_id}")])


@router.callback_query(F.data == "contact_operator")
async def contact_operator(callback: CallbackQuery, ctx: Context) -> Transition:
    text = f"📞 Для связи с оператором напишите нам: {settings.OPERATOR_CONTACT}"
    return Transition(actions=[ctx.reply(text)])


@router.callback_query(F.data == "new_order")
async def new_order(callback: CallbackQuery, ctx: Context) -> Transition:
    text = "📍 Пожалуйста, введите ваш адрес (улица, дом, квартира):"
    return Transition(OrderFlow.awaiting_address, OrderDraft(), [ctx.reply(text)])


@router.callback_query(F.data == "cancel")
async def cancel(callback: CallbackQuery, ctx: Context) -> Transition:
    return Transition(default_state, Blank(), [ctx.reply("❌ Действие отменено.", main_menu_keyboard())])


@fallback_router.message(F.text | F.photo)
async def choose_from_menu(message: Message, ctx: Context) -> Transition:
    return Transition(actions=[ctx.reply("Выберите действие из меню:", main_menu_keyboard())])
