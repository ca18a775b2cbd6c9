"""Performer schedule and notification filter wizard."""

import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery, Message
from aiogram.utils.text_decorations import html_decoration as hd

from musorobot.bot.flow import Context, Transition
from musorobot.bot.handlers.provider import main_menu
from musorobot.bot.keyboards.provider_kb import (
    notification_filter_keyboard,
    schedule_back_keyboard,
    schedule_days_keyboard,
    schedule_mode_keyboard,
    schedule_time_keyboard,
)
from musorobot.bot.states.accumulators import ScheduleDraft
from musorobot.bot.states.user_states import ScheduleFlow

logger = logging.getLogger(__name__)

router = Router(name="schedule")

ALWAYS = "always"

DAY_PRESETS = {
    "days_everyday": "everyday",
    "days_weekdays": "weekdays",
    "days_weekend": "weekend",
}
DAY_LABELS = {
    "everyday": "каждый день",
    "weekdays": "пн–пт",
    "weekend": "сб–вс",
    ALWAYS: "всегда на связи",
}
TIME_PRESETS = {
    "time_9_18": "09:00-18:00",
    "time_10_20": "10:00-20:00",
}
FILTERS = {
    "filter_all": ("all", "все новые заказы"),
    "filter_urgent": ("urgent", "только срочные заказы"),
    "filter_large": ("large", "только крупные заказы (2+ пакета)"),
    "filter_none": ("none", "отключены"),
}


def days_label(days: str | None) -> str:
    if not days:
        return DAY_LABELS[ALWAYS]
    return DAY_LABELS.get(days, days)


def time_label(window: str | None) -> str:
    """``"09:00-18:00"`` → ``"с 09:00 до 18:00"``."""
    if not window:
        return "круглосуточно"
    start, sep, end = window.partition("-")
    return f"с {start} до {end}" if sep else window


def _ask_time(ctx: Context, draft: ScheduleDraft) -> Transition:
    return Transition(ScheduleFlow.provider_schedule, draft, [ctx.reply("Теперь время работы:", schedule_time_keyboard())])


def _ask_filter(ctx: Context, draft: ScheduleDraft) -> Transition:
    text = (
        "Окей, график установлен! 🎯\n\n"
        f"Ты в строю: {hd.quote(days_label(draft.schedule_days))}, {hd.quote(time_label(draft.schedule_time))}\n\n"
        "Теперь давай уточним уведомления.\n\n👉 Что слать тебе в рабочее время?"
    )
    return Transition(ScheduleFlow.provider_schedule, draft, [ctx.reply(text, notification_filter_keyboard())])


@router.callback_query(F.data == "provider_schedule")
async def schedule_mode(callback: CallbackQuery, ctx: Context) -> Transition:
    text = (
        "⏰ Настраиваем твой рабочий ритм\n\n"
        "Хочешь быть в строю всегда или по расписанию?\n\n👉 Выбери вариант:"
    )
    return Transition(ScheduleFlow.provider_schedule, ScheduleDraft(), [ctx.reply(text, schedule_mode_keyboard())])


@router.callback_query(F.data == "schedule_always")
async def schedule_always(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ScheduleDraft(schedule_days=ALWAYS)
    text = (
        "Супер! Ты теперь железный герой 💪\n\n"
        "Будешь получать все заказы в любое время суток.\n\n"
        "👉 Хочешь фильтровать уведомления или брать всё подряд?"
    )
    return Transition(ScheduleFlow.provider_schedule, draft, [ctx.reply(text, notification_filter_keyboard("provider_schedule"))])


@router.callback_query(F.data == "schedule_custom")
async def schedule_custom(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(ScheduleDraft)
    text = "Отлично, давай настроим твой график 📅\n\n📍 Сначала выбери дни:"
    return Transition(ScheduleFlow.provider_schedule, draft, [ctx.reply(text, schedule_days_keyboard())])


@router.callback_query(F.data.in_(DAY_PRESETS))
async def pick_days(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(ScheduleDraft)
    draft.schedule_days = DAY_PRESETS[callback.data]
    return _ask_time(ctx, draft)


@router.callback_query(F.data == "days_manual")
async def ask_manual_days(callback: CallbackQuery, ctx: Context) -> Transition:
    text = "📅 Укажите дни работы через запятую (например: пн, ср, пт):"
    return Transition(ScheduleFlow.awaiting_manual_days, ctx.flow(ScheduleDraft), [ctx.reply(text, schedule_back_keyboard())])


@router.message(ScheduleFlow.awaiting_manual_days, F.text)
async def receive_manual_days(message: Message, ctx: Context) -> Transition:
    draft = ctx.flow(ScheduleDraft)
    draft.schedule_days = ctx.text
    return _ask_time(ctx, draft)


@router.callback_query(F.data.in_(TIME_PRESETS))
async def pick_time(callback: CallbackQuery, ctx: Context) -> Transition:
    draft = ctx.flow(ScheduleDraft)
    draft.schedule_time = TIME_PRESETS[callback.data]
    return _ask_filter(ctx, draft)


@router.callback_query(F.data == "time_custom_input")
async def ask_time_start(callback: CallbackQuery, ctx: Context) -> Transition:
    text = "⏰ С какого времени начинаешь? (например: 08:00)"
    return Transition(ScheduleFlow.awaiting_custom_time_start, ctx.flow(ScheduleDraft), [ctx.reply(text, schedule_back_keyboard())])


@router.message(ScheduleFlow.awaiting_custom_time_start, F.text)
async def receive_time_start(message: Message, ctx: Context) -> Transition:
    draft = ctx.flow(ScheduleDraft)
    draft.schedule_time_start = ctx.text
    text = "⏰ До какого времени работаешь? (например: 18:00)"
    return Transition(ScheduleFlow.awaiting_custom_time_end, draft, [ctx.reply(text, schedule_back_keyboard())])


@router.message(ScheduleFlow.awaiting_custom_time_end, F.text)
async def receive_time_end(message: Message, ctx: Context) -> Transition:
    draft = ctx.flow(ScheduleDraft)
    draft.schedule_time = f"{draft.schedule_time_start or ''}-{ctx.text}"
    return _ask_filter(ctx, draft)


@router.callback_query(F.data.in_(FILTERS))
async def pick_filter(callback: CallbackQuery, ctx: Context) -> Transition:
    value, label = FILTERS[callback.data]
    fields = {"notification_filter": value}
    if isinstance(ctx.accumulator, ScheduleDraft):
        draft = ctx.accumulator
        fields.update(schedule_days=draft.schedule_days, schedule_time=draft.schedule_time)
    else:
        # Filter pressed outside the wizard: keep the saved schedule
        profile = await ctx.repo.get_profile(ctx.user_id)
        draft = ScheduleDraft(
            schedule_days=profile.schedule_days if profile else None,
            schedule_time=profile.schedule_time if profile else None,
        )

    saved = await ctx.repo.upsert_profile(ctx.user_id, **fields)
    if not saved:
        return Transition(actions=[ctx.reply("❌ Не удалось сохранить настройки. Попробуйте ещё раз.")])

    logger.info("Schedule saved: user_id=%s, days=%s, time=%s, filter=%s", ctx.user_id, draft.schedule_days, draft.schedule_time, value)
    text = (
        "Готово! ✅\n\n"
        f"Твой график: {hd.quote(days_label(draft.schedule_days))}, {hd.quote(draft.schedule_time or 'круглосуточно')}\n"
        f"Уведомления: {label}\n\n"
        "🚀 Теперь система сама будет подбирать тебе заказы по этому расписанию."
    )
    return main_menu(ctx, text)
