"""Inline keyboard builders for the performer side of the bot."""

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

FILTER_BUTTONS = [
    ("filter_all", "🔔 Все новые заказы"),
    ("filter_urgent", "⚡ Только срочные"),
    ("filter_large", "📦 Только крупные"),
    ("filter_none", "🔕 Ничего, сам буду заходить и смотреть"),
]


def _back(token: str, text: str = "🔙 Назад") -> list[InlineKeyboardButton]:
    return [InlineKeyboardButton(text=text, callback_data=token)]


def provider_main_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📦 Новые заказы", callback_data="provider_new_orders")],
        [InlineKeyboardButton(text="🛠 Мои заказы", callback_data="provider_my_orders")],
        [InlineKeyboardButton(text="💰 Кошелёк", callback_data="provider_wallet")],
        [InlineKeyboardButton(text="⚙️ Настройки", callback_data="provider_settings")],
    ])


def new_orders_keyboard(order_ids: list[str]) -> InlineKeyboardMarkup:
    """One take button per listed order, numbered as in the message text."""
    buttons = [
        [InlineKeyboardButton(text=f"⚡ Взять заказ #{i}", callback_data=f"provider_take_{order_id}")]
        for i, order_id in enumerate(order_ids, 1)
    ]
    buttons.append(_back("provider_main_menu"))
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def my_orders_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⚡ Текущие заказы", callback_data="provider_current_orders")],
        [InlineKeyboardButton(text="✅ Выполненные заказы", callback_data="provider_completed_orders")],
        _back("provider_main_menu"),
    ])


def current_orders_keyboard(order_ids: list[str]) -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text=f"✅ Завершить заказ #{i}", callback_data=f"provider_request_photos_{order_id}")]
        for i, order_id in enumerate(order_ids, 1)
    ]
    buttons.append(_back("provider_my_orders"))
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def back_to_my_orders_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[_back("provider_my_orders")])


def claimed_order_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📸 Сфотографировал пакет возле двери", callback_data=f"photo_at_door_{order_id}")],
        [InlineKeyboardButton(text="🤝 Передал в руки", callback_data=f"handed_over_{order_id}")],
        _back("provider_my_orders"),
    ])


def handover_denied_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📸 Сфотографировал у двери", callback_data=f"photo_at_door_{order_id}")],
        _back("provider_my_orders", "🔙 К моим заказам"),
    ])


def ready_to_complete_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Завершить заказ", callback_data=f"provider_complete_{order_id}")],
        _back("provider_my_orders", "🔙 К моим заказам"),
    ])


def completion_confirm_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Подтверждаю выполнение", callback_data=f"final_confirm_{order_id}")],
        [InlineKeyboardButton(text="❌ Отмена", callback_data="provider_my_orders")],
    ])


def wallet_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="💸 Вывести средства", callback_data="provider_withdraw")],
        _back("provider_main_menu"),
    ])


def settings_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🌆 Изменить город", callback_data="provider_change_city")],
        [InlineKeyboardButton(text="⏰ График работы", callback_data="provider_schedule")],
        _back("provider_main_menu"),
    ])


def change_city_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[_back("provider_settings")])


def new_order_alert_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📦 Посмотреть заказ", callback_data="provider_new_orders")],
        [InlineKeyboardButton(text="🏠 Главное меню", callback_data="provider_main_menu")],
    ])


# ── Schedule wizard ───────────────────────────────────────

def schedule_mode_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🌍 Всегда на связи (принимать заказы 24/7)", callback_data="schedule_always")],
        [InlineKeyboardButton(text="📅 Задать свой график", callback_data="schedule_custom")],
        _back("provider_settings"),
    ])


def schedule_days_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="Каждый день", callback_data="days_everyday")],
        [InlineKeyboardButton(text="Только будни (пн–пт)", callback_data="days_weekdays")],
        [InlineKeyboardButton(text="Только выходные (сб–вс)", callback_data="days_weekend")],
        [InlineKeyboardButton(text="Указать вручную", callback_data="days_manual")],
        _back("provider_schedule"),
    ])


def schedule_time_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⏰ С 09:00 до 18:00", callback_data="time_9_18")],
        [InlineKeyboardButton(text="⏰ С 10:00 до 20:00", callback_data="time_10_20")],
        [InlineKeyboardButton(text="Указать своё", callback_data="time_custom_input")],
        _back("schedule_custom"),
    ])


def schedule_back_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[_back("schedule_custom")])


def notification_filter_keyboard(back_token: str = "schedule_custom") -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text=label, callback_data=token)]
        for token, label in FILTER_BUTTONS
    ]
    buttons.append(_back(back_token))
    return InlineKeyboardMarkup(inline_keyboard=buttons)
