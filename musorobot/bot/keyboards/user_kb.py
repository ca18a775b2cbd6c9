"""Inline keyboard builders for customer bot interactions."""

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

# Preset pickup windows: (token, label). The label is stored as the order's time text.
TIME_SLOTS = [
    ("slot_1h", "Через 1 час"),
    ("slot_today_evening", "Сегодня 18:00–20:00"),
    ("slot_tomorrow_morning", "Завтра 10:00–12:00"),
]

BAG_LABELS = {
    "small": "маленький 🥟",
    "medium": "средний 🍕",
    "large": "большой 🎒",
}


def back_home_row() -> list[InlineKeyboardButton]:
    return [
        InlineKeyboardButton(text="⬅️ Назад", callback_data="go_back"),
        InlineKeyboardButton(text="🏠 В начало", callback_data="go_home"),
    ]


def back_home_keyboard() -> InlineKeyboardMarkup:
    """Just the navigation row, for free-text prompts."""
    return InlineKeyboardMarkup(inline_keyboard=[back_home_row()])


def role_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🛒 Я заказчик", callback_data="role_customer")],
        [InlineKeyboardButton(text="🧹 Я исполнитель", callback_data="role_performer")],
        back_home_row(),
    ])


def start_order_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Да, начать", callback_data="start_order_yes")],
        [InlineKeyboardButton(text="❌ Нет, позже", callback_data="start_order_no")],
        back_home_row(),
    ])


def saved_address_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Да, использовать", callback_data="use_saved_address")],
        [InlineKeyboardButton(text="🏠 Ввести новый адрес", callback_data="enter_new_address")],
        back_home_row(),
    ])


def save_address_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="💾 Сохранить", callback_data="save_address_yes")],
        [InlineKeyboardButton(text="⛔ Не сохранять", callback_data="save_address_no")],
        back_home_row(),
    ])


def time_choice_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⚡ Срочно (в течение часа)", callback_data="time_choice_urgent")],
        [InlineKeyboardButton(text="🕒 Выбрать время", callback_data="time_choice_select")],
        back_home_row(),
    ])


def time_slots_keyboard() -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text=label, callback_data=token)]
        for token, label in TIME_SLOTS
    ]
    buttons.append([InlineKeyboardButton(text="✍️ Ввести своё время", callback_data="time_enter_custom")])
    buttons.append(back_home_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def bag_count_keyboard() -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text=f"1 {label}", callback_data=f"bag_1_{size}")]
        for size, label in BAG_LABELS.items()
    ]
    buttons.append([InlineKeyboardButton(text="2 пакета ➕", callback_data="bag_2")])
    buttons.append([InlineKeyboardButton(text="3 пакета ➕", callback_data="bag_3")])
    buttons.append(back_home_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def bag_size_keyboard(index: int) -> InlineKeyboardMarkup:
    """Size picker for bag number ``index`` (1-based) of a multi-bag order."""
    buttons = [
        [InlineKeyboardButton(text=f"Пакет {index}: {label}", callback_data=f"bag_size_{size}")]
        for size, label in BAG_LABELS.items()
    ]
    buttons.append(back_home_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def payment_keyboard(amount_set: bool) -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text="💵 Минимальная сумма (100₽)", callback_data="payment_min")],
        [InlineKeyboardButton(text="✍️ Ввести свою сумму", callback_data="payment_custom")],
    ]
    if amount_set:
        buttons.append([InlineKeyboardButton(text="✅ Оплатить", callback_data="pay_now")])
    buttons.append(back_home_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def comment_choice_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📝 Да, добавить", callback_data="comment_yes")],
        [InlineKeyboardButton(text="⛔ Нет", callback_data="comment_no")],
        back_home_row(),
    ])


def main_menu_keyboard() -> InlineKeyboardMarkup:
    """Simple menu shown after help, cancel and unrecognised input."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🗑️ Оформить заказ", callback_data="new_order")],
        [InlineKeyboardButton(text="📞 Связаться с оператором", callback_data="contact_operator")],
        [InlineKeyboardButton(text="❓ Помощь", callback_data="help")],
    ])


# ── Post-completion ───────────────────────────────────────

def handover_confirm_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Подтверждаю", callback_data=f"confirm_handover_{order_id}")],
        [InlineKeyboardButton(text="❌ Не получал", callback_data=f"deny_handover_{order_id}")],
    ])


def check_order_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📸 Проверить выполнение заказа", callback_data=f"check_order_{order_id}")],
    ])


def rating_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⭐" * value, callback_data=f"rate_{order_id}_{value}")]
        for value in range(1, 6)
    ])


def support_keyboard(order_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📞 НАПИСАТЬ В ПОДДЕРЖКУ", callback_data=f"support_{order_id}")],
    ])
