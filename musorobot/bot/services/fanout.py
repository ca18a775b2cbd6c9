"""
New-order fan-out.

Selects which performers hear about a freshly paid order and builds the
messages for them and for the admin chat. Selection is pure; sending is the
transport's job.
"""

from aiogram.utils.text_decorations import html_decoration as hd

from musorobot.bot.flow import SendText
from musorobot.bot.keyboards.provider_kb import new_order_alert_keyboard
from musorobot.bot.repository import OrderRecord, ProfileRecord

SIZE_NAMES = {
    "one_bag": "Один пакет (до 6 кг)",
    "two_bags": "Два пакета",
    "three_bags": "Три пакета",
}
TIME_NAMES = {
    "within_hour": "В течение часа",
    "custom": "Указанное время",
}


def _passes_filter(order: OrderRecord, notification_filter: str | None) -> bool:
    if notification_filter == "none":
        return False
    if notification_filter == "urgent":
        return order.is_urgent
    if notification_filter == "large":
        return order.bag_count >= 2
    return True


def eligible_performers(order: OrderRecord, profiles: list[ProfileRecord]) -> list[ProfileRecord]:
    """
    Performers to alert about ``order``.

    A performer matches when their city occurs in the order address
    (case-insensitive) and their notification filter admits the order.
    """
    address = (order.address or "").lower()
    selected = []
    for profile in profiles:
        if profile.role != "performer" or not profile.city:
            continue
        if profile.city.lower() not in address:
            continue
        if not _passes_filter(order, profile.notification_filter):
            continue
        selected.append(profile)
    return selected


def _when(order: OrderRecord) -> str:
    if order.is_urgent:
        return "Срочно (в течение часа)"
    return hd.quote(order.custom_time or order.time_option)


def performer_alert(order: OrderRecord, performer_id: int) -> SendText:
    text = (
        "🔔 <b>НОВЫЙ ЗАКАЗ!</b>\n\n"
        f"📍 {hd.quote(order.address)}\n"
        f"💰 {order.amount_major:g}₽\n"
        f"⏰ {_when(order)}\n\n"
        "👉 Открой меню исполнителя, чтобы взять заказ!"
    )
    return SendText(chat_id=performer_id, text=text, keyboard=new_order_alert_keyboard())


def admin_alert(order: OrderRecord, admin_chat_id: int) -> SendText:
    username = hd.quote(f"@{order.username}") if order.username else "не указан"
    name = hd.quote(f"{order.first_name or ''} {order.last_name or ''}")
    bags = f"\n🛍️ Пакеты: {', '.join(order.bags)}" if order.bags else ""
    custom_time = f" ({hd.quote(order.custom_time)})" if order.custom_time else ""
    comment = f"\n💬 Комментарий: {hd.quote(order.comment)}" if order.comment else ""
    created = order.created_at.strftime("%d.%m.%Y, %H:%M:%S") if order.created_at else "—"
    text = (
        f"🔔 <b>НОВЫЙ ЗАКАЗ #{order.short_id}</b>\n\n"
        f"👤 <b>Клиент:</b> {name}\n"
        f"📱 <b>Username:</b> {username}\n"
        f"📍 <b>Адрес:</b> {hd.quote(order.address)}\n"
        f"📦 <b>Объем:</b> {SIZE_NAMES.get(order.size_option, order.size_option)}{bags}\n"
        f"⏰ <b>Время:</b> {TIME_NAMES.get(order.time_option, order.time_option)}{custom_time}\n"
        f"💰 <b>Сумма:</b> {order.amount_major:g}₽\n"
        f"🏷️ <b>Статус:</b> {order.status}\n"
        f"{comment}\n\n"
        f"📅 <b>Дата заказа:</b> {created}"
    )
    return SendText(chat_id=admin_chat_id, text=text)


def new_order_notifications(
    order: OrderRecord,
    profiles: list[ProfileRecord],
    admin_chat_id: int | None,
) -> list[SendText]:
    """Admin alert (when configured) followed by one alert per eligible performer."""
    sends = []
    if admin_chat_id is not None:
        sends.append(admin_alert(order, admin_chat_id))
    for profile in eligible_performers(order, profiles):
        sends.append(performer_alert(order, profile.user_id))
    return sends
