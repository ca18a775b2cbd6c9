from musorobot.api.models.order import Order, ORDER_STATUSES
from musorobot.api.models.profile import Profile
from musorobot.api.models.user_state import UserState, BotSetting

__all__ = ["Order", "ORDER_STATUSES", "Profile", "UserState", "BotSetting"]
