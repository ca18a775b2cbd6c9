"""FSM states for the customer, performer and support flows.

Stored in ``user_states.state`` as aiogram labels (``"OrderFlow:awaiting_city"``);
no state at all is stored as ``start``.
"""

from aiogram.fsm.state import State, StatesGroup


class Onboarding(StatesGroup):
    """Role selection after /start."""
    awaiting_role = State()


class OrderFlow(StatesGroup):
    """Customer ordering flow."""
    customer_greeting = State()
    awaiting_city = State()
    choose_address_option = State()
    awaiting_address = State()
    ask_save_address = State()
    awaiting_time_choice = State()
    awaiting_time_slot = State()
    awaiting_custom_time_text = State()
    awaiting_bag_selection = State()
    awaiting_multi_bag_size = State()
    awaiting_payment = State()
    awaiting_custom_amount = State()
    awaiting_comment_choice = State()
    awaiting_comment_text = State()


class SupportFlow(StatesGroup):
    awaiting_support_message = State()


class ProviderFlow(StatesGroup):
    """Performer work flow."""
    awaiting_provider_city = State()
    provider_working = State()
    awaiting_photo_at_door = State()
    awaiting_photo_at_bin = State()
    awaiting_handover_confirmation = State()
    provider_ready_to_complete = State()
    awaiting_completion_confirm = State()


class ScheduleFlow(StatesGroup):
    """Performer schedule and notification filter wizard."""
    provider_schedule = State()
    awaiting_manual_days = State()
    awaiting_custom_time_start = State()
    awaiting_custom_time_end = State()


PHOTO_STATES = (
    ProviderFlow.awaiting_photo_at_door,
    ProviderFlow.awaiting_photo_at_bin,
)
