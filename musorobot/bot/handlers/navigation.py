"""Back / home buttons shared by every customer menu."""

from aiogram import F, Router
from aiogram.types import CallbackQuery

from musorobot.bot.flow import Context, Transition
from musorobot.bot.handlers.customer import SCREENS, show_role
from musorobot.bot.states.accumulators import OrderDraft
from musorobot.bot.states.user_states import Onboarding, OrderFlow

router = Router(name="navigation")

# state the user is in → state whose prompt "Назад" re-enters
BACK = {
    OrderFlow.customer_greeting.state: Onboarding.awaiting_role.state,
    OrderFlow.awaiting_city.state: OrderFlow.customer_greeting.state,
    OrderFlow.awaiting_address.state: OrderFlow.awaiting_city.state,
    OrderFlow.ask_save_address.state: OrderFlow.awaiting_address.state,
    OrderFlow.awaiting_time_choice.state: OrderFlow.ask_save_address.state,
    OrderFlow.awaiting_time_slot.state: OrderFlow.awaiting_time_choice.state,
    OrderFlow.awaiting_bag_selection.state: OrderFlow.awaiting_time_choice.state,
    OrderFlow.awaiting_multi_bag_size.state: OrderFlow.awaiting_bag_selection.state,
    OrderFlow.awaiting_payment.state: OrderFlow.awaiting_bag_selection.state,
    OrderFlow.awaiting_custom_amount.state: OrderFlow.awaiting_payment.state,
    OrderFlow.awaiting_comment_choice.state: OrderFlow.awaiting_payment.state,
    OrderFlow.awaiting_comment_text.state: OrderFlow.awaiting_comment_choice.state,
}


@router.callback_query(F.data == "go_home")
async def go_home(callback: CallbackQuery, ctx: Context) -> Transition:
    return show_role(ctx)


@router.callback_query(F.data == "go_back")
async def go_back(callback: CallbackQuery, ctx: Context) -> Transition:
    target = BACK.get(ctx.state)
    if target is None:
        return show_role(ctx)
    draft = ctx.flow(OrderDraft)
    if ctx.state == OrderFlow.awaiting_multi_bag_size.state:
        # partially collected sizes are dropped
        draft.bags = []
        draft.bag_count = 0
    return SCREENS[target](ctx, draft)
