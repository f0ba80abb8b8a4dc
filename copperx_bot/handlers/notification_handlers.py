from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.context import HandlerContext
from copperx_bot.utils.keyboards import back_to_menu_keyboard
from copperx_bot.utils.logger import logger

UNAVAILABLE_MESSAGE = (
    "🔕 *Notifications Unavailable*\n\n"
    "Real-time deposit notifications are not enabled on this bot."
)


async def subscribe_user(ctx: HandlerContext) -> bool:
    """Link the logged-in user to their organization's deposit events"""
    auth = ctx.session.auth
    if auth is None or not auth.organization_id:
        return False
    return await ctx.services.notifications.subscribe(ctx.user_id, auth.organization_id, ctx.require_token())


async def notification_settings(ctx: HandlerContext) -> None:
    if not ctx.services.notifications.enabled:
        await ctx.reply(UNAVAILABLE_MESSAGE, reply_markup=back_to_menu_keyboard())
        return

    if ctx.session.notifications_enabled:
        status = "🔔 Deposit notifications are *on*."
        toggle = InlineKeyboardButton("🔕 Turn Off", callback_data="notifications_off")
    else:
        status = "🔕 Deposit notifications are *off*."
        toggle = InlineKeyboardButton("🔔 Turn On", callback_data="notifications_on")

    await ctx.reply(
        f"🔔 *Notifications*\n\n{status}\n\n"
        "You'll get a message here whenever a deposit reaches your organization's wallets.",
        reply_markup=InlineKeyboardMarkup([
            [toggle],
            [InlineKeyboardButton("🧪 Send Test Notification", callback_data="test_notification")],
            [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
        ]),
    )


async def enable_notifications(ctx: HandlerContext) -> None:
    ctx.session.set_preference("notifications_enabled", True)
    logger.info(f"User {ctx.user_id} turned deposit notifications on")
    await subscribe_user(ctx)
    await notification_settings(ctx)


async def disable_notifications(ctx: HandlerContext) -> None:
    ctx.session.set_preference("notifications_enabled", False)
    ctx.services.notifications.unsubscribe_user(ctx.user_id)
    logger.info(f"User {ctx.user_id} turned deposit notifications off")
    await notification_settings(ctx)


async def test_notification(ctx: HandlerContext) -> None:
    if not ctx.services.notifications.enabled:
        await ctx.reply(UNAVAILABLE_MESSAGE, reply_markup=back_to_menu_keyboard())
        return

    token = ctx.require_token()
    await ctx.reply("🔔 Testing notification system...")

    if not await ctx.services.notifications.send_test(token):
        await ctx.reply(
            "❌ *Notification Test Failed*\n\n"
            "We encountered an error while testing the notification system.\n\n"
            "Please try again later or contact support if the problem persists.",
            reply_markup=back_to_menu_keyboard(),
        )
        return

    if ctx.session.notifications_enabled and await subscribe_user(ctx):
        await ctx.reply(
            "✅ *Notification Test Successful*\n\n"
            "You are connected to the real-time notification system and will be told "
            "when deposits are made to your wallet.",
            reply_markup=back_to_menu_keyboard(),
        )
    else:
        await ctx.reply(
            "⚠️ *Notification Connection Error*\n\n"
            "The test notification was sent, but this chat isn't receiving real-time updates.\n\n"
            "Turn notifications on with /notifications or try again later.",
            reply_markup=back_to_menu_keyboard(),
        )


def register(router) -> None:
    router.command("notifications", notification_settings)

    router.action("notifications", notification_settings)
    router.action("notifications_on", enable_notifications)
    router.action("notifications_off", disable_notifications)
    router.action("test_notification", test_notification)
