from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.config.config import SUPPORT_URL
from copperx_bot.errors import AuthExpiredError
from copperx_bot.handlers.context import HandlerContext
from copperx_bot.utils.formatters import format_date, format_kyc_status, md
from copperx_bot.utils.keyboards import (
    back_to_menu_keyboard,
    kyc_keyboard,
    login_keyboard,
    main_menu_keyboard,
)
from copperx_bot.utils.logger import logger

HELP_TEXT = (
    "🤖 *CopperX Bot Help*\n\n"
    "*Commands:*\n"
    "/start - Start or restart the bot\n"
    "/login - Log in with your CopperX email\n"
    "/logout - Log out of your account\n"
    "/profile - View your profile\n"
    "/kyc - Check your KYC status\n"
    "/wallet - View your wallets and balances\n"
    "/deposit - Show your deposit address\n"
    "/send - Send USDC by email or to a wallet\n"
    "/withdraw - Withdraw to your bank account\n"
    "/history - View your transfer history\n"
    "/payees - Manage saved recipients\n"
    "/notifications - Manage deposit notifications\n"
    "/cancel - Cancel the current operation\n"
    "/help - Show this help message\n\n"
    f"For support, please contact the CopperX team via {SUPPORT_URL}"
)


async def start(ctx: HandlerContext) -> None:
    """Start command handler"""
    if ctx.is_authenticated:
        await ctx.reply("👋 Welcome back to CopperX! What would you like to do?",
                        reply_markup=main_menu_keyboard())
        return

    name = f", {md(ctx.event.first_name)}" if ctx.event.first_name else ""
    await ctx.reply(
        f"Welcome to CopperX Payout Bot{name}! 🚀\n\n"
        "This bot allows you to manage your CopperX account, view balances, "
        "and transfer funds directly from Telegram.",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton("🔑 Login", callback_data="login")],
            [InlineKeyboardButton("ℹ️ About CopperX", callback_data="about")],
        ]),
    )


async def help_command(ctx: HandlerContext) -> None:
    await ctx.reply(HELP_TEXT)


async def about(ctx: HandlerContext) -> None:
    await ctx.reply(
        "CopperX is building a stablecoin bank for individuals and businesses.\n\n"
        "Our platform allows you to manage USDC transactions easily and securely.\n\n"
        "Visit https://copperx.io for more information.",
        reply_markup=login_keyboard() if not ctx.is_authenticated else back_to_menu_keyboard(),
    )


async def login(ctx: HandlerContext) -> None:
    """Start the login process, unless the stored session still works"""
    if ctx.is_authenticated:
        try:
            user = await ctx.services.auth.get_current_user(ctx.session)
        except AuthExpiredError:
            await ctx.reply("⚠️ *Session Expired*\n\nYour session has expired. Please log in again.")
        else:
            await ctx.reply(
                f"✅ You're already logged in as *{md(user.get('email', ''))}*.",
                reply_markup=main_menu_keyboard(),
            )
            return

    await ctx.enter_scene("auth")


async def logout(ctx: HandlerContext) -> None:
    ctx.services.notifications.unsubscribe_user(ctx.user_id)
    await ctx.services.auth.logout(ctx.session)
    logger.info(f"User {ctx.user_id} logged out")
    await ctx.reply(
        "👋 You have been logged out successfully.\n\n"
        "Thank you for using the CopperX Payout Bot!",
        reply_markup=login_keyboard(),
    )


async def view_profile(ctx: HandlerContext) -> None:
    """View user profile"""
    user = await ctx.services.auth.get_current_user(ctx.session)

    name = " ".join(filter(None, [user.get("firstName"), user.get("lastName")])) or "N/A"
    profile_text = "📋 *Your Profile*\n\n"
    profile_text += f"👤 Name: {md(name)}\n"
    profile_text += f"📧 Email: {md(user.get('email', 'N/A'))}\n"
    if user.get("role"):
        profile_text += f"🏷 Role: {md(user['role'])}\n"
    if user.get("status"):
        profile_text += f"📌 Status: {md(user['status'])}\n"
    if user.get("createdAt"):
        profile_text += f"📅 Member Since: {format_date(user['createdAt'])}\n"

    await ctx.reply(profile_text, reply_markup=InlineKeyboardMarkup([
        [InlineKeyboardButton("🪪 KYC Status", callback_data="kyc_status")],
        [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
    ]))


async def view_kyc_status(ctx: HandlerContext) -> None:
    """View KYC status"""
    token = ctx.require_token()
    kyc = await ctx.services.kyc.get_latest_kyc(token)
    if kyc is None:
        await ctx.reply("Failed to fetch your KYC status. Please try again later.",
                        reply_markup=back_to_menu_keyboard())
        return

    status = kyc.get("status")
    kyc_text = "🔐 *KYC Status*\n\n"
    kyc_text += f"Status: {format_kyc_status(status)}\n"
    if kyc.get("type"):
        kyc_text += f"Type: {md(kyc['type'].capitalize())}\n"

    if (status or "").lower() == "approved":
        await ctx.reply(kyc_text + "\nYour account is fully verified.", reply_markup=back_to_menu_keyboard())
        return

    kyc_text += "\nComplete KYC verification on the CopperX web platform to access all features."
    await ctx.reply(kyc_text, reply_markup=kyc_keyboard())


async def main_menu(ctx: HandlerContext) -> None:
    """Display the main menu"""
    if not ctx.is_authenticated:
        await start(ctx)
        return
    await ctx.reply("🏠 *Main Menu*\n\nWhat would you like to do today?", reply_markup=main_menu_keyboard())


async def cancel(ctx: HandlerContext) -> None:
    await ctx.reply("Nothing to cancel.", reply_markup=back_to_menu_keyboard())


def register(router) -> None:
    router.command("start", start)
    router.command("help", help_command)
    router.command("about", about)
    router.command("login", login)
    router.command("logout", logout)
    router.command("profile", view_profile)
    router.command("kyc", view_kyc_status)
    router.command("menu", main_menu)
    router.command("cancel", cancel)

    router.action("about", about)
    router.action("login", login)
    router.action("logout", logout)
    router.action("profile", view_profile)
    router.action("kyc_status", view_kyc_status)
    router.action("main_menu", main_menu)
    router.action("cancel", cancel)
