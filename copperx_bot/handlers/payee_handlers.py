from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.context import HandlerContext
from copperx_bot.utils.formatters import format_payee_list
from copperx_bot.utils.keyboards import back_to_menu_keyboard
from copperx_bot.utils.validators import is_valid_email

PAYEES_PAGE_SIZE = 5


async def list_payees(ctx: HandlerContext, page: str = "1") -> None:
    token = ctx.require_token()
    page = max(1, int(page)) if page.isdigit() else 1

    response = await ctx.services.payees.get_payees(token, page=page, limit=PAYEES_PAGE_SIZE)
    if response is None:
        await ctx.reply("Failed to fetch your payees. Please try again later.",
                        reply_markup=back_to_menu_keyboard())
        return

    payees = response.get("data") or []
    text = "👥 *Saved Payees*\n\n" + format_payee_list(payees, offset=(page - 1) * PAYEES_PAGE_SIZE)

    keyboard = []
    navigation = []
    if page > 1:
        navigation.append(InlineKeyboardButton("⬅️ Previous", callback_data=f"list_payees:{page - 1}"))
    if response.get("hasMore"):
        navigation.append(InlineKeyboardButton("➡️ Next", callback_data=f"list_payees:{page + 1}"))
    if navigation:
        keyboard.append(navigation)
    keyboard.append([InlineKeyboardButton("➕ Add Payee", callback_data="add_payee")])
    if payees:
        keyboard.append([InlineKeyboardButton("🗑 Remove Payee", callback_data="delete_payee")])
    keyboard.append([InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")])

    await ctx.reply(text, reply_markup=InlineKeyboardMarkup(keyboard))


async def add_payee(ctx: HandlerContext) -> None:
    await ctx.enter_scene("create_payee")


async def save_payee(ctx: HandlerContext, email: str = "") -> None:
    """Offer to save the recipient of a finished transfer"""
    await ctx.enter_scene("create_payee", email=email if is_valid_email(email) else None)


async def delete_payee(ctx: HandlerContext, payee_id: str = "") -> None:
    await ctx.enter_scene("remove_payee", payee_id=payee_id or None)


def register(router) -> None:
    router.command("payees", list_payees)

    router.action("list_payees", list_payees)
    router.action("add_payee", add_payee)
    router.action("save_payee", save_payee)
    router.action("delete_payee", delete_payee)
