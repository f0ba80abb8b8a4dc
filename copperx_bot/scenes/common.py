from decimal import Decimal
from typing import Dict, List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.context import AUTH_REQUIRED_MESSAGE
from copperx_bot.scenes.base import SceneFlow
from copperx_bot.utils.formatters import format_amount, format_payee_name
from copperx_bot.utils.keyboards import back_to_menu_keyboard
from copperx_bot.utils.logger import logger

MIN_TRANSFER_AMOUNT = 1
PAYEES_PER_PAGE = 5


async def fail_and_leave(flow: SceneFlow, title: str, message: str = "Please try again later.") -> None:
    await flow.reply(f"❌ *{title}*\n\n{message}", reply_markup=back_to_menu_keyboard())
    flow.leave()


async def require_token(flow: SceneFlow) -> Optional[str]:
    """Access token for the current user, leaving the scene if there is none"""
    token = flow.access_token()
    if token is None:
        await flow.reply(AUTH_REQUIRED_MESSAGE)
        flow.leave()
    return token


async def exceeds_balance(flow: SceneFlow, token: str, amount: Decimal) -> bool:
    """Tell the user and return True when `amount` is more than they hold"""
    balance = await flow.services.wallets.get_default_balance(token)
    if balance is None:
        logger.warning("Balance unavailable; skipping balance check")
        return False
    if balance < amount:
        await flow.reply(
            "❌ *Insufficient Balance*\n\n"
            f"Your balance is {format_amount(balance)} USDC. Please enter a smaller amount:"
        )
        return True
    return False


def payee_keyboard(payees: List[Dict], page: int, has_more: bool,
                   back_action: Optional[str] = None) -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton(f"👤 {format_payee_name(payee)}", callback_data=f"select_payee:{payee['id']}")]
        for payee in payees
    ]
    navigation = []
    if page > 1:
        navigation.append(InlineKeyboardButton("⬅️ Previous", callback_data=f"more_payees:{page - 1}"))
    if has_more:
        navigation.append(InlineKeyboardButton("➡️ More", callback_data=f"more_payees:{page + 1}"))
    if navigation:
        keyboard.append(navigation)
    if back_action:
        keyboard.append([InlineKeyboardButton("🔙 Back", callback_data=back_action)])
    keyboard.append([InlineKeyboardButton("❌ Cancel", callback_data="cancel")])
    return InlineKeyboardMarkup(keyboard)


async def prompt_payees(flow: SceneFlow, back_action: Optional[str] = None) -> None:
    """Show one page of saved payees as buttons"""
    token = await require_token(flow)
    if token is None:
        return

    page = flow.data.get("payee_page") or 1
    result = await flow.services.payees.get_payees(token, page=page, limit=PAYEES_PER_PAGE)
    if result is None:
        await fail_and_leave(flow, "Error Loading Payees")
        return

    payees = result.get("data") or []
    if not payees:
        await flow.reply(
            "You don't have any saved payees yet. Add one with /payees.",
            reply_markup=payee_keyboard([], page, False, back_action),
        )
        return

    await flow.reply(
        "👥 *Select a Payee*",
        reply_markup=payee_keyboard(payees, page, bool(result.get("hasMore")), back_action),
    )


async def load_payee(flow: SceneFlow, payee_id: str) -> Optional[Dict]:
    token = await require_token(flow)
    if token is None:
        return None
    payee = await flow.services.payees.get_payee(token, payee_id)
    if payee is None:
        await fail_and_leave(flow, "Payee Not Found", "We couldn't load that payee. Please try again later.")
    return payee
