from typing import List, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.config.config import KYC_URL
from copperx_bot.utils.chains import get_chain_id, get_explorer_tx_url
from copperx_bot.utils.formatters import PURPOSE_CODES


def rows(buttons: Sequence[InlineKeyboardButton], width: int = 2) -> List[List[InlineKeyboardButton]]:
    return [list(buttons[i:i + width]) for i in range(0, len(buttons), width)]


def main_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("👛 Wallets", callback_data="view_wallets"),
         InlineKeyboardButton("💸 Send", callback_data="send_funds")],
        [InlineKeyboardButton("🏦 Withdraw", callback_data="withdraw_funds"),
         InlineKeyboardButton("📥 Deposit", callback_data="deposit_funds")],
        [InlineKeyboardButton("📋 History", callback_data="history"),
         InlineKeyboardButton("👥 Payees", callback_data="list_payees")],
        [InlineKeyboardButton("👤 Profile", callback_data="profile"),
         InlineKeyboardButton("🪪 KYC", callback_data="kyc_status")],
        [InlineKeyboardButton("🔔 Notifications", callback_data="notifications")],
    ])


def back_to_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")]])


def cancel_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("❌ Cancel", callback_data="cancel")]])


def login_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("🔑 Login", callback_data="login")]])


def confirm_keyboard(confirm_action: str, confirm_text: str = "✅ Confirm") -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(confirm_text, callback_data=confirm_action),
         InlineKeyboardButton("❌ Cancel", callback_data="cancel")],
    ])


def purpose_keyboard() -> InlineKeyboardMarkup:
    buttons = [
        InlineKeyboardButton(label, callback_data=f"purpose:{code}")
        for code, label in PURPOSE_CODES.items()
    ]
    return InlineKeyboardMarkup(rows(buttons) + [[InlineKeyboardButton("❌ Cancel", callback_data="cancel")]])


def kyc_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🪪 Complete KYC", url=KYC_URL)],
        [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
    ])


def deposit_notification_keyboard(event) -> InlineKeyboardMarkup:
    keyboard = [[
        InlineKeyboardButton("📜 View History", callback_data="history"),
        InlineKeyboardButton("💼 Check Wallet", callback_data="view_wallets"),
    ]]
    metadata = event.get("metadata") or {}
    explorer = get_explorer_tx_url(get_chain_id(metadata.get("network")), metadata.get("txHash"))
    if explorer:
        keyboard.append([InlineKeyboardButton("🔎 View on Explorer", url=explorer)])
    return InlineKeyboardMarkup(keyboard)
