from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.context import HandlerContext
from copperx_bot.utils.chains import get_explorer_tx_url
from copperx_bot.utils.formatters import format_transfer, format_transfer_list
from copperx_bot.utils.keyboards import back_to_menu_keyboard

HISTORY_PAGE_SIZE = 5


async def transfer_menu(ctx: HandlerContext) -> None:
    await ctx.reply(
        "💸 *Send Funds*\n\nWould you like to send to one recipient or several at once?",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton("👤 Single Transfer", callback_data="send_single")],
            [InlineKeyboardButton("📦 Batch Transfer", callback_data="bulk_send")],
            [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
        ]),
    )


async def send_single(ctx: HandlerContext) -> None:
    await ctx.enter_scene("transfer")


async def bulk_send(ctx: HandlerContext) -> None:
    await ctx.enter_scene("send_batch")


async def view_transaction_history(ctx: HandlerContext, page: str = "1") -> None:
    """View transaction history, one page at a time"""
    token = ctx.require_token()
    page = max(1, int(page)) if page.isdigit() else 1

    response = await ctx.services.transfers.get_transfers(token, page=page, limit=HISTORY_PAGE_SIZE)
    if response is None:
        await ctx.reply("Failed to fetch your transaction history. Please try again later.",
                        reply_markup=back_to_menu_keyboard())
        return

    transfers = response.get("data") or []
    if not transfers and page == 1:
        await ctx.reply("You don't have any transactions yet.", reply_markup=back_to_menu_keyboard())
        return

    history_text = f"📜 *Transaction History* (page {page})\n\n"
    history_text += format_transfer_list(transfers, offset=(page - 1) * HISTORY_PAGE_SIZE)

    keyboard = [
        [InlineKeyboardButton(f"🔍 #{index}", callback_data=f"transaction_details:{transfer['id']}")
         for index, transfer in enumerate(transfers, start=(page - 1) * HISTORY_PAGE_SIZE + 1)]
    ] if transfers else []
    navigation = []
    if page > 1:
        navigation.append(InlineKeyboardButton("⬅️ Previous", callback_data=f"history:{page - 1}"))
    if response.get("hasMore"):
        navigation.append(InlineKeyboardButton("➡️ Next", callback_data=f"history:{page + 1}"))
    if navigation:
        keyboard.append(navigation)
    keyboard.append([InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")])

    await ctx.reply(history_text, reply_markup=InlineKeyboardMarkup(keyboard))


async def transaction_details(ctx: HandlerContext, transfer_id: str = "") -> None:
    token = ctx.require_token()
    transfer = await ctx.services.transfers.get_transfer(token, transfer_id) if transfer_id else None
    if not transfer:
        await ctx.reply("Failed to fetch this transaction. Please try again later.",
                        reply_markup=back_to_menu_keyboard())
        return

    keyboard = []
    transactions = transfer.get("transactions") or []
    tx_hash = transactions[0].get("transactionHash") if transactions else None
    network = (transfer.get("destinationAccount") or {}).get("network")
    explorer = get_explorer_tx_url(network, tx_hash) if tx_hash else None
    if explorer:
        keyboard.append([InlineKeyboardButton("🔗 View on Explorer", url=explorer)])
    keyboard.append([InlineKeyboardButton("📜 Back to History", callback_data="history")])

    await ctx.reply(format_transfer(transfer), reply_markup=InlineKeyboardMarkup(keyboard))


async def history_command(ctx: HandlerContext) -> None:
    args = ctx.event.command.args if ctx.event.command else []
    await view_transaction_history(ctx, args[0] if args else "1")


def register(router) -> None:
    router.command("send", transfer_menu)
    router.command("history", history_command)

    router.action("send_funds", transfer_menu)
    router.action("send_single", send_single)
    router.action("bulk_send", bulk_send)
    router.action("history", view_transaction_history)
    router.action("transaction_details", transaction_details)
