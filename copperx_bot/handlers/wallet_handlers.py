from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.context import HandlerContext
from copperx_bot.utils.chains import format_network_name, get_explorer_address_url
from copperx_bot.utils.formatters import format_balance, format_wallet, format_wallet_address
from copperx_bot.utils.keyboards import back_to_menu_keyboard


def _wallet_balance(balances, wallet_id):
    entry = next((b for b in balances or [] if b.get("walletId") == wallet_id), {})
    amounts = entry.get("balances") or []
    return amounts[0] if amounts else {}


async def wallet_menu(ctx: HandlerContext) -> None:
    """Show every wallet with its balance"""
    token = ctx.require_token()
    wallets = await ctx.services.wallets.get_wallets(token)
    balances = await ctx.services.wallets.get_balances(token)

    if wallets is None:
        await ctx.reply("Failed to fetch wallet information. Please try again later.",
                        reply_markup=back_to_menu_keyboard())
        return

    if not wallets:
        await ctx.reply(
            "👛 *Your Wallets*\n\nYou don't have any wallets yet.",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("➕ Create Wallet", callback_data="create_wallet")],
                [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
            ]),
        )
        return

    wallet_text = "👛 *Your Wallets*\n\n"
    keyboard = []
    for wallet in wallets:
        balance = _wallet_balance(balances, wallet.get("id"))
        default = "✅ " if wallet.get("isDefault") else ""
        wallet_text += f"{default}*{format_network_name(wallet.get('network'))}*\n"
        wallet_text += f"Address: `{format_wallet_address(wallet.get('walletAddress') or '')}`\n"
        wallet_text += f"Balance: {format_balance(balance)}\n\n"
        keyboard.append([InlineKeyboardButton(
            f"🔍 {format_network_name(wallet.get('network'))}",
            callback_data=f"wallet_details:{wallet['id']}",
        )])

    keyboard.extend([
        [InlineKeyboardButton("📥 Deposit", callback_data="deposit_funds"),
         InlineKeyboardButton("➕ Create Wallet", callback_data="create_wallet")],
        [InlineKeyboardButton("⭐ Set Default Wallet", callback_data="set_default_wallet")],
        [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
    ])
    await ctx.reply(wallet_text.rstrip(), reply_markup=InlineKeyboardMarkup(keyboard))


async def wallet_details(ctx: HandlerContext, wallet_id: str = "") -> None:
    token = ctx.require_token()
    wallets = await ctx.services.wallets.get_wallets(token)
    wallet = next((w for w in wallets or [] if str(w.get("id")) == wallet_id), None)
    if wallet is None:
        await ctx.reply("Wallet not found.", reply_markup=back_to_menu_keyboard())
        return

    balances = await ctx.services.wallets.get_balances(token)
    text = format_wallet(wallet)
    text += f"\nBalance: {format_balance(_wallet_balance(balances, wallet.get('id')))}"

    keyboard = []
    explorer = get_explorer_address_url(wallet.get("network"), wallet.get("walletAddress"))
    if explorer:
        keyboard.append([InlineKeyboardButton("🔗 View on Explorer", url=explorer)])
    keyboard.append([InlineKeyboardButton("📥 Deposit", callback_data=f"deposit_funds:{wallet['id']}")])
    if not wallet.get("isDefault"):
        keyboard.append([InlineKeyboardButton("⭐ Set as Default", callback_data=f"set_default_wallet:{wallet['id']}")])
    keyboard.append([InlineKeyboardButton("🔙 Back to Wallets", callback_data="view_wallets")])
    await ctx.reply(text, reply_markup=InlineKeyboardMarkup(keyboard))


async def create_wallet(ctx: HandlerContext, network: str = "") -> None:
    await ctx.enter_scene("create_wallet", network=network or None)


async def set_default_wallet(ctx: HandlerContext, wallet_id: str = "") -> None:
    await ctx.enter_scene("set_default_wallet", wallet_id=wallet_id or None)


async def deposit_funds(ctx: HandlerContext, wallet_id: str = "") -> None:
    """Show deposit instructions for one wallet, the default one unless named"""
    token = ctx.require_token()
    if wallet_id:
        wallets = await ctx.services.wallets.get_wallets(token)
        wallet = next((w for w in wallets or [] if str(w.get("id")) == wallet_id), None)
        if wallet is None:
            await ctx.reply("Wallet not found.", reply_markup=back_to_menu_keyboard())
            return
    else:
        wallet = await ctx.services.wallets.get_default_wallet(token)
        if not wallet:
            await ctx.reply("Failed to fetch your default wallet. Please try again later.",
                            reply_markup=back_to_menu_keyboard())
            return

    network = format_network_name(wallet.get("network"))
    deposit_text = "📥 *Deposit USDC*\n\n"
    deposit_text += "To deposit funds to your CopperX account, please send USDC to your wallet address:\n\n"
    deposit_text += f"Network: *{network}*\n"
    deposit_text += f"Address: `{wallet.get('walletAddress', 'N/A')}`\n\n"
    deposit_text += "Important notes:\n"
    deposit_text += "• Only send USDC to this address\n"
    deposit_text += f"• Ensure you're sending on the {network} network\n"
    deposit_text += "• Deposits typically reflect in your account within minutes"

    await ctx.reply(deposit_text, reply_markup=InlineKeyboardMarkup([
        [InlineKeyboardButton("✅ I've Sent Funds", callback_data="deposit_done")],
        [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
    ]))


async def deposit_done(ctx: HandlerContext) -> None:
    await ctx.reply(
        "👍 Thanks! Your deposit will show up in /wallet once it is confirmed on-chain.",
        reply_markup=back_to_menu_keyboard(),
    )


def register(router) -> None:
    router.command("wallet", wallet_menu)
    router.command("deposit", deposit_funds)

    router.action("view_wallets", wallet_menu)
    router.action("wallet_details", wallet_details)
    router.action("create_wallet", create_wallet)
    router.action("set_default_wallet", set_default_wallet)
    router.action("deposit_funds", deposit_funds)
    router.action("deposit_done", deposit_done)
