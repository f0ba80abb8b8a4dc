from copperx_bot.handlers.context import HandlerContext
from copperx_bot.utils.keyboards import kyc_keyboard
from copperx_bot.utils.logger import logger


async def bank_withdrawal_start(ctx: HandlerContext) -> None:
    """Start bank withdrawal process"""
    token = ctx.require_token()

    kyc = await ctx.services.kyc.get_latest_kyc(token)
    if kyc is not None and (kyc.get("status") or "").lower() != "approved":
        logger.info(f"User {ctx.user_id} tried to withdraw without approved KYC")
        await ctx.reply(
            "🔐 *KYC Required*\n\n"
            "Bank withdrawals are available once your KYC verification is approved.",
            reply_markup=kyc_keyboard(),
        )
        return

    await ctx.enter_scene("withdraw")


def register(router) -> None:
    router.command("withdraw", bank_withdrawal_start)
    router.action("withdraw_funds", bank_withdrawal_start)
