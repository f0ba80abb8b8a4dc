from decimal import Decimal

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.rate_limit import allow_attempt
from copperx_bot.scenes.base import Scene, SceneFlow
from copperx_bot.scenes.common import (
    MIN_TRANSFER_AMOUNT,
    exceeds_balance,
    fail_and_leave,
    load_payee,
    prompt_payees,
    require_token,
)
from copperx_bot.services.rate_limiter import RateLimits
from copperx_bot.utils.formatters import (
    PURPOSE_CODES,
    format_amount,
    format_payee_name,
    format_purpose_code,
    format_recipient,
)
from copperx_bot.utils.keyboards import cancel_keyboard, purpose_keyboard
from copperx_bot.utils.validators import is_valid_email, is_valid_wallet_address, parse_amount


class BatchSendScene(Scene):
    """Build a list of recipients and send to all of them in one request"""
    scene_id = "send_batch"
    initial_state = "summary"
    edges = {
        "summary": ("choose_recipient_type", "select_purpose"),
        "choose_recipient_type": ("enter_recipient", "select_payee", "summary"),
        "select_payee": ("enter_amount", "summary"),
        "enter_recipient": ("enter_amount",),
        "enter_amount": ("summary",),
        "select_purpose": ("confirm", "summary"),
        "confirm": ("select_purpose", "summary"),
    }
    cancel_message = "🚫 *Batch Transfer Cancelled*\n\nNo funds were sent."

    def setup(self):
        self.on_prompt("summary", self.prompt_summary)
        self.on_prompt("choose_recipient_type", self.prompt_recipient_type)
        self.on_prompt("select_payee", self.prompt_payee)
        self.on_prompt("enter_recipient", self.prompt_recipient)
        self.on_prompt("enter_amount", self.prompt_amount)
        self.on_prompt("select_purpose", self.prompt_purpose)
        self.on_prompt("confirm", self.prompt_confirm)

        self.on_text("enter_recipient", self.handle_recipient)
        self.on_text("enter_amount", self.handle_amount)

        self.on_action("add_recipient", self.add_recipient, states=["summary"])
        self.on_action("remove_recipient", self.remove_recipient, states=["summary"])
        self.on_action("proceed_to_purpose", self.proceed_to_purpose, states=["summary"])
        self.on_action("recipient_type", self.choose_recipient_type, states=["choose_recipient_type"])
        self.on_action("select_payee", self.select_payee, states=["select_payee"])
        self.on_action("more_payees", self.more_payees, states=["select_payee"])
        self.on_action("back_to_summary", self.back_to_summary,
                       states=["choose_recipient_type", "select_payee", "select_purpose", "confirm"])
        self.on_action("purpose", self.select_purpose, states=["select_purpose"])
        self.on_action("back_to_purpose", self.back_to_purpose, states=["confirm"])
        self.on_action("confirm_batch", self.confirm, states=["confirm"])

    def initial_data(self, **initial):
        return {
            "recipients": [],
            "current": None,
            "total": "0",
            "purpose_code": None,
            "payee_page": 1,
        }

    @staticmethod
    def _total(recipients) -> Decimal:
        return sum((Decimal(r["amount"]) for r in recipients), Decimal(0))

    # Summary

    async def prompt_summary(self, flow: SceneFlow):
        recipients = flow.data["recipients"]
        keyboard = [[InlineKeyboardButton("➕ Add Recipient", callback_data="add_recipient")]]

        if recipients:
            lines = [f"{i}. {format_recipient(r)}" for i, r in enumerate(recipients, start=1)]
            text = (
                "📦 *Batch Transfer*\n\n"
                + "\n".join(lines)
                + f"\n\n*Total:* {format_amount(flow.data['total'])} USDC"
            )
            keyboard.extend(
                [InlineKeyboardButton(f"🗑 Remove #{i}", callback_data=f"remove_recipient:{i - 1}")]
                for i in range(1, len(recipients) + 1)
            )
            keyboard.append([InlineKeyboardButton("➡️ Continue", callback_data="proceed_to_purpose")])
        else:
            text = "📦 *Batch Transfer*\n\nSend USDC to several recipients at once. Add your first recipient:"

        keyboard.append([InlineKeyboardButton("❌ Cancel", callback_data="cancel")])
        await flow.reply(text, reply_markup=InlineKeyboardMarkup(keyboard))

    async def add_recipient(self, flow: SceneFlow):
        flow.data["current"] = None
        flow.goto("choose_recipient_type")

    async def remove_recipient(self, flow: SceneFlow, index: str = ""):
        recipients = flow.data["recipients"]
        if not index.isdigit() or int(index) >= len(recipients):
            return
        recipients.pop(int(index))
        flow.data["total"] = str(self._total(recipients))
        await self.prompt(flow)

    async def proceed_to_purpose(self, flow: SceneFlow):
        if not flow.data["recipients"]:
            await flow.reply("Please add at least one recipient first.")
            return
        flow.goto("select_purpose")

    async def back_to_summary(self, flow: SceneFlow):
        flow.data["current"] = None
        flow.goto("summary")

    # Adding a recipient

    async def prompt_recipient_type(self, flow: SceneFlow):
        await flow.reply(
            "👤 *Add Recipient*\n\nHow would you like to add this recipient?",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("📧 Email", callback_data="recipient_type:email")],
                [InlineKeyboardButton("👛 Wallet Address", callback_data="recipient_type:wallet")],
                [InlineKeyboardButton("👥 Saved Payee", callback_data="recipient_type:payee")],
                [InlineKeyboardButton("🔙 Back", callback_data="back_to_summary")],
            ]),
        )

    async def choose_recipient_type(self, flow: SceneFlow, recipient_type: str = ""):
        if recipient_type == "payee":
            flow.data["payee_page"] = 1
            flow.goto("select_payee")
        elif recipient_type in ("email", "wallet"):
            flow.data["current"] = {"type": recipient_type}
            flow.goto("enter_recipient")

    async def prompt_payee(self, flow: SceneFlow):
        await prompt_payees(flow, back_action="back_to_summary")

    async def more_payees(self, flow: SceneFlow, page: str = "1"):
        flow.data["payee_page"] = max(1, int(page)) if page.isdigit() else 1
        await self.prompt(flow)

    async def select_payee(self, flow: SceneFlow, payee_id: str = ""):
        if not payee_id:
            return
        payee = await load_payee(flow, payee_id)
        if payee is None:
            return
        flow.data["current"] = {
            "type": "payee",
            "value": payee["id"],
            "payee_name": format_payee_name(payee),
        }
        flow.goto("enter_amount")

    async def prompt_recipient(self, flow: SceneFlow):
        if flow.data["current"]["type"] == "email":
            text = "📧 Please enter the recipient's email address:"
        else:
            text = "👛 Please enter the recipient's wallet address:"
        await flow.reply(text, reply_markup=cancel_keyboard())

    async def handle_recipient(self, flow: SceneFlow, text: str):
        current = flow.data["current"]
        value = text.strip()
        if current["type"] == "email":
            value = value.lower()
            valid = is_valid_email(value)
        else:
            valid = is_valid_wallet_address(value)

        if not valid:
            kind = "email address" if current["type"] == "email" else "wallet address"
            await flow.reply(f"❌ *Invalid {kind.title()}*\n\nPlease enter a valid {kind}:",
                             reply_markup=cancel_keyboard())
            return

        flow.data["current"] = {**current, "value": value}
        flow.goto("enter_amount")

    async def prompt_amount(self, flow: SceneFlow):
        await flow.reply(
            f"💰 Please enter the amount of USDC for this recipient (minimum {MIN_TRANSFER_AMOUNT}):",
            reply_markup=cancel_keyboard(),
        )

    async def handle_amount(self, flow: SceneFlow, text: str):
        amount = parse_amount(text, min_amount=MIN_TRANSFER_AMOUNT)
        if amount is None:
            await flow.reply(
                "❌ *Invalid Amount*\n\n"
                f"Please enter a number of at least {MIN_TRANSFER_AMOUNT} USDC with at most 6 decimal places:",
                reply_markup=cancel_keyboard(),
            )
            return

        token = await require_token(flow)
        if token is None:
            return
        new_total = Decimal(flow.data["total"]) + amount
        if await exceeds_balance(flow, token, new_total):
            return

        flow.data["recipients"].append({**flow.data["current"], "amount": str(amount)})
        flow.data["total"] = str(new_total)
        flow.data["current"] = None
        flow.goto("summary")

    # Purpose and confirmation

    async def prompt_purpose(self, flow: SceneFlow):
        keyboard = purpose_keyboard().inline_keyboard
        rows = [list(row) for row in keyboard[:-1]]
        rows.append([InlineKeyboardButton("🔙 Back to Summary", callback_data="back_to_summary")])
        rows.append([InlineKeyboardButton("❌ Cancel", callback_data="cancel")])
        await flow.reply("🔍 *Select Purpose*\n\nPlease select the purpose of these transfers:",
                         reply_markup=InlineKeyboardMarkup(rows))

    async def select_purpose(self, flow: SceneFlow, code: str = ""):
        if code not in PURPOSE_CODES:
            return
        flow.data["purpose_code"] = code
        flow.goto("confirm")

    async def back_to_purpose(self, flow: SceneFlow):
        flow.goto("select_purpose")

    async def prompt_confirm(self, flow: SceneFlow):
        recipients = flow.data["recipients"]
        lines = [f"{i}. {format_recipient(r)}" for i, r in enumerate(recipients, start=1)]
        await flow.reply(
            "📝 *Confirm Batch Transfer*\n\n"
            + "\n".join(lines)
            + f"\n\n*Total:* {format_amount(flow.data['total'])} USDC"
            + f"\n*Purpose:* {format_purpose_code(flow.data['purpose_code'])}",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("✅ Send All", callback_data="confirm_batch")],
                [InlineKeyboardButton("🔙 Change Purpose", callback_data="back_to_purpose"),
                 InlineKeyboardButton("📝 Edit Recipients", callback_data="back_to_summary")],
                [InlineKeyboardButton("❌ Cancel", callback_data="cancel")],
            ]),
        )

    async def confirm(self, flow: SceneFlow):
        if not await allow_attempt(flow.ctx, RateLimits.SENSITIVE_OPS):
            return
        token = await require_token(flow)
        if token is None:
            return

        recipients = flow.data["recipients"]
        await flow.reply("🔄 Processing your batch transfer...")
        responses = await flow.services.transfers.send_batch(token, recipients, flow.data["purpose_code"])
        if not responses:
            await fail_and_leave(
                flow, "Batch Transfer Failed",
                "We encountered an error processing your batch transfer. Please try again later.",
            )
            return

        failed = [(recipients[i], r["error"]) for i, r in enumerate(responses)
                  if r.get("error") and i < len(recipients)]
        message = "✅ *Batch Transfer Results*\n\n"
        message += f"Successfully processed: *{len(responses) - len(failed)}/{len(responses)}*\n"
        if failed:
            message += f"Failed transfers: *{len(failed)}*\n\n*Details of Failed Transfers:*\n"
            for recipient, error in failed:
                reason = error.get("message") if isinstance(error, dict) else str(error)
                message += f"• {format_recipient(recipient)} - {reason or 'Unknown error'}\n"

        await flow.reply(message, reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton("📋 View Transfer History", callback_data="history")],
            [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
        ]))
        flow.leave()
