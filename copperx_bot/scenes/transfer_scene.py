from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.events import Event
from copperx_bot.handlers.rate_limit import allow_attempt
from copperx_bot.scenes.base import SceneFlow, WizardScene
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
    format_wallet_address,
    md,
)
from copperx_bot.utils.keyboards import cancel_keyboard, confirm_keyboard, purpose_keyboard
from copperx_bot.utils.validators import is_valid_email, is_valid_wallet_address, parse_amount

RECIPIENT_TYPES = ("email", "wallet", "payee")
CALLBACK_DATA_LIMIT = 64


class TransferScene(WizardScene):
    """Send USDC to one recipient.

    Email and wallet recipients are typed in; saved payees are picked from
    a list, which branches off the main line and rejoins it at the amount.
    """
    scene_id = "transfer"
    steps = ("choose_recipient_type", "enter_recipient", "enter_amount", "select_purpose", "confirm")
    branches = {
        "choose_recipient_type": ("select_payee",),
        "select_payee": ("enter_amount", "choose_recipient_type"),
    }
    cancel_message = "🚫 *Transfer Cancelled*\n\nNo funds were sent."

    def setup(self):
        self.on_step("choose_recipient_type", self.choose_recipient_type,
                     prompt=self.prompt_recipient_type, actions=["recipient_type"], accepts_text=False)
        self.on_step("select_payee", self.select_payee,
                     prompt=self.prompt_payee, actions=["select_payee", "more_payees", "back_to_recipient_type"],
                     accepts_text=False)
        self.on_step("enter_recipient", self.enter_recipient, prompt=self.prompt_recipient)
        self.on_step("enter_amount", self.enter_amount, prompt=self.prompt_amount)
        self.on_step("select_purpose", self.select_purpose,
                     prompt=self.prompt_purpose, actions=["purpose"], accepts_text=False)
        self.on_step("confirm", self.confirm,
                     prompt=self.prompt_confirm, actions=["confirm_transfer"], accepts_text=False)

    def initial_data(self, **initial):
        return {
            "recipient_type": None,
            "recipient": None,
            "recipient_label": None,
            "amount": None,
            "purpose_code": None,
            "payee_page": 1,
        }

    # Prompts

    async def prompt_recipient_type(self, flow: SceneFlow):
        await flow.reply(
            "💸 *Send Funds*\n\nHow would you like to send?",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("📧 Email", callback_data="recipient_type:email")],
                [InlineKeyboardButton("👛 Wallet Address", callback_data="recipient_type:wallet")],
                [InlineKeyboardButton("👥 Saved Payee", callback_data="recipient_type:payee")],
                [InlineKeyboardButton("❌ Cancel", callback_data="cancel")],
            ]),
        )

    async def prompt_payee(self, flow: SceneFlow):
        await prompt_payees(flow, back_action="back_to_recipient_type")

    async def prompt_recipient(self, flow: SceneFlow):
        if flow.data["recipient_type"] == "email":
            text = "📧 Please enter the recipient's email address:"
        else:
            text = "👛 Please enter the recipient's wallet address:"
        await flow.reply(text, reply_markup=cancel_keyboard())

    async def prompt_amount(self, flow: SceneFlow):
        await flow.reply(
            f"💰 Sending to *{md(flow.data['recipient_label'])}*\n\n"
            f"Please enter the amount of USDC to send (minimum {MIN_TRANSFER_AMOUNT}):",
            reply_markup=cancel_keyboard(),
        )

    async def prompt_purpose(self, flow: SceneFlow):
        await flow.reply("🔍 *Select Purpose*\n\nPlease select the purpose of this transfer:",
                         reply_markup=purpose_keyboard())

    async def prompt_confirm(self, flow: SceneFlow):
        data = flow.data
        await flow.reply(
            "📝 *Confirm Transfer*\n\n"
            f"Recipient: {md(data['recipient_label'])}\n"
            f"Amount: {format_amount(data['amount'])} USDC\n"
            f"Purpose: {format_purpose_code(data['purpose_code'])}\n\n"
            "Please confirm this transfer:",
            reply_markup=confirm_keyboard("confirm_transfer"),
        )

    # Steps

    async def choose_recipient_type(self, flow: SceneFlow, event: Event):
        recipient_type = (event.action.params or [None])[0]
        if recipient_type not in RECIPIENT_TYPES:
            return

        flow.data["recipient_type"] = recipient_type
        if recipient_type == "payee":
            flow.data["payee_page"] = 1
            flow.goto("select_payee")
        else:
            flow.advance()

    async def select_payee(self, flow: SceneFlow, event: Event):
        action = event.action
        param = action.params[0] if action.params else ""
        if action.name == "back_to_recipient_type":
            flow.data["recipient_type"] = None
            flow.goto("choose_recipient_type")
            return

        if action.name == "more_payees":
            flow.data["payee_page"] = max(1, int(param)) if param.isdigit() else 1
            await self.prompt(flow)
            return

        if not param:
            return
        payee = await load_payee(flow, param)
        if payee is None:
            return
        flow.data["recipient"] = payee["id"]
        flow.data["recipient_label"] = f"{format_payee_name(payee)} ({payee.get('email', '')})"
        flow.goto("enter_amount")

    async def enter_recipient(self, flow: SceneFlow, event: Event):
        value = event.input_text
        if flow.data["recipient_type"] == "email":
            value = value.lower()
            if not is_valid_email(value):
                await flow.reply(
                    "❌ *Invalid Email Address*\n\nPlease enter a valid email address:",
                    reply_markup=cancel_keyboard(),
                )
                return
            label = value
        else:
            if not is_valid_wallet_address(value):
                await flow.reply(
                    "❌ *Invalid Wallet Address*\n\nPlease check the address and enter it again:",
                    reply_markup=cancel_keyboard(),
                )
                return
            label = format_wallet_address(value)

        flow.data["recipient"] = value
        flow.data["recipient_label"] = label
        flow.advance()

    async def enter_amount(self, flow: SceneFlow, event: Event):
        amount = parse_amount(event.input_text, min_amount=MIN_TRANSFER_AMOUNT)
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
        if await exceeds_balance(flow, token, amount):
            return

        flow.data["amount"] = str(amount)
        flow.advance()

    async def select_purpose(self, flow: SceneFlow, event: Event):
        code = (event.action.params or [None])[0]
        if code not in PURPOSE_CODES:
            return
        flow.data["purpose_code"] = code
        flow.advance()

    async def confirm(self, flow: SceneFlow, event: Event):
        if not await allow_attempt(flow.ctx, RateLimits.SENSITIVE_OPS):
            return
        token = await require_token(flow)
        if token is None:
            return

        data = flow.data
        await flow.reply("🔄 Processing your transfer...")
        result = await flow.services.transfers.send(
            token,
            data["recipient_type"],
            data["recipient"],
            data["amount"],
            data["purpose_code"],
        )
        if not result:
            await fail_and_leave(flow, "Transfer Failed", "We couldn't complete your transfer. Please try again later.")
            return

        keyboard = []
        save_action = f"save_payee:{data['recipient']}"
        if data["recipient_type"] == "email" and len(save_action.encode()) <= CALLBACK_DATA_LIMIT:
            keyboard.append([InlineKeyboardButton("💾 Save as Payee", callback_data=save_action)])
        keyboard.append([InlineKeyboardButton("📋 View History", callback_data="history")])
        keyboard.append([InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")])

        await flow.reply(
            "✅ *Transfer Successful*\n\n"
            f"You sent {format_amount(data['amount'])} USDC to {md(data['recipient_label'])}.\n"
            f"Transfer ID: `{result.get('id', 'N/A')}`",
            reply_markup=InlineKeyboardMarkup(keyboard),
        )
        flow.leave()
