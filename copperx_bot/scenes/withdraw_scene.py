from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.rate_limit import allow_attempt
from copperx_bot.scenes.base import Scene, SceneFlow
from copperx_bot.scenes.common import fail_and_leave, require_token
from copperx_bot.services.rate_limiter import RateLimits
from copperx_bot.utils.formatters import (
    PURPOSE_CODES,
    format_amount,
    format_purpose_code,
    format_quote,
    mask_account_number,
    md,
)
from copperx_bot.utils.keyboards import cancel_keyboard, confirm_keyboard, purpose_keyboard
from copperx_bot.utils.validators import (
    is_safe_input,
    is_valid_account_number,
    is_valid_routing_number,
    is_valid_swift_code,
    parse_amount,
)

BANK_ACCOUNT_TYPES = ("savings", "checking")
MAX_TEXT_LENGTH = 100

# Bank account fields collected as free text: state -> (data key, prompt)
BANK_TEXT_FIELDS = {
    "enter_bank_name": ("bank_name", "🏦 Please enter the name of your bank:"),
    "enter_bank_address": ("bank_address", "📍 Please enter the address of your bank:"),
    "enter_routing_number": ("routing_number", "🔢 Please enter the 9-digit routing number:"),
    "enter_account_number": ("account_number", "🔢 Please enter your account number (4-17 digits):"),
    "enter_beneficiary_name": ("beneficiary_name", "👤 Please enter the account holder's full name:"),
    "enter_swift_code": ("swift_code", "🌐 Please enter the bank's SWIFT code, or N/A if it has none:"),
}


class WithdrawScene(Scene):
    """Withdraw USDC to a bank account.

    The user picks an existing bank account or adds a new one; either way
    the flow continues at the amount, then the quote, purpose and
    confirmation.
    """
    scene_id = "withdraw"
    initial_state = "select_account"
    edges = {
        "select_account": ("enter_amount", "select_provider"),
        "select_provider": ("enter_bank_name",),
        "enter_bank_name": ("enter_bank_address",),
        "enter_bank_address": ("select_bank_account_type",),
        "select_bank_account_type": ("enter_routing_number",),
        "enter_routing_number": ("enter_account_number",),
        "enter_account_number": ("enter_beneficiary_name",),
        "enter_beneficiary_name": ("enter_swift_code",),
        "enter_swift_code": ("confirm_bank_account",),
        "confirm_bank_account": ("enter_amount",),
        "enter_amount": ("select_purpose",),
        "select_purpose": ("confirm",),
    }
    cancel_message = "🚫 *Withdrawal Cancelled*\n\nNo funds were withdrawn."

    def setup(self):
        self.on_prompt("select_account", self.prompt_accounts)
        self.on_prompt("select_provider", self.prompt_providers)
        self.on_prompt("select_bank_account_type", self.prompt_account_type)
        self.on_prompt("confirm_bank_account", self.prompt_confirm_account)
        self.on_prompt("enter_amount", self.prompt_amount)
        self.on_prompt("select_purpose", self.prompt_purpose)
        self.on_prompt("confirm", self.prompt_confirm)
        for state in BANK_TEXT_FIELDS:
            self.on_prompt(state, self.prompt_bank_field)
            self.on_text(state, self.handle_bank_field)
        self.on_text("enter_amount", self.handle_amount)

        self.on_action("select_account", self.select_account, states=["select_account"])
        self.on_action("create_account", self.create_account, states=["select_account"])
        self.on_action("select_provider", self.select_provider, states=["select_provider"])
        self.on_action("bank_type", self.select_account_type, states=["select_bank_account_type"])
        self.on_action("confirm_bank_account", self.confirm_bank_account, states=["confirm_bank_account"])
        self.on_action("purpose", self.select_purpose, states=["select_purpose"])
        self.on_action("confirm_withdrawal", self.confirm, states=["confirm"])

    def initial_data(self, **initial):
        return {
            "account_id": None,
            "account_label": None,
            "provider_id": None,
            "bank_name": None,
            "bank_address": None,
            "bank_account_type": None,
            "routing_number": None,
            "account_number": None,
            "beneficiary_name": None,
            "swift_code": None,
            "amount": None,
            "quote_payload": None,
            "quote_signature": None,
            "purpose_code": None,
        }

    # Account selection

    async def prompt_accounts(self, flow: SceneFlow):
        token = await require_token(flow)
        if token is None:
            return
        accounts = await flow.services.accounts.get_bank_accounts(token)
        if accounts is None:
            await fail_and_leave(flow, "Error Loading Bank Accounts")
            return

        keyboard = []
        for account in accounts:
            bank = account.get("bankAccount") or {}
            label = f"🏦 {bank.get('bankName', 'Bank')} {mask_account_number(bank.get('bankAccountNumber'))}"
            keyboard.append([InlineKeyboardButton(label, callback_data=f"select_account:{account['id']}")])
        keyboard.append([InlineKeyboardButton("➕ Add Bank Account", callback_data="create_account")])
        keyboard.append([InlineKeyboardButton("❌ Cancel", callback_data="cancel")])

        text = "🏦 *Withdraw to Bank*\n\n"
        text += "Select the bank account to withdraw to:" if accounts else "You don't have a bank account yet. Add one to continue:"
        await flow.reply(text, reply_markup=InlineKeyboardMarkup(keyboard))

    async def select_account(self, flow: SceneFlow, account_id: str = ""):
        token = await require_token(flow)
        if token is None:
            return
        accounts = await flow.services.accounts.get_bank_accounts(token)
        if accounts is None:
            await fail_and_leave(flow, "Error Loading Bank Accounts")
            return
        account = next((a for a in accounts if str(a.get("id")) == account_id), None)
        if account is None:
            await flow.reply("That bank account is no longer available. Please choose another one.")
            return

        bank = account.get("bankAccount") or {}
        flow.data["account_id"] = account["id"]
        flow.data["account_label"] = f"{bank.get('bankName', 'Bank')} {mask_account_number(bank.get('bankAccountNumber'))}"
        flow.goto("enter_amount")

    # New bank account branch

    async def create_account(self, flow: SceneFlow):
        flow.goto("select_provider")

    async def prompt_providers(self, flow: SceneFlow):
        token = await require_token(flow)
        if token is None:
            return
        providers = await flow.services.accounts.get_providers(token)
        if not providers:
            await fail_and_leave(flow, "No Providers Available", "Bank withdrawals are not available for your account yet.")
            return

        keyboard = [
            [InlineKeyboardButton(provider.get("providerCode") or provider.get("name") or provider["id"],
                                  callback_data=f"select_provider:{provider['id']}")]
            for provider in providers
        ]
        keyboard.append([InlineKeyboardButton("❌ Cancel", callback_data="cancel")])
        await flow.reply("🏛 *Select Provider*\n\nChoose the provider for your bank account:",
                         reply_markup=InlineKeyboardMarkup(keyboard))

    async def select_provider(self, flow: SceneFlow, provider_id: str = ""):
        if not provider_id:
            return
        flow.data["provider_id"] = provider_id
        flow.goto("enter_bank_name")

    async def prompt_bank_field(self, flow: SceneFlow):
        _, prompt = BANK_TEXT_FIELDS[flow.state]
        await flow.reply(prompt, reply_markup=cancel_keyboard())

    async def handle_bank_field(self, flow: SceneFlow, text: str):
        key, prompt = BANK_TEXT_FIELDS[flow.state]
        value = text.strip()
        error = None

        if flow.state == "enter_routing_number" and not is_valid_routing_number(value):
            error = "The routing number must be exactly 9 digits."
        elif flow.state == "enter_account_number" and not is_valid_account_number(value):
            error = "The account number must be 4 to 17 digits."
        elif flow.state == "enter_swift_code":
            if value.upper() == "N/A":
                value = ""
            elif not is_valid_swift_code(value):
                error = "A SWIFT code has 8 or 11 letters and digits."
            else:
                value = value.upper()
        elif not value or len(value) > MAX_TEXT_LENGTH or not is_safe_input(value):
            error = f"Please enter between 1 and {MAX_TEXT_LENGTH} characters."

        if error:
            await flow.reply(f"❌ *Invalid Input*\n\n{error}\n\n{prompt}", reply_markup=cancel_keyboard())
            return

        flow.data[key] = value
        next_state = {
            "enter_bank_name": "enter_bank_address",
            "enter_bank_address": "select_bank_account_type",
            "enter_routing_number": "enter_account_number",
            "enter_account_number": "enter_beneficiary_name",
            "enter_beneficiary_name": "enter_swift_code",
            "enter_swift_code": "confirm_bank_account",
        }[flow.state]
        flow.goto(next_state)

    async def prompt_account_type(self, flow: SceneFlow):
        await flow.reply(
            "💳 What type of bank account is it?",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("Savings", callback_data="bank_type:savings"),
                 InlineKeyboardButton("Checking", callback_data="bank_type:checking")],
                [InlineKeyboardButton("❌ Cancel", callback_data="cancel")],
            ]),
        )

    async def select_account_type(self, flow: SceneFlow, account_type: str = ""):
        if account_type not in BANK_ACCOUNT_TYPES:
            return
        flow.data["bank_account_type"] = account_type
        flow.goto("enter_routing_number")

    async def prompt_confirm_account(self, flow: SceneFlow):
        data = flow.data
        await flow.reply(
            "📝 *Confirm Bank Account*\n\n"
            f"Bank: {md(data['bank_name'])}\n"
            f"Address: {md(data['bank_address'])}\n"
            f"Type: {data['bank_account_type'].capitalize()}\n"
            f"Routing Number: {data['routing_number']}\n"
            f"Account Number: {mask_account_number(data['account_number'])}\n"
            f"Beneficiary: {md(data['beneficiary_name'])}\n"
            f"SWIFT: {data['swift_code'] or 'Not provided'}",
            reply_markup=confirm_keyboard("confirm_bank_account", "✅ Add Account"),
        )

    async def confirm_bank_account(self, flow: SceneFlow):
        token = await require_token(flow)
        if token is None:
            return

        data = flow.data
        account = await flow.services.accounts.create_bank_account(token, data["provider_id"], {
            "bankName": data["bank_name"],
            "bankAddress": data["bank_address"],
            "bankAccountType": data["bank_account_type"],
            "bankRoutingNumber": data["routing_number"],
            "bankAccountNumber": data["account_number"],
            "bankBeneficiaryName": data["beneficiary_name"],
            "swiftCode": data["swift_code"] or "",
        })
        if not account:
            await fail_and_leave(
                flow, "Error Creating Bank Account",
                "We encountered an issue while creating your bank account. Please try again later.",
            )
            return

        flow.data["account_id"] = account["id"]
        flow.data["account_label"] = f"{data['bank_name']} {mask_account_number(data['account_number'])}"
        await flow.reply("✅ Bank account added.")
        flow.goto("enter_amount")

    # Amount, quote and confirmation

    async def prompt_amount(self, flow: SceneFlow):
        await flow.reply(
            f"💰 Withdrawing to *{md(flow.data['account_label'])}*\n\nPlease enter the amount of USDC to withdraw:",
            reply_markup=cancel_keyboard(),
        )

    async def handle_amount(self, flow: SceneFlow, text: str):
        amount = parse_amount(text)
        if amount is None:
            await flow.reply(
                "❌ *Invalid Amount*\n\nPlease enter a valid amount greater than 0 with at most 6 decimal places:",
                reply_markup=cancel_keyboard(),
            )
            return

        token = await require_token(flow)
        if token is None:
            return

        await flow.reply("Getting a quote for your withdrawal...")
        quote = await flow.services.quotes.get_offramp_quote(token, amount, flow.data["account_id"])
        if not quote or quote.get("error") or not quote.get("quotePayload"):
            detail = f"Error: {md(quote['error'])}" if quote and quote.get("error") else "Please try again later."
            await fail_and_leave(flow, "Error Getting Quote", detail)
            return

        flow.data["amount"] = str(amount)
        flow.data["quote_payload"] = quote["quotePayload"]
        flow.data["quote_signature"] = quote.get("quoteSignature")
        await flow.reply(format_quote(quote, amount))
        flow.goto("select_purpose")

    async def prompt_purpose(self, flow: SceneFlow):
        await flow.reply("🔍 *Select Purpose*\n\nPlease select the purpose of this withdrawal:",
                         reply_markup=purpose_keyboard())

    async def select_purpose(self, flow: SceneFlow, code: str = ""):
        if code not in PURPOSE_CODES:
            return
        flow.data["purpose_code"] = code
        flow.goto("confirm")

    async def prompt_confirm(self, flow: SceneFlow):
        data = flow.data
        await flow.reply(
            "📝 *Confirm Withdrawal*\n\n"
            f"Bank Account: {md(data['account_label'])}\n"
            f"Amount: {format_amount(data['amount'])} USDC\n"
            f"Purpose: {format_purpose_code(data['purpose_code'])}\n\n"
            "Please confirm this withdrawal:",
            reply_markup=confirm_keyboard("confirm_withdrawal"),
        )

    async def confirm(self, flow: SceneFlow):
        if not await allow_attempt(flow.ctx, RateLimits.SENSITIVE_OPS):
            return
        token = await require_token(flow)
        if token is None:
            return

        data = flow.data
        await flow.reply("🔄 Processing your withdrawal...")
        result = await flow.services.transfers.withdraw_to_bank(
            token, data["quote_payload"], data["quote_signature"], data["purpose_code"]
        )
        if not result:
            await fail_and_leave(flow, "Withdrawal Failed", "We couldn't process your withdrawal. Please try again later.")
            return

        await flow.reply(
            "✅ *Withdrawal Initiated*\n\n"
            f"{format_amount(data['amount'])} USDC is on its way to {md(data['account_label'])}.\n"
            f"Transfer ID: `{result.get('id', 'N/A')}`",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("📋 View History", callback_data="history")],
                [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
            ]),
        )
        flow.leave()
