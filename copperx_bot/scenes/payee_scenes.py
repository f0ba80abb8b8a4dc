from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.scenes.base import Scene, SceneFlow
from copperx_bot.scenes.common import fail_and_leave, load_payee, prompt_payees, require_token
from copperx_bot.utils.formatters import format_payee_name, md
from copperx_bot.utils.keyboards import back_to_menu_keyboard, cancel_keyboard, confirm_keyboard
from copperx_bot.utils.validators import is_safe_input, is_valid_email

MIN_NICKNAME_LENGTH = 2
MAX_NAME_LENGTH = 50


def skip_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("⏭ Skip", callback_data="skip")],
        [InlineKeyboardButton("❌ Cancel", callback_data="cancel")],
    ])


class CreatePayeeScene(Scene):
    """Save a recipient by email, with a nickname and optional names.

    Entered with `email=...` (e.g. after a transfer) it starts at the
    nickname.
    """
    scene_id = "create_payee"
    initial_state = "enter_email"
    edges = {
        "enter_email": ("enter_nickname",),
        "enter_nickname": ("enter_first_name",),
        "enter_first_name": ("enter_last_name",),
        "enter_last_name": ("confirm",),
    }
    cancel_message = "🚫 *Payee Not Saved*\n\nNo changes were made."

    def setup(self):
        self.on_prompt("enter_email", self.prompt_email)
        self.on_prompt("enter_nickname", self.prompt_nickname)
        self.on_prompt("enter_first_name", self.prompt_first_name)
        self.on_prompt("enter_last_name", self.prompt_last_name)
        self.on_prompt("confirm", self.prompt_confirm)

        self.on_text("enter_email", self.handle_email)
        self.on_text("enter_nickname", self.handle_nickname)
        self.on_text("enter_first_name", self.handle_first_name)
        self.on_text("enter_last_name", self.handle_last_name)

        self.on_action("skip", self.skip, states=["enter_first_name", "enter_last_name"])
        self.on_action("confirm_payee", self.confirm, states=["confirm"])

    def initial_data(self, email=None, **initial):
        return {"email": email, "nickname": None, "first_name": None, "last_name": None}

    async def enter(self, flow: SceneFlow):
        email = flow.data["email"]
        if email and is_valid_email(email):
            flow.goto("enter_nickname")
            return
        flow.data["email"] = None
        await self.prompt(flow)

    async def prompt_email(self, flow: SceneFlow):
        await flow.reply("👤 *Add Payee*\n\nPlease enter the payee's email address:",
                         reply_markup=cancel_keyboard())

    async def prompt_nickname(self, flow: SceneFlow):
        await flow.reply(
            f"Saving *{md(flow.data['email'])}*.\n\nPlease enter a nickname for this payee:",
            reply_markup=cancel_keyboard(),
        )

    async def prompt_first_name(self, flow: SceneFlow):
        await flow.reply("Please enter the payee's first name, or skip:", reply_markup=skip_keyboard())

    async def prompt_last_name(self, flow: SceneFlow):
        await flow.reply("Please enter the payee's last name, or skip:", reply_markup=skip_keyboard())

    async def prompt_confirm(self, flow: SceneFlow):
        data = flow.data
        full_name = " ".join(part for part in (data["first_name"], data["last_name"]) if part)
        await flow.reply(
            "📝 *Confirm Payee*\n\n"
            f"Email: {md(data['email'])}\n"
            f"Nickname: {md(data['nickname'])}\n"
            f"Name: {md(full_name) if full_name else 'Not specified'}",
            reply_markup=confirm_keyboard("confirm_payee", "✅ Save Payee"),
        )

    async def handle_email(self, flow: SceneFlow, text: str):
        email = text.strip().lower()
        if not is_valid_email(email):
            await flow.reply("❌ *Invalid Email*\n\nPlease enter a valid email address:",
                             reply_markup=cancel_keyboard())
            return
        flow.data["email"] = email
        flow.goto("enter_nickname")

    async def handle_nickname(self, flow: SceneFlow, text: str):
        nickname = text.strip()
        if len(nickname) < MIN_NICKNAME_LENGTH or len(nickname) > MAX_NAME_LENGTH or not is_safe_input(nickname):
            await flow.reply(
                f"❌ The nickname must be {MIN_NICKNAME_LENGTH} to {MAX_NAME_LENGTH} characters. Please try again:",
                reply_markup=cancel_keyboard(),
            )
            return
        flow.data["nickname"] = nickname
        flow.goto("enter_first_name")

    async def _name(self, flow: SceneFlow, text: str, field: str, next_state: str):
        name = text.strip()
        if not name or len(name) > MAX_NAME_LENGTH or not is_safe_input(name):
            await flow.reply(f"❌ Please enter a name of at most {MAX_NAME_LENGTH} characters, or skip:",
                             reply_markup=skip_keyboard())
            return
        flow.data[field] = name
        flow.goto(next_state)

    async def handle_first_name(self, flow: SceneFlow, text: str):
        await self._name(flow, text, "first_name", "enter_last_name")

    async def handle_last_name(self, flow: SceneFlow, text: str):
        await self._name(flow, text, "last_name", "confirm")

    async def skip(self, flow: SceneFlow):
        flow.advance()

    def next_step(self, state: str) -> str:
        return self.edges[state][0]

    async def confirm(self, flow: SceneFlow):
        token = await require_token(flow)
        if token is None:
            return
        data = flow.data
        payee = await flow.services.payees.create_payee(
            token, data["email"], data["nickname"], data["first_name"], data["last_name"],
        )
        if payee is None:
            await fail_and_leave(flow, "Failed to Save Payee",
                                 "The payee could not be saved. Please try again later.")
            return

        await flow.reply(
            f"✅ *Payee Saved*\n\n{md(format_payee_name(payee))} was added to your payees.",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("👥 View Payees", callback_data="list_payees")],
                [InlineKeyboardButton("🔙 Back to Menu", callback_data="main_menu")],
            ]),
        )
        flow.leave()


class RemovePayeeScene(Scene):
    """Pick a saved payee and delete it after confirmation"""
    scene_id = "remove_payee"
    initial_state = "select_payee"
    edges = {
        "select_payee": ("confirm",),
        "confirm": ("select_payee",),
    }
    cancel_message = "🚫 *Cancelled*\n\nNo payees were removed."

    def setup(self):
        self.on_prompt("select_payee", self.prompt_payee)
        self.on_prompt("confirm", self.prompt_confirm)
        self.on_text("select_payee", self.handle_payee_id)
        self.on_action("select_payee", self.select_payee, states=["select_payee"])
        self.on_action("more_payees", self.more_payees, states=["select_payee"])
        self.on_action("back_to_payees", self.back_to_payees, states=["confirm"])
        self.on_action("confirm_remove", self.confirm, states=["confirm"])

    def initial_data(self, payee_id=None, **initial):
        return {"payee_id": payee_id, "payee_name": None, "payee_page": 1}

    async def enter(self, flow: SceneFlow):
        if flow.data["payee_id"]:
            await self.select_payee(flow, flow.data["payee_id"])
            return
        await self.prompt(flow)

    async def prompt_payee(self, flow: SceneFlow):
        await prompt_payees(flow)

    async def prompt_confirm(self, flow: SceneFlow):
        await flow.reply(
            f"🗑 *Remove Payee*\n\nAre you sure you want to remove *{md(flow.data['payee_name'])}*?",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("✅ Remove", callback_data="confirm_remove"),
                 InlineKeyboardButton("🔙 Back", callback_data="back_to_payees")],
                [InlineKeyboardButton("❌ Cancel", callback_data="cancel")],
            ]),
        )

    async def more_payees(self, flow: SceneFlow, page: str = "1"):
        flow.data["payee_page"] = max(1, int(page)) if page.isdigit() else 1
        await self.prompt(flow)

    async def handle_payee_id(self, flow: SceneFlow, text: str):
        await self.select_payee(flow, text.strip())

    async def select_payee(self, flow: SceneFlow, payee_id: str = ""):
        if not payee_id:
            return
        payee = await load_payee(flow, payee_id)
        if payee is None:
            return
        flow.data["payee_id"] = payee["id"]
        flow.data["payee_name"] = format_payee_name(payee)
        flow.goto("confirm")

    async def back_to_payees(self, flow: SceneFlow):
        flow.data["payee_id"] = None
        flow.goto("select_payee")

    async def confirm(self, flow: SceneFlow):
        token = await require_token(flow)
        if token is None:
            return
        if not await flow.services.payees.delete_payee(token, flow.data["payee_id"]):
            await fail_and_leave(flow, "Failed to Remove Payee",
                                 "The payee could not be removed. Please try again later.")
            return
        await flow.reply(f"✅ *{md(flow.data['payee_name'])}* was removed from your payees.",
                         reply_markup=back_to_menu_keyboard())
        flow.leave()
