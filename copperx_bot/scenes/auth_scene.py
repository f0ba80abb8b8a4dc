from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.errors import ApiError
from copperx_bot.handlers.rate_limit import allow_attempt
from copperx_bot.scenes.base import Scene, SceneFlow
from copperx_bot.scenes.common import fail_and_leave
from copperx_bot.services.rate_limiter import RateLimits
from copperx_bot.utils.formatters import md
from copperx_bot.utils.keyboards import cancel_keyboard, main_menu_keyboard
from copperx_bot.utils.validators import is_valid_email, is_valid_otp


class AuthScene(Scene):
    """Email + one-time-password login"""
    scene_id = "auth"
    initial_state = "enter_email"
    edges = {
        "enter_email": ("enter_otp",),
        "enter_otp": ("enter_email",),
    }
    requires_auth = False
    cancel_message = "🚫 *Authentication Cancelled*\n\nYou can log in at any time with /login."

    def setup(self):
        self.on_prompt("enter_email", self.prompt_email)
        self.on_prompt("enter_otp", self.prompt_otp)
        self.on_text("enter_email", self.handle_email)
        self.on_text("enter_otp", self.handle_otp)
        self.on_action("change_email", self.change_email, states=["enter_otp"])

    def initial_data(self, **initial):
        return {"email": None, "sid": None}

    async def prompt_email(self, flow: SceneFlow):
        await flow.reply(
            "🔑 *Login to CopperX*\n\nPlease enter the email address of your CopperX account:",
            reply_markup=cancel_keyboard(),
        )

    async def prompt_otp(self, flow: SceneFlow):
        await flow.reply(
            f"📧 We've sent a one-time code to *{md(flow.data['email'])}*.\n\n"
            "Please enter the code to continue:",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton("✏️ Change Email", callback_data="change_email")],
                [InlineKeyboardButton("❌ Cancel", callback_data="cancel")],
            ]),
        )

    async def handle_email(self, flow: SceneFlow, text: str):
        email = text.strip().lower()
        if not is_valid_email(email):
            await flow.reply(
                "❌ *Invalid Email*\n\nPlease enter a valid email address:",
                reply_markup=cancel_keyboard(),
            )
            return

        if not await allow_attempt(flow.ctx, RateLimits.AUTH):
            return

        try:
            sid = await flow.services.auth.request_otp(email)
        except ApiError:
            await fail_and_leave(
                flow, "Failed to Send Code",
                "We couldn't send a login code to that address. Please try /login again later.",
            )
            return

        flow.data["email"] = email
        flow.data["sid"] = sid
        flow.goto("enter_otp")

    async def handle_otp(self, flow: SceneFlow, text: str):
        otp = text.strip()
        if not is_valid_otp(otp):
            await flow.reply("❌ *Invalid Code*\n\nThe code should contain only digits. Please try again:")
            return

        if not await allow_attempt(flow.ctx, RateLimits.OTP_VERIFY):
            return

        try:
            auth = await flow.services.auth.verify_otp(flow.session, flow.data["email"], otp, flow.data["sid"])
        except ApiError:
            await flow.reply(
                "❌ *Verification Failed*\n\n"
                "The code is incorrect or has expired. Please try again, or change your email:"
            )
            return

        limiter = flow.services.rate_limiter
        limiter.clear(flow.session, RateLimits.AUTH.for_user(flow.ctx.user_id).key)
        limiter.clear(flow.session, RateLimits.OTP_VERIFY.for_user(flow.ctx.user_id).key)

        await flow.reply(
            f"✅ *Login Successful*\n\nWelcome, {md(auth.email)}! What would you like to do?",
            reply_markup=main_menu_keyboard(),
        )
        flow.leave()

    async def change_email(self, flow: SceneFlow):
        flow.data["email"] = None
        flow.data["sid"] = None
        flow.goto("enter_email")
