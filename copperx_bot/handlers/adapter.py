import asyncio
from typing import Optional

from telegram import BotCommand, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.ext import Application, CallbackQueryHandler, ContextTypes, MessageHandler, filters

from copperx_bot.config.config import Settings
from copperx_bot.errors import AuthExpiredError
from copperx_bot.handlers.context import HandlerContext
from copperx_bot.handlers.events import Event, Responder
from copperx_bot.handlers.notification_handlers import subscribe_user
from copperx_bot.handlers.rate_limit import allow_attempt
from copperx_bot.handlers.router import Router, build_router
from copperx_bot.scenes import build_scene_manager
from copperx_bot.services.container import Services
from copperx_bot.services.rate_limiter import RateLimits
from copperx_bot.session.store import SessionManager, session_key
from copperx_bot.utils.logger import logger

ERROR_MESSAGE = "An error occurred while processing your request. Please try again later."

BOT_COMMANDS = [
    ("start", "Start or restart the bot"),
    ("login", "Log in to your CopperX account"),
    ("wallet", "View your wallets and balances"),
    ("send", "Send USDC"),
    ("withdraw", "Withdraw to your bank account"),
    ("deposit", "Show your deposit address"),
    ("history", "View your transfer history"),
    ("payees", "Manage saved recipients"),
    ("notifications", "Manage deposit notifications"),
    ("profile", "View your profile"),
    ("kyc", "Check your KYC status"),
    ("logout", "Log out"),
    ("cancel", "Cancel the current operation"),
    ("help", "Show help"),
]


class TelegramResponder(Responder):
    """Sends replies for one update through the Bot API"""

    def __init__(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        self.update = update
        self.context = context

    async def reply(self, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
        await self.context.bot.send_message(
            chat_id=self.update.effective_chat.id,
            text=text,
            reply_markup=reply_markup,
            parse_mode=ParseMode.MARKDOWN,
            disable_web_page_preview=True,
        )

    async def answer_callback(self, text: Optional[str] = None) -> None:
        if self.update.callback_query is not None:
            await self.update.callback_query.answer(text)


def event_from_update(update: Update) -> Event:
    user = update.effective_user
    chat = update.effective_chat
    query = update.callback_query
    message = update.effective_message if query is None else None
    return Event(
        user_id=user.id if user else None,
        chat_id=chat.id if chat else None,
        username=user.username if user else None,
        first_name=user.first_name if user else None,
        text=message.text if message else None,
        callback_data=query.data if query else None,
    )


class UpdateProcessor:
    """Runs one Telegram update through session loading, rate limiting and routing"""

    def __init__(self, router: Router, services: Services, sessions: SessionManager):
        self.router = router
        self.services = services
        self.sessions = sessions

    async def process(self, event: Event, responder: Responder) -> None:
        key = session_key(event.user_id, event.chat_id)
        async with self.sessions.session_for(key) as session:
            ctx = HandlerContext(event, session, self.services, responder, scenes=self.router.scenes)
            if not await allow_attempt(ctx, RateLimits.API):
                return
            await self.router.dispatch(ctx)
            await self.link_notifications(ctx)

    async def link_notifications(self, ctx: HandlerContext) -> None:
        """Keep a logged-in user subscribed to deposit events unless they opted out"""
        if not ctx.is_authenticated or not ctx.session.notifications_enabled:
            return
        try:
            await subscribe_user(ctx)
        except AuthExpiredError:
            logger.info(f"Token of user {ctx.user_id} rejected while linking notifications")

    async def __call__(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.process(event_from_update(update), TelegramResponder(update, context))


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log uncaught errors and tell the user something went wrong"""
    logger.error("Exception while handling an update", exc_info=context.error)

    if isinstance(update, Update) and update.effective_chat is not None:
        await context.bot.send_message(chat_id=update.effective_chat.id, text=ERROR_MESSAGE)


def build_application(settings: Settings, services: Services, sessions: SessionManager) -> Application:
    router = build_router(build_scene_manager())
    processor = UpdateProcessor(router, services, sessions)

    async def post_init(application: Application) -> None:
        await application.bot.set_my_commands([BotCommand(name, description) for name, description in BOT_COMMANDS])
        logger.info("Bot commands registered")
        services.notifications.start(application.bot, asyncio.get_running_loop())

    async def post_shutdown(application: Application) -> None:
        services.notifications.stop()
        await sessions.store.close()

    application = (
        Application.builder()
        .token(settings.bot_token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    application.add_handler(MessageHandler(filters.TEXT, processor))
    application.add_handler(CallbackQueryHandler(processor))
    application.add_error_handler(error_handler)
    return application
