from typing import Optional

from telegram import InlineKeyboardMarkup

from copperx_bot.errors import AuthExpiredError
from copperx_bot.handlers.events import Event, Responder
from copperx_bot.services.container import Services
from copperx_bot.session.models import Session

AUTH_REQUIRED_MESSAGE = (
    "🔒 You need to be logged in to use this feature.\n\n"
    "Please use /login to authenticate with your CopperX account."
)


class HandlerContext:
    """Everything a handler needs for one update.

    The session is the only per-user state; handlers and scenes mutate it
    here and the dispatcher persists it once the update is done.
    """

    def __init__(self, event: Event, session: Optional[Session], services: Services,
                 responder: Responder, scenes=None):
        self.event = event
        self.session = session
        self.services = services
        self.responder = responder
        self.scenes = scenes
        self._answered = False

    @property
    def user_id(self) -> Optional[int]:
        return self.event.user_id

    @property
    def is_authenticated(self) -> bool:
        return self.services.auth.is_authenticated(self.session)

    def access_token(self) -> Optional[str]:
        return self.services.auth.get_access_token(self.session)

    def require_token(self) -> str:
        """Access token for a protected handler; AuthExpiredError when it is gone"""
        token = self.access_token()
        if token is None:
            raise AuthExpiredError("No valid access token")
        return token

    async def reply(self, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
        await self.responder.reply(text, reply_markup=reply_markup)

    async def answer(self, text: Optional[str] = None) -> None:
        """Acknowledge a button press once, stopping the client's spinner"""
        if self.event.is_callback and not self._answered:
            self._answered = True
            await self.responder.answer_callback(text)

    async def reply_auth_required(self) -> None:
        await self.answer()
        await self.reply(AUTH_REQUIRED_MESSAGE)

    async def enter_scene(self, scene_id: str, **initial) -> None:
        await self.scenes.enter(self, scene_id, **initial)
