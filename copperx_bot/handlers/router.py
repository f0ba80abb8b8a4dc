"""Routes one event to a command handler, a callback handler or the active scene.

Order of precedence:

1. An active scene gets text, `/cancel` and any button it registered.
   Another slash-command leaves the scene and is dispatched normally.
   When the login behind the scene has expired the scene is left first;
   scene input is then answered with the login hint, commands and
   foreign buttons carry on below.
2. Commands and callback actions go through the auth gate, then to their
   handler. Unknown commands get a hint, unknown buttons are acknowledged
   and ignored.
3. Anything else is answered with the unknown-command hint.
"""
from typing import Awaitable, Callable, Dict

from copperx_bot.config.routes import is_protected_action, is_protected_command
from copperx_bot.errors import AuthExpiredError
from copperx_bot.handlers import (
    bank_handlers,
    notification_handlers,
    payee_handlers,
    profile_handlers,
    transfer_handlers,
    wallet_handlers,
)
from copperx_bot.handlers.context import HandlerContext
from copperx_bot.handlers.events import CallbackAction, Command, fit_params
from copperx_bot.scenes.base import SceneManager, is_cancel
from copperx_bot.utils.keyboards import login_keyboard
from copperx_bot.utils.logger import logger

UNKNOWN_COMMAND_MESSAGE = "Unknown command. Use /help to see available commands."
SESSION_EXPIRED_MESSAGE = "⚠️ *Session Expired*\n\nYour session has expired. Please log in again."

Handler = Callable[..., Awaitable[None]]


class Router:

    def __init__(self, scenes: SceneManager):
        self.scenes = scenes
        self._commands: Dict[str, Handler] = {}
        self._actions: Dict[str, Handler] = {}

    def command(self, name: str, handler: Handler) -> None:
        self._commands[name] = handler

    def action(self, name: str, handler: Handler) -> None:
        """Register `handler(ctx, *params)` for the callback `name[:param...]`"""
        self._actions[name] = handler

    @property
    def commands(self):
        return sorted(self._commands)

    async def dispatch(self, ctx: HandlerContext) -> None:
        try:
            await self._dispatch(ctx)
        except AuthExpiredError:
            logger.info(f"Session of user {ctx.user_id} expired")
            if ctx.session is not None:
                ctx.session.auth = None
            ctx.services.notifications.unsubscribe_user(ctx.user_id)
            self.scenes.leave(ctx)
            await ctx.answer()
            await ctx.reply(SESSION_EXPIRED_MESSAGE, reply_markup=login_keyboard())

    async def _dispatch(self, ctx: HandlerContext) -> None:
        event = ctx.event
        command = event.command

        scene = self.scenes.active(ctx.session)
        if scene is not None and scene.requires_auth and not ctx.is_authenticated:
            logger.info(f"Auth expired inside scene {scene.scene_id}; leaving it")
            if is_cancel(event):
                await self.scenes.cancel(ctx, scene)
                return
            self.scenes.leave(ctx)
            if command is None and (event.action is None or scene.owns_action(event.action.name)):
                # Input meant for the scene that was just closed
                await ctx.reply_auth_required()
                return
            scene = None

        if scene is not None:
            if command is None or command.name == "cancel":
                if await self.scenes.handle(ctx):
                    return
            # Anything the scene didn't take ends it
            self.scenes.leave(ctx)

        if command is not None:
            await self._dispatch_command(ctx, command)
        elif event.is_callback:
            await self._dispatch_action(ctx, event.action)
        else:
            await ctx.reply(UNKNOWN_COMMAND_MESSAGE)

    async def _dispatch_command(self, ctx: HandlerContext, command: Command) -> None:
        handler = self._commands.get(command.name)
        if handler is None:
            await ctx.reply(UNKNOWN_COMMAND_MESSAGE)
            return
        if is_protected_command(command.name) and not ctx.is_authenticated:
            await ctx.reply_auth_required()
            return
        await handler(ctx)

    async def _dispatch_action(self, ctx: HandlerContext, action: CallbackAction) -> None:
        handler = self._actions.get(action.name)
        if handler is None:
            logger.info(f"Ignoring unknown callback action '{action.name}'")
            await ctx.answer()
            return
        if is_protected_action(action.name) and not ctx.is_authenticated:
            await ctx.reply_auth_required()
            return
        params = fit_params(handler, action.params)
        if len(params) < len(action.params):
            logger.info(f"Dropping extra params of callback '{action.name}'")
        await ctx.answer()
        await handler(ctx, *params)


def build_router(scenes: SceneManager) -> Router:
    router = Router(scenes)
    for module in (profile_handlers, wallet_handlers, transfer_handlers, bank_handlers, payee_handlers,
                   notification_handlers):
        module.register(router)
    return router
