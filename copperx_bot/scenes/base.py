"""Per-user conversation state machines.

A scene owns a named set of states and the edges between them. The user's
position is kept in `session.scene` ({scene_id, state, data}); the scene
objects themselves are shared, immutable definitions.

Two flavours are provided:

* `Scene`: event-driven. Transitions are registered per callback action
  (`on_action`) or per state for free text (`on_text`).
* `WizardScene`: an ordered list of steps. `advance()` moves to the next
  step; `branches` declares the extra edges used to leave the main line
  and rejoin it later.

Handlers receive a `SceneFlow` and may stay, `goto`/`advance` to another
state, `restart` the scene or `leave` it. Moving to a new state renders
that state's prompt. Moving along an undeclared edge raises
SceneTransitionError.
"""
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from telegram import InlineKeyboardMarkup

from copperx_bot.errors import SceneTransitionError
from copperx_bot.handlers.events import Event, fit_params
from copperx_bot.session.models import SceneState
from copperx_bot.utils.keyboards import back_to_menu_keyboard
from copperx_bot.utils.logger import logger

USE_BUTTONS_MESSAGE = "Please use the buttons above to continue, or /cancel to stop."


class SceneFlow:
    """The narrow view of the session a scene handler works through"""

    def __init__(self, scene: "Scene", ctx):
        self.scene = scene
        self.ctx = ctx
        self.scene_state: SceneState = ctx.session.scene
        self.left = False
        self.restart_args: Optional[dict] = None

    @property
    def state(self) -> str:
        return self.scene_state.state

    @property
    def data(self) -> dict:
        return self.scene_state.data

    @property
    def services(self):
        return self.ctx.services

    @property
    def session(self):
        return self.ctx.session

    def access_token(self) -> Optional[str]:
        return self.ctx.access_token()

    async def reply(self, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
        await self.ctx.reply(text, reply_markup=reply_markup)

    def goto(self, target: str) -> None:
        self.scene.check_edge(self.state, target)
        self.scene_state.state = target

    def advance(self) -> None:
        self.goto(self.scene.next_step(self.state))

    def restart(self, **initial) -> None:
        self.restart_args = initial

    def leave(self) -> None:
        self.left = True
        if self.ctx.session.scene is self.scene_state:
            self.ctx.session.scene = None


TextHandler = Callable[[SceneFlow, str], Awaitable[None]]
PromptHandler = Callable[[SceneFlow], Awaitable[None]]


class Scene:
    scene_id: str = ""
    initial_state: str = ""
    edges: Dict[str, Tuple[str, ...]] = {}
    requires_auth = True
    cancel_message = "🚫 *Operation Cancelled*\n\nNo changes were made."

    def __init__(self):
        self._actions: Dict[str, Tuple[Callable[..., Awaitable[None]], Optional[frozenset]]] = {}
        self._text: Dict[str, TextHandler] = {}
        self._prompts: Dict[str, PromptHandler] = {}
        self.setup()

    def setup(self) -> None:
        """Register prompts and transitions"""

    # Registration

    def on_action(self, name: str, handler, states: Optional[Iterable[str]] = None) -> None:
        """Handle the callback `name[:param...]`, optionally only in some states"""
        self._actions[name] = (handler, frozenset(states) if states is not None else None)

    def on_text(self, state: str, handler: TextHandler) -> None:
        self._text[state] = handler

    def on_prompt(self, state: str, handler: PromptHandler) -> None:
        self._prompts[state] = handler

    # Definition

    @property
    def states(self) -> frozenset:
        names = {self.initial_state}
        for source, targets in self.edges.items():
            names.add(source)
            names.update(targets)
        return frozenset(names)

    def check_edge(self, source: str, target: str) -> None:
        if target not in self.edges.get(source, ()):
            raise SceneTransitionError(self.scene_id, source, target)

    def next_step(self, state: str) -> str:
        raise SceneTransitionError(self.scene_id, state, "<next>")

    def initial_data(self, **initial) -> dict:
        """Fresh scene data; every run starts from this"""
        return dict(initial)

    def owns_action(self, name: str) -> bool:
        """Whether the button `name` belongs to this scene"""
        return name in self._actions or name == "cancel"

    # Runtime

    async def enter(self, flow: SceneFlow) -> None:
        await self.prompt(flow)

    async def prompt(self, flow: SceneFlow) -> None:
        handler = self._prompts.get(flow.state)
        if handler is not None:
            await handler(flow)

    async def handle(self, flow: SceneFlow, event: Event) -> bool:
        """Run the transition matching `event`; False if the scene ignores it"""
        action = event.action
        if action is not None:
            entry = self._actions.get(action.name)
            if entry is None:
                return False
            handler, states = entry
            await flow.ctx.answer()
            if states is not None and flow.state not in states:
                logger.info(f"Ignoring stale '{action.name}' button in {self.scene_id}:{flow.state}")
                return True
            await handler(flow, *fit_params(handler, action.params))
            return True

        text = event.input_text
        if text is None:
            return False
        handler = self._text.get(flow.state)
        if handler is None:
            await flow.reply(USE_BUTTONS_MESSAGE)
            return True
        await handler(flow, text)
        return True


StepHandler = Callable[[SceneFlow, Event], Awaitable[None]]


class WizardScene(Scene):
    """A scene whose states form an ordered sequence of steps"""
    steps: Tuple[str, ...] = ()
    branches: Dict[str, Tuple[str, ...]] = {}

    def __init__(self):
        self.initial_state = self.steps[0]
        edges = {}
        for index, step in enumerate(self.steps):
            following = self.steps[index + 1:index + 2]
            edges[step] = tuple(following) + tuple(self.branches.get(step, ()))
        for source, targets in self.branches.items():
            if source not in edges:
                edges[source] = tuple(targets)
        self.edges = edges
        self._steps: Dict[str, Tuple[StepHandler, frozenset, bool]] = {}
        super().__init__()

    def on_step(self, step: str, handler: StepHandler, prompt: Optional[PromptHandler] = None,
                actions: Iterable[str] = (), accepts_text: bool = True) -> None:
        """Register the handler for one step.

        `actions` lists the callback names this step consumes; other
        buttons fall through to the global handlers.
        """
        self._steps[step] = (handler, frozenset(actions), accepts_text)
        if prompt is not None:
            self.on_prompt(step, prompt)

    @property
    def _step_actions(self) -> frozenset:
        return frozenset().union(*(actions for _, actions, _ in self._steps.values()))

    def owns_action(self, name: str) -> bool:
        return super().owns_action(name) or name in self._step_actions

    def next_step(self, state: str) -> str:
        index = self.steps.index(state)
        if index + 1 >= len(self.steps):
            raise SceneTransitionError(self.scene_id, state, "<next>")
        return self.steps[index + 1]

    async def handle(self, flow: SceneFlow, event: Event) -> bool:
        action = event.action
        if action is not None and action.name in self._actions:
            return await super().handle(flow, event)

        entry = self._steps.get(flow.state)
        if entry is None:
            return False
        handler, actions, accepts_text = entry

        if action is not None:
            if action.name not in actions:
                if action.name not in self._step_actions:
                    return False
                await flow.ctx.answer()
                logger.info(f"Ignoring stale '{action.name}' button in {self.scene_id}:{flow.state}")
                return True
            await flow.ctx.answer()
        elif event.input_text is None:
            return False
        elif not accepts_text:
            await flow.reply(USE_BUTTONS_MESSAGE)
            return True

        await handler(flow, event)
        return True


def is_cancel(event: Event) -> bool:
    command = event.command
    if command is not None:
        return command.name == "cancel"
    action = event.action
    return action is not None and action.name == "cancel"


class SceneManager:
    """Enters, drives and leaves scenes on behalf of the router"""

    def __init__(self, scenes: Iterable[Scene] = ()):
        self._scenes: Dict[str, Scene] = {}
        for scene in scenes:
            self.register(scene)

    def register(self, scene: Scene) -> None:
        self._scenes[scene.scene_id] = scene

    def get(self, scene_id: str) -> Scene:
        return self._scenes[scene_id]

    def active(self, session) -> Optional[Scene]:
        if session is None or session.scene is None:
            return None
        scene = self._scenes.get(session.scene.scene_id)
        if scene is None:
            logger.warning(f"Dropping unknown scene '{session.scene.scene_id}' from session")
            session.scene = None
        return scene

    async def enter(self, ctx, scene_id: str, **initial) -> None:
        if ctx.session is None:
            logger.warning(f"Cannot enter scene '{scene_id}' without a session")
            await ctx.reply("Sorry, this conversation can't be started here.")
            return

        scene = self.get(scene_id)
        if scene.requires_auth and not ctx.is_authenticated:
            await ctx.reply_auth_required()
            return

        ctx.session.scene = SceneState(
            scene_id=scene_id,
            state=scene.initial_state,
            data=scene.initial_data(**initial),
        )
        logger.info(f"User {ctx.user_id} entered scene {scene_id}")
        flow = SceneFlow(scene, ctx)
        await scene.enter(flow)
        await self._settle(flow, scene.initial_state)

    async def handle(self, ctx) -> bool:
        scene = self.active(ctx.session)
        if scene is None:
            return False

        if is_cancel(ctx.event):
            await self.cancel(ctx, scene)
            return True

        flow = SceneFlow(scene, ctx)
        previous = flow.state
        handled = await scene.handle(flow, ctx.event)
        await self._settle(flow, previous)
        return handled

    async def _settle(self, flow: SceneFlow, previous: str) -> None:
        ctx = flow.ctx
        if flow.left or ctx.session.scene is not flow.scene_state:
            return
        if flow.restart_args is not None:
            await self.enter(ctx, flow.scene.scene_id, **flow.restart_args)
        elif flow.state != previous:
            await flow.scene.prompt(flow)

    def leave(self, ctx) -> None:
        if ctx.session is not None and ctx.session.scene is not None:
            logger.info(f"User {ctx.user_id} left scene {ctx.session.scene.scene_id}")
            ctx.session.scene = None

    async def cancel(self, ctx, scene: Scene) -> None:
        await ctx.answer()
        self.leave(ctx)
        await ctx.reply(scene.cancel_message, reply_markup=back_to_menu_keyboard())
