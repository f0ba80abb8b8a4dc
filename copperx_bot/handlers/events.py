import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from telegram import InlineKeyboardMarkup


@dataclass(frozen=True)
class Command:
    name: str
    args: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CallbackAction:
    """A button payload parsed once: `select_payee:42` -> name + params"""
    name: str
    params: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, data: str) -> "CallbackAction":
        name, sep, rest = data.partition(":")
        return cls(name=name, params=rest.split(":") if sep else [])


def fit_params(handler, params: List[str]) -> List[str]:
    """Drop trailing button params that `handler(ctx, *params)` has no slot for"""
    positional = 0
    for parameter in inspect.signature(handler).parameters.values():
        if parameter.kind is parameter.VAR_POSITIONAL:
            return params
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    # The first slot is the context or flow
    return params[:max(positional - 1, 0)]


def parse_command(text: Optional[str]) -> Optional[Command]:
    """Parse `/name@botname arg1 arg2`; None for anything that isn't a command"""
    if not text or not text.startswith("/"):
        return None
    parts = text[1:].split(maxsplit=1)
    if not parts:
        return None
    name = parts[0].split("@", 1)[0].lower()
    if not name:
        return None
    return Command(name=name, args=parts[1].split() if len(parts) > 1 else [])


@dataclass
class Event:
    """One inbound update, independent of the chat transport"""
    user_id: Optional[int] = None
    chat_id: Optional[int] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    text: Optional[str] = None
    callback_data: Optional[str] = None

    @property
    def is_callback(self) -> bool:
        return self.callback_data is not None

    @property
    def command(self) -> Optional[Command]:
        return parse_command(self.text) if not self.is_callback else None

    @property
    def action(self) -> Optional[CallbackAction]:
        return CallbackAction.parse(self.callback_data) if self.is_callback else None

    @property
    def input_text(self) -> Optional[str]:
        """Free text that is not a command"""
        if self.is_callback or self.text is None or self.command is not None:
            return None
        return self.text.strip()


class Responder(ABC):
    """Outbound side of the chat transport"""

    @abstractmethod
    async def reply(self, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
        ...

    @abstractmethod
    async def answer_callback(self, text: Optional[str] = None) -> None:
        ...
