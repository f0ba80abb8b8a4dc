import asyncio
import json
from typing import Callable, Dict, List, Optional, Set

import pysher
from telegram.constants import ParseMode
from telegram.error import TelegramError

from copperx_bot.services.api_service import ApiClient
from copperx_bot.services.base import BaseService
from copperx_bot.utils.formatters import format_deposit_notification
from copperx_bot.utils.keyboards import deposit_notification_keyboard
from copperx_bot.utils.logger import logger

DEPOSIT_EVENT = "deposit"


def org_channel(organization_id: str) -> str:
    return f"private-org-{organization_id}"


class NotificationService(BaseService):
    """Deposit notifications pushed on each organization's private Pusher channel.

    One pysher connection is shared by every user. A channel is authorized
    through the Copperx API with the token of the first user who needs it,
    and every Telegram user linked to that organization is notified.

    pysher runs the websocket on its own thread, so its callbacks only hand
    work over to the bot's event loop.
    """

    def __init__(self, api: ApiClient, key: Optional[str] = None, cluster: Optional[str] = None,
                 client_factory: Callable[..., pysher.Pusher] = pysher.Pusher):
        super().__init__(api)
        self.key = key
        self.cluster = cluster
        self._client_factory = client_factory
        self._client: Optional[pysher.Pusher] = None
        self._bot = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._socket_id: Optional[str] = None
        # channel name -> Telegram user ids
        self._channels: Dict[str, Set[int]] = {}

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def start(self, bot, loop: asyncio.AbstractEventLoop) -> None:
        if not (self.key and self.cluster):
            logger.warning("Pusher keys not configured, deposit notifications disabled")
            return
        self._bot = bot
        self._loop = loop
        self._client = self._client_factory(self.key, cluster=self.cluster)
        self._client.connection.bind("pusher:connection_established", self._on_connected)
        self._client.connect()
        logger.info("Notification service started")

    def stop(self) -> None:
        if self._client is None:
            return
        self._client.disconnect()
        self._client = None
        self._socket_id = None
        self._channels.clear()
        logger.info("Notification service stopped")

    def _on_connected(self, data) -> None:
        socket_id = json.loads(data)["socket_id"]
        self._loop.call_soon_threadsafe(self._connected, socket_id)

    def _connected(self, socket_id: str) -> None:
        # Channel auth is bound to the old socket; users resubscribe on their next update
        if self._channels:
            logger.info(f"Pusher reconnected, dropping {len(self._channels)} channel subscription(s)")
            for channel_name in self._channels:
                self._client.unsubscribe(channel_name)
            self._channels.clear()
        self._socket_id = socket_id
        logger.info("Connected to Pusher")

    def is_subscribed(self, user_id: int) -> bool:
        return any(user_id in users for users in self._channels.values())

    async def subscribe(self, user_id: int, organization_id: str, token: str) -> bool:
        """Link a user to their organization's deposit events; True when linked"""
        if self._client is None or self._socket_id is None:
            return False

        channel_name = org_channel(organization_id)
        users = self._channels.get(channel_name)
        if users is not None:
            users.add(user_id)
            return True

        # Claimed before authorizing so concurrent updates don't subscribe twice
        self._channels[channel_name] = {user_id}
        response = None
        try:
            response = await self._safe(
                "authorize notifications",
                self.api.post("/notifications/auth", token=token,
                              data={"socket_id": self._socket_id, "channel_name": channel_name}),
            )
        finally:
            if not response or not response.get("auth"):
                self._channels.pop(channel_name, None)
        if not response or not response.get("auth"):
            logger.error(f"Invalid Pusher authorization for {channel_name}")
            return False

        channel = self._client.subscribe(channel_name, auth=response["auth"])
        channel.bind(DEPOSIT_EVENT, self._on_deposit, channel_name)
        logger.info(f"Subscribed user {user_id} to deposit notifications on {channel_name}")
        return True

    def unsubscribe_user(self, user_id: int) -> None:
        for channel_name, users in list(self._channels.items()):
            if user_id not in users:
                continue
            users.discard(user_id)
            logger.info(f"Unsubscribed user {user_id} from {channel_name}")
            if not users:
                del self._channels[channel_name]
                if self._client is not None:
                    self._client.unsubscribe(channel_name)

    def _on_deposit(self, data, channel_name: str) -> List:
        try:
            event = json.loads(data)
        except (TypeError, ValueError):
            logger.error(f"Malformed deposit event on {channel_name}")
            return []
        return [
            asyncio.run_coroutine_threadsafe(self.notify(user_id, event), self._loop)
            for user_id in list(self._channels.get(channel_name, ()))
        ]

    async def notify(self, user_id: int, event: Dict) -> None:
        try:
            await self._bot.send_message(
                chat_id=user_id,
                text=format_deposit_notification(event),
                reply_markup=deposit_notification_keyboard(event),
                parse_mode=ParseMode.MARKDOWN,
                disable_web_page_preview=True,
            )
        except TelegramError as e:
            logger.error(f"Failed to send deposit notification to user {user_id}: {e}")
            return
        logger.info(f"Deposit notification sent to user {user_id}")

    async def send_test(self, token: str) -> bool:
        """Ask Copperx to push a test event to the user's organization"""
        return await self._safe("test notifications", self.api.get("/notifications/test", token=token)) is not None
