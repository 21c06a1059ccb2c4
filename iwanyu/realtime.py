import logging
from typing import Callable, Optional

from supabase import AsyncClient

logger = logging.getLogger(__name__)


def _record_from(payload: dict) -> Optional[dict]:
    """Pulls the inserted row out of a postgres_changes payload."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("record"), dict):
        return data["record"]
    for key in ("record", "new"):
        if isinstance(payload.get(key), dict):
            return payload[key]
    return None


class MessageFeed:
    """
    Live feed of messages addressed to one identity.

    Incoming rows are appended to `messages` in arrival order; rows already seen
    (same id) are ignored.
    """

    def __init__(
        self,
        client: AsyncClient,
        receiver_id: str,
        on_message: Optional[Callable[[dict], None]] = None,
    ):
        self.client = client
        self.receiver_id = receiver_id
        self.on_message = on_message
        self.messages: list[dict] = []
        self._seen: set = set()
        self._channel = None

    @property
    def channel_name(self) -> str:
        return f"messages:{self.receiver_id}"

    @property
    def active(self) -> bool:
        return self._channel is not None

    async def start(self) -> None:
        if self._channel is not None:
            return
        channel = self.client.channel(self.channel_name)
        channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table="messages",
            filter=f"receiver_id=eq.{self.receiver_id}",
            callback=self.handle,
        )
        await channel.subscribe()
        self._channel = channel
        logger.info("Subscribed to %s", self.channel_name)

    async def stop(self) -> None:
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        await self.client.remove_channel(channel)
        logger.info("Unsubscribed from %s", self.channel_name)

    def handle(self, payload: dict) -> None:
        record = _record_from(payload)
        if record is None:
            logger.debug("Ignoring realtime payload without a record: %r", payload)
            return
        if record.get("receiver_id") != self.receiver_id:
            return
        message_id = record.get("id")
        if message_id is not None:
            if message_id in self._seen:
                return
            self._seen.add(message_id)
        self.messages.append(record)
        if self.on_message is not None:
            self.on_message(record)
