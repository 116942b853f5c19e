"""Telegram dispatcher adapter.

Implements the core DispatcherPort on top of a Telethon bot client. Messages
are sent as HTML so the stream link renders as an anchor.
"""

from __future__ import annotations

import logging

from telethon import TelegramClient, errors

from core.errors import MessageNotFoundError

LOGGER = logging.getLogger(__name__)


class TelegramDispatcher:
    """Dispatcher adapter backed by a logged-in Telethon bot client."""

    def __init__(self, client: TelegramClient, name: str) -> None:
        self._client = client
        self.name = name

    async def send(self, destination_id: int, text: str) -> int:
        message = await self._client.send_message(
            destination_id,
            text,
            parse_mode="html",
            link_preview=True,
        )
        LOGGER.debug("[%s] Sent message %s to %s", self.name, message.id, destination_id)
        return message.id

    async def edit(self, destination_id: int, message_id: int, text: str) -> None:
        try:
            await self._client.edit_message(
                destination_id,
                message_id,
                text,
                parse_mode="html",
                link_preview=True,
            )
        except errors.MessageNotModifiedError:
            LOGGER.debug("[%s] Message %s in %s unchanged", self.name, message_id, destination_id)
        except errors.MessageIdInvalidError as error:
            raise MessageNotFoundError(destination_id, message_id) from error

    async def pin(self, destination_id: int, message_id: int) -> None:
        await self._client.pin_message(destination_id, message_id, notify=False)

    async def unpin(self, destination_id: int, message_id: int) -> None:
        """Unpin a message; a deleted message surfaces as MessageNotFoundError."""

        try:
            await self._client.unpin_message(destination_id, message_id)
        except errors.MessageIdInvalidError as error:
            raise MessageNotFoundError(destination_id, message_id) from error
