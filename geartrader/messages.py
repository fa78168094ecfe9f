"""Bookkeeping for the bot messages that make up the current screen.

Telegram has no way to swap a whole screen, only to edit single messages.
The tracker remembers a ``main`` message (menu or listing body), a ``nav``
message (pagination controls) and a list of ``wizard`` messages (prompts,
user replies and photo albums) so they can be edited or cleaned up later.
Albums cannot be edited once sent, so they are always sent fresh.

Transport failures while editing or deleting are logged and swallowed.
"""

import logging
from typing import Dict, List, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.types import InlineKeyboardMarkup, InputMediaPhoto, Message

from .session import MESSAGES_KEY

logger = logging.getLogger(__name__)

MAIN = "main"
NAV = "nav"
WIZARD = "wizard"


class MessageTracker:
    def __init__(self, bot: Bot, chat_id: int, state: FSMContext):
        self.bot = bot
        self.chat_id = chat_id
        self.state = state

    async def _registry(self) -> Dict:
        data = await self.state.get_data()
        registry = data.get(MESSAGES_KEY) or {}
        return {
            MAIN: registry.get(MAIN),
            NAV: registry.get(NAV),
            WIZARD: list(registry.get(WIZARD) or []),
        }

    async def _store(self, registry: Dict) -> None:
        await self.state.update_data({MESSAGES_KEY: registry})

    async def recorded(self, category: str):
        return (await self._registry())[category]

    async def _delete(self, message_id: int) -> None:
        try:
            await self.bot.delete_message(chat_id=self.chat_id, message_id=message_id)
        except TelegramAPIError as e:
            logger.warning("Failed to delete message %s in chat %s: %s", message_id, self.chat_id, e)

    async def emit(
        self, category: str, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None
    ) -> Message:
        """Send a new message and record it under ``category``.

        For ``main`` and ``nav`` the previously recorded message is deleted
        first, so the new one takes its place at the bottom of the chat.
        """
        registry = await self._registry()
        if category != WIZARD and registry[category]:
            await self._delete(registry[category])
            registry[category] = None
        sent = await self.bot.send_message(self.chat_id, text, reply_markup=reply_markup)
        if category == WIZARD:
            registry[WIZARD].append(sent.message_id)
        else:
            registry[category] = sent.message_id
        await self._store(registry)
        return sent

    async def emit_album(self, photos: List[str], caption: Optional[str] = None) -> List[Message]:
        """Send photos as one media group; the caption goes on the first item."""
        if len(photos) == 1:
            # A media group needs at least two items.
            sent = [await self.bot.send_photo(self.chat_id, photo=photos[0], caption=caption)]
        else:
            media = [
                InputMediaPhoto(media=file_id, caption=caption if idx == 0 else None)
                for idx, file_id in enumerate(photos)
            ]
            sent = await self.bot.send_media_group(self.chat_id, media=media)
        registry = await self._registry()
        registry[WIZARD].extend(m.message_id for m in sent)
        await self._store(registry)
        return sent

    async def replace(
        self, category: str, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None
    ) -> None:
        """Edit the recorded message in place, or send a new one if that fails."""
        message_id = (await self._registry())[category]
        if message_id:
            try:
                # chat_id and message_id must be keywords: aiogram 3.7+ reads the
                # second positional argument as business_connection_id.
                await self.bot.edit_message_text(
                    text=text,
                    chat_id=self.chat_id,
                    message_id=message_id,
                    reply_markup=reply_markup,
                )
                return
            except TelegramBadRequest as e:
                if "message is not modified" in str(e):
                    return
                logger.warning("Failed to edit message %s in chat %s: %s", message_id, self.chat_id, e)
            except TelegramAPIError as e:
                logger.warning("Failed to edit message %s in chat %s: %s", message_id, self.chat_id, e)
        await self.emit(category, text, reply_markup)

    async def track(self, message_id: int) -> None:
        """Remember an inbound user message so it is cleaned up with the flow."""
        registry = await self._registry()
        registry[WIZARD].append(message_id)
        await self._store(registry)

    async def discard(self, category: str) -> None:
        """Delete every message recorded under ``category`` and forget them."""
        registry = await self._registry()
        if category == WIZARD:
            ids, registry[WIZARD] = registry[WIZARD], []
        else:
            ids = [registry[category]] if registry[category] else []
            registry[category] = None
        for message_id in ids:
            await self._delete(message_id)
        await self._store(registry)

    async def purge(self) -> None:
        """Clean slate: delete every recorded message and empty the registry."""
        registry = await self._registry()
        ids = [registry[MAIN], registry[NAV], *registry[WIZARD]]
        await self._store({MAIN: None, NAV: None, WIZARD: []})
        for message_id in ids:
            if message_id:
                await self._delete(message_id)
