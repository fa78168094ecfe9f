import asyncio
from typing import Any, Awaitable, Callable, Dict, Tuple

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject


class SessionLockMiddleware(BaseMiddleware):
    """Handle one event at a time per (chat, user).

    Polling runs updates as concurrent tasks; two quick replies from the same
    user must not interleave while they read and write the same draft.  A lock
    is dropped once no event holds or awaits it.
    """

    def __init__(self) -> None:
        self._locks: Dict[Tuple[int, int], asyncio.Lock] = {}
        self._pending: Dict[Tuple[int, int], int] = {}

    def lock_for(self, chat_id: int, user_id: int) -> asyncio.Lock:
        return self._locks.setdefault((chat_id, user_id), asyncio.Lock())

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        if user is None:
            return await handler(event, data)
        chat = data.get("event_chat")
        key = (chat.id if chat else user.id, user.id)
        lock = self.lock_for(*key)
        self._pending[key] = self._pending.get(key, 0) + 1
        try:
            async with lock:
                return await handler(event, data)
        finally:
            self._pending[key] -= 1
            if not self._pending[key]:
                del self._pending[key]
                self._locks.pop(key, None)
