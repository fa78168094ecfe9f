from __future__ import annotations

import itertools
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from geartrader import config, db

USER_ID = 4242


class FakeBot:
    """Records outbound calls the way the tests need to inspect them."""

    def __init__(self):
        self._ids = itertools.count(1000)
        self.sent = []
        self.edited = []
        self.deleted = []
        self.albums = []
        self.edit_error = None
        self.delete_error = None

    async def send_message(self, chat_id, text, reply_markup=None, **kwargs):
        message_id = next(self._ids)
        self.sent.append(SimpleNamespace(chat_id=chat_id, message_id=message_id, text=text, reply_markup=reply_markup))
        return SimpleNamespace(message_id=message_id)

    async def edit_message_text(self, text, chat_id, message_id, reply_markup=None, **kwargs):
        if self.edit_error is not None:
            raise self.edit_error
        self.edited.append(SimpleNamespace(chat_id=chat_id, message_id=message_id, text=text, reply_markup=reply_markup))

    async def delete_message(self, chat_id, message_id):
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(message_id)

    async def send_media_group(self, chat_id, media):
        sent = [SimpleNamespace(message_id=next(self._ids)) for _ in media]
        self.albums.append([m.media for m in media])
        return sent

    async def send_photo(self, chat_id, photo, caption=None, **kwargs):
        self.albums.append([photo])
        return SimpleNamespace(message_id=next(self._ids))

    def texts(self):
        return [m.text for m in self.sent] + [m.text for m in self.edited]


@pytest.fixture
async def database(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DB_FILENAME", str(tmp_path / "geartrader-test.db"))
    await db.init_db()
    return db


@pytest.fixture
def bot():
    return FakeBot()


@pytest.fixture
def state():
    return FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=USER_ID, user_id=USER_ID))


@pytest.fixture
def user():
    return SimpleNamespace(id=USER_ID, username="strummer", full_name="Joe Strummer")


_message_ids = itertools.count(1)


def make_message(user, text=None, photo_id=None):
    photo = None
    if photo_id is not None:
        photo = [SimpleNamespace(file_id=f"{photo_id}-small"), SimpleNamespace(file_id=photo_id)]
    return SimpleNamespace(
        message_id=next(_message_ids),
        text=text,
        photo=photo,
        from_user=user,
        chat=SimpleNamespace(id=user.id, type="private"),
    )


def make_callback(user, data):
    return SimpleNamespace(data=data, from_user=user, answer=AsyncMock())
