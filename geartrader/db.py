"""SQLite persistence for users and listings.

Every function opens its own connection, the same way the rest of the bot
treats the database as a simple repository.  A user row lives only as long
as it owns at least one listing: :func:`delete_listing` removes the owner
together with its last listing.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import aiosqlite

from . import config

logger = logging.getLogger(__name__)

# Columns a listing update may touch.  ``contact`` lives on the owning user.
LISTING_COLUMNS = ("title", "description", "price", "location", "marketplace_link", "photos")
USER_COLUMNS = ("contact",)


@asynccontextmanager
async def connect():
    async with aiosqlite.connect(config.DB_FILENAME) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
        yield db


async def init_db() -> None:
    """Create the tables if they do not exist yet."""
    async with connect() as db:
        await db.execute(
            """CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                telegram_id TEXT NOT NULL UNIQUE,
                username TEXT,
                contact TEXT NOT NULL
            )"""
        )
        await db.execute(
            """CREATE TABLE IF NOT EXISTS listings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                price TEXT,
                location TEXT NOT NULL,
                marketplace_link TEXT,
                photos TEXT NOT NULL DEFAULT '[]',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            )"""
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_listings_user ON listings(user_id)")
        await db.commit()


def _listing_from_row(row: aiosqlite.Row) -> dict:
    listing = dict(row)
    listing["photos"] = json.loads(listing.get("photos") or "[]")
    return listing


_LISTING_SELECT = (
    "SELECT l.id, l.user_id, l.title, l.description, l.price, l.location, l.marketplace_link, "
    "l.photos, l.created_at, u.telegram_id, u.username, u.contact "
    "FROM listings l JOIN users u ON u.id = l.user_id"
)


async def _upsert_user(db: aiosqlite.Connection, telegram_id: str, username: Optional[str], contact: str) -> int:
    await db.execute(
        "INSERT INTO users (telegram_id, username, contact) VALUES (?, ?, ?) "
        "ON CONFLICT(telegram_id) DO UPDATE SET username = excluded.username, contact = excluded.contact",
        (telegram_id, username, contact),
    )
    cur = await db.execute("SELECT id FROM users WHERE telegram_id = ?", (telegram_id,))
    row = await cur.fetchone()
    return row["id"]


async def upsert_user(telegram_id: int, username: Optional[str], contact: str) -> int:
    """Insert the user or refresh its handle and contact; return the internal id."""
    async with connect() as db:
        user_id = await _upsert_user(db, str(telegram_id), username, contact)
        await db.commit()
        logger.debug("user.upsert telegram_id=%s id=%s", telegram_id, user_id)
        return user_id


async def create_listing(
    telegram_id: int,
    username: Optional[str],
    contact: str,
    title: str,
    description: str,
    price: Optional[str],
    location: str,
    marketplace_link: Optional[str],
    photos: List[str],
) -> int:
    """Upsert the owner and insert the listing in a single transaction."""
    async with connect() as db:
        try:
            user_id = await _upsert_user(db, str(telegram_id), username, contact)
            cur = await db.execute(
                "INSERT INTO listings (user_id, title, description, price, location, marketplace_link, photos) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (user_id, title, description, price, location, marketplace_link, json.dumps(photos)),
            )
            listing_id = cur.lastrowid
            await db.commit()
        except aiosqlite.Error:
            await db.rollback()
            raise
    logger.debug("listing.create id=%s user_id=%s photos=%d", listing_id, user_id, len(photos))
    return listing_id


async def get_listing(listing_id: int) -> Optional[dict]:
    async with connect() as db:
        cur = await db.execute(_LISTING_SELECT + " WHERE l.id = ?", (listing_id,))
        row = await cur.fetchone()
        return _listing_from_row(row) if row else None


async def get_user(telegram_id: int) -> Optional[dict]:
    async with connect() as db:
        cur = await db.execute(
            "SELECT id, telegram_id, username, contact FROM users WHERE telegram_id = ?",
            (str(telegram_id),),
        )
        row = await cur.fetchone()
        return dict(row) if row else None


async def count_listings() -> int:
    async with connect() as db:
        cur = await db.execute("SELECT COUNT(*) FROM listings")
        row = await cur.fetchone()
        return row[0]


async def list_listings(offset: int = 0, limit: int = 1) -> List[dict]:
    """Return listings newest first, each joined to its owner's contact."""
    async with connect() as db:
        cur = await db.execute(
            _LISTING_SELECT + " ORDER BY l.created_at DESC, l.id DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        rows = await cur.fetchall()
        return [_listing_from_row(r) for r in rows]


async def list_user_listings(telegram_id: int) -> List[dict]:
    async with connect() as db:
        cur = await db.execute(
            _LISTING_SELECT + " WHERE u.telegram_id = ? ORDER BY l.created_at DESC, l.id DESC",
            (str(telegram_id),),
        )
        rows = await cur.fetchall()
        return [_listing_from_row(r) for r in rows]


async def update_listing(listing_id: int, telegram_id: int, changes: Dict[str, object]) -> bool:
    """Apply ``changes`` to a listing owned by ``telegram_id``.

    Keys are column names from :data:`LISTING_COLUMNS` or ``contact``, which
    is written to the owner.  Returns False when the listing does not exist
    or belongs to somebody else; nothing is written in that case.
    """
    unknown = set(changes) - set(LISTING_COLUMNS) - set(USER_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown listing fields: {sorted(unknown)}")
    listing_changes = {k: v for k, v in changes.items() if k in LISTING_COLUMNS}
    if "photos" in listing_changes:
        listing_changes["photos"] = json.dumps(listing_changes["photos"])
    async with connect() as db:
        cur = await db.execute(
            "SELECT l.user_id FROM listings l JOIN users u ON u.id = l.user_id WHERE l.id = ? AND u.telegram_id = ?",
            (listing_id, str(telegram_id)),
        )
        row = await cur.fetchone()
        if not row:
            return False
        try:
            if listing_changes:
                assignments = ", ".join(f"{column} = ?" for column in listing_changes)
                await db.execute(
                    f"UPDATE listings SET {assignments} WHERE id = ?",
                    (*listing_changes.values(), listing_id),
                )
            if "contact" in changes:
                await db.execute("UPDATE users SET contact = ? WHERE id = ?", (changes["contact"], row["user_id"]))
            await db.commit()
        except aiosqlite.Error:
            await db.rollback()
            raise
    logger.debug("listing.update id=%s fields=%s", listing_id, sorted(changes))
    return True


async def delete_listing(listing_id: int, telegram_id: int) -> bool:
    """Delete an owned listing, and its owner if no listings remain.

    Returns False without touching anything when the listing is missing or
    is not owned by ``telegram_id``.
    """
    async with connect() as db:
        cur = await db.execute(
            "SELECT l.user_id FROM listings l JOIN users u ON u.id = l.user_id WHERE l.id = ? AND u.telegram_id = ?",
            (listing_id, str(telegram_id)),
        )
        row = await cur.fetchone()
        if not row:
            return False
        user_id = row["user_id"]
        try:
            await db.execute("DELETE FROM listings WHERE id = ?", (listing_id,))
            cur = await db.execute("SELECT COUNT(*) FROM listings WHERE user_id = ?", (user_id,))
            remaining = (await cur.fetchone())[0]
            if remaining == 0:
                await db.execute("DELETE FROM users WHERE id = ?", (user_id,))
                logger.debug("user.delete id=%s (last listing removed)", user_id)
            await db.commit()
        except aiosqlite.Error:
            await db.rollback()
            raise
    logger.debug("listing.delete id=%s", listing_id)
    return True
