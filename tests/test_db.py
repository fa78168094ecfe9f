from __future__ import annotations

import aiosqlite
import pytest

LISTING = dict(
    title="Fender Strat",
    description="Great condition, barely used",
    price="$500",
    location="NY",
    marketplace_link=None,
    photos=["file-1", "file-2"],
)


async def _count(database, table):
    async with database.connect() as conn:
        cur = await conn.execute(f"SELECT COUNT(*) FROM {table}")
        return (await cur.fetchone())[0]


async def test_create_listing_upserts_owner_and_stores_photos(database):
    listing_id = await database.create_listing(telegram_id=1, username="amp", contact="@amp", **LISTING)
    listing = await database.get_listing(listing_id)
    assert listing["title"] == "Fender Strat"
    assert listing["photos"] == ["file-1", "file-2"]
    assert listing["contact"] == "@amp"
    assert await _count(database, "users") == 1


async def test_second_listing_reuses_owner_and_refreshes_contact(database):
    await database.create_listing(telegram_id=1, username="amp", contact="@amp", **LISTING)
    await database.create_listing(telegram_id=1, username="amp2", contact="+1 555 0100", **LISTING)
    assert await _count(database, "users") == 1
    owner = await database.get_user(1)
    assert owner["contact"] == "+1 555 0100"
    assert owner["username"] == "amp2"


async def test_failed_insert_rolls_back_the_user_upsert(database):
    async with database.connect() as conn:
        await conn.execute("DROP TABLE listings")
        await conn.commit()
    with pytest.raises(aiosqlite.Error):
        await database.create_listing(telegram_id=1, username="amp", contact="@amp", **LISTING)
    assert await database.get_user(1) is None


async def test_listings_are_newest_first(database):
    first = await database.create_listing(telegram_id=1, username=None, contact="@a", **LISTING)
    second = await database.create_listing(telegram_id=2, username=None, contact="@b", **LISTING)
    listings = await database.list_listings(offset=0, limit=10)
    assert [l["id"] for l in listings] == [second, first]
    assert [l["contact"] for l in listings] == ["@b", "@a"]
    assert await database.count_listings() == 2
    assert [l["id"] for l in await database.list_listings(offset=1, limit=1)] == [first]


async def test_deleting_last_listing_deletes_owner(database):
    listing_id = await database.create_listing(telegram_id=1, username=None, contact="@a", **LISTING)
    assert await database.delete_listing(listing_id, 1) is True
    assert await database.get_listing(listing_id) is None
    assert await database.get_user(1) is None


async def test_deleting_one_of_several_keeps_owner_and_the_rest(database):
    keep = await database.create_listing(telegram_id=1, username=None, contact="@a", **LISTING)
    drop = await database.create_listing(telegram_id=1, username=None, contact="@a", **dict(LISTING, title="Gibson SG"))
    assert await database.delete_listing(drop, 1) is True
    assert await database.get_user(1) is not None
    remaining = await database.list_user_listings(1)
    assert [l["id"] for l in remaining] == [keep]
    assert remaining[0]["title"] == "Fender Strat"


async def test_delete_requires_ownership(database):
    listing_id = await database.create_listing(telegram_id=1, username=None, contact="@a", **LISTING)
    assert await database.delete_listing(listing_id, 2) is False
    assert await database.delete_listing(listing_id + 100, 1) is False
    assert await database.get_listing(listing_id) is not None
    assert await database.get_user(1) is not None


async def test_update_touches_only_given_fields(database):
    listing_id = await database.create_listing(telegram_id=1, username=None, contact="@a", **LISTING)
    assert await database.update_listing(listing_id, 1, {"price": "$200"}) is True
    listing = await database.get_listing(listing_id)
    assert listing["price"] == "$200"
    assert listing["title"] == LISTING["title"]
    assert listing["description"] == LISTING["description"]
    assert listing["location"] == LISTING["location"]
    assert listing["photos"] == LISTING["photos"]


async def test_update_contact_goes_to_owner(database):
    listing_id = await database.create_listing(telegram_id=1, username=None, contact="@a", **LISTING)
    await database.update_listing(listing_id, 1, {"contact": "@new", "price": None})
    listing = await database.get_listing(listing_id)
    assert listing["contact"] == "@new"
    assert listing["price"] is None


async def test_update_rejects_foreign_listing_and_unknown_fields(database):
    listing_id = await database.create_listing(telegram_id=1, username=None, contact="@a", **LISTING)
    assert await database.update_listing(listing_id, 2, {"title": "Stolen"}) is False
    assert (await database.get_listing(listing_id))["title"] == "Fender Strat"
    with pytest.raises(ValueError):
        await database.update_listing(listing_id, 1, {"user_id": 2})


async def test_upsert_user_returns_stable_id(database):
    first = await database.upsert_user(7, "amp", "@amp")
    second = await database.upsert_user(7, "amp", "@other")
    assert first == second
    assert (await database.get_user(7))["contact"] == "@other"
