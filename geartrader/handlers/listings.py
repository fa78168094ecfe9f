"""/listings: every listing as a button, and the detail view behind it."""

import math

from aiogram import Bot, F, Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from .. import db
from .. import keyboards as kb
from .. import texts
from ..config import LISTINGS_PAGE_SIZE
from ..messages import MAIN, NAV, WIZARD, MessageTracker
from ..session import reset_flow
from .browse import clamp_page

router = Router()
router.message.filter(F.chat.type == "private")


async def show_overview(tracker: MessageTracker, page: int) -> None:
    total = await db.count_listings()
    pages = math.ceil(total / LISTINGS_PAGE_SIZE)
    page = clamp_page(page, pages)
    await tracker.discard(NAV)
    await tracker.discard(WIZARD)
    if not total:
        await tracker.replace(MAIN, texts.NO_LISTINGS, reply_markup=kb.back_to_menu_kb())
        return
    listings = await db.list_listings(offset=page * LISTINGS_PAGE_SIZE, limit=LISTINGS_PAGE_SIZE)
    await tracker.replace(
        MAIN, "Select a listing to view details:", reply_markup=kb.listings_kb(listings, page, pages)
    )


@router.message(Command("listings"))
async def cmd_listings(message: Message, state: FSMContext, bot: Bot) -> None:
    """List every listing as a button on a clean chat."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    await reset_flow(state)
    await tracker.purge()
    await show_overview(tracker, 0)


@router.callback_query(F.data == kb.ALL_LISTINGS)
async def all_listings(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """List every listing as a button from the main menu."""
    await reset_flow(state)
    await show_overview(MessageTracker(bot, callback.from_user.id, state), 0)
    await callback.answer()


@router.callback_query(F.data.startswith(kb.LISTINGS_PAGE))
async def listings_page(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Show another page of listing buttons."""
    try:
        page = int(callback.data[len(kb.LISTINGS_PAGE):])
    except ValueError:
        page = 0
    await show_overview(MessageTracker(bot, callback.from_user.id, state), page)
    await callback.answer()


@router.callback_query(F.data.startswith(kb.SHOW_LISTING))
async def show_listing(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Show the full listing behind a button."""
    try:
        listing_id = int(callback.data[len(kb.SHOW_LISTING):])
    except ValueError:
        await callback.answer(texts.NOT_FOUND)
        return
    listing = await db.get_listing(listing_id)
    if not listing:
        await callback.answer(texts.NOT_FOUND)
        return
    tracker = MessageTracker(bot, callback.from_user.id, state)
    await tracker.discard(NAV)
    await tracker.discard(WIZARD)
    body = texts.format_listing(listing)
    if listing["photos"]:
        await tracker.emit_album(listing["photos"])
        await tracker.emit(MAIN, body, reply_markup=kb.back_to_menu_kb())
    else:
        await tracker.replace(MAIN, body, reply_markup=kb.back_to_menu_kb())
    await callback.answer()
