"""/browse: one listing per page, newest first."""

from aiogram import Bot, F, Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from .. import db
from .. import keyboards as kb
from .. import texts
from ..messages import MAIN, NAV, WIZARD, MessageTracker
from ..session import reset_flow

router = Router()
router.message.filter(F.chat.type == "private")


def clamp_page(page: int, total: int) -> int:
    """Nearest valid page index; 0 when there is nothing to show."""
    if total <= 0:
        return 0
    return max(0, min(page, total - 1))


async def show_page(tracker: MessageTracker, page: int) -> int:
    """Render page ``page`` (clamped) and return the index actually shown.

    Photos go out first as an album because Telegram cannot attach buttons
    to a media group.  When an album is sent, the body and controls are sent
    again underneath it; otherwise they are edited in place.
    """
    total = await db.count_listings()
    page = clamp_page(page, total)
    listings = await db.list_listings(offset=page, limit=1) if total else []
    await tracker.discard(WIZARD)
    if not listings:
        await tracker.discard(NAV)
        await tracker.replace(MAIN, texts.NO_LISTINGS, reply_markup=kb.back_to_menu_kb())
        return page
    listing = listings[0]
    body = texts.format_listing(listing)
    nav_text = f"Listing {page + 1} of {total}"
    nav_kb = kb.browse_nav_kb(page, total)
    if listing["photos"]:
        await tracker.emit_album(listing["photos"])
        await tracker.emit(MAIN, body)
        await tracker.emit(NAV, nav_text, reply_markup=nav_kb)
    else:
        await tracker.replace(MAIN, body)
        await tracker.replace(NAV, nav_text, reply_markup=nav_kb)
    return page


@router.message(Command("browse"))
async def cmd_browse(message: Message, state: FSMContext, bot: Bot) -> None:
    """Browse all listings from the newest one."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    await reset_flow(state)
    await tracker.purge()
    await show_page(tracker, 0)


@router.callback_query(F.data == kb.BROWSE)
async def browse_from_menu(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Browse all listings from the main menu button."""
    await reset_flow(state)
    await show_page(MessageTracker(bot, callback.from_user.id, state), 0)
    await callback.answer()


@router.callback_query(F.data.startswith(kb.BROWSE_PAGE))
async def browse_page(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Move to another page; out-of-range pages are clamped."""
    try:
        page = int(callback.data[len(kb.BROWSE_PAGE):])
    except ValueError:
        page = 0
    await show_page(MessageTracker(bot, callback.from_user.id, state), page)
    await callback.answer()
