"""/mylistings: the owner's listings with edit and delete."""

import logging

import aiosqlite
from aiogram import Bot, F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from .. import db
from .. import keyboards as kb
from .. import texts
from ..flow import EditableField
from ..messages import MAIN, NAV, WIZARD, MessageTracker
from ..session import EditListing, get_edit, reset_flow, save_edit, start_edit
from .menu import not_command

logger = logging.getLogger(__name__)

router = Router()
router.message.filter(F.chat.type == "private")


async def show_my_listings(tracker: MessageTracker, telegram_id: int, header: str = "") -> None:
    listings = await db.list_user_listings(telegram_id)
    if listings:
        text = "📦 <b>Your listings</b>"
    else:
        text = "You have no listings."
    if header:
        text = f"{header}\n\n{text}"
    await tracker.discard(NAV)
    await tracker.discard(WIZARD)
    await tracker.replace(MAIN, text, reply_markup=kb.my_listings_kb(listings))


def edit_screen(edit: dict, prompt: str = "") -> str:
    current = {**edit["original"], **edit["changes"]}
    text = "✏️ <b>Editing listing</b>\n\n" + texts.format_listing(current)
    return f"{text}\n\n{prompt}" if prompt else f"{text}\n\nWhat do you want to edit?"


@router.message(Command("mylistings"))
async def cmd_mylistings(message: Message, state: FSMContext, bot: Bot) -> None:
    """Show the user's own listings on a clean chat."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    await reset_flow(state)
    await tracker.purge()
    await show_my_listings(tracker, message.from_user.id)


@router.callback_query(F.data == kb.MY_LISTINGS)
async def my_listings(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Show the user's own listings from the main menu."""
    await reset_flow(state)
    await show_my_listings(MessageTracker(bot, callback.from_user.id, state), callback.from_user.id)
    await callback.answer()


@router.callback_query(F.data.startswith(kb.DELETE_LISTING))
async def delete_listing(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Delete an owned listing; the owner goes too once nothing is left."""
    user_id = callback.from_user.id
    try:
        listing_id = int(callback.data[len(kb.DELETE_LISTING):])
    except ValueError:
        await callback.answer(texts.NOT_FOUND)
        return
    try:
        deleted = await db.delete_listing(listing_id, user_id)
    except aiosqlite.Error:
        logger.exception("Failed to delete listing %s for user %s", listing_id, user_id)
        await callback.answer("Could not delete the listing. Please try again.")
        return
    if not deleted:
        await callback.answer(texts.NOT_FOUND)
        return
    logger.info("User %s deleted listing %s", user_id, listing_id)
    await reset_flow(state)
    await show_my_listings(MessageTracker(bot, user_id, state), user_id, header="🗑 Listing deleted.")
    await callback.answer("Listing deleted.")


@router.callback_query(F.data.startswith(kb.EDIT_LISTING))
async def edit_listing(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Open the edit menu for an owned listing."""
    user_id = callback.from_user.id
    try:
        listing_id = int(callback.data[len(kb.EDIT_LISTING):])
    except ValueError:
        await callback.answer(texts.NOT_FOUND)
        return
    listing = await db.get_listing(listing_id)
    if not listing or listing["telegram_id"] != str(user_id):
        await callback.answer(texts.NOT_FOUND)
        return
    edit = await start_edit(state, listing)
    tracker = MessageTracker(bot, user_id, state)
    await tracker.discard(NAV)
    await tracker.discard(WIZARD)
    await tracker.replace(MAIN, edit_screen(edit), reply_markup=kb.edit_menu_kb())
    await callback.answer()


@router.callback_query(F.data.startswith(kb.EDIT_FIELD))
async def choose_field(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Ask for a new value for the chosen field."""
    edit = await get_edit(state)
    if not edit:
        await callback.answer("Nothing is being edited.")
        return
    try:
        field = EditableField(callback.data[len(kb.EDIT_FIELD):])
    except ValueError:
        await callback.answer("Unknown field.")
        return
    edit["field"] = field.value
    await save_edit(state, edit)
    await state.set_state(EditListing.waiting_for_value)
    hint = " (or send skip to remove it)" if field is EditableField.PRICE else ""
    tracker = MessageTracker(bot, callback.from_user.id, state)
    await tracker.replace(
        MAIN, edit_screen(edit, f"Send new value for {field.label}{hint}:"), reply_markup=kb.edit_value_kb()
    )
    await callback.answer()


@router.message(StateFilter(EditListing.waiting_for_value), not_command)
async def receive_value(message: Message, state: FSMContext, bot: Bot) -> None:
    """Record the new value for the field being edited, or re-prompt on a bad one."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    edit = await get_edit(state)
    if not edit or not edit.get("field"):
        await reset_flow(state)
        return
    field = EditableField(edit["field"])
    if message.text is None:
        value, error = None, f"Please send text for the {field.label.lower()}."
    else:
        value, error = field.parse(message.text)
    if error:
        await tracker.replace(
            MAIN, edit_screen(edit, f"⚠️ {error}\n\nSend new value for {field.label}:"), reply_markup=kb.edit_value_kb()
        )
        return
    edit["changes"][field.column] = value
    edit["field"] = None
    await save_edit(state, edit)
    await state.set_state(EditListing.choosing_field)
    await tracker.discard(WIZARD)
    await tracker.replace(
        MAIN, edit_screen(edit, f"{field.label} updated. What do you want to edit next?"),
        reply_markup=kb.edit_menu_kb(edit["changes"]),
    )


@router.message(StateFilter(EditListing.choosing_field), not_command)
async def stray_text(message: Message, state: FSMContext, bot: Bot) -> None:
    """Remind the user to pick a field while the edit menu is open."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    edit = await get_edit(state)
    if not edit:
        await reset_flow(state)
        return
    await tracker.discard(WIZARD)
    await tracker.replace(
        MAIN, edit_screen(edit, "Pick a field to edit, or press Done."), reply_markup=kb.edit_menu_kb(edit["changes"])
    )


@router.callback_query(F.data == kb.EDIT_DONE)
async def finish_editing(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Write every pending change in one update."""
    user_id = callback.from_user.id
    edit = await get_edit(state)
    if not edit:
        await callback.answer("Nothing is being edited.")
        return
    await reset_flow(state)
    tracker = MessageTracker(bot, user_id, state)
    if not edit["changes"]:
        await show_my_listings(tracker, user_id, header="No changes made.")
        await callback.answer()
        return
    try:
        updated = await db.update_listing(edit["listing_id"], user_id, edit["changes"])
    except aiosqlite.Error:
        logger.exception("Failed to update listing %s for user %s", edit["listing_id"], user_id)
        await callback.answer("Could not update the listing. Please try again.")
        return
    if not updated:
        await callback.answer(texts.NOT_FOUND)
        await show_my_listings(tracker, user_id)
        return
    logger.info("User %s updated listing %s: %s", user_id, edit["listing_id"], sorted(edit["changes"]))
    await show_my_listings(tracker, user_id, header="✅ Listing updated!")
    await callback.answer("Listing updated!")


@router.callback_query(F.data == kb.EDIT_CANCEL)
async def cancel_editing(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Drop pending changes and go back to the user's listings."""
    await reset_flow(state)
    await show_my_listings(MessageTracker(bot, callback.from_user.id, state), callback.from_user.id)
    await callback.answer()
