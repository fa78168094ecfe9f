"""The add-listing wizard.

The FSM state is the step pointer: one ``AddListing`` state per step.  Each
inbound message is handled by exactly one step, validated by
:mod:`geartrader.flow`, and either re-prompts the same step or advances by
one.  Prompts and user replies are tracked as wizard messages and removed
when the flow ends.
"""

import logging

import aiosqlite
from aiogram import Bot, F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message, User

from .. import db
from .. import keyboards as kb
from .. import texts
from ..config import MAX_PHOTOS
from ..flow import (
    CANCEL_WORDS,
    DONE_WORDS,
    FIELD_LABELS,
    PROMPTS,
    SKIPPABLE,
    DraftInvalid,
    WizardStep,
    add_photo,
    finalize,
    submit_skip,
    submit_text,
)
from ..messages import WIZARD, MessageTracker
from ..session import AddListing, get_draft, reset_flow, save_draft, start_draft
from .menu import not_command, show_main_menu

logger = logging.getLogger(__name__)

router = Router()
router.message.filter(F.chat.type == "private")

STATE_FOR_STEP = {step: getattr(AddListing, step.value) for step in WizardStep}
STEP_FOR_STATE = {s.state: step for step, s in STATE_FOR_STEP.items()}


async def current_step(state: FSMContext):
    return STEP_FOR_STATE.get(await state.get_state())


async def prompt(tracker: MessageTracker, step: WizardStep, error: str = "") -> None:
    text = f"⚠️ {error}\n\n{PROMPTS[step]}" if error else PROMPTS[step]
    await tracker.emit(
        WIZARD,
        text,
        reply_markup=kb.wizard_kb(skip=step in SKIPPABLE, done=step is WizardStep.PHOTOS),
    )


async def advance(tracker: MessageTracker, state: FSMContext, draft: dict, step: WizardStep) -> None:
    await save_draft(state, draft)
    await state.set_state(STATE_FOR_STEP[step])
    await prompt(tracker, step)


async def begin(bot: Bot, chat_id: int, state: FSMContext) -> None:
    """Start a fresh wizard on a clean chat, dropping any earlier draft."""
    tracker = MessageTracker(bot, chat_id, state)
    await tracker.purge()
    await start_draft(state)
    await state.set_state(STATE_FOR_STEP[WizardStep.TITLE])
    await prompt(tracker, WizardStep.TITLE)


async def cancel(tracker: MessageTracker, state: FSMContext) -> None:
    await reset_flow(state)
    await show_main_menu(tracker, fresh=True, header="✖️ Listing discarded.")


async def complete(bot: Bot, user: User, state: FSMContext) -> None:
    """Validate the whole draft and save it.

    The wizard leaves its state before anything is written, so a repeated
    completion trigger finds no active flow and creates nothing.
    """
    if await current_step(state) is not WizardStep.PHOTOS:
        return
    tracker = MessageTracker(bot, user.id, state)
    draft = await get_draft(state)
    await reset_flow(state)
    try:
        listing = finalize(draft)
    except DraftInvalid as e:
        problems = "\n".join(f"• {err}" for err in e.errors)
        await show_main_menu(tracker, fresh=True, header=f"❌ Your listing was not saved:\n{problems}")
        return
    try:
        listing_id = await db.create_listing(
            telegram_id=user.id,
            username=user.username,
            contact=listing.contact,
            title=listing.title,
            description=listing.description,
            price=listing.price or None,
            location=listing.location,
            # Stored as typed; the validated HttpUrl is normalised.
            marketplace_link=draft.get("marketplace_link") or None,
            photos=listing.photos,
        )
    except aiosqlite.Error:
        logger.exception("Failed to save listing for user %s", user.id)
        await show_main_menu(tracker, fresh=True, header=texts.SAVE_FAILED)
        return
    logger.info("User %s created listing %s", user.id, listing_id)
    await show_main_menu(tracker, fresh=True, header=texts.format_draft_summary(listing.model_dump()))


@router.message(Command("add"))
async def cmd_add(message: Message, state: FSMContext, bot: Bot) -> None:
    """Start a new listing from the /add command."""
    await MessageTracker(bot, message.from_user.id, state).track(message.message_id)
    await begin(bot, message.from_user.id, state)


@router.callback_query(F.data == kb.ADD)
async def add_from_menu(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Start a new listing from the main menu button."""
    await begin(bot, callback.from_user.id, state)
    await callback.answer()


@router.message(StateFilter(AddListing), Command("done"))
async def cmd_done(message: Message, state: FSMContext, bot: Bot) -> None:
    """Finish the wizard from the photos step; earlier steps are re-prompted."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    step = await current_step(state)
    if step is WizardStep.PHOTOS:
        await complete(bot, message.from_user, state)
        return
    await prompt(tracker, step, "Fill in this step first.")


@router.message(StateFilter(AddListing), not_command)
async def handle_step(message: Message, state: FSMContext, bot: Bot) -> None:
    """Feed one reply to the current step: validate, then re-prompt or advance."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    step = await current_step(state)
    text = (message.text or "").strip()
    if text.lower() in CANCEL_WORDS:
        await cancel(tracker, state)
        return
    draft = await get_draft(state)
    if step is WizardStep.PHOTOS:
        if message.photo:
            # Telegram sends every size; the last one is the largest.
            if add_photo(draft, message.photo[-1].file_id):
                await save_draft(state, draft)
                count = len(draft["photos"])
                await tracker.emit(
                    WIZARD,
                    f"Photo {count}/{MAX_PHOTOS} received. Send more or press Done.",
                    reply_markup=kb.wizard_kb(done=True),
                )
            else:
                await tracker.emit(
                    WIZARD,
                    f"You have reached the maximum of {MAX_PHOTOS} photos. Press Done to finish.",
                    reply_markup=kb.wizard_kb(done=True),
                )
            return
        if text.lower() in DONE_WORDS:
            await complete(bot, message.from_user, state)
            return
        await prompt(tracker, step, "Send a photo or press Done to finish.")
        return
    if message.text is None:
        await prompt(tracker, step, f"Please send text for the {FIELD_LABELS[step.value].lower()}.")
        return
    result = submit_text(draft, step, message.text)
    if not result.ok:
        await prompt(tracker, step, result.error)
        return
    await advance(tracker, state, draft, result.step)


@router.callback_query(StateFilter(AddListing), F.data == kb.WIZARD_SKIP)
async def skip_step(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Skip an optional step; required steps answer with a toast."""
    step = await current_step(state)
    draft = await get_draft(state)
    result = submit_skip(draft, step)
    if not result.ok:
        await callback.answer(result.error)
        return
    await advance(MessageTracker(bot, callback.from_user.id, state), state, draft, result.step)
    await callback.answer()


@router.callback_query(StateFilter(AddListing), F.data == kb.WIZARD_DONE)
async def done(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Finish the wizard from the Done button."""
    await complete(bot, callback.from_user, state)
    await callback.answer()


@router.callback_query(F.data == kb.WIZARD_CANCEL)
async def cancel_button(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Discard the draft and return to the main menu."""
    await cancel(MessageTracker(bot, callback.from_user.id, state), state)
    await callback.answer()


@router.callback_query(F.data.in_({kb.WIZARD_SKIP, kb.WIZARD_DONE}))
async def stale_wizard_button(callback: CallbackQuery) -> None:
    """Answer Skip or Done buttons left over from a finished wizard."""
    await callback.answer("This listing is no longer being created.")
