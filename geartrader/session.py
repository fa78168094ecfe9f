"""Per-chat session state kept in the aiogram FSM storage.

The FSM data dict holds three keys: ``draft`` (listing being created),
``edit`` (listing being edited) and ``messages`` (ids of bot messages that
belong to the current screen).  Ending a flow drops the first two and keeps
the message registry so the screen can still be cleaned up.
"""

from typing import Any, Dict, Optional

from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup

DRAFT_KEY = "draft"
EDIT_KEY = "edit"
MESSAGES_KEY = "messages"


class AddListing(StatesGroup):
    title = State()
    description = State()
    price = State()
    location = State()
    contact = State()
    marketplace_link = State()
    photos = State()


class EditListing(StatesGroup):
    choosing_field = State()
    waiting_for_value = State()


async def start_draft(state: FSMContext) -> None:
    """Begin a fresh draft, silently replacing any previous flow."""
    await reset_flow(state)
    await state.update_data({DRAFT_KEY: {}})


async def get_draft(state: FSMContext) -> Dict[str, Any]:
    data = await state.get_data()
    return dict(data.get(DRAFT_KEY) or {})


async def save_draft(state: FSMContext, draft: Dict[str, Any]) -> None:
    await state.update_data({DRAFT_KEY: draft})


async def start_edit(state: FSMContext, listing: dict) -> Dict[str, Any]:
    await reset_flow(state)
    edit = {
        "listing_id": listing["id"],
        "original": {
            "title": listing["title"],
            "description": listing["description"],
            "price": listing["price"],
            "location": listing["location"],
            "contact": listing["contact"],
        },
        "changes": {},
        "field": None,
    }
    await state.update_data({EDIT_KEY: edit})
    await state.set_state(EditListing.choosing_field)
    return edit


async def get_edit(state: FSMContext) -> Optional[Dict[str, Any]]:
    data = await state.get_data()
    edit = data.get(EDIT_KEY)
    if not edit:
        return None
    # Nested dicts are shared with the storage; hand out copies.
    return {**edit, "original": dict(edit["original"]), "changes": dict(edit["changes"])}


async def save_edit(state: FSMContext, edit: Dict[str, Any]) -> None:
    await state.update_data({EDIT_KEY: edit})


async def reset_flow(state: FSMContext) -> None:
    """Leave any flow: clear the step pointer, the draft and the edit state."""
    data = await state.get_data()
    await state.set_state(None)
    await state.set_data({MESSAGES_KEY: data.get(MESSAGES_KEY) or {}})
