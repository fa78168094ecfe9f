"""Inline keyboards and the callback payloads they carry."""

from typing import Dict, List, Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from .flow import EditableField

# Callback payloads.  Prefixed payloads carry an id or page after the prefix.
BROWSE = "browse_listings"
ADD = "add_listing"
MY_LISTINGS = "my_listings"
ALL_LISTINGS = "all_listings"
HELP = "help_info"
BACK_TO_MENU = "back_to_menu"
NOOP = "noop"

BROWSE_PAGE = "browse_page_"
LISTINGS_PAGE = "listings_page_"
SHOW_LISTING = "show_listing_"
EDIT_LISTING = "edit_listing_"
DELETE_LISTING = "delete_listing_"
EDIT_FIELD = "edit_field_"
EDIT_DONE = "edit_done"
EDIT_CANCEL = "edit_cancel"

WIZARD_SKIP = "wizard_skip"
WIZARD_DONE = "wizard_done"
WIZARD_CANCEL = "wizard_cancel"


def _button(text: str, data: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=data)


def main_menu_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [_button("🎛 Browse Listings", BROWSE)],
            [_button("➕ Add New Listing", ADD)],
            [_button("📦 My Listings", MY_LISTINGS)],
            [_button("📋 All Listings", ALL_LISTINGS)],
            [_button("ℹ️ Help & Info", HELP)],
        ]
    )


def back_to_menu_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[_button("🔙 Back to Menu", BACK_TO_MENU)]])


def wizard_kb(skip: bool = False, done: bool = False) -> InlineKeyboardMarkup:
    """Controls shown under each wizard prompt."""
    row = []
    if skip:
        row.append(_button("⏭ Skip", WIZARD_SKIP))
    if done:
        row.append(_button("✅ Done", WIZARD_DONE))
    row.append(_button("✖️ Cancel", WIZARD_CANCEL))
    return InlineKeyboardMarkup(inline_keyboard=[row])


def browse_nav_kb(page: int, total: int) -> InlineKeyboardMarkup:
    """Prev/next controls; the ends show an inert placeholder instead."""
    prev_btn = _button("⬅️ Prev", f"{BROWSE_PAGE}{page - 1}") if page > 0 else _button("·", NOOP)
    next_btn = _button("➡️ Next", f"{BROWSE_PAGE}{page + 1}") if page < total - 1 else _button("·", NOOP)
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [prev_btn, _button(f"{page + 1}/{total}", NOOP), next_btn],
            [_button("🔙 Back to Menu", BACK_TO_MENU)],
        ]
    )


def listings_kb(listings: List[dict], page: int, pages: int) -> InlineKeyboardMarkup:
    """One button per listing: "Title (Price) - Location"."""
    rows = []
    for listing in listings:
        label = listing["title"]
        if listing.get("price"):
            label += f" ({listing['price']})"
        label += f" - {listing['location']}"
        rows.append([_button(label[:64], f"{SHOW_LISTING}{listing['id']}")])
    if pages > 1:
        nav = []
        if page > 0:
            nav.append(_button("⬅️ Prev", f"{LISTINGS_PAGE}{page - 1}"))
        if page < pages - 1:
            nav.append(_button("➡️ Next", f"{LISTINGS_PAGE}{page + 1}"))
        rows.append(nav)
    rows.append([_button("🔙 Back to Menu", BACK_TO_MENU)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def my_listings_kb(listings: List[dict]) -> InlineKeyboardMarkup:
    rows = []
    for listing in listings:
        rows.append([_button(listing["title"][:40], f"{SHOW_LISTING}{listing['id']}")])
        rows.append(
            [
                _button("✏️ Edit", f"{EDIT_LISTING}{listing['id']}"),
                _button("🗑 Delete", f"{DELETE_LISTING}{listing['id']}"),
            ]
        )
    rows.append([_button("➕ Add New Listing", ADD)])
    rows.append([_button("🔙 Back to Menu", BACK_TO_MENU)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def edit_menu_kb(changes: Optional[Dict] = None) -> InlineKeyboardMarkup:
    changes = changes or {}
    rows = []
    for field in EditableField:
        mark = " ✏️" if field.value in changes else ""
        rows.append([_button(f"{field.label}{mark}", f"{EDIT_FIELD}{field.value}")])
    rows.append([_button("✅ Done", EDIT_DONE), _button("✖️ Cancel", EDIT_CANCEL)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def edit_value_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[_button("✖️ Cancel", EDIT_CANCEL)]])
