"""Message texts.  The bot sends HTML, so user-supplied values are quoted."""

from aiogram import html

MAIN_MENU = "🎸 <b>GearTrader Main Menu</b>\n\nChoose what you'd like to do:"

WELCOME = (
    "Welcome to GearTrader! 🎸\n\n"
    "This bot helps you trade musical gear (no money involved).\n\n"
    "🔒 <b>Privacy Notice:</b>\n"
    "Your contact info and user data are stored <b>only while your listing is live</b>.\n"
    "As soon as you delete your last listing, all your data is permanently deleted.\n"
    "No personal information is retained longer than necessary."
)

HELP = (
    "🎸 <b>GearTrader Help</b>\n\n"
    "<b>Commands:</b>\n"
    "• /start - Start over with a clean chat\n"
    "• /menu - Show main menu\n"
    "• /add - Add new listing\n"
    "• /browse - Browse listings one by one\n"
    "• /listings - View all listings\n"
    "• /mylistings - Manage your listings\n"
    "• /cancel - Abort the current step\n\n"
    "<b>Features:</b>\n"
    "• Add listings with up to 5 photos\n"
    "• Browse listings and contact sellers directly\n"
    "• Edit or delete your own listings\n\n"
    "<b>Privacy:</b> Your data is only stored while your listings are active."
)

NO_LISTINGS = "No listings found."
NOT_FOUND = "Listing not found."
SAVE_FAILED = "There was an error saving your listing. Please try again."
GENERIC_FAILURE = "Something went wrong. Please try again later."


def format_listing(listing: dict) -> str:
    lines = [f"<b>{html.quote(listing['title'])}</b>", html.quote(listing["description"]), ""]
    if listing.get("price"):
        lines.append(f"💵 Price: {html.quote(listing['price'])}")
    lines.append(f"📍 Location: {html.quote(listing['location'])}")
    if listing.get("marketplace_link"):
        lines.append(f"🔗 Link: {html.quote(listing['marketplace_link'])}")
    lines.append(f"📞 Contact: {html.quote(listing['contact'])}")
    return "\n".join(lines)


def format_draft_summary(draft: dict) -> str:
    """Short recap shown once a listing is saved."""
    photos = len(draft.get("photos") or [])
    return f"✅ Your listing <b>{html.quote(draft['title'])}</b> has been added with {photos} photo(s)!"
