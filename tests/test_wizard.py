from __future__ import annotations

from conftest import make_callback, make_message

from geartrader import keyboards as kb
from geartrader.handlers import browse, wizard
from geartrader.session import AddListing, get_draft


async def send(user, state, bot, text=None, photo_id=None):
    await wizard.handle_step(make_message(user, text=text, photo_id=photo_id), state, bot)


async def fill_fields(user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    for text in ["Fender Strat", "Great condition, barely used", "skip", "NY", "@me", "skip"]:
        await send(user, state, bot, text=text)


async def test_full_run_creates_exactly_one_listing(database, user, state, bot):
    await fill_fields(user, state, bot)
    assert await state.get_state() == AddListing.photos.state
    await send(user, state, bot, photo_id="gear-photo")
    await send(user, state, bot, text="done")

    listings = await database.list_user_listings(user.id)
    assert len(listings) == 1
    listing = listings[0]
    assert listing["title"] == "Fender Strat"
    assert listing["price"] is None
    assert listing["marketplace_link"] is None
    assert listing["photos"] == ["gear-photo"]
    assert (await database.get_user(user.id))["contact"] == "@me"
    assert await state.get_state() is None


async def test_second_done_does_not_create_a_duplicate(database, user, state, bot):
    await fill_fields(user, state, bot)
    await wizard.done(make_callback(user, kb.WIZARD_DONE), state, bot)
    await wizard.done(make_callback(user, kb.WIZARD_DONE), state, bot)
    await wizard.complete(bot, user, state)
    assert await database.count_listings() == 1


async def test_short_title_reprompts_same_step(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    await send(user, state, bot, text="Hi")
    assert await state.get_state() == AddListing.title.state
    assert "Title must be at least 3 characters." in bot.sent[-1].text
    assert await get_draft(state) == {}
    assert await database.count_listings() == 0


async def test_skip_button_on_required_step_is_refused(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    callback = make_callback(user, kb.WIZARD_SKIP)
    await wizard.skip_step(callback, state, bot)
    callback.answer.assert_awaited_once_with("Title cannot be skipped.")
    assert await state.get_state() == AddListing.title.state


async def test_skip_button_advances_optional_step(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    await send(user, state, bot, text="Fender Strat")
    await send(user, state, bot, text="Great condition, barely used")
    await wizard.skip_step(make_callback(user, kb.WIZARD_SKIP), state, bot)
    assert await state.get_state() == AddListing.location.state
    assert (await get_draft(state))["price"] is None


async def test_extra_photos_are_rejected_with_a_reminder(database, user, state, bot):
    await fill_fields(user, state, bot)
    for i in range(7):
        await send(user, state, bot, photo_id=f"p{i}")
    assert "maximum of 5 photos" in bot.sent[-1].text
    await send(user, state, bot, text="/done")
    listing = (await database.list_user_listings(user.id))[0]
    assert listing["photos"] == [f"p{i}" for i in range(5)]


async def test_invalid_draft_at_completion_writes_nothing(database, user, state, bot):
    await state.set_state(AddListing.photos)
    await state.update_data(draft={"title": "Hi", "description": "short", "location": "NY", "contact": "@me"})
    await send(user, state, bot, text="done")
    assert await database.count_listings() == 0
    assert await database.get_user(user.id) is None
    report = bot.sent[-1].text
    assert report.count("Title must be at least 3 characters.") == 1
    assert report.count("Description must be at least 10 characters.") == 1
    assert await state.get_state() is None


async def test_cancel_discards_the_draft_and_cleans_up(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    await send(user, state, bot, text="Fender Strat")
    await send(user, state, bot, text="cancel")
    assert await state.get_state() is None
    assert await get_draft(state) == {}
    assert "Listing discarded." in bot.sent[-1].text
    # Every prompt sent during the flow is gone.
    prompts = [m.message_id for m in bot.sent[:-1]]
    assert set(prompts) <= set(bot.deleted)
    assert await database.count_listings() == 0


async def test_starting_again_replaces_the_previous_draft(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    await send(user, state, bot, text="Fender Strat")
    await wizard.add_from_menu(make_callback(user, kb.ADD), state, bot)
    assert await state.get_state() == AddListing.title.state
    assert await get_draft(state) == {}


async def test_store_failure_reports_apology(database, user, state, bot, monkeypatch):
    import aiosqlite

    async def broken(**kwargs):
        raise aiosqlite.OperationalError("database is locked")

    monkeypatch.setattr(database, "create_listing", broken)
    await fill_fields(user, state, bot)
    await send(user, state, bot, text="done")
    assert "There was an error saving your listing." in bot.sent[-1].text
    assert await state.get_state() is None


async def accepts(router, callback, message, raw_state):
    handler = next(h for h in router.message.handlers if h.callback is callback)
    passed, _ = await handler.check(message, raw_state=raw_state)
    return passed


async def test_commands_are_not_taken_as_step_input(user):
    title_step = AddListing.title.state
    for command in ["/browse", "/listings", "/mylistings", "/done"]:
        assert not await accepts(wizard.router, wizard.handle_step, make_message(user, text=command), title_step)
    assert await accepts(wizard.router, wizard.handle_step, make_message(user, text="Fender Strat"), title_step)
    photos_step = AddListing.photos.state
    assert await accepts(wizard.router, wizard.handle_step, make_message(user, photo_id="p1"), photos_step)


async def test_browse_command_leaves_the_wizard(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    await browse.cmd_browse(make_message(user, text="/browse"), state, bot)
    assert await state.get_state() is None
    assert await get_draft(state) == {}
    assert bot.sent[-1].text == "No listings found."


async def test_done_command_before_photos_reprompts(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    await wizard.cmd_done(make_message(user, text="/done"), state, bot)
    assert await state.get_state() == AddListing.title.state
    assert "Fill in this step first." in bot.sent[-1].text
    assert await get_draft(state) == {}


async def test_done_command_on_photos_step_saves(database, user, state, bot):
    await fill_fields(user, state, bot)
    await wizard.cmd_done(make_message(user, text="/done"), state, bot)
    assert await database.count_listings() == 1


async def test_marketplace_link_is_stored_as_typed(database, user, state, bot):
    await wizard.cmd_add(make_message(user, text="/add"), state, bot)
    for text in ["Fender Strat", "Great condition, barely used", "$500", "NY", "@me", "  https://reverb.com  "]:
        await send(user, state, bot, text=text)
    await send(user, state, bot, text="done")
    listing = (await database.list_user_listings(user.id))[0]
    assert listing["marketplace_link"] == "https://reverb.com"
