"""/start, /menu, /help, /cancel and the main menu buttons."""

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandStart, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from .. import keyboards as kb
from .. import texts
from ..messages import MAIN, NAV, WIZARD, MessageTracker
from ..session import reset_flow

router = Router()
router.message.filter(F.chat.type == "private")


def not_command(message: Message) -> bool:
    """Filter for flow input: slash commands fall through to their own handlers."""
    return not (message.text or "").startswith("/")


async def show_main_menu(tracker: MessageTracker, fresh: bool = False, header: str = "") -> None:
    """Show the main menu, either on a clean chat or in place of the current screen."""
    text = f"{header}\n\n{texts.MAIN_MENU}" if header else texts.MAIN_MENU
    if fresh:
        await tracker.purge()
        await tracker.emit(MAIN, text, reply_markup=kb.main_menu_kb())
        return
    await tracker.discard(NAV)
    await tracker.discard(WIZARD)
    await tracker.replace(MAIN, text, reply_markup=kb.main_menu_kb())


async def clean_slate(message: Message, state: FSMContext, bot: Bot, header: str = "") -> None:
    """Leave any flow, clear the chat and show the main menu."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    await reset_flow(state)
    await show_main_menu(tracker, fresh=True, header=header)


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext, bot: Bot) -> None:
    """Greet the user with the privacy notice and the main menu."""
    await clean_slate(message, state, bot, header=texts.WELCOME)


@router.message(Command("menu"))
async def cmd_menu(message: Message, state: FSMContext, bot: Bot) -> None:
    """Show the main menu on a clean chat."""
    await clean_slate(message, state, bot)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, bot: Bot) -> None:
    """Abandon whatever flow is running and show the main menu."""
    await clean_slate(message, state, bot, header="✖️ Cancelled.")


@router.message(Command("help"))
async def cmd_help(message: Message, state: FSMContext, bot: Bot) -> None:
    """Show the help text on a clean chat."""
    tracker = MessageTracker(bot, message.from_user.id, state)
    await tracker.track(message.message_id)
    await reset_flow(state)
    await tracker.purge()
    await tracker.emit(MAIN, texts.HELP, reply_markup=kb.back_to_menu_kb())


@router.callback_query(F.data == kb.HELP)
async def help_info(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Show the help text in place of the current screen."""
    tracker = MessageTracker(bot, callback.from_user.id, state)
    await tracker.discard(NAV)
    await tracker.discard(WIZARD)
    await tracker.replace(MAIN, texts.HELP, reply_markup=kb.back_to_menu_kb())
    await callback.answer()


@router.callback_query(F.data == kb.BACK_TO_MENU)
async def back_to_menu(callback: CallbackQuery, state: FSMContext, bot: Bot) -> None:
    """Leave the current screen for the main menu."""
    await reset_flow(state)
    await show_main_menu(MessageTracker(bot, callback.from_user.id, state))
    await callback.answer()


@router.callback_query(F.data == kb.NOOP)
async def noop(callback: CallbackQuery) -> None:
    await callback.answer()


# Registered last: plain text outside any flow brings the menu back.
@router.message(StateFilter(None), F.text, not_command)
async def any_text(message: Message, state: FSMContext, bot: Bot) -> None:
    """Bring the main menu back for plain text sent outside a flow."""
    await clean_slate(message, state, bot, header="🎸 <b>Welcome to GearTrader!</b>")
