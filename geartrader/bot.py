"""Bot assembly and entry point."""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from . import config, db
from .handlers import routers
from .middlewares import SessionLockMiddleware

logger = logging.getLogger(__name__)

COMMANDS = [
    BotCommand(command="start", description="Start over with a clean chat"),
    BotCommand(command="menu", description="Show main menu"),
    BotCommand(command="add", description="Add new listing"),
    BotCommand(command="browse", description="Browse listings one by one"),
    BotCommand(command="listings", description="View all listings"),
    BotCommand(command="mylistings", description="Manage your listings"),
    BotCommand(command="cancel", description="Abort the current step"),
    BotCommand(command="help", description="Help and privacy info"),
]


def create_dispatcher() -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage())
    dp.update.outer_middleware(SessionLockMiddleware())
    for router in routers:
        dp.include_router(router)
    return dp


async def main() -> None:
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=config.LOG_LEVEL,
    )
    bot = Bot(
        token=config.get_bot_token(),
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = create_dispatcher()
    await db.init_db()
    await bot.set_my_commands(COMMANDS)
    logger.info("Bot is starting...")
    try:
        await dp.start_polling(bot)
    finally:
        await bot.session.close()


def run() -> None:
    asyncio.run(main())
