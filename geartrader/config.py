"""Runtime configuration read from the environment (and an optional .env file)."""

import os

from dotenv import load_dotenv

load_dotenv()


# SQLite database file
DB_FILENAME = os.environ.get("DB_FILENAME", "geartrader.db")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Upper bound on photos attached to one listing
MAX_PHOTOS = 5

# Buttons per page in the /listings overview
LISTINGS_PAGE_SIZE = 10


def get_bot_token() -> str:
    token = os.environ.get("BOT_TOKEN", "")
    if not token:
        raise RuntimeError("BOT_TOKEN is not set (environment or .env file)")
    return token
