"""GearTrader: a Telegram bot for trading musical gear."""

__version__ = "0.1.0"
