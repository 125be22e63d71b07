"""Update routing, filters, callback data and chat sessions for Telegram bots."""

__version__ = "0.1.0"