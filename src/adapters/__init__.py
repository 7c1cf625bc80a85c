"""Adapters connecting the relay core to Telegram via Telethon."""
