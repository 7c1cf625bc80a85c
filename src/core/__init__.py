"""Core domain package for pricerelay.

Core contains channel matching, deduplication, text transformation and
dispatch sequencing without any Telegram-specific code, keeping the relay
logic portable across transports.
"""
