"""Application entry point for the pricerelay bot."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from telethon import events

from adapters.telegram_mapper import build_inbound_message
from adapters.telegram_transport import TelegramTransport
from client import build_client
from core.channel_matcher import ChannelMatcher
from core.dedup import DeduplicationCache
from core.dispatch import DispatchSequencer
from core.errors import RelayError
from core.processor import RelayProcessor
from get_session import authorize
from settings import LoggingSettings, Settings, load_settings

NAME = "PRICERELAY"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(names: tuple[str, ...]) -> list[str]:
    values = []
    for name in names:
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: LoggingSettings) -> None:
    level = getattr(logging, config.level, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config.redact), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if config.path:
        directory = os.path.dirname(config.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon is chatty at INFO about reconnects and updates.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


def _log_startup(settings: Settings) -> None:
    relay = settings.relay
    LOGGER.info("Source communities: %s", sorted(relay.channels.source_community_names))
    LOGGER.info("Announcement names: %s", sorted(relay.channels.announcement_names))
    LOGGER.info("Target group: %r", relay.channels.target_name)
    LOGGER.info("Dedupe window: %ss", relay.dedup.window_seconds)
    LOGGER.info("Send delay: %sms", relay.dispatch.text_delay_ms)
    LOGGER.info("Price multiplier: %s", relay.transform.price_multiplier)
    LOGGER.info("Headless mode: %s", settings.headless)


async def _build_processor(settings: Settings, transport: TelegramTransport) -> RelayProcessor:
    """Resolve channels once the session is ready and wire the pipeline."""

    channels = await transport.list_channels()
    resolved = ChannelMatcher(settings.relay.channels).resolve(channels)
    cache = DeduplicationCache(
        window_seconds=settings.relay.dedup.window_seconds,
        eviction_factor=settings.relay.dedup.eviction_factor,
    )
    return RelayProcessor(
        config=settings.relay,
        channels=resolved,
        cache=cache,
        sequencer=DispatchSequencer(transport),
    )


def _run(settings: Settings) -> None:
    _print_banner()
    _configure_logging(settings.logging)
    LOGGER.info("Starting pricerelay")
    _log_startup(settings)

    client = build_client(settings.session_name)
    transport = TelegramTransport(client)
    processor: Optional[RelayProcessor] = None

    # Registered before connecting; events that arrive before channel
    # resolution finishes are dropped.
    @client.on(events.NewMessage())
    async def handler(event) -> None:
        if processor is None:
            LOGGER.warning("Ignoring message: relay is not ready yet")
            return
        try:
            await processor.handle(build_inbound_message(event.message))
        except Exception:
            LOGGER.exception("Error while processing message")

    try:
        client.loop.run_until_complete(client.connect())
        client.loop.run_until_complete(
            authorize(client, headless=settings.headless, login_method=settings.login_method)
        )
        processor = client.loop.run_until_complete(_build_processor(settings, transport))
    except Exception:
        client.loop.run_until_complete(client.disconnect())
        raise

    # Explicit lifecycle management makes start/shutdown behavior obvious.
    LOGGER.info("Client connected. Relaying messages...")
    client.run_until_disconnected()


async def _print_channels(settings: Settings, transport: TelegramTransport) -> None:
    matcher = ChannelMatcher(settings.relay.channels)
    channels = await transport.list_channels()
    if not channels:
        print("No groups or channels found for this account.")
        return
    for index, channel in enumerate(channels, start=1):
        classification = matcher.classify(channel.display_name, channel.is_announcement_only)
        roles = []
        if classification.is_source:
            roles.append("source")
        if classification.is_target and channel.is_group:
            roles.append("target")
        kind = "announcement" if channel.is_announcement_only else ("group" if channel.is_group else "channel")
        print(f"{index}. {kind} | {channel.display_name} | {channel.id} | {', '.join(roles) or '-'}")


def _channels(settings: Settings) -> None:
    _print_banner()
    client = build_client(settings.session_name)

    async def _run_channels() -> None:
        await client.connect()
        try:
            await authorize(client, headless=settings.headless, login_method=settings.login_method)
            await _print_channels(settings, TelegramTransport(client))
        finally:
            await client.disconnect()

    client.loop.run_until_complete(_run_channels())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="pricerelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start relaying messages")
    subparsers.add_parser(
        "channels",
        help="List groups and channels and show how the filters classify them.",
    )

    args = parser.parse_args(argv)
    try:
        settings = load_settings()
        if args.command == "channels":
            _channels(settings)
            return
        _run(settings)
    except RelayError as exc:
        LOGGER.error("Startup failed: %s", exc)
        print(f"pricerelay: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except OSError as exc:
        LOGGER.error("Transport failed to initialize: %s", exc)
        print(f"pricerelay: transport failed to initialize: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
