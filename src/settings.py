"""Runtime configuration for pricerelay.

All settings come from environment variables, with a local .env file loaded
through python-dotenv so secrets and channel names stay out of the repo.
Settings are read once at startup and never change while the relay runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from core.config import (
    ANNOUNCEMENT_SYNONYMS,
    ChannelFilterConfig,
    DedupConfig,
    DispatchConfig,
    RelayConfig,
    TransformConfig,
)
from core.errors import ConfigError

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DEFAULT_ANNOUNCEMENT_NAME = "Avisos"
DEFAULT_TARGET_NAME = "OJ® Streetwear Shop & Sneakers"
DEFAULT_LOG_PATH = "./wh_relay.log"


@dataclass(frozen=True)
class LoggingSettings:
    """Logging sinks configured for the process."""

    level: str = "INFO"
    console: bool = True
    path: Optional[str] = DEFAULT_LOG_PATH
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    redact: tuple[str, ...] = ("API_HASH", "2FA", "PHONE")


@dataclass(frozen=True)
class Settings:
    """Everything the app layer needs to start the relay."""

    relay: RelayConfig
    logging: LoggingSettings
    session_name: str = "pricerelay"
    headless: bool = False
    login_method: Optional[str] = None


def split_list(raw: Optional[str]) -> list[str]:
    """Split a comma-separated value, trimming and dropping empty items."""

    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def parse_bool(raw: Optional[str], default: bool = False) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_number(env: Mapping[str, str], key: str, default, cast):
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc


def _announcement_names(env: Mapping[str, str]) -> list[str]:
    names = split_list(env.get("ANNOUNCEMENT_GROUP_NAMES") or env.get("ANNOUNCEMENT_GROUP_NAME"))
    if not names:
        names = [env.get("ANNOUNCEMENT_GROUP_NAME") or DEFAULT_ANNOUNCEMENT_NAME]
    # Language fallbacks are always accepted next to the configured names.
    return names + [env.get("ANNOUNCEMENT_GROUP_NAME") or DEFAULT_ANNOUNCEMENT_NAME, *ANNOUNCEMENT_SYNONYMS]


def build_relay_config(env: Mapping[str, str]) -> RelayConfig:
    """Build the core RelayConfig from an environment mapping."""

    channels = ChannelFilterConfig.build(
        source_community_names=split_list(env.get("SOURCE_COMMUNITY_NAMES")),
        announcement_names=_announcement_names(env),
        target_name=(env.get("TARGET_GROUP_NAME") or DEFAULT_TARGET_NAME).strip(),
    )
    dedup = DedupConfig(window_seconds=_parse_number(env, "DEDUPE_WINDOW_SECONDS", 10, int))
    transform = TransformConfig(
        price_multiplier=_parse_number(env, "GLOBAL_PRICE_MULTIPLIER", 3.0, float),
        wholesale_marker=env.get("WHOLESALE_MARKER") or "Atacado",
        retail_marker=env.get("RETAIL_MARKER") or "Varejo",
        currency_symbol=env.get("CURRENCY_SYMBOL") or "R$",
    )
    dispatch = DispatchConfig(text_delay_ms=_parse_number(env, "MEDIA_SEND_DELAY_MS", 20000, int))
    greetings = env.get("GREETING_PHRASES")
    return RelayConfig(
        channels=channels,
        dedup=dedup,
        transform=transform,
        dispatch=dispatch,
        greeting_phrases=tuple(split_list(greetings)) if greetings is not None else ("bom dia",),
    )


def build_logging_settings(env: Mapping[str, str]) -> LoggingSettings:
    path = env.get("LOG_PATH", DEFAULT_LOG_PATH)
    if path and not os.path.isabs(path):
        path = os.path.join(PROJECT_ROOT, path)
    redact = env.get("LOG_REDACT")
    return LoggingSettings(
        level=(env.get("LOG_LEVEL") or "INFO").upper(),
        console=parse_bool(env.get("LOG_CONSOLE"), default=True),
        path=path or None,
        max_bytes=_parse_number(env, "LOG_MAX_BYTES", 5 * 1024 * 1024, int),
        backup_count=_parse_number(env, "LOG_BACKUP_COUNT", 5, int),
        redact=tuple(split_list(redact)) if redact is not None else LoggingSettings.redact,
    )


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from the given mapping, or from .env plus os.environ."""

    if env is None:
        load_dotenv()
        env = os.environ

    login_method = (env.get("LOGIN_METHOD") or "").strip().lower() or None
    if login_method not in {None, "qr", "phone"}:
        raise ConfigError(f"LOGIN_METHOD must be 'qr' or 'phone', got {login_method!r}")

    return Settings(
        relay=build_relay_config(env),
        logging=build_logging_settings(env),
        session_name=env.get("SESSION_NAME") or "pricerelay",
        headless=parse_bool(env.get("HEADLESS")),
        login_method=login_method,
    )
