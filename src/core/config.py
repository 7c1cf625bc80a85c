"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from core.channel_matcher import normalize_name
from core.errors import ConfigError

# Language fallbacks that are always accepted as announcement channel names.
ANNOUNCEMENT_SYNONYMS = ("anuncios", "anúncios", "announcements")


@dataclass(frozen=True)
class ChannelFilterConfig:
    """Normalized channel filter lists plus the target name."""

    source_community_names: frozenset[str]
    announcement_names: frozenset[str]
    target_name: str

    @classmethod
    def build(
        cls,
        source_community_names: Iterable[str],
        announcement_names: Iterable[str],
        target_name: str,
    ) -> "ChannelFilterConfig":
        """Normalize raw names and drop the empty ones."""

        communities = frozenset(n for n in map(normalize_name, source_community_names) if n)
        announcements = frozenset(n for n in map(normalize_name, announcement_names) if n)
        return cls(
            source_community_names=communities,
            announcement_names=announcements,
            target_name=target_name,
        )

    @property
    def is_empty(self) -> bool:
        return not self.source_community_names and not self.announcement_names


@dataclass(frozen=True)
class DedupConfig:
    """Deduplication settings for the relay pipeline."""

    window_seconds: float = 10.0
    # Entries older than eviction_factor * window_seconds are swept.
    eviction_factor: int = 6

    def __post_init__(self) -> None:
        if self.window_seconds < 0:
            raise ConfigError("dedupe window must not be negative")
        if self.eviction_factor < 1:
            raise ConfigError("eviction factor must be at least 1")


@dataclass(frozen=True)
class TransformConfig:
    """Price rewriting and tier marker settings."""

    price_multiplier: float = 3.0
    wholesale_marker: str = "Atacado"
    retail_marker: str = "Varejo"
    currency_symbol: str = "R$"

    def __post_init__(self) -> None:
        if not self.price_multiplier > 0:
            raise ConfigError(f"price multiplier must be positive, got {self.price_multiplier}")
        if not self.wholesale_marker.strip() or not self.retail_marker.strip():
            raise ConfigError("tier markers must not be empty")


@dataclass(frozen=True)
class DispatchConfig:
    """Outbound send sequencing settings."""

    text_delay_ms: int = 20000

    def __post_init__(self) -> None:
        if self.text_delay_ms < 0:
            raise ConfigError("send delay must not be negative")


@dataclass(frozen=True)
class RelayConfig:
    """Everything the relay core needs, built once at startup."""

    channels: ChannelFilterConfig
    dedup: DedupConfig = field(default_factory=DedupConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    greeting_phrases: tuple[str, ...] = ("bom dia",)
