"""Channel name matching and startup channel resolution (core domain)."""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional

from core.errors import ChannelResolutionError
from core.models import ChannelInfo, MonitoredChannel

if TYPE_CHECKING:
    from core.config import ChannelFilterConfig

LOGGER = logging.getLogger(__name__)


def normalize_name(value: Optional[str]) -> str:
    """Lowercase a display name and strip its diacritics.

    Total (None and empty input give "") and idempotent.
    """

    decomposed = unicodedata.normalize("NFD", (value or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def names_match(a: str, b: str) -> bool:
    """Return True when two names are equal or one contains the other.

    Both sides are normalized first. An empty name never matches, so a blank
    filter entry cannot act as a wildcard.
    """

    left = normalize_name(a)
    right = normalize_name(b)
    if not left or not right:
        return False
    return left == right or left in right or right in left


@dataclass(frozen=True)
class ChannelClassification:
    """Outcome of classifying one channel against the filters."""

    is_source: bool
    is_target: bool


@dataclass(frozen=True)
class ResolvedChannels:
    """Sources and target resolved once at startup."""

    sources: tuple[MonitoredChannel, ...]
    target: MonitoredChannel

    @property
    def source_ids(self) -> frozenset[int]:
        return frozenset(channel.id for channel in self.sources)


class ChannelMatcher:
    """Decide which channels are monitored sources and which is the target."""

    def __init__(self, filters: "ChannelFilterConfig") -> None:
        self._filters = filters
        self._target = normalize_name(filters.target_name)

    def is_source(self, channel_name: str, is_announcement_flagged: bool) -> bool:
        # Only broadcast-only channels can ever be sources.
        if not is_announcement_flagged:
            return False
        if self._filters.is_empty:
            return True
        matches_community = any(
            names_match(channel_name, wanted) for wanted in self._filters.source_community_names
        )
        matches_announcement = any(
            names_match(channel_name, wanted) for wanted in self._filters.announcement_names
        )
        LOGGER.debug(
            "Channel match name=%r community=%s announcement=%s",
            channel_name,
            matches_community,
            matches_announcement,
        )
        return matches_community or matches_announcement

    def is_target(self, channel_name: str) -> bool:
        # Target matching is exact after normalization, never substring.
        return bool(self._target) and normalize_name(channel_name) == self._target

    def classify(self, channel_name: str, is_announcement_flagged: bool) -> ChannelClassification:
        """Classify one channel as source and/or target."""

        return ChannelClassification(
            is_source=self.is_source(channel_name, is_announcement_flagged),
            is_target=self.is_target(channel_name),
        )

    def resolve(self, channels: Iterable[ChannelInfo]) -> ResolvedChannels:
        """Resolve the monitored sources and the target from the live channel list.

        Raises ChannelResolutionError when no source matches or the target
        group cannot be found; both are fatal at startup.
        """

        channels = list(channels)
        announced = [channel for channel in channels if channel.is_announcement_only]
        LOGGER.info(
            "Announcement channels found: [%s]",
            ", ".join(channel.display_name for channel in announced),
        )

        if self._filters.is_empty:
            LOGGER.warning("No channel name filters configured; monitoring ALL announcement channels")

        sources: List[MonitoredChannel] = [
            MonitoredChannel(id=channel.id, display_name=channel.display_name)
            for channel in announced
            if self.is_source(channel.display_name, True)
        ]
        if not sources:
            raise ChannelResolutionError(
                "No announcement channel matched the filters "
                f"(communities={sorted(self._filters.source_community_names)}, "
                f"announcements={sorted(self._filters.announcement_names)}). "
                "Check names and accents, or leave both lists empty to monitor every announcement channel."
            )

        target: Optional[MonitoredChannel] = None
        for channel in channels:
            if channel.is_group and self.is_target(channel.display_name):
                target = MonitoredChannel(id=channel.id, display_name=channel.display_name)
                break
        if target is None:
            raise ChannelResolutionError(
                f"Target group {self._filters.target_name!r} not found. Check TARGET_GROUP_NAME."
            )

        LOGGER.info("Monitoring sources: %s", ", ".join(s.display_name for s in sources))
        LOGGER.info("Forwarding to: %s (%s)", target.display_name, target.id)
        return ResolvedChannels(sources=tuple(sources), target=target)
