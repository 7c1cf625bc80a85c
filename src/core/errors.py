"""Exception taxonomy for the relay.

Startup errors are fatal and end the process. Media and send errors are
per-message and recoverable; the dispatch sequencer reports them and moves on.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(RelayError):
    """Configuration value is missing or invalid."""


class StartupError(RelayError):
    """The relay cannot start."""


class ChannelResolutionError(StartupError):
    """No source channel resolved, or the target channel was not found."""


class MediaDownloadError(RelayError):
    """Downloading the media attached to an inbound message failed."""


class SendError(RelayError):
    """Delivering a text or media message to the target failed."""
