"""Error taxonomy for the tailing and download drivers.

Transient categories (`RateLimited`, `SegmentNotFound`,
`InaccessibleBinaryRange`) are absorbed by the tail loop and only show
up in logs. Everything else propagates to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rdstail.core.models import LogSegment


class RdsTailError(Exception):
    """Base class for every error raised by rdstail."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(RdsTailError):
    """Invalid combination of options."""


class RemoteUnavailable(RdsTailError):
    """Transport failure or an unclassified remote error."""


class RateLimited(RdsTailError):
    """The remote API throttled the request."""


class InaccessibleBinaryRange(RdsTailError):
    """The requested range holds binary data the API refuses to return."""


class SegmentNotFound(RdsTailError):
    """The segment vanished, usually because a rotation is in progress."""


class InstanceNotFound(RdsTailError):
    """The database instance identifier is unknown to the remote API."""


class CredentialsMissing(RdsTailError):
    """No usable cloud credentials were found."""


class NoSegmentsAvailable(RdsTailError):
    def __init__(self, message: str = "No log files found") -> None:
        super().__init__(message)


class NoMatchingSegment(RdsTailError):
    """No segment name matches the requested prefix.

    `available` carries the full listing so callers can print it.
    """

    def __init__(self, prefix: str, available: Sequence[LogSegment]) -> None:
        self.prefix = prefix
        self.available = list(available)
        parts = [f"No log file with the prefix {prefix!r} found. Available log files:"]
        parts.extend(f"\t{seg}" for seg in self.available)
        super().__init__("\n".join(parts))


class MalformedMarker(RdsTailError):
    """A continuation marker did not parse as `hour:offset`."""

    def __init__(self, marker: str | None) -> None:
        self.marker = marker
        super().__init__(f"marker {marker!r} didn't split into two integers across a colon")


class Cancelled(RdsTailError):
    """Cooperative cancellation was requested (signal or caller)."""

    def __init__(self, message: str = "signal triggered exit") -> None:
        super().__init__(message)
