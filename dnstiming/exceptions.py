"""
Exception hierarchy for dnstiming.

All exceptions inherit from DnsTimingError so callers can catch every
failure raised by the benchmark or the phase timer in one place.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .timeline import EventTimeline


class DnsTimingError(Exception):
    """Base exception for all dnstiming errors."""

    pass


class LookupFailure(DnsTimingError):
    """
    Raised when a lookup strategy cannot resolve a host name.

    This includes:
    - NXDOMAIN / no data answers
    - Resolver timeouts
    - Empty answers for the requested family
    """

    def __init__(self, hostname: str, strategy: str, reason: str):
        self.hostname = hostname
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"{strategy} lookup of {hostname!r} failed: {reason}")


class RequestFailure(DnsTimingError):
    """
    Raised when a timed request ends before its response is fully read.

    Carries the partial timeline so the phases reached before the failure
    can still be reported.
    """

    code: Optional[str] = None

    def __init__(self, url: str, timeline: 'EventTimeline', message: str):
        self.url = url
        self.timeline = timeline
        super().__init__(message)


class RequestTimeoutError(RequestFailure):
    """Raised when the socket times out; the request is aborted."""

    code = 'ETIMEDOUT'


class TransportError(RequestFailure):
    """Raised on any other socket or protocol level error."""

    pass


class TimelineError(DnsTimingError):
    """Raised when a lifecycle event is signalled out of order."""

    pass
