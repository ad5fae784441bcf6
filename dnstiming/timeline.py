"""Lifecycle timestamps for a single in-flight request."""

import time
from typing import Callable, Dict, Optional

from .exceptions import TimelineError
from .models import PhaseTimings
from .utils import ns_to_ms

START = 'start'
RESOLUTION_COMPLETE = 'resolution_complete'
TCP_CONNECTED = 'tcp_connected'
TLS_COMPLETE = 'tls_complete'
END = 'end'

EVENTS = (START, RESOLUTION_COMPLETE, TCP_CONNECTED, TLS_COMPLETE, END)


class EventTimeline:
    """Ordered one-shot timestamps: start, resolution, TCP, TLS, end.

    Every event fires at most once. An event can only be marked while no
    later event has fired, so present timestamps are non-decreasing in
    EVENTS order.
    """

    def __init__(self, clock: Callable[[], int] = time.perf_counter_ns):
        self._clock = clock
        self._times: Dict[str, Optional[int]] = {event: None for event in EVENTS}

    def mark(self, event: str) -> bool:
        """Record the current time for event.

        Returns:
            True if recorded, False if the event had already fired
        """
        if event not in self._times:
            raise TimelineError(f"Unknown timeline event {event!r}")
        if self._times[event] is not None:
            return False

        position = EVENTS.index(event)
        later = [e for e in EVENTS[position + 1:] if self._times[e] is not None]
        if later:
            raise TimelineError(f"Cannot mark {event!r} after {later[0]!r}")

        now = self._clock()
        # Clamp to the latest earlier event in case the clock is not monotonic.
        earlier = [self._times[e] for e in EVENTS[:position] if self._times[e] is not None]
        if earlier:
            now = max(now, max(earlier))
        self._times[event] = now
        return True

    def get(self, event: str) -> Optional[int]:
        return self._times[event]

    @property
    def start(self) -> Optional[int]:
        return self._times[START]

    @property
    def resolution_complete(self) -> Optional[int]:
        return self._times[RESOLUTION_COMPLETE]

    @property
    def tcp_connected(self) -> Optional[int]:
        return self._times[TCP_CONNECTED]

    @property
    def tls_complete(self) -> Optional[int]:
        return self._times[TLS_COMPLETE]

    @property
    def end(self) -> Optional[int]:
        return self._times[END]

    def timings(self) -> PhaseTimings:
        """Derive phase durations from the timestamps present so far."""
        start = self.start
        resolved = self.resolution_complete
        connected = self.tcp_connected
        secured = self.tls_complete
        end = self.end

        def between(begin: Optional[int], finish: Optional[int]) -> Optional[float]:
            if begin is None or finish is None:
                return None
            return ns_to_ms(finish - begin)

        # There is no DNS lookup with an IP address, and no TLS handshake without https
        return PhaseTimings(
            dns_lookup=between(start, resolved),
            tcp_connection=between(resolved if resolved is not None else start, connected),
            tls_handshake=between(connected, secured),
            total=between(start, end),
        )

    def __repr__(self) -> str:
        marked = ', '.join(f"{event}={ts}" for event, ts in self._times.items() if ts is not None)
        return f"EventTimeline({marked})"
