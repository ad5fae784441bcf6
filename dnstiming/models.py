"""Data models for lookup benchmarks and request phase timings."""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union, TYPE_CHECKING

from .utils import ns_to_ms

if TYPE_CHECKING:
    from .timeline import EventTimeline


VALID_FAMILIES = (4, 6)


@dataclass
class LookupOptions:
    """Options shared by every lookup strategy."""
    all: bool = False
    family: Optional[int] = None  # 4, 6 or None for unspecified

    def __post_init__(self):
        if self.family == 0:
            self.family = None
        if self.family is not None and self.family not in VALID_FAMILIES:
            raise ValueError(f"family must be 4, 6 or None, got {self.family!r}")


@dataclass(frozen=True)
class LookupResult:
    """A single resolved address."""
    address: str
    family: int

    def as_dict(self) -> Dict[str, Union[str, int]]:
        return {'address': self.address, 'family': self.family}


LookupAnswer = Union[LookupResult, List[LookupResult]]


@dataclass
class TrialRecord:
    """One timed invocation of a lookup strategy."""
    strategy: str
    index: int
    start_ns: int
    end_ns: Optional[int] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_ns is None:
            return None
        return ns_to_ms(self.end_ns - self.start_ns)


@dataclass
class StrategySummary:
    """Summary statistics for one strategy, in seconds."""
    strategy: str
    label: str
    samples: int
    failures: int
    dropped: int
    min: float
    max: float
    p50: float
    p90: float
    p99: float
    mean: float = math.nan
    stddev: float = math.nan


@dataclass
class BenchmarkReport:
    """Result of a full benchmark run."""
    hostname: str
    trial_count: int
    use_all: bool
    summaries: List[StrategySummary] = field(default_factory=list)

    def summary_for(self, strategy: str) -> StrategySummary:
        for summary in self.summaries:
            if summary.strategy == strategy:
                return summary
        raise KeyError(strategy)


@dataclass
class PhaseTimings:
    """Per-phase durations of one request, in milliseconds."""
    dns_lookup: Optional[float]
    tcp_connection: Optional[float]
    tls_handshake: Optional[float]
    total: Optional[float]

    def as_dict(self) -> Dict[str, Optional[float]]:
        return {
            'dnsLookup': self.dns_lookup,
            'tcpConnection': self.tcp_connection,
            'tlsHandshake': self.tls_handshake,
            'total': self.total,
        }


@dataclass
class RequestTiming:
    """Outcome of a timed request."""
    url: str
    status_code: int
    timeline: 'EventTimeline'
    timings: PhaseTimings
