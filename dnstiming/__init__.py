"""DNS lookup benchmarking and request phase timing."""

from .models import LookupOptions, LookupResult, BenchmarkReport, PhaseTimings, RequestTiming
from .histogram import DurationHistogram
from .timeline import EventTimeline
from .strategies import LookupStrategy, PlatformLookup, AresLookup
from .benchmark import ResolutionBenchmark
from .phase_timer import RequestPhaseTimer
from .exporter import PrometheusMetricsExporter
from .remote_write import RemoteWriteClient

__all__ = [
    'LookupOptions',
    'LookupResult',
    'BenchmarkReport',
    'PhaseTimings',
    'RequestTiming',
    'DurationHistogram',
    'EventTimeline',
    'LookupStrategy',
    'PlatformLookup',
    'AresLookup',
    'ResolutionBenchmark',
    'RequestPhaseTimer',
    'PrometheusMetricsExporter',
    'RemoteWriteClient',
]
