"""Export benchmark and request timings as Prometheus metrics."""

import math
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge
from prometheus_client.exposition import generate_latest

from .models import BenchmarkReport, RequestTiming
from .utils import format_bound_for_label, ms_to_sec

QUANTILES = (
    (0.5, 'p50'),
    (0.9, 'p90'),
    (0.99, 'p99'),
)


class PrometheusMetricsExporter:
    """Export dnstiming results as Prometheus metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up Prometheus metric definitions."""
        # Lookup benchmark metrics
        self.lookup_duration = Gauge(
            'dnstiming_lookup_duration_seconds',
            'Lookup duration percentile per strategy',
            ['strategy', 'quantile'],
            registry=self.registry
        )
        self.lookup_duration_min = Gauge(
            'dnstiming_lookup_duration_min_seconds',
            'Fastest recorded lookup per strategy',
            ['strategy'],
            registry=self.registry
        )
        self.lookup_duration_max = Gauge(
            'dnstiming_lookup_duration_max_seconds',
            'Slowest recorded lookup per strategy',
            ['strategy'],
            registry=self.registry
        )
        self.lookup_duration_mean = Gauge(
            'dnstiming_lookup_duration_mean_seconds',
            'Mean recorded lookup duration per strategy',
            ['strategy'],
            registry=self.registry
        )
        self.lookup_duration_stddev = Gauge(
            'dnstiming_lookup_duration_stddev_seconds',
            'Standard deviation of recorded lookup durations per strategy',
            ['strategy'],
            registry=self.registry
        )
        self.lookup_samples = Gauge(
            'dnstiming_lookup_samples',
            'Number of recorded lookup durations per strategy',
            ['strategy'],
            registry=self.registry
        )
        self.lookup_failures = Gauge(
            'dnstiming_lookup_failures',
            'Number of failed lookups per strategy',
            ['strategy'],
            registry=self.registry
        )

        # Request phase metrics
        self.request_phase = Gauge(
            'dnstiming_request_phase_seconds',
            'Duration of each phase of the timed request',
            ['phase'],
            registry=self.registry
        )
        self.request_status = Gauge(
            'dnstiming_request_status_code',
            'HTTP status code of the timed request',
            [],
            registry=self.registry
        )

    def export_benchmark(self, report: BenchmarkReport):
        """Export summary statistics for every strategy of a benchmark run."""
        for summary in report.summaries:
            for quantile, attr in QUANTILES:
                self.lookup_duration.labels(
                    strategy=summary.strategy, quantile=format_bound_for_label(quantile)
                ).set(getattr(summary, attr))
            self.lookup_duration_min.labels(strategy=summary.strategy).set(summary.min)
            self.lookup_duration_max.labels(strategy=summary.strategy).set(summary.max)
            self.lookup_duration_mean.labels(strategy=summary.strategy).set(summary.mean)
            self.lookup_duration_stddev.labels(strategy=summary.strategy).set(summary.stddev)
            self.lookup_samples.labels(strategy=summary.strategy).set(summary.samples)
            self.lookup_failures.labels(strategy=summary.strategy).set(summary.failures)

    def export_request(self, timing: RequestTiming):
        """Export the phases of one request. Phases that did not happen are skipped."""
        for phase, value in timing.timings.as_dict().items():
            if value is None or math.isnan(value):
                continue
            self.request_phase.labels(phase=phase).set(ms_to_sec(value))
        self.request_status.set(timing.status_code)

    def render(self) -> str:
        """Return the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry).decode('utf-8')
