"""
Unit tests for dnstiming.exporter.
"""

import math

from prometheus_client import CollectorRegistry

from dnstiming.exporter import PrometheusMetricsExporter
from dnstiming.models import BenchmarkReport, PhaseTimings, RequestTiming, StrategySummary
from dnstiming.timeline import EventTimeline


def make_report():
    return BenchmarkReport(hostname='google.com.', trial_count=3, use_all=False, summaries=[
        StrategySummary('platform', 'Native', 3, 0, 0, 0.004, 0.012, 0.005, 0.011, 0.012,
                        mean=0.007, stddev=0.0035),
        StrategySummary('external', 'FFI', 0, 3, 0, math.nan, math.nan, math.nan, math.nan, math.nan),
    ])


def make_timing(dns_lookup=12.5):
    timings = PhaseTimings(dns_lookup=dns_lookup, tcp_connection=20.0, tls_handshake=30.0, total=100.0)
    return RequestTiming(url='https://www.google.com/', status_code=200, timeline=EventTimeline(),
                         timings=timings)


class TestExportBenchmark:
    def test_quantiles_per_strategy(self):
        registry = CollectorRegistry()
        exporter = PrometheusMetricsExporter(registry)

        exporter.export_benchmark(make_report())

        value = registry.get_sample_value(
            'dnstiming_lookup_duration_seconds', {'strategy': 'platform', 'quantile': '0.99'}
        )
        assert value == 0.012
        assert registry.get_sample_value(
            'dnstiming_lookup_duration_seconds', {'strategy': 'platform', 'quantile': '0.5'}
        ) == 0.005
        assert registry.get_sample_value('dnstiming_lookup_duration_min_seconds', {'strategy': 'platform'}) == 0.004
        assert registry.get_sample_value('dnstiming_lookup_samples', {'strategy': 'platform'}) == 3
        assert registry.get_sample_value('dnstiming_lookup_failures', {'strategy': 'external'}) == 3

    def test_mean_and_stddev(self):
        registry = CollectorRegistry()
        PrometheusMetricsExporter(registry).export_benchmark(make_report())

        assert registry.get_sample_value('dnstiming_lookup_duration_mean_seconds', {'strategy': 'platform'}) == 0.007
        assert registry.get_sample_value(
            'dnstiming_lookup_duration_stddev_seconds', {'strategy': 'platform'}
        ) == 0.0035
        assert math.isnan(registry.get_sample_value(
            'dnstiming_lookup_duration_mean_seconds', {'strategy': 'external'}
        ))

    def test_empty_strategy_is_nan(self):
        registry = CollectorRegistry()
        PrometheusMetricsExporter(registry).export_benchmark(make_report())
        value = registry.get_sample_value('dnstiming_lookup_duration_max_seconds', {'strategy': 'external'})
        assert math.isnan(value)


class TestExportRequest:
    def test_phases_in_seconds(self):
        registry = CollectorRegistry()
        PrometheusMetricsExporter(registry).export_request(make_timing())

        assert registry.get_sample_value('dnstiming_request_phase_seconds', {'phase': 'dnsLookup'}) == 0.0125
        assert registry.get_sample_value('dnstiming_request_phase_seconds', {'phase': 'total'}) == 0.1
        assert registry.get_sample_value('dnstiming_request_status_code') == 200

    def test_missing_phase_not_exported(self):
        registry = CollectorRegistry()
        PrometheusMetricsExporter(registry).export_request(make_timing(dns_lookup=None))
        assert registry.get_sample_value('dnstiming_request_phase_seconds', {'phase': 'dnsLookup'}) is None

    def test_render(self):
        exporter = PrometheusMetricsExporter()
        exporter.export_request(make_timing())
        text = exporter.render()
        assert 'dnstiming_request_phase_seconds{phase="tlsHandshake"} 0.03' in text
