"""
Unit tests for dnstiming.remote_write.
"""

import json
import math
from unittest.mock import MagicMock, patch

import requests
import snappy
from prometheus_remote_writer.proto import remote_pb2

from dnstiming.models import BenchmarkReport, PhaseTimings, RequestTiming, StrategySummary
from dnstiming.remote_write import RemoteWriteClient
from dnstiming.timeline import EventTimeline

URL = 'http://localhost:9090/api/v1/write'


def make_report():
    return BenchmarkReport(hostname='google.com.', trial_count=2, use_all=False, summaries=[
        StrategySummary('platform', 'Native', 2, 0, 0, 0.004, 0.006, 0.004, 0.006, 0.006,
                        mean=0.005, stddev=0.001),
        StrategySummary('external', 'FFI', 0, 2, 0, math.nan, math.nan, math.nan, math.nan, math.nan),
    ])


def make_timing():
    timings = PhaseTimings(dns_lookup=None, tcp_connection=20.0, tls_handshake=30.0, total=100.0)
    return RequestTiming(url='https://192.0.2.1/', status_code=204, timeline=EventTimeline(), timings=timings)


def labels_of(time_series):
    return {label.name: label.value for label in time_series.labels}


class TestCollectSamples:
    def test_nan_and_missing_values_skipped(self):
        client = RemoteWriteClient(URL)
        samples = client.collect_samples(report=make_report(), timing=make_timing())

        names = [(name, labels.get('strategy'), labels.get('phase')) for name, labels, _ in samples]
        assert ('dnstiming_lookup_duration_max_seconds', 'external', None) not in names
        assert ('dnstiming_lookup_failures', 'external', None) in names
        assert ('dnstiming_request_phase_seconds', None, 'dnsLookup') not in names
        assert ('dnstiming_request_phase_seconds', None, 'total') in names

    def test_mean_and_stddev_collected(self):
        client = RemoteWriteClient(URL)
        samples = client.collect_samples(report=make_report())

        values = {(name, labels.get('strategy')): value for name, labels, value in samples}
        assert values[('dnstiming_lookup_duration_mean_seconds', 'platform')] == 0.005
        assert values[('dnstiming_lookup_duration_stddev_seconds', 'platform')] == 0.001
        assert ('dnstiming_lookup_duration_mean_seconds', 'external') not in values


class TestBuildWriteRequest:
    def test_series_carry_name_and_instance(self):
        client = RemoteWriteClient(URL, instance_label='bench-1')
        samples = client.collect_samples(timing=make_timing())
        write_request = client.build_write_request(samples, timestamp_ms=1_700_000_000_000)

        assert len(write_request.timeseries) == len(samples)
        for ts in write_request.timeseries:
            labels = labels_of(ts)
            assert labels['instance'] == 'bench-1'
            assert labels['__name__'].startswith('dnstiming_')
            assert ts.samples[0].timestamp == 1_700_000_000_000


class TestSendMetrics:
    def test_posts_snappy_payload(self):
        client = RemoteWriteClient(URL, headers={'Authorization': 'Bearer x'})
        response = MagicMock(status_code=204, text='')
        with patch('dnstiming.remote_write.requests.post', return_value=response) as post:
            assert client.send_metrics(report=make_report()) is True

        args, kwargs = post.call_args
        assert args[0] == URL
        assert kwargs['headers']['Content-Encoding'] == 'snappy'
        assert kwargs['headers']['Authorization'] == 'Bearer x'
        decoded = remote_pb2.WriteRequest()
        decoded.ParseFromString(snappy.uncompress(kwargs['data']))
        assert len(decoded.timeseries) > 0

    def test_dry_run_does_not_post(self, tmp_path):
        debug_file = tmp_path / 'payload.json'
        client = RemoteWriteClient(URL)
        with patch('dnstiming.remote_write.requests.post') as post:
            assert client.send_metrics(timing=make_timing(), dry_run=True, debug_file=str(debug_file)) is True
        post.assert_not_called()
        payload = json.loads(debug_file.read_text())
        assert 'timeseries' in payload

    def test_error_status(self):
        client = RemoteWriteClient(URL)
        response = MagicMock(status_code=400, text='bad request')
        with patch('dnstiming.remote_write.requests.post', return_value=response):
            assert client.send_metrics(timing=make_timing()) is False

    def test_connection_error(self, capsys):
        client = RemoteWriteClient(URL)
        with patch('dnstiming.remote_write.requests.post',
                   side_effect=requests.exceptions.ConnectionError('refused')):
            assert client.send_metrics(timing=make_timing()) is False
        assert 'Could not connect' in capsys.readouterr().err

    def test_nothing_to_send(self):
        assert RemoteWriteClient(URL).send_metrics() is False
