"""Client for sending dnstiming results via Prometheus remote write."""

import math
import sys
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests
import snappy
from google.protobuf.json_format import MessageToJson

from prometheus_remote_writer.proto import remote_pb2 as prompb_pb2
from prometheus_remote_writer.proto import types_pb2

from .models import BenchmarkReport, RequestTiming
from .utils import format_bound_for_label, ms_to_sec

Sample = Tuple[str, Dict[str, str], float]


class RemoteWriteClient:
    """Client for sending dnstiming metrics via remote write."""

    def __init__(self, remote_write_url: str, headers: Optional[Dict[str, str]] = None,
                 instance_label: str = 'dnstiming', verbose: bool = False):
        self.remote_write_url = remote_write_url
        self.headers = dict(headers or {})
        self.headers.setdefault('Content-Type', 'application/x-protobuf')
        self.headers.setdefault('Content-Encoding', 'snappy')
        self.headers.setdefault('X-Prometheus-Remote-Write-Version', '0.1.0')
        self.instance_label = instance_label
        self.verbose = verbose

    def collect_samples(self, report: Optional[BenchmarkReport] = None,
                        timing: Optional[RequestTiming] = None) -> List[Sample]:
        """Flatten results into (metric name, labels, value) samples.

        NaN statistics (strategies without samples) and phases that did not
        happen are left out.
        """
        samples: List[Sample] = []
        if report is not None:
            for summary in report.summaries:
                strategy = {'strategy': summary.strategy}
                for quantile, attr in ((0.5, 'p50'), (0.9, 'p90'), (0.99, 'p99')):
                    samples.append((
                        'dnstiming_lookup_duration_seconds',
                        {**strategy, 'quantile': format_bound_for_label(quantile)},
                        getattr(summary, attr),
                    ))
                samples.append(('dnstiming_lookup_duration_min_seconds', strategy, summary.min))
                samples.append(('dnstiming_lookup_duration_max_seconds', strategy, summary.max))
                samples.append(('dnstiming_lookup_duration_mean_seconds', strategy, summary.mean))
                samples.append(('dnstiming_lookup_duration_stddev_seconds', strategy, summary.stddev))
                samples.append(('dnstiming_lookup_samples', strategy, summary.samples))
                samples.append(('dnstiming_lookup_failures', strategy, summary.failures))
        if timing is not None:
            for phase, value in timing.timings.as_dict().items():
                if value is None:
                    continue
                samples.append(('dnstiming_request_phase_seconds', {'phase': phase}, ms_to_sec(value)))
            samples.append(('dnstiming_request_status_code', {}, timing.status_code))

        return [(name, labels, value) for name, labels, value in samples if not math.isnan(value)]

    def build_write_request(self, samples: List[Sample], timestamp_ms: Optional[int] = None):
        """Convert samples to a remote write request sharing one timestamp."""
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        write_request = prompb_pb2.WriteRequest()  # type: ignore
        time_series_map: Dict[tuple, Any] = {}
        for metric_name, labels, value in samples:
            self._add_sample_to_map(time_series_map, metric_name, labels, value, timestamp_ms)
        self._finalize_time_series(time_series_map, write_request)
        return write_request

    def send_metrics(self, report: Optional[BenchmarkReport] = None, timing: Optional[RequestTiming] = None,
                     dry_run: bool = False, debug_file: Optional[str] = None) -> bool:
        """Send metrics for a benchmark report and/or a request timing.

        Args:
            report: Benchmark report to send
            timing: Request phase timing to send
            dry_run: If True, process metrics but skip sending to endpoint
            debug_file: Optional path to save uncompressed payload data before compression

        Returns:
            True if successful, False otherwise
        """
        samples = self.collect_samples(report, timing)
        if not samples:
            print("Error: No metrics to send", file=sys.stderr)
            return False

        write_request = self.build_write_request(samples)
        num_timeseries = len(write_request.timeseries)
        print(f"Prepared {num_timeseries} time series", file=sys.stderr)

        data = write_request.SerializeToString()

        if debug_file:
            try:
                json_data = MessageToJson(write_request, always_print_fields_with_no_presence=True)  # type: ignore[call-arg]
            except TypeError:
                # protobuf releases before 26.x use the old parameter name
                json_data = MessageToJson(write_request, including_default_value_fields=True)  # type: ignore[call-arg]
            try:
                with open(debug_file, 'w', encoding='utf-8') as f:
                    f.write(json_data)
                print(f"Saved uncompressed payload as JSON ({len(json_data)} bytes) to {debug_file}", file=sys.stderr)
            except OSError as e:
                print(f"Warning: Failed to write debug file {debug_file}: {e}", file=sys.stderr)

        if dry_run:
            print("Dry-run mode: Skipping actual send to endpoint", file=sys.stderr)
            return True

        compressed_data = snappy.compress(data)
        print(f"Sending {len(compressed_data)} bytes (uncompressed: {len(data)} bytes)", file=sys.stderr)

        try:
            response = requests.post(
                self.remote_write_url,
                data=compressed_data,
                headers=self.headers,
                timeout=30
            )
        except requests.exceptions.ConnectionError:
            print(f"Connection error: Could not connect to {self.remote_write_url}", file=sys.stderr)
            print("  Make sure Prometheus is running and the remote write receiver is enabled", file=sys.stderr)
            print("  Start Prometheus with: --web.enable-remote-write-receiver", file=sys.stderr)
            return False
        except requests.exceptions.RequestException as e:
            print(f"Error in remote write: {e}", file=sys.stderr)
            return False

        if response.status_code in (200, 204):
            print(f"Successfully sent metrics (status {response.status_code})", file=sys.stderr)
            return True
        print(f"Error sending metrics: {response.status_code} - {response.text}", file=sys.stderr)
        return False

    def _finalize_time_series(self, time_series_map: Dict[tuple, Any], write_request) -> None:
        """Add all time series to the write request."""
        for time_series in time_series_map.values():
            if len(time_series.samples) > 0:
                new_ts = write_request.timeseries.add()
                new_ts.CopyFrom(time_series)

    def _print_metric_sample(self, time_series, timestamp_ms: int, value: float) -> None:
        """Print a single metric sample in verbose mode."""
        metric_name = None
        labels = {}
        for label in time_series.labels:
            if label.name == '__name__':
                metric_name = label.value
            else:
                labels[label.name] = label.value

        if labels:
            label_str = ','.join(f'{k}="{v}"' for k, v in sorted(labels.items()))
            metric_str = f'{metric_name}{{{label_str}}}'
        else:
            metric_str = metric_name

        timestamp_dt = datetime.fromtimestamp(timestamp_ms / 1000.0)
        print(f"{timestamp_dt.isoformat()} {metric_str} {value}")

    def _add_sample_to_map(self, time_series_map: Dict[tuple, Any], metric_name: str, labels: Dict[str, str],
                           value: float, timestamp_ms: int):
        """Add a sample to the time series map, grouping by metric name and labels."""
        labels_with_instance = labels.copy()
        labels_with_instance['instance'] = self.instance_label

        sorted_labels = tuple(sorted(labels_with_instance.items()))
        key = (metric_name, sorted_labels)

        if key not in time_series_map:
            time_series = types_pb2.TimeSeries()  # type: ignore

            label = time_series.labels.add()
            label.name = '__name__'
            label.value = metric_name

            # Remote write expects labels sorted by name
            for key_name, val in sorted(labels_with_instance.items()):
                label = time_series.labels.add()
                label.name = key_name
                label.value = str(val)

            time_series_map[key] = time_series

        sample = time_series_map[key].samples.add()
        sample.value = value
        sample.timestamp = timestamp_ms

        if self.verbose:
            self._print_metric_sample(time_series_map[key], timestamp_ms, value)
