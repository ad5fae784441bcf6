"""Utility functions and constants shared by the benchmark and the phase timer."""

import ipaddress
import math
import sys
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import BenchmarkReport, RequestTiming

NS_PER_MS = 1_000_000
MS_PER_SEC = 1000


def ns_to_ms(duration_ns: int) -> float:
    """Convert a nanosecond duration (perf_counter_ns difference) to milliseconds."""
    return duration_ns / NS_PER_MS


def ms_to_sec(value: float) -> float:
    return value / MS_PER_SEC


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up (0.5 -> 1, 2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def is_ip_literal(host: str) -> bool:
    """Return True if host is an IPv4 or IPv6 address rather than a name."""
    try:
        ipaddress.ip_address(host.strip('[]'))
    except ValueError:
        return False
    return True


def format_bound_for_label(value: float) -> str:
    """Format a float value as a string for a Prometheus label.

    Always uses decimal notation (not scientific) so quantile labels read
    0.5, 0.9, 0.99.
    """
    return f"{value:.9f}".rstrip('0').rstrip('.')


def prepare_headers(remote_write_headers: Optional[List[str]]) -> Dict[str, str]:
    """Prepare headers dictionary from command-line arguments."""
    headers = {}
    if remote_write_headers:
        for header in remote_write_headers:
            if '=' in header:
                key, value = header.split('=', 1)
                headers[key] = value
    return headers


def send_metrics_remote_write(remote_write_url: str, headers: Dict[str, str], instance_label: str,
                              report: Optional['BenchmarkReport'] = None,
                              timing: Optional['RequestTiming'] = None,
                              verbose: bool = False, dry_run: bool = False,
                              debug_file: Optional[str] = None) -> bool:
    """Send benchmark and/or request metrics via remote write endpoint.

    Args:
        remote_write_url: URL of the Prometheus remote write endpoint
        headers: HTTP headers to include in the request
        instance_label: Value for the instance label added to all metrics
        report: Benchmark report to send
        timing: Request phase timing to send
        verbose: Print verbose output for each metric
        dry_run: If True, process metrics but skip sending to endpoint
        debug_file: Optional path to save uncompressed payload data before compression

    Returns:
        True if the metrics were processed (and sent unless dry_run)
    """
    # Import here to avoid circular dependency
    from .remote_write import RemoteWriteClient

    if dry_run:
        print(f"\nDry-run mode: Processing metrics (not sending to {remote_write_url})...", file=sys.stderr)
    else:
        print(f"\nSending metrics to {remote_write_url}...", file=sys.stderr)

    client = RemoteWriteClient(remote_write_url, headers, instance_label, verbose)

    if client.send_metrics(report=report, timing=timing, dry_run=dry_run, debug_file=debug_file):
        if dry_run:
            print("Dry-run completed: metrics processed", file=sys.stderr)
        else:
            print("Successfully sent metrics", file=sys.stderr)
        return True

    print("Failed to process/send metrics", file=sys.stderr)
    return False
