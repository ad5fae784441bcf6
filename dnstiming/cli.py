"""
Benchmark DNS lookup strategies or time the phases of an HTTPS request,
optionally exposing the results as Prometheus metrics or sending them
using Prometheus remote write.
"""

import argparse
import asyncio
import sys

from .benchmark import ResolutionBenchmark, format_summary
from .exceptions import LookupFailure, RequestFailure
from .exporter import PrometheusMetricsExporter
from .phase_timer import RequestPhaseTimer, format_timings
from .strategies import AresLookup, PlatformLookup, create_strategy
from .utils import prepare_headers, send_metrics_remote_write

DEFAULT_HOST = 'google.com.'
DEFAULT_TRIALS = 1000
DEFAULT_URL = 'https://www.google.com/'
STRATEGY_NAMES = (AresLookup.name, PlatformLookup.name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dnstiming',
        description='Benchmark DNS lookup strategies and time HTTPS request phases'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    bench = subparsers.add_parser('benchmark', help='Compare platform and external lookups')
    bench.add_argument(
        '--host',
        default=DEFAULT_HOST,
        help=f'Host name to resolve (default: {DEFAULT_HOST})'
    )
    bench.add_argument(
        '--trials',
        type=int,
        default=DEFAULT_TRIALS,
        help=f'Number of paired trials (default: {DEFAULT_TRIALS})'
    )
    bench.add_argument(
        '--all',
        action='store_true',
        help='Ask every strategy for all addresses instead of the first one'
    )
    bench.add_argument(
        '--min-duration-ms',
        type=int,
        default=0,
        help='Drop trials whose rounded duration is at or below this value (default: 0)'
    )

    request = subparsers.add_parser('request', help='Time the phases of one HTTPS request')
    request.add_argument(
        '--url',
        default=DEFAULT_URL,
        help=f'URL to request (default: {DEFAULT_URL})'
    )
    request.add_argument(
        '--strategy',
        choices=STRATEGY_NAMES,
        default=STRATEGY_NAMES[0],
        help='Lookup strategy used to resolve the host (default: external)'
    )
    request.add_argument(
        '--timeout',
        type=float,
        default=30.0,
        help='Timeout in seconds for each phase (default: 30)'
    )

    for sub in (bench, request):
        sub.add_argument(
            '--family',
            type=int,
            choices=[4, 6],
            help='Address family hint passed to the lookup strategies'
        )
        sub.add_argument(
            '--nameserver',
            action='append',
            help='Nameserver for the external (c-ares) resolver; may be repeated'
        )
        sub.add_argument(
            '--metrics',
            action='store_true',
            help='Print the results in the Prometheus text exposition format'
        )
        sub.add_argument(
            '--remote-write-url',
            help='Prometheus remote write endpoint URL'
        )
        sub.add_argument(
            '--remote-write-header',
            action='append',
            help='Additional header for remote write (format: Key=Value)'
        )
        sub.add_argument(
            '--dry-run',
            action='store_true',
            help='Build the remote write payload without sending it'
        )
        sub.add_argument(
            '--instance-label',
            default='dnstiming',
            help='Value for the instance label added to all metrics (default: dnstiming)'
        )
        sub.add_argument(
            '--debug-file',
            help='Save the uncompressed remote write payload as JSON to the specified file'
        )
        sub.add_argument(
            '--verbose',
            action='store_true',
            help='Print lookup overrides and every metric sample sent'
        )
    return parser


async def run_benchmark(args) -> int:
    strategies = [PlatformLookup(), AresLookup(nameservers=args.nameserver)]
    benchmark = ResolutionBenchmark(strategies, min_duration_ms=args.min_duration_ms)
    print(f"Benchmarking {args.trials} lookup(s) of {args.host}...", file=sys.stderr)
    try:
        report = await benchmark.run(args.host, args.trials, use_all=args.all, family=args.family)
    finally:
        for strategy in strategies:
            await strategy.close()

    print()
    print(format_summary(report))
    return publish(args, report=report)


async def run_request(args) -> int:
    strategy = create_strategy(args.strategy, nameservers=args.nameserver)
    timer = RequestPhaseTimer(strategy, family=args.family, timeout=args.timeout, verbose=args.verbose)
    try:
        timing = await timer.request(args.url)
    except LookupFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except RequestFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        print(f"Partial timings: {e.timeline.timings().as_dict()}", file=sys.stderr)
        return 1
    finally:
        await strategy.close()

    print(f"response.statusCode {timing.status_code}")
    print(format_timings(timing))
    return publish(args, timing=timing)


def publish(args, report=None, timing=None) -> int:
    """Print and/or push metrics as requested on the command line."""
    if args.metrics:
        exporter = PrometheusMetricsExporter()
        if report is not None:
            exporter.export_benchmark(report)
        if timing is not None:
            exporter.export_request(timing)
        print(exporter.render(), end='')

    if args.remote_write_url:
        headers = prepare_headers(args.remote_write_header)
        sent = send_metrics_remote_write(
            args.remote_write_url, headers, args.instance_label, report=report, timing=timing,
            verbose=args.verbose, dry_run=args.dry_run, debug_file=args.debug_file
        )
        if not sent:
            return 1
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == 'benchmark':
        if args.trials < 0:
            parser.error('--trials must be >= 0')
        return asyncio.run(run_benchmark(args))
    return asyncio.run(run_request(args))
