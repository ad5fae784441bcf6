"""Sequential benchmark of lookup strategies."""

import json
import sys
import time
from typing import Callable, Dict, List, Sequence

from .exceptions import LookupFailure
from .histogram import DurationHistogram
from .models import BenchmarkReport, LookupOptions, LookupResult, StrategySummary, TrialRecord
from .strategies import LookupStrategy
from .utils import ms_to_sec, round_half_up

# Order of the statistics in the printed summary
SUMMARY_STATS = ('max', 'min', 'p99', 'p90', 'p50')


def _answer_to_json(answer) -> str:
    if isinstance(answer, LookupResult):
        return json.dumps(answer.as_dict())
    return json.dumps([result.as_dict() for result in answer])


class ResolutionBenchmark:
    """Run paired trials of several lookup strategies, one after another."""

    def __init__(self, strategies: Sequence[LookupStrategy], min_duration_ms: int = 0,
                 clock: Callable[[], int] = time.perf_counter_ns):
        """Initialize the benchmark.

        Args:
            strategies: Strategies to run for each trial index, in order
            min_duration_ms: Rounded durations at or below this value are dropped
            clock: Nanosecond clock used to time each trial
        """
        if not strategies:
            raise ValueError("At least one lookup strategy is required")
        names = [strategy.name for strategy in strategies]
        if len(set(names)) != len(names):
            raise ValueError(f"Strategy names must be unique: {names}")
        self.strategies = list(strategies)
        self.min_duration_ms = min_duration_ms
        self.clock = clock
        self.histograms: Dict[str, DurationHistogram] = {}
        self.failures: Dict[str, int] = {}
        self.dropped: Dict[str, int] = {}
        self._reset()

    def _reset(self) -> None:
        self.histograms = {s.name: DurationHistogram(s.name) for s in self.strategies}
        self.failures = {s.name: 0 for s in self.strategies}
        self.dropped = {s.name: 0 for s in self.strategies}

    async def run(self, hostname: str, trial_count: int, use_all: bool = False,
                  family=None) -> BenchmarkReport:
        """Run trial_count trials of every strategy and summarise them."""
        if trial_count < 0:
            raise ValueError(f"trial_count must be >= 0, got {trial_count}")

        self._reset()
        options = LookupOptions(all=use_all, family=family)

        for index in range(trial_count):
            for strategy in self.strategies:
                await self._run_trial(strategy, index, hostname, options)

        return self.report(hostname, trial_count, use_all)

    async def _run_trial(self, strategy: LookupStrategy, index: int, hostname: str,
                         options: LookupOptions) -> None:
        trial = TrialRecord(strategy=strategy.name, index=index, start_ns=self.clock())
        try:
            answer = await strategy.lookup(hostname, options)
        except LookupFailure as e:
            self.failures[strategy.name] += 1
            print(f"{index} {strategy.label} error: {e}", file=sys.stderr)
            return
        trial.end_ns = self.clock()

        print(f"{index} {strategy.label}: {_answer_to_json(answer)}")

        duration = round_half_up(trial.duration_ms)
        if duration > self.min_duration_ms:
            self.histograms[strategy.name].record(duration)
        else:
            self.dropped[strategy.name] += 1

    def report(self, hostname: str, trial_count: int, use_all: bool) -> BenchmarkReport:
        summaries: List[StrategySummary] = []
        for strategy in self.strategies:
            hist = self.histograms[strategy.name]
            summaries.append(StrategySummary(
                strategy=strategy.name,
                label=strategy.label,
                samples=hist.count,
                failures=self.failures[strategy.name],
                dropped=self.dropped[strategy.name],
                min=ms_to_sec(hist.min),
                max=ms_to_sec(hist.max),
                p50=ms_to_sec(hist.percentile(50)),
                p90=ms_to_sec(hist.percentile(90)),
                p99=ms_to_sec(hist.percentile(99)),
                mean=ms_to_sec(hist.mean),
                stddev=ms_to_sec(hist.stddev),
            ))
        return BenchmarkReport(hostname=hostname, trial_count=trial_count, use_all=use_all,
                               summaries=summaries)


def format_summary(report: BenchmarkReport) -> str:
    """Render the summary block: one group per statistic, one line per strategy."""
    groups = []
    for stat in SUMMARY_STATS:
        groups.append('\n'.join(
            f"{summary.label} {stat} {getattr(summary, stat)}" for summary in report.summaries
        ))
    return '\n\n'.join(groups)
