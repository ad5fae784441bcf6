"""
Pytest configuration and fixtures for dnstiming tests.
"""

from typing import List, Optional

import pytest

from dnstiming.exceptions import LookupFailure
from dnstiming.models import LookupOptions, LookupResult
from dnstiming.strategies import LookupStrategy


class FakeClock:
    """Nanosecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += int(ms * 1_000_000)


class FakeStrategy(LookupStrategy):
    """Strategy that takes a fixed time on a FakeClock and can fail on given calls."""

    def __init__(self, name: str, label: str, clock: Optional[FakeClock] = None, duration_ms: float = 10,
                 addresses: Optional[List[LookupResult]] = None, fail_on: Optional[set] = None):
        self.name = name
        self.label = label
        self.clock = clock
        self.duration_ms = duration_ms
        self.addresses = addresses or [LookupResult('10.0.0.1', 4), LookupResult('10.0.0.2', 4)]
        self.fail_on = fail_on or set()
        self.calls: List[tuple] = []
        self.closed = False

    async def _resolve(self, hostname: str, options: LookupOptions) -> List[LookupResult]:
        call_number = len(self.calls)
        self.calls.append((hostname, options))
        if self.clock is not None:
            self.clock.advance_ms(self.duration_ms)
        if call_number in self.fail_on:
            raise LookupFailure(hostname, self.name, 'simulated failure')
        return list(self.addresses)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_strategy() -> FakeStrategy:
    return FakeStrategy('fake', 'Fake')
