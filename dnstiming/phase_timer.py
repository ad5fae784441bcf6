"""Phase timing of a single outbound request.

The lookup strategy is handed to the request's own connection pool as a
network backend, so name resolution goes through the strategy without any
process-wide hook. TCP and TLS completion come from httpcore trace events.
"""

import asyncio
import json
import ssl
import sys
import time
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import httpcore

from .exceptions import RequestTimeoutError, TransportError
from .models import LookupOptions, RequestTiming
from .strategies import LookupStrategy
from .timeline import END, RESOLUTION_COMPLETE, START, TCP_CONNECTED, TLS_COMPLETE, EventTimeline
from .utils import is_ip_literal

TCP_CONNECTED_EVENT = 'connection.connect_tcp.complete'
TLS_COMPLETE_EVENT = 'connection.start_tls.complete'


class ResolvingBackend(httpcore.AsyncNetworkBackend):
    """Network backend that resolves host names through a lookup strategy."""

    def __init__(self, strategy: LookupStrategy, timeline: EventTimeline,
                 backend: Optional[httpcore.AsyncNetworkBackend] = None,
                 family: Optional[int] = None, verbose: bool = False):
        self.strategy = strategy
        self.timeline = timeline
        self.backend = backend or httpcore.AutoBackend()
        self.family = family
        self.verbose = verbose

    async def _resolve(self, host: str, timeout: Optional[float]) -> str:
        options = LookupOptions(all=False, family=self.family)
        if self.verbose:
            print(f"lookupOverride {host} all={options.all} family={options.family} "
                  f"strategy={self.strategy.name}", file=sys.stderr)
        try:
            result = await asyncio.wait_for(self.strategy.lookup(host, options), timeout)
        except asyncio.TimeoutError as e:
            raise httpcore.ConnectTimeout(f"Lookup of {host} timed out") from e
        self.timeline.mark(RESOLUTION_COMPLETE)
        if self.verbose:
            print(f"{self.strategy.label} lookup result {json.dumps(result.as_dict())}", file=sys.stderr)
        return result.address

    async def connect_tcp(self, host: str, port: int, timeout: Optional[float] = None,
                          local_address: Optional[str] = None,
                          socket_options=None) -> httpcore.AsyncNetworkStream:
        if not is_ip_literal(host):
            loop = asyncio.get_running_loop()
            started = loop.time()
            host = await self._resolve(host, timeout)
            if timeout is not None:
                # The lookup and the TCP connect share one connect timeout
                timeout = max(0.0, timeout - (loop.time() - started))
        return await self.backend.connect_tcp(
            host, port, timeout=timeout, local_address=local_address, socket_options=socket_options
        )

    async def connect_unix_socket(self, path: str, timeout: Optional[float] = None,
                                  socket_options=None) -> httpcore.AsyncNetworkStream:
        return await self.backend.connect_unix_socket(path, timeout=timeout, socket_options=socket_options)

    async def sleep(self, seconds: float) -> None:
        await self.backend.sleep(seconds)


class RequestPhaseTimer:
    """Time the DNS, TCP, TLS and total phases of one request at a time."""

    def __init__(self, strategy: LookupStrategy, family: Optional[int] = None, timeout: float = 30.0,
                 network_backend: Optional[httpcore.AsyncNetworkBackend] = None,
                 ssl_context: Optional[ssl.SSLContext] = None,
                 clock: Callable[[], int] = time.perf_counter_ns, verbose: bool = False):
        """Initialize the timer.

        Args:
            strategy: Lookup strategy used to resolve the request's host
            family: Address family hint passed to the strategy (4, 6 or None)
            timeout: Connect, read, write and pool timeout in seconds
            network_backend: Backend that opens the resolved TCP connection
                (default: httpcore's automatic backend)
            ssl_context: TLS context (default: httpcore's certifi context)
            clock: Nanosecond clock for the event timeline
            verbose: Print the lookup override and its result to stderr
        """
        self.strategy = strategy
        self.family = family
        self.timeout = timeout
        self.network_backend = network_backend
        self.ssl_context = ssl_context
        self.clock = clock
        self.verbose = verbose

    def _build_headers(self, url: str, headers: Optional[Dict[str, str]]) -> List[Tuple[str, str]]:
        request_headers = list((headers or {}).items())
        if not any(name.lower() == 'host' for name, _ in request_headers):
            netloc = urlsplit(url).netloc.rpartition('@')[2]
            request_headers.insert(0, ('Host', netloc))
        return request_headers

    async def request(self, url: str, method: str = 'GET',
                      headers: Optional[Dict[str, str]] = None) -> RequestTiming:
        """Issue the request and return its status code and phase timings.

        Raises:
            LookupFailure: if the host name cannot be resolved
            RequestTimeoutError: if any phase times out; the request is aborted
            TransportError: on other connection or protocol errors
        """
        timeline = EventTimeline(clock=self.clock)
        timeline.mark(START)

        backend = ResolvingBackend(self.strategy, timeline, backend=self.network_backend,
                                   family=self.family, verbose=self.verbose)

        async def trace(event_name: str, info: dict) -> None:
            if event_name == TCP_CONNECTED_EVENT:
                timeline.mark(TCP_CONNECTED)
            elif event_name == TLS_COMPLETE_EVENT:
                timeline.mark(TLS_COMPLETE)

        extensions = {
            'trace': trace,
            'timeout': {
                'connect': self.timeout,
                'read': self.timeout,
                'write': self.timeout,
                'pool': self.timeout,
            },
        }

        try:
            async with httpcore.AsyncConnectionPool(ssl_context=self.ssl_context,
                                                    network_backend=backend) as pool:
                # request() reads the whole body before returning
                response = await pool.request(
                    method, url, headers=self._build_headers(url, headers), extensions=extensions
                )
                timeline.mark(END)
        except httpcore.TimeoutException as e:
            raise RequestTimeoutError(url, timeline, f"ETIMEDOUT: request to {url} timed out ({e})") from e
        except (httpcore.NetworkError, httpcore.ProtocolError, httpcore.UnsupportedProtocol) as e:
            raise TransportError(url, timeline, f"Request to {url} failed: {e!r}") from e

        return RequestTiming(url=url, status_code=response.status, timeline=timeline,
                             timings=timeline.timings())


def format_timings(timing: RequestTiming) -> str:
    """Render the per-request report as a JSON object of phase -> milliseconds."""
    return json.dumps(timing.timings.as_dict(), indent=2)
