"""Interchangeable name-resolution strategies.

Every strategy satisfies the same asynchronous contract::

    await strategy.lookup(hostname, LookupOptions(all=False, family=4))

so the benchmark and the phase timer can swap them without changing call
sites.
"""

import asyncio
import socket
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

import aiodns
from aiodns.error import DNSError

from .exceptions import LookupFailure
from .models import LookupAnswer, LookupOptions, LookupResult

SOCKET_FAMILIES = {
    None: socket.AF_UNSPEC,
    4: socket.AF_INET,
    6: socket.AF_INET6,
}


def family_from_socket(af: int) -> int:
    """Map a socket address family to 4 or 6."""
    if af == socket.AF_INET6:
        return 6
    if af == socket.AF_INET:
        return 4
    raise ValueError(f"Unsupported address family {af!r}")


def build_answer(pairs: Iterable[Tuple[str, int]], options: LookupOptions) -> List[LookupResult]:
    """Turn (address, family) pairs into unique results, keeping resolver order."""
    results: List[LookupResult] = []
    seen = set()
    for address, family in pairs:
        if options.family is not None and family != options.family:
            continue
        if address in seen:
            continue
        seen.add(address)
        results.append(LookupResult(address=address, family=family))
    return results


class LookupStrategy(ABC):
    """A name-resolution implementation."""

    name: str = 'strategy'
    label: str = 'Strategy'

    async def lookup(self, hostname: str, options: Optional[LookupOptions] = None) -> LookupAnswer:
        """Resolve hostname.

        Returns:
            A single LookupResult, or the ordered list of all results when
            options.all is set

        Raises:
            LookupFailure: if the name cannot be resolved
        """
        options = options or LookupOptions()
        results = await self._resolve(hostname, options)
        if not results:
            raise LookupFailure(hostname, self.name, 'no addresses returned')
        if options.all:
            return results
        return results[0]

    @abstractmethod
    async def _resolve(self, hostname: str, options: LookupOptions) -> List[LookupResult]:
        ...

    async def close(self) -> None:
        pass


class PlatformLookup(LookupStrategy):
    """Operating system resolver, via the event loop's getaddrinfo."""

    name = 'platform'
    label = 'Native'

    async def _resolve(self, hostname: str, options: LookupOptions) -> List[LookupResult]:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                hostname, None,
                family=SOCKET_FAMILIES[options.family],
                type=socket.SOCK_STREAM,
            )
        except (OSError, UnicodeError) as e:
            # UnicodeError: the name cannot be IDNA-encoded (label too long or empty)
            raise LookupFailure(hostname, self.name, str(e)) from e

        pairs = []
        for af, _type, _proto, _canonname, sockaddr in infos:
            if af not in (socket.AF_INET, socket.AF_INET6):
                continue
            pairs.append((sockaddr[0], family_from_socket(af)))
        return build_answer(pairs, options)


class AresLookup(LookupStrategy):
    """c-ares resolver through the aiodns native binding.

    Queries IPv6 only when family 6 is requested and IPv4 otherwise. The
    underlying resolver is created on first use and reused afterwards.
    """

    name = 'external'
    label = 'FFI'

    def __init__(self, nameservers: Optional[Sequence[str]] = None,
                 resolver: Optional[aiodns.DNSResolver] = None):
        self.nameservers = list(nameservers) if nameservers else None
        self._resolver = resolver

    def _get_resolver(self) -> aiodns.DNSResolver:
        if self._resolver is None:
            kwargs = {}
            if self.nameservers:
                kwargs['nameservers'] = self.nameservers
            self._resolver = aiodns.DNSResolver(**kwargs)
        return self._resolver

    async def _resolve(self, hostname: str, options: LookupOptions) -> List[LookupResult]:
        family = 6 if options.family == 6 else 4
        resolver = self._get_resolver()
        try:
            response = await resolver.getaddrinfo(
                hostname,
                family=SOCKET_FAMILIES[family],
                type=socket.SOCK_STREAM,
            )
        except DNSError as e:
            raise LookupFailure(hostname, self.name, str(e)) from e

        pairs = []
        for node in response.nodes:
            if node.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            address = node.addr[0]
            if isinstance(address, bytes):
                address = address.decode('ascii')
            pairs.append((address, family_from_socket(node.family)))
        return build_answer(pairs, LookupOptions(all=options.all, family=family))

    async def close(self) -> None:
        if self._resolver is not None:
            await self._resolver.close()
            self._resolver = None


def create_strategy(name: str, nameservers: Optional[Sequence[str]] = None) -> LookupStrategy:
    """Build a strategy from its CLI name."""
    if name == PlatformLookup.name:
        return PlatformLookup()
    if name == AresLookup.name:
        return AresLookup(nameservers=nameservers)
    raise ValueError(f"Unknown lookup strategy {name!r}")
