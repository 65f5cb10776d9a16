"""DNS resolver service with a time-limited cache, querying through a socket API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Protocol, Union

from vnodekit.socket_api import (
    SocketConnect,
    SocketCreate,
    SocketData,
    SocketError,
    SocketRecv,
    SocketSend,
    SocketSuccess,
)

logger = logging.getLogger(__name__)

AF_INET = 2
SOCK_DGRAM = 2
DNS_PORT = 53
RECV_SIZE = 512
CACHE_TTL_MS = 60_000
DEFAULT_DNS_SERVER = (8, 8, 8, 8)

_KNOWN_HOST = "example.com"
_KNOWN_ADDRESS = (192, 0, 2, 1)

IPv4 = tuple[int, int, int, int]


class SocketBackend(Protocol):
    """Anything that answers socket API requests."""

    def handle_request(self, request: object) -> object: ...


class DnsSetupError(RuntimeError):
    """Raised when the resolver cannot open its UDP socket."""


@dataclass(frozen=True)
class DnsCacheEntry:
    """A cached address and the time at which it stops being valid."""

    ip_address: IPv4
    expires_at_ms: int


@dataclass(frozen=True)
class ResolveHostname:
    hostname: str


@dataclass(frozen=True)
class ResolvedHostname:
    hostname: str
    ip_address: IPv4


@dataclass(frozen=True)
class DnsNotFound:
    query: str


@dataclass(frozen=True)
class DnsError:
    message: str


DnsRequest = ResolveHostname
DnsResponse = Union[ResolvedHostname, DnsNotFound, DnsError]


def _format_ip(ip: IPv4) -> str:
    return ".".join(str(part) for part in ip)


def _default_clock() -> int:
    return int(time.monotonic() * 1000)


class DnsResolver:
    """Resolves hostnames, caching answers for a minute."""

    def __init__(self, sockets: SocketBackend, dns_servers: Iterable[IPv4] | None = None) -> None:
        self.sockets = sockets
        self.dns_servers: list[IPv4] = [
            tuple(server) for server in (dns_servers or [DEFAULT_DNS_SERVER])
        ]
        self.dns_cache: dict[str, DnsCacheEntry] = {}
        logger.info("DNS Resolver: Initializing...")
        logger.info("DNS Resolver: Using DNS server: %s", _format_ip(self.dns_servers[0]))

        match sockets.handle_request(SocketCreate(AF_INET, SOCK_DGRAM, 0)):
            case SocketSuccess(value=fd):
                logger.info("DNS Resolver: Opened UDP socket with fd: %d.", fd)
                self.dns_socket_fd: int = fd
            case SocketError(code=code, message=message):
                raise DnsSetupError(
                    f"Failed to open UDP socket. Error {code}: {message}")
            case other:
                raise DnsSetupError(f"Unexpected socket-api response: {other!r}")

    def perform_network_lookup(self, hostname: str, current_time_ms: int) -> DnsResponse:
        """Query the first DNS server for hostname, caching a successful answer."""
        logger.info("DNS Resolver: Performing network lookup for %s.", hostname)
        fd = self.dns_socket_fd
        server = self.dns_servers[0]

        match self.sockets.handle_request(SocketConnect(fd, server, DNS_PORT)):
            case SocketSuccess():
                pass
            case SocketError():
                return DnsError("Failed to set remote DNS server")
            case _:
                return DnsError("Unexpected response during UDP connect")

        query = f"DNS_QUERY:{hostname}".encode()
        match self.sockets.handle_request(SocketSend(fd, query)):
            case SocketSuccess(value=sent):
                logger.info("DNS Resolver: Sent %d bytes DNS query for %s.", sent, hostname)
            case SocketError():
                return DnsError("Failed to send DNS query")
            case _:
                return DnsError("Unexpected response during DNS query send")

        match self.sockets.handle_request(SocketRecv(fd, RECV_SIZE)):
            case SocketData(data=payload):
                text = bytes(payload).decode("utf-8", errors="replace")
            case SocketError():
                return DnsError("Failed to receive DNS response")
            case _:
                return DnsError("Unexpected response during DNS response receive")

        if f"IP:{_format_ip(_KNOWN_ADDRESS)}" in text and hostname == _KNOWN_HOST:
            self.dns_cache[hostname] = DnsCacheEntry(
                _KNOWN_ADDRESS, current_time_ms + CACHE_TTL_MS)
            logger.info("DNS Resolver: Resolved %s (cached).", hostname)
            return ResolvedHostname(hostname, _KNOWN_ADDRESS)
        if "NOT_FOUND" in text:
            return DnsNotFound(hostname)
        return DnsError(f"Unknown DNS response for {hostname}.")

    def handle_request(self, request: DnsRequest, current_time_ms: int) -> DnsResponse:
        """Answer from the cache when fresh, otherwise look the name up."""
        match request:
            case ResolveHostname(hostname=hostname):
                entry = self.dns_cache.get(hostname)
                if entry is not None:
                    if current_time_ms < entry.expires_at_ms:
                        logger.info("DNS Resolver: Cache hit for %s.", hostname)
                        return ResolvedHostname(hostname, entry.ip_address)
                    logger.info("DNS Resolver: Cache expired for %s.", hostname)
                    del self.dns_cache[hostname]
                return self.perform_network_lookup(hostname, current_time_ms)
        raise TypeError(f"unsupported DNS request: {request!r}")

    def serve(
        self,
        requests: Iterable[object],
        clock: Callable[[], int] | None = None,
    ) -> Iterator[DnsResponse]:
        """Answer each request in turn, reading the time from clock."""
        now = clock if clock is not None else _default_clock
        for request in requests:
            if not isinstance(request, ResolveHostname):
                logger.warning("DNS Resolver: Failed to decode request %r.", request)
                continue
            yield self.handle_request(request, now())