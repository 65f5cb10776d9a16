"""Socket API service that maps BSD-style socket calls onto a network stack."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Protocol, Union

logger = logging.getLogger(__name__)

EBADF = 9
EWOULDBLOCK = 11
E_UNSUPPORTED_TYPE = 100
E_NOT_TCP = 105
E_TCP_CONNECT = 106
E_UNEXPECTED = -1

SOCK_STREAM = 1
SOCK_DGRAM = 2

_NET_TYPES = {SOCK_STREAM: 0, SOCK_DGRAM: 1}


class NetStackBackend(Protocol):
    """Anything that answers network stack requests."""

    def handle_request(self, request: object) -> object: ...


@dataclass(frozen=True)
class OpenSocket:
    sock_type: int
    local_port: int = 0


@dataclass(frozen=True)
class NetSend:
    handle: int
    data: bytes


@dataclass(frozen=True)
class NetSendTo:
    handle: int
    remote_ip: tuple[int, int, int, int]
    remote_port: int
    data: bytes


@dataclass(frozen=True)
class NetRecv:
    handle: int


@dataclass(frozen=True)
class CloseSocket:
    handle: int


@dataclass(frozen=True)
class NetSuccess:
    pass


@dataclass(frozen=True)
class SocketOpened:
    handle: int


@dataclass(frozen=True)
class NetData:
    data: bytes


@dataclass(frozen=True)
class NetError:
    code: int


@dataclass(frozen=True)
class SocketCreate:
    domain: int
    ty: int
    protocol: int = 0


@dataclass(frozen=True)
class SocketBind:
    fd: int
    addr: tuple[int, int, int, int]
    port: int


@dataclass(frozen=True)
class SocketListen:
    fd: int
    backlog: int = 0


@dataclass(frozen=True)
class SocketAccept:
    fd: int


@dataclass(frozen=True)
class SocketConnect:
    fd: int
    addr: tuple[int, int, int, int]
    port: int


@dataclass(frozen=True)
class SocketSend:
    fd: int
    data: bytes


@dataclass(frozen=True)
class SocketRecv:
    fd: int
    len: int = 0


@dataclass(frozen=True)
class SocketClose:
    fd: int


@dataclass(frozen=True)
class SocketSuccess:
    value: int


@dataclass(frozen=True)
class SocketData:
    data: bytes


@dataclass(frozen=True)
class SocketError:
    code: int
    message: str


@dataclass
class SocketInfo:
    """State kept for one open socket descriptor."""

    net_socket_handle: int
    socket_type: int
    is_listening: bool = False


NetStackRequest = Union[OpenSocket, NetSend, NetSendTo, NetRecv, CloseSocket]
NetStackResponse = Union[NetSuccess, SocketOpened, NetData, NetError]
SocketRequest = Union[
    SocketCreate, SocketBind, SocketListen, SocketAccept,
    SocketConnect, SocketSend, SocketRecv, SocketClose,
]
SocketResponse = Union[SocketSuccess, SocketData, SocketError]

_REQUEST_TYPES = (
    SocketCreate, SocketBind, SocketListen, SocketAccept,
    SocketConnect, SocketSend, SocketRecv, SocketClose,
)


def _bad_fd() -> SocketError:
    return SocketError(EBADF, "Bad file descriptor")


class SocketApiService:
    """Keeps socket descriptors and forwards operations to a network stack."""

    def __init__(self, net: NetStackBackend) -> None:
        self.net = net
        self.next_fd = 1
        self.sockets: dict[int, SocketInfo] = {}
        logger.info("Socket API V-Node starting up...")

    def handle_request(self, request: SocketRequest) -> SocketResponse:
        """Process one socket request and return its response."""
        match request:
            case SocketCreate(ty=ty):
                return self._create(ty)
            case SocketBind(fd=fd, port=port):
                return self._bind(fd, port)
            case SocketListen(fd=fd):
                info = self.sockets.get(fd)
                if info is None:
                    return _bad_fd()
                if info.socket_type != SOCK_STREAM:
                    return SocketError(E_NOT_TCP, "Only TCP sockets can listen")
                info.is_listening = True
                logger.info("SocketAPI: Socket fd %d marked as listening.", fd)
                return SocketSuccess(0)
            case SocketAccept(fd=fd):
                logger.info("SocketAPI: Accept on fd %d would block.", fd)
                return SocketError(EWOULDBLOCK, "Operation would block (EWOULDBLOCK)")
            case SocketConnect(fd=fd, addr=addr, port=port):
                return self._connect(fd, addr, port)
            case SocketSend(fd=fd, data=data):
                return self._send(fd, data)
            case SocketRecv(fd=fd):
                info = self.sockets.get(fd)
                if info is None:
                    return _bad_fd()
                match self.net.handle_request(NetRecv(info.net_socket_handle)):
                    case NetData(data=data):
                        return SocketData(bytes(data))
                    case NetError(code=code):
                        return SocketError(code, "Failed to receive via AetherNet")
                return SocketError(E_UNEXPECTED, "Unexpected response from AetherNet during Recv")
            case SocketClose(fd=fd):
                info = self.sockets.pop(fd, None)
                if info is None:
                    return _bad_fd()
                match self.net.handle_request(CloseSocket(info.net_socket_handle)):
                    case NetSuccess():
                        logger.info("SocketAPI: Closed socket fd %d", fd)
                        return SocketSuccess(0)
                    case NetError(code=code):
                        return SocketError(code, "Failed to close socket in AetherNet")
                return SocketError(E_UNEXPECTED, "Unexpected response from AetherNet during Close")
        raise TypeError(f"unsupported socket request: {request!r}")

    def serve(self, requests: Iterable[object]) -> Iterator[SocketResponse]:
        """Answer each request in turn, skipping anything that is not a request."""
        for request in requests:
            if not isinstance(request, _REQUEST_TYPES):
                logger.warning("SocketAPI: Failed to decode request %r.", request)
                continue
            yield self.handle_request(request)

    def _create(self, ty: int) -> SocketResponse:
        net_type = _NET_TYPES.get(ty)
        if net_type is None:
            logger.warning("SocketAPI: Unsupported socket type: %d", ty)
            return SocketError(E_UNSUPPORTED_TYPE, "Unsupported socket type")
        match self.net.handle_request(OpenSocket(net_type, 0)):
            case SocketOpened(handle=handle):
                fd = self.next_fd
                self.next_fd += 1
                self.sockets[fd] = SocketInfo(handle, ty)
                logger.info("SocketAPI: Opened fd %d, net_handle %d", fd, handle)
                return SocketSuccess(fd)
            case NetError(code=code):
                return SocketError(code, "Failed to open socket in AetherNet")
        return SocketError(
            E_UNEXPECTED, "Unexpected response from AetherNet during Socket open")

    def _bind(self, fd: int, port: int) -> SocketResponse:
        info = self.sockets.get(fd)
        if info is None:
            return _bad_fd()
        net_type = _NET_TYPES.get(info.socket_type)
        if net_type is None:
            return SocketError(E_UNSUPPORTED_TYPE, "Unsupported socket type for bind")
        match self.net.handle_request(OpenSocket(net_type, port)):
            case SocketOpened(handle=handle):
                info.net_socket_handle = handle
                logger.info("SocketAPI: fd %d bound to port %d, net_handle %d", fd, port, handle)
                return SocketSuccess(0)
            case NetError(code=code):
                return SocketError(code, "Failed to bind socket in AetherNet")
        return SocketError(E_UNEXPECTED, "Unexpected response from AetherNet during Bind")

    def _connect(self, fd: int, addr: tuple[int, int, int, int], port: int) -> SocketResponse:
        info = self.sockets.get(fd)
        if info is None:
            return _bad_fd()
        if info.socket_type == SOCK_DGRAM:
            request = NetSendTo(info.net_socket_handle, tuple(addr), port, b"")
            match self.net.handle_request(request):
                case NetSuccess():
                    return SocketSuccess(0)
                case NetError(code=code):
                    return SocketError(code, "Failed to connect UDP socket via AetherNet")
            return SocketError(
                E_UNEXPECTED, "Unexpected response from AetherNet during UDP Connect")
        if info.socket_type == SOCK_STREAM:
            return SocketError(E_TCP_CONNECT, "TCP Connect not fully implemented yet")
        return SocketError(E_UNSUPPORTED_TYPE, "Unsupported socket type for connect")

    def _send(self, fd: int, data: bytes) -> SocketResponse:
        info = self.sockets.get(fd)
        if info is None:
            return _bad_fd()
        if info.socket_type not in _NET_TYPES:
            return SocketError(E_UNSUPPORTED_TYPE, "Unsupported socket type for send")
        match self.net.handle_request(NetSend(info.net_socket_handle, bytes(data))):
            case NetSuccess():
                logger.info("SocketAPI: Sent %d bytes on fd %d", len(data), fd)
                return SocketSuccess(len(data))
            case NetError(code=code):
                return SocketError(code, "Failed to send via AetherNet")
        return SocketError(E_UNEXPECTED, "Unexpected response from AetherNet during Send")