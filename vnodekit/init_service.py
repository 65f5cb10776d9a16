"""Init service tracking running V-Nodes."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Union

logger = logging.getLogger(__name__)

_FIRST_PID = 1000


@dataclass
class RunningVNode:
    """A service started by the init service."""

    pid: int
    capabilities: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ServiceStart:
    service_name: str


@dataclass(frozen=True)
class ServiceStatus:
    service_name: str


@dataclass(frozen=True)
class ServiceRestart:
    service_name: str


@dataclass(frozen=True)
class ServiceStop:
    service_name: str


@dataclass(frozen=True)
class InitSuccess:
    message: str


@dataclass(frozen=True)
class InitError:
    message: str


@dataclass(frozen=True)
class ServiceStatusReport:
    service_name: str
    is_running: bool
    pid: int | None


InitRequest = Union[ServiceStart, ServiceStatus, ServiceRestart, ServiceStop]
InitResponse = Union[InitSuccess, InitError, ServiceStatusReport]

_REQUEST_TYPES = (ServiceStart, ServiceStatus, ServiceRestart, ServiceStop)


class InitService:
    """Starts, stops and reports on named services."""

    def __init__(self) -> None:
        self.running_vnodes: dict[str, RunningVNode] = {}
        self.next_pid = _FIRST_PID

    def handle_request(self, request: InitRequest) -> InitResponse:
        """Process one request and return its response."""
        match request:
            case ServiceStart(service_name=name):
                pid = self.next_pid
                self.next_pid += 1
                self.running_vnodes[name] = RunningVNode(pid, ["NetworkAccess"])
                return InitSuccess(f"Service '{name}' started with PID {pid}.")
            case ServiceStatus(service_name=name):
                vnode = self.running_vnodes.get(name)
                pid = vnode.pid if vnode is not None else None
                return ServiceStatusReport(name, pid is not None, pid)
            case ServiceRestart(service_name=name):
                self.running_vnodes.pop(name, None)
                return self.handle_request(ServiceStart(name))
            case ServiceStop(service_name=name):
                if self.running_vnodes.pop(name, None) is not None:
                    return InitSuccess(f"Service '{name}' stopped.")
                return InitError(f"Service '{name}' not running.")
        raise TypeError(f"unsupported init request: {request!r}")

    def serve(self, requests: Iterable[object]) -> Iterator[InitResponse]:
        """Answer each request in turn, skipping anything that is not a request."""
        for request in requests:
            if not isinstance(request, _REQUEST_TYPES):
                logger.warning("Init Service: Failed to decode request %r.", request)
                continue
            yield self.handle_request(request)