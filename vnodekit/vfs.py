"""Virtual file system service with simulated storage."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Union

logger = logging.getLogger(__name__)

EBADF = 9
ENOENT = 2
_BACKEND_HANDLE_BASE = 1000
_STAT_TIMESTAMP = 1678886400


@dataclass(frozen=True)
class VfsMetadata:
    """Metadata describing a file or directory."""

    is_dir: bool
    size: int
    created: int
    modified: int
    permissions: int


@dataclass
class OpenFile:
    """An open file handle tracked by the service."""

    path: str
    flags: int
    cursor: int = 0
    backend_handle: int = 0


@dataclass(frozen=True)
class VfsOpen:
    path: str
    flags: int = 0


@dataclass(frozen=True)
class VfsRead:
    fd: int
    len: int
    offset: int = 0


@dataclass(frozen=True)
class VfsWrite:
    fd: int
    data: bytes
    offset: int = 0


@dataclass(frozen=True)
class VfsList:
    path: str


@dataclass(frozen=True)
class VfsStat:
    path: str


@dataclass(frozen=True)
class VfsClose:
    fd: int


@dataclass(frozen=True)
class VfsDelete:
    path: str


@dataclass(frozen=True)
class VfsCreateDirectory:
    path: str


@dataclass(frozen=True)
class VfsMove:
    source: str
    destination: str


@dataclass(frozen=True)
class VfsSuccess:
    value: int


@dataclass(frozen=True)
class VfsData:
    data: bytes


@dataclass(frozen=True)
class VfsDirectoryEntries:
    entries: dict[str, VfsMetadata] = field(default_factory=dict)


@dataclass(frozen=True)
class VfsMetadataResult:
    metadata: VfsMetadata


@dataclass(frozen=True)
class VfsError:
    code: int
    message: str


@dataclass(frozen=True)
class VfsDeleteSuccess:
    pass


@dataclass(frozen=True)
class VfsCreateDirectorySuccess:
    pass


@dataclass(frozen=True)
class VfsMoveSuccess:
    pass


VfsRequest = Union[
    VfsOpen, VfsRead, VfsWrite, VfsList, VfsStat, VfsClose,
    VfsDelete, VfsCreateDirectory, VfsMove,
]
VfsResponse = Union[
    VfsSuccess, VfsData, VfsDirectoryEntries, VfsMetadataResult, VfsError,
    VfsDeleteSuccess, VfsCreateDirectorySuccess, VfsMoveSuccess,
]

_REQUEST_TYPES = (
    VfsOpen, VfsRead, VfsWrite, VfsList, VfsStat, VfsClose,
    VfsDelete, VfsCreateDirectory, VfsMove,
)


def _dir() -> VfsMetadata:
    return VfsMetadata(is_dir=True, size=0, created=0, modified=0, permissions=0o755)


def _file(size: int) -> VfsMetadata:
    return VfsMetadata(is_dir=False, size=size, created=0, modified=0, permissions=0o644)


def _listing(path: str) -> dict[str, VfsMetadata] | None:
    if path == "/":
        entries = {"home": _dir(), "etc": _dir(), "bin": _dir(), "README.txt": _file(1024)}
    elif path == "/home":
        entries = {"user": _dir()}
    elif path == "/home/user":
        entries = {"documents": _dir(), "config.txt": _file(256)}
    else:
        return None
    return dict(sorted(entries.items()))


def _bad_fd() -> VfsError:
    return VfsError(EBADF, "Bad file descriptor")


class VfsService:
    """Answers VFS requests against a simulated backend."""

    def __init__(self) -> None:
        self.next_fd = 1
        self.open_files: dict[int, OpenFile] = {}
        logger.info("VFS Service: Initializing...")

    def handle_request(self, request: VfsRequest) -> VfsResponse:
        """Process one request and return its response."""
        match request:
            case VfsOpen(path=path, flags=flags):
                fd = self.next_fd
                self.next_fd += 1
                self.open_files[fd] = OpenFile(
                    path=path, flags=flags, cursor=0,
                    backend_handle=_BACKEND_HANDLE_BASE + fd,
                )
                logger.info("VFS: Opened %s as fd %d.", path, fd)
                return VfsSuccess(fd)
            case VfsRead(fd=fd, len=length, offset=offset):
                file = self.open_files.get(fd)
                if file is None:
                    logger.warning("VFS: Read failed, bad fd: %d.", fd)
                    return _bad_fd()
                content = f"dummy_data_from_file_{file.path}_at_offset_{offset}".encode()
                data = content[: max(0, min(length, len(content)))]
                file.cursor = offset + len(data)
                return VfsData(data)
            case VfsWrite(fd=fd, data=data, offset=offset):
                file = self.open_files.get(fd)
                if file is None:
                    logger.warning("VFS: Write failed, bad fd: %d.", fd)
                    return _bad_fd()
                file.cursor = offset + len(data)
                return VfsSuccess(len(data))
            case VfsList(path=path):
                entries = _listing(path)
                if entries is None:
                    return VfsError(ENOENT, f"Path not found: {path}")
                return VfsDirectoryEntries(entries)
            case VfsStat(path=path):
                if path == "/README.txt":
                    return VfsMetadataResult(VfsMetadata(
                        False, 1024, _STAT_TIMESTAMP, _STAT_TIMESTAMP, 0o644))
                if path == "/home":
                    return VfsMetadataResult(VfsMetadata(
                        True, 0, _STAT_TIMESTAMP, _STAT_TIMESTAMP, 0o755))
                return VfsError(ENOENT, f"Path not found: {path}")
            case VfsClose(fd=fd):
                file = self.open_files.pop(fd, None)
                if file is None:
                    logger.warning("VFS: Close failed, bad fd: %d.", fd)
                    return _bad_fd()
                logger.info("VFS: Closed fd %d (path: %s).", fd, file.path)
                return VfsSuccess(0)
            case VfsDelete():
                return VfsDeleteSuccess()
            case VfsCreateDirectory():
                return VfsCreateDirectorySuccess()
            case VfsMove():
                return VfsMoveSuccess()
        raise TypeError(f"unsupported VFS request: {request!r}")

    def serve(self, requests: Iterable[object]) -> Iterator[VfsResponse]:
        """Answer each request in turn, skipping anything that is not a request."""
        for request in requests:
            if not isinstance(request, _REQUEST_TYPES):
                logger.warning("VFS Service: Failed to decode request %r.", request)
                continue
            yield self.handle_request(request)