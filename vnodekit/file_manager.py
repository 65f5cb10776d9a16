"""File manager service that performs file operations through a VFS backend."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Protocol, Union

from vnodekit.vfs import (
    VfsClose,
    VfsCreateDirectory,
    VfsCreateDirectorySuccess,
    VfsData,
    VfsDelete,
    VfsDeleteSuccess,
    VfsDirectoryEntries,
    VfsError,
    VfsList,
    VfsMetadata,
    VfsMove,
    VfsMoveSuccess,
    VfsOpen,
    VfsRead,
    VfsService,
    VfsSuccess,
    VfsWrite,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096
_READ_ONLY = 0
_WRITE_CREATE_TRUNCATE = 1


class VfsBackend(Protocol):
    """Anything that answers VFS requests."""

    def handle_request(self, request: object) -> object: ...


@dataclass(frozen=True)
class BrowseRequest:
    path: str


@dataclass(frozen=True)
class CopyRequest:
    source: str
    destination: str


@dataclass(frozen=True)
class MoveRequest:
    source: str
    destination: str


@dataclass(frozen=True)
class DeleteRequest:
    path: str


@dataclass(frozen=True)
class CreateDirectoryRequest:
    path: str


@dataclass(frozen=True)
class FileManagerEntries:
    entries: dict[str, VfsMetadata] = field(default_factory=dict)


@dataclass(frozen=True)
class FileManagerSuccess:
    message: str


@dataclass(frozen=True)
class FileManagerError:
    message: str


FileManagerRequest = Union[
    BrowseRequest, CopyRequest, MoveRequest, DeleteRequest, CreateDirectoryRequest,
]
FileManagerResponse = Union[FileManagerEntries, FileManagerSuccess, FileManagerError]

_REQUEST_TYPES = (
    BrowseRequest, CopyRequest, MoveRequest, DeleteRequest, CreateDirectoryRequest,
)


class FileManagerService:
    """Browses, copies, moves, deletes and creates files via a VFS backend."""

    def __init__(self, vfs: VfsBackend | None = None) -> None:
        self.vfs: VfsBackend = vfs if vfs is not None else VfsService()
        logger.info("File Manager Service: Initializing...")

    def handle_request(self, request: FileManagerRequest) -> FileManagerResponse:
        """Process one request and return its response."""
        match request:
            case BrowseRequest(path=path):
                return self._browse(path)
            case CopyRequest(source=source, destination=destination):
                return self._copy(source, destination)
            case MoveRequest(source=source, destination=destination):
                match self.vfs.handle_request(VfsMove(source, destination)):
                    case VfsMoveSuccess():
                        return FileManagerSuccess(
                            f"Successfully moved {source} to {destination}")
                    case VfsError(message=message):
                        return FileManagerError(
                            f"Failed to move {source} to {destination}: {message}")
                return FileManagerError("Unexpected response from VFS during move")
            case DeleteRequest(path=path):
                match self.vfs.handle_request(VfsDelete(path)):
                    case VfsDeleteSuccess():
                        return FileManagerSuccess(f"Successfully deleted {path}")
                    case VfsError(message=message):
                        return FileManagerError(f"Failed to delete {path}: {message}")
                return FileManagerError("Unexpected response from VFS during delete")
            case CreateDirectoryRequest(path=path):
                match self.vfs.handle_request(VfsCreateDirectory(path)):
                    case VfsCreateDirectorySuccess():
                        return FileManagerSuccess(f"Successfully created directory {path}")
                    case VfsError(message=message):
                        return FileManagerError(
                            f"Failed to create directory {path}: {message}")
                return FileManagerError(
                    "Unexpected response from VFS during create directory")
        raise TypeError(f"unsupported file manager request: {request!r}")

    def serve(self, requests: Iterable[object]) -> Iterator[FileManagerResponse]:
        """Answer each request in turn, skipping anything that is not a request."""
        for request in requests:
            if not isinstance(request, _REQUEST_TYPES):
                logger.warning("File Manager Service: Failed to decode request %r.", request)
                continue
            yield self.handle_request(request)

    def _browse(self, path: str) -> FileManagerResponse:
        match self.vfs.handle_request(VfsList(path)):
            case VfsDirectoryEntries(entries=entries):
                logger.info("File Manager: Browsed %s, %d entries.", path, len(entries))
                return FileManagerEntries(dict(entries))
            case VfsError(message=message):
                return FileManagerError(f"Failed to browse {path}: {message}")
        return FileManagerError("Unexpected response from VFS during browse")

    def _close(self, *fds: int) -> None:
        for fd in fds:
            self.vfs.handle_request(VfsClose(fd))

    def _copy(self, source: str, destination: str) -> FileManagerResponse:
        match self.vfs.handle_request(VfsOpen(source, _READ_ONLY)):
            case VfsSuccess(value=src_fd):
                pass
            case VfsError(message=message):
                return FileManagerError(f"Failed to open source file {source}: {message}")
            case _:
                return FileManagerError("Unexpected VFS response opening source file")

        match self.vfs.handle_request(VfsOpen(destination, _WRITE_CREATE_TRUNCATE)):
            case VfsSuccess(value=dest_fd):
                pass
            case VfsError(message=message):
                self._close(src_fd)
                return FileManagerError(
                    f"Failed to open/create destination file {destination}: {message}")
            case _:
                self._close(src_fd)
                return FileManagerError("Unexpected VFS response opening destination file")

        outcome = self._copy_chunks(src_fd, dest_fd, source, destination)
        self._close(src_fd, dest_fd)
        if isinstance(outcome, FileManagerError):
            return outcome
        logger.info("File Manager: Copied %d bytes from %s to %s.", outcome, source, destination)
        return FileManagerSuccess(
            f"Successfully copied {source} to {destination} ({outcome} bytes)")

    def _copy_chunks(
        self, src_fd: int, dest_fd: int, source: str, destination: str,
    ) -> int | FileManagerError:
        offset = 0
        while True:
            match self.vfs.handle_request(VfsRead(src_fd, CHUNK_SIZE, offset)):
                case VfsData(data=data):
                    pass
                case VfsError(message=message):
                    return FileManagerError(f"Error reading from source {source}: {message}")
                case _:
                    return FileManagerError("Unexpected VFS response reading source file")
            if not data:
                return offset
            match self.vfs.handle_request(VfsWrite(dest_fd, data, offset)):
                case VfsSuccess(value=written) if written == len(data):
                    offset += len(data)
                case VfsError(message=message):
                    return FileManagerError(
                        f"Error writing to destination {destination}: {message}")
                case _:
                    return FileManagerError(
                        "Unexpected VFS response writing destination file")