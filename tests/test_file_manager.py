import pytest

from vnodekit.file_manager import (
    CHUNK_SIZE,
    BrowseRequest,
    CopyRequest,
    CreateDirectoryRequest,
    DeleteRequest,
    FileManagerEntries,
    FileManagerError,
    FileManagerService,
    FileManagerSuccess,
    MoveRequest,
)
from vnodekit.vfs import (
    VfsClose,
    VfsData,
    VfsError,
    VfsOpen,
    VfsRead,
    VfsSuccess,
    VfsWrite,
)


class FakeVfs:
    def __init__(self, files=None, fail_open=(), read_error=False, short_write=False,
                 odd_responses=False):
        self.files = dict(files or {})
        self.fail_open = set(fail_open)
        self.read_error = read_error
        self.short_write = short_write
        self.odd_responses = odd_responses
        self.handles = {}
        self.next_fd = 1
        self.calls = []

    def handle_request(self, request):
        self.calls.append(request)
        if self.odd_responses:
            return VfsSuccess(0)
        match request:
            case VfsOpen(path, flags):
                if path in self.fail_open or (flags == 0 and path not in self.files):
                    return VfsError(2, f"Path not found: {path}")
                if flags == 1:
                    self.files[path] = b""
                fd = self.next_fd
                self.next_fd += 1
                self.handles[fd] = path
                return VfsSuccess(fd)
            case VfsRead(fd, length, offset):
                if self.read_error:
                    return VfsError(5, "I/O error")
                return VfsData(self.files[self.handles[fd]][offset:offset + length])
            case VfsWrite(fd, data, offset):
                if self.short_write:
                    return VfsSuccess(len(data) - 1)
                path = self.handles[fd]
                self.files[path] = self.files[path][:offset] + data
                return VfsSuccess(len(data))
            case VfsClose(fd):
                self.handles.pop(fd)
                return VfsSuccess(0)
        return VfsError(22, "unsupported")


def closed_fds(vfs):
    return [call.fd for call in vfs.calls if isinstance(call, VfsClose)]


def test_copy_transfers_content_in_chunks():
    payload = bytes(range(256)) * 40
    vfs = FakeVfs(files={"/a": payload})
    response = FileManagerService(vfs).handle_request(CopyRequest("/a", "/b"))
    assert response == FileManagerSuccess(
        f"Successfully copied /a to /b ({len(payload)} bytes)")
    assert vfs.files["/b"] == payload
    reads = [call for call in vfs.calls if isinstance(call, VfsRead)]
    assert all(call.len == CHUNK_SIZE for call in reads)
    assert [call.offset for call in reads] == [0, CHUNK_SIZE, 2 * CHUNK_SIZE, len(payload)]
    assert closed_fds(vfs) == [1, 2]
    assert vfs.handles == {}


def test_copy_empty_file():
    vfs = FakeVfs(files={"/empty": b""})
    response = FileManagerService(vfs).handle_request(CopyRequest("/empty", "/out"))
    assert response == FileManagerSuccess("Successfully copied /empty to /out (0 bytes)")
    assert vfs.files["/out"] == b""


def test_copy_missing_source():
    vfs = FakeVfs()
    response = FileManagerService(vfs).handle_request(CopyRequest("/nope", "/b"))
    assert response == FileManagerError(
        "Failed to open source file /nope: Path not found: /nope")
    assert closed_fds(vfs) == []


def test_copy_destination_failure_closes_source():
    vfs = FakeVfs(files={"/a": b"abc"}, fail_open={"/b"})
    response = FileManagerService(vfs).handle_request(CopyRequest("/a", "/b"))
    assert response == FileManagerError(
        "Failed to open/create destination file /b: Path not found: /b")
    assert closed_fds(vfs) == [1]


def test_copy_read_error_closes_both():
    vfs = FakeVfs(files={"/a": b"abc"}, read_error=True)
    response = FileManagerService(vfs).handle_request(CopyRequest("/a", "/b"))
    assert response == FileManagerError("Error reading from source /a: I/O error")
    assert closed_fds(vfs) == [1, 2]


def test_copy_short_write_is_unexpected():
    vfs = FakeVfs(files={"/a": b"abc"}, short_write=True)
    response = FileManagerService(vfs).handle_request(CopyRequest("/a", "/b"))
    assert response == FileManagerError("Unexpected VFS response writing destination file")
    assert closed_fds(vfs) == [1, 2]


def test_copy_unexpected_open_response():
    class DataOnly:
        def handle_request(self, request):
            return VfsData(b"")

    response = FileManagerService(DataOnly()).handle_request(CopyRequest("/a", "/b"))
    assert response == FileManagerError("Unexpected VFS response opening source file")


def test_browse_root_with_default_vfs():
    response = FileManagerService().handle_request(BrowseRequest("/"))
    assert isinstance(response, FileManagerEntries)
    assert set(response.entries) == {"home", "etc", "bin", "README.txt"}
    assert response.entries["README.txt"].size == 1024


def test_browse_missing_path():
    response = FileManagerService().handle_request(BrowseRequest("/nope"))
    assert response == FileManagerError("Failed to browse /nope: Path not found: /nope")


def test_move_delete_and_mkdir_succeed():
    service = FileManagerService()
    assert service.handle_request(MoveRequest("/x", "/y")) == FileManagerSuccess(
        "Successfully moved /x to /y")
    assert service.handle_request(DeleteRequest("/x")) == FileManagerSuccess(
        "Successfully deleted /x")
    assert service.handle_request(CreateDirectoryRequest("/d")) == FileManagerSuccess(
        "Successfully created directory /d")


@pytest.mark.parametrize("request_, message", [
    (BrowseRequest("/"), "Unexpected response from VFS during browse"),
    (MoveRequest("/x", "/y"), "Unexpected response from VFS during move"),
    (DeleteRequest("/x"), "Unexpected response from VFS during delete"),
    (CreateDirectoryRequest("/d"), "Unexpected response from VFS during create directory"),
])
def test_unexpected_responses(request_, message):
    service = FileManagerService(FakeVfs(odd_responses=True))
    assert service.handle_request(request_) == FileManagerError(message)


def test_serve_skips_non_requests():
    service = FileManagerService()
    responses = list(service.serve([b"garbage", DeleteRequest("/z"), 42]))
    assert responses == [FileManagerSuccess("Successfully deleted /z")]


def test_unknown_request_raises():
    with pytest.raises(TypeError):
        FileManagerService().handle_request("copy")