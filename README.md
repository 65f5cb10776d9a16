# vnodekit

A set of small, message-driven system services that run in one Python
process. Each service takes frozen dataclass request objects through
`handle_request` and returns dataclass response objects. Failures a client
should see come back as error responses, for example `VfsError` or
`ShellError`. Exceptions are raised only for programming errors: an
unsupported request type raises `TypeError`. A service that needs another
service receives it when it is constructed, so services can be wired
together or replaced by fakes.

Every service also has a `serve(requests)` generator. It answers each request
in order and skips, with a logged warning, any object that is not one of the
service's request types. Services log through the standard `logging` module,
using one logger per module (`vnodekit.vfs`, `vnodekit.shell`, and so on).

## Services

| Module | Service | What it does |
| --- | --- | --- |
| `vnodekit.vfs` | `VfsService` | Opens, reads, writes, closes, lists and stats entries of a fixed, simulated tree. |
| `vnodekit.init_service` | `InitService` | Starts, stops, restarts and reports named services. Process ids start at 1000. |
| `vnodekit.file_manager` | `FileManagerService` | Browse, copy (in 4096-byte chunks), move, delete and create directories through a VFS backend. |
| `vnodekit.model_runtime` | `ModelRuntimeService` | Loads a model from a VFS path on first use, caches it, and returns fixed, simulated inference results. |
| `vnodekit.socket_api` | `SocketApiService` | BSD-style socket descriptors (`SocketCreate`, `SocketBind`, `SocketListen`, `SocketAccept`, `SocketConnect`, `SocketSend`, `SocketRecv`, `SocketClose`) forwarded to a network-stack backend. |
| `vnodekit.dns_resolver` | `DnsResolver` | Resolves hostnames through a socket backend and caches answers for 60 seconds. |
| `vnodekit.shell` | `ShellService` | A shell with `cd`, `ls`, `ping`, `start` and single `a \| b` pipes. It also relays requests to logger, echo and test backends. |

### VFS behaviour

- `VfsOpen` always succeeds. It returns `VfsSuccess(fd)`, and descriptors start at 1.
- `VfsRead` returns up to `len` bytes of the text
  `dummy_data_from_file_<path>_at_offset_<offset>`.
- `VfsWrite` returns `VfsSuccess(len(data))`. Nothing is stored.
- `VfsList` knows `/`, `/home` and `/home/user`. `VfsStat` knows `/README.txt`
  and `/home`. Any other path gives `VfsError(2, "Path not found: ...")`.
- An unknown descriptor gives `VfsError(9, "Bad file descriptor")`.
- `VfsDelete`, `VfsCreateDirectory` and `VfsMove` always report success.

## Install

```
pip install .
```

## Example

```python
from vnodekit.vfs import VfsService, VfsOpen, VfsRead, VfsClose
from vnodekit.init_service import InitService, ServiceStart, ServiceStatus
from vnodekit.file_manager import FileManagerService, BrowseRequest
from vnodekit.shell import ShellService, ExecuteCommand, GetCurrentDirectory

vfs = VfsService()
opened = vfs.handle_request(VfsOpen(path="/README.txt", flags=0))   # VfsSuccess(value=1)
vfs.handle_request(VfsRead(fd=opened.value, len=16, offset=0))     # VfsData(data=b'dummy_data_from_')
vfs.handle_request(VfsClose(fd=opened.value))                      # VfsSuccess(value=0)

init = InitService()
init.handle_request(ServiceStart(service_name="dns"))
# InitSuccess(message="Service 'dns' started with PID 1000.")
init.handle_request(ServiceStatus(service_name="dns"))
# ServiceStatusReport(service_name='dns', is_running=True, pid=1000)

files = FileManagerService(vfs)
files.handle_request(BrowseRequest(path="/home"))
# FileManagerEntries(entries={'user': VfsMetadata(is_dir=True, ...)})

shell = ShellService()
shell.handle_request(ExecuteCommand("ls", ("/home",)))
# CommandOutput(stdout='user\n', stderr='', exit_code=0)
shell.handle_request(ExecuteCommand("ls", ("/home", "|", "cd")))
# ShellSuccess(message='Changed directory to /user')
shell.handle_request(GetCurrentDirectory())
# CurrentDirectory(path='/user')
```

In a pipe, the trimmed stdout of the first command becomes the first argument
of the second command. A `ShellService` uses a fresh `VfsService` and
`InitService` unless others are given. Its `dns`, `logger_backend`, `echo` and
`tester` backends default to `None`. Requests that need a missing backend
return a `ShellError` that reports an unexpected response.

## What this package does not do

- There is no command-line program. The services are used from Python.
- No data is stored. The VFS answers from a fixed, simulated tree. Writes,
  deletes, moves and directory creation change nothing.
- The simulated VFS never returns an empty read. A `CopyRequest` keeps
  reading until the backend returns no data, so a copy against the default
  `VfsService` does not finish. Give `FileManagerService` a VFS backend that
  signals end of file.
- There is no network stack. `SocketApiService` needs a backend that answers
  `OpenSocket`, `NetSend`, `NetSendTo`, `NetRecv` and `CloseSocket`. `SocketAccept`
  always returns `EWOULDBLOCK`, and TCP connect is not available.
- `DnsResolver` does not build or parse real DNS packets. It sends
  `DNS_QUERY:<hostname>` and only recognises a reply for `example.com`
  containing `IP:192.0.2.1`, or a reply containing `NOT_FOUND`.
- Model inference is simulated. It always returns `("cat", "dog")` with
  `(0.9, 0.1)`, or a fixed generated sentence.

## Running the tests

```
pip install ".[test]"
pytest
```