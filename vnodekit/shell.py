"""Shell service that runs commands against the other V-Node services."""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Protocol, Union

from vnodekit.dns_resolver import DnsError, DnsNotFound, ResolveHostname, ResolvedHostname
from vnodekit.init_service import InitError, InitService, InitSuccess, ServiceStart
from vnodekit.vfs import VfsDirectoryEntries, VfsError, VfsList, VfsService

logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 127


class Backend(Protocol):
    """Anything that answers requests."""

    def handle_request(self, request: object) -> object: ...


class DnsBackend(Protocol):
    """Anything that answers DNS requests at a given time."""

    def handle_request(self, request: object, current_time_ms: int) -> object: ...


class LogLevel(enum.Enum):
    """Severity of a log message."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class LogMessage:
    message: str
    level: LogLevel = LogLevel.INFO


@dataclass(frozen=True)
class LoggerSuccess:
    pass


@dataclass(frozen=True)
class LoggerError:
    message: str


@dataclass(frozen=True)
class EchoMessage:
    message: str


@dataclass(frozen=True)
class EchoReply:
    message: str


@dataclass(frozen=True)
class EchoError:
    message: str


@dataclass(frozen=True)
class RunEchoTest:
    message: str


@dataclass(frozen=True)
class RunLoggerTest:
    message: str
    level: LogLevel = LogLevel.INFO


@dataclass(frozen=True)
class TestEchoResult:
    __test__ = False
    reply: str


@dataclass(frozen=True)
class TestLoggerResult:
    __test__ = False
    success: bool


@dataclass(frozen=True)
class TestError:
    __test__ = False
    message: str


@dataclass(frozen=True)
class ExecuteCommand:
    command: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class ChangeDirectory:
    path: str


@dataclass(frozen=True)
class GetCurrentDirectory:
    pass


@dataclass(frozen=True)
class RunLoggerCommand:
    message: str
    level: LogLevel = LogLevel.INFO


@dataclass(frozen=True)
class RunEchoCommand:
    message: str


@dataclass(frozen=True)
class RunTestCommand:
    test_name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class CommandOutput:
    stdout: str
    stderr: str = ""
    exit_code: int = 0


@dataclass(frozen=True)
class ShellSuccess:
    message: str


@dataclass(frozen=True)
class ShellError:
    message: str


@dataclass(frozen=True)
class CurrentDirectory:
    path: str


@dataclass(frozen=True)
class LoggerResult:
    success: bool


@dataclass(frozen=True)
class EchoResult:
    reply: str


@dataclass(frozen=True)
class TestResult:
    __test__ = False
    stdout: str
    stderr: str
    success: bool


ShellRequest = Union[
    ExecuteCommand, ChangeDirectory, GetCurrentDirectory,
    RunLoggerCommand, RunEchoCommand, RunTestCommand,
]
ShellResponse = Union[
    CommandOutput, ShellSuccess, ShellError, CurrentDirectory,
    LoggerResult, EchoResult, TestResult,
]

_REQUEST_TYPES = (
    ExecuteCommand, ChangeDirectory, GetCurrentDirectory,
    RunLoggerCommand, RunEchoCommand, RunTestCommand,
)


def parse_command_line(line: str) -> tuple[str, list[str]]:
    """Split a command line into its command name and arguments."""
    parts = line.split()
    if not parts:
        return "", []
    return parts[0], parts[1:]


def _default_clock() -> int:
    return int(time.monotonic() * 1000)


def _ask(backend: Backend | None, request: object) -> object:
    return None if backend is None else backend.handle_request(request)


@dataclass
class ShellService:
    """Keeps a working directory and history and dispatches commands."""

    vfs: Backend = field(default_factory=VfsService)
    init: Backend = field(default_factory=InitService)
    dns: DnsBackend | None = None
    logger_backend: Backend | None = None
    echo: Backend | None = None
    tester: Backend | None = None
    clock: Callable[[], int] = _default_clock
    current_dir: str = "/"
    command_history: list[str] = field(default_factory=list)

    def execute_command(self, command: str, args: Iterable[str]) -> ShellResponse:
        """Run one command without pipes."""
        args = list(args)
        first = args[0] if args else None
        logger.info("Shell: Executing internal command: %s with args: %r", command, args)
        match command:
            case "cd":
                if first is None:
                    return ShellError("cd: missing argument")
                return self.change_directory(first)
            case "ls":
                return self._list(first if first is not None else self.current_dir)
            case "ping":
                if first is None:
                    return ShellError("ping: missing hostname")
                return self._ping(first)
            case "start":
                if first is None:
                    return ShellError("start: missing service name")
                match _ask(self.init, ServiceStart(first)):
                    case InitSuccess(message=message):
                        return ShellSuccess(message)
                    case InitError(message=message):
                        return ShellError(f"start: {message}")
                return ShellError("start: Unexpected response from Init Service")
            case "logger":
                return ShellError(
                    "logger: Please use 'log' command with specific options "
                    "(e.g., 'log info \"message\"')")
            case "echo":
                return ShellError("echo: Please use 'echo' command (e.g., 'echo \"hello\"')")
            case "test":
                return ShellError(
                    "test: Please use 'test' command with specific options "
                    "(e.g., 'test echo \"message\"')")
        return CommandOutput(f"Command '{command}' not found.\n", "", EXIT_NOT_FOUND)

    def change_directory(self, path: str) -> ShellResponse:
        """Change the working directory; paths are not checked."""
        if path == "..":
            last_slash = self.current_dir.rfind("/")
            if last_slash == 0 and len(self.current_dir) > 1:
                self.current_dir = "/"
            elif last_slash > 0:
                self.current_dir = self.current_dir[:last_slash]
        elif path.startswith("/"):
            self.current_dir = path
        else:
            if not self.current_dir.endswith("/"):
                self.current_dir += "/"
            self.current_dir += path
        return ShellSuccess(f"Changed directory to {self.current_dir}")

    def handle_request(self, request: ShellRequest) -> ShellResponse:
        """Process one request and return its response."""
        match request:
            case ExecuteCommand(command=command, args=args):
                line = f"{command} {' '.join(args)}"
                self.command_history.append(line)
                if "|" in line:
                    return self._pipe(line)
                return self.execute_command(command, args)
            case ChangeDirectory(path=path):
                return self.change_directory(path)
            case GetCurrentDirectory():
                return CurrentDirectory(self.current_dir)
            case RunLoggerCommand(message=message, level=level):
                match _ask(self.logger_backend, LogMessage(message, level)):
                    case LoggerSuccess():
                        return LoggerResult(True)
                    case LoggerError(message=error):
                        return ShellError(f"logger error: {error}")
                return ShellError("logger: Unexpected response from Logger V-Node")
            case RunEchoCommand(message=message):
                match _ask(self.echo, EchoMessage(message)):
                    case EchoReply(message=reply):
                        return EchoResult(reply)
                    case EchoError(message=error):
                        return ShellError(f"echo error: {error}")
                return ShellError("echo: Unexpected response from Echo V-Node")
            case RunTestCommand(test_name=test_name, args=args):
                return self._run_test(test_name, list(args))
        raise TypeError(f"unsupported shell request: {request!r}")

    def serve(self, requests: Iterable[object]) -> Iterator[ShellResponse]:
        """Answer each request in turn, skipping anything that is not a request."""
        for request in requests:
            if not isinstance(request, _REQUEST_TYPES):
                logger.warning("Shell Service: Failed to decode request %r.", request)
                continue
            yield self.handle_request(request)

    def _pipe(self, line: str) -> ShellResponse:
        parts = line.split("|")
        if len(parts) != 2:
            return ShellError("shell: Only simple piping (cmd1 | cmd2) supported for now.")
        cmd1, args1 = parse_command_line(parts[0].strip())
        match self.execute_command(cmd1, args1):
            case CommandOutput(stdout=stdout):
                cmd2, args2 = parse_command_line(parts[1].strip())
                if stdout:
                    args2.insert(0, stdout.strip())
                return self.execute_command(cmd2, args2)
            case ShellError(message=message):
                return ShellError(f"Pipe error (cmd1): {message}")
        return ShellError("Pipe error: unexpected response from first command.")

    def _list(self, path: str) -> ShellResponse:
        match _ask(self.vfs, VfsList(path)):
            case VfsDirectoryEntries(entries=entries):
                return CommandOutput("".join(f"{name}\n" for name in entries), "", 0)
            case VfsError(message=message):
                return ShellError(f"ls: {message}")
        return ShellError("ls: Unexpected response from VFS")

    def _ping(self, hostname: str) -> ShellResponse:
        response = None
        if self.dns is not None:
            response = self.dns.handle_request(ResolveHostname(hostname), self.clock())
        match response:
            case ResolvedHostname(ip_address=ip):
                address = ".".join(str(part) for part in ip)
                return CommandOutput(f"Pinging {hostname} ({address})", "", 0)
            case DnsNotFound(query=query):
                return ShellError(f"ping: Host '{query}' not found.")
            case DnsError(message=message):
                return ShellError(f"ping: DNS error: {message}")
        return ShellError("ping: Unexpected response from DNS Resolver")

    def _run_test(self, test_name: str, args: list[str]) -> ShellResponse:
        message = args[0] if args else ""
        if test_name == "echo":
            request: object = RunEchoTest(message)
        elif test_name == "logger":
            request = RunLoggerTest(message, LogLevel.INFO)
        else:
            return ShellError(f"test: Unknown test '{test_name}'.")
        match _ask(self.tester, request):
            case TestEchoResult(reply=reply):
                return TestResult(f"Echo Test Reply: {reply}", "", True)
            case TestLoggerResult(success=success):
                return TestResult(
                    f"Logger Test Success: {str(success).lower()}", "", success)
            case TestError(message=error):
                return TestResult("", f"test error: {error}", False)
        return ShellError("test: Unexpected response from Test V-Node")