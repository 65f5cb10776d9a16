"""Message-driven system services: VFS, init, file manager, model runtime, sockets, DNS and shell."""

__version__ = "0.1.0"

__all__ = [
    "vfs",
    "init_service",
    "file_manager",
    "model_runtime",
    "socket_api",
    "dns_resolver",
    "shell",
]