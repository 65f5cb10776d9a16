[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vnodekit"
version = "0.1.0"
description = "In-process message-driven system services: VFS, init, file manager, model runtime, sockets, DNS and shell"
requires-python = ">=3.10"
dependencies = []
keywords = ["services", "ipc", "vfs", "shell", "dns", "message-passing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Operating System",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vnodekit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
