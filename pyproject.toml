[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lsylar"
version = "0.1.0"
description = "Server toolkit: logging, configuration, timers, fibers, a scheduler, sockets, a selector-based reactor and a request relay"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "logging",
    "configuration",
    "red-black tree",
    "timer",
    "fiber",
    "scheduler",
    "thread pool",
    "reactor",
    "socket",
    "server",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: System :: Networking",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
lsylar-graph = "lsylar.graph:main"
lsylar-rpcapi = "lsylar.rpcapi:main"

[tool.hatch.build.targets.wheel]
packages = ["lsylar"]

[tool.pytest.ini_options]
addopts = "-ra"
