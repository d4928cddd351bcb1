"""Server toolkit: logging, configuration, timers, files, threads, fibers, scheduling and networking."""

__version__ = "0.1.0"