"""Asynchronous request pool: sends requests and hands each reply to a callback."""

from __future__ import annotations

import selectors
import threading
from dataclasses import dataclass
from typing import Any, Callable

from lsylar.log import logger_root, logger_system
from lsylar.net import DEFAULT_IP, IPv4Address, Socket
from lsylar.util import cur_time_us

DEFAULT_SERVER_IP = "192.168.43.110"
DEFAULT_SERVER_PORT = 7788
DEFAULT_BUFFER_SIZE = 4096

_POLL_INTERVAL = 0.1
_REPORT_EVERY = 1024

ResultCallback = Callable[[bytes, Any], Any]


@dataclass
class _Pending:
    sock: Socket
    callback: ResultCallback
    context: Any
    buffer_size: int


class RequestPool:
    """Sends requests to one server and delivers replies on a background thread."""

    def __init__(self, server_ip: str = DEFAULT_SERVER_IP,
                 server_port: int = DEFAULT_SERVER_PORT) -> None:
        self.server = IPv4Address(server_ip, server_port)
        self.completed = 0
        self._last_report_us = 0
        self._selector = selectors.DefaultSelector()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="reqpool", daemon=True)
        self._thread.start()
        logger_system.info(
            f"asynchronous request pool will send request to {server_ip}:{server_port}"
        )

    def __enter__(self) -> "RequestPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of requests still waiting for a reply."""
        with self._lock:
            if self._closed:
                return 0
            return len(self._selector.get_map())

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("request pool is closed")

    def commit(self, callback: ResultCallback, context: Any, payload: bytes,
               buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        """Send payload over a new TCP connection; the reply goes to callback(data, context)."""
        self._check_open()
        sock = Socket()
        sock.init_tcp(DEFAULT_IP, 0)
        try:
            sock.connect(self.server.ip, self.server.port)
            sock.send(payload)
        except OSError:
            logger_root.debug("cannot connect!")
            sock.close()
            raise
        self._watch(_Pending(sock, callback, context, buffer_size))

    def commit_udp(self, callback: ResultCallback, context: Any, payload: bytes,
                   buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        """Send payload as one UDP datagram; the reply goes to callback(data, context)."""
        self._check_open()
        sock = Socket(is_tcp=False)
        sock.init_udp(DEFAULT_IP, 0)
        sock.remote = IPv4Address(self.server.ip, self.server.port)
        try:
            sock.send(payload)
        except OSError:
            sock.close()
            raise
        self._watch(_Pending(sock, callback, context, buffer_size))

    def _watch(self, pending: _Pending) -> None:
        with self._lock:
            if self._closed:
                pending.sock.close()
                raise RuntimeError("request pool is closed")
            self._selector.register(pending.sock.fileno(), selectors.EVENT_READ, pending)

    def _finish(self, pending: _Pending) -> None:
        with self._lock:
            if not self._closed:
                try:
                    self._selector.unregister(pending.sock.fileno())
                except (KeyError, ValueError):
                    pass
        pending.sock.close()

    def _run(self) -> None:
        logger_root.debug("asynreq_callback")
        while not self._stop.is_set():
            events = self._selector.select(_POLL_INTERVAL)
            for key, _mask in events:
                pending: _Pending = key.data
                try:
                    data = pending.sock.recv(pending.buffer_size)
                except OSError:
                    logger_system.error("request socket cannot recv data")
                    self._finish(pending)
                    continue
                self._finish(pending)
                try:
                    pending.callback(data, pending.context)
                except Exception as exc:  # noqa: BLE001 - keep serving other replies
                    logger_system.error(f"result callback failed: {exc}")
                self._count()

    def _count(self) -> None:
        self.completed += 1
        if self.completed % _REPORT_EVERY == 0:
            now = cur_time_us()
            logger_root.debug(f"rcount = {self.completed} cost: {now - self._last_report_us}us")
            self._last_report_us = now

    def close(self) -> None:
        """Stop delivering replies and close every outstanding request."""
        if self._closed:
            return
        self._stop.set()
        self._thread.join()
        with self._lock:
            self._closed = True
            for key in list(self._selector.get_map().values()):
                key.data.sock.close()
            self._selector.close()