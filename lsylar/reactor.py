"""Readiness-driven reactor: accepts TCP connections and echoes TCP/UDP traffic."""

from __future__ import annotations

import selectors
import socket as _socket
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from lsylar.log import logger_root, logger_system
from lsylar.net import IPv4Address, Socket

SR_BUFFER_LEN = 512
FD_ITEM_BLOCK_SIZE = 1024
EPOLL_WORK_EVENT_SIZE = 1024
EPOLL_LISTEN_EVENT_SIZE = 1024
LISTEN_BACKLOG = 1024 * 1024

PW_SERVER_IP = "192.168.90.1"
PW_SERVER_PORT = 8888

_POLL_INTERVAL = 0.1
_REPORT_EVERY = 1024

EventCallback = Callable[["Reactor", int], Any]


@dataclass
class FdItem:
    """Per-descriptor state: its socket, callbacks and last received/pending data."""

    fd: int
    sock_type: int = _socket.SOCK_STREAM
    recv_cb: Optional[EventCallback] = None
    send_cb: Optional[EventCallback] = None
    accept_cb: Optional[EventCallback] = None
    sbuffer: bytes = b""
    rbuffer: bytes = b""
    sock: Optional[Socket] = None


class Reactor:
    """Keeps descriptors in fixed-size blocks and dispatches their readiness events."""

    def __init__(self, item_factory: Optional[Callable[[int], FdItem]] = None) -> None:
        self._item_factory = item_factory or _default_item
        self.listen_selector = selectors.DefaultSelector()
        self.work_selector = selectors.DefaultSelector()
        self._blocks: list[list[Optional[FdItem]]] = [self._new_block()]
        self.nfd = 0
        self.events_handled = 0
        self._stop = threading.Event()
        self._lock = threading.RLock()
        self._closed = False

    def __enter__(self) -> "Reactor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _new_block() -> list[Optional[FdItem]]:
        logger_system.debug("alloc block")
        return [None] * FD_ITEM_BLOCK_SIZE

    @property
    def block_count(self) -> int:
        return len(self._blocks)

    def add_fd(self, fd: int) -> FdItem:
        """Create the item for fd, allocating blocks as needed, and return it."""
        if fd < 0:
            raise ValueError(f"invalid descriptor: {fd}")
        index, offset = divmod(fd, FD_ITEM_BLOCK_SIZE)
        with self._lock:
            if offset == 0:
                logger_system.debug(f"Connection over {self.nfd} fd = {fd}")
            while len(self._blocks) <= index:
                logger_system.info("add one block")
                self._blocks.append(self._new_block())
            item = self._item_factory(fd)
            item.fd = fd
            block = self._blocks[index]
            if block[offset] is None:
                self.nfd += 1
            block[offset] = item
            return item

    def _slot(self, fd: int) -> tuple[list[Optional[FdItem]], int]:
        index, offset = divmod(fd, FD_ITEM_BLOCK_SIZE)
        if fd < 0 or index >= len(self._blocks) or self._blocks[index][offset] is None:
            raise KeyError(fd)
        return self._blocks[index], offset

    def del_fd(self, fd: int) -> None:
        """Forget fd; raises KeyError if it is not known."""
        with self._lock:
            block, offset = self._slot(fd)
            block[offset] = None
            self.nfd -= 1

    def get_fd_item(self, fd: int) -> FdItem:
        """The item of fd; raises KeyError if it is not known."""
        with self._lock:
            block, offset = self._slot(fd)
            item = block[offset]
            assert item is not None
            return item

    def add_listener(self, ip: str, port: int) -> IPv4Address:
        """Listen for TCP connections on ip:port; returns the address actually bound."""
        logger_root.debug(f"add listener ip: {ip}, listen_port: {port}")
        sock = Socket()
        sock.init_tcp(ip, 0)
        try:
            sock.bind(ip, port)
            sock.listen(LISTEN_BACKLOG)
        except OSError:
            sock.close()
            raise
        fd = sock.fileno()
        item = self.add_fd(fd)
        item.sock = sock
        item.sock_type = _socket.SOCK_STREAM
        self.listen_selector.register(fd, selectors.EVENT_READ)
        assert sock.local is not None
        return sock.local

    def add_udp_server(self, ip: str, port: int,
                       recv_cb: EventCallback, send_cb: EventCallback) -> IPv4Address:
        """Serve UDP on ip:port with the given callbacks; returns the address bound."""
        sock = Socket(is_tcp=False)
        sock.init_udp(ip, 0)
        try:
            sock.bind(ip, port)
        except OSError:
            sock.close()
            raise
        fd = sock.fileno()
        item = self.add_fd(fd)
        item.sock = sock
        item.sock_type = _socket.SOCK_DGRAM
        item.recv_cb = recv_cb
        item.send_cb = send_cb
        self.work_selector.register(fd, selectors.EVENT_READ)
        logger_system.info(f"add udp server: {ip} {port}")
        assert sock.local is not None
        return sock.local

    def _count(self, n_ready: int) -> None:
        if n_ready:
            self.events_handled += n_ready
            if self.events_handled % _REPORT_EVERY == 0:
                logger_root.debug(f"rcount = {self.events_handled}")

    def poll_listen(self, timeout: Optional[float] = None) -> int:
        """Wait once for pending connections and accept them; returns the event count."""
        events = self.listen_selector.select(timeout)
        for key, _mask in events:
            try:
                item = self.get_fd_item(key.fd)
            except KeyError:
                continue
            if item.accept_cb is not None:
                item.accept_cb(self, key.fd)
        return len(events)

    def poll_work(self, timeout: Optional[float] = None) -> int:
        """Wait once for readable/writable connections and serve them; returns the event count."""
        events = self.work_selector.select(timeout)
        for key, mask in events:
            fd = key.fd
            if mask & selectors.EVENT_READ:
                try:
                    item = self.get_fd_item(fd)
                except KeyError:
                    continue
                if item.recv_cb is not None:
                    item.recv_cb(self, fd)
            if mask & selectors.EVENT_WRITE:
                try:
                    item = self.get_fd_item(fd)
                except KeyError:
                    continue
                if item.send_cb is not None:
                    item.send_cb(self, fd)
        self._count(len(events))
        return len(events)

    def listen_loop(self) -> None:
        """Accept connections until stop() is called."""
        logger_system.info("listen loop start")
        while not self._stop.is_set() and not self._closed:
            self.poll_listen(_POLL_INTERVAL)

    def work_loop(self) -> None:
        """Serve connections until stop() is called."""
        logger_system.info("work loop start")
        while not self._stop.is_set() and not self._closed:
            self.poll_work(_POLL_INTERVAL)

    def stop(self) -> None:
        self._stop.set()

    def close(self) -> None:
        """Stop the loops, close every socket and release all blocks."""
        self.stop()
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for block in self._blocks:
                for item in block:
                    if item is not None and item.sock is not None:
                        item.sock.close()
            self._blocks = []
            self.nfd = 0
        self.listen_selector.close()
        self.work_selector.close()

    def _watch(self, fd: int, writable: bool) -> None:
        events = selectors.EVENT_WRITE if writable else selectors.EVENT_READ
        self.work_selector.modify(fd, events)

    def _drop(self, fd: int) -> None:
        for selector in (self.work_selector, self.listen_selector):
            try:
                selector.unregister(fd)
            except (KeyError, ValueError):
                pass
        with self._lock:
            try:
                item = self.get_fd_item(fd)
            except KeyError:
                return
            if item.sock is not None:
                item.sock.close()
            self.del_fd(fd)


def _socket_of(item: FdItem) -> Socket:
    if item.sock is None:
        raise ValueError(f"fd {item.fd} has no socket")
    return item.sock


def accept_callback(reactor: Reactor, fd: int) -> Optional[int]:
    """Accept one connection on listener fd and watch it; returns the new descriptor."""
    item = reactor.get_fd_item(fd)
    listener = _socket_of(item)
    try:
        client = listener.accept()
    except OSError:
        logger_system.error("cannot accept")
        reactor._drop(fd)
        return None
    client_fd = client.fileno()
    client_item = reactor.add_fd(client_fd)
    client_item.sock = client
    reactor.work_selector.register(client_fd, selectors.EVENT_READ)
    return client_fd


def recv_callback(reactor: Reactor, fd: int) -> int:
    """Read from fd and queue the data to be echoed; returns bytes read, 0 when dropped."""
    item = reactor.get_fd_item(fd)
    sock = _socket_of(item)
    try:
        data = sock.recv(SR_BUFFER_LEN)
    except OSError as exc:
        logger_system.error(f"cannot recv err_desc: {exc}")
        data = b""
    if not data:
        reactor._drop(fd)
        return 0
    item.rbuffer = data
    item.sbuffer = data
    reactor._watch(fd, writable=True)
    return len(data)


def send_callback(reactor: Reactor, fd: int) -> int:
    """Send the pending data of fd and go back to reading; returns bytes sent."""
    item = reactor.get_fd_item(fd)
    if not item.sbuffer:
        return 0
    sock = _socket_of(item)
    try:
        sent = sock.send(item.sbuffer)
    except OSError:
        sent = 0
    if sent <= 0:
        reactor._drop(fd)
        return 0
    item.sbuffer = b""
    reactor._watch(fd, writable=False)
    return sent


def _default_item(fd: int) -> FdItem:
    return FdItem(
        fd=fd,
        recv_cb=recv_callback,
        send_cb=send_callback,
        accept_cb=accept_callback,
    )