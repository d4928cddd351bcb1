"""IPv4 addresses and a TCP/UDP socket wrapper with error reporting."""

from __future__ import annotations

import errno
import socket as _socket
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from lsylar.log import logger_system
from lsylar.util import ErrHandler

DEFAULT_IP = "0.0.0.0"
DEFAULT_PORT = 7788
DEFAULT_RECONNECT_MS = 6000
_RECONNECT_PAUSE_S = 0.01


@dataclass
class IPv4Address:
    """An IPv4 host and port."""

    ip: str = DEFAULT_IP
    port: int = 0

    def to_sockaddr(self) -> tuple[str, int]:
        return (self.ip, self.port)

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple) -> "IPv4Address":
        return cls(str(sockaddr[0]), int(sockaddr[1]))

    def to_string(self) -> str:
        return f'[IPv4Address]\nip   = "{self.ip}"\nport = {self.port}\n'

    def __str__(self) -> str:
        return self.to_string()

    def dump(self) -> str:
        """Print the address description and return it."""
        text = self.to_string()
        print(text)
        return text


class Socket:
    """A TCP or UDP socket that reports failures through an error handler and raises."""

    def __init__(self, fd: Optional[int] = None, is_tcp: bool = True) -> None:
        self.is_tcp = is_tcp
        self._sock: Optional[_socket.socket] = None
        self.local: Optional[IPv4Address] = None
        self.remote: Optional[IPv4Address] = None if is_tcp else IPv4Address()
        self.error_handler = ErrHandler(self)
        if fd:
            self._sock = _socket.socket(fileno=fd)

    def __enter__(self) -> "Socket":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        kind = "tcp" if self.is_tcp else "udp"
        return f"Socket(fd={self.fileno()}, {kind})"

    def _require(self) -> _socket.socket:
        if self._sock is None:
            raise OSError(errno.EBADF, "socket is not created")
        return self._sock

    def _report(self, action: str, exc: BaseException,
                on_error: Optional[Callable[[], None]] = None) -> None:
        reason = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
        desc = f"[ERROR]  {action} > sock_fd = {self.fileno()}  {reason}"
        self.error_handler.handle_error(desc, on_error, on_error is not None)

    def init_tcp(self, ip: str = DEFAULT_IP, port: int = DEFAULT_PORT) -> None:
        """Create a fresh TCP socket, binding it to ip:port unless port is zero."""
        self.close()
        self.is_tcp = True
        self.error_handler = ErrHandler(self)
        self.local = IPv4Address(ip, port)
        self.create()
        if port != 0:
            self.bind(ip, port)

    def init_udp(self, ip: str = DEFAULT_IP, port: int = DEFAULT_PORT) -> None:
        """Create a fresh UDP socket, binding it to ip:port unless port is zero."""
        self.close()
        self.is_tcp = False
        self.error_handler = ErrHandler(self)
        self.local = IPv4Address(ip, port)
        if self.remote is None:
            self.remote = IPv4Address()
        self.create()
        if port != 0:
            self.bind(ip, port)

    def create(self) -> None:
        """Open the underlying blocking socket of this socket's kind."""
        kind = _socket.SOCK_STREAM if self.is_tcp else _socket.SOCK_DGRAM
        try:
            sock = _socket.socket(_socket.AF_INET, kind)
        except OSError as exc:
            self._report("socket", exc)
            raise
        sock.setblocking(True)
        if self.is_tcp:
            sock.setsockopt(_socket.SOL_SOCKET, _socket.SO_REUSEADDR, 1)
            if hasattr(_socket, "SO_REUSEPORT"):
                try:
                    sock.setsockopt(_socket.SOL_SOCKET, _socket.SO_REUSEPORT, 1)
                except OSError:
                    pass
        self._sock = sock

    def close(self) -> None:
        """Close the socket; closing one that is not open does nothing."""
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            self._report("close", exc)
            raise

    def fileno(self) -> int:
        """The descriptor of the socket, or -1 when none is open."""
        return self._sock.fileno() if self._sock is not None else -1

    def detach(self) -> int:
        """Give up ownership of the descriptor without closing it and return it."""
        sock, self._sock = self._sock, None
        return sock.detach() if sock is not None else -1

    def bind(self, ip: str = "", port: int = 0) -> None:
        self.bind_address(IPv4Address(ip, port))

    def bind_address(self, address: IPv4Address) -> None:
        """Bind to address; the local address then holds the port actually bound."""
        sock = self._require()
        try:
            sock.bind(address.to_sockaddr())
        except OSError as exc:
            logger_system.error(f"bind sock = {self.fileno()}")
            self._report("bind", exc)
            raise
        self.local = IPv4Address.from_sockaddr(sock.getsockname())

    def listen(self, backlog: int = _socket.SOMAXCONN) -> None:
        sock = self._require()
        try:
            sock.listen(backlog)
        except OSError as exc:
            self._report("listen", exc)
            raise

    def accept(self) -> "Socket":
        """Wait for a connection and return a socket for it."""
        sock = self._require()
        try:
            conn, peer = sock.accept()
        except OSError as exc:
            self._report("accept", exc)
            raise
        conn.setblocking(True)
        client = Socket(is_tcp=True)
        client._sock = conn
        client.remote = IPv4Address.from_sockaddr(peer)
        client.local = IPv4Address.from_sockaddr(conn.getsockname())
        logger_system.debug(f"client sock = {client.fileno()}")
        return client

    def connect(self, ip: str, port: int) -> None:
        address = IPv4Address(ip, port)
        self.remote = address
        self.connect_address(address)

    def connect_address(self, address: IPv4Address) -> None:
        sock = self._require()
        try:
            sock.connect(address.to_sockaddr())
        except OSError as exc:
            self._report("connect", exc, self.dump_remote)
            raise
        self.remote = address

    def reconnect(self, timeout_ms: int = DEFAULT_RECONNECT_MS) -> None:
        """Retry connecting to the remote address until it works or timeout_ms passes."""
        if self.remote is None:
            raise ValueError("no remote address to reconnect to")
        deadline = time.monotonic() + timeout_ms / 1000
        last_error: Optional[OSError] = None
        while True:
            try:
                self.connect_address(self.remote)
            except OSError as exc:
                last_error = exc
            else:
                logger_system.info("reconnect success")
                return
            if time.monotonic() >= deadline:
                break
            time.sleep(_RECONNECT_PAUSE_S)
        logger_system.error("cannot reconnect")
        raise last_error if last_error is not None else OSError(errno.ETIMEDOUT, "reconnect timed out")

    def send(self, data: Union[bytes, bytearray, memoryview, str],
             address: Optional[IPv4Address] = None) -> int:
        """Send data, to address if given (it becomes the remote); returns bytes sent."""
        sock = self._require()
        if address is not None:
            self.remote = address
        if isinstance(data, str):
            data = data.encode()
        try:
            if self.is_tcp:
                return sock.send(data)
            if self.remote is None:
                raise OSError(errno.EDESTADDRREQ, "no remote address")
            return sock.sendto(data, self.remote.to_sockaddr())
        except OSError as exc:
            self._report("send", exc,
                         lambda: logger_system.error(f"sock = {self.fileno()}"))
            raise

    def recv(self, size: int, address: Optional[IPv4Address] = None) -> bytes:
        """Receive up to size bytes; for UDP the sender is stored in the remote address."""
        sock = self._require()
        if address is not None:
            self.remote = address
        try:
            if self.is_tcp:
                return sock.recv(size)
            data, peer = sock.recvfrom(size)
        except OSError as exc:
            logger_system.debug(f"sock = {self.fileno()}")
            self._report("recv", exc)
            raise
        if self.remote is None:
            self.remote = IPv4Address()
        self.remote.ip, self.remote.port = str(peer[0]), int(peer[1])
        return data

    def dump_remote(self) -> Optional[str]:
        if self.remote is None:
            logger_system.info("remote address is not set")
            return None
        return self.remote.dump()

    def dump_local(self) -> Optional[str]:
        if self.local is None:
            logger_system.info("local address is not set")
            return None
        return self.local.dump()