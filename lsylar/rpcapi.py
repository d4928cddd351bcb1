"""RPC front server: forwards each client request to a backend and relays the reply."""

from __future__ import annotations

import argparse
import selectors
import threading
from typing import Any, Optional, Sequence

from lsylar.log import logger_system
from lsylar.net import IPv4Address
from lsylar.reactor import (
    SR_BUFFER_LEN,
    FdItem,
    Reactor,
    accept_callback,
    send_callback,
)
from lsylar.reqpool import RequestPool

LOCAL_IP = "192.168.90.1"
LISTEN_IP = LOCAL_IP
LISTEN_PORT_START = 9900
LISTEN_PORT_NUM = 10
REQ_IP = LOCAL_IP
REQ_PORT = 9999
CONNECT_MAX = 1024 * 1024

REPLY_SUFFIX = b" >>> after compute in pw server and parser in cb"

_CLOSE_WAIT = 5.0


class _RpcReactor(Reactor):
    def __init__(self) -> None:
        super().__init__(item_factory=_rpc_item)
        self.request_pool: Optional[RequestPool] = None


def _rpc_item(fd: int) -> FdItem:
    return FdItem(
        fd=fd,
        sock_type=0,
        recv_cb=rpcapi_recv_callback,
        send_cb=send_callback,
        accept_cb=accept_callback,
    )


def _drop(reactor: Reactor, fd: int) -> None:
    try:
        reactor.work_selector.unregister(fd)
    except (KeyError, ValueError):
        pass
    try:
        item = reactor.get_fd_item(fd)
    except KeyError:
        return
    if item.sock is not None:
        item.sock.close()
    reactor.del_fd(fd)


def reqpool_parser_callback(data: bytes, context: tuple[Reactor, int]) -> Optional[bytes]:
    """Mark a backend reply and queue it for the client at (reactor, fd); returns the reply."""
    reactor, fd = context
    reply = bytes(data) + REPLY_SUFFIX
    try:
        item = reactor.get_fd_item(fd)
    except KeyError:
        logger_system.error(f"no client for reply, sock = {fd}")
        return None
    item.sbuffer = reply
    try:
        reactor.work_selector.modify(fd, selectors.EVENT_WRITE)
    except (KeyError, ValueError, OSError) as exc:
        logger_system.error(f"cannot watch sock = {fd} for sending: {exc}")
        return None
    return reply


def _forward(reactor: Reactor, fd: int) -> int:
    item = reactor.get_fd_item(fd)
    if item.sock is None:
        raise ValueError(f"fd {fd} has no socket")
    try:
        data = item.sock.recv(SR_BUFFER_LEN)
    except OSError as exc:
        logger_system.error(f"cannot recv err_desc: {exc}")
        data = b""
    if not data:
        _drop(reactor, fd)
        return 0
    item.rbuffer = data
    pool: Any = getattr(reactor, "request_pool", None)
    if pool is None:
        logger_system.error("no request pool to forward to")
        return 0
    try:
        pool.commit_udp(reqpool_parser_callback, (reactor, fd), data, SR_BUFFER_LEN)
    except (OSError, RuntimeError) as exc:
        logger_system.error(f"cannot forward request: {exc}")
        return 0
    return len(data)


def rpcapi_recv_callback(reactor: Reactor, fd: int) -> int:
    """Read a TCP client request and forward it; returns bytes read, 0 when nothing went out."""
    return _forward(reactor, fd)


def udp_recv_callback(reactor: Reactor, fd: int) -> int:
    """Read a UDP client datagram and forward it; returns bytes read, 0 when nothing went out."""
    return _forward(reactor, fd)


def udp_send_callback(reactor: Reactor, fd: int) -> int:
    """Send the pending reply to the last UDP sender; returns bytes sent."""
    return send_callback(reactor, fd)


class ServerRpcApi:
    """Accepts clients on TCP and UDP and relays their requests through a request pool."""

    def __init__(self, listen_ip: str = LISTEN_IP, listen_port_start: int = LISTEN_PORT_START,
                 listen_port_num: int = LISTEN_PORT_NUM, req_ip: str = REQ_IP,
                 req_port: int = REQ_PORT, udp_ip: str = REQ_IP,
                 udp_port: Optional[int] = None) -> None:
        self.listen_ip = listen_ip
        self.listen_port_start = listen_port_start
        self.listen_port_num = listen_port_num
        self.req_ip = req_ip
        self.req_port = req_port
        self.udp_ip = udp_ip
        self.udp_port = req_port - 1 if udp_port is None else udp_port
        self.reactor: Optional[_RpcReactor] = None
        self.listen_addresses: list[IPv4Address] = []
        self.udp_address: Optional[IPv4Address] = None
        self.ready = threading.Event()
        self._finished = threading.Event()
        self._finished.set()
        self._pool: Optional[RequestPool] = None
        self.init()

    def __enter__(self) -> "ServerRpcApi":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def request_pool(self) -> RequestPool:
        """The pool that forwards requests, created on first use."""
        if self._pool is None:
            self._pool = RequestPool(self.req_ip, self.req_port)
            logger_system.info(f"reqpool: {self.req_ip}:{self.req_port}")
        if self.reactor is not None:
            self.reactor.request_pool = self._pool
        return self._pool

    def init(self) -> None:
        """Create a fresh reactor, closing any previous one."""
        if self.reactor is not None:
            self.reactor.close()
            self.reactor = None
        self.reactor = _RpcReactor()
        self.reactor.request_pool = self._pool
        logger_system.info("Server RpcApi init complete")

    def run(self) -> None:
        """Open the listeners and the UDP server, then serve until closed."""
        reactor = self.reactor
        if reactor is None:
            raise RuntimeError("server is closed")
        logger_system.info("Server RpcApi start !")
        self._finished.clear()
        try:
            self.request_pool()
            self.listen_addresses = [
                reactor.add_listener(
                    self.listen_ip,
                    self.listen_port_start + i if self.listen_port_start else 0,
                )
                for i in range(self.listen_port_num)
            ]
            self.udp_address = reactor.add_udp_server(
                self.udp_ip, self.udp_port, udp_recv_callback, udp_send_callback
            )
            listen_thread = threading.Thread(target=reactor.listen_loop, name="rpcapi-listen",
                                             daemon=True)
            work_thread = threading.Thread(target=reactor.work_loop, name="rpcapi-work",
                                           daemon=True)
            listen_thread.start()
            work_thread.start()
            self.ready.set()
            listen_thread.join()
            work_thread.join()
        finally:
            self.ready.clear()
            self._finished.set()

    def close(self) -> None:
        """Stop serving and release the reactor and the request pool."""
        reactor, self.reactor = self.reactor, None
        if reactor is not None:
            reactor.stop()
            self._finished.wait(_CLOSE_WAIT)
            reactor.close()
        if self._pool is not None:
            self._pool.close()
            self._pool = None
        logger_system.info("Server RpcApi stop !")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the RPC front server until interrupted."""
    parser = argparse.ArgumentParser(prog="lsylar-rpcapi",
                                     description="Relay client requests to a backend server.")
    parser.add_argument("--listen-ip", default=LISTEN_IP)
    parser.add_argument("--listen-port", type=int, default=LISTEN_PORT_START)
    parser.add_argument("--listen-count", type=int, default=LISTEN_PORT_NUM)
    parser.add_argument("--req-ip", default=REQ_IP)
    parser.add_argument("--req-port", type=int, default=REQ_PORT)
    args = parser.parse_args(argv)

    api = ServerRpcApi(
        listen_ip=args.listen_ip,
        listen_port_start=args.listen_port,
        listen_port_num=args.listen_count,
        req_ip=args.req_ip,
        req_port=args.req_port,
        udp_ip=args.req_ip,
    )
    try:
        api.request_pool()
        api.run()
    except KeyboardInterrupt:
        pass
    finally:
        api.close()
    return 0