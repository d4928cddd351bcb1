import socket
import threading

import pytest

from lsylar.reactor import (
    FD_ITEM_BLOCK_SIZE,
    FdItem,
    Reactor,
    recv_callback,
    send_callback,
)


@pytest.fixture
def reactor():
    r = Reactor()
    try:
        yield r
    finally:
        r.close()


def test_add_get_del_fd(reactor):
    item = reactor.add_fd(5)
    assert item.fd == 5
    assert reactor.get_fd_item(5) is item
    assert reactor.nfd == 1
    reactor.del_fd(5)
    assert reactor.nfd == 0
    with pytest.raises(KeyError):
        reactor.get_fd_item(5)


def test_blocks_grow_with_descriptor(reactor):
    assert reactor.block_count == 1
    reactor.add_fd(FD_ITEM_BLOCK_SIZE + 476)
    assert reactor.block_count == 2
    assert reactor.get_fd_item(FD_ITEM_BLOCK_SIZE + 476).fd == FD_ITEM_BLOCK_SIZE + 476


def test_unknown_fd_raises(reactor):
    with pytest.raises(KeyError):
        reactor.del_fd(5000)
    with pytest.raises(KeyError):
        reactor.get_fd_item(3)


def test_negative_fd_rejected(reactor):
    with pytest.raises(ValueError):
        reactor.add_fd(-1)


def test_default_item_callbacks(reactor):
    item = reactor.add_fd(9)
    assert item.recv_cb is recv_callback
    assert item.send_cb is send_callback
    assert item.sock_type == socket.SOCK_STREAM


def test_custom_item_factory():
    with Reactor(item_factory=lambda fd: FdItem(fd, sock_type=0)) as r:
        assert r.add_fd(3).sock_type == 0


def test_send_with_nothing_pending(reactor):
    reactor.add_fd(7)
    assert send_callback(reactor, 7) == 0


def test_recv_without_socket_raises(reactor):
    reactor.add_fd(8)
    with pytest.raises(ValueError):
        recv_callback(reactor, 8)


def test_tcp_echo(reactor):
    addr = reactor.add_listener("127.0.0.1", 0)
    assert addr.port > 0
    with socket.create_connection((addr.ip, addr.port), timeout=2) as client:
        assert reactor.poll_listen(2.0) == 1
        assert reactor.nfd == 2
        client.sendall(b"hello")
        assert reactor.poll_work(2.0) == 1
        assert reactor.poll_work(2.0) == 1
        assert client.recv(64) == b"hello"


def test_tcp_peer_close_drops_connection(reactor):
    addr = reactor.add_listener("127.0.0.1", 0)
    client = socket.create_connection((addr.ip, addr.port), timeout=2)
    assert reactor.poll_listen(2.0) == 1
    assert reactor.nfd == 2
    client.close()
    assert reactor.poll_work(2.0) == 1
    assert reactor.nfd == 1


def test_udp_echo(reactor):
    addr = reactor.add_udp_server("127.0.0.1", 0, recv_callback, send_callback)
    item_fds = [fd for fd in range(4096) if _known(reactor, fd)]
    assert len(item_fds) == 1
    assert reactor.get_fd_item(item_fds[0]).sock_type == socket.SOCK_DGRAM
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as client:
        client.settimeout(2)
        client.sendto(b"ping", (addr.ip, addr.port))
        assert reactor.poll_work(2.0) == 1
        assert reactor.poll_work(2.0) == 1
        data, _ = client.recvfrom(64)
        assert data == b"ping"


def _known(reactor, fd):
    try:
        reactor.get_fd_item(fd)
    except KeyError:
        return False
    return True


def test_loops_return_when_stopped(reactor):
    reactor.stop()
    reactor.listen_loop()
    reactor.work_loop()
    assert reactor.events_handled == 0


def test_loops_in_threads_echo(reactor):
    addr = reactor.add_listener("127.0.0.1", 0)
    threads = [
        threading.Thread(target=reactor.listen_loop, daemon=True),
        threading.Thread(target=reactor.work_loop, daemon=True),
    ]
    for t in threads:
        t.start()
    try:
        with socket.create_connection((addr.ip, addr.port), timeout=3) as client:
            client.sendall(b"abc")
            assert client.recv(64) == b"abc"
    finally:
        reactor.stop()
        for t in threads:
            t.join(3)
    assert not any(t.is_alive() for t in threads)