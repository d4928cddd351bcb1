# lsylar

A small toolkit for writing network servers. It bundles:

- `lsylar.log`: a pattern-driven logger with levels, formatters and appenders
- `lsylar.config`: a registry of named configuration variables
- `lsylar.util`: time helpers, backtraces, `tt_assert`, `timed` and `ErrHandler`
- `lsylar.rbtree` and `lsylar.timer`: a red-black tree and the millisecond
  timer manager built on it
- `lsylar.graph`: a small weighted sample graph and a depth-first path walk
- `lsylar.files`: path splitting, file status, file entries and `mkdirs`
- `lsylar.sync`: `Mutex`, `ScopedLock`, `Semaphore`, named `Thread`s and a
  `ThreadPool`
- `lsylar.fiber` and `lsylar.scheduler`: cooperative fibers and a scheduler
  that runs fibers and callables on a set of threads
- `lsylar.net`: `IPv4Address` and a TCP/UDP `Socket` wrapper
- `lsylar.reactor`: a readiness-driven reactor (built on `selectors`) with
  echo callbacks
- `lsylar.reqpool`: a `RequestPool` that sends a request and hands the reply
  to a callback on a background thread
- `lsylar.rpcapi`: `ServerRpcApi`, which forwards what clients send through a
  request pool and relays the processed reply back

No third-party libraries are needed.

## Installation

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Logging

```python
from lsylar.log import Logger

logger = Logger("ROOT")
logger.debug("starting up")
logger.info("listening")
logger.error("something went wrong")

with logger.event(LogLevel.DEBUG) as event:   # from lsylar.log import LogLevel
    event.write("value = ").write(42)
```

A `Formatter` turns an `Event` into text from a pattern of `/`-separated
items: `/l` (level), `/lm` (logger name), `/m` (message, padded to a multiple
of 56 columns), `/ln` (line), `/fn` (file name), `/func` (function), `/tab`,
`/sp`, `/nl` and `/s{text}` for literal text. `Logger.add_appender` attaches
a `StdoutAppender` or a `FileAppender`; an appender receives an event only if
its level is at or below the appender's level (`FATAL` is 0, `DEBUG` is 4).
With no appender attached, records go to standard output. `logger_system`
and `logger_root` are ready-made loggers.

## Configuration

```python
from lsylar.config import Config

port = Config.lookup("port", 8080, "ipv4 port")
print(port.to_string())      # "8080"
port.from_string("9090")     # parsed with the type of the current value
```

Looking up a name that already exists returns the variable registered first.
`ConfigVar.set_value` calls an optional change callback with the old and new
values. `Config.clear` empties the registry.

## Timers

```python
from lsylar.timer import TimerManager, handle_timer

manager = TimerManager()
manager.add(1000, lambda: print("fired"))
earliest = manager.minimum()
handle_timer(earliest)       # sleeps until due, then runs the callback
manager.remove(earliest)
```

Timer keys are compared with 32-bit wrap-around, as `insert_timer_value` in
`lsylar.rbtree` does. `RBTree` can also be used on its own with
`insert_value` ordering; it supports `insert`, `delete`, `minimum`, `next`
and in-order iteration.

## Files

`Path` resolves a path against the working directory and splits it into
`dirs`; `FileData` holds a path's status (`exists`, `is_dir`, `is_reg`,
`size`); `Entry` opens a file in binary mode for positioned `read`/`write`
with `tell`/`seek`. `mkdirs` creates every missing directory along a path.

## Threads, fibers and the scheduler

```python
from lsylar.fiber import Fiber, yield_to_ready

def work():
    print("in fiber")
    yield_to_ready()

fiber = Fiber(work)
fiber.swap_in()              # returns when the fiber yields
fiber.swap_in()              # resumes it until it ends
```

`Scheduler.schedule` queues a fiber or a callable (optionally for one thread
id), `Scheduler.schedule_all` queues several, `Scheduler.start` brings up the
worker threads and `Scheduler.stop` runs the queue to completion and joins
them. `ThreadPool.add_task` returns a `concurrent.futures.Future` with the
task's result.

## Networking

`Socket.init_tcp` and `Socket.init_udp` create a socket and bind it unless
the port is zero; `connect`, `send`, `recv`, `listen` and `accept` do the
rest. Failures are reported through the socket's `ErrHandler` and raised as
`OSError`.

A `Reactor` keeps `FdItem`s in blocks of 1024 descriptors.
`Reactor.add_listener` and `Reactor.add_udp_server` register sockets and
return the address actually bound; `poll_listen` and `poll_work` serve one
round of events, while `listen_loop` and `work_loop` run until
`Reactor.stop`. The default callbacks (`accept_callback`, `recv_callback`,
`send_callback`) make an echo server.

`RequestPool.commit` (TCP) and `RequestPool.commit_udp` send a payload to the
pool's server and call `callback(reply, context)` when the reply arrives.

## Commands

Print the sample weighted graph, every path walked from point 5 that covers
all points, and their count:

```
lsylar-graph
```

Start the RPC API server. It listens on `--listen-count` TCP ports starting at
`--listen-port` on `--listen-ip`, and on UDP port `--req-port - 1` at
`--req-ip`; each request is forwarded by UDP to `--req-ip:--req-port`, and the
reply, with a fixed marker appended, is sent back to the client:

```
lsylar-rpcapi --listen-ip 127.0.0.1 --listen-port 9900 --listen-count 10 \
              --req-ip 127.0.0.1 --req-port 9999
```

The defaults use the address 192.168.90.1, which must exist on the host.

## What it does not do

The package contains no backend server for `lsylar-rpcapi` to forward to;
something must already be answering UDP requests at `--req-ip:--req-port`,
or clients never get a reply.