import io
from textwrap import dedent

import pytest
from rich.console import Console

from stackparse.parser import parse_text
from stackparse.render import STACKPARSE_THEME

LIBP2P_DUMP = """
goroutine 85751948 [semacquire, 25 minutes]:
sync.runtime_Semacquire(0xc099422a74)
	/usr/local/go/src/runtime/sema.go:56 +0x45
sync.(*WaitGroup).Wait(0xc099422a74)
	/usr/local/go/src/sync/waitgroup.go:130 +0x65
github.com/libp2p/go-libp2p-swarm.(*Swarm).notifyAll(0xc000783380, 0xc01a77d0c0)
	pkg/mod/github.com/libp2p/go-libp2p-swarm@v0.5.3/swarm.go:553 +0x13e
github.com/libp2p/go-libp2p-swarm.(*Conn).doClose.func1(0xc06f36f4d0)
	pkg/mod/github.com/libp2p/go-libp2p-swarm@v0.5.3/swarm_conn.go:84 +0xa7
created by github.com/libp2p/go-libp2p-swarm.(*Conn).doClose
	pkg/mod/github.com/libp2p/go-libp2p-swarm@v0.5.3/swarm_conn.go:79 +0x16a

"""

WORKERS_DUMP = dedent(
    """\
    goroutine 1 [running]:
    main.main()
    \t/app/main.go:10 +0x1d

    goroutine 7 [chan receive, 12 minutes]:
    main.worker(0xc000010000, 0x1)
    \t/app/worker.go:42 +0x5a
    created by main.startWorkers
    \t/app/worker.go:20 +0x3f

    goroutine 8 [chan receive, 3 minutes]:
    main.worker(0xc000010008, 0x2)
    \t/app/worker.go:42 +0x5a
    created by main.startWorkers
    \t/app/worker.go:20 +0x3f

    goroutine 9 [semacquire, 30 minutes, locked to thread]:
    sync.runtime_Semacquire(0xc0000a0010)
    \t/usr/local/go/src/runtime/sema.go:56 +0x45
    main.worker(0xc000010010, 0x3)
    \t/app/worker.go:48 +0x91
    created by main.startWorkers
    \t/app/worker.go:20 +0x3f

    goroutine 3 [select]:
    net/http.(*persistConn).writeLoop(0xc0001b4000)
    \t/usr/local/go/src/net/http/transport.go:2410 +0xf2
    """
)


@pytest.fixture
def workers():
    return parse_text(WORKERS_DUMP)


@pytest.fixture
def workers_by_number(workers):
    return {stack.number: stack for stack in workers}


@pytest.fixture
def make_console():
    def _make():
        buffer = io.StringIO()
        return Console(
            file=buffer, width=200, color_system=None, theme=STACKPARSE_THEME
        ), buffer

    return _make
