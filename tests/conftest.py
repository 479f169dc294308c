"""Pytest configuration and shared fakes"""

import pytest

from termtile.pty.process import SpawnError, TerminalProcess
from termtile.pty.registry import SessionRegistry
from termtile.telemetry import metrics


class FakeProcess(TerminalProcess):
    """In-memory stand-in for a pty process"""

    def __init__(self, cwd, cols, rows, on_output, on_exit, echo=False):
        self.cwd = cwd
        self.cols = cols
        self.rows = rows
        self.on_output = on_output
        self.on_exit = on_exit
        self.written: list[bytes] = []
        self.resizes: list[tuple[int, int]] = []
        self.killed = False
        self.echo = echo

    @property
    def pid(self):
        return 4242

    def write(self, data: bytes) -> None:
        self.written.append(data)
        if self.echo:
            self.on_output(data)

    def resize(self, cols: int, rows: int) -> None:
        self.resizes.append((cols, rows))

    def kill(self) -> None:
        self.killed = True

    # test helpers
    def emit(self, data: bytes) -> None:
        self.on_output(data)

    def exit(self, status: int = 0) -> None:
        self.on_exit(status)


class FakeFactory:
    """ProcessFactory recording every spawned FakeProcess"""

    def __init__(self):
        self.spawned: list[FakeProcess] = []
        self.fail = False
        self.echo = False

    def __call__(self, cwd, cols, rows, on_output, on_exit):
        if self.fail:
            raise SpawnError("no such shell")
        process = FakeProcess(cwd, cols, rows, on_output, on_exit, echo=self.echo)
        self.spawned.append(process)
        return process


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingEndpoint:
    """Endpoint that records what the registry sends"""

    def __init__(self):
        self.sent: list[bytes] = []
        self.closed: list = []

    def send(self, data: bytes) -> None:
        self.sent.append(data)

    def close(self, code) -> None:
        self.closed.append(code)

    @property
    def output(self) -> bytes:
        return b"".join(self.sent)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(factory, clock):
    return SessionRegistry(
        default_cwd="/work",
        process_factory=factory,
        orphan_timeout=300.0,
        scrollback_bytes=64,
        clock=clock,
    )


@pytest.fixture
def make_endpoint():
    return RecordingEndpoint
