"""Pty process adapter

Spawns a shell attached to a pseudo-terminal and exposes the four things
the session registry needs: an output callback, write, resize and an exit
callback. Output is read on the event loop through ``loop.add_reader`` so
no thread is held per session.
"""

import asyncio
import os
import signal
import struct
from abc import ABC, abstractmethod
from typing import Callable

from ptyprocess import PtyProcess, PtyProcessError

from .. import config
from ..telemetry import get_logger

logger = get_logger(__name__)

OutputCallback = Callable[[bytes], None]
ExitCallback = Callable[[int | None], None]


class SpawnError(RuntimeError):
    """The shell could not be started (missing program, bad cwd, permissions)."""


class TerminalProcess(ABC):
    """A live process attached to a pty.

    Implementations deliver output through the ``on_output`` callback and
    report termination once through ``on_exit``.
    """

    @property
    @abstractmethod
    def pid(self) -> int | None:
        """OS process id, if known"""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write terminal input; silently ignored after exit."""

    @abstractmethod
    def resize(self, cols: int, rows: int) -> None:
        """Change the pty window size."""

    @abstractmethod
    def kill(self) -> None:
        """Terminate without waiting; must not raise if already exited."""


ProcessFactory = Callable[[str, int, int, OutputCallback, ExitCallback], TerminalProcess]


class ShellProcess(TerminalProcess):
    """Shell running under ``ptyprocess``"""

    def __init__(
        self,
        cwd: str,
        cols: int,
        rows: int,
        on_output: OutputCallback,
        on_exit: ExitCallback,
        argv: list[str] | None = None,
    ):
        self.cwd = cwd
        self.argv = argv or [config.SHELL]
        self._cols = cols
        self._rows = rows
        self._on_output = on_output
        self._on_exit = on_exit
        self._proc: PtyProcess | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._reading = False
        self._exited = False

    def start(self) -> None:
        """Spawn the process and start reading its output.

        Raises:
            SpawnError: the process could not be created.
        """
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SpawnError("no running event loop") from e

        env = dict(os.environ)
        env["TERM"] = config.TERM_NAME
        try:
            self._proc = PtyProcess.spawn(
                self.argv,
                cwd=self.cwd,
                env=env,
                dimensions=(self._rows, self._cols),
            )
        except (OSError, PtyProcessError) as e:
            raise SpawnError(f"failed to spawn {self.argv[0]} in {self.cwd}: {e}") from e

        self._loop.add_reader(self._proc.fd, self._on_readable)
        self._reading = True
        logger.debug(f"[Pty] Spawned {self.argv[0]} pid={self._proc.pid} cwd={self.cwd}")

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    def _on_readable(self) -> None:
        try:
            data = self._proc.read(config.READ_CHUNK_SIZE)
        except EOFError:
            self._handle_eof()
            return
        except OSError as e:
            logger.debug(f"[Pty] Read failed pid={self.pid}: {e}")
            self._handle_eof()
            return
        if data:
            self._on_output(data)

    def _handle_eof(self) -> None:
        self._stop_reading()
        if self._exited:
            return
        self._exited = True
        status = None
        try:
            if not self._proc.isalive():
                status = self._proc.exitstatus
        except PtyProcessError:
            pass
        logger.debug(f"[Pty] Process exited pid={self.pid} status={status}")
        self._schedule_reap()
        self._on_exit(status)

    def _stop_reading(self) -> None:
        if self._reading and self._loop is not None and self._proc is not None:
            self._loop.remove_reader(self._proc.fd)
        self._reading = False

    def write(self, data: bytes) -> None:
        if self._proc is None or self._exited:
            return
        try:
            self._proc.write(data)
        except (OSError, EOFError) as e:
            logger.debug(f"[Pty] Write dropped pid={self.pid}: {e}")

    def resize(self, cols: int, rows: int) -> None:
        self._cols, self._rows = cols, rows
        if self._proc is None or self._exited:
            return
        try:
            self._proc.setwinsize(rows, cols)
        except (OSError, struct.error) as e:
            logger.debug(f"[Pty] Resize dropped pid={self.pid}: {e}")

    def kill(self) -> None:
        self._stop_reading()
        if self._proc is None or self._exited:
            return
        self._exited = True
        try:
            self._proc.kill(signal.SIGHUP)
        except (OSError, PtyProcessError):
            pass
        self._schedule_reap()

    def _schedule_reap(self) -> None:
        # close() may sleep while escalating signals, keep it off the loop
        if self._loop is not None and not self._loop.is_closed():
            self._loop.run_in_executor(None, self._reap)
        else:
            self._reap()

    def _reap(self) -> None:
        try:
            self._proc.close(force=True)
        except (OSError, PtyProcessError) as e:
            logger.debug(f"[Pty] Reap failed pid={self.pid}: {e}")


def spawn_shell(
    cwd: str,
    cols: int,
    rows: int,
    on_output: OutputCallback,
    on_exit: ExitCallback,
) -> ShellProcess:
    """Default ProcessFactory: start the configured shell."""
    process = ShellProcess(cwd, cols, rows, on_output, on_exit)
    process.start()
    return process
