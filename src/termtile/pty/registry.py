"""SessionRegistry - long-lived pty sessions keyed by client id

Responsibilities:
- spawn a shell on first attach of an unseen session id
- rebind the transport endpoint on every later attach (newest wins)
- route inbound frames through the wire protocol
- drop orphaned sessions after the orphan timeout (sweep)
- kill everything on shutdown

All mutations of the session map and of the bound endpoint happen under
one lock; output delivery reads the endpoint under the same lock so a
swap is never observed half-done.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Protocol

from .. import config
from ..telemetry import format_session_log, get_logger, metrics
from .process import ProcessFactory, SpawnError, TerminalProcess, spawn_shell
from .protocol import CloseCode, Resize, decode_frame

logger = get_logger(__name__)


class Endpoint(Protocol):
    """Transport side of a session.

    Both methods must return without waiting on I/O.
    """

    def send(self, data: bytes) -> None: ...

    def close(self, code: CloseCode) -> None: ...


class SessionCreateError(RuntimeError):
    """Raised by attach()/create() when the process could not be spawned."""

    def __init__(self, session_id: str, cause: Exception):
        super().__init__(f"cannot create session {session_id}: {cause}")
        self.session_id = session_id


@dataclass
class Session:
    """One pty process plus its bookkeeping"""
    id: str
    process: TerminalProcess
    cols: int
    rows: int
    last_activity: float
    endpoint: Endpoint | None = None
    scrollback: deque = field(default_factory=deque)
    scrollback_size: int = 0

    @property
    def attached(self) -> bool:
        return self.endpoint is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pid": self.process.pid,
            "cols": self.cols,
            "rows": self.rows,
            "attached": self.attached,
            "last_activity": self.last_activity,
        }


class SessionRegistry:
    """Session id -> live pty process

    Attributes:
        default_cwd: working directory for sessions created without one
        orphan_timeout: seconds an unattached session survives
    """

    def __init__(
        self,
        default_cwd: str | None = None,
        process_factory: ProcessFactory | None = None,
        orphan_timeout: float | None = None,
        scrollback_bytes: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_cwd = default_cwd or config.PROJECT_ROOT
        self.orphan_timeout = config.ORPHAN_TIMEOUT_SECONDS if orphan_timeout is None else orphan_timeout
        self._scrollback_limit = config.SCROLLBACK_BYTES if scrollback_bytes is None else scrollback_bytes
        self._spawn = process_factory or spawn_shell
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.RLock()

    # === Lifecycle ===

    def attach(self, session_id: str, endpoint: Endpoint, cwd: str | None = None) -> Session:
        """Bind ``endpoint`` to the session, spawning it if the id is new.

        ``cwd`` only applies when the session is created. Any previously
        bound endpoint stops receiving output but is not closed.

        Raises:
            SessionCreateError: the shell could not be spawned.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            reattach = session is not None
            if session is None:
                session = self._create_locked(session_id, cwd)

            session.endpoint = endpoint
            session.last_activity = self._clock()
            history = b"".join(session.scrollback) if reattach else b""

        if history:
            endpoint.send(history)

        metrics.inc("session.attached")
        logger.info(format_session_log("Registry", session_id, "reattached" if reattach else "attached"))
        return session

    def create(self, session_id: str, cwd: str | None = None) -> Session:
        """Spawn the session without binding an endpoint (idempotent).

        Raises:
            SessionCreateError: the shell could not be spawned.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = self._create_locked(session_id, cwd)
            return session

    def detach(self, session_id: str, endpoint: Endpoint | None = None) -> bool:
        """Unbind the endpoint, leaving the process running.

        When ``endpoint`` is given, only that endpoint is unbound; a stale
        connection closing after a newer attach leaves the newer one alone.

        Returns:
            whether an endpoint was unbound
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.endpoint is None:
                return False
            if endpoint is not None and session.endpoint is not endpoint:
                return False
            session.endpoint = None
            session.last_activity = self._clock()

        metrics.inc("session.detached")
        logger.info(format_session_log("Registry", session_id, "detached"))
        return True

    def kill(self, session_id: str) -> bool:
        """Terminate the process and forget the session.

        Returns:
            whether the session existed
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._update_gauge()
        if session is None:
            return False

        session.process.kill()
        metrics.inc("session.killed")
        logger.info(format_session_log("Registry", session_id, "killed"))
        return True

    def sweep(self) -> list[str]:
        """Kill sessions left unattached for longer than the orphan timeout.

        Returns:
            ids of the swept sessions
        """
        now = self._clock()
        with self._lock:
            expired = [
                s for s in self._sessions.values()
                if s.endpoint is None and now - s.last_activity > self.orphan_timeout
            ]
            for session in expired:
                del self._sessions[session.id]
            self._update_gauge()

        for session in expired:
            session.process.kill()
            metrics.inc("session.swept")
            logger.info(format_session_log("Registry", session.id, "swept (orphaned)"))
        return [s.id for s in expired]

    def shutdown(self) -> None:
        """Kill every tracked session."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._update_gauge()

        for session in sessions:
            session.process.kill()
        if sessions:
            logger.info(f"[Registry] Shutdown killed {len(sessions)} sessions")

    # === Data flow ===

    def forward(self, session_id: str, frame: str | bytes) -> None:
        """Route one inbound frame to the session's process."""
        decoded = decode_frame(frame)
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return
            session.last_activity = self._clock()
            if isinstance(decoded, Resize):
                session.cols = decoded.cols
                session.rows = decoded.rows
            process = session.process

        if isinstance(decoded, Resize):
            process.resize(decoded.cols, decoded.rows)
            metrics.inc("protocol.resize")
        else:
            if decoded.data[:1] == b"{":
                metrics.inc("protocol.fallback_input")
            process.write(decoded.data)

    def _on_output(self, session_id: str, data: bytes) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return
            session.last_activity = self._clock()
            self._remember(session, data)
            endpoint = session.endpoint
            if endpoint is not None:
                endpoint.send(data)

    def _on_exit(self, session_id: str, status: int | None) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._update_gauge()
        if session is None:
            return

        if session.endpoint is not None:
            session.endpoint.close(CloseCode.SESSION_ENDED)
        metrics.inc("session.exited")
        logger.info(format_session_log("Registry", session_id, f"process exited (status={status})"))

    # === Queries ===

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> list[Session]:
        with self._lock:
            return list(self._sessions.values())

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # === Internal ===

    def _create_locked(self, session_id: str, cwd: str | None) -> Session:
        cols, rows = config.DEFAULT_COLS, config.DEFAULT_ROWS
        try:
            process = self._spawn(
                cwd or self.default_cwd,
                cols,
                rows,
                lambda data: self._on_output(session_id, data),
                lambda status: self._on_exit(session_id, status),
            )
        except SpawnError as e:
            metrics.inc("session.spawn_failed")
            logger.error(format_session_log("Registry", session_id, f"spawn failed: {e}"))
            raise SessionCreateError(session_id, e) from e

        session = Session(
            id=session_id,
            process=process,
            cols=cols,
            rows=rows,
            last_activity=self._clock(),
        )
        self._sessions[session_id] = session
        self._update_gauge()
        metrics.inc("session.spawned")
        logger.info(format_session_log("Registry", session_id, f"spawned pid={process.pid}"))
        return session

    def _remember(self, session: Session, data: bytes) -> None:
        if self._scrollback_limit <= 0:
            return
        session.scrollback.append(data)
        session.scrollback_size += len(data)
        while session.scrollback_size > self._scrollback_limit and len(session.scrollback) > 1:
            dropped = session.scrollback.popleft()
            session.scrollback_size -= len(dropped)

    def _update_gauge(self) -> None:
        metrics.gauge("session.count", len(self._sessions))
