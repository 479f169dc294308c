"""Terminal gateway - binds websocket connections to registry sessions

Handshake: ``/ws?session=<id>&cwd=<dir>``. Rejections (unauthorized,
missing session id, spawn failure) accept the socket and close it with a
CloseCode so the browser can read the code; nothing is bound to the
registry in those cases.
"""

import asyncio

from fastapi import WebSocket, WebSocketDisconnect

from ..auth import Authorizer
from ..pty.protocol import CloseCode
from ..pty.registry import SessionCreateError, SessionRegistry
from ..telemetry import format_session_log, get_logger, metrics

logger = get_logger(__name__)


class WebSocketEndpoint:
    """Registry endpoint backed by a websocket

    ``send``/``close`` only enqueue; a writer task drains the queue so
    the registry never waits on the network.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[bytes | CloseCode] = asyncio.Queue()

    def send(self, data: bytes) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, data)

    def close(self, code: CloseCode) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, code)

    def start(self) -> asyncio.Task:
        """Start the writer task; a crash is logged when the task finishes."""
        task = asyncio.create_task(self.run())
        task.add_done_callback(self._writer_done)
        return task

    def _writer_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            metrics.inc("gateway.writer_errors")
            logger.error(f"[Gateway] Writer failed: {type(error).__name__}: {error}", exc_info=error)

    async def run(self) -> None:
        """Writer loop; returns after sending a close frame or on disconnect."""
        while True:
            item = await self._queue.get()
            try:
                if isinstance(item, CloseCode):
                    await self.websocket.close(code=item, reason=item.reason)
                    return
                await self.websocket.send_bytes(item)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"[Gateway] Writer stopped: {e}")
                return


class TerminalGateway:
    """Websocket handler for terminal sessions"""

    def __init__(self, registry: SessionRegistry, authorizer: Authorizer):
        self.registry = registry
        self.authorizer = authorizer

    async def handle(self, websocket: WebSocket) -> None:
        await websocket.accept()

        if not self.authorizer.is_authorized(websocket):
            await self._reject(websocket, CloseCode.UNAUTHORIZED)
            return

        session_id = websocket.query_params.get("session")
        if not session_id:
            await self._reject(websocket, CloseCode.MISSING_SESSION)
            return
        cwd = websocket.query_params.get("cwd") or None

        endpoint = WebSocketEndpoint(websocket)
        try:
            self.registry.attach(session_id, endpoint, cwd=cwd)
        except SessionCreateError:
            await self._reject(websocket, CloseCode.SPAWN_FAILED)
            return

        writer = endpoint.start()
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                data = message.get("bytes")
                if data is None:
                    data = message.get("text")
                if data is not None:
                    self.registry.forward(session_id, data)
        finally:
            self.registry.detach(session_id, endpoint)
            writer.cancel()
            await asyncio.wait([writer])
            logger.debug(format_session_log("Gateway", session_id, "connection closed"))

    async def _reject(self, websocket: WebSocket, code: CloseCode) -> None:
        metrics.inc("gateway.rejected", {"reason": code.name.lower()})
        logger.info(f"[Gateway] Rejected connection: {code.reason} ({int(code)})")
        await websocket.close(code=code, reason=code.reason)
