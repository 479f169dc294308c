"""Web server"""

import asyncio

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from ..auth import TokenAuthorizer
from ..layout.manager import WorkspaceManager
from ..layout.types import (
    ClosePane,
    CloseEditorTab,
    CloseTerminalTab,
    CreateTerminalTab,
    DropEditorTab,
    DropSplit,
    FocusPane,
    MoveEditorTab,
    MoveTerminalTab,
    RenameWorkspace,
    SelectEditorTab,
    SelectTerminalTab,
    SetCwd,
    SplitPane,
    SwapPanes,
)
from ..pty.protocol import CloseCode
from ..pty.registry import SessionRegistry
from ..telemetry import get_logger
from .gateway import TerminalGateway

logger = get_logger(__name__)

# "type" in a command request -> command dataclass
COMMAND_TYPES: dict[str, type] = {
    "split_pane": SplitPane,
    "close_pane": ClosePane,
    "focus_pane": FocusPane,
    "swap_panes": SwapPanes,
    "drop_split": DropSplit,
    "move_terminal_tab": MoveTerminalTab,
    "move_editor_tab": MoveEditorTab,
    "drop_editor_tab": DropEditorTab,
    "create_terminal_tab": CreateTerminalTab,
    "select_terminal_tab": SelectTerminalTab,
    "close_terminal_tab": CloseTerminalTab,
    "select_editor_tab": SelectEditorTab,
    "close_editor_tab": CloseEditorTab,
    "rename_workspace": RenameWorkspace,
    "set_cwd": SetCwd,
}


class AuthRequest(BaseModel):
    token: str


class CreateWorkspaceRequest(BaseModel):
    cwd: str | None = None
    name: str | None = None


class CommandRequest(BaseModel):
    """Command body: ``{"type": "split_pane", "pane_id": ..., ...}``"""

    model_config = ConfigDict(extra="allow")

    type: str


class OpenFileRequest(BaseModel):
    path: str
    pinned: bool = False


class SaveFileRequest(BaseModel):
    pane_id: str
    content: str


class FileResult(BaseModel):
    success: bool
    workspace: dict | None = None


class WebServer:
    """FastAPI app: terminal websocket, layout broadcast and REST API"""

    def __init__(
        self,
        registry: SessionRegistry,
        manager: WorkspaceManager,
        authorizer: TokenAuthorizer,
    ):
        self.app = FastAPI(title="termtile")
        self.registry = registry
        self.manager = manager
        self.authorizer = authorizer
        self.gateway = TerminalGateway(registry, authorizer)
        self.clients: list[WebSocket] = []
        self._pending: set[asyncio.Task] = set()

        self._setup_routes()
        manager.on_change(self._on_workspace_change)

    def _on_workspace_change(self, event: dict) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.broadcast(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _require_auth(self, request: Request) -> None:
        if not self.authorizer.is_authorized(request):
            raise HTTPException(status_code=401, detail="Unauthorized")

    def _workspace_or_404(self, workspace_id: str):
        ws = self.manager.get(workspace_id)
        if ws is None:
            raise HTTPException(status_code=404, detail="Workspace not found")
        return ws

    def _setup_routes(self):
        api = APIRouter(prefix="/api", dependencies=[Depends(self._require_auth)])

        @self.app.post("/api/auth")
        async def login(request: AuthRequest):
            """Exchange the access token for the auth cookie."""
            if not self.authorizer.check_token(request.token):
                return JSONResponse({"error": "Unauthorized"}, status_code=401)
            response = JSONResponse({"ok": True})
            self.authorizer.set_cookie(response)
            return response

        @api.get("/workspaces")
        async def list_workspaces():
            return self.manager.to_dict()

        @api.post("/workspaces")
        async def create_workspace(request: CreateWorkspaceRequest):
            return self.manager.create_workspace(cwd=request.cwd, name=request.name).to_dict()

        @api.delete("/workspaces/{workspace_id}")
        async def close_workspace(workspace_id: str):
            if not self.manager.close_workspace(workspace_id):
                raise HTTPException(status_code=404, detail="Workspace not found")
            return {"ok": True, "active_workspace_id": self.manager.state.active_workspace_id}

        @api.post("/workspaces/{workspace_id}/select")
        async def select_workspace(workspace_id: str):
            if not self.manager.select_workspace(workspace_id):
                raise HTTPException(status_code=404, detail="Workspace not found")
            return {"ok": True}

        @api.post("/workspaces/{workspace_id}/commands")
        async def dispatch_command(workspace_id: str, request: CommandRequest):
            """Apply one pane/tab command; unmet preconditions are a no-op."""
            self._workspace_or_404(workspace_id)
            command_type = COMMAND_TYPES.get(request.type)
            if command_type is None:
                raise HTTPException(status_code=422, detail=f"Unknown command: {request.type}")
            try:
                command = TypeAdapter(command_type).validate_python(request.model_extra or {})
            except ValidationError as e:
                raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False)) from e
            return self.manager.dispatch(workspace_id, command).to_dict()

        @api.post("/workspaces/{workspace_id}/open", response_model=FileResult)
        async def open_file(workspace_id: str, request: OpenFileRequest):
            self._workspace_or_404(workspace_id)
            ok = await self.manager.open_file(workspace_id, request.path, request.pinned)
            return FileResult(success=ok, workspace=self.manager.get(workspace_id).to_dict())

        @api.post("/workspaces/{workspace_id}/save", response_model=FileResult)
        async def save_file(workspace_id: str, request: SaveFileRequest):
            self._workspace_or_404(workspace_id)
            ok = await self.manager.save_file(workspace_id, request.pane_id, request.content)
            return FileResult(success=ok, workspace=self.manager.get(workspace_id).to_dict())

        @api.get("/sessions")
        async def list_sessions():
            return [s.to_dict() for s in self.registry.list_sessions()]

        @api.delete("/sessions/{session_id}")
        async def kill_session(session_id: str):
            if not self.registry.kill(session_id):
                raise HTTPException(status_code=404, detail="Session not found")
            return {"ok": True}

        self.app.include_router(api)

        @self.app.websocket("/ws")
        async def terminal_endpoint(websocket: WebSocket):
            await self.gateway.handle(websocket)

        @self.app.websocket("/ws/layout")
        async def layout_endpoint(websocket: WebSocket):
            await websocket.accept()
            if not self.authorizer.is_authorized(websocket):
                await websocket.close(code=CloseCode.UNAUTHORIZED, reason=CloseCode.UNAUTHORIZED.reason)
                return
            self.clients.append(websocket)
            try:
                await websocket.send_json({"type": "state", "state": self.manager.to_dict()})
                while True:
                    await websocket.receive_text()
            except WebSocketDisconnect:
                pass
            finally:
                if websocket in self.clients:
                    self.clients.remove(websocket)

    async def broadcast(self, data: dict):
        """Send an event to every layout client, dropping dead ones."""
        for client in list(self.clients):
            try:
                await client.send_json(data)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"[WebServer] Dropping layout client: {e}")
                if client in self.clients:
                    self.clients.remove(client)
