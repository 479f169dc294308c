"""WorkspaceManager - application state and session side effects

The reducer is pure; this class owns the mutable part:
- the ordered workspace list, active workspace and creation counter
- creating/killing registry sessions as terminal tabs appear/disappear
- loading and saving files through the FileStore
- notifying change subscribers (the web layer broadcasts them)
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from ..files import FileAccessError, FileStore
from ..pty.registry import SessionCreateError, SessionRegistry
from ..telemetry import get_logger, metrics
from .reducer import IdFactory, reduce
from .tree import TerminalTile
from .types import (
    TERMINAL_PANE_PREFIX,
    Command,
    OpenFile,
    TerminalPane,
    TerminalTab,
    UpdateFileContent,
    Workspace,
)

logger = get_logger(__name__)

ChangeCallback = Callable[[dict], Any]


@dataclass
class AppState:
    workspaces: list[Workspace] = field(default_factory=list)
    active_workspace_id: str | None = None
    next_index: int = 1  # numbering for "Session <n>", never reused

    def to_dict(self) -> dict:
        return {
            "workspaces": [ws.to_dict() for ws in self.workspaces],
            "active_workspace_id": self.active_workspace_id,
            "next_index": self.next_index,
        }


class WorkspaceManager:
    """Holds AppState and applies commands to it"""

    def __init__(
        self,
        registry: SessionRegistry,
        file_store: FileStore,
        new_id: IdFactory | None = None,
    ):
        self.registry = registry
        self.file_store = file_store
        self.state = AppState()
        self._new_id = new_id or (lambda: str(uuid.uuid4()))
        self._subscribers: list[ChangeCallback] = []

    def on_change(self, callback: ChangeCallback) -> None:
        """Register a subscriber; called with an event dict after each change.

        Events:
            {"type": "workspace", "workspace": {...}}
            {"type": "workspace_closed", "id": ..., "active_workspace_id": ...}
        """
        self._subscribers.append(callback)

    # === Workspaces ===

    def get(self, workspace_id: str) -> Workspace | None:
        return next((ws for ws in self.state.workspaces if ws.id == workspace_id), None)

    def list_workspaces(self) -> list[Workspace]:
        return list(self.state.workspaces)

    @property
    def active(self) -> Workspace | None:
        if self.state.active_workspace_id is None:
            return None
        return self.get(self.state.active_workspace_id)

    def create_workspace(self, cwd: str | None = None, name: str | None = None) -> Workspace:
        """New workspace with one terminal pane holding one terminal tab."""
        index = self.state.next_index
        self.state.next_index += 1

        pane_id = TERMINAL_PANE_PREFIX + self._new_id()
        tab = TerminalTab(id=self._new_id(), label="T1")
        ws = Workspace(
            id=self._new_id(),
            name=name or f"Session {index}",
            index=index,
            cwd=cwd or self.registry.default_cwd,
            layout=TerminalTile(pane_id),
            active_pane_id=pane_id,
            terminal_panes={pane_id: TerminalPane((tab,), tab.id)},
            terminals=(tab,),
        )
        self.state.workspaces.append(ws)
        self.state.active_workspace_id = ws.id

        self._create_sessions(ws, ws.session_ids())
        metrics.gauge("workspace.count", len(self.state.workspaces))
        logger.info(f"[Workspace] Created {ws.name} ({ws.id[:8]}) cwd={ws.cwd}")
        self._notify({"type": "workspace", "workspace": ws.to_dict()})
        return ws

    def ensure_workspace(self) -> Workspace:
        """Active workspace, creating the first one when there is none."""
        return self.active or self.create_workspace()

    def select_workspace(self, workspace_id: str) -> bool:
        if self.get(workspace_id) is None:
            return False
        self.state.active_workspace_id = workspace_id
        return True

    def close_workspace(self, workspace_id: str) -> bool:
        """Drop a workspace and kill every session its panes own.

        The last remaining workspace (if any) becomes active.
        """
        ws = self.get(workspace_id)
        if ws is None:
            return False

        self.state.workspaces.remove(ws)
        for session_id in ws.session_ids():
            self.registry.kill(session_id)

        if self.state.active_workspace_id == workspace_id:
            remaining = self.state.workspaces
            self.state.active_workspace_id = remaining[-1].id if remaining else None

        metrics.gauge("workspace.count", len(self.state.workspaces))
        logger.info(f"[Workspace] Closed {ws.name} ({ws.id[:8]})")
        self._notify({
            "type": "workspace_closed",
            "id": workspace_id,
            "active_workspace_id": self.state.active_workspace_id,
        })
        return True

    # === Commands ===

    def dispatch(self, workspace_id: str, command: Command) -> Workspace | None:
        """Apply a command and reconcile registry sessions with the result.

        Returns:
            the workspace after the command, None if the id is unknown
        """
        ws = self.get(workspace_id)
        if ws is None:
            return None

        updated = reduce(ws, command, self._new_id)
        if updated is ws:
            return ws

        before = ws.session_ids()
        after = updated.session_ids()
        for session_id in before - after:
            self.registry.kill(session_id)
        self._create_sessions(updated, after - before)

        self.state.workspaces[self.state.workspaces.index(ws)] = updated
        self._notify({"type": "workspace", "workspace": updated.to_dict()})
        return updated

    async def open_file(self, workspace_id: str, path: str, pinned: bool = False) -> bool:
        """Load ``path`` (relative to the workspace cwd) into an editor tab."""
        ws = self.get(workspace_id)
        if ws is None:
            return False

        try:
            opened = await asyncio.to_thread(self.file_store.read_file, path, ws.cwd)
        except FileAccessError as e:
            logger.warning(f"[Workspace] Cannot open {path}: {type(e).__name__}: {e}")
            return False

        self.dispatch(workspace_id, OpenFile(opened, pinned))
        return True

    async def save_file(self, workspace_id: str, pane_id: str, content: str) -> bool:
        """Save the active tab of an editor pane and sync same-path tabs."""
        ws = self.get(workspace_id)
        pane = ws.editor_panes.get(pane_id) if ws else None
        tab = pane.active_tab if pane else None
        if tab is None:
            return False

        try:
            await asyncio.to_thread(self.file_store.save_file, tab.file.path, content, ws.cwd)
        except FileAccessError as e:
            logger.warning(f"[Workspace] Cannot save {tab.file.path}: {type(e).__name__}: {e}")
            return False

        self.dispatch(workspace_id, UpdateFileContent(tab.file.path, content))
        return True

    def to_dict(self) -> dict:
        return self.state.to_dict()

    # === Internal ===

    def _create_sessions(self, ws: Workspace, session_ids: set[str]) -> None:
        for session_id in session_ids:
            try:
                self.registry.create(session_id, cwd=ws.cwd)
            except SessionCreateError as e:
                # the tab stays; attaching reports the failure to the client
                logger.error(f"[Workspace] {e}")

    def _notify(self, event: dict) -> None:
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"[Workspace] Change callback failed: {e}")
