"""Layout module

Pane layout and tab bookkeeping:
- tree: immutable pane layout tree
- types: workspace/pane/tab state and commands
- reducer: pure (workspace, command) -> workspace
- manager: WorkspaceManager (application state + session side effects)
"""

from . import tree
from .tree import (
    Direction,
    EditorTile,
    LeafNotFoundError,
    Placement,
    SplitTile,
    TerminalTile,
    TileNode,
)
from .types import (
    ClosePane,
    CloseEditorTab,
    CloseTerminalTab,
    Command,
    CreateTerminalTab,
    DropEditorTab,
    DropPosition,
    DropSplit,
    EditorPane,
    EditorTab,
    FocusPane,
    MoveEditorTab,
    MoveTerminalTab,
    OpenedFile,
    OpenFile,
    RenameWorkspace,
    SelectEditorTab,
    SelectTerminalTab,
    SetCwd,
    SplitPane,
    SwapPanes,
    TerminalPane,
    TerminalTab,
    UpdateFileContent,
    Workspace,
)
from .reducer import reduce
from .manager import AppState, WorkspaceManager

__all__ = [
    # Tree
    "tree",
    "Direction",
    "Placement",
    "LeafNotFoundError",
    "TerminalTile",
    "EditorTile",
    "SplitTile",
    "TileNode",
    # State
    "OpenedFile",
    "EditorTab",
    "TerminalTab",
    "EditorPane",
    "TerminalPane",
    "Workspace",
    "DropPosition",
    # Commands
    "Command",
    "OpenFile",
    "SplitPane",
    "ClosePane",
    "FocusPane",
    "SwapPanes",
    "DropSplit",
    "MoveTerminalTab",
    "MoveEditorTab",
    "DropEditorTab",
    "CreateTerminalTab",
    "SelectTerminalTab",
    "CloseTerminalTab",
    "SelectEditorTab",
    "CloseEditorTab",
    "UpdateFileContent",
    "RenameWorkspace",
    "SetCwd",
    # Reducer / state holder
    "reduce",
    "AppState",
    "WorkspaceManager",
]
