"""Layout module data types

Contains:
- EditorTab / TerminalTab: tabs inside a pane
- EditorPane / TerminalPane: per-pane tab collections
- Workspace: layout tree + pane maps + cwd + focused pane
- Commands consumed by the reducer
"""

from dataclasses import asdict, dataclass, field
from enum import Enum

from ..files import OpenedFile
from .tree import Direction, Placement, TileNode, to_dict as tile_to_dict

TERMINAL_PANE_PREFIX = "terminal::"
EDITOR_PANE_PREFIX = "editor::"
PREVIEW_TAB_PREFIX = "preview::"


@dataclass(frozen=True)
class EditorTab:
    id: str
    file: OpenedFile
    pinned: bool = False  # False = preview tab, at most one per pane


@dataclass(frozen=True)
class TerminalTab:
    """Terminal tab; ``id`` is the session id used on the transport"""
    id: str
    label: str


@dataclass(frozen=True)
class EditorPane:
    tabs: tuple[EditorTab, ...]
    active_tab_id: str

    def find_tab(self, tab_id: str) -> EditorTab | None:
        return next((t for t in self.tabs if t.id == tab_id), None)

    def find_path(self, path: str) -> EditorTab | None:
        return next((t for t in self.tabs if t.file.path == path), None)

    @property
    def preview_tab(self) -> EditorTab | None:
        return next((t for t in self.tabs if not t.pinned), None)

    @property
    def active_tab(self) -> EditorTab | None:
        return self.find_tab(self.active_tab_id) or (self.tabs[0] if self.tabs else None)


@dataclass(frozen=True)
class TerminalPane:
    tabs: tuple[TerminalTab, ...]
    active_tab_id: str

    def find_tab(self, tab_id: str) -> TerminalTab | None:
        return next((t for t in self.tabs if t.id == tab_id), None)


@dataclass(frozen=True)
class Workspace:
    """One workspace; replaced wholesale by every reducer step

    Attributes:
        id: workspace id
        name: display name ("Session <index>" by default)
        index: creation index from the application counter
        cwd: working directory for new terminals and file access
        layout: pane layout tree (leaf ids are pane ids)
        active_pane_id: focused pane
        terminal_panes: pane id -> TerminalPane
        editor_panes: pane id -> EditorPane
        terminals: every terminal tab ever added and still open, for labels
    """
    id: str
    name: str
    index: int
    cwd: str
    layout: TileNode
    active_pane_id: str
    terminal_panes: dict[str, TerminalPane] = field(default_factory=dict)
    editor_panes: dict[str, EditorPane] = field(default_factory=dict)
    terminals: tuple[TerminalTab, ...] = ()

    def session_ids(self) -> set[str]:
        """Terminal session ids owned by this workspace's panes"""
        return {tab.id for pane in self.terminal_panes.values() for tab in pane.tabs}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "index": self.index,
            "cwd": self.cwd,
            "layout": tile_to_dict(self.layout),
            "active_pane_id": self.active_pane_id,
            "terminal_panes": {k: asdict(v) for k, v in self.terminal_panes.items()},
            "editor_panes": {k: asdict(v) for k, v in self.editor_panes.items()},
            "terminals": [asdict(t) for t in self.terminals],
        }


class DropPosition(str, Enum):
    """Drop zone of a pane during drag and drop"""
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"

    @property
    def split(self) -> tuple[Direction, Placement]:
        mapping = {
            DropPosition.LEFT: (Direction.HORIZONTAL, Placement.BEFORE),
            DropPosition.RIGHT: (Direction.HORIZONTAL, Placement.AFTER),
            DropPosition.TOP: (Direction.VERTICAL, Placement.BEFORE),
            DropPosition.BOTTOM: (Direction.VERTICAL, Placement.AFTER),
            # center still opens a new pane
            DropPosition.CENTER: (Direction.HORIZONTAL, Placement.AFTER),
        }
        return mapping[self]


# === Commands ===

@dataclass(frozen=True)
class OpenFile:
    file: OpenedFile
    pinned: bool = False


@dataclass(frozen=True)
class SplitPane:
    pane_id: str
    direction: Direction = Direction.HORIZONTAL


@dataclass(frozen=True)
class ClosePane:
    pane_id: str


@dataclass(frozen=True)
class FocusPane:
    pane_id: str


@dataclass(frozen=True)
class SwapPanes:
    pane_a: str
    pane_b: str


@dataclass(frozen=True)
class DropSplit:
    """Move a whole pane next to another one"""
    from_pane_id: str
    target_pane_id: str
    direction: Direction = Direction.HORIZONTAL


@dataclass(frozen=True)
class MoveTerminalTab:
    from_pane_id: str
    tab_id: str
    to_pane_id: str


@dataclass(frozen=True)
class MoveEditorTab:
    from_pane_id: str
    tab_id: str
    to_pane_id: str


@dataclass(frozen=True)
class DropEditorTab:
    """Editor tab dropped on a terminal pane"""
    from_pane_id: str
    tab_id: str
    target_pane_id: str
    position: DropPosition = DropPosition.CENTER


@dataclass(frozen=True)
class CreateTerminalTab:
    pane_id: str


@dataclass(frozen=True)
class SelectTerminalTab:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class CloseTerminalTab:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class SelectEditorTab:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class CloseEditorTab:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class UpdateFileContent:
    """Sync every tab showing ``path`` after a successful save"""
    path: str
    content: str


@dataclass(frozen=True)
class RenameWorkspace:
    name: str


@dataclass(frozen=True)
class SetCwd:
    cwd: str


Command = (
    OpenFile
    | SplitPane
    | ClosePane
    | FocusPane
    | SwapPanes
    | DropSplit
    | MoveTerminalTab
    | MoveEditorTab
    | DropEditorTab
    | CreateTerminalTab
    | SelectTerminalTab
    | CloseTerminalTab
    | SelectEditorTab
    | CloseEditorTab
    | UpdateFileContent
    | RenameWorkspace
    | SetCwd
)
