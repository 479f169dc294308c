"""Pane/tab reducer

Every user action on a workspace is a command applied by ``reduce``:

    (workspace, command) -> workspace

Handlers are total: a command whose preconditions do not hold (unknown
pane or tab, closing the sole pane, moving a tab onto its own pane)
returns the same workspace object. The UI may race with itself, so
callers must not expect every command to change something.

Handler table:
| command | effect |
|---|---|
| OpenFile | reuse active/first editor pane or split a new one; pinned/preview tab policy |
| SplitPane | terminal: new terminal pane + tab; editor: pinned copy of the active tab |
| ClosePane | remove leaf (never the sole one), drop its tabs, refocus first leaf |
| MoveTerminalTab / MoveEditorTab | move a tab between panes of the same kind |
| DropEditorTab | editor tab dropped on a terminal pane -> new editor pane |
| FocusPane | set active pane |
| SwapPanes / DropSplit | rearrange whole panes |
| Create/Select/Close*Tab | per-pane tab management |
| UpdateFileContent | sync saved content across same-path tabs |
| RenameWorkspace / SetCwd | workspace metadata |
"""

import uuid
from dataclasses import replace as evolve
from typing import Callable

from ..telemetry import get_logger
from . import tree
from .tree import Direction, EditorTile, TerminalTile
from .types import (
    EDITOR_PANE_PREFIX,
    PREVIEW_TAB_PREFIX,
    TERMINAL_PANE_PREFIX,
    ClosePane,
    CloseEditorTab,
    CloseTerminalTab,
    Command,
    CreateTerminalTab,
    DropEditorTab,
    DropSplit,
    EditorPane,
    EditorTab,
    FocusPane,
    MoveEditorTab,
    MoveTerminalTab,
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

logger = get_logger(__name__)

IdFactory = Callable[[], str]


def _uuid() -> str:
    return str(uuid.uuid4())


def reduce(workspace: Workspace, command: Command, new_id: IdFactory | None = None) -> Workspace:
    """Apply one command.

    Args:
        workspace: current state
        command: one of the command dataclasses in ``layout.types``
        new_id: id generator for new panes and tabs (uuid4 by default)

    Returns:
        the next workspace, or ``workspace`` itself when nothing applies
    """
    handler = _HANDLERS.get(type(command))
    if handler is None:
        logger.warning(f"[Reducer] Unknown command: {type(command).__name__}")
        return workspace

    result = handler(workspace, command, new_id or _uuid)
    if result is workspace:
        logger.debug(f"[Reducer] No-op: {command}")
    return result


# === Helpers ===

def _new_terminal_tab(ws: Workspace, new_id: IdFactory) -> TerminalTab:
    return TerminalTab(id=new_id(), label=f"T{len(ws.terminals) + 1}")


def _pinned_tab_id(path: str, new_id: IdFactory) -> str:
    return f"{path}::{new_id()}"


def _focus_after_removal(ws: Workspace, layout: tree.TileNode, removed_id: str) -> str:
    if ws.active_pane_id != removed_id and tree.exists(layout, ws.active_pane_id):
        return ws.active_pane_id
    return tree.collect_leaf_ids(layout)[0]


def _next_active(tabs: tuple, index: int, active_id: str, removed_id: str) -> str:
    """Active tab after removing ``tabs[index]``; the previous neighbour wins."""
    remaining = tabs[:index] + tabs[index + 1:]
    if active_id != removed_id:
        return active_id
    return remaining[max(0, index - 1)].id


def _index_of(tabs: tuple, tab_id: str) -> int:
    return next((i for i, t in enumerate(tabs) if t.id == tab_id), -1)


def _without_tab(pane, index: int):
    """Pane minus ``pane.tabs[index]``, or None if it becomes empty."""
    tab = pane.tabs[index]
    remaining = pane.tabs[:index] + pane.tabs[index + 1:]
    if not remaining:
        return None
    return evolve(pane, tabs=remaining, active_tab_id=_next_active(pane.tabs, index, pane.active_tab_id, tab.id))


def _remove_pane(ws: Workspace, pane_id: str) -> Workspace | None:
    """Drop a pane leaf and its tab state; None when it is the sole leaf."""
    layout = tree.remove(ws.layout, pane_id)
    if layout is None:
        return None

    terminal_panes = dict(ws.terminal_panes)
    editor_panes = dict(ws.editor_panes)
    terminals = ws.terminals
    removed = terminal_panes.pop(pane_id, None)
    editor_panes.pop(pane_id, None)
    if removed is not None:
        gone = {t.id for t in removed.tabs}
        terminals = tuple(t for t in terminals if t.id not in gone)

    return evolve(
        ws,
        layout=layout,
        terminal_panes=terminal_panes,
        editor_panes=editor_panes,
        terminals=terminals,
        active_pane_id=_focus_after_removal(ws, layout, pane_id),
    )


def _is_terminal_pane(ws: Workspace, pane_id: str) -> bool:
    return isinstance(tree.find(ws.layout, pane_id), TerminalTile) and pane_id in ws.terminal_panes


def _is_editor_pane(ws: Workspace, pane_id: str) -> bool:
    return isinstance(tree.find(ws.layout, pane_id), EditorTile) and pane_id in ws.editor_panes


# === Files ===

def _open_file(ws: Workspace, cmd: OpenFile, new_id: IdFactory) -> Workspace:
    file = cmd.file

    target_id = ws.active_pane_id if _is_editor_pane(ws, ws.active_pane_id) else None
    if target_id is None:
        target_id = next((pid for pid in tree.collect_editor_ids(ws.layout) if pid in ws.editor_panes), None)

    if target_id is None:
        anchor = ws.active_pane_id
        if not tree.exists(ws.layout, anchor):
            anchor = tree.collect_leaf_ids(ws.layout)[0]
        pane_id = EDITOR_PANE_PREFIX + new_id()
        tab_id = _pinned_tab_id(file.path, new_id) if cmd.pinned else PREVIEW_TAB_PREFIX + new_id()
        layout = tree.split(ws.layout, anchor, EditorTile(pane_id), Direction.HORIZONTAL)
        return evolve(
            ws,
            layout=layout,
            editor_panes={**ws.editor_panes, pane_id: EditorPane((EditorTab(tab_id, file, cmd.pinned),), tab_id)},
            active_pane_id=pane_id,
        )

    pane = ws.editor_panes[target_id]
    tabs = tuple(evolve(t, file=file) if t.file.path == file.path else t for t in pane.tabs)
    existing = next((t for t in tabs if t.file.path == file.path), None)

    if existing is not None:
        if cmd.pinned and not existing.pinned:
            tabs = tuple(evolve(t, pinned=True) if t.id == existing.id else t for t in tabs)
        active_tab_id = existing.id
    elif cmd.pinned:
        active_tab_id = _pinned_tab_id(file.path, new_id)
        tabs = tabs + (EditorTab(active_tab_id, file, True),)
    else:
        preview = next((t for t in tabs if not t.pinned), None)
        if preview is not None:
            tabs = tuple(evolve(t, file=file) if t.id == preview.id else t for t in tabs)
            active_tab_id = preview.id
        else:
            active_tab_id = PREVIEW_TAB_PREFIX + new_id()
            tabs = tabs + (EditorTab(active_tab_id, file, False),)

    return evolve(
        ws,
        editor_panes={**ws.editor_panes, target_id: EditorPane(tabs, active_tab_id)},
        active_pane_id=target_id,
    )


def _update_file_content(ws: Workspace, cmd: UpdateFileContent, new_id: IdFactory) -> Workspace:
    changed = False
    editor_panes = {}
    for pane_id, pane in ws.editor_panes.items():
        if any(t.file.path == cmd.path for t in pane.tabs):
            changed = True
            size = len(cmd.content.encode("utf-8"))
            pane = evolve(pane, tabs=tuple(
                evolve(t, file=evolve(t.file, content=cmd.content, size=size)) if t.file.path == cmd.path else t
                for t in pane.tabs
            ))
        editor_panes[pane_id] = pane
    if not changed:
        return ws
    return evolve(ws, editor_panes=editor_panes)


# === Panes ===

def _split_pane(ws: Workspace, cmd: SplitPane, new_id: IdFactory) -> Workspace:
    node = tree.find(ws.layout, cmd.pane_id)

    if isinstance(node, TerminalTile):
        pane_id = TERMINAL_PANE_PREFIX + new_id()
        tab = _new_terminal_tab(ws, new_id)
        return evolve(
            ws,
            layout=tree.split(ws.layout, cmd.pane_id, TerminalTile(pane_id), cmd.direction),
            terminal_panes={**ws.terminal_panes, pane_id: TerminalPane((tab,), tab.id)},
            terminals=ws.terminals + (tab,),
            active_pane_id=pane_id,
        )

    if isinstance(node, EditorTile):
        source = ws.editor_panes.get(cmd.pane_id)
        source_tab = source.active_tab if source else None
        if source_tab is None:
            return ws
        pane_id = EDITOR_PANE_PREFIX + new_id()
        tab = EditorTab(_pinned_tab_id(source_tab.file.path, new_id), source_tab.file, True)
        return evolve(
            ws,
            layout=tree.split(ws.layout, cmd.pane_id, EditorTile(pane_id), cmd.direction),
            editor_panes={**ws.editor_panes, pane_id: EditorPane((tab,), tab.id)},
            active_pane_id=pane_id,
        )

    return ws


def _close_pane(ws: Workspace, cmd: ClosePane, new_id: IdFactory) -> Workspace:
    if not tree.exists(ws.layout, cmd.pane_id):
        return ws
    return _remove_pane(ws, cmd.pane_id) or ws


def _focus_pane(ws: Workspace, cmd: FocusPane, new_id: IdFactory) -> Workspace:
    if cmd.pane_id == ws.active_pane_id or not tree.exists(ws.layout, cmd.pane_id):
        return ws
    return evolve(ws, active_pane_id=cmd.pane_id)


def _swap_panes(ws: Workspace, cmd: SwapPanes, new_id: IdFactory) -> Workspace:
    layout = tree.swap(ws.layout, cmd.pane_a, cmd.pane_b)
    if layout is ws.layout:
        return ws
    return evolve(ws, layout=layout)


def _drop_split(ws: Workspace, cmd: DropSplit, new_id: IdFactory) -> Workspace:
    if cmd.from_pane_id == cmd.target_pane_id:
        return ws
    moving = tree.find(ws.layout, cmd.from_pane_id)
    if moving is None:
        return ws

    layout = tree.remove(ws.layout, cmd.from_pane_id)
    if layout is None or not tree.exists(layout, cmd.target_pane_id):
        return ws
    return evolve(ws, layout=tree.split(layout, cmd.target_pane_id, moving, cmd.direction))


# === Tabs moving between panes ===

def _detach_from_source(ws: Workspace, panes: dict, pane_id: str, index: int):
    """Remove a tab from its source pane, pruning the pane when emptied.

    Returns:
        (layout, panes) or None when pruning would empty the tree
    """
    panes = dict(panes)
    layout = ws.layout
    remaining = _without_tab(panes[pane_id], index)
    if remaining is None:
        layout = tree.remove(layout, pane_id)
        if layout is None:
            return None
        del panes[pane_id]
    else:
        panes[pane_id] = remaining
    return layout, panes


def _move_terminal_tab(ws: Workspace, cmd: MoveTerminalTab, new_id: IdFactory) -> Workspace:
    if cmd.from_pane_id == cmd.to_pane_id:
        return ws
    if not (_is_terminal_pane(ws, cmd.from_pane_id) and _is_terminal_pane(ws, cmd.to_pane_id)):
        return ws
    index = _index_of(ws.terminal_panes[cmd.from_pane_id].tabs, cmd.tab_id)
    if index == -1:
        return ws
    moved = ws.terminal_panes[cmd.from_pane_id].tabs[index]

    detached = _detach_from_source(ws, ws.terminal_panes, cmd.from_pane_id, index)
    if detached is None:
        return ws
    layout, panes = detached

    target = panes[cmd.to_pane_id]
    tabs = target.tabs if target.find_tab(moved.id) else target.tabs + (moved,)
    panes[cmd.to_pane_id] = TerminalPane(tabs, moved.id)
    return evolve(ws, layout=layout, terminal_panes=panes, active_pane_id=cmd.to_pane_id)


def _move_editor_tab(ws: Workspace, cmd: MoveEditorTab, new_id: IdFactory) -> Workspace:
    if cmd.from_pane_id == cmd.to_pane_id:
        return ws
    if not (_is_editor_pane(ws, cmd.from_pane_id) and _is_editor_pane(ws, cmd.to_pane_id)):
        return ws
    index = _index_of(ws.editor_panes[cmd.from_pane_id].tabs, cmd.tab_id)
    if index == -1:
        return ws
    moved = ws.editor_panes[cmd.from_pane_id].tabs[index]

    detached = _detach_from_source(ws, ws.editor_panes, cmd.from_pane_id, index)
    if detached is None:
        return ws
    layout, panes = detached

    target = panes[cmd.to_pane_id]
    same_path = target.find_path(moved.file.path)
    if same_path is not None:
        merged = evolve(same_path, pinned=same_path.pinned or moved.pinned, file=moved.file)
        tabs = tuple(merged if t.id == same_path.id else t for t in target.tabs)
        active_tab_id = same_path.id
    else:
        if not moved.pinned and target.preview_tab is not None:
            # one preview per pane
            moved = evolve(moved, pinned=True)
        tabs = target.tabs + (moved,)
        active_tab_id = moved.id
    panes[cmd.to_pane_id] = EditorPane(tabs, active_tab_id)
    return evolve(ws, layout=layout, editor_panes=panes, active_pane_id=cmd.to_pane_id)


def _drop_editor_tab(ws: Workspace, cmd: DropEditorTab, new_id: IdFactory) -> Workspace:
    if not isinstance(tree.find(ws.layout, cmd.target_pane_id), TerminalTile):
        return ws
    if not _is_editor_pane(ws, cmd.from_pane_id):
        return ws
    index = _index_of(ws.editor_panes[cmd.from_pane_id].tabs, cmd.tab_id)
    if index == -1:
        return ws
    dragged = ws.editor_panes[cmd.from_pane_id].tabs[index]

    detached = _detach_from_source(ws, ws.editor_panes, cmd.from_pane_id, index)
    if detached is None:
        return ws
    layout, panes = detached
    if not tree.exists(layout, cmd.target_pane_id):
        return ws

    direction, placement = cmd.position.split
    pane_id = EDITOR_PANE_PREFIX + new_id()
    tab = EditorTab(_pinned_tab_id(dragged.file.path, new_id), dragged.file, True)
    panes[pane_id] = EditorPane((tab,), tab.id)
    return evolve(
        ws,
        layout=tree.split(layout, cmd.target_pane_id, EditorTile(pane_id), direction, placement),
        editor_panes=panes,
        active_pane_id=pane_id,
    )


# === Tabs within a pane ===

def _create_terminal_tab(ws: Workspace, cmd: CreateTerminalTab, new_id: IdFactory) -> Workspace:
    if not _is_terminal_pane(ws, cmd.pane_id):
        return ws
    pane = ws.terminal_panes[cmd.pane_id]
    tab = _new_terminal_tab(ws, new_id)
    return evolve(
        ws,
        terminal_panes={**ws.terminal_panes, cmd.pane_id: TerminalPane(pane.tabs + (tab,), tab.id)},
        terminals=ws.terminals + (tab,),
        active_pane_id=cmd.pane_id,
    )


def _select_terminal_tab(ws: Workspace, cmd: SelectTerminalTab, new_id: IdFactory) -> Workspace:
    pane = ws.terminal_panes.get(cmd.pane_id)
    if pane is None or pane.find_tab(cmd.tab_id) is None:
        return ws
    return evolve(
        ws,
        terminal_panes={**ws.terminal_panes, cmd.pane_id: evolve(pane, active_tab_id=cmd.tab_id)},
        active_pane_id=cmd.pane_id,
    )


def _select_editor_tab(ws: Workspace, cmd: SelectEditorTab, new_id: IdFactory) -> Workspace:
    pane = ws.editor_panes.get(cmd.pane_id)
    if pane is None or pane.find_tab(cmd.tab_id) is None:
        return ws
    return evolve(
        ws,
        editor_panes={**ws.editor_panes, cmd.pane_id: evolve(pane, active_tab_id=cmd.tab_id)},
        active_pane_id=cmd.pane_id,
    )


def _close_terminal_tab(ws: Workspace, cmd: CloseTerminalTab, new_id: IdFactory) -> Workspace:
    pane = ws.terminal_panes.get(cmd.pane_id)
    if pane is None:
        return ws
    index = _index_of(pane.tabs, cmd.tab_id)
    if index == -1:
        return ws

    remaining = _without_tab(pane, index)
    if remaining is None:
        return _remove_pane(ws, cmd.pane_id) or ws
    return evolve(
        ws,
        terminal_panes={**ws.terminal_panes, cmd.pane_id: remaining},
        terminals=tuple(t for t in ws.terminals if t.id != cmd.tab_id),
        active_pane_id=cmd.pane_id,
    )


def _close_editor_tab(ws: Workspace, cmd: CloseEditorTab, new_id: IdFactory) -> Workspace:
    pane = ws.editor_panes.get(cmd.pane_id)
    if pane is None:
        return ws
    index = _index_of(pane.tabs, cmd.tab_id)
    if index == -1:
        return ws

    remaining = _without_tab(pane, index)
    if remaining is None:
        return _remove_pane(ws, cmd.pane_id) or ws
    return evolve(
        ws,
        editor_panes={**ws.editor_panes, cmd.pane_id: remaining},
        active_pane_id=cmd.pane_id,
    )


# === Workspace metadata ===

def _rename_workspace(ws: Workspace, cmd: RenameWorkspace, new_id: IdFactory) -> Workspace:
    name = cmd.name.strip()
    if not name or name == ws.name:
        return ws
    return evolve(ws, name=name)


def _set_cwd(ws: Workspace, cmd: SetCwd, new_id: IdFactory) -> Workspace:
    cwd = cmd.cwd.strip()
    if not cwd or cwd == ws.cwd:
        return ws
    return evolve(ws, cwd=cwd)


_HANDLERS: dict[type, Callable[[Workspace, Command, IdFactory], Workspace]] = {
    OpenFile: _open_file,
    UpdateFileContent: _update_file_content,
    SplitPane: _split_pane,
    ClosePane: _close_pane,
    FocusPane: _focus_pane,
    SwapPanes: _swap_panes,
    DropSplit: _drop_split,
    MoveTerminalTab: _move_terminal_tab,
    MoveEditorTab: _move_editor_tab,
    DropEditorTab: _drop_editor_tab,
    CreateTerminalTab: _create_terminal_tab,
    SelectTerminalTab: _select_terminal_tab,
    SelectEditorTab: _select_editor_tab,
    CloseTerminalTab: _close_terminal_tab,
    CloseEditorTab: _close_editor_tab,
    RenameWorkspace: _rename_workspace,
    SetCwd: _set_cwd,
}
