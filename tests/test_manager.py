"""WorkspaceManager tests"""

import errno
import itertools
from pathlib import Path

import pytest

from termtile.files import LocalFileStore
from termtile.layout.manager import WorkspaceManager
from termtile.layout.types import ClosePane, CloseTerminalTab, FocusPane, SplitPane


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("print('hi')\n")
    (tmp_path / "README.md").write_text("# readme\n")
    return tmp_path


@pytest.fixture
def manager(registry, project):
    counter = itertools.count(1)
    return WorkspaceManager(registry, LocalFileStore(str(project)), new_id=lambda: f"id{next(counter)}")


@pytest.fixture
def events(manager):
    received = []
    manager.on_change(received.append)
    return received


class TestWorkspaces:
    """create / ensure / close"""

    def test_create_workspace(self, manager, registry, factory, events):
        ws = manager.create_workspace()

        assert ws.name == "Session 1"
        assert ws.index == 1
        assert ws.active_pane_id == "terminal::id1"
        assert ws.session_ids() == {"id2"}
        assert manager.state.next_index == 2
        assert manager.state.active_workspace_id == ws.id
        assert "id2" in registry
        assert factory.spawned[0].cwd == "/work"
        assert events[-1]["type"] == "workspace"

    def test_workspace_cwd_used_for_sessions(self, manager, factory):
        manager.create_workspace(cwd="/srv/app")
        assert factory.spawned[0].cwd == "/srv/app"

    def test_ensure_workspace(self, manager):
        first = manager.ensure_workspace()
        assert manager.ensure_workspace() is first
        assert len(manager.list_workspaces()) == 1

    def test_index_never_reused(self, manager):
        first = manager.create_workspace()
        manager.close_workspace(first.id)
        second = manager.create_workspace()
        assert second.name == "Session 2"

    def test_close_kills_sessions_and_selects_last(self, manager, registry, factory, events):
        first = manager.create_workspace()
        second = manager.create_workspace()
        third = manager.create_workspace()
        manager.select_workspace(second.id)

        assert manager.close_workspace(second.id) is True

        assert manager.state.active_workspace_id == third.id
        assert factory.spawned[1].killed
        assert not factory.spawned[0].killed
        assert events[-1] == {"type": "workspace_closed", "id": second.id, "active_workspace_id": third.id}
        assert manager.get(first.id) is first

    def test_close_unknown(self, manager):
        assert manager.close_workspace("nope") is False
        assert manager.select_workspace("nope") is False

    def test_spawn_failure_keeps_workspace(self, manager, factory):
        factory.fail = True
        ws = manager.create_workspace()
        assert manager.get(ws.id) is ws

    def test_to_dict(self, manager):
        ws = manager.create_workspace()
        data = manager.to_dict()
        assert data["active_workspace_id"] == ws.id
        assert data["next_index"] == 2
        assert data["workspaces"][0]["layout"] == {"type": "terminal", "terminal_id": "terminal::id1"}


class TestDispatch:
    """dispatch and session reconciliation"""

    def test_split_spawns_session_in_workspace_cwd(self, manager, registry, factory):
        ws = manager.create_workspace(cwd="/srv/app")
        updated = manager.dispatch(ws.id, SplitPane(ws.active_pane_id))

        new_pane = updated.terminal_panes[updated.active_pane_id]
        assert new_pane.tabs[0].id in registry
        assert factory.spawned[1].cwd == "/srv/app"
        assert manager.get(ws.id) is updated

    def test_close_pane_kills_its_sessions(self, manager, registry, factory):
        ws = manager.create_workspace()
        updated = manager.dispatch(ws.id, SplitPane(ws.active_pane_id))
        new_pane_id = updated.active_pane_id
        session_id = updated.terminal_panes[new_pane_id].tabs[0].id

        manager.dispatch(ws.id, ClosePane(new_pane_id))

        assert session_id not in registry
        assert factory.spawned[1].killed
        assert not factory.spawned[0].killed

    def test_noop_command_changes_nothing(self, manager, factory, events):
        ws = manager.create_workspace()
        count = len(events)

        assert manager.dispatch(ws.id, CloseTerminalTab(ws.active_pane_id, "id2")) is ws
        assert manager.dispatch(ws.id, FocusPane("missing")) is ws
        assert len(events) == count
        assert not factory.spawned[0].killed

    def test_unknown_workspace(self, manager):
        assert manager.dispatch("nope", FocusPane("x")) is None

    def test_failing_subscriber_is_isolated(self, manager):
        def broken(event):
            raise RuntimeError("boom")

        manager.on_change(broken)
        ws = manager.create_workspace()
        assert manager.dispatch(ws.id, SplitPane(ws.active_pane_id)) is not ws


class TestFiles:
    """open_file / save_file"""

    async def test_open_file(self, manager, project):
        ws = manager.create_workspace(cwd=str(project))

        assert await manager.open_file(ws.id, "src/main.py") is True

        updated = manager.get(ws.id)
        pane = updated.editor_panes[updated.active_pane_id]
        assert pane.active_tab.file.content == "print('hi')\n"
        assert pane.active_tab.file.extension == "py"
        assert not pane.active_tab.pinned

    async def test_open_file_rejected(self, manager, project):
        ws = manager.create_workspace(cwd=str(project))

        assert await manager.open_file(ws.id, "../etc/passwd") is False
        assert await manager.open_file(ws.id, "missing.txt") is False
        assert await manager.open_file("nope", "README.md") is False
        assert manager.get(ws.id) is ws

    async def test_save_file_syncs_tabs(self, manager, project):
        ws = manager.create_workspace(cwd=str(project))
        await manager.open_file(ws.id, "README.md", pinned=True)
        ws = manager.get(ws.id)
        editor_id = ws.active_pane_id
        manager.dispatch(ws.id, SplitPane(editor_id))

        assert await manager.save_file(ws.id, editor_id, "# changed\n") is True

        assert (project / "README.md").read_text() == "# changed\n"
        updated = manager.get(ws.id)
        contents = [t.file.content for pane in updated.editor_panes.values() for t in pane.tabs]
        assert contents == ["# changed\n", "# changed\n"]

    async def test_save_without_editor_pane(self, manager):
        ws = manager.create_workspace()
        assert await manager.save_file(ws.id, ws.active_pane_id, "x") is False

    async def test_disk_errors_leave_state_unchanged(self, manager, project, monkeypatch):
        ws = manager.create_workspace(cwd=str(project))
        await manager.open_file(ws.id, "README.md", pinned=True)
        ws = manager.get(ws.id)

        def fail(*args, **kwargs):
            raise OSError(errno.EIO, "I/O error")

        monkeypatch.setattr(Path, "write_bytes", fail)
        monkeypatch.setattr(Path, "read_text", fail)

        assert await manager.save_file(ws.id, ws.active_pane_id, "# lost\n") is False
        assert await manager.open_file(ws.id, "src/main.py") is False
        assert manager.get(ws.id) is ws
