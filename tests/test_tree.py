"""Pane layout tree tests"""

import pytest

from termtile.layout import tree
from termtile.layout.tree import (
    Direction,
    EditorTile,
    LeafNotFoundError,
    Placement,
    SplitTile,
    TerminalTile,
)

H, V = Direction.HORIZONTAL, Direction.VERTICAL


def sample_trees():
    a, b, c, d = (TerminalTile(x) for x in "abcd")
    e = EditorTile("e")
    return [
        a,
        SplitTile(H, a, b),
        SplitTile(V, SplitTile(H, a, e), b),
        SplitTile(H, a, SplitTile(V, b, SplitTile(H, c, d))),
        SplitTile(V, SplitTile(H, a, b), SplitTile(H, c, e)),
    ]


class TestQueries:
    """find / exists / collect"""

    def test_find(self):
        t = SplitTile(H, TerminalTile("a"), EditorTile("e"))
        assert tree.find(t, "e") == EditorTile("e")
        assert tree.find(t, "zzz") is None
        assert tree.exists(t, "a")
        assert not tree.exists(t, "b")

    def test_collect_in_reading_order(self):
        t = SplitTile(V, SplitTile(H, TerminalTile("a"), EditorTile("e")), TerminalTile("b"))
        assert tree.collect_leaf_ids(t) == ["a", "e", "b"]
        assert tree.collect_terminal_ids(t) == ["a", "b"]
        assert tree.collect_editor_ids(t) == ["e"]

    @pytest.mark.parametrize("t", sample_trees())
    def test_count_matches_collect(self, t):
        ids = tree.collect_leaf_ids(t)
        assert tree.count_leaves(t) == len(ids)
        assert len(set(ids)) == len(ids)


class TestSplit:
    """split"""

    def test_split_after(self):
        t = tree.split(TerminalTile("a"), "a", TerminalTile("b"), H)
        assert t == SplitTile(H, TerminalTile("a"), TerminalTile("b"))

    def test_split_before(self):
        t = tree.split(TerminalTile("a"), "a", EditorTile("e"), V, Placement.BEFORE)
        assert t == SplitTile(V, EditorTile("e"), TerminalTile("a"))

    def test_split_nested_target(self):
        t = SplitTile(H, TerminalTile("a"), TerminalTile("b"))
        result = tree.split(t, "b", TerminalTile("c"), V)
        assert result == SplitTile(H, TerminalTile("a"), SplitTile(V, TerminalTile("b"), TerminalTile("c")))
        assert result.left is t.left

    def test_missing_target_raises(self):
        with pytest.raises(LeafNotFoundError):
            tree.split(TerminalTile("a"), "zzz", TerminalTile("b"), H)

    def test_duplicate_leaf_raises(self):
        with pytest.raises(ValueError):
            tree.split(TerminalTile("a"), "a", TerminalTile("a"), H)

    @pytest.mark.parametrize("t", sample_trees())
    def test_remove_undoes_split(self, t):
        """remove(split(t, id, leaf), leaf id) == t"""
        for target in tree.collect_leaf_ids(t):
            for placement in Placement:
                grown = tree.split(t, target, TerminalTile("new"), V, placement)
                assert tree.remove(grown, "new") == t


class TestRemove:
    """remove"""

    def test_remove_sole_leaf(self):
        assert tree.remove(TerminalTile("a"), "a") is None

    def test_remove_promotes_sibling_subtree(self):
        sibling = SplitTile(V, TerminalTile("b"), EditorTile("e"))
        t = SplitTile(H, TerminalTile("a"), sibling)
        assert tree.remove(t, "a") is sibling

    def test_remove_missing_is_noop(self):
        t = SplitTile(H, TerminalTile("a"), TerminalTile("b"))
        assert tree.remove(t, "zzz") is t


class TestSwap:
    """swap"""

    def test_swap_leaves(self):
        t = SplitTile(H, TerminalTile("a"), SplitTile(V, EditorTile("e"), TerminalTile("b")))
        assert tree.swap(t, "a", "b") == SplitTile(H, TerminalTile("b"), SplitTile(V, EditorTile("e"), TerminalTile("a")))

    @pytest.mark.parametrize("t", sample_trees())
    def test_swap_is_involution(self, t):
        ids = tree.collect_leaf_ids(t)
        for a in ids:
            for b in ids:
                assert tree.swap(tree.swap(t, a, b), a, b) == t

    def test_swap_missing_is_noop(self):
        t = SplitTile(H, TerminalTile("a"), TerminalTile("b"))
        assert tree.swap(t, "a", "zzz") is t
        assert tree.swap(t, "a", "a") is t


class TestSerialization:
    """to_dict / from_dict"""

    def test_shape(self):
        t = SplitTile(H, TerminalTile("a"), EditorTile("e"))
        assert tree.to_dict(t) == {
            "type": "split",
            "direction": "horizontal",
            "children": [
                {"type": "terminal", "terminal_id": "a"},
                {"type": "editor", "path": "e"},
            ],
        }

    def test_from_dict(self):
        t = sample_trees()[3]
        assert tree.from_dict(tree.to_dict(t)) == t

    def test_from_dict_rejects_bad_input(self):
        with pytest.raises(ValueError):
            tree.from_dict({"type": "window"})
        with pytest.raises(ValueError):
            tree.from_dict({"type": "split", "direction": "horizontal", "children": []})
