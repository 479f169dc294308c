"""Pane layout tree

An immutable binary tree over opaque leaf ids. A leaf is either a
terminal tile or an editor tile; inner nodes split their area in two.
Every function returns a new tree and never mutates its input. The tree
knows nothing about what a leaf id refers to.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class Direction(str, Enum):
    """Split orientation: horizontal = side by side, vertical = stacked"""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Placement(str, Enum):
    """Where a new leaf goes relative to the split target"""
    BEFORE = "before"
    AFTER = "after"


class LeafNotFoundError(KeyError):
    """split() target is not a leaf of the tree"""


@dataclass(frozen=True)
class TerminalTile:
    terminal_id: str

    @property
    def leaf_id(self) -> str:
        return self.terminal_id


@dataclass(frozen=True)
class EditorTile:
    path: str

    @property
    def leaf_id(self) -> str:
        return self.path


@dataclass(frozen=True)
class SplitTile:
    direction: Direction
    left: "TileNode"
    right: "TileNode"


TileNode = TerminalTile | EditorTile | SplitTile
Leaf = TerminalTile | EditorTile


def leaf_id(node: TileNode) -> str | None:
    """Leaf id of a terminal/editor tile, None for a split"""
    if isinstance(node, SplitTile):
        return None
    return node.leaf_id


def iter_leaves(tree: TileNode) -> Iterator[Leaf]:
    """Yield leaves left to right, depth first."""
    if isinstance(tree, SplitTile):
        yield from iter_leaves(tree.left)
        yield from iter_leaves(tree.right)
    else:
        yield tree


# === Queries ===

def find(tree: TileNode, id: str) -> Leaf | None:
    for leaf in iter_leaves(tree):
        if leaf.leaf_id == id:
            return leaf
    return None


def exists(tree: TileNode, id: str) -> bool:
    return find(tree, id) is not None


def collect_leaf_ids(tree: TileNode) -> list[str]:
    """All leaf ids in reading order; the first one is the fallback focus."""
    return [leaf.leaf_id for leaf in iter_leaves(tree)]


def collect_terminal_ids(tree: TileNode) -> list[str]:
    return [leaf.leaf_id for leaf in iter_leaves(tree) if isinstance(leaf, TerminalTile)]


def collect_editor_ids(tree: TileNode) -> list[str]:
    return [leaf.leaf_id for leaf in iter_leaves(tree) if isinstance(leaf, EditorTile)]


def count_leaves(tree: TileNode) -> int:
    if isinstance(tree, SplitTile):
        return count_leaves(tree.left) + count_leaves(tree.right)
    return 1


# === Mutations (return new trees) ===

def replace(tree: TileNode, id: str, replacement: TileNode) -> TileNode:
    """Replace the leaf ``id`` with ``replacement``; unchanged if absent."""
    if isinstance(tree, SplitTile):
        left = replace(tree.left, id, replacement)
        right = replace(tree.right, id, replacement)
        if left is tree.left and right is tree.right:
            return tree
        return SplitTile(tree.direction, left, right)
    return replacement if tree.leaf_id == id else tree


def split(
    tree: TileNode,
    target_id: str,
    new_leaf: Leaf,
    direction: Direction,
    placement: Placement = Placement.AFTER,
) -> TileNode:
    """Wrap the target leaf in a split together with ``new_leaf``.

    Raises:
        LeafNotFoundError: ``target_id`` is not in the tree
        ValueError: ``new_leaf`` id is already in the tree
    """
    target = find(tree, target_id)
    if target is None:
        raise LeafNotFoundError(target_id)
    if exists(tree, new_leaf.leaf_id):
        raise ValueError(f"leaf {new_leaf.leaf_id!r} already in tree")

    direction = Direction(direction)
    if Placement(placement) is Placement.BEFORE:
        node = SplitTile(direction, new_leaf, target)
    else:
        node = SplitTile(direction, target, new_leaf)
    return replace(tree, target_id, node)


def remove(tree: TileNode, id: str) -> TileNode | None:
    """Remove the leaf ``id``.

    A split that loses a child is replaced by the surviving child.

    Returns:
        the pruned tree, or None when the tree was the single leaf ``id``
    """
    if not isinstance(tree, SplitTile):
        return None if tree.leaf_id == id else tree

    left = remove(tree.left, id)
    right = remove(tree.right, id)
    if left is None:
        return right
    if right is None:
        return left
    if left is tree.left and right is tree.right:
        return tree
    return SplitTile(tree.direction, left, right)


def swap(tree: TileNode, id_a: str, id_b: str) -> TileNode:
    """Exchange the positions of two leaves; no-op if either is missing."""
    node_a = find(tree, id_a)
    node_b = find(tree, id_b)
    if node_a is None or node_b is None or id_a == id_b:
        return tree
    return _swap(tree, node_a, node_b)


def _swap(tree: TileNode, node_a: Leaf, node_b: Leaf) -> TileNode:
    if isinstance(tree, SplitTile):
        return SplitTile(tree.direction, _swap(tree.left, node_a, node_b), _swap(tree.right, node_a, node_b))
    if tree.leaf_id == node_a.leaf_id:
        return node_b
    if tree.leaf_id == node_b.leaf_id:
        return node_a
    return tree


# === Serialization ===

def to_dict(tree: TileNode) -> dict:
    if isinstance(tree, SplitTile):
        return {
            "type": "split",
            "direction": tree.direction.value,
            "children": [to_dict(tree.left), to_dict(tree.right)],
        }
    if isinstance(tree, TerminalTile):
        return {"type": "terminal", "terminal_id": tree.terminal_id}
    return {"type": "editor", "path": tree.path}


def from_dict(data: dict) -> TileNode:
    """Inverse of to_dict.

    Raises:
        ValueError: unknown node type or malformed split
    """
    kind = data.get("type")
    if kind == "terminal":
        return TerminalTile(data["terminal_id"])
    if kind == "editor":
        return EditorTile(data["path"])
    if kind == "split":
        children = data.get("children") or []
        if len(children) != 2:
            raise ValueError("split node needs exactly two children")
        return SplitTile(Direction(data["direction"]), from_dict(children[0]), from_dict(children[1]))
    raise ValueError(f"unknown tile type: {kind!r}")
