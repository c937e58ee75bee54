"""
Flat story list to hierarchical tree.

build_tree() is pure: no network, no I/O, and identical input gives a
structurally identical forest.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from spacemig.core.content.models import ContentRecord, ContentTreeNode

logger = logging.getLogger(__name__)


def sibling_sort_key(node: ContentTreeNode) -> tuple[bool, int, str, str]:
    """Folders first, then ascending position, then case-insensitive name."""
    record = node.record
    return (not record.is_folder, record.position, record.name.casefold(), record.name)


def sort_tree(nodes: list[ContentTreeNode]) -> None:
    """Recursively sort a list of sibling nodes in place."""
    nodes.sort(key=sibling_sort_key)
    for node in nodes:
        if node.children:
            sort_tree(node.children)


def build_tree(records: Iterable[ContentRecord]) -> list[ContentTreeNode]:
    """
    Build a forest from a flat list of records.

    A record goes under its parent when the parent is part of the same
    input. Otherwise it becomes a root, including when the parent id is
    set but the parent was not included (orphan promotion). A record
    that names itself as parent is treated as a root, and so is one
    member of any longer parent cycle.

    Args:
        records: Records with unique ids

    Returns:
        Root nodes, each subtree sorted folders first, then by position,
        then by name
    """
    records = list(records)
    index: dict[int, ContentTreeNode] = {
        record.id: ContentTreeNode(record=record) for record in records
    }

    roots: list[ContentTreeNode] = []
    for record in records:
        node = index[record.id]
        parent_id = record.parent_id

        if parent_id == record.id:
            logger.warning("Story %s lists itself as parent; placing it at the root", record.id)
            roots.append(node)
            continue

        parent = index.get(parent_id) if parent_id else None
        if parent is not None:
            parent.children.append(node)
        else:
            roots.append(node)

    _break_cycles(records, index, roots)
    sort_tree(roots)
    return roots


def _break_cycles(
    records: list[ContentRecord],
    index: dict[int, ContentTreeNode],
    roots: list[ContentTreeNode],
) -> None:
    """Promote one member of every parent cycle so no record is lost."""
    reachable = {node.id for root in roots for node in root.walk()}
    if len(reachable) == len(index):
        return

    for record in records:
        if record.id in reachable:
            continue
        node = index[record.id]
        parent = index[record.parent_id]  # type: ignore[index]
        parent.children = [child for child in parent.children if child is not node]
        logger.warning("Story %s is part of a parent cycle; placing it at the root", record.id)
        roots.append(node)
        reachable.update(n.id for n in node.walk())


def count_nodes(nodes: Iterable[ContentTreeNode]) -> int:
    """Total number of nodes in a forest."""
    return sum(node.count() for node in nodes)
