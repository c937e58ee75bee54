"""
Story records and the story tree.
"""

from spacemig.core.content.models import ContentRecord, ContentTreeNode, FetchStoriesResult
from spacemig.core.content.tree import build_tree, count_nodes, sort_tree

__all__ = [
    "ContentRecord",
    "ContentTreeNode",
    "FetchStoriesResult",
    "build_tree",
    "count_nodes",
    "sort_tree",
]
