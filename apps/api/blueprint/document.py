from __future__ import annotations

from typing import Mapping

from .schemas import PLACEHOLDER, ContentPolicy, TopicNode
from .topics import TopicPath, TopicWalk, is_content_node


def assemble_document(
    root: TopicNode,
    summaries: Mapping[TopicPath, str],
    policy: ContentPolicy = ContentPolicy.leaves,
) -> str:
    """
    Render the topic tree as one Markdown document.

    Each node becomes a heading whose level is its depth (root is ``#``),
    followed, for content nodes under ``policy``, by the text stored for its
    path. Nodes missing from ``summaries`` get the placeholder. The output only
    depends on the tree and the mapping's contents, never on how the mapping
    was filled.
    """
    parts: list[str] = []
    for path, node in TopicWalk(root):
        parts.append(f"{'#' * len(path)} {node.name}\n\n")
        if is_content_node(node, policy):
            parts.append(f"{summaries.get(path) or PLACEHOLDER}\n\n")
    return "".join(parts).strip()
