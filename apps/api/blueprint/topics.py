from __future__ import annotations

from typing import Iterator

from .schemas import ContentPolicy, TopicNode


TopicPath = tuple[str, ...]

PATH_SEPARATOR = " > "


def topic_query(path: TopicPath) -> str:
    return PATH_SEPARATOR.join(path)


class TopicWalk:
    """
    Pre-order walk over a topic tree yielding ``(path, node)`` pairs.

    Parents come before their children and siblings keep their given order.
    An explicit stack is used so arbitrarily deep trees do not hit the
    recursion limit. Iterating the same walk twice starts over from the root.
    """

    def __init__(self, root: TopicNode) -> None:
        self.root = root

    def __iter__(self) -> Iterator[tuple[TopicPath, TopicNode]]:
        stack: list[tuple[TopicPath, TopicNode]] = [((self.root.name,), self.root)]
        while stack:
            path, node = stack.pop()
            yield path, node
            for child in reversed(node.children):
                stack.append((path + (child.name,), child))


def is_content_node(node: TopicNode, policy: ContentPolicy) -> bool:
    if policy == ContentPolicy.all:
        return True
    return node.is_leaf


def content_topics(root: TopicNode, policy: ContentPolicy) -> list[tuple[TopicPath, TopicNode]]:
    """Distinct paths that need synthesized text under ``policy``, in walk order."""
    seen: set[TopicPath] = set()
    topics: list[tuple[TopicPath, TopicNode]] = []
    for path, node in TopicWalk(root):
        if not is_content_node(node, policy) or path in seen:
            continue
        seen.add(path)
        topics.append((path, node))
    return topics
