"""Prerequisite graph for the topics of a course.

Each topic gets a level (longest distance from a topic with no
prerequisites) and a position inside that level. Levels drive both
locking and the flowchart layout.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

BASE_X = 60
BASE_Y = 60
X_SPACING = 300
Y_SPACING = 150


class TopicLike(Protocol):
    id: int
    order: int
    prerequisites: list[int]


class PrerequisiteCycleError(ValueError):
    def __init__(self, topic_ids: Iterable[int]):
        self.topic_ids = sorted(set(topic_ids))
        super().__init__(f"prerequisites form a cycle through topics {self.topic_ids}")


@dataclass
class TopicNode:
    level: int = 0
    position: int = 0


def resolve_levels(topics: list[TopicLike]) -> dict[int, TopicNode]:
    """Assign level and in-level position to every topic.

    Levels are found by relaxing ``level(t) = 1 + max(level(p))`` until a
    full pass changes nothing. Prerequisites outside ``topics`` count as
    level 0. A DAG settles within ``len(topics)`` passes; if levels still
    move after one more pass the prerequisites contain a cycle and
    :class:`PrerequisiteCycleError` is raised.
    """
    graph = {t.id: TopicNode() for t in topics}

    for _ in range(len(topics) + 1):
        changed = set()
        for topic in topics:
            if not topic.prerequisites:
                continue
            max_level = max(graph[p].level if p in graph else 0 for p in topic.prerequisites)
            if graph[topic.id].level <= max_level:
                graph[topic.id].level = max_level + 1
                changed.add(topic.id)
        if not changed:
            break
    else:
        raise PrerequisiteCycleError(changed)

    next_position: dict[int, int] = {}
    for topic in sorted(topics, key=lambda t: t.order):
        node = graph[topic.id]
        node.position = next_position.get(node.level, 0)
        next_position[node.level] = node.position + 1

    logger.debug("resolved %d topics into %d levels", len(topics), len(next_position))
    return graph


def find_cycle(edges: Mapping[int, Iterable[int]]) -> list[int] | None:
    """Return one prerequisite cycle as a list of topic ids, or None.

    ``edges`` maps a topic id to the ids it depends on.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color = {node: WHITE for node in edges}

    for root in edges:
        if color[root] != WHITE:
            continue
        color[root] = GREY
        path = [root]
        # explicit stack of dependency iterators; chains can outgrow the recursion limit
        stack = [iter(edges.get(root, ()))]
        while stack:
            for dep in stack[-1]:
                state = color.get(dep, BLACK)
                if state == GREY:
                    return path[path.index(dep):]
                if state == WHITE:
                    color[dep] = GREY
                    path.append(dep)
                    stack.append(iter(edges.get(dep, ())))
                    break
            else:
                stack.pop()
                color[path.pop()] = BLACK
    return None


def is_locked(topic: TopicLike, completed_ids: set[int]) -> bool:
    return any(p not in completed_ids for p in topic.prerequisites or [])


def locked_topic_ids(topics: list[TopicLike], completed_ids: set[int]) -> set[int]:
    return {t.id for t in topics if is_locked(t, completed_ids)}


def node_position(level: int, position: int, nodes_at_level: int) -> tuple[float, float]:
    level_offset = position - (nodes_at_level - 1) / 2
    even_level_offset = Y_SPACING / 4 if level % 2 == 0 else 0
    return BASE_X + level * X_SPACING, BASE_Y + level_offset * Y_SPACING + even_level_offset


def build_flowchart(topics: list, completed_ids: set[int]) -> dict:
    graph = resolve_levels(topics)
    per_level: dict[int, int] = {}
    for node in graph.values():
        per_level[node.level] = per_level.get(node.level, 0) + 1

    nodes = []
    for topic in sorted(topics, key=lambda t: (graph[t.id].level, t.order)):
        node = graph[topic.id]
        x, y = node_position(node.level, node.position, per_level[node.level])
        nodes.append({
            "topicId": topic.id,
            "title": topic.title,
            "level": node.level,
            "position": node.position,
            "x": x,
            "y": y,
            "isLocked": is_locked(topic, completed_ids),
            "isCompleted": topic.id in completed_ids,
        })
    edges = [{"fromId": p, "toId": t.id} for t in topics for p in (t.prerequisites or [])]
    return {"nodes": nodes, "edges": edges}
