"""Graph Guard — keeps the directed wiring graph acyclic.

Called by the editing layer right before an edge is committed. Never raises:
a refused edge is simply reported as ``True`` (would create a cycle).
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from sld.schemas.diagram import DiagramEdge


def _adjacency(edges: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    adjacency: dict[str, list[str]] = defaultdict(list)
    for source, target in edges:
        adjacency[source].append(target)
    return adjacency


def _pairs(edges: Iterable[DiagramEdge]) -> list[tuple[str, str]]:
    return [(e.source, e.target) for e in edges]


def has_path(edges: Iterable[DiagramEdge], start: str, goal: str) -> bool:
    """Depth-first reachability from ``start`` to ``goal`` along edge direction."""
    return _reachable(_adjacency(_pairs(edges)), start, goal)


def _reachable(adjacency: dict[str, list[str]], start: str, goal: str) -> bool:
    visited: set[str] = set()
    stack = [start]
    while stack:
        node = stack.pop()
        if node in visited:
            continue
        if node == goal:
            return True
        visited.add(node)
        stack.extend(adjacency.get(node, ()))
    return False


def would_create_cycle(
    existing_edges: Iterable[DiagramEdge],
    source_id: str | None,
    target_id: str | None,
) -> bool:
    """Return True if adding ``source_id -> target_id`` must be rejected."""
    if not source_id or not target_id:
        return True
    if source_id == target_id:
        return True
    pairs = _pairs(existing_edges)
    pairs.append((source_id, target_id))
    return _reachable(_adjacency(pairs), target_id, source_id)
