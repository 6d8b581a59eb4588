"""Net Edit History — linear undo/redo over net definitions and edge net tags.

Snapshots hold deep copies of ``{nets, edges}``; node topology is outside
this log. Not safe for concurrent writers: callers serialise access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from sld.schemas.diagram import DiagramEdge, Net

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    nets: tuple[Net, ...]
    edges: tuple[DiagramEdge, ...]

    @classmethod
    def capture(cls, nets: Sequence[Net], edges: Sequence[DiagramEdge]) -> "Snapshot":
        return cls(
            nets=tuple(n.model_copy(deep=True) for n in nets),
            edges=tuple(e.model_copy(deep=True) for e in edges),
        )

    def restore(self) -> tuple[list[Net], list[DiagramEdge]]:
        """Fresh mutable copies, so applying a snapshot never aliases history."""
        return (
            [n.model_copy(deep=True) for n in self.nets],
            [e.model_copy(deep=True) for e in self.edges],
        )


@dataclass
class NetHistory:
    past: list[Snapshot] = field(default_factory=list)
    future: list[Snapshot] = field(default_factory=list)

    @property
    def can_undo(self) -> bool:
        return len(self.past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.future) > 0

    def state(self) -> dict[str, bool]:
        return {"can_undo": self.can_undo, "can_redo": self.can_redo}

    def record(self, nets: Sequence[Net], edges: Sequence[DiagramEdge]) -> None:
        """Push the pre-mutation state and drop the redo branch."""
        self.past.append(Snapshot.capture(nets, edges))
        self.future.clear()

    def undo(
        self, nets: Sequence[Net], edges: Sequence[DiagramEdge]
    ) -> Snapshot | None:
        if not self.past:
            return None
        last = self.past.pop()
        self.future.append(Snapshot.capture(nets, edges))
        logger.debug("net undo: past=%d future=%d", len(self.past), len(self.future))
        return last

    def redo(
        self, nets: Sequence[Net], edges: Sequence[DiagramEdge]
    ) -> Snapshot | None:
        if not self.future:
            return None
        nxt = self.future.pop()
        self.past.append(Snapshot.capture(nets, edges))
        logger.debug("net redo: past=%d future=%d", len(self.past), len(self.future))
        return nxt

    def clear(self) -> None:
        self.past.clear()
        self.future.clear()
