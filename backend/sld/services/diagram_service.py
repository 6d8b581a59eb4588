"""Diagram session — the editing layer over nodes, edges and nets.

Every net-affecting mutation records a history snapshot *before* it applies
its change. Edge creation goes through the cycle guard first; refused edges
are dropped without a diagnostic.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sld.graph.guard import would_create_cycle
from sld.history.net_history import NetHistory, Snapshot
from sld.ratings.normalizer import apply_rating_field, to_phase
from sld.schemas.diagram import (
    BlockType,
    DiagramEdge,
    DiagramNode,
    Net,
    Position,
)
from sld.schemas.validation import ValidationSummary
from sld.validation.summary import default_net, summarize_diagram

logger = logging.getLogger(__name__)

_NET_ATTRIBUTES = frozenset({"kind", "voltage", "phase", "label", "tolerance"})


def demo_diagram() -> tuple[list[DiagramNode], list[DiagramEdge]]:
    """Source → breaker → load, the diagram a new session opens with."""
    nodes = [
        DiagramNode(
            id="source",
            type=BlockType.CONVERTER,
            label="Power Source (Converter)",
            rating={"in": {"V_in": 200, "phase_in": 1}, "out": {"V_out": 24, "phase_out": 0}},
            position=Position(x=150, y=120),
        ),
        DiagramNode(
            id="breaker",
            type=BlockType.PASSIVE,
            label="Breaker",
            rating={"V_max": 250, "I_max": 20, "phase": 1},
            position=Position(x=450, y=120),
        ),
        DiagramNode(
            id="load",
            type=BlockType.LOAD,
            label="Load",
            rating={"V_in": 200, "phase": 1, "I_in": 5},
            position=Position(x=750, y=120),
        ),
    ]
    edges = [
        DiagramEdge(id="e1-2", source="source", target="breaker"),
        DiagramEdge(id="e2-3", source="breaker", target="load"),
    ]
    return nodes, edges


class DiagramSession:
    def __init__(
        self,
        nodes: Sequence[DiagramNode] | None = None,
        edges: Sequence[DiagramEdge] | None = None,
        nets: Sequence[Net] | None = None,
    ):
        self.nodes: list[DiagramNode] = list(nodes or [])
        self.edges: list[DiagramEdge] = list(edges or [])
        self.nets: list[Net] = list(nets) if nets is not None else [default_net()]
        self.history = NetHistory()
        self._edge_counter = len(self.edges)

    @classmethod
    def demo(cls) -> "DiagramSession":
        nodes, edges = demo_diagram()
        return cls(nodes=nodes, edges=edges)

    # ─── Lookup ───

    def get_net(self, net_id: str) -> Net | None:
        return next((n for n in self.nets if n.id == net_id), None)

    def get_edge(self, edge_id: str) -> DiagramEdge | None:
        return next((e for e in self.edges if e.id == edge_id), None)

    def get_node(self, node_id: str) -> DiagramNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def net_edge_counts(self) -> dict[str, int]:
        counts = {net.id: 0 for net in self.nets}
        for edge in self.edges:
            if edge.net_id:
                counts[edge.net_id] = counts.get(edge.net_id, 0) + 1
        return counts

    # ─── Topology (outside net history) ───

    def add_node(self, node: DiagramNode) -> DiagramNode:
        self.nodes.append(node)
        return node

    def update_node_rating(
        self,
        node_id: str,
        field: str,
        value: float | None,
        scope: str | None = None,
    ) -> bool:
        node = self.get_node(node_id)
        if node is None or node.type is None:
            return False
        node.rating = apply_rating_field(node.type, node.rating, field, value, scope)
        return True

    def connect(
        self,
        source: str | None,
        target: str | None,
        source_port: str | None = None,
        target_port: str | None = None,
        net_id: str | None = None,
    ) -> DiagramEdge | None:
        """Commit a new edge unless it would close a cycle."""
        if would_create_cycle(self.edges, source, target):
            logger.debug("Rejected edge %s -> %s", source, target)
            return None
        self._edge_counter += 1
        edge_id = f"e-{source}-{target}-{self._edge_counter}"
        edge = DiagramEdge(
            id=edge_id,
            source=source,
            target=target,
            source_port=source_port,
            target_port=target_port,
            net_id=net_id,
        )
        self.edges.append(edge)
        return edge

    def delete_items(self, node_ids: Sequence[str], edge_ids: Sequence[str]) -> None:
        drop_nodes = set(node_ids)
        drop_edges = set(edge_ids)
        self.nodes = [n for n in self.nodes if n.id not in drop_nodes]
        self.edges = [
            e
            for e in self.edges
            if e.id not in drop_edges
            and e.source not in drop_nodes
            and e.target not in drop_nodes
        ]

    # ─── Net edits (recorded) ───

    def _record(self) -> None:
        self.history.record(self.nets, self.edges)

    def _next_net_id(self) -> str:
        # net-{count+1}; assumes a single writer per session
        existing = {n.id for n in self.nets}
        n = len(self.nets) + 1
        while f"net-{n}" in existing:
            n += 1
        return f"net-{n}"

    def add_net(self, **attrs: Any) -> str:
        net_id = self._next_net_id()
        base = default_net()
        values = base.model_dump(exclude={"id"})
        values["label"] = f"Net {net_id.split('-', 1)[1]}"
        values.update({k: v for k, v in attrs.items() if k in _NET_ATTRIBUTES})
        net = Net(id=net_id, **values)

        self._record()
        self.nets.append(net)
        logger.info("Added net %s (%s)", net.id, net.label)
        return net_id

    def update_net_label(self, net_id: str, label: str) -> bool:
        return self.update_net_attributes(net_id, label=label)

    def update_net_attributes(self, net_id: str, **updates: Any) -> bool:
        net = self.get_net(net_id)
        if net is None:
            return False

        # Only tolerance may be cleared with None
        changes = {
            k: v
            for k, v in updates.items()
            if k in _NET_ATTRIBUTES and (v is not None or k == "tolerance")
        }
        if "phase" in changes:
            phase = to_phase(changes.pop("phase"))
            if phase is not None:
                changes["phase"] = phase
        if not changes:
            return False

        updated = Net.model_validate({**net.model_dump(), **changes})
        self._record()
        self.nets = [updated if n.id == net_id else n for n in self.nets]
        return True

    def update_edge_net(self, edge_id: str, net_id: str | None) -> bool:
        edge = self.get_edge(edge_id)
        if edge is None:
            return False
        if net_id is not None and self.get_net(net_id) is None:
            return False

        self._record()
        self.edges = [
            e.model_copy(update={"net_id": net_id}) if e.id == edge_id else e
            for e in self.edges
        ]
        return True

    def remove_net(self, net_id: str) -> bool:
        """Delete a net. Refused while any edge still references it."""
        if self.get_net(net_id) is None:
            return False
        if any(e.net_id == net_id for e in self.edges):
            logger.info("Net %s still referenced by edges; not removed", net_id)
            return False

        self._record()
        self.nets = [n for n in self.nets if n.id != net_id]
        return True

    def _apply(self, snapshot: Snapshot) -> None:
        self.nets, self.edges = snapshot.restore()

    def undo_net_action(self) -> bool:
        snapshot = self.history.undo(self.nets, self.edges)
        if snapshot is None:
            return False
        self._apply(snapshot)
        return True

    def redo_net_action(self) -> bool:
        snapshot = self.history.redo(self.nets, self.edges)
        if snapshot is None:
            return False
        self._apply(snapshot)
        return True

    # ─── Whole-diagram ───

    def replace_diagram(
        self,
        nodes: Sequence[DiagramNode],
        edges: Sequence[DiagramEdge],
        nets: Sequence[Net],
    ) -> None:
        self.nodes = list(nodes)
        self.edges = list(edges)
        self.nets = list(nets)
        self._edge_counter = len(self.edges)
        self.history.clear()

    def validate(self) -> ValidationSummary:
        return summarize_diagram(self.nodes, self.edges, self.nets)
