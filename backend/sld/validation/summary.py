"""Diagram-wide validation summary.

Groups typed nodes by the nets their edges are tagged with, runs
:func:`check_net` per net and rolls everything up into counters for the
status bar. The net lookup is built here from the arguments and passed down
explicitly; nothing is cached between calls.
"""

from __future__ import annotations

import logging
from typing import Sequence

from pydantic import TypeAdapter, ValidationError

from sld.config import get_settings
from sld.schemas.diagram import Block, DiagramEdge, DiagramNode, Net
from sld.schemas.validation import (
    Finding,
    NetCheck,
    ValidationLevel,
    ValidationStats,
    ValidationSummary,
)
from sld.validation.engine import check_net

logger = logging.getLogger(__name__)

_block_adapter: TypeAdapter[Block] = TypeAdapter(Block)


def default_net() -> Net:
    settings = get_settings()
    return Net(
        id=settings.default_net_id,
        kind=settings.default_net_kind,
        voltage=settings.default_net_voltage,
        phase=settings.default_net_phase,
        label=settings.default_net_label,
        tolerance=settings.default_net_tolerance,
    )


def node_to_block(node: DiagramNode) -> Block | None:
    """Build a typed block from an editor node, or None if it is incomplete."""
    if node.type is None or node.rating is None:
        return None
    try:
        return _block_adapter.validate_python(
            {
                "id": node.id,
                "type": node.type.value,
                "name": node.label or node.id,
                "rating": node.rating,
            }
        )
    except ValidationError as e:
        logger.debug("Node %s has an incomplete rating: %s", node.id, e)
        return None


def _dedupe(findings: list[Finding]) -> list[Finding]:
    seen: set[str] = set()
    unique: list[Finding] = []
    for finding in findings:
        if finding.id in seen:
            continue
        seen.add(finding.id)
        unique.append(finding)
    return unique


def summarize_diagram(
    nodes: Sequence[DiagramNode],
    edges: Sequence[DiagramEdge],
    nets: Sequence[Net],
) -> ValidationSummary:
    """Validate the whole diagram and count errors, warnings and loose ends."""
    findings: list[Finding] = []
    label_lookup: dict[str, str] = {}
    net_map: dict[str, Net] = {net.id: net for net in nets}
    fallback = default_net()

    node_nets: dict[str, list[str]] = {}
    invalid_refs: list[str] = []
    referenced: set[str] = set()
    unassigned = 0

    for edge in edges:
        if not edge.net_id:
            unassigned += 1
            continue
        if edge.net_id not in net_map and edge.net_id not in invalid_refs:
            invalid_refs.append(edge.net_id)
        referenced.add(edge.net_id)
        for node_id in (edge.source, edge.target):
            attached = node_nets.setdefault(node_id, [])
            if edge.net_id not in attached:
                attached.append(edge.net_id)

    net_blocks: dict[str, list[Block]] = {}
    first_net_id = nets[0].id if nets else fallback.id

    for node in nodes:
        label_lookup[node.id] = node.label or node.id
        block = node_to_block(node)
        if block is None:
            findings.append(
                Finding(
                    level=ValidationLevel.WARN,
                    message="Missing type or rating",
                    target_id=node.id,
                )
            )
            continue
        for net_id in node_nets.get(node.id) or [first_net_id]:
            net_blocks.setdefault(net_id, []).append(block)

    for net_id in invalid_refs:
        findings.append(
            Finding(
                level=ValidationLevel.WARN,
                message=f"Edge references missing net: {net_id}",
            )
        )

    net_checks: list[NetCheck] = []
    uncertain = 0
    for net_id, blocks in net_blocks.items():
        net = net_map.get(net_id, fallback)
        result = check_net(blocks, net)
        net_checks.append(result)
        findings.extend(result.findings)
        uncertain += result.uncertain_load_count

    findings = _dedupe(findings)
    stats = ValidationStats(
        errors=sum(1 for f in findings if f.level == ValidationLevel.ERROR),
        warnings=sum(1 for f in findings if f.level == ValidationLevel.WARN),
        uncertain_loads=uncertain,
        nets=len(nets) or 1,
        unassigned_edges=unassigned,
        orphan_nets=sum(1 for net in nets if net.id not in referenced),
    )
    logger.debug(
        "Diagram summary: %d errors, %d warnings over %d nets",
        stats.errors,
        stats.warnings,
        len(net_checks),
    )

    return ValidationSummary(
        findings=findings,
        stats=stats,
        label_lookup=label_lookup,
        net_checks=net_checks,
    )
