"""Project IO — load-time integrity checks and diagram conversion.

Parsing fails hard on structural problems (unsupported schema version,
missing sections, duplicate or unknown net ids) because continuing would
corrupt the edge→net assignment.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from sld.config import get_settings
from sld.ratings.normalizer import DEFAULT_RATINGS
from sld.schemas.diagram import (
    BlockType,
    DiagramEdge,
    DiagramNode,
    Net,
    Port,
    Position,
)
from sld.schemas.project import (
    Connection,
    Layout,
    LayoutBlock,
    Project,
    ProjectMeta,
)
from sld.validation.summary import node_to_block

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("meta", "nets", "blocks", "connections", "layout")

BLOCK_WIDTH = 160
BLOCK_HEIGHT = 80


class ProjectLoadError(ValueError):
    """Raised when a project document fails load-time integrity checks."""


def _check_integrity(data: Mapping[str, Any]) -> None:
    version = data.get("schema_version")
    expected = get_settings().schema_version
    if version != expected:
        raise ProjectLoadError(f"Unsupported schema_version: {version or 'unknown'}")

    missing = [key for key in REQUIRED_SECTIONS if data.get(key) is None]
    if missing:
        raise ProjectLoadError(
            f"Missing required fields in project.json: {', '.join(missing)}"
        )

    net_ids: set[str] = set()
    for net in data["nets"]:
        net_id = net.get("id") if isinstance(net, Mapping) else None
        if not net_id:
            raise ProjectLoadError("Net id is required")
        if net_id in net_ids:
            raise ProjectLoadError(f"Duplicate net id found: {net_id}")
        net_ids.add(net_id)

    for idx, conn in enumerate(data["connections"]):
        if not isinstance(conn, Mapping) or "net" not in conn:
            raise ProjectLoadError(f"Connection at index {idx} is missing 'net'")
        net = conn["net"]
        if net is not None and not isinstance(net, str):
            raise ProjectLoadError(f"Connection at index {idx} has invalid net value")
        if isinstance(net, str) and net not in net_ids:
            raise ProjectLoadError(f"Connection references unknown net id: {net}")


def parse_project(source: str | bytes | Mapping[str, Any]) -> Project:
    """Parse and integrity-check a project document."""
    if isinstance(source, (str, bytes)):
        try:
            data = json.loads(source)
        except json.JSONDecodeError as e:
            raise ProjectLoadError(f"Invalid JSON: {e}") from e
    else:
        data = source

    if not isinstance(data, Mapping):
        raise ProjectLoadError("Project document must be a JSON object")

    _check_integrity(data)

    try:
        project = Project.model_validate(data)
    except ValidationError as e:
        raise ProjectLoadError(f"Invalid project document: {e}") from e

    logger.info(
        "Loaded project '%s': %d blocks, %d nets, %d connections",
        project.meta.title,
        len(project.blocks),
        len(project.nets),
        len(project.connections),
    )
    return project


def serialize_project(project: Project) -> str:
    return json.dumps(project.model_dump(mode="json", by_alias=True), indent=2)


def create_empty_project() -> Project:
    return Project(
        schema_version=get_settings().schema_version,
        meta=ProjectMeta(),
        nets=[],
        blocks=[],
        connections=[],
        layout=Layout(),
    )


# ─── Diagram ↔ Project ───


def project_to_diagram(
    project: Project,
) -> tuple[list[DiagramNode], list[DiagramEdge], list[Net]]:
    nodes: list[DiagramNode] = []
    for idx, block in enumerate(project.blocks):
        layout = project.layout.blocks.get(block.id)
        position = (
            Position(x=layout.x, y=layout.y)
            if layout
            else Position(x=100 + idx * 80, y=100)
        )
        nodes.append(
            DiagramNode(
                id=block.id,
                type=BlockType(block.type),
                label=block.name,
                rating=block.rating.model_dump(by_alias=True, exclude_none=True),
                position=position,
            )
        )

    edges = [
        DiagramEdge(
            id=conn.label or f"edge-{idx + 1}",
            source=conn.source_block,
            target=conn.target_block,
            source_port=conn.source_port,
            target_port=conn.target_port,
            net_id=conn.net,
            label=conn.label,
        )
        for idx, conn in enumerate(project.connections)
    ]

    nets = [net.model_copy(deep=True) for net in project.nets]
    return nodes, edges, nets


def _ports_for(block_type: BlockType) -> list[Port]:
    ports = [Port(id="in", role="power_in", direction="in")]
    if block_type != BlockType.LOAD:
        ports.append(Port(id="out", role="power_out", direction="out"))
    return ports


def diagram_to_project(
    nodes: Sequence[DiagramNode],
    edges: Sequence[DiagramEdge],
    nets: Sequence[Net],
    meta: ProjectMeta | None = None,
) -> Project:
    """Export editor collections into a project document.

    Untyped nodes are written as passive blocks; missing or incomplete
    ratings fall back to the type defaults.
    """
    blocks = []
    layout = Layout()
    for node in nodes:
        block_type = node.type or BlockType.PASSIVE
        candidate = node.model_copy(update={"type": block_type})
        block = node_to_block(candidate)
        if block is None:
            block = node_to_block(
                candidate.model_copy(update={"rating": DEFAULT_RATINGS[block_type]})
            )
        block = block.model_copy(update={"ports": _ports_for(block_type)})
        blocks.append(block)
        layout.blocks[node.id] = LayoutBlock(
            x=node.position.x, y=node.position.y, w=BLOCK_WIDTH, h=BLOCK_HEIGHT
        )

    connections = [
        Connection(
            from_=f"{edge.source}:{edge.source_port or 'out'}",
            to=f"{edge.target}:{edge.target_port or 'in'}",
            net=edge.net_id,
            label=edge.label or edge.id or f"conn-{idx + 1}",
        )
        for idx, edge in enumerate(edges)
    ]

    return Project(
        schema_version=get_settings().schema_version,
        meta=meta or ProjectMeta(),
        nets=[net.model_copy(deep=True) for net in nets],
        blocks=blocks,
        connections=connections,
        layout=layout,
    )
