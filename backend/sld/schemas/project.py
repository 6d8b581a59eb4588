"""Pydantic schemas for the persisted project document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from sld.schemas.diagram import Block, Net


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectMeta(BaseModel):
    title: str = "Untitled"
    created_at: str = Field(default_factory=_now)  # ISO8601
    updated_at: str = Field(default_factory=_now)  # ISO8601
    author: str = "unknown"
    description: str | None = None


class Connection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from", pattern=r"^[^:]+:[^:]+$")  # blockId:portId
    to: str = Field(pattern=r"^[^:]+:[^:]+$")
    net: str | None  # required key, null means unassigned
    label: str | None = None

    @property
    def source_block(self) -> str:
        return self.from_.split(":", 1)[0]

    @property
    def source_port(self) -> str:
        return self.from_.split(":", 1)[1]

    @property
    def target_block(self) -> str:
        return self.to.split(":", 1)[0]

    @property
    def target_port(self) -> str:
        return self.to.split(":", 1)[1]


class LayoutBlock(BaseModel):
    x: float
    y: float
    w: float
    h: float
    rotation: float = 0


class LayoutEdge(BaseModel):
    routing: Literal["orthogonal"] = "orthogonal"
    points: list[tuple[float, float]] = Field(default_factory=list)


class Layout(BaseModel):
    blocks: dict[str, LayoutBlock] = Field(default_factory=dict)
    edges: dict[str, LayoutEdge] = Field(default_factory=dict)


class Project(BaseModel):
    schema_version: str
    meta: ProjectMeta
    nets: list[Net]
    blocks: list[Block]
    connections: list[Connection]
    layout: Layout
