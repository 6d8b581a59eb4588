"""Diagram data model: blocks, nets, edges and editor-side nodes."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 0 = DC, 1 = single-phase, 3 = three-phase
Phase = Literal[0, 1, 3]


class BlockType(str, Enum):
    PASSIVE = "passive"
    LOAD = "load"
    CONVERTER = "converter"


class NetKind(str, Enum):
    AC = "AC"
    DC = "DC"
    SIGNAL = "SIGNAL"


class Port(BaseModel):
    id: str
    role: Literal["power_in", "power_out", "pass_through"]
    direction: Literal["in", "out"]


# ─── Ratings ───


class PassiveRating(BaseModel):
    V_max: float
    I_max: float
    phase: Phase


class LoadRating(BaseModel):
    V_in: float
    phase: Phase
    I_in: float | None = None
    P_in: float | None = None


class ConverterInput(BaseModel):
    V_in: float
    phase_in: Phase
    I_in_max: float | None = None
    P_in_max: float | None = None


class ConverterOutput(BaseModel):
    V_out: float
    phase_out: Phase
    I_out_max: float | None = None
    P_out_max: float | None = None


class ConverterRating(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_: ConverterInput = Field(alias="in")
    out: ConverterOutput
    eta: float | None = None


# ─── Blocks (tagged union on `type`) ───


class _BlockBase(BaseModel):
    id: str
    name: str
    ports: list[Port] = Field(default_factory=list)
    props: dict[str, str] = Field(default_factory=dict)
    part_id: str | None = None


class PassiveBlock(_BlockBase):
    type: Literal["passive"] = "passive"
    rating: PassiveRating


class LoadBlock(_BlockBase):
    type: Literal["load"] = "load"
    rating: LoadRating


class ConverterBlock(_BlockBase):
    type: Literal["converter"] = "converter"
    rating: ConverterRating

    @field_validator("rating", mode="before")
    @classmethod
    def _complete_rating(cls, value):
        # Partial converter ratings are completed with defaults on read.
        from sld.ratings.normalizer import ensure_converter_rating

        return ensure_converter_rating(value)


Block = Annotated[
    Union[PassiveBlock, LoadBlock, ConverterBlock],
    Field(discriminator="type"),
]


# ─── Nets and wiring ───


class Net(BaseModel):
    id: str
    kind: NetKind = NetKind.AC
    voltage: float
    phase: Phase
    label: str
    tolerance: float | None = None  # percent, valid range 0-100


class DiagramEdge(BaseModel):
    id: str
    source: str
    target: str
    source_port: str | None = None
    target_port: str | None = None
    net_id: str | None = None
    label: str | None = None


class Position(BaseModel):
    x: float = 0
    y: float = 0


class DiagramNode(BaseModel):
    """Editor-side node. Type and rating may be missing while the user edits."""

    id: str
    type: BlockType | None = None
    label: str | None = None
    rating: dict | None = None
    position: Position = Field(default_factory=Position)


class Diagram(BaseModel):
    nodes: list[DiagramNode] = Field(default_factory=list)
    edges: list[DiagramEdge] = Field(default_factory=list)
    nets: list[Net] = Field(default_factory=list)
