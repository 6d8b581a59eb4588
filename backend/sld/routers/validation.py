"""Validation router — stateless diagram, net and component checks."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from sld.schemas.diagram import Block, Diagram, Net
from sld.schemas.validation import ComponentCheck, NetCheck, ValidationSummary
from sld.validation.engine import check_component_on_net, check_net
from sld.validation.summary import summarize_diagram

router = APIRouter()


class NetValidationRequest(BaseModel):
    net: Net
    blocks: list[Block] = Field(default_factory=list)


class ComponentValidationRequest(BaseModel):
    net: Net
    block: Block


@router.post("/inline", response_model=ValidationSummary)
async def validate_inline(diagram: Diagram):
    """Validate a whole diagram without keeping any state."""
    return summarize_diagram(diagram.nodes, diagram.edges, diagram.nets)


@router.post("/net", response_model=NetCheck)
async def validate_net(request: NetValidationRequest):
    """Aggregate current on one net and check breaker capacity."""
    return check_net(request.blocks, request.net)


@router.post("/component", response_model=ComponentCheck)
async def validate_component(request: ComponentValidationRequest):
    """Check a single component against the net it sits on."""
    return check_component_on_net(request.block, request.net)
