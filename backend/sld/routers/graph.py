from fastapi import APIRouter
from pydantic import BaseModel, Field

from sld.graph.guard import would_create_cycle
from sld.schemas.diagram import DiagramEdge

router = APIRouter()


class CycleCheckRequest(BaseModel):
    edges: list[DiagramEdge] = Field(default_factory=list)
    source: str | None = None
    target: str | None = None


class CycleCheckResponse(BaseModel):
    would_create_cycle: bool


@router.post("/would-create-cycle", response_model=CycleCheckResponse)
async def check_cycle(request: CycleCheckRequest):
    """Answer whether adding source → target would close a cycle."""
    return CycleCheckResponse(
        would_create_cycle=would_create_cycle(
            request.edges, request.source, request.target
        )
    )
