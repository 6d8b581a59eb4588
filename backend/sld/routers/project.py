"""Project router — parse and export project documents. Nothing is stored."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status

from sld.schemas.diagram import Diagram
from sld.schemas.project import Project
from sld.services.project_io import (
    ProjectLoadError,
    create_empty_project,
    diagram_to_project,
    parse_project,
    project_to_diagram,
)

router = APIRouter()


@router.get("/empty", response_model=Project, response_model_by_alias=True)
async def empty_project():
    return create_empty_project()


@router.post("/parse", response_model=Diagram)
async def parse(document: dict[str, Any]):
    """Integrity-check a project document and return the editable diagram."""
    try:
        project = parse_project(document)
    except ProjectLoadError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
    nodes, edges, nets = project_to_diagram(project)
    return Diagram(nodes=nodes, edges=edges, nets=nets)


@router.post("/export", response_model=Project, response_model_by_alias=True)
async def export(diagram: Diagram):
    """Convert editor collections into a project document."""
    return diagram_to_project(diagram.nodes, diagram.edges, diagram.nets)
