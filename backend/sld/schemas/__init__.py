from sld.schemas.diagram import (
    Block,
    BlockType,
    ConverterBlock,
    Diagram,
    DiagramEdge,
    DiagramNode,
    LoadBlock,
    Net,
    PassiveBlock,
)
from sld.schemas.validation import Finding, ValidationLevel, ValidationSummary
from sld.schemas.project import Project

__all__ = [
    "Block",
    "BlockType",
    "ConverterBlock",
    "Diagram",
    "DiagramEdge",
    "DiagramNode",
    "LoadBlock",
    "Net",
    "PassiveBlock",
    "Finding",
    "ValidationLevel",
    "ValidationSummary",
    "Project",
]
