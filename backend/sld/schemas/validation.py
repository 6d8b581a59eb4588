from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field, computed_field


class ValidationLevel(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


class Finding(BaseModel):
    level: ValidationLevel
    message: str
    target_id: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        """Stable key so identical findings collapse downstream."""
        raw = f"{self.level.value}-{self.target_id or 'global'}-{self.message}"
        return re.sub(r"\s+", "-", raw)


class ComponentCheck(BaseModel):
    findings: list[Finding] = Field(default_factory=list)
    derived_current: float | None = None


class NetCheck(BaseModel):
    net_id: str
    findings: list[Finding] = Field(default_factory=list)
    total_current: float = 0.0
    uncertain_load_count: int = 0


class ValidationStats(BaseModel):
    errors: int = 0
    warnings: int = 0
    uncertain_loads: int = 0
    nets: int = 0
    unassigned_edges: int = 0
    orphan_nets: int = 0


class ValidationSummary(BaseModel):
    findings: list[Finding] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)
    label_lookup: dict[str, str] = Field(default_factory=dict)
    net_checks: list[NetCheck] = Field(default_factory=list)
