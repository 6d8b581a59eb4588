"""Rating Normalizer — defaults, phase coercion and numeric text parsing.

Shared by the validator (converter ratings are completed on read) and the
editing layer (field-by-field rating edits coming from form input).
"""

from __future__ import annotations

import math
from copy import deepcopy
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Mapping

from sld.schemas.diagram import BlockType, ConverterRating, Phase

PHASES: frozenset[int] = frozenset({0, 1, 3})

CONVERTER_IN_DEFAULTS: dict[str, Any] = {"V_in": 200, "phase_in": 1}
CONVERTER_OUT_DEFAULTS: dict[str, Any] = {"V_out": 24, "phase_out": 0}

DEFAULT_RATINGS: dict[BlockType, dict[str, Any]] = {
    BlockType.PASSIVE: {"V_max": 250, "I_max": 20, "phase": 1},
    BlockType.LOAD: {"V_in": 200, "phase": 1},
    BlockType.CONVERTER: {
        "in": dict(CONVERTER_IN_DEFAULTS),
        "out": dict(CONVERTER_OUT_DEFAULTS),
    },
}


def to_phase(value: Any) -> Phase | None:
    """Map a number onto the closed phase set {0, 1, 3}, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value in PHASES:
        return int(value)  # type: ignore[return-value]
    return None


def to_number_or_none(value: str | float | int | None) -> float | None:
    """Parse user text into a number rounded to 2 decimals.

    Empty and non-numeric input is treated as absent.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    if abs(num) >= 1e15:
        return num
    # Halves round toward +inf: 0.125 -> 0.13, -0.125 -> -0.12
    cents = Decimal(str(num)) + Decimal("0.005")
    return float(cents.quantize(Decimal("0.01"), rounding=ROUND_FLOOR))


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, ConverterRating):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        return value
    return None


def ensure_converter_rating(rating: Any = None) -> ConverterRating:
    """Complete a possibly partial converter rating with the fixed defaults.

    Present fields win over defaults, siblings are never discarded and
    optional limits stay optional.
    """
    raw = _as_mapping(rating)
    if raw is None:
        return ConverterRating.model_validate(
            {"in": dict(CONVERTER_IN_DEFAULTS), "out": dict(CONVERTER_OUT_DEFAULTS)}
        )

    side_in = raw.get("in", raw.get("in_"))
    side_out = raw.get("out")
    merged_in = {**CONVERTER_IN_DEFAULTS, **_present(side_in)}
    merged_out = {**CONVERTER_OUT_DEFAULTS, **_present(side_out)}

    return ConverterRating.model_validate(
        {"in": merged_in, "out": merged_out, "eta": raw.get("eta")}
    )


def _present(side: Any) -> dict[str, Any]:
    if hasattr(side, "model_dump"):
        side = side.model_dump(exclude_none=True)
    if not isinstance(side, Mapping):
        return {}
    return {k: v for k, v in side.items() if v is not None}


_PHASE_FIELDS = frozenset({"phase", "phase_in", "phase_out"})


def _assign(target: dict[str, Any], field: str, value: float | None) -> None:
    if field in _PHASE_FIELDS:
        value = to_phase(value)
    if value is None:
        target.pop(field, None)
    else:
        target[field] = value


def apply_rating_field(
    block_type: BlockType,
    rating: Mapping[str, Any] | None,
    field: str,
    value: float | None,
    scope: str | None = None,
) -> dict[str, Any]:
    """Return a copy of ``rating`` with one field set or cleared.

    ``value=None`` removes the field; an invalid phase also removes it.
    Converter edits need ``scope`` of ``"in"``, ``"out"`` or ``"eta"``.
    """
    if block_type != BlockType.CONVERTER:
        current = deepcopy(dict(rating or {}))
        _assign(current, field, value)
        return current

    normalized = ensure_converter_rating(rating).model_dump(
        by_alias=True, exclude_none=True
    )
    if scope == "eta":
        _assign(normalized, "eta", value)
    elif scope in ("in", "out") and field in _side_fields(scope):
        _assign(normalized[scope], field, value)
    return normalized


def _side_fields(scope: str) -> frozenset[str]:
    if scope == "in":
        return frozenset({"V_in", "phase_in", "I_in_max", "P_in_max"})
    return frozenset({"V_out", "phase_out", "I_out_max", "P_out_max"})
