"""Compatibility Validator — Deterministic Rule-Based Net Checker.

Pure Python. Fully unit-testable.

Two levels of checks:
  1. Component on net: voltage (within net tolerance), phase, and the
     component's own rating sanity (load current/power, converter eta)
  2. Net aggregation: sum derived currents of every component on the net
     and check each breaker's I_max against the total

Incomplete data never raises. It becomes a `warn` finding and the affected
contribution is carried as unknown (None), not as zero.

Input:  blocks + Net (Pydantic models)
Output: ComponentCheck / NetCheck with findings and derived values
"""

from __future__ import annotations

import math
from typing import Iterable

from sld.schemas.diagram import (
    Block,
    ConverterBlock,
    LoadBlock,
    Net,
    PassiveBlock,
)
from sld.schemas.validation import (
    ComponentCheck,
    Finding,
    NetCheck,
    ValidationLevel,
)


# ─── Internal Helpers ───


def _issue(level: ValidationLevel, message: str, target_id: str | None = None) -> Finding:
    return Finding(level=level, message=message, target_id=target_id)


def _fmt(value: float) -> str:
    """Render 200.0 as 200 and 3.5 as 3.5 in messages, never in exponent form."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.15g}"


def is_tolerance_valid(tolerance: float | None) -> bool:
    if tolerance is None:
        return True
    return 0 <= tolerance <= 100


# ═══════════════════════════════════════════════════════════
# Check 1: Voltage and Phase
# ═══════════════════════════════════════════════════════════


def is_voltage_within_tolerance(
    net_voltage: float,
    required: float,
    tolerance_percent: float | None = None,
) -> bool:
    """True when ``net_voltage`` is within ±tolerance% of ``required``.

    A tolerance outside [0, 100] never passes, whatever the voltages.
    """
    tolerance = tolerance_percent if tolerance_percent is not None else 0
    if not is_tolerance_valid(tolerance):
        return False
    delta = abs(net_voltage - required)
    allowed = required * (tolerance / 100)
    return delta <= allowed


def check_voltage(net: Net, required: float) -> list[Finding]:
    """Invalid tolerance is reported and the voltage counts as mismatched."""
    findings: list[Finding] = []
    if not is_tolerance_valid(net.tolerance):
        findings.append(
            _issue(ValidationLevel.ERROR, "Net tolerance must be within 0-100%", net.id)
        )
    if not is_voltage_within_tolerance(net.voltage, required, net.tolerance):
        findings.append(
            _issue(
                ValidationLevel.ERROR,
                f"Voltage mismatch: net={_fmt(net.voltage)}V required={_fmt(required)}V",
                net.id,
            )
        )
    return findings


def check_phase(net: Net, required: int) -> list[Finding]:
    if net.phase != required:
        return [
            _issue(
                ValidationLevel.ERROR,
                f"Phase mismatch: net={net.phase} required={required}",
                net.id,
            )
        ]
    return []


# ═══════════════════════════════════════════════════════════
# Check 2: Per-Component Rating
# ═══════════════════════════════════════════════════════════


def _check_load(block: LoadBlock, net: Net) -> ComponentCheck:
    rating = block.rating
    findings = check_voltage(net, rating.V_in) + check_phase(net, rating.phase)

    if rating.I_in is None and rating.P_in is None:
        findings.append(
            _issue(
                ValidationLevel.WARN,
                "Load current undetermined (I_in and P_in missing)",
                block.id,
            )
        )
        return ComponentCheck(findings=findings)

    # Declared current wins over declared power
    if rating.I_in is not None:
        if rating.I_in <= 0:
            findings.append(
                _issue(ValidationLevel.ERROR, "I_in must be positive", block.id)
            )
            return ComponentCheck(findings=findings)
        return ComponentCheck(findings=findings, derived_current=rating.I_in)

    if rating.P_in <= 0:
        findings.append(_issue(ValidationLevel.ERROR, "P_in must be positive", block.id))
        return ComponentCheck(findings=findings)
    if rating.V_in <= 0:
        # Power known but current cannot be derived from a non-positive voltage
        return ComponentCheck(findings=findings)
    return ComponentCheck(findings=findings, derived_current=rating.P_in / rating.V_in)


def _check_converter(block: ConverterBlock, net: Net) -> ComponentCheck:
    side_in = block.rating.in_
    findings = check_voltage(net, side_in.V_in) + check_phase(net, side_in.phase_in)

    eta = block.rating.eta
    if eta is None:
        findings.append(
            _issue(
                ValidationLevel.WARN,
                "eta is missing; efficiency calculation skipped",
                block.id,
            )
        )
    elif eta <= 0 or eta > 1:
        findings.append(
            _issue(ValidationLevel.ERROR, "eta must be within (0,1]", block.id)
        )

    return ComponentCheck(findings=findings)


def check_component_on_net(block: Block, net: Net) -> ComponentCheck:
    """Check one component against the net it is attached to.

    Passive components are pass-through here; their capacity is checked
    at net level by :func:`check_net`.
    """
    if isinstance(block, LoadBlock):
        return _check_load(block, net)
    if isinstance(block, ConverterBlock):
        return _check_converter(block, net)
    return ComponentCheck()


# ═══════════════════════════════════════════════════════════
# Check 3: Net Capacity
# ═══════════════════════════════════════════════════════════


def converter_input_current(block: ConverterBlock) -> float | None:
    """Input-side current implied by the converter's output rating.

    ``output_power / eta / V_in``; None when eta or output power is unknown.
    An out-of-range eta above 1 is still used; it is reported separately.
    """
    rating = block.rating
    eta = rating.eta
    if eta is None or eta <= 0:
        return None

    out = rating.out
    if out.P_out_max is not None:
        output_power = out.P_out_max
    elif out.I_out_max is not None:
        output_power = out.I_out_max * out.V_out
    else:
        return None

    if rating.in_.V_in <= 0:
        return None
    return output_power / eta / rating.in_.V_in


def check_net(blocks: Iterable[Block], net: Net) -> NetCheck:
    """Aggregate current on a net and check every breaker's I_max.

    Order-independent: each component is checked on its own and the
    contributions are summed with ``math.fsum``.
    """
    blocks = list(blocks)
    findings: list[Finding] = []
    contributions: list[float] = []
    uncertain = 0

    for block in blocks:
        check = check_component_on_net(block, net)
        findings.extend(check.findings)

        if isinstance(block, LoadBlock):
            if check.derived_current is None:
                uncertain += 1
            else:
                contributions.append(check.derived_current)
        elif isinstance(block, ConverterBlock):
            current = converter_input_current(block)
            if current is not None:
                contributions.append(current)

    total_current = math.fsum(contributions)

    for block in blocks:
        if not isinstance(block, PassiveBlock):
            continue
        if total_current > block.rating.I_max:
            findings.append(
                _issue(
                    ValidationLevel.ERROR,
                    f"I_max exceeded: load={total_current:.2f}A "
                    f"limit={_fmt(block.rating.I_max)}A",
                    block.id,
                )
            )

    return NetCheck(
        net_id=net.id,
        findings=findings,
        total_current=total_current,
        uncertain_load_count=uncertain,
    )
