"""Unit tests for the Compatibility Validator."""

import random

import pytest

from sld.schemas.diagram import (
    ConverterBlock,
    LoadBlock,
    Net,
    PassiveBlock,
)
from sld.schemas.validation import ValidationLevel
from sld.validation.engine import (
    check_component_on_net,
    check_net,
    check_phase,
    check_voltage,
    converter_input_current,
    is_voltage_within_tolerance,
)


# ─── Fixtures ───


def _net(
    voltage: float = 200,
    phase: int = 1,
    tolerance: float | None = None,
    net_id: str = "net-1",
) -> Net:
    return Net(
        id=net_id,
        kind="AC",
        voltage=voltage,
        phase=phase,
        label=net_id.upper(),
        tolerance=tolerance,
    )


def _load(
    block_id: str = "LOAD1",
    v_in: float = 200,
    phase: int = 1,
    i_in: float | None = None,
    p_in: float | None = None,
) -> LoadBlock:
    rating = {"V_in": v_in, "phase": phase}
    if i_in is not None:
        rating["I_in"] = i_in
    if p_in is not None:
        rating["P_in"] = p_in
    return LoadBlock(id=block_id, name=block_id, rating=rating)


def _breaker(block_id: str = "CB1", i_max: float = 20) -> PassiveBlock:
    return PassiveBlock(
        id=block_id,
        name=block_id,
        rating={"V_max": 250, "I_max": i_max, "phase": 1},
    )


def _converter(
    block_id: str = "CONV1",
    eta: float | None = 0.8,
    v_in: float = 200,
    out: dict | None = None,
) -> ConverterBlock:
    rating = {"in": {"V_in": v_in, "phase_in": 1}, "out": out or {}}
    if eta is not None:
        rating["eta"] = eta
    return ConverterBlock(id=block_id, name=block_id, rating=rating)


def _messages(findings) -> list[str]:
    return [f.message for f in findings]


# ═══════════════════════════════════════════════════════════
# Voltage Tolerance
# ═══════════════════════════════════════════════════════════


class TestVoltageTolerance:
    @pytest.mark.parametrize("tolerance", [None, 0, 5, 100])
    def test_reflexive(self, tolerance):
        assert is_voltage_within_tolerance(230, 230, tolerance)

    def test_exact_match_required_without_tolerance(self):
        assert not is_voltage_within_tolerance(200.5, 200)
        assert not is_voltage_within_tolerance(200.5, 200, 0)

    def test_symmetric_deviation(self):
        assert is_voltage_within_tolerance(220, 200, 10)
        assert is_voltage_within_tolerance(180, 200, 10)
        assert not is_voltage_within_tolerance(221, 200, 10)
        assert not is_voltage_within_tolerance(179, 200, 10)

    @pytest.mark.parametrize("tolerance", [-1, 100.5, 150])
    def test_out_of_range_tolerance_never_passes(self, tolerance):
        assert not is_voltage_within_tolerance(200, 200, tolerance)

    def test_invalid_tolerance_reports_both(self):
        findings = check_voltage(_net(tolerance=150), 200)
        assert _messages(findings) == [
            "Net tolerance must be within 0-100%",
            "Voltage mismatch: net=200V required=200V",
        ]
        assert all(f.level == ValidationLevel.ERROR for f in findings)
        assert all(f.target_id == "net-1" for f in findings)

    def test_phase_mismatch(self):
        findings = check_phase(_net(phase=3), 1)
        assert _messages(findings) == ["Phase mismatch: net=3 required=1"]

    def test_large_voltage_printed_in_full(self):
        findings = check_voltage(_net(voltage=1234567), 200)
        assert _messages(findings) == ["Voltage mismatch: net=1234567V required=200V"]
        assert findings[0].id == "error-net-1-Voltage-mismatch:-net=1234567V-required=200V"

    def test_fractional_voltage_printed_without_exponent(self):
        findings = check_voltage(_net(voltage=1234.5678), 230.25)
        assert _messages(findings) == ["Voltage mismatch: net=1234.5678V required=230.25V"]


# ═══════════════════════════════════════════════════════════
# Per-Component: Load
# ═══════════════════════════════════════════════════════════


class TestLoadOnNet:
    def test_matching_load_with_current(self):
        result = check_component_on_net(_load(i_in=5), _net())
        assert result.findings == []
        assert result.derived_current == 5

    def test_voltage_and_phase_mismatch(self):
        result = check_component_on_net(_load(i_in=5), _net(voltage=220, phase=3))
        messages = _messages(result.findings)
        assert any(m.startswith("Voltage mismatch") for m in messages)
        assert any(m.startswith("Phase mismatch") for m in messages)
        assert all(f.level == ValidationLevel.ERROR for f in result.findings)

    def test_within_tolerance_passes(self):
        result = check_component_on_net(_load(i_in=5), _net(voltage=210, tolerance=10))
        assert result.findings == []

    def test_current_undetermined(self):
        result = check_component_on_net(_load(), _net())
        assert len(result.findings) == 1
        finding = result.findings[0]
        assert finding.level == ValidationLevel.WARN
        assert finding.message.startswith("Load current undetermined")
        assert finding.target_id == "LOAD1"
        assert result.derived_current is None

    def test_current_from_power(self):
        result = check_component_on_net(_load(p_in=1000), _net())
        assert result.findings == []
        assert result.derived_current == pytest.approx(5.0)

    def test_current_preferred_over_power(self):
        result = check_component_on_net(_load(i_in=2, p_in=1000), _net())
        assert result.derived_current == 2

    @pytest.mark.parametrize("i_in", [0, -3])
    def test_non_positive_current(self, i_in):
        result = check_component_on_net(_load(i_in=i_in), _net())
        assert _messages(result.findings) == ["I_in must be positive"]
        assert result.derived_current is None

    def test_non_positive_power(self):
        result = check_component_on_net(_load(p_in=0), _net())
        assert _messages(result.findings) == ["P_in must be positive"]
        assert result.derived_current is None


# ═══════════════════════════════════════════════════════════
# Per-Component: Converter and Passive
# ═══════════════════════════════════════════════════════════


class TestConverterOnNet:
    def test_eta_out_of_range(self):
        result = check_component_on_net(_converter(eta=1.5), _net())
        assert _messages(result.findings) == ["eta must be within (0,1]"]
        assert result.findings[0].level == ValidationLevel.ERROR

    def test_eta_zero_is_error(self):
        result = check_component_on_net(_converter(eta=0), _net())
        assert _messages(result.findings) == ["eta must be within (0,1]"]

    def test_eta_missing(self):
        result = check_component_on_net(_converter(eta=None), _net())
        assert len(result.findings) == 1
        assert result.findings[0].level == ValidationLevel.WARN
        assert result.findings[0].message.startswith("eta is missing")

    def test_eta_one_is_valid(self):
        result = check_component_on_net(_converter(eta=1), _net())
        assert result.findings == []

    def test_only_input_side_checked(self):
        # Output side is 24V DC by default; the net is 200V single-phase
        result = check_component_on_net(_converter(), _net())
        assert result.findings == []

    def test_input_side_mismatch(self):
        result = check_component_on_net(_converter(v_in=400), _net())
        assert any(m.startswith("Voltage mismatch") for m in _messages(result.findings))

    def test_passive_is_pass_through(self):
        result = check_component_on_net(_breaker(), _net(voltage=999, phase=3))
        assert result.findings == []
        assert result.derived_current is None


class TestConverterInputCurrent:
    def test_from_output_power(self):
        block = _converter(eta=0.8, out={"V_out": 24, "phase_out": 0, "P_out_max": 480})
        assert converter_input_current(block) == pytest.approx(3.0)

    def test_from_output_current(self):
        block = _converter(eta=1, out={"V_out": 24, "phase_out": 0, "I_out_max": 10})
        assert converter_input_current(block) == pytest.approx(1.2)

    def test_power_wins_over_current(self):
        block = _converter(
            eta=1,
            out={"V_out": 24, "phase_out": 0, "I_out_max": 10, "P_out_max": 400},
        )
        assert converter_input_current(block) == pytest.approx(2.0)

    def test_eta_above_one_still_used(self):
        block = _converter(eta=1.5, out={"V_out": 24, "phase_out": 0, "P_out_max": 6000})
        assert converter_input_current(block) == pytest.approx(20.0)

    def test_non_positive_eta_gives_no_current(self):
        block = _converter(eta=0, out={"V_out": 24, "phase_out": 0, "P_out_max": 6000})
        assert converter_input_current(block) is None

    def test_unknown_without_eta_or_output(self):
        assert converter_input_current(_converter(eta=None, out={"P_out_max": 100})) is None
        assert converter_input_current(_converter(eta=0.9)) is None


# ═══════════════════════════════════════════════════════════
# Net Aggregation
# ═══════════════════════════════════════════════════════════


class TestCheckNet:
    def test_breaker_exceeded(self):
        blocks = [_breaker(i_max=20), _load("L1", i_in=10), _load("L2", i_in=15)]
        result = check_net(blocks, _net())
        assert result.total_current == 25
        exceeded = [f for f in result.findings if f.message.startswith("I_max exceeded")]
        assert len(exceeded) == 1
        assert exceeded[0].target_id == "CB1"
        assert exceeded[0].message == "I_max exceeded: load=25.00A limit=20A"

    def test_breaker_within_limit(self):
        blocks = [_breaker(i_max=20), _load("L1", i_in=10), _load("L2", i_in=10)]
        result = check_net(blocks, _net())
        assert result.total_current == 20
        assert result.findings == []

    def test_each_breaker_checked(self):
        blocks = [
            _breaker("CB1", i_max=10),
            _breaker("CB2", i_max=30),
            _breaker("CB3", i_max=5),
            _load("L1", i_in=12),
        ]
        result = check_net(blocks, _net())
        targets = {f.target_id for f in result.findings}
        assert targets == {"CB1", "CB3"}

    def test_uncertain_loads_counted(self):
        blocks = [_load("L1", i_in=4), _load("L2"), _load("L3", i_in=-1)]
        result = check_net(blocks, _net())
        assert result.total_current == 4
        assert result.uncertain_load_count == 2

    def test_converter_contributes_input_current(self):
        conv = _converter(eta=0.8, out={"V_out": 24, "phase_out": 0, "P_out_max": 480})
        result = check_net([conv, _load("L1", i_in=2)], _net())
        assert result.total_current == pytest.approx(5.0)
        assert result.uncertain_load_count == 0

    def test_converter_without_eta_adds_no_extra_warning(self):
        conv = _converter(eta=None, out={"V_out": 24, "phase_out": 0, "P_out_max": 480})
        result = check_net([conv], _net())
        assert result.total_current == 0
        assert len(result.findings) == 1

    def test_out_of_range_eta_still_loads_breaker(self):
        conv = _converter(eta=1.5, out={"V_out": 24, "phase_out": 0, "P_out_max": 6000})
        result = check_net([_breaker(i_max=10), conv], _net())
        assert result.total_current == pytest.approx(20.0)
        assert _messages(result.findings) == [
            "eta must be within (0,1]",
            "I_max exceeded: load=20.00A limit=10A",
        ]
        assert result.findings[1].target_id == "CB1"

    def test_empty_net(self):
        result = check_net([], _net())
        assert result.findings == []
        assert result.total_current == 0
        assert result.uncertain_load_count == 0

    def test_order_independent(self):
        blocks = [
            _breaker("CB1", i_max=7),
            _load("L1", i_in=1.1),
            _load("L2", p_in=333),
            _load("L3"),
            _converter(eta=0.93, out={"V_out": 24, "phase_out": 0, "I_out_max": 3.3}),
        ]
        baseline = check_net(blocks, _net(voltage=205, tolerance=5))
        rng = random.Random(7)
        for _ in range(10):
            shuffled = blocks[:]
            rng.shuffle(shuffled)
            result = check_net(shuffled, _net(voltage=205, tolerance=5))
            assert result.total_current == pytest.approx(baseline.total_current)
            assert result.uncertain_load_count == baseline.uncertain_load_count
            assert {f.id for f in result.findings} == {f.id for f in baseline.findings}

    def test_idempotent(self):
        blocks = [_breaker(i_max=1), _load("L1", i_in=3), _converter(eta=None)]
        first = check_net(blocks, _net(phase=3))
        second = check_net(blocks, _net(phase=3))
        assert first == second
