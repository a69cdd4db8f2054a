"""Test suite for the transpiler pass framework."""

from __future__ import annotations

import logging

import pytest

from ir.circuit import NO_MEASUREMENT_WARNING, Circuit, Gate, Measure
from qasm2.errors import CircuitValidationError, IndexOutOfBoundsError
from transpiler import BasePass, PassManager, ValidationPass


class AppendIdentity(BasePass):
    """Adds an ``id`` gate on qubit 0 so tests can see the pass ran."""

    def run(self, circuit: Circuit) -> Circuit:
        circuit.add_op(Gate("id", (0,)))
        return circuit


class Rename(BasePass):
    """Returns a fresh circuit with every ``x`` replaced by ``y``."""

    @property
    def name(self) -> str:
        return "rename-x"

    def run(self, circuit: Circuit) -> Circuit:
        ops = [Gate("y", op.qubits) if isinstance(op, Gate) and op.kind == "x" else op for op in circuit.operations]
        return Circuit(circuit.num_qubits, circuit.num_cbits, ops)


# =============================================================================
# Pass Manager
# =============================================================================


class TestPassManager:
    """Tests for PassManager."""

    def test_empty_manager_returns_copy(self) -> None:
        """With no passes the result equals the input but is a new object."""
        circuit = Circuit(1, 0, [Gate("h", (0,))])
        result = PassManager().run(circuit)
        assert result == circuit
        assert result is not circuit

    def test_passes_run_in_order(self) -> None:
        """Passes see the output of the previous pass."""
        manager = PassManager().add_pass(Rename()).add_pass(AppendIdentity())
        result = manager.run(Circuit(1, 0, [Gate("x", (0,))]))
        assert result.operations == [Gate("y", (0,)), Gate("id", (0,))]

    def test_input_not_modified(self) -> None:
        """Passes work on a copy of the input circuit."""
        circuit = Circuit(1)
        PassManager().add_pass(AppendIdentity()).run(circuit)
        assert circuit.operations == []

    def test_passes_property(self) -> None:
        """passes lists the registered passes."""
        first, second = AppendIdentity(), Rename()
        manager = PassManager()
        manager.add_pass(first)
        manager.add_pass(second)
        assert manager.passes == (first, second)

    def test_rejects_non_passes(self) -> None:
        """Only BasePass instances can be added."""
        with pytest.raises(TypeError):
            PassManager().add_pass(lambda circuit: circuit)  # type: ignore[arg-type]

    def test_pass_names(self) -> None:
        """name defaults to the class name."""
        assert AppendIdentity().name == "AppendIdentity"
        assert Rename().name == "rename-x"

    def test_base_pass_is_abstract(self) -> None:
        """BasePass needs a run implementation."""
        with pytest.raises(TypeError):
            BasePass()  # type: ignore[abstract]

    def test_runs_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Each pass is logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="transpiler.passes"):
            PassManager().add_pass(Rename()).run(Circuit(1))
        assert "rename-x" in caplog.text


# =============================================================================
# Validation Pass
# =============================================================================


class TestValidationPass:
    """Tests for ValidationPass."""

    def test_valid_circuit_passes_through(self) -> None:
        """Valid circuits are returned unchanged."""
        circuit = Circuit(1, 1, [Gate("h", (0,)), Measure(0, 0)])
        assert ValidationPass().run(circuit) is circuit

    def test_index_errors_raised(self) -> None:
        """Out-of-range indices abort the pipeline."""
        manager = PassManager().add_pass(ValidationPass())
        with pytest.raises(IndexOutOfBoundsError):
            manager.run(Circuit(1, 1, [Gate("h", (1,)), Measure(0, 0)]))

    def test_all_errors_reported(self) -> None:
        """Several problems are raised together."""
        with pytest.raises(CircuitValidationError) as exc_info:
            ValidationPass().run(Circuit(1, 1, [Gate("h", (1,)), Measure(0, 2)]))
        assert len(exc_info.value.errors) == 2

    def test_warning_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Warnings are logged when not strict."""
        with caplog.at_level(logging.WARNING, logger="transpiler.passes"):
            ValidationPass().run(Circuit(1, 0, [Gate("x", (0,))]))
        assert NO_MEASUREMENT_WARNING in caplog.text

    def test_strict_mode_rejects_warnings(self) -> None:
        """strict=True turns warnings into errors."""
        with pytest.raises(CircuitValidationError) as exc_info:
            ValidationPass(strict=True).run(Circuit(1, 0, [Gate("x", (0,))]))
        assert exc_info.value.message == NO_MEASUREMENT_WARNING
