"""Intermediate representation for quantum circuits."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Union

from ir.gates import signature_for
from qasm2.errors import (
    CircuitValidationError,
    IndexOutOfBoundsError,
    ParamCountError,
    QasmError,
    QubitCountError,
    UndefinedGateError,
)

__all__ = ["Barrier", "Circuit", "Gate", "Measure", "Operation", "Reset", "ValidationReport"]

_LOG = logging.getLogger(__name__)

NO_MEASUREMENT_WARNING = "No measurements found. The circuit will not produce classical output on hardware."


@dataclass(frozen=True)
class Gate:
    """Application of a built-in gate.

    Attributes
    ----------
    kind : str
        Built-in gate identifier such as ``"rx"`` or ``"cx"``.
    qubits : tuple[int, ...]
        Indices of the qubits the gate acts on.
    params : tuple[float, ...]
        Gate parameters expressed in radians.

    Raises
    ------
    UndefinedGateError
        If ``kind`` is not in the built-in gate catalog.
    ParamCountError, QubitCountError
        If the operands do not match the catalog signature of ``kind``.
    """

    kind: str
    qubits: tuple[int, ...]
    params: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        """Coerce the operands and check them against the gate signature."""
        object.__setattr__(self, "kind", str(self.kind))
        object.__setattr__(self, "qubits", tuple(int(qubit) for qubit in self.qubits))
        object.__setattr__(self, "params", tuple(float(param) for param in self.params))

        signature = signature_for(self.kind)
        if signature is None:
            raise UndefinedGateError(f"'{self.kind}' is not a built-in gate.")
        if len(self.params) != signature.num_params:
            raise ParamCountError(
                f"Gate '{self.kind}' expects {signature.num_params} parameter(s) but received {len(self.params)}."
            )
        if len(self.qubits) != signature.num_qubits:
            raise QubitCountError(
                f"Gate '{self.kind}' expects {signature.num_qubits} qubit operand(s) but received {len(self.qubits)}."
            )


@dataclass(frozen=True)
class Measure:
    """Measurement of ``qubit`` into classical bit ``target``."""

    qubit: int
    target: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "qubit", int(self.qubit))
        object.__setattr__(self, "target", int(self.target))


@dataclass(frozen=True)
class Reset:
    qubit: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "qubit", int(self.qubit))


@dataclass(frozen=True)
class Barrier:
    qubits: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "qubits", tuple(int(qubit) for qubit in self.qubits))


Operation = Union[Gate, Measure, Reset, Barrier]


@dataclass
class ValidationReport:
    """Outcome of :meth:`Circuit.validate`.

    Attributes
    ----------
    errors : list[QasmError]
        Hard failures, one per offending index.
    warnings : list[str]
        Soft findings that do not make the circuit invalid.
    """

    errors: list[QasmError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise the collected hard errors, if any.

        A single error is raised as is; several are bundled into a
        :class:`CircuitValidationError`.
        """
        if not self.errors:
            return
        if len(self.errors) == 1:
            raise self.errors[0]
        summary = "; ".join(error.message for error in self.errors)
        raise CircuitValidationError(
            f"Circuit validation found {len(self.errors)} problems: {summary}",
            errors=list(self.errors),
        )


@dataclass
class Circuit:
    """Circuit container for the intermediate representation.

    Attributes
    ----------
    num_qubits : int
        Total number of qubits in the circuit.
    num_cbits : int
        Total number of classical bits in the circuit.
    operations : list[Operation]
        Sequence of operations executed in order. Operations are immutable;
        the circuit only ever appends to this list.
    """

    num_qubits: int = 0
    num_cbits: int = 0
    operations: list[Operation] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Normalize field values after initialization.

        Notes
        -----
        Ensures the dataclass owns an independent operations list.
        """
        self.num_qubits = int(self.num_qubits)
        self.num_cbits = int(self.num_cbits)
        if self.num_qubits < 0 or self.num_cbits < 0:
            raise ValueError("Register sizes must be non-negative.")
        self.operations = list(self.operations)

    def add_op(self, op: Operation) -> None:
        """Append an operation to the circuit."""
        if not isinstance(op, (Gate, Measure, Reset, Barrier)):
            raise TypeError(f"Unsupported operation type: {type(op)!r}")
        self.operations.append(op)

    def extend(self, ops: Iterable[Operation]) -> None:
        for op in ops:
            self.add_op(op)

    def copy(self) -> Circuit:
        return Circuit(num_qubits=self.num_qubits, num_cbits=self.num_cbits, operations=self.operations)

    @property
    def has_measurement(self) -> bool:
        return any(isinstance(op, Measure) for op in self.operations)

    def count_ops(self) -> dict[str, int]:
        """Count operations by name (gate kind, or ``measure``/``reset``/``barrier``)."""
        counts: Counter[str] = Counter()
        for op in self.operations:
            if isinstance(op, Gate):
                counts[op.kind] += 1
            else:
                counts[type(op).__name__.lower()] += 1
        return dict(counts)

    def validate(self) -> ValidationReport:
        """Check the circuit invariants without modifying it.

        Every operation is inspected; all out-of-range indices are reported,
        not only the first.

        Returns
        -------
        ValidationReport
            ``IndexOutOfBoundsError`` entries for qubit or classical-bit indices
            outside ``[0, num_qubits)`` / ``[0, num_cbits)``, and a warning when
            the circuit contains no measurement.
        """
        report = ValidationReport()
        for position, op in enumerate(self.operations):
            for qubit in _qubits_of(op):
                if qubit < 0 or qubit >= self.num_qubits:
                    report.errors.append(
                        IndexOutOfBoundsError(
                            f"Operation {position} ({_describe(op)}) uses qubit {qubit} "
                            f"but the circuit has {self.num_qubits} qubit(s)."
                        )
                    )
            if isinstance(op, Measure) and (op.target < 0 or op.target >= self.num_cbits):
                report.errors.append(
                    IndexOutOfBoundsError(
                        f"Operation {position} (measure) writes classical bit {op.target} "
                        f"but the circuit has {self.num_cbits} classical bit(s)."
                    )
                )
        if not self.has_measurement:
            report.warnings.append(NO_MEASUREMENT_WARNING)
        _LOG.debug(
            "Validated %d operations: %d error(s), %d warning(s)",
            len(self.operations),
            len(report.errors),
            len(report.warnings),
        )
        return report


def _qubits_of(op: Operation) -> tuple[int, ...]:
    if isinstance(op, (Gate, Barrier)):
        return op.qubits
    return (op.qubit,)


def _describe(op: Operation) -> str:
    if isinstance(op, Gate):
        return op.kind
    return type(op).__name__.lower()
