"""Pass framework for circuit transformations.

A pass takes a circuit and returns a circuit; a :class:`PassManager` chains
passes in the order they were added. The only pass shipped here checks the
circuit invariants so that pipelines can reject bad input early.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from ir.circuit import Circuit
from qasm2.errors import CircuitValidationError

__all__ = ["BasePass", "PassManager", "ValidationPass"]

_LOG = logging.getLogger(__name__)


class BasePass(ABC):
    """Transformation from one circuit to another."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def run(self, circuit: Circuit) -> Circuit:
        """Apply the pass.

        Parameters
        ----------
        circuit : Circuit
            Input circuit. Passes may modify and return it, or return a new
            circuit.

        Returns
        -------
        Circuit
            Transformed circuit.
        """


class PassManager:
    """Ordered sequence of passes."""

    def __init__(self) -> None:
        self._passes: List[BasePass] = []

    def add_pass(self, compiler_pass: BasePass) -> PassManager:
        if not isinstance(compiler_pass, BasePass):
            raise TypeError(f"Expected a BasePass instance, got {type(compiler_pass)!r}")
        self._passes.append(compiler_pass)
        return self

    @property
    def passes(self) -> Tuple[BasePass, ...]:
        return tuple(self._passes)

    def run(self, circuit: Circuit) -> Circuit:
        """Run every pass in order on a copy of ``circuit``.

        The input circuit is never modified.
        """
        current = circuit.copy()
        for compiler_pass in self._passes:
            _LOG.debug("Running pass %s on %d operation(s)", compiler_pass.name, len(current.operations))
            current = compiler_pass.run(current)
        return current


class ValidationPass(BasePass):
    """Check the circuit invariants and pass the circuit through unchanged.

    Parameters
    ----------
    strict : bool
        Treat validation warnings as errors.

    Raises
    ------
    QasmError
        From :meth:`run`, on out-of-range indices.
    CircuitValidationError
        From :meth:`run`, on warnings when ``strict`` is set.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def run(self, circuit: Circuit) -> Circuit:
        report = circuit.validate()
        report.raise_for_errors()
        if report.warnings and self.strict:
            raise CircuitValidationError("; ".join(report.warnings))
        for warning in report.warnings:
            _LOG.warning("%s", warning)
        return circuit
