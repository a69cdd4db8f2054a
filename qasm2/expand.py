"""Inline expansion of user-defined gate macros.

Custom gates never reach the IR: every invocation is replaced by the built-in
operations of its body, with actual parameter values and qubit indices
substituted for the formals. Nested invocations are expanded through an
explicit stack whose depth is bounded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

from ir.circuit import Barrier, Gate, Operation
from qasm2.ast_nodes import BarrierAST, GateBodyStatement, GateDefinition, QRef
from qasm2.errors import RecursionLimitError, UndefinedGateError, UndefinedRegisterError
from qasm2.expr_eval import Expr, evaluate
from qasm2.gate_table import GateTable

__all__ = [
    "DEFAULT_MAX_EXPANSION_DEPTH",
    "expand_gate_call",
    "substitute_params",
    "substitute_qargs",
]

_LOG = logging.getLogger(__name__)

DEFAULT_MAX_EXPANSION_DEPTH = 100


@dataclass
class _Frame:
    """One custom gate being expanded."""

    definition: GateDefinition
    statements: Iterator[GateBodyStatement]
    bindings: Dict[str, float]
    qubit_map: Dict[str, int]
    depth: int


def expand_gate_call(
    table: GateTable,
    name: str,
    params: Sequence[float],
    qubits: Sequence[int],
    *,
    line: Optional[int] = None,
    col: Optional[int] = None,
    max_depth: int = DEFAULT_MAX_EXPANSION_DEPTH,
) -> List[Operation]:
    """Expand one gate application into built-in operations.

    Parameters
    ----------
    table
        Gate definitions visible to the call.
    name
        Gate being applied.
    params
        Evaluated actual parameters.
    qubits
        Flat qubit indices of the actual arguments.
    line, col
        Source location of the call, used in diagnostics.
    max_depth
        Maximum nesting of custom gates. The outermost custom gate counts as
        depth one.

    Returns
    -------
    List[Operation]
        Built-in gates (and barriers from gate bodies) in execution order.

    Raises
    ------
    UndefinedGateError
        If ``name`` is neither built-in nor defined.
    RecursionLimitError
        If expansion nests deeper than ``max_depth``.
    ParamCountError, QubitCountError
        If the call does not match the gate signature.
    """
    if max_depth < 1:
        raise ValueError("max_depth must be at least 1.")

    table.check_call(name, len(params), len(qubits), line, col)
    if table.is_builtin(name):
        return [Gate(name, qubits, params)]

    definition = table.lookup(name)
    if definition is None:
        raise UndefinedGateError(f"Unknown gate '{name}'.", line, col)

    expanded: List[Operation] = []
    stack: List[_Frame] = [_open_frame(definition, params, qubits, depth=1)]
    while stack:
        frame = stack[-1]
        stmt = next(frame.statements, None)
        if stmt is None:
            stack.pop()
            continue

        if isinstance(stmt, BarrierAST):
            expanded.append(Barrier(substitute_qargs(stmt.qargs, frame.qubit_map)))
            continue

        values = substitute_params(stmt.params, frame.bindings)
        targets = substitute_qargs(stmt.qargs, frame.qubit_map)
        table.check_call(stmt.name, len(values), len(targets), stmt.line, stmt.col)
        if table.is_builtin(stmt.name):
            expanded.append(Gate(stmt.name, targets, values))
            continue

        nested = table.lookup(stmt.name)
        if nested is None:
            raise UndefinedGateError(f"Unknown gate '{stmt.name}'.", stmt.line, stmt.col)
        if frame.depth + 1 > max_depth:
            raise RecursionLimitError(
                f"Gate expansion exceeded maximum depth of {max_depth} while expanding '{stmt.name}'.",
                stmt.line,
                stmt.col,
            )
        stack.append(_open_frame(nested, values, targets, depth=frame.depth + 1))

    _LOG.debug("Expanded gate '%s' into %d operation(s)", name, len(expanded))
    return expanded


def substitute_params(params: Sequence[Expr], bindings: Mapping[str, float]) -> List[float]:
    """Evaluate parameter templates with the formals bound to actual values."""
    return [evaluate(expr, bindings) for expr in params]


def substitute_qargs(qargs: Sequence[QRef], qubit_map: Mapping[str, int]) -> List[int]:
    """Replace formal qubit names with concrete qubit indices."""
    resolved: List[int] = []
    for qref in qargs:
        qubit = qubit_map.get(qref.reg)
        if qubit is None:
            raise UndefinedRegisterError(f"Qubit argument '{qref.reg}' is not defined for gate.", qref.line, qref.col)
        resolved.append(qubit)
    return resolved


def _open_frame(definition: GateDefinition, params: Sequence[float], qubits: Sequence[int], depth: int) -> _Frame:
    return _Frame(
        definition=definition,
        statements=iter(definition.body),
        bindings={name: float(value) for name, value in zip(definition.params, params)},
        qubit_map={name: int(qubit) for name, qubit in zip(definition.qargs, qubits)},
        depth=depth,
    )
