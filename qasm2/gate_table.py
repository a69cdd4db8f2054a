"""Gate definition table for a single parse.

Built-in gates come from the IR gate catalog; user-defined gates are added as
their ``gate`` statements complete. Names are unique across both.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional

from ir.gates import GateSignature, is_builtin_gate, signature_for
from qasm2.ast_nodes import GateDefinition
from qasm2.errors import DuplicateGateError, ParamCountError, QubitCountError, UndefinedGateError

__all__ = ["GateTable"]

_LOG = logging.getLogger(__name__)


class GateTable:
    """Lookup of built-in signatures and user-defined gate macros."""

    def __init__(self) -> None:
        self._definitions: Dict[str, GateDefinition] = {}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and (is_builtin_gate(name) or name in self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[GateDefinition]:
        return iter(self._definitions.values())

    @staticmethod
    def is_builtin(name: str) -> bool:
        return is_builtin_gate(name)

    def is_defined(self, name: str) -> bool:
        return name in self._definitions

    def define(self, definition: GateDefinition) -> None:
        """Store a user-defined gate.

        Raises
        ------
        DuplicateGateError
            If the name belongs to a built-in or an already defined gate.
        """
        self.ensure_available(definition.name, definition.line, definition.col)
        self._definitions[definition.name] = definition
        _LOG.debug(
            "Defined gate '%s' (%d params, %d qubits, %d body statements)",
            definition.name,
            len(definition.params),
            len(definition.qargs),
            len(definition.body),
        )

    def ensure_available(self, name: str, line: Optional[int] = None, col: Optional[int] = None) -> None:
        if is_builtin_gate(name):
            raise DuplicateGateError(f"Gate '{name}' is a built-in gate and cannot be redefined.", line, col)
        if name in self._definitions:
            raise DuplicateGateError(f"Duplicate gate definition '{name}'.", line, col)

    def lookup(self, name: str) -> Optional[GateDefinition]:
        return self._definitions.get(name)

    def signature(self, name: str) -> Optional[GateSignature]:
        """Return the fixed (built-in) or declared (user-defined) signature."""
        builtin = signature_for(name)
        if builtin is not None:
            return builtin
        definition = self._definitions.get(name)
        if definition is None:
            return None
        return GateSignature(len(definition.params), len(definition.qargs))

    def check_call(
        self,
        name: str,
        num_params: int,
        num_qubits: int,
        line: Optional[int] = None,
        col: Optional[int] = None,
    ) -> GateSignature:
        """Check a gate application against the gate's signature.

        Raises
        ------
        UndefinedGateError
            If no gate with this name exists.
        ParamCountError, QubitCountError
            If the argument counts do not match.
        """
        signature = self.signature(name)
        if signature is None:
            raise UndefinedGateError(f"Unknown gate '{name}'.", line, col)
        if num_params != signature.num_params:
            raise ParamCountError(
                f"Gate '{name}' expects {signature.num_params} parameter(s) but received {num_params}.",
                line,
                col,
            )
        if num_qubits != signature.num_qubits:
            raise QubitCountError(
                f"Gate '{name}' expects {signature.num_qubits} qubit operand(s) but received {num_qubits}.",
                line,
                col,
            )
        return signature
