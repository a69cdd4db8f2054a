"""Gate-body templates kept by the parser until a custom gate is expanded."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from qasm2.expr_eval import Expr


@dataclass
class QRef:
    """Reference to a quantum register or qubit.

    Parameters
    ----------
    reg : str
        Name of the quantum register, or of a formal qubit argument inside a
        gate body.
    idx : Optional[int]
        Index within the register. ``None`` represents the full register.
    line : int
        Source line number where this reference appears.
    col : int
        Source column number where this reference appears.
    """

    reg: str
    idx: Optional[int]
    line: int
    col: int


@dataclass
class CRef:
    """Reference to a classical register or bit.

    Parameters
    ----------
    reg : str
        Name of the classical register.
    idx : Optional[int]
        Index within the register. ``None`` represents the full register.
    line : int
        Source line number where this reference appears.
    col : int
        Source column number where this reference appears.
    """

    reg: str
    idx: Optional[int]
    line: int
    col: int


@dataclass
class GateCallAST:
    """Gate invocation as written in the source.

    Parameters
    ----------
    name : str
        Name of the gate being invoked.
    params : List[Expr]
        Parameter expressions, unevaluated.
    qargs : List[QRef]
        Quantum arguments passed to the gate.
    line : int
        Source line number of the gate call.
    col : int
        Source column number of the gate call.
    """

    name: str
    line: int
    col: int
    params: List[Expr] = field(default_factory=list)
    qargs: List[QRef] = field(default_factory=list)


@dataclass
class BarrierAST:
    """Barrier statement inside a gate body.

    Parameters
    ----------
    qargs : List[QRef]
        Formal qubit arguments covered by the barrier.
    line : int
        Source line number of the barrier.
    col : int
        Source column number of the barrier.
    """

    line: int
    col: int
    qargs: List[QRef] = field(default_factory=list)


GateBodyStatement = Union[GateCallAST, BarrierAST]


@dataclass(frozen=True)
class GateDefinition:
    """User-defined gate macro.

    Created once its ``gate`` statement has been parsed completely and never
    modified afterwards.

    Parameters
    ----------
    name : str
        Name of the user-defined gate.
    params : Tuple[str, ...]
        Formal parameter names, possibly empty.
    qargs : Tuple[str, ...]
        Formal qubit argument names, at least one.
    body : Tuple[GateBodyStatement, ...]
        Operation templates referencing only the formals.
    line : int
        Source line number of the gate definition.
    col : int
        Source column number of the gate definition.
    """

    name: str
    line: int
    col: int
    params: Tuple[str, ...] = ()
    qargs: Tuple[str, ...] = ()
    body: Tuple[GateBodyStatement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))
        object.__setattr__(self, "qargs", tuple(self.qargs))
        object.__setattr__(self, "body", tuple(self.body))
        if not self.qargs:
            raise ValueError(f"Gate '{self.name}' must declare at least one qubit argument.")
