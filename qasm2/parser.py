"""Recursive-descent parser from OpenQASM 2 source to the circuit IR.

Each statement is selected by its leading keyword or identifier and consumed
completely before the next one starts. Register references are resolved to
flat indices as they are parsed and custom gates are expanded inline, so the
parser emits IR operations directly; there is no separate program AST.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple, Union

from lark import Token

from ir.circuit import Barrier, Circuit, Measure, Reset, ValidationReport
from qasm2.ast_nodes import BarrierAST, CRef, GateBodyStatement, GateCallAST, GateDefinition, QRef
from qasm2.errors import (
    BroadcastMismatchError,
    DuplicateArgumentError,
    DuplicateRegisterError,
    IndexOutOfBoundsError,
    RegisterSizeError,
    UnboundParameterError,
    UndefinedRegisterError,
    UnsupportedFeatureError,
    VersionError,
)
from qasm2.expand import DEFAULT_MAX_EXPANSION_DEPTH, expand_gate_call
from qasm2.expr_eval import Expr, evaluate, parameter_refs, parse_expression
from qasm2.gate_table import GateTable
from qasm2.lexer import TokenStream, describe_token, tokenize

__all__ = ["QasmParser", "parse_qasm", "parse_qasm_with_report"]

_LOG = logging.getLogger(__name__)

_SUPPORTED_VERSION = "2.0"

# Statement openers that only exist in OpenQASM 3.
_QASM3_KEYWORDS: frozenset[str] = frozenset(
    {
        "qubit",
        "bit",
        "int",
        "uint",
        "float",
        "angle",
        "bool",
        "complex",
        "duration",
        "stretch",
        "array",
        "def",
        "defcal",
        "cal",
        "extern",
        "let",
        "const",
        "input",
        "output",
        "for",
        "while",
        "break",
        "continue",
        "return",
        "box",
        "delay",
        "ctrl",
        "negctrl",
        "inv",
        "pow",
        "gphase",
    }
)


@dataclass(frozen=True)
class _Register:
    """Declared register laid out at ``offset`` in the flat index space."""

    name: str
    offset: int
    size: int


@dataclass(frozen=True)
class _GateContext:
    """Formals visible while parsing a gate body."""

    name: str
    params: frozenset[str]
    qargs: frozenset[str]


class QasmParser:
    """Single-use parser turning one OpenQASM 2 program into a :class:`Circuit`.

    Parameters
    ----------
    text : str
        OpenQASM 2 source code.
    max_expansion_depth : int
        Maximum nesting of custom gate invocations during expansion.

    Raises
    ------
    LexError
        If the source cannot be tokenized.
    """

    def __init__(self, text: str, *, max_expansion_depth: int = DEFAULT_MAX_EXPANSION_DEPTH) -> None:
        if max_expansion_depth < 1:
            raise ValueError("max_expansion_depth must be at least 1.")
        self._stream = TokenStream(tokenize(text))
        self._max_expansion_depth = max_expansion_depth
        self._gates = GateTable()
        self._qregs: Dict[str, _Register] = {}
        self._cregs: Dict[str, _Register] = {}
        self._circuit = Circuit()
        self._consumed = False

    @property
    def gates(self) -> GateTable:
        return self._gates

    def parse(self) -> Circuit:
        """Parse the whole program.

        Returns
        -------
        Circuit
            Circuit holding every operation of the program, custom gates
            expanded.

        Raises
        ------
        QasmError
            On the first problem found; no partial circuit is returned.
        """
        if self._consumed:
            raise RuntimeError("QasmParser instances can only parse once.")
        self._consumed = True

        self._parse_header()
        while not self._stream.at_end():
            self._parse_statement()
        _LOG.debug(
            "Parsed circuit: %d qubits, %d classical bits, %d operations",
            self._circuit.num_qubits,
            self._circuit.num_cbits,
            len(self._circuit.operations),
        )
        return self._circuit

    # -----------------------------------------------------------------
    # Top-level traversal

    def _parse_header(self) -> None:
        stream = self._stream
        token = stream.peek()
        if token.type != "OPENQASM":
            raise VersionError(
                f"Missing OPENQASM header; the program must start with 'OPENQASM {_SUPPORTED_VERSION};' "
                f"but starts with {describe_token(token)}.",
                token.line,
                token.column,
            )
        stream.advance()
        version = stream.peek()
        if version.type != "NUMBER" or version.value != _SUPPORTED_VERSION:
            raise VersionError(
                f"Unsupported OpenQASM version {describe_token(version)}; only '{_SUPPORTED_VERSION}' is supported.",
                version.line,
                version.column,
            )
        stream.advance()
        stream.expect("SEMICOLON")

    def _parse_statement(self) -> None:
        token = self._stream.peek()
        if token.type == "QREG":
            self._parse_register_decl(self._qregs, "quantum")
        elif token.type == "CREG":
            self._parse_register_decl(self._cregs, "classical")
        elif token.type == "GATE":
            self._parse_gate_decl()
        elif token.type == "IDENT":
            self._parse_gate_application()
        elif token.type == "MEASURE":
            self._parse_measure()
        elif token.type == "RESET":
            self._parse_reset()
        elif token.type == "BARRIER":
            self._parse_barrier()
        elif token.type == "INCLUDE":
            self._parse_include()
        elif token.type == "IF":
            raise UnsupportedFeatureError("Conditional 'if' statements are not supported.", token.line, token.column)
        elif token.type == "OPAQUE":
            raise UnsupportedFeatureError("Opaque gate declarations are not supported.", token.line, token.column)
        else:
            raise self._stream.unexpected("a statement", token)

    def _parse_include(self) -> None:
        stream = self._stream
        include = stream.advance()
        path = stream.expect("STRING", "a quoted file name")
        stream.expect("SEMICOLON")
        raise UnsupportedFeatureError(
            f"include {path.value} is not supported; declare the gates you need in the program.",
            include.line,
            include.column,
        )

    # -----------------------------------------------------------------
    # Declarations

    def _parse_register_decl(self, registers: Dict[str, _Register], kind: str) -> None:
        stream = self._stream
        stream.advance()
        name_token = stream.expect("IDENT", "a register name")
        stream.expect("LSQB")
        size_token = self._expect_integer("a register size")
        stream.expect("RSQB")
        stream.expect("SEMICOLON")

        name = name_token.value
        size = int(size_token.value)
        if name in self._qregs or name in self._cregs:
            raise DuplicateRegisterError(f"Duplicate register '{name}'.", name_token.line, name_token.column)
        if size <= 0:
            raise RegisterSizeError(
                f"{kind.capitalize()} register '{name}' must have size greater than zero.",
                size_token.line,
                size_token.column,
            )

        if kind == "quantum":
            offset = self._circuit.num_qubits
            self._circuit.num_qubits += size
        else:
            offset = self._circuit.num_cbits
            self._circuit.num_cbits += size
        registers[name] = _Register(name, offset, size)
        _LOG.debug("Declared %s register '%s' of size %d at offset %d", kind, name, size, offset)

    def _parse_gate_decl(self) -> None:
        stream = self._stream
        gate_token = stream.advance()
        name_token = stream.expect("IDENT", "a gate name")
        gate_name = name_token.value
        self._gates.ensure_available(gate_name, name_token.line, name_token.column)

        params: List[str] = []
        if stream.accept("LPAR") is not None:
            if not stream.at("RPAR"):
                params = self._parse_formal_names(gate_name, "a parameter name", "parameter")
            stream.expect("RPAR")
        qargs = self._parse_formal_names(gate_name, "a qubit argument name", "qubit argument")

        ctx = _GateContext(gate_name, frozenset(params), frozenset(qargs))
        stream.expect("LBRACE")
        body: List[GateBodyStatement] = []
        while not stream.at("RBRACE"):
            body.append(self._parse_gate_body_statement(ctx))
        stream.expect("RBRACE")

        definition = GateDefinition(
            name=gate_name,
            line=gate_token.line,
            col=gate_token.column,
            params=tuple(params),
            qargs=tuple(qargs),
            body=tuple(body),
        )
        self._gates.define(definition)

    def _parse_gate_body_statement(self, ctx: _GateContext) -> GateBodyStatement:
        stream = self._stream
        token = stream.peek()
        if token.type == "BARRIER":
            stream.advance()
            qargs = self._parse_formal_qargs(ctx)
            stream.expect("SEMICOLON")
            return BarrierAST(line=token.line, col=token.column, qargs=qargs)
        if token.type != "IDENT":
            raise stream.unexpected("a gate call or '}'", token)

        stream.advance()
        params = self._parse_param_exprs()
        qargs = self._parse_formal_qargs(ctx)
        stream.expect("SEMICOLON")

        self._gates.check_call(token.value, len(params), len(qargs), token.line, token.column)
        for expr in params:
            for ref in parameter_refs(expr):
                if ref.name not in ctx.params:
                    raise UnboundParameterError(
                        f"Unknown parameter '{ref.name}' in gate '{ctx.name}'.",
                        ref.line,
                        ref.col,
                    )
        return GateCallAST(name=token.value, line=token.line, col=token.column, params=params, qargs=qargs)

    def _parse_formal_qargs(self, ctx: _GateContext) -> List[QRef]:
        qargs: List[QRef] = []
        while True:
            token = self._stream.expect("IDENT", "a qubit argument name")
            if token.value not in ctx.qargs:
                raise UndefinedRegisterError(
                    f"Unknown gate argument '{token.value}' in gate '{ctx.name}'.",
                    token.line,
                    token.column,
                )
            qargs.append(QRef(reg=token.value, idx=None, line=token.line, col=token.column))
            if self._stream.accept("COMMA") is None:
                return qargs

    def _parse_formal_names(self, gate_name: str, description: str, kind: str) -> List[str]:
        names: List[str] = []
        while True:
            token = self._stream.expect("IDENT", description)
            if token.value in names:
                raise DuplicateArgumentError(
                    f"Duplicate {kind} '{token.value}' in gate '{gate_name}'.",
                    token.line,
                    token.column,
                )
            names.append(token.value)
            if self._stream.accept("COMMA") is None:
                return names

    # -----------------------------------------------------------------
    # Statements

    def _parse_gate_application(self) -> None:
        stream = self._stream
        name_token = stream.advance()
        gate_name = name_token.value
        line, col = name_token.line, name_token.column
        if gate_name in _QASM3_KEYWORDS and gate_name not in self._gates:
            raise UnsupportedFeatureError(f"OpenQASM 3 construct '{gate_name}' is not supported.", line, col)

        exprs = self._parse_param_exprs()
        qrefs = self._parse_qarg_list()
        stream.expect("SEMICOLON")

        self._gates.check_call(gate_name, len(exprs), len(qrefs), line, col)
        params = [evaluate(expr) for expr in exprs]
        operands = [self._resolve(qref, self._qregs, "quantum") for qref in qrefs]
        for qubits in _broadcast(qrefs, operands, gate_name, line, col):
            self._circuit.extend(
                expand_gate_call(
                    self._gates,
                    gate_name,
                    params,
                    qubits,
                    line=line,
                    col=col,
                    max_depth=self._max_expansion_depth,
                )
            )

    def _parse_measure(self) -> None:
        stream = self._stream
        token = stream.advance()
        qref = self._parse_qarg()
        stream.expect("ARROW")
        carg = self._parse_reference()
        cref = CRef(reg=carg.reg, idx=carg.idx, line=carg.line, col=carg.col)
        stream.expect("SEMICOLON")

        qubits = self._resolve(qref, self._qregs, "quantum")
        cbits = self._resolve(cref, self._cregs, "classical")
        if (qref.idx is None) != (cref.idx is None):
            raise BroadcastMismatchError(
                "Measurement must map a register to a register or a single qubit to a single bit.",
                token.line,
                token.column,
            )
        if len(qubits) != len(cbits):
            raise BroadcastMismatchError(
                f"Register sizes do not match for measurement '{qref.reg}' -> '{cref.reg}' "
                f"({len(qubits)} vs {len(cbits)}).",
                token.line,
                token.column,
            )
        for qubit, cbit in zip(qubits, cbits):
            self._circuit.add_op(Measure(qubit, cbit))

    def _parse_reset(self) -> None:
        self._stream.advance()
        qref = self._parse_qarg()
        self._stream.expect("SEMICOLON")
        for qubit in self._resolve(qref, self._qregs, "quantum"):
            self._circuit.add_op(Reset(qubit))

    def _parse_barrier(self) -> None:
        self._stream.advance()
        qrefs = self._parse_qarg_list()
        self._stream.expect("SEMICOLON")
        qubits: List[int] = []
        for qref in qrefs:
            qubits.extend(self._resolve(qref, self._qregs, "quantum"))
        self._circuit.add_op(Barrier(qubits))

    # -----------------------------------------------------------------
    # Helpers

    def _parse_param_exprs(self) -> List[Expr]:
        stream = self._stream
        if stream.accept("LPAR") is None:
            return []
        exprs: List[Expr] = []
        if stream.accept("RPAR") is not None:
            return exprs
        exprs.append(parse_expression(stream))
        while stream.accept("COMMA") is not None:
            exprs.append(parse_expression(stream))
        stream.expect("RPAR")
        return exprs

    def _parse_qarg_list(self) -> List[QRef]:
        qrefs = [self._parse_qarg()]
        while self._stream.accept("COMMA") is not None:
            qrefs.append(self._parse_qarg())
        return qrefs

    def _parse_qarg(self) -> QRef:
        return self._parse_reference()

    def _parse_reference(self) -> QRef:
        stream = self._stream
        name_token = stream.expect("IDENT", "a register name")
        index: Optional[int] = None
        if stream.accept("LSQB") is not None:
            index = int(self._expect_integer("an index").value)
            stream.expect("RSQB")
        return QRef(reg=name_token.value, idx=index, line=name_token.line, col=name_token.column)

    def _expect_integer(self, description: str) -> Token:
        token = self._stream.peek()
        if token.type != "NUMBER" or not token.value.isdigit():
            raise self._stream.unexpected(description, token)
        return self._stream.advance()

    def _resolve(self, ref: Union[QRef, CRef], registers: Dict[str, _Register], kind: str) -> List[int]:
        register = registers.get(ref.reg)
        if register is None:
            raise UndefinedRegisterError(f"Unknown {kind} register '{ref.reg}'.", ref.line, ref.col)
        if ref.idx is None:
            return list(range(register.offset, register.offset + register.size))
        if ref.idx >= register.size:
            noun = "Qubit" if kind == "quantum" else "Classical bit"
            raise IndexOutOfBoundsError(
                f"{noun} index {ref.idx} out of range for register '{ref.reg}' of size {register.size}.",
                ref.line,
                ref.col,
            )
        return [register.offset + ref.idx]


def _broadcast(
    qrefs: List[QRef],
    operands: List[List[int]],
    gate_name: str,
    line: int,
    col: int,
) -> List[List[int]]:
    """Pair up the operands of one gate application.

    Whole-register arguments are walked in lockstep and must all have the
    same size; single-qubit arguments are repeated for every step.
    """
    sizes: Set[int] = {len(qubits) for qref, qubits in zip(qrefs, operands) if qref.idx is None}
    if len(sizes) > 1:
        described = ", ".join(f"'{qref.reg}' ({len(qubits)})" for qref, qubits in zip(qrefs, operands) if qref.idx is None)
        raise BroadcastMismatchError(
            f"Register arguments of '{gate_name}' have different sizes: {described}.",
            line,
            col,
        )
    steps = sizes.pop() if sizes else 1
    return [[qubits[step] if qref.idx is None else qubits[0] for qref, qubits in zip(qrefs, operands)] for step in range(steps)]


def parse_qasm_with_report(
    text: str,
    *,
    max_expansion_depth: int = DEFAULT_MAX_EXPANSION_DEPTH,
) -> Tuple[Circuit, ValidationReport]:
    """Parse OpenQASM 2 source and validate the resulting circuit.

    Parameters
    ----------
    text : str
        OpenQASM 2 source code.
    max_expansion_depth : int
        Maximum nesting of custom gate invocations.

    Returns
    -------
    Tuple[Circuit, ValidationReport]
        The circuit and the validation outcome, whose ``warnings`` may be
        non-empty.

    Raises
    ------
    QasmError
        On the first parse error, or on hard validation failures.
    """
    circuit = QasmParser(text, max_expansion_depth=max_expansion_depth).parse()
    report = circuit.validate()
    report.raise_for_errors()
    return circuit, report


def parse_qasm(text: str, *, max_expansion_depth: int = DEFAULT_MAX_EXPANSION_DEPTH) -> Circuit:
    """Parse OpenQASM 2 source into a validated circuit.

    Validation warnings are logged rather than returned; use
    :func:`parse_qasm_with_report` to inspect them.

    Parameters
    ----------
    text : str
        OpenQASM 2 source code.
    max_expansion_depth : int
        Maximum nesting of custom gate invocations.

    Returns
    -------
    Circuit
        Circuit with custom gates expanded into built-in operations.

    Raises
    ------
    QasmError
        If lexing, parsing, expansion or validation fails.
    """
    circuit, report = parse_qasm_with_report(text, max_expansion_depth=max_expansion_depth)
    for warning in report.warnings:
        _LOG.warning("%s", warning)
    return circuit
