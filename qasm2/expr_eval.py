"""Parsing and safe evaluation of OpenQASM 2 arithmetic expressions.

Expressions are parsed from a :class:`~qasm2.lexer.TokenStream` into a small
tree and evaluated against a mapping of parameter names to values. Top-level
gate arguments are evaluated straight away; gate bodies keep the trees as
templates until the gate is expanded.
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Tuple, Union

from lark import Token

from qasm2.errors import EvaluationError, RecursionLimitError, UnboundParameterError
from qasm2.lexer import TokenStream

__all__ = [
    "ALLOWED_CONSTANTS",
    "ALLOWED_FUNCS",
    "MAX_EXPRESSION_DEPTH",
    "BinaryOp",
    "Constant",
    "Expr",
    "FunctionCall",
    "NumberLiteral",
    "ParameterRef",
    "UnaryNegate",
    "evaluate",
    "evaluate_expression",
    "free_parameters",
    "parameter_refs",
    "parse_expression",
]

ALLOWED_CONSTANTS: dict[str, float] = {"pi": float(math.pi)}

ALLOWED_FUNCS: dict[str, Callable[[float], float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "exp": math.exp,
    "ln": math.log,
    "sqrt": math.sqrt,
}

# Nesting levels (parentheses, function arguments, unary minus, exponents)
# accepted by parse_expression. Kept well below the interpreter recursion limit.
MAX_EXPRESSION_DEPTH = 100

_BINARY_OPERATORS: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "^": operator.pow,
}

_ADDITIVE = {"PLUS": "+", "MINUS": "-"}
_MULTIPLICATIVE = {"STAR": "*", "SLASH": "/"}


@dataclass(frozen=True)
class NumberLiteral:
    value: float
    line: int = 1
    col: int = 1


@dataclass(frozen=True)
class Constant:
    """Named constant from :data:`ALLOWED_CONSTANTS` (``pi``)."""

    name: str
    line: int = 1
    col: int = 1


@dataclass(frozen=True)
class ParameterRef:
    """Free identifier bound when the surrounding gate is expanded."""

    name: str
    line: int = 1
    col: int = 1


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Expr
    right: Expr
    line: int = 1
    col: int = 1


@dataclass(frozen=True)
class UnaryNegate:
    operand: Expr
    line: int = 1
    col: int = 1


@dataclass(frozen=True)
class FunctionCall:
    name: str
    argument: Expr
    line: int = 1
    col: int = 1


Expr = Union[NumberLiteral, Constant, ParameterRef, BinaryOp, UnaryNegate, FunctionCall]


# ---------------------------------------------------------------------
# Parsing


def parse_expression(stream: TokenStream) -> Expr:
    """Parse one expression and advance the cursor past it.

    Grammar, lowest precedence first::

        expr   := term (('+' | '-') term)*
        term   := factor (('*' | '/') factor)*
        factor := '-' factor | power
        power  := atom ('^' factor)?
        atom   := NUMBER | IDENT | FUNC '(' expr ')' | '(' expr ')'

    Parentheses, function arguments, unary minus and the right operand of
    ``^`` each open one nesting level. At most :data:`MAX_EXPRESSION_DEPTH`
    levels are accepted.

    Parameters
    ----------
    stream : TokenStream
        Cursor positioned at the first token of the expression.

    Returns
    -------
    Expr
        Expression tree.

    Raises
    ------
    UnexpectedTokenError
        If the tokens do not form an expression.
    RecursionLimitError
        If the expression nests deeper than :data:`MAX_EXPRESSION_DEPTH`.
    """
    return _parse_sum(stream, 0)


def _parse_sum(stream: TokenStream, depth: int) -> Expr:
    node = _parse_term(stream, depth)
    while stream.peek().type in _ADDITIVE:
        token = stream.advance()
        right = _parse_term(stream, depth)
        node = BinaryOp(_ADDITIVE[token.type], node, right, token.line, token.column)
    return node


def _parse_term(stream: TokenStream, depth: int) -> Expr:
    node = _parse_factor(stream, depth)
    while stream.peek().type in _MULTIPLICATIVE:
        token = stream.advance()
        right = _parse_factor(stream, depth)
        node = BinaryOp(_MULTIPLICATIVE[token.type], node, right, token.line, token.column)
    return node


def _parse_factor(stream: TokenStream, depth: int) -> Expr:
    minus = stream.accept("MINUS")
    if minus is not None:
        return UnaryNegate(_parse_factor(stream, _nested(depth, minus)), minus.line, minus.column)
    base = _parse_atom(stream, depth)
    caret = stream.accept("CARET")
    if caret is not None:
        return BinaryOp("^", base, _parse_factor(stream, _nested(depth, caret)), caret.line, caret.column)
    return base


def _parse_atom(stream: TokenStream, depth: int) -> Expr:
    token = stream.peek()
    if token.type == "NUMBER":
        stream.advance()
        return NumberLiteral(float(token.value), token.line, token.column)
    if token.type == "IDENT":
        stream.advance()
        if token.value in ALLOWED_FUNCS and stream.at("LPAR"):
            stream.advance()
            argument = _parse_sum(stream, _nested(depth, token))
            stream.expect("RPAR")
            return FunctionCall(token.value, argument, token.line, token.column)
        if token.value in ALLOWED_CONSTANTS:
            return Constant(token.value, token.line, token.column)
        return ParameterRef(token.value, token.line, token.column)
    if token.type == "LPAR":
        stream.advance()
        inner = _parse_sum(stream, _nested(depth, token))
        stream.expect("RPAR")
        return inner
    raise stream.unexpected("an expression", token)


def _nested(depth: int, token: Token) -> int:
    if depth >= MAX_EXPRESSION_DEPTH:
        raise RecursionLimitError(
            f"Expression nesting exceeds the maximum depth of {MAX_EXPRESSION_DEPTH}.", token.line, token.column
        )
    return depth + 1


# ---------------------------------------------------------------------
# Evaluation


def evaluate(expr: Expr, bindings: Optional[Mapping[str, float]] = None) -> float:
    """Evaluate an expression tree.

    Trees are walked with an explicit stack, so long operator chains such as
    ``1 + 1 + ... + 1`` evaluate regardless of their length.

    Parameters
    ----------
    expr : Expr
        Tree produced by :func:`parse_expression`.
    bindings : Mapping[str, float], optional
        Values of the gate parameters in scope. Identifiers are looked up here
        first and then in :data:`ALLOWED_CONSTANTS`.

    Returns
    -------
    float
        Evaluated value expressed in radians (float64).

    Raises
    ------
    UnboundParameterError
        If an identifier is neither bound nor a known constant.
    EvaluationError
        On division by zero or a math domain failure.
    """
    scope = bindings or {}
    values: List[float] = []
    pending: List[Tuple[Expr, bool]] = [(expr, False)]
    while pending:
        node, children_done = pending.pop()
        if isinstance(node, NumberLiteral):
            values.append(float(node.value))
        elif isinstance(node, (Constant, ParameterRef)):
            values.append(_lookup(node, scope))
        elif not children_done:
            pending.append((node, True))
            # Reversed so the left operand is evaluated first.
            pending.extend((child, False) for child in reversed(_children(node)))
        else:
            values.append(_apply(node, values))
    return values.pop()


def _lookup(ref: Union[Constant, ParameterRef], scope: Mapping[str, float]) -> float:
    if ref.name in scope:
        return float(scope[ref.name])
    if ref.name in ALLOWED_CONSTANTS:
        return float(ALLOWED_CONSTANTS[ref.name])
    raise UnboundParameterError(f"Unbound parameter '{ref.name}' in expression.", ref.line, ref.col)


def _apply(node: Expr, values: List[float]) -> float:
    """Combine the already evaluated operands of ``node`` from the top of ``values``."""
    if isinstance(node, UnaryNegate):
        return float(-values.pop())

    if isinstance(node, BinaryOp):
        right = values.pop()
        left = values.pop()
        try:
            result = _BINARY_OPERATORS[node.op](left, right)
        except ZeroDivisionError as exc:
            raise EvaluationError("Division by zero in expression.", node.line, node.col) from exc
        except OverflowError as exc:
            raise EvaluationError(f"Overflow while evaluating '{node.op}'.", node.line, node.col) from exc
        if isinstance(result, complex):
            raise EvaluationError("Expression does not evaluate to a real number.", node.line, node.col)
        return float(result)

    if isinstance(node, FunctionCall):
        argument = values.pop()
        try:
            return float(ALLOWED_FUNCS[node.name](argument))
        except (ValueError, OverflowError) as exc:
            raise EvaluationError(
                f"Function '{node.name}' is undefined for argument {argument!r}.", node.line, node.col
            ) from exc

    raise TypeError(f"Unsupported expression node: {type(node)!r}")


def _children(expr: Expr) -> Tuple[Expr, ...]:
    if isinstance(expr, BinaryOp):
        return (expr.left, expr.right)
    if isinstance(expr, UnaryNegate):
        return (expr.operand,)
    if isinstance(expr, FunctionCall):
        return (expr.argument,)
    if isinstance(expr, (NumberLiteral, Constant, ParameterRef)):
        return ()
    raise TypeError(f"Unsupported expression node: {type(expr)!r}")


def evaluate_expression(stream: TokenStream, bindings: Optional[Mapping[str, float]] = None) -> float:
    """Parse the expression at the cursor and evaluate it immediately."""
    return evaluate(parse_expression(stream), bindings)


def parameter_refs(expr: Expr) -> List[ParameterRef]:
    """Collect the parameter references of an expression in source order."""
    refs: List[ParameterRef] = []
    pending: List[Expr] = [expr]
    while pending:
        node = pending.pop()
        if isinstance(node, ParameterRef):
            refs.append(node)
        else:
            pending.extend(reversed(_children(node)))
    return refs


def free_parameters(expr: Expr) -> set[str]:
    """Return the identifiers an expression needs bound, constants excluded."""
    return {ref.name for ref in parameter_refs(expr)}
