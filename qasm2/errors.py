"""Error model for OpenQASM 2 parsing, circuit validation and backend setup.

This module centralizes the error reporting primitives so that tooling built on
`qasm2` can exchange structured diagnostics. Error codes group issues by
category (for example, lexical issues in the ``E10x`` family); every concrete
error kind carries its own fixed code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import ClassVar

__all__ = [
    "QasmError",
    "QasmLexicalError",
    "QasmSyntaxError",
    "QasmSemanticError",
    "QasmResolutionError",
    "LexError",
    "UnexpectedTokenError",
    "VersionError",
    "UnsupportedFeatureError",
    "ParamCountError",
    "QubitCountError",
    "BroadcastMismatchError",
    "IndexOutOfBoundsError",
    "EvaluationError",
    "RegisterSizeError",
    "RecursionLimitError",
    "CircuitValidationError",
    "DuplicateRegisterError",
    "DuplicateGateError",
    "UndefinedGateError",
    "UnboundParameterError",
    "UndefinedRegisterError",
    "DuplicateArgumentError",
]

_CODE_PATTERN = re.compile(r"^E\d{3}$")


@dataclass(slots=True)
class QasmError(Exception):
    """Base class for all structured OpenQASM 2 errors.

    Parameters
    ----------
    message : str
        Human-readable explanation of the problem.
    line : int | None
        One-based line index pointing at the source location, if any.
    col : int | None
        One-based column index pointing at the source location, if any.
    """

    message: str
    line: int | None = None
    col: int | None = None

    code: ClassVar[str] = "E000"

    def __post_init__(self) -> None:
        """Validate the common error attributes."""
        if not _CODE_PATTERN.match(self.code):
            raise ValueError("Error codes must follow the `E###` pattern.")
        for value in (self.line, self.col):
            if value is not None and value < 1:
                raise ValueError("Source locations are one-based; line and column must be positive integers.")

    def __str__(self) -> str:
        """Return a concise diagnostic string."""
        if self.line is None or self.col is None:
            return f"{self.code}: {self.message}"
        return f"{self.code} (line {self.line}, col {self.col}): {self.message}"


class _CategorisedQasmError(QasmError):
    """Utility mixin enforcing category-specific validation."""

    CATEGORY_PREFIX: ClassVar[str]
    CATEGORY_LABEL: ClassVar[str]

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.code.startswith(self.CATEGORY_PREFIX):
            raise ValueError(f"{self.CATEGORY_LABEL} must use an error code starting with '{self.CATEGORY_PREFIX}'.")


class QasmLexicalError(_CategorisedQasmError):
    """Lexical analysis failures (``E10x`` family)."""

    CATEGORY_PREFIX: ClassVar[str] = "E10"
    CATEGORY_LABEL: ClassVar[str] = "Lexical errors"
    code: ClassVar[str] = "E100"


class QasmSyntaxError(_CategorisedQasmError):
    """Grammar and syntax violations (``E20x`` family)."""

    CATEGORY_PREFIX: ClassVar[str] = "E20"
    CATEGORY_LABEL: ClassVar[str] = "Syntax errors"
    code: ClassVar[str] = "E200"


class QasmSemanticError(_CategorisedQasmError):
    """Semantic consistency issues (``E30x`` family)."""

    CATEGORY_PREFIX: ClassVar[str] = "E30"
    CATEGORY_LABEL: ClassVar[str] = "Semantic errors"
    code: ClassVar[str] = "E300"


class QasmResolutionError(_CategorisedQasmError):
    """Symbol resolution and scoping failures (``E40x`` family)."""

    CATEGORY_PREFIX: ClassVar[str] = "E40"
    CATEGORY_LABEL: ClassVar[str] = "Resolution errors"
    code: ClassVar[str] = "E400"


# ---------------------------------------------------------------------
# Lexical


@dataclass
class LexError(QasmLexicalError):
    """An unrecognized character in the source text."""

    char: str = ""

    code: ClassVar[str] = "E101"


# ---------------------------------------------------------------------
# Syntax


@dataclass
class UnexpectedTokenError(QasmSyntaxError):
    """A grammar violation: the parser expected one token and found another."""

    expected: str = ""
    found: str = ""

    code: ClassVar[str] = "E201"


class VersionError(QasmSyntaxError):
    """Missing or unsupported ``OPENQASM`` header."""

    code: ClassVar[str] = "E202"


class UnsupportedFeatureError(QasmSyntaxError):
    """Recognized construct that this front end does not implement."""

    code: ClassVar[str] = "E203"


# ---------------------------------------------------------------------
# Semantic


class ParamCountError(QasmSemanticError):
    code: ClassVar[str] = "E301"


class QubitCountError(QasmSemanticError):
    code: ClassVar[str] = "E302"


class BroadcastMismatchError(QasmSemanticError):
    """Register arguments of one statement have different sizes."""

    code: ClassVar[str] = "E303"


class IndexOutOfBoundsError(QasmSemanticError):
    """Qubit, classical-bit or coupling-map index outside the declared range."""

    code: ClassVar[str] = "E304"


class EvaluationError(QasmSemanticError):
    """Arithmetic failure while evaluating a parameter expression."""

    code: ClassVar[str] = "E305"


class RegisterSizeError(QasmSemanticError):
    code: ClassVar[str] = "E306"


class RecursionLimitError(QasmSemanticError):
    """Custom gate expansion nested deeper than the configured limit."""

    code: ClassVar[str] = "E307"


@dataclass
class CircuitValidationError(QasmSemanticError):
    """Several problems reported together by a validation pass."""

    errors: list[QasmError] = field(default_factory=list)

    code: ClassVar[str] = "E308"


# ---------------------------------------------------------------------
# Resolution


class DuplicateRegisterError(QasmResolutionError):
    code: ClassVar[str] = "E401"


class DuplicateGateError(QasmResolutionError):
    code: ClassVar[str] = "E402"


class UndefinedGateError(QasmResolutionError):
    code: ClassVar[str] = "E403"


class UnboundParameterError(QasmResolutionError):
    """Identifier in an expression that is neither a parameter nor a constant."""

    code: ClassVar[str] = "E404"


class UndefinedRegisterError(QasmResolutionError):
    code: ClassVar[str] = "E405"


class DuplicateArgumentError(QasmResolutionError):
    """A gate declaration lists the same parameter or qubit argument twice."""

    code: ClassVar[str] = "E406"
