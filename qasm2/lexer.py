"""Tokenizer for OpenQASM 2 source text.

The token vocabulary lives in the packaged ``grammar/qasm2_tokens.lark``
resource and is scanned with Lark's basic lexer. Grammar is not checked here;
:class:`TokenStream` hands the tokens to the recursive-descent parser.
"""

from __future__ import annotations

import importlib.resources as importlib_resources
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from lark import Lark, Token
from lark.exceptions import UnexpectedCharacters

from qasm2.errors import LexError, UnexpectedTokenError

__all__ = ["EOF", "KEYWORDS", "TokenStream", "create_lexer", "describe_token", "tokenize"]

_GRAMMAR_PACKAGE = "qasm2"
_GRAMMAR_DIR = "grammar"
_GRAMMAR_FILE = "qasm2_tokens.lark"

EOF = "EOF"

KEYWORDS: frozenset[str] = frozenset(
    {"OPENQASM", "INCLUDE", "QREG", "CREG", "GATE", "OPAQUE", "MEASURE", "RESET", "BARRIER", "IF"}
)

# Human-readable names for punctuation, used in diagnostics.
_SYMBOL_NAMES: dict[str, str] = {
    "LPAR": "'('",
    "RPAR": "')'",
    "LSQB": "'['",
    "RSQB": "']'",
    "LBRACE": "'{'",
    "RBRACE": "'}'",
    "COMMA": "','",
    "SEMICOLON": "';'",
    "ARROW": "'->'",
    "EQEQ": "'=='",
    "PLUS": "'+'",
    "MINUS": "'-'",
    "STAR": "'*'",
    "SLASH": "'/'",
    "CARET": "'^'",
}


@lru_cache(maxsize=1)
def create_lexer() -> Lark:
    """Instantiate the Lark object holding the OpenQASM token definitions.

    Returns
    -------
    Lark
        Instance whose :meth:`lark.Lark.lex` method tokenizes source text.
    """
    try:
        grammar_text = (
            importlib_resources.files(_GRAMMAR_PACKAGE)
            .joinpath(_GRAMMAR_DIR)
            .joinpath(_GRAMMAR_FILE)
            .read_text(encoding="utf-8")
        )
    except (AttributeError, FileNotFoundError, ModuleNotFoundError):
        grammar_path = Path(__file__).with_name(_GRAMMAR_DIR).joinpath(_GRAMMAR_FILE)
        grammar_text = grammar_path.read_text(encoding="utf-8")
    return Lark(grammar_text, start="start", parser="lalr", lexer="basic")


def tokenize(text: str) -> List[Token]:
    """Convert OpenQASM source into a list of tokens terminated by ``EOF``.

    Parameters
    ----------
    text : str
        OpenQASM 2 source code.

    Returns
    -------
    List[Token]
        Lark tokens with one-based ``line``/``column`` positions. Whitespace and
        ``//`` comments are dropped.

    Raises
    ------
    LexError
        If the source contains a character that starts no token.
    """
    lexer = create_lexer()
    tokens: List[Token] = []
    try:
        for token in lexer.lex(text):
            tokens.append(token)
    except UnexpectedCharacters as exc:
        raise LexError(
            f"Unrecognized character {exc.char!r}.",
            exc.line,
            exc.column,
            char=exc.char,
        ) from exc
    tokens.append(_end_of_file(text))
    return tokens


def describe_token(token: Token) -> str:
    """Render a token for use in error messages."""
    if token.type == EOF:
        return "end of input"
    if token.type in _SYMBOL_NAMES:
        return _SYMBOL_NAMES[token.type]
    if token.type in KEYWORDS:
        return f"keyword '{token.value}'"
    if token.type == "IDENT":
        return f"identifier '{token.value}'"
    if token.type == "NUMBER":
        return f"number '{token.value}'"
    return f"{token.type} {token.value!r}"


def _end_of_file(text: str) -> Token:
    line = text.count("\n") + 1
    column = len(text) - (text.rfind("\n") + 1) + 1
    return Token(EOF, "", start_pos=len(text), line=line, column=column)


class TokenStream:
    """Cursor over a token list shared by the parser and the expression evaluator."""

    def __init__(self, tokens: List[Token]) -> None:
        if not tokens or tokens[-1].type != EOF:
            raise ValueError("Token streams must be terminated by an EOF token.")
        self._tokens = tokens
        self._pos = 0

    @classmethod
    def from_text(cls, text: str) -> TokenStream:
        return cls(tokenize(text))

    @property
    def position(self) -> int:
        return self._pos

    def peek(self, offset: int = 0) -> Token:
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def at(self, token_type: str) -> bool:
        return self.peek().type == token_type

    def at_end(self) -> bool:
        return self.at(EOF)

    def advance(self) -> Token:
        token = self.peek()
        if token.type != EOF:
            self._pos += 1
        return token

    def accept(self, token_type: str) -> Optional[Token]:
        """Consume the next token if it has the given type."""
        if self.at(token_type):
            return self.advance()
        return None

    def expect(self, token_type: str, description: Optional[str] = None) -> Token:
        """Consume a token of the given type or raise :class:`UnexpectedTokenError`.

        Parameters
        ----------
        token_type : str
            Lark token type that must come next.
        description : str, optional
            Wording for the expected token in the diagnostic. Defaults to the
            punctuation spelling or the token type.
        """
        token = self.peek()
        if token.type == token_type:
            return self.advance()
        expected = description or _SYMBOL_NAMES.get(token_type, token_type.lower())
        raise self.unexpected(expected, token)

    def unexpected(self, expected: str, token: Optional[Token] = None) -> UnexpectedTokenError:
        """Build the diagnostic for an unexpected token (the next one by default)."""
        token = token if token is not None else self.peek()
        found = describe_token(token)
        return UnexpectedTokenError(
            f"Expected {expected} but found {found}.",
            token.line,
            token.column,
            expected=expected,
            found=found,
        )
