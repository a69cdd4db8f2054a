"""Test suite for qasm2.lexer.

Covers the token vocabulary (keywords, identifiers, numbers, punctuation),
whitespace and comment handling, one-based position tracking, lexical errors
and the :class:`TokenStream` cursor used by the parser.
"""

from __future__ import annotations

from typing import List

import pytest

from qasm2.errors import LexError, QasmError, UnexpectedTokenError
from qasm2.lexer import EOF, TokenStream, describe_token, tokenize


def _types(text: str) -> List[str]:
    return [token.type for token in tokenize(text)]


# =============================================================================
# Vocabulary
# =============================================================================


class TestVocabulary:
    """Tests for the kinds of tokens produced."""

    def test_header_tokens(self) -> None:
        """The version header is a keyword, a number and a semicolon."""
        assert _types("OPENQASM 2.0;") == ["OPENQASM", "NUMBER", "SEMICOLON", EOF]

    def test_statement_keywords(self) -> None:
        """Every reserved word is recognized as its own token type."""
        source = "include qreg creg gate opaque measure reset barrier if"
        assert _types(source) == [
            "INCLUDE",
            "QREG",
            "CREG",
            "GATE",
            "OPAQUE",
            "MEASURE",
            "RESET",
            "BARRIER",
            "IF",
            EOF,
        ]

    def test_keyword_prefix_is_identifier(self) -> None:
        """Identifiers that merely start with a keyword stay identifiers."""
        tokens = tokenize("qregs gate_1 measured")
        assert [token.type for token in tokens[:-1]] == ["IDENT", "IDENT", "IDENT"]
        assert [token.value for token in tokens[:-1]] == ["qregs", "gate_1", "measured"]

    def test_keywords_are_case_sensitive(self) -> None:
        """Upper-case spellings of lower-case keywords are identifiers."""
        assert _types("QREG openqasm") == ["IDENT", "IDENT", EOF]

    def test_identifiers(self) -> None:
        """Identifiers may contain letters, digits and underscores."""
        tokens = tokenize("q _anc cx2 pi")
        assert all(token.type == "IDENT" for token in tokens[:-1])

    @pytest.mark.parametrize("literal", ["0", "42", "3.14", "2.", ".5", "1e-3", "6.02E23"])
    def test_number_literals(self, literal: str) -> None:
        """Integer, decimal and exponent forms are single NUMBER tokens."""
        tokens = tokenize(literal)
        assert tokens[0].type == "NUMBER"
        assert tokens[0].value == literal
        assert tokens[1].type == EOF

    def test_string_literal(self) -> None:
        """Double-quoted strings are kept with their quotes."""
        tokens = tokenize('include "qelib1.inc";')
        assert tokens[1].type == "STRING"
        assert tokens[1].value == '"qelib1.inc"'

    def test_punctuation(self) -> None:
        """Brackets, separators and operators have distinct token types."""
        assert _types("()[]{},;->==+-*/^") == [
            "LPAR",
            "RPAR",
            "LSQB",
            "RSQB",
            "LBRACE",
            "RBRACE",
            "COMMA",
            "SEMICOLON",
            "ARROW",
            "EQEQ",
            "PLUS",
            "MINUS",
            "STAR",
            "SLASH",
            "CARET",
            EOF,
        ]

    def test_arrow_preferred_over_minus(self) -> None:
        """'->' is one token, while a lone '-' stays MINUS."""
        assert _types("measure q -> c;") == ["MEASURE", "IDENT", "ARROW", "IDENT", "SEMICOLON", EOF]
        assert _types("-pi") == ["MINUS", "IDENT", EOF]


# =============================================================================
# Whitespace, Comments and Positions
# =============================================================================


class TestTrivia:
    """Tests for skipped input and source positions."""

    def test_empty_input_is_only_eof(self) -> None:
        """Empty source yields just the end-of-file marker."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == EOF

    def test_line_comments_are_skipped(self) -> None:
        """'//' comments run to the end of the line and produce no tokens."""
        source = "// header comment\nOPENQASM 2.0; // trailing\n// last line"
        assert _types(source) == ["OPENQASM", "NUMBER", "SEMICOLON", EOF]

    def test_whitespace_variants_are_skipped(self) -> None:
        """Spaces, tabs and CRLF line endings are ignored."""
        assert _types("qreg\tq [ 2 ] ;\r\n") == ["QREG", "IDENT", "LSQB", "NUMBER", "RSQB", "SEMICOLON", EOF]

    def test_positions_are_one_based(self) -> None:
        """Line and column numbers start at one."""
        tokens = tokenize("OPENQASM 2.0;\nqreg q[2];")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (1, 10)
        qreg = tokens[3]
        assert qreg.type == "QREG"
        assert (qreg.line, qreg.column) == (2, 1)
        ident = tokens[4]
        assert (ident.line, ident.column) == (2, 6)

    def test_eof_position_follows_last_character(self) -> None:
        """The EOF token sits just past the end of the text."""
        eof = tokenize("x;\nab")[-1]
        assert eof.type == EOF
        assert (eof.line, eof.column) == (2, 3)


# =============================================================================
# Lexical Errors
# =============================================================================


class TestLexErrors:
    """Tests for characters that start no token."""

    @pytest.mark.parametrize("char", ["@", "$", "#", "%", "!"])
    def test_unrecognized_character(self, char: str) -> None:
        """Unknown characters raise LexError carrying the character."""
        with pytest.raises(LexError) as exc_info:
            tokenize(f"qreg q[1]; {char}")
        assert exc_info.value.char == char
        assert exc_info.value.code == "E101"

    def test_lex_error_position(self) -> None:
        """LexError reports the position of the offending character."""
        with pytest.raises(LexError) as exc_info:
            tokenize("OPENQASM 2.0;\nqreg q[1];\n  @")
        assert exc_info.value.line == 3
        assert exc_info.value.col == 3

    def test_lex_error_is_qasm_error(self) -> None:
        """LexError can be caught through the common base class."""
        with pytest.raises(QasmError):
            tokenize("h q[0] & q[1];")

    def test_unterminated_string(self) -> None:
        """A string without a closing quote is a lexical error."""
        with pytest.raises(LexError):
            tokenize('include "qelib1.inc;\n')


# =============================================================================
# Token Stream
# =============================================================================


class TestTokenStream:
    """Tests for the parser's token cursor."""

    def test_peek_does_not_consume(self) -> None:
        """peek looks ahead without moving the cursor."""
        stream = TokenStream.from_text("qreg q;")
        assert stream.peek().type == "QREG"
        assert stream.peek(1).type == "IDENT"
        assert stream.position == 0

    def test_peek_past_end_returns_eof(self) -> None:
        """Looking beyond the input keeps returning EOF."""
        stream = TokenStream.from_text("q")
        assert stream.peek(10).type == EOF

    def test_advance_stops_at_eof(self) -> None:
        """advance never moves past EOF."""
        stream = TokenStream.from_text("q")
        stream.advance()
        assert stream.at_end()
        stream.advance()
        assert stream.at_end()
        assert stream.position == 1

    def test_accept_matching_and_mismatching(self) -> None:
        """accept consumes only tokens of the requested type."""
        stream = TokenStream.from_text("( q")
        assert stream.accept("RPAR") is None
        assert stream.accept("LPAR") is not None
        assert stream.at("IDENT")

    def test_expect_returns_token(self) -> None:
        """expect returns the consumed token."""
        stream = TokenStream.from_text("q;")
        token = stream.expect("IDENT")
        assert token.value == "q"
        assert stream.at("SEMICOLON")

    def test_expect_mismatch_raises(self) -> None:
        """expect raises UnexpectedTokenError describing both tokens."""
        stream = TokenStream.from_text("qreg q[2]")
        with pytest.raises(UnexpectedTokenError) as exc_info:
            stream.expect("SEMICOLON")
        error = exc_info.value
        assert error.expected == "';'"
        assert error.found == "keyword 'qreg'"
        assert error.message == "Expected ';' but found keyword 'qreg'."
        assert (error.line, error.col) == (1, 1)

    def test_expect_with_description(self) -> None:
        """A custom description replaces the token type in the diagnostic."""
        stream = TokenStream.from_text("42")
        with pytest.raises(UnexpectedTokenError) as exc_info:
            stream.expect("IDENT", "a register name")
        assert exc_info.value.expected == "a register name"
        assert exc_info.value.found == "number '42'"

    def test_unexpected_end_of_input(self) -> None:
        """Running out of tokens is described as end of input."""
        stream = TokenStream.from_text("")
        with pytest.raises(UnexpectedTokenError) as exc_info:
            stream.expect("IDENT")
        assert exc_info.value.found == "end of input"

    def test_stream_requires_eof(self) -> None:
        """Token lists must be terminated by EOF."""
        tokens = tokenize("q")[:-1]
        with pytest.raises(ValueError):
            TokenStream(tokens)

    def test_describe_token(self) -> None:
        """Tokens are rendered in a readable form for diagnostics."""
        tokens = tokenize("gate g ( 1.5")
        assert describe_token(tokens[0]) == "keyword 'gate'"
        assert describe_token(tokens[1]) == "identifier 'g'"
        assert describe_token(tokens[2]) == "'('"
        assert describe_token(tokens[3]) == "number '1.5'"
        assert describe_token(tokens[4]) == "end of input"
