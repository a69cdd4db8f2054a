"""OpenQASM 2.0 front end.

Modules
-------
lexer
    Token vocabulary and token stream.
expr_eval
    Parameter expression trees and their evaluation.
gate_table
    Built-in and user-defined gate signatures for one parse.
expand
    Inline expansion of user-defined gates.
parser
    Recursive-descent parser producing :class:`ir.circuit.Circuit`.
errors
    Structured diagnostics with ``E###`` codes.

Nothing is re-exported here; import from the submodules, e.g.
``from qasm2.parser import parse_qasm``.
"""
