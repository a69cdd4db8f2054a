"""Test suite for qasm2.gate_table and the gate catalog behind it."""

from __future__ import annotations

import pytest

from ir.gates import GateSignature, builtin_gate_names, load_gate_catalog, parse_gate_catalog, signature_for
from qasm2.ast_nodes import GateCallAST, GateDefinition, QRef
from qasm2.errors import DuplicateGateError, ParamCountError, QubitCountError, UndefinedGateError
from qasm2.expr_eval import ParameterRef
from qasm2.gate_table import GateTable


@pytest.fixture
def rotation_gate() -> GateDefinition:
    """``gate spin(t) a { rx(t) a; }``."""
    body = (
        GateCallAST(
            name="rx",
            line=1,
            col=20,
            params=[ParameterRef("t", 1, 23)],
            qargs=[QRef(reg="a", idx=None, line=1, col=26)],
        ),
    )
    return GateDefinition(name="spin", line=1, col=1, params=("t",), qargs=("a",), body=body)


# =============================================================================
# Built-in Catalog
# =============================================================================


class TestCatalog:
    """Tests for the packaged built-in gate catalog."""

    @pytest.mark.parametrize(
        ("name", "params", "qubits"),
        [
            ("id", 0, 1),
            ("x", 0, 1),
            ("y", 0, 1),
            ("z", 0, 1),
            ("h", 0, 1),
            ("s", 0, 1),
            ("sdg", 0, 1),
            ("t", 0, 1),
            ("tdg", 0, 1),
            ("rx", 1, 1),
            ("ry", 1, 1),
            ("rz", 1, 1),
            ("u1", 1, 1),
            ("u2", 2, 1),
            ("u3", 3, 1),
            ("cx", 0, 2),
            ("swap", 0, 2),
            ("ccx", 0, 3),
            ("U", 3, 1),
            ("CX", 0, 2),
        ],
    )
    def test_builtin_signatures(self, name: str, params: int, qubits: int) -> None:
        """Every built-in gate has a fixed signature."""
        assert signature_for(name) == GateSignature(params, qubits)

    def test_unknown_gate_has_no_signature(self) -> None:
        """Names outside the catalog return None."""
        assert signature_for("cz") is None

    def test_catalog_is_read_only(self) -> None:
        """The loaded catalog cannot be modified."""
        catalog = load_gate_catalog()
        with pytest.raises(TypeError):
            catalog["cz"] = GateSignature(0, 2)  # type: ignore[index]

    def test_builtin_gate_names(self) -> None:
        """builtin_gate_names matches the catalog keys."""
        assert builtin_gate_names() == frozenset(load_gate_catalog())
        assert "cx" in builtin_gate_names()

    def test_parse_catalog_document(self) -> None:
        """parse_gate_catalog converts a YAML-shaped mapping."""
        catalog = parse_gate_catalog({"gates": {"cz": {"params": 0, "qubits": 2}}})
        assert catalog == {"cz": GateSignature(0, 2)}

    @pytest.mark.parametrize(
        "document",
        [
            None,
            {},
            {"gates": []},
            {"gates": {"cz": 2}},
            {"gates": {"cz": {"params": 0}}},
            {"gates": {"cz": {"params": "two", "qubits": 2}}},
            {"gates": {"cz": {"params": -1, "qubits": 2}}},
            {"gates": {"cz": {"params": 0, "qubits": 0}}},
        ],
    )
    def test_parse_catalog_rejects_malformed(self, document: object) -> None:
        """Malformed catalog documents raise ValueError."""
        with pytest.raises(ValueError):
            parse_gate_catalog(document)


# =============================================================================
# Gate Definition Table
# =============================================================================


class TestGateTable:
    """Tests for the per-parse gate table."""

    def test_builtins_are_available(self) -> None:
        """Built-in gates are members of a fresh table."""
        table = GateTable()
        assert "h" in table
        assert "CX" in table
        assert "spin" not in table
        assert len(table) == 0

    def test_define_and_lookup(self, rotation_gate: GateDefinition) -> None:
        """Defined gates can be looked up and iterated."""
        table = GateTable()
        table.define(rotation_gate)
        assert "spin" in table
        assert table.is_defined("spin")
        assert not table.is_builtin("spin")
        assert table.lookup("spin") is rotation_gate
        assert list(table) == [rotation_gate]
        assert len(table) == 1

    def test_lookup_builtin_returns_none(self) -> None:
        """Built-ins have no definition body."""
        assert GateTable().lookup("h") is None

    def test_signature_of_defined_gate(self, rotation_gate: GateDefinition) -> None:
        """A defined gate's signature comes from its formals."""
        table = GateTable()
        table.define(rotation_gate)
        assert table.signature("spin") == GateSignature(1, 1)
        assert table.signature("u3") == GateSignature(3, 1)
        assert table.signature("nope") is None

    def test_redefining_builtin_raises(self) -> None:
        """Built-in names cannot be reused for definitions."""
        table = GateTable()
        definition = GateDefinition(name="h", line=2, col=1, qargs=("a",))
        with pytest.raises(DuplicateGateError) as exc_info:
            table.define(definition)
        assert exc_info.value.code == "E402"
        assert (exc_info.value.line, exc_info.value.col) == (2, 1)

    def test_duplicate_definition_raises(self, rotation_gate: GateDefinition) -> None:
        """A name can only be defined once per table."""
        table = GateTable()
        table.define(rotation_gate)
        with pytest.raises(DuplicateGateError):
            table.define(rotation_gate)

    def test_ensure_available(self, rotation_gate: GateDefinition) -> None:
        """ensure_available accepts fresh names only."""
        table = GateTable()
        table.ensure_available("fresh")
        table.define(rotation_gate)
        with pytest.raises(DuplicateGateError):
            table.ensure_available("spin", 3, 5)
        with pytest.raises(DuplicateGateError):
            table.ensure_available("cx")

    def test_tables_are_independent(self, rotation_gate: GateDefinition) -> None:
        """Definitions do not leak between tables."""
        first = GateTable()
        first.define(rotation_gate)
        assert "spin" not in GateTable()


class TestCheckCall:
    """Tests for arity checking against gate signatures."""

    def test_valid_calls(self, rotation_gate: GateDefinition) -> None:
        """Matching argument counts return the signature."""
        table = GateTable()
        table.define(rotation_gate)
        assert table.check_call("cx", 0, 2) == GateSignature(0, 2)
        assert table.check_call("spin", 1, 1) == GateSignature(1, 1)

    def test_unknown_gate(self) -> None:
        """Unknown names raise UndefinedGateError."""
        with pytest.raises(UndefinedGateError) as exc_info:
            GateTable().check_call("foo", 0, 1, 4, 1)
        assert exc_info.value.message == "Unknown gate 'foo'."
        assert exc_info.value.line == 4

    def test_parameter_count_mismatch(self) -> None:
        """Wrong parameter counts raise ParamCountError."""
        with pytest.raises(ParamCountError) as exc_info:
            GateTable().check_call("rx", 0, 1)
        assert exc_info.value.message == "Gate 'rx' expects 1 parameter(s) but received 0."

    def test_qubit_count_mismatch(self) -> None:
        """Wrong operand counts raise QubitCountError."""
        with pytest.raises(QubitCountError) as exc_info:
            GateTable().check_call("cx", 0, 1)
        assert exc_info.value.message == "Gate 'cx' expects 2 qubit operand(s) but received 1."

    def test_parameters_checked_before_qubits(self) -> None:
        """When both counts are wrong the parameter error wins."""
        with pytest.raises(ParamCountError):
            GateTable().check_call("u3", 1, 2)


class TestGateDefinition:
    """Tests for the immutable gate definition record."""

    def test_fields_become_tuples(self) -> None:
        """Sequences passed in are stored as tuples."""
        definition = GateDefinition(name="g", line=1, col=1, params=["a", "b"], qargs=["q"])  # type: ignore[arg-type]
        assert definition.params == ("a", "b")
        assert definition.qargs == ("q",)
        assert definition.body == ()

    def test_requires_a_qubit_argument(self) -> None:
        """Gates without qubit formals are rejected."""
        with pytest.raises(ValueError):
            GateDefinition(name="g", line=1, col=1)
