"""Hardware description consumed by later transpilation stages.

A :class:`Backend` names a device, fixes its number of physical qubits and
records which ordered qubit pairs support a two-qubit interaction. The
coupling map is kept as a :class:`networkx.MultiDiGraph` so that mapping and
routing code can run graph algorithms over it directly.

Backend descriptions can be written in YAML::

    name: line5
    num_qubits: 5
    coupling_map: [[0, 1], [1, 2], [2, 3], [3, 4]]
    basis_gates: [cx, rz, h]
"""

from __future__ import annotations

import logging
import operator
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Sequence, Set, Tuple, Union

import networkx as nx
import yaml

from ir.gates import is_builtin_gate
from qasm2.errors import IndexOutOfBoundsError, UndefinedGateError

__all__ = ["Backend", "load_backend"]

_LOG = logging.getLogger(__name__)

CouplingPair = Tuple[int, int]


class Backend:
    """Target device with a directed coupling map.

    Parameters
    ----------
    name : str
        Device name.
    num_qubits : int
        Number of physical qubits. Qubits are numbered ``0..num_qubits-1``.

    Attributes
    ----------
    coupling_map : networkx.MultiDiGraph
        One node per physical qubit, one edge ``(a, b)`` per allowed
        interaction from ``a`` to ``b``. Duplicate edges and self-loops are
        kept exactly as supplied.
    basis_gates : set of str
        Built-in gates the device executes natively.

    Raises
    ------
    ValueError
        If ``num_qubits`` is not an integer or is negative.
    """

    def __init__(self, name: str, num_qubits: int) -> None:
        num_qubits = _as_integer(num_qubits, "num_qubits")
        if num_qubits < 0:
            raise ValueError("num_qubits must be non-negative.")
        self.name = str(name)
        self.num_qubits = num_qubits
        self.basis_gates: Set[str] = set()
        self.coupling_map: nx.MultiDiGraph = self._empty_graph()

    def __repr__(self) -> str:
        return f"Backend(name={self.name!r}, num_qubits={self.num_qubits}, num_edges={self.num_edges})"

    def _empty_graph(self) -> nx.MultiDiGraph:
        graph = nx.MultiDiGraph()
        graph.add_nodes_from(range(self.num_qubits))
        return graph

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Backend:
        """Build a backend from a configuration mapping.

        Parameters
        ----------
        data : Mapping[str, Any]
            Mapping with ``name`` and ``num_qubits`` and, optionally,
            ``coupling_map`` (list of ``[a, b]`` pairs) and ``basis_gates``.

        Returns
        -------
        Backend
            Configured backend.

        Raises
        ------
        ValueError
            If required keys are missing or malformed.
        IndexOutOfBoundsError
            If a coupling pair references a qubit outside the device.
        UndefinedGateError
            If a basis gate is not a built-in gate.
        """
        if not isinstance(data, Mapping):
            raise ValueError("Backend configuration must be a mapping.")
        missing = [key for key in ("name", "num_qubits") if key not in data]
        if missing:
            raise ValueError(f"Backend configuration is missing {', '.join(missing)}.")

        backend = cls(data["name"], data["num_qubits"])
        backend.set_coupling_map(data.get("coupling_map") or [])
        for gate in data.get("basis_gates") or []:
            backend.add_basis_gate(gate)
        return backend

    def set_coupling_map(self, pairs: Iterable[Sequence[int]]) -> None:
        """Replace the coupling map.

        All pairs are checked before anything changes, so a rejected call
        leaves the previous map in place.

        Parameters
        ----------
        pairs : Iterable[Sequence[int]]
            Directed ``(source, target)`` qubit pairs. Duplicates and
            self-loops are accepted as given.

        Raises
        ------
        ValueError
            If an entry is not a pair or holds a non-integer index.
        IndexOutOfBoundsError
            If any index is negative or ``>= num_qubits``.
        """
        edges: List[CouplingPair] = []
        for pair in pairs:
            if isinstance(pair, (str, bytes)) or not isinstance(pair, Sequence) or len(pair) != 2:
                raise ValueError(f"Coupling map entries must be (source, target) pairs, got {pair!r}.")
            edges.append((_as_integer(pair[0], "Coupling map index"), _as_integer(pair[1], "Coupling map index")))
        for source, target in edges:
            for qubit in (source, target):
                if qubit < 0 or qubit >= self.num_qubits:
                    raise IndexOutOfBoundsError(
                        f"Coupling pair ({source}, {target}) references qubit {qubit} "
                        f"but backend '{self.name}' has {self.num_qubits} qubit(s)."
                    )

        graph = self._empty_graph()
        graph.add_edges_from(edges)
        self.coupling_map = graph
        _LOG.debug("Backend '%s': coupling map set with %d edge(s)", self.name, len(edges))

    def add_basis_gate(self, name: str) -> None:
        """Declare a built-in gate as native to the device."""
        if not is_builtin_gate(name):
            raise UndefinedGateError(f"'{name}' is not a built-in gate and cannot be a basis gate.")
        self.basis_gates.add(name)

    @property
    def edges(self) -> List[CouplingPair]:
        """Coupling pairs grouped by source qubit, duplicates included."""
        return [(source, target) for source, target in self.coupling_map.edges()]

    @property
    def num_edges(self) -> int:
        return self.coupling_map.number_of_edges()

    def has_coupling(self, source: int, target: int) -> bool:
        return self.coupling_map.has_edge(source, target)

    def neighbors(self, qubit: int) -> List[int]:
        """Distinct qubits reachable from ``qubit`` through one directed edge."""
        if not self.coupling_map.has_node(qubit):
            raise IndexOutOfBoundsError(
                f"Qubit {qubit} is out of range for backend '{self.name}' with {self.num_qubits} qubit(s)."
            )
        return sorted(self.coupling_map.successors(qubit))

    def is_connected(self) -> bool:
        """Whether every qubit can reach every other, ignoring edge direction."""
        if self.num_qubits == 0:
            return True
        return nx.is_weakly_connected(self.coupling_map)


def load_backend(path: Union[str, Path]) -> Backend:
    """Load a backend description from a YAML file.

    Parameters
    ----------
    path : str or Path
        YAML document in the layout accepted by :meth:`Backend.from_dict`.

    Returns
    -------
    Backend
        Configured backend.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    _LOG.debug("Loading backend description from %s", path)
    return Backend.from_dict(data)


def _as_integer(value: Any, what: str) -> int:
    # bool is rejected although it subclasses int.
    if isinstance(value, bool):
        raise ValueError(f"{what} must be an integer, got {value!r}.")
    try:
        return operator.index(value)
    except TypeError as exc:
        raise ValueError(f"{what} must be an integer, got {value!r}.") from exc
