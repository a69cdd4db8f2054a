"""Built-in gate catalog for the circuit IR.

The catalog is configuration: it is read from the packaged ``gates.yaml``
resource and maps each built-in gate name to its fixed signature.
"""

from __future__ import annotations

import importlib.resources as importlib_resources
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml

__all__ = [
    "GateSignature",
    "builtin_gate_names",
    "is_builtin_gate",
    "load_gate_catalog",
    "parse_gate_catalog",
    "signature_for",
]

_CATALOG_PACKAGE = "ir"
_CATALOG_FILE = "gates.yaml"


@dataclass(frozen=True)
class GateSignature:
    """Expected shape of a gate application."""

    num_params: int
    num_qubits: int


def parse_gate_catalog(data: object) -> dict[str, GateSignature]:
    """Convert the parsed YAML document into gate signatures.

    Parameters
    ----------
    data : object
        Result of ``yaml.safe_load`` on a catalog file.

    Returns
    -------
    dict[str, GateSignature]
        Signatures keyed by gate name.

    Raises
    ------
    ValueError
        If the document does not follow the ``gates: {name: {params, qubits}}``
        layout or a count is not a valid integer.
    """
    if not isinstance(data, dict) or not isinstance(data.get("gates"), dict):
        raise ValueError("Gate catalog must contain a 'gates' mapping at the top level.")
    catalog: dict[str, GateSignature] = {}
    for name, entry in data["gates"].items():
        if not isinstance(entry, dict):
            raise ValueError(f"Gate catalog entry for '{name}' must be a mapping.")
        try:
            num_params = int(entry["params"])
            num_qubits = int(entry["qubits"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Gate catalog entry for '{name}' needs integer 'params' and 'qubits'.") from exc
        if num_params < 0 or num_qubits < 1:
            raise ValueError(f"Gate catalog entry for '{name}' has an invalid signature.")
        catalog[str(name)] = GateSignature(num_params, num_qubits)
    return catalog


@lru_cache(maxsize=1)
def load_gate_catalog() -> Mapping[str, GateSignature]:
    """Load the packaged built-in gate catalog.

    Returns
    -------
    Mapping[str, GateSignature]
        Read-only mapping from gate name to signature.

    Raises
    ------
    FileNotFoundError
        If the ``gates.yaml`` resource cannot be located.
    ValueError
        If the resource is malformed.
    """
    try:
        content = importlib_resources.files(_CATALOG_PACKAGE).joinpath(_CATALOG_FILE).read_text(encoding="utf-8")
    except (AttributeError, FileNotFoundError, ModuleNotFoundError):
        # Fallback to development tree location
        local_fallback = Path(__file__).resolve().parent / _CATALOG_FILE
        content = local_fallback.read_text(encoding="utf-8")
    return MappingProxyType(parse_gate_catalog(yaml.safe_load(content)))


def signature_for(name: str) -> Optional[GateSignature]:
    return load_gate_catalog().get(name)


def is_builtin_gate(name: str) -> bool:
    return name in load_gate_catalog()


def builtin_gate_names() -> frozenset[str]:
    return frozenset(load_gate_catalog())
