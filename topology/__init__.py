"""Hardware topology model.

Classes
-------
Backend
    Device name, qubit count, basis gates and directed coupling map.

Functions
---------
load_backend
    Read a backend description from a YAML file.

Examples
--------
Describing a three-qubit line::

    from topology import Backend

    backend = Backend("line3", 3)
    backend.set_coupling_map([(0, 1), (1, 2)])
    assert backend.has_coupling(0, 1)
"""

from topology.backend import Backend, load_backend

__all__ = ["Backend", "load_backend"]
