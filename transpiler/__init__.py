"""Circuit pass framework.

Classes
-------
BasePass
    Abstract circuit-to-circuit transformation.
PassManager
    Runs passes in sequence on a copy of the input circuit.
ValidationPass
    Checks circuit invariants and reports validation warnings.
"""

from transpiler.passes import BasePass, PassManager, ValidationPass

__all__ = ["BasePass", "PassManager", "ValidationPass"]
