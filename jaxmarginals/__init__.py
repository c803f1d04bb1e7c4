from . import core, errors, geometry, hints, linear, noises, sparse, utils
from ._keys import Key, Symbol
from ._marginals import EliminationConfig, JointMarginal, Marginals
from .errors import (
    DuplicateKeyError,
    IndefiniteLinearSystemError,
    MarginalsError,
    MissingValueError,
    SingularSystemError,
    UnknownVariableError,
)

__all__ = [
    "core",
    "errors",
    "geometry",
    "hints",
    "linear",
    "noises",
    "sparse",
    "utils",
    "Key",
    "Symbol",
    "EliminationConfig",
    "JointMarginal",
    "Marginals",
    "DuplicateKeyError",
    "IndefiniteLinearSystemError",
    "MarginalsError",
    "MissingValueError",
    "SingularSystemError",
    "UnknownVariableError",
]
