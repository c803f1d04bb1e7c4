from ._factor_base import FactorBase
from ._factor_graph import NonlinearFactorGraph
from ._manifold import between, get_tangent_dim, local_coordinates, retract
from ._values import Values

__all__ = [
    "FactorBase",
    "NonlinearFactorGraph",
    "Values",
    "between",
    "get_tangent_dim",
    "local_coordinates",
    "retract",
]
