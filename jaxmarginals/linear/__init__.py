from ._elimination import FactorizationMode, eliminate
from ._gaussian_bayes_net import GaussianBayesNet, GaussianConditional
from ._gaussian_factor_graph import GaussianFactorGraph, JacobianFactor
from ._ordering import Ordering, OrderingType, check_ordering
from ._storage_layout import StorageLayout

__all__ = [
    "FactorizationMode",
    "eliminate",
    "GaussianBayesNet",
    "GaussianConditional",
    "GaussianFactorGraph",
    "JacobianFactor",
    "Ordering",
    "OrderingType",
    "check_ordering",
    "StorageLayout",
]
