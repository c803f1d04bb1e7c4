import dataclasses
from typing import Iterable, List, Set, Tuple

from loguru import logger

from .. import linear, utils
from .._keys import Key
from ._factor_base import FactorBase
from ._values import Values


@dataclasses.dataclass(frozen=True)
class NonlinearFactorGraph:
    """Ordered collection of nonlinear factors."""

    factors: Tuple[FactorBase, ...]

    @staticmethod
    def make(factors: Iterable[FactorBase]) -> "NonlinearFactorGraph":
        return NonlinearFactorGraph(factors=tuple(factors))

    def __len__(self) -> int:
        return len(self.factors)

    def get_keys(self) -> List[Key]:
        """Keys of every variable touched by some factor, sorted."""
        keys: Set[Key] = set()
        for factor in self.factors:
            keys.update(factor.keys)
        return sorted(keys)

    def linearize(self, values: Values) -> linear.GaussianFactorGraph:
        """Linearize every factor around `values`. Raises `MissingValueError` if a
        factor references a key with no value."""
        utils.warn_if_x64_disabled()
        with utils.stopwatch("Linearization"):
            linear_graph = linear.GaussianFactorGraph.make(
                factor.linearize(values) for factor in self.factors
            )
        logger.debug(
            "Linearized {} factors into {} residual rows",
            len(linear_graph.factors),
            linear_graph.get_residual_dim(),
        )
        return linear_graph

    def compute_error(self, values: Values) -> float:
        """Half of the total squared whitened residual norm."""
        return sum(factor.compute_error(values) for factor in self.factors)
