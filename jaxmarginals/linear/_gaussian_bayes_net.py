import dataclasses
from typing import Dict, Iterable, List, Mapping, Set, Tuple

import numpy as onp
import scipy.linalg

from .._keys import Key
from ._gaussian_factor_graph import JacobianFactor


@dataclasses.dataclass(frozen=True)
class GaussianConditional:
    """Conditional density of one variable given its parents, in square-root form:

        R @ x_frontal + sum_i S_blocks[i] @ x_parents[i] = d

    `R` is upper triangular with a positive diagonal."""

    frontal: Key
    parents: Tuple[Key, ...]
    """Separator variables, sorted by elimination position."""
    R: onp.ndarray
    S_blocks: Tuple[onp.ndarray, ...]
    d: onp.ndarray

    def __post_init__(self):
        dim = self.R.shape[0]
        assert self.R.shape == (dim, dim)
        assert self.d.shape == (dim,)
        assert len(self.parents) == len(self.S_blocks)
        for S in self.S_blocks:
            assert S.ndim == 2 and S.shape[0] == dim

    def get_dim(self) -> int:
        return self.R.shape[0]

    def solve(self, parent_values: Mapping[Key, onp.ndarray]) -> onp.ndarray:
        """Back-substitute for the frontal variable, given parent values."""
        rhs = self.d.copy()
        for parent, S in zip(self.parents, self.S_blocks):
            rhs -= S @ parent_values[parent]
        return scipy.linalg.solve_triangular(self.R, rhs, lower=False)

    def as_jacobian_factor(self) -> JacobianFactor:
        """The same density, written as a whitened linear factor. Re-eliminating it
        is how marginals are pulled back out of a factorization."""
        return JacobianFactor(
            keys=(self.frontal,) + self.parents,
            A_blocks=(self.R,) + self.S_blocks,
            b=self.d,
        )


@dataclasses.dataclass(frozen=True)
class GaussianBayesNet:
    """Result of eliminating a `GaussianFactorGraph`: one conditional per
    variable, in elimination order. Parents of each conditional are always
    eliminated later, so the product of conditionals is the full joint."""

    conditionals: Tuple[GaussianConditional, ...]
    position_from_key: Dict[Key, int]

    @staticmethod
    def make(conditionals: Iterable[GaussianConditional]) -> "GaussianBayesNet":
        conditionals = tuple(conditionals)
        position_from_key = {c.frontal: i for i, c in enumerate(conditionals)}
        assert len(position_from_key) == len(conditionals), "Repeated frontal key!"
        for i, conditional in enumerate(conditionals):
            for parent in conditional.parents:
                assert position_from_key[parent] > i, "Parents must come later!"
        return GaussianBayesNet(
            conditionals=conditionals, position_from_key=position_from_key
        )

    def __len__(self) -> int:
        return len(self.conditionals)

    def __contains__(self, key: object) -> bool:
        return key in self.position_from_key

    def get_keys(self) -> List[Key]:
        """Keys in elimination order."""
        return [conditional.frontal for conditional in self.conditionals]

    def get_conditional(self, key: Key) -> GaussianConditional:
        return self.conditionals[self.position_from_key[key]]

    def get_dim_from_key(self) -> Dict[Key, int]:
        return {c.frontal: c.get_dim() for c in self.conditionals}

    def get_ancestors(self, keys: Iterable[Key]) -> Set[Key]:
        """Input keys plus everything reachable through parent links. The
        conditionals of this set multiply out to the exact marginal over it."""
        closure: Set[Key] = set()
        stack = list(keys)
        while len(stack) > 0:
            key = stack.pop()
            if key in closure:
                continue
            closure.add(key)
            stack.extend(self.get_conditional(key).parents)
        return closure

    def optimize(self) -> Dict[Key, onp.ndarray]:
        """Most likely tangent-space point, via back-substitution in reverse
        elimination order."""
        solution: Dict[Key, onp.ndarray] = {}
        for conditional in reversed(self.conditionals):
            solution[conditional.frontal] = conditional.solve(solution)
        return solution
