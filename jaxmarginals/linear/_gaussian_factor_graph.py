import dataclasses
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as onp

from .. import sparse
from .._keys import Key, format_key
from ._storage_layout import StorageLayout


@dataclasses.dataclass(frozen=True)
class JacobianFactor:
    """Linear factor with error `||sum_i A_i x_i - b||^2`, where each `x_i` lives in
    the tangent space of `keys[i]`. Noise models are already folded in: blocks and
    right-hand side are whitened."""

    keys: Tuple[Key, ...]
    A_blocks: Tuple[onp.ndarray, ...]
    """One `(rows, dim(key))` block per key."""
    b: onp.ndarray
    """Right-hand side, shape `(rows,)`."""

    def __post_init__(self):
        assert len(self.keys) == len(self.A_blocks)
        assert len(set(self.keys)) == len(self.keys), "Repeated key in factor!"
        assert self.b.ndim == 1
        for A in self.A_blocks:
            assert A.ndim == 2 and A.shape[0] == self.b.shape[0]

    def get_rows(self) -> int:
        return self.b.shape[0]

    def get_dim(self, key: Key) -> int:
        return self.A_blocks[self.keys.index(key)].shape[1]

    def get_block(self, key: Key) -> onp.ndarray:
        return self.A_blocks[self.keys.index(key)]

    def compute_error(self, delta_from_key: Dict[Key, onp.ndarray]) -> float:
        """Half of the squared error at a given tangent-space point."""
        residual = -self.b.copy()
        for key, A in zip(self.keys, self.A_blocks):
            residual += A @ delta_from_key[key]
        return 0.5 * float(residual @ residual)


@dataclasses.dataclass(frozen=True)
class GaussianFactorGraph:
    """Linearized factor graph: an ordered collection of Jacobian factors."""

    factors: Tuple[JacobianFactor, ...]
    dim_from_key: Dict[Key, int]
    """Tangent dimension of every variable touched by a factor."""

    @staticmethod
    def make(factors: Iterable[JacobianFactor]) -> "GaussianFactorGraph":
        factors = tuple(factors)
        dim_from_key: Dict[Key, int] = {}
        for factor in factors:
            for key, A in zip(factor.keys, factor.A_blocks):
                dim = A.shape[1]
                if dim_from_key.setdefault(key, dim) != dim:
                    raise ValueError(
                        f"Inconsistent dimension for {format_key(key)}: "
                        f"{dim_from_key[key]} vs {dim}."
                    )
        return GaussianFactorGraph(factors=factors, dim_from_key=dim_from_key)

    def get_keys(self) -> List[Key]:
        """All keys, sorted."""
        return sorted(self.dim_from_key.keys())

    def get_adjacency(self) -> Dict[Key, Set[Key]]:
        """Variable adjacency: two keys are neighbors if some factor touches both."""
        adjacency: Dict[Key, Set[Key]] = {key: set() for key in self.get_keys()}
        for factor in self.factors:
            for key in factor.keys:
                adjacency[key].update(factor.keys)
        for key, neighbors in adjacency.items():
            neighbors.discard(key)
        return adjacency

    def get_residual_dim(self) -> int:
        return sum(factor.get_rows() for factor in self.factors)

    def make_storage_layout(
        self, keys: Optional[Iterable[Key]] = None
    ) -> StorageLayout:
        """Column layout for `compute_jacobian()`. Defaults to sorted keys."""
        return StorageLayout.make(
            self.get_keys() if keys is None else keys, self.dim_from_key
        )

    def compute_jacobian(
        self, layout: Optional[StorageLayout] = None
    ) -> Tuple[sparse.SparseCooMatrix, onp.ndarray]:
        """Stack all factors into a sparse `(A, b)` pair. Shape of `A` is
        `(residual_dim, layout.dim)`."""
        if layout is None:
            layout = self.make_storage_layout()
        assert set(layout.get_keys()) == set(self.dim_from_key.keys())

        rows_list: List[onp.ndarray] = []
        cols_list: List[onp.ndarray] = []
        values_list: List[onp.ndarray] = []
        row_offset = 0
        for factor in self.factors:
            num_rows = factor.get_rows()
            for key, A in zip(factor.keys, factor.A_blocks):
                # Dense block -> (row, col) pairs.
                block_rows, block_cols = onp.meshgrid(
                    onp.arange(num_rows) + row_offset,
                    onp.arange(A.shape[1]) + layout.index_from_key[key],
                    indexing="ij",
                )
                rows_list.append(block_rows.flatten())
                cols_list.append(block_cols.flatten())
                values_list.append(A.flatten())
            row_offset += num_rows

        A_sparse = sparse.SparseCooMatrix(
            values=onp.concatenate(values_list),
            coords=sparse.SparseCooCoordinates(
                rows=onp.concatenate(rows_list).astype(onp.int64),
                cols=onp.concatenate(cols_list).astype(onp.int64),
            ),
            shape=(row_offset, layout.dim),
        )
        b = onp.concatenate([factor.b for factor in self.factors])
        return A_sparse, b

    def compute_error(self, delta_from_key: Dict[Key, onp.ndarray]) -> float:
        return sum(factor.compute_error(delta_from_key) for factor in self.factors)
