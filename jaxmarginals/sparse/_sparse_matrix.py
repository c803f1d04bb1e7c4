import dataclasses
from typing import Tuple

import numpy as onp
import scipy.sparse


@dataclasses.dataclass(frozen=True)
class SparseCooCoordinates:
    rows: onp.ndarray
    """Row indices of non-zero entries. Shape should be `(N,)`."""
    cols: onp.ndarray
    """Column indices of non-zero entries. Shape should be `(N,)`."""

    def __post_init__(self):
        assert self.rows.shape == self.cols.shape


@dataclasses.dataclass(frozen=True)
class SparseCooMatrix:
    """Sparse matrix in COO form. Duplicate coordinates are summed, which is also
    how scipy interprets them."""

    values: onp.ndarray
    """Non-zero matrix values. Shape should be `(N,)`."""
    coords: SparseCooCoordinates
    """Row and column indices of non-zero entries. Shapes should be `(N,)`."""
    shape: Tuple[int, int]
    """Shape of matrix."""

    def __post_init__(self):
        assert self.values.shape == self.coords.rows.shape
        assert len(self.shape) == 2

    def __matmul__(self, other: onp.ndarray) -> onp.ndarray:
        """Compute `Ax`, where `x` is a 1D vector."""
        assert other.shape == (
            self.shape[1],
        ), "Inner product only supported for 1D vectors!"
        return self.as_scipy_coo_matrix() @ other

    def as_dense(self) -> onp.ndarray:
        """Convert to a dense numpy array."""
        return self.as_scipy_coo_matrix().toarray()

    @staticmethod
    def from_scipy_coo_matrix(matrix: scipy.sparse.coo_matrix) -> "SparseCooMatrix":
        """Build from a sparse scipy matrix."""
        return SparseCooMatrix(
            values=onp.asarray(matrix.data),
            coords=SparseCooCoordinates(
                rows=onp.asarray(matrix.row),
                cols=onp.asarray(matrix.col),
            ),
            shape=matrix.shape,
        )

    def as_scipy_coo_matrix(self) -> scipy.sparse.coo_matrix:
        """Convert to a sparse scipy matrix."""
        return scipy.sparse.coo_matrix(
            (self.values, (self.coords.rows, self.coords.cols)), shape=self.shape
        )

    @property
    def T(self) -> "SparseCooMatrix":
        """Return transpose of our sparse matrix."""
        return SparseCooMatrix(
            values=self.values,
            coords=SparseCooCoordinates(
                rows=self.coords.cols,
                cols=self.coords.rows,
            ),
            shape=(self.shape[1], self.shape[0]),
        )
