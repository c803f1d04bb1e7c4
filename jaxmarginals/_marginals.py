import dataclasses
from typing import List, Optional, Sequence, Set, Tuple

import numpy as onp
import scipy.linalg
from loguru import logger

from . import core, linear, utils
from ._keys import Key, format_key
from .errors import DuplicateKeyError, UnknownVariableError


@dataclasses.dataclass(frozen=True)
class EliminationConfig:
    """Settings for factoring the linearized system."""

    ordering: linear.OrderingType = "minimum_degree"
    """Heuristic for choosing the elimination order. Minimum degree keeps fill-in
    low; natural eliminates in ascending key order."""

    singular_tolerance: float = 1e-12
    """A pivot is treated as zero when it is below this fraction of its column's
    scale. Cholesky compares squared pivots against the information diagonal and
    raises `IndefiniteLinearSystemError`; QR compares pivots against the column
    norms and raises `SingularSystemError`."""


@dataclasses.dataclass(frozen=True)
class JointMarginal:
    """Dense joint covariance (or information) matrix over a set of variables,
    with block structure given by `layout`. Blocks are ordered the way the keys
    were requested."""

    matrix: onp.ndarray
    layout: linear.StorageLayout

    def __post_init__(self):
        assert self.matrix.shape == (self.layout.dim, self.layout.dim)

        # Freeze a private copy; the caller's array stays writeable.
        matrix = onp.array(self.matrix)
        matrix.flags.writeable = False
        object.__setattr__(self, "matrix", matrix)

    def get_keys(self) -> List[Key]:
        """Keys, in the order they were requested."""
        return list(self.layout.get_keys())

    def block(self, key_a: Key, key_b: Key) -> onp.ndarray:
        """Copy of the `(key_a, key_b)` block."""
        for key in (key_a, key_b):
            if key not in self.layout:
                raise UnknownVariableError(key)
        return self.matrix[
            self.layout.get_slice(key_a), self.layout.get_slice(key_b)
        ].copy()

    def __getitem__(self, keys: Tuple[Key, Key]) -> onp.ndarray:
        key_a, key_b = keys
        return self.block(key_a, key_b)

    def __repr__(self) -> str:
        keys = ", ".join(format_key(key) for key in self.layout.get_keys())
        return f"JointMarginal(keys=[{keys}], matrix=\n{self.matrix}\n)"


@dataclasses.dataclass(frozen=True)
class Marginals:
    """Marginal covariances and information matrices of a solved factor graph.

    The graph is linearized and factored once, when the object is created. Every
    query after that only reads the factorization: the requested variables and
    their ancestors in the Bayes net are pulled out and re-eliminated with the
    requested ones last, which leaves a small triangular front that is inverted
    directly. The full information matrix is never inverted.
    """

    bayes_net: linear.GaussianBayesNet
    mode: linear.FactorizationMode
    config: EliminationConfig

    @staticmethod
    def make(
        graph: core.NonlinearFactorGraph,
        values: core.Values,
        mode: linear.FactorizationMode = "cholesky",
        config: Optional[EliminationConfig] = None,
    ) -> "Marginals":
        """Linearize `graph` at `values` and factor it.

        Args:
            graph: Nonlinear factor graph.
            values: Linearization point; usually the optimizer's solution.
            mode: "cholesky" or "qr".
            config: Ordering and tolerance settings.
        """
        logger.info(
            "Building marginals for {} factors and {} variables",
            len(graph),
            len(graph.get_keys()),
        )
        return Marginals.make_from_linear(graph.linearize(values), mode, config)

    @staticmethod
    def make_from_linear(
        linear_graph: linear.GaussianFactorGraph,
        mode: linear.FactorizationMode = "cholesky",
        config: Optional[EliminationConfig] = None,
    ) -> "Marginals":
        """Factor an already-linearized (whitened) graph."""
        if config is None:
            config = EliminationConfig()

        logger.info(
            "Factoring {} linear factors over {} variables ({} mode)",
            len(linear_graph.factors),
            len(linear_graph.dim_from_key),
            mode,
        )
        with utils.stopwatch(f"Ordering ({config.ordering})"):
            ordering = linear.Ordering.make(linear_graph, config.ordering)
        with utils.stopwatch(f"Elimination ({mode})"):
            bayes_net = linear.eliminate(
                linear_graph,
                ordering,
                mode=mode,
                singular_tolerance=config.singular_tolerance,
            )
        return Marginals(bayes_net=bayes_net, mode=mode, config=config)

    def get_keys(self) -> List[Key]:
        """Keys of every variable in the graph, sorted."""
        return sorted(self.bayes_net.get_keys())

    def marginal_covariance(self, key: Key) -> onp.ndarray:
        """Marginal covariance of one variable, in its tangent space."""
        return self.joint_marginal_covariance((key,)).block(key, key)

    def marginal_information(self, key: Key) -> onp.ndarray:
        """Marginal information (inverse covariance) of one variable."""
        return self.joint_marginal_information((key,)).block(key, key)

    def joint_marginal_covariance(self, keys: Sequence[Key]) -> JointMarginal:
        """Joint covariance over several variables. Blocks follow the order of
        `keys`."""
        layout, R = self._eliminate_front(keys)
        R_inv = scipy.linalg.solve_triangular(R, onp.eye(layout.dim), lower=False)
        return JointMarginal(matrix=_symmetrize(R_inv @ R_inv.T), layout=layout)

    def joint_marginal_information(self, keys: Sequence[Key]) -> JointMarginal:
        """Joint information over several variables. Blocks follow the order of
        `keys`."""
        layout, R = self._eliminate_front(keys)
        return JointMarginal(matrix=_symmetrize(R.T @ R), layout=layout)

    def _eliminate_front(
        self, keys: Sequence[Key]
    ) -> Tuple[linear.StorageLayout, onp.ndarray]:
        """Square-root information of the marginal over `keys`: a dense upper
        triangular matrix, laid out in caller order."""
        keys = tuple(keys)
        if len(keys) == 0:
            raise ValueError("Marginal queries need at least one key.")
        requested: Set[Key] = set()
        for key in keys:
            if key not in self.bayes_net:
                raise UnknownVariableError(key)
            if key in requested:
                raise DuplicateKeyError(key, keys)
            requested.add(key)

        # Conditionals of the ancestor closure multiply out to the joint over it.
        # Eliminating everything except the requested keys marginalizes them out.
        position_from_key = self.bayes_net.position_from_key
        ancestors = sorted(
            self.bayes_net.get_ancestors(keys), key=position_from_key.get
        )
        front_graph = linear.GaussianFactorGraph.make(
            self.bayes_net.get_conditional(key).as_jacobian_factor()
            for key in ancestors
        )
        front_ordering = linear.Ordering(
            tuple(key for key in ancestors if key not in requested) + keys
        )
        front_net = linear.eliminate(
            front_graph,
            front_ordering,
            mode="qr",
            singular_tolerance=self.config.singular_tolerance,
        )
        logger.debug(
            "Marginal over {} keys: re-eliminated {} conditionals",
            len(keys),
            len(ancestors),
        )

        # Requested keys come last, so their conditionals only reference each other.
        layout = linear.StorageLayout.make(keys, front_net.get_dim_from_key())
        R = onp.zeros((layout.dim, layout.dim))
        for key in keys:
            conditional = front_net.get_conditional(key)
            rows = layout.get_slice(key)
            R[rows, rows] = conditional.R
            for parent, S in zip(conditional.parents, conditional.S_blocks):
                R[rows, layout.get_slice(parent)] = S
        return layout, R


def _symmetrize(matrix: onp.ndarray) -> onp.ndarray:
    return 0.5 * (matrix + matrix.T)
