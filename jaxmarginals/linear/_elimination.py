"""Variable elimination: turns a `GaussianFactorGraph` into a `GaussianBayesNet`.

Two numerical strategies are supported:

- "cholesky": forms the (block-sparse) information matrix and factors it. Cheap,
  but squares the condition number of the problem.
- "qr": triangularizes stacked Jacobian blocks with Householder reflections. The
  normal equations are never formed, which is slower but more stable.
"""

from typing import Dict, List, Literal, Set, Tuple

import numpy as onp
import scipy.linalg
from loguru import logger

from .._keys import Key
from ..errors import IndefiniteLinearSystemError, SingularSystemError
from ._gaussian_bayes_net import GaussianBayesNet, GaussianConditional
from ._gaussian_factor_graph import GaussianFactorGraph, JacobianFactor
from ._ordering import Ordering, check_ordering
from ._storage_layout import StorageLayout

FactorizationMode = Literal["cholesky", "qr"]


def eliminate(
    graph: GaussianFactorGraph,
    ordering: Ordering,
    mode: FactorizationMode = "cholesky",
    singular_tolerance: float = 1e-12,
) -> GaussianBayesNet:
    """Eliminate every variable of a linear graph, one at a time, in `ordering`.

    Args:
        graph: Linear graph to factor.
        ordering: Elimination order; must cover exactly the keys of `graph`.
        mode: "cholesky" or "qr".
        singular_tolerance: A pivot is treated as zero when it falls below this
            fraction of its column's original scale. Cholesky compares squared
            pivots against the information diagonal; QR compares pivots against
            the column norms.

    Returns:
        Bayes net with one conditional per variable, in elimination order.
    """
    check_ordering(ordering, graph)
    information_diagonals = _compute_information_diagonals(graph)

    if mode == "cholesky":
        conditionals = _eliminate_cholesky(
            graph, ordering, information_diagonals, singular_tolerance
        )
    elif mode == "qr":
        conditionals = _eliminate_qr(
            graph, ordering, information_diagonals, singular_tolerance
        )
    else:
        raise ValueError(f"Unknown factorization mode: {mode}")

    bayes_net = GaussianBayesNet.make(conditionals)
    logger.debug(
        "Eliminated {} variables ({}), {} off-diagonal blocks in factor",
        len(bayes_net),
        mode,
        sum(len(c.parents) for c in bayes_net.conditionals),
    )
    return bayes_net


def _compute_information_diagonals(
    graph: GaussianFactorGraph,
) -> Dict[Key, onp.ndarray]:
    """Diagonal of `A^T A`, split by variable. Used as the reference scale for
    pivot checks."""
    diagonals = {key: onp.zeros(dim) for key, dim in graph.dim_from_key.items()}
    for factor in graph.factors:
        for key, A in zip(factor.keys, factor.A_blocks):
            diagonals[key] += onp.sum(A**2, axis=0)
    return diagonals


def _check_pivots(
    key: Key,
    R: onp.ndarray,
    information_diagonal: onp.ndarray,
    singular_tolerance: float,
    mode: FactorizationMode,
) -> None:
    """Raise if any diagonal entry of `R` is negligible next to the column scale.

    Cholesky pivots are compared squared against the information diagonal. QR
    pivots are compared unsquared against the column norms.
    """
    pivots = onp.abs(onp.diag(R))
    if mode == "cholesky":
        is_zero = pivots**2 <= singular_tolerance * information_diagonal
        error_type: type = IndefiniteLinearSystemError
    else:
        is_zero = pivots <= singular_tolerance * onp.sqrt(information_diagonal)
        error_type = SingularSystemError
    if onp.any(is_zero):
        raise error_type(
            key,
            "pivot is numerically zero; the variable is not fully constrained.",
        )


def _eliminate_cholesky(
    graph: GaussianFactorGraph,
    ordering: Ordering,
    information_diagonals: Dict[Key, onp.ndarray],
    singular_tolerance: float,
) -> List[GaussianConditional]:
    position_from_key = ordering.get_position_from_key()

    # Block-sparse information matrix and information vector. We only store the
    # upper triangle: blocks (a, b) with position(a) <= position(b).
    hessian_blocks: Dict[Tuple[Key, Key], onp.ndarray] = {}
    information_vector_from_key = {
        key: onp.zeros(dim) for key, dim in graph.dim_from_key.items()
    }
    for factor in graph.factors:
        for key_a, A_a in zip(factor.keys, factor.A_blocks):
            information_vector_from_key[key_a] += A_a.T @ factor.b
            for key_b, A_b in zip(factor.keys, factor.A_blocks):
                if position_from_key[key_a] > position_from_key[key_b]:
                    continue
                block = A_a.T @ A_b
                if (key_a, key_b) in hessian_blocks:
                    block = hessian_blocks[key_a, key_b] + block
                hessian_blocks[key_a, key_b] = block

    neighbors_from_key = graph.get_adjacency()
    conditionals: List[GaussianConditional] = []
    for key in ordering:
        parents = tuple(sorted(neighbors_from_key.pop(key), key=position_from_key.get))

        # Factor the pivot block: Lambda_kk = R^T R.
        try:
            R = onp.linalg.cholesky(hessian_blocks.pop((key, key))).T
        except onp.linalg.LinAlgError as e:
            raise IndefiniteLinearSystemError(
                key, "pivot block is not positive definite."
            ) from e
        _check_pivots(
            key, R, information_diagonals[key], singular_tolerance, "cholesky"
        )

        # R^T S = Lambda_kp, R^T d = eta_k.
        S_blocks = tuple(
            scipy.linalg.solve_triangular(
                R, hessian_blocks.pop((key, parent)), trans="T", lower=False
            )
            for parent in parents
        )
        d = scipy.linalg.solve_triangular(
            R, information_vector_from_key.pop(key), trans="T", lower=False
        )
        conditionals.append(
            GaussianConditional(
                frontal=key, parents=parents, R=R, S_blocks=S_blocks, d=d
            )
        )

        # Schur complement onto the separator. This is where fill-in happens.
        for i, parent_i in enumerate(parents):
            information_vector_from_key[parent_i] -= S_blocks[i].T @ d
            for j in range(i, len(parents)):
                parent_j = parents[j]
                update = S_blocks[i].T @ S_blocks[j]
                if (parent_i, parent_j) in hessian_blocks:
                    hessian_blocks[parent_i, parent_j] = (
                        hessian_blocks[parent_i, parent_j] - update
                    )
                else:
                    hessian_blocks[parent_i, parent_j] = -update

            neighbors = neighbors_from_key[parent_i]
            neighbors.discard(key)
            neighbors.update(parents)
            neighbors.discard(parent_i)

    assert len(hessian_blocks) == 0
    return conditionals


def _eliminate_qr(
    graph: GaussianFactorGraph,
    ordering: Ordering,
    information_diagonals: Dict[Key, onp.ndarray],
    singular_tolerance: float,
) -> List[GaussianConditional]:
    position_from_key = ordering.get_position_from_key()
    dim_from_key = graph.dim_from_key

    # Active factors, by ID. IDs increase monotonically; iterating over sorted IDs
    # keeps row stacking deterministic.
    factor_from_id: Dict[int, JacobianFactor] = dict(enumerate(graph.factors))
    factor_ids_from_key: Dict[Key, Set[int]] = {key: set() for key in dim_from_key}
    for factor_id, factor in factor_from_id.items():
        for key in factor.keys:
            factor_ids_from_key[key].add(factor_id)
    next_factor_id = len(factor_from_id)

    conditionals: List[GaussianConditional] = []
    for key in ordering:
        # Pull out every factor touching this variable.
        involved: List[JacobianFactor] = []
        for factor_id in sorted(factor_ids_from_key.pop(key)):
            factor = factor_from_id.pop(factor_id)
            for other_key in factor.keys:
                if other_key != key:
                    factor_ids_from_key[other_key].discard(factor_id)
            involved.append(factor)

        parents = tuple(
            sorted(
                {k for factor in involved for k in factor.keys if k != key},
                key=position_from_key.get,
            )
        )

        # Stack into an augmented matrix [A_key | A_parents | b].
        layout = StorageLayout.make((key,) + parents, dim_from_key)
        num_rows = sum(factor.get_rows() for factor in involved)
        dim = dim_from_key[key]
        if num_rows < dim:
            raise SingularSystemError(
                key, f"{num_rows} constraint rows for a {dim}-dimensional variable."
            )
        Ab = onp.zeros((num_rows, layout.dim + 1))
        row = 0
        for factor in involved:
            rows = slice(row, row + factor.get_rows())
            for factor_key, A in zip(factor.keys, factor.A_blocks):
                Ab[rows, layout.get_slice(factor_key)] = A
            Ab[rows, -1] = factor.b
            row += factor.get_rows()

        # Householder QR. The Q factor never needs to be applied explicitly: the
        # right-hand side rides along as the last column.
        _, R_aug = scipy.linalg.qr(Ab, mode="economic")

        # Flip rows so the pivot block has a positive diagonal; Q absorbs the sign.
        signs = onp.where(onp.diag(R_aug[:dim, :dim]) < 0.0, -1.0, 1.0)
        R_aug[:dim] *= signs[:, None]

        R = R_aug[:dim, :dim].copy()
        _check_pivots(key, R, information_diagonals[key], singular_tolerance, "qr")
        conditionals.append(
            GaussianConditional(
                frontal=key,
                parents=parents,
                R=R,
                S_blocks=tuple(
                    R_aug[:dim, layout.get_slice(parent)].copy() for parent in parents
                ),
                d=R_aug[:dim, -1].copy(),
            )
        )

        # Whatever is left below the pivot rows is a new factor on the separator.
        remaining = R_aug[dim:]
        if len(parents) > 0 and remaining.shape[0] > 0:
            factor_from_id[next_factor_id] = JacobianFactor(
                keys=parents,
                A_blocks=tuple(
                    remaining[:, layout.get_slice(parent)].copy() for parent in parents
                ),
                b=remaining[:, -1].copy(),
            )
            for parent in parents:
                factor_ids_from_key[parent].add(next_factor_id)
            next_factor_id += 1

    return conditionals
