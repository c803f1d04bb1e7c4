from typing import Dict, List

import numpy as onp
import pytest

import jaxmarginals
from jaxmarginals import linear


def make_random_linear_graph(
    seed: int, num_keys: int = 6
) -> linear.GaussianFactorGraph:
    """Random well-posed linear graph: a unary factor on every variable, plus
    random pairwise and triple factors."""
    rng = onp.random.default_rng(seed)
    dim_from_key = {key: int(rng.integers(1, 4)) for key in range(num_keys)}

    def random_factor(keys: List[int], rows: int) -> linear.JacobianFactor:
        return linear.JacobianFactor(
            keys=tuple(keys),
            A_blocks=tuple(rng.normal(size=(rows, dim_from_key[k])) for k in keys),
            b=rng.normal(size=(rows,)),
        )

    factors = [random_factor([key], dim_from_key[key]) for key in range(num_keys)]
    for _ in range(num_keys):
        keys = rng.choice(num_keys, size=int(rng.integers(2, 4)), replace=False)
        factors.append(random_factor([int(k) for k in keys], int(rng.integers(1, 5))))
    return linear.GaussianFactorGraph.make(factors)


def dense_system(graph: linear.GaussianFactorGraph):
    A, b = graph.compute_jacobian()
    return A.as_dense(), b


def stack_solution(
    graph: linear.GaussianFactorGraph, solution: Dict[int, onp.ndarray]
) -> onp.ndarray:
    return onp.concatenate([solution[key] for key in graph.get_keys()])


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
@pytest.mark.parametrize("mode", ["cholesky", "qr"])
@pytest.mark.parametrize("ordering_type", ["minimum_degree", "natural"])
def test_covariance_matches_dense_inverse(seed: int, mode, ordering_type):
    graph = make_random_linear_graph(seed)
    A, _ = dense_system(graph)
    expected = onp.linalg.inv(A.T @ A)

    marginals = jaxmarginals.Marginals.make_from_linear(
        graph,
        mode=mode,
        config=jaxmarginals.EliminationConfig(ordering=ordering_type),
    )

    # Sorted keys line up with the default Jacobian layout.
    joint = marginals.joint_marginal_covariance(graph.get_keys())
    onp.testing.assert_allclose(joint.matrix, expected, rtol=1e-7, atol=1e-9)

    information = marginals.joint_marginal_information(graph.get_keys())
    onp.testing.assert_allclose(information.matrix, A.T @ A, rtol=1e-7, atol=1e-9)


@pytest.mark.parametrize("mode", ["cholesky", "qr"])
def test_optimize_matches_least_squares(mode):
    graph = make_random_linear_graph(seed=5, num_keys=8)
    A, b = dense_system(graph)
    expected = onp.linalg.lstsq(A, b, rcond=None)[0]

    bayes_net = linear.eliminate(
        graph, linear.Ordering.make_minimum_degree(graph), mode=mode
    )
    onp.testing.assert_allclose(
        stack_solution(graph, bayes_net.optimize()), expected, rtol=1e-8, atol=1e-10
    )


@pytest.mark.parametrize("mode", ["cholesky", "qr"])
def test_bayes_net_structure(mode):
    graph = make_random_linear_graph(seed=7)
    ordering = linear.Ordering.make_minimum_degree(graph)
    bayes_net = linear.eliminate(graph, ordering, mode=mode)

    assert len(bayes_net) == len(graph.get_keys())
    assert bayes_net.get_keys() == list(ordering.keys)
    for conditional in bayes_net.conditionals:
        position = bayes_net.position_from_key[conditional.frontal]
        assert all(bayes_net.position_from_key[p] > position for p in conditional.parents)
        onp.testing.assert_array_equal(conditional.R, onp.triu(conditional.R))
        assert onp.all(onp.diag(conditional.R) > 0.0)


def test_modes_produce_same_factor():
    # Square-root information factors are unique once diagonals are positive.
    graph = make_random_linear_graph(seed=11)
    ordering = linear.Ordering.make_natural(graph)
    cholesky = linear.eliminate(graph, ordering, mode="cholesky")
    qr = linear.eliminate(graph, ordering, mode="qr")
    for key in graph.get_keys():
        a = cholesky.get_conditional(key)
        b = qr.get_conditional(key)
        assert a.parents == b.parents
        onp.testing.assert_allclose(a.R, b.R, rtol=1e-8, atol=1e-10)
        onp.testing.assert_allclose(a.d, b.d, rtol=1e-8, atol=1e-10)
        for S_a, S_b in zip(a.S_blocks, b.S_blocks):
            onp.testing.assert_allclose(S_a, S_b, rtol=1e-8, atol=1e-10)


def test_ancestors():
    # Chain 0 - 1 - 2 - 3, eliminated in natural order: parents point forward.
    eye = onp.eye(1)
    graph = linear.GaussianFactorGraph.make(
        [linear.JacobianFactor(keys=(3,), A_blocks=(eye,), b=onp.zeros(1))]
        + [
            linear.JacobianFactor(keys=(i, i + 1), A_blocks=(eye, -eye), b=onp.zeros(1))
            for i in range(3)
        ]
    )
    bayes_net = linear.eliminate(graph, linear.Ordering.make_natural(graph))
    assert bayes_net.get_ancestors([0]) == {0, 1, 2, 3}
    assert bayes_net.get_ancestors([2]) == {2, 3}
    assert bayes_net.get_ancestors([3]) == {3}


def test_conditional_as_jacobian_factor():
    conditional = linear.GaussianConditional(
        frontal=0,
        parents=(1,),
        R=onp.array([[2.0, 1.0], [0.0, 3.0]]),
        S_blocks=(onp.array([[1.0], [-1.0]]),),
        d=onp.array([1.0, 2.0]),
    )
    factor = conditional.as_jacobian_factor()
    assert factor.keys == (0, 1)

    # The conditional's solution zeros out the factor's error.
    parent_value = onp.array([0.5])
    x = conditional.solve({1: parent_value})
    assert factor.compute_error({0: x, 1: parent_value}) == pytest.approx(0.0)


def test_invalid_ordering():
    graph = make_random_linear_graph(seed=0)
    keys = graph.get_keys()
    with pytest.raises(ValueError):
        linear.eliminate(graph, linear.Ordering(tuple(keys[:-1])))
    with pytest.raises(ValueError):
        linear.eliminate(graph, linear.Ordering(tuple(keys) + (100,)))


def test_unknown_mode():
    graph = make_random_linear_graph(seed=0)
    with pytest.raises(ValueError):
        linear.eliminate(
            graph, linear.Ordering.make_natural(graph), mode="lu"  # type: ignore
        )


def test_rank_deficient_cholesky():
    # Variable 1 is only observed along its first axis.
    graph = linear.GaussianFactorGraph.make(
        [
            linear.JacobianFactor(keys=(0,), A_blocks=(onp.eye(2),), b=onp.zeros(2)),
            linear.JacobianFactor(
                keys=(0, 1),
                A_blocks=(-onp.eye(2), onp.array([[1.0, 0.0], [0.0, 0.0]])),
                b=onp.zeros(2),
            ),
        ]
    )
    with pytest.raises(jaxmarginals.IndefiniteLinearSystemError) as e:
        linear.eliminate(graph, linear.Ordering.make_natural(graph), mode="cholesky")
    assert e.value.key == 1
    with pytest.raises(jaxmarginals.SingularSystemError):
        linear.eliminate(graph, linear.Ordering.make_natural(graph), mode="qr")


def test_too_few_rows_qr():
    graph = linear.GaussianFactorGraph.make(
        [linear.JacobianFactor(keys=(0,), A_blocks=(onp.ones((1, 3)),), b=onp.zeros(1))]
    )
    with pytest.raises(jaxmarginals.SingularSystemError):
        linear.eliminate(graph, linear.Ordering.make_natural(graph), mode="qr")
    with pytest.raises(jaxmarginals.SingularSystemError):
        linear.eliminate(graph, linear.Ordering.make_natural(graph), mode="cholesky")


def test_inconsistent_dimensions():
    with pytest.raises(ValueError):
        linear.GaussianFactorGraph.make(
            [
                linear.JacobianFactor(keys=(0,), A_blocks=(onp.eye(2),), b=onp.zeros(2)),
                linear.JacobianFactor(keys=(0,), A_blocks=(onp.eye(3),), b=onp.zeros(3)),
            ]
        )


def make_ill_conditioned_graph() -> linear.GaussianFactorGraph:
    """Two scalars observed through their sum, each weakly anchored. The Jacobian
    has a condition number near 1.4e7."""
    eye = onp.eye(1)
    return linear.GaussianFactorGraph.make(
        [
            linear.JacobianFactor(keys=(0, 1), A_blocks=(eye, eye), b=onp.zeros(1)),
            linear.JacobianFactor(keys=(0,), A_blocks=(1e-7 * eye,), b=onp.zeros(1)),
            linear.JacobianFactor(keys=(1,), A_blocks=(1e-7 * eye,), b=onp.zeros(1)),
        ]
    )


def test_ill_conditioned_qr():
    graph = make_ill_conditioned_graph()
    marginals = jaxmarginals.Marginals.make_from_linear(graph, mode="qr")

    # Information is [[1 + e, 1], [1, 1 + e]] with e = 1e-14.
    e = 1e-14
    expected_variance = (1.0 + e) / ((1.0 + e) ** 2 - 1.0)
    for key in (0, 1):
        onp.testing.assert_allclose(
            marginals.marginal_covariance(key), [[expected_variance]], rtol=1e-6
        )


def test_ill_conditioned_cholesky():
    # Squaring the condition number puts this past the Cholesky pivot tolerance.
    graph = make_ill_conditioned_graph()
    with pytest.raises(jaxmarginals.IndefiniteLinearSystemError):
        jaxmarginals.Marginals.make_from_linear(graph, mode="cholesky")
