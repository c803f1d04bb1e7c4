from typing import Tuple

import jax
import jaxlie
import numpy as onp
import pytest
from jax import numpy as jnp

# Reference values are checked to ~1e-8; Jacobians need to come out in float64.
jax.config.update("jax_enable_x64", True)

import jaxmarginals  # noqa: E402
from jaxmarginals import Symbol  # noqa: E402

x1, x2, x3 = Symbol("x", 1), Symbol("x", 2), Symbol("x", 3)
l1, l2 = Symbol("l", 1), Symbol("l", 2)


def make_planar_slam() -> Tuple[
    jaxmarginals.core.NonlinearFactorGraph, jaxmarginals.core.Values
]:
    """Three poses and two landmarks, evaluated at the optimal solution."""
    geometry = jaxmarginals.geometry
    noises = jaxmarginals.noises

    prior_noise = noises.DiagonalGaussian.make_from_sigmas([0.3, 0.3, 0.1])
    odometry_noise = noises.DiagonalGaussian.make_from_sigmas([0.2, 0.2, 0.1])
    measurement_noise = noises.DiagonalGaussian.make_from_sigmas([0.1, 0.2])

    graph = jaxmarginals.core.NonlinearFactorGraph.make(
        [
            geometry.PriorFactor.make(
                x1, jaxlie.SE2.from_xy_theta(0.0, 0.0, 0.0), prior_noise
            ),
            geometry.BetweenFactor.make(
                x1, x2, jaxlie.SE2.from_xy_theta(2.0, 0.0, 0.0), odometry_noise
            ),
            geometry.BetweenFactor.make(
                x2, x3, jaxlie.SE2.from_xy_theta(2.0, 0.0, 0.0), odometry_noise
            ),
            geometry.BearingRangeFactor.make(
                x1, l1, onp.pi / 4.0, onp.sqrt(8.0), measurement_noise
            ),
            geometry.BearingRangeFactor.make(
                x2, l1, onp.pi / 2.0, 2.0, measurement_noise
            ),
            geometry.BearingRangeFactor.make(
                x3, l2, onp.pi / 2.0, 2.0, measurement_noise
            ),
        ]
    )
    values = jaxmarginals.core.Values.make_from_dict(
        {
            x1: jaxlie.SE2.from_xy_theta(0.0, 0.0, 0.0),
            x2: jaxlie.SE2.from_xy_theta(2.0, 0.0, 0.0),
            x3: jaxlie.SE2.from_xy_theta(4.0, 0.0, 0.0),
            l1: jnp.array([2.0, 2.0]),
            l2: jnp.array([4.0, 2.0]),
        }
    )
    return graph, values


@pytest.fixture(scope="module")
def planar_slam() -> Tuple[
    jaxmarginals.core.NonlinearFactorGraph, jaxmarginals.core.Values
]:
    return make_planar_slam()


@pytest.fixture(scope="module", params=["cholesky", "qr"])
def planar_slam_marginals(request, planar_slam) -> jaxmarginals.Marginals:
    graph, values = planar_slam
    return jaxmarginals.Marginals.make(graph, values, mode=request.param)
