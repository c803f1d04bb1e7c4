"""Marginal covariances for a small planar SLAM problem, evaluated at its optimum:

  Prior ── x1 ──Between── x2 ──Between── x3
            │              │              │
      BearingRange   BearingRange   BearingRange
            │              │              │
            └──── l1 ──────┘             l2

For a summary of options:

    python planar_slam_marginals.py --help

"""

from typing import Literal

import jax
import jaxlie
import numpy as onp
import tyro
from jax import numpy as jnp

import jaxmarginals
from jaxmarginals import Symbol, geometry, noises

jax.config.update("jax_enable_x64", True)


def main(
    mode: Literal["cholesky", "qr"] = "cholesky",
    ordering: Literal["minimum_degree", "natural"] = "minimum_degree",
) -> None:
    x1, x2, x3 = Symbol("x", 1), Symbol("x", 2), Symbol("x", 3)
    l1, l2 = Symbol("l", 1), Symbol("l", 2)

    prior_noise = noises.DiagonalGaussian.make_from_sigmas([0.3, 0.3, 0.1])
    odometry_noise = noises.DiagonalGaussian.make_from_sigmas([0.2, 0.2, 0.1])
    measurement_noise = noises.DiagonalGaussian.make_from_sigmas([0.1, 0.2])

    # Create factors: each defines a conditional probability distribution over some
    # variables.
    graph = jaxmarginals.core.NonlinearFactorGraph.make(
        [
            geometry.PriorFactor.make(x1, jaxlie.SE2.identity(), prior_noise),
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

    # Linearization point. These are already optimal, so we skip the solve.
    values = jaxmarginals.core.Values.make_from_dict(
        {
            x1: jaxlie.SE2.from_xy_theta(0.0, 0.0, 0.0),
            x2: jaxlie.SE2.from_xy_theta(2.0, 0.0, 0.0),
            x3: jaxlie.SE2.from_xy_theta(4.0, 0.0, 0.0),
            l1: jnp.array([2.0, 2.0]),
            l2: jnp.array([4.0, 2.0]),
        }
    )

    with jaxmarginals.utils.stopwatch("Building marginals"):
        marginals = jaxmarginals.Marginals.make(
            graph,
            values,
            mode=mode,
            config=jaxmarginals.EliminationConfig(ordering=ordering),
        )

    onp.set_printoptions(precision=6, suppress=True)
    for key in (x1, x2, x3, l1, l2):
        print(f"{key} covariance:\n{marginals.marginal_covariance(key)}\n")

    print(marginals.joint_marginal_covariance([l2, x1, x3]))


if __name__ == "__main__":
    tyro.cli(main)
