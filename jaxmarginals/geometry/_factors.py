from typing import Tuple, Union

import jax_dataclasses as jdc
import jaxlie
from jax import numpy as jnp
from overrides import overrides

from .. import hints, noises
from .._keys import Key
from ..core import _manifold
from ..core._factor_base import FactorBase


@jdc.pytree_dataclass
class PriorFactor(FactorBase):
    """Factor for defining a fixed prior on a variable.

    Residuals are computed as `(mu.inverse() @ x).log()` for Lie groups, and
    `x - mu` for Euclidean values.
    """

    mu: hints.VariableValue

    # Optional: it can be nice to define a factory method. In this case we constrain
    # the connections to just a single variable and call the dataclass constructor.
    @staticmethod
    def make(
        key: Key,
        mu: hints.VariableValue,
        noise_model: noises.NoiseModelBase,
    ) -> "PriorFactor":
        return PriorFactor(keys=(key,), mu=mu, noise_model=noise_model)

    @overrides
    def compute_residual_vector(
        self, variable_values: Tuple[hints.VariableValue, ...]
    ) -> jnp.ndarray:
        (x,) = variable_values
        return _manifold.local_coordinates(self.mu, x)


@jdc.pytree_dataclass
class BetweenFactor(FactorBase):
    """Factor for defining a relative measurement between variables `a` and `b`.

    Residuals are computed as `(T_a_b.inverse() @ (x_a.inverse() @ x_b)).log()`
    for Lie groups, and `(x_b - x_a) - T_a_b` for Euclidean values.
    """

    T_a_b: hints.VariableValue

    @staticmethod
    def make(
        key_a: Key,
        key_b: Key,
        T_a_b: hints.VariableValue,
        noise_model: noises.NoiseModelBase,
    ) -> "BetweenFactor":
        return BetweenFactor(keys=(key_a, key_b), T_a_b=T_a_b, noise_model=noise_model)

    @overrides
    def compute_residual_vector(
        self, variable_values: Tuple[hints.VariableValue, ...]
    ) -> jnp.ndarray:
        x_a, x_b = variable_values
        return _manifold.local_coordinates(self.T_a_b, _manifold.between(x_a, x_b))


@jdc.pytree_dataclass
class BearingRangeFactor(FactorBase):
    """Bearing and range to a 2D landmark, observed from an SE(2) pose.

    Residual is `[log(bearing^-1 @ predicted_bearing), predicted_range - range]`.
    """

    bearing: jaxlie.SO2
    range: hints.Scalar

    @staticmethod
    def make(
        pose_key: Key,
        point_key: Key,
        bearing: Union[jaxlie.SO2, float],
        range: float,
        noise_model: noises.NoiseModelBase,
    ) -> "BearingRangeFactor":
        if not isinstance(bearing, jaxlie.SO2):
            bearing = jaxlie.SO2.from_radians(bearing)
        return BearingRangeFactor(
            keys=(pose_key, point_key),
            bearing=bearing,
            range=jnp.asarray(range),
            noise_model=noise_model,
        )

    @overrides
    def compute_residual_vector(
        self, variable_values: Tuple[hints.VariableValue, ...]
    ) -> jnp.ndarray:
        T_world_pose: jaxlie.SE2
        T_world_pose, point = variable_values

        # Landmark in the pose frame.
        p = T_world_pose.inverse() @ point
        predicted_bearing = jaxlie.SO2.from_radians(jnp.arctan2(p[1], p[0]))
        return jnp.concatenate(
            [
                (self.bearing.inverse() @ predicted_bearing).log(),
                jnp.linalg.norm(p)[None] - self.range,
            ]
        )
