import abc
from typing import Tuple, TypeVar

import jax
import jax_dataclasses as jdc
import numpy as onp
from jax import numpy as jnp
from overrides import EnforceOverrides, final

from .. import hints, linear, noises
from .._keys import Key, format_key
from ..errors import MissingValueError
from . import _manifold
from ._values import Values

FactorType = TypeVar("FactorType", bound="FactorBase")


@jdc.pytree_dataclass
class _FactorBase:
    # For why we have two classes:
    # https://github.com/python/mypy/issues/5374#issuecomment-650656381

    keys: jdc.Static[Tuple[Key, ...]]
    """Keys of variables connected to this factor. 1-to-1, in-order correspondence
    with the values passed to `compute_residual_vector()`."""

    noise_model: noises.NoiseModelBase
    """Noise model."""


class FactorBase(_FactorBase, abc.ABC, EnforceOverrides):
    # (1) Functions that must be overriden in subclasses.

    @abc.abstractmethod
    def compute_residual_vector(
        self, variable_values: Tuple[hints.VariableValue, ...]
    ) -> jnp.ndarray:
        """Compute factor error.

        Args:
            variable_values: Values of the variables in `self.keys`, in order.
        """

    # (2) Function to override for analytical Jacobians. This is always optional.

    def compute_residual_jacobians(
        self, variable_values: Tuple[hints.VariableValue, ...]
    ) -> Tuple[jnp.ndarray, ...]:
        """Compute Jacobians of the (unwhitened) residual with respect to the local
        parameterization of each variable. One `(residual_dim, tangent_dim)` array
        per key.

        Default implementation: forward-mode autodiff through the retraction,
        evaluated at a zero delta."""
        assert len(self.keys) == len(variable_values)

        def residual_from_deltas(
            deltas: Tuple[hints.TangentVector, ...]
        ) -> jnp.ndarray:
            return self.compute_residual_vector(
                tuple(
                    _manifold.retract(value, delta)
                    for value, delta in zip(variable_values, deltas)
                )
            )

        zero_deltas = tuple(
            jnp.zeros(_manifold.get_tangent_dim(value)) for value in variable_values
        )
        return tuple(jax.jacfwd(residual_from_deltas)(zero_deltas))

    # (3) Shared implementations.

    @final
    def get_residual_dim(self) -> int:
        """Error dimensionality."""
        return self.noise_model.get_residual_dim()

    @final
    def get_name(self) -> str:
        return f"{type(self).__name__}({', '.join(format_key(k) for k in self.keys)})"

    @final
    def get_variable_values(
        self, values: Values
    ) -> Tuple[hints.VariableValue, ...]:
        """Pull out the values connected to this factor, in key order."""
        for key in self.keys:
            if key not in values:
                raise MissingValueError(key, self.get_name())
        return tuple(values.get_value(key) for key in self.keys)

    @final
    def anonymize_keys(self: FactorType) -> FactorType:
        """Returns a copy of this factor with keys replaced by placeholders. Keys are
        static metadata, so this lets every factor of the same type and shape share
        one compiled linearization function."""
        return jdc.replace(self, keys=(None,) * len(self.keys))

    @final
    def linearize(self, values: Values) -> linear.JacobianFactor:
        """Linearize around `values`. Returns a whitened Jacobian factor with
        `b = -whitened residual`."""
        variable_values = self.get_variable_values(values)
        residual, jacobians = _compute_whitened_linearization(
            self.anonymize_keys(), variable_values
        )
        assert residual.shape == (self.get_residual_dim(),)
        return linear.JacobianFactor(
            keys=self.keys,
            A_blocks=tuple(onp.asarray(J, dtype=onp.float64) for J in jacobians),
            b=-onp.asarray(residual, dtype=onp.float64),
        )

    @final
    def compute_error(self, values: Values) -> float:
        """Half of the squared whitened residual norm."""
        residual = self.noise_model.whiten_residual_vector(
            self.compute_residual_vector(self.get_variable_values(values))
        )
        return 0.5 * float(jnp.sum(residual**2))


@jax.jit
def _compute_whitened_linearization(
    factor: FactorBase, variable_values: Tuple[hints.VariableValue, ...]
) -> Tuple[jnp.ndarray, Tuple[jnp.ndarray, ...]]:
    residual = factor.compute_residual_vector(variable_values)
    jacobians = factor.compute_residual_jacobians(variable_values)
    assert len(jacobians) == len(variable_values)
    return (
        factor.noise_model.whiten_residual_vector(residual),
        tuple(factor.noise_model.whiten_jacobian(J) for J in jacobians),
    )
