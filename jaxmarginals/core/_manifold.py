"""Tangent-space operations, dispatched on the type of a value.

`jaxlie` Lie group instances use their group structure, with right-side
perturbations (`x @ exp(delta)`). Anything else is treated as a Euclidean pytree
and flattened with `ravel_pytree`.
"""

from typing import cast

import jax
import jaxlie
from jax import flatten_util
from jax import numpy as jnp

from .. import hints


def is_lie_group(value: hints.VariableValue) -> bool:
    return isinstance(value, jaxlie.MatrixLieGroup)


def get_tangent_dim(value: hints.VariableValue) -> int:
    """Dimension of the local parameterization of a value."""
    if is_lie_group(value):
        return type(value).tangent_dim
    flat, _ = flatten_util.ravel_pytree(value)
    return flat.shape[0]


def retract(
    value: hints.VariableValue, delta: hints.TangentVector
) -> hints.VariableValue:
    """Move a value along a tangent-space delta."""
    if is_lie_group(value):
        return jaxlie.manifold.rplus(value, delta)

    # Euclidean retraction.
    flat, unravel = flatten_util.ravel_pytree(value)
    del flat
    return cast(hints.VariableValue, jax.tree.map(jnp.add, value, unravel(delta)))


def local_coordinates(
    reference: hints.VariableValue, value: hints.VariableValue
) -> jnp.ndarray:
    """Inverse of `retract()`: the delta that takes `reference` to `value`."""
    if is_lie_group(reference):
        return jaxlie.manifold.rminus(reference, value)
    return flatten_util.ravel_pytree(value)[0] - flatten_util.ravel_pytree(reference)[0]


def between(a: hints.VariableValue, b: hints.VariableValue) -> hints.VariableValue:
    """Relative value of `b` in the frame of `a`. For vectors, a plain difference."""
    if is_lie_group(a):
        assert type(a) is type(b)
        return a.inverse() @ b
    return jax.tree.map(jnp.subtract, b, a)
