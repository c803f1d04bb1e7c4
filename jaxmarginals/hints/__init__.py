from ._aliases import Array, Pytree, Scalar, TangentVector, VariableValue

__all__ = [
    "Array",
    "Pytree",
    "Scalar",
    "TangentVector",
    "VariableValue",
]
