"""Failures raised while building or querying marginals. All of them end the
operation that raised them; nothing is retried or silently replaced."""

from typing import Sequence

from ._keys import Key, format_key


class MarginalsError(Exception):
    """Base class for every error raised by `jaxmarginals`."""


class MissingValueError(MarginalsError):
    """A factor references a key that has no entry in the linearization point."""

    def __init__(self, key: Key, factor_name: str):
        self.key = key
        self.factor_name = factor_name
        super().__init__(
            f"No value for {format_key(key)}, which is connected to {factor_name}."
        )


class SingularSystemError(MarginalsError):
    """The information matrix is not invertible. Usually a variable (or a group
    of them) is not tied to any absolute constraint, like a prior."""

    def __init__(self, key: Key, message: str):
        self.key = key
        super().__init__(
            f"Singular system while eliminating {format_key(key)}: {message}"
        )


class IndefiniteLinearSystemError(SingularSystemError):
    """Cholesky elimination hit a pivot that is not positive."""


class UnknownVariableError(MarginalsError):
    """A query references a key that is not part of the factor graph."""

    def __init__(self, key: Key):
        self.key = key
        super().__init__(f"Variable {format_key(key)} is not part of the graph.")


class DuplicateKeyError(MarginalsError):
    """A joint query lists the same key more than once."""

    def __init__(self, key: Key, keys: Sequence[Key]):
        self.key = key
        self.keys = tuple(keys)
        super().__init__(
            f"Key {format_key(key)} appears more than once in "
            f"[{', '.join(format_key(k) for k in keys)}]."
        )
