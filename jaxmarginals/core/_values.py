import dataclasses
from typing import Dict, Iterable, List, Mapping, Tuple

from .. import hints
from .._keys import Key, format_key
from . import _manifold


@dataclasses.dataclass(frozen=True)
class Values:
    """Immutable mapping from keys to variable values. Typically the solution of a
    nonlinear optimizer, used as the linearization point."""

    value_from_key: Mapping[Key, hints.VariableValue]

    @staticmethod
    def make_from_dict(
        value_from_key: Mapping[Key, hints.VariableValue]
    ) -> "Values":
        """Create a values object from a dictionary. The input is copied."""
        return Values(value_from_key=dict(value_from_key))

    @staticmethod
    def make_from_pairs(
        pairs: Iterable[Tuple[Key, hints.VariableValue]]
    ) -> "Values":
        value_from_key: Dict[Key, hints.VariableValue] = {}
        for key, value in pairs:
            assert key not in value_from_key, f"Repeated key {format_key(key)}!"
            value_from_key[key] = value
        return Values(value_from_key=value_from_key)

    def __len__(self) -> int:
        return len(self.value_from_key)

    def __contains__(self, key: object) -> bool:
        return key in self.value_from_key

    def __getitem__(self, key: Key) -> hints.VariableValue:
        return self.get_value(key)

    def __repr__(self) -> str:
        contents = "\n".join(
            f"    {format_key(key)}: {self.value_from_key[key]}"
            for key in self.get_keys()
        )
        return f"Values(\n{contents}\n)"

    def get_keys(self) -> List[Key]:
        """All keys, sorted."""
        return sorted(self.value_from_key.keys())

    def get_value(self, key: Key) -> hints.VariableValue:
        return self.value_from_key[key]

    def get_tangent_dim(self, key: Key) -> int:
        return _manifold.get_tangent_dim(self.value_from_key[key])

    def retract(self, delta_from_key: Mapping[Key, hints.TangentVector]) -> "Values":
        """Apply tangent-space deltas. Keys without a delta are carried over."""
        value_from_key = dict(self.value_from_key)
        for key, delta in delta_from_key.items():
            value_from_key[key] = _manifold.retract(value_from_key[key], delta)
        return Values(value_from_key=value_from_key)
