import dataclasses
from typing import Collection, Dict, Iterable, Mapping

from .._keys import Key


@dataclasses.dataclass(frozen=True)
class StorageLayout:
    """Describes where the tangent-space block of each variable lives in a
    flattened vector, or along either axis of a square block matrix.

    Note that this is a vanilla dataclass -- not a PyTree. (in other words: all contents
    are static)
    """

    dim: int
    """Total dimension of storage vector."""

    index_from_key: Dict[Key, int]
    """Start index of each stored variable. Insertion order is storage order."""

    dim_from_key: Dict[Key, int]
    """Tangent dimension of each stored variable."""

    def get_keys(self) -> Collection[Key]:
        """Keys. Storage indices are guaranteed to be in ascending order."""
        # Dictionaries from Python 3.7 retain insertion order
        return self.index_from_key.keys()

    def get_slice(self, key: Key) -> slice:
        start = self.index_from_key[key]
        return slice(start, start + self.dim_from_key[key])

    def __contains__(self, key: object) -> bool:
        return key in self.index_from_key

    @staticmethod
    def make(keys: Iterable[Key], dim_from_key: Mapping[Key, int]) -> "StorageLayout":
        """Lay out variables contiguously, in the order given."""
        index_from_key: Dict[Key, int] = {}
        ordered_dims: Dict[Key, int] = {}
        storage_index = 0
        for key in keys:
            assert key not in index_from_key, "Keys should be unique!"
            index_from_key[key] = storage_index
            ordered_dims[key] = dim_from_key[key]
            storage_index += dim_from_key[key]

        return StorageLayout(
            dim=storage_index,
            index_from_key=index_from_key,
            dim_from_key=ordered_dims,
        )
