from ._sparse_matrix import SparseCooCoordinates, SparseCooMatrix

__all__ = [
    "SparseCooCoordinates",
    "SparseCooMatrix",
]
