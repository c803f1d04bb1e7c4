from ._factors import BearingRangeFactor, BetweenFactor, PriorFactor

__all__ = [
    "BearingRangeFactor",
    "BetweenFactor",
    "PriorFactor",
]
