import dataclasses
import heapq
from typing import Dict, Iterable, List, Literal, Set, Tuple

from .._keys import Key
from ._gaussian_factor_graph import GaussianFactorGraph

OrderingType = Literal["minimum_degree", "natural"]


@dataclasses.dataclass(frozen=True)
class Ordering:
    """Sequence in which variables are eliminated."""

    keys: Tuple[Key, ...]

    def __post_init__(self):
        assert len(set(self.keys)) == len(self.keys), "Ordering has repeated keys!"

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self):
        return iter(self.keys)

    def get_position_from_key(self) -> Dict[Key, int]:
        return {key: i for i, key in enumerate(self.keys)}

    @staticmethod
    def make(graph: GaussianFactorGraph, ordering_type: OrderingType) -> "Ordering":
        if ordering_type == "minimum_degree":
            return Ordering.make_minimum_degree(graph)
        elif ordering_type == "natural":
            return Ordering.make_natural(graph)
        else:
            raise ValueError(f"Unknown ordering type: {ordering_type}")

    @staticmethod
    def make_natural(graph: GaussianFactorGraph) -> "Ordering":
        """Eliminate in ascending key order."""
        return Ordering(tuple(graph.get_keys()))

    @staticmethod
    def make_minimum_degree(graph: GaussianFactorGraph) -> "Ordering":
        """Greedy minimum-degree ordering on the variable adjacency graph.

        At each step we eliminate the variable with the fewest remaining
        neighbors, then connect those neighbors to each other (the fill that
        elimination would create). Ties are broken by key, so structurally
        identical graphs always produce the same ordering."""
        return Ordering(tuple(_minimum_degree(graph.get_adjacency())))


def _minimum_degree(adjacency: Dict[Key, Set[Key]]) -> List[Key]:
    adjacency = {key: set(neighbors) for key, neighbors in adjacency.items()}

    # Lazy-deletion heap of (degree, key). Stale entries are skipped on pop.
    heap: List[Tuple[int, Key]] = [(len(n), key) for key, n in adjacency.items()]
    heapq.heapify(heap)

    ordering: List[Key] = []
    eliminated: Set[Key] = set()
    while heap:
        degree, key = heapq.heappop(heap)
        if key in eliminated or degree != len(adjacency[key]):
            continue

        neighbors = adjacency.pop(key)
        eliminated.add(key)
        ordering.append(key)

        for neighbor in neighbors:
            adjacency[neighbor].discard(key)
            adjacency[neighbor].update(neighbors)
            adjacency[neighbor].discard(neighbor)
            heapq.heappush(heap, (len(adjacency[neighbor]), neighbor))

    assert len(ordering) == len(eliminated)
    return ordering


def check_ordering(ordering: Iterable[Key], graph: GaussianFactorGraph) -> None:
    """Orderings must cover exactly the variables of the graph."""
    ordering_keys = set(ordering)
    graph_keys = set(graph.dim_from_key.keys())
    if ordering_keys != graph_keys:
        raise ValueError(
            "Ordering does not match graph variables: "
            f"{len(ordering_keys - graph_keys)} extra, "
            f"{len(graph_keys - ordering_keys)} missing."
        )
