from __future__ import annotations

from typing import AbstractSet, List, Set


class WeakLinkGraph:
    """
    Symmetric "cannot both be true" relation over candidate indices.

    Vertices are the board's dense candidate indices, so adjacency is a plain
    list of sets. Edges are only ever added; once the graph is frozen it is
    read-only for the rest of the solve.
    """

    def __init__(self, num_candidates: int) -> None:
        self._adjacency: List[Set[int]] = [set() for _ in range(num_candidates)]
        self._edge_count = 0
        self._frozen = False

    @property
    def num_candidates(self) -> int:
        return len(self._adjacency)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def add(self, a: int, b: int) -> bool:
        """Record that a and b cannot coexist. Returns True for a new edge."""
        if self._frozen:
            raise RuntimeError("weak links cannot be added once propagation has started")
        if a == b:
            return False
        if b in self._adjacency[a]:
            return False
        self._adjacency[a].add(b)
        self._adjacency[b].add(a)
        self._edge_count += 1
        return True

    def linked(self, a: int, b: int) -> bool:
        return b in self._adjacency[a]

    def neighbors(self, a: int) -> AbstractSet[int]:
        return self._adjacency[a]

    def __len__(self) -> int:
        return self._edge_count
