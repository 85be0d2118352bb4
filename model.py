from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from board import Board
from config import DEFAULT_SIZE
from constraints import Constraint

Cell = Tuple[int, int]
Grid = List[List[int]]


class PuzzleModel:
    def __init__(
        self,
        size: int = DEFAULT_SIZE,
        regions: Optional[Sequence[Sequence[Cell]]] = None,
    ) -> None:
        self.size = size
        self.regions: Optional[List[List[Cell]]] = (
            [list(region) for region in regions] if regions is not None else None
        )
        self.reset()

    def reset(self) -> None:
        self.grid: Grid = [[0 for _ in range(self.size)] for _ in range(self.size)]
        self.variant_constraints: List[Constraint] = []

    def set_value(self, row: int, col: int, value: int) -> None:
        self.grid[row][col] = value

    def clear_value(self, row: int, col: int) -> None:
        self.grid[row][col] = 0

    def add_constraint(self, constraint: Constraint) -> None:
        self.variant_constraints.append(constraint)

    def remove_constraint(self, constraint: Constraint) -> None:
        if constraint in self.variant_constraints:
            self.variant_constraints.remove(constraint)

    def remove_all_constraints(self) -> None:
        self.variant_constraints = []

    def clear_digits(self) -> None:
        for r in range(self.size):
            for c in range(self.size):
                self.grid[r][c] = 0

    def copy_grid(self) -> Grid:
        return [[self.grid[r][c] for c in range(self.size)] for r in range(self.size)]

    def constraints(self) -> Sequence[Constraint]:
        return list(self.variant_constraints)

    def givens(self) -> List[Tuple[int, int, int]]:
        return [
            (r, c, self.grid[r][c])
            for r in range(self.size)
            for c in range(self.size)
            if self.grid[r][c]
        ]

    def build_board(self) -> Board:
        """Fresh board with this puzzle's structure and constraints; givens not yet placed."""
        return Board(self.size, self.regions, self.constraints())
