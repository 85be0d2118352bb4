from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)

from config import DEFAULT_SIZE
from errors import ConfigurationError
from masks import (
    Mask,
    all_values_mask,
    get_value,
    has_value,
    is_value_set,
    mask_to_string,
    value_bit,
    values_of,
)
from weak_links import WeakLinkGraph

if TYPE_CHECKING:
    from constraints import Constraint

Cell = Tuple[int, int]
Grid = List[List[int]]

# Masks are serialised as unsigned 32-bit words.
MAX_SIZE = 31


def cell_name(i: int, j: int) -> str:
    return f"r{i + 1}c{j + 1}"


class GroupType(Enum):
    ROW = "row"
    COLUMN = "column"
    REGION = "region"


@dataclass(frozen=True)
class Group:
    """A set of cells that must all hold different values."""

    name: str
    group_type: GroupType
    cells: Tuple[Cell, ...]


def default_box_shape(size: int) -> Optional[Tuple[int, int]]:
    """Return (height, width) of the standard boxes for ``size``, if any."""
    height = int(size ** 0.5)
    while height > 1 and size % height:
        height -= 1
    if height <= 1:
        return None
    return height, size // height


def default_regions(size: int) -> List[List[Cell]]:
    shape = default_box_shape(size)
    if shape is None:
        return []
    height, width = shape
    regions: List[List[Cell]] = []
    for box_r in range(size // height):
        for box_c in range(size // width):
            cells = []
            for dr in range(height):
                for dc in range(width):
                    cells.append((box_r * height + dr, box_c * width + dc))
            regions.append(cells)
    return regions


class Board:
    """
    Candidate masks for every cell plus the structure the constraints read.

    The board owns the masks, the distinctness groups and the weak-link graph;
    it is the only thing that mutates masks, and it reports every failed
    mutation as a False return rather than raising.
    """

    def __init__(
        self,
        size: int = DEFAULT_SIZE,
        regions: Optional[Sequence[Sequence[Cell]]] = None,
        constraints: Sequence["Constraint"] = (),
    ) -> None:
        if size < 1 or size > MAX_SIZE:
            raise ConfigurationError(f"Grid size must be between 1 and {MAX_SIZE}, got {size}.")
        self.size = size
        self.all_values = all_values_mask(size)
        self._masks: List[Mask] = [self.all_values] * (size * size)
        self._placed: List[bool] = [False] * (size * size)
        self.groups: List[Group] = self._build_groups(
            default_regions(size) if regions is None else regions
        )
        self._cell_groups: Dict[Cell, List[Group]] = {cell: [] for cell in self.cells()}
        for group in self.groups:
            for cell in group.cells:
                self._cell_groups[cell].append(group)
        self._seen: Dict[Cell, FrozenSet[Cell]] = {
            cell: frozenset(
                other for group in groups for other in group.cells if other != cell
            )
            for cell, groups in self._cell_groups.items()
        }
        self.constraints: List["Constraint"] = list(constraints)
        for constraint in self.constraints:
            for cell in constraint.affected_cells():
                if not self.in_bounds(*cell):
                    raise ConfigurationError(
                        f"{constraint.specific_name} uses a cell outside the {size}x{size} grid: {cell}."
                    )
        self.weak_links = WeakLinkGraph(size * size * size)
        self.init_group_links()

    def _build_groups(self, regions: Sequence[Sequence[Cell]]) -> List[Group]:
        n = self.size
        groups = [
            Group(f"Row {r + 1}", GroupType.ROW, tuple((r, c) for c in range(n)))
            for r in range(n)
        ]
        groups.extend(
            Group(f"Column {c + 1}", GroupType.COLUMN, tuple((r, c) for r in range(n)))
            for c in range(n)
        )
        used: Dict[Cell, int] = {}
        for idx, region in enumerate(regions):
            cells = tuple((int(r), int(c)) for r, c in region)
            if len(cells) != n:
                raise ConfigurationError(
                    f"Region {idx + 1} has {len(cells)} cells, expected {n}."
                )
            for cell in cells:
                if not self.in_bounds(*cell):
                    raise ConfigurationError(f"Region {idx + 1} has a cell outside the grid: {cell}.")
                if cell in used:
                    raise ConfigurationError(
                        f"{cell_name(*cell)} is in both region {used[cell] + 1} and region {idx + 1}."
                    )
                used[cell] = idx
            groups.append(Group(f"Region {idx + 1}", GroupType.REGION, cells))
        return groups

    # ---- structure -------------------------------------------------------

    def in_bounds(self, i: int, j: int) -> bool:
        return 0 <= i < self.size and 0 <= j < self.size

    def cells(self) -> List[Cell]:
        return [(r, c) for r in range(self.size) for c in range(self.size)]

    def groups_for(self, cell: Cell) -> List[Group]:
        return self._cell_groups[cell]

    def region_for(self, cell: Cell) -> Optional[Group]:
        for group in self._cell_groups[cell]:
            if group.group_type is GroupType.REGION:
                return group
        return None

    def seen_cells(self, cell: Cell) -> FrozenSet[Cell]:
        """Cells that may never hold the same value as ``cell``."""
        return self._seen[cell]

    def cell_name(self, i: int, j: int) -> str:
        return cell_name(i, j)

    # ---- candidate indices -----------------------------------------------

    def candidate_index(self, i: int, j: int, value: int) -> int:
        return (i * self.size + j) * self.size + (value - 1)

    def candidate_index_cell(self, cell: Cell, value: int) -> int:
        return self.candidate_index(cell[0], cell[1], value)

    def candidate_from_index(self, index: int) -> Tuple[int, int, int]:
        cell_index, value_index = divmod(index, self.size)
        i, j = divmod(cell_index, self.size)
        return i, j, value_index + 1

    def candidate_indexes(self, mask: Mask, cells: Iterable[Cell]) -> List[int]:
        values = values_of(mask)
        return [self.candidate_index(i, j, v) for i, j in cells for v in values]

    def describe_elims(self, elims: Iterable[int]) -> str:
        by_cell: Dict[Cell, Mask] = {}
        for index in elims:
            i, j, v = self.candidate_from_index(index)
            by_cell[(i, j)] = by_cell.get((i, j), 0) | value_bit(v)
        return ";".join(
            f"-{mask_to_string(mask)}{cell_name(i, j)}" for (i, j), mask in by_cell.items()
        )

    # ---- masks -----------------------------------------------------------

    def mask(self, i: int, j: int) -> Mask:
        return self._masks[i * self.size + j]

    @property
    def masks(self) -> List[Mask]:
        return list(self._masks)

    def is_placed(self, i: int, j: int) -> bool:
        return self._placed[i * self.size + j]

    def is_solved(self) -> bool:
        return all(is_value_set(mask) for mask in self._masks)

    def to_grid(self) -> Grid:
        return [[get_value(self.mask(r, c)) for c in range(self.size)] for r in range(self.size)]

    def set_value(self, i: int, j: int, value: int) -> bool:
        """Place ``value`` at (i, j) and propagate the placement.

        Clears every candidate weak-linked to the placement, then lets every
        constraint enforce it. Placing the same value twice is a no-op.
        """
        idx = i * self.size + j
        if self._placed[idx]:
            return get_value(self._masks[idx]) == value
        if not has_value(self._masks[idx], value):
            return False
        self._masks[idx] = value_bit(value)
        self._placed[idx] = True

        for other in self.weak_links.neighbors(self.candidate_index(i, j, value)):
            if not self.clear_candidate(other):
                return False
        for constraint in self.constraints:
            if not constraint.enforce_constraint(self, i, j, value):
                return False
        return True

    def set_mask(self, i: int, j: int, mask: Mask) -> bool:
        """Intersect the cell's mask with ``mask``; False if nothing remains."""
        idx = i * self.size + j
        new_mask = self._masks[idx] & mask
        if new_mask == 0:
            return False
        self._masks[idx] = new_mask
        return True

    def clear_candidate(self, index: int) -> bool:
        i, j, v = self.candidate_from_index(index)
        idx = i * self.size + j
        mask = self._masks[idx]
        if not has_value(mask, v):
            return True
        new_mask = mask & ~value_bit(v)
        if new_mask == 0:
            return False
        self._masks[idx] = new_mask
        return True

    def clear_candidates(self, indexes: Iterable[int]) -> bool:
        ok = True
        for index in indexes:
            if not self.clear_candidate(index):
                ok = False
        return ok

    # ---- weak links ------------------------------------------------------

    def add_weak_link(self, a: int, b: int) -> bool:
        return self.weak_links.add(a, b)

    def init_group_links(self) -> None:
        """One value per cell, and no value repeated inside a group."""
        n = self.size
        for i, j in self.cells():
            for v0 in range(1, n + 1):
                for v1 in range(v0 + 1, n + 1):
                    self.add_weak_link(self.candidate_index(i, j, v0), self.candidate_index(i, j, v1))
        for group in self.groups:
            cells = group.cells
            for a in range(len(cells)):
                for b in range(a + 1, len(cells)):
                    for v in range(1, n + 1):
                        self.add_weak_link(
                            self.candidate_index_cell(cells[a], v),
                            self.candidate_index_cell(cells[b], v),
                        )

    def apply_placed_links(self) -> bool:
        """Clear candidates linked to values placed before those links existed."""
        for i, j in self.cells():
            if not self.is_placed(i, j):
                continue
            cand = self.candidate_index(i, j, get_value(self.mask(i, j)))
            for other in self.weak_links.neighbors(cand):
                if not self.clear_candidate(other):
                    return False
        return True

    # ---- copies ----------------------------------------------------------

    def clone(self) -> "Board":
        """Copy masks and placements; structure, constraints and links are shared."""
        copy = Board.__new__(Board)
        copy.__dict__.update(self.__dict__)
        copy._masks = list(self._masks)
        copy._placed = list(self._placed)
        return copy

    def to_bytes(self) -> bytes:
        return struct.pack(f"<{len(self._masks)}I", *self._masks)
