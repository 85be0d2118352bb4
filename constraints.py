from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Callable,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from board import Board, Group, cell_name
from errors import ConfigurationError
from logical_step import LogicalStep
from logging_utils import get_logger
from masks import (
    Mask,
    get_value,
    has_value,
    is_value_set,
    mask_to_string,
    max_value,
    min_value,
    value_bit,
    values_of,
)

Cell = Tuple[int, int]
Steps = Optional[List[LogicalStep]]
CellGroups = List[List[Cell]]

logger = get_logger(__name__)


class LogicResult(Enum):
    NONE = "none"
    CHANGED = "changed"
    INVALID = "invalid"


def _as_cell(cell: Sequence[int]) -> Cell:
    return (int(cell[0]), int(cell[1]))


class Constraint:
    """
    A rule of the puzzle, driven through four phases:

    1. ``init_candidates`` once, before anything else runs.
    2. ``init_links`` once, after candidate initialisation has settled.
    3. ``step_logic`` repeatedly, one deduction per call.

    ``enforce_constraint`` may be called at any point after construction,
    whenever a cell is fixed to a value. Contradictions are reported as
    ``LogicResult.INVALID`` or ``False``, never raised.
    """

    display_name: ClassVar[str] = "Constraint"
    console_name: ClassVar[str] = "constraint"

    @property
    def specific_name(self) -> str:
        return self.display_name

    def affected_cells(self) -> Iterable[Cell]:
        raise NotImplementedError

    def init_candidates(self, board: Board) -> LogicResult:
        return LogicResult.NONE

    def enforce_constraint(self, board: Board, i: int, j: int, value: int) -> bool:
        return True

    def init_links(self, board: Board, steps: Steps) -> LogicResult:
        return LogicResult.NONE

    def step_logic(self, board: Board, steps: Steps, is_brute_forcing: bool) -> LogicResult:
        return LogicResult.NONE

    def __str__(self) -> str:
        return self.specific_name


@dataclass
class CloneConstraint(Constraint):
    cell_pairs: Sequence[Sequence[Cell]]
    _clones: Dict[Cell, List[Cell]] = field(default_factory=dict, init=False, repr=False)

    display_name: ClassVar[str] = "Clone"
    console_name: ClassVar[str] = "clone"

    def __post_init__(self) -> None:
        groups = list(self.cell_pairs)
        if not groups:
            raise ConfigurationError("Clone constraint expects at least 1 cell group.")
        pairs: List[Tuple[Cell, Cell]] = []
        for group in groups:
            if len(group) != 2:
                raise ConfigurationError(
                    f"Clone cell groups should have exactly 2 cells ({len(group)} in group)."
                )
            cell0, cell1 = _as_cell(group[0]), _as_cell(group[1])
            if cell0 == cell1:
                raise ConfigurationError(f"Clone cells need to be distinct ({cell0}).")
            pairs.append((cell0, cell1))
            self._clones.setdefault(cell0, []).append(cell1)
            self._clones.setdefault(cell1, []).append(cell0)
        self.cell_pairs = pairs

    def affected_cells(self) -> Iterable[Cell]:
        return list(self._clones)

    def clones_of(self, cell: Cell) -> List[Cell]:
        return list(self._clones.get(cell, ()))

    def init_candidates(self, board: Board) -> LogicResult:
        changed = False
        for cell0, clones in self._clones.items():
            i0, j0 = cell0
            for cell1 in clones:
                i1, j1 = cell1
                if cell1 in board.seen_cells(cell0):
                    logger.debug(
                        "%s and its clone %s can never be equal",
                        board.cell_name(i0, j0),
                        board.cell_name(i1, j1),
                    )
                    return LogicResult.INVALID

                mask0 = board.mask(i0, j0)
                mask1 = board.mask(i1, j1)
                if mask0 == mask1:
                    continue
                set0 = is_value_set(mask0)
                set1 = is_value_set(mask1)
                if set0 and set1:
                    return LogicResult.INVALID
                if set0:
                    if not board.set_value(i1, j1, get_value(mask0)):
                        return LogicResult.INVALID
                elif set1:
                    if not board.set_value(i0, j0, get_value(mask1)):
                        return LogicResult.INVALID
                else:
                    combined = mask0 & mask1
                    if not board.set_mask(i0, j0, combined):
                        return LogicResult.INVALID
                    if not board.set_mask(i1, j1, combined):
                        return LogicResult.INVALID
                changed = True
        return LogicResult.CHANGED if changed else LogicResult.NONE

    def enforce_constraint(self, board: Board, i: int, j: int, value: int) -> bool:
        for ci, cj in self._clones.get((i, j), ()):
            if not board.set_value(ci, cj, value):
                return False
        return True

    def init_links(self, board: Board, steps: Steps) -> LogicResult:
        n = board.size
        for cell0, cell1 in self.cell_pairs:
            for v0 in range(1, n + 1):
                cand0 = board.candidate_index_cell(cell0, v0)
                for v1 in range(1, n + 1):
                    if v0 != v1:
                        board.add_weak_link(cand0, board.candidate_index_cell(cell1, v1))
        return LogicResult.NONE

    def step_logic(self, board: Board, steps: Steps, is_brute_forcing: bool) -> LogicResult:
        for cell0, clones in self._clones.items():
            i0, j0 = cell0
            name0 = board.cell_name(i0, j0)
            for cell1 in clones:
                i1, j1 = cell1
                name1 = board.cell_name(i1, j1)
                mask0 = board.mask(i0, j0)
                mask1 = board.mask(i1, j1)
                if mask0 == mask1:
                    continue

                set0 = is_value_set(mask0)
                set1 = is_value_set(mask1)
                if set0 and set1:
                    if steps is not None:
                        steps.append(LogicalStep.for_cells(
                            f"{name0} has value {get_value(mask0)} but its clone at {name1} has value {get_value(mask1)}",
                            [cell0, cell1],
                        ))
                    return LogicResult.INVALID

                if set0 or set1:
                    dst = cell1 if set0 else cell0
                    src_name, dst_name = (name0, name1) if set0 else (name1, name0)
                    value = get_value(mask0 if set0 else mask1)
                    if not board.set_value(dst[0], dst[1], value):
                        if steps is not None:
                            steps.append(LogicalStep.for_cells(
                                f"{src_name} has value {value} but its clone at {dst_name} cannot have this value.",
                                [cell0, cell1],
                            ))
                        return LogicResult.INVALID
                    if steps is not None:
                        steps.append(LogicalStep.for_cells(
                            f"{src_name} with value {value} is cloned into {dst_name}",
                            [cell0, cell1],
                        ))
                    return LogicResult.CHANGED

                combined = mask0 & mask1
                if combined == 0:
                    if steps is not None:
                        steps.append(LogicalStep.for_cells(
                            f"No value can go into both {name0} with candidates {mask_to_string(mask0)} "
                            f"and its clone at {name1} with candidates {mask_to_string(mask1)}.",
                            [cell0, cell1],
                        ))
                    return LogicResult.INVALID

                elims = board.candidate_indexes(mask0 & ~combined, [cell0])
                elims.extend(board.candidate_indexes(mask1 & ~combined, [cell1]))
                ok = board.clear_candidates(elims)
                if steps is not None:
                    steps.append(LogicalStep.from_candidates(
                        f"Clone {name0} and {name1} => {board.describe_elims(elims)}",
                        source=[],
                        elims=elims,
                    ))
                return LogicResult.CHANGED if ok else LogicResult.INVALID
        return LogicResult.NONE


class _GroupSums:
    """Partial sums reachable over one group, walked in cell order.

    ``layers[k]`` holds (total, used) states after the first k cells; ``used``
    is only tracked when the group's cells must all differ.
    """

    def __init__(self, masks: List[Mask], distinct: bool) -> None:
        self.masks = masks
        self.distinct = distinct
        self.layers: List[Set[Tuple[int, int]]] = [{(0, 0)}]
        for mask in masks:
            nxt: Set[Tuple[int, int]] = set()
            for state in self.layers[-1]:
                for v in self._values(mask, state[1]):
                    nxt.add(self._advance(state, v))
            self.layers.append(nxt)
        self.sums: Set[int] = {total for total, _ in self.layers[-1]}

    def _values(self, mask: Mask, used: int) -> List[int]:
        return values_of(mask & ~used if self.distinct else mask)

    def _advance(self, state: Tuple[int, int], v: int) -> Tuple[int, int]:
        total, used = state
        return total + v, (used | value_bit(v)) if self.distinct else 0

    def allowed(self, targets: Set[int]) -> List[Mask]:
        """Per-cell masks of values used by some combination summing to a target."""
        allowed = [0] * len(self.masks)
        alive = {state for state in self.layers[-1] if state[0] in targets}
        for k in reversed(range(len(self.masks))):
            prev_alive: Set[Tuple[int, int]] = set()
            for state in self.layers[k]:
                for v in self._values(self.masks[k], state[1]):
                    if self._advance(state, v) in alive:
                        prev_alive.add(state)
                        allowed[k] |= value_bit(v)
            alive = prev_alive
        return allowed


class EqualSums:
    """
    Every group of cells must have the same sum.

    The groups come from ``group_fn``, which may look at the board (region
    layout, etc.); they are computed once per board layout, the first time
    they are needed.
    """

    def __init__(self, group_fn: Callable[[Board], Optional[CellGroups]]) -> None:
        self._group_fn = group_fn
        self._groups: Optional[CellGroups] = None
        self._layout: Optional[List[Group]] = None
        self._distinct: List[bool] = []
        self._cells: FrozenSet[Cell] = frozenset()

    def groups(self, board: Board) -> CellGroups:
        # Boards cloned from one another share their group list.
        if self._groups is None or self._layout is not board.groups:
            self._layout = board.groups
            groups = [list(group) for group in (self._group_fn(board) or []) if group]
            self._groups = groups
            self._distinct = [self._all_seen(board, group) for group in groups]
            self._cells = frozenset(cell for group in groups for cell in group)
        return self._groups

    @staticmethod
    def _all_seen(board: Board, group: List[Cell]) -> bool:
        return all(
            b in board.seen_cells(a)
            for idx, a in enumerate(group)
            for b in group[idx + 1:]
        )

    def active(self, board: Board) -> bool:
        return len(self.groups(board)) >= 2

    def restrict(self, board: Board) -> Tuple[LogicResult, List[int], Set[int]]:
        """Return (result, eliminations, common sums) without touching the board."""
        if not self.active(board):
            return LogicResult.NONE, [], set()
        groups = self.groups(board)
        tables = [
            _GroupSums([board.mask(i, j) for i, j in group], distinct)
            for group, distinct in zip(groups, self._distinct)
        ]
        common = set.intersection(*(table.sums for table in tables))
        if not common:
            return LogicResult.INVALID, [], common

        elims: List[int] = []
        for group, table in zip(groups, tables):
            for cell, keep in zip(group, table.allowed(common)):
                removed = board.mask(*cell) & ~keep
                if removed:
                    elims.extend(board.candidate_indexes(removed, [cell]))
        return (LogicResult.CHANGED if elims else LogicResult.NONE), elims, common

    def enforce(self, board: Board, i: int, j: int) -> bool:
        if not self.active(board) or (i, j) not in self._cells:
            return True
        known_sums: Set[int] = set()
        open_cells: List[Tuple[Cell, int]] = []
        for group in self.groups(board):
            total = 0
            unset: List[Cell] = []
            for cell in group:
                mask = board.mask(*cell)
                if is_value_set(mask):
                    total += get_value(mask)
                else:
                    unset.append(cell)
            if not unset:
                known_sums.add(total)
            elif len(unset) == 1:
                open_cells.append((unset[0], total))
        if len(known_sums) > 1:
            return False
        if known_sums:
            target = next(iter(known_sums))
            for (ci, cj), partial in open_cells:
                value = target - partial
                if value < 1 or value > board.size:
                    return False
                if not board.set_value(ci, cj, value):
                    return False
        return True

    def add_links(self, board: Board) -> None:
        """Weak-link each single-cell group against cells of the other groups."""
        if not self.active(board):
            return
        groups = self.groups(board)
        for x_idx, x_group in enumerate(groups):
            if len(x_group) != 1:
                continue
            x = x_group[0]
            x_values = values_of(board.mask(*x))
            for g_idx, group in enumerate(groups):
                if g_idx == x_idx:
                    continue
                for a in group:
                    if a == x:
                        continue
                    others = [c for c in group if c != a]
                    lo = sum(min_value(board.mask(*c)) for c in others)
                    hi = sum(max_value(board.mask(*c)) for c in others)
                    for w in values_of(board.mask(*a)):
                        cand_a = board.candidate_index_cell(a, w)
                        for v in x_values:
                            if w + lo > v or w + hi < v:
                                board.add_weak_link(board.candidate_index_cell(x, v), cand_a)


class EqualSumsConstraint(Constraint):
    """Shared base for lines whose cell groups must sum to the same total."""

    display_name: ClassVar[str] = "Equal Sums"
    console_name: ClassVar[str] = "equalsums"

    def __init__(self, groups: Optional[Sequence[Sequence[Cell]]] = None) -> None:
        self._static_groups: Optional[CellGroups] = (
            [[_as_cell(c) for c in group] for group in groups] if groups is not None else None
        )
        self.sums = EqualSums(self.cell_groups)

    def cell_groups(self, board: Board) -> Optional[CellGroups]:
        return self._static_groups

    def affected_cells(self) -> Iterable[Cell]:
        return [cell for group in self._static_groups or [] for cell in group]

    def _highlight(self, board: Board) -> List[Cell]:
        return [cell for group in self.sums.groups(board) for cell in group]

    def init_candidates(self, board: Board) -> LogicResult:
        result, elims, _ = self.sums.restrict(board)
        if result is LogicResult.INVALID:
            logger.debug("%s: the groups share no possible sum", self.specific_name)
            return result
        if elims and not board.clear_candidates(elims):
            return LogicResult.INVALID
        return result

    def enforce_constraint(self, board: Board, i: int, j: int, value: int) -> bool:
        return self.sums.enforce(board, i, j)

    def init_links(self, board: Board, steps: Steps) -> LogicResult:
        self.sums.add_links(board)
        return LogicResult.NONE

    def step_logic(self, board: Board, steps: Steps, is_brute_forcing: bool) -> LogicResult:
        result, elims, common = self.sums.restrict(board)
        if result is LogicResult.INVALID:
            if steps is not None:
                steps.append(LogicalStep.for_cells(
                    f"{self.specific_name}: no sum is possible for every group.",
                    self._highlight(board),
                ))
            return result
        if not elims:
            return LogicResult.NONE
        ok = board.clear_candidates(elims)
        if steps is not None:
            sums = ",".join(str(s) for s in sorted(common))
            steps.append(LogicalStep.from_candidates(
                f"{self.specific_name} (sum {sums}) => {board.describe_elims(elims)}",
                source=[],
                elims=elims,
            ))
        return LogicResult.CHANGED if ok else LogicResult.INVALID


def _single_line(lines: Sequence[Sequence[Cell]], what: str) -> List[Cell]:
    if len(lines) != 1:
        raise ConfigurationError(f"{what} constraint expects 1 cell group, got {len(lines)}.")
    cells = [_as_cell(c) for c in lines[0]]
    if not cells:
        raise ConfigurationError(f"{what} constraint needs at least one cell.")
    return cells


class DoubleArrowConstraint(EqualSumsConstraint):
    """The two circled ends sum to the total of the cells between them."""

    display_name: ClassVar[str] = "Double Arrow"
    console_name: ClassVar[str] = "doublearrow"

    def __init__(self, *lines: Sequence[Cell]) -> None:
        self.line_cells = _single_line(lines, "Double Arrow")
        super().__init__()

    @property
    def specific_name(self) -> str:
        return f"Double Arrow from {cell_name(*self.line_cells[0])} - {cell_name(*self.line_cells[-1])}"

    def affected_cells(self) -> Iterable[Cell]:
        return list(self.line_cells)

    def cell_groups(self, board: Board) -> Optional[CellGroups]:
        if len(self.line_cells) < 3:
            return None
        return [[self.line_cells[0], self.line_cells[-1]], list(self.line_cells[1:-1])]


class RegionSumLinesConstraint(EqualSumsConstraint):
    """Each stretch of the line inside one region has the same sum."""

    display_name: ClassVar[str] = "Region Sum Lines"
    console_name: ClassVar[str] = "rsl"

    def __init__(self, *lines: Sequence[Cell]) -> None:
        self.line_cells = _single_line(lines, "Region Sum Lines")
        super().__init__()

    @property
    def specific_name(self) -> str:
        return f"Region Sum Line from {cell_name(*self.line_cells[0])} - {cell_name(*self.line_cells[-1])}"

    def affected_cells(self) -> Iterable[Cell]:
        return list(self.line_cells)

    def cell_groups(self, board: Board) -> Optional[CellGroups]:
        last_region: Optional[Group] = None
        groups: CellGroups = []
        for cell in self.line_cells:
            region = board.region_for(cell)
            # Cells outside every region do not take part in any sum.
            if region is None:
                continue
            if region is not last_region:
                groups.append([])
            groups[-1].append(cell)
            last_region = region
        return groups


@dataclass
class IndexerConstraint(Constraint):
    """
    Each listed cell indexes into a row, column or region.

    Placing v in indexer cell (i, j) puts a derived value into a derived target
    cell. Weak links capture this completely, so placements need no extra
    enforcement; ``step_logic`` keeps indexer and target candidates in sync.
    """

    cells: Sequence[Cell]
    _cell_set: FrozenSet[Cell] = field(default=frozenset(), init=False, repr=False)

    def __post_init__(self) -> None:
        cells = [_as_cell(c) for c in self.cells]
        if not cells:
            raise ConfigurationError(f"{self.display_name} constraint expects exactly 1 non-empty cell group.")
        if len(set(cells)) != len(cells):
            raise ConfigurationError(f"{self.display_name} cells need to be distinct.")
        self.cells = cells
        self._cell_set = frozenset(cells)

    def affected_cells(self) -> Iterable[Cell]:
        return list(self.cells)

    def target_cell(self, board: Board, i: int, j: int, v: int) -> Tuple[int, int, int]:
        """The candidate implied by indexer candidate (i, j, v)."""
        raise NotImplementedError

    def inv_target_cell(self, board: Board, i: int, j: int, v: int) -> Tuple[int, int, int]:
        """The indexer candidate that would imply candidate (i, j, v)."""
        return self.target_cell(board, i, j, v)

    def enforce_constraint(self, board: Board, i: int, j: int, value: int) -> bool:
        return True

    def init_links(self, board: Board, steps: Steps) -> LogicResult:
        n = board.size
        for i in range(n):
            for j in range(n):
                if board.is_placed(i, j):
                    continue
                for v in values_of(board.mask(i, j)):
                    cand0 = board.candidate_index(i, j, v)

                    if (i, j) in self._cell_set:
                        ti, tj, tv = self.target_cell(board, i, j, v)
                        if (ti, tj) != (i, j):
                            for wv in range(1, n + 1):
                                if wv != tv:
                                    board.add_weak_link(cand0, board.candidate_index(ti, tj, wv))

                    ii, ij, iv = self.inv_target_cell(board, i, j, v)
                    if (ii, ij) != (i, j) and (ii, ij) in self._cell_set:
                        for wv in range(1, n + 1):
                            if wv != iv:
                                board.add_weak_link(cand0, board.candidate_index(ii, ij, wv))
        return LogicResult.NONE

    def step_logic(self, board: Board, steps: Steps, is_brute_forcing: bool) -> LogicResult:
        for ii, ij in self.cells:
            elims: Optional[List[int]] = None
            imask = board.mask(ii, ij)
            for iv in range(1, board.size + 1):
                ti, tj, tv = self.target_cell(board, ii, ij, iv)
                target_has = has_value(board.mask(ti, tj), tv)
                if has_value(imask, iv):
                    if not target_has:
                        # The target can no longer take the implied value.
                        elims = elims or []
                        elims.append(board.candidate_index(ii, ij, iv))
                elif target_has:
                    # Nothing can index the implied value into the target any more.
                    elims = elims or []
                    elims.append(board.candidate_index(ti, tj, tv))

            if elims:
                ok = board.clear_candidates(elims)
                if steps is not None:
                    steps.append(LogicalStep.from_candidates(
                        f"Evaluated {board.cell_name(ii, ij)} => {board.describe_elims(elims)}",
                        source=[],
                        elims=elims,
                    ))
                return LogicResult.CHANGED if ok else LogicResult.INVALID
        return LogicResult.NONE


@dataclass
class RowIndexerConstraint(IndexerConstraint):
    display_name: ClassVar[str] = "Row Indexer"
    console_name: ClassVar[str] = "rowindexer"

    def target_cell(self, board: Board, i: int, j: int, v: int) -> Tuple[int, int, int]:
        return v - 1, j, i + 1


@dataclass
class ColIndexerConstraint(IndexerConstraint):
    display_name: ClassVar[str] = "Col Indexer"
    console_name: ClassVar[str] = "colindexer"

    def target_cell(self, board: Board, i: int, j: int, v: int) -> Tuple[int, int, int]:
        return i, v - 1, j + 1


@dataclass
class BoxIndexerConstraint(IndexerConstraint):
    _region_of: Dict[Cell, Group] = field(default_factory=dict, init=False, repr=False)
    _region_pos: Dict[Cell, int] = field(default_factory=dict, init=False, repr=False)
    _layout: Optional[List[Group]] = field(default=None, init=False, repr=False)

    display_name: ClassVar[str] = "Box Indexer"
    console_name: ClassVar[str] = "boxindexer"

    def _index_regions(self, board: Board) -> None:
        if self._layout is board.groups:
            return
        self._layout = board.groups
        self._region_of = {}
        self._region_pos = {}
        for cell in board.cells():
            region = board.region_for(cell)
            if region is not None:
                self._region_of[cell] = region
                self._region_pos[cell] = region.cells.index(cell)

    def init_candidates(self, board: Board) -> LogicResult:
        self._index_regions(board)
        return LogicResult.NONE

    def target_cell(self, board: Board, i: int, j: int, v: int) -> Tuple[int, int, int]:
        self._index_regions(board)
        region = self._region_of.get((i, j))
        if region is None:
            return i, j, v
        ti, tj = region.cells[v - 1]
        return ti, tj, self._region_pos[(i, j)] + 1


CONSTRAINT_TYPES: Dict[str, type] = {
    cls.console_name: cls
    for cls in (
        CloneConstraint,
        DoubleArrowConstraint,
        RegionSumLinesConstraint,
        RowIndexerConstraint,
        ColIndexerConstraint,
        BoxIndexerConstraint,
    )
}
