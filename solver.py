from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from board import Board, Grid
from board_hash import BoardKey
from config import MAX_LOGICAL_STEPS, PROGRESS_REPORT_SECONDS
from constraints import Constraint, LogicResult, Steps
from logical_step import LogicalStep
from logging_utils import get_logger
from masks import get_value, has_value, is_value_set, value_count, values_of
from model import PuzzleModel

Cell = Tuple[int, int]

logger = get_logger(__name__)


@dataclass
class SolverResult:
    status: str
    solution: Optional[Grid]
    duration_ms: int
    solutions_found: int = 0
    message: str = ""
    steps: List[LogicalStep] = field(default_factory=list)


class PropagationSolver:
    """
    Drives every constraint of a puzzle through its lifecycle.

    ``prepare`` runs candidate initialisation to a fixpoint and then builds
    the weak-link graph; ``step`` performs one deduction; ``propagate``
    repeats steps until nothing changes or a contradiction appears.
    """

    def __init__(self, model: PuzzleModel) -> None:
        self.model = model
        self.board: Optional[Board] = None
        self._results: Dict[Tuple[BoardKey, bool], SolverResult] = {}
        self._results_regions: Optional[List[List[Cell]]] = None
        self._results_constraints: List[Constraint] = []

    def prepare(self) -> LogicResult:
        board = self.model.build_board()
        self.board = board

        for i, j, value in self.model.givens():
            if not board.set_value(i, j, value):
                logger.info("Given %s=%d contradicts the puzzle", board.cell_name(i, j), value)
                return LogicResult.INVALID

        while True:
            changed_any = False
            for constraint in board.constraints:
                result = constraint.init_candidates(board)
                if result is LogicResult.INVALID:
                    logger.info("%s cannot be satisfied", constraint.specific_name)
                    return result
                changed_any = changed_any or result is LogicResult.CHANGED
            if not changed_any:
                break

        for constraint in board.constraints:
            if constraint.init_links(board, None) is LogicResult.INVALID:
                logger.info("%s cannot be satisfied", constraint.specific_name)
                return LogicResult.INVALID
        board.weak_links.freeze()
        if not board.apply_placed_links():
            return LogicResult.INVALID
        logger.debug("%d weak links after setup", len(board.weak_links))
        return LogicResult.NONE

    def _require_board(self, board: Optional[Board]) -> Board:
        board = board or self.board
        if board is None:
            raise RuntimeError("prepare() must be called before propagating")
        return board

    def _naked_single(self, board: Board, steps: Steps) -> LogicResult:
        for i, j in board.cells():
            mask = board.mask(i, j)
            if board.is_placed(i, j) or not is_value_set(mask):
                continue
            value = get_value(mask)
            ok = board.set_value(i, j, value)
            if steps is not None:
                steps.append(LogicalStep(
                    desc=f"Naked Single: {board.cell_name(i, j)}={value}",
                    highlight_cells=((i, j),),
                    is_single=True,
                ))
            return LogicResult.CHANGED if ok else LogicResult.INVALID
        return LogicResult.NONE

    def _hidden_single(self, board: Board, steps: Steps) -> LogicResult:
        for group in board.groups:
            for value in range(1, board.size + 1):
                cells = [cell for cell in group.cells if has_value(board.mask(*cell), value)]
                if not cells:
                    if steps is not None:
                        steps.append(LogicalStep.for_cells(
                            f"{group.name} has nowhere to place {value}.", group.cells
                        ))
                    return LogicResult.INVALID
                if len(cells) != 1:
                    continue
                i, j = cells[0]
                if board.is_placed(i, j):
                    continue
                ok = board.set_value(i, j, value)
                if steps is not None:
                    steps.append(LogicalStep(
                        desc=f"Hidden Single in {group.name}: {board.cell_name(i, j)}={value}",
                        highlight_cells=((i, j),),
                        is_single=True,
                    ))
                return LogicResult.CHANGED if ok else LogicResult.INVALID
        return LogicResult.NONE

    def step(
        self,
        board: Optional[Board] = None,
        steps: Steps = None,
        is_brute_forcing: bool = False,
    ) -> LogicResult:
        board = self._require_board(board)
        for technique in (self._naked_single, self._hidden_single):
            result = technique(board, steps)
            if result is not LogicResult.NONE:
                return result
        for constraint in board.constraints:
            result = constraint.step_logic(board, steps, is_brute_forcing)
            if result is not LogicResult.NONE:
                return result
        return LogicResult.NONE

    def propagate(
        self,
        board: Optional[Board] = None,
        steps: Steps = None,
        is_brute_forcing: bool = False,
    ) -> LogicResult:
        board = self._require_board(board)
        changed = False
        while True:
            result = self.step(board, steps, is_brute_forcing)
            if result is LogicResult.INVALID:
                return result
            if result is LogicResult.NONE:
                return LogicResult.CHANGED if changed else LogicResult.NONE
            changed = True

    def logical_solve(self) -> SolverResult:
        start = time.time()
        steps: List[LogicalStep] = []
        if self.prepare() is LogicResult.INVALID:
            return SolverResult(
                status="no-solution",
                solution=None,
                duration_ms=int((time.time() - start) * 1000),
                message="Contradiction in givens or constraints.",
            )
        board = self._require_board(None)
        status, message = "stuck", "No further logical steps found."
        for _ in range(MAX_LOGICAL_STEPS):
            result = self.step(board, steps)
            if result is LogicResult.INVALID:
                status, message = "no-solution", "Logic reached a contradiction."
                break
            if result is LogicResult.NONE:
                break
        if status != "no-solution" and board.is_solved():
            status, message = "solved", "Solved with logic."
        duration_ms = int((time.time() - start) * 1000)
        logger.info("logical solve %s after %d steps in %d ms", status, len(steps), duration_ms)
        return SolverResult(
            status=status,
            solution=board.to_grid() if status == "solved" else None,
            duration_ms=duration_ms,
            solutions_found=1 if status == "solved" else 0,
            message=message,
            steps=steps,
        )

    def _search(
        self,
        board: Board,
        max_solutions: int,
        solutions: List[Grid],
        start_time: float,
        last_report: List[float],
    ) -> None:
        now = time.time()
        if now - last_report[0] >= PROGRESS_REPORT_SECONDS:
            filled = sum(1 for i, j in board.cells() if is_value_set(board.mask(i, j)))
            logger.info(
                "%ds elapsed; filled %d/%d cells; solutions found %d",
                int(now - start_time),
                filled,
                board.size * board.size,
                len(solutions),
            )
            last_report[0] = now
        if board.is_solved():
            solutions.append(board.to_grid())
            return
        i, j = min(
            (cell for cell in board.cells() if not is_value_set(board.mask(*cell))),
            key=lambda cell: value_count(board.mask(*cell)),
        )
        for value in values_of(board.mask(i, j)):
            child = board.clone()
            if (
                not child.set_value(i, j, value)
                or self.propagate(child, None, True) is LogicResult.INVALID
            ):
                logger.debug("Backtrack: %s != %d", board.cell_name(i, j), value)
                continue
            logger.debug("Guess: %s = %d", board.cell_name(i, j), value)
            self._search(child, max_solutions, solutions, start_time, last_report)
            if len(solutions) >= max_solutions:
                return

    def _sync_results(self) -> None:
        """Forget cached results once the puzzle's regions or constraints change."""
        constraints = list(self.model.constraints())
        same = (
            self._results_regions == self.model.regions
            and len(constraints) == len(self._results_constraints)
            and all(a is b for a, b in zip(constraints, self._results_constraints))
        )
        if not same:
            self._results = {}
            self._results_regions = copy.deepcopy(self.model.regions)
            self._results_constraints = constraints

    def find_solution(self, require_uniqueness: bool = False) -> SolverResult:
        """Brute-force a solution; with ``require_uniqueness`` look for a second one.

        Results are remembered per prepared board and uniqueness flag, so
        asking the same question about an unchanged puzzle does not search
        twice.
        """
        start = time.time()
        if self.prepare() is LogicResult.INVALID:
            return SolverResult(
                status="no-solution",
                solution=None,
                duration_ms=int((time.time() - start) * 1000),
                message="Contradiction in givens or constraints.",
            )
        board = self._require_board(None)
        self._sync_results()
        key = (BoardKey(board.to_bytes()), require_uniqueness)
        cached = self._results.get(key)
        if cached is not None:
            logger.info("solve reused the result of an earlier search")
            return replace(
                cached,
                solution=copy.deepcopy(cached.solution),
                duration_ms=int((time.time() - start) * 1000),
            )
        result = self._brute_force(board, require_uniqueness, start)
        self._results[key] = replace(result, solution=copy.deepcopy(result.solution))
        return result

    def _brute_force(self, board: Board, require_uniqueness: bool, start: float) -> SolverResult:
        if self.propagate(board, None, True) is LogicResult.INVALID:
            return SolverResult(
                status="no-solution",
                solution=None,
                duration_ms=int((time.time() - start) * 1000),
                message="Contradiction in givens or constraints.",
            )
        solutions: List[Grid] = []
        max_solutions = 2 if require_uniqueness else 1
        logger.info("solve start")
        self._search(board, max_solutions, solutions, start, [start])
        duration_ms = int((time.time() - start) * 1000)
        logger.info("solve end in %d ms; solutions found %d", duration_ms, len(solutions))
        if not solutions:
            return SolverResult(
                status="no-solution",
                solution=None,
                duration_ms=duration_ms,
                solutions_found=0,
                message="No solution found.",
            )
        if require_uniqueness and len(solutions) > 1:
            return SolverResult(
                status="multiple",
                solution=solutions[0],
                duration_ms=duration_ms,
                solutions_found=len(solutions),
                message="Multiple solutions exist.",
            )
        return SolverResult(
            status="solved",
            solution=solutions[0],
            duration_ms=duration_ms,
            solutions_found=len(solutions),
            message="Solved successfully.",
        )
