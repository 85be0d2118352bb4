# tests/test_indexer.py
import pytest

from board import Board
from constraints import (
    BoxIndexerConstraint,
    ColIndexerConstraint,
    LogicResult,
    RowIndexerConstraint,
)
from errors import ConfigurationError
from masks import mask_of, value_bit


def test_row_indexer_links_target_cell():
    indexer = RowIndexerConstraint([(1, 2)])
    board = Board(4, constraints=[indexer])
    indexer.init_links(board, None)
    source = board.candidate_index(1, 2, 3)
    # r2c3=3 means r3c3=2
    for w in range(1, 5):
        target = board.candidate_index(2, 2, w)
        assert board.weak_links.linked(source, target) == (w != 2)
        assert board.weak_links.linked(target, source) == (w != 2)


def test_links_cover_unplaced_single_cells():
    indexer = RowIndexerConstraint([(1, 2)])
    board = Board(4, constraints=[indexer])
    board.set_mask(1, 2, value_bit(3))
    assert not board.is_placed(1, 2)
    indexer.init_links(board, None)
    source = board.candidate_index(1, 2, 3)
    assert board.weak_links.linked(source, board.candidate_index(2, 2, 1))
    assert not board.weak_links.linked(source, board.candidate_index(2, 2, 2))


def test_target_formulas():
    board = Board(4)
    assert RowIndexerConstraint([(1, 2)]).target_cell(board, 1, 2, 3) == (2, 2, 2)
    assert ColIndexerConstraint([(1, 2)]).target_cell(board, 1, 2, 3) == (1, 2, 3)
    assert ColIndexerConstraint([(1, 2)]).target_cell(board, 1, 2, 1) == (1, 0, 3)


def test_enforce_is_left_to_links():
    indexer = RowIndexerConstraint([(1, 2)])
    board = Board(4, constraints=[indexer])
    before = board.masks
    assert indexer.enforce_constraint(board, 1, 2, 3)
    assert board.masks == before


class TestStepLogic:
    def test_removes_targets_the_indexer_cannot_reach(self):
        indexer = RowIndexerConstraint([(1, 2)])
        board = Board(4, constraints=[indexer])
        board.set_mask(1, 2, value_bit(3))
        steps = []
        assert indexer.step_logic(board, steps, False) is LogicResult.CHANGED
        assert steps[0].desc == "Evaluated r2c3 => -2r1c3;-2r4c3"
        assert board.mask(0, 2) == mask_of([1, 3, 4])
        assert board.mask(3, 2) == mask_of([1, 3, 4])
        assert indexer.step_logic(board, steps, False) is LogicResult.NONE

    def test_removes_indexer_values_whose_target_is_gone(self):
        indexer = RowIndexerConstraint([(1, 2)])
        board = Board(4, constraints=[indexer])
        board.set_mask(2, 2, mask_of([1, 3, 4]))
        assert indexer.step_logic(board, None, True) is LogicResult.CHANGED
        assert board.mask(1, 2) == mask_of([1, 2, 4])

    def test_explanations_do_not_change_deductions(self):
        boards = []
        for _ in range(2):
            indexer = RowIndexerConstraint([(1, 2), (2, 1)])
            board = Board(4, constraints=[indexer])
            board.set_mask(1, 2, mask_of([1, 3]))
            board.set_mask(3, 1, mask_of([1, 4]))
            boards.append((board, indexer))
        (explained, indexer_a), (silent, indexer_b) = boards
        while True:
            result_a = indexer_a.step_logic(explained, [], False)
            result_b = indexer_b.step_logic(silent, None, True)
            assert result_a is result_b
            assert explained.masks == silent.masks
            if result_a is not LogicResult.CHANGED:
                break

    def test_empty_indexer_is_invalid(self):
        indexer = RowIndexerConstraint([(1, 2)])
        board = Board(4, constraints=[indexer])
        board.set_mask(1, 2, value_bit(3))
        board.set_mask(2, 2, mask_of([1, 3, 4]))
        assert indexer.step_logic(board, None, True) is LogicResult.INVALID


class TestBoxIndexer:
    def test_targets_follow_region_order(self, board4):
        indexer = BoxIndexerConstraint([(0, 1), (2, 3)])
        assert indexer.init_candidates(board4) is LogicResult.NONE
        # r1c2 is the 2nd cell of box 1; value 4 points at the box's 4th cell
        assert indexer.target_cell(board4, 0, 1, 4) == (1, 1, 2)
        assert indexer.target_cell(board4, 2, 3, 1) == (2, 2, 2)

    def test_cells_without_region_target_themselves(self, open_board4):
        indexer = BoxIndexerConstraint([(0, 1)])
        indexer.init_candidates(open_board4)
        assert indexer.target_cell(open_board4, 0, 1, 3) == (0, 1, 3)
        assert indexer.step_logic(open_board4, None, True) is LogicResult.NONE

    def test_targets_follow_a_new_layout(self, board4):
        indexer = BoxIndexerConstraint([(0, 1)])
        indexer.init_candidates(board4)
        assert indexer.target_cell(board4, 0, 1, 4) == (1, 1, 2)
        rows = Board(4, regions=[[(0, c) for c in range(4)]])
        assert indexer.target_cell(rows, 0, 1, 4) == (0, 3, 2)
        assert indexer.target_cell(rows, 1, 1, 4) == (1, 1, 4)

    def test_links_use_region_targets(self):
        indexer = BoxIndexerConstraint([(0, 1)])
        board = Board(4, constraints=[indexer])
        indexer.init_candidates(board)
        indexer.init_links(board, None)
        source = board.candidate_index(0, 1, 4)
        assert not board.weak_links.linked(source, board.candidate_index(1, 1, 2))
        assert board.weak_links.linked(source, board.candidate_index(1, 1, 3))


class TestConfiguration:
    def test_needs_cells(self):
        with pytest.raises(ConfigurationError):
            RowIndexerConstraint([])

    def test_cells_must_be_distinct(self):
        with pytest.raises(ConfigurationError):
            ColIndexerConstraint([(0, 0), (0, 0)])

    def test_cells_must_be_on_the_grid(self):
        with pytest.raises(ConfigurationError):
            Board(4, constraints=[RowIndexerConstraint([(0, 5)])])
