# tests/test_equal_sums.py
import pytest

from board import Board
from constraints import (
    DoubleArrowConstraint,
    EqualSumsConstraint,
    LogicResult,
    RegionSumLinesConstraint,
)
from errors import ConfigurationError
from masks import all_values_mask, mask_of, value_bit

A, B, C = (0, 0), (1, 1), (2, 2)


def diagonal_arrow():
    arrow = DoubleArrowConstraint([A, B, C])
    return Board(4, regions=[], constraints=[arrow]), arrow


class TestDoubleArrow:
    def test_groups_are_circles_and_between_cells(self):
        board, arrow = diagonal_arrow()
        assert arrow.cell_groups(board) == [[A, C], [B]]
        assert arrow.sums.groups(board) == [[A, C], [B]]

    def test_circles_too_large_for_between_cell(self):
        line = [(0, 0), (0, 1), (0, 2)]
        arrow = DoubleArrowConstraint(line)
        board = Board(4, regions=[], constraints=[arrow])
        board.set_mask(0, 0, mask_of([3, 4]))
        board.set_mask(0, 2, mask_of([3, 4]))
        board.set_mask(0, 1, mask_of([1, 2]))
        assert arrow.init_candidates(board) is LogicResult.INVALID
        steps = []
        assert arrow.step_logic(board, steps, False) is LogicResult.INVALID
        assert steps[0].desc == "Double Arrow from r1c1 - r1c3: no sum is possible for every group."

    def test_step_restricts_to_common_sums(self):
        board, arrow = diagonal_arrow()
        steps = []
        assert arrow.step_logic(board, steps, False) is LogicResult.CHANGED
        assert board.mask(*B) == mask_of([2, 3, 4])
        assert board.mask(*A) == mask_of([1, 2, 3])
        assert board.mask(*C) == mask_of([1, 2, 3])
        assert steps[0].desc == "Double Arrow from r1c1 - r3c3 (sum 2,3,4) => -4r1c1;-4r3c3;-1r2c2"
        assert arrow.step_logic(board, steps, False) is LogicResult.NONE

    def test_short_line_is_inert(self):
        arrow = DoubleArrowConstraint([(0, 0), (0, 1)])
        board = Board(4, constraints=[arrow])
        assert arrow.cell_groups(board) is None
        assert arrow.init_candidates(board) is LogicResult.NONE
        assert arrow.step_logic(board, [], False) is LogicResult.NONE

    def test_enforce_forces_last_open_cell(self):
        board, _ = diagonal_arrow()
        assert board.set_value(*A, 1)
        assert board.set_value(*C, 2)
        assert board.mask(*B) == value_bit(3)
        assert board.is_placed(*B)

    def test_enforce_rejects_impossible_total(self):
        board, arrow = diagonal_arrow()
        assert board.set_value(*B, 1)
        assert arrow.enforce_constraint(board, *B, 1)
        assert not board.set_value(*A, 1)

    def test_enforce_twice_is_a_no_op(self):
        board, arrow = diagonal_arrow()
        assert board.set_value(*B, 3)
        before = board.masks
        assert arrow.enforce_constraint(board, *B, 3)
        assert arrow.enforce_constraint(board, *B, 3)
        assert board.masks == before

        assert board.set_value(*A, 1)
        before = board.masks
        assert arrow.enforce_constraint(board, *A, 1)
        assert arrow.enforce_constraint(board, *A, 1)
        assert board.masks == before
        assert board.mask(*C) == value_bit(2)

    def test_explanations_do_not_change_deductions(self):
        explained, arrow_a = diagonal_arrow()
        silent, arrow_b = diagonal_arrow()
        while True:
            result_a = arrow_a.step_logic(explained, [], False)
            result_b = arrow_b.step_logic(silent, None, True)
            assert result_a is result_b
            assert explained.masks == silent.masks
            if result_a is not LogicResult.CHANGED:
                break

    def test_links_between_total_and_addends(self):
        board, arrow = diagonal_arrow()
        arrow.init_links(board, None)
        linked = board.weak_links.linked
        # A=2 leaves B at least 3
        assert linked(board.candidate_index(*B, 2), board.candidate_index(*A, 2))
        assert not linked(board.candidate_index(*B, 3), board.candidate_index(*A, 2))
        # B=1 can never be a sum of two values
        for w in range(1, 5):
            assert linked(board.candidate_index(*B, 1), board.candidate_index(*C, w))

    def test_configuration(self):
        with pytest.raises(ConfigurationError):
            DoubleArrowConstraint()
        with pytest.raises(ConfigurationError):
            DoubleArrowConstraint([A, B], [B, C])
        with pytest.raises(ConfigurationError):
            DoubleArrowConstraint([])


class TestRegionSumLines:
    def test_line_split_at_region_borders(self, board4):
        line = RegionSumLinesConstraint([(0, 0), (0, 1), (0, 2), (0, 3)])
        assert line.cell_groups(board4) == [[(0, 0), (0, 1)], [(0, 2), (0, 3)]]
        assert line.specific_name == "Region Sum Line from r1c1 - r1c4"

    def test_cells_outside_regions_are_dropped(self):
        board = Board(4, regions=[
            [(0, 0), (0, 1), (1, 0), (1, 1)],
            [(0, 2), (0, 3), (1, 2), (1, 3)],
        ])
        line = RegionSumLinesConstraint([(0, 1), (0, 2), (2, 2), (1, 2)])
        assert line.cell_groups(board) == [[(0, 1)], [(0, 2), (1, 2)]]

    def test_line_inside_one_region_is_inert(self, board4):
        line = RegionSumLinesConstraint([(0, 0), (0, 1), (1, 1)])
        board = Board(4, constraints=[line])
        assert line.init_candidates(board) is LogicResult.NONE
        assert board.masks == board4.masks

    def test_distinct_segment_restricts_partner(self):
        line = RegionSumLinesConstraint([(0, 0), (0, 1), (0, 2)])
        board = Board(4, constraints=[line])
        assert line.init_candidates(board) is LogicResult.CHANGED
        # r1c1 + r1c2 are different values, so their sum is 3 or 4
        assert board.mask(0, 2) == mask_of([3, 4])
        assert board.mask(0, 0) == mask_of([1, 2, 3])
        assert board.mask(0, 1) == mask_of([1, 2, 3])
        assert line.init_candidates(board) is LogicResult.NONE
        assert board.mask(3, 3) == all_values_mask(4)


def test_static_groups():
    sums = EqualSumsConstraint([[(0, 0)], [(3, 3)]])
    board = Board(4, regions=[], constraints=[sums])
    board.set_mask(0, 0, mask_of([1, 2]))
    assert sums.step_logic(board, None, True) is LogicResult.CHANGED
    assert board.mask(3, 3) == mask_of([1, 2])
    assert list(sums.affected_cells()) == [(0, 0), (3, 3)]


def test_groups_follow_the_board_layout():
    line = RegionSumLinesConstraint([(0, 1), (0, 2), (1, 2)])
    boxes = Board(4)
    assert line.sums.groups(boxes) == [[(0, 1)], [(0, 2), (1, 2)]]
    rows = Board(4, regions=[[(0, c) for c in range(4)], [(1, c) for c in range(4)]])
    assert line.sums.groups(rows) == [[(0, 1), (0, 2)], [(1, 2)]]
    assert line.sums.groups(boxes.clone()) == [[(0, 1)], [(0, 2), (1, 2)]]
