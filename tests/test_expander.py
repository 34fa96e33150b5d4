"""Tests for expanding compressed moves back onto the original position."""

import pytest

from position_compressor.compressor import CompressorConfig, compress_position, select_piece_type
from position_compressor.expander import expand_axis_value, expand_move, nearest_group
from position_compressor.models import (
    Axis,
    AxisGroup,
    CompressionInfo,
    CompressionMode,
    Move,
    MoveExpansionError,
    PieceTransform,
)

SEVEN = {
    (0, 0): 1,
    (2, 1): 2,
    (10000, 10000): 3,
    (-10000, 10000): 4,
    (3, 10000): 5,
    (-5000, -5003): 6,
    (9999, -1): 7,
}


@pytest.fixture
def info():
    return compress_position(SEVEN)


class TestExpandMove:
    """Tests for mapping compressed moves to original squares."""

    def test_capture_lands_on_captured_piece(self, info) -> None:
        move = expand_move(info, Move(start=(40, 23), end=(42, 24)))
        assert move == Move(start=(0, 0), end=(2, 1))

    def test_vertical_move_into_gap(self, info) -> None:
        """A file move attaches to the nearest rank group."""
        move = expand_move(info, Move(start=(20, 0), end=(20, 50)))
        assert move == Move(start=(-5000, -5003), end=(-5000, 9987))

    def test_diagonal_move_keeps_offset(self, info) -> None:
        move = expand_move(info, Move(start=(42, 24), end=(52, 34)))
        assert move == Move(start=(2, 1), end=(12, 11))

    def test_leap(self, info) -> None:
        move = expand_move(info, Move(start=(79, 22), end=(81, 23)))
        assert move == Move(start=(9999, -1), end=(10001, 0))

    def test_horizontal_move_inside_group(self, info) -> None:
        move = expand_move(info, Move(start=(40, 23), end=(41, 23)))
        assert move == Move(start=(0, 0), end=(1, 0))

    def test_anchored_compression(self) -> None:
        config = CompressorConfig(anchor_selector=select_piece_type(1))
        anchored = compress_position(SEVEN, config=config)
        move = expand_move(anchored, Move(start=(0, 0), end=(0, 5)))
        assert move == Move(start=(0, 0), end=(0, 5))

    def test_unknown_start_square(self, info) -> None:
        with pytest.raises(MoveExpansionError):
            expand_move(info, Move(start=(1, 1), end=(2, 2)))

    def test_null_move(self, info) -> None:
        with pytest.raises(MoveExpansionError):
            expand_move(info, Move(start=(40, 23), end=(40, 23)))

    def test_no_integer_destination(self, info) -> None:
        with pytest.raises(MoveExpansionError):
            expand_move(info, Move(start=(20, 0), end=(41, 33)))


class TestNearestGroup:
    """Tests for choosing the group a destination attaches to."""

    def test_inside_and_between(self) -> None:
        order = [
            AxisGroup(range=[0, 0], transformed_range=[0, 0]),
            AxisGroup(range=[500, 510], transformed_range=[20, 30]),
        ]
        assert nearest_group(order, 25) is order[1]
        assert nearest_group(order, 5) is order[0]
        assert nearest_group(order, 15) is order[1]
        assert nearest_group(order, -100) is order[0]

    def test_tie_goes_to_earlier_group(self) -> None:
        order = [
            AxisGroup(range=[0, 0], transformed_range=[0, 0]),
            AxisGroup(range=[500, 500], transformed_range=[20, 20]),
        ]
        assert nearest_group(order, 10) is order[0]

    def test_empty_order(self) -> None:
        with pytest.raises(MoveExpansionError):
            nearest_group([], 0)


def test_vertical_moves_ignore_files() -> None:
    info = compress_position({(0, 0): 1, (0, 10**12): 2})
    assert info.position == {(0, 0): 1, (0, 20): 2}
    move = expand_move(info, Move(start=(0, 0), end=(0, 19)))
    assert move == Move(start=(0, 0), end=(0, 10**12 - 1))
    assert Axis.X in info.axis_orders


class TestExpandAxisValue:
    """Tests for mapping one compressed axis value back onto the original axis."""

    @staticmethod
    def _widened_order() -> list:
        # The compressed gap (37..87) is wider than the original one (15..38).
        return [
            AxisGroup(range=[7, 15], transformed_range=[29, 37]),
            AxisGroup(range=[38, 43], transformed_range=[87, 92]),
        ]

    def test_offset_kept_when_it_fits(self) -> None:
        order = [
            AxisGroup(range=[0, 0], transformed_range=[0, 0]),
            AxisGroup(range=[500, 510], transformed_range=[20, 30]),
        ]
        assert expand_axis_value(order, 25, 20) == 505
        assert expand_axis_value(order, 5, 20) == 5
        assert expand_axis_value(order, 15, 20) == 495
        assert expand_axis_value(order, -100, 20) == -100
        assert expand_axis_value(order, 40, 20) == 520

    def test_never_reaches_the_next_group(self) -> None:
        order = self._widened_order()
        assert expand_axis_value(order, 30, 20) == 8
        # Offsets from either side are capped at the original gap minus 10.
        assert expand_axis_value(order, 61, 20) == 28
        assert expand_axis_value(order, 62, 20) == 28
        assert expand_axis_value(order, 63, 20) == 25
        assert expand_axis_value(order, 40, 20) == 18
        for value in range(38, 87):
            assert 15 < expand_axis_value(order, value, 20) < 38

    def test_move_into_widened_gap(self) -> None:
        """A rook move into a gap wider than the original stays short of the next file."""
        mover = PieceTransform(type=6, coords=(7, -50), transformed_coords=[29, 5])
        other = PieceTransform(type=5, coords=(38, -12), transformed_coords=[87, 40])
        info = CompressionInfo(
            position={(29, 5): 6, (87, 40): 5},
            axis_orders={Axis.X: self._widened_order()},
            pieces=[mover, other],
            mode=CompressionMode.DIAGONALS,
            min_distance=20,
        )
        move = expand_move(info, Move(start=(29, 5), end=(61, 5)))
        assert move == Move(start=(7, -50), end=(28, -50))
