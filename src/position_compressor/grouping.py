"""
Axis grouping engine.

Clusters pieces on one axis into disjoint, sorted groups. Two pieces end up
in the same group when a chain of pieces connects them with no step larger
than the merge range, so every gap between groups is strictly larger than
the merge range and stays "arbitrary" once compressed.
"""

from __future__ import annotations

from position_compressor.models import Axis, AxisGroup, AxisOrder, PieceTransform


def binary_search_range(
    sorted_groups: AxisOrder,
    value: int,
    merge_range: int,
) -> tuple[bool, int]:
    """Find the group a value merges into, or where a new group belongs.

    The groups' ranges are disjoint even after padding each side by
    *merge_range*, so at most one padded range can be hit during the
    search.

    Returns:
        ``(True, index)`` of the group whose padded range contains *value*,
        or ``(False, index)`` where a new group must be inserted to keep the
        list sorted.
    """
    left = 0
    right = len(sorted_groups) - 1

    while left <= right:
        mid = (left + right) // 2
        low, high = sorted_groups[mid].range
        low_limit = low - merge_range
        high_limit = high + merge_range

        if low_limit <= value <= high_limit:
            return True, mid

        if value < low_limit:
            right = mid - 1
        else:
            left = mid + 1

    return False, left


def register_piece(
    axis_order: AxisOrder,
    piece: PieceTransform,
    axis_value: int,
    merge_range: int,
) -> None:
    """Add a piece to the group it is close to, or start a new group."""
    found, index = binary_search_range(axis_order, axis_value, merge_range)
    if not found:
        axis_order.insert(index, AxisGroup(range=[axis_value, axis_value], pieces=[piece]))
        return

    group = axis_order[index]
    side = _push_piece_to_group(group, piece, axis_value)
    if side != 0:
        _merge_with_adjacent(axis_order, index, side, merge_range)


def _push_piece_to_group(group: AxisGroup, piece: PieceTransform, axis_value: int) -> int:
    """Append a piece to a group.

    Returns -1 or 1 if the piece extended the group's low or high side,
    0 if it fell inside the existing range.
    """
    group.pieces.append(piece)
    if axis_value < group.range[0]:
        group.range[0] = axis_value
        return -1
    if axis_value > group.range[1]:
        group.range[1] = axis_value
        return 1
    return 0


def _merge_with_adjacent(axis_order: AxisOrder, index: int, side: int, merge_range: int) -> None:
    """Merge a just-extended group with its neighbour if their padded ranges now touch."""
    adjacent_index = index + side
    if adjacent_index < 0 or adjacent_index >= len(axis_order):
        return

    if side == -1:
        first_index, second_index = adjacent_index, index
    else:
        first_index, second_index = index, adjacent_index
    first = axis_order[first_index]
    second = axis_order[second_index]

    if first.range[1] + merge_range >= second.range[0]:
        first.pieces.extend(second.pieces)
        first.range[1] = second.range[1]
        del axis_order[second_index]


def assign_group_indices(axis_order: AxisOrder, axis: Axis) -> None:
    """Record on every piece the index of the group that owns it on *axis*."""
    for index, group in enumerate(axis_order):
        for piece in group.pieces:
            piece.axis_groups[axis] = index


def build_axis_order(pieces: list[PieceTransform], axis: Axis, merge_range: int) -> AxisOrder:
    """Group all pieces on one axis and index them."""
    axis_order: AxisOrder = []
    for piece in pieces:
        register_piece(axis_order, piece, axis.value_of(piece.coords), merge_range)
    assign_group_indices(axis_order, axis)
    return axis_order


def check_axis_order(axis_order: AxisOrder, merge_range: int) -> bool:
    """Return True if the groups are sorted and their padded ranges are disjoint."""
    for previous, current in zip(axis_order, axis_order[1:]):
        if previous.range[1] + merge_range >= current.range[0]:
            return False
    return all(group.range[0] <= group.range[1] for group in axis_order)
