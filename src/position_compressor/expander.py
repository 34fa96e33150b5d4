"""
Move expansion.

Takes a move chosen by analysing a compressed position and maps it back onto
the original, uncompressed position: the same piece moves, and its
destination keeps the same relationship to the pieces it was aiming at.
"""

from __future__ import annotations

from math import gcd
from typing import Optional

from position_compressor.models import (
    Axis,
    AxisGroup,
    AxisOrder,
    CompressionInfo,
    Coords,
    Move,
    MoveExpansionError,
    format_coords,
)


def expand_move(info: CompressionInfo, move: Move) -> Move:
    """Expand a move made in the compressed position.

    Captures land on the captured piece's original square. Any other move
    attaches its destination to the nearest group on the first axis it
    travels along (X before Y), keeps its offset from that group without
    reaching the neighbouring group (see ``expand_axis_value``), and is
    projected back onto the piece's original line of movement.

    Raises:
        MoveExpansionError: if no piece stands on the start square, or the
            destination cannot be placed on an integer square of the
            original movement line.
    """
    start = (int(move.start[0]), int(move.start[1]))
    end = (int(move.end[0]), int(move.end[1]))

    piece = info.piece_at(start)
    if piece is None:
        raise MoveExpansionError(
            f"No piece on {format_coords(start)} in the compressed position. "
            "Was the move chosen from the compressed position?"
        )

    dx = end[0] - start[0]
    dy = end[1] - start[1]
    if dx == 0 and dy == 0:
        raise MoveExpansionError(f"Move from {format_coords(start)} does not go anywhere.")

    captured = info.piece_at(end)
    if captured is not None:
        return Move(start=piece.coords, end=captured.coords)

    step = gcd(dx, dy)
    direction = (dx // step, dy // step)

    # A move perpendicular to an axis cannot change its value on that axis.
    axes = [axis for axis in (Axis.X, Axis.Y) if direction[axis.coord_index] != 0]
    for axis in axes:
        target = expand_axis_value(info.axis_orders[axis], axis.value_of(end), info.min_distance)
        destination = _point_on_line(piece.coords, direction, axis, target)
        if destination is not None:
            return Move(start=piece.coords, end=destination)

    raise MoveExpansionError(
        f"Unable to place the destination of {format_coords(start)} -> "
        f"{format_coords(end)} on an integer square of the original position."
    )


def expand_axis_value(axis_order: AxisOrder, value: int, min_distance: int) -> int:
    """Map a compressed axis value back onto the original axis.

    The value keeps its offset from the nearest group. Between two groups
    the offset is capped at the original gap minus half the minimum
    distance, so the result always stays strictly between the neighbours'
    original ranges.
    """
    index = _nearest_group_index(axis_order, value)
    group = axis_order[index]
    low, high = group.transformed_range
    if value > high:
        offset = value - high
        if index + 1 < len(axis_order):
            gap = axis_order[index + 1].range[0] - group.range[1]
            offset = min(offset, gap - min_distance // 2)
        return group.range[1] + offset
    if value < low:
        offset = low - value
        if index > 0:
            gap = group.range[0] - axis_order[index - 1].range[1]
            offset = min(offset, gap - min_distance // 2)
        return group.range[0] - offset
    return group.range[0] + (value - low)


def nearest_group(axis_order: AxisOrder, value: int) -> AxisGroup:
    """Return the group whose transformed range is closest to *value*."""
    return axis_order[_nearest_group_index(axis_order, value)]


def _nearest_group_index(axis_order: AxisOrder, value: int) -> int:
    if not axis_order:
        raise MoveExpansionError("The compressed position has no groups to expand against.")
    best = 0
    best_distance: Optional[int] = None
    for index, group in enumerate(axis_order):
        low, high = group.transformed_range
        if value < low:
            distance = low - value
        elif value > high:
            distance = value - high
        else:
            return index
        if best_distance is None or distance < best_distance:
            best = index
            best_distance = distance
    return best


def _point_on_line(origin: Coords, direction: Coords, axis: Axis, target: int) -> Optional[Coords]:
    """Intersect the line ``origin + t * direction`` with ``axis == target``.

    Returns None when the intersection is not an integer step along the line.
    """
    index = axis.coord_index
    offset = target - origin[index]
    if offset % direction[index] != 0:
        return None
    t = offset // direction[index]
    return (origin[0] + t * direction[0], origin[1] + t * direction[1])
