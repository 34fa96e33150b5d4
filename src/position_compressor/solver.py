"""
Layout solvers for compressed positions.

Implements the two solving phases of the compressor:
- Orthogonal layout: packs the X and Y groups side by side, keeping
  intra-group offsets exact and leaving exactly the minimum distance
  between consecutive groups.
- Diagonal repair: an iterative search that widens gaps between X groups
  until every diagonal relationship can be honoured, then lays the Y
  groups out as low as those relationships allow.

An X gap is never widened past its width in the original position, where
every relationship is known to hold, so every violation can always be
repaired and the search terminates. Gaps only ever grow, which keeps the
orthogonal ordering established by the first phase intact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Optional

from position_compressor.models import (
    DIAGONAL_AXES,
    Axis,
    AxisOrder,
    AxisOrders,
    ConvergenceError,
    InvariantViolation,
    PieceTransform,
    format_coords,
)

logger = logging.getLogger("position-compressor")

# How a diagonal scalar moves when x grows: y-x falls, y+x rises.
_X_SIGN = {Axis.POS_DIAG: -1, Axis.NEG_DIAG: 1}


# ---------------------------------------------------------------------------
# Orthogonal layout
# ---------------------------------------------------------------------------

def solve_orthogonal_axis(axis_order: AxisOrder, axis: Axis, min_distance: int) -> None:
    """Lay out the groups of one orthogonal axis from zero upwards."""
    index = axis.coord_index
    cursor = 0
    for group in axis_order:
        group.transformed_range = [cursor, cursor + group.size]
        for piece in group.pieces:
            # Offset from the start of the group is kept exactly
            piece.transformed_coords[index] = cursor + piece.coords[index] - group.range[0]
        cursor += min_distance + group.size


def compute_transformed_ranges(axis_order: AxisOrder, axis: Axis) -> None:
    """Set each group's transformed range from its pieces' transformed coordinates."""
    for group in axis_order:
        values = [axis.value_of(piece.transformed()) for piece in group.pieces]
        group.transformed_range = [min(values), max(values)]


# ---------------------------------------------------------------------------
# Separation contract
# ---------------------------------------------------------------------------

def calculate_push_amount(original: int, transformed: int, min_distance: int) -> int:
    """How far a transformed axis difference must move to honour the original.

    Differences within *min_distance* must be kept exactly. Larger ones only
    need to stay at least *min_distance* with the same sign.

    Returns:
        The signed correction to add to *transformed*, or 0 if it is fine.
    """
    if abs(original) <= min_distance:
        return original - transformed
    if original > min_distance and transformed < min_distance:
        return min_distance - transformed
    if original < -min_distance and transformed > -min_distance:
        return -min_distance - transformed
    return 0


def separation_bounds(original: int, min_distance: int) -> tuple[Optional[int], Optional[int]]:
    """Lowest and highest allowed transformed difference (None = unbounded)."""
    if abs(original) <= min_distance:
        return original, original
    if original > 0:
        return min_distance, None
    return None, -min_distance


# ---------------------------------------------------------------------------
# Gap helpers
# ---------------------------------------------------------------------------

def current_gap(axis_order: AxisOrder, index: int) -> int:
    """Transformed spacing between group *index* and the next one."""
    return axis_order[index + 1].transformed_range[0] - axis_order[index].transformed_range[1]


def original_gap(axis_order: AxisOrder, index: int) -> int:
    """Original spacing between group *index* and the next one."""
    return axis_order[index + 1].range[0] - axis_order[index].range[1]


def widen_gap(axis_order: AxisOrder, axis: Axis, gap_index: int, amount: int) -> int:
    """Widen the gap after group *gap_index* by moving every later group forward.

    Returns:
        Number of groups moved.
    """
    if amount <= 0:
        raise InvariantViolation(f"Gap widening amount must be positive, got {amount}.")
    following = axis_order[gap_index + 1:]
    for group in following:
        group.shift(amount, axis)
    return len(following)


def widen_x_gaps(x_order: AxisOrder, gradient: dict[int, int], excess: int) -> None:
    """Raise X gaps until a linear function of them drops by *excess*.

    *gradient* maps a gap index to its coefficient in the function; only
    gaps with a negative coefficient help. The most effective gap is used
    first (lowest index on ties), and no gap grows past its original width.
    """
    candidates = sorted(
        (index for index, coefficient in gradient.items() if coefficient < 0),
        key=lambda index: (gradient[index], index),
    )
    remaining = excess
    for index in candidates:
        weight = -gradient[index]
        room = original_gap(x_order, index) - current_gap(x_order, index)
        amount = min(-(-remaining // weight), room)
        if amount > 0:
            widen_gap(x_order, Axis.X, index, amount)
            remaining -= amount * weight
            logger.debug("Widened X gap %d by %d", index, amount)
        if remaining <= 0:
            return
    raise InvariantViolation(
        f"X gaps have no room left for a correction of {excess} ({remaining} short)."
    )


def _x_gradient(first: PieceTransform, second: PieceTransform, sign: int) -> dict[int, int]:
    """Coefficients of ``sign * (x(second) - x(first))`` over the X gaps."""
    low = first.axis_groups[Axis.X]
    high = second.axis_groups[Axis.X]
    if low <= high:
        return {index: sign for index in range(low, high)}
    return {index: -sign for index in range(high, low)}


def _negated(gradient: dict[int, int]) -> dict[int, int]:
    return {index: -coefficient for index, coefficient in gradient.items()}


# ---------------------------------------------------------------------------
# Diagonal repair
# ---------------------------------------------------------------------------

@dataclass
class RowConstraint:
    """``start(target) >= start(source) + weight`` between two Y groups.

    *gradient* gives how *weight* changes as each X gap widens.
    """
    source: int
    target: int
    weight: int
    gradient: dict[int, int]


def repair_shared_rows(pieces: list[PieceTransform], x_order: AxisOrder, min_distance: int) -> bool:
    """Widen X gaps for pairs in the same Y group.

    Their Y difference is fixed, so their diagonal differences depend on X
    alone.

    Returns:
        True if any gap was widened.
    """
    changed = False
    for diagonal in DIAGONAL_AXES:
        sign = _X_SIGN[diagonal]
        for first, second in combinations(pieces, 2):
            if first.axis_groups[Axis.Y] != second.axis_groups[Axis.Y]:
                continue
            original = diagonal.value_of(second.coords) - diagonal.value_of(first.coords)
            current = diagonal.value_of(second.transformed()) - diagonal.value_of(first.transformed())
            push = calculate_push_amount(original, current, min_distance)
            if push == 0:
                continue
            gradient = _x_gradient(first, second, sign)
            if push > 0:
                widen_x_gaps(x_order, _negated(gradient), push)
            else:
                widen_x_gaps(x_order, gradient, -push)
            logger.debug(
                "Repaired %s between %s and %s by %d",
                diagonal.name, format_coords(first.coords), format_coords(second.coords), push,
            )
            changed = True
    return changed


def row_constraints(
    pieces: list[PieceTransform],
    y_order: AxisOrder,
    min_distance: int,
) -> list[RowConstraint]:
    """Express every Y-order and diagonal requirement between Y groups.

    With the X layout fixed, the diagonal difference of a pair in distinct
    Y groups is ``start(b) - start(a)`` plus a constant, so each of its
    bounds becomes one constraint between the two group starts.
    """
    constraints = [
        RowConstraint(index, index + 1, y_order[index].size + min_distance, {})
        for index in range(len(y_order) - 1)
    ]
    for diagonal in DIAGONAL_AXES:
        sign = _X_SIGN[diagonal]
        for first, second in combinations(pieces, 2):
            row_a = first.axis_groups[Axis.Y]
            row_b = second.axis_groups[Axis.Y]
            if row_a == row_b:
                continue
            original = diagonal.value_of(second.coords) - diagonal.value_of(first.coords)
            lower, upper = separation_bounds(original, min_distance)
            offset = (
                (second.coords[1] - y_order[row_b].range[0])
                - (first.coords[1] - y_order[row_a].range[0])
            )
            constant = offset + sign * (second.transformed_coords[0] - first.transformed_coords[0])
            gradient = _x_gradient(first, second, sign)
            if lower is not None:
                constraints.append(RowConstraint(row_a, row_b, lower - constant, _negated(gradient)))
            if upper is not None:
                constraints.append(RowConstraint(row_b, row_a, constant - upper, gradient))
    return constraints


def lowest_row_starts(
    constraints: list[RowConstraint],
    count: int,
) -> tuple[list[int], Optional[list[RowConstraint]]]:
    """Longest-path relaxation over the Y groups (Bellman-Ford).

    Returns:
        The lowest non-negative group starts meeting every constraint and
        None, or the starts reached so far and a cycle of constraints whose
        weights sum to more than zero, which no layout of the Y groups can
        satisfy.
    """
    starts = [0] * count
    reached_by: list[Optional[RowConstraint]] = [None] * count
    updated: Optional[int] = None
    for _ in range(count):
        updated = None
        for constraint in constraints:
            candidate = starts[constraint.source] + constraint.weight
            if candidate > starts[constraint.target]:
                starts[constraint.target] = candidate
                reached_by[constraint.target] = constraint
                updated = constraint.target
        if updated is None:
            return starts, None
    if updated is None:
        return starts, None

    def step_back(row: int) -> int:
        constraint = reached_by[row]
        if constraint is None:
            raise InvariantViolation(f"Y group {row} has no relaxation history.")
        return constraint.source

    row = updated
    for _ in range(count):
        row = step_back(row)
    cycle: list[RowConstraint] = []
    current = row
    while True:
        cycle.append(reached_by[current])
        current = step_back(current)
        if current == row:
            break
    cycle.reverse()
    return starts, cycle


def place_rows(y_order: AxisOrder, starts: list[int]) -> None:
    """Move every Y group so its transformed range begins at its start."""
    for group, start in zip(y_order, starts):
        amount = start - group.transformed_range[0]
        if amount:
            group.shift(amount, Axis.Y)


def solve_diagonals(
    pieces: list[PieceTransform],
    axis_orders: AxisOrders,
    min_distance: int,
    max_iterations: int,
) -> int:
    """Widen X gaps until every diagonal relationship holds, then settle Y.

    Each iteration first repairs pairs that share a Y group. When none
    needs repair, the Y groups are laid out by longest path; if that is
    impossible, the offending cycle of constraints tells which X gaps to
    widen.

    Returns:
        The number of iterations made, including the final clean one.

    Raises:
        ConvergenceError: if *max_iterations* iterations were not enough.
    """
    x_order = axis_orders[Axis.X]
    y_order = axis_orders[Axis.Y]
    for iteration in range(1, max_iterations + 1):
        if repair_shared_rows(pieces, x_order, min_distance):
            continue

        constraints = row_constraints(pieces, y_order, min_distance)
        starts, cycle = lowest_row_starts(constraints, len(y_order))
        if cycle is None:
            place_rows(y_order, starts)
            logger.debug("Diagonal solver converged after %d iterations", iteration)
            return iteration

        excess = sum(constraint.weight for constraint in cycle)
        if excess <= 0:
            raise InvariantViolation(f"Relaxation cycle has non-positive weight {excess}.")
        gradient: dict[int, int] = {}
        for constraint in cycle:
            for index, coefficient in constraint.gradient.items():
                gradient[index] = gradient.get(index, 0) + coefficient
        widen_x_gaps(x_order, gradient, excess)

    raise ConvergenceError(
        f"Diagonal solver did not converge within {max_iterations} iterations; "
        "the compressed position is not safe to use."
    )


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

@dataclass
class TopologyViolation:
    """A pair of pieces whose relationship on one axis was not preserved."""
    axis: Axis
    first: PieceTransform
    second: PieceTransform
    original: int
    transformed: int

    def describe(self) -> str:
        return (
            f"{self.axis.name}: {format_coords(self.first.coords)} -> "
            f"{format_coords(self.second.coords)} was {self.original}, now {self.transformed}"
        )


def find_topology_violations(
    pieces: list[PieceTransform],
    axes: tuple[Axis, ...],
    min_distance: int,
) -> list[TopologyViolation]:
    """Check every pair of pieces on every axis against the separation contract."""
    violations: list[TopologyViolation] = []
    for axis in axes:
        for first, second in combinations(pieces, 2):
            original = axis.value_of(second.coords) - axis.value_of(first.coords)
            transformed = axis.value_of(second.transformed()) - axis.value_of(first.transformed())
            if calculate_push_amount(original, transformed, min_distance) != 0:
                violations.append(TopologyViolation(axis, first, second, original, transformed))
    return violations
