"""
Position compressor for infinite chess.

Takes a position whose pieces may sit at arbitrarily large coordinates and
maps it into a small coordinate space, so that a rule engine working with
doubles can analyse it exactly. Every orthogonal (and, in diagonal mode,
diagonal) relationship between pieces survives:
- pieces close together on an axis keep their exact distance,
- pieces far apart stay at least the minimum arbitrary distance apart,
  on the same side of each other.

Pipeline:
1. Ingest pieces into transform records
2. Group pieces on every active axis
3. Lay out the X and Y groups compactly
4. Repair broken diagonal relationships (diagonal mode only)
5. Recenter on an anchor piece (optional)
6. Assemble the compressed position

The returned metadata lets a move chosen in the compressed position be
expanded back out (see ``position_compressor.expander``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from position_compressor.grouping import build_axis_order, check_axis_order
from position_compressor.models import (
    DIAGONAL_AXES,
    MAX_SAFE_INTEGER,
    ORTHOGONAL_AXES,
    AxisOrders,
    CompressionInfo,
    CompressionMode,
    ConfigurationError,
    Coords,
    InvariantViolation,
    PieceTransform,
    Position,
    format_coords,
)
from position_compressor.solver import (
    compute_transformed_ranges,
    solve_diagonals,
    solve_orthogonal_axis,
)

logger = logging.getLogger("position-compressor")

AnchorSelector = Callable[[PieceTransform], bool]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class CompressorConfig:
    """Configuration for the position compressor."""
    # Spacing. Must be even and more than twice the longest leap of any
    # jumping piece, so leaps never cross a group boundary.
    min_arbitrary_distance: int = 20

    # Algorithm tuning
    max_solver_iterations: int = 1000   # Max iterations of the diagonal solver

    # Recentering
    anchor_selector: Optional[AnchorSelector] = None
    safe_bound: int = MAX_SAFE_INTEGER // 10   # Recentering may not push coordinates past this


def select_piece_type(type_code: int) -> AnchorSelector:
    """Build an anchor selector matching the first piece of a given type."""
    def selector(piece: PieceTransform) -> bool:
        return piece.type == type_code
    return selector


def _check_config(config: CompressorConfig) -> None:
    distance = config.min_arbitrary_distance
    if not isinstance(distance, int) or isinstance(distance, bool) or distance <= 0:
        raise ConfigurationError(
            f"min_arbitrary_distance must be a positive integer, got {distance!r}."
        )
    if distance % 2 != 0:
        raise ConfigurationError(f"min_arbitrary_distance must be even, got {distance}.")
    iterations = config.max_solver_iterations
    if not isinstance(iterations, int) or isinstance(iterations, bool) or iterations < 1:
        raise ConfigurationError(
            f"max_solver_iterations must be a positive integer, got {iterations!r}."
        )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def compress_position(
    position: Position,
    mode: CompressionMode | str = CompressionMode.DIAGONALS,
    config: CompressorConfig | None = None,
) -> CompressionInfo:
    """Compress a position so every coordinate is small.

    Args:
        position: Mapping of ``(x, y)`` to piece-type code. Not modified.
        mode: ``"orthogonals"`` keeps every piece in the same quadrant
            relative to every other piece; ``"diagonals"`` keeps the same
            octant.
        config: Tuning parameters; defaults to ``CompressorConfig()``.

    Returns:
        The compressed position with its axis groups and per-piece
        transforms.

    Raises:
        ConfigurationError: unsupported mode or invalid configuration.
        ConvergenceError: the diagonal solver hit its iteration cap.
        InvariantViolation: an internal invariant was broken.
    """
    mode = CompressionMode.parse(mode)
    cfg = config or CompressorConfig()
    _check_config(cfg)
    min_distance = cfg.min_arbitrary_distance

    pieces = ingest_pieces(position)

    axis_orders: AxisOrders = {}
    for axis in mode.axes:
        axis_order = build_axis_order(pieces, axis, min_distance)
        if not check_axis_order(axis_order, min_distance):
            raise InvariantViolation(f"Groups on {axis.name} overlap after grouping.")
        axis_orders[axis] = axis_order

    for axis in ORTHOGONAL_AXES:
        solve_orthogonal_axis(axis_orders[axis], axis, min_distance)

    iterations = 0
    if mode is CompressionMode.DIAGONALS:
        iterations = solve_diagonals(pieces, axis_orders, min_distance, cfg.max_solver_iterations)
        for axis in DIAGONAL_AXES:
            compute_transformed_ranges(axis_orders[axis], axis)

    translation = None
    if cfg.anchor_selector is not None:
        translation = recenter(pieces, axis_orders, cfg.anchor_selector, cfg.safe_bound)

    compressed = assemble_position(pieces)
    logger.debug(
        "Compressed %d pieces in %s mode (%d solver iterations)",
        len(pieces), mode.value, iterations,
    )
    return CompressionInfo(
        position=compressed,
        axis_orders=axis_orders,
        pieces=pieces,
        mode=mode,
        min_distance=min_distance,
        iterations=iterations,
        translation=translation,
    )


def ingest_pieces(position: Position) -> list[PieceTransform]:
    """Create a transform record per piece, sorted by original coordinates."""
    return [
        PieceTransform(type=piece_type, coords=(int(coords[0]), int(coords[1])))
        for coords, piece_type in sorted(position.items())
    ]


# ---------------------------------------------------------------------------
# Recentering
# ---------------------------------------------------------------------------

def recenter(
    pieces: list[PieceTransform],
    axis_orders: AxisOrders,
    anchor_selector: AnchorSelector,
    safe_bound: int,
) -> Optional[Coords]:
    """Translate the solution so the anchor piece is back on its original square.

    The translation is rigid, so no relationship between pieces changes.
    Skipped when no piece matches, or when the translated layout would
    leave ``[-safe_bound, safe_bound]``.

    Returns:
        The translation applied, or None if skipped.
    """
    anchor = next((piece for piece in pieces if anchor_selector(piece)), None)
    if anchor is None:
        logger.debug("No anchor piece found; skipping recentering")
        return None

    ax, ay = anchor.transformed()
    dx = anchor.coords[0] - ax
    dy = anchor.coords[1] - ay

    for piece in pieces:
        x, y = piece.transformed()
        if abs(x + dx) > safe_bound or abs(y + dy) > safe_bound:
            logger.warning(
                "Recentering on %s would exceed the safe bound; keeping the compact layout",
                format_coords(anchor.coords),
            )
            return None

    for piece in pieces:
        piece.transformed_coords[0] += dx
        piece.transformed_coords[1] += dy

    for axis, axis_order in axis_orders.items():
        shift = axis.value_of((dx, dy))
        for group in axis_order:
            if group.transformed_range is not None:
                group.transformed_range[0] += shift
                group.transformed_range[1] += shift

    return (dx, dy)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def assemble_position(pieces: list[PieceTransform]) -> Position:
    """Build the compressed position from every piece's transformed coordinates."""
    compressed: Position = {}
    for piece in pieces:
        coords = piece.transformed()
        if coords in compressed:
            raise InvariantViolation(
                f"Two pieces were compressed onto {format_coords(coords)}; "
                f"one of them started at {format_coords(piece.coords)}."
            )
        compressed[coords] = piece.type
    return compressed
