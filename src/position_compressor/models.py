"""
Core data model for position compression.

Provides the typed records shared by every phase of the compressor:
per-piece transforms, per-axis groups, the compression result, and the
exception hierarchy raised when a compression cannot be produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


Coords = tuple[int, int]
Position = dict[Coords, int]

# Largest integer a double represents exactly.
MAX_SAFE_INTEGER = 2**53 - 1


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class CompressionError(Exception):
    """Base class for failures while compressing or expanding a position."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(CompressionError):
    """Raised when the mode or a tuning parameter is unsupported."""


class ConvergenceError(CompressionError):
    """Raised when the diagonal solver exhausts its iteration cap."""


class InvariantViolation(CompressionError):
    """Raised when an internal grouping or solving invariant is broken."""


class MoveExpansionError(CompressionError):
    """Raised when a compressed move cannot be mapped back to the original."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Axis(Enum):
    """Lines of movement along which separation is enforced.

    The value is the direction vector key; ``value_of`` projects a
    coordinate onto the axis, giving a scalar that is shared by every square
    on the same line.
    """
    X = "1,0"
    Y = "0,1"
    POS_DIAG = "1,1"
    NEG_DIAG = "1,-1"

    def value_of(self, coords: tuple[int, int]) -> int:
        x, y = coords
        if self is Axis.X:
            return x
        if self is Axis.Y:
            return y
        if self is Axis.POS_DIAG:
            return y - x
        return y + x

    @property
    def coord_index(self) -> int:
        """Index into a coordinate pair for the orthogonal axes."""
        if self is Axis.X:
            return 0
        if self is Axis.Y:
            return 1
        raise ValueError(f"{self.name} is not an orthogonal axis")


ORTHOGONAL_AXES = (Axis.X, Axis.Y)
DIAGONAL_AXES = (Axis.POS_DIAG, Axis.NEG_DIAG)


class CompressionMode(Enum):
    """Which relationships the compressed position must keep.

    ORTHOGONALS keeps every piece in the same quadrant relative to every
    other piece; DIAGONALS additionally keeps them in the same octant.
    """
    ORTHOGONALS = "orthogonals"
    DIAGONALS = "diagonals"

    @classmethod
    def parse(cls, value: CompressionMode | str) -> CompressionMode:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for mode in cls:
                if mode.value == value.strip().lower():
                    return mode
        allowed = ", ".join(m.value for m in cls)
        raise ConfigurationError(f"Unsupported compression mode {value!r}. Use one of: {allowed}.")

    @property
    def axes(self) -> tuple[Axis, ...]:
        if self is CompressionMode.DIAGONALS:
            return ORTHOGONAL_AXES + DIAGONAL_AXES
        return ORTHOGONAL_AXES


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class PieceTransform:
    """Where a piece started in the original position and where it ended up."""
    type: int
    coords: Coords
    # Both entries are set once the orthogonal phase has run.
    transformed_coords: list[Optional[int]] = field(default_factory=lambda: [None, None])
    # Axis -> index of the owning group in that axis' order.
    axis_groups: dict[Axis, int] = field(default_factory=dict)

    @property
    def is_placed(self) -> bool:
        return self.transformed_coords[0] is not None and self.transformed_coords[1] is not None

    def transformed(self) -> Coords:
        """Return the transformed coordinates, failing if either is unset."""
        x, y = self.transformed_coords
        if x is None or y is None:
            raise InvariantViolation(
                f"Piece at {format_coords(self.coords)} has undefined transformed coordinates."
            )
        return (x, y)


@dataclass(eq=False)
class AxisGroup:
    """Pieces linked on one axis because their axis values are close together."""
    range: list[int]
    pieces: list[PieceTransform] = field(default_factory=list)
    transformed_range: Optional[list[int]] = None

    @property
    def size(self) -> int:
        return self.range[1] - self.range[0]

    def shift(self, amount: int, axis: Axis) -> None:
        """Translate the group and its pieces along an orthogonal axis."""
        if self.transformed_range is None:
            raise InvariantViolation("Cannot shift a group that has not been laid out.")
        self.transformed_range[0] += amount
        self.transformed_range[1] += amount
        index = axis.coord_index
        for piece in self.pieces:
            piece.transformed_coords[index] += amount


AxisOrder = list[AxisGroup]
AxisOrders = dict[Axis, AxisOrder]


@dataclass
class Move:
    """A move from one square to another."""
    start: Coords
    end: Coords


@dataclass
class CompressionInfo:
    """A compressed position plus what is needed to expand moves back out."""
    position: Position
    axis_orders: AxisOrders
    pieces: list[PieceTransform]
    mode: CompressionMode
    min_distance: int
    iterations: int = 0
    # Translation applied by recentering; None when it was skipped.
    translation: Optional[Coords] = None

    def piece_at(self, transformed_coords: Coords) -> Optional[PieceTransform]:
        """Return the piece occupying a square of the compressed position."""
        for piece in self.pieces:
            if piece.is_placed and piece.transformed() == transformed_coords:
                return piece
        return None


# ---------------------------------------------------------------------------
# Coordinate keys
# ---------------------------------------------------------------------------

def key_from_coords(coords: Coords) -> str:
    """Return the ``"x,y"`` key for a coordinate pair."""
    return f"{coords[0]},{coords[1]}"


def format_coords(coords: tuple) -> str:
    return f"({coords[0]}, {coords[1]})"
