"""
Input validation for position compressor tool parameters.

Provides reusable validators that produce clear error messages for all
parameters received from MCP / LLM callers.
"""

from __future__ import annotations

import re
from typing import Any


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Ensure *value* is a non-empty string after stripping whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_int(
    value: Any,
    field_name: str,
    *,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    """Validate an integer value and optional range."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be an integer, got {type(value).__name__}."
        )
    if min_val is not None and value < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {value}."
        )
    if max_val is not None and value > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {value}."
        )
    return value


def validate_dict(value: Any, field_name: str) -> dict:
    """Ensure *value* is a dict."""
    if not isinstance(value, dict):
        raise ValidationError(
            f"'{field_name}' must be a dict/object, got {type(value).__name__}."
        )
    return value


# ---------------------------------------------------------------------------
# Composite / domain validators
# ---------------------------------------------------------------------------

_COMPRESSION_ACTIONS = {"CREATE", "GET", "LIST", "DELETE"}
_INSPECT_ACTIONS = {"GROUPS", "PIECES", "VIOLATIONS", "INFO"}

_VALID_MODES = {"ORTHOGONALS", "DIAGONALS"}

_COORDS_KEY = re.compile(r"^\s*(-?\d+)\s*,\s*(-?\d+)\s*$")


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Validate the action parameter for a tool."""
    if not isinstance(value, str) or not value.strip():
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    normalized = value.strip().upper()
    if normalized not in allowed:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"Unknown {tool_name} action '{value}'. Valid actions: {choices}."
        )
    return value.strip().lower()


def validate_mode(value: Any) -> str:
    """Validate a compression mode (orthogonals, diagonals)."""
    if not isinstance(value, str) or value.strip().upper() not in _VALID_MODES:
        choices = ", ".join(sorted(m.lower() for m in _VALID_MODES))
        raise ValidationError(f"'mode' must be one of [{choices}], got {value!r}.")
    return value.strip().lower()


def validate_min_distance(value: Any) -> int:
    """Validate the minimum arbitrary distance (positive and even)."""
    value = validate_int(value, "min_distance", min_val=2)
    if value % 2 != 0:
        raise ValidationError(f"'min_distance' must be even, got {value}.")
    return value


def validate_max_iterations(value: Any) -> int:
    """Validate the diagonal solver's iteration cap (1..10000)."""
    return validate_int(value, "max_iterations", min_val=1, max_val=10_000)


def validate_coords_key(value: Any, field_name: str) -> tuple[int, int]:
    """Parse an ``"x,y"`` key with arbitrarily large integer components."""
    if not isinstance(value, str):
        raise ValidationError(
            f"'{field_name}' must be an \"x,y\" string, got {type(value).__name__}."
        )
    match = _COORDS_KEY.match(value)
    if not match:
        raise ValidationError(f"'{field_name}' must look like \"x,y\", got '{value}'.")
    return (int(match.group(1)), int(match.group(2)))


def validate_coords_pair(value: Any, field_name: str) -> tuple[int, int]:
    """Accept either an ``"x,y"`` key or a two-item integer list."""
    if isinstance(value, str):
        return validate_coords_key(value, field_name)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return (
            validate_int(value[0], f"{field_name}[0]"),
            validate_int(value[1], f"{field_name}[1]"),
        )
    raise ValidationError(
        f"'{field_name}' must be an \"x,y\" string or an [x, y] list, got {value!r}."
    )


def validate_position(value: Any) -> dict[tuple[int, int], int]:
    """Validate a position mapping of ``"x,y"`` keys to piece-type codes."""
    value = validate_dict(value, "position")
    if not value:
        raise ValidationError("'position' must contain at least one piece.")
    position: dict[tuple[int, int], int] = {}
    for key, piece_type in value.items():
        coords = validate_coords_key(key, f"position[{key!r}]")
        if coords in position:
            raise ValidationError(f"'position' lists square {key!r} more than once.")
        position[coords] = validate_int(piece_type, f"position[{key!r}]", min_val=0)
    return position
