"""
Position Compressor MCP Server — compress infinite chess positions via Model Context Protocol.

Exposes 3 tools that let an agent shrink a position with arbitrarily large
coordinates into a small one, analyse it, and map the chosen move back.

Tools:
  1. compression — lifecycle: create, get, list, delete
  2. expand      — map a move in a compressed position back to the original
  3. inspect     — read-only: groups, pieces, violations, info
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from mcp.server.fastmcp import FastMCP

from position_compressor.compressor import CompressorConfig, compress_position, select_piece_type
from position_compressor.expander import expand_move
from position_compressor.models import (
    CompressionError,
    CompressionInfo,
    Move,
    key_from_coords,
)
from position_compressor.solver import find_topology_violations
from position_compressor.validation import (
    ValidationError,
    validate_action,
    validate_coords_pair,
    validate_int,
    validate_max_iterations,
    validate_min_distance,
    validate_mode,
    validate_non_empty_string,
    validate_position,
    _COMPRESSION_ACTIONS,
    _INSPECT_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging: keep routine FastMCP INFO messages out of the client's stderr.
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("position-compressor")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "position-compressor",
    instructions=(
        "MCP server for compressing infinite chess positions.\n\n"
        "=== ONLY 3 TOOLS ===\n\n"
        "1. compression(action, ...) — create, get, list, delete.\n"
        "   create takes a position as {\"x,y\": piece_type} and stores the\n"
        "   compressed result under a name.\n"
        "2. expand(name, start, end) — map a move chosen in the compressed\n"
        "   position back to the original coordinates.\n"
        "3. inspect(action, name) — groups, pieces, violations, info.\n\n"
        "=== RULES ===\n"
        "- Coordinates are \"x,y\" strings; components may be arbitrarily large.\n"
        "- Analyse the COMPRESSED position, then expand the move you choose.\n"
        "- mode='diagonals' (default) keeps diagonal relationships too;\n"
        "  mode='orthogonals' only keeps ranks and files.\n"
    ),
)

# In-memory compression registry: name -> CompressionInfo
# Guarded by _compressions_lock for thread-safety.
_compressions: dict[str, CompressionInfo] = {}
_compressions_lock = threading.Lock()


# ===================================================================
# TOOL 1: compression
# ===================================================================

@mcp.tool()
def compression(
    action: str,
    name: str = "",
    position: dict[str, int] | None = None,
    mode: str = "diagonals",
    min_distance: int = 20,
    max_iterations: int = 1000,
    anchor_type: int | None = None,
) -> str:
    """Compression lifecycle operations.

    Actions:
      create  — Compress a position and store it. Params: name, position
                ({"x,y": piece_type}), mode (orthogonals/diagonals),
                min_distance (even), max_iterations, anchor_type (piece type
                to keep on its original square, optional).
      get     — Return a stored compressed position. Params: name.
      list    — List stored compressions.
      delete  — Forget a stored compression. Params: name.

    Returns:
        JSON data or a status/error message.
    """
    try:
        action = validate_action(action, "compression", _COMPRESSION_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "list":
        with _compressions_lock:
            names = sorted(_compressions)
        return json.dumps(names)

    try:
        name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "create":
        try:
            parsed = validate_position(position)
            mode = validate_mode(mode)
            min_distance = validate_min_distance(min_distance)
            max_iterations = validate_max_iterations(max_iterations)
            if anchor_type is not None:
                anchor_type = validate_int(anchor_type, "anchor_type", min_val=0)
        except ValidationError as exc:
            return f"Error: {exc.message}"

        config = CompressorConfig(
            min_arbitrary_distance=min_distance,
            max_solver_iterations=max_iterations,
            anchor_selector=select_piece_type(anchor_type) if anchor_type is not None else None,
        )
        try:
            info = compress_position(parsed, mode, config)
        except CompressionError as exc:
            logger.warning("Compression '%s' failed: %s", name, exc.message)
            return f"Error: {exc.message}"

        with _compressions_lock:
            _compressions[name] = info
        return json.dumps(_summary(name, info))

    with _compressions_lock:
        info = _compressions.get(name)
        if info is not None and action == "delete":
            del _compressions[name]
    if info is None:
        return f"Error: compression '{name}' not found."

    if action == "delete":
        return f"Compression '{name}' deleted."
    return json.dumps(_summary(name, info))


# ===================================================================
# TOOL 2: expand
# ===================================================================

@mcp.tool()
def expand(name: str, start: Any, end: Any) -> str:
    """Expand a move chosen in a compressed position.

    Args:
        name: Name of a stored compression.
        start: Start square in the compressed position ("x,y" or [x, y]).
        end: End square in the compressed position ("x,y" or [x, y]).

    Returns:
        JSON {"start": "x,y", "end": "x,y"} in original coordinates.
    """
    try:
        name = validate_non_empty_string(name, "name")
        start_coords = validate_coords_pair(start, "start")
        end_coords = validate_coords_pair(end, "end")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    with _compressions_lock:
        info = _compressions.get(name)
    if info is None:
        return f"Error: compression '{name}' not found."

    try:
        expanded = expand_move(info, Move(start=start_coords, end=end_coords))
    except CompressionError as exc:
        return f"Error: {exc.message}"
    return json.dumps({
        "start": key_from_coords(expanded.start),
        "end": key_from_coords(expanded.end),
    })


# ===================================================================
# TOOL 3: inspect
# ===================================================================

@mcp.tool()
def inspect(action: str, name: str = "") -> str:
    """Read-only inspection of stored compressions.

    Actions:
      groups      — Groups per axis with original and transformed ranges.
      pieces      — Every piece with original and transformed squares.
      violations  — Pairs whose relationship was not preserved (should be empty).
      info        — Summary: mode, piece count, group counts, solver
                    iterations, recentering translation ("dx,dy" or null).

    Returns:
        JSON data or an error message.
    """
    try:
        action = validate_action(action, "inspect", _INSPECT_ACTIONS)
        name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    with _compressions_lock:
        info = _compressions.get(name)
    if info is None:
        return f"Error: compression '{name}' not found."

    if action == "groups":
        result = {}
        for axis, axis_order in info.axis_orders.items():
            result[axis.value] = [
                {
                    # Original ranges may exceed what JSON numbers hold exactly.
                    "range": [str(group.range[0]), str(group.range[1])],
                    "transformed_range": group.transformed_range,
                    "pieces": [key_from_coords(p.coords) for p in group.pieces],
                }
                for group in axis_order
            ]
        return json.dumps(result)

    if action == "pieces":
        return json.dumps([
            {
                "type": piece.type,
                "coords": key_from_coords(piece.coords),
                "transformed": key_from_coords(piece.transformed()),
            }
            for piece in info.pieces
        ])

    if action == "violations":
        violations = find_topology_violations(info.pieces, info.mode.axes, info.min_distance)
        return json.dumps([v.describe() for v in violations])

    return json.dumps({
        "name": name,
        "mode": info.mode.value,
        "min_distance": info.min_distance,
        "pieces": len(info.pieces),
        "groups": {axis.value: len(order) for axis, order in info.axis_orders.items()},
        "iterations": info.iterations,
        "translation": (
            key_from_coords(info.translation) if info.translation is not None else None
        ),
    })


def _summary(name: str, info: CompressionInfo) -> dict[str, Any]:
    return {
        "name": name,
        "mode": info.mode.value,
        "iterations": info.iterations,
        "position": {key_from_coords(c): t for c, t in info.position.items()},
    }


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
