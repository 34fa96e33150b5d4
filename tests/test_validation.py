"""Tests for input validation in the MCP server tools."""

import pytest

from position_compressor.server import _compressions, compression, expand, inspect
from position_compressor.validation import (
    ValidationError,
    validate_action,
    validate_coords_key,
    validate_coords_pair,
    validate_dict,
    validate_int,
    validate_max_iterations,
    validate_min_distance,
    validate_mode,
    validate_non_empty_string,
    validate_position,
    _COMPRESSION_ACTIONS,
    _INSPECT_ACTIONS,
)


def setup_function() -> None:
    """Clear compressions between tests."""
    _compressions.clear()


# ===================================================================
# Primitive validators
# ===================================================================

class TestPrimitives:
    """Tests for the generic validators."""

    def test_non_empty_string(self) -> None:
        assert validate_non_empty_string("  abc ", "name") == "abc"
        with pytest.raises(ValidationError, match="'name'"):
            validate_non_empty_string("   ", "name")
        with pytest.raises(ValidationError):
            validate_non_empty_string(None, "name")

    def test_int(self) -> None:
        assert validate_int(5, "n", min_val=0, max_val=10) == 5
        with pytest.raises(ValidationError, match="integer"):
            validate_int(5.0, "n")
        with pytest.raises(ValidationError, match="integer"):
            validate_int(True, "n")
        with pytest.raises(ValidationError, match=">= 0"):
            validate_int(-1, "n", min_val=0)
        with pytest.raises(ValidationError, match="<= 10"):
            validate_int(11, "n", max_val=10)

    def test_dict(self) -> None:
        assert validate_dict({}, "d") == {}
        with pytest.raises(ValidationError, match="dict"):
            validate_dict([], "d")


# ===================================================================
# Domain validators
# ===================================================================

class TestActions:
    """Tests for action validation."""

    def test_case_insensitive(self) -> None:
        assert validate_action(" CREATE ", "compression", _COMPRESSION_ACTIONS) == "create"
        assert validate_action("Groups", "inspect", _INSPECT_ACTIONS) == "groups"

    def test_unknown_lists_choices(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_action("explode", "compression", _COMPRESSION_ACTIONS)
        assert "create, delete, get, list" in exc_info.value.message

    def test_missing(self) -> None:
        with pytest.raises(ValidationError, match="requires an 'action'"):
            validate_action("", "inspect", _INSPECT_ACTIONS)


class TestCompressionParameters:
    """Tests for mode, distance and iteration validation."""

    def test_mode(self) -> None:
        assert validate_mode("Diagonals") == "diagonals"
        assert validate_mode("orthogonals") == "orthogonals"
        with pytest.raises(ValidationError):
            validate_mode("both")
        with pytest.raises(ValidationError):
            validate_mode(None)

    def test_min_distance(self) -> None:
        assert validate_min_distance(20) == 20
        with pytest.raises(ValidationError, match="even"):
            validate_min_distance(21)
        with pytest.raises(ValidationError):
            validate_min_distance(0)

    def test_max_iterations(self) -> None:
        assert validate_max_iterations(1) == 1
        with pytest.raises(ValidationError):
            validate_max_iterations(0)
        with pytest.raises(ValidationError):
            validate_max_iterations(10_001)


class TestCoordinates:
    """Tests for coordinate and position parsing."""

    def test_coords_key(self) -> None:
        assert validate_coords_key("3,-4", "square") == (3, -4)
        assert validate_coords_key(" -10 , 7 ", "square") == (-10, 7)
        big = "123456789012345678901234567890"
        assert validate_coords_key(f"{big},0", "square") == (int(big), 0)

    def test_coords_key_rejects_garbage(self) -> None:
        for bad in ("3", "3,4,5", "a,b", "1.5,2", ""):
            with pytest.raises(ValidationError):
                validate_coords_key(bad, "square")
        with pytest.raises(ValidationError):
            validate_coords_key((3, 4), "square")

    def test_coords_pair(self) -> None:
        assert validate_coords_pair("1,2", "start") == (1, 2)
        assert validate_coords_pair([1, 2], "start") == (1, 2)
        with pytest.raises(ValidationError):
            validate_coords_pair([1, 2, 3], "start")
        with pytest.raises(ValidationError):
            validate_coords_pair([1, "2"], "start")

    def test_position(self) -> None:
        assert validate_position({"0,0": 1, "50000,0": 2}) == {(0, 0): 1, (50000, 0): 2}

    def test_position_errors(self) -> None:
        with pytest.raises(ValidationError, match="at least one"):
            validate_position({})
        with pytest.raises(ValidationError):
            validate_position(["0,0"])
        with pytest.raises(ValidationError):
            validate_position({"0,0": "king"})
        with pytest.raises(ValidationError):
            validate_position({"0,0": -1})
        with pytest.raises(ValidationError, match="more than once"):
            validate_position({"0,0": 1, " 0,0": 2})


# ===================================================================
# Tool-level validation
# ===================================================================

def test_compression_requires_action() -> None:
    assert compression(action="").startswith("Error:")
    assert "Unknown compression action" in compression(action="squash")


def test_compression_requires_name() -> None:
    result = compression(action="create", position={"0,0": 1})
    assert result.startswith("Error:")
    assert "'name'" in result


def test_compression_rejects_bad_parameters() -> None:
    assert "'mode'" in compression(action="create", name="p", position={"0,0": 1}, mode="x")
    assert "even" in compression(action="create", name="p", position={"0,0": 1}, min_distance=7)
    assert "'anchor_type'" in compression(
        action="create", name="p", position={"0,0": 1}, anchor_type=-3,
    )
    assert "'position'" in compression(action="create", name="p", position=None)
    assert _compressions == {}


def test_expand_rejects_bad_squares() -> None:
    assert expand(name="p", start="x", end="1,1").startswith("Error:")
    assert expand(name="", start="0,0", end="1,1").startswith("Error:")


def test_inspect_rejects_bad_action() -> None:
    assert "Unknown inspect action" in inspect(action="draw", name="p")
