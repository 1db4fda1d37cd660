"""Positional argument checks for CPI methods.

The director sends arguments as a loosely typed JSON list, so every handler
checks the positions it relies on before touching the API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from cpi.exceptions import ArgumentError


def require_args(args: List[Any], count: int, method: str, max_count: Optional[int] = None) -> None:
    if not isinstance(args, list):
        raise ArgumentError("Arguments for %s must be a list", method)
    if len(args) < count:
        raise ArgumentError("%s expects at least %d argument(s), got %d", method, count, len(args))
    if max_count is not None and len(args) > max_count:
        raise ArgumentError("%s expects at most %d argument(s), got %d", method, max_count, len(args))


def string_arg(args: List[Any], index: int, name: str) -> str:
    value = args[index] if index < len(args) else None
    if not isinstance(value, str):
        raise ArgumentError("Unexpected argument where %s should be", name)
    if not value:
        raise ArgumentError("Argument %s must not be empty", name)
    return value


def int_arg(args: List[Any], index: int, name: str, min_val: int = 1) -> int:
    value = args[index] if index < len(args) else None
    # bool is an int subclass but never a valid size
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArgumentError("Unexpected argument where %s should be", name)
    if value < min_val:
        raise ArgumentError("Argument %s must be >= %d (got %d)", name, min_val, value)
    return value


def dict_arg(args: List[Any], index: int, name: str, required: bool = True) -> Dict[str, Any]:
    value = args[index] if index < len(args) else None
    if value is None and not required:
        return {}
    if not isinstance(value, dict):
        raise ArgumentError("Unexpected argument where %s should be", name)
    if required and not value:
        raise ArgumentError("Argument %s must not be empty", name)
    return value


def optional_string_arg(args: List[Any], index: int, name: str) -> Optional[str]:
    value = args[index] if index < len(args) else None
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ArgumentError("Unexpected argument where %s should be", name)
    return value


def optional_list_arg(args: List[Any], index: int, name: str) -> List[Any]:
    value = args[index] if index < len(args) else None
    if value is None:
        return []
    if not isinstance(value, list):
        raise ArgumentError("Unexpected argument where %s should be", name)
    return value


def string_properties(props: Dict[str, Any], name: str) -> Dict[str, str]:
    """Check that every value of a properties map is a string."""
    for key, value in props.items():
        if not isinstance(value, str):
            raise ArgumentError("Property %s of %s must be a string (got %s)", key, name, type(value).__name__)
    return props
