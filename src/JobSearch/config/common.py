"""Typed accessors shared by config loaders and the request parser.

Every accessor takes the dotted key of the value it checks, so errors read
like ``search.max_workers must be an integer``. Type problems raise
``TypeError``; missing required keys raise ``ValueError``.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, TypeVar

T = TypeVar("T")


def get_section(raw: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    """Return the mapping stored under ``key``.

    An absent optional section reads as an empty mapping.
    """
    section = raw.get(key)
    if section is None:
        if required:
            raise ValueError(f"Missing required config: {key}")
        return {}
    if not isinstance(section, Mapping):
        raise TypeError(f"{key} must be an object")
    return section


def get_required_value(section: Mapping[str, Any], field: str, config_key: str) -> Any:
    if field not in section:
        raise ValueError(f"Missing required config: {config_key}")
    return section[field]


def get_optional_value(section: Mapping[str, Any], field: str, default: Any) -> Any:
    return section.get(field, default)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def expect_str(value: Any, config_key: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{config_key} must be a string")
    return value


def expect_bool(value: Any, config_key: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{config_key} must be a boolean")
    return value


def expect_int(value: Any, config_key: str) -> int:
    if not _is_number(value) or isinstance(value, float):
        raise TypeError(f"{config_key} must be an integer")
    return value


def expect_float(value: Any, config_key: str) -> float:
    if not _is_number(value):
        raise TypeError(f"{config_key} must be a number")
    return float(value)


def _expect_list(
    value: Any,
    config_key: str,
    item: Callable[[Any, str], T],
    is_scalar: Callable[[Any], bool],
    noun: str,
) -> list[T]:
    """Validate a list with ``item``; a lone scalar is promoted to a one-item list."""
    if is_scalar(value):
        return [item(value, config_key)]
    if not isinstance(value, list):
        raise TypeError(f"{config_key} must be {noun}")
    return [item(entry, f"{config_key}[{idx}]") for idx, entry in enumerate(value)]


def expect_str_list(value: Any, config_key: str) -> list[str]:
    return _expect_list(value, config_key, expect_str, lambda v: isinstance(v, str), "a list")


def expect_int_list(value: Any, config_key: str) -> list[int]:
    return _expect_list(
        value,
        config_key,
        expect_int,
        lambda v: _is_number(v) and not isinstance(v, float),
        "a list of integers",
    )


def expect_float_mapping(value: Any, config_key: str) -> dict[str, float]:
    """Validate a ``name -> number`` mapping such as selectivity hints."""
    if not isinstance(value, Mapping):
        raise TypeError(f"{config_key} must be an object")
    return {
        expect_str(name, f"{config_key} keys"): expect_float(number, f"{config_key}.{name}")
        for name, number in value.items()
    }
