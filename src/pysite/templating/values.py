"""Value helpers shared by the resolver, filters and tags."""

import json
from collections.abc import Mapping, Sequence
from typing import Any, Iterable, Tuple

MISSING = object()


def is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def is_truthy(value: Any) -> bool:
    """False, "", numeric zero, empty sequences and mappings and None are false"""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, bytes, Mapping)) or is_sequence(value):
        return len(value) > 0
    return bool(value)


def step(value: Any, key: str) -> Any:
    """Descend one level into a mapping or sequence, or return MISSING"""
    if isinstance(value, Mapping):
        return value.get(key, MISSING)
    if is_sequence(value):
        try:
            index = int(key)
        except ValueError:
            return MISSING
        if 0 <= index < len(value):
            return value[index]
    return MISSING


def walk_path(value: Any, keys: Iterable[str]) -> Tuple[Any, bool]:
    """Follow ``keys`` down through nested mappings and sequences"""
    for key in keys:
        value = step(value, key)
        if value is MISSING:
            return None, False
    return value, True


def stringify(value: Any) -> str:
    """String form used when a value is written to the output"""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)
