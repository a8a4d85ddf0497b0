"""
Template filters.

A filter transforms the value flowing through a pipeline::

    {{ .title | downcase | truncate 20 }}

Every filter is called as ``func(value, value_type, args, context)`` where
``args`` are the already resolved argument values and ``context`` is the
current local render context. Raising FilterError (or any exception) records
a filter-error and the pipeline continues with the previous value.
"""

import html
import json
import re
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

from .values import is_sequence, is_truthy, stringify

FilterFunc = Callable[[Any, type, List[Any], Mapping], Any]

_TAG_RE = re.compile(r"<[^>]*>")


class FilterError(Exception):
    """Raised by a filter that cannot handle its input"""
    pass


def _int_arg(name: str, args: List[Any], index: int) -> int:
    try:
        value = args[index]
    except IndexError:
        raise FilterError(f"'{name}' requires argument {index + 1}")
    if isinstance(value, bool):
        raise FilterError(f"'{name}' expects an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise FilterError(f"'{name}' expects an integer, got {value!r}")


def _str_arg(args: List[Any], index: int, default: Optional[str] = None) -> Optional[str]:
    if len(args) > index:
        return stringify(args[index])
    return default


def _text(value: Any) -> Optional[str]:
    """Text form for string filters; None for values they do not touch"""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def upcase(value, value_type, args, context):
    return value.upper() if isinstance(value, str) else value


def downcase(value, value_type, args, context):
    return value.lower() if isinstance(value, str) else value


def capitalize(value, value_type, args, context):
    if isinstance(value, str) and value:
        return value[0].upper() + value[1:]
    return value


def trim(value, value_type, args, context):
    return value.strip() if isinstance(value, str) else value


def strip_html(value, value_type, args, context):
    return _TAG_RE.sub("", value) if isinstance(value, str) else value


def split(value, value_type, args, context):
    if not isinstance(value, str):
        return value
    separator = _str_arg(args, 0)
    if not separator:
        return value
    return [part.strip() for part in value.split(separator)]


def join(value, value_type, args, context):
    if not is_sequence(value):
        return value
    separator = _str_arg(args, 0, "")
    return separator.join(stringify(item) for item in value)


def replace(value, value_type, args, context):
    text = _text(value)
    if text is None:
        return value
    if len(args) < 2:
        raise FilterError("'replace' requires an old and a new string")
    return text.replace(stringify(args[0]), stringify(args[1]))


def remove(value, value_type, args, context):
    text = _text(value)
    if text is None or not args:
        return value
    return text.replace(stringify(args[0]), "")


def append(value, value_type, args, context):
    text = _text(value)
    if text is None or not args:
        return value
    return text + stringify(args[0])


def prepend(value, value_type, args, context):
    text = _text(value)
    if text is None or not args:
        return value
    return stringify(args[0]) + text


def truncate(value, value_type, args, context):
    if not isinstance(value, str):
        return value
    length = _int_arg("truncate", args, 0)
    if length <= 0:
        raise FilterError(f"'truncate' length must be positive, got {length}")
    if len(value) <= length:
        return value
    return value[:length] + _str_arg(args, 1, "...")


def slice_value(value, value_type, args, context):
    if not (isinstance(value, str) or is_sequence(value)):
        return value
    length = len(value)
    start = min(max(_int_arg("slice", args, 0), 0), length)
    end = length
    if len(args) > 1:
        end = min(max(_int_arg("slice", args, 1), 0), length)
    if start > end:
        start, end = end, start
    if start >= length:
        return value[:0]
    return value[start:end]


def contains(value, value_type, args, context):
    if not args or value is None:
        return False
    target = args[0]
    if isinstance(value, str):
        return stringify(target) in value
    if isinstance(value, Mapping):
        return stringify(target) in (stringify(key) for key in value)
    if is_sequence(value):
        return any(item == target or stringify(item) == stringify(target) for item in value)
    return False


def default(value, value_type, args, context):
    if not is_truthy(value) and args:
        return args[0]
    return value


def to_json(value, value_type, args, context):
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def size(value, value_type, args, context):
    if isinstance(value, (str, Mapping)) or is_sequence(value):
        return len(value)
    return 0


def first(value, value_type, args, context):
    if (isinstance(value, str) or is_sequence(value)) and len(value) > 0:
        return value[0]
    return None


def last(value, value_type, args, context):
    if (isinstance(value, str) or is_sequence(value)) and len(value) > 0:
        return value[-1]
    return None


def reverse(value, value_type, args, context):
    if isinstance(value, str):
        return value[::-1]
    if is_sequence(value):
        return list(reversed(value))
    return value


def escape(value, value_type, args, context):
    return html.escape(stringify(value))


BUILTIN_FILTERS: Dict[str, FilterFunc] = {
    "upcase": upcase,
    "downcase": downcase,
    "capitalize": capitalize,
    "trim": trim,
    "strip": strip_html,
    "split": split,
    "join": join,
    "replace": replace,
    "remove": remove,
    "append": append,
    "prepend": prepend,
    "truncate": truncate,
    "slice": slice_value,
    "contains": contains,
    "default": default,
    "toJSON": to_json,
    "size": size,
    "first": first,
    "last": last,
    "reverse": reverse,
    "escape": escape,
}


class FilterRegistry:
    """Registry for template filters"""

    def __init__(self, include_builtins: bool = True):
        self._filters: Dict[str, FilterFunc] = {}
        self._lock = threading.RLock()
        if include_builtins:
            self._register_builtin_filters()

    def register(self, name: str, filter_func: FilterFunc) -> None:
        """Register a custom filter, replacing any filter of the same name"""
        if not callable(filter_func):
            raise TypeError(f"Filter '{name}' must be callable")
        with self._lock:
            self._filters[name] = filter_func

    def get(self, name: str) -> Optional[FilterFunc]:
        with self._lock:
            return self._filters.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._filters)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def _register_builtin_filters(self) -> None:
        for name, func in BUILTIN_FILTERS.items():
            self.register(name, func)
