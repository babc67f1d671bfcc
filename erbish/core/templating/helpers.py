# erbish/core/templating/helpers.py
"""
Built-in helper functions and value methods available inside templates.
"""
import datetime
from collections.abc import Mapping
from typing import Any, Callable, Dict


def to_text(value: Any) -> str:
    """Text conversion used for output tags: nil renders as empty, everything else via str()."""
    if value is None:
        return ""
    return str(value)


def add_helper(*args: Any) -> float:
    """Sums numeric arguments. Ignores non-numeric."""
    total = sum(val for val in args if isinstance(val, (int, float)) and not isinstance(val, bool))
    return total


def now_utc_iso_helper(*args: Any) -> str:
    """Outputs the current UTC timestamp in ISO 8601 format. Ignores arguments."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def join_helper(items: Any, separator: str = "") -> str:
    return separator.join(to_text(item) for item in items)


# Dictionary of helpers resolvable by name from any template
BUILTIN_HELPERS: Dict[str, Callable[..., Any]] = {
    "add": add_helper,
    "now": now_utc_iso_helper,
    "join": join_helper,
    "len": len,
    "sum": sum,
    "max": max,
    "min": min,
    "abs": abs,
    "round": round,
    "range": range,
    "sorted": sorted,
    "str": to_text,
    "int": int,
    "float": float,
    "upper": lambda s: to_text(s).upper(),
    "lower": lambda s: to_text(s).lower(),
}


def _first(value, count=None):
    items = list(value)
    if count is None:
        return items[0] if items else None
    return items[:count]


def _last(value, count=None):
    items = list(value)
    if count is None:
        return items[-1] if items else None
    return items[-count:] if count else []


def _count(value, *args):
    return value.count(*args) if args else len(value)


def _keys(value):
    return list(value.keys())


def _values(value):
    return list(value.values())


def _uniq(value):
    return list(dict.fromkeys(value))


# ruby-style methods callable as value.name on plain data (lists, dicts, strings, numbers, nil)
BUILTIN_METHODS: Dict[str, Callable[..., Any]] = {
    "length": len,
    "size": len,
    "count": _count,
    "sum": lambda v: sum(v),
    "first": _first,
    "last": _last,
    "max": lambda v: max(v) if len(v) else None,
    "min": lambda v: min(v) if len(v) else None,
    "sort": sorted,
    "reverse": lambda v: v[::-1],
    "uniq": _uniq,
    "join": join_helper,
    "to_a": list,
    "chars": list,
    "to_s": to_text,
    "to_i": int,
    "to_f": float,
    "upcase": lambda v: v.upper(),
    "downcase": lambda v: v.lower(),
    "capitalize": lambda v: v.capitalize(),
    "strip": lambda v: v.strip(),
    "keys": _keys,
    "values": _values,
    "round": round,
    "abs": abs,
    "empty?": lambda v: len(v) == 0,
    "include?": lambda v, item: item in v,
    "nil?": lambda v: v is None,
    "even?": lambda v: v % 2 == 0,
    "odd?": lambda v: v % 2 == 1,
    "zero?": lambda v: v == 0,
}

BUILTIN_METHOD_TYPES = (str, int, float, list, tuple, dict, set, frozenset, range, type(None))


def call_value_method(value: Any, name: str, args: list, has_call: bool) -> Any:
    """
    Resolves value.name(args). Order: mapping key, ruby-style method for plain
    data types, then a public Python attribute (called if callable). Raises
    AttributeError when nothing matches.
    """
    if isinstance(value, Mapping) and name in value:
        member = value[name]
        if callable(member):
            return member(*args)
        if has_call:
            raise TypeError(f"'{name}' is not callable")
        return member

    builtin = BUILTIN_METHODS.get(name)
    if builtin is not None and isinstance(value, BUILTIN_METHOD_TYPES):
        return builtin(value, *args)

    if not name.startswith("_") and hasattr(value, name):
        member = getattr(value, name)
        if callable(member):
            return member(*args)
        if has_call:
            raise TypeError(f"'{name}' is not callable")
        return member

    if builtin is not None:
        return builtin(value, *args)
    raise AttributeError(f"undefined method '{name}' for {type(value).__name__}")
