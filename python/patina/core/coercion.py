"""Coercion rules used by property typecasting.

Each rule takes the raw value and returns it converted to one primitive.
Rules are only called after the no-op check in ``typecast()``, so they
never see a value that already has the target type.

Numeric rules convert int, float and Decimal values directly. Anything
else is parsed permissively: the longest numeric prefix of ``str(value)``
wins, and zero is the fallback when there is none.

    coerce_int("7")      →  7
    coerce_int("7 days") →  7
    coerce_int("abc")    →  0
    coerce_int(3.9)      →  3
    coerce_int(1e20)     →  100000000000000000000
    coerce_float("1e3")  →  1000.0

Calendar rules are strict: anything pydantic's lax ISO-8601 parser rejects
raises TypeCoercionError.
"""

from __future__ import annotations

import importlib
import re
import sys
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from pydantic import TypeAdapter, ValidationError

from patina.exceptions import TypeCoercionError, UnresolvedConstantError

TRUE_TOKENS = frozenset({"true", "1", "t"})

_INT_PREFIX = re.compile(r"\s*([+-]?\d+(?:_\d+)*)")
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:\d+(?:_\d+)*(?:\.\d+)?|\.\d+)(?:[eE][+-]?\d+)?)"
)

_CALENDAR_ADAPTERS: dict[type, TypeAdapter[Any]] = {
    datetime: TypeAdapter(datetime),
    date: TypeAdapter(date),
    time: TypeAdapter(time),
}


def coerce_bool(value: Any) -> bool:
    return str(value).lower() in TRUE_TOKENS


def coerce_str(value: Any) -> str:
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def coerce_int(value: Any) -> int:
    if _is_number(value):
        try:
            return int(value)
        except (ValueError, OverflowError) as exc:
            raise TypeCoercionError(f"Cannot convert {value!r} to int") from exc
    match = _INT_PREFIX.match(str(value))
    return int(match.group(1)) if match else 0


def coerce_float(value: Any) -> float:
    if _is_number(value):
        return float(value)
    match = _FLOAT_PREFIX.match(str(value))
    return float(match.group(1)) if match else 0.0


def coerce_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        return Decimal(str(value))
    if _is_number(value):
        return Decimal(value)
    match = _FLOAT_PREFIX.match(str(value))
    return Decimal(match.group(1)) if match else Decimal(0)


def _calendar_rule(primitive: type):
    adapter = _CALENDAR_ADAPTERS[primitive]

    def coerce(value: Any) -> Any:
        try:
            return adapter.validate_python(str(value))
        except ValidationError as exc:
            raise TypeCoercionError(
                f"Cannot parse {value!r} as {primitive.__name__}"
            ) from exc

    coerce.__name__ = f"coerce_{primitive.__name__}"
    return coerce


coerce_datetime = _calendar_rule(datetime)
coerce_date = _calendar_rule(date)
coerce_time = _calendar_rule(time)


def find_const(value: Any, namespace: str | None = None) -> type:
    """Resolve a class from its name.

    Lookup order: globals of the ``namespace`` module, registered models
    (by class name or "module.qualname" key), then a dotted import path.
    """
    name = str(value).strip()

    if namespace is not None:
        module = sys.modules.get(namespace)
        candidate = getattr(module, name, None) if module is not None else None
        if isinstance(candidate, type):
            return candidate

    # Import here to avoid circular dependency
    from patina.models.registry import resolve_model

    model = resolve_model(name, near=namespace)
    if model is not None:
        return model

    module_name, _, attr = name.rpartition(".")
    if module_name:
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            module = None
        candidate = getattr(module, attr, None) if module is not None else None
        if isinstance(candidate, type):
            return candidate

    raise UnresolvedConstantError(f"Cannot resolve {name!r} to a class")


__all__ = [
    "TRUE_TOKENS",
    "coerce_bool",
    "coerce_str",
    "coerce_int",
    "coerce_float",
    "coerce_decimal",
    "coerce_datetime",
    "coerce_date",
    "coerce_time",
    "find_const",
]
