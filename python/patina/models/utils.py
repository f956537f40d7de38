"""Type introspection and naming helpers for model declarations.

Functions:
    _unpack_annotated(hint) -> (base_type, metadata_tuple):
        Extract base type from Annotated[T, ...].
        Returns (hint, ()) if not Annotated.

        Annotated[str, Field(length=100)]  →  (str, (Field(length=100),))

    _unwrap_optional(hint) -> (inner_type, is_optional):
        Check if type is Optional[T] or T | None.
        Returns (T, True) if nullable, (hint, False) otherwise.

        int | None  →  (int, True)
        str         →  (str, False)

    _bare_name(name) -> str | None:
        Strip one trailing "?" and check the rest is an identifier.

        "published?"  →  "published"
        "two words"   →  None

    underscore(name) -> str:
        "BlogPost" → "blog_post", "postURL" → "post_url"

    classify(name) -> str:
        "blog_post" → "BlogPost"
"""

from __future__ import annotations

import re
from types import NoneType, UnionType
from typing import Annotated, Any, Union, get_args, get_origin

_CAMEL_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])|([a-z\d])([A-Z])")


def _unpack_annotated(hint: Any) -> tuple[Any, tuple[Any, ...]]:
    """Extract base type and metadata from Annotated type hint."""
    if get_origin(hint) is Annotated:
        args = get_args(hint)
        if args:
            return args[0], tuple(args[1:])
    return hint, ()


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """Check if type is Optional/Union with None and extract base type."""
    origin = get_origin(hint)
    if origin in (Union, UnionType):
        args = []
        nullable = False
        for arg in get_args(hint):
            if arg is NoneType:
                nullable = True
            else:
                args.append(arg)
        if nullable and len(args) == 1:
            return args[0], True
    return hint, False


def _bare_name(name: str) -> str | None:
    """Return the identifier form of a declared name, or None if invalid."""
    if name.endswith("?"):
        name = name[:-1]
    if not name.isidentifier():
        return None
    return name


def underscore(name: str) -> str:
    """Convert a CamelCase or mixedCase name to snake_case."""

    def _split(match: re.Match[str]) -> str:
        if match.group(1):
            return f"{match.group(1)}_{match.group(2)}"
        return f"{match.group(3)}_{match.group(4)}"

    return _CAMEL_BOUNDARY.sub(_split, name).replace("-", "_").lower()


def classify(name: str) -> str:
    """Convert a snake_case name to the CamelCase class name convention."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


__all__ = [
    "_unpack_annotated",
    "_unwrap_optional",
    "_bare_name",
    "underscore",
    "classify",
]
