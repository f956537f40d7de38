"""Declarative property configuration.

Field() marks a class attribute as a property and carries its options.
The property type comes from the annotation:

    class Post(Model):
        id: int = Field(serial=True)
        title: str = Field(length=(1, 255), index=True)
        body: Text                         # no options needed
        rating: Decimal | None = Field(scale=4, precision=2)
        published: bool = Field(default=False)
        slug: Annotated[str, Field(unique=True)]

Options are not checked here. They are validated when the model class is
created, so an unknown option fails the class definition.
"""

from __future__ import annotations

from typing import Any


class PatinaFieldInfo:
    """Options of one declared property, before validation."""

    __slots__ = ("options",)

    def __init__(self, **options: Any):
        self.options = options

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.options.items())
        return f"Field({args})"


def Field(**options: Any) -> Any:
    """Declare property options for an annotated model attribute.

    See PropertyDescriptor for the recognized options.
    """
    return PatinaFieldInfo(**options)


__all__ = ["Field", "PatinaFieldInfo"]
