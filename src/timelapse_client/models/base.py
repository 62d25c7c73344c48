"""
Base model class for client-side entities.

This module provides a base model class with the serialization shared by jobs
and transport payloads.
"""

from __future__ import annotations

import re
from typing import Any, ClassVar, TypeVar

T = TypeVar("T", bound="BaseModel")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_camel(name: str) -> str:
    """Convert a snake_case attribute name to the camelCase wire name."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    """Convert a camelCase wire name to the snake_case attribute name."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class BaseModel:
    """Base model class with common functionality for client-side entities.

    Subclasses list their attributes in ``fields``. Backends speak both
    camelCase (HTTP) and snake_case (native commands), so ``from_dict`` accepts
    either spelling while ``to_dict`` always emits camelCase.
    """

    # Attribute names serialized by to_dict (to be overridden by subclasses)
    fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the model with provided attributes.

        Args:
            **kwargs: Field values to set on the model instance.
        """
        for key, value in kwargs.items():
            if key in self.fields:
                setattr(self, key, value)

    def to_dict(self, exclude: list[str] | None = None) -> dict[str, Any]:
        """Convert the model instance to a dictionary with camelCase keys.

        Args:
            exclude: List of attribute names to exclude from the dictionary.

        Returns:
            Dictionary representation of the model instance.
        """
        exclude = exclude or []
        result = {}

        for name in self.fields:
            if name in exclude:
                continue
            value = getattr(self, name, None)
            if isinstance(value, BaseModel):
                value = value.to_dict()
            elif isinstance(value, (list, tuple)):
                value = list(value)
            result[to_camel(name)] = value

        return result

    @classmethod
    def from_dict(cls: type[T], data: dict[str, Any]) -> T:
        """Create a model instance from a dictionary.

        Unknown keys are ignored; missing keys fall back to the subclass defaults.

        Args:
            data: Dictionary containing field values.

        Returns:
            Model instance populated with data from the dictionary.
        """
        kwargs = {}
        for key, value in data.items():
            name = to_snake(key)
            if name in cls.fields:
                kwargs[name] = value
        return cls(**kwargs)

    def __repr__(self) -> str:
        """Return a string representation of the model."""
        class_name = self.__class__.__name__
        values = " ".join(f"{name}={getattr(self, name, None)!r}" for name in self.fields[:2])
        return f"<{class_name} {values}>"

    def __eq__(self, other: object) -> bool:
        """Check equality based on field values."""
        if not isinstance(other, self.__class__):
            return False
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]
