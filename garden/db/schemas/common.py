"""
Shared schema primitives: the tri-state ``FieldUpdate`` and paginated ``Page``.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

from garden.errors import ValidationError

T = TypeVar("T")


class UpdateAction(str, Enum):
    KEEP = "keep"
    SET = "set"
    CLEAR = "clear"


class FieldUpdate(BaseModel):
    """Instruction for one field of a partial update.

    ``keep`` leaves the field alone, ``set`` replaces it with ``value`` and
    ``clear`` sets it to ``None``. Serialized as
    ``{"action": "set", "value": ...}``; an omitted field means keep.
    """

    model_config = ConfigDict(frozen=True)

    action: UpdateAction = UpdateAction.KEEP
    value: Any = None

    @model_validator(mode="after")
    def _check_value(self):
        if self.action == UpdateAction.SET and self.value is None:
            raise ValidationError("a 'set' update requires a value; use 'clear' to remove a field")
        if self.action != UpdateAction.SET and self.value is not None:
            raise ValidationError(f"a '{self.action.value}' update cannot carry a value")
        return self

    @classmethod
    def keep(cls) -> "FieldUpdate":
        return cls(action=UpdateAction.KEEP)

    @classmethod
    def set(cls, value: Any) -> "FieldUpdate":
        return cls(action=UpdateAction.SET, value=value)

    @classmethod
    def clear(cls) -> "FieldUpdate":
        return cls(action=UpdateAction.CLEAR)

    @property
    def is_update(self) -> bool:
        return self.action != UpdateAction.KEEP

    def apply(self, current: Optional[Any]) -> Optional[Any]:
        """Apply to an optional field."""
        if self.action == UpdateAction.SET:
            return self.value
        if self.action == UpdateAction.CLEAR:
            return None
        return current

    def apply_required(self, current: Any, field_name: str) -> Any:
        """Apply to a required field; clearing it is rejected."""
        if self.action == UpdateAction.CLEAR:
            raise ValidationError(f"{field_name} is required and cannot be cleared")
        return self.apply(current)


class Page(BaseModel, Generic[T]):
    """One page of a stable, offset-paginated listing."""

    model_config = ConfigDict(frozen=True)

    items: List[T]
    total: int
    offset: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total

    @property
    def has_prev(self) -> bool:
        return self.offset > 0

    @property
    def page_number(self) -> int:
        """Zero-based page index."""
        if self.limit <= 0:
            return 0
        return self.offset // self.limit

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)
