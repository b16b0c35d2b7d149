"""
Error taxonomy shared by the entity model, repositories, service and command
surface.

Every failure that leaves this package is a ``GardenError`` carrying a
machine-readable ``ErrorCode``, a human-readable message and, where one
exists, the id of the entity involved.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    CHANNEL_NOT_FOUND = "CHANNEL_NOT_FOUND"
    BLOCK_NOT_FOUND = "BLOCK_NOT_FOUND"
    CONNECTION_NOT_FOUND = "CONNECTION_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_ERROR = "DUPLICATE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GardenError(Exception):
    """Base class for all domain errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id

    def to_dict(self) -> Dict[str, Any]:
        """Return the structured shape that crosses the process boundary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "entityId": self.entity_id,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value}, message={self.message!r}, entity_id={self.entity_id!r})"


class NotFoundError(GardenError):
    pass


class ChannelNotFoundError(NotFoundError):
    code = ErrorCode.CHANNEL_NOT_FOUND

    def __init__(self, channel_id: str):
        super().__init__(f"Channel not found: {channel_id}", entity_id=channel_id)


class BlockNotFoundError(NotFoundError):
    code = ErrorCode.BLOCK_NOT_FOUND

    def __init__(self, block_id: str):
        super().__init__(f"Block not found: {block_id}", entity_id=block_id)


class ConnectionNotFoundError(NotFoundError):
    code = ErrorCode.CONNECTION_NOT_FOUND

    def __init__(self, block_id: str, channel_id: str):
        super().__init__(
            f"Connection not found: block {block_id} in channel {channel_id}",
            entity_id=f"{block_id}:{channel_id}",
        )
        self.block_id = block_id
        self.channel_id = channel_id


class ValidationError(GardenError, ValueError):
    """Rejected input shape or value.

    Also a ``ValueError`` so it can be raised from inside pydantic validators;
    ``from_pydantic`` recovers it from the wrapping pydantic error.
    """

    code = ErrorCode.VALIDATION_ERROR

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        errors = exc.errors() if hasattr(exc, "errors") else []
        for err in errors:
            original = (err.get("ctx") or {}).get("error")
            if isinstance(original, ValidationError):
                return original
        if not errors:
            return cls(str(exc))
        parts = []
        for err in errors:
            loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
            msg = err.get("msg", "invalid value")
            parts.append(f"{loc}: {msg}" if loc else msg)
        return cls("; ".join(parts))


class DuplicateError(GardenError):
    code = ErrorCode.DUPLICATE_ERROR


class StorageError(GardenError):
    """Storage failure with no nearer domain meaning (I/O, corruption)."""

    code = ErrorCode.DATABASE_ERROR


class InternalError(GardenError):
    code = ErrorCode.INTERNAL_ERROR
