"""Error types for knowledge graph operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminator for GraphError."""

    VALIDATION = "validation"  # Malformed input shape
    NOT_FOUND = "not_found"    # Referenced entity does not exist
    STORE = "store"            # Backing store read/write failed

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class GraphError:
    """Error details for knowledge graph operations.

    Callers switch on ``kind``. ``name`` is set for NOT_FOUND errors and
    ``cause`` holds the underlying exception for STORE errors.
    """

    kind: ErrorKind
    message: str
    name: str | None = None
    cause: BaseException | None = None

    @classmethod
    def validation(cls, message: str) -> GraphError:
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def not_found(cls, name: str) -> GraphError:
        return cls(ErrorKind.NOT_FOUND, f"Entity not found: {name}", name=name)

    @classmethod
    def store(cls, message: str, cause: BaseException | None = None) -> GraphError:
        if cause is not None:
            message = f"{message}: {cause}"
        return cls(ErrorKind.STORE, message, cause=cause)

    def to_dict(self) -> dict[str, Any]:
        """Render the error for JSON output. The cause is reduced to its type name."""
        data: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.name is not None:
            data["name"] = self.name
        if self.cause is not None:
            data["cause"] = type(self.cause).__name__
        return data

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class GraphOperationError(Exception):
    """Raised when unwrapping a failed Result."""

    def __init__(self, error: GraphError) -> None:
        super().__init__(str(error))
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind
