"""Error codes and the tagged results returned by every storage operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Failure codes surfaced through :class:`StorageError`."""

    READ_FAILED = "READ_FAILED"
    WRITE_FAILED = "WRITE_FAILED"
    INDEX_UPDATE_FAILED = "INDEX_UPDATE_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"

    # Frontmatter codec
    MISSING_FRONTMATTER = "MISSING_FRONTMATTER"
    INVALID_FRONTMATTER = "INVALID_FRONTMATTER"
    INVALID_TAGS = "INVALID_TAGS"
    INVALID_SOURCE = "INVALID_SOURCE"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    MISSING_FIELD = "MISSING_FIELD"

    # Validation causes, always wrapped by one of the codes above
    INVALID_SLUG_PATH = "INVALID_SLUG_PATH"
    INVALID_INDEX = "INVALID_INDEX"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StorageError:
    """Structured description of a failed operation."""

    code: ErrorCode
    message: str
    path: str | None = None
    field: str | None = None
    line: int | None = None
    cause: Any = None

    def __str__(self) -> str:
        text = f"{self.code}: {self.message}"
        if self.cause is not None:
            text += f" ({self.cause})"
        return text


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value (``None`` for plain success)."""

    value: T = None  # type: ignore[assignment]

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying a :class:`StorageError`."""

    error: StorageError

    @property
    def ok(self) -> bool:
        return False

    @property
    def code(self) -> ErrorCode:
        return self.error.code


Result = Union[Ok[T], Err]


def fail(
    code: ErrorCode,
    message: str,
    *,
    path: str | None = None,
    field: str | None = None,
    line: int | None = None,
    cause: Any = None,
) -> Err:
    """Shorthand for building an :class:`Err`."""
    return Err(StorageError(code, message, path=path, field=field, line=line, cause=cause))


def rewrap(result: Err, code: ErrorCode, message: str, *, path: str | None = None) -> Err:
    """Report a nested failure under the calling operation's own code."""
    return fail(code, message, path=path, cause=result.error)
