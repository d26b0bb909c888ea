"""Memory value types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone


@dataclass(frozen=True)
class MemoryMetadata:
    """Structured frontmatter of a memory.

    ``created_at`` is fixed at first write; ``updated_at`` moves on every write.
    """

    created_at: datetime
    updated_at: datetime
    tags: list[str] = field(default_factory=list)
    source: str = "user"
    expires_at: datetime | None = None

    @classmethod
    def now(cls, source: str = "user", tags: list[str] | None = None) -> MemoryMetadata:
        ts = datetime.now(timezone.utc)
        return cls(created_at=ts, updated_at=ts, tags=list(tags or []), source=source)

    def touched(self, at: datetime | None = None) -> MemoryMetadata:
        """Copy with ``updated_at`` moved forward; ``created_at`` is kept."""
        return replace(self, updated_at=at or datetime.now(timezone.utc))


@dataclass(frozen=True)
class Memory:
    """A memory: metadata plus free-text body."""

    metadata: MemoryMetadata
    content: str = ""
