"""Category index records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class IndexMemoryEntry:
    """A memory directly inside the indexed category."""

    path: str
    token_estimate: int
    summary: str | None = None
    updated_at: datetime | None = None


@dataclass
class SubcategoryEntry:
    """A direct child category and the number of memories directly in it."""

    path: str
    memory_count: int
    description: str | None = None


@dataclass
class CategoryIndex:
    """Index of one category directory (the root category is ``""``)."""

    memories: list[IndexMemoryEntry] = field(default_factory=list)
    subcategories: list[SubcategoryEntry] = field(default_factory=list)

    def sort(self) -> CategoryIndex:
        """Order both lists by path, in place."""
        self.memories.sort(key=lambda entry: entry.path)
        self.subcategories.sort(key=lambda entry: entry.path)
        return self

    def memory(self, path: str) -> IndexMemoryEntry | None:
        return next((entry for entry in self.memories if entry.path == path), None)

    def subcategory(self, path: str) -> SubcategoryEntry | None:
        return next((entry for entry in self.subcategories if entry.path == path), None)
