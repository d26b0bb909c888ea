"""Filesystem storage engine: the interface exposed to CLI/server layers.

Each operation returns ``Ok(value)`` or ``Err(StorageError)``; expected
failures (missing files, malformed content, invalid paths) never raise.
Writes go to the memory file first, then through the incremental index
update. ``reindex`` rebuilds every index from the files alone.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from memtree.config import DEFAULT_INDEX_EXTENSION, DEFAULT_MEMORY_EXTENSION, StoreConfig
from memtree.errors import ErrorCode, Ok, Result, StorageError, fail, rewrap
from memtree.index.categories import CategoryIndexStore
from memtree.index.maintenance import IndexMaintainer, ReindexResult
from memtree.index.model import CategoryIndex
from memtree.memory import frontmatter
from memtree.memory.files import MemoryFileStore
from memtree.memory.model import Memory
from memtree.paths import parent_category, validate_category_path


class FilesystemStorage:
    """Memory files and category indexes under a single store root."""

    def __init__(
        self,
        root: str | Path,
        memory_extension: str = DEFAULT_MEMORY_EXTENSION,
        index_extension: str = DEFAULT_INDEX_EXTENSION,
    ) -> None:
        self.files = MemoryFileStore(root, memory_extension)
        self.indexes = CategoryIndexStore(root, index_extension)
        self.maintainer = IndexMaintainer(self.files, self.indexes)

    @classmethod
    def from_config(cls, config: StoreConfig) -> FilesystemStorage:
        return cls(config.root, config.memory_extension, config.index_extension)

    @property
    def root(self) -> Path:
        return self.files.root

    # ── Memories (raw file text) ─────────────────────────────

    def read_memory(self, slug_path: str) -> Result[str | None]:
        return self.files.read(slug_path)

    def write_memory(self, slug_path: str, content: str) -> Result[None]:
        """Persist a memory file, then update its category and ancestor indexes."""
        written = self.files.write(slug_path, content)
        if not written.ok:
            return written
        return self.maintainer.update_after_write(slug_path, content)

    def remove_memory(self, slug_path: str) -> Result[None]:
        removed = self.files.remove(slug_path)
        if not removed.ok:
            return removed
        return self.maintainer.update_after_remove(slug_path)

    def move_memory(self, source: str, destination: str) -> Result[None]:
        """Rename a memory into an existing category and fix both index chains."""
        moved = self.files.move(source, destination)
        if not moved.ok:
            return moved
        dropped = self.maintainer.update_after_remove(source)
        if not dropped.ok:
            return dropped

        content = self.files.read(destination)
        if not content.ok:
            return rewrap(content, ErrorCode.INDEX_UPDATE_FAILED, "Failed to read moved memory.", path=destination)
        if content.value is None:
            return fail(
                ErrorCode.INDEX_UPDATE_FAILED,
                f"Moved memory {destination} is missing.",
                path=destination,
            )
        return self.maintainer.update_after_write(destination, content.value)

    # ── Memories (parsed) ────────────────────────────────────

    def load_memory(self, slug_path: str) -> Result[Memory | None]:
        """Read and parse a memory; ``None`` when it does not exist."""
        raw = self.files.read(slug_path)
        if not raw.ok or raw.value is None:
            return raw
        parsed = frontmatter.parse(raw.value)
        if not parsed.ok:
            return rewrap(parsed, ErrorCode.READ_FAILED, f"Malformed memory file {slug_path}.", path=slug_path)
        return parsed

    def save_memory(self, slug_path: str, memory: Memory, *, now: datetime | None = None) -> Result[Memory]:
        """Serialize and write a memory.

        ``updated_at`` is set to ``now``; an existing memory keeps its
        original ``created_at``.
        """
        existing = self.load_memory(slug_path)
        if not existing.ok:
            return rewrap(existing, ErrorCode.WRITE_FAILED, f"Cannot update {slug_path}.", path=slug_path)

        metadata = memory.metadata.touched(now or datetime.now(timezone.utc))
        if existing.value is not None:
            metadata = replace(metadata, created_at=existing.value.metadata.created_at)
        stored = Memory(metadata=metadata, content=memory.content)

        serialized = frontmatter.serialize(stored)
        if not serialized.ok:
            return rewrap(serialized, ErrorCode.WRITE_FAILED, f"Invalid memory for {slug_path}.", path=slug_path)
        written = self.write_memory(slug_path, serialized.value)
        if not written.ok:
            return written
        return Ok(stored)

    # ── Indexes ──────────────────────────────────────────────

    def read_index(self, category_path: str) -> Result[CategoryIndex | None]:
        return self.indexes.read(category_path)

    def write_index(self, category_path: str, index: CategoryIndex) -> Result[None]:
        return self.indexes.write(category_path, index)

    def update_indexes(
        self, slug_path: str, content: str, *, create_when_missing: bool = True
    ) -> Result[None]:
        """Run the incremental index update for an already written memory."""
        return self.maintainer.update_after_write(
            slug_path, content, create_when_missing=create_when_missing
        )

    def reindex(self) -> Result[ReindexResult]:
        return self.maintainer.reindex()

    # ── Categories ───────────────────────────────────────────

    def category_exists(self, category_path: str) -> Result[bool]:
        return self.indexes.exists(category_path)

    def ensure_category(self, category_path: str) -> Result[None]:
        return self.indexes.ensure(category_path)

    def delete_category(self, category_path: str) -> Result[None]:
        """Delete a category tree and drop its entry from the parent index."""
        deleted = self.indexes.delete(category_path)
        if not deleted.ok:
            return deleted
        normalized = validate_category_path(category_path)
        return self.indexes.remove_subcategory_entry(parent_category(normalized.value), normalized.value)

    def set_subcategory_description(
        self, parent_path: str, subcategory_path: str, description: str | None
    ) -> Result[None]:
        return self.indexes.set_subcategory_description(parent_path, subcategory_path, description)

    def remove_subcategory_entry(self, parent_path: str, subcategory_path: str) -> Result[None]:
        return self.indexes.remove_subcategory_entry(parent_path, subcategory_path)

    # ── Maintenance ──────────────────────────────────────────

    def check(self) -> Result[list[StorageError]]:
        """Malformed memory and index files found under the root."""
        return self.maintainer.check()
