"""Index maintenance: incremental updates after writes, and full reindex.

Memory files are the source of truth; index files are a rebuildable view.
The incremental path touches only the written memory's category and its
ancestor chain. The full reindex walks the whole tree once and rewrites
every index, so it also repairs anything the incremental path left behind.
Both produce the same files for the same set of memories (except that a
reindex drops subcategory descriptions).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from memtree.errors import ErrorCode, Ok, Result, StorageError, fail, rewrap
from memtree.index.categories import CategoryIndexStore
from memtree.index.model import CategoryIndex, IndexMemoryEntry, SubcategoryEntry
from memtree.memory import frontmatter
from memtree.memory.files import MemoryFileStore, read_text
from memtree.paths import slug_path_from_relative, validate_slug_path
from memtree.tokens import estimate_tokens

logger = logging.getLogger(__name__)

_UPDATE = ErrorCode.INDEX_UPDATE_FAILED


def token_estimate(content: str) -> int:
    """Token estimate of a memory, measured over its body."""
    return estimate_tokens(frontmatter.body_of(content))


@dataclass
class ReindexResult:
    """Summary of a full reindex."""

    memory_count: int = 0
    categories: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


class IndexMaintainer:
    """Keeps category indexes consistent with the memory files."""

    def __init__(self, files: MemoryFileStore, indexes: CategoryIndexStore) -> None:
        self.files = files
        self.indexes = indexes

    # ── Incremental update ───────────────────────────────────

    def update_after_write(
        self, slug_path: str, content: str, *, create_when_missing: bool = True
    ) -> Result[None]:
        """Upsert the memory's entry, then refresh counts up the ancestor chain."""
        identity = self.files.identify(slug_path, _UPDATE)
        if not identity.ok:
            return identity
        category = identity.value.category_path

        current = self._load(category, create_when_missing)
        if not current.ok:
            return current
        index = current.value
        index.memories = [entry for entry in index.memories if entry.path != identity.value.slug_path]
        index.memories.append(
            IndexMemoryEntry(path=identity.value.slug_path, token_estimate=token_estimate(content))
        )
        saved = self.indexes.save(category, index.sort(), code=_UPDATE)
        if not saved.ok:
            return saved

        return self._refresh_ancestors(identity.value.categories, create_when_missing)

    def update_after_remove(self, slug_path: str) -> Result[None]:
        """Drop a removed memory's entry and refresh the ancestor chain's counts."""
        identity = self.files.identify(slug_path, _UPDATE)
        if not identity.ok:
            return identity
        category = identity.value.category_path

        current = self.indexes.load(category, code=_UPDATE)
        if not current.ok:
            return current
        index = current.value
        if index is None or index.memory(identity.value.slug_path) is None:
            return Ok()
        index.memories = [entry for entry in index.memories if entry.path != identity.value.slug_path]
        saved = self.indexes.save(category, index, code=_UPDATE)
        if not saved.ok:
            return saved

        return self._refresh_ancestors(identity.value.categories, True)

    def _load(self, category: str, create_when_missing: bool) -> Result[CategoryIndex]:
        current = self.indexes.load(category, code=_UPDATE, create_when_missing=create_when_missing)
        if current.ok and current.value is None:
            return fail(_UPDATE, f"Category index not found at {category!r}.", path=category)
        return current

    def _refresh_ancestors(self, categories: tuple[str, ...], create_when_missing: bool) -> Result[None]:
        """Upsert each category on the chain into its parent with its current count.

        Depth 1 lands in the root index. Existing descriptions are kept.
        """
        for depth in range(1, len(categories) + 1):
            child = "/".join(categories[:depth])
            parent = "/".join(categories[: depth - 1])

            child_index = self.indexes.load(child, code=_UPDATE, create_when_missing=True)
            if not child_index.ok:
                return child_index
            count = len(child_index.value.memories)

            current = self._load(parent, create_when_missing)
            if not current.ok:
                return current
            index = current.value
            existing = index.subcategory(child)
            description = existing.description if existing is not None else None
            index.subcategories = [entry for entry in index.subcategories if entry.path != child]
            index.subcategories.append(
                SubcategoryEntry(path=child, memory_count=count, description=description)
            )
            saved = self.indexes.save(parent, index.sort(), code=_UPDATE)
            if not saved.ok:
                return saved
        return Ok()

    # ── Full reindex ─────────────────────────────────────────

    def reindex(self) -> Result[ReindexResult]:
        """Rebuild every index file from a scan of the memory files."""
        walked = self._walk()
        if not walked.ok:
            return walked
        existing = self._index_files(walked.value)
        memory_files = self._memory_files(walked.value)

        built = self._build(memory_files)
        if not built.ok:
            return built
        indexes = built.value

        for category in sorted(indexes):
            saved = self.indexes.save(category, indexes[category].sort(), code=_UPDATE)
            if not saved.ok:
                return saved

        removed = self._remove_stale(existing, set(indexes))
        if not removed.ok:
            return removed

        result = ReindexResult(
            memory_count=len(memory_files),
            categories=sorted(indexes),
            removed=removed.value,
        )
        logger.info(
            "Reindexed %s: %d memories, %d indexes, %d stale removed",
            self.files.root,
            result.memory_count,
            len(result.categories),
            len(result.removed),
        )
        return Ok(result)

    # ── Consistency check ────────────────────────────────────

    def check(self) -> Result[list[StorageError]]:
        """Parse every memory and index file; returns the problems found."""
        walked = self._walk()
        if not walked.ok:
            return walked

        problems: list[StorageError] = []
        for path in self._memory_files(walked.value):
            relative = path.relative_to(self.files.root)
            slug_path = slug_path_from_relative(relative, self.files.extension) or str(relative)
            identity = validate_slug_path(slug_path)
            if not identity.ok:
                problems.append(replace(identity.error, path=str(path)))
                continue
            try:
                parsed = frontmatter.parse(read_text(path))
            except (OSError, UnicodeDecodeError) as exc:
                problems.append(
                    StorageError(ErrorCode.READ_FAILED, f"Failed to read {path}.", path=str(path), cause=exc)
                )
                continue
            if not parsed.ok:
                problems.append(replace(parsed.error, path=str(path)))

        for category, path in sorted(self._index_files(walked.value).items()):
            loaded = self.indexes.load(category, code=ErrorCode.STORAGE_ERROR)
            if not loaded.ok:
                problems.append(replace(loaded.error, path=str(path)))
        return Ok(problems)

    def _walk(self) -> Result[list[tuple[Path, list[str]]]]:
        """(directory, file names) for every directory below the root."""
        errors: list[OSError] = []
        walked = [
            (Path(dirpath), sorted(filenames))
            for dirpath, _, filenames in os.walk(self.files.root, onerror=errors.append)
        ]
        for exc in errors:
            # A store root that does not exist yet is an empty store
            if isinstance(exc, FileNotFoundError) and Path(exc.filename or "") == self.files.root:
                continue
            return fail(
                ErrorCode.READ_FAILED,
                f"Failed to read memory directory at {exc.filename}.",
                path=exc.filename,
                cause=exc,
            )
        return Ok(walked)

    def _memory_files(self, walked: list[tuple[Path, list[str]]]) -> list[Path]:
        extension = self.files.extension
        return [
            directory / name
            for directory, names in walked
            for name in names
            if name.endswith(extension) and name != self.indexes.index_filename
        ]

    def _index_files(self, walked: list[tuple[Path, list[str]]]) -> dict[str, Path]:
        """Existing index files keyed by category path."""
        found = {}
        for directory, names in walked:
            if self.indexes.index_filename in names:
                category = directory.relative_to(self.files.root).as_posix()
                found["" if category == "." else category] = directory / self.indexes.index_filename
        return found

    def _build(self, paths: list[Path]) -> Result[dict[str, CategoryIndex]]:
        """Group memories by category, then fill in subcategory entries."""
        indexes: dict[str, CategoryIndex] = {"": CategoryIndex()}
        children: dict[str, set[str]] = {}

        for path in paths:
            relative = path.relative_to(self.files.root)
            slug_path = slug_path_from_relative(relative, self.files.extension) or str(relative)
            identity = validate_slug_path(slug_path)
            if not identity.ok:
                return rewrap(
                    identity, _UPDATE, f"Invalid memory slug path for {path}.", path=str(path)
                )
            try:
                content = read_text(path)
            except (OSError, UnicodeDecodeError) as exc:
                return fail(
                    ErrorCode.READ_FAILED,
                    f"Failed to read memory file at {path}.",
                    path=str(path),
                    cause=exc,
                )

            categories = identity.value.categories
            indexes.setdefault(identity.value.category_path, CategoryIndex()).memories.append(
                IndexMemoryEntry(path=identity.value.slug_path, token_estimate=token_estimate(content))
            )
            for depth in range(1, len(categories) + 1):
                parent = "/".join(categories[: depth - 1])
                children.setdefault(parent, set()).add("/".join(categories[:depth]))

        # Second pass: counts come from the in-memory indexes, not the filesystem
        for parent, subcategories in children.items():
            index = indexes.setdefault(parent, CategoryIndex())
            index.subcategories = [
                SubcategoryEntry(
                    path=child,
                    memory_count=len(indexes[child].memories) if child in indexes else 0,
                )
                for child in subcategories
            ]
        return Ok(indexes)

    def _remove_stale(self, existing: dict[str, Path], current: set[str]) -> Result[list[str]]:
        removed = []
        for category, path in sorted(existing.items()):
            if category in current:
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                return fail(
                    ErrorCode.WRITE_FAILED,
                    f"Failed to remove stale index file at {path}.",
                    path=str(path),
                    cause=exc,
                )
            logger.warning("Removed stale index for category %r", category)
            removed.append(category)
        return Ok(removed)
