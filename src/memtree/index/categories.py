"""Category directories and their ``index.yaml`` records."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from memtree.errors import ErrorCode, Ok, Result, fail, rewrap
from memtree.index.codec import parse_index, serialize_index
from memtree.index.model import CategoryIndex, SubcategoryEntry
from memtree.memory.files import atomic_write, read_text
from memtree.paths import parent_category, resolve, validate_category_path

logger = logging.getLogger(__name__)


class CategoryIndexStore:
    """Read/write access to category directories and their index files."""

    def __init__(self, root: str | Path, index_extension: str = ".yaml") -> None:
        self.root = Path(os.path.abspath(root))
        self.index_filename = f"index{index_extension}"

    # ── Paths ────────────────────────────────────────────────

    def directory(self, category_path: str, code: ErrorCode = ErrorCode.STORAGE_ERROR) -> Result[Path]:
        """Directory of a category (the store root for ``""``)."""
        normalized = validate_category_path(category_path)
        if not normalized.ok:
            return fail(code, normalized.error.message, path=category_path, cause=normalized.error)
        return resolve(self.root, normalized.value, code)

    def index_file(self, category_path: str, code: ErrorCode = ErrorCode.STORAGE_ERROR) -> Result[Path]:
        directory = self.directory(category_path, code)
        if not directory.ok:
            return directory
        return Ok(directory.value / self.index_filename)

    # ── Index I/O (error code chosen by the caller) ──────────

    def load(
        self,
        category_path: str,
        *,
        code: ErrorCode,
        create_when_missing: bool = False,
    ) -> Result[CategoryIndex | None]:
        """Parsed index, an empty one (``create_when_missing``) or ``None``."""
        path = self.index_file(category_path, code)
        if not path.ok:
            return path
        try:
            raw = read_text(path.value)
        except FileNotFoundError:
            return Ok(CategoryIndex() if create_when_missing else None)
        except (OSError, UnicodeDecodeError) as exc:
            return fail(code, f"Failed to read index file at {path.value}.", path=str(path.value), cause=exc)

        parsed = parse_index(raw)
        if not parsed.ok:
            return rewrap(parsed, code, f"Failed to parse category index at {category_path!r}.", path=category_path)
        return parsed

    def save(self, category_path: str, index: CategoryIndex, *, code: ErrorCode) -> Result[None]:
        """Serialize and write an index, creating directories as needed."""
        path = self.index_file(category_path, code)
        if not path.ok:
            return path
        serialized = serialize_index(index)
        if not serialized.ok:
            return rewrap(
                serialized, code, f"Failed to serialize category index at {category_path!r}.", path=category_path
            )
        try:
            atomic_write(path.value, serialized.value)
        except (OSError, UnicodeEncodeError) as exc:
            return fail(code, f"Failed to write index file at {path.value}.", path=str(path.value), cause=exc)
        logger.debug("Wrote index %r", category_path)
        return Ok()

    # ── Category operations ──────────────────────────────────

    def exists(self, category_path: str) -> Result[bool]:
        directory = self.directory(category_path)
        if not directory.ok:
            return directory
        return Ok(directory.value.is_dir())

    def ensure(self, category_path: str) -> Result[None]:
        """Create the category directory and its ancestors. Idempotent."""
        directory = self.directory(category_path)
        if not directory.ok:
            return directory
        try:
            directory.value.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return fail(
                ErrorCode.STORAGE_ERROR,
                f"Failed to create category directory: {category_path}",
                path=category_path,
                cause=exc,
            )
        return Ok()

    def delete(self, category_path: str) -> Result[None]:
        """Remove a category directory and everything below it. Idempotent."""
        directory = self.directory(category_path)
        if not directory.ok:
            return directory
        if directory.value == self.root:
            return fail(ErrorCode.STORAGE_ERROR, "The root category cannot be deleted.", path=category_path)
        try:
            shutil.rmtree(directory.value)
        except FileNotFoundError:
            return Ok()
        except OSError as exc:
            return fail(
                ErrorCode.STORAGE_ERROR,
                f"Failed to delete category directory: {category_path}",
                path=category_path,
                cause=exc,
            )
        logger.info("Deleted category %s", category_path)
        return Ok()

    def read(self, category_path: str) -> Result[CategoryIndex | None]:
        """Index of a category, ``None`` when it has no index file yet."""
        return self.load(category_path, code=ErrorCode.STORAGE_ERROR)

    def write(self, category_path: str, index: CategoryIndex) -> Result[None]:
        return self.save(category_path, index, code=ErrorCode.STORAGE_ERROR)

    def set_subcategory_description(
        self, parent_path: str, subcategory_path: str, description: str | None
    ) -> Result[None]:
        """Set (or clear, with ``None``) a subcategory's description in its parent's index."""
        relation = self._check_child(parent_path, subcategory_path)
        if not relation.ok:
            return relation
        parent, child = relation.value

        current = self.load(parent, code=ErrorCode.STORAGE_ERROR, create_when_missing=True)
        if not current.ok:
            return current
        index = current.value
        entry = index.subcategory(child)
        if entry is None:
            entry = SubcategoryEntry(path=child, memory_count=0)
            index.subcategories.append(entry)
        entry.description = description
        return self.save(parent, index.sort(), code=ErrorCode.STORAGE_ERROR)

    def remove_subcategory_entry(self, parent_path: str, subcategory_path: str) -> Result[None]:
        """Drop a subcategory entry; a missing index or entry is not an error."""
        relation = self._check_child(parent_path, subcategory_path)
        if not relation.ok:
            return relation
        parent, child = relation.value

        current = self.load(parent, code=ErrorCode.STORAGE_ERROR)
        if not current.ok:
            return current
        index = current.value
        if index is None or index.subcategory(child) is None:
            return Ok()
        index.subcategories = [entry for entry in index.subcategories if entry.path != child]
        return self.save(parent, index, code=ErrorCode.STORAGE_ERROR)

    def _check_child(self, parent_path: str, subcategory_path: str) -> Result[tuple[str, str]]:
        parent = validate_category_path(parent_path)
        child = validate_category_path(subcategory_path)
        for checked, raw in ((parent, parent_path), (child, subcategory_path)):
            if not checked.ok:
                return rewrap(checked, ErrorCode.STORAGE_ERROR, checked.error.message, path=raw)
        if not child.value or parent_category(child.value) != parent.value:
            return fail(
                ErrorCode.STORAGE_ERROR,
                f"{subcategory_path!r} is not a direct subcategory of {parent_path!r}.",
                path=subcategory_path,
            )
        return Ok((parent.value, child.value))
