"""Memory file store: read/write/remove/move of individual memory files.

Every operation validates the slug path and resolves it inside the store
root before touching the filesystem. Index files are not maintained here.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from memtree.errors import ErrorCode, Ok, Result, fail, rewrap
from memtree.paths import MemoryIdentity, resolve, validate_slug_path

logger = logging.getLogger(__name__)


def atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w", delete=False, dir=path.parent, prefix=".tmp-", suffix=".part",
        encoding="utf-8", newline="",
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            handle.write(text)
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def read_text(path: Path) -> str:
    """Read a file as UTF-8 without newline translation."""
    with open(path, encoding="utf-8", newline="") as handle:
        return handle.read()


class MemoryFileStore:
    """Memory files under ``root``, one ``<slug path><extension>`` per memory."""

    def __init__(self, root: str | Path, extension: str = ".md") -> None:
        self.root = Path(os.path.abspath(root))
        self.extension = extension

    # ── Paths ────────────────────────────────────────────────

    def identify(self, slug_path: str, code: ErrorCode) -> Result[MemoryIdentity]:
        """Validate ``slug_path``, reporting failures under ``code``."""
        identity = validate_slug_path(slug_path)
        if not identity.ok:
            return fail(
                code,
                identity.error.message,
                path=slug_path,
                cause=identity.error,
            )
        return identity

    def path_for(self, slug_path: str, code: ErrorCode) -> Result[Path]:
        """Filesystem path of a memory, refusing escapes from the store root."""
        identity = self.identify(slug_path, code)
        if not identity.ok:
            return identity
        return resolve(self.root, identity.value.slug_path + self.extension, code)

    # ── Operations ───────────────────────────────────────────

    def read(self, slug_path: str) -> Result[str | None]:
        """File content, or ``None`` when the memory does not exist."""
        path = self.path_for(slug_path, ErrorCode.READ_FAILED)
        if not path.ok:
            return path
        try:
            return Ok(read_text(path.value))
        except FileNotFoundError:
            return Ok(None)
        except (OSError, UnicodeDecodeError) as exc:
            return fail(
                ErrorCode.READ_FAILED,
                f"Failed to read memory file at {path.value}.",
                path=str(path.value),
                cause=exc,
            )

    def write(self, slug_path: str, content: str) -> Result[None]:
        """Create or replace a memory file, creating category directories."""
        path = self.path_for(slug_path, ErrorCode.WRITE_FAILED)
        if not path.ok:
            return path
        try:
            atomic_write(path.value, content)
        except (OSError, UnicodeEncodeError) as exc:
            return fail(
                ErrorCode.WRITE_FAILED,
                f"Failed to write memory file at {path.value}.",
                path=str(path.value),
                cause=exc,
            )
        logger.debug("Wrote memory %s (%d chars)", slug_path, len(content))
        return Ok()

    def remove(self, slug_path: str) -> Result[None]:
        """Delete a memory file; a missing file counts as removed."""
        path = self.path_for(slug_path, ErrorCode.WRITE_FAILED)
        if not path.ok:
            return path
        try:
            path.value.unlink()
        except FileNotFoundError:
            return Ok()
        except OSError as exc:
            return fail(
                ErrorCode.WRITE_FAILED,
                f"Failed to remove memory file at {path.value}.",
                path=str(path.value),
                cause=exc,
            )
        logger.debug("Removed memory %s", slug_path)
        return Ok()

    def move(self, source: str, destination: str) -> Result[None]:
        """Rename a memory file. The destination category must already exist."""
        source_path = self.path_for(source, ErrorCode.WRITE_FAILED)
        if not source_path.ok:
            return rewrap(source_path, ErrorCode.WRITE_FAILED, "Invalid source memory slug path.", path=source)
        dest_path = self.path_for(destination, ErrorCode.WRITE_FAILED)
        if not dest_path.ok:
            return rewrap(
                dest_path, ErrorCode.WRITE_FAILED, "Invalid destination memory slug path.", path=destination
            )

        if not dest_path.value.parent.is_dir():
            return fail(
                ErrorCode.WRITE_FAILED,
                f"Destination category does not exist for {destination}.",
                path=str(dest_path.value.parent),
            )
        if not source_path.value.is_file():
            return fail(
                ErrorCode.WRITE_FAILED,
                f"Source memory {source} does not exist.",
                path=str(source_path.value),
            )
        try:
            os.replace(source_path.value, dest_path.value)
        except OSError as exc:
            return fail(
                ErrorCode.WRITE_FAILED,
                f"Failed to move memory from {source} to {destination}.",
                path=str(dest_path.value),
                cause=exc,
            )
        logger.debug("Moved memory %s -> %s", source, destination)
        return Ok()
