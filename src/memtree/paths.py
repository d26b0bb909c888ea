"""Slug paths and their mapping onto a sandboxed store root.

A slug path such as ``project/cortex/architecture`` names a memory: every
segment but the last is a category, the last is the memory's own slug.
Category paths use the same segments; the empty string is the root.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from memtree.errors import ErrorCode, Ok, Result, fail

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

# Final segment reserved for index files
RESERVED_SLUG = "index"


@dataclass(frozen=True)
class MemoryIdentity:
    """A validated slug path split into its category chain and slug."""

    slug_path: str
    categories: tuple[str, ...]
    slug: str

    @property
    def category_path(self) -> str:
        return "/".join(self.categories)


def split_segments(path: str) -> list[str]:
    """Split on ``/``, dropping blank segments."""
    return [segment.strip() for segment in path.split("/") if segment.strip()]


def is_valid_slug(segment: str) -> bool:
    return bool(SLUG_PATTERN.match(segment))


def validate_category_path(path: str) -> Result[str]:
    """Normalize a category path; ``""`` is the root category."""
    segments = split_segments(path)
    for segment in segments:
        if not is_valid_slug(segment):
            return fail(
                ErrorCode.INVALID_SLUG_PATH,
                f"Category segment {segment!r} is not a lowercase slug.",
                path=path,
                field=segment,
            )
    return Ok("/".join(segments))


def validate_slug_path(slug_path: str) -> Result[MemoryIdentity]:
    """Validate a memory slug path (2+ slug segments, last not ``index``)."""
    segments = split_segments(slug_path)
    if len(segments) < 2:
        return fail(
            ErrorCode.INVALID_SLUG_PATH,
            "Memory slug path must include at least two segments.",
            path=slug_path,
        )
    for segment in segments:
        if not is_valid_slug(segment):
            return fail(
                ErrorCode.INVALID_SLUG_PATH,
                f"Slug path segment {segment!r} is not a lowercase slug.",
                path=slug_path,
                field=segment,
            )
    if segments[-1] == RESERVED_SLUG:
        return fail(
            ErrorCode.INVALID_SLUG_PATH,
            f'Memory slug "{RESERVED_SLUG}" is reserved for index files.',
            path=slug_path,
            field=segments[-1],
        )
    return Ok(
        MemoryIdentity(
            slug_path="/".join(segments),
            categories=tuple(segments[:-1]),
            slug=segments[-1],
        )
    )


def parent_category(path: str) -> str:
    """Parent of a category path; the parent of a top-level category is root."""
    return path.rpartition("/")[0]


def resolve(root: str | Path, relative: str, code: ErrorCode) -> Result[Path]:
    """Resolve ``relative`` under ``root``, refusing anything that escapes it.

    Purely lexical: no filesystem access, symlinks are not followed.
    """
    base = os.path.abspath(root)
    target = os.path.normpath(os.path.join(base, relative))
    if target != base and not target.startswith(base.rstrip(os.sep) + os.sep):
        return fail(
            code,
            f"Path escapes storage root: {relative}.",
            path=target,
        )
    return Ok(Path(target))


def slug_path_from_relative(relative: str | Path, extension: str) -> str | None:
    """Turn a root-relative memory file path back into a slug path."""
    text = str(relative)
    if not text or text.startswith("..") or not text.endswith(extension):
        return None
    parts = [part.strip() for part in Path(text[: -len(extension)]).parts if part.strip()]
    return "/".join(parts) or None
