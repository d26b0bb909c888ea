"""Frontmatter codec: memory file text <-> :class:`Memory`.

The metadata block sits between two ``---`` marker lines; everything after
the closing marker line is the body, verbatim. Each metadata field has its
own validator so a failure names the field and tells an absent field
(``MISSING_FIELD``) from a malformed one (``INVALID_*``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import yaml

from memtree import timestamps, yaml_io
from memtree.errors import ErrorCode, Ok, Result, fail
from memtree.memory.model import Memory, MemoryMetadata

MARKER = "---"

# Wire names, in output order
CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"
TAGS = "tags"
SOURCE = "source"
EXPIRES_AT = "expiresAt"

_ABSENT = object()


# ── Field validators ──────────────────────────────────────

def _timestamp(name: str, value: Any) -> Result[datetime]:
    parsed = timestamps.parse_timestamp(value)
    if parsed is None:
        return fail(
            ErrorCode.INVALID_TIMESTAMP,
            f"{name} must be an RFC 3339 timestamp with a UTC offset.",
            field=name,
        )
    return Ok(parsed)


def _tags(name: str, value: Any) -> Result[list[str]]:
    if value is None:
        return Ok([])
    if not isinstance(value, (list, tuple)):
        return fail(ErrorCode.INVALID_TAGS, f"{name} must be a list of strings.", field=name)
    for tag in value:
        if not isinstance(tag, str) or not tag.strip():
            return fail(
                ErrorCode.INVALID_TAGS,
                f"{name} entries must be non-empty strings.",
                field=name,
            )
    return Ok(list(value))


def _source(name: str, value: Any) -> Result[str]:
    if not isinstance(value, str) or not value.strip():
        return fail(ErrorCode.INVALID_SOURCE, f"{name} must be a non-empty string.", field=name)
    return Ok(value)


def _required(
    data: Mapping[str, Any], name: str, validator: Callable[[str, Any], Result]
) -> Result:
    value = data.get(name, _ABSENT)
    if value is _ABSENT:
        return fail(ErrorCode.MISSING_FIELD, f"Missing required field {name}.", field=name)
    return validator(name, value)


def _optional_timestamp(data: Mapping[str, Any], name: str) -> Result[datetime | None]:
    value = data.get(name)
    if value is None:
        return Ok(None)
    return _timestamp(name, value)


def _validate(fields: Mapping[str, Any]) -> Result[MemoryMetadata]:
    """Run every field validator, stopping at the first failure."""
    created = _required(fields, CREATED_AT, _timestamp)
    if not created.ok:
        return created
    updated = _required(fields, UPDATED_AT, _timestamp)
    if not updated.ok:
        return updated
    tags = _required(fields, TAGS, _tags)
    if not tags.ok:
        return tags
    source = _required(fields, SOURCE, _source)
    if not source.ok:
        return source
    expires = _optional_timestamp(fields, EXPIRES_AT)
    if not expires.ok:
        return expires
    return Ok(
        MemoryMetadata(
            created_at=created.value,
            updated_at=updated.value,
            tags=tags.value,
            source=source.value,
            expires_at=expires.value,
        )
    )


# ── Parse ─────────────────────────────────────────────────

def parse(raw: str) -> Result[Memory]:
    """Parse memory file text into a :class:`Memory`."""
    lines = raw.split("\n")
    if lines[0].rstrip("\r") != MARKER:
        return fail(
            ErrorCode.MISSING_FRONTMATTER,
            "Memory file must start with a '---' frontmatter marker.",
            line=1,
        )

    end = next((i for i in range(1, len(lines)) if lines[i].rstrip("\r") == MARKER), None)
    if end is None:
        return fail(
            ErrorCode.MISSING_FRONTMATTER,
            "Memory file frontmatter must be closed with '---'.",
            line=len(lines),
        )

    try:
        data = yaml_io.load("\n".join(lines[1:end]))
    except yaml_io.DuplicateKeyError as exc:
        return fail(
            ErrorCode.INVALID_FRONTMATTER,
            "Duplicate frontmatter key.",
            line=_file_line(exc),
            cause=exc,
        )
    except yaml.YAMLError as exc:
        return fail(
            ErrorCode.INVALID_FRONTMATTER,
            "Invalid YAML frontmatter.",
            line=_file_line(exc),
            cause=exc,
        )
    if not isinstance(data, dict):
        return fail(
            ErrorCode.INVALID_FRONTMATTER,
            "Frontmatter must be a mapping of fields.",
            line=2,
        )

    metadata = _validate(data)
    if not metadata.ok:
        return metadata
    return Ok(Memory(metadata=metadata.value, content="\n".join(lines[end + 1 :])))


def _file_line(exc: yaml.YAMLError) -> int | None:
    # Block starts on file line 2
    mark = getattr(exc, "problem_mark", None)
    return mark.line + 2 if mark is not None else None


# ── Serialize ─────────────────────────────────────────────

def serialize(memory: Memory) -> Result[str]:
    """Render a :class:`Memory` as file text; nothing is produced for invalid fields."""
    meta = memory.metadata
    fields: dict[str, Any] = {
        CREATED_AT: meta.created_at,
        UPDATED_AT: meta.updated_at,
        TAGS: meta.tags,
        SOURCE: meta.source,
    }
    if meta.expires_at is not None:
        fields[EXPIRES_AT] = meta.expires_at

    checked = _validate(fields)
    if not checked.ok:
        return checked
    if not isinstance(memory.content, str):
        return fail(ErrorCode.INVALID_FRONTMATTER, "Memory content must be a string.")

    out: dict[str, Any] = {
        CREATED_AT: timestamps.format_timestamp(checked.value.created_at),
        UPDATED_AT: timestamps.format_timestamp(checked.value.updated_at),
        TAGS: list(checked.value.tags),
        SOURCE: checked.value.source,
    }
    if checked.value.expires_at is not None:
        out[EXPIRES_AT] = timestamps.format_timestamp(checked.value.expires_at)

    block = yaml_io.dump(out, flow_lists=True)
    # The closing marker always ends its line, so the body comes back verbatim.
    return Ok(f"{MARKER}\n{block}{MARKER}\n{memory.content}")


def body_of(raw: str) -> str:
    """Body of a memory file, or the whole text when it has no valid frontmatter."""
    parsed = parse(raw)
    return parsed.value.content if parsed.ok else raw
