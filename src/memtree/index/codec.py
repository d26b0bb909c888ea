"""Index file codec: ``index.yaml`` text <-> :class:`CategoryIndex`.

Malformed content is always an error; it is never read back as an empty
index.
"""

from __future__ import annotations

from typing import Any

import yaml

from memtree import timestamps, yaml_io
from memtree.errors import ErrorCode, Ok, Result, fail
from memtree.index.model import CategoryIndex, IndexMemoryEntry, SubcategoryEntry


def _invalid(message: str, field: str | None = None, cause: Any = None):
    return fail(ErrorCode.INVALID_INDEX, message, field=field, cause=cause)


def _path(entry: dict, where: str) -> Result[str]:
    value = entry.get("path")
    if not isinstance(value, str) or not value.strip():
        return _invalid(f"{where} entry path must be a non-empty string.", "path")
    return Ok(value)


def _count(entry: dict, key: str, where: str) -> Result[int]:
    value = entry.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return _invalid(f"{where} entry {key} must be a non-negative integer.", key)
    return Ok(value)


def _text(entry: dict, key: str, where: str) -> Result[str | None]:
    value = entry.get(key)
    if value is not None and not isinstance(value, str):
        return _invalid(f"{where} entry {key} must be a string.", key)
    return Ok(value)


def _memory_entry(raw: Any) -> Result[IndexMemoryEntry]:
    if not isinstance(raw, dict):
        return _invalid("Memory entries must be mappings.")
    path = _path(raw, "Memory")
    if not path.ok:
        return path
    tokens = _count(raw, "tokenEstimate", "Memory")
    if not tokens.ok:
        return tokens
    summary = _text(raw, "summary", "Memory")
    if not summary.ok:
        return summary
    updated_at = None
    if raw.get("updatedAt") is not None:
        updated_at = timestamps.parse_timestamp(raw["updatedAt"])
        if updated_at is None:
            return _invalid("Memory entry updatedAt must be an RFC 3339 timestamp.", "updatedAt")
    return Ok(
        IndexMemoryEntry(
            path=path.value,
            token_estimate=tokens.value,
            summary=summary.value,
            updated_at=updated_at,
        )
    )


def _subcategory_entry(raw: Any) -> Result[SubcategoryEntry]:
    if not isinstance(raw, dict):
        return _invalid("Subcategory entries must be mappings.")
    path = _path(raw, "Subcategory")
    if not path.ok:
        return path
    count = _count(raw, "memoryCount", "Subcategory")
    if not count.ok:
        return count
    description = _text(raw, "description", "Subcategory")
    if not description.ok:
        return description
    return Ok(SubcategoryEntry(path=path.value, memory_count=count.value, description=description.value))


def _entries(data: dict, key: str, build) -> Result[list]:
    raw = data.get(key)
    if not isinstance(raw, list):
        return _invalid(f"Index {key} must be a list.", key)
    entries = []
    for item in raw:
        entry = build(item)
        if not entry.ok:
            return entry
        entries.append(entry.value)
    return Ok(entries)


def parse_index(raw: str) -> Result[CategoryIndex]:
    """Decode and validate index file text."""
    try:
        data = yaml_io.load(raw)
    except yaml.YAMLError as exc:
        return _invalid("Failed to parse YAML for category index.", cause=exc)
    if not isinstance(data, dict):
        return _invalid("Category index must be a mapping.")

    memories = _entries(data, "memories", _memory_entry)
    if not memories.ok:
        return memories
    subcategories = _entries(data, "subcategories", _subcategory_entry)
    if not subcategories.ok:
        return subcategories
    return Ok(CategoryIndex(memories=memories.value, subcategories=subcategories.value))


def serialize_index(index: CategoryIndex) -> Result[str]:
    """Encode an index; optional fields are omitted when unset."""
    memories = []
    for entry in index.memories:
        item: dict[str, Any] = {"path": entry.path, "tokenEstimate": entry.token_estimate}
        if entry.summary is not None:
            item["summary"] = entry.summary
        if entry.updated_at is not None:
            if not timestamps.is_absolute(entry.updated_at):
                return _invalid("Memory entry updatedAt must be timezone-aware.", "updatedAt")
            item["updatedAt"] = timestamps.format_timestamp(entry.updated_at)
        checked = _memory_entry(item)
        if not checked.ok:
            return checked
        memories.append(item)

    subcategories = []
    for entry in index.subcategories:
        item = {"path": entry.path, "memoryCount": entry.memory_count}
        if entry.description is not None:
            item["description"] = entry.description
        checked = _subcategory_entry(item)
        if not checked.ok:
            return checked
        subcategories.append(item)

    return Ok(yaml_io.dump({"memories": memories, "subcategories": subcategories}))
