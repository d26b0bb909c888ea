"""Tests for the category index codec."""

from __future__ import annotations

from datetime import datetime, timezone

from memtree.errors import ErrorCode
from memtree.index.codec import parse_index, serialize_index
from memtree.index.model import CategoryIndex, IndexMemoryEntry, SubcategoryEntry


class TestParseIndex:
    def test_full(self):
        raw = """memories:
  - path: project/notes
    tokenEstimate: 12
    summary: Meeting notes
    updatedAt: 2024-01-02T00:00:00.000Z
subcategories:
  - path: project/cortex
    memoryCount: 3
    description: Cortex work
"""
        result = parse_index(raw)
        assert result.ok
        memory = result.value.memories[0]
        assert memory.path == "project/notes"
        assert memory.token_estimate == 12
        assert memory.summary == "Meeting notes"
        assert memory.updated_at == datetime(2024, 1, 2, tzinfo=timezone.utc)
        sub = result.value.subcategories[0]
        assert sub == SubcategoryEntry(path="project/cortex", memory_count=3, description="Cortex work")

    def test_empty_lists(self):
        result = parse_index("memories: []\nsubcategories: []\n")
        assert result.ok
        assert result.value == CategoryIndex()

    def test_unknown_keys_ignored(self):
        assert parse_index("memories: []\nsubcategories: []\nversion: 2\n").ok

    def test_malformed_yaml_is_an_error(self):
        result = parse_index("memories: [\n")
        assert result.code == ErrorCode.INVALID_INDEX

    def test_empty_file_is_an_error(self):
        assert parse_index("").code == ErrorCode.INVALID_INDEX

    def test_missing_list(self):
        result = parse_index("memories: []\n")
        assert result.code == ErrorCode.INVALID_INDEX
        assert result.error.field == "subcategories"

    def test_negative_count(self):
        raw = "memories: []\nsubcategories:\n  - path: a\n    memoryCount: -1\n"
        assert parse_index(raw).error.field == "memoryCount"

    def test_bool_count(self):
        raw = "memories:\n  - path: a/b\n    tokenEstimate: true\nsubcategories: []\n"
        assert parse_index(raw).error.field == "tokenEstimate"

    def test_blank_path(self):
        raw = "memories:\n  - path: ''\n    tokenEstimate: 1\nsubcategories: []\n"
        assert parse_index(raw).error.field == "path"

    def test_bad_updated_at(self):
        raw = "memories:\n  - path: a/b\n    tokenEstimate: 1\n    updatedAt: soon\nsubcategories: []\n"
        assert parse_index(raw).error.field == "updatedAt"


class TestSerializeIndex:
    def test_empty(self):
        assert serialize_index(CategoryIndex()).value == "memories: []\nsubcategories: []\n"

    def test_layout_omits_unset_fields(self):
        index = CategoryIndex(
            memories=[IndexMemoryEntry(path="project/cortex/design", token_estimate=1)],
            subcategories=[SubcategoryEntry(path="project/cortex/api", memory_count=0)],
        )
        assert serialize_index(index).value == (
            "memories:\n"
            "  - path: project/cortex/design\n"
            "    tokenEstimate: 1\n"
            "subcategories:\n"
            "  - path: project/cortex/api\n"
            "    memoryCount: 0\n"
        )

    def test_optional_fields_round_trip(self):
        index = CategoryIndex(
            memories=[
                IndexMemoryEntry(
                    path="a/b",
                    token_estimate=4,
                    summary="yes",
                    updated_at=datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc),
                )
            ],
            subcategories=[SubcategoryEntry(path="a/c", memory_count=2, description="Child: notes")],
        )
        raw = serialize_index(index).value
        assert "updatedAt: 2024-05-01T08:00:00.000Z" in raw
        assert parse_index(raw).value == index

    def test_keeps_entry_order(self):
        index = CategoryIndex(
            memories=[
                IndexMemoryEntry(path="a/z", token_estimate=1),
                IndexMemoryEntry(path="a/b", token_estimate=1),
            ]
        )
        raw = serialize_index(index).value
        assert raw.index("a/z") < raw.index("a/b")

    def test_invalid_entry_rejected(self):
        index = CategoryIndex(memories=[IndexMemoryEntry(path="", token_estimate=1)])
        assert serialize_index(index).code == ErrorCode.INVALID_INDEX

    def test_naive_updated_at_rejected(self):
        index = CategoryIndex(
            memories=[IndexMemoryEntry(path="a/b", token_estimate=1, updated_at=datetime(2024, 1, 1))]
        )
        assert serialize_index(index).error.field == "updatedAt"
