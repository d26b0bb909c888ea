"""Tests for incremental index updates and the full reindex."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from memtree.errors import ErrorCode
from memtree.index.categories import CategoryIndexStore
from memtree.index.maintenance import IndexMaintainer
from memtree.memory.files import MemoryFileStore

BODY = "---\ncreatedAt: 2024-01-01T00:00:00Z\nupdatedAt: 2024-01-01T00:00:00Z\ntags: []\nsource: user\n---\n"


@pytest.fixture
def maintainer(tmp_path: Path) -> IndexMaintainer:
    root = tmp_path / "memory"
    return IndexMaintainer(MemoryFileStore(root), CategoryIndexStore(root))


def _write(maintainer: IndexMaintainer, slug_path: str, body: str = "Hello") -> None:
    content = BODY + body
    assert maintainer.files.write(slug_path, content).ok
    assert maintainer.update_after_write(slug_path, content).ok


def _index(maintainer: IndexMaintainer, category: str):
    return maintainer.indexes.read(category).value


def _snapshot(root: Path) -> dict[str, bytes]:
    return {str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("index.yaml"))}


class TestUpdateAfterWrite:
    def test_nested_write(self, maintainer: IndexMaintainer):
        _write(maintainer, "project/cortex/design")

        leaf = _index(maintainer, "project/cortex")
        assert leaf.memory("project/cortex/design").token_estimate == 1

        project = _index(maintainer, "project")
        assert project.subcategory("project/cortex").memory_count == 1
        assert project.memories == []

        root = _index(maintainer, "")
        # Counts only memories directly in "project", which has none
        assert root.subcategory("project").memory_count == 0

    def test_root_counts_direct_memories(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/one")
        _write(maintainer, "a/two")
        _write(maintainer, "a/b/c")
        assert _index(maintainer, "").subcategory("a").memory_count == 2
        assert _index(maintainer, "a").subcategory("a/b").memory_count == 1

    def test_rewrite_replaces_entry(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/one", "x")
        _write(maintainer, "a/one", "y" * 400)
        memories = _index(maintainer, "a").memories
        assert len(memories) == 1
        assert memories[0].token_estimate == 100

    def test_memories_sorted(self, maintainer: IndexMaintainer):
        for slug in ("a/zeta", "a/alpha", "a/mid"):
            _write(maintainer, slug)
        assert [m.path for m in _index(maintainer, "a").memories] == ["a/alpha", "a/mid", "a/zeta"]

    def test_keeps_descriptions(self, maintainer: IndexMaintainer):
        maintainer.indexes.set_subcategory_description("a", "a/b", "Bee")
        _write(maintainer, "a/b/c")
        entry = _index(maintainer, "a").subcategory("a/b")
        assert entry.description == "Bee"
        assert entry.memory_count == 1

    def test_missing_index_without_create(self, maintainer: IndexMaintainer):
        maintainer.files.write("a/one", BODY)
        result = maintainer.update_after_write("a/one", BODY, create_when_missing=False)
        assert result.code == ErrorCode.INDEX_UPDATE_FAILED

    def test_malformed_index_fails(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/one")
        (maintainer.files.root / "a" / "index.yaml").write_text("- not an index\n")
        result = maintainer.update_after_write("a/two", BODY)
        assert result.code == ErrorCode.INDEX_UPDATE_FAILED

    def test_invalid_slug(self, maintainer: IndexMaintainer):
        assert maintainer.update_after_write("solo", BODY).code == ErrorCode.INDEX_UPDATE_FAILED


class TestUpdateAfterRemove:
    def test_drops_entry_and_refreshes_counts(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/b/one")
        _write(maintainer, "a/b/two")
        maintainer.files.remove("a/b/one")
        assert maintainer.update_after_remove("a/b/one").ok
        assert [m.path for m in _index(maintainer, "a/b").memories] == ["a/b/two"]
        assert _index(maintainer, "a").subcategory("a/b").memory_count == 1

    def test_unknown_entry_is_noop(self, maintainer: IndexMaintainer):
        assert maintainer.update_after_remove("a/never").ok
        assert _index(maintainer, "a") is None


class TestReindex:
    def test_empty_store(self, maintainer: IndexMaintainer):
        result = maintainer.reindex()
        assert result.ok
        assert result.value.memory_count == 0
        assert (maintainer.files.root / "index.yaml").read_text() == "memories: []\nsubcategories: []\n"

    def test_rebuilds_from_files(self, maintainer: IndexMaintainer):
        maintainer.files.write("project/cortex/design", BODY + "Hello")
        maintainer.files.write("project/notes", BODY + "a" * 40)
        result = maintainer.reindex()
        assert result.ok
        assert result.value.memory_count == 2
        assert result.value.categories == ["", "project", "project/cortex"]

        assert _index(maintainer, "project").memory("project/notes").token_estimate == 10
        assert _index(maintainer, "project").subcategory("project/cortex").memory_count == 1
        assert _index(maintainer, "").subcategory("project").memory_count == 1
        assert _index(maintainer, "project/cortex").memory("project/cortex/design").token_estimate == 1

    def test_matches_incremental_updates(self, maintainer: IndexMaintainer):
        for slug in ("a/one", "a/b/two", "c/d/e/three"):
            _write(maintainer, slug)
        incremental = _snapshot(maintainer.files.root)
        maintainer.reindex()
        assert _snapshot(maintainer.files.root) == incremental

    def test_idempotent(self, maintainer: IndexMaintainer):
        for slug in ("x/one", "x/y/two", "z/three"):
            maintainer.files.write(slug, BODY + slug)
        maintainer.reindex()
        first = _snapshot(maintainer.files.root)
        maintainer.reindex()
        assert _snapshot(maintainer.files.root) == first

    def test_drops_descriptions(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/b/c")
        maintainer.indexes.set_subcategory_description("a", "a/b", "Bee")
        maintainer.reindex()
        assert _index(maintainer, "a").subcategory("a/b").description is None

    def test_repairs_corrupt_index(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/one")
        (maintainer.files.root / "a" / "index.yaml").write_text("garbage: [")
        assert maintainer.reindex().ok
        assert _index(maintainer, "a").memory("a/one") is not None

    def test_removes_stale_indexes(self, maintainer: IndexMaintainer, caplog):
        _write(maintainer, "a/b/c")
        maintainer.files.remove("a/b/c")
        with caplog.at_level(logging.WARNING, logger="memtree.index.maintenance"):
            result = maintainer.reindex()
        assert sorted(result.value.removed) == ["a", "a/b"]
        assert not (maintainer.files.root / "a" / "b" / "index.yaml").exists()
        assert "stale index" in caplog.text

    def test_invalid_file_name_fails(self, maintainer: IndexMaintainer):
        root = maintainer.files.root
        (root / "Bad Dir").mkdir(parents=True)
        (root / "Bad Dir" / "note.md").write_text(BODY)
        result = maintainer.reindex()
        assert result.code == ErrorCode.INDEX_UPDATE_FAILED
        assert result.error.cause.code == ErrorCode.INVALID_SLUG_PATH

    def test_top_level_file_fails(self, maintainer: IndexMaintainer):
        root = maintainer.files.root
        root.mkdir(parents=True)
        (root / "loose.md").write_text(BODY)
        assert maintainer.reindex().code == ErrorCode.INDEX_UPDATE_FAILED

    def test_ignores_other_extensions(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/one")
        (maintainer.files.root / "a" / "scratch.txt").write_text("x")
        assert maintainer.reindex().value.memory_count == 1


class TestCheck:
    def test_clean_store(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/one")
        assert maintainer.check().value == []

    def test_reports_malformed_files(self, maintainer: IndexMaintainer):
        _write(maintainer, "a/one")
        (maintainer.files.root / "a" / "two.md").write_text("no frontmatter")
        (maintainer.files.root / "a" / "index.yaml").write_text("memories: 3\n")
        problems = maintainer.check().value
        assert [p.code for p in problems] == [ErrorCode.MISSING_FRONTMATTER, ErrorCode.STORAGE_ERROR]
        assert problems[0].path.endswith("two.md")
