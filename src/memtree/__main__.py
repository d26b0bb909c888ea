"""Entry point: python -m memtree [reindex|check]

- "reindex": Rebuild every category index from the memory files
- "check":   Report memory and index files that fail to parse
"""

from __future__ import annotations

import logging
import sys

from memtree.config import load_config
from memtree.storage import FilesystemStorage


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _open_store() -> FilesystemStorage:
    config = load_config()
    _setup_logging(config.log_level)
    return FilesystemStorage.from_config(config)


def _run_reindex() -> int:
    storage = _open_store()
    result = storage.reindex()
    if not result.ok:
        print(f"reindex failed: [{result.code}] {result.error.message}", file=sys.stderr)
        return 1
    summary = result.value
    print(
        f"Reindexed {summary.memory_count} memories into "
        f"{len(summary.categories)} indexes under {storage.root}"
    )
    for category in summary.removed:
        print(f"  removed stale index: {category or '(root)'}")
    return 0


def _run_check() -> int:
    storage = _open_store()
    result = storage.check()
    if not result.ok:
        print(f"check failed: [{result.code}] {result.error.message}", file=sys.stderr)
        return 1
    for problem in result.value:
        where = problem.path or "?"
        if problem.line is not None:
            where = f"{where}:{problem.line}"
        print(f"{where}: [{problem.code}] {problem.message}")
    if result.value:
        print(f"{len(result.value)} malformed file(s)")
        return 1
    print(f"All files under {storage.root} parse cleanly")
    return 0


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""

    if cmd == "reindex":
        sys.exit(_run_reindex())
    elif cmd == "check":
        sys.exit(_run_check())
    else:
        print("Usage: python -m memtree [reindex|check]")
        print("  reindex  Rebuild every category index from the memory files")
        print("  check    Report memory and index files that fail to parse")
        sys.exit(1)


if __name__ == "__main__":
    main()
