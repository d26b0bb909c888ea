"""YAML loading/dumping shared by the frontmatter and index codecs.

Timestamps stay strings on both sides so they are validated (and written)
as RFC 3339 text rather than coerced by the YAML engine. Duplicate
mapping keys are rejected instead of silently keeping the last one.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any

import yaml
from yaml.constructor import ConstructorError

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class DuplicateKeyError(ConstructorError):
    """A mapping repeats a key."""


def _without_timestamps(resolvers: dict) -> dict:
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag != _TIMESTAMP_TAG]
        for first, entries in resolvers.items()
    }


class StrictLoader(yaml.SafeLoader):
    """Safe loader that refuses duplicate keys and keeps timestamps as text."""

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen: set = set()
            for key_node, _ in node.value:
                key = self.construct_object(key_node, deep=deep)
                if not isinstance(key, Hashable):
                    continue
                if key in seen:
                    raise DuplicateKeyError(
                        "while constructing a mapping",
                        node.start_mark,
                        f"found duplicate key {key!r}",
                        key_node.start_mark,
                    )
                seen.add(key)
        return super().construct_mapping(node, deep=deep)


class StoreDumper(yaml.SafeDumper):
    """Safe dumper that indents block sequences under their key."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


StrictLoader.yaml_implicit_resolvers = _without_timestamps(yaml.SafeLoader.yaml_implicit_resolvers)
StoreDumper.yaml_implicit_resolvers = _without_timestamps(yaml.SafeDumper.yaml_implicit_resolvers)


def load(text: str) -> Any:
    """Parse YAML text; raises ``yaml.YAMLError`` on malformed input."""
    return yaml.load(text, Loader=StrictLoader)


def dump(data: Any, *, flow_lists: bool = False) -> str:
    """Dump ``data`` preserving key order.

    With ``flow_lists`` scalar lists are written inline (``[a, b]``).
    """
    return yaml.dump(
        data,
        Dumper=StoreDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=None if flow_lists else False,
        width=float("inf"),
    )
