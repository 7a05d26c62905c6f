"""Accumulation and serialization of the evaluation report."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

from .models import ErrorRecord, JobDescriptor, ReportEntry

AttrPath = tuple[str, ...]


def format_attr_path(path: AttrPath) -> str:
    """Join path segments with dots; the root is the empty string."""
    return ".".join(path)


class Report:
    """Ordered mapping from attribute path to job or error.

    Each path is recorded at most once. The report is frozen once it has been
    serialized.
    """

    def __init__(self):
        self._entries: dict[AttrPath, ReportEntry] = {}
        self._index: dict[str, ReportEntry] = {}
        self._frozen = False

    def add(self, path: AttrPath, entry: ReportEntry) -> None:
        if self._frozen:
            raise RuntimeError("report has already been serialized")
        if path in self._entries:
            raise ValueError(f"duplicate report entry for ‘{format_attr_path(path)}’")
        self._entries[path] = entry
        self._index.setdefault(format_attr_path(path), entry)

    def add_job(self, path: AttrPath, job: JobDescriptor) -> None:
        self.add(path, job)

    def add_error(self, path: AttrPath, message: str) -> None:
        self.add(path, ErrorRecord(message))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, attr_path: object) -> bool:
        return attr_path in self._index

    def __getitem__(self, attr_path: str) -> ReportEntry:
        return self._index[attr_path]

    def items(self) -> Iterator[tuple[str, ReportEntry]]:
        for path, entry in self._entries.items():
            yield format_attr_path(path), entry

    def by_attr_path(self) -> dict[str, ReportEntry]:
        return dict(self.items())

    @property
    def jobs(self) -> dict[str, JobDescriptor]:
        return {k: v for k, v in self.items() if isinstance(v, JobDescriptor)}

    @property
    def errors(self) -> dict[str, ErrorRecord]:
        return {k: v for k, v in self.items() if isinstance(v, ErrorRecord)}

    def to_dict(self, nested: bool = True) -> dict[str, Any]:
        """
        Convert the report to JSON-ready data.

        Args:
            nested: Nest one object per path segment; otherwise use the
                dot-joined attribute path as a top-level key

        Returns:
            Report dict
        """
        if not nested:
            flat: dict[str, Any] = {}
            for key, entry in self.items():
                if key in flat:
                    raise ValueError(f"report entry ‘{key}’ collides with another entry")
                flat[key] = entry.to_dict()
            return flat

        result: dict[str, Any] = {}
        leaves: set[int] = set()
        for path, entry in self._entries.items():
            segments = path or ("",)
            node = result
            for segment in segments[:-1]:
                child = node.setdefault(segment, {})
                if id(child) in leaves:
                    raise ValueError(
                        f"report entry ‘{format_attr_path(path)}’ is nested under another entry"
                    )
                node = child
            if segments[-1] in node:
                raise ValueError(f"report entry ‘{format_attr_path(path)}’ collides with a group")
            leaf = entry.to_dict()
            leaves.add(id(leaf))
            node[segments[-1]] = leaf
        return result

    def to_json(self, nested: bool = True, indent: int | None = 2) -> str:
        """Serialize the report and freeze it against further changes."""
        text = json.dumps(self.to_dict(nested=nested), indent=indent, ensure_ascii=False)
        self._frozen = True
        return text
