from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

ChangeKind = Literal["added", "removed", "modified"]


@dataclass(slots=True, frozen=True)
class ChangeRecord:
    """A single field-level difference between two snapshots."""

    path: str
    kind: ChangeKind
    old: Any = None
    new: Any = None

    @property
    def field(self) -> str:
        """Top-level property the change belongs to."""
        return self.path.split(".", 1)[0]


def diff(original: Mapping[str, Any], current: Mapping[str, Any], prefix: str = "") -> list[ChangeRecord]:
    """Compute ordered change records from ``original`` to ``current``.

    Nested mappings are compared key by key and reported with dotted paths.
    Lists and scalars are compared as whole values. Records follow the key
    order of ``current``; removals follow, in the key order of ``original``.
    """
    changes: list[ChangeRecord] = []

    for key, new in current.items():
        path = f"{prefix}{key}"
        if key not in original:
            changes.append(ChangeRecord(path, "added", None, new))
            continue

        old = original[key]
        if isinstance(old, Mapping) and isinstance(new, Mapping):
            changes.extend(diff(old, new, prefix=f"{path}."))
        elif old != new:
            changes.append(ChangeRecord(path, "modified", old, new))

    for key, old in original.items():
        if key not in current:
            changes.append(ChangeRecord(f"{prefix}{key}", "removed", old, None))

    return changes


def changed_fields(changes: list[ChangeRecord]) -> list[str]:
    """Distinct top-level fields touched by ``changes``, in first-seen order."""
    seen: dict[str, None] = {}
    for change in changes:
        seen.setdefault(change.field, None)
    return list(seen)
