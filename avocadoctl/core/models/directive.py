"""
Release directive models.

Extensions ship a release-metadata file (``extension-release.<name>``)
with ``KEY=VALUE`` lines. The ``AVOCADO_*`` keys are operational
directives; everything else is carried as UNKNOWN and ignored by the
consumers.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict


class DirectiveKind(str, Enum):
    """Closed set of directive kinds understood by avocadoctl."""

    ON_MERGE = "AVOCADO_ON_MERGE"
    ON_UNMERGE = "AVOCADO_ON_UNMERGE"
    MODPROBE = "AVOCADO_MODPROBE"
    ENABLE_SERVICES = "AVOCADO_ENABLE_SERVICES"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_key(cls, key: str) -> DirectiveKind:
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == key:
                return kind
        return cls.UNKNOWN

    @property
    def multi_value(self) -> bool:
        """Whether the value is a whitespace-separated token list."""
        return self in (DirectiveKind.MODPROBE, DirectiveKind.ENABLE_SERVICES)


class ReleaseDirective(BaseModel):
    """One parsed ``KEY=VALUE`` line from a release file."""

    model_config = ConfigDict(frozen=True)

    kind: DirectiveKind
    key: str
    value: str              # quotes already stripped
    extension: str
    line: int = 0


class ActionList:
    """Insertion-ordered set of command strings or module/service names.

    ``add`` keeps the first occurrence and ignores later duplicates, so
    iteration order is first-discovery order.
    """

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: dict[str, None] = {}
        self.extend(items)

    def add(self, item: str) -> bool:
        """Append *item* unless already present. Returns True if added."""
        if item in self._items:
            return False
        self._items[item] = None
        return True

    def extend(self, items: Iterable[str]) -> None:
        for item in items:
            self.add(item)

    def without(self, item: str) -> ActionList:
        """A copy with *item* removed, order preserved."""
        return ActionList(i for i in self._items if i != item)

    def to_list(self) -> list[str]:
        return list(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ActionList):
            return self.to_list() == other.to_list()
        if isinstance(other, list):
            return self.to_list() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ActionList({self.to_list()!r})"
