"""
Directive aggregator — one deduplicated action list per directive kind.

Release files are visited in alphabetical order of extension name
(stable, so a sysext file precedes the confext file of the same
extension). For each matching directive:

    ON_MERGE / ON_UNMERGE   the whole value is one entry (never split,
                            not even on ';')
    MODPROBE / ENABLE_SERVICES
                            split on whitespace, one entry per token

An entry is appended only the first time it is seen, so the first
extension alphabetically contributes first and a command declared by
several extensions runs once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from avocadoctl.core.models.directive import ActionList, DirectiveKind, ReleaseDirective
from avocadoctl.core.models.extension import ExtensionRelease
from avocadoctl.core.services.release_parser import read_release_file

logger = logging.getLogger(__name__)


def ordered(releases: Iterable[ExtensionRelease]) -> list[ExtensionRelease]:
    """Releases in canonical processing order (by extension name, stable)."""
    return sorted(releases, key=lambda r: r.extension)


def load_directives(releases: Iterable[ExtensionRelease]) -> list[ReleaseDirective]:
    """Parse every release file, in canonical order."""
    directives: list[ReleaseDirective] = []
    for release in ordered(releases):
        directives.extend(read_release_file(release))
    return directives


def directive_tokens(directive: ReleaseDirective) -> list[str]:
    """Entries contributed by one directive.

    Multi-value fields containing quote characters are rejected with a
    warning rather than repaired.
    """
    value = directive.value.strip()
    if not value:
        return []

    if not directive.kind.multi_value:
        return [value]

    if '"' in value or "'" in value:
        logger.warning(
            "Ignoring malformed %s value in extension '%s' (line %d): %r",
            directive.key,
            directive.extension,
            directive.line,
            directive.value,
        )
        return []

    return value.split()


def aggregate_directives(
    directives: Iterable[ReleaseDirective],
    kind: DirectiveKind,
) -> ActionList:
    """Deduplicated entries of *kind*, in the order of *directives*."""
    actions = ActionList()
    for directive in directives:
        if directive.kind is kind:
            actions.extend(directive_tokens(directive))
    return actions


def aggregate(releases: Sequence[ExtensionRelease], kind: DirectiveKind) -> ActionList:
    """Parse *releases* and aggregate directives of *kind*."""
    return aggregate_directives(load_directives(releases), kind)


class DirectiveSnapshot:
    """Directives of a release set parsed once, queried per kind.

    The lifecycle engine takes one snapshot per phase so that all
    action lists of that phase come from the same view of the disk.
    """

    def __init__(self, releases: Iterable[ExtensionRelease]):
        self.releases = ordered(releases)
        self.directives = load_directives(self.releases)

    @property
    def extensions(self) -> list[str]:
        return list(dict.fromkeys(r.extension for r in self.releases))

    def actions(self, kind: DirectiveKind) -> ActionList:
        return aggregate_directives(self.directives, kind)

    def declares(self, kind: DirectiveKind, value: str) -> bool:
        """Whether any extension declares exactly *value* for *kind*."""
        return value in self.actions(kind)
