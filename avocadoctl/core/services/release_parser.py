"""
Release-metadata parser.

Turns the text of an ``extension-release.<name>`` file into a list of
ReleaseDirective. The format is the os-release one: one ``KEY=VALUE``
per line, value optionally quoted, ``#`` comments and blank lines
ignored. Anything else is skipped, never an error.

A release file that is missing or unreadable yields no directives and
a warning: it must not block merging or unmerging its extension.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from avocadoctl.core.models.directive import DirectiveKind, ReleaseDirective
from avocadoctl.core.models.extension import ExtensionRelease

logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
_QUOTES = ('"', "'")


def parse_release_content(content: str, extension: str) -> list[ReleaseDirective]:
    """Parse release-file text into directives, in file order."""
    directives: list[ReleaseDirective] = []

    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        match = _LINE_RE.match(line)
        if match is None:
            logger.debug("%s:%d: ignoring line %r", extension, lineno, line)
            continue

        key, value = match.group(1), match.group(2)
        directives.append(
            ReleaseDirective(
                kind=DirectiveKind.from_key(key),
                key=key,
                value=unquote(value),
                extension=extension,
                line=lineno,
            )
        )

    return directives


def unquote(value: str) -> str:
    """Strip one pair of matching surrounding quotes; keep inner whitespace."""
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def read_release_file(release: ExtensionRelease) -> list[ReleaseDirective]:
    """Parse one release file. Missing/unreadable files give []."""
    try:
        content = release.path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning(
            "Could not read release file for extension '%s' (%s): %s",
            release.extension,
            release.path,
            e,
        )
        return []
    return parse_release_content(content, release.extension)


def find_extension_release(extension_dir: Path, extension: str) -> list[ExtensionRelease]:
    """Release files shipped inside an extension tree (sysext, then confext)."""
    candidates: list[ExtensionRelease] = []
    for subdir, hierarchy in (
        ("usr/lib/extension-release.d", "sysext"),
        ("etc/extension-release.d", "confext"),
    ):
        path = extension_dir / subdir / f"extension-release.{extension}"
        if path.is_file():
            candidates.append(ExtensionRelease(extension=extension, path=path, hierarchy=hierarchy))
    return candidates
