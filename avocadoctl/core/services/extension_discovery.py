"""
Extension discovery — the listing collaborator.

Two views of "which extensions exist":

    list_extensions()        what is available in the extensions path
                             (directories and .raw images)
    discover_releases()      what is merged right now, read from the
                             release-metadata directories of the merged
                             hierarchies

Both are pure reads of the filesystem; nothing is cached.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from avocadoctl.core.models.extension import Extension, ExtensionRelease

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when the extensions path cannot be listed."""


def list_extensions(extensions_dir: Path) -> list[Extension]:
    """Extensions available in *extensions_dir*, sorted by name.

    Raises:
        DiscoveryError: If the directory is missing or unreadable.
    """
    try:
        entries = list(extensions_dir.iterdir())
    except OSError as e:
        raise DiscoveryError(
            f"Error accessing extensions directory '{extensions_dir}': {e}"
        ) from e

    found: dict[str, Extension] = {}
    for entry in entries:
        ext = Extension.from_path(entry)
        if ext is None:
            logger.debug("Skipping non-extension entry %s", entry)
            continue
        if ext.name in found:
            logger.warning(
                "Extension '%s' present both as directory and image, using %s",
                ext.name,
                found[ext.name].path,
            )
            continue
        found[ext.name] = ext

    return [found[name] for name in sorted(found)]


def discover_releases(
    release_dirs: list[tuple[Path, Literal["sysext", "confext"]]],
) -> list[ExtensionRelease]:
    """Release files of the merged extensions, across hierarchies.

    A missing release directory just means nothing of that hierarchy is
    merged. An unreadable one is logged and skipped.
    """
    releases: list[ExtensionRelease] = []
    for directory, hierarchy in release_dirs:
        if not directory.is_dir():
            logger.debug("Release directory %s not present", directory)
            continue
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            logger.warning("Could not read extension release directory %s: %s", directory, e)
            continue
        for entry in entries:
            if entry.is_file():
                releases.append(ExtensionRelease.from_file(entry, hierarchy))
    return releases
