"""
Extension models — what discovery finds on disk.

Extensions are never constructed by hand outside discovery; every
invocation re-derives them from the filesystem.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict

RAW_SUFFIX = ".raw"
RELEASE_PREFIX = "extension-release."


def extension_name_error(name: str) -> str | None:
    """Why *name* is not a usable extension identifier, or None if it is.

    Identifiers become single path components under the extensions path,
    the runtime directory and drop-in file names.
    """
    if not name:
        return "Extension name must not be empty"
    if "/" in name or "\0" in name or ".." in name or name == ".":
        return f"Invalid extension name '{name}': must be a single path component"
    return None


class Extension(BaseModel):
    """An extension available in the extensions path."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    image: bool = False     # single-file .raw image vs. directory tree

    @classmethod
    def from_path(cls, path: Path) -> Extension | None:
        """Build an Extension from a directory entry, or None if it isn't one."""
        if path.is_dir():
            return cls(name=path.name, path=path)
        if path.is_file() and path.name.endswith(RAW_SUFFIX):
            return cls(name=path.name[: -len(RAW_SUFFIX)], path=path, image=True)
        return None


class ExtensionRelease(BaseModel):
    """A release-metadata file belonging to one extension."""

    model_config = ConfigDict(frozen=True)

    extension: str
    path: Path
    hierarchy: Literal["sysext", "confext"] = "sysext"

    @classmethod
    def from_file(
        cls,
        path: Path,
        hierarchy: Literal["sysext", "confext"] = "sysext",
    ) -> ExtensionRelease:
        name = path.name
        if name.startswith(RELEASE_PREFIX):
            name = name[len(RELEASE_PREFIX):]
        return cls(extension=name, path=path, hierarchy=hierarchy)
