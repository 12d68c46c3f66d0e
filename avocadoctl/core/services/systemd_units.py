"""
Deterministic systemd naming for HITL artifacts.

Everything HITL creates can be found again from identifiers alone:

    mount point   <extensions-path>/<extension>
    mount unit    systemd-escaped mount point + ".mount"
    drop-in       <dropin-root>/<service-unit>.d/10-hitl-<extension>.conf

so unmount needs no persisted state.
"""

from __future__ import annotations

import glob
import string
from pathlib import Path

DROPIN_PREFIX = "10-hitl-"
DROPIN_SUFFIX = ".conf"

_UNIT_SUFFIXES = (
    ".service",
    ".socket",
    ".target",
    ".timer",
    ".path",
    ".mount",
    ".device",
    ".scope",
    ".slice",
    ".swap",
    ".automount",
)
_SAFE_CHARS = set(string.ascii_letters + string.digits + ":_.")


def escape_path(path: str | Path) -> str:
    """Escape a filesystem path the way ``systemd-escape --path`` does."""
    parts = [p for p in str(path).split("/") if p]
    if not parts:
        return "-"
    escaped = "/".join(parts)

    out = []
    for i, ch in enumerate(escaped):
        if ch == "/":
            out.append("-")
        elif ch in _SAFE_CHARS and not (i == 0 and ch == "."):
            out.append(ch)
        else:
            out.extend(f"\\x{b:02x}" for b in ch.encode("utf-8"))
    return "".join(out)


def mount_unit_name(mount_point: str | Path) -> str:
    """Name of the transient .mount unit systemd creates for *mount_point*."""
    return f"{escape_path(mount_point)}.mount"


def service_unit_name(service: str) -> str:
    """``nginx`` -> ``nginx.service``; names with a unit suffix pass through."""
    if service.endswith(_UNIT_SUFFIXES):
        return service
    return f"{service}.service"


def dropin_filename(extension: str) -> str:
    return f"{DROPIN_PREFIX}{extension}{DROPIN_SUFFIX}"


def dropin_path(dropin_root: Path, service: str, extension: str) -> Path:
    """Drop-in location for *service* bound to *extension*'s mount."""
    return dropin_root / f"{service_unit_name(service)}.d" / dropin_filename(extension)


def find_dropins(dropin_root: Path, extension: str) -> list[Path]:
    """Every HITL drop-in previously written for *extension*."""
    if not dropin_root.is_dir():
        return []
    pattern = f"*.d/{glob.escape(dropin_filename(extension))}"
    return sorted(p for p in dropin_root.glob(pattern) if p.is_file())


def render_dropin(mount_point: str | Path) -> str:
    """Drop-in tying a service to a HITL mount.

    The service requires the mount, is bound to its lifetime and starts
    after it.
    """
    unit = mount_unit_name(mount_point)
    return (
        "[Unit]\n"
        f"RequiresMountsFor={mount_point}\n"
        f"BindsTo={unit}\n"
        f"After={unit}\n"
    )
