"""
Composer — install-dir selection, argv builders, version parsing.

The official installer from getcomposer.org verifies its own payload and
writes the ``composer`` executable straight into ``--install-dir``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from provisioner.core.models.host import HostProfile, PrivilegeMode

COMPOSER_BINARY = "composer"
MANIFEST_FILE = "composer.json"

_VERSION_RE = re.compile(r"Composer\s+(?:version\s+)?v?(\d+)\.(\d+)(?:\.(\d+))?")


@dataclass(frozen=True)
class InstallTarget:
    """A candidate install directory and whether it needs sudo."""

    directory: Path
    use_sudo: bool


def install_target(
    directory: Path,
    writable: bool,
    host: HostProfile,
) -> InstallTarget | None:
    """Decide whether ``directory`` can receive the composer binary.

    Directly writable → no sudo. Otherwise the host must be able to
    elevate: root writes it as-is, a sudo-capable user through sudo.
    Without elevation, the directory is skipped.
    """
    if writable:
        return InstallTarget(directory=directory, use_sudo=False)
    if not host.can_elevate:
        return None
    return InstallTarget(directory=directory, use_sudo=host.privilege == PrivilegeMode.SUDO)


def installer_argv(php: str, installer: str, target: InstallTarget) -> list[str]:
    return [
        php, installer,
        f"--install-dir={target.directory}",
        f"--filename={COMPOSER_BINARY}",
    ]


def init_argv(composer: str, name: str, description: str) -> list[str]:
    return [
        composer, "init", "--no-interaction",
        f"--name={name}",
        f"--description={description}",
    ]


def require_argv(composer: str, package: str) -> list[str]:
    return [composer, "require", package, "--no-interaction", "--prefer-dist"]


def version_argv(composer: str) -> list[str]:
    return [composer, "--version", "--no-interaction"]


def parse_version(output: str) -> tuple[int, int, int] | None:
    """``Composer version 2.7.1 2024-02-09`` → ``(2, 7, 1)``."""
    m = _VERSION_RE.search(output)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)


def vendor_path(scratch_dir: Path, package: str) -> Path:
    """Where Composer puts ``vendor/name`` inside the scratch project."""
    return scratch_dir.joinpath("vendor", *package.split("/"))
