"""
Host model — what the provisioner learned about the machine.

Determined once at the start of a run and threaded explicitly through
every step. Nothing here is read from ambient globals after detection.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class PrivilegeMode(str, Enum):
    """How privileged commands get elevated."""

    ROOT = "root"      # already uid 0, no prefix
    SUDO = "sudo"      # prefix with sudo
    NONE = "none"      # no elevation available; commands run as-is


class PackageManagerKind(str, Enum):
    """Supported host package managers, in probe priority order."""

    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    PACMAN = "pacman"
    APK = "apk"
    BREW = "brew"
    CHOCO = "choco"


# Probe order: (kind, executable looked up on PATH). First match wins.
PACKAGE_MANAGER_PROBES: tuple[tuple[PackageManagerKind, str], ...] = (
    (PackageManagerKind.APT, "apt-get"),
    (PackageManagerKind.DNF, "dnf"),
    (PackageManagerKind.YUM, "yum"),
    (PackageManagerKind.PACMAN, "pacman"),
    (PackageManagerKind.APK, "apk"),
    (PackageManagerKind.BREW, "brew"),
    (PackageManagerKind.CHOCO, "choco"),
)


class HostProfile(BaseModel):
    """Privilege mode and package manager of the current host."""

    privilege: PrivilegeMode
    manager: PackageManagerKind | None = None
    manager_path: str | None = None

    @property
    def can_elevate(self) -> bool:
        """Whether privileged commands can actually run privileged."""
        return self.privilege in (PrivilegeMode.ROOT, PrivilegeMode.SUDO)
