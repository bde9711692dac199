"""
Host detection — privilege mode and package manager.

Read-only probes. ``which`` and the effective uid are injectable so the
priority rules can be exercised against any simulated PATH.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable

from provisioner.core.models.host import (
    PACKAGE_MANAGER_PROBES,
    HostProfile,
    PackageManagerKind,
    PrivilegeMode,
)

logger = logging.getLogger(__name__)

Which = Callable[[str], str | None]


def current_euid() -> int:
    """Effective uid, or -1 on platforms without one."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid() if geteuid else -1


def detect_privilege(which: Which = shutil.which, euid: int | None = None) -> PrivilegeMode:
    """Root if uid 0, else sudo if the helper is on PATH, else none."""
    if euid is None:
        euid = current_euid()
    if euid == 0:
        return PrivilegeMode.ROOT
    if which("sudo"):
        return PrivilegeMode.SUDO
    return PrivilegeMode.NONE


def detect_package_manager(
    which: Which = shutil.which,
) -> tuple[PackageManagerKind, str] | None:
    """Return the first package manager on PATH in priority order.

    Returns:
        ``(kind, resolved_path)`` or None when no supported manager exists.
    """
    for kind, executable in PACKAGE_MANAGER_PROBES:
        path = which(executable)
        if path:
            logger.debug("Package manager probe: %s → %s", executable, path)
            return kind, path
    return None


def detect_host(which: Which = shutil.which, euid: int | None = None) -> HostProfile:
    """Probe privilege and package manager into one HostProfile.

    ``manager`` is None when nothing matched; deciding whether that is
    fatal is the caller's business.
    """
    privilege = detect_privilege(which, euid)
    found = detect_package_manager(which)
    if found is None:
        return HostProfile(privilege=privilege)
    kind, path = found
    return HostProfile(privilege=privilege, manager=kind, manager_path=path)
