"""
Provisioning services — detection, manager profiles, resolution, PHP
and Composer helpers.

Everything here is pure or read-only; side effects go through the
adapter registry in :mod:`provisioner.core.engine.pipeline`.
"""

from provisioner.core.services.provision.detection import (
    detect_host,
    detect_package_manager,
    detect_privilege,
)
from provisioner.core.services.provision.managers import (
    PROFILES,
    ManagerProfile,
    get_profile,
)
from provisioner.core.services.provision.resolver import resolve_first

__all__ = [
    "PROFILES",
    "ManagerProfile",
    "detect_host",
    "detect_package_manager",
    "detect_privilege",
    "get_profile",
    "resolve_first",
]
