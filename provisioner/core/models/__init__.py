"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import Action, Receipt, HostProfile, ProvisionReport
"""

from provisioner.core.models.action import Action, Receipt
from provisioner.core.models.host import (
    PACKAGE_MANAGER_PROBES,
    HostProfile,
    PackageManagerKind,
    PrivilegeMode,
)
from provisioner.core.models.report import Advisory, ProvisionReport

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # host.py
    "HostProfile",
    "PACKAGE_MANAGER_PROBES",
    "PackageManagerKind",
    "PrivilegeMode",
    # report.py
    "Advisory",
    "ProvisionReport",
]
