"""
Provision report — everything a run found, did, and failed at.

Advisories are failures that did not stop the run. They are collected
in order and rendered together in the summary instead of being
swallowed one by one.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from provisioner.core.models.action import Receipt
from provisioner.core.models.host import HostProfile


class Advisory(BaseModel):
    """A non-fatal failure recorded during a step."""

    step: str
    message: str
    action_id: str | None = None


class ProvisionReport(BaseModel):
    """Accumulated state of one provisioning run."""

    host: HostProfile | None = None

    runtime_package: str | None = None
    runtime_binary: str | None = None
    runtime_version: str | None = None
    int_size_bits: int | None = None

    required_extensions: list[str] = Field(default_factory=list)
    missing_extensions: list[str] = Field(default_factory=list)

    composer_path: str | None = None
    composer_version: str | None = None

    scratch_dir: str | None = None
    manifest_initialized: bool = False
    target_package: str = ""
    target_installed: bool = False

    advisories: list[Advisory] = Field(default_factory=list)
    receipts: list[Receipt] = Field(default_factory=list)

    def advise(self, step: str, message: str, receipt: Receipt | None = None) -> Advisory:
        """Record an advisory failure for ``step``."""
        advisory = Advisory(
            step=step,
            message=message,
            action_id=receipt.action_id if receipt else None,
        )
        self.advisories.append(advisory)
        return advisory

    def advisories_for(self, step: str) -> list[Advisory]:
        return [a for a in self.advisories if a.step == step]

    def to_dict(self, include_receipts: bool = False) -> dict[str, Any]:
        exclude = None if include_receipts else {"receipts"}
        return self.model_dump(mode="json", exclude=exclude)
