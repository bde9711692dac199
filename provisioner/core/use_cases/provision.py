"""
Provision use case — orchestrate a full provisioning run.

Ties together settings loading, adapter wiring and the pipeline, and
turns fatal errors into a result the CLI can render and exit on.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry, build_default_registry
from provisioner.core.config.loader import ConfigError, ProvisionSettings, load_settings
from provisioner.core.engine.pipeline import (
    FatalProvisionError,
    ProvisionContext,
    Provisioner,
)
from provisioner.core.models.report import ProvisionReport
from provisioner.core.services.provision.detection import Which

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of the provision use case."""

    report: ProvisionReport | None = None
    error: str | None = None
    failed_step: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.error else 0

    def to_dict(self, include_receipts: bool = False) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
            result["failed_step"] = self.failed_step
        if self.report is not None:
            result["report"] = self.report.to_dict(include_receipts=include_receipts)
        return result


def resolve_home() -> Path:
    """``$HOME``, falling back to the user database entry."""
    home = os.environ.get("HOME")
    return Path(home) if home else Path.home()


def run_provision(
    config_path: Path | None = None,
    *,
    settings: ProvisionSettings | None = None,
    registry: AdapterRegistry | None = None,
    home: Path | None = None,
    cwd: Path | None = None,
    which: Which = shutil.which,
    euid: int | None = None,
) -> ProvisionResult:
    """Run the provisioning pipeline.

    Args:
        config_path: Optional explicit settings file.
        settings: Pre-built settings (skips loading; used by tests).
        registry: Adapter registry; defaults to the real adapters.
        home: Home directory for the scratch project and ``~`` install dirs.
        cwd: Working directory for the transient installer script.
        which: PATH lookup function.
        euid: Effective uid override.

    Returns:
        ProvisionResult with the report and, on a fatal step, the error.
    """
    result = ProvisionResult()

    if settings is None:
        try:
            settings = load_settings(config_path)
        except ConfigError as e:
            result.error = str(e)
            result.failed_step = "config"
            return result

    ctx = ProvisionContext(
        settings=settings,
        registry=registry or build_default_registry(timeout=settings.command_timeout),
        home=home or resolve_home(),
        cwd=cwd or Path.cwd(),
        which=which,
        euid=euid,
    )

    provisioner = Provisioner(ctx)
    try:
        result.report = provisioner.run()
    except FatalProvisionError as e:
        result.report = e.report
        result.error = e.message
        result.failed_step = e.step

    return result
