"""
Filesystem adapter — the scratch-project and installer file operations.

Provides a receipt-returning interface for the few filesystem effects a
run has, so they show up in the report next to the commands.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from provisioner.adapters.base import Adapter, ExecutionContext
from provisioner.core.models.action import Receipt

logger = logging.getLogger(__name__)

_VALID_OPS = {"exists", "mkdir", "remove", "writable"}


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of 'exists', 'mkdir', 'remove', 'writable'.
        path (str): Target path (relative to working_dir or absolute).

    ``exists`` and ``writable`` always succeed; the answer is in
    ``metadata`` so a "no" is not mistaken for a failure.
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in _VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_VALID_OPS))}"

        if not context.action.params.get("path"):
            return False, "Missing required param: 'path'"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        target = Path(context.action.params["path"])
        if not target.is_absolute():
            target = Path(context.working_dir) / target

        try:
            if operation == "exists":
                return self._exists(context, target)
            if operation == "mkdir":
                return self._mkdir(context, target)
            if operation == "remove":
                return self._remove(context, target)
            return self._writable(context, target)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )

    def _exists(self, ctx: ExecutionContext, target: Path) -> Receipt:
        exists = target.exists()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=str(exists),
            metadata={
                "exists": exists,
                "is_dir": target.is_dir() if exists else False,
                "path": str(target),
            },
        )

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        created = not target.is_dir()
        target.mkdir(parents=True, exist_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory ready: {target}",
            metadata={"path": str(target), "created": created},
        )

    def _remove(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if not target.exists():
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"Nothing to remove: {target}",
                metadata={"path": str(target)},
            )
        target.unlink()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed {target}",
            metadata={"path": str(target)},
        )

    def _writable(self, ctx: ExecutionContext, target: Path) -> Receipt:
        # A missing directory is writable when its nearest existing ancestor is.
        probe = target
        while not probe.exists() and probe.parent != probe:
            probe = probe.parent
        writable = probe.is_dir() and os.access(probe, os.W_OK | os.X_OK)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=str(writable),
            metadata={"writable": writable, "exists": target.exists(), "path": str(target)},
        )
