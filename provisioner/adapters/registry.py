"""
Adapter registry — central dispatch for all adapter operations.

The pipeline never talks to adapters directly — always through the
registry, which builds the execution context, validates, executes and
times every action, and guarantees a Receipt comes back.
"""

from __future__ import annotations

import logging
import time

from provisioner.adapters.base import Adapter, ExecutionContext
from provisioner.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters."""

    def __init__(self, timeout: float | None = None):
        self._adapters: dict[str, Adapter] = {}
        self._timeout = timeout

    def register(self, adapter: Adapter) -> None:
        """Register an adapter under its name."""
        name = adapter.name
        if name in self._adapters:
            logger.debug("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter

    def execute_action(
        self,
        action: Action,
        cwd: str = ".",
        timeout: float | None = None,
    ) -> Receipt:
        """Execute an action through the adapter it names.

        Args:
            action: The action to execute.
            cwd: Default working directory.
            timeout: Per-action timeout; falls back to the registry default.

        Returns:
            Receipt with execution results. Never raises.
        """
        start_time = time.monotonic()

        context = ExecutionContext(
            action=action,
            cwd=cwd,
            timeout=timeout if timeout is not None else self._timeout,
        )

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
            if not is_valid:
                return Receipt.failure(
                    adapter=action.adapter,
                    action_id=action.id,
                    error=f"Validation failed: {error_msg}",
                )
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = receipt.duration_ms or int((time.monotonic() - start_time) * 1000)
        return receipt


def build_default_registry(timeout: float | None = None) -> AdapterRegistry:
    """Registry wired with the real shell, http and filesystem adapters."""
    from provisioner.adapters.http.download import HttpDownloadAdapter
    from provisioner.adapters.shell.command import ShellCommandAdapter
    from provisioner.adapters.shell.filesystem import FilesystemAdapter

    registry = AdapterRegistry(timeout=timeout)
    registry.register(ShellCommandAdapter())
    registry.register(HttpDownloadAdapter())
    registry.register(FilesystemAdapter())
    return registry
