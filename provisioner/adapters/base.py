"""
Adapter base — the protocol contract between the pipeline and tools.

The pipeline never shells out or touches the network directly; it
builds Actions and hands them to adapters through the registry. That
keeps every provisioning step runnable against a MockAdapter without a
real package manager on the machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from provisioner.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action."""

    action: Action
    cwd: str = "."
    timeout: float | None = None

    @property
    def working_dir(self) -> str:
        """Resolved working directory, honouring a per-action ``cwd`` param."""
        return self.action.params.get("cwd") or self.cwd


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'http', 'filesystem')."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt. Must not raise."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
