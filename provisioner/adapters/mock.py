"""
Mock adapter — universal test double for adapter operations.

Stands in for the shell or http adapter so a whole provisioning run can
be exercised without a package manager, PHP or the network. Responses
are scripted per action ID; a key ending in ``*`` matches every action
ID with that prefix (``"runtime:probe:*"``).
"""

from __future__ import annotations

from collections.abc import Callable

from provisioner.adapters.base import Adapter, ExecutionContext
from provisioner.core.models.action import Receipt

Handler = Callable[[ExecutionContext], Receipt]


class MockAdapter(Adapter):
    """Scriptable adapter. Returns success for anything not scripted."""

    def __init__(
        self,
        adapter_name: str = "mock",
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._default_output = default_output
        self._responses: dict[str, Receipt | Handler] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def called_ids(self) -> list[str]:
        return [c.action.id for c in self._call_log]

    def calls_for(self, prefix: str) -> list[ExecutionContext]:
        """Contexts whose action ID starts with ``prefix``."""
        return [c for c in self._call_log if c.action.id.startswith(prefix)]

    def set_response(self, action_id: str, receipt: Receipt | Handler) -> None:
        """Set a fixed receipt, or a callable producing one, for an action ID."""
        self._responses[action_id] = receipt

    def set_output(self, action_id: str, output: str) -> None:
        """Configure an action to succeed with ``output``."""
        self._responses[action_id] = Receipt.success(
            adapter=self._name, action_id=action_id, output=output,
        )

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure an action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            return_code=1,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        action_id = context.action.id

        response = self._lookup(action_id)
        if response is None:
            return Receipt.success(
                adapter=self._name,
                action_id=action_id,
                output=self._default_output,
                command=list(context.action.params.get("argv", [])),
                metadata={"mock": True},
            )
        if callable(response):
            return response(context)
        return response.model_copy(update={"action_id": action_id})

    def _lookup(self, action_id: str) -> Receipt | Handler | None:
        if action_id in self._responses:
            return self._responses[action_id]
        best: str | None = None
        for key in self._responses:
            if key.endswith("*") and action_id.startswith(key[:-1]):
                if best is None or len(key) > len(best):
                    best = key
        return self._responses[best] if best else None

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
