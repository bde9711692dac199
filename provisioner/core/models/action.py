"""
Action and Receipt models — the execution contract.

Every external effect of a provisioning run (a package-manager call, a
PHP query, the installer download, a scratch-dir write) is an Action.
Its outcome is a Receipt. Adapters return Receipts and never raise, so
the pipeline can decide per step whether a failure is fatal or advisory.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested operation, dispatched to an adapter by name.

    ``id`` is namespaced by step (``runtime:probe:php8.4``,
    ``composer:download``) so receipts can be traced back to the step
    that produced them, and so test doubles can script outcomes.
    """

    id: str
    adapter: str                    # "shell", "http" or "filesystem"
    params: dict[str, Any] = Field(default_factory=dict)


class Receipt(BaseModel):
    """Result of one adapter execution."""

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    command: list[str] = Field(default_factory=list)
    return_code: int | None = None
    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the action failed."""
        return self.status == "failed"

    @property
    def first_line(self) -> str:
        """First non-empty output line (``php -v`` style banners)."""
        for line in self.output.splitlines():
            if line.strip():
                return line.strip()
        return ""

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            output=reason,
            **kwargs,
        )
