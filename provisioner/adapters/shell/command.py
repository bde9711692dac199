"""
Shell command adapter — run one external command and capture it.

This is the single place where ``subprocess.run`` is called. Commands
are argv lists, never shell strings; sudo prefixing is decided by the
pipeline before the action gets here.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path

from provisioner.adapters.base import Adapter, ExecutionContext
from provisioner.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Output tails kept on receipts
_MAX_OUTPUT = 2000


class ShellCommandAdapter(Adapter):
    """Execute commands and capture output.

    Action params:
        argv (list[str]): The command to execute.
        cwd (str): Override working directory (default: context.cwd).
        env (dict): Extra environment variables.
    """

    @property
    def name(self) -> str:
        return "shell"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.params.get("argv")
        if not argv or not isinstance(argv, list):
            return False, "Missing required param: 'argv'"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv: list[str] = [str(a) for a in context.action.params["argv"]]
        cwd = context.working_dir
        timeout = context.timeout

        env = None
        extra_env = context.action.params.get("env")
        if extra_env:
            env = os.environ.copy()
            env.update({k: str(v) for k, v in extra_env.items()})

        logger.debug("Executing: %s (cwd=%s)", " ".join(argv), cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=env,
                stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command not found: {argv[0]}",
                command=argv,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                command=argv,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                command=argv,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = (result.stdout or "")[-_MAX_OUTPUT:].strip()
        stderr = (result.stderr or "")[-_MAX_OUTPUT:].strip()

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=stdout,
                command=argv,
                return_code=0,
                duration_ms=elapsed_ms,
                metadata={"stderr": stderr},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            output=stdout,
            command=argv,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
        )
