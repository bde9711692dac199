"""
HTTP download adapter — fetch one file over HTTPS to disk.

Used for the Composer bootstrap script. Plain ``urllib.request``; the
file is written only once the full body has been received.
"""

from __future__ import annotations

import logging
import time
import urllib.error
import urllib.request
from pathlib import Path

from provisioner import __version__
from provisioner.adapters.base import Adapter, ExecutionContext
from provisioner.core.models.action import Receipt

logger = logging.getLogger(__name__)

_USER_AGENT = f"liveproto-provisioner/{__version__}"


class HttpDownloadAdapter(Adapter):
    """Download a URL to a local file.

    Action params:
        url (str): HTTPS URL to fetch.
        dest (str): Destination path (relative to working_dir or absolute).
    """

    @property
    def name(self) -> str:
        return "http"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        url = context.action.params.get("url", "")
        if not url:
            return False, "Missing required param: 'url'"
        if not url.startswith("https://"):
            return False, f"Refusing non-HTTPS download: {url}"
        if not context.action.params.get("dest"):
            return False, "Missing required param: 'dest'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        url = context.action.params["url"]
        dest = Path(context.action.params["dest"])
        if not dest.is_absolute():
            dest = Path(context.working_dir) / dest

        logger.debug("Downloading %s → %s", url, dest)
        start = time.monotonic()

        try:
            req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
            with urllib.request.urlopen(req, timeout=context.timeout) as resp:
                body = resp.read()
        except (urllib.error.URLError, OSError, ValueError) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Download failed: {e}",
                metadata={"url": url},
            )

        try:
            dest.write_bytes(body)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Cannot write {dest}: {e}",
                metadata={"url": url},
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=f"Downloaded {len(body)} bytes to {dest}",
            duration_ms=int((time.monotonic() - start) * 1000),
            metadata={"url": url, "path": str(dest), "size": len(body)},
        )
