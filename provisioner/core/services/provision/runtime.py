"""
PHP runtime queries — argv builders and output parsers.

No subprocess here; the pipeline runs these through the shell adapter.
"""

from __future__ import annotations

import re

_INT_SIZE_SNIPPET = "echo PHP_INT_SIZE*8;"

# Matches a bare extension identifier; anything else never reaches PHP code
_EXT_NAME = re.compile(r"^[A-Za-z0-9_]+$")


def runtime_binary_candidates(runtime_package: str | None) -> list[str]:
    """Executable names that may provide the runtime, in lookup order.

    ``php`` first; versioned packages such as ``php83`` (Alpine) or
    ``php8.4`` (Debian) also ship a same-named binary.
    """
    names = ["php"]
    if runtime_package and runtime_package != "php" and "@" not in runtime_package:
        names.append(runtime_package)
    return names


def version_argv(php: str) -> list[str]:
    return [php, "-v"]


def int_size_argv(php: str) -> list[str]:
    return [php, "-r", _INT_SIZE_SNIPPET]


def extension_check_argv(php: str, extension: str) -> list[str]:
    """``php -r`` that exits 0 only when ``extension`` is loaded."""
    if not _EXT_NAME.match(extension):
        raise ValueError(f"Invalid extension name: {extension!r}")
    return [php, "-r", f"exit(extension_loaded('{extension}')?0:1);"]


def parse_int_size(output: str) -> int | None:
    """Integer width in bits from the ``PHP_INT_SIZE*8`` snippet, or None."""
    text = output.strip()
    if text.isdigit():
        return int(text)
    return None
