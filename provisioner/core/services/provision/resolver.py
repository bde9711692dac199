"""
Ordered-preference resolver.

Given candidates in preference order and an existence predicate, return
the first candidate that satisfies it, or a fallback. Used to pick the
newest PHP package a package index actually carries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def resolve_first(
    candidates: Iterable[T],
    predicate: Callable[[T], bool],
    fallback: T,
) -> T:
    """First candidate for which ``predicate`` holds, else ``fallback``.

    The predicate is evaluated lazily, in order, and never again once a
    candidate matches. The fallback itself is not tested.
    """
    for candidate in candidates:
        if predicate(candidate):
            logger.debug("Resolved candidate: %s", candidate)
            return candidate
    logger.debug("No candidate matched, falling back to %s", fallback)
    return fallback
