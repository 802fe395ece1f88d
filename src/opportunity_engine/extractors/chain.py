from __future__ import annotations

import logging
from typing import Callable, Sequence, TypeVar

from .text import PageView

logger = logging.getLogger(__name__)

T = TypeVar("T")


def first_accepted(
    strategies: Sequence[Callable[[PageView], T | None]],
    page: PageView,
    accept: Callable[[T], bool] = bool,
) -> T | None:
    """Try each strategy in order and return the first result ``accept`` approves."""
    for strategy in strategies:
        candidate = strategy(page)
        if candidate is None or not accept(candidate):
            continue
        logger.debug(
            "%s accepted for %s",
            getattr(strategy, "__name__", repr(strategy)),
            page.url,
        )
        return candidate
    return None
