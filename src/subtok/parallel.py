"""Ordered batch execution over a thread pool for read-only tokenizers."""

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Literal

from .errors import StrategyError

log = logging.getLogger(__name__)

ParallelModeName = Literal["auto", "batch", "off"]


class ParallelMode(str, Enum):
    """
    How a batch is spread over worker threads.

    ``OFF`` runs serially, ``BATCH`` always uses the pool, ``AUTO`` uses the
    pool only when there is more than one item and more than one worker.
    """

    AUTO = "auto"
    BATCH = "batch"
    OFF = "off"

    @classmethod
    def get(cls, mode: "ParallelMode | str") -> "ParallelMode":
        """Resolve a mode or a mode name (case-insensitive)."""
        if isinstance(mode, cls):
            return mode
        try:
            return cls[mode.upper()]
        except KeyError:
            raise StrategyError(
                "unknown parallel mode",
                invalid_name=mode,
                available_strats=list_parallel_modes(),
            )


def list_parallel_modes() -> list[str]:
    """Return available parallel mode names."""
    return [mode.value for mode in ParallelMode]


def resolve_workers(num_workers: int | None) -> int:
    """Worker count for a pool: cpu count by default, never below one."""
    if num_workers is None:
        return os.cpu_count() or 1
    return max(1, num_workers)


def map_ordered[T, R](
    func: Callable[[T], R],
    items: Sequence[T],
    mode: ParallelMode | ParallelModeName = ParallelMode.AUTO,
    num_workers: int | None = None,
) -> list[R]:
    """
    Apply ``func`` to every item, returning results in input order.

    :param mode: Parallel mode or its name.
    :param num_workers: Pool size; ``None`` uses the cpu count, ``0`` means one.
    :raises StrategyError: If ``mode`` names no known mode.
    """
    mode = ParallelMode.get(mode)
    if not items:
        return []
    workers = resolve_workers(num_workers)

    match mode:
        case ParallelMode.OFF:
            use_pool = False
        case ParallelMode.BATCH:
            use_pool = True
        case ParallelMode.AUTO:
            use_pool = len(items) > 1 and workers > 1

    if not use_pool:
        return [func(item) for item in items]

    log.debug(f"mapping {len(items)} items over {workers} threads")
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(func, items))


__all__ = [
    "ParallelModeName",
    "ParallelMode",
    "list_parallel_modes",
    "resolve_workers",
    "map_ordered",
]
