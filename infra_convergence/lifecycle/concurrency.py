"""Fan-out helper for independent waits.

Each wait is a plain blocking call, so independent resources are waited
on in parallel by giving every wait its own thread.  The waits share no
state and impose no ordering on each other.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

logger = logging.getLogger("infra_convergence.lifecycle.concurrency")

T = TypeVar("T")

#: Upper bound on threads used when the caller does not pass one.
DEFAULT_MAX_WORKERS = 8


def run_concurrently(
    tasks: Mapping[str, Callable[[], T]],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> dict[str, T | Exception]:
    """Run zero-argument callables on a thread pool and collect outcomes.

    Args:
        tasks: Mapping of key (usually a resource id) to callable.
        max_workers: Maximum number of concurrent threads (>= 1).

    Returns:
        A dict with the same keys, each mapped to the callable's return
        value or to the exception it raised.  One failing task never
        affects the others.

    Raises:
        ValueError: If *max_workers* is below 1.
    """
    if max_workers < 1:
        msg = f"max_workers must be >= 1, got {max_workers}"
        raise ValueError(msg)
    if not tasks:
        return {}

    workers = min(max_workers, len(tasks))
    logger.info("Concurrent waits started | tasks=%d | workers=%d", len(tasks), workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="convergence") as pool:
        futures = {key: pool.submit(fn) for key, fn in tasks.items()}

    results: dict[str, T | Exception] = {}
    failed = 0
    for key, future in futures.items():
        exc = future.exception()
        if exc is None:
            results[key] = future.result()
        elif isinstance(exc, Exception):
            failed += 1
            results[key] = exc
        else:
            raise exc

    logger.info(
        "Concurrent waits finished | tasks=%d | failed=%d",
        len(tasks),
        failed,
    )
    return results
