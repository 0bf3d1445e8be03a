"""Background task dispatch for fire-and-forget indexing.

Every job runs inside a catch-and-log wrapper: a failed job is reported in
the log and never surfaces to the code that submitted it.
"""

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol

from workrag.constants import DEFAULT_INDEXING_WORKERS

logger = logging.getLogger(__name__)


class Dispatcher(Protocol):
    def submit(self, fn: Callable[..., Any], *args: Any, description: str = "") -> None: ...

    def shutdown(self, wait: bool = True) -> None: ...


def run_contained(fn: Callable[..., Any], *args: Any, description: str = "") -> None:
    """Call fn(*args), logging instead of raising on failure."""
    try:
        fn(*args)
    except Exception as e:
        label = description or getattr(fn, "__name__", "background job")
        logger.error(f"❌ {label} failed: {e}", exc_info=True)


class BackgroundDispatcher:
    """Runs jobs on a thread pool without waiting for them."""

    def __init__(self, max_workers: int = DEFAULT_INDEXING_WORKERS) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="workrag-index")
        self._closed = False

    def submit(self, fn: Callable[..., Any], *args: Any, description: str = "") -> Future | None:
        if self._closed:
            logger.warning(f"⚠️ Dispatcher closed; dropping {description or 'job'}")
            return None
        return self._executor.submit(run_contained, fn, *args, description=description)

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)


class ImmediateDispatcher:
    """Runs jobs inline; used by the CLI and in tests."""

    def submit(self, fn: Callable[..., Any], *args: Any, description: str = "") -> None:
        run_contained(fn, *args, description=description)

    def shutdown(self, wait: bool = True) -> None:
        pass
