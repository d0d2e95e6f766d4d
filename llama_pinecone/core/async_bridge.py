# llama_pinecone/core/async_bridge.py
# SPDX-License-Identifier: Apache-2.0

"""
Run the store's async operations from synchronous call sites.

Every store operation is implemented once as a coroutine; the sync entry
points (``add``, ``query``, ``delete``...) go through ``run_async``:

- No running loop in this thread: ``asyncio.run`` directly.
- A loop is already running (Jupyter, async web apps): the coroutine runs on
  a worker thread with its own loop, and the caller's contextvars are copied
  across so logging/tracing context survives the hop.

Timeouts are not handled here; per-request timeouts live on the Pinecone
index wrapper.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Coroutine, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS: int = 4


class AsyncBridge:
    """
    Shared bridge state: a lazily created executor used only when a loop is
    already running in the calling thread.
    """

    _lock = threading.RLock()
    _executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def _get_or_create_executor(cls) -> ThreadPoolExecutor:
        # caller holds cls._lock
        if cls._executor is None:
            cls._executor = ThreadPoolExecutor(
                max_workers=DEFAULT_MAX_WORKERS,
                thread_name_prefix="llama_pinecone_sync_",
            )
            logger.debug(
                "AsyncBridge: created ThreadPoolExecutor(max_workers=%d)",
                DEFAULT_MAX_WORKERS,
            )
        return cls._executor

    @classmethod
    def run_async(cls, coro: Coroutine[Any, Any, T]) -> T:
        """
        Execute ``coro`` from synchronous code and return its result.

        Exceptions raised by the coroutine propagate unchanged.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)

        logger.debug("AsyncBridge.run_async: running loop detected; using executor")
        ctx = contextvars.copy_context()
        with cls._lock:
            executor = cls._get_or_create_executor()
        future = executor.submit(ctx.run, asyncio.run, coro)
        return future.result()


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Convenience wrapper around ``AsyncBridge.run_async``."""
    return AsyncBridge.run_async(coro)


__all__ = [
    "AsyncBridge",
    "DEFAULT_MAX_WORKERS",
    "run_async",
]
