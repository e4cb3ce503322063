"""Concurrency cap for outbound LLM calls.

Struggle analysis runs after every chat turn, so under load the label
extractor alone could exhaust provider rate limits.  An asyncio.Semaphore
caps the number of *concurrent* outbound LLM requests per worker process.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

# 10 concurrent LLM calls per worker; with 4 workers, up to 40 cluster-wide.
_MAX_CONCURRENT_LLM = 10
_llm_semaphore: asyncio.Semaphore | None = None


def _get_semaphore() -> asyncio.Semaphore:
    """Lazy-init to ensure semaphore is bound to the running event loop."""
    global _llm_semaphore
    if _llm_semaphore is None:
        _llm_semaphore = asyncio.Semaphore(_MAX_CONCURRENT_LLM)
        logger.info("LLM concurrency semaphore initialized (max=%d)", _MAX_CONCURRENT_LLM)
    return _llm_semaphore


async def rate_limited_llm_call(
    func: Callable[..., Coroutine[Any, Any, Any]],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Execute an async LLM function with concurrency limiting.

    Usage::

        result = await rate_limited_llm_call(litellm.acompletion, model=..., messages=...)
    """
    async with _get_semaphore():
        return await func(*args, **kwargs)
