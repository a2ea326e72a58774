#!/usr/bin/env python3
"""Bounded concurrency helpers.

Used by the device service to run per-device patient lookups in parallel
without opening an unbounded number of requests against the patient
service.

Example:
    views = await process_concurrent(devices, enrich, max_concurrent=5)
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def process_concurrent(
    items: list[T],
    processor: Callable[[T], Awaitable[Any]],
    max_concurrent: int = 10,
) -> list[Any]:
    """Process items concurrently with bounded concurrency.

    Args:
        items: List of items to process
        processor: Async function to apply to each item
        max_concurrent: Maximum concurrent operations (default: 10)

    Returns:
        List of results in the same order as input items
    """
    if not items:
        return []

    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def bounded_processor(item: T) -> Any:
        async with semaphore:
            return await processor(item)

    logger.debug(f"Processing {len(items)} items (max_concurrent={max_concurrent})")
    tasks = [bounded_processor(item) for item in items]
    return list(await asyncio.gather(*tasks))
