"""
Fire-and-forget execution for event subscribers.

A subscriber failure is logged with its stack trace and swallowed here,
never in the caller: the mutation that published the event has already
committed. Task references are held until completion so the loop does
not garbage-collect a running delivery.
"""

import asyncio
import logging
import time
from typing import Awaitable, List, Set

logger = logging.getLogger(__name__)

_in_flight: Set[asyncio.Task] = set()


async def run_guarded(call: Awaitable[None], label: str) -> bool:
    """Await one delivery. Returns False when it raised."""
    started = time.perf_counter()
    try:
        await call
    except Exception as e:
        logger.error(f"Delivery failed: {label} - {e}", exc_info=True)
        return False
    elapsed = (time.perf_counter() - started) * 1000
    logger.debug(f"Delivered {label} ({elapsed:.0f}ms)")
    return True


def spawn(call: Awaitable[None], label: str) -> asyncio.Task:
    """Schedule a guarded delivery on the running loop, e.g. spawn(handler(event), "event-task_assigned-42")."""
    task = asyncio.create_task(run_guarded(call, label), name=label)
    _in_flight.add(task)
    task.add_done_callback(_in_flight.discard)
    return task


def in_flight() -> List[asyncio.Task]:
    """Deliveries that have not finished yet."""
    return [task for task in _in_flight if not task.done()]
