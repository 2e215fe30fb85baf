"""Background work that must never affect the request that started it.

Purchases hand their follow-up work (CRM upsert, purchase workflow trigger)
to a ``BestEffortRunner``. Each job runs as its own asyncio task after the
purchase has committed; failures are logged and dropped.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

class BestEffortRunner:
    """Fire-and-forget task runner with failure isolation."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, name: str, job: Callable[[], Awaitable[None]]) -> Optional[asyncio.Task]:
        """Schedule a job on the running loop.

        Args:
            name: Label used in logs
            job: Zero-argument callable returning the awaitable to run

        Returns:
            The scheduled task, or None if it could not be scheduled
        """
        try:
            task = asyncio.get_running_loop().create_task(self._run(name, job), name=name)
        except RuntimeError as e:
            logger.error(f"Could not schedule {name}: {e}")
            return None

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, job: Callable[[], Awaitable[None]]) -> None:
        try:
            await job()
            logger.debug(f"{name} completed")
        except asyncio.CancelledError:
            logger.warning(f"{name} cancelled")
            raise
        except Exception as e:
            logger.error(f"{name} failed: {e}", exc_info=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled job, including jobs scheduled while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

# Process-wide runner
runner = BestEffortRunner()

__all__ = ['BestEffortRunner', 'runner']
