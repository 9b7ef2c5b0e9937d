"""
Contract Data Synchronizer - keeps the contract snapshot fresh
"""

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, List, Optional

from ..utils.common import best_effort
from ..utils.logger import get_logger
from .models import ContractSnapshot

if TYPE_CHECKING:
    from ..blockchain.client import LotteryContract

logger = get_logger(__name__)

DEFAULT_REFRESH_INTERVAL = 30.0


class ContractDataSynchronizer:
    """Pulls participant count, last winner and last drawn numbers.

    Each field is read independently; a failed read keeps the previous value.
    Runs never overlap: a trigger that arrives while a run is in flight is
    skipped and the current snapshot is returned.
    """

    def __init__(self, refresh_interval: float = DEFAULT_REFRESH_INTERVAL):
        self.refresh_interval = float(refresh_interval)
        self._snapshot = ContractSnapshot()
        self._busy = False
        self._poll_task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[ContractSnapshot], None]] = []
        self.sync_count = 0

    @property
    def snapshot(self) -> ContractSnapshot:
        return self._snapshot

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def add_listener(self, callback: Callable[[ContractSnapshot], None]) -> None:
        self._listeners.append(callback)

    def _emit(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self._snapshot)
            except Exception as exc:  # pragma: no cover
                logger.error(f"Snapshot listener failed: {exc}")

    async def sync(self, binding: "LotteryContract") -> ContractSnapshot:
        """Refresh the snapshot from the contract. Never raises."""
        if self._busy:
            logger.debug("Sync already in progress, skipping")
            return self._snapshot

        self._busy = True
        try:
            count = await best_effort(binding.get_participant_count, "getParticipantCount")
            winner = await best_effort(binding.get_last_winner, "getLastWinner")
            numbers = await best_effort(binding.get_last_drawn_numbers, "getLastDrawnNumbers")
        finally:
            self._busy = False

        updates = {}
        if count is not None:
            updates["participant_count"] = count
        # getLastWinner yields None both for a failed read and for "no winner yet"
        if winner is not None:
            updates["last_winner"] = winner
        if numbers is not None:
            updates["last_drawn_numbers"] = tuple(numbers)

        if updates:
            self._snapshot = replace(self._snapshot, **updates)
        self.sync_count += 1
        logger.info(
            f"Contract data synced: participants={self._snapshot.participant_count}, "
            f"winner={self._snapshot.last_winner}, numbers={list(self._snapshot.last_drawn_numbers)}"
        )
        self._emit()
        return self._snapshot

    def reset(self) -> None:
        """Explicit full reset to zero values."""
        self._snapshot = ContractSnapshot()
        self._emit()

    def start(self, binding: "LotteryContract") -> None:
        """Start periodic polling; a running poller is left untouched"""
        if self.is_polling:
            logger.debug("Polling already active")
            return
        logger.info(f"Starting contract polling every {self.refresh_interval}s")
        self._poll_task = asyncio.create_task(self._poll_loop(binding))

    async def stop(self) -> None:
        """Stop periodic polling"""
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Contract polling stopped")

    def cancel(self) -> None:
        """Synchronous variant of stop() for use inside callbacks"""
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            logger.info("Contract polling cancelled")

    async def _poll_loop(self, binding: "LotteryContract"):
        """Main polling loop"""
        while True:
            try:
                await asyncio.sleep(self.refresh_interval)
                await self.sync(binding)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in polling loop: {e}")
