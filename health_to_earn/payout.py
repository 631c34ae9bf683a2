"""
Periodic sweep over unprocessed rewards.

The sweeper has no HTTP surface. The app lifespan drives it through
:func:`run_periodically`; any other timer can call it directly.
"""

import asyncio
import logging
from typing import Callable

from .models import Reward
from .stores import RewardRecordStore

logger = logging.getLogger(__name__)

# returns True once the transfer for a reward is confirmed
PayoutExecutor = Callable[[Reward], bool]


class PayoutSweeper:
    def __init__(self, rewards: RewardRecordStore, payout: PayoutExecutor | None = None):
        self.rewards = rewards
        self.payout = payout

    def __call__(self) -> int:
        """Run one sweep, return how many rewards were marked processed."""
        pending = self.rewards.list_unprocessed()
        if not pending:
            return 0

        logger.info("Found %d unprocessed rewards", len(pending))
        if self.payout is None:
            # no payout backend configured, rewards stay unprocessed
            return 0

        processed = 0
        for reward in pending:
            try:
                confirmed = self.payout(reward)
            except Exception:
                logger.exception("Payout of reward %s failed", reward.id)
                continue
            if not confirmed:
                logger.warning("Payout of reward %s was not confirmed", reward.id)
                continue
            # the flag only moves after a confirmed payout
            if self.rewards.mark_processed(reward.id):
                processed += 1

        logger.info("Marked %d of %d rewards processed", processed, len(pending))
        return processed


async def run_periodically(job: Callable[[], object], interval_seconds: float, name: str = "payout") -> None:
    """
    Run ``job`` in a worker thread every ``interval_seconds`` until cancelled.

    Runs never overlap; a failing run is logged and the loop carries on.
    """
    logger.info("Scheduling %s every %ss", name, interval_seconds)
    while True:
        try:
            await asyncio.to_thread(job)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled %s run failed", name)
        await asyncio.sleep(interval_seconds)
