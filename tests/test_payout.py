import asyncio

from health_to_earn.models import Reward
from health_to_earn.payout import PayoutSweeper, run_periodically


def _seed(store, *ids):
    for reward_id in ids:
        store.create_if_absent(Reward(
            id=reward_id,
            address="NCQ3FQ6U4X3AOGBJHJFVY3L6R6IBCIRTIQUTD2I",
            athlete_id=int(reward_id.split("-")[1]),
            activity_id=1,
            reward_day=reward_id.split("-")[0],
            activity_at="2021-11-03 10:15:00 +0000",
            is_processed=False,
            is_confirmed=False,
        ))
    store.writes = 0


def test_empty_sweep_mutates_nothing(rewards):
    paid = []
    sweeper = PayoutSweeper(rewards, payout=lambda r: paid.append(r.id) or True)
    assert sweeper() == 0
    assert paid == []
    assert rewards.writes == 0


def test_sweep_without_payout_backend_leaves_rewards_unprocessed(rewards):
    _seed(rewards, "20211103-1", "20211103-2")
    assert PayoutSweeper(rewards)() == 0
    assert rewards.writes == 0
    assert len(rewards.list_unprocessed()) == 2


def test_sweep_flips_only_confirmed_payouts(rewards):
    _seed(rewards, "20211103-1", "20211103-2", "20211103-3")

    def payout(reward):
        if reward.athlete_id == 2:
            return False
        if reward.athlete_id == 3:
            raise RuntimeError("node unreachable")
        return True

    assert PayoutSweeper(rewards, payout=payout)() == 1
    assert {r.id for r in rewards.list_unprocessed()} == {"20211103-2", "20211103-3"}


def test_each_selected_reward_is_paid_once_per_run(rewards):
    _seed(rewards, "20211103-1", "20211103-2")
    paid = []
    sweeper = PayoutSweeper(rewards, payout=lambda r: paid.append(r.id) or True)

    assert sweeper() == 2
    assert sweeper() == 0
    assert paid == ["20211103-1", "20211103-2"]


def test_run_periodically_survives_failing_runs():
    runs = []

    def job():
        runs.append(1)
        raise RuntimeError("boom")

    async def scenario():
        task = asyncio.create_task(run_periodically(job, 0.01))
        while len(runs) < 3:
            await asyncio.sleep(0.01)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert len(runs) >= 3
