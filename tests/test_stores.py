import pytest
from sqlalchemy.exc import SQLAlchemyError

from health_to_earn.errors import StoreError
from health_to_earn.models import Reward, UserLink
from health_to_earn.stores import LinkRecordStore, RewardRecordStore

from conftest import ADDRESS, OTHER_ADDRESS


def _reward(reward_id="20211103-42", **overrides):
    values = dict(
        id=reward_id,
        address=ADDRESS,
        athlete_id=42,
        activity_id=1,
        reward_day=reward_id.split("-")[0],
        activity_at="2021-11-03 10:15:00 +0000",
        is_processed=False,
        is_confirmed=False,
    )
    values.update(overrides)
    return Reward(**values)


def test_link_merge_is_an_upsert(session_factory):
    store = LinkRecordStore(session_factory)
    store.merge(UserLink(athlete_id=42, address=ADDRESS, access_token="a", refresh_token="r", linked_at=1))
    store.merge(UserLink(athlete_id=42, address=OTHER_ADDRESS, access_token="b", refresh_token="r", linked_at=2))

    record = store.get(42)
    assert (record.address, record.access_token, record.linked_at) == (OTHER_ADDRESS, "b", 2)
    assert not store.exists_by_address(ADDRESS)
    assert store.exists_by_address(OTHER_ADDRESS)
    assert store.get(43) is None


def test_create_if_absent_keeps_the_first_record(session_factory):
    store = RewardRecordStore(session_factory)
    assert store.create_if_absent(_reward(activity_id=1)) is True
    assert store.create_if_absent(_reward(activity_id=2)) is False
    assert store.get("20211103-42").activity_id == 1


def test_reward_merge_is_idempotent(session_factory):
    store = RewardRecordStore(session_factory)
    store.merge(_reward())
    store.merge(_reward())
    assert [r.id for r in store.list_unprocessed()] == ["20211103-42"]


def test_mark_processed_flips_once(session_factory):
    store = RewardRecordStore(session_factory)
    store.create_if_absent(_reward("20211103-42"))
    store.create_if_absent(_reward("20211104-42"))

    assert store.mark_processed("20211103-42") is True
    assert store.mark_processed("20211103-42") is False
    assert store.mark_processed("20211231-42") is False

    assert store.get("20211103-42").is_processed is True
    assert [r.id for r in store.list_unprocessed()] == ["20211104-42"]


@pytest.mark.parametrize("call", [
    lambda s: s.get(42),
    lambda s: s.exists_by_address(ADDRESS),
    lambda s: s.merge(UserLink(athlete_id=42, address=ADDRESS, linked_at=1)),
])
def test_link_store_wraps_database_errors(session_factory, broken_db, call):
    with pytest.raises(StoreError) as exc:
        call(LinkRecordStore(session_factory))
    assert isinstance(exc.value.__cause__, SQLAlchemyError)


@pytest.mark.parametrize("call", [
    lambda s: s.get("20211103-42"),
    lambda s: s.merge(_reward()),
    lambda s: s.create_if_absent(_reward()),
    lambda s: s.list_unprocessed(),
    lambda s: s.mark_processed("20211103-42"),
])
def test_reward_store_wraps_database_errors(session_factory, broken_db, call):
    with pytest.raises(StoreError) as exc:
        call(RewardRecordStore(session_factory))
    assert isinstance(exc.value.__cause__, SQLAlchemyError)
