"""
Keyed access to the ``users`` and ``rewards`` tables.

Each call opens its own short session; nothing is shared between requests.
Database failures surface as :class:`StoreError`.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .db import session_scope
from .errors import StoreError
from .models import Reward, UserLink

logger = logging.getLogger(__name__)


class LinkRecordStore:
    def __init__(self, factory: sessionmaker):
        self._factory = factory

    def get(self, athlete_id: int) -> UserLink | None:
        try:
            with session_scope(self._factory) as db:
                return db.get(UserLink, athlete_id)
        except SQLAlchemyError as e:
            raise StoreError(f"reading user {athlete_id} failed: {e}") from e

    def exists_by_address(self, address: str) -> bool:
        try:
            with session_scope(self._factory) as db:
                found = db.execute(
                    select(UserLink.athlete_id).where(UserLink.address == address).limit(1)
                ).first()
                return found is not None
        except SQLAlchemyError as e:
            raise StoreError(f"querying users by address failed: {e}") from e

    def merge(self, record: UserLink) -> UserLink:
        """Upsert on ``athlete_id``; an existing link is overwritten field by field."""
        try:
            with session_scope(self._factory) as db:
                merged = db.merge(record)
                db.commit()
                return merged
        except SQLAlchemyError as e:
            raise StoreError(f"saving user {record.athlete_id} failed: {e}") from e


class RewardRecordStore:
    def __init__(self, factory: sessionmaker):
        self._factory = factory

    def get(self, reward_id: str) -> Reward | None:
        try:
            with session_scope(self._factory) as db:
                return db.get(Reward, reward_id)
        except SQLAlchemyError as e:
            raise StoreError(f"reading reward {reward_id} failed: {e}") from e

    def exists(self, reward_id: str) -> bool:
        return self.get(reward_id) is not None

    def merge(self, record: Reward) -> Reward:
        try:
            with session_scope(self._factory) as db:
                merged = db.merge(record)
                db.commit()
                return merged
        except SQLAlchemyError as e:
            raise StoreError(f"saving reward {record.id} failed: {e}") from e

    def create_if_absent(self, record: Reward) -> bool:
        """
        Insert ``record`` unless its key is taken.

        Relies on the primary key, so of two concurrent inserts for the same
        day and athlete exactly one returns True.
        """
        try:
            with session_scope(self._factory) as db:
                db.add(record)
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    logger.info("Reward %s already exists, keeping the first one", record.id)
                    return False
                return True
        except SQLAlchemyError as e:
            raise StoreError(f"creating reward {record.id} failed: {e}") from e

    def list_unprocessed(self) -> list[Reward]:
        try:
            with session_scope(self._factory) as db:
                return list(
                    db.scalars(
                        select(Reward).where(Reward.is_processed == False).order_by(Reward.id)
                    ).all()
                )
        except SQLAlchemyError as e:
            raise StoreError(f"querying unprocessed rewards failed: {e}") from e

    def mark_processed(self, reward_id: str) -> bool:
        """Flip ``is_processed`` once; False when it was already set or is unknown."""
        try:
            with session_scope(self._factory) as db:
                result = db.execute(
                    update(Reward)
                    .where(Reward.id == reward_id, Reward.is_processed == False)
                    .values(is_processed=True)
                )
                db.commit()
                return result.rowcount == 1
        except SQLAlchemyError as e:
            raise StoreError(f"marking reward {reward_id} processed failed: {e}") from e
