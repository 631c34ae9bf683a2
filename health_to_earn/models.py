# health_to_earn/models.py
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, BigInteger, Boolean, Index

class Base(DeclarativeBase):
    pass

class UserLink(Base):
    """Link between one Strava athlete and one dHealth address."""
    __tablename__ = "users"
    athlete_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    address: Mapped[str | None] = mapped_column(String(64), index=True)

    access_token: Mapped[str | None] = mapped_column(String(512))
    refresh_token: Mapped[str | None] = mapped_column(String(512))
    access_expires_at: Mapped[int | None] = mapped_column(BigInteger)

    # epoch milliseconds
    linked_at: Mapped[int] = mapped_column(BigInteger)

class Reward(Base):
    """At most one per athlete per reward day, keyed ``YYYYMMDD-athleteId``."""
    __tablename__ = "rewards"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(64))
    athlete_id: Mapped[int] = mapped_column(BigInteger, index=True)
    activity_id: Mapped[int] = mapped_column(BigInteger)
    reward_day: Mapped[str] = mapped_column(String(8))
    activity_at: Mapped[str] = mapped_column(String(64))

    is_processed: Mapped[bool] = mapped_column(Boolean, default=False)
    is_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("idx_rewards_day", "reward_day"),
        Index("idx_rewards_unprocessed", "is_processed"),
    )
