"""
Pytest configuration and fixtures

Every test gets its own in-memory SQLite database and a Strava client that
never leaves the process.
"""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from health_to_earn.config import Settings
from health_to_earn.db import create_schema, make_engine, make_session_factory
from health_to_earn.errors import UpstreamError
from health_to_earn.main import create_app
from health_to_earn.models import Base
from health_to_earn.stores import LinkRecordStore, RewardRecordStore
from health_to_earn.strava import AthleteSummary, StravaClient, TokenExchange

# valid dHealth addresses (main net and test net)
ADDRESS = "NCQ3FQ6U4X3AOGBJHJFVY3L6R6IBCIRTIQUTD2I"
OTHER_ADDRESS = "NAHR4LJ4JNNGS6EHS2S3JQ6S4HYACERDGTLGBAY"
TESTNET_ADDRESS = "TAABCIRTIRKWM54ITGVLXTG5537QAEJCGPB577I"
# ADDRESS with one character changed, so the checksum no longer matches
BAD_CHECKSUM_ADDRESS = "NCQ3FQ6U4X3AOGBJHJFVY3L6R6IBCIRTIQUTD3I"

FIXED_NOW = datetime(2021, 11, 3, 10, 15, 0, tzinfo=timezone.utc)


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        STRAVA_CLIENT_ID="1234",
        STRAVA_CLIENT_SECRET="client-secret",
        STRAVA_OAUTH_URL="https://api.example.com/link",
        STRAVA_WEBHOOK_URL="https://api.example.com/webhook",
        STRAVA_VERIFY_TOKEN="verify-me",
        PAYOUT_SCHEDULER_ENABLED=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeStrava(StravaClient):
    """Records calls instead of talking to Strava."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.exchanged: list[str] = []
        self.subscriptions = 0
        self.token = TokenExchange(
            athlete=AthleteSummary(id=42),
            access_token="t",
            refresh_token="r",
            expires_at=123,
        )
        self.fail = False

    async def exchange_code(self, code: str) -> TokenExchange:
        self.exchanged.append(code)
        if self.fail:
            raise UpstreamError("Strava answered 400")
        return self.token

    async def create_subscription(self) -> dict:
        self.subscriptions += 1
        if self.fail:
            raise UpstreamError("Strava answered 400")
        return {"id": 120475}


class CountingLinkStore(LinkRecordStore):
    def __init__(self, factory):
        super().__init__(factory)
        self.calls: list[str] = []

    def get(self, athlete_id):
        self.calls.append("get")
        return super().get(athlete_id)

    def exists_by_address(self, address):
        self.calls.append("exists_by_address")
        return super().exists_by_address(address)

    def merge(self, record):
        self.calls.append("merge")
        return super().merge(record)


class CountingRewardStore(RewardRecordStore):
    def __init__(self, factory):
        super().__init__(factory)
        self.writes = 0
        self.reads = 0

    def get(self, reward_id):
        self.reads += 1
        return super().get(reward_id)

    def merge(self, record):
        self.writes += 1
        return super().merge(record)

    def create_if_absent(self, record):
        self.writes += 1
        return super().create_if_absent(record)

    def mark_processed(self, reward_id):
        self.writes += 1
        return super().mark_processed(reward_id)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def engine(settings):
    engine = make_engine(settings)
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def links(session_factory):
    return CountingLinkStore(session_factory)


@pytest.fixture
def rewards(session_factory):
    return CountingRewardStore(session_factory)


@pytest.fixture
def strava(settings):
    return FakeStrava(settings)


@pytest.fixture
def app(settings, strava, links, rewards):
    return create_app(settings, strava=strava, links=links, rewards=rewards, clock=lambda: FIXED_NOW)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def broken_db(engine):
    """Drops every table so each query fails inside SQLAlchemy."""
    Base.metadata.drop_all(bind=engine)
    return engine
