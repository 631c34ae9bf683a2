import logging
from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from .config import Settings
from .errors import InvalidRequest, Unauthorized
from .models import Reward
from .stores import LinkRecordStore, RewardRecordStore
from .utils_time import activity_at, now_local, reward_day, reward_key

logger = logging.getLogger(__name__)

EVENT_RECEIVED = "EVENT_RECEIVED"
EVENT_IGNORED = "EVENT_IGNORED"

class WebhookEvent(BaseModel):
    # Strava sends {object_type, object_id, aspect_type, updates, owner_id, ...}
    # Only presence is checked here; ids are read once the event is known
    # to be a new activity.
    object_type: Any
    object_id: Any
    aspect_type: Any
    owner_id: Any
    updates: Any = None
    event_time: Any = None
    subscription_id: Any = None

def parse_event(payload: Any) -> WebhookEvent:
    if not isinstance(payload, dict):
        raise InvalidRequest("event body must be a JSON object")
    try:
        return WebhookEvent.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequest(f"malformed event: {e}") from e

class WebhookFlowHandler:
    """Subscription verification and activity event ingestion."""

    def __init__(
        self,
        settings: Settings,
        links: LinkRecordStore,
        rewards: RewardRecordStore,
        clock: Callable[[], datetime] | None = None,
    ):
        self.verify_token = settings.STRAVA_VERIFY_TOKEN
        self.links = links
        self.rewards = rewards
        self.clock = clock or (lambda: now_local(settings.REWARD_TZ))

    def verify(self, mode: str | None, verify_token: str | None, challenge: str | None) -> dict:
        if mode is None or verify_token is None:
            raise InvalidRequest("hub.mode and hub.verify_token are required")

        if mode != "subscribe" or verify_token != self.verify_token:
            logger.warning("Identified malicious webhook verification attempt (hub.mode=%s)", mode)
            raise Unauthorized("bad verify token")

        # Strava expects this exact key back
        return {"hub.challenge": challenge}

    def ingest(self, payload: Any) -> str:
        event = parse_event(payload)

        # only new activities earn rewards
        if event.object_type != "activity" or event.aspect_type != "create":
            return EVENT_IGNORED

        # Strava disables subscriptions that keep failing, so from here on
        # every failure is answered with EVENT_IGNORED.
        try:
            return self._record_reward(event)
        except Exception:
            logger.exception("Webhook event for athlete %s could not be processed", event.owner_id)
            return EVENT_IGNORED

    def _record_reward(self, event: WebhookEvent) -> str:
        owner_id = int(event.owner_id)
        activity_id = int(event.object_id)

        user = self.links.get(owner_id)
        if user is None or not user.address:
            logger.debug("Ignoring event for unknown athlete %s", owner_id)
            return EVENT_IGNORED

        now = self.clock()
        day = reward_day(now)
        key = reward_key(day, user.athlete_id)

        if self.rewards.exists(key):
            logger.debug("Reward %s already recorded", key)
            return EVENT_IGNORED

        reward = Reward(
            id=key,
            address=user.address,
            athlete_id=user.athlete_id,
            activity_id=activity_id,
            reward_day=day,
            activity_at=activity_at(now),
            is_processed=False,
            is_confirmed=False,
        )
        if not self.rewards.create_if_absent(reward):
            return EVENT_IGNORED

        logger.info("Recorded reward %s for activity %s", key, activity_id)
        return EVENT_RECEIVED
