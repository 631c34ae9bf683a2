"""
Linking a Strava athlete to a dHealth address.

    status     step 0, is this address linked already?
    authorize  step 1, redirect to the Strava consent screen
    link       step 2, OAuth callback, token exchange and persistence

Every step validates its address before any network or database call.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Mapping

from .address import validate
from .errors import AuthDenied, InvalidRequest, NotImplementedYet, StoreError, UpstreamError
from .models import UserLink
from .stores import LinkRecordStore
from .strava import StravaClient
from .utils_time import epoch_ms

logger = logging.getLogger(__name__)

ADDRESS_PARAM = "dhealth.address"
CALLBACK_PARAMS = ("code", "scope", "state")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkFlowHandler:
    def __init__(
        self,
        links: LinkRecordStore,
        strava: StravaClient,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.links = links
        self.strava = strava
        self.clock = clock

    def status(self, raw_address: str | None) -> bool:
        address = validate(raw_address)
        try:
            return self.links.exists_by_address(address.plain)
        except StoreError:
            logger.exception("Status lookup failed for %s", address)
            raise

    def authorize_url(self, raw_address: str | None) -> str:
        address = validate(raw_address)
        return self.strava.authorize_url(state=address.plain)

    async def link(self, params: Mapping[str, str]) -> UserLink:
        if params.get("error") == "access_denied":
            logger.warning("Athlete denied access to app (state=%s)", params.get("state"))
            raise AuthDenied("access_denied")

        missing = [k for k in CALLBACK_PARAMS if k not in params]
        if missing:
            raise InvalidRequest(f"missing callback parameters: {', '.join(missing)}")

        address = validate(params["state"])

        try:
            token = await self.strava.exchange_code(params["code"])
        except UpstreamError:
            logger.exception("Strava token exchange failed")
            raise

        record = UserLink(
            athlete_id=token.athlete.id,
            address=address.plain,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            access_expires_at=token.expires_at,
            linked_at=epoch_ms(self.clock()),
        )
        try:
            saved = self.links.merge(record)
        except StoreError:
            logger.exception("Saving link for athlete %s failed", record.athlete_id)
            raise

        logger.info("Linked athlete %s to %s", saved.athlete_id, saved.address)
        return saved

    def unlink(self) -> None:
        # revoking tokens and clearing `address` needs a token refresh + GET /athlete first
        raise NotImplementedYet("unlink")
