import logging

import httpx
from pydantic import BaseModel, ValidationError

from .config import Settings
from .errors import UpstreamError

AUTHORIZE_URL = "https://www.strava.com/oauth/authorize"
TOKEN_URL = "https://www.strava.com/oauth/token"
SUBSCRIPTIONS_URL = "https://www.strava.com/api/v3/push_subscriptions"
# read-only, never widened by configuration
SCOPE = "activity:read"

logger = logging.getLogger(__name__)

class AthleteSummary(BaseModel):
    id: int

class TokenExchange(BaseModel):
    athlete: AthleteSummary
    access_token: str
    refresh_token: str
    expires_at: int

class StravaClient:
    """OAuth token exchange and webhook subscription calls against Strava."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.STRAVA_HTTP_TIMEOUT, transport=self._transport)

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.settings.STRAVA_CLIENT_ID,
            "response_type": "code",
            "approval_prompt": "auto",
            "scope": SCOPE,
            "redirect_uri": self.settings.STRAVA_OAUTH_URL,
            # round-trips the address through the consent screen
            "state": state,
        }
        return str(httpx.URL(AUTHORIZE_URL, params=params))

    async def exchange_code(self, code: str) -> TokenExchange:
        data = await self._post(TOKEN_URL, {
            "client_id": self.settings.STRAVA_CLIENT_ID,
            "client_secret": self.settings.STRAVA_CLIENT_SECRET,
            "code": code,
            "grant_type": "authorization_code",
        })
        try:
            return TokenExchange.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(f"unexpected token exchange reply: {e}") from e

    async def create_subscription(self) -> dict:
        return await self._post(SUBSCRIPTIONS_URL, {
            "client_id": self.settings.STRAVA_CLIENT_ID,
            "client_secret": self.settings.STRAVA_CLIENT_SECRET,
            "callback_url": self.settings.STRAVA_WEBHOOK_URL,
            "verify_token": self.settings.STRAVA_VERIFY_TOKEN,
        })

    async def _post(self, url: str, data: dict) -> dict:
        logger.debug("POST %s", url)
        try:
            async with self._client() as c:
                r = await c.post(url, data=data)
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Strava answered {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"calling {url} failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"Strava sent invalid JSON for {url}") from e
