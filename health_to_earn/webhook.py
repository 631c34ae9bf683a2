import json
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from .errors import InvalidRequest, MethodNotAllowed, NotImplementedYet, UpstreamError
from .ingest import WebhookFlowHandler
from .security import require_admin
from .strava import StravaClient

logger = logging.getLogger(__name__)

router = APIRouter()

OTHER_METHODS = ["PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

def get_webhook_flow(request: Request) -> WebhookFlowHandler:
    return request.app.state.webhook_flow

def get_strava(request: Request) -> StravaClient:
    return request.app.state.strava

@router.get("/webhook")
def verify_strava(
    mode: str | None = Query(None, alias="hub.mode"),
    challenge: str | None = Query(None, alias="hub.challenge"),
    verify_token: str | None = Query(None, alias="hub.verify_token"),
    flow: WebhookFlowHandler = Depends(get_webhook_flow),
):
    logger.debug("Now handling /webhook GET request (hub.mode=%s)", mode)
    return flow.verify(mode, verify_token, challenge)

@router.post("/webhook")
async def receive_event(request: Request, flow: WebhookFlowHandler = Depends(get_webhook_flow)):
    body = await request.body()
    logger.debug("Now handling /webhook POST request with body: %s", body[:512])
    try:
        payload = json.loads(body)
    except ValueError:
        raise InvalidRequest("event body is not JSON")
    result = await run_in_threadpool(flow.ingest, payload)
    return PlainTextResponse(result)

@router.api_route("/webhook", methods=OTHER_METHODS, include_in_schema=False)
async def reject_webhook_method():
    raise MethodNotAllowed("webhook accepts GET and POST only")

@router.post("/subscribe", dependencies=[Depends(require_admin)])
async def subscribe(strava: StravaClient = Depends(get_strava)):
    logger.debug("Now handling /subscribe request")
    try:
        return await strava.create_subscription()
    except UpstreamError:
        logger.exception("Error happened calling Strava /push_subscriptions")
        raise

@router.api_route("/unsubscribe", methods=["GET", "POST", *OTHER_METHODS])
async def unsubscribe():
    logger.debug("Now handling /unsubscribe request")
    raise NotImplementedYet("unsubscribe")
