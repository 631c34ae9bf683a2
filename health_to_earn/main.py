import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .config import Settings, get_settings
from .db import create_schema, make_engine, make_session_factory
from .errors import HealthToEarnError, MethodNotAllowed, NotFound
from .ingest import WebhookFlowHandler
from .link import ADDRESS_PARAM, LinkFlowHandler
from .logging_setup import setup_logging
from .payout import PayoutExecutor, PayoutSweeper, run_periodically
from .stores import LinkRecordStore, RewardRecordStore
from .strava import StravaClient
from .webhook import router as webhook_router

logger = logging.getLogger(__name__)

def get_link_flow(request: Request) -> LinkFlowHandler:
    return request.app.state.link_flow

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    task = None
    if settings.PAYOUT_SCHEDULER_ENABLED:
        task = asyncio.create_task(run_periodically(app.state.sweeper, settings.PAYOUT_INTERVAL_SECONDS))
    yield
    if task:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

def create_app(
    settings: Settings | None = None,
    *,
    strava: StravaClient | None = None,
    links: LinkRecordStore | None = None,
    rewards: RewardRecordStore | None = None,
    payout: PayoutExecutor | None = None,
    clock=None,
) -> FastAPI:
    """
    Build the API. Collaborators default to the ones described by ``settings``;
    passing them in replaces them.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    if links is None or rewards is None:
        engine = make_engine(settings)
        create_schema(engine)
        factory = make_session_factory(engine)
        links = links or LinkRecordStore(factory)
        rewards = rewards or RewardRecordStore(factory)
    strava = strava or StravaClient(settings)

    app = FastAPI(title="Health to Earn API", lifespan=lifespan)
    app.state.settings = settings
    app.state.strava = strava
    app.state.link_flow = LinkFlowHandler(links, strava)
    app.state.webhook_flow = WebhookFlowHandler(settings, links, rewards, clock=clock)
    app.state.sweeper = PayoutSweeper(rewards, payout)

    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.include_router(webhook_router)

    @app.exception_handler(HealthToEarnError)
    async def handle_error(request: Request, exc: HealthToEarnError):
        logger.debug("%s %s answered %s: %s", request.method, request.url.path, exc.status_code, exc)
        return Response(status_code=exc.status_code)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/status")
    def status(
        address: str | None = Query(None, alias=ADDRESS_PARAM),
        flow: LinkFlowHandler = Depends(get_link_flow),
    ):
        logger.debug("Now handling /status request for %s", address)
        if not flow.status(address):
            raise NotFound("no link for address")
        return Response(status_code=200)

    @app.api_route("/status", methods=["POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"], include_in_schema=False)
    async def status_other_methods():
        raise MethodNotAllowed("status accepts GET only")

    @app.get("/authorize")
    async def authorize(
        address: str | None = Query(None, alias=ADDRESS_PARAM),
        flow: LinkFlowHandler = Depends(get_link_flow),
    ):
        logger.debug("Now handling /authorize request for %s", address)
        return RedirectResponse(flow.authorize_url(address), status_code=301)

    @app.get("/link")
    async def link(request: Request, flow: LinkFlowHandler = Depends(get_link_flow)):
        params = dict(request.query_params)
        logger.debug("Now handling /link request (state=%s)", params.get("state"))
        await flow.link(params)
        return Response(status_code=200)

    @app.get("/unlink")
    async def unlink(flow: LinkFlowHandler = Depends(get_link_flow)):
        logger.debug("Now handling /unlink request")
        flow.unlink()

    return app
