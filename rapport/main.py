"""FastAPI application setup for the rapport builder."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import health_router, router as api_router
from .config import settings
from .data_sources import build_http_client, build_sources
from .grok_client import GrokClient
from .orchestrator import RapportOrchestrator
from .response_cache import build_response_cache
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared HTTP client and wire the pipeline; close the client on shutdown."""
    setup_logging()
    client = build_http_client(settings)
    cache = build_response_cache(settings)
    app.state.orchestrator = RapportOrchestrator(
        sources=build_sources(client, settings),
        chat_client=GrokClient(client, settings),
        cache=cache,
        settings=settings,
    )
    if not settings.grok_api_key:
        logger.warning("RAPPORT_GROK_API_KEY is not set; /zip requests will fail with 503")
    try:
        yield
    finally:
        await client.aclose()


app = FastAPI(title="Rapport Builder", lifespan=lifespan)

app.include_router(health_router)
app.include_router(api_router)
