"""HTTP API for the rapport builder."""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel

from .config import settings
from .errors import (
    MissingCredentialError,
    RapportError,
    ZipNotFoundError,
    ZipValidationError,
)
from .orchestrator import RapportOrchestrator
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="rapport/api")

AUTH_REALM = "RapportBuilder"

_basic = HTTPBasic(auto_error=False, realm=AUTH_REALM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": f'Basic realm="{AUTH_REALM}"'},
    )


def require_basic_auth(credentials: Optional[HTTPBasicCredentials] = Depends(_basic)):
    """
    Validate HTTP Basic credentials against the configured user/password.
    """
    # No password configured: the gate is open (dev/default mode).
    if not settings.basic_auth_password:
        logger.debug("No basic auth password configured; allowing all requests")
        return

    if credentials is None:
        logger.debug("No credentials provided")
        raise _unauthorized("Authentication required")

    user_ok = hmac.compare_digest(credentials.username.encode("utf-8"), settings.basic_auth_user.encode("utf-8"))
    password_ok = hmac.compare_digest(
        credentials.password.encode("utf-8"), settings.basic_auth_password.encode("utf-8")
    )
    if user_ok and password_ok:
        return

    logger.debug("Invalid credentials provided")
    raise _unauthorized("Invalid credentials")


router = APIRouter(dependencies=[Depends(require_basic_auth)])
# Probes stay reachable without credentials.
health_router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    model_configured: bool
    cache_backend: str


def get_orchestrator(request: Request) -> RapportOrchestrator:
    """The orchestrator built by the app lifespan."""
    return request.app.state.orchestrator


def status_for(exc: RapportError) -> int:
    """Map a pipeline failure to the HTTP status the client sees."""
    if isinstance(exc, ZipValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ZipNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, MissingCredentialError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_502_BAD_GATEWAY


@router.get("/zip/{zip_code}")
async def get_rapport(zip_code: str, orchestrator: RapportOrchestrator = Depends(get_orchestrator)):
    """Build (or serve from cache) the rapport payload for one ZIP code."""
    try:
        return await orchestrator.build(zip_code)
    except RapportError as exc:
        code = status_for(exc)
        if code >= 500:
            logger.error("Rapport build failed for %s: %s", zip_code, exc)
        else:
            logger.info("Rejected ZIP %s: %s", zip_code, exc)
        raise HTTPException(status_code=code, detail=str(exc) or type(exc).__name__) from exc


@health_router.get("/health", response_model=HealthResponse)
def health(orchestrator: RapportOrchestrator = Depends(get_orchestrator)):
    """Liveness probe; reports whether the model is configured and which cache backend is active."""
    configured = bool(getattr(orchestrator.chat_client, "configured", False))
    return HealthResponse(status="ok", model_configured=configured, cache_backend=orchestrator.cache.backend)
