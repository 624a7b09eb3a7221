import os

import uvicorn

from rapport.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def preflight() -> None:
    """
    Warn about configuration that will make every /zip request fail.

    The server still starts so /health can report the problem.
    """
    if not settings.grok_api_key:
        logger.warning("RAPPORT_GROK_API_KEY is not set; rapport requests will return 503 until it is configured.")
    if not settings.grok_api_url:
        logger.warning("RAPPORT_GROK_API_URL is not set; rapport requests will return 502 until it is configured.")
    if not settings.basic_auth_password:
        logger.info("RAPPORT_BASIC_AUTH_PASSWORD is not set; basic auth is disabled.")


if __name__ == "__main__":
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
    preflight()

    uvicorn.run(
        "rapport.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
