"""Thin async client for a Grok (OpenAI-compatible) chat completions endpoint."""

import time
from urllib.parse import urlsplit, urlunsplit

import httpx

from rapport.concurrency import with_deadline
from rapport.config import Settings, settings as default_settings
from rapport.errors import (
    ConfigurationError,
    MissingCredentialError,
    ParseFailure,
    TransportFailure,
)
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="grok_client")

ERROR_PREVIEW_CHARS = 500


def resolve_endpoint(base_url: str | None, path: str) -> str:
    """
    Build the POST URL from the configured base URL and path.

    The path is only applied when the base URL has none of its own, so a
    fully qualified endpoint URL is used as-is.
    """
    if not base_url:
        raise ConfigurationError("RAPPORT_GROK_API_URL is not configured.")
    try:
        parts = urlsplit(base_url)
    except ValueError as exc:
        raise ConfigurationError("RAPPORT_GROK_API_URL is not a valid URL.") from exc
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError("RAPPORT_GROK_API_URL is not a valid URL.")
    if not parts.path or parts.path == "/":
        parts = parts._replace(path=path if path.startswith("/") else f"/{path}")
    return urlunsplit(parts)


class GrokClient:
    """Minimal client for the chat completions API."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings | None = None):
        self.client = client
        self.settings = settings or default_settings
        self.model = self.settings.grok_model
        self.timeout = self.settings.synthesis_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.settings.grok_api_key and self.settings.grok_api_url)

    def _credentials(self) -> tuple[str, str]:
        """Return (api_key, endpoint) or raise a configuration error."""
        api_key = self.settings.grok_api_key
        if not api_key:
            raise MissingCredentialError("RAPPORT_GROK_API_KEY is not configured.")
        return api_key, resolve_endpoint(self.settings.grok_api_url, self.settings.grok_api_path)

    async def chat(self, messages: list[dict]) -> str:
        """Send a chat request and return the assistant content."""
        api_key, endpoint = self._credentials()
        payload = {
            "messages": messages,
            "model": self.model,
            "temperature": self.settings.grok_temperature,
            "max_tokens": self.settings.grok_max_tokens,
        }

        logger.debug("Grok POST payload: %s", payload)
        started = time.monotonic()
        try:
            r = await with_deadline(
                self.client.post(
                    endpoint,
                    json=payload,
                    headers={"Authorization": f"Bearer {api_key}"},
                    timeout=httpx.Timeout(self.timeout),
                ),
                self.timeout,
                "Grok request timed out.",
            )
        except httpx.HTTPError as exc:
            logger.warning("Grok request failed before a response was returned: %s", exc)
            raise TransportFailure(str(exc) or "Grok request failed before a response was returned.") from exc
        logger.info("Grok POST took %.2fs, status %s", time.monotonic() - started, r.status_code)

        if not r.is_success:
            preview = (r.text or "")[:ERROR_PREVIEW_CHARS]
            logger.warning(
                "Grok response status %s (POST %s)%s",
                r.status_code,
                mask_url(endpoint),
                f": {preview}" if preview else "",
            )
            message = f"Grok responded with status {r.status_code}"
            raise TransportFailure(f"{message}: {preview}" if preview else message)

        try:
            data = r.json()
        except ValueError as exc:
            raise ParseFailure(f"Grok returned non-JSON response: {r.text[:200]}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise ParseFailure("Grok returned invalid content payload.")
        return content
