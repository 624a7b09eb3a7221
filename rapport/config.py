"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the rapport builder service."""
    model_config = SettingsConfigDict(env_prefix="RAPPORT_", extra="ignore")

    # Generative model (Grok / OpenAI-compatible chat completions)
    grok_api_key: str | None = None
    grok_api_url: str | None = None
    grok_api_path: str = "/v1/chat/completions"
    grok_model: str = "grok-3"
    grok_temperature: float = 0.7
    grok_max_tokens: int = 550

    # Sent as User-Agent to the public upstreams (Nominatim requires one)
    contact_user_agent: str = "RapportBuilder/1.0 (contact@rapportbuilder.com)"

    # Response cache
    cache_ttl_seconds: int = 6 * 60 * 60
    cache_redis_url: str | None = None
    cache_key_prefix: str = "rapport:"

    # Basic auth gate; disabled while no password is configured
    basic_auth_user: str = "rapport"
    basic_auth_password: str | None = None

    # Deadlines (seconds)
    request_timeout_seconds: float = 8.0
    geo_timeout_seconds: float = 8.0
    context_timeout_seconds: float = 20.0
    places_timeout_seconds: float = 20.0
    synthesis_timeout_seconds: float = 45.0

    # Fan-out shape
    context_concurrency: int = 4
    places_concurrency: int = 3
    places_per_category: int = 5
    enrich_top_n: int = 3
    anchor_candidates: int = 6

    @field_validator("grok_api_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize the model URL so an empty path is detected consistently."""
        if v is None:
            return None
        v = str(v).strip().rstrip("/")
        return v or None

    @field_validator("contact_user_agent", mode="after")
    @classmethod
    def default_blank_user_agent(cls, v: str) -> str:
        """Treat a blank user agent as unset."""
        return v.strip() or "RapportBuilder/1.0 (contact@rapportbuilder.com)"


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    dumped = settings.model_dump()
    dumped["grok_api_key"] = "***" if settings.grok_api_key else None
    dumped["basic_auth_password"] = "***" if settings.basic_auth_password else None
    dumped["cache_redis_url"] = mask_url(settings.cache_redis_url)
    logger.debug(f"Loaded settings: {dumped}")
