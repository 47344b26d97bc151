"""Environment-driven settings for the Brand Pulse pipeline."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()  # Load environment variables from .env file

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Credentials are optional at load time; :meth:`require` raises
    :class:`ConfigurationError` when a stage actually needs one.
    """

    x_bearer_token: Optional[str] = None
    apify_token: Optional[str] = None
    mention_source: str = "x_api"
    xai_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    llm_provider: str = "xai"
    llm_model: Optional[str] = None
    fal_key: Optional[str] = None
    data_dir: Path = field(default_factory=lambda: Path("data"))
    cache_ttl_hours: float = 3.0
    min_followers: int = 1000
    max_mentions: int = 200
    creative_suggestions: int = 1
    ad_format: str = "single_image"
    wait_for_video: bool = False
    rate_limit_delay: float = 60.0
    request_timeout: float = 60.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        ad_format = os.getenv("PULSE_AD_FORMAT", "single_image")
        if ad_format not in ("single_image", "video"):
            raise ConfigurationError(f"PULSE_AD_FORMAT must be 'single_image' or 'video', got {ad_format!r}")

        mention_source = os.getenv("PULSE_MENTION_SOURCE", "x_api")
        if mention_source not in ("x_api", "apify"):
            raise ConfigurationError(f"PULSE_MENTION_SOURCE must be 'x_api' or 'apify', got {mention_source!r}")

        return cls(
            x_bearer_token=os.getenv("X_BEARER_TOKEN") or os.getenv("TWITTER_BEARER_TOKEN"),
            apify_token=os.getenv("APIFY_TOKEN"),
            mention_source=mention_source,
            xai_api_key=os.getenv("XAI_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            llm_provider=os.getenv("PULSE_LLM_PROVIDER", "xai"),
            llm_model=os.getenv("PULSE_LLM_MODEL") or None,
            fal_key=os.getenv("FAL_KEY") or os.getenv("PIKA_API_KEY"),
            data_dir=Path(os.getenv("PULSE_DATA_DIR", "data")),
            cache_ttl_hours=_env_float("PULSE_CACHE_TTL_HOURS", 3.0),
            min_followers=_env_int("PULSE_MIN_FOLLOWERS", 1000),
            max_mentions=_env_int("PULSE_MAX_MENTIONS", 200),
            creative_suggestions=_env_int("PULSE_CREATIVE_SUGGESTIONS", 1),
            ad_format=ad_format,
            wait_for_video=_env_bool("PULSE_WAIT_FOR_VIDEO", False),
            rate_limit_delay=_env_float("PULSE_RATE_LIMIT_DELAY", 60.0),
            request_timeout=_env_float("PULSE_REQUEST_TIMEOUT", 60.0),
        )

    def require(self, attribute: str, env_name: str) -> str:
        """Return a credential or raise :class:`ConfigurationError`."""
        value = getattr(self, attribute)
        if not value:
            raise ConfigurationError(f"{env_name} environment variable is not set")
        return value

    @property
    def history_path(self) -> Path:
        return self.data_dir / "suggestion_history.json"
