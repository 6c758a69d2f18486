"""Server configuration — read from environment variables at startup.

Defaults suit local development; deployments override them via env vars.
"""

import os
from dataclasses import dataclass, field

from onboarding_engine.constants import STRICT_ROUTING

# Read at import time: FastAPI Query() defaults must be static
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080

    # Comma-separated origins, or "*" for local development
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Content directory (None → YamlContentStore default, v1/ at the repo root)
    content_dir: str | None = None

    log_level: str = "INFO"

    # Raise on answers that lead nowhere instead of ending the questionnaire
    strict_routing: bool = False

    # Minutes a flow may sit untouched before it is evicted from memory.
    # 0 means flows are kept until deleted.
    flow_ttl_minutes: int = 120

    # When set, requests carrying X-User-ID must also carry a matching
    # X-Proxy-Secret, proving the identity header came from the gateway.
    trusted_proxy_secret: str | None = None


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        content_dir=os.getenv("SERVER_CONTENT_DIR") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        strict_routing=STRICT_ROUTING,
        flow_ttl_minutes=int(os.getenv("FLOW_TTL_MINUTES", "120")),
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
    )
