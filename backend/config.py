"""Centralized configuration — all env vars in one place."""

import os

_TRUTHY = {"1", "true", "yes", "on"}


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")
        self.port: int = int(os.getenv("PORT", "10000"))

        # Contest admin
        self.admin_token: str | None = os.getenv("ADMIN_TOKEN") or None

        # Upstream price API (CoinGecko-compatible)
        self.price_api_url: str = os.getenv("PRICE_API_URL", "https://api.coingecko.com/api/v3").rstrip("/")
        self.price_api_key: str | None = os.getenv("PRICE_API_KEY") or None
        self.price_cache_ttl_seconds: float = float(os.getenv("PRICE_CACHE_TTL_SECONDS", "60"))
        self.upstream_timeout_seconds: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10"))
        self.serve_stale_on_error: bool = os.getenv("SERVE_STALE_ON_ERROR", "true").lower() in _TRUTHY

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return list of missing env vars that disable optional features."""
        required = ["ADMIN_TOKEN"]
        return [var for var in required if not getattr(self, _attr_for(var))]


settings = Settings()


def _attr_for(env_var: str) -> str:
    """Map env var name to Settings attribute name."""
    mapping = {
        "ADMIN_TOKEN": "admin_token",
    }
    return mapping.get(env_var, env_var.lower())
