"""
wikiauth configuration: all environment variables in one place.

Read once per process with Settings.from_env() and passed explicitly to
every component. Never hardcode secrets.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict


class Settings(BaseModel):
    """Immutable settings snapshot built from environment variables."""

    model_config = ConfigDict(frozen=True)

    # Database
    DATABASE_URL: str = ""

    # Discord
    DISCORD_BOT_TOKEN: str = ""
    DISCORD_API_URL: str = "https://discord.com/api/v10"

    # Wikimedia OAuth 2 (meta.wikimedia.org consumer)
    WIKI_OAUTH_CLIENT_ID: str = ""
    WIKI_OAUTH_CLIENT_SECRET: str = ""
    WIKI_OAUTH_BASE: str = "https://meta.wikimedia.org/w/rest.php/oauth2"
    WIKI_API_URL: str = "https://meta.wikimedia.org/w/api.php"
    WIKI_PROFILE_URL: str = "https://meta.wikimedia.org/wiki/Special:CentralAuth/{name}"
    USER_AGENT: str = "wikiauth/0.1.0 (https://github.com/wikiauth/wikiauth)"

    # Callback server
    CALLBACK_URL: str = "http://localhost:8000/callback"
    CALLBACK_RATE_LIMIT_PER_IP: int = 30  # per 10 minutes

    # Link requests
    AUTH_REQUEST_TTL_MINUTES: int = 10
    AUTH_REQUEST_RETENTION_HOURS: int = 24
    PRUNE_INTERVAL_SECONDS: int = 300

    # Bot runtime
    EVENT_CONCURRENCY: int = 16
    DEFAULT_LOCALE: str = "en"

    # Monitoring
    ALERT_WEBHOOK_URL: str = ""

    # Application
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """
        Build a settings snapshot from the environment.

        Only variables that are set override the defaults. Integer fields
        are coerced by pydantic.
        """
        environ = os.environ if environ is None else environ
        values = {name: environ[name] for name in cls.model_fields if name in environ}
        return cls(**values)

    @property
    def testing(self) -> bool:
        return self.ENVIRONMENT == "test"

    def validate_required(self, *, bot: bool = False) -> None:
        """
        Fail fast on missing required settings (skipped in test mode).

        Raises:
            RuntimeError: If a required variable is empty
        """
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL environment variable is required")
        if self.testing:
            return
        if not self.WIKI_OAUTH_CLIENT_ID:
            raise RuntimeError("WIKI_OAUTH_CLIENT_ID environment variable is required")
        if not self.WIKI_OAUTH_CLIENT_SECRET:
            raise RuntimeError("WIKI_OAUTH_CLIENT_SECRET environment variable is required")
        if bot and not self.DISCORD_BOT_TOKEN:
            raise RuntimeError("DISCORD_BOT_TOKEN environment variable is required")
