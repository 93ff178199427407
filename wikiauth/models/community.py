"""Per-community configuration, read-only to the linking core."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CommunityConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    community_id: int
    welcome_channel: int | None = None
    authenticated_role: int | None = None
    locale: str = "en"
    # Wiki profile link with a {name} placeholder; None uses the global default
    profile_url_template: str | None = None
