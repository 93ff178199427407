"""Wiki identity lookups against CentralAuth."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from wikiauth.config import Settings
from wikiauth.errors import IdentityFetchFailed
from wikiauth.models.community import CommunityConfig
from wikiauth.models.identity import WikiIdentity

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolves a global account id to its canonical name and profile link."""

    def __init__(self, settings: Settings) -> None:
        self._api_url = settings.WIKI_API_URL
        self._profile_url = settings.WIKI_PROFILE_URL
        self._headers = {"User-Agent": settings.USER_AGENT}

    def profile_url(self, name: str, template: str | None = None) -> str:
        return (template or self._profile_url).format(name=quote(name.replace(" ", "_")))

    def user_link(self, community: CommunityConfig | None, name: str) -> str:
        """Profile link for a canonical name, using the community's wiki when it has one."""
        return self.profile_url(name, community.profile_url_template if community else None)

    async def resolve(self, wiki_account_id: int, community: CommunityConfig | None = None) -> WikiIdentity:
        """
        Look up a global account by id.

        Callers must treat failure as degraded, not fatal. The profile link
        follows the community's link template when one is given.

        Raises:
            IdentityFetchFailed: Transport error, API error, or unknown account
        """
        params = {
            "action": "query",
            "meta": "globaluserinfo",
            "guiid": str(wiki_account_id),
            "format": "json",
            "formatversion": "2",
        }
        try:
            async with httpx.AsyncClient(timeout=10.0, headers=self._headers) as client:
                response = await client.get(self._api_url, params=params)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise IdentityFetchFailed(f"globaluserinfo request failed for {wiki_account_id}") from exc

        if not isinstance(payload, dict):
            raise IdentityFetchFailed(f"Unexpected globaluserinfo response for {wiki_account_id}")

        if "error" in payload:
            error = payload["error"]
            code = error.get("code", "unknown") if isinstance(error, dict) else error
            raise IdentityFetchFailed(f"globaluserinfo error: {code}")

        query = payload.get("query")
        info = query.get("globaluserinfo") if isinstance(query, dict) else None
        if not isinstance(info, dict):
            raise IdentityFetchFailed(f"Unexpected globaluserinfo response for {wiki_account_id}")

        name = info.get("name")
        if info.get("missing") or not isinstance(name, str) or not name:
            raise IdentityFetchFailed(f"No global account with id {wiki_account_id}")

        return WikiIdentity(
            wiki_account_id=wiki_account_id,
            canonical_name=name,
            profile_url=self.user_link(community, name),
        )
