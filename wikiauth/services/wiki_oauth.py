"""HTTP client for the Wikimedia OAuth 2 consent flow."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx

from wikiauth.config import Settings
from wikiauth.errors import IdentityFetchFailed

logger = logging.getLogger(__name__)


class WikiOAuthClient:
    """
    Builds consent URLs and turns proof codes into verified account ids.

    The wiki provider only ever sees our link token as the OAuth `state`
    parameter. No access token or cookie is kept after exchange().
    """

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.WIKI_OAUTH_BASE.rstrip("/")
        self._client_id = settings.WIKI_OAUTH_CLIENT_ID
        self._client_secret = settings.WIKI_OAUTH_CLIENT_SECRET
        self._callback_url = settings.CALLBACK_URL
        self._headers = {"User-Agent": settings.USER_AGENT}

    def consent_url(self, token: str) -> str:
        """Return the provider's consent page URL for a link token."""
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self._client_id,
                "redirect_uri": self._callback_url,
                "state": token,
            }
        )
        return f"{self._base_url}/authorize?{query}"

    async def exchange(self, code: str) -> int:
        """
        Exchange a proof code for the verified global account id.

        Args:
            code: Authorization code from the provider redirect

        Returns:
            Central account id (the profile's `sub`)

        Raises:
            IdentityFetchFailed: If the provider rejects the code or is unreachable
        """
        try:
            async with httpx.AsyncClient(timeout=10.0, headers=self._headers) as client:
                response = await client.post(
                    f"{self._base_url}/access_token",
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "redirect_uri": self._callback_url,
                    },
                )
                response.raise_for_status()
                access_token = response.json()["access_token"]

                response = await client.get(
                    f"{self._base_url}/resource/profile",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
                return int(response.json()["sub"])
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("OAuth code exchange failed: %s", exc)
            raise IdentityFetchFailed("Could not verify the wiki account") from exc
