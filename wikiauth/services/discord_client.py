"""HTTP client for the Discord REST API."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from wikiauth.config import Settings
from wikiauth.errors import RoleGrantFailed

logger = logging.getLogger(__name__)


class DiscordClient:
    """
    Chat platform operations used by the bot process.

    Only role grants and channel messages; gateway events arrive from
    outside (see wikiauth.bot).
    """

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.DISCORD_API_URL.rstrip("/")
        self._headers = {
            "Authorization": f"Bot {settings.DISCORD_BOT_TOKEN}",
            "User-Agent": settings.USER_AGENT,
        }

    async def grant_role(self, community_id: int, chat_user_id: int, role_id: int) -> None:
        """
        Add a role to a guild member.

        Raises:
            RoleGrantFailed: If Discord refuses or cannot be reached
        """
        url = f"{self._base_url}/guilds/{community_id}/members/{chat_user_id}/roles/{role_id}"
        try:
            async with httpx.AsyncClient(timeout=10.0, headers=self._headers) as client:
                response = await client.put(url, headers={"X-Audit-Log-Reason": "Linked wiki account"})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RoleGrantFailed(f"Could not grant role {role_id} to {chat_user_id} in {community_id}") from exc

    async def send_message(self, channel_id: int, content: str, reactions: list[str] | None = None) -> int:
        """
        Post a message and attach reactions to it.

        A failed reaction is logged and skipped; the message is already out.

        Args:
            channel_id: Target channel
            content: Rendered message text
            reactions: Unicode emoji to react with

        Returns:
            Id of the created message

        Raises:
            httpx.HTTPError: If the message itself could not be sent
        """
        async with httpx.AsyncClient(timeout=10.0, headers=self._headers) as client:
            response = await client.post(
                f"{self._base_url}/channels/{channel_id}/messages",
                json={"content": content, "allowed_mentions": {"parse": ["users"]}},
            )
            response.raise_for_status()
            message_id = int(response.json()["id"])

            for emoji in reactions or []:
                try:
                    reaction = await client.put(
                        f"{self._base_url}/channels/{channel_id}/messages/{message_id}/reactions/{quote(emoji)}/@me"
                    )
                    reaction.raise_for_status()
                except httpx.HTTPError:
                    logger.warning("Failed to add reaction %s to message %s", emoji, message_id)

            return message_id

    async def send_direct_message(self, chat_user_id: int, content: str) -> int:
        """
        Open (or reuse) the DM channel with a user and post to it.

        Raises:
            httpx.HTTPError: If the channel could not be opened or the message sent
        """
        async with httpx.AsyncClient(timeout=10.0, headers=self._headers) as client:
            response = await client.post(
                f"{self._base_url}/users/@me/channels",
                json={"recipient_id": str(chat_user_id)},
            )
            response.raise_for_status()
            channel_id = int(response.json()["id"])

        return await self.send_message(channel_id, content)
