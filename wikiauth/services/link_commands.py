"""Chat-side entry points of the linking flow: start and unlink."""

from __future__ import annotations

import logging

from wikiauth.models.events import AuthCommand, UnlinkCommand
from wikiauth.repos.auth_request_repo import AuthRequestRepo
from wikiauth.repos.community_config_repo import CommunityConfigRepo
from wikiauth.repos.linked_account_repo import LinkedAccountRepo
from wikiauth.services.discord_client import DiscordClient
from wikiauth.services.messages import MessageCatalog
from wikiauth.services.wiki_oauth import WikiOAuthClient

logger = logging.getLogger(__name__)


class LinkCommands:
    def __init__(
        self,
        registry: AuthRequestRepo,
        links: LinkedAccountRepo,
        communities: CommunityConfigRepo,
        oauth: WikiOAuthClient,
        chat: DiscordClient,
        messages: MessageCatalog,
        default_locale: str = "en",
    ) -> None:
        self._registry = registry
        self._links = links
        self._communities = communities
        self._oauth = oauth
        self._chat = chat
        self._messages = messages
        self._default_locale = default_locale

    async def start_link(self, chat_user_id: int) -> tuple[str, str]:
        """
        Issue (or refresh) the user's link request.

        Returns:
            (token, consent_url)
        """
        request = await self._registry.start(chat_user_id)
        return request.token, self._oauth.consent_url(request.token)

    async def on_auth_command(self, event: AuthCommand) -> str:
        """Reply with a consent link, or say the user is already linked."""
        locale = await self._locale(event.community_id)
        mention = f"<@{event.chat_user_id}>"

        if await self._links.lookup(event.chat_user_id) is not None:
            if await self._registry.cancel(event.chat_user_id):
                logger.debug("Cancelled open link request of already linked %s", event.chat_user_id)
            template = "auth_already_linked"
            content = self._messages.render(template, locale, {"mention": mention})
        else:
            _, url = await self.start_link(event.chat_user_id)
            template = "auth_start"
            ttl_minutes = int(self._registry.ttl.total_seconds() // 60)
            content = self._messages.render(
                template,
                locale,
                {"mention": mention, "url": url, "ttl_minutes": ttl_minutes},
            )

        # The consent URL carries the token, so it never goes to a shared channel
        await self._chat.send_direct_message(event.chat_user_id, content)
        return template

    async def on_unlink_command(self, event: UnlinkCommand) -> str:
        locale = await self._locale(event.community_id)
        removed = await self._links.unlink(event.chat_user_id)
        if removed:
            logger.info("Unlinked chat user %s", event.chat_user_id)
        template = "unlink_done" if removed else "unlink_not_linked"
        content = self._messages.render(template, locale, {"mention": f"<@{event.chat_user_id}>"})
        await self._chat.send_message(event.channel_id, content)
        return template

    async def _locale(self, community_id: int) -> str:
        community = await self._communities.get(community_id)
        return community.locale if community else self._default_locale
