"""Welcome handling for members joining a community."""

from __future__ import annotations

import logging

from wikiauth.errors import IdentityFetchFailed, RoleGrantFailed
from wikiauth.models.events import MemberJoined
from wikiauth.repos.community_config_repo import CommunityConfigRepo
from wikiauth.repos.linked_account_repo import LinkedAccountRepo
from wikiauth.services.discord_client import DiscordClient
from wikiauth.services.identity_resolver import IdentityResolver
from wikiauth.services.messages import MessageCatalog

logger = logging.getLogger(__name__)

WELCOME_REACTIONS = ["\N{WAVING HAND SIGN}"]


class EventReactor:
    """
    Grants the authenticated role and sends one welcome message per join.

    Role grant and identity lookup failures degrade the result; they never
    stop the message from going out.
    """

    def __init__(
        self,
        links: LinkedAccountRepo,
        communities: CommunityConfigRepo,
        resolver: IdentityResolver,
        chat: DiscordClient,
        messages: MessageCatalog,
    ) -> None:
        self._links = links
        self._communities = communities
        self._resolver = resolver
        self._chat = chat
        self._messages = messages

    async def on_member_joined(self, event: MemberJoined) -> str | None:
        """
        React to a member joining.

        Returns:
            Name of the template sent, or None when the community has no
            welcome channel
        """
        community = await self._communities.get(event.community_id)
        if community is None or community.welcome_channel is None:
            logger.debug("No welcome channel for community %s", event.community_id)
            return None

        mention = f"<@{event.chat_user_id}>"
        variables: dict[str, object] = {"mention": mention}
        linked = await self._links.lookup(event.chat_user_id)

        if linked is None:
            template = "welcome"
        else:
            if community.authenticated_role is not None:
                try:
                    await self._chat.grant_role(event.community_id, event.chat_user_id, community.authenticated_role)
                except RoleGrantFailed:
                    logger.warning(
                        "Role grant failed for %s in community %s",
                        event.chat_user_id,
                        event.community_id,
                        exc_info=True,
                    )

            try:
                identity = await self._resolver.resolve(linked.wiki_account_id, community)
            except IdentityFetchFailed:
                logger.error("Failed to fetch wiki identity %s", linked.wiki_account_id, exc_info=True)
                template = "welcome_has_auth_failed"
            else:
                template = "welcome_has_auth"
                variables["name"] = identity.canonical_name
                variables["user_link"] = identity.profile_url

        content = self._messages.render(template, community.locale, variables)
        await self._chat.send_message(community.welcome_channel, content, WELCOME_REACTIONS)
        return template
