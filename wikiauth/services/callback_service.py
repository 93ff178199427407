"""
Verification callback handling.

Turns one provider redirect into exactly one outcome. The service keeps no
state between requests; the token row and the linked_accounts primary key
carry all coordination with the bot process.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from wikiauth.errors import IdentityFetchFailed, StorageFailure
from wikiauth.models.auth_request import AuthRequestState, CompletionStatus
from wikiauth.models.linked_account import CommitStatus
from wikiauth.repos.auth_request_repo import AuthRequestRepo, is_well_formed_token
from wikiauth.repos.linked_account_repo import LinkedAccountRepo
from wikiauth.services.alerts import AlertService
from wikiauth.services.wiki_oauth import WikiOAuthClient

logger = logging.getLogger(__name__)


class CallbackOutcome(StrEnum):
    LINKED = "linked"
    ALREADY_LINKED = "already_linked"
    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"
    IDENTITY_FETCH_FAILED = "identity_fetch_failed"
    STORAGE_FAILURE = "storage_failure"


class CallbackService:
    def __init__(
        self,
        oauth: WikiOAuthClient,
        registry: AuthRequestRepo,
        links: LinkedAccountRepo,
        alerts: AlertService,
    ) -> None:
        self._oauth = oauth
        self._registry = registry
        self._links = links
        self._alerts = alerts

    async def handle(self, token: str | None, code: str | None) -> CallbackOutcome:
        """
        Process one verification redirect.

        The token is checked before the proof code is spent, so a browser
        refresh of a consumed redirect lands on ALREADY_LINKED instead of
        failing at the provider with a reused code. The consuming step is
        still complete(), which is atomic.

        Args:
            token: Link token (query `token` or OAuth `state`)
            code: Proof code from the provider

        Returns:
            The outcome; never raises
        """
        if not token or not code or not is_well_formed_token(token):
            return CallbackOutcome.INVALID_TOKEN

        try:
            return await self._handle(token, code)
        except StorageFailure as exc:
            logger.exception("Storage failure while handling callback")
            await self._alerts.report("Callback storage failure", exc)
            return CallbackOutcome.STORAGE_FAILURE

    async def _handle(self, token: str, code: str) -> CallbackOutcome:
        request = await self._registry.lookup(token)
        if request is None:
            return CallbackOutcome.INVALID_TOKEN
        if request.state == AuthRequestState.COMPLETED or request.wiki_account_id is not None:
            # A consumed token proves nothing once the link is gone (commit
            # failed or the user unlinked); the user has to start over.
            if await self._links.lookup(request.chat_user_id) is None:
                logger.info("Replayed callback for %s has no stored link", request.chat_user_id)
                return CallbackOutcome.EXPIRED
            logger.debug("Replayed callback for consumed token of %s", request.chat_user_id)
            return CallbackOutcome.ALREADY_LINKED
        if request.state != AuthRequestState.PENDING:
            return CallbackOutcome.EXPIRED

        try:
            wiki_account_id = await self._oauth.exchange(code)
        except IdentityFetchFailed:
            return CallbackOutcome.IDENTITY_FETCH_FAILED

        completion = await self._registry.complete(token, wiki_account_id)
        if completion.status == CompletionStatus.NOT_FOUND:
            return CallbackOutcome.INVALID_TOKEN
        if completion.status == CompletionStatus.EXPIRED:
            return CallbackOutcome.EXPIRED
        if completion.status == CompletionStatus.ALREADY_COMPLETED:
            logger.debug("Token for %s completed by a concurrent callback", request.chat_user_id)
            return CallbackOutcome.ALREADY_LINKED

        result = await self._links.commit(request.chat_user_id, wiki_account_id)
        if result.status == CommitStatus.ALREADY_LINKED:
            logger.info("Chat user %s is already linked; token consumed without a new link", request.chat_user_id)
            return CallbackOutcome.ALREADY_LINKED

        logger.info("Linked chat user %s to wiki account %s", request.chat_user_id, wiki_account_id)
        return CallbackOutcome.LINKED
