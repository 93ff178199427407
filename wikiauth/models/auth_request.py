"""Link request models for the chat → wiki linking flow."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel


class AuthRequestState(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class AuthRequest(BaseModel):
    """Core link request model, maps 1:1 to auth_requests table."""

    token: str
    chat_user_id: int
    created_at: datetime
    state: AuthRequestState
    wiki_account_id: int | None = None
    terminal_at: datetime | None = None

    def effective(self, now: datetime, ttl: timedelta) -> AuthRequest:
        """
        Return this request with lazy expiry applied.

        Any Pending or Completed request older than the TTL reads as Expired,
        whatever the database row says. A consumed token keeps its
        wiki_account_id, so it can still be told apart from an unused one.
        """
        live = (AuthRequestState.PENDING, AuthRequestState.COMPLETED)
        if self.state in live and now - self.created_at > ttl:
            return self.model_copy(update={"state": AuthRequestState.EXPIRED})
        return self


class CompletionStatus(StrEnum):
    OK = "ok"
    ALREADY_COMPLETED = "already_completed"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


class Completion(BaseModel):
    """Outcome of consuming a token."""

    status: CompletionStatus
    request: AuthRequest | None = None
