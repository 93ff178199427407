"""Linked account models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class LinkedAccount(BaseModel):
    """A committed chat user ↔ wiki account association. Immutable."""

    model_config = ConfigDict(frozen=True)

    chat_user_id: int
    wiki_account_id: int
    linked_at: datetime


class CommitStatus(StrEnum):
    OK = "ok"
    ALREADY_LINKED = "already_linked"


class CommitResult(BaseModel):
    """Outcome of a link commit. `account` is the row now stored for the user."""

    status: CommitStatus
    account: LinkedAccount | None = None
