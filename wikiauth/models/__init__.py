"""
Pydantic models for wikiauth.

All data shapes defined here. No imports from db, repos, or routes.
"""

from wikiauth.models.auth_request import AuthRequest, AuthRequestState, Completion, CompletionStatus
from wikiauth.models.community import CommunityConfig
from wikiauth.models.events import AuthCommand, BotEvent, MemberJoined, Ready, UnlinkCommand, parse_event
from wikiauth.models.identity import WikiIdentity
from wikiauth.models.linked_account import CommitResult, CommitStatus, LinkedAccount

__all__ = [
    # Link request models
    "AuthRequest",
    "AuthRequestState",
    "Completion",
    "CompletionStatus",
    # Link models
    "LinkedAccount",
    "CommitResult",
    "CommitStatus",
    "CommunityConfig",
    "WikiIdentity",
    # Bot events
    "BotEvent",
    "Ready",
    "MemberJoined",
    "AuthCommand",
    "UnlinkCommand",
    "parse_event",
]
