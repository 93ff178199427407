"""Error taxonomy for the linking core."""

from __future__ import annotations


class LinkError(Exception):
    """Base class for linking failures."""


class InvalidToken(LinkError):
    """Token is malformed or unknown."""


class ExpiredToken(LinkError):
    """Token exists but its link request is no longer pending."""


class AlreadyCompleted(LinkError):
    """Token was already consumed. Benign and idempotent."""


class AlreadyLinked(LinkError):
    """Chat user already has a linked wiki account. Benign and idempotent."""


class IdentityFetchFailed(LinkError):
    """The wiki identity service could not be reached or gave no answer."""


class StorageFailure(LinkError):
    """A database operation failed. Fatal for the surrounding operation."""


class RoleGrantFailed(LinkError):
    """The chat platform refused or failed to grant a role. Non-fatal."""
