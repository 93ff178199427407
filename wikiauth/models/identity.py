"""Wiki identity returned by the identity service."""

from __future__ import annotations

from pydantic import BaseModel


class WikiIdentity(BaseModel):
    wiki_account_id: int
    canonical_name: str
    profile_url: str
