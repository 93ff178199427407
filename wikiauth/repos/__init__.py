"""
Repository layer for wikiauth.

All SQL lives here and ONLY here. No database access outside this module.
"""

from wikiauth.repos.auth_request_repo import AuthRequestRepo
from wikiauth.repos.community_config_repo import CommunityConfigRepo
from wikiauth.repos.linked_account_repo import LinkedAccountRepo

__all__ = [
    "AuthRequestRepo",
    "LinkedAccountRepo",
    "CommunityConfigRepo",
]
