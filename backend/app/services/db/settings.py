"""
Settings database service using Supabase Python SDK.

The sync engine only needs one thing from user settings: the stored
GitHub access token.
"""

import logging
from typing import Optional

from supabase import Client

from .base import BaseDbService

logger = logging.getLogger(__name__)


class SettingsService(BaseDbService):
    """Service for settings database operations."""

    table_name = "settings"

    def get_github_token(self) -> Optional[str]:
        """
        Load the user's GitHub token.

        Returns None when the user has no settings row (e.g. the user was
        deleted) or the token column is empty.
        """
        row = self._get_one(select="github_token")
        if not row:
            logger.debug("No settings row found", extra={"user_id": self.user_id})
            return None
        return row.get("github_token") or None


class GitHubTokenProvider:
    """
    Token lookup used by the sync orchestrator.

    Not bound to a user, so one instance serves every job; each lookup
    goes through a user-scoped SettingsService.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_token(self, user_id: str) -> Optional[str]:
        return SettingsService(self.supabase, user_id).get_github_token()
