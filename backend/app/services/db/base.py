"""
Shared pieces of the Supabase-backed services.

PostgREST reports database failures as exceptions whose text carries the
Postgres/PostgREST error code; the helpers below classify them.

Usage:
    class SettingsService(BaseDbService):
        table_name = "settings"

        def get_github_token(self) -> Optional[str]:
            row = self._get_one(select="github_token")
            return row.get("github_token") if row else None
"""

import logging
from datetime import datetime
from typing import Any, Optional

from supabase import Client

logger = logging.getLogger(__name__)

# Postgres / PostgREST error codes
UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"  # e.g. malformed uuid
NO_ROWS = "PGRST116"


def has_error_code(e: Exception, code: str) -> bool:
    return code in str(e)


def is_duplicate_error(e: Exception) -> bool:
    return has_error_code(e, UNIQUE_VIOLATION)


def to_db_value(value: Any) -> Any:
    """Datetimes go over the wire as ISO strings."""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class BaseDbService:
    """
    A service bound to one table and one user.

    Every read built with `_query()` is filtered by `user_id`, so a service
    can never see another user's rows even under the service-role key.
    """

    table_name: str = ""

    def __init__(self, supabase: Client, user_id: str):
        self.supabase = supabase
        self.user_id = user_id

    def _table(self):
        return self.supabase.table(self.table_name)

    def _query(self, select: str = "*", count: Optional[str] = None):
        """User-scoped SELECT; pass count="exact" to get a total with the page."""
        select_args = {"count": count} if count else {}
        return self._table().select(select, **select_args).eq("user_id", self.user_id)

    def _get_one(self, select: str = "*", **filters: Any) -> Optional[dict]:
        """
        First matching row for the user, or None.

        Uses .limit(1) rather than .single(), which raises on an empty result.
        """
        query = self._query(select)
        for key, value in filters.items():
            query = query.eq(key, value)

        try:
            response = query.limit(1).execute()
        except Exception as e:
            if has_error_code(e, NO_ROWS):
                return None
            logger.error(
                f"Error reading {self.table_name}",
                extra={"user_id": self.user_id, "error": str(e)},
            )
            raise

        if not response.data:
            return None
        return self._row_to_dict(response.data[0])

    def _row_to_dict(self, row: dict) -> dict:
        return row

    def _user_row(self, **values: Any) -> dict:
        """Row for insert/upsert, stamped with the current user."""
        return {"user_id": self.user_id, **{k: to_db_value(v) for k, v in values.items()}}
