"""Database service modules."""

from .repositories import RepositoryCatalog, RepositoryService
from .settings import GitHubTokenProvider, SettingsService
from .sync_jobs import SupabaseJobStore

__all__ = [
    "RepositoryCatalog",
    "RepositoryService",
    "GitHubTokenProvider",
    "SettingsService",
    "SupabaseJobStore",
]
