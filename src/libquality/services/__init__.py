"""
Service layer orchestrators for the repository quality API.
"""
from .ingestion import ISSUE_LIST_PLACEHOLDER, LookupOutcome, RepositoryIngestionService

__all__ = ["ISSUE_LIST_PLACEHOLDER", "LookupOutcome", "RepositoryIngestionService"]
