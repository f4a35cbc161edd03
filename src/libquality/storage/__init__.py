"""
Data persistence for cached repositories and issues.
"""

from .mongo_store import MongoRepositoryStore

__all__ = ["MongoRepositoryStore"]
