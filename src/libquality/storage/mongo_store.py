"""
MongoDB storage for looked-up repositories and their issues.

Two collections are used and nothing links them except the repository name,
so a failure between ``save_repository`` and ``insert_issues`` leaves a
repository without issues.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, List, Optional, Sequence

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..errors import PersistenceFailure
from ..logger import get_logger
from ..models import IssueRecord, RepositoryRecord
from ..settings import settings

log = get_logger(__name__)


class MongoRepositoryStore:
    """Thin wrapper around PyMongo for the repository cache."""

    def __init__(
        self,
        uri: Optional[str] = None,
        database: Optional[str] = None,
        repositories_collection: Optional[str] = None,
        issues_collection: Optional[str] = None,
        client: Optional[MongoClient] = None,
    ) -> None:
        self.uri = uri or settings.mongo_uri
        self.database_name = database or settings.mongo_database
        self.repositories_collection_name = (
            repositories_collection or settings.mongo_repositories_collection
        )
        self.issues_collection_name = issues_collection or settings.mongo_issues_collection
        self._client: Optional[MongoClient] = client
        self._database: Optional[Database] = None

    def connect(self) -> None:
        """Open the client (if needed), select the database and ensure indexes."""
        if self._database is not None:
            return
        try:
            if self._client is None:
                log.info("connecting_mongo", database=self.database_name)
                self._client = MongoClient(
                    self.uri,
                    serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
                    tz_aware=True,
                )
            self._database = self._client[self.database_name]
            self._ensure_indexes()
        except PyMongoError as exc:
            self._database = None
            raise PersistenceFailure(f"Could not connect to MongoDB: {exc}") from exc

    def _ensure_indexes(self) -> None:
        assert self._database is not None
        # Lookup indexes only. Uniqueness on name is not enforced.
        self._database[self.repositories_collection_name].create_index(
            [("name", ASCENDING)], name="name_lookup"
        )
        self._database[self.issues_collection_name].create_index(
            [("repository", ASCENDING)], name="repository_lookup"
        )

    @property
    def repositories(self) -> Collection:
        self.connect()
        assert self._database is not None
        return self._database[self.repositories_collection_name]

    @property
    def issues(self) -> Collection:
        self.connect()
        assert self._database is not None
        return self._database[self.issues_collection_name]

    def find_repository(self, name: str) -> Optional[RepositoryRecord]:
        """Return the stored record whose name equals ``name`` exactly."""
        try:
            document = self.repositories.find_one({"name": name})
        except PyMongoError as exc:
            raise PersistenceFailure(f"Repository lookup failed: {exc}") from exc
        if document is None:
            return None
        return RepositoryRecord.from_document(document)

    def save_repository(self, record: RepositoryRecord) -> RepositoryRecord:
        """Insert ``record`` and return a copy carrying the generated id."""
        try:
            result = self.repositories.insert_one(record.to_document())
        except PyMongoError as exc:
            raise PersistenceFailure(f"Saving repository failed: {exc}") from exc
        log.debug("repository_saved", name=record.name, id=str(result.inserted_id))
        return replace(record, id=str(result.inserted_id))

    def insert_issues(self, records: Sequence[IssueRecord]) -> int:
        """Bulk insert issue records; returns how many were written."""
        documents: List[dict[str, Any]] = [record.to_document() for record in records]
        if not documents:
            return 0
        try:
            result = self.issues.insert_many(documents)
        except PyMongoError as exc:
            raise PersistenceFailure(f"Saving issues failed: {exc}") from exc
        log.debug("issues_saved", count=len(result.inserted_ids))
        return len(result.inserted_ids)

    def list_repositories(self) -> List[RepositoryRecord]:
        try:
            documents = list(self.repositories.find().sort("name", ASCENDING))
        except PyMongoError as exc:
            raise PersistenceFailure(f"Listing repositories failed: {exc}") from exc
        return [RepositoryRecord.from_document(document) for document in documents]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            log.info("mongo_connection_closed")
        self._client = None
        self._database = None
