"""
MongoDB access for the UserService API.

One client is opened when the application starts and shared by every request;
pymongo pools the underlying connections itself.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database as MongoDatabase
from pymongo.errors import PyMongoError

from settings import Settings

logger = structlog.get_logger(__name__)


class DatabaseUnavailable(RuntimeError):
    """Raised when the database handle is missing or cannot be reached."""


class Database:
    def __init__(self, settings: Settings, client: Optional[MongoClient] = None):
        self.settings = settings
        self._client = client
        self._db: Optional[MongoDatabase] = None

    @property
    def ready(self) -> bool:
        return self._db is not None

    @property
    def db(self) -> MongoDatabase:
        if self._db is None:
            raise DatabaseUnavailable("Database not available")
        return self._db

    def connect(self) -> None:
        if self._client is None:
            self._client = MongoClient(
                self.settings.database_url,
                serverSelectionTimeoutMS=self.settings.db_timeout_ms,
            )
        try:
            self._client.server_info()
        except PyMongoError as exc:
            logger.error("Failed to connect to MongoDB", database=self.settings.database_name, error=str(exc))
            raise DatabaseUnavailable(f"Failed to connect to MongoDB: {exc}") from exc

        self._db = self._client[self.settings.database_name]
        logger.info("Connected to MongoDB", database=self.settings.database_name)

    def ensure_indexes(self) -> None:
        accounts = self.collection()
        accounts.create_index([("Username", ASCENDING)], unique=True, sparse=True)
        accounts.create_index([("Email", ASCENDING)], unique=True, sparse=True)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._db = None
        logger.info("MongoDB connection closed")

    def collection(self, name: Optional[str] = None) -> Collection:
        return self.db[name or self.settings.collection_name]


def _timestamped(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True)
    else:
        doc = dict(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    return doc


def create_document(collection: Collection, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a single document and return its id as a string."""
    result = collection.insert_one(_timestamped(data))
    return str(result.inserted_id)


def get_documents(collection: Collection, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = collection.find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
