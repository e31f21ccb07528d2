"""MongoDB storage client for usagetrack.

Provides connection management, retry logic, and repository access.
"""

import logging
from typing import Any, TypeVar

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from usagetrack.config import StorageConfig

from .repositories import (
    DailyResultRepository,
    HiddenAppRepository,
    NotificationRepository,
    RawEventRepository,
)
from .retry import retry_on_connection_failure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MongoStorageClient:
    """High-level MongoDB storage client.

    Manages connection and provides access to repositories.
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        database_name: str = "usagetrack",
        max_pool_size: int = 10,
        min_pool_size: int = 1,
        connect_timeout_ms: int = 5000,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the storage client.

        Args:
            uri: MongoDB connection URI.
            database_name: Name of the database to use.
            max_pool_size: Maximum connection pool size.
            min_pool_size: Minimum connection pool size.
            connect_timeout_ms: Connection timeout in milliseconds.
            server_selection_timeout_ms: Server selection timeout in milliseconds.
        """
        self._uri = uri
        self._database_name = database_name
        self._client: MongoClient[dict[str, Any]] | None = None
        self._db: Database[dict[str, Any]] | None = None

        self._max_pool_size = max_pool_size
        self._min_pool_size = min_pool_size
        self._connect_timeout_ms = connect_timeout_ms
        self._server_selection_timeout_ms = server_selection_timeout_ms

        self._events: RawEventRepository | None = None
        self._notifications: NotificationRepository | None = None
        self._results: DailyResultRepository | None = None
        self._hidden_apps: HiddenAppRepository | None = None

        self._connected = False

    @classmethod
    def from_config(cls, config: StorageConfig) -> "MongoStorageClient":
        """Create a client from storage configuration."""
        return cls(
            uri=config.uri,
            database_name=config.database,
            max_pool_size=config.max_pool_size,
            min_pool_size=config.min_pool_size,
            connect_timeout_ms=config.connect_timeout_ms,
            server_selection_timeout_ms=config.server_selection_timeout_ms,
        )

    @retry_on_connection_failure(max_retries=3)
    def connect(self) -> None:
        """Connect to MongoDB.

        Raises:
            ConnectionFailure: If connection fails after retries.
        """
        if self._connected:
            return

        try:
            self._client = MongoClient(
                self._uri,
                maxPoolSize=self._max_pool_size,
                minPoolSize=self._min_pool_size,
                connectTimeoutMS=self._connect_timeout_ms,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
            )

            # Verify connection
            self._client.admin.command("ping")

            self.attach(self._client[self._database_name])

            logger.info("Connected to MongoDB at %s", self._uri)

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error("Failed to connect to MongoDB: %s", str(e))
            self._connected = False
            raise

    def attach(self, database: Database[dict[str, Any]]) -> None:
        """Bind repositories to an already-open database."""
        self._db = database
        self._events = RawEventRepository(database["raw_events"])
        self._notifications = NotificationRepository(database["notifications"])
        self._results = DailyResultRepository(database)
        self._hidden_apps = HiddenAppRepository(database["hidden_apps"])
        self._connected = True

    def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self._client is not None:
            self._client.close()
            self._client = None
        self._db = None
        self._events = None
        self._notifications = None
        self._results = None
        self._hidden_apps = None
        if self._connected:
            self._connected = False
            logger.info("Disconnected from MongoDB")

    def is_connected(self) -> bool:
        """Check if connected to MongoDB.

        Returns:
            True if connected, False otherwise.
        """
        if not self._connected:
            return False
        if self._client is None:
            return self._db is not None

        try:
            self._client.admin.command("ping")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError):
            self._connected = False
            return False

    def _require(self, repository: T | None) -> T:
        if repository is None:
            raise RuntimeError("Not connected to MongoDB. Call connect() first.")
        return repository

    @property
    def events(self) -> RawEventRepository:
        """Raw event repository."""
        return self._require(self._events)

    @property
    def notifications(self) -> NotificationRepository:
        """Notification repository."""
        return self._require(self._notifications)

    @property
    def results(self) -> DailyResultRepository:
        """Derived daily result repository."""
        return self._require(self._results)

    @property
    def hidden_apps(self) -> HiddenAppRepository:
        """Hidden package repository."""
        return self._require(self._hidden_apps)

    def __enter__(self) -> "MongoStorageClient":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "MongoStorageClient",
    "retry_on_connection_failure",
]
