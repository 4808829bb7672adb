"""MongoDB persistence for event records."""
import logging
from typing import Any, List

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from processor.errors import PersistError, SourceConnectionError
from processor.event_processor import normalize_date
from processor.models import EventRecord

logger = logging.getLogger(__name__)


class MongoEventStore:
    """Writes event records into date-partitioned collections."""

    DAY_COLLECTION_PREFIX = 'Event_'
    HALLOWEEN_TAG = 'halloween'
    HALLOWEEN_COLLECTION = 'Halloween'

    def __init__(self, client: MongoClient, db_name: str):
        """
        Initialize the store on an open client.

        Args:
            client: Connected MongoClient (or compatible)
            db_name: Name of the database holding event collections
        """
        self.client = client
        self.db = client[db_name]
        logger.info(f"Initialized MongoEventStore for database: {db_name}")

    @classmethod
    def connect(cls, uri: str, db_name: str) -> 'MongoEventStore':
        """
        Open a client and verify the server is reachable.

        Raises:
            SourceConnectionError: If the connection or ping fails
        """
        try:
            client = MongoClient(uri)
            client.admin.command('ping')
        except PyMongoError as e:
            raise SourceConnectionError(f"Could not connect to MongoDB: {e}") from e

        logger.info("Connected to MongoDB")
        return cls(client, db_name)

    def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed")

    def target_collections(self, record: EventRecord) -> List[str]:
        """
        Map a record to the collections it is written to.

        The day collection always comes first; the themed collection
        follows when the record carries the halloween tag.

        Raises:
            PersistError: If the event date cannot be parsed
        """
        event_day = normalize_date(record.event_date)
        if event_day is None:
            raise PersistError(
                f"Cannot derive a collection for event '{record.event_title}' "
                f"from date '{record.event_date}'"
            )

        targets = [f"{self.DAY_COLLECTION_PREFIX}{event_day.strftime('%Y_%m_%d')}"]
        if record.has_tag(self.HALLOWEEN_TAG):
            targets.append(self.HALLOWEEN_COLLECTION)
        return targets

    def persist(self, record: EventRecord) -> Any:
        """
        Insert a record into each of its target collections.

        Args:
            record: Assembled event record

        Returns:
            Inserted id of the primary (day collection) document

        Raises:
            PersistError: If any insert fails
        """
        inserted_ids = []
        for collection_name in self.target_collections(record):
            try:
                result = self.db[collection_name].insert_one(record.to_document())
            except PyMongoError as e:
                logger.error(
                    f"Error inserting event '{record.event_title}' into {collection_name}: {e}"
                )
                raise PersistError(
                    f"Failed to insert event into {collection_name}: {e}"
                ) from e

            logger.info(f"Event inserted into {collection_name} with ID: {result.inserted_id}")
            inserted_ids.append(result.inserted_id)

        return inserted_ids[0]
