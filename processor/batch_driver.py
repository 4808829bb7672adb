"""Sequential per-row enrichment and upload of sheet events."""
import logging
from typing import Iterable, Optional

from processor.event_processor import assemble_record, image_key, normalize_time
from processor.geocoder import GoogleGeocoder
from processor.models import BatchResult, RowOutcome, SourceRow
from scraper.instagram_image import InstagramImageScraper
from storage.mongo_store import MongoEventStore
from storage.s3_publisher import S3ImagePublisher

logger = logging.getLogger(__name__)


class BatchDriver:
    """Runs every row through geocoding, scraping, upload and persistence."""

    def __init__(
        self,
        geocoder: GoogleGeocoder,
        scraper: InstagramImageScraper,
        publisher: S3ImagePublisher,
        store: MongoEventStore
    ):
        self.geocoder = geocoder
        self.scraper = scraper
        self.publisher = publisher
        self.store = store

    def process_rows(self, rows: Iterable[SourceRow]) -> BatchResult:
        """
        Process rows one at a time.

        A failing row is recorded and the batch moves on to the next one.

        Args:
            rows: Source rows in sheet order

        Returns:
            BatchResult with outcome counts and the failure ledger
        """
        result = BatchResult()

        for row in rows:
            outcome = self.process_row(row)
            result.record(outcome, row.title)

        logger.info(
            f"Processed batch: {result.persisted} persisted, "
            f"{result.skipped_missing_input} missing input, "
            f"{result.skipped_missing_reference} missing reference, "
            f"{result.failed} failed"
        )
        return result

    def process_row(self, row: SourceRow) -> RowOutcome:
        """
        Enrich and persist a single row.

        Args:
            row: Source row

        Returns:
            Terminal RowOutcome for the row
        """
        start_time = self._normalize_time(row, 'start', row.start_time)
        end_time = self._normalize_time(row, 'end', row.end_time)

        if not row.location or not start_time:
            logger.warning(f"Location or time is missing/invalid for event: {row.title}")
            return RowOutcome.SKIPPED_MISSING_INPUT

        if not row.reference_link:
            logger.info(f"Instagram URL is missing for event: {row.title}")
            return RowOutcome.SKIPPED_MISSING_REFERENCE

        try:
            coordinates = self.geocoder.resolve(row.location)
            if not coordinates.resolved:
                logger.info(f"Continuing without coordinates for event: {row.title}")
            scraped_url = self.scraper.fetch_primary_image(row.reference_link)
            image_url = self.publisher.republish(scraped_url, image_key(row.title))
            record = assemble_record(row, start_time, end_time, coordinates, image_url)
            self.store.persist(record)
        except Exception as e:
            logger.error(
                f"Failed to process event: {row.title}. Skipping.",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return RowOutcome.FAILED

        return RowOutcome.PERSISTED

    def _normalize_time(self, row: SourceRow, label: str, value: str) -> Optional[str]:
        normalized = normalize_time(value)
        if normalized is None and value:
            logger.warning(f"Invalid {label} time format for event '{row.title}': {value}")
        return normalized
