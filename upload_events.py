"""Batch upload of spreadsheet events into MongoDB."""
import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from processor.batch_driver import BatchDriver
from processor.errors import SourceConnectionError
from processor.geocoder import GoogleGeocoder
from scraper.google_sheet import GoogleSheetReader
from scraper.instagram_image import InstagramImageScraper
from storage.mongo_store import MongoEventStore
from storage.s3_publisher import S3ImagePublisher

DEFAULT_SPREADSHEET_ID = '1izC3vkNyVKWtVaYd6g8jX565bpde59ff_Fc9hulBHr4'
DEFAULT_SHEET_RANGE = 'Sheet1!A2:J'


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass(frozen=True)
class Settings:
    """Run configuration read from the process environment."""
    spreadsheet_id: str
    sheet_range: str
    service_account_file: str
    google_api_key: str
    s3_bucket: str
    aws_region: str
    mongo_uri: str
    mongo_db_name: str
    log_level: str
    scrape_timeout: int
    http_timeout: int

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            spreadsheet_id=os.environ.get('SPREADSHEET_ID', DEFAULT_SPREADSHEET_ID),
            sheet_range=os.environ.get('SHEET_RANGE', DEFAULT_SHEET_RANGE),
            service_account_file=os.environ.get('GOOGLE_SERVICE_ACCOUNT_FILE', 'service-account.json'),
            google_api_key=os.environ.get('GOOGLE_API_KEY', ''),
            s3_bucket=os.environ.get('S3_BUCKET', ''),
            aws_region=os.environ.get('AWS_REGION', 'us-east-1'),
            mongo_uri=os.environ.get('MONGO_URI', 'mongodb://localhost:27017'),
            mongo_db_name=os.environ.get('MONGO_DB_NAME', 'events'),
            log_level=os.environ.get('LOG_LEVEL', 'INFO'),
            scrape_timeout=int(os.environ.get('SCRAPE_TIMEOUT_SECONDS', '15')),
            http_timeout=int(os.environ.get('HTTP_TIMEOUT_SECONDS', '30'))
        )


def main(settings: Optional[Settings] = None) -> int:
    """
    Run the upload batch once.

    Returns:
        Process exit code: 1 if the database or the sheet is unreachable,
        0 otherwise (row failures do not change it)
    """
    if settings is None:
        load_dotenv()
        settings = Settings.from_env()

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Upload batch started",
        extra={
            'spreadsheet_id': settings.spreadsheet_id,
            'sheet_range': settings.sheet_range,
            'mongo_db_name': settings.mongo_db_name
        }
    )

    try:
        store = MongoEventStore.connect(settings.mongo_uri, settings.mongo_db_name)
    except SourceConnectionError as e:
        logger.error(f"Error connecting to MongoDB: {e}", exc_info=True)
        return 1

    try:
        try:
            reader = GoogleSheetReader.from_service_account_file(
                settings.service_account_file, timeout=settings.http_timeout
            )
            rows = reader.fetch_rows(settings.spreadsheet_id, settings.sheet_range)
        except SourceConnectionError as e:
            logger.error(f"Error reading events from spreadsheet: {e}", exc_info=True)
            return 1

        driver = BatchDriver(
            geocoder=GoogleGeocoder(settings.google_api_key, timeout=settings.http_timeout),
            scraper=InstagramImageScraper(timeout=settings.scrape_timeout),
            publisher=S3ImagePublisher(
                settings.s3_bucket,
                region=settings.aws_region,
                timeout=settings.http_timeout
            ),
            store=store
        )
        result = driver.process_rows(rows)
    finally:
        store.close()

    result.report()

    duration = time.time() - start_time
    logger.info(
        "Upload batch completed",
        extra={
            'duration_seconds': round(duration, 2),
            'events_persisted': result.persisted,
            'events_failed': len(result.failed_titles)
        }
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
