"""Data models for event row processing."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = 10


@dataclass
class SourceRow:
    """One spreadsheet line describing a candidate event."""
    date: str
    title: str
    host: str
    start_time: str
    end_time: str
    location: str
    description: str
    registration_status: str
    reference_link: str
    tags: str

    @classmethod
    def from_cells(cls, cells: List[str]) -> 'SourceRow':
        """
        Build a row from raw sheet cells.

        The Sheets API drops trailing empty cells, so short rows are padded
        with empty strings. Cells past the tenth column are ignored.
        """
        values = [str(cell) if cell is not None else '' for cell in cells[:SOURCE_COLUMNS]]
        values.extend([''] * (SOURCE_COLUMNS - len(values)))
        return cls(*values)


@dataclass
class Coordinates:
    """Geocoded position; both values are None when unresolved."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def resolved(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class EventRecord:
    """Canonical event record persisted to the document store."""
    event_date: str
    event_title: str
    host_organization: str
    start_time: Optional[str]
    end_time: Optional[str]
    location: str
    activity_description: str
    registration_status: str
    reference_link: str
    image_url: str
    latitude: Optional[float]
    longitude: Optional[float]
    tags: List[str] = field(default_factory=list)
    faculty: List[str] = field(default_factory=list)
    degree_level: List[str] = field(default_factory=list)

    def has_tag(self, tag: str) -> bool:
        """Case-insensitive exact tag match."""
        wanted = tag.strip().lower()
        return any(t.strip().lower() == wanted for t in self.tags)

    def to_document(self) -> dict:
        """Convert to a MongoDB document; each call returns a fresh dict."""
        return {
            'event_date': self.event_date,
            'event_title': self.event_title,
            'host_organization': self.host_organization,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'location': self.location,
            'activity_description': self.activity_description,
            'registration_status': self.registration_status,
            'reference_link': self.reference_link,
            'image_url': self.image_url,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'tags': list(self.tags),
            'faculty': list(self.faculty),
            'degree_level': list(self.degree_level),
        }


class RowOutcome(Enum):
    """Terminal state of a single row."""
    PERSISTED = 'persisted'
    SKIPPED_MISSING_INPUT = 'skipped_missing_input'
    SKIPPED_MISSING_REFERENCE = 'skipped_missing_reference'
    FAILED = 'failed'


@dataclass
class BatchResult:
    """Result of a batch run, including the failure ledger."""
    persisted: int = 0
    skipped_missing_input: int = 0
    skipped_missing_reference: int = 0
    failed: int = 0
    failed_titles: List[str] = field(default_factory=list)

    def record(self, outcome: RowOutcome, title: str) -> None:
        if outcome is RowOutcome.PERSISTED:
            self.persisted += 1
        elif outcome is RowOutcome.SKIPPED_MISSING_REFERENCE:
            self.skipped_missing_reference += 1
        elif outcome is RowOutcome.SKIPPED_MISSING_INPUT:
            self.skipped_missing_input += 1
            self.failed_titles.append(title)
        else:
            self.failed += 1
            self.failed_titles.append(title)

    def report(self) -> None:
        """Log the failure ledger, or a success notice when it is empty."""
        if self.failed_titles:
            lines = '\n'.join(f"- {title}" for title in self.failed_titles)
            logger.warning(
                f"The following events could not be uploaded:\n{lines}",
                extra={'failed_titles': list(self.failed_titles)}
            )
        else:
            logger.info("All events were uploaded successfully!")
