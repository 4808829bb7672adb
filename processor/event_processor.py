"""Normalization and assembly of event records from sheet rows."""
import logging
import re
from datetime import datetime
from typing import List, Optional

from processor.models import Coordinates, EventRecord, SourceRow

logger = logging.getLogger(__name__)

# 12-hour with a single space before an AM/PM marker, or 24-hour.
# Minutes are always two digits.
_TIME_PATTERN = re.compile(r'^[0-9]{1,2}:[0-9]{2}( [AaPp][Mm])?$')
_WHITESPACE = re.compile(r'\s+')

TIME_FORMATS = [
    '%I:%M %p',      # 12-hour format with AM/PM
    '%H:%M',         # 24-hour format
]

DATE_FORMATS = [
    '%Y-%m-%d',      # ISO 8601
    '%m/%d/%Y',      # US format
    '%m-%d-%Y',      # US format with dashes
    '%B %d, %Y',     # Full month name
    '%b %d, %Y',     # Abbreviated month name
    '%d/%m/%Y',      # European format
    '%Y/%m/%d',      # Alternative ISO format
]

IMAGE_KEY_SUFFIX = '.jpg'


def normalize_time(time_str: Optional[str]) -> Optional[str]:
    """
    Normalize a time to 24-hour format (HH:MM).

    Only "h:mm AM", "h:mm am" and "H:mm" are recognized; anything else,
    including out-of-range values, yields None.

    Args:
        time_str: Time text from the sheet

    Returns:
        24-hour formatted time string or None if parsing fails
    """
    if not time_str:
        return None

    time_str = time_str.strip()
    if not _TIME_PATTERN.match(time_str):
        return None

    for fmt in TIME_FORMATS:
        try:
            time_obj = datetime.strptime(time_str, fmt)
            return time_obj.strftime('%H:%M')
        except ValueError:
            continue

    return None


def normalize_date(date_str: Optional[str]) -> Optional[datetime]:
    """
    Parse an event date at day granularity.

    Args:
        date_str: Date string in one of DATE_FORMATS

    Returns:
        datetime at midnight, or None if parsing fails
    """
    if not date_str or not date_str.strip():
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str.strip(), fmt)
        except ValueError:
            continue

    return None


def parse_tags(tags_text: Optional[str]) -> List[str]:
    """Split a comma-separated tag cell into trimmed, non-empty tags."""
    if not tags_text:
        return []
    return [tag.strip() for tag in tags_text.split(',') if tag.strip()]


def image_key(title: str) -> str:
    """
    Derive the object storage key for an event's image.

    Whitespace runs collapse to a single underscore. Events whose titles
    normalize to the same key share (and overwrite) one object.
    """
    return _WHITESPACE.sub('_', title) + IMAGE_KEY_SUFFIX


def assemble_record(
    row: SourceRow,
    start_time: Optional[str],
    end_time: Optional[str],
    coordinates: Coordinates,
    image_url: str
) -> EventRecord:
    """Combine a source row with its enrichment results."""
    return EventRecord(
        event_date=row.date,
        event_title=row.title,
        host_organization=row.host,
        start_time=start_time,
        end_time=end_time,
        location=row.location,
        activity_description=row.description,
        registration_status=row.registration_status,
        reference_link=row.reference_link,
        image_url=image_url,
        latitude=coordinates.latitude,
        longitude=coordinates.longitude,
        tags=parse_tags(row.tags),
        faculty=[],
        degree_level=[]
    )
