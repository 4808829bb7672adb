"""Location lookup against the Google Geocoding API."""
import logging
from typing import Optional

import requests

from processor.models import Coordinates

logger = logging.getLogger(__name__)


class GoogleGeocoder:
    """Resolves free-text addresses to coordinates."""

    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(
        self,
        api_key: str,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the geocoder.

        Args:
            api_key: Google Maps API key
            timeout: HTTP request timeout in seconds (default: 30)
            session: Optional requests session to issue lookups with
        """
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def resolve(self, location: str) -> Coordinates:
        """
        Look up coordinates for a location.

        The first candidate is used when several match. Lookup failures
        of any kind are logged and reported as unresolved coordinates.

        Args:
            location: Free-text address

        Returns:
            Coordinates, with both values None when unresolved
        """
        logger.info(f"Resolving coordinates for {location}")

        try:
            response = self.session.get(
                self.BASE_URL,
                params={'address': location, 'key': self.api_key},
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Error fetching coordinates for location '{location}': {e}")
            return Coordinates()

        status = payload.get('status')
        results = payload.get('results') or []
        if status not in (None, 'OK', 'ZERO_RESULTS'):
            logger.warning(
                f"Geocoding lookup for '{location}' returned status {status}: "
                f"{payload.get('error_message', '')}"
            )
            return Coordinates()

        if not results:
            logger.warning(f"No geocoding results for location '{location}'")
            return Coordinates()

        try:
            point = results[0]['geometry']['location']
            return Coordinates(
                latitude=float(point['lat']),
                longitude=float(point['lng'])
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed geocoding result for '{location}': {e}")
            return Coordinates()
