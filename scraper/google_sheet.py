"""Reader for event rows stored in a Google Sheet."""
import logging
from typing import List
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from processor.errors import SourceConnectionError
from processor.models import SourceRow

logger = logging.getLogger(__name__)


class GoogleSheetReader:
    """Reads a fixed cell range from a spreadsheet via the Sheets REST API."""

    BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"
    SCOPES = ['https://www.googleapis.com/auth/spreadsheets.readonly']

    def __init__(self, session: requests.Session, timeout: int = 30):
        """
        Initialize the sheet reader.

        Args:
            session: Authorized requests session for the Sheets API
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.session = session
        self.timeout = timeout

    @classmethod
    def from_service_account_file(cls, key_file: str, timeout: int = 30) -> 'GoogleSheetReader':
        """
        Build a reader authenticated with a service account key file.

        Raises:
            SourceConnectionError: If the key file cannot be loaded
        """
        try:
            credentials = service_account.Credentials.from_service_account_file(
                key_file, scopes=cls.SCOPES
            )
        except (OSError, ValueError) as e:
            raise SourceConnectionError(
                f"Could not load service account credentials from {key_file}: {e}"
            ) from e
        return cls(AuthorizedSession(credentials), timeout=timeout)

    def fetch_rows(self, spreadsheet_id: str, sheet_range: str) -> List[SourceRow]:
        """
        Fetch all rows in the given range.

        Args:
            spreadsheet_id: Spreadsheet identifier
            sheet_range: A1 range, header row excluded (e.g. "Sheet1!A2:J")

        Returns:
            List of SourceRow objects, in sheet order

        Raises:
            SourceConnectionError: If the sheet cannot be read
        """
        logger.info(
            f"Fetching data from spreadsheetId: {spreadsheet_id}, range: {sheet_range}"
        )
        url = f"{self.BASE_URL}/{spreadsheet_id}/values/{quote(sheet_range, safe='')}"

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, GoogleAuthError, ValueError) as e:
            raise SourceConnectionError(f"Failed to read spreadsheet {spreadsheet_id}: {e}") from e

        values = payload.get('values', [])
        if not isinstance(values, list):
            raise SourceConnectionError(
                f"Unexpected 'values' payload from spreadsheet {spreadsheet_id}"
            )

        rows = [SourceRow.from_cells(cells) for cells in values]
        logger.info(f"Fetched {len(rows)} rows from range {payload.get('range', sheet_range)}")
        return rows
