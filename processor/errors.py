"""Exceptions raised by the upload pipeline."""


class UploadError(Exception):
    """Base class for pipeline errors."""


class ScrapeError(UploadError):
    """No post image could be read from the social-media page."""


class FetchError(UploadError):
    """The source image could not be downloaded."""


class StoreError(UploadError):
    """Writing the image to object storage failed."""


class PersistError(UploadError):
    """Writing the event record to the document store failed."""


class SourceConnectionError(UploadError, ConnectionError):
    """The spreadsheet or the database could not be reached. Fatal to the run."""
