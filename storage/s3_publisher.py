"""Re-hosting of scraped images in S3."""
import logging
from typing import Optional
from urllib.parse import quote

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from processor.errors import FetchError, StoreError

logger = logging.getLogger(__name__)


class S3ImagePublisher:
    """Downloads an image and republishes it as a public S3 object."""

    DEFAULT_CONTENT_TYPE = 'image/jpeg'

    def __init__(
        self,
        bucket: str,
        region: str = 'us-east-1',
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the S3 client.

        Args:
            bucket: Target S3 bucket
            region: AWS region of the bucket (default: us-east-1)
            timeout: HTTP timeout for image downloads in seconds (default: 30)
            session: Optional requests session used to download images
        """
        self.bucket = bucket
        self.region = region
        self.timeout = timeout
        self.session = session or requests.Session()
        self.s3 = boto3.client('s3', region_name=region)
        logger.info(f"Initialized S3ImagePublisher for bucket: {bucket}")

    def republish(self, image_url: str, target_name: str) -> str:
        """
        Copy an image into the bucket with public-read access.

        An existing object with the same key is overwritten.

        Args:
            image_url: Source image URL
            target_name: Object key to write

        Returns:
            Public URL of the stored object

        Raises:
            FetchError: If the image cannot be downloaded
            StoreError: If the S3 write fails
        """
        body, content_type = self._fetch_image(image_url)

        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=target_name,
                Body=body,
                ACL='public-read',
                ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading image to S3 key {target_name}: {e}")
            raise StoreError(f"Failed to store {target_name} in {self.bucket}: {e}") from e

        location = self.public_url(target_name)
        logger.info(f"Image uploaded successfully to {location}")
        return location

    def public_url(self, key: str) -> str:
        """Virtual-hosted style URL for an object in the bucket."""
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key)}"

    def _fetch_image(self, image_url: str) -> tuple[bytes, str]:
        """
        Download image bytes and their content type.

        Raises:
            FetchError: On network failure or a non-success status
        """
        try:
            response = self.session.get(image_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch image from URL: {image_url}: {e}") from e

        if not response.ok:
            raise FetchError(
                f"Failed to fetch image from URL: {image_url} (status {response.status_code})"
            )

        body = response.content
        content_type = response.headers.get('Content-Type') or self.DEFAULT_CONTENT_TYPE
        logger.info(f"Fetched image size: {len(body)} bytes")
        return body, content_type
