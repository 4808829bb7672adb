"""Scraper for the primary image of an Instagram post."""
import logging

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from processor.errors import ScrapeError

logger = logging.getLogger(__name__)


class InstagramImageScraper:
    """Reads the post media URL from an Instagram post page with a headless browser."""

    POST_IMAGE_SELECTOR = 'article img[srcset], article img.FFVAD'

    def __init__(self, timeout: int = 15, headless: bool = True):
        """
        Initialize the image scraper.

        Args:
            timeout: Seconds to wait for the post image to appear (default: 15)
            headless: Run the browser without a window (default: True)
        """
        self.timeout = timeout
        self.headless = headless

    def fetch_primary_image(self, post_url: str) -> str:
        """
        Load a post in a fresh browser session and return its image URL.

        The browser is closed before returning, whether or not an image
        was found.

        Args:
            post_url: URL of the Instagram post

        Returns:
            Absolute URL of the post image

        Raises:
            ScrapeError: If the browser fails or no post image appears in time
        """
        timeout_ms = self.timeout * 1000

        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(headless=self.headless)
                try:
                    page = browser.new_page()
                    page.goto(post_url, timeout=timeout_ms)
                    element = page.wait_for_selector(
                        self.POST_IMAGE_SELECTOR,
                        state='attached',
                        timeout=timeout_ms
                    )
                    image_url = element.evaluate("img => img.currentSrc || img.src") if element else None
                finally:
                    browser.close()
        except PlaywrightError as e:
            logger.error(f"Error scraping Instagram post {post_url}: {e}")
            raise ScrapeError(f"Could not scrape image from {post_url}: {e}") from e

        if not image_url:
            logger.error(f"No post image found at {post_url}")
            raise ScrapeError(f"No post image found at {post_url}")

        logger.info(f"Scraped Instagram Image URL: {image_url}")
        return image_url
