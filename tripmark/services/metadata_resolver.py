"""
Deep-link metadata scraping.

A place's Google Maps page carries Open Graph tags: `og:image` holds a
representative photo and the description starts with the star rating
rendered as glyphs. One GET yields both, which is cheaper than a photo call.
"""
import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from tripmark.config import settings
from tripmark.models.places import PageMetadata
from tripmark.utils.normalizers import count_stars

logger = logging.getLogger(__name__)

IMAGE_META_KEYS = ("og:image", "twitter:image")
DESCRIPTION_META_KEYS = ("og:description", "description", "twitter:description")


def _meta_content(soup: BeautifulSoup, keys) -> Optional[str]:
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content"):
            return tag["content"].strip()
    return None


def parse_page_metadata(html: str) -> PageMetadata:
    """Extract image URL and star rating from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    return PageMetadata(
        image_url=_meta_content(soup, IMAGE_META_KEYS),
        stars=count_stars(_meta_content(soup, DESCRIPTION_META_KEYS)),
    )


class MediaMetadataResolver:
    """Fetches a single page and reads its image + rating meta tags."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout or settings.metadata_timeout
        self._http_client = http_client

    async def _get_html(self, url: str) -> Optional[str]:
        headers = {"User-Agent": settings.metadata_user_agent}
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, headers=headers, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=headers)
            response.raise_for_status()
            return response.text
        except httpx.HTTPError as exc:
            logger.warning(f"Metadata fetch failed for {url}: {exc}")
            return None

    async def resolve(self, deep_link: str) -> PageMetadata:
        """
        Scrape `deep_link` for an image and a star rating.

        Failures return empty metadata; the caller falls back to the
        photo API for the image.
        """
        html = await self._get_html(deep_link)
        if not html:
            return PageMetadata()
        metadata = parse_page_metadata(html)
        logger.debug(f"Metadata for {deep_link}: image={bool(metadata.image_url)} stars={metadata.stars}")
        return metadata

    async def fetch_description(self, url: str) -> Optional[str]:
        """Page description for content submitted as a bare URL."""
        html = await self._get_html(url)
        if not html:
            return None
        soup = BeautifulSoup(html, "html.parser")
        return _meta_content(soup, DESCRIPTION_META_KEYS)
