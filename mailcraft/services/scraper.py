from __future__ import annotations

import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
import httpx

from mailcraft.config import settings
from mailcraft.domain.products import ScrapedPage
from mailcraft.errors import FetchError, InvalidInputError

logger = logging.getLogger(__name__)

# Raw src values containing these markers are site chrome, not product shots.
_EXCLUDED_SRC_MARKERS = ("logo", "icon")
_INVALID_URL_MESSAGE = "URL must be an absolute http(s) URL"


def normalize_product_url(url: str | None) -> str:
    if url is None or not isinstance(url, str) or not url.strip():
        raise InvalidInputError("URL is required")
    cleaned = url.strip()
    try:
        parsed = urlparse(cleaned)
    except ValueError as exc:
        raise InvalidInputError(_INVALID_URL_MESSAGE) from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInputError(_INVALID_URL_MESSAGE)
    return cleaned


def _fetch_html(url: str) -> str:
    headers = {"User-Agent": settings.SCRAPER_USER_AGENT}
    try:
        with httpx.Client(timeout=settings.SCRAPER_TIMEOUT_SECONDS, follow_redirects=True) as client:
            response = client.get(url, headers=headers)
            response.raise_for_status()
    except httpx.InvalidURL as exc:
        raise InvalidInputError(_INVALID_URL_MESSAGE) from exc
    except httpx.HTTPStatusError as exc:
        raise FetchError(
            f"Fetching {url} failed with status {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"Network error while fetching {url}: {exc}") from exc
    return response.text


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract_image_urls(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Collect <img> sources in document order, resolved against base_url.

    Duplicates are kept; the logo/icon test runs on the raw attribute value.
    """
    root = soup.body or soup
    images: list[str] = []
    for img in root.find_all("img"):
        src = img.get("src")
        if not src or not isinstance(src, str):
            continue
        if any(marker in src for marker in _EXCLUDED_SRC_MARKERS):
            continue
        images.append(urljoin(base_url, src.strip()))
    return images


def extract_page_text(soup: BeautifulSoup, max_chars: int | None = None) -> str:
    """Visible text of the page. Strips script-like tags from `soup` in place."""
    for tag in soup(["script", "style", "noscript", "svg"]):
        tag.decompose()
    root = soup.body or soup
    text = root.get_text(" ", strip=True)
    limit = max_chars if max_chars is not None else settings.SCRAPER_PAGE_TEXT_MAX_CHARS
    if limit and len(text) > limit:
        text = text[:limit]
    return text


def fetch_page(url: str | None) -> ScrapedPage:
    product_url = normalize_product_url(url)
    html = _fetch_html(product_url)
    soup = parse_html(html)
    # Images first: text extraction mutates the tree.
    images = extract_image_urls(soup, product_url)
    text = extract_page_text(soup)
    logger.info(
        "Scraped product page",
        extra={"url": product_url, "image_count": len(images), "html_bytes": len(html)},
    )
    return ScrapedPage(url=product_url, text=text, images=tuple(images))
