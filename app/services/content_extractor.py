"""Image URL extraction from rendered HTML."""

from typing import List

from bs4 import BeautifulSoup

from app.core.exceptions import ContentExtractionException


def resolve_image_url(src: str, base_url: str) -> str:
    """Pass absolute URLs through, prefix anything else with ``base_url``."""
    if src.lower().startswith("http"):
        return src
    return f"{base_url}{src}"


def extract_image_urls(html: str, base_url: str) -> List[str]:
    """
    Collect the sources of all ``img`` elements in document order.

    Duplicates are kept. Elements without a (non-blank) ``src`` are skipped.

    Args:
        html: Rendered HTML fragment
        base_url: Site base URL used for relative sources

    Returns:
        List of absolute image URLs

    Raises:
        ContentExtractionException: If the HTML cannot be parsed
    """
    if not isinstance(html, str):
        raise ContentExtractionException(
            f"Rendered content must be a string, got {type(html).__name__}"
        )

    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        raise ContentExtractionException(f"Failed to parse rendered content: {e}") from e

    urls = []
    for img in soup.find_all("img"):
        src = img.get("src")
        if not src or not src.strip():
            continue
        urls.append(resolve_image_url(src.strip(), base_url))
    return urls
