from __future__ import annotations

import base64
import logging
from urllib.parse import urlparse

import requests

from ..config import IMAGE_FETCH_TIMEOUT
from ..errors import ImageFetchError, UnsupportedFormatError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"


def _is_pdf(url: str, content_type: str = "") -> bool:
    return urlparse(url).path.lower().endswith(".pdf") or content_type.startswith("application/pdf")


def fetch_image_as_data_uri(url: str) -> str:
    """Download ``url`` and return it as a ``data:<mime>;base64,`` URI.

    PDF documents are rejected: extracting an image from a PDF is not supported.
    """
    if _is_pdf(url):
        raise UnsupportedFormatError("PDF image extraction is not supported. Please provide an image instead.")

    logger.info("Fetching image from URL: %s", url)
    try:
        response = requests.get(url, timeout=IMAGE_FETCH_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ImageFetchError(f"Failed to fetch image from provided URL: {exc}") from exc

    content_type = (response.headers.get("content-type") or DEFAULT_CONTENT_TYPE).split(";", 1)[0].strip()
    if _is_pdf(url, content_type):
        raise UnsupportedFormatError("PDF image extraction is not supported. Please provide an image instead.")
    if not response.content:
        raise ImageFetchError("Image URL returned an empty body")

    encoded = base64.b64encode(response.content).decode("ascii")
    logger.info("Image fetched (%s, %d bytes)", content_type, len(response.content))
    return f"data:{content_type};base64,{encoded}"
