"""Query embeddings for the two catalog modalities.

Text goes through the OpenAI embeddings endpoint (384 dimensions), images
through a locally hosted CLIP ViT-B/32 (512 dimensions). Both outputs are L2
normalized so cosine distance in the catalog is comparable across requests.
The two spaces are never mixed.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

import numpy as np
import requests
from PIL import Image
from sentence_transformers import SentenceTransformer

from ..config import IMAGE_EMBEDDING_DIMENSIONS, IMAGE_FETCH_TIMEOUT, TEXT_EMBEDDING_DIMENSIONS, VISION_MODEL
from ..errors import EmbeddingError, UnsupportedFormatError
from .ai_client import get_client

logger = logging.getLogger(__name__)

_vision_model: Optional[SentenceTransformer] = None
_vision_lock = threading.Lock()


def l2_normalize(vector: Sequence[float]) -> List[float]:
    arr = np.asarray(vector, dtype=np.float64).ravel()
    norm = float(np.linalg.norm(arr))
    if not np.isfinite(norm) or norm == 0.0:
        raise EmbeddingError("Embedding has zero or non-finite norm and cannot be normalized")
    return (arr / norm).tolist()


def _finish(raw: Sequence[float], expected: int, label: str) -> List[float]:
    values = np.asarray(raw, dtype=np.float64).ravel()
    if values.size != expected:
        raise EmbeddingError(f"{label} embedding has {values.size} dimensions, expected {expected}")
    logger.debug("%s embedding dimensions: %d", label, values.size)
    return l2_normalize(values)


def embed_text(text: str) -> List[float]:
    client = get_client()
    if client is None:
        raise EmbeddingError("OpenAI is not configured; set OPENAI_API_KEY")
    try:
        raw = client.embed(text, dimensions=TEXT_EMBEDDING_DIMENSIONS)
    except Exception as exc:
        raise EmbeddingError(f"Text embedding failed: {exc}") from exc
    return _finish(raw, TEXT_EMBEDDING_DIMENSIONS, "Text")


def get_vision_model() -> SentenceTransformer:
    """Return the shared CLIP model, loading it on first use.

    Concurrent first callers block on the lock and then reuse the model the
    winning thread loaded. A failed load leaves the slot empty so the next
    request tries again.
    """
    global _vision_model
    if _vision_model is None:
        with _vision_lock:
            if _vision_model is None:
                logger.info("Loading vision model %s (first time only)", VISION_MODEL)
                _vision_model = SentenceTransformer(VISION_MODEL)
                logger.info("Vision model %s loaded", VISION_MODEL)
    return _vision_model


@contextmanager
def _materialized_data_uri(data_uri: str) -> Iterator[str]:
    header, _, payload = data_uri.partition(",")
    if not payload or ";base64" not in header:
        raise UnsupportedFormatError("Image data URI must be base64 encoded")
    try:
        content = base64.b64decode(payload)
    except (binascii.Error, ValueError) as exc:
        raise UnsupportedFormatError(f"Image data URI is not valid base64: {exc}") from exc

    mime = header[len("data:"):].split(";", 1)[0].strip().lower()
    suffix = (mime.startswith("image/") and mimetypes.guess_extension(mime)) or ".jpg"
    fd, path = tempfile.mkstemp(prefix="concierge_image_", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def _open_image(source: str) -> Image.Image:
    if source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=IMAGE_FETCH_TIMEOUT)
        response.raise_for_status()
        with Image.open(io.BytesIO(response.content)) as picture:
            return picture.convert("RGB")
    with Image.open(source) as picture:
        return picture.convert("RGB")


def _embed_image_source(source: str) -> List[float]:
    try:
        model = get_vision_model()
        picture = _open_image(source)
        raw = model.encode(picture, convert_to_numpy=True)
    except Exception as exc:
        raise EmbeddingError(f"Image embedding failed: {exc}") from exc
    return _finish(raw, IMAGE_EMBEDDING_DIMENSIONS, "Image")


def embed_image(image: str) -> List[float]:
    """Embed a remote image URL or a base64 ``data:`` URI.

    The declared MIME type of a data URI is not trusted; hosts often label
    images ``application/octet-stream``. PDFs are rejected.
    """
    if image.startswith(("http://", "https://")):
        return _embed_image_source(image)
    if image.lower().startswith("data:application/pdf"):
        raise UnsupportedFormatError("PDF files are not supported")
    if image.startswith("data:"):
        with _materialized_data_uri(image) as path:
            return _embed_image_source(path)
    raise UnsupportedFormatError("Unsupported image format")
