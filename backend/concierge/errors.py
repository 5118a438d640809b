"""Failure outcomes of the search pipeline.

Only ``ClassificationError`` is recovered inside the pipeline (the intent
classifier degrades to a plain product search). Everything else reaches the
transport layer, which maps each class to its own status code.
"""

from __future__ import annotations


class ConciergeError(Exception):
    """Base class for pipeline failures."""


class ValidationError(ConciergeError):
    """The request carries neither a message nor an image."""


class UnsupportedFormatError(ConciergeError):
    """Image input is not a URL or a base64 image data URI."""


class ClassificationError(ConciergeError):
    """The intent LLM failed or returned output that does not fit the schema."""


class EmbeddingError(ConciergeError):
    """The text embedding call or the vision model failed."""


class RetrievalError(ConciergeError):
    """The catalog similarity query failed."""


class ImageFetchError(ConciergeError):
    """A remote image referenced in the message could not be downloaded."""
