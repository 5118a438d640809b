from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..config import SEARCH_RESULT_LIMIT
from ..errors import ValidationError
from ..schemas import Intent, IntentResult, Modality, SearchResponse
from .catalog import search_catalog
from .embeddings import embed_image, embed_text
from .image_fetcher import fetch_image_as_data_uri
from .intent import classify_intent
from .vectors import encode_vector

logger = logging.getLogger(__name__)

ASK_FOR_IMAGE = "I'd love to help! Could you please upload an image or provide an image URL?"


def _image_search(session: Session, intent: IntentResult, image: Optional[str]) -> SearchResponse:
    image_data = image
    if not image_data and intent.image_url:
        image_data = fetch_image_as_data_uri(intent.image_url)
    if not image_data:
        return SearchResponse(type="conversation", message=ASK_FOR_IMAGE)

    vector = encode_vector(embed_image(image_data))
    products = search_catalog(
        session, vector, Modality.IMAGE, limit=SEARCH_RESULT_LIMIT, price_filter=intent.price_filter
    )
    return SearchResponse(type="products", products=products)


def _text_search(session: Session, intent: IntentResult, message: str) -> SearchResponse:
    query = intent.cleaned_query or message
    vector = encode_vector(embed_text(query))
    products = search_catalog(
        session, vector, Modality.TEXT, limit=SEARCH_RESULT_LIMIT, price_filter=intent.price_filter
    )
    return SearchResponse(type="products", products=products)


def handle_search(session: Session, message: Optional[str], image: Optional[str] = None) -> SearchResponse:
    """Answer one shopping query with a conversational reply or ranked products."""
    message = (message or "").strip()
    if not message and not image:
        raise ValidationError("Please provide a message!")

    intent = classify_intent(message, has_image=bool(image), image_data=image)

    if intent.intent == Intent.GENERAL_TALK:
        logger.info("General conversation detected")
        return SearchResponse(type="conversation", message=intent.conversation_response)

    if intent.intent == Intent.IMAGE_REC:
        logger.info("Image search detected")
        return _image_search(session, intent, image)

    logger.info("Text search detected")
    return _text_search(session, intent, message)
