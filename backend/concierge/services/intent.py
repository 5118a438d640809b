"""Intent classification for incoming shopping queries.

Two stages run in sequence. The LLM proposes an intent, a cleaned product
description and an image URL found in the text. Deterministic rules then run
last and win: an attached image always means ``image_rec``. If the LLM is
unavailable or returns junk, the request degrades to a plain product search
instead of failing.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..ai_schemas import ClassifierOutput
from ..errors import ClassificationError
from ..schemas import Intent, IntentResult, PriceFilter
from .ai_client import DEFAULT_MODEL, get_client
from .price_filter import extract_price_filter, strip_price_language

logger = logging.getLogger(__name__)

IMAGE_ONLY_QUERY = "find similar items"
FALLBACK_REPLY = "Hi! I'm Commerce Concierge, your shopping helper. What can I help you find today?"

CLASSIFIER_PROMPT = """You are a shopping assistant intent classifier. Analyze the user's message and determine:

1. Intent classification:
   - "general_talk": greetings, "what's your name", "what can you do", general questions not about products, or vague/ambiguous questions
   - "text_rec": requests to recommend, compare, or find products using text descriptions
   - "image_rec": user provided an image OR text explicitly mentions "like this photo", "find similar" with image context

2. Extract ONLY the product-relevant description (remove fluff, greetings, unnecessary words)

3. Extract image URL if mentioned in text (look for URLs ending in .jpg, .png, .jpeg, or image hosting sites)

Respond in JSON format:
{
  "intent": "general_talk" | "text_rec" | "image_rec",
  "cleanedQuery": "cleaned product description",
  "imageUrl": "url if found in text, otherwise null"
}"""

CONCIERGE_PROMPT = """You are "Commerce Concierge", a friendly shopping assistant. Follow these rules:

- Be conversational and friendly
- Keep responses SHORT (2-3 sentences max)
- If asked what you can do, say: "I help you find great products from our catalog. You can even upload a photo, and I'll find similar items."
- If asked your name, say: "I'm Commerce Concierge"
- If asked who you represent, say: "I'm your personal shopping helper"
- NEVER make up products that don't exist
- After answering, ask ONE quick follow-up to guide the search
- Offer 2-3 simple choices (e.g., "Shoes, bags, or jackets?" or "For men, women, or kids?")

Examples:
User: "Hi"
You: "Hey there! I'm Commerce Concierge, your personal shopping helper. What are you looking for today: clothing, accessories, or electronics?"

User: "What can you do?"
You: "I help you find great products from our catalog. You can even upload a photo, and I'll find similar items. Are you shopping for something specific today?\""""


def _classify_with_llm(text: str, has_image: bool) -> ClassifierOutput:
    client = get_client()
    if client is None:
        raise ClassificationError("OpenAI is not configured")
    user_prompt = f'User message: "{text}"\nHas attached image: {"Yes" if has_image else "No"}'
    try:
        return client.parse(
            DEFAULT_MODEL,
            [
                {"role": "system", "content": CLASSIFIER_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            ClassifierOutput,
            temperature=0.3,
        )
    except Exception as exc:
        raise ClassificationError(f"Intent classification failed: {exc}") from exc


def _apply_business_rules(output: ClassifierOutput, has_image: bool) -> Tuple[Intent, Optional[str]]:
    intent = Intent(output.intent)
    if has_image:
        intent = Intent.IMAGE_REC
    image_url = output.image_url if intent == Intent.IMAGE_REC and not has_image else None
    return intent, image_url


def generate_conversation_reply(message: str) -> str:
    client = get_client()
    if client is None:
        return FALLBACK_REPLY
    try:
        reply = client.create(
            DEFAULT_MODEL,
            [
                {"role": "system", "content": CONCIERGE_PROMPT},
                {"role": "user", "content": message},
            ],
            temperature=0.7,
            max_tokens=150,
        )
    except Exception:
        logger.exception("Error generating conversation response")
        return FALLBACK_REPLY
    return (reply or "").strip() or FALLBACK_REPLY


def classify_intent(message: str, has_image: bool, image_data: Optional[str] = None) -> IntentResult:
    has_image = bool(has_image or image_data)
    price_filter = extract_price_filter(message)
    stripped = strip_price_language(message)
    carried_filter: Optional[PriceFilter] = price_filter if price_filter.has_filter else None

    if not stripped and has_image:
        logger.info("Image-only request, skipping intent classification")
        return IntentResult(
            intent=Intent.IMAGE_REC,
            cleaned_query=IMAGE_ONLY_QUERY,
            price_filter=carried_filter,
        )

    try:
        output = _classify_with_llm(stripped, has_image)
    except ClassificationError as exc:
        logger.warning("%s; falling back to product search", exc)
        return IntentResult(
            intent=Intent.IMAGE_REC if has_image else Intent.TEXT_REC,
            cleaned_query=stripped,
            price_filter=carried_filter,
        )

    intent, image_url = _apply_business_rules(output, has_image)
    cleaned_query = output.cleaned_query or stripped
    logger.info("Intent classified: %s", intent.value)
    logger.info("Cleaned query: %s", cleaned_query)

    conversation_response = None
    if intent == Intent.GENERAL_TALK:
        conversation_response = generate_conversation_reply(message)

    return IntentResult(
        intent=intent,
        cleaned_query=cleaned_query,
        conversation_response=conversation_response,
        image_url=image_url,
        price_filter=carried_filter,
    )
