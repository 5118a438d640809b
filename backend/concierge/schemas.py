from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Intent(str, Enum):
    GENERAL_TALK = "general_talk"
    TEXT_REC = "text_rec"
    IMAGE_REC = "image_rec"


class Modality(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class PriceFilter(BaseSchema):
    has_filter: bool = False
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    @model_validator(mode="after")
    def _consistent_bounds(self) -> "PriceFilter":
        # "$50 to $20" is read as the range 20..50
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            self.min_price, self.max_price = self.max_price, self.min_price
        self.has_filter = self.min_price is not None or self.max_price is not None
        return self


class IntentResult(BaseSchema):
    intent: Intent
    cleaned_query: str
    conversation_response: Optional[str] = None
    image_url: Optional[str] = None
    price_filter: Optional[PriceFilter] = None

    @property
    def modality(self) -> Modality:
        return Modality.IMAGE if self.intent == Intent.IMAGE_REC else Modality.TEXT


class ProductOut(BaseSchema):
    id: str
    title: str
    img: Optional[str] = None
    product: Optional[str] = None
    stars: Optional[float] = None
    price: float
    similarity: float


class SearchResponse(BaseSchema):
    type: Literal["products", "conversation"]
    products: List[ProductOut] = []
    message: Optional[str] = None


class ChatResponse(BaseSchema):
    reply: str
