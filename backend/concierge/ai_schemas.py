from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClassifierOutput(BaseModel):
    """JSON object returned by the intent classifier prompt.

    The model output is untrusted: every field has a default, unknown keys are
    ignored and an intent outside the closed set fails validation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    intent: Literal["general_talk", "text_rec", "image_rec"] = Field(
        ..., description="One of: general_talk, text_rec, image_rec"
    )
    cleaned_query: str = Field("", alias="cleanedQuery")
    image_url: Optional[str] = Field(None, alias="imageUrl")

    @field_validator("intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("cleaned_query", mode="before")
    @classmethod
    def _coerce_query(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("image_url", mode="before")
    @classmethod
    def _blank_url_is_none(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        if not text or text.lower() in {"null", "none"}:
            return None
        return text
