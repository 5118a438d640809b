from __future__ import annotations

import os
from typing import List, Optional, Type, TypeVar

from openai import OpenAI
from pydantic import BaseModel

from ..config import DEFAULT_MODEL, EMBEDDING_MODEL

ModelT = TypeVar("ModelT", bound=BaseModel)


class OpenAIClient:
    def __init__(self) -> None:
        # every external call is attempted exactly once
        self._client = OpenAI(max_retries=0)

    def parse(
        self,
        model: str,
        messages: List[dict],
        response_model: Type[ModelT],
        temperature: float = 0.3,
    ) -> ModelT:
        response = self._client.chat.completions.create(
            model=model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=temperature,
        )
        content = response.choices[0].message.content or "{}"
        return response_model.model_validate_json(content)

    def create(
        self,
        model: str,
        messages: List[dict],
        temperature: float = 0.4,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]:
        kwargs = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        response = self._client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            **kwargs,
        )
        return response.choices[0].message.content

    def embed(self, text: str, dimensions: int, model: str = EMBEDDING_MODEL) -> List[float]:
        response = self._client.embeddings.create(
            model=model,
            input=text,
            dimensions=dimensions,
        )
        return list(response.data[0].embedding)


def is_configured() -> bool:
    return bool(os.getenv("OPENAI_API_KEY"))


_client: Optional[OpenAIClient] = None


def get_client() -> Optional[OpenAIClient]:
    global _client
    if not is_configured():
        return None
    if _client is None:
        _client = OpenAIClient()
    return _client
