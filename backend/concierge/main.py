from __future__ import annotations

import base64
import logging
from typing import List, Optional, Union

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import AUTO_CREATE_TABLES, LOG_LEVEL
from .db import Base, engine, get_db
from .errors import (
    ConciergeError,
    EmbeddingError,
    ImageFetchError,
    RetrievalError,
    UnsupportedFormatError,
    ValidationError,
)
from .schemas import ChatResponse, ProductOut
from .services.search import handle_search

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    UnsupportedFormatError: 415,
    ImageFetchError: 502,
    EmbeddingError: 500,
    RetrievalError: 500,
}

app = FastAPI(title="Commerce Concierge")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup() -> None:
    if AUTO_CREATE_TABLES:
        with engine.begin() as connection:
            connection.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        Base.metadata.create_all(bind=engine)


@app.exception_handler(ConciergeError)
def _concierge_error(request: Request, exc: ConciergeError) -> JSONResponse:
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        500,
    )
    if isinstance(exc, ValidationError):
        return JSONResponse(status_code=status_code, content={"reply": str(exc)})
    logger.error("Error in %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=status_code, content={"reply": f"Error: {exc}"})


def _to_data_uri(upload: UploadFile) -> str:
    payload = upload.file.read()
    if not payload:
        raise ValidationError("Uploaded file is empty.")
    mime_type = upload.content_type or "image/jpeg"
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/api/chat", response_model=Union[ChatResponse, List[ProductOut]])
def chat(
    message: str = Form(default=""),
    image: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
):
    image_data = _to_data_uri(image) if image is not None else None
    logger.info("Request received (has image: %s)", image_data is not None)

    result = handle_search(db, message, image_data)

    if result.type == "conversation":
        return ChatResponse(reply=result.message or "")
    logger.info("Found %d products", len(result.products))
    return result.products
