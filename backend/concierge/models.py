from __future__ import annotations

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, Float, Numeric, String, Text

from .config import IMAGE_EMBEDDING_DIMENSIONS, TEXT_EMBEDDING_DIMENSIONS
from .db import Base


class CatalogItem(Base):
    __tablename__ = "catalog_items"

    unique_id = Column(String, primary_key=True, index=True)
    title_desc = Column(Text, nullable=False)
    img_url = Column(Text, nullable=True)
    product_url = Column(Text, nullable=True)
    stars = Column(Float, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, index=True)
    text_embedding = Column(Vector(TEXT_EMBEDDING_DIMENSIONS), nullable=True)
    image_embedding = Column(Vector(IMAGE_EMBEDDING_DIMENSIONS), nullable=True)
