from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import TextClause

from ..config import SEARCH_RESULT_LIMIT
from ..errors import RetrievalError
from ..models import CatalogItem
from ..schemas import Modality, PriceFilter, ProductOut

logger = logging.getLogger(__name__)

EMBEDDING_COLUMNS: Dict[Modality, str] = {
    Modality.TEXT: CatalogItem.text_embedding.key,
    Modality.IMAGE: CatalogItem.image_embedding.key,
}


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def build_search_query(
    modality: Modality, price_filter: Optional[PriceFilter] = None
) -> Tuple[TextClause, Dict[str, float]]:
    """Return the similarity query for ``modality`` and the price parameters it binds.

    ``:embedding`` and ``:limit`` are bound by the caller.
    """
    column = EMBEDDING_COLUMNS[Modality(modality)]
    distance = f"{column} <=> CAST(:embedding AS vector)"

    predicates = [f"{column} IS NOT NULL"]
    params: Dict[str, float] = {}
    if price_filter is not None and price_filter.min_price is not None:
        predicates.append("price >= :min_price")
        params["min_price"] = price_filter.min_price
    if price_filter is not None and price_filter.max_price is not None:
        predicates.append("price <= :max_price")
        params["max_price"] = price_filter.max_price

    where = " AND ".join(predicates)
    sql = f"""
        SELECT
            unique_id   AS id,
            title_desc  AS title,
            img_url     AS img,
            product_url AS product,
            stars,
            CAST(price AS float) AS price,
            1 - ({distance}) AS similarity
        FROM {CatalogItem.__tablename__}
        WHERE {where}
        ORDER BY {distance}, unique_id
        LIMIT :limit
    """
    return text(sql), params


def search_catalog(
    session: Session,
    encoded_vector: str,
    modality: Modality,
    limit: int = SEARCH_RESULT_LIMIT,
    price_filter: Optional[PriceFilter] = None,
) -> List[ProductOut]:
    stmt, params = build_search_query(modality, price_filter)
    params.update({"embedding": encoded_vector, "limit": limit})
    try:
        rows = session.execute(stmt, params).mappings().all()
    except SQLAlchemyError as exc:
        raise RetrievalError(f"Catalog search failed: {exc}") from exc

    products = [
        ProductOut(
            id=str(row["id"]),
            title=row["title"],
            img=row["img"],
            product=row["product"],
            stars=_to_float(row["stars"]),
            price=float(row["price"]),
            similarity=float(row["similarity"]),
        )
        for row in rows
    ]
    logger.info("Catalog search (%s) returned %d products", Modality(modality).value, len(products))
    return products
