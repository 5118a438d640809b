"""
Unit tests for the catalog similarity query.

The in-memory session below evaluates the parameters the retriever binds
(embedding, limit, price bounds) the way Postgres evaluates the query, so
ordering and filtering can be checked without a database.
"""

from decimal import Decimal

import numpy as np
import pytest
from sqlalchemy.exc import OperationalError

from concierge.errors import RetrievalError
from concierge.schemas import Modality, PriceFilter
from concierge.services.catalog import build_search_query, search_catalog
from concierge.services.embeddings import l2_normalize
from concierge.services.vectors import decode_vector, encode_vector


class _Result:
    def __init__(self, rows):
        self._rows = rows

    def mappings(self):
        return self

    def all(self):
        return self._rows


class InMemoryCatalogSession:
    def __init__(self, items):
        self.items = items
        self.calls = []

    def execute(self, stmt, params):
        self.calls.append((str(stmt), dict(params)))
        column = "image_embedding" if "image_embedding <=>" in str(stmt) else "text_embedding"
        query = np.asarray(decode_vector(params["embedding"]))
        rows = []
        for item in self.items:
            stored = item.get(column)
            if stored is None:
                continue
            if "min_price" in params and item["price"] < params["min_price"]:
                continue
            if "max_price" in params and item["price"] > params["max_price"]:
                continue
            distance = 1 - float(np.dot(query, stored))
            rows.append((distance, item["unique_id"], item))
        rows.sort(key=lambda row: (row[0], row[1]))
        return _Result(
            [
                {
                    "id": item["unique_id"],
                    "title": item["title_desc"],
                    "img": item["img_url"],
                    "product": item["product_url"],
                    "stars": item["stars"],
                    "price": item["price"],
                    "similarity": 1 - distance,
                }
                for distance, _, item in rows[: params["limit"]]
            ]
        )


def _catalog(size=20, seed=7):
    rng = np.random.default_rng(seed)
    items = []
    for index in range(size):
        items.append(
            {
                "unique_id": f"SKU{index:03d}",
                "title_desc": f"Item {index}",
                "img_url": f"https://cdn.example.com/{index}.jpg",
                "product_url": f"https://shop.example.com/p/{index}",
                "stars": 3.5 + (index % 3) * 0.5,
                "price": float(10 + index * 7),
                "text_embedding": np.asarray(l2_normalize(rng.normal(size=384))),
                "image_embedding": np.asarray(l2_normalize(rng.normal(size=512))) if index % 4 else None,
            }
        )
    return items


@pytest.fixture
def catalog_session():
    return InMemoryCatalogSession(_catalog())


def _query_vector(size, seed=1):
    return encode_vector(l2_normalize(np.random.default_rng(seed).normal(size=size)))


class TestBuildSearchQuery:
    def test_text_column(self):
        stmt, params = build_search_query(Modality.TEXT)
        sql = str(stmt)

        assert "text_embedding <=> CAST(:embedding AS vector)" in sql
        assert "image_embedding" not in sql
        assert params == {}

    def test_image_column(self):
        sql = str(build_search_query(Modality.IMAGE)[0])

        assert "image_embedding <=> CAST(:embedding AS vector)" in sql
        assert "text_embedding" not in sql

    def test_accepts_plain_string_modality(self):
        sql = str(build_search_query("image")[0])

        assert "image_embedding" in sql

    def test_no_price_predicates_without_filter(self):
        sql = str(build_search_query(Modality.TEXT, PriceFilter())[0])

        assert "price >=" not in sql
        assert "price <=" not in sql

    def test_min_only(self):
        stmt, params = build_search_query(Modality.TEXT, PriceFilter(min_price=20))

        assert "price >= :min_price" in str(stmt)
        assert "price <= :max_price" not in str(stmt)
        assert params == {"min_price": 20.0}

    def test_both_bounds(self):
        stmt, params = build_search_query(Modality.IMAGE, PriceFilter(min_price=20, max_price=50))
        sql = str(stmt)

        assert "price >= :min_price" in sql
        assert "price <= :max_price" in sql
        assert params == {"min_price": 20.0, "max_price": 50.0}

    def test_deterministic_tie_break(self):
        sql = str(build_search_query(Modality.TEXT)[0])

        assert "ORDER BY text_embedding <=> CAST(:embedding AS vector), unique_id" in sql


class TestSearchCatalog:
    def test_binds_vector_and_limit(self, session):
        session.execute.return_value = _Result([])

        search_catalog(session, "[0.100000]", Modality.TEXT, limit=3, price_filter=PriceFilter(max_price=30))

        _, params = session.execute.call_args.args
        assert params == {"embedding": "[0.100000]", "limit": 3, "max_price": 30.0}

    def test_row_mapping_coerces_numbers(self, session):
        session.execute.return_value = _Result(
            [
                {
                    "id": 42,
                    "title": "Canvas tote",
                    "img": "https://cdn.example.com/tote.jpg",
                    "product": "https://shop.example.com/tote",
                    "stars": Decimal("4.5"),
                    "price": Decimal("19.99"),
                    "similarity": 0.87,
                }
            ]
        )

        products = search_catalog(session, "[0.1]", Modality.TEXT)

        assert len(products) == 1
        product = products[0]
        assert product.id == "42"
        assert product.price == pytest.approx(19.99)
        assert isinstance(product.price, float)
        assert product.stars == pytest.approx(4.5)

    def test_missing_stars(self, session):
        session.execute.return_value = _Result(
            [{"id": "A1", "title": "Cap", "img": None, "product": None, "stars": None, "price": 5, "similarity": 0.5}]
        )

        assert search_catalog(session, "[0.1]", Modality.IMAGE)[0].stars is None

    def test_storage_failure(self, session):
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

        with pytest.raises(RetrievalError):
            search_catalog(session, "[0.1]", Modality.TEXT)

    def test_default_limit(self, catalog_session):
        products = search_catalog(catalog_session, _query_vector(384), Modality.TEXT)

        assert len(products) == 5
        assert catalog_session.calls[0][1]["limit"] == 5

    @pytest.mark.parametrize("modality, size", [(Modality.TEXT, 384), (Modality.IMAGE, 512)])
    def test_non_increasing_similarity(self, catalog_session, modality, size):
        products = search_catalog(catalog_session, _query_vector(size), modality, limit=20)

        similarities = [product.similarity for product in products]
        assert similarities == sorted(similarities, reverse=True)
        assert all(-1.0 - 1e-9 <= value <= 1.0 + 1e-9 for value in similarities)

    def test_price_filter_never_grows_candidates(self, catalog_session):
        vector = _query_vector(384)
        unfiltered = search_catalog(catalog_session, vector, Modality.TEXT, limit=100)

        for price_filter in [
            PriceFilter(max_price=60),
            PriceFilter(min_price=50),
            PriceFilter(min_price=40, max_price=90),
            PriceFilter(min_price=1000),
        ]:
            filtered = search_catalog(catalog_session, vector, Modality.TEXT, limit=100, price_filter=price_filter)

            assert len(filtered) <= len(unfiltered)
            assert {p.id for p in filtered} <= {p.id for p in unfiltered}
            for product in filtered:
                if price_filter.min_price is not None:
                    assert product.price >= price_filter.min_price
                if price_filter.max_price is not None:
                    assert product.price <= price_filter.max_price
