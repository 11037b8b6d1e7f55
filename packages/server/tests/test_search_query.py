"""
Tests for search query parsing and the search index mirror.
"""

from __future__ import annotations

import pytest

from app.core.search import (
    MAX_TERMS,
    InvalidSearchQuery,
    SearchIndex,
    SearchQuery,
    SearchTerm,
    document_content,
)

FIELDS = {"id", "name", "url", "st"}


class TestSearchQueryParse:
    @pytest.mark.parametrize("raw", [None, "", "   ", "*"])
    def test_match_all(self, raw):
        assert SearchQuery.parse(raw, FIELDS).match_all

    def test_free_and_field_terms(self):
        query = SearchQuery.parse('Admin name:"Ops Team"', FIELDS)
        assert query.terms == (
            SearchTerm(value="admin"),
            SearchTerm(value="ops team", field="name"),
        )

    def test_url_values_are_free_terms(self):
        query = SearchQuery.parse("http://example.com", FIELDS)
        assert query.terms == (SearchTerm(value="http://example.com"),)

    def test_unknown_field(self):
        with pytest.raises(InvalidSearchQuery):
            SearchQuery.parse("password:x", FIELDS)

    def test_empty_field_value(self):
        with pytest.raises(InvalidSearchQuery):
            SearchQuery.parse("name:", FIELDS)

    def test_unbalanced_quotes(self):
        with pytest.raises(InvalidSearchQuery):
            SearchQuery.parse('name:"ops', FIELDS)

    def test_too_many_terms(self):
        with pytest.raises(InvalidSearchQuery):
            SearchQuery.parse(" ".join(["a"] * (MAX_TERMS + 1)), FIELDS)

    def test_terms_are_and_combined(self):
        query = SearchQuery.parse("name:adm st:live", FIELDS)
        assert query.matches({"name": "Admin", "st": "live"})
        assert not query.matches({"name": "Admin", "st": "draft"})

    def test_free_term_matches_lists(self):
        query = SearchQuery.parse("42", FIELDS)
        assert query.matches({"name": "ops", "role_ids": [7, 42]})


def test_document_content_skips_nulls():
    assert document_content({"name": "Admin", "st": None, "ids": [1, 2]}) == "admin\n1 2"


class TestSearchIndex:
    @pytest.mark.asyncio
    async def test_index_upserts_and_filters_by_app(self, session):
        index = SearchIndex(session)
        await index.index("securityrole", 1, {"id": 1, "name": "admin"}, app_id=10)
        await index.index("securityrole", 1, {"id": 1, "name": "root"}, app_id=10)
        await index.index("securityrole", 2, {"id": 2, "name": "admin"}, app_id=20)
        await session.commit()

        hits, total = await index.search("securityrole", SearchQuery.parse("*", FIELDS), app_id=10)
        assert total == 1
        assert hits == [{"id": 1, "name": "root"}]

        hits, total = await index.search("securityrole", SearchQuery.parse("admin", FIELDS))
        assert [h["id"] for h in hits] == [2]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, session):
        index = SearchIndex(session)
        await index.index("securityresourceentity", 1, {"id": 1, "url": "/api/orders"})
        await session.commit()

        hits, total = await index.search(
            "securityresourceentity", SearchQuery.parse("%orders", FIELDS)
        )
        assert total == 0

    @pytest.mark.asyncio
    async def test_pagination_of_hits(self, session):
        index = SearchIndex(session)
        for doc_id in range(1, 6):
            await index.index("securitynav", doc_id, {"id": doc_id, "name": f"menu {doc_id}"})
        await session.commit()

        hits, total = await index.search(
            "securitynav", SearchQuery.parse("menu", FIELDS), offset=2, limit=2
        )
        assert total == 5
        assert [h["id"] for h in hits] == [3, 4]

    @pytest.mark.asyncio
    async def test_delete(self, session):
        index = SearchIndex(session)
        await index.index("securitygroup", 1, {"id": 1, "name": "ops"})
        await index.delete("securitygroup", 1)
        await session.commit()

        hits, total = await index.search("securitygroup", SearchQuery.parse("*", FIELDS))
        assert (hits, total) == ([], 0)
