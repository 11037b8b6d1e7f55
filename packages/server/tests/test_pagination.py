"""
Tests for pagination headers, sort parsing and alert headers.
"""

from __future__ import annotations

import pytest

from app.core.alerts import (
    entity_creation_alert,
    entity_deletion_alert,
    failure_alert,
)
from app.core.errors import BadRequestAlert
from app.core.pagination import PageParams, pagination_headers, parse_sort
from app.models.role import SecurityRole


class TestPaginationHeaders:
    def test_first_page(self):
        headers = pagination_headers(45, PageParams(page=1, per_page=20), "/api/security-roles")
        assert headers["X-Total-Count"] == "45"
        links = headers["Link"].split(",")
        assert links[0] == '</api/security-roles?page=2&per_page=20>; rel="next"'
        assert '</api/security-roles?page=3&per_page=20>; rel="last"' in links
        assert not any('rel="prev"' in link for link in links)

    def test_middle_page_keeps_filters_and_sort(self):
        headers = pagination_headers(
            45,
            PageParams(page=2, per_page=20, sort="name,desc"),
            "/api/security-roles",
            {"appId": 3, "query": None},
        )
        assert "appId=3" in headers["Link"]
        assert "query=" not in headers["Link"]
        assert "sort=name%2Cdesc" in headers["Link"]
        assert 'rel="prev"' in headers["Link"]

    def test_empty_result(self):
        headers = pagination_headers(0, PageParams(page=1, per_page=20), "/api/security-navs")
        assert headers["X-Total-Count"] == "0"
        assert 'rel="next"' not in headers["Link"]

    def test_offset(self):
        assert PageParams(page=3, per_page=10).offset == 20


class TestParseSort:
    def test_default_is_id(self):
        (clause,) = parse_sort(None, SecurityRole, "securityRole")
        assert str(clause) == str(SecurityRole.id.asc())

    def test_field_and_direction(self):
        clauses = parse_sort("name,desc", SecurityRole, "securityRole")
        assert str(clauses[0]) == str(SecurityRole.name.desc())

    @pytest.mark.parametrize("sort", ["bogus", "name,sideways"])
    def test_invalid(self, sort):
        with pytest.raises(BadRequestAlert) as exc_info:
            parse_sort(sort, SecurityRole, "securityRole")
        assert exc_info.value.error_key == "badsort"


class TestAlerts:
    def test_creation_alert(self):
        assert entity_creation_alert("securityRole", "5") == {
            "X-fortApp-alert": "fortApp.securityRole.created",
            "X-fortApp-params": "5",
        }

    def test_deletion_alert(self):
        assert entity_deletion_alert("securityNav", "9")["X-fortApp-alert"] == "fortApp.securityNav.deleted"

    def test_failure_alert(self):
        assert failure_alert("securityRole", "idexists") == {
            "X-fortApp-error": "error.idexists",
            "X-fortApp-params": "securityRole",
        }
