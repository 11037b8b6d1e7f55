"""Tests for the authorization cache."""

from __future__ import annotations

import pytest

from fort_sdk.cache import AuthorizationCache
from fort_shared.schemas.common import ResourceKind, UpdateOperation
from fort_shared.schemas.updates import AuthorizationSnapshot, UpdateEvent


@pytest.fixture
def snapshot() -> AuthorizationSnapshot:
    return AuthorizationSnapshot.model_validate(
        {
            "app": {"id": 1, "app_name": "shop", "app_key": "abc123"},
            "roles": [
                {"id": 10, "name": "clerk", "app_id": 1, "resource_ids": [100], "nav_ids": [200]},
                {"id": 11, "name": "admin", "app_id": 1, "resource_ids": [100, 101]},
            ],
            "groups": [{"id": 20, "name": "ops", "app_id": 1, "role_ids": [10, 11]}],
            "resources": [
                {"id": 100, "name": "orders", "url": "/api/orders", "app_id": 1},
                {"id": 101, "name": "admin", "url": "/api/admin/*", "app_id": 1},
            ],
            "navs": [
                {"id": 200, "name": "Orders", "app_id": 1, "resource_id": 100},
                {"id": 201, "name": "History", "app_id": 1, "parent_id": 200},
            ],
        }
    )


@pytest.fixture
def cache(snapshot) -> AuthorizationCache:
    cache = AuthorizationCache("abc123")
    cache.load(snapshot)
    return cache


def event(operation, kind, payload, app_key="abc123") -> UpdateEvent:
    return UpdateEvent(operation=operation, entity_kind=kind, app_key=app_key, payload=payload)


class TestQueries:
    def test_loaded(self, cache):
        assert cache.loaded
        assert cache.app.app_name == "shop"

    def test_resources_for_role(self, cache):
        assert [r.name for r in cache.resources_for_role(11)] == ["orders", "admin"]
        assert cache.resources_for_role(999) == []

    def test_roles_for_group(self, cache):
        assert [r.name for r in cache.roles_for_group(20)] == ["clerk", "admin"]

    def test_is_allowed(self, cache):
        assert cache.is_allowed(["clerk"], "/api/orders")
        assert not cache.is_allowed(["clerk"], "/api/admin/users")
        assert cache.is_allowed(["admin"], "/api/admin/users")
        assert not cache.is_allowed(["ghost"], "/api/orders")


class TestUpdates:
    def test_upsert_new_role(self, cache):
        applied = cache.apply(
            event(
                UpdateOperation.CREATED,
                ResourceKind.ROLE,
                {"id": 12, "name": "viewer", "app_id": 1, "resource_ids": [100], "app_key": "abc123"},
            )
        )
        assert applied
        assert cache.is_allowed(["viewer"], "/api/orders")
        assert cache.applied == 1

    def test_update_replaces_role(self, cache):
        cache.apply(
            event(
                UpdateOperation.UPDATED,
                ResourceKind.ROLE,
                {"id": 10, "name": "clerk", "app_id": 1, "resource_ids": []},
            )
        )
        assert not cache.is_allowed(["clerk"], "/api/orders")

    def test_delete_role_detaches_from_groups(self, cache):
        cache.apply(event(UpdateOperation.DELETED, ResourceKind.ROLE, {"id": 10, "name": "clerk"}))
        assert 10 not in cache.roles
        assert cache.groups[20].role_ids == [11]

    def test_delete_resource_detaches_roles_and_navs(self, cache):
        cache.apply(
            event(
                UpdateOperation.DELETED,
                ResourceKind.RESOURCE,
                {"id": 100, "name": "orders", "url": "/api/orders"},
            )
        )
        assert cache.roles[11].resource_ids == [101]
        assert cache.navs[200].resource_id is None
        assert not cache.is_allowed(["clerk"], "/api/orders")

    def test_delete_nav_moves_children_up(self, cache):
        cache.apply(event(UpdateOperation.DELETED, ResourceKind.NAV, {"id": 200, "name": "Orders"}))
        assert cache.navs[201].parent_id is None
        assert cache.roles[10].nav_ids == []

    def test_app_delete_clears_cache(self, cache):
        cache.apply(
            event(UpdateOperation.DELETED, ResourceKind.APP, {"id": 1, "app_name": "shop", "app_key": "abc123"})
        )
        assert not cache.loaded
        assert cache.roles == {}

    def test_app_update(self, cache):
        cache.apply(
            event(
                UpdateOperation.UPDATED,
                ResourceKind.APP,
                {"id": 1, "app_name": "shop-eu", "app_key": "abc123", "st": "live"},
            )
        )
        assert cache.app.app_name == "shop-eu"

    def test_foreign_events_are_ignored(self, cache):
        applied = cache.apply(
            event(UpdateOperation.DELETED, ResourceKind.ROLE, {"id": 10}, app_key="blog")
        )
        assert not applied
        assert 10 in cache.roles

    def test_bad_payload_is_ignored(self, cache):
        applied = cache.apply(event(UpdateOperation.CREATED, ResourceKind.GROUP, {"id": 21}))
        assert not applied
        assert 21 not in cache.groups
