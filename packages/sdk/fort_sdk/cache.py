"""
In-memory authorization cache for one app.

Primed from an AuthorizationSnapshot, then kept current by applying
UpdateEvents. Deletes also detach references held by other entities so the
cache mirrors what the server does on delete.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable, Optional

import structlog
from pydantic import ValidationError

from fort_shared.schemas.apps import SecurityAppPublic
from fort_shared.schemas.common import ResourceKind, UpdateOperation
from fort_shared.schemas.groups import SecurityGroupRead
from fort_shared.schemas.navs import SecurityNavRead
from fort_shared.schemas.resources import SecurityResourceEntityRead
from fort_shared.schemas.roles import SecurityRoleRead
from fort_shared.schemas.updates import AuthorizationSnapshot, UpdateEvent

log = structlog.get_logger()

_SCHEMAS = {
    ResourceKind.ROLE: SecurityRoleRead,
    ResourceKind.GROUP: SecurityGroupRead,
    ResourceKind.RESOURCE: SecurityResourceEntityRead,
    ResourceKind.NAV: SecurityNavRead,
}


class AuthorizationCache:
    def __init__(self, app_key: str):
        self.app_key = app_key
        self.app: Optional[SecurityAppPublic] = None
        self.roles: dict[int, SecurityRoleRead] = {}
        self.groups: dict[int, SecurityGroupRead] = {}
        self.resources: dict[int, SecurityResourceEntityRead] = {}
        self.navs: dict[int, SecurityNavRead] = {}
        self.applied = 0

    @property
    def loaded(self) -> bool:
        return self.app is not None

    def _store(self, kind: ResourceKind) -> dict:
        return {
            ResourceKind.ROLE: self.roles,
            ResourceKind.GROUP: self.groups,
            ResourceKind.RESOURCE: self.resources,
            ResourceKind.NAV: self.navs,
        }[kind]

    def clear(self) -> None:
        self.app = None
        self.roles.clear()
        self.groups.clear()
        self.resources.clear()
        self.navs.clear()

    def load(self, snapshot: AuthorizationSnapshot) -> None:
        """Replace the cache contents with a fresh snapshot."""
        self.clear()
        self.app = snapshot.app
        self.roles.update({r.id: r for r in snapshot.roles})
        self.groups.update({g.id: g for g in snapshot.groups})
        self.resources.update({r.id: r for r in snapshot.resources})
        self.navs.update({n.id: n for n in snapshot.navs})
        log.info(
            "authorization_cache.loaded",
            app_key=self.app_key,
            roles=len(self.roles),
            groups=len(self.groups),
            resources=len(self.resources),
            navs=len(self.navs),
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def apply(self, event: UpdateEvent) -> bool:
        """Apply one update; returns False when the event was ignored."""
        if event.app_key != self.app_key:
            log.debug("authorization_cache.foreign_event", app_key=event.app_key)
            return False

        if event.entity_kind is ResourceKind.APP:
            self._apply_app(event)
        elif event.operation is UpdateOperation.DELETED:
            self._remove(event.entity_kind, event.entity_id)
        else:
            try:
                entity = _SCHEMAS[event.entity_kind].model_validate(event.payload)
            except ValidationError as exc:
                log.warning(
                    "authorization_cache.bad_payload",
                    event=event.event_name,
                    error=str(exc),
                )
                return False
            self._store(event.entity_kind)[entity.id] = entity

        self.applied += 1
        log.debug("authorization_cache.applied", event=event.event_name, id=event.entity_id)
        return True

    def _apply_app(self, event: UpdateEvent) -> None:
        if event.operation is UpdateOperation.DELETED:
            log.warning("authorization_cache.app_deleted", app_key=self.app_key)
            self.clear()
            return
        self.app = SecurityAppPublic.model_validate(event.payload)

    def _remove(self, kind: ResourceKind, entity_id: Optional[int]) -> None:
        removed = self._store(kind).pop(entity_id, None)
        if kind is ResourceKind.ROLE:
            for group in list(self.groups.values()):
                if entity_id in group.role_ids:
                    self.groups[group.id] = group.model_copy(
                        update={"role_ids": [i for i in group.role_ids if i != entity_id]}
                    )
        elif kind is ResourceKind.RESOURCE:
            for role in list(self.roles.values()):
                if entity_id in role.resource_ids:
                    self.roles[role.id] = role.model_copy(
                        update={"resource_ids": [i for i in role.resource_ids if i != entity_id]}
                    )
            for nav in list(self.navs.values()):
                if nav.resource_id == entity_id:
                    self.navs[nav.id] = nav.model_copy(update={"resource_id": None})
        elif kind is ResourceKind.NAV:
            parent_id = removed.parent_id if removed is not None else None
            for role in list(self.roles.values()):
                if entity_id in role.nav_ids:
                    self.roles[role.id] = role.model_copy(
                        update={"nav_ids": [i for i in role.nav_ids if i != entity_id]}
                    )
            for nav in list(self.navs.values()):
                if nav.parent_id == entity_id:
                    self.navs[nav.id] = nav.model_copy(update={"parent_id": parent_id})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def roles_named(self, role_names: Iterable[str]) -> list[SecurityRoleRead]:
        wanted = set(role_names)
        return [r for r in self.roles.values() if r.name in wanted]

    def resources_for_role(self, role_id: int) -> list[SecurityResourceEntityRead]:
        role = self.roles.get(role_id)
        if role is None:
            return []
        return [self.resources[i] for i in role.resource_ids if i in self.resources]

    def navs_for_role(self, role_id: int) -> list[SecurityNavRead]:
        role = self.roles.get(role_id)
        if role is None:
            return []
        navs = [self.navs[i] for i in role.nav_ids if i in self.navs]
        return sorted(navs, key=lambda n: (n.position is None, n.position, n.id))

    def roles_for_group(self, group_id: int) -> list[SecurityRoleRead]:
        group = self.groups.get(group_id)
        if group is None:
            return []
        return [self.roles[i] for i in group.role_ids if i in self.roles]

    def is_allowed(self, role_names: Iterable[str], url: str) -> bool:
        """True if any of the named roles grants a resource matching ``url``.

        Resource urls may be shell-style patterns (``/api/orders/*``).
        """
        for role in self.roles_named(role_names):
            for resource in self.resources_for_role(role.id):
                if resource.url == url or fnmatchcase(url, resource.url):
                    return True
        return False
