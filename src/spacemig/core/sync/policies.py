"""
Per-kind sync policies.

A policy answers the kind-specific questions of a sync: how an item is
keyed, how remote state is listed, which fields are compared, and how
creates and updates are sent. The control flow (classify, write, report)
lives in SyncService and is the same for every kind.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from spacemig.core.api.client import ManagementClient, SpaceId
from spacemig.core.discovery.models import ResourceKind
from spacemig.core.sync.models import SyncError, SyncOptions

logger = logging.getLogger(__name__)

Definition = dict[str, Any]

# Keys the API assigns or that only exist in local files
SERVER_KEYS = frozenset({"id", "created_at", "updated_at"})


def slugify(value: str) -> str:
    """Lowercase, dash-separated slug used when a datasource has none."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def fields_match(payload: Definition, remote: Definition) -> bool:
    """True when every field of the payload has the same value remotely."""
    return all(remote.get(key) == value for key, value in payload.items())


class ResourcePolicy(ABC):
    """Kind-specific behaviour plugged into SyncService."""

    kind: ResourceKind
    local_only_keys: frozenset[str] = frozenset()

    def key(self, item: Definition) -> str | None:
        """Stable key used to match a local item with a remote one."""
        name = item.get("name")
        return str(name) if name else None

    def remote_key(self, remote: Definition) -> str | None:
        name = remote.get("name")
        return str(name) if name else None

    @abstractmethod
    async def list_remote(
        self, client: ManagementClient, space_id: SpaceId, items: list[Definition]
    ) -> list[Definition]:
        """Fetch current remote state for this kind."""

    def prepare(self, item: Definition) -> Definition:
        """Build the payload sent to the API for a local item."""
        excluded = self.local_only_keys | SERVER_KEYS
        return {k: v for k, v in item.items() if k not in excluded}

    def is_identical(self, item: Definition, remote: Definition, options: SyncOptions) -> bool:
        return fields_match(self.prepare(item), remote)

    @abstractmethod
    async def create(
        self, client: ManagementClient, space_id: SpaceId, item: Definition
    ) -> Definition:
        """Create the item remotely and return the created remote object."""

    @abstractmethod
    async def update(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
    ) -> Definition:
        """Update the matching remote object and return it."""

    async def after_write(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
        options: SyncOptions,
    ) -> list[SyncError]:
        """Follow-up writes after a successful create/update. Returns failures."""
        return []


class ComponentPolicy(ResourcePolicy):
    """
    Components, keyed by ``name``.

    With ``presets`` the component's ``all_presets`` (or ``presets``) are
    upserted by name after the component itself. With ``ssot`` an
    existing component is always overwritten with the local definition.
    """

    kind = ResourceKind.COMPONENTS
    local_only_keys = frozenset({"all_presets", "presets"})

    async def list_remote(
        self, client: ManagementClient, space_id: SpaceId, items: list[Definition]
    ) -> list[Definition]:
        return await client.list_components(space_id)

    def is_identical(self, item: Definition, remote: Definition, options: SyncOptions) -> bool:
        if options.ssot:
            return False
        if options.presets and self._local_presets(item):
            # presets are not part of the component payload, so they are
            # reconciled on every run
            return False
        return super().is_identical(item, remote, options)

    async def create(
        self, client: ManagementClient, space_id: SpaceId, item: Definition
    ) -> Definition:
        return await client.create_component(space_id, self.prepare(item))

    async def update(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
    ) -> Definition:
        return await client.update_component(space_id, remote["id"], self.prepare(item))

    @staticmethod
    def _local_presets(item: Definition) -> list[Definition]:
        presets = item.get("all_presets") or item.get("presets") or []
        return [p for p in presets if isinstance(p, dict) and p.get("name")]

    async def after_write(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
        options: SyncOptions,
    ) -> list[SyncError]:
        presets = self._local_presets(item)
        if not options.presets or not presets:
            return []

        component = item["name"]
        component_id = remote.get("id")
        errors: list[SyncError] = []

        try:
            existing = {p.get("name"): p for p in await client.list_presets(space_id, component_id)}
        except Exception as e:
            return [SyncError(name=f"{component}/presets", message=str(e))]

        for preset in presets:
            body = {
                "name": preset["name"],
                "component_id": component_id,
                "preset": preset.get("preset", {}),
            }
            if preset.get("image"):
                body["image"] = preset["image"]
            try:
                current = existing.get(preset["name"])
                if current is None:
                    await client.create_preset(space_id, body)
                elif current.get("preset") != body["preset"]:
                    await client.update_preset(space_id, current["id"], body)
            except Exception as e:
                logger.warning("Preset %s/%s failed: %s", component, preset["name"], e)
                errors.append(SyncError(name=f"{component}/{preset['name']}", message=str(e)))

        return errors


class DatasourcePolicy(ResourcePolicy):
    """
    Datasources, keyed by ``name``.

    With ``entries`` the local ``datasource_entries`` list is part of the
    compared state and entries are upserted by name after the datasource.
    """

    kind = ResourceKind.DATASOURCES
    local_only_keys = frozenset({"datasource_entries"})

    def prepare(self, item: Definition) -> Definition:
        payload = super().prepare(item)
        payload.setdefault("slug", slugify(str(item.get("name", ""))))
        return payload

    @staticmethod
    def _local_entries(item: Definition) -> dict[str, Any]:
        entries = item.get("datasource_entries") or []
        return {
            str(e["name"]): e.get("value")
            for e in entries
            if isinstance(e, dict) and e.get("name") is not None
        }

    async def list_remote(
        self, client: ManagementClient, space_id: SpaceId, items: list[Definition]
    ) -> list[Definition]:
        remote = await client.list_datasources(space_id)
        wanted = {self.key(item) for item in items if item.get("datasource_entries")}

        enriched: list[Definition] = []
        for datasource in remote:
            if datasource.get("name") in wanted:
                entries = await client.list_datasource_entries(space_id, datasource["id"])
                datasource = {**datasource, "datasource_entries": entries}
            enriched.append(datasource)
        return enriched

    def is_identical(self, item: Definition, remote: Definition, options: SyncOptions) -> bool:
        if not super().is_identical(item, remote, options):
            return False
        if not options.entries:
            return True
        remote_entries = {
            str(e.get("name")): e.get("value") for e in remote.get("datasource_entries") or []
        }
        local_entries = self._local_entries(item)
        return all(remote_entries.get(k) == v for k, v in local_entries.items())

    async def create(
        self, client: ManagementClient, space_id: SpaceId, item: Definition
    ) -> Definition:
        return await client.create_datasource(space_id, self.prepare(item))

    async def update(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
    ) -> Definition:
        updated = await client.update_datasource(space_id, remote["id"], self.prepare(item))
        # keep the entries listed during classification for after_write
        return {**remote, **updated}

    async def after_write(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
        options: SyncOptions,
    ) -> list[SyncError]:
        local_entries = self._local_entries(item)
        if not options.entries or not local_entries:
            return []

        datasource = item["name"]
        datasource_id = remote.get("id")
        existing = {str(e.get("name")): e for e in remote.get("datasource_entries") or []}
        errors: list[SyncError] = []

        for name, value in local_entries.items():
            body = {"name": name, "value": value, "datasource_id": datasource_id}
            try:
                current = existing.get(name)
                if current is None:
                    await client.create_datasource_entry(space_id, body)
                elif current.get("value") != value:
                    await client.update_datasource_entry(space_id, current["id"], body)
            except Exception as e:
                logger.warning("Datasource entry %s/%s failed: %s", datasource, name, e)
                errors.append(SyncError(name=f"{datasource}/{name}", message=str(e)))

        return errors


class RolePolicy(ResourcePolicy):
    """Space roles, keyed by ``role`` (falling back to ``name``)."""

    kind = ResourceKind.ROLES
    local_only_keys = frozenset({"name"})

    def key(self, item: Definition) -> str | None:
        role = item.get("role") or item.get("name")
        return str(role) if role else None

    def remote_key(self, remote: Definition) -> str | None:
        role = remote.get("role")
        return str(role) if role else None

    def prepare(self, item: Definition) -> Definition:
        payload = super().prepare(item)
        payload["role"] = self.key(item)
        return payload

    async def list_remote(
        self, client: ManagementClient, space_id: SpaceId, items: list[Definition]
    ) -> list[Definition]:
        return await client.list_space_roles(space_id)

    async def create(
        self, client: ManagementClient, space_id: SpaceId, item: Definition
    ) -> Definition:
        return await client.create_space_role(space_id, self.prepare(item))

    async def update(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
    ) -> Definition:
        return await client.update_space_role(space_id, remote["id"], self.prepare(item))


class PluginPolicy(ResourcePolicy):
    """
    Field-type plugins, keyed by ``name``; items are ``{name, body}``.

    Plugins belong to the account, so the space id is not used remotely.
    """

    kind = ResourceKind.PLUGINS

    async def list_remote(
        self, client: ManagementClient, space_id: SpaceId, items: list[Definition]
    ) -> list[Definition]:
        return await client.list_field_types()

    def is_identical(self, item: Definition, remote: Definition, options: SyncOptions) -> bool:
        return remote.get("body") == item.get("body")

    async def create(
        self, client: ManagementClient, space_id: SpaceId, item: Definition
    ) -> Definition:
        created = await client.create_field_type(item["name"])
        if item.get("body"):
            await client.update_field_type(created["id"], item["body"])
        return created

    async def update(
        self,
        client: ManagementClient,
        space_id: SpaceId,
        item: Definition,
        remote: Definition,
    ) -> Definition:
        return await client.update_field_type(remote["id"], item.get("body", ""))


POLICIES: dict[ResourceKind, ResourcePolicy] = {
    policy.kind: policy
    for policy in (ComponentPolicy(), DatasourcePolicy(), RolePolicy(), PluginPolicy())
}


def get_policy(kind: ResourceKind | str) -> ResourcePolicy:
    """Return the policy for a resource kind."""
    return POLICIES[ResourceKind(kind)]


__all__ = [
    "ComponentPolicy",
    "DatasourcePolicy",
    "Definition",
    "POLICIES",
    "PluginPolicy",
    "ResourcePolicy",
    "RolePolicy",
    "fields_match",
    "get_policy",
    "slugify",
]
