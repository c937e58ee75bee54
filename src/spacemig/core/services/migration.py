"""
Migration service: the operations the CLI (or any other front end) calls.

Wraps the API client, the replicator, discovery and the sync service
behind four methods that take plain space ids and a token:

    fetch_content_tree(space_id, token)
    copy_content(source, target, ids, destination_parent_id, token, on_progress)
    discover(kind, working_dir)
    sync(kind, space_id, token, items, options, on_progress)

Missing credentials or space ids raise ConfigurationError before any
remote call is made. Per-item failures never raise; they are reported in
the returned CopyResult / SyncOutcome.

Usage:
    >>> service = MigrationService.from_config()
    >>> tree = await service.fetch_content_tree(12345, token)
    >>> result = await service.copy_content(12345, 67890, [10, 11], None, token)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from spacemig.core.api.client import ManagementClient, SpaceId
from spacemig.core.api.exceptions import ConfigurationError
from spacemig.core.api.retry import RetryPolicy
from spacemig.core.config.env import token_from_env
from spacemig.core.config.loader import load_config
from spacemig.core.config.models import SpacemigConfig
from spacemig.core.content.models import FetchStoriesResult
from spacemig.core.content.tree import build_tree
from spacemig.core.discovery.definitions import DefinitionLoadError, load_definitions
from spacemig.core.discovery.discoverer import discover
from spacemig.core.discovery.models import DiscoveredResource, ResourceKind
from spacemig.core.replicate.models import CopyProgress, CopyResult
from spacemig.core.replicate.replicator import StoryReplicator
from spacemig.core.runner.process import CommandRunner
from spacemig.core.settings.store import SettingsStore
from spacemig.core.sync.models import SyncOptions, SyncOutcome, SyncProgressEvent
from spacemig.core.sync.service import SyncService

logger = logging.getLogger(__name__)

TOKEN_SETTING = "oauth_token"

ClientFactory = Callable[[str], ManagementClient]


def require_space_id(space_id: SpaceId | None, label: str = "space id") -> SpaceId:
    """Reject a missing or blank space id."""
    if space_id is None or str(space_id).strip() == "":
        raise ConfigurationError(f"A {label} is required", field=label)
    return space_id


class MigrationService:
    """
    Front-end facing operations for content copy and resource sync.

    A client is created per call from the token, so one service instance
    can be reused across spaces and credentials.
    """

    def __init__(
        self,
        config: SpacemigConfig,
        *,
        settings: SettingsStore | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            config: Loaded configuration
            settings: Settings store consulted for a saved token
            client_factory: Builds a client from a token (tests pass a fake)
        """
        self.config = config
        self.settings = settings
        self._client_factory = client_factory or self._default_client

    @classmethod
    def from_config(
        cls,
        project_dir: Path | None = None,
        settings: SettingsStore | None = None,
    ) -> MigrationService:
        """Create a service from the layered configuration."""
        return cls(load_config(project_dir), settings=settings)

    def _default_client(self, token: str) -> ManagementClient:
        api = self.config.api
        return ManagementClient(
            token,
            base_url=api.base_url,
            timeout=api.timeout,
            retry=RetryPolicy(
                max_retries=api.retry.max_retries,
                base_delay=api.retry.base_delay,
                multiplier=api.retry.multiplier,
            ),
            per_page=api.per_page,
            max_pages=api.max_pages,
        )

    # ============================================================================
    # Credentials
    # ============================================================================

    def resolve_token(self, token: str | None = None) -> str:
        """
        Pick the Management API token.

        Order: explicit argument, then SPACEMIG_OAUTH_TOKEN /
        STORYBLOK_OAUTH_TOKEN, then the saved ``oauth_token`` setting.

        Raises:
            ConfigurationError: If no token is available
        """
        if token:
            return token
        if env_token := token_from_env():
            return env_token
        if self.settings is not None:
            if saved := self.settings.get_setting(TOKEN_SETTING):
                return saved
        raise ConfigurationError(
            "No Management API token configured",
            hint="pass --token, set SPACEMIG_OAUTH_TOKEN or "
            "run 'spacemig settings set oauth_token ...'",
        )

    # ============================================================================
    # Content
    # ============================================================================

    async def fetch_content_tree(
        self, space_id: SpaceId, token: str | None = None
    ) -> FetchStoriesResult:
        """
        Fetch every story of a space and arrange it as a tree.

        Raises:
            ConfigurationError: Missing token or space id
            TransportError: If listing the stories fails
        """
        space_id = require_space_id(space_id)
        token = self.resolve_token(token)

        async with self._client_factory(token) as client:
            records = await client.fetch_all_stories(space_id)

        return FetchStoriesResult(records=records, tree=build_tree(records), total=len(records))

    async def copy_content(
        self,
        source_space_id: SpaceId,
        target_space_id: SpaceId,
        story_ids: Sequence[int],
        destination_parent_id: int | None = None,
        token: str | None = None,
        on_progress: Callable[[CopyProgress], None] | None = None,
    ) -> CopyResult:
        """
        Copy stories (and the hierarchy between them) into another space.

        Raises:
            ConfigurationError: Missing token or space ids
        """
        source_space_id = require_space_id(source_space_id, "source space id")
        target_space_id = require_space_id(target_space_id, "target space id")
        token = self.resolve_token(token)

        replication = self.config.replication
        async with self._client_factory(token) as client:
            replicator = StoryReplicator(
                client,
                fetch_batch_size=replication.fetch_batch_size,
                create_batch_size=replication.create_batch_size,
            )
            return await replicator.copy(
                source_space_id,
                target_space_id,
                story_ids,
                destination_parent_id,
                on_progress,
            )

    # ============================================================================
    # Resources
    # ============================================================================

    def discover(self, kind: ResourceKind | str, working_dir: Path | str) -> list[DiscoveredResource]:
        """List local definition files of one kind."""
        return discover(kind, working_dir, self.config.discovery.component_dirs)

    def load_resources(
        self, resources: list[DiscoveredResource]
    ) -> tuple[list[dict[str, Any]], list[DefinitionLoadError]]:
        """Read discovered files into definition dicts."""
        return load_definitions(resources)

    async def sync(
        self,
        kind: ResourceKind | str,
        space_id: SpaceId,
        token: str | None,
        items: list[dict[str, Any]],
        options: SyncOptions | None = None,
        on_progress: Callable[[SyncProgressEvent], None] | None = None,
    ) -> SyncOutcome:
        """
        Reconcile local definitions of one kind with the space.

        Raises:
            ConfigurationError: Missing token or space id
        """
        space_id = require_space_id(space_id)
        token = self.resolve_token(token)

        async with self._client_factory(token) as client:
            service = SyncService(client, batch_size=self.config.sync.batch_size)
            return await service.sync(kind, space_id, items, options, on_progress)

    # ============================================================================
    # External CLI
    # ============================================================================

    def command_runner(self) -> CommandRunner:
        """Runner for the configured external migration CLI."""
        return CommandRunner(self.config.runner.executable)


__all__ = ["ClientFactory", "MigrationService", "TOKEN_SETTING", "require_space_id"]
