"""
Tests for the MigrationService facade.
"""

from unittest.mock import AsyncMock

import pytest

from spacemig.core.api.exceptions import ConfigurationError
from spacemig.core.config.models import SpacemigConfig
from spacemig.core.content.models import ContentRecord
from spacemig.core.services import MigrationService, require_space_id
from spacemig.core.settings import SettingsStore
from spacemig.core.sync import SyncOptions


@pytest.fixture
def client():
    """AsyncMock client usable as an async context manager."""
    mock = AsyncMock()
    mock.__aenter__.return_value = mock
    return mock


@pytest.fixture
def tokens():
    return []


@pytest.fixture
def service(client, tokens, tmp_path):
    def factory(token: str):
        tokens.append(token)
        return client

    return MigrationService(
        SpacemigConfig(),
        settings=SettingsStore(tmp_path / "settings.db"),
        client_factory=factory,
    )


class TestResolveToken:
    """Token precedence."""

    def test_explicit_token_wins(self, service, monkeypatch):
        monkeypatch.setenv("SPACEMIG_OAUTH_TOKEN", "env")
        service.settings.set_setting("oauth_token", "saved")

        assert service.resolve_token("explicit") == "explicit"

    def test_env_before_settings(self, service, monkeypatch):
        monkeypatch.setenv("STORYBLOK_OAUTH_TOKEN", "env")
        service.settings.set_setting("oauth_token", "saved")

        assert service.resolve_token() == "env"

    def test_saved_setting(self, service):
        service.settings.set_setting("oauth_token", "saved")

        assert service.resolve_token() == "saved"

    def test_missing_token(self, service):
        with pytest.raises(ConfigurationError):
            service.resolve_token()


class TestRequireSpaceId:
    def test_blank_is_rejected(self):
        with pytest.raises(ConfigurationError):
            require_space_id("  ")
        with pytest.raises(ConfigurationError):
            require_space_id(None)

    def test_numeric_and_string_ids(self):
        assert require_space_id(0) == 0
        assert require_space_id("123") == "123"


class TestFetchContentTree:
    """Tests for fetch_content_tree()."""

    @pytest.mark.asyncio
    async def test_builds_tree(self, service, client, tokens):
        client.fetch_all_stories.return_value = [
            ContentRecord(id=1, name="Blog", slug="blog", is_folder=True),
            ContentRecord(id=2, name="Post", slug="post", parent_id=1),
        ]

        result = await service.fetch_content_tree(12, "tok")

        assert result.total == 2
        assert [node.id for node in result.tree] == [1]
        assert result.tree[0].children[0].id == 2
        client.fetch_all_stories.assert_awaited_once_with(12)
        assert tokens == ["tok"]

    @pytest.mark.asyncio
    async def test_missing_space_id_before_any_call(self, service, tokens):
        with pytest.raises(ConfigurationError):
            await service.fetch_content_tree("", "tok")

        assert tokens == []

    @pytest.mark.asyncio
    async def test_missing_token_before_any_call(self, service, tokens):
        with pytest.raises(ConfigurationError):
            await service.fetch_content_tree(12)

        assert tokens == []


class TestCopyContent:
    """Tests for copy_content()."""

    @pytest.mark.asyncio
    async def test_copies_with_new_parent(self, service, client):
        records = {
            10: ContentRecord(id=10, name="Folder", slug="folder", is_folder=True),
            11: ContentRecord(id=11, name="Page", slug="page", parent_id=10),
        }
        client.get_story.side_effect = lambda space, story_id: records[story_id]
        new_ids = iter([500, 501])
        client.create_story.side_effect = lambda space, payload: ContentRecord(
            id=next(new_ids), name=payload["name"], slug=payload["slug"]
        )
        events = []

        result = await service.copy_content(1, 2, [10, 11], None, "tok", events.append)

        assert result.success is True
        assert result.copied_count == 2
        second_payload = client.create_story.call_args_list[1].args[1]
        assert second_payload["parent_id"] == 500
        assert events[-1].is_terminal

    @pytest.mark.asyncio
    async def test_missing_target_space(self, service, client):
        with pytest.raises(ConfigurationError):
            await service.copy_content(1, None, [10], None, "tok")

        client.get_story.assert_not_called()


class TestSyncAndDiscover:
    """Tests for sync() and discover()."""

    @pytest.mark.asyncio
    async def test_sync_delegates(self, service, client):
        client.list_components.return_value = []
        client.create_component.side_effect = lambda space, body: {**body, "id": 1}

        outcome = await service.sync(
            "components", 5, "tok", [{"name": "hero"}], SyncOptions(), None
        )

        assert outcome.created == ["hero"]

    @pytest.mark.asyncio
    async def test_sync_missing_space(self, service, tokens):
        with pytest.raises(ConfigurationError):
            await service.sync("components", "", "tok", [])

        assert tokens == []

    def test_discover_uses_configured_dirs(self, client, tmp_path):
        (tmp_path / "blocks").mkdir()
        (tmp_path / "blocks" / "hero.sb.json").write_text("{}")
        config = SpacemigConfig(discovery={"component_dirs": ["blocks"]})
        service = MigrationService(config, client_factory=lambda token: client)

        assert [r.name for r in service.discover("components", tmp_path)] == ["hero"]

    def test_command_runner_uses_configured_executable(self, client):
        config = SpacemigConfig(runner={"executable": "my-mig"})
        service = MigrationService(config, client_factory=lambda token: client)

        assert service.command_runner().executable == "my-mig"
