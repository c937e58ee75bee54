"""
Tests for the spacemig CLI.

Remote calls are replaced by patching get_service in the command modules;
settings and discovery run against tmp_path.
"""

from __future__ import annotations

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from spacemig import __version__
from spacemig.cli import app
from spacemig.cli.errors import ExitCode
from spacemig.core.api.exceptions import ConfigurationError, TransportError
from spacemig.core.config.models import SpacemigConfig
from spacemig.core.content.models import ContentRecord, FetchStoriesResult
from spacemig.core.content.tree import build_tree
from spacemig.core.replicate.models import CopyProgress, CopyResult, CopyStatus
from spacemig.core.services import MigrationService

runner = CliRunner()


@pytest.fixture
def mock_service():
    """MagicMock service patched into the stories command module."""
    service = MagicMock()
    with patch("spacemig.cli.stories.get_service", return_value=service):
        yield service


@pytest.fixture
def fake_client():
    client = AsyncMock()
    client.__aenter__.return_value = client
    client.list_components.return_value = []
    client.list_field_types.return_value = []
    client.create_component.side_effect = lambda space, body: {**body, "id": 1}
    client.create_field_type.side_effect = lambda name: {"name": name, "id": 2}
    return client


@pytest.fixture
def real_service(fake_client):
    """MigrationService backed by fake_client, patched into resources, run and doctor."""
    service = MigrationService(
        SpacemigConfig(runner={"executable": sys.executable}),
        client_factory=lambda token: fake_client,
    )
    with (
        patch("spacemig.cli.resources.get_service", return_value=service),
        patch("spacemig.cli.run.get_service", return_value=service),
        patch("spacemig.cli.doctor.get_service", return_value=service),
    ):
        yield service


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "stories" in result.output
        assert "sync" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert f"spacemig version {__version__}" in result.output


class TestStoriesTree:
    """spacemig stories tree"""

    def test_prints_tree(self, mock_service):
        records = [
            ContentRecord(id=1, name="Blog", slug="blog", is_folder=True),
            ContentRecord(id=2, name="First post", slug="first-post", parent_id=1),
        ]
        mock_service.fetch_content_tree = AsyncMock(
            return_value=FetchStoriesResult(records=records, tree=build_tree(records), total=2)
        )

        result = runner.invoke(app, ["stories", "tree", "--space", "12", "--token", "t"])

        assert result.exit_code == 0
        assert "Blog" in result.output
        assert "First post" in result.output
        mock_service.fetch_content_tree.assert_awaited_once_with("12", "t")

    def test_configuration_error(self, mock_service):
        mock_service.fetch_content_tree = AsyncMock(
            side_effect=ConfigurationError("No Management API token configured")
        )

        result = runner.invoke(app, ["stories", "tree", "--space", "12"])

        assert result.exit_code == ExitCode.USER_ERROR
        assert "No Management API token" in result.output

    def test_transport_error(self, mock_service):
        mock_service.fetch_content_tree = AsyncMock(
            side_effect=TransportError("Unauthorized", status_code=401)
        )

        result = runner.invoke(app, ["stories", "tree", "--space", "12"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "401" in result.output


class TestStoriesCopy:
    """spacemig stories copy"""

    def test_success(self, mock_service):
        async def copy(source, target, ids, parent, token, on_progress):
            on_progress(CopyProgress(current=1, total=2, current_item="A", status=CopyStatus.COPYING))
            on_progress(CopyProgress(current=2, total=2, current_item="Complete", status=CopyStatus.DONE))
            return CopyResult(success=True, copied_count=2)

        mock_service.copy_content = AsyncMock(side_effect=copy)

        result = runner.invoke(
            app, ["stories", "copy", "10", "11", "--from", "1", "--to", "2", "--parent", "99"]
        )

        assert result.exit_code == 0
        assert "Copied 2 stories" in result.output
        args = mock_service.copy_content.await_args.args
        assert args[:4] == ("1", "2", [10, 11], 99)

    def test_partial_failure(self, mock_service):
        mock_service.copy_content = AsyncMock(
            return_value=CopyResult(
                success=False, copied_count=1, errors=['Failed to create "B": 422 - taken']
            )
        )

        result = runner.invoke(app, ["stories", "copy", "10", "11", "--from", "1", "--to", "2"])

        assert result.exit_code == ExitCode.PARTIAL_FAILURE
        assert "Failed to create" in result.output


class TestDiscover:
    """spacemig discover"""

    def test_lists_resources(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "hero.sb.js").write_text("")

        result = runner.invoke(app, ["discover", "components", "--dir", str(tmp_path)])

        assert result.exit_code == 0
        assert "hero" in result.output

    def test_nothing_found(self, tmp_path):
        result = runner.invoke(app, ["discover", "roles", "--dir", str(tmp_path)])

        assert result.exit_code == 0
        assert "No roles found" in result.output

    def test_invalid_kind(self, tmp_path):
        result = runner.invoke(app, ["discover", "widgets", "--dir", str(tmp_path)])

        assert result.exit_code != 0


class TestSync:
    """spacemig sync"""

    def test_creates_components(self, tmp_path, real_service, fake_client):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "hero.sb.json").write_text('{"display_name": "Hero"}')

        result = runner.invoke(
            app,
            ["sync", "components", "--space", "5", "--dir", str(tmp_path), "--token", "t"],
        )

        assert result.exit_code == 0, result.output
        assert "1 created" in result.output
        body = fake_client.create_component.call_args.args[1]
        assert body == {"display_name": "Hero", "name": "hero"}

    def test_script_definitions_are_partial_failures(self, tmp_path, real_service, fake_client):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "hero.sb.json").write_text("{}")
        (tmp_path / "src" / "teaser.sb.js").write_text("module.exports = {}")

        result = runner.invoke(
            app,
            ["sync", "components", "--space", "5", "--dir", str(tmp_path), "--token", "t"],
        )

        assert result.exit_code == ExitCode.PARTIAL_FAILURE
        assert "teaser.sb.js" in result.output
        assert "1 created" in result.output

    def test_dry_run(self, tmp_path, real_service, fake_client):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "hero.sb.json").write_text("{}")

        result = runner.invoke(
            app,
            ["sync", "components", "--space", "5", "--dir", str(tmp_path), "--token", "t", "--dry-run"],
        )

        assert result.exit_code == 0
        assert "1 skipped" in result.output
        fake_client.create_component.assert_not_called()

    def test_unknown_name(self, tmp_path, real_service):
        result = runner.invoke(
            app,
            ["sync", "components", "ghost", "--space", "5", "--dir", str(tmp_path), "--token", "t"],
        )

        assert result.exit_code == ExitCode.PARTIAL_FAILURE
        assert "ghost" in result.output

    def test_missing_token(self, tmp_path, real_service):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "hero.sb.json").write_text("{}")

        result = runner.invoke(app, ["sync", "components", "--space", "5", "--dir", str(tmp_path)])

        assert result.exit_code == ExitCode.USER_ERROR

    def test_plugins_need_bundles(self, real_service):
        result = runner.invoke(app, ["sync", "plugins", "--space", "5", "--token", "t"])

        assert result.exit_code == ExitCode.USER_ERROR
        assert "No plugin bundles" in result.output

    def test_plugin_bundle(self, tmp_path, real_service, fake_client):
        bundle = tmp_path / "color-picker.js"
        bundle.write_text("bundle()")

        result = runner.invoke(
            app,
            ["sync", "plugins", "--space", "5", "--token", "t", "--plugin", str(bundle)],
        )

        assert result.exit_code == 0, result.output
        fake_client.create_field_type.assert_awaited_once_with("color-picker")
        fake_client.update_field_type.assert_awaited_once_with(2, "bundle()")


class TestSettings:
    """spacemig settings"""

    def test_set_get_list_delete(self):
        assert runner.invoke(app, ["settings", "set", "oauth_token", "abcdefgh"]).exit_code == 0

        got = runner.invoke(app, ["settings", "get", "oauth_token"])
        assert got.exit_code == 0
        assert "abcdefgh" in got.output

        listed = runner.invoke(app, ["settings", "list"])
        assert "oauth_token" in listed.output
        assert "abcdefgh" not in listed.output

        assert runner.invoke(app, ["settings", "delete", "oauth_token"]).exit_code == 0
        assert runner.invoke(app, ["settings", "get", "oauth_token"]).exit_code == 1

    def test_list_empty(self):
        result = runner.invoke(app, ["settings", "list"])

        assert result.exit_code == 0
        assert "No settings saved" in result.output


class TestRun:
    """spacemig run"""

    def test_streams_output(self, tmp_path, real_service):
        result = runner.invoke(
            app, ["run", "--dir", str(tmp_path), "--", "-c", "print('from-external')"]
        )

        assert result.exit_code == 0, result.output
        assert "from-external" in result.output

    def test_exit_code_is_passed_through(self, tmp_path, real_service):
        result = runner.invoke(
            app, ["run", "--dir", str(tmp_path), "--", "-c", "import sys; sys.exit(4)"]
        )

        assert result.exit_code == 4

    def test_token_is_injected(self, tmp_path, real_service, monkeypatch):
        monkeypatch.setenv("SPACEMIG_OAUTH_TOKEN", "env-token")

        result = runner.invoke(
            app,
            [
                "run",
                "--dir",
                str(tmp_path),
                "--space",
                "77",
                "--",
                "-c",
                "import os; print(os.environ['STORYBLOK_OAUTH_TOKEN'], os.environ['STORYBLOK_SPACE_ID'])",
            ],
        )

        assert "env-token 77" in result.output

    def test_missing_executable(self, tmp_path, real_service):
        real_service.config.runner.executable = "spacemig-no-such-cli"

        result = runner.invoke(app, ["run", "--dir", str(tmp_path), "--", "--help"])

        assert result.exit_code == ExitCode.USER_ERROR
        assert "Command not found" in result.output


FAKE_CLI = """#!/bin/sh
if [ "$1" = "--version" ]; then echo "5.1.0"; exit 0; fi
if [ "$1" = "debug" ]; then
    echo "debug space=$STORYBLOK_SPACE_ID"
    exit "${FAKE_CLI_EXIT:-0}"
fi
exit 1
"""


@pytest.mark.skipif(sys.platform == "win32", reason="shell script stands in for the CLI")
class TestDoctor:
    """spacemig doctor"""

    @pytest.fixture
    def fake_cli(self, tmp_path, real_service):
        path = tmp_path / "fake-mig"
        path.write_text(FAKE_CLI)
        path.chmod(0o755)
        real_service.config.runner.executable = str(path)
        return path

    def test_healthy_setup(self, tmp_path, fake_cli):
        result = runner.invoke(
            app,
            ["doctor", "--dir", str(tmp_path), "--token", "t", "--space", "42", "--verbose"],
        )

        assert result.exit_code == 0, result.output
        assert "5.1.0" in result.output
        assert "debug space=42" in result.output
        assert "No issues found" in result.output

    def test_missing_token_is_an_issue(self, tmp_path, fake_cli):
        result = runner.invoke(app, ["doctor", "--dir", str(tmp_path)])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "token not configured" in result.output
        assert "Found 1 issue(s)" in result.output

    def test_failing_debug_command(self, tmp_path, fake_cli, monkeypatch):
        monkeypatch.setenv("FAKE_CLI_EXIT", "3")

        result = runner.invoke(app, ["doctor", "--dir", str(tmp_path), "--token", "t"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "debug space=" in result.output
        assert "Found 1 issue(s)" in result.output

    def test_cli_not_installed(self, tmp_path, real_service):
        real_service.config.runner.executable = "spacemig-no-such-cli"

        result = runner.invoke(app, ["doctor", "--dir", str(tmp_path), "--token", "t"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "spacemig-no-such-cli not found" in result.output
        assert "npm install -g spacemig-no-such-cli" in result.output
