"""
Pytest configuration and shared fixtures.

Keeps every test away from the real user config, data directory and
tokens.
"""

import pytest

from spacemig.core.config import clear_cache

ENV_VARS = (
    "SPACEMIG_OAUTH_TOKEN",
    "STORYBLOK_OAUTH_TOKEN",
    "SPACEMIG_API_URL",
    "SPACEMIG_MAX_RETRIES",
    "SPACEMIG_FETCH_BATCH_SIZE",
    "SPACEMIG_CREATE_BATCH_SIZE",
    "SPACEMIG_SYNC_BATCH_SIZE",
)


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """
    Keep tests away from the real user config, data dir and tokens.

    XDG_CONFIG_HOME and XDG_DATA_HOME point into tmp_path, spacemig env
    vars are removed and the config cache is cleared around each test.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()
