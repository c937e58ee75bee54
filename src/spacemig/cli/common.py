"""
Helpers shared by the CLI command modules.
"""

import asyncio
import logging
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

from spacemig.core.config.loader import load_config
from spacemig.core.services.migration import MigrationService
from spacemig.core.settings.store import SettingsStore

T = TypeVar("T")


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for spacemig commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine from Typer's sync command context.
    """
    return asyncio.run(coro)


def get_settings_store() -> SettingsStore:
    """Settings store at the default location."""
    return SettingsStore()


def get_service() -> MigrationService:
    """Migration service for the current project directory."""
    return MigrationService(load_config(), settings=get_settings_store())
