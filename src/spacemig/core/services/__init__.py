"""
Service layer for spacemig.

Services compose the core packages into the operations a front end calls.
No rich, no sys.exit, no printing; presentation is the caller's job.
"""

from spacemig.core.services.migration import (
    ClientFactory,
    MigrationService,
    TOKEN_SETTING,
    require_space_id,
)

__all__ = [
    "ClientFactory",
    "MigrationService",
    "TOKEN_SETTING",
    "require_space_id",
]
