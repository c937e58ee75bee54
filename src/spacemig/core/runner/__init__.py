"""
External migration CLI runner.
"""

from spacemig.core.runner.process import (
    CliCredentials,
    CommandResult,
    CommandRunner,
    DebugInfo,
    OutputEvent,
    OutputEventType,
    RunHandle,
    ValidationResult,
    get_extended_path,
)

__all__ = [
    "CliCredentials",
    "CommandResult",
    "CommandRunner",
    "DebugInfo",
    "OutputEvent",
    "OutputEventType",
    "RunHandle",
    "ValidationResult",
    "get_extended_path",
]
