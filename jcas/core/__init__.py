"""
Foundational configuration and history utilities for the scoring core.

Higher-level pieces (execution client, proxy, CLI) depend on these modules;
nothing here performs network I/O.
"""

from .config import (
    ExecutionSettings,
    ScoringConfig,
    TransportMode,
    load_scoring_config,
    settings_from_env,
)
from .history import ExecutionHistory, ExecutionRecord

__all__ = [
    "ExecutionHistory",
    "ExecutionRecord",
    "ExecutionSettings",
    "ScoringConfig",
    "TransportMode",
    "load_scoring_config",
    "settings_from_env",
]
