"""Core infrastructure: CLI, config."""

from cadence.core.config import (
    Settings,
    EngineConfig,
    FunctionsConfig,
    UnipileConfig,
    load_settings,
)
