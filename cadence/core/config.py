"""Configuration loading and models."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel


class EngineConfig(BaseModel):
    batch_size: int = 50
    max_steps_per_run: int = 10  # node executions per run per tick
    run_delay_seconds: float = 1.0
    default_timeout_days: float = 7
    lease_seconds: float = 300  # how long a run is held while an action dispatches


class FunctionsConfig(BaseModel):
    base_url: str = ""  # falls back to SUPABASE_URL
    timeout_seconds: float = 60.0


class UnipileConfig(BaseModel):
    enabled: bool = True
    timeout_seconds: float = 30.0


class Settings(BaseModel):
    engine: EngineConfig = EngineConfig()
    functions: FunctionsConfig = FunctionsConfig()
    unipile: UnipileConfig = UnipileConfig()
    auth_token: Optional[str] = None


DEFAULT_CONFIG_PATH = Path("config")


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from YAML file."""
    settings_file = config_path / "settings.yaml"

    if settings_file.exists():
        with open(settings_file) as f:
            data = yaml.safe_load(f) or {}
        settings = Settings(**data)
    else:
        settings = Settings()

    if not settings.functions.base_url:
        settings.functions.base_url = os.environ.get("SUPABASE_URL", "")

    # Tokens stay out of YAML
    if not settings.auth_token:
        env_token = os.environ.get("CADENCE_AUTH_TOKEN", "")
        if env_token:
            settings.auth_token = env_token

    return settings
