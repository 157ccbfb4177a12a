from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.execution.models import VALID_TIME_IN_FORCE


class SystemConfig(BaseModel):
    name: str = "Hotkey Order Dispatch"
    version: str = "1.0.0"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a standard logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class HotkeySettings(BaseModel):
    """Settings for hotkey dispatch."""

    enabled: bool = True
    cooldown_ms: int = Field(default=2000, ge=0, le=60_000)
    default_quantity: int = Field(default=1, ge=1)
    client_order_prefix: str = Field(default="hk", min_length=1, max_length=8)
    session_id_length: int = Field(default=8, ge=4, le=32)


class ExecutionSettings(BaseModel):
    """Settings for trade execution."""

    default_time_in_force: str = Field(default="day")
    request_timeout_seconds: float = Field(default=30.0, gt=0, le=300)

    @field_validator("default_time_in_force")
    @classmethod
    def validate_time_in_force(cls, v: str) -> str:
        if v.lower() not in VALID_TIME_IN_FORCE:
            raise ValueError(f"Invalid time in force: {v}. Must be one of {VALID_TIME_IN_FORCE}")
        return v.lower()


class StorageSettings(BaseModel):
    """Location of the JSON settings store."""

    settings_path: str = "data/app_settings.json"


class AlpacaConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ALPACA_")

    api_key: str = ""
    secret_key: str = ""
    paper: bool = True
    paper_url: str = "https://paper-api.alpaca.markets"
    live_url: str = "https://api.alpaca.markets"


class Settings(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    hotkeys: HotkeySettings = Field(default_factory=HotkeySettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    alpaca: AlpacaConfig = Field(default_factory=AlpacaConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file with env var overrides."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Credentials only come from the environment
        data.pop("alpaca", None)
        alpaca = AlpacaConfig()

        return cls(
            **data,
            alpaca=alpaca,
        )
