"""Storage module: settings provider and JSON settings store."""

from .base import SettingsProvider
from .json_store import JsonSettingsStore
from .validation import PresetValidationError, validate_preset

__all__ = ["JsonSettingsStore", "PresetValidationError", "SettingsProvider", "validate_preset"]
