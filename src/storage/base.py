# src/storage/base.py
from abc import ABC, abstractmethod

from src.execution.models import BrokerAccount
from src.hotkeys.models import HotkeyPreset


class SettingsProvider(ABC):
    """Read-only source of configured accounts and hotkey presets."""

    @abstractmethod
    def get_configured_accounts(self) -> list[BrokerAccount]:
        """Return every configured broker account."""
        pass

    @abstractmethod
    def get_hotkey_presets(self) -> list[HotkeyPreset]:
        """Return hotkey presets in display order."""
        pass
