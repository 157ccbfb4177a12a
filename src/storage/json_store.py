# src/storage/json_store.py
"""JSON file store for broker accounts and hotkey presets."""
import json
import logging
from pathlib import Path
from typing import Any

import aiofiles

from src.config.settings import AlpacaConfig, StorageSettings
from src.execution.models import ALPACA_BROKER_TYPE, BrokerAccount
from src.hotkeys.models import HotkeyPreset
from src.storage.base import SettingsProvider
from src.storage.validation import validate_preset

logger = logging.getLogger(__name__)


class JsonSettingsStore(SettingsProvider):
    """Settings provider persisted as one JSON document.

    Document shape::

        {
          "broker_accounts": [...],
          "hotkey_presets": [...],
          "alpaca": {"api_key": ..., "secret_key": ..., "base_url": ..., "is_paper": ...}
        }

    The "alpaca" block is the older single-account format. When no broker
    accounts are configured it, or the ALPACA_* environment, becomes one
    account with id "alpaca-legacy".
    """

    LEGACY_ACCOUNT_ID = "alpaca-legacy"
    LEGACY_ACCOUNT_NAME = "Alpaca Legacy"

    def __init__(
        self,
        settings: StorageSettings,
        legacy_alpaca: AlpacaConfig | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Storage settings with the JSON file path.
            legacy_alpaca: Environment credentials used when the file has no accounts.
        """
        self._path = Path(settings.settings_path)
        self._legacy_alpaca = legacy_alpaca
        self._accounts: list[BrokerAccount] = []
        self._presets: list[HotkeyPreset] = []
        self._legacy_block: dict[str, Any] = {}

    @property
    def path(self) -> Path:
        return self._path

    def get_configured_accounts(self) -> list[BrokerAccount]:
        if self._accounts:
            return list(self._accounts)
        legacy = self._legacy_account()
        return [legacy] if legacy else []

    def get_hotkey_presets(self) -> list[HotkeyPreset]:
        return sorted(self._presets, key=lambda p: p.position)

    async def load(self) -> None:
        """Read the JSON document. A missing or corrupt file means empty settings."""
        self._accounts = []
        self._presets = []
        self._legacy_block = {}

        if not self._path.exists():
            logger.info(f"Settings file {self._path} not found, starting empty")
            return

        async with aiofiles.open(self._path, "r") as f:
            content = await f.read()

        try:
            data = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError as e:
            logger.error(f"Settings file {self._path} is not valid JSON, starting empty: {e}")
            return
        if not isinstance(data, dict):
            logger.error(f"Settings file {self._path} is not a JSON object, starting empty")
            return

        for raw in data.get("broker_accounts") or []:
            try:
                self._accounts.append(_account_from_dict(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed broker account entry: {e}")

        for raw in data.get("hotkey_presets") or []:
            try:
                self._presets.append(_preset_from_dict(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed hotkey preset entry: {e}")

        legacy = data.get("alpaca")
        self._legacy_block = legacy if isinstance(legacy, dict) else {}

        logger.info(
            f"Loaded {len(self._accounts)} broker accounts and "
            f"{len(self._presets)} hotkey presets from {self._path}"
        )

    async def save(self) -> None:
        """Write the current settings to the JSON document."""
        data: dict[str, Any] = {
            "broker_accounts": [_account_to_dict(a) for a in self._accounts],
            "hotkey_presets": [_preset_to_dict(p) for p in self._presets],
        }
        if self._legacy_block:
            data["alpaca"] = self._legacy_block

        self._path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self._path, "w") as f:
            await f.write(json.dumps(data, indent=2))

    async def save_hotkey_preset(self, preset: HotkeyPreset) -> HotkeyPreset:
        """Validate and store a preset, replacing any preset with the same id.

        Raises:
            PresetValidationError: If the preset is invalid. Nothing is written.
        """
        validate_preset(preset)
        self._presets = [p for p in self._presets if p.id != preset.id] + [preset]
        await self.save()
        return preset

    async def delete_hotkey_preset(self, preset_id: str) -> bool:
        """Remove a preset. Returns False if it did not exist."""
        remaining = [p for p in self._presets if p.id != preset_id]
        if len(remaining) == len(self._presets):
            return False
        self._presets = remaining
        await self.save()
        return True

    async def save_broker_account(self, account: BrokerAccount) -> BrokerAccount:
        """Store an account, replacing any account with the same id."""
        if not account.id.strip():
            raise ValueError("Broker account id is required")
        replaced = False
        accounts = []
        for existing in self._accounts:
            if existing.id == account.id:
                accounts.append(account)
                replaced = True
            else:
                accounts.append(existing)
        if not replaced:
            accounts.append(account)
        self._accounts = accounts
        await self.save()
        return account

    async def delete_broker_account(self, account_id: str) -> bool:
        """Remove an account. Returns False if it did not exist."""
        remaining = [a for a in self._accounts if a.id != account_id]
        if len(remaining) == len(self._accounts):
            return False
        self._accounts = remaining
        await self.save()
        return True

    def _legacy_account(self) -> BrokerAccount | None:
        block = self._legacy_block
        api_key = str(block.get("api_key", "")).strip()
        secret_key = str(block.get("secret_key", "")).strip()
        if api_key and secret_key:
            is_paper = bool(block.get("is_paper", True))
            base_url = str(block.get("base_url", ""))
        elif self._legacy_alpaca and self._legacy_alpaca.api_key and self._legacy_alpaca.secret_key:
            api_key = self._legacy_alpaca.api_key
            secret_key = self._legacy_alpaca.secret_key
            is_paper = self._legacy_alpaca.paper
            base_url = self._legacy_alpaca.paper_url if is_paper else self._legacy_alpaca.live_url
        else:
            return None

        return BrokerAccount(
            id=self.LEGACY_ACCOUNT_ID,
            account_name=self.LEGACY_ACCOUNT_NAME,
            broker_type=ALPACA_BROKER_TYPE,
            enabled=True,
            api_key=api_key,
            secret_key=secret_key,
            base_url=base_url,
            is_paper=is_paper,
        )


def _account_from_dict(raw: dict) -> BrokerAccount:
    return BrokerAccount(
        id=str(raw["id"]),
        account_name=str(raw.get("account_name") or raw["id"]),
        broker_type=str(raw.get("broker_type", ALPACA_BROKER_TYPE)),
        enabled=bool(raw.get("enabled", True)),
        api_key=str(raw.get("api_key", "")),
        secret_key=str(raw.get("secret_key", "")),
        base_url=str(raw.get("base_url", "")),
        is_paper=bool(raw.get("is_paper", True)),
    )


def _account_to_dict(account: BrokerAccount) -> dict:
    return {
        "id": account.id,
        "account_name": account.account_name,
        "broker_type": account.broker_type,
        "enabled": account.enabled,
        "api_key": account.api_key,
        "secret_key": account.secret_key,
        "base_url": account.base_url,
        "is_paper": account.is_paper,
    }


def _preset_from_dict(raw: dict) -> HotkeyPreset:
    return HotkeyPreset(
        id=str(raw["id"]),
        name=str(raw["name"]),
        symbol=str(raw["symbol"]),
        quantity=str(raw.get("quantity", "")),
        order_type=str(raw.get("order_type", "market")),
        time_in_force=str(raw.get("time_in_force", "day")),
        limit_price=str(raw.get("limit_price") or ""),
        stop_price=str(raw.get("stop_price") or ""),
        selected_account_ids=frozenset(str(i) for i in raw.get("selected_account_ids") or []),
        enabled=bool(raw.get("enabled", True)),
        position=int(raw.get("position", 0)),
    )


def _preset_to_dict(preset: HotkeyPreset) -> dict:
    return {
        "id": preset.id,
        "name": preset.name,
        "symbol": preset.symbol,
        "quantity": preset.quantity,
        "order_type": preset.order_type,
        "time_in_force": preset.time_in_force,
        "limit_price": preset.limit_price,
        "stop_price": preset.stop_price,
        "selected_account_ids": sorted(preset.selected_account_ids),
        "enabled": preset.enabled,
        "position": preset.position,
    }
