# tests/storage/test_json_store.py
"""Tests for the JSON settings store."""
import json
from pathlib import Path

import pytest

from src.config.settings import AlpacaConfig, StorageSettings
from src.execution.models import BrokerAccount
from src.hotkeys.models import HotkeyPreset
from src.storage import JsonSettingsStore, PresetValidationError


def make_account_dict(account_id: str = "acct-1", **overrides) -> dict:
    """Create a broker account entry as stored on disk."""
    values = {
        "id": account_id,
        "account_name": f"Account {account_id}",
        "broker_type": "Alpaca",
        "enabled": True,
        "api_key": f"key-{account_id}",
        "secret_key": f"secret-{account_id}",
        "base_url": "",
        "is_paper": True,
    }
    values.update(overrides)
    return values


def make_preset_dict(preset_id: str = "p1", **overrides) -> dict:
    """Create a hotkey preset entry as stored on disk."""
    values = {
        "id": preset_id,
        "name": f"Preset {preset_id}",
        "symbol": "AAPL",
        "quantity": "10",
        "order_type": "market",
        "time_in_force": "day",
        "selected_account_ids": [],
        "enabled": True,
        "position": 0,
    }
    values.update(overrides)
    return values


class TestJsonSettingsStore:
    """Tests for JsonSettingsStore."""

    @pytest.fixture
    def settings_path(self, tmp_path: Path) -> Path:
        return tmp_path / "data" / "app_settings.json"

    @pytest.fixture
    def store(self, settings_path: Path) -> JsonSettingsStore:
        return JsonSettingsStore(StorageSettings(settings_path=str(settings_path)))

    def write_document(self, path: Path, data) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data))

    @pytest.mark.asyncio
    async def test_missing_file_means_empty_settings(self, store: JsonSettingsStore) -> None:
        await store.load()

        assert store.get_configured_accounts() == []
        assert store.get_hotkey_presets() == []

    @pytest.mark.asyncio
    async def test_load_accounts_and_presets(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        self.write_document(
            settings_path,
            {
                "broker_accounts": [make_account_dict("acct-1"), make_account_dict("acct-2", enabled=False)],
                "hotkey_presets": [make_preset_dict("p1", selected_account_ids=["acct-2"])],
            },
        )

        await store.load()

        accounts = store.get_configured_accounts()
        assert [a.id for a in accounts] == ["acct-1", "acct-2"]
        assert accounts[1].enabled is False
        assert accounts[0].api_key == "key-acct-1"
        presets = store.get_hotkey_presets()
        assert presets[0].selected_account_ids == frozenset({"acct-2"})

    @pytest.mark.asyncio
    async def test_presets_sorted_by_position(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        self.write_document(
            settings_path,
            {"hotkey_presets": [make_preset_dict("b", position=2), make_preset_dict("a", position=1)]},
        )

        await store.load()

        assert [p.id for p in store.get_hotkey_presets()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_corrupt_file_means_empty_settings(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("{not json")

        await store.load()

        assert store.get_configured_accounts() == []

    @pytest.mark.asyncio
    async def test_non_object_document_means_empty_settings(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        self.write_document(settings_path, ["not", "an", "object"])

        await store.load()

        assert store.get_hotkey_presets() == []

    @pytest.mark.asyncio
    async def test_malformed_entries_are_skipped(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        self.write_document(
            settings_path,
            {
                "broker_accounts": [{"account_name": "no id"}, make_account_dict("acct-1")],
                "hotkey_presets": [
                    make_preset_dict("bad", position="first"),
                    {"id": "no-name"},
                    make_preset_dict("good"),
                ],
            },
        )

        await store.load()

        assert [a.id for a in store.get_configured_accounts()] == ["acct-1"]
        assert [p.id for p in store.get_hotkey_presets()] == ["good"]

    @pytest.mark.asyncio
    async def test_save_preset_round_trips_through_file(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        await store.load()
        preset = HotkeyPreset(
            id="p1",
            name="TSLA limit",
            symbol="TSLA",
            quantity="5",
            order_type="limit",
            limit_price="200.50",
            selected_account_ids=frozenset({"acct-1"}),
        )

        await store.save_hotkey_preset(preset)

        reloaded = JsonSettingsStore(StorageSettings(settings_path=str(settings_path)))
        await reloaded.load()
        assert reloaded.get_hotkey_presets() == [preset]

    @pytest.mark.asyncio
    async def test_save_preset_replaces_same_id(self, store: JsonSettingsStore) -> None:
        await store.load()
        await store.save_hotkey_preset(HotkeyPreset(id="p1", name="Old", symbol="AAPL", quantity="1"))

        await store.save_hotkey_preset(HotkeyPreset(id="p1", name="New", symbol="AAPL", quantity="2"))

        presets = store.get_hotkey_presets()
        assert len(presets) == 1
        assert presets[0].name == "New"

    @pytest.mark.asyncio
    async def test_invalid_preset_is_not_saved(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        await store.load()
        preset = HotkeyPreset(id="p1", name="Bad", symbol="AAPL", quantity="ten")

        with pytest.raises(PresetValidationError, match="quantity"):
            await store.save_hotkey_preset(preset)

        assert store.get_hotkey_presets() == []
        assert not settings_path.exists()

    @pytest.mark.asyncio
    async def test_delete_preset(self, store: JsonSettingsStore) -> None:
        await store.load()
        await store.save_hotkey_preset(HotkeyPreset(id="p1", name="A", symbol="AAPL", quantity="1"))

        assert await store.delete_hotkey_preset("p1") is True
        assert await store.delete_hotkey_preset("p1") is False
        assert store.get_hotkey_presets() == []

    @pytest.mark.asyncio
    async def test_save_account_replaces_in_place(
        self, store: JsonSettingsStore, settings_path: Path
    ) -> None:
        self.write_document(
            settings_path,
            {"broker_accounts": [make_account_dict("acct-1"), make_account_dict("acct-2")]},
        )
        await store.load()

        await store.save_broker_account(
            BrokerAccount(id="acct-1", account_name="Renamed", api_key="k2", secret_key="s2")
        )

        accounts = store.get_configured_accounts()
        assert [a.id for a in accounts] == ["acct-1", "acct-2"]
        assert accounts[0].account_name == "Renamed"
        saved = json.loads(settings_path.read_text())
        assert saved["broker_accounts"][0]["api_key"] == "k2"

    @pytest.mark.asyncio
    async def test_save_account_requires_id(self, store: JsonSettingsStore) -> None:
        await store.load()

        with pytest.raises(ValueError, match="id is required"):
            await store.save_broker_account(BrokerAccount(id=" ", account_name="Nameless"))

    @pytest.mark.asyncio
    async def test_delete_account(self, store: JsonSettingsStore, settings_path: Path) -> None:
        self.write_document(settings_path, {"broker_accounts": [make_account_dict("acct-1")]})
        await store.load()

        assert await store.delete_broker_account("acct-1") is True
        assert await store.delete_broker_account("acct-1") is False


class TestLegacyAccountMigration:
    """Tests for the single-account fallback."""

    @pytest.mark.asyncio
    async def test_legacy_block_becomes_account(self, tmp_path: Path) -> None:
        path = tmp_path / "app_settings.json"
        path.write_text(
            json.dumps({"alpaca": {"api_key": "old-key", "secret_key": "old-secret", "is_paper": False}})
        )
        store = JsonSettingsStore(StorageSettings(settings_path=str(path)))

        await store.load()

        accounts = store.get_configured_accounts()
        assert len(accounts) == 1
        assert accounts[0].id == JsonSettingsStore.LEGACY_ACCOUNT_ID
        assert accounts[0].api_key == "old-key"
        assert accounts[0].is_paper is False
        assert accounts[0].enabled is True

    @pytest.mark.asyncio
    async def test_environment_credentials_become_account(self, tmp_path: Path) -> None:
        legacy = AlpacaConfig(api_key="env-key", secret_key="env-secret", paper=True)
        store = JsonSettingsStore(
            StorageSettings(settings_path=str(tmp_path / "missing.json")), legacy_alpaca=legacy
        )

        await store.load()

        accounts = store.get_configured_accounts()
        assert [a.id for a in accounts] == [JsonSettingsStore.LEGACY_ACCOUNT_ID]
        assert accounts[0].base_url == legacy.paper_url

    @pytest.mark.asyncio
    async def test_configured_accounts_win_over_legacy(self, tmp_path: Path) -> None:
        path = tmp_path / "app_settings.json"
        path.write_text(
            json.dumps(
                {
                    "broker_accounts": [make_account_dict("acct-1")],
                    "alpaca": {"api_key": "old-key", "secret_key": "old-secret"},
                }
            )
        )
        legacy = AlpacaConfig(api_key="env-key", secret_key="env-secret")
        store = JsonSettingsStore(StorageSettings(settings_path=str(path)), legacy_alpaca=legacy)

        await store.load()

        assert [a.id for a in store.get_configured_accounts()] == ["acct-1"]

    @pytest.mark.asyncio
    async def test_legacy_block_survives_save(self, tmp_path: Path) -> None:
        path = tmp_path / "app_settings.json"
        path.write_text(json.dumps({"alpaca": {"api_key": "old-key", "secret_key": "old-secret"}}))
        store = JsonSettingsStore(StorageSettings(settings_path=str(path)))
        await store.load()

        await store.save_hotkey_preset(HotkeyPreset(id="p1", name="A", symbol="AAPL", quantity="1"))

        assert json.loads(path.read_text())["alpaca"]["api_key"] == "old-key"
