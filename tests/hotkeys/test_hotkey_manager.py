"""Tests for HotkeyManager."""
import pytest
from unittest.mock import AsyncMock, Mock

from src.execution.broker_port import BrokerPort
from src.execution.errors import BrokerError
from src.execution.models import BrokerAccount, BrokerOrder
from src.hotkeys.hotkey_manager import HotkeyManager, find_preset
from src.hotkeys.models import HotkeyExecutionResult, HotkeyPreset, HotkeyRejection, RejectionReason
from src.hotkeys.order_dispatcher import HotkeyOrderDispatcher
from src.hotkeys.spam_guard import SpamGuard
from src.storage.base import SettingsProvider


def make_preset(**overrides) -> HotkeyPreset:
    values = {"id": "preset-1", "name": "AAPL 10", "symbol": "AAPL", "quantity": "10"}
    values.update(overrides)
    return HotkeyPreset(**values)


def make_account(account_id: str, **overrides) -> BrokerAccount:
    values = {
        "id": account_id,
        "account_name": f"Account {account_id}",
        "api_key": "key",
        "secret_key": "secret",
    }
    values.update(overrides)
    return BrokerAccount(**values)


@pytest.fixture
def mock_broker():
    broker = Mock(spec=BrokerPort)

    async def submit(account, spec):
        return BrokerOrder(
            id=f"order-{account.id}",
            client_order_id=spec.client_order_id,
            symbol=spec.symbol,
            side=spec.side,
            quantity=spec.quantity,
            status="accepted",
        )

    broker.submit_order = AsyncMock(side_effect=submit)
    return broker


@pytest.fixture
def manager(mock_broker):
    return HotkeyManager(HotkeyOrderDispatcher(mock_broker), SpamGuard(cooldown_ms=2000))


@pytest.fixture
def accounts():
    return [make_account("acct-1"), make_account("acct-2"), make_account("acct-3")]


class TestExecuteHotkey:
    """Tests for the hotkey entry point."""

    @pytest.mark.asyncio
    async def test_dispatches_to_eligible_accounts(self, manager, mock_broker, accounts):
        outcome = await manager.execute_hotkey(make_preset(), "buy", accounts, now_ms=10_000)

        assert isinstance(outcome, HotkeyExecutionResult)
        assert outcome.total_count == 3
        assert outcome.is_full_success
        assert mock_broker.submit_order.await_count == 3

    @pytest.mark.asyncio
    async def test_side_is_case_insensitive(self, manager, accounts):
        outcome = await manager.execute_hotkey(make_preset(), "SELL", accounts, now_ms=10_000)

        assert isinstance(outcome, HotkeyExecutionResult)
        assert outcome.side == "sell"

    @pytest.mark.asyncio
    async def test_restricted_preset_reaches_one_account(self, manager, mock_broker, accounts):
        preset = make_preset(selected_account_ids=frozenset({"acct-2"}))

        outcome = await manager.execute_hotkey(preset, "buy", accounts, now_ms=10_000)

        assert outcome.total_count == 1
        assert outcome.account_results[0].account_id == "acct-2"
        assert mock_broker.submit_order.await_count == 1

    @pytest.mark.asyncio
    async def test_second_fire_within_cooldown_is_blocked(self, manager, mock_broker, accounts):
        preset = make_preset()

        first = await manager.execute_hotkey(preset, "buy", accounts, now_ms=10_000)
        calls_after_first = mock_broker.submit_order.await_count
        second = await manager.execute_hotkey(preset, "buy", accounts, now_ms=10_500)

        assert isinstance(first, HotkeyExecutionResult)
        assert isinstance(second, HotkeyRejection)
        assert second.reason == RejectionReason.SPAM_BLOCKED
        assert second.retry_after_ms == 1500
        assert mock_broker.submit_order.await_count == calls_after_first

    @pytest.mark.asyncio
    async def test_fire_after_cooldown_is_allowed(self, manager, accounts):
        preset = make_preset()

        await manager.execute_hotkey(preset, "buy", accounts, now_ms=10_000)
        outcome = await manager.execute_hotkey(preset, "buy", accounts, now_ms=12_000)

        assert isinstance(outcome, HotkeyExecutionResult)

    @pytest.mark.asyncio
    async def test_opposite_side_not_blocked(self, manager, accounts):
        preset = make_preset()

        await manager.execute_hotkey(preset, "buy", accounts, now_ms=10_000)
        outcome = await manager.execute_hotkey(preset, "sell", accounts, now_ms=10_100)

        assert isinstance(outcome, HotkeyExecutionResult)

    @pytest.mark.asyncio
    async def test_no_eligible_accounts_is_rejected_without_broker_calls(self, manager, mock_broker):
        accounts = [
            make_account("acct-1", enabled=False),
            make_account("acct-2", broker_type="IBKR"),
        ]

        outcome = await manager.execute_hotkey(make_preset(), "buy", accounts, now_ms=10_000)

        assert isinstance(outcome, HotkeyRejection)
        assert outcome.reason == RejectionReason.NO_ELIGIBLE_ACCOUNTS
        mock_broker.submit_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_preset_is_rejected(self, manager, mock_broker, accounts):
        outcome = await manager.execute_hotkey(
            make_preset(enabled=False), "buy", accounts, now_ms=10_000
        )

        assert outcome.reason == RejectionReason.PRESET_DISABLED
        mock_broker.submit_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_side_is_rejected(self, manager, mock_broker, accounts):
        outcome = await manager.execute_hotkey(make_preset(), "short", accounts, now_ms=10_000)

        assert outcome.reason == RejectionReason.INVALID_SIDE
        mock_broker.submit_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_side_does_not_start_cooldown(self, manager, accounts):
        await manager.execute_hotkey(make_preset(), "short", accounts, now_ms=10_000)
        outcome = await manager.execute_hotkey(make_preset(), "buy", accounts, now_ms=10_001)

        assert isinstance(outcome, HotkeyExecutionResult)

    @pytest.mark.asyncio
    async def test_disabled_manager_rejects_everything(self, mock_broker, accounts):
        manager = HotkeyManager(HotkeyOrderDispatcher(mock_broker), SpamGuard(), enabled=False)

        outcome = await manager.execute_hotkey(make_preset(), "buy", accounts, now_ms=10_000)

        assert outcome.reason == RejectionReason.HOTKEYS_DISABLED
        mock_broker.submit_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_failure_scenario(self, manager, mock_broker, accounts):
        default_submit = mock_broker.submit_order.side_effect

        async def submit(account, spec):
            if account.id == "acct-3":
                raise BrokerError("insufficient buying power", status_code=403)
            return await default_submit(account, spec)

        mock_broker.submit_order.side_effect = submit

        outcome = await manager.execute_hotkey(make_preset(), "buy", accounts, now_ms=10_000)

        assert outcome.success_count == 2
        assert outcome.total_count == 3
        assert outcome.has_partial_success
        assert outcome.account_results[2].error_message == "Insufficient buying power for this order."


class TestRetryFailed:
    """Tests for re-dispatching only the failed accounts."""

    @pytest.mark.asyncio
    async def test_retries_only_failed_accounts(self, manager, mock_broker, accounts):
        default_submit = mock_broker.submit_order.side_effect
        fail_acct_2 = True

        async def submit(account, spec):
            if account.id == "acct-2" and fail_acct_2:
                raise BrokerError("Service Unavailable", status_code=503)
            return await default_submit(account, spec)

        mock_broker.submit_order.side_effect = submit
        first = await manager.execute_hotkey(make_preset(), "buy", accounts, now_ms=10_000)
        assert first.failed_account_ids == ["acct-2"]

        fail_acct_2 = False
        mock_broker.submit_order.reset_mock()
        retry = await manager.retry_failed(first, accounts)

        assert isinstance(retry, HotkeyExecutionResult)
        assert retry.total_count == 1
        assert retry.is_full_success
        assert retry.session_id != first.session_id
        assert mock_broker.submit_order.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_skips_accounts_disabled_since(self, manager, mock_broker, accounts):
        mock_broker.submit_order.side_effect = BrokerError("boom")
        first = await manager.execute_hotkey(make_preset(), "buy", accounts, now_ms=10_000)

        disabled = [make_account(a.id, enabled=False) for a in accounts]
        outcome = await manager.retry_failed(first, disabled)

        assert isinstance(outcome, HotkeyRejection)
        assert outcome.reason == RejectionReason.NO_ELIGIBLE_ACCOUNTS

    @pytest.mark.asyncio
    async def test_retry_after_timeout_reuses_client_order_id(self, manager, mock_broker, accounts):
        default_submit = mock_broker.submit_order.side_effect
        sent_ids = []

        async def submit(account, spec):
            sent_ids.append(spec.client_order_id)
            if len(sent_ids) == 1:
                raise BrokerError("Request timed out after 30s")
            return await default_submit(account, spec)

        mock_broker.submit_order.side_effect = submit
        first = await manager.execute_hotkey(make_preset(), "buy", accounts[:1], now_ms=10_000)
        assert first.account_results[0].error_message.startswith("Connection timeout")

        retry = await manager.retry_failed(first, accounts)

        assert sent_ids[0] == sent_ids[1]
        assert retry.account_results[0].client_order_id == first.account_results[0].client_order_id
        assert retry.session_id != first.session_id


class TestExecuteHotkeyByName:
    """Tests for resolving presets through a SettingsProvider."""

    @pytest.mark.asyncio
    async def test_fires_named_preset(self, manager, accounts):
        provider = Mock(spec=SettingsProvider)
        provider.get_hotkey_presets.return_value = [make_preset(name="Scalp AAPL")]
        provider.get_configured_accounts.return_value = accounts

        outcome = await manager.execute_hotkey_by_name(provider, "scalp aapl", "buy", now_ms=10_000)

        assert isinstance(outcome, HotkeyExecutionResult)
        assert outcome.preset.name == "Scalp AAPL"

    @pytest.mark.asyncio
    async def test_unknown_preset_raises(self, manager):
        provider = Mock(spec=SettingsProvider)
        provider.get_hotkey_presets.return_value = []

        with pytest.raises(KeyError):
            await manager.execute_hotkey_by_name(provider, "missing", "buy")


class TestFindPreset:
    """Tests for find_preset."""

    def test_matches_id_before_name(self):
        by_id = make_preset(id="abc", name="First")
        by_name = make_preset(id="other", name="abc")

        assert find_preset([by_name, by_id], "abc") is by_id

    def test_matches_name_case_insensitively(self):
        preset = make_preset(name="TSLA Scalp")

        assert find_preset([preset], "  tsla scalp ") is preset
