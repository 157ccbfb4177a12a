"""Tests for AlpacaClientRegistry."""
import threading

import pytest
from unittest.mock import patch

from src.execution.client_registry import AlpacaClientRegistry
from src.execution.errors import BrokerNotConfiguredError
from src.execution.models import BrokerAccount


def make_account(account_id: str = "acct-1", **overrides) -> BrokerAccount:
    values = {
        "id": account_id,
        "account_name": f"Account {account_id}",
        "api_key": f"key-{account_id}",
        "secret_key": f"secret-{account_id}",
    }
    values.update(overrides)
    return BrokerAccount(**values)


@pytest.fixture(autouse=True)
def mock_trading_client():
    with patch("src.execution.alpaca_client.TradingClient") as mock_trading:
        yield mock_trading


class TestAlpacaClientRegistry:
    """Tests for per-account client caching."""

    def test_builds_client_on_first_use(self, mock_trading_client):
        registry = AlpacaClientRegistry()

        client = registry.get_client(make_account())

        assert client.is_connected
        assert "acct-1" in registry
        mock_trading_client.assert_called_once()

    def test_reuses_client_for_same_credentials(self, mock_trading_client):
        registry = AlpacaClientRegistry()
        account = make_account()

        first = registry.get_client(account)
        second = registry.get_client(account)

        assert first is second
        assert mock_trading_client.call_count == 1

    def test_separate_clients_per_account(self):
        registry = AlpacaClientRegistry()

        first = registry.get_client(make_account("acct-1"))
        second = registry.get_client(make_account("acct-2"))

        assert first is not second
        assert len(registry) == 2

    def test_accounts_sharing_a_login_get_their_own_binding(self):
        registry = AlpacaClientRegistry()
        shared = {"api_key": "same-key", "secret_key": "same-secret"}

        first = registry.get_client(make_account("acct-1", **shared))
        second = registry.get_client(make_account("acct-2", **shared))

        assert first is not second

    def test_rebuilds_when_credentials_change(self):
        registry = AlpacaClientRegistry()

        first = registry.get_client(make_account(secret_key="old"))
        second = registry.get_client(make_account(secret_key="new"))

        assert first is not second
        assert len(registry) == 1

    def test_rebuilds_when_paper_flag_changes(self):
        registry = AlpacaClientRegistry()

        paper = registry.get_client(make_account(is_paper=True))
        live = registry.get_client(make_account(is_paper=False))

        assert paper is not live
        assert live.paper is False

    def test_passes_request_timeout_to_clients(self):
        registry = AlpacaClientRegistry(request_timeout=5.0)

        client = registry.get_client(make_account())

        assert client._request_timeout == 5.0

    def test_missing_credentials_raise(self):
        registry = AlpacaClientRegistry()

        with pytest.raises(BrokerNotConfiguredError):
            registry.get_client(make_account(api_key="", secret_key=""))

        assert len(registry) == 0

    def test_concurrent_lookups_build_once(self, mock_trading_client):
        registry = AlpacaClientRegistry()
        account = make_account()
        clients = []

        def lookup():
            clients.append(registry.get_client(account))

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({id(c) for c in clients}) == 1
        assert mock_trading_client.call_count == 1
