# src/execution/broker_port.py
"""Broker trading port: the boundary to the brokerage order API."""
from abc import ABC, abstractmethod

from src.execution.client_registry import AlpacaClientRegistry
from src.execution.models import (
    AccountBalance,
    BrokerAccount,
    BrokerOrder,
    OrderSpec,
    Position,
)


class BrokerPort(ABC):
    """Abstract order/position API addressed per account.

    Every call names the account whose credentials it must use; an
    implementation never picks credentials on its own.
    """

    @abstractmethod
    async def submit_order(self, account: BrokerAccount, spec: OrderSpec) -> BrokerOrder:
        """Submit one order for one account."""
        pass

    @abstractmethod
    async def cancel_order(self, account: BrokerAccount, order_id: str) -> bool:
        """Cancel an order. Returns False if the broker refused."""
        pass

    @abstractmethod
    async def get_positions(self, account: BrokerAccount) -> list[Position]:
        """List open positions."""
        pass

    @abstractmethod
    async def get_orders(
        self,
        account: BrokerAccount,
        status: str | None = None,
        limit: int | None = 50,
        direction: str | None = "desc",
    ) -> list[BrokerOrder]:
        """List orders."""
        pass

    @abstractmethod
    async def get_account(self, account: BrokerAccount) -> AccountBalance:
        """Fetch the account balance."""
        pass


class AlpacaBrokerPort(BrokerPort):
    """BrokerPort backed by per-account Alpaca clients.

    Attributes:
        _registry: Cache of client bindings keyed by account id.
    """

    def __init__(self, registry: AlpacaClientRegistry):
        self._registry = registry

    async def submit_order(self, account: BrokerAccount, spec: OrderSpec) -> BrokerOrder:
        client = self._registry.get_client(account)
        return await client.submit_order(spec)

    async def cancel_order(self, account: BrokerAccount, order_id: str) -> bool:
        client = self._registry.get_client(account)
        return await client.cancel_order(order_id)

    async def get_positions(self, account: BrokerAccount) -> list[Position]:
        client = self._registry.get_client(account)
        return await client.get_all_positions()

    async def get_orders(
        self,
        account: BrokerAccount,
        status: str | None = None,
        limit: int | None = 50,
        direction: str | None = "desc",
    ) -> list[BrokerOrder]:
        client = self._registry.get_client(account)
        return await client.get_orders(status=status, limit=limit, direction=direction)

    async def get_account(self, account: BrokerAccount) -> AccountBalance:
        client = self._registry.get_client(account)
        return await client.get_account()
