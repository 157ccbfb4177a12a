"""Execution module: broker port, Alpaca clients and order models."""

from .alpaca_client import AlpacaClient
from .broker_port import AlpacaBrokerPort, BrokerPort
from .client_registry import AlpacaClientRegistry
from .errors import BrokerError, BrokerNotConfiguredError
from .models import (
    AccountBalance,
    BrokerAccount,
    BrokerOrder,
    OrderSpec,
    Position,
)

__all__ = [
    "AccountBalance",
    "AlpacaBrokerPort",
    "AlpacaClient",
    "AlpacaClientRegistry",
    "BrokerAccount",
    "BrokerError",
    "BrokerNotConfiguredError",
    "BrokerOrder",
    "BrokerPort",
    "OrderSpec",
    "Position",
]
