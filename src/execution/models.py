# src/execution/models.py
"""Data models for the broker execution layer."""
from dataclasses import dataclass, field
from datetime import datetime


ALPACA_BROKER_TYPE = "Alpaca"

VALID_SIDES = ("buy", "sell")
VALID_ORDER_TYPES = ("market", "limit", "stop", "stop_limit")
VALID_TIME_IN_FORCE = ("day", "gtc", "opg", "cls", "ioc", "fok")


@dataclass(frozen=True)
class BrokerAccount:
    """One configured brokerage credential set.

    Several accounts may point at the same brokerage login. Each one is
    still dispatched to on its own and never merged with the others.

    Attributes:
        id: Stable account identifier.
        account_name: Display name.
        broker_type: Broker family, only "Alpaca" accounts receive orders.
        enabled: Whether the account takes part in hotkey dispatch.
        api_key: Broker API key.
        secret_key: Broker API secret.
        base_url: Explicit API base URL, blank to derive it from is_paper.
        is_paper: Paper trading account flag.
    """

    id: str
    account_name: str
    broker_type: str = ALPACA_BROKER_TYPE
    enabled: bool = True
    api_key: str = field(default="", repr=False)
    secret_key: str = field(default="", repr=False)
    base_url: str = ""
    is_paper: bool = True

    @property
    def has_credentials(self) -> bool:
        """Return True when both key and secret are present."""
        return bool(self.api_key.strip()) and bool(self.secret_key.strip())

    @property
    def credential_fingerprint(self) -> tuple[str, str, str, bool]:
        """Values that require a new client binding when they change."""
        return (self.api_key, self.secret_key, self.base_url, self.is_paper)


@dataclass(frozen=True)
class OrderSpec:
    """A single order, built fresh for one account in one dispatch.

    Attributes:
        symbol: Stock symbol.
        quantity: Shares, always >= 1.
        side: "buy" or "sell".
        order_type: "market", "limit", "stop" or "stop_limit".
        time_in_force: "day", "gtc", "opg", "cls", "ioc" or "fok".
        client_order_id: Caller-assigned idempotency token.
        limit_price: Limit price, None when not set.
        stop_price: Stop price, None when not set.
    """

    symbol: str
    quantity: int
    side: str
    order_type: str
    time_in_force: str
    client_order_id: str
    limit_price: str | None = None
    stop_price: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"Order quantity must be >= 1, got {self.quantity}")
        if self.side not in VALID_SIDES:
            raise ValueError(f"Invalid order side: {self.side}")


@dataclass
class BrokerOrder:
    """Order as acknowledged by the broker.

    Attributes:
        id: Broker-assigned order ID.
        client_order_id: Client order ID echoed back by the broker.
        symbol: Stock symbol.
        side: Order side.
        quantity: Ordered quantity.
        status: Broker order status.
        order_type: Order type.
        filled_qty: Filled quantity.
        filled_avg_price: Average fill price (if filled).
        submitted_at: Submission time reported by the broker.
    """

    id: str
    client_order_id: str | None
    symbol: str
    side: str
    quantity: float
    status: str
    order_type: str = "market"
    filled_qty: float = 0.0
    filled_avg_price: float | None = None
    submitted_at: datetime | None = None


@dataclass
class Position:
    """Open position held in one account."""

    symbol: str
    quantity: float
    avg_entry_price: float
    current_price: float
    unrealized_pl: float
    market_value: float


@dataclass
class AccountBalance:
    """Balance snapshot for one account."""

    cash: float
    portfolio_value: float
    buying_power: float
