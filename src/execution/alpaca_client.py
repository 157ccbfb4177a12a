# src/execution/alpaca_client.py
"""Alpaca trading client bound to one set of account credentials."""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from alpaca.common.enums import Sort
from alpaca.common.exceptions import APIError
from alpaca.trading.client import TradingClient
from alpaca.trading.enums import OrderSide, QueryOrderStatus, TimeInForce
from alpaca.trading.requests import (
    GetOrdersRequest,
    LimitOrderRequest,
    MarketOrderRequest,
    StopLimitOrderRequest,
    StopOrderRequest,
)

from src.execution.errors import BrokerError
from src.execution.models import AccountBalance, BrokerOrder, OrderSpec, Position

logger = logging.getLogger(__name__)


def _enum_value(value: Any) -> str:
    """Return the wire value of an alpaca-py enum (or the value itself)."""
    return str(getattr(value, "value", value))


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


def api_error_to_broker_error(error: APIError) -> BrokerError:
    """Convert an alpaca-py APIError into a BrokerError.

    The error body is usually JSON such as
    ``{"code": 40310000, "message": "insufficient buying power"}``; when it
    is not, the raw text is kept.
    """
    raw = str(error)
    message = raw
    try:
        body = json.loads(raw)
        if isinstance(body, dict) and body.get("message"):
            message = str(body["message"])
    except ValueError:
        pass
    return BrokerError(message, status_code=error.status_code)


class AlpacaClient:
    """Client for the Alpaca Trading API for a single credential set.

    Provides order submission, cancellation, order history, positions and
    account balance. alpaca-py is synchronous, so each request runs in a
    worker thread and several clients can talk to the broker at once.

    Attributes:
        PAPER_URL: URL for paper trading API.
        LIVE_URL: URL for live trading API.
    """

    PAPER_URL = "https://paper-api.alpaca.markets"
    LIVE_URL = "https://api.alpaca.markets"

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        paper: bool = True,
        base_url: str = "",
        request_timeout: float = 30.0,
    ):
        """Initialize AlpacaClient.

        Args:
            api_key: Alpaca API key.
            secret_key: Alpaca secret key.
            paper: If True, use paper trading (default). If False, use live trading.
            base_url: Explicit API base URL. Overrides the paper/live default.
            request_timeout: Seconds to wait for a single broker request.
        """
        self._api_key = api_key
        self._secret_key = secret_key
        self._paper = paper
        self._url_override = base_url.strip().rstrip("/") or None
        self._base_url = self._url_override or (self.PAPER_URL if paper else self.LIVE_URL)
        self._request_timeout = request_timeout
        self._trading_client: Optional[TradingClient] = None

    @property
    def paper(self) -> bool:
        """Return whether client is in paper trading mode."""
        return self._paper

    @property
    def base_url(self) -> str:
        """Return the base API URL being used."""
        return self._base_url

    @property
    def is_connected(self) -> bool:
        return self._trading_client is not None

    def connect(self) -> None:
        """Create the underlying TradingClient."""
        self._trading_client = TradingClient(
            api_key=self._api_key,
            secret_key=self._secret_key,
            paper=self._paper,
            url_override=self._url_override,
        )

    async def _call(self, operation: str, func: Callable, *args, **kwargs) -> Any:
        """Run a blocking SDK call in a thread, translating broker errors."""
        if not self.is_connected:
            self.connect()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self._request_timeout,
            )
        except APIError as e:
            error = api_error_to_broker_error(e)
            logger.error(f"Alpaca {operation} failed: {error}")
            raise error from e
        except asyncio.TimeoutError as e:
            logger.error(f"Alpaca {operation} timed out after {self._request_timeout}s")
            raise BrokerError(
                f"Request timed out after {self._request_timeout:g}s"
            ) from e

    async def get_account(self) -> AccountBalance:
        """Get cash, portfolio value and buying power."""
        account = await self._call(
            "get_account", lambda: self._trading_client.get_account()
        )
        return AccountBalance(
            cash=_to_float(account.cash),
            portfolio_value=_to_float(account.portfolio_value),
            buying_power=_to_float(account.buying_power),
        )

    async def get_all_positions(self) -> list[Position]:
        """Get all open positions.

        Returns:
            List of positions. Empty list if no positions.
        """
        positions = await self._call(
            "get_all_positions", lambda: self._trading_client.get_all_positions()
        )
        return [self._to_position(pos) for pos in positions]

    def _to_position(self, position) -> Position:
        return Position(
            symbol=position.symbol,
            quantity=_to_float(position.qty),
            avg_entry_price=_to_float(position.avg_entry_price),
            current_price=_to_float(position.current_price),
            unrealized_pl=_to_float(position.unrealized_pl),
            market_value=_to_float(position.market_value),
        )

    def build_order_request(self, spec: OrderSpec):
        """Translate an OrderSpec into the matching alpaca-py request.

        Args:
            spec: Order to submit.

        Returns:
            Market, limit, stop or stop-limit order request.

        Raises:
            ValueError: If the order type is unknown or a required price is missing.
        """
        order_side = OrderSide.BUY if spec.side.lower() == "buy" else OrderSide.SELL

        tif_map = {
            "day": TimeInForce.DAY,
            "gtc": TimeInForce.GTC,
            "opg": TimeInForce.OPG,
            "cls": TimeInForce.CLS,
            "ioc": TimeInForce.IOC,
            "fok": TimeInForce.FOK,
        }
        tif = tif_map.get(spec.time_in_force.lower(), TimeInForce.DAY)

        common = {
            "symbol": spec.symbol,
            "qty": spec.quantity,
            "side": order_side,
            "time_in_force": tif,
            "client_order_id": spec.client_order_id,
        }
        order_type = spec.order_type.lower()

        if order_type == "market":
            return MarketOrderRequest(**common)
        if order_type == "limit":
            self._require_price(spec.limit_price, "limit")
            return LimitOrderRequest(**common, limit_price=float(spec.limit_price))
        if order_type == "stop":
            self._require_price(spec.stop_price, "stop")
            return StopOrderRequest(**common, stop_price=float(spec.stop_price))
        if order_type == "stop_limit":
            self._require_price(spec.limit_price, "limit")
            self._require_price(spec.stop_price, "stop")
            return StopLimitOrderRequest(
                **common,
                limit_price=float(spec.limit_price),
                stop_price=float(spec.stop_price),
            )
        raise ValueError(f"Unsupported order type: {spec.order_type}")

    @staticmethod
    def _require_price(value: str | None, name: str) -> None:
        if value is None:
            raise ValueError(f"{name.capitalize()} price is required for this order type")

    async def submit_order(self, spec: OrderSpec) -> BrokerOrder:
        """Submit a trading order.

        Args:
            spec: Order to submit, including its client order ID.

        Returns:
            The order as acknowledged by Alpaca.

        Raises:
            BrokerError: If Alpaca rejects the order or the request times out.
            ValueError: If the order cannot be expressed as an Alpaca request.
        """
        order_request = self.build_order_request(spec)
        logger.debug(
            f"Creating order: {spec.side} {spec.quantity} {spec.symbol} "
            f"type={spec.order_type} tif={spec.time_in_force} client_id={spec.client_order_id}"
        )
        order = await self._call(
            "submit_order", lambda: self._trading_client.submit_order(order_request)
        )
        return self._to_broker_order(order)

    def _to_broker_order(self, order) -> BrokerOrder:
        submitted_at = getattr(order, "submitted_at", None)
        return BrokerOrder(
            id=str(order.id),
            client_order_id=order.client_order_id,
            symbol=order.symbol,
            side=_enum_value(order.side),
            quantity=_to_float(order.qty),
            status=_enum_value(order.status),
            order_type=_enum_value(getattr(order, "order_type", None) or "market"),
            filled_qty=_to_float(order.filled_qty),
            filled_avg_price=(
                _to_float(order.filled_avg_price) if order.filled_avg_price else None
            ),
            submitted_at=submitted_at if isinstance(submitted_at, datetime) else None,
        )

    async def get_orders(
        self,
        status: str | None = None,
        limit: int | None = 50,
        direction: str | None = "desc",
    ) -> list[BrokerOrder]:
        """Get orders, newest first by default.

        Args:
            status: "open", "closed" or "all". None means all statuses.
            limit: Maximum number of orders.
            direction: "asc" or "desc".
        """
        status_map = {
            "open": QueryOrderStatus.OPEN,
            "closed": QueryOrderStatus.CLOSED,
            "all": QueryOrderStatus.ALL,
        }
        request = GetOrdersRequest(
            status=status_map.get((status or "all").lower(), QueryOrderStatus.ALL),
            limit=limit,
            direction=Sort.ASC if (direction or "desc").lower() == "asc" else Sort.DESC,
        )
        orders = await self._call(
            "get_orders", lambda: self._trading_client.get_orders(filter=request)
        )
        return [self._to_broker_order(order) for order in orders]

    async def cancel_order(self, order_id: str) -> bool:
        """Cancel an order by ID.

        Args:
            order_id: The order ID to cancel.

        Returns:
            True if cancellation succeeded, False if Alpaca refused it.
        """
        try:
            await self._call(
                "cancel_order", lambda: self._trading_client.cancel_order_by_id(order_id)
            )
            return True
        except BrokerError as e:
            logger.warning(f"Cancel refused for order {order_id}: {e}")
            return False
