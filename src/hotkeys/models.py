# src/hotkeys/models.py
"""Data models for hotkey presets and dispatch results."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class HotkeyPreset:
    """Saved order template fired with one user action.

    Attributes:
        id: Stable preset identifier.
        name: Display name.
        symbol: Stock symbol.
        quantity: Quantity as entered by the user, parsed at dispatch time.
        order_type: "market", "limit", "stop" or "stop_limit".
        time_in_force: Time in force, e.g. "day".
        limit_price: Limit price, blank when not set.
        stop_price: Stop price, blank when not set.
        selected_account_ids: Accounts the preset is restricted to. Empty
            means every enabled Alpaca account.
        enabled: Whether the preset can be fired.
        position: Display ordering.
    """

    id: str
    name: str
    symbol: str
    quantity: str
    order_type: str = "market"
    time_in_force: str = "day"
    limit_price: str = ""
    stop_price: str = ""
    selected_account_ids: frozenset[str] = field(default_factory=frozenset)
    enabled: bool = True
    position: int = 0

    @property
    def parsed_quantity(self) -> int | None:
        """Quantity as a positive integer, or None if it is not one."""
        try:
            value = int(self.quantity.strip())
        except (AttributeError, ValueError):
            return None
        return value if value >= 1 else None


class ExecutionStatus(Enum):
    """Classification of a dispatch outcome."""

    FULL_SUCCESS = "full_success"
    PARTIAL_SUCCESS = "partial_success"
    COMPLETE_FAILURE = "complete_failure"


class RejectionReason(Enum):
    """Why a hotkey trigger was dropped before reaching the broker."""

    HOTKEYS_DISABLED = "hotkeys_disabled"
    PRESET_DISABLED = "preset_disabled"
    INVALID_SIDE = "invalid_side"
    SPAM_BLOCKED = "spam_blocked"
    NO_ELIGIBLE_ACCOUNTS = "no_eligible_accounts"


@dataclass(frozen=True)
class AccountOrderResult:
    """Outcome of one account's order submission.

    Attributes:
        account_id: Account the order was sent for.
        account_name: Account display name.
        success: Did the broker accept the order?
        client_order_id: Client order ID used for this account.
        symbol: Stock symbol.
        side: "buy" or "sell".
        quantity: Shares requested.
        status: Broker order status, or "FAILED".
        broker_order_id: Broker-assigned order ID (if success).
        error_message: User-facing error (if failed).
        raw_error: Untranslated error text (if failed).
        completed_at: When the submission finished.
    """

    account_id: str
    account_name: str
    success: bool
    client_order_id: str
    symbol: str
    side: str
    quantity: int
    status: str
    broker_order_id: str | None = None
    error_message: str | None = None
    raw_error: str | None = None
    completed_at: datetime = field(default_factory=datetime.now)

    @property
    def display_summary(self) -> str:
        mark = "✅" if self.success else "❌"
        return f"{self.account_name}: {mark} {self.side} {self.symbol}"

    @property
    def detailed_summary(self) -> str:
        head = f"{self.account_name}: "
        if self.success:
            return (
                f"{head}✅ {self.side} {self.quantity} x {self.symbol}"
                f" | Alpaca ID: {self.broker_order_id} | Status: {self.status}"
            )
        return f"{head}❌ {self.side} {self.quantity} x {self.symbol} | Error: {self.error_message}"


@dataclass(frozen=True)
class HotkeyExecutionResult:
    """Aggregate over one dispatch session.

    Attributes:
        session_id: Short random token for log correlation.
        preset: Preset that was fired.
        side: "buy" or "sell".
        account_results: One result per eligible account, in input order.
        success_count: Accounts whose order was accepted.
        total_count: Accounts the order was sent to.
        summary: One-line human summary.
        quantity_defaulted: True if the preset quantity was invalid and
            the default quantity was sent instead.
        started_at: When the dispatch began.
        completed_at: When the last account finished.
    """

    session_id: str
    preset: HotkeyPreset
    side: str
    account_results: list[AccountOrderResult]
    success_count: int
    total_count: int
    summary: str
    quantity_defaulted: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime = field(default_factory=datetime.now)

    @property
    def is_full_success(self) -> bool:
        return self.total_count > 0 and self.success_count == self.total_count

    @property
    def has_partial_success(self) -> bool:
        return 0 < self.success_count < self.total_count

    @property
    def is_complete_failure(self) -> bool:
        return self.success_count == 0

    @property
    def status(self) -> ExecutionStatus:
        if self.is_full_success:
            return ExecutionStatus.FULL_SUCCESS
        if self.has_partial_success:
            return ExecutionStatus.PARTIAL_SUCCESS
        return ExecutionStatus.COMPLETE_FAILURE

    @property
    def successful_orders(self) -> list[AccountOrderResult]:
        return [r for r in self.account_results if r.success]

    @property
    def failed_orders(self) -> list[AccountOrderResult]:
        return [r for r in self.account_results if not r.success]

    @property
    def failed_account_ids(self) -> list[str]:
        return [r.account_id for r in self.failed_orders]


@dataclass(frozen=True)
class HotkeyRejection:
    """A hotkey trigger dropped before any broker call.

    Attributes:
        preset: Preset that was fired.
        side: Requested side.
        reason: Why it was dropped.
        detail: Human-readable explanation.
        retry_after_ms: Remaining cooldown, for spam-blocked triggers.
    """

    preset: HotkeyPreset
    side: str
    reason: RejectionReason
    detail: str
    retry_after_ms: int | None = None
