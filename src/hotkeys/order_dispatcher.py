# src/hotkeys/order_dispatcher.py
"""Concurrent multi-account order dispatch for hotkey presets."""
import asyncio
import logging
from datetime import datetime
from typing import Mapping, Sequence

from src.execution.broker_port import BrokerPort
from src.execution.models import BrokerAccount, OrderSpec
from src.hotkeys.client_order_ids import ClientOrderIdGenerator, new_session_id
from src.hotkeys.error_classifier import classify_broker_error, describe_exception
from src.hotkeys.models import AccountOrderResult, HotkeyExecutionResult, HotkeyPreset
from src.hotkeys.result_aggregator import build_execution_result

logger = logging.getLogger(__name__)


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


class HotkeyOrderDispatcher:
    """Send one preset's order to every given account at once.

    The accounts passed in are used as-is; choosing them is the caller's
    job. Each account gets its own client order ID and its own task, and
    a failure in one account never stops the others. The call returns
    only after every account has a result.

    Attributes:
        _broker: Broker port used for submissions.
        _default_quantity: Quantity sent when the preset's is invalid.
        _client_order_prefix: Prefix for generated client order IDs.
        _session_id_length: Length of generated session IDs.
        _default_time_in_force: Time in force for presets that leave it blank.
    """

    def __init__(
        self,
        broker: BrokerPort,
        default_quantity: int = 1,
        client_order_prefix: str = "hk",
        session_id_length: int = 8,
        default_time_in_force: str = "day",
    ):
        self._broker = broker
        self._default_quantity = default_quantity
        self._client_order_prefix = client_order_prefix
        self._session_id_length = session_id_length
        self._default_time_in_force = default_time_in_force

    def resolve_quantity(self, preset: HotkeyPreset) -> tuple[int, bool]:
        """Return (quantity, defaulted) for a preset."""
        quantity = preset.parsed_quantity
        if quantity is None:
            return self._default_quantity, True
        return quantity, False

    async def dispatch(
        self,
        preset: HotkeyPreset,
        side: str,
        accounts: Sequence[BrokerAccount],
        client_order_ids: Mapping[str, str] | None = None,
    ) -> HotkeyExecutionResult:
        """Submit the preset's order for every account concurrently.

        Args:
            preset: Preset to execute.
            side: "buy" or "sell", in any case.
            accounts: Eligible accounts, already filtered.
            client_order_ids: Client order IDs to reuse, keyed by account id.
                Accounts not listed get a fresh ID.

        Returns:
            Aggregate result with exactly one entry per account, in input order.
        """
        side = side.strip().lower()
        accounts = list(accounts)
        started_at = datetime.now()
        session_id = new_session_id(self._session_id_length)
        id_generator = ClientOrderIdGenerator(session_id, prefix=self._client_order_prefix)
        reused_ids = client_order_ids or {}

        quantity, defaulted = self.resolve_quantity(preset)
        if defaulted:
            logger.warning(
                f"QUANTITY_DEFAULTED sessionId={session_id} preset={preset.name} "
                f"raw={preset.quantity!r} using={quantity}"
            )

        logger.info(
            f"HOTKEY_EXEC_START sessionId={session_id} preset={preset.name} "
            f"side={side} accounts={len(accounts)} reusedIds={len(reused_ids)}"
        )

        order_ids = [
            reused_ids.get(account.id) or id_generator.build(account.id, side, index)
            for index, account in enumerate(accounts)
        ]

        tasks = [
            self._submit_for_account(session_id, account, preset, side, quantity, client_order_id)
            for account, client_order_id in zip(accounts, order_ids)
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[AccountOrderResult] = []
        for account, client_order_id, outcome in zip(accounts, order_ids, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                results.append(
                    self._failed_result(
                        session_id, account, preset, side, quantity, client_order_id, outcome
                    )
                )
            else:
                results.append(outcome)

        result = build_execution_result(
            session_id=session_id,
            preset=preset,
            side=side,
            account_results=results,
            quantity_defaulted=defaulted,
            started_at=started_at,
        )
        logger.info(
            f"HOTKEY_EXEC_COMPLETE sessionId={session_id} "
            f"success={result.success_count}/{result.total_count}"
        )
        return result

    def _build_order_spec(
        self, preset: HotkeyPreset, side: str, quantity: int, client_order_id: str
    ) -> OrderSpec:
        return OrderSpec(
            symbol=preset.symbol.strip().upper(),
            quantity=quantity,
            side=side,
            order_type=preset.order_type.lower(),
            time_in_force=(preset.time_in_force.strip() or self._default_time_in_force).lower(),
            client_order_id=client_order_id,
            limit_price=_blank_to_none(preset.limit_price),
            stop_price=_blank_to_none(preset.stop_price),
        )

    async def _submit_for_account(
        self,
        session_id: str,
        account: BrokerAccount,
        preset: HotkeyPreset,
        side: str,
        quantity: int,
        client_order_id: str,
    ) -> AccountOrderResult:
        """Build and submit one account's order, turning any error into a failed result."""
        logger.debug(
            f"ACCOUNT_ORDER_START sessionId={session_id} account={account.account_name} "
            f"clientId={client_order_id}"
        )
        try:
            spec = self._build_order_spec(preset, side, quantity, client_order_id)
            order = await self._broker.submit_order(account, spec)
        except Exception as e:
            return self._failed_result(
                session_id, account, preset, side, quantity, client_order_id, e
            )

        logger.info(
            f"ACCOUNT_ORDER_SUCCESS sessionId={session_id} account={account.account_name} "
            f"orderId={order.id} clientId={order.client_order_id or client_order_id} "
            f"status={order.status}"
        )
        return AccountOrderResult(
            account_id=account.id,
            account_name=account.account_name,
            success=True,
            client_order_id=client_order_id,
            symbol=spec.symbol,
            side=spec.side,
            quantity=spec.quantity,
            status=order.status,
            broker_order_id=order.id,
        )

    def _failed_result(
        self,
        session_id: str,
        account: BrokerAccount,
        preset: HotkeyPreset,
        side: str,
        quantity: int,
        client_order_id: str,
        error: BaseException,
    ) -> AccountOrderResult:
        raw = describe_exception(error)
        logger.error(
            f"ACCOUNT_ORDER_FAILED sessionId={session_id} account={account.account_name} "
            f"clientId={client_order_id} error={raw}"
        )
        return AccountOrderResult(
            account_id=account.id,
            account_name=account.account_name,
            success=False,
            client_order_id=client_order_id,
            symbol=preset.symbol.strip().upper(),
            side=side,
            quantity=quantity,
            status="FAILED",
            error_message=classify_broker_error(raw),
            raw_error=raw,
        )
