# src/hotkeys/hotkey_manager.py
"""Hotkey entry point: spam protection, account filtering and dispatch."""
import logging
from typing import TYPE_CHECKING, Sequence

from src.execution.models import VALID_SIDES, BrokerAccount
from src.hotkeys.eligibility import eligibility_breakdown, eligible_accounts
from src.hotkeys.models import (
    HotkeyExecutionResult,
    HotkeyPreset,
    HotkeyRejection,
    RejectionReason,
)
from src.hotkeys.order_dispatcher import HotkeyOrderDispatcher
from src.hotkeys.spam_guard import SpamGuard

if TYPE_CHECKING:
    from src.storage.base import SettingsProvider

logger = logging.getLogger(__name__)

HotkeyOutcome = HotkeyExecutionResult | HotkeyRejection


class HotkeyManager:
    """Executes hotkey presets across the eligible broker accounts.

    Steps per trigger:
    1. Reject disabled presets and unknown sides
    2. Drop the trigger if the same preset and side fired within the cooldown
    3. Select eligible accounts, dropping the trigger if there are none
    4. Dispatch to every eligible account and log the outcome

    Rejected triggers never reach the broker and come back as a
    HotkeyRejection instead of a result.
    """

    def __init__(
        self,
        dispatcher: HotkeyOrderDispatcher,
        spam_guard: SpamGuard,
        enabled: bool = True,
    ):
        """Initialize HotkeyManager.

        Args:
            dispatcher: Dispatcher used for order fan-out.
            spam_guard: Cooldown guard shared by every trigger path.
            enabled: Master switch for hotkey execution.
        """
        self._dispatcher = dispatcher
        self._spam_guard = spam_guard
        self._enabled = enabled

    async def execute_hotkey(
        self,
        preset: HotkeyPreset,
        side: str,
        all_accounts: Sequence[BrokerAccount],
        now_ms: int | None = None,
    ) -> HotkeyOutcome:
        """Fire a preset in one direction.

        Args:
            preset: Preset to execute.
            side: "buy" or "sell".
            all_accounts: Every configured broker account.
            now_ms: Monotonic time in ms, defaults to the clock.

        Returns:
            HotkeyExecutionResult once all accounts finished, or
            HotkeyRejection if nothing was sent.
        """
        side = side.lower()
        all_accounts = list(all_accounts)

        if not self._enabled:
            return self._reject(preset, side, RejectionReason.HOTKEYS_DISABLED, "Hotkeys are disabled")
        if side not in VALID_SIDES:
            return self._reject(preset, side, RejectionReason.INVALID_SIDE, f"Unknown side '{side}'")
        if not preset.enabled:
            return self._reject(
                preset, side, RejectionReason.PRESET_DISABLED, f"Preset '{preset.name}' is disabled"
            )

        if not self._spam_guard.try_acquire(preset.id, side, now_ms=now_ms):
            wait_ms = self._spam_guard.remaining_ms(preset.id, side, now_ms=now_ms)
            logger.info(f"SPAM_BLOCKED hotkey={preset.id}_{side} waitTime={wait_ms}ms")
            return self._reject(
                preset,
                side,
                RejectionReason.SPAM_BLOCKED,
                f"Hotkey fired too quickly, retry in {wait_ms}ms",
                retry_after_ms=wait_ms,
            )

        logger.info(f"HOTKEY_EXECUTE preset={preset.name} side={side}")

        accounts = eligible_accounts(preset, all_accounts)
        breakdown = eligibility_breakdown(preset, all_accounts)
        logger.debug(
            f"ACCOUNT_FILTER total={breakdown['total']} alpaca={breakdown['alpaca']} "
            f"enabled={breakdown['enabled_alpaca']} selected={breakdown['selected']}"
        )

        if not accounts:
            logger.warning(f"NO_ELIGIBLE_ACCOUNTS preset={preset.name}")
            return self._reject(
                preset,
                side,
                RejectionReason.NO_ELIGIBLE_ACCOUNTS,
                f"No enabled Alpaca accounts selected for preset '{preset.name}'",
            )

        result = await self._dispatcher.dispatch(preset, side, accounts)
        self._log_execution_results(result)
        return result

    async def execute_hotkey_by_name(
        self,
        provider: "SettingsProvider",
        preset_name: str,
        side: str,
        now_ms: int | None = None,
    ) -> HotkeyOutcome:
        """Look up a preset by name or id and fire it.

        Raises:
            KeyError: If no preset has that name or id.
        """
        preset = find_preset(provider.get_hotkey_presets(), preset_name)
        return await self.execute_hotkey(
            preset, side, provider.get_configured_accounts(), now_ms=now_ms
        )

    async def retry_failed(
        self,
        result: HotkeyExecutionResult,
        all_accounts: Sequence[BrokerAccount],
    ) -> HotkeyOutcome:
        """Re-dispatch a previous result's failed accounts in a new session.

        Each account keeps the client order ID of its failed attempt, so an
        order that reached the broker before a timeout is refused as a
        duplicate instead of being placed twice. The spam guard is not
        consulted. Accounts that have since been disabled or removed are
        skipped.
        """
        previous_ids = {r.account_id: r.client_order_id for r in result.failed_orders}
        accounts = [
            account
            for account in eligible_accounts(result.preset, all_accounts)
            if account.id in previous_ids
        ]
        if not accounts:
            return self._reject(
                result.preset,
                result.side,
                RejectionReason.NO_ELIGIBLE_ACCOUNTS,
                f"No failed accounts left to retry for session {result.session_id}",
            )

        logger.info(
            f"HOTKEY_RETRY previousSession={result.session_id} accounts={len(accounts)}"
        )
        retry = await self._dispatcher.dispatch(
            result.preset, result.side, accounts, client_order_ids=previous_ids
        )
        self._log_execution_results(retry)
        return retry

    def _reject(
        self,
        preset: HotkeyPreset,
        side: str,
        reason: RejectionReason,
        detail: str,
        retry_after_ms: int | None = None,
    ) -> HotkeyRejection:
        return HotkeyRejection(
            preset=preset,
            side=side,
            reason=reason,
            detail=detail,
            retry_after_ms=retry_after_ms,
        )

    def _log_execution_results(self, result: HotkeyExecutionResult) -> None:
        logger.info(
            f"EXECUTION_RESULTS sessionId={result.session_id} status={result.status.name} "
            f"summary={result.summary!r}"
        )
        for order in result.successful_orders:
            logger.info(f"  SUCCESS: {order.detailed_summary}")
        for order in result.failed_orders:
            logger.error(f"  FAILED: {order.detailed_summary}")


def find_preset(presets: Sequence[HotkeyPreset], name_or_id: str) -> HotkeyPreset:
    """Find a preset by id, then by case-insensitive name.

    Raises:
        KeyError: If nothing matches.
    """
    for preset in presets:
        if preset.id == name_or_id:
            return preset
    wanted = name_or_id.strip().lower()
    for preset in presets:
        if preset.name.strip().lower() == wanted:
            return preset
    raise KeyError(f"No hotkey preset named '{name_or_id}'")
