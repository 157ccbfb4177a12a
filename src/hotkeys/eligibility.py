# src/hotkeys/eligibility.py
"""Account eligibility filter for hotkey presets."""
from typing import Iterable

from src.execution.models import ALPACA_BROKER_TYPE, BrokerAccount
from src.hotkeys.models import HotkeyPreset


def is_eligible(preset: HotkeyPreset, account: BrokerAccount) -> bool:
    """Return True if the account should receive this preset's orders.

    An account qualifies when it is an Alpaca account, it is enabled, and
    the preset either has no account restriction or names this account.
    """
    return (
        account.broker_type == ALPACA_BROKER_TYPE
        and account.enabled
        and (not preset.selected_account_ids or account.id in preset.selected_account_ids)
    )


def eligible_accounts(
    preset: HotkeyPreset, all_accounts: Iterable[BrokerAccount]
) -> list[BrokerAccount]:
    """Select the accounts a preset dispatches to, keeping input order.

    Returns an empty list when nothing qualifies.
    """
    return [account for account in all_accounts if is_eligible(preset, account)]


def eligibility_breakdown(
    preset: HotkeyPreset, all_accounts: Iterable[BrokerAccount]
) -> dict[str, int]:
    """Count accounts at each filter stage, for logging."""
    accounts = list(all_accounts)
    alpaca = [a for a in accounts if a.broker_type == ALPACA_BROKER_TYPE]
    enabled = [a for a in alpaca if a.enabled]
    return {
        "total": len(accounts),
        "alpaca": len(alpaca),
        "enabled_alpaca": len(enabled),
        "selected": len(eligible_accounts(preset, enabled)),
    }
