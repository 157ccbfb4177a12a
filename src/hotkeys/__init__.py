"""Hotkey module: presets, eligibility, spam guard and multi-account dispatch."""

from .eligibility import eligible_accounts
from .error_classifier import ERROR_RULES, ErrorRule, classify_broker_error
from .hotkey_manager import HotkeyManager, find_preset
from .models import (
    AccountOrderResult,
    ExecutionStatus,
    HotkeyExecutionResult,
    HotkeyPreset,
    HotkeyRejection,
    RejectionReason,
)
from .order_dispatcher import HotkeyOrderDispatcher
from .spam_guard import SpamGuard

__all__ = [
    "AccountOrderResult",
    "ERROR_RULES",
    "ErrorRule",
    "ExecutionStatus",
    "HotkeyExecutionResult",
    "HotkeyManager",
    "HotkeyOrderDispatcher",
    "HotkeyPreset",
    "HotkeyRejection",
    "RejectionReason",
    "SpamGuard",
    "classify_broker_error",
    "eligible_accounts",
    "find_preset",
]
