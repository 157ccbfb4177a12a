# src/hotkeys/result_aggregator.py
"""Build aggregate dispatch results and their summaries."""
from datetime import datetime
from typing import Sequence

from src.hotkeys.models import AccountOrderResult, HotkeyExecutionResult, HotkeyPreset


def summarize(success_count: int, total_count: int) -> str:
    """One-line summary for a dispatch outcome."""
    if total_count > 0 and success_count == total_count:
        return f"All orders successful ({success_count}/{total_count})"
    if 0 < success_count < total_count:
        return f"Partial success ({success_count}/{total_count})"
    return f"All orders failed ({success_count}/{total_count})"


def build_execution_result(
    session_id: str,
    preset: HotkeyPreset,
    side: str,
    account_results: Sequence[AccountOrderResult],
    quantity_defaulted: bool = False,
    started_at: datetime | None = None,
) -> HotkeyExecutionResult:
    """Aggregate per-account results into a HotkeyExecutionResult.

    Args:
        session_id: Dispatch session token.
        preset: Preset that was fired.
        side: "buy" or "sell".
        account_results: One result per account, in dispatch order.
        quantity_defaulted: Whether the default quantity replaced an invalid one.
        started_at: When the dispatch began. Defaults to now.

    Returns:
        The aggregate result with counts and summary filled in.
    """
    results = list(account_results)
    success_count = sum(1 for r in results if r.success)
    total_count = len(results)
    now = datetime.now()
    return HotkeyExecutionResult(
        session_id=session_id,
        preset=preset,
        side=side,
        account_results=results,
        success_count=success_count,
        total_count=total_count,
        summary=summarize(success_count, total_count),
        quantity_defaulted=quantity_defaulted,
        started_at=started_at or now,
        completed_at=now,
    )


def format_execution_report(result: HotkeyExecutionResult) -> list[str]:
    """Lines describing a dispatch: summary, session, then one per account."""
    lines = [
        f"{result.side.upper()} {result.preset.symbol} via '{result.preset.name}': {result.summary}",
        f"Session: {result.session_id}",
    ]
    if result.quantity_defaulted:
        lines.append(
            f"Warning: quantity '{result.preset.quantity}' is not a valid number, default quantity used"
        )
    lines.extend(r.detailed_summary for r in result.account_results)
    return lines
