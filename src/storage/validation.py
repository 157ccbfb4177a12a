# src/storage/validation.py
"""Validation applied to hotkey presets before they are saved."""
from src.execution.models import VALID_ORDER_TYPES, VALID_TIME_IN_FORCE
from src.hotkeys.models import HotkeyPreset


class PresetValidationError(ValueError):
    """A hotkey preset cannot be saved.

    Attributes:
        errors: Every problem found, in field order.
    """

    def __init__(self, preset_name: str, errors: list[str]):
        self.preset_name = preset_name
        self.errors = errors
        super().__init__(f"Invalid hotkey preset '{preset_name}': {'; '.join(errors)}")


def _is_positive_price(value: str) -> bool:
    try:
        return float(value) > 0
    except ValueError:
        return False


def preset_errors(preset: HotkeyPreset) -> list[str]:
    """List everything wrong with a preset. Empty means valid."""
    errors = []

    if not preset.name.strip():
        errors.append("name is required")
    if not preset.symbol.strip():
        errors.append("symbol is required")
    if preset.parsed_quantity is None:
        errors.append(f"quantity must be a whole number >= 1, got '{preset.quantity}'")

    order_type = preset.order_type.lower()
    if order_type not in VALID_ORDER_TYPES:
        errors.append(f"order type must be one of {', '.join(VALID_ORDER_TYPES)}")
    time_in_force = preset.time_in_force.strip().lower()
    if time_in_force and time_in_force not in VALID_TIME_IN_FORCE:
        errors.append(f"time in force must be one of {', '.join(VALID_TIME_IN_FORCE)}")

    limit_price = preset.limit_price.strip()
    stop_price = preset.stop_price.strip()
    if order_type in ("limit", "stop_limit") and not limit_price:
        errors.append(f"limit price is required for {order_type} orders")
    if order_type in ("stop", "stop_limit") and not stop_price:
        errors.append(f"stop price is required for {order_type} orders")
    if limit_price and not _is_positive_price(limit_price):
        errors.append(f"limit price must be a positive number, got '{preset.limit_price}'")
    if stop_price and not _is_positive_price(stop_price):
        errors.append(f"stop price must be a positive number, got '{preset.stop_price}'")

    return errors


def validate_preset(preset: HotkeyPreset) -> HotkeyPreset:
    """Return the preset unchanged, or raise PresetValidationError."""
    errors = preset_errors(preset)
    if errors:
        raise PresetValidationError(preset.name or preset.id, errors)
    return preset
