# main.py
"""Command-line entry point for the hotkey order dispatcher."""
import asyncio
import logging
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path

import click
from dotenv import load_dotenv

from src.config.settings import Settings
from src.execution import AlpacaBrokerPort, AlpacaClientRegistry, BrokerAccount, BrokerError
from src.execution.models import VALID_ORDER_TYPES, VALID_TIME_IN_FORCE
from src.hotkeys import (
    HotkeyExecutionResult,
    HotkeyManager,
    HotkeyOrderDispatcher,
    HotkeyPreset,
    SpamGuard,
    find_preset,
)
from src.hotkeys.eligibility import is_eligible
from src.hotkeys.result_aggregator import format_execution_report
from src.storage import JsonSettingsStore, PresetValidationError


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

EXIT_COMPLETE_FAILURE = 1
EXIT_REJECTED = 2

DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


@dataclass
class AppComponents:
    """Everything a command needs, wired together."""

    settings: Settings
    store: JsonSettingsStore
    broker: AlpacaBrokerPort
    manager: HotkeyManager


def load_settings(config_path: Path) -> Settings:
    """Load settings from YAML, falling back to defaults when the file is absent.

    Raises:
        SystemExit: If the YAML file exists but cannot be parsed or validated.
    """
    load_dotenv()

    if not config_path.exists():
        logger.info(f"{config_path} not found, using default settings")
        return Settings()

    try:
        settings = Settings.from_yaml(config_path)
        logger.info(f"✓ Settings loaded from {config_path}")
    except Exception as e:
        logger.error(f"Failed to parse {config_path}: {e}")
        sys.exit(1)

    logging.getLogger().setLevel(settings.system.log_level)
    return settings


async def build_components(settings: Settings) -> AppComponents:
    """Create the settings store, broker port and hotkey manager."""
    store = JsonSettingsStore(settings.storage, legacy_alpaca=settings.alpaca)
    await store.load()

    registry = AlpacaClientRegistry(request_timeout=settings.execution.request_timeout_seconds)
    broker = AlpacaBrokerPort(registry)
    dispatcher = HotkeyOrderDispatcher(
        broker,
        default_quantity=settings.hotkeys.default_quantity,
        client_order_prefix=settings.hotkeys.client_order_prefix,
        session_id_length=settings.hotkeys.session_id_length,
        default_time_in_force=settings.execution.default_time_in_force,
    )
    manager = HotkeyManager(
        dispatcher,
        SpamGuard(cooldown_ms=settings.hotkeys.cooldown_ms),
        enabled=settings.hotkeys.enabled,
    )
    return AppComponents(settings=settings, store=store, broker=broker, manager=manager)


def find_account(accounts: list[BrokerAccount], account_id: str) -> BrokerAccount:
    for account in accounts:
        if account.id == account_id:
            return account
    raise click.ClickException(f"No broker account with id '{account_id}'")


def print_execution_result(result: HotkeyExecutionResult) -> None:
    for line in format_execution_report(result):
        click.echo(line)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Settings YAML file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """Multi-account hotkey order dispatcher for Alpaca."""
    ctx.obj = load_settings(config_path)


@cli.command()
@click.pass_obj
def accounts(settings: Settings) -> None:
    """List configured broker accounts."""
    components = asyncio.run(build_components(settings))
    configured = components.store.get_configured_accounts()
    if not configured:
        click.echo("No broker accounts configured")
        return
    for account in configured:
        state = "enabled" if account.enabled else "disabled"
        mode = "paper" if account.is_paper else "LIVE"
        click.echo(f"{account.id}\t{account.account_name}\t{account.broker_type}\t{state}\t{mode}")


@cli.command()
@click.pass_obj
def presets(settings: Settings) -> None:
    """List hotkey presets and the accounts each would reach."""
    components = asyncio.run(build_components(settings))
    configured = components.store.get_configured_accounts()
    for preset in components.store.get_hotkey_presets():
        reach = sum(1 for account in configured if is_eligible(preset, account))
        state = "" if preset.enabled else " (disabled)"
        click.echo(
            f"{preset.name}{state}: {preset.quantity} x {preset.symbol} "
            f"{preset.order_type}/{preset.time_in_force} -> {reach} account(s)"
        )


@cli.command()
@click.argument("preset_name")
@click.argument("side", type=click.Choice(["buy", "sell"], case_sensitive=False))
@click.pass_obj
def fire(settings: Settings, preset_name: str, side: str) -> None:
    """Fire PRESET_NAME on every eligible account."""

    async def run():
        components = await build_components(settings)
        try:
            return await components.manager.execute_hotkey_by_name(
                components.store, preset_name, side
            )
        except KeyError as e:
            raise click.ClickException(str(e.args[0]))

    outcome = asyncio.run(run())
    if not isinstance(outcome, HotkeyExecutionResult):
        click.echo(f"Not sent: {outcome.detail}", err=True)
        sys.exit(EXIT_REJECTED)

    print_execution_result(outcome)
    if outcome.is_complete_failure:
        sys.exit(EXIT_COMPLETE_FAILURE)


@cli.command()
@click.argument("account_id")
@click.argument("order_id")
@click.pass_obj
def cancel(settings: Settings, account_id: str, order_id: str) -> None:
    """Cancel ORDER_ID on ACCOUNT_ID."""

    async def run() -> bool:
        components = await build_components(settings)
        account = find_account(components.store.get_configured_accounts(), account_id)
        return await components.broker.cancel_order(account, order_id)

    try:
        cancelled = asyncio.run(run())
    except BrokerError as e:
        raise click.ClickException(str(e))
    if cancelled:
        click.echo(f"Order {order_id} cancelled")
    else:
        click.echo(f"Order {order_id} could not be cancelled", err=True)
        sys.exit(EXIT_COMPLETE_FAILURE)


@cli.command()
@click.argument("account_id")
@click.option("--status", type=click.Choice(["open", "closed", "all"]), default="all")
@click.option("--limit", type=int, default=50, show_default=True)
@click.pass_obj
def orders(settings: Settings, account_id: str, status: str, limit: int) -> None:
    """List recent orders for ACCOUNT_ID."""

    async def run():
        components = await build_components(settings)
        account = find_account(components.store.get_configured_accounts(), account_id)
        return await components.broker.get_orders(account, status=status, limit=limit)

    try:
        broker_orders = asyncio.run(run())
    except BrokerError as e:
        raise click.ClickException(str(e))
    for order in broker_orders:
        click.echo(
            f"{order.id}\t{order.client_order_id or '-'}\t{order.side} {order.quantity:g} "
            f"{order.symbol}\t{order.status}"
        )


@cli.command()
@click.argument("account_id")
@click.pass_obj
def positions(settings: Settings, account_id: str) -> None:
    """List open positions for ACCOUNT_ID."""

    async def run():
        components = await build_components(settings)
        account = find_account(components.store.get_configured_accounts(), account_id)
        return await components.broker.get_positions(account)

    try:
        open_positions = asyncio.run(run())
    except BrokerError as e:
        raise click.ClickException(str(e))
    if not open_positions:
        click.echo("No open positions")
    for position in open_positions:
        click.echo(
            f"{position.symbol}\t{position.quantity:g} @ {position.avg_entry_price:.2f}"
            f"\tP/L {position.unrealized_pl:+.2f}"
        )


@cli.command()
@click.argument("account_id")
@click.pass_obj
def balance(settings: Settings, account_id: str) -> None:
    """Show cash, buying power and portfolio value for ACCOUNT_ID."""

    async def run():
        components = await build_components(settings)
        account = find_account(components.store.get_configured_accounts(), account_id)
        return await components.broker.get_account(account)

    try:
        account_balance = asyncio.run(run())
    except BrokerError as e:
        raise click.ClickException(str(e))
    click.echo(f"Cash: {account_balance.cash:,.2f}")
    click.echo(f"Buying power: {account_balance.buying_power:,.2f}")
    click.echo(f"Portfolio value: {account_balance.portfolio_value:,.2f}")


@cli.command("preset-add")
@click.argument("name")
@click.argument("symbol")
@click.argument("quantity")
@click.option("--id", "preset_id", default=None, help="Preset id. Reusing one replaces that preset.")
@click.option("--order-type", type=click.Choice(VALID_ORDER_TYPES), default="market", show_default=True)
@click.option("--tif", "time_in_force", type=click.Choice(VALID_TIME_IN_FORCE), default="day", show_default=True)
@click.option("--limit-price", default="")
@click.option("--stop-price", default="")
@click.option("--account", "account_ids", multiple=True, help="Restrict to this account id. Repeatable.")
@click.option("--disabled", is_flag=True, help="Save the preset switched off.")
@click.pass_obj
def preset_add(
    settings: Settings,
    name: str,
    symbol: str,
    quantity: str,
    preset_id: str | None,
    order_type: str,
    time_in_force: str,
    limit_price: str,
    stop_price: str,
    account_ids: tuple[str, ...],
    disabled: bool,
) -> None:
    """Save a hotkey preset sending QUANTITY x SYMBOL."""

    async def run() -> HotkeyPreset:
        components = await build_components(settings)
        existing = components.store.get_hotkey_presets()
        previous = next((p for p in existing if p.id == preset_id), None)
        preset = HotkeyPreset(
            id=preset_id or uuid.uuid4().hex[:8],
            name=name,
            symbol=symbol.strip().upper(),
            quantity=quantity,
            order_type=order_type,
            time_in_force=time_in_force,
            limit_price=limit_price,
            stop_price=stop_price,
            selected_account_ids=frozenset(account_ids),
            enabled=not disabled,
            position=previous.position if previous else len(existing),
        )
        return await components.store.save_hotkey_preset(preset)

    try:
        saved = asyncio.run(run())
    except PresetValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Saved preset '{saved.name}' ({saved.id})")


@cli.command("preset-rm")
@click.argument("preset_name")
@click.pass_obj
def preset_rm(settings: Settings, preset_name: str) -> None:
    """Delete the preset named or identified by PRESET_NAME."""

    async def run() -> HotkeyPreset:
        components = await build_components(settings)
        try:
            preset = find_preset(components.store.get_hotkey_presets(), preset_name)
        except KeyError as e:
            raise click.ClickException(str(e.args[0]))
        await components.store.delete_hotkey_preset(preset.id)
        return preset

    removed = asyncio.run(run())
    click.echo(f"Deleted preset '{removed.name}' ({removed.id})")


@cli.command("account-add")
@click.argument("account_id")
@click.argument("account_name")
@click.option("--api-key", prompt=True, help="Alpaca API key.")
@click.option("--secret-key", prompt=True, hide_input=True, help="Alpaca secret key.")
@click.option("--live", is_flag=True, help="Live trading account (default is paper).")
@click.option("--base-url", default="", help="Override the API base URL.")
@click.option("--disabled", is_flag=True, help="Save the account switched off.")
@click.pass_obj
def account_add(
    settings: Settings,
    account_id: str,
    account_name: str,
    api_key: str,
    secret_key: str,
    live: bool,
    base_url: str,
    disabled: bool,
) -> None:
    """Save an Alpaca account, replacing any account with the same ACCOUNT_ID."""

    async def run() -> BrokerAccount:
        components = await build_components(settings)
        account = BrokerAccount(
            id=account_id,
            account_name=account_name,
            enabled=not disabled,
            api_key=api_key.strip(),
            secret_key=secret_key.strip(),
            base_url=base_url.strip(),
            is_paper=not live,
        )
        return await components.store.save_broker_account(account)

    try:
        saved = asyncio.run(run())
    except ValueError as e:
        raise click.ClickException(str(e))
    mode = "paper" if saved.is_paper else "LIVE"
    click.echo(f"Saved account '{saved.account_name}' ({saved.id}, {mode})")


@cli.command("account-rm")
@click.argument("account_id")
@click.pass_obj
def account_rm(settings: Settings, account_id: str) -> None:
    """Delete the broker account ACCOUNT_ID."""

    async def run() -> bool:
        components = await build_components(settings)
        return await components.store.delete_broker_account(account_id)

    if not asyncio.run(run()):
        raise click.ClickException(f"No broker account with id '{account_id}'")
    click.echo(f"Deleted account {account_id}")

if __name__ == "__main__":
    cli()
