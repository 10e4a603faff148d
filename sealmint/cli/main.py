"""
sealmint CLI - Command Line Interface for the sealed-bid sale

Main entry point for all CLI commands.
"""

import click
from pathlib import Path
from typing import Optional

from sealmint.utils.logger import setup_logging


def parse_address(value: str) -> bytes:
    """Parse a 0x-prefixed 20-byte address."""
    from sealmint.crypto import hex_to_bytes, is_valid_address

    if not is_valid_address(value):
        raise click.BadParameter(f"not a 0x-prefixed 20-byte address: {value}")
    return hex_to_bytes(value)


def parse_blinding(value: Optional[str]) -> Optional[bytes]:
    """Parse an optional 32-byte hex blinding factor."""
    from sealmint.crypto import hex_to_bytes

    if value is None:
        return None
    try:
        blinding = hex_to_bytes(value)
    except ValueError:
        raise click.BadParameter(f"not hex: {value}")
    if len(blinding) != 32:
        raise click.BadParameter("blinding factor must be 32 bytes")
    return blinding


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, help="Sale config file (.json or .toml)")
@click.option("--env-file", default=None, help=".env file with SEALMINT_* overrides")
@click.option("--log-file", is_flag=True, help="Also write logs to <log_dir>/sealmint.log")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, config_path, env_file, log_file):
    """sealmint - Sealed-bid price discovery and fixed-supply issuance"""
    import logging
    from pydantic import ValidationError
    from sealmint.core.config import load_config

    ctx.ensure_object(dict)
    try:
        config = load_config(config_path=config_path, env_file=env_file)
    except (ValidationError, ValueError, OSError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    ctx.obj["config"] = config

    level = logging.DEBUG if debug else logging.WARNING
    setup_logging(level=level, log_dir=config.log_dir, log_to_file=log_file)


# =============================================================================
# Commitment Command
# =============================================================================


@cli.command("commitment")
@click.option("--participant", required=True, help="Participant address (0x...)")
@click.option("--appraisal", required=True, type=int, help="Appraisal to seal")
@click.option("--blinding", default=None, help="32-byte blinding factor (hex); random if omitted")
def commitment(participant, appraisal, blinding):
    """Compute the sealed commitment for an appraisal"""
    from sealmint.core.auction import create_sealed_appraisal
    from sealmint.crypto import bytes_to_hex
    from sealmint.utils.validation import MAX_AMOUNT

    if appraisal < 0 or appraisal > MAX_AMOUNT:
        raise click.BadParameter("appraisal must be a uint256", param_hint="--appraisal")

    sealed, opening = create_sealed_appraisal(
        parse_address(participant),
        appraisal,
        parse_blinding(blinding),
    )

    click.echo(f"Commitment: {bytes_to_hex(sealed)}")
    click.echo(f"Blinding:   {bytes_to_hex(opening.blinding_factor)}")
    click.echo("  ⚠️  Keep the blinding factor secret until the reveal phase!")


# =============================================================================
# Phase Command
# =============================================================================


@cli.command("phase")
@click.option("--at", "at_time", default=None, type=int, help="Unix time to evaluate (default: now)")
@click.pass_context
def phase(ctx, at_time):
    """Show the phase schedule and the active phase"""
    from sealmint.core.phase import system_clock

    config = ctx.obj["config"]
    window = config.phase_window()
    now = system_clock() if at_time is None else at_time

    click.echo("Phase Schedule")
    click.echo("-" * 40)
    click.echo(f"  Commit:          {window.commit_start}")
    click.echo(f"  Reveal:          {window.reveal_start}")
    click.echo(f"  Restricted mint: {window.restricted_start}")
    click.echo(f"  Public mint:     {window.public_start}")
    click.echo()
    click.echo(f"Phase at {now}: {window.phase_at(now).name}")


# =============================================================================
# Stats Command
# =============================================================================


@cli.command("stats")
@click.argument("appraisals", nargs=-1, type=int, required=True)
@click.pass_context
def stats(ctx, appraisals):
    """Show price statistics for revealed APPRAISALS (in reveal order)"""
    from sealmint.core.auction import PricingPolicy, compute_statistics
    from sealmint.core.errors import SaleError

    config = ctx.obj["config"]
    statistics = compute_statistics(appraisals)
    pricing = PricingPolicy(
        statistics=statistics,
        deposit=config.deposit,
        min_price=config.min_price,
        band_factor=config.band_factor,
        outlier_factor=config.outlier_factor,
    )

    click.echo("Price Statistics")
    click.echo("-" * 40)
    click.echo(f"  Reveals:  {statistics.count}")
    click.echo(f"  Mean:     {statistics.mean}")
    click.echo(f"  Variance: {statistics.variance}")
    click.echo(f"  Std dev:  {statistics.std_dev}")
    try:
        band = pricing.price_band()
        click.echo(f"  Band:     [{band.lower}, {band.upper}]")
    except SaleError as e:
        click.echo(f"  Band:     unavailable ({e})")
    click.echo(f"  Restricted mint price: {pricing.restricted_mint_price()}")


# =============================================================================
# Forgo Quote Command
# =============================================================================


@cli.command("quote-forgo")
@click.option("--appraisal", required=True, type=int, help="Appraisal of the forgoing participant")
@click.argument("appraisals", nargs=-1, type=int, required=True)
@click.pass_context
def quote_forgo(ctx, appraisal, appraisals):
    """Quote the forgo refund for --appraisal given revealed APPRAISALS"""
    from sealmint.core.auction import PricingPolicy, compute_statistics
    from sealmint.core.errors import SaleError

    config = ctx.obj["config"]
    pricing = PricingPolicy(
        statistics=compute_statistics(appraisals),
        deposit=config.deposit,
        min_price=config.min_price,
        band_factor=config.band_factor,
        outlier_factor=config.outlier_factor,
    )

    try:
        quote = pricing.forgo_quote(appraisal)
    except SaleError as e:
        raise click.ClickException(f"Cannot quote forgo: {type(e).__name__}: {e}")

    click.echo("Forgo Quote")
    click.echo("-" * 40)
    click.echo(f"  Deposit:           {config.deposit}")
    click.echo(f"  Deviation:         {quote.deviation}")
    click.echo(f"  Band penalty:      {quote.band_penalty}")
    click.echo(f"  Outlier surcharge: {quote.outlier_surcharge}")
    click.echo(f"  Refund:            {quote.refund}")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--data-dir", default=None, help="Persist the demo sale to this directory (overrides data_dir)")
@click.pass_context
def demo(ctx, data_dir):
    """Run a full sale lifecycle on a simulated clock"""
    from sealmint.core.assets import NativeAssetBook
    from sealmint.core.auction import create_sealed_appraisal
    from sealmint.core.config import NATIVE_ASSET
    from sealmint.core.phase import ManualClock
    from sealmint.core.sale import SealedBidSale
    from sealmint.crypto import generate_keypair, short_hex

    config = ctx.obj["config"]
    if config.payment_asset != NATIVE_ASSET:
        raise click.ClickException("The demo settles in the native asset")

    click.echo("=" * 60)
    click.echo("  SEALMINT - SEALED-BID SALE DEMO")
    click.echo("=" * 60)
    click.echo()

    # Setup
    click.echo("📦 Initializing sale...")
    sale_account = generate_keypair().address_bytes
    owner = generate_keypair().address_bytes
    names = ["alice", "bob", "carol", "dave", "erin"]
    people = {name: generate_keypair().address_bytes for name in names}

    assets = NativeAssetBook(sale_account)
    for address in people.values():
        assets.credit(address, 100 * config.deposit)

    if data_dir:
        config.data_dir = Path(data_dir).expanduser()
    clock = ManualClock(config.commit_start)
    sale = SealedBidSale(config, assets, owner=owner, time_source=clock)
    click.echo(f"  ✓ Deposit {config.deposit}, min price {config.min_price}, "
               f"max supply {config.max_supply}")
    click.echo()

    # Commit
    click.echo("🔒 Commit phase...")
    base = max(config.min_price, config.deposit // 2)
    step = max(1, base // 5)
    appraisals = {"alice": base, "bob": base + step, "carol": base + 2 * step, "dave": base}
    openings = {}
    for name, appraisal in appraisals.items():
        sealed, openings[name] = create_sealed_appraisal(people[name], appraisal)
        sale.commit(people[name], sealed, payment=config.deposit)
        click.echo(f"  ✓ {name} committed {short_hex(sealed)}")
    click.echo(f"  ✓ Deposits held: {sale.deposits_held}")
    click.echo()

    # Reveal (dave never reveals)
    click.echo("🔓 Reveal phase...")
    clock.set(config.reveal_start)
    for name in ["alice", "bob", "carol"]:
        opening = openings[name]
        sale.reveal(people[name], opening.appraisal, opening.blinding_factor)
        click.echo(f"  ✓ {name} revealed {opening.appraisal}")
    band = sale.price_band()
    click.echo(f"  ✓ Mean {sale.statistics.mean}, std dev {sale.statistics.std_dev}")
    click.echo(f"  ✓ Band [{band.lower}, {band.upper}]")
    click.echo()

    # Restricted mint
    click.echo("🎟️  Restricted mint phase...")
    clock.set(config.restricted_start)
    price = sale.restricted_mint_price()
    token_id = sale.restricted_mint(people["alice"], payment=price)
    click.echo(f"  ✓ alice minted token {token_id} at {price}")
    for name in ["bob", "carol"]:
        quote = sale.forgo(people[name])
        click.echo(f"  ✓ {name} forgoes: refund {quote.refund}, penalty {quote.penalty}")
    lost = sale.lost_reveal(people["dave"])
    click.echo(f"  ✓ dave reclaims unrevealed deposit: refund {lost.refund}")
    click.echo()

    # Public mint
    click.echo("📉 Public mint phase...")
    clock.set(config.public_start)
    for _ in range(2):
        quote = sale.public_quote(3)
        token_ids = sale.mint(people["erin"], 3, payment=quote.cost)
        click.echo(f"  ✓ erin minted tokens {token_ids} at {quote.unit_price} each")
        clock.advance(1000)
    click.echo()

    # Proceeds
    click.echo("💰 Owner withdraws proceeds...")
    withdrawn = sale.withdraw_proceeds(owner)
    click.echo(f"  ✓ Withdrew {withdrawn}")
    click.echo()

    click.echo("📊 Final Statistics:")
    for key, value in sale.stats().items():
        click.echo(f"  {key}: {value}")
    click.echo()
    click.echo("✅ Demo complete!")

    sale.close()


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
