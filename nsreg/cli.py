"""nsreg CLI — publish packages and manage author registrations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from nsreg import __version__
from nsreg.config import RegistryConfig
from nsreg.core.identity import Keypair
from nsreg.errors import RegistryError
from nsreg.registry.models import AuthorRecord, parse_package_id
from nsreg.registry.transaction import Transaction

console = Console()


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    raise SystemExit(1)


def _load_keypair(path: str) -> Keypair:
    if not Path(path).exists():
        _fail(f"No key file at {path}. Run 'nsreg keygen' first.")
    return Keypair.load(path)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, help="Path to config.yaml")
@click.option("--registry-dir", "-r", default=None, help="Registry directory")
@click.option("--verbose", "-v", is_flag=True, help="Show log output")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], registry_dir: Optional[str], verbose: bool):
    """nsreg — namespaced registry for authors and packages.

    Every author handle and every @scope/name package maps to exactly one
    record, stored at an address derived from the identifier itself.
    """
    if verbose:
        logging.basicConfig(
            level=logging.INFO, format="%(message)s", handlers=[RichHandler(console=console)]
        )
    config = RegistryConfig.load(config_path)
    if registry_dir:
        config.registry_dir = registry_dir
    ctx.obj = config


# ── Keys ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--outfile", "-o", default=None, help="Key file path (default: configured keypair_path)")
@click.option("--force", is_flag=True, help="Overwrite an existing key file")
@click.pass_obj
def keygen(config: RegistryConfig, outfile: Optional[str], force: bool):
    """Generate a new identity key file."""
    path = Path(outfile or config.keypair_path)
    if path.exists() and not force:
        _fail(f"{path} already exists (use --force to overwrite)")
    keypair = Keypair.generate()
    keypair.save(path)
    console.print(f"  Wrote {path}")
    console.print(f"  Identity: [cyan]{keypair.identity}[/]")


# ── Packages ─────────────────────────────────────────────────────────


@main.group()
def package():
    """Publish and inspect packages."""


@package.command()
@click.argument("package_id")
@click.option("--keypair", "-k", "keypair_path", default=None, help="Publisher key file")
@click.pass_obj
def publish(config: RegistryConfig, package_id: str, keypair_path: Optional[str]):
    """Publish PACKAGE_ID (@scope/name) under your identity."""
    try:
        scope, name = parse_package_id(package_id)
    except ValueError as e:
        _fail(str(e))
    keypair = _load_keypair(keypair_path or config.keypair_path)
    reg = config.build_registry()

    console.print(f"\n[bold blue]nsreg[/] — Publishing: @{scope}/{name}\n")
    try:
        _, disambiguator = reg.package_address(scope, name)
        tx = Transaction.publish_package(keypair.identity, scope, name, disambiguator)
        receipt = reg.execute(tx.sign(keypair))
    except RegistryError as e:
        _fail(e.message)

    console.print(f"  Published @{scope}/{name} by {receipt.record.authority}")
    console.print(f"  Address: [dim]{receipt.address}[/]")


@package.command(name="info")
@click.argument("package_id")
@click.pass_obj
def package_info(config: RegistryConfig, package_id: str):
    """Show the record for PACKAGE_ID (@scope/name)."""
    try:
        scope, name = parse_package_id(package_id)
    except ValueError as e:
        _fail(str(e))
    reg = config.build_registry(with_audit=False)
    try:
        address, record = reg.get_package(scope, name)
    except RegistryError as e:
        _fail(e.message)

    console.print(f"Scope:     @{record.scope}")
    console.print(f"Name:      {record.name}")
    console.print(f"Authority: {record.authority}")
    console.print(f"Address:   [dim]{address}[/]")


# ── Authors ──────────────────────────────────────────────────────────


@main.group()
def author():
    """Register, inspect, and unregister authors."""


@author.command(name="address")
@click.argument("name")
@click.pass_obj
def author_address(config: RegistryConfig, name: str):
    """Print the derived address and disambiguator for author NAME."""
    reg = config.build_registry(with_audit=False)
    try:
        address, disambiguator = reg.author_address(name)
    except RegistryError as e:
        _fail(e.message)
    console.print(f"{address} (disambiguator {disambiguator})")


@author.command()
@click.argument("name")
@click.option("--keypair", "-k", "keypair_path", default=None, help="Author key file")
@click.option("--oracle-keypair", default=None, help="Co-sign locally with this oracle key file")
@click.option("--oracle-url", default=None, help="Send to a running oracle service instead")
@click.pass_obj
def register(
    config: RegistryConfig,
    name: str,
    keypair_path: Optional[str],
    oracle_keypair: Optional[str],
    oracle_url: Optional[str],
):
    """Register author NAME for your identity.

    Registration needs the oracle's co-signature. Either co-sign locally with
    the oracle key file, or send the signed request to an oracle service,
    which checks your GitHub bio before co-signing.
    """
    keypair = _load_keypair(keypair_path or config.keypair_path)
    reg = config.build_registry()

    console.print(f"\n[bold blue]nsreg[/] — Registering author: {name}\n")
    try:
        _, disambiguator = reg.author_address(name)
    except RegistryError as e:
        _fail(e.message)
    tx = Transaction.register_author(keypair.identity, name, disambiguator).sign(keypair)

    if oracle_url:
        try:
            resp = httpx.post(
                f"{oracle_url.rstrip('/')}/api/oracle/github",
                json={"transaction": tx.to_dict()},
                timeout=30.0,
            )
        except httpx.HTTPError as e:
            _fail(f"Oracle request failed: {e}")
        if resp.status_code != 200:
            is_json = resp.headers.get("content-type", "").startswith("application/json")
            detail = resp.json().get("detail", resp.text) if is_json else resp.text
            _fail(f"Oracle refused ({resp.status_code}): {detail}")
        console.print(f"  Registered {name} at [dim]{resp.json()['address']}[/]")
        return

    signers = [Keypair.load(oracle_keypair)] if oracle_keypair else []
    try:
        receipt = reg.execute(tx.sign(*signers))
    except RegistryError as e:
        _fail(e.message)
    console.print(f"  Registered {name} for {keypair.identity}")
    console.print(f"  Address: [dim]{receipt.address}[/]")


@author.command()
@click.argument("name")
@click.option("--keypair", "-k", "keypair_path", default=None, help="Author key file")
@click.pass_obj
def unregister(config: RegistryConfig, name: str, keypair_path: Optional[str]):
    """Delete the author record for NAME (authority only)."""
    keypair = _load_keypair(keypair_path or config.keypair_path)
    reg = config.build_registry()
    try:
        address, _ = reg.author_address(name)
        reclaimed = reg.execute(Transaction.unregister_author(keypair.identity, address).sign(keypair))
    except RegistryError as e:
        _fail(e.message)
    console.print(
        f"  Closed author {name}; {reclaimed.space} bytes returned to {reclaimed.authority}"
    )


@author.command(name="info")
@click.argument("name")
@click.pass_obj
def author_info(config: RegistryConfig, name: str):
    """Show the record for author NAME."""
    reg = config.build_registry(with_audit=False)
    try:
        address, record = reg.get_author(name)
    except RegistryError as e:
        _fail(e.message)
    console.print(f"Name:      {record.name}")
    console.print(f"Authority: {record.authority}")
    console.print(f"Address:   [dim]{address}[/]")


# ── Listing ──────────────────────────────────────────────────────────


@main.command(name="list")
@click.pass_obj
def list_records(config: RegistryConfig):
    """List every author and package in the registry."""
    reg = config.build_registry(with_audit=False)
    records = reg.list_records()

    if not records:
        console.print("[yellow]Registry is empty.[/]")
        return

    table = Table(title=f"Registry ({len(records)} records)")
    table.add_column("Kind", style="dim")
    table.add_column("Identifier", style="cyan")
    table.add_column("Authority")
    table.add_column("Address", style="dim")

    for address, record in records:
        if isinstance(record, AuthorRecord):
            table.add_row("author", str(record.name), str(record.authority), str(address))
        else:
            table.add_row("package", record.package_id, str(record.authority), str(address))

    console.print(table)


# ── Audit ────────────────────────────────────────────────────────────


@main.command()
@click.option("--actor", default=None, help="Filter by caller identity")
@click.option("--action", default=None, help="Filter by operation name")
@click.option("--limit", default=50, show_default=True)
@click.option("--format", "fmt", default="table", type=click.Choice(["table", "json", "csv"]))
@click.pass_obj
def audit(config: RegistryConfig, actor: Optional[str], action: Optional[str], limit: int, fmt: str):
    """Show recent registry operations."""
    from nsreg.security.audit_log import AuditLogger

    logger = AuditLogger(Path(config.audit_dir))
    if fmt != "table":
        click.echo(logger.export_events(fmt, actor=actor, action=action, limit=limit))
        return

    entries = logger.get_events(actor=actor, action=action, limit=limit)
    if not entries:
        console.print("[yellow]No audit events.[/]")
        return

    table = Table(title=f"Audit log ({len(entries)} events)")
    table.add_column("Time", style="dim")
    table.add_column("Action")
    table.add_column("Resource", style="cyan")
    table.add_column("Result", justify="center")
    for e in entries:
        result = "[green]ok[/]" if e.success else f"[red]{e.error_code}[/]"
        table.add_row(e.timestamp[:19], e.action, e.resource_id, result)
    console.print(table)


if __name__ == "__main__":
    main()
