# dnsdangle/scan/cli.py
"""
Command-line entry points (registered on the app by create_app()).

    flask scan subdomains.txt            NDJSON events on stdout
    flask seed-catalogs [--force]        write the built-in catalogs
"""

from __future__ import annotations

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from dnsdangle.catalog.store import seed_default_catalogs
from dnsdangle.scan import routes as scan_routes
from dnsdangle.scanner import BatchValidationError, parse_targets, validate_batch


@click.command("scan")
@click.argument("file", type=click.File("r", encoding="utf-8-sig"))
@with_appcontext
def scan_command(file):
    """Scan the hostnames listed in FILE (one per line, or CSV)."""
    try:
        targets = validate_batch(parse_targets(file.read()))
    except BatchValidationError as e:
        raise click.ClickException(str(e))

    orchestrator = scan_routes.build_orchestrator(current_app._get_current_object())
    for line in orchestrator.iter_ndjson(targets):
        click.echo(line, nl=False)


@click.command("seed-catalogs")
@click.option("--force", is_flag=True, help="Overwrite catalogs that already have entries.")
@with_appcontext
def seed_catalogs_command(force):
    """Write the built-in fingerprint and provider catalogs."""
    seeded = seed_default_catalogs(force=force)
    if seeded:
        click.echo(f"Seeded: {', '.join(seeded)}")
    else:
        click.echo("Catalogs already present (use --force to overwrite).")


def register_commands(app: Flask) -> None:
    app.cli.add_command(scan_command)
    app.cli.add_command(seed_catalogs_command)
