#!/usr/bin/env python3
"""
CMS backend CLI

Commands:
    routes           - Print the frozen route table
    generate-client  - Write the contract manifest and the typed Python client
    create-user      - Seed a CMS account into the configured store

Usage:
    python cli.py routes
    python cli.py generate-client --out-dir ../clients/python
    python cli.py create-user editor@example.com --role editor --password ...
"""

import asyncio
import json
import sys
from pathlib import Path

import click

from models import ROLES


def _build_tree():
    from routes import build_route_tree
    from services.auth_tokens import TokenService
    from services.container import Services

    # Contract generation only needs the shapes, never real storage
    services = Services(tokens=TokenService(secret="contract-generation"))
    return build_route_tree(services).freeze()


@click.group()
@click.version_option(version="1.0.0", prog_name="cms-cli")
def cli():
    """Newsroom CMS backend CLI."""
    pass


@cli.command("routes")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def list_routes(output_json):
    """Print every (method, path) -> procedure binding."""
    from api.contracts import describe_routes
    from config import Config

    descriptors = describe_routes(_build_tree())
    if output_json:
        click.echo(json.dumps([d.to_dict() for d in descriptors], indent=2))
        return

    for d in descriptors:
        click.echo(f"{d.method:<7} {Config.API_PREFIX}{d.full_path:<28} {d.name:<16} {d.summary}")
    click.echo(f"\n{len(descriptors)} routes")


@cli.command("generate-client")
@click.option("--out-dir", type=click.Path(file_okay=False), required=True, help="Output directory")
@click.option("--check", is_flag=True, help="Fail if the generated files differ from the ones on disk")
def generate_client(out_dir, check):
    """
    Generate cms_contract.json, cms_contract.sha256 and cms_client.py.

    The manifest and client are projections of the same route tree the
    server mounts, so they cannot drift from the server's contract.
    """
    from api.contracts import build_manifest, describe_routes, manifest_digest, render_client_module
    from config import Config

    tree = _build_tree()
    manifest = build_manifest(tree, base_path=Config.API_PREFIX)
    digest = manifest_digest(manifest)
    outputs = {
        "cms_contract.json": json.dumps(manifest, indent=2, sort_keys=True) + "\n",
        "cms_contract.sha256": digest + "\n",
        "cms_client.py": render_client_module(describe_routes(tree), base_path=Config.API_PREFIX),
    }

    out = Path(out_dir)
    if check:
        stale = [
            name for name, content in outputs.items()
            if not (out / name).exists() or (out / name).read_text() != content
        ]
        if stale:
            click.secho(f"Generated contract is stale: {', '.join(stale)}", fg="red")
            sys.exit(1)
        click.secho(f"Contract up to date (sha256 {digest[:12]})", fg="green")
        return

    out.mkdir(parents=True, exist_ok=True)
    for name, content in outputs.items():
        (out / name).write_text(content)
        click.echo(f"wrote {out / name}")
    click.secho(f"{len(manifest['endpoints'])} endpoints, sha256 {digest[:12]}", fg="green")


@cli.command("create-user")
@click.argument("email")
@click.option("--role", type=click.Choice(ROLES), default="reader", show_default=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--display-name", default=None, help="Name shown as post author")
def create_user(email, role, password, display_name):
    """Create a CMS account in the store configured by DATABASE_URL."""
    from config import Config
    from services.container import build_services
    from services.stores import DuplicateEmailError

    if not Config.DATABASE_URL:
        click.secho("DATABASE_URL is not set; an in-memory user would be lost on exit.", fg="red")
        sys.exit(1)

    services = build_services(Config)
    try:
        user = asyncio.run(services.users.add(email, password, role, display_name))
    except DuplicateEmailError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)

    click.secho(f"Created user id={user.id} email={user.email} role={user.role}", fg="green")


if __name__ == "__main__":
    cli()
