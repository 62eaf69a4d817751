"""
seedhost: CLI entrypoint.

Usage:
    python -m seedhost.main --help
    python -m seedhost.main config check
    python -m seedhost.main plan
    python -m seedhost.main build --out ./result
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from seedhost import __version__
from seedhost.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)

DEFAULT_OUTPUT_DIR = "result"


@click.group()
@click.version_option(version=__version__, prog_name="seedhost")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to seed.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """seedhost: deploy a Radicle seed node and HTTP gateway."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


@cli.group()
def config() -> None:
    """seed.yml commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate seed.yml."""
    from seedhost.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.options is not None
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Node:  {result.options.node.listen_address}:{result.options.node.listen_port}")
        if result.options.httpd.enable:
            click.echo(
                f"   HTTPD: {result.options.httpd.listen_address}:{result.options.httpd.listen_port}"
            )
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        sys.exit(1)


@cli.command()
@click.option("--out", "output_dir", default=DEFAULT_OUTPUT_DIR, type=click.Path(), help="Output directory.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, output_dir: str, as_json: bool) -> None:
    """Show what a build would produce, without checking or writing."""
    from seedhost.core.use_cases.build import run_plan

    result = run_plan(ctx.obj.get("config_path"), Path(output_dir))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    deployment = result.deployment
    assert deployment is not None
    if not deployment.services:
        click.echo("Deployment disabled, nothing to build.")
        return

    for svc in deployment.services:
        click.secho(f"\n⚙️  {svc.unit}", fg="cyan", bold=True)
        click.echo(f"   ExecStart: {svc.exec_start}")
        click.echo(f"   Restart:   {svc.restart.kind} after {svc.restart.delay_sec}s")
        if svc.upstream:
            click.echo(f"   Node:      {svc.upstream}")

    exposure = deployment.exposure
    if exposure and exposure.firewall:
        click.echo(f"\n🔥 Firewall: open {exposure.firewall.protocol}/{exposure.firewall.port}")
    if exposure and exposure.virtual_host:
        vhost = exposure.virtual_host
        click.echo(f"🌐 Virtual host: {vhost.server_name} → {vhost.upstream}")

    if deployment.settings is not None:
        click.secho("\n📄 config.json", fg="cyan", bold=True)
        click.echo(deployment.settings.to_json(), nl=False)


@cli.command()
@click.option("--out", "output_dir", default=DEFAULT_OUTPUT_DIR, type=click.Path(), help="Output directory.")
@click.option("--no-check", is_flag=True, help="Skip validating config.json with rad.")
@click.option("--force", is_flag=True, help="Rebuild even if inputs are unchanged.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def build(ctx: click.Context, output_dir: str, no_check: bool, force: bool, as_json: bool) -> None:
    """Check config.json and write the deployment to --out."""
    from seedhost.core.use_cases.build import run_build

    result = run_build(
        ctx.obj.get("config_path"),
        Path(output_dir),
        check=False if no_check else None,
        force=force,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho("❌ Build failed:", fg="red", bold=True, err=True)
        click.echo(result.error, err=True)
        sys.exit(1)

    if result.skipped:
        click.echo(f"Inputs unchanged: {output_dir} is up to date (use --force to rebuild).")
        return

    if not ctx.obj.get("quiet"):
        click.secho(f"✅ Built {len(result.written)} file(s) in {output_dir}", fg="green", bold=True)
        for path in result.written:
            click.echo(f"   • {path}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
