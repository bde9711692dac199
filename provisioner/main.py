"""
LiveProto provisioner — CLI entrypoint.

Usage:
    liveproto-provision              # run the full provisioning pipeline
    liveproto-provision --json
    liveproto-provision detect       # read-only host probe
    python -m provisioner.main --help
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import DEFAULT_LEVEL, setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="liveproto-provision")
@click.option("--verbose", "-v", is_flag=True, help="Show every command as it runs.")
@click.option("--quiet", "-q", is_flag=True, help="Only show warnings and errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: $PROVISION_CONFIG or ./provision.yml).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the summary as JSON.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    as_json: bool,
) -> None:
    """LiveProto provisioner — install PHP, Composer and taknone/liveproto."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["as_json"] = as_json
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    if debug or verbose:
        level = "DEBUG"
    elif quiet:
        level = "WARNING"
    else:
        level = os.environ.get("PROVISION_LOG_LEVEL", DEFAULT_LEVEL)

    setup_logging(
        level=level,
        log_file=os.environ.get("PROVISION_LOG_FILE"),
        log_file_level=os.environ.get("PROVISION_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if ctx.invoked_subcommand is None:
        _provision(ctx)


def _provision(ctx: click.Context) -> None:
    from provisioner.core.use_cases.provision import run_provision

    result = run_provision(config_path=ctx.obj.get("config_path"))

    # Fatal errors always reach stderr, whatever the output mode
    if result.error:
        click.secho(f"[ERROR] {result.error}", fg="red", err=True)

    if ctx.obj.get("as_json"):
        click.echo(json.dumps(result.to_dict(include_receipts=ctx.obj.get("debug", False)), indent=2))
        sys.exit(result.exit_code)

    report = result.report
    if result.error or report is None:
        sys.exit(1)

    click.secho("\n📋 Provisioning summary", fg="cyan", bold=True)
    if report.host is not None:
        manager = report.host.manager.value if report.host.manager else "none"
        click.echo(f"   Package manager: {manager} (privilege: {report.host.privilege.value})")
    bits = f" ({report.int_size_bits}-bit)" if report.int_size_bits else ""
    click.echo(f"   PHP: {report.runtime_version or 'unknown'}{bits}")
    click.echo(f"   Composer: {report.composer_version or 'not found'}")
    if report.scratch_dir:
        click.echo(f"   Scratch project: {report.scratch_dir}")

    if report.target_installed:
        click.secho(f"   ✅ {report.target_package} installed", fg="green")
    else:
        click.secho(f"   ❌ {report.target_package} not installed", fg="red")

    if report.missing_extensions:
        click.secho(
            f"   ⚠️  Missing extensions: {', '.join(report.missing_extensions)}",
            fg="yellow",
        )

    if report.advisories:
        click.echo()
        click.secho(f"⚠️  Advisories ({len(report.advisories)}):", fg="yellow")
        for adv in report.advisories:
            click.echo(f"   • [{adv.step}] {adv.message}")

    click.echo()
    sys.exit(result.exit_code)


@cli.command()
@click.pass_context
def detect(ctx: click.Context) -> None:
    """Show privilege mode and the package manager that would be used."""
    from provisioner.core.engine.pipeline import UNSUPPORTED_MANAGER_MESSAGE, is_fatal_manager
    from provisioner.core.services.provision.detection import detect_host

    host = detect_host()
    fatal = is_fatal_manager(host.manager)

    if ctx.obj.get("as_json"):
        data = host.model_dump(mode="json")
        data["supported"] = not fatal
        click.echo(json.dumps(data, indent=2))
        sys.exit(1 if fatal else 0)

    click.echo(f"   Privilege: {host.privilege.value}")
    if host.manager is None:
        click.echo("   Package manager: none")
    else:
        click.echo(f"   Package manager: {host.manager.value} ({host.manager_path})")

    if fatal:
        click.secho(f"[ERROR] {UNSUPPORTED_MANAGER_MESSAGE}", fg="red", err=True)
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
