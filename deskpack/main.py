"""
deskpack — CLI entrypoint.

Usage:
    python -m deskpack.main --help
    deskpack                   # bundle every configured environment
    deskpack -l -w -e windows  # add linux/windows amd64, build windows only
    deskpack bd                # bind data for the host OS/arch
    deskpack cc                # clear the vendor cache
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from deskpack import __version__
from deskpack.core.cancellation import Cancelled
from deskpack.core.errors import DeskpackError
from deskpack.core.observability.logging_config import setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="deskpack")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to the configuration (default: ./bundler.json).",
)
@click.option(
    "--framework-path",
    "-a",
    "framework_path",
    default=None,
    help="Local runtime framework checkout to zip instead of downloading.",
)
@click.option("--darwin", "-d", is_flag=True, help="Add darwin/amd64 to the environments.")
@click.option("--linux", "-l", is_flag=True, help="Add linux/amd64 to the environments.")
@click.option("--windows", "-w", is_flag=True, help="Add windows/amd64 to the environments.")
@click.option(
    "--environment-filter",
    "-e",
    "environment_filter",
    default=None,
    help="Only bundle environments whose name matches this pattern.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    framework_path: str | None,
    darwin: bool,
    linux: bool,
    windows: bool,
    environment_filter: str | None,
    as_json: bool,
    verbose: bool,
    quiet: bool,
    debug: bool,
) -> None:
    """deskpack — bundle a Go + webview desktop app for every target OS.

    Without a subcommand, bundles every configured environment.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["framework_path"] = framework_path
    ctx.obj["extra_os"] = [
        name for name, enabled in (("darwin", darwin), ("linux", linux), ("windows", windows))
        if enabled
    ]
    ctx.obj["environment_filter"] = environment_filter
    ctx.obj["as_json"] = as_json
    ctx.obj["quiet"] = quiet

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DESKPACK_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("DESKPACK_LOG_FILE"),
        log_file_level=os.environ.get("DESKPACK_LOG_FILE_LEVEL"),
    )

    if ctx.invoked_subcommand is None:
        _run(ctx, _bundle)


@cli.command("bd")
@click.pass_context
def bind_data(ctx: click.Context) -> None:
    """Bind data (vendor + resources) for the host OS/arch only."""
    _run(ctx, _bind)


@cli.command("cc")
@click.pass_context
def clear_cache(ctx: click.Context) -> None:
    """Clear the vendor archive cache."""
    _run(ctx, _clear)


# ── Actions ─────────────────────────────────────────────────────────


def _bundle(ctx: click.Context, bundler) -> None:
    report = bundler.bundle()

    if ctx.obj["as_json"]:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return
    if ctx.obj["quiet"]:
        return

    click.secho(f"\n📦 {report.app_name}", fg="cyan", bold=True)
    for result in report.results:
        click.secho(f"   ✓ {result.name}", fg="green", nl=False)
        click.echo(f"  → {result.artifact}")
    for name in report.skipped:
        click.secho(f"   ⊘ {name} ", fg="yellow", nl=False)
        click.echo("(filtered out)")
    click.echo()


def _bind(ctx: click.Context, bundler) -> None:
    from deskpack.core.engine.bundler import host_environment

    host = host_environment()
    output = bundler.bind_data(host.os, host.arch)
    if ctx.obj["as_json"]:
        click.echo(json.dumps({"os": host.os, "arch": host.arch, "output": str(output)}, indent=2))
    elif not ctx.obj["quiet"]:
        click.secho(f"✅ Data bound for {host.os}/{host.arch} → {output}", fg="green")


def _clear(ctx: click.Context, bundler) -> None:
    bundler.clear_cache()
    if ctx.obj["as_json"]:
        click.echo(json.dumps({"cleared": str(bundler.paths.cache)}, indent=2))
    elif not ctx.obj["quiet"]:
        click.secho(f"✅ Cache cleared: {bundler.paths.cache}", fg="green")


# ── Plumbing ────────────────────────────────────────────────────────


def _build_bundler(ctx: click.Context):
    """Load the configuration, apply CLI overrides, construct the Bundler."""
    from deskpack.core.config.loader import load_configuration
    from deskpack.core.engine.bundler import Bundler, host_environment
    from deskpack.core.models.configuration import Environment

    configuration = load_configuration(ctx.obj["config_path"])

    overrides: dict = {}
    if ctx.obj["framework_path"]:
        overrides["framework_path"] = ctx.obj["framework_path"]

    environments = list(configuration.environments)
    for os_name in ctx.obj["extra_os"]:
        environments.append(Environment(os=os_name, arch="amd64"))
    if not environments:
        environments = [host_environment()]
    if environments != configuration.environments:
        overrides["environments"] = environments

    if ctx.obj["environment_filter"]:
        overrides["environment_filter"] = ctx.obj["environment_filter"]

    if overrides:
        configuration = configuration.with_overrides(**overrides)
    return Bundler(configuration)


def _run(ctx: click.Context, action) -> None:
    bundler = None
    try:
        bundler = _build_bundler(ctx)
        bundler.handle_signals()
        action(ctx, bundler)
    except Cancelled as e:
        click.secho(f"⚠️  Cancelled: {e}", fg="yellow", err=True)
        sys.exit(1)
    except DeskpackError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    finally:
        if bundler is not None:
            bundler.restore_signals()


if __name__ == "__main__":
    cli()
