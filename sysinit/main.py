"""
sysinit — CLI entrypoint.

Usage:
    python -m sysinit.main --help
    python -m sysinit.main detect
    python -m sysinit.main run --yes
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from sysinit import __version__
from sysinit.core.observability.logging_config import (
    add_file_handler,
    has_file_handler,
    setup_logging,
)

DEFAULT_LOG_FILE = "system-init.log"

_STATUS_STYLE = {
    "already_present": ("✓", "green"),
    "installed": ("✓", "green"),
    "skipped": ("⊘", "yellow"),
    "failed": ("✗", "red"),
}


@click.group()
@click.version_option(version=__version__, prog_name="sysinit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to sysinit.yml (default: auto-detect).",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Append log lines to this file (run default: {DEFAULT_LOG_FILE}).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    log_file: str | None,
) -> None:
    """sysinit — provision Python, Git and 1Password on a fresh machine."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("SYSINIT_LOG_LEVEL", "INFO")

    ctx.obj["log_level"] = level
    ctx.obj["log_file"] = log_file or os.environ.get("SYSINIT_LOG_FILE")
    ctx.obj["log_file_level"] = os.environ.get("SYSINIT_LOG_FILE_LEVEL")

    try:
        setup_logging(
            level=level,
            log_file=ctx.obj["log_file"],
            log_file_level=ctx.obj["log_file_level"],
            quiet_third_party=not debug,
        )
    except OSError as e:
        _log_file_error(ctx.obj["log_file"], e)


def _log_file_error(path: str, error: OSError) -> None:
    click.secho(f"ERROR Cannot open log file {path}: {error.strerror or error}", fg="red", err=True)
    sys.exit(1)


def _json_logging(ctx: click.Context) -> None:
    """Keep stdout clean for JSON: move console log lines to stderr."""
    setup_logging(
        level=ctx.obj["log_level"],
        log_file=ctx.obj["log_file"],
        log_file_level=ctx.obj["log_file_level"],
        quiet_third_party=not ctx.obj["debug"],
        stream=sys.stderr,
    )


def _load_config(ctx: click.Context):
    from sysinit.core.config.loader import ConfigError, load_config

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"ERROR {e}", fg="red", err=True)
        sys.exit(1)


# ── run ─────────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--yes",
    "-y",
    "--non-interactive",
    "non_interactive",
    is_flag=True,
    envvar=["ASSUME_YES", "NON_INTERACTIVE"],
    help="Answer yes to every package manager prompt (env: ASSUME_YES, NON_INTERACTIVE).",
)
@click.option(
    "--refresh/--no-refresh",
    default=None,
    help="Refresh the package index before installing (default: on).",
)
@click.option("--upgrade", is_flag=True, help="Upgrade installed packages first.")
@click.option("--skip-python", is_flag=True, help="Skip the Python step.")
@click.option("--skip-pip", is_flag=True, help="Skip the pip step.")
@click.option("--skip-git", is_flag=True, help="Skip the Git step.")
@click.option("--skip-1password", "skip_onepassword", is_flag=True, help="Skip the 1Password step.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    non_interactive: bool,
    refresh: bool | None,
    upgrade: bool,
    skip_python: bool,
    skip_pip: bool,
    skip_git: bool,
    skip_onepassword: bool,
    as_json: bool,
) -> None:
    """Provision the baseline toolset (idempotent, safe to re-run)."""
    from sysinit.core.use_cases.provision import run_provisioning

    if as_json:
        _json_logging(ctx)

    config = _load_config(ctx)

    if not has_file_handler():
        log_file = config.log_file or DEFAULT_LOG_FILE
        try:
            add_file_handler(log_file, ctx.obj["log_file_level"])
        except OSError as e:
            _log_file_error(log_file, e)

    skip = [
        name
        for name, flag in (
            ("python", skip_python),
            ("pip", skip_pip),
            ("git", skip_git),
            ("1password", skip_onepassword),
        )
        if flag
    ]

    try:
        result = run_provisioning(
            config=config,
            non_interactive=non_interactive,
            refresh=refresh,
            upgrade=upgrade or None,
            skip=skip,
            runner=ctx.obj.get("runner"),
            system=ctx.obj.get("system"),
            elevation=ctx.obj.get("elevation"),
        )
    except Exception as e:
        if ctx.obj.get("debug"):
            raise
        click.secho(f"ERROR {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    report = result.report
    if report is None:
        click.secho(f"✗ {result.error}", fg="red")
        sys.exit(result.exit_code)

    click.echo()
    for step in report.results:
        icon, color = _STATUS_STYLE[step.status]
        click.secho(f"   {icon} {step.step}", fg=color, nl=False)
        detail = step.candidate if step.candidate else step.reason
        click.echo(f"  {step.status}" + (f" ({detail})" if detail else ""))

    click.echo()
    if report.ok:
        click.secho(
            f"✓ Provisioning complete: {report.installed} installed, "
            f"{report.already_present} already present, {report.skipped} skipped",
            fg="green",
            bold=True,
        )
    else:
        click.secho(f"✗ {report.error} (exit {report.exit_code})", fg="red", bold=True)

    sys.exit(result.exit_code)


# ── detect / steps ──────────────────────────────────────────────


def _detect(ctx: click.Context):
    from sysinit.core.use_cases.detect import run_detect

    return run_detect(
        config=_load_config(ctx),
        runner=ctx.obj.get("runner"),
        system=ctx.obj.get("system"),
        elevation=ctx.obj.get("elevation"),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect(ctx: click.Context, as_json: bool) -> None:
    """Show the operating system, package manager and privileges."""
    if as_json:
        _json_logging(ctx)
    result = _detect(ctx)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho(f"\n🔍 {result.system} {result.release}", fg="cyan", bold=True)
    if result.supported:
        click.secho(f"   Package manager: {result.kind}", fg="green")
    else:
        click.secho("   Package manager: none (unsupported environment)", fg="red")

    for name, available in result.managers.items():
        mark, color = ("✓", "green") if available else ("✗", "white")
        click.secho(f"     {mark} {name}", fg=color)

    if result.elevation.is_admin:
        click.echo("   Privileges: root/Administrator")
    elif result.elevation.sudo:
        click.echo(f"   Privileges: via sudo ({result.elevation.sudo})")
    else:
        click.secho("   Privileges: none (system installs will fail)", fg="yellow")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def steps(ctx: click.Context, as_json: bool) -> None:
    """List the provisioning steps for the detected package manager."""
    if as_json:
        _json_logging(ctx)
    result = _detect(ctx)
    plan = result.plan()

    if as_json:
        click.echo(json.dumps({"package_manager": str(result.kind), "steps": plan}, indent=2))
        return

    click.secho(f"\n📋 Steps for {result.kind}", fg="cyan", bold=True)
    for row in plan:
        if row["skip"]:
            click.secho(f"   ⊘ {row['title']}  (skipped by config)", fg="yellow")
            continue
        if not row["applies"]:
            click.secho(f"   ⊘ {row['title']}  (not applicable)", fg="yellow")
            continue
        required = "required" if row["required"] else "optional"
        names = ", ".join(row["candidates"]) or "no candidates"
        click.echo(f"   • {row['title']}  [{required}, exit {row['exit_code']}]  → {names}")
        if row["repository"]:
            click.echo(f"       repository: {row['repository']}")
        if row["fallback_repository"]:
            click.echo(f"       fallback repository: {row['fallback_repository']}")
        if row["build"]:
            click.echo(f"       source build: {row['build']}")


if __name__ == "__main__":
    cli()
