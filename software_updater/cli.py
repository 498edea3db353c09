from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
import typer

from software_updater.core import descriptors
from software_updater.core import router
from software_updater.core.config import build_plans, config_path, create_default_file, load_config
from software_updater.core.ecosystem import detect_ecosystem
from software_updater.core.errors import ConfigError
from software_updater.core.probe import probe
from software_updater.core.selection import PreferencePolicy
from software_updater.reporting.summary import exit_code, export_json, print_table, reports_to_json

app = typer.Typer(help="Update every installed package manager and toolchain in one go.")

logger = logging.getLogger("software_updater")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _load(config: Optional[Path]):
    try:
        return load_config(config)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)


def _ecosystem(override: Optional[str]) -> str:
    if override:
        return override
    return detect_ecosystem(known=router.ECOSYSTEMS)


@app.command()
def update(
    config: Optional[Path] = typer.Option(None, "--config", help="Configuration file path"),
    only: Optional[List[str]] = typer.Option(None, "--only", help="Only update this family (repeatable)"),
    jobs: Optional[int] = typer.Option(None, "--jobs", min=1, help="Families to update concurrently"),
    capture: Optional[bool] = typer.Option(None, "--capture/--stream", help="Capture program output instead of streaming it"),
    timeout: Optional[float] = typer.Option(None, "--timeout", click_type=click.FloatRange(min=0, min_open=True), help="Kill a program after this many seconds"),
    strict_preference: bool = typer.Option(False, "--strict-preference", help="Fail instead of falling back when the preferred program is missing"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Resolve programs without running them"),
    format: str = typer.Option("table", "--format", help="Output format: table or json"),
    output: Optional[str] = typer.Option(None, "--output", help="Also write the JSON report to this file"),
    ecosystem: Optional[str] = typer.Option(None, "--ecosystem", help="Override the detected OS ecosystem"),
):
    """Resolve and run the update program of every configured family."""
    cfg = _load(config)
    settings = cfg.settings
    ecosystem_id = _ecosystem(ecosystem)
    logger.info(f"Detected ecosystem: {ecosystem_id}")

    plans = build_plans(cfg, ecosystem_id, only=only)
    if not plans:
        typer.echo("Nothing to update: no configured family matches.", err=True)
        raise typer.Exit(code=1)

    options = router.UpdateOptions(
        policy=PreferencePolicy.STRICT if strict_preference else settings.preference_policy,
        capture=settings.capture_output if capture is None else capture,
        timeout=timeout if timeout is not None else settings.timeout,
        dry_run=dry_run,
        jobs=jobs or settings.jobs,
        output_to_stderr=format == "json",
    )
    reports = router.run(plans, options)

    if output:
        export_json(reports, Path(output))
        typer.echo(f"JSON report saved to: {output}", err=True)

    if format == "json":
        typer.echo(json.dumps(reports_to_json(reports), indent=2))
    else:
        if format != "table":
            typer.echo(f"Warning: Unknown format '{format}', using table format", err=True)
        print_table(reports)

    raise typer.Exit(code=exit_code(reports))


@app.command("init-config")
def init_config(
    path: Optional[Path] = typer.Option(None, "--path", help="Where to write the configuration"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write the default configuration file."""
    target = config_path(path)
    existed = target.exists()
    create_default_file(target, force=force)
    if existed and not force:
        typer.echo(f"Configuration already exists: {target} (use --force to overwrite)")
    else:
        typer.echo(f"Configuration written: {target}")


@app.command("show-config")
def show_config(
    path: Optional[Path] = typer.Option(None, "--path", help="Configuration file path"),
):
    """Print the effective configuration, defaults included."""
    cfg = _load(path)
    typer.echo(json.dumps(cfg.model_dump(mode="json"), indent=2))


@app.command()
def detect(
    config: Optional[Path] = typer.Option(None, "--config", help="Configuration file path"),
    ecosystem: Optional[str] = typer.Option(None, "--ecosystem", help="Override the detected OS ecosystem"),
):
    """Show the detected ecosystem and the families an update would run."""
    cfg = _load(config)
    ecosystem_id = _ecosystem(ecosystem)
    supported = "" if router.is_supported(ecosystem_id) else " (unsupported)"
    typer.echo(f"Ecosystem: {ecosystem_id}{supported}")
    for plan in build_plans(cfg, ecosystem_id):
        state = "enabled" if plan.enabled else "disabled"
        extra = ""
        if plan.requested:
            extra = f" programs={','.join(plan.requested)}"
        elif plan.preferred:
            extra = f" preferred={plan.preferred}"
        typer.echo(f"- {plan.family}: {state}{extra}")


@app.command()
def programs(
    family: Optional[str] = typer.Argument(None, help="Limit the listing to one family"),
):
    """List candidate programs and whether they are installed."""
    if family is not None and family not in descriptors.TABLES:
        typer.echo(f"Unknown family '{family}'. Known: {', '.join(descriptors.families())}", err=True)
        raise typer.Exit(code=1)

    for name in [family] if family else descriptors.families():
        table = descriptors.table(name)
        available = probe(table)
        typer.echo(f"{descriptors.title(name)} ({name})")
        for descriptor in table:
            path = available.get(descriptor)
            marker = "x" if path else " "
            sudo = " [elevated]" if descriptor.requires_elevation else ""
            where = f" -> {path}" if path else ""
            typer.echo(f"  [{marker}] {descriptor.key}: {descriptor.command_line()}{sudo}{where}")


if __name__ == "__main__":
    app()
