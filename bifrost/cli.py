"""Bifrost CLI - Terraform for distributed applications on Google Cloud."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
import structlog

from bifrost import __version__
from bifrost.config import BifrostConfig, validate_config
from bifrost.core.errors import BifrostError, describe_error
from bifrost.loader import load_configuration_file
from bifrost.logging import setup_logging
from bifrost.pricing import CostEstimator
from bifrost.terraform.generator import generate as generate_bundle

log = structlog.get_logger()

console = Console()


def _settings(ctx: click.Context) -> BifrostConfig:
    return ctx.obj["settings"]


def _fail(error: Exception):
    console.print(f"[red]✗ {escape(describe_error(error))}[/]")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--settings", "settings_path", type=click.Path(), help="Path to bifrost.toml")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx: click.Context, settings_path: Optional[str], log_level: Optional[str]):
    """Bifrost - network templates for distributed applications"""
    settings = BifrostConfig.load(settings_path)
    setup_logging(
        level=log_level or settings.log_level,
        log_file=str(settings.log_file) if settings.log_file else None,
        json_format=settings.json_logs,
    )
    for warning in validate_config(settings):
        console.print(f"[yellow]⚠ {escape(warning)}[/]")
    ctx.obj = {"settings": settings}


@cli.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(file_okay=False), help="Output directory")
@click.option("--dry-run", is_flag=True, help="Print main.tf instead of writing files")
@click.pass_context
def generate(ctx: click.Context, config_file: str, output: Optional[str], dry_run: bool):
    """Generate Terraform files from a configuration file."""
    settings = _settings(ctx)

    try:
        config = load_configuration_file(config_file)
        bundle = generate_bundle(config, settings.template)
    except BifrostError as e:
        _fail(e)

    if dry_run:
        click.echo(bundle.main, nl=False)
        return

    output_dir = Path(output) if output else settings.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, content in bundle.files().items():
        (output_dir / name).write_text(content)
        log.info("artifact_written", path=str(output_dir / name))

    console.print(Panel(
        f"[bold blue]Application:[/] {config.application_name}\n"
        f"[bold blue]Output:[/] {output_dir}",
        title="🌈 Bifrost",
    ))
    for name in bundle.files():
        console.print(f"[green]✓[/] {output_dir / name}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate(ctx: click.Context, config_file: str):
    """Validate a configuration file and check that it generates cleanly."""
    settings = _settings(ctx)

    try:
        config = load_configuration_file(config_file)
        generate_bundle(config, settings.template)
    except BifrostError as e:
        _fail(e)

    network = config.network
    console.print(f"[green]✓ {config.application_name} is valid[/]")
    console.print(f"[dim]Regions: {', '.join(network.regions)}[/dim]")
    console.print(f"[dim]Workloads: {len(config.workloads)}[/dim]")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--pricing-url", help="Pricing endpoint (overrides settings)")
@click.pass_context
def cost(ctx: click.Context, config_file: str, pricing_url: Optional[str]):
    """Estimate the monthly cost of a configuration."""
    settings = _settings(ctx)

    try:
        config = load_configuration_file(config_file)
    except BifrostError as e:
        _fail(e)

    estimator = CostEstimator(
        endpoint=pricing_url or settings.pricing_url,
        timeout=settings.pricing_timeout,
    )
    breakdown = estimator.estimate(config)

    table = Table(
        title=f"🌈 {config.application_name} monthly cost",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Category", style="cyan", width=16)
    table.add_column("USD", justify="right", style="green", width=10)

    for category, amount in breakdown.as_dict().items():
        label = category.replace("_", " ").title()
        if category == "total":
            table.add_row(f"[bold]{label}[/]", f"[bold]{amount:,.2f}[/]")
        else:
            table.add_row(label, f"{amount:,.2f}")

    console.print(table)
    console.print(f"\n[dim]Source: {breakdown.source} pricing[/dim]")


if __name__ == "__main__":
    cli()
