"""
Command line host for es-sync.

Wraps the two pipeline entry points so they can be run from a CI job:

    es-sync validate --config serverless.yml
    es-sync apply --config serverless.yml --stage prod
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config_loader import load_descriptor
from .config_manager import create_config_from_env, setup_logging
from .exceptions import EsSyncError
from .models import SyncOutcome
from .plugin import ElasticsearchSetup

logger = logging.getLogger(__name__)


def _build_setup(ctx: click.Context, config_path: str, stage: Optional[str]) -> ElasticsearchSetup:
    settings = ctx.obj["settings"]
    es_config, context = load_descriptor(Path(config_path), settings.aws, stage)
    return ElasticsearchSetup(es_config, context, settings=settings)


def _fail(error: EsSyncError) -> None:
    logger.debug(error.describe())
    click.echo(f"❌ {error}", err=True)
    sys.exit(1)


@click.group()
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Synchronize Elasticsearch templates, indices and snapshot repositories."""
    ctx.ensure_object(dict)
    try:
        settings = create_config_from_env(log_level=log_level)
    except ValueError as e:
        ctx.fail(f"Invalid configuration: {e}")
    setup_logging(settings.logging)
    ctx.obj["settings"] = settings


config_option = click.option(
    "--config",
    "config_path",
    default="serverless.yml",
    show_default=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Deployment descriptor containing custom.elasticsearch",
)
stage_option = click.option("--stage", default=None, help="Deployment stage")


@cli.command()
@config_option
@stage_option
@click.pass_context
def validate(ctx: click.Context, config_path: str, stage: Optional[str]) -> None:
    """Check the configuration before the stack is updated."""
    try:
        setup = _build_setup(ctx, config_path, stage)
        asyncio.run(setup.validate())
    except EsSyncError as e:
        _fail(e)
        return

    config = setup.config
    if config.endpoint:
        click.echo(f"✅ Elasticsearch endpoint: {config.endpoint}")
    else:
        click.echo(f"✅ Elasticsearch endpoint from export: {config.stack_export_name}")


@cli.command()
@config_option
@stage_option
@click.pass_context
def apply(ctx: click.Context, config_path: str, stage: Optional[str]) -> None:
    """Apply templates, indices and repositories after the stack is updated."""
    try:
        setup = _build_setup(ctx, config_path, stage)
        results = asyncio.run(setup.apply())
    except EsSyncError as e:
        _fail(e)
        return

    for result in results:
        marker = "=" if result.outcome is SyncOutcome.SUPPRESSED_CONFLICT else "+"
        click.echo(f"  {marker} {result.kind} {result.name}")
    click.echo("🎉 Elasticsearch setup complete.")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
