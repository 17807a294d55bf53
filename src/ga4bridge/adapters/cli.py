"""Command line interface for normalizing captured CLI output."""

import json
import logging
from typing import Any

import click
from pydantic import BaseModel, ValidationError

from ga4bridge.adapters import LOG_FORMAT, clip_output
from ga4bridge.config import Settings
from ga4bridge.formats import parse_output
from ga4bridge.registry import REGISTRY
from ga4bridge.sanitize import sanitize


def output_result(result: Any, format: str) -> None:
    """Output result in specified format."""
    if result is None:
        return
    if format == "json":
        if isinstance(result, BaseModel):
            result = result.model_dump(mode="json")
        click.echo(json.dumps(result, indent=2))
    elif format == "raw":
        if isinstance(result, BaseModel):
            result = result.model_dump_json()
        click.echo(result)


def _read(ctx: click.Context, stream) -> str:
    settings: Settings = ctx.obj
    return clip_output(stream.read(), settings.max_output_chars)


@click.group(name="ga4bridge")
@click.pass_context
def cli(ctx):
    """Normalize GA4 / Search Console CLI output into JSON results."""
    if ctx.obj is None:
        ctx.obj = Settings()


@cli.command()
@click.argument("operation")
@click.argument("input", type=click.File("r"), default="-")
@click.option("--params", "params_json", help="JSON object of invocation parameters")
@click.option("--dry-run", is_flag=True, help="Set the dry_run parameter")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "raw"]),
    default=None,
    help="Output format",
)
@click.pass_context
def normalize(ctx, operation, input, params_json, dry_run, output_format):
    """Normalize the captured output of OPERATION read from INPUT (default stdin)."""
    output_format = output_format or ctx.obj.default_output_format
    if REGISTRY.get_description(operation) is None:
        click.echo(json.dumps({"error": f"Unknown operation: {operation}"}))
        ctx.exit(1)

    params: dict[str, Any] = {}
    if params_json:
        try:
            params = json.loads(params_json)
        except json.JSONDecodeError as e:
            click.echo(json.dumps({"error": f"Invalid JSON: {str(e)}"}))
            return
    if dry_run:
        params["dry_run"] = True

    try:
        result = REGISTRY.normalize(operation, _read(ctx, input), params)
    except ValidationError as e:
        click.echo(json.dumps({"error": f"Validation error: {str(e)}"}))
        return

    output_result(result, output_format)


@cli.command()
@click.argument("input", type=click.File("r"), default="-")
@click.pass_context
def classify(ctx, input):
    """Detect the format of INPUT and print the generic parse."""
    output_result(parse_output(sanitize(_read(ctx, input))), "json")


@cli.command(name="sanitize")
@click.argument("input", type=click.File("r"), default="-")
@click.pass_context
def sanitize_command(ctx, input):
    """Strip escape sequences and log lines from INPUT."""
    click.echo(sanitize(_read(ctx, input)), nl=False)


@cli.command()
def operations():
    """List registered operations."""
    output_result(
        [
            {"name": desc.name, "description": desc.description, "tags": desc.tags}
            for desc in REGISTRY.normalizers
        ],
        "json",
    )


def main():
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler()],
    )
    cli(obj=settings, standalone_mode=True)


if __name__ == "__main__":
    main()
