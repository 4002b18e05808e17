"""Command-line interface for cloud-export."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from cloud_export.config import resolve_config_file
from cloud_export.errors import ConfigError
from cloud_export.executor import Executor, StepResult
from cloud_export.logging_config import configure_logging
from cloud_export.protocols import WriterProtocol
from cloud_export.steps import ExecutionStep, load_steps
from cloud_export.writer import FileWriter

app = typer.Typer(help="Back up Cloudflare, GitHub and Google data to local files.")


def run_export(steps: list[ExecutionStep], writer: WriterProtocol) -> list[StepResult]:
    """Execute the export pipeline.

    Args:
        steps: Steps to run concurrently.
        writer: Writer persisting the artifacts of each step.
    """
    return asyncio.run(Executor(steps, writer).execute())


def _load(config: Path | None) -> list[ExecutionStep]:
    try:
        return load_steps(resolve_config_file(config))
    except ConfigError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@app.command()
def export(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file with variables and steps"),
    ] = None,
    step_ids: Annotated[
        list[str] | None,
        typer.Option("--step", "-s", help="Only run the step with this id (repeatable)"),
    ] = None,
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write anything"),
) -> None:
    """Run the configured export steps."""
    steps = _load(config)
    if step_ids:
        unknown = set(step_ids) - {step.id for step in steps}
        if unknown:
            logger.error("Unknown step id(s): {}", ", ".join(sorted(unknown)))
            raise typer.Exit(1)
        steps = [step for step in steps if step.id in step_ids]

    writer = FileWriter(dry_run=dry_run)
    try:
        run_export(steps, writer)
    except Exception as e:
        # Details were already logged per step by the executor
        raise typer.Exit(1) from e
    finally:
        writer.finalize()


@app.command(name="steps")
def list_steps(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file with variables and steps"),
    ] = None,
) -> None:
    """List the configured steps."""
    for step in _load(config):
        typer.echo(f"{step.id}\t{type(step).__name__.removesuffix('Step')}")
