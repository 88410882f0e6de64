"""
CLI interface for jobharness.

Provides commands to discover, inspect, and launch jobs described in
definition files (see jobharness.registry).

Usage:
    jobharness jobs
    jobharness steps nightly_export
    jobharness run nightly_export -p run.date(date)=2024-01-31
    jobharness run nightly_export --step load --dry-run
"""

from pathlib import Path

import click

from jobharness import __version__
from jobharness.config import ConfigError, HarnessConfig, load_config
from jobharness.errors import JobHarnessError
from jobharness.executor import LocalExecutor, NoOpExecutor
from jobharness.registry import JobRegistry
from jobharness.runner import JobTestRunner
from jobharness.schemas import BatchStatus, parse_parameters
from jobharness.utils import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="jobharness")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.yaml (default: $JOBHARNESS_HOME/config.yaml)",
)
@click.option(
    "--definitions-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing job definition files",
)
@click.pass_context
def main(ctx, config_path, definitions_dir):
    """
    jobharness - Launch batch jobs and single steps for testing.
    """
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except FileNotFoundError:
        if config_path is not None:
            click.echo(f"✗ Config file not found: {config_path}", err=True)
            raise SystemExit(1)
        config = HarnessConfig()
    except ConfigError as e:
        click.echo(f"✗ Invalid config: {e}", err=True)
        raise SystemExit(1)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file_path,
    )

    ctx.obj["config"] = config
    ctx.obj["registry"] = JobRegistry(definitions_dir or config.definitions_path)


@main.command("jobs")
@click.pass_context
def jobs(ctx):
    """List available jobs."""
    registry: JobRegistry = ctx.obj["registry"]
    job_ids = registry.list_jobs()

    if not job_ids:
        click.echo(f"No jobs found in {registry.definitions_dir}")
        return

    for job_id in job_ids:
        click.echo(job_id)


@main.command("steps")
@click.argument("job")
@click.pass_context
def steps(ctx, job: str):
    """List the executable steps of a job."""
    registry: JobRegistry = ctx.obj["registry"]
    try:
        loaded = registry.load(job)
    except JobHarnessError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    click.echo(f"{loaded.name} ({loaded.topology.kind.value})")
    for name in loaded.step_names():
        click.echo(f"  {name}")


@main.command("run")
@click.argument("job")
@click.option("--step", "-s", "step_name", help="Launch only this step")
@click.option(
    "--param", "-p", "params", multiple=True,
    help="Job parameter as key(type)=value; repeatable",
)
@click.option("--dry-run", is_flag=True, help="Resolve and report without running steps")
@click.pass_context
def run(ctx, job: str, step_name: str | None, params: tuple[str, ...], dry_run: bool):
    """Launch a job, or a single step of it."""
    config: HarnessConfig = ctx.obj["config"]
    registry: JobRegistry = ctx.obj["registry"]

    try:
        loaded = registry.load(job)
        parameters = parse_parameters(params) if params else None

        executor = NoOpExecutor() if dry_run else LocalExecutor()
        runner = JobTestRunner(
            executor,
            loaded,
            unique_key=config.unique_key,
            eager_index=config.eager_index,
        )

        if dry_run:
            click.echo("=== DRY RUN MODE === (no steps will be executed)")

        if step_name:
            result = runner.launch_step(step_name, parameters)
        else:
            result = runner.launch_job(parameters)
    except (JobHarnessError, ValueError) as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    for outcome in result.step_outcomes:
        mark = "✓" if outcome.status == BatchStatus.COMPLETED else "✗"
        click.echo(f"  {mark} {outcome.step_name}")

    if result.success:
        click.echo(f"✓ {result.job_name} {result.status.value}")
    else:
        click.echo(f"✗ {result.job_name} {result.status.value}: {result.exit_description}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
