"""cardhook entry point — sends build notifications from the command line."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import click
import yaml
from pydantic import ValidationError

from cardhook.config import Settings, Target, load_settings, load_targets
from cardhook.dispatch import Dispatcher
from cardhook.host import LocalRun
from cardhook.models import DeliveryResult, JobType, Result, StepParameters
from cardhook.notifier import Notifier
from cardhook.utils.logging import get_logger, setup_logging

log = get_logger(__name__)

_RESULTS = click.Choice([r.value for r in Result], case_sensitive=False)

Action = Callable[[Notifier], Awaitable[list[DeliveryResult]]]


def _job_targets(settings: Settings, job_name: str) -> tuple[Target, ...]:
    path = settings.get_targets_path()
    try:
        return load_targets(path).targets_for(job_name)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        # A broken targets file must not fail the calling build.
        log.error("targets_file_invalid", path=str(path), error=str(e))
        return ()


async def notify(settings: Settings, run: LocalRun, action: Action) -> list[DeliveryResult]:
    targets = _job_targets(settings, run.job_name)
    async with Dispatcher(settings.dispatch) as dispatcher:
        return await action(Notifier(run, targets, dispatcher))


_RUN_OPTIONS = [
    click.option("--job", "job_name", envvar="JOB_NAME", default="local", show_default=True, help="Job name"),
    click.option("--build", "build_number", envvar="BUILD_NUMBER", type=int, default=1, show_default=True, help="Build number"),
    click.option("--build-url", envvar="BUILD_URL", default=None, help="Link to the build, shown as a card action"),
    click.option("--cause", "causes", multiple=True, help="What triggered the build (repeatable)"),
    click.option(
        "--job-type",
        type=click.Choice([t.value for t in JobType]),
        default=JobType.PIPELINE.value,
        show_default=True,
    ),
]


def run_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options describing the run being reported on."""
    for option in reversed(_RUN_OPTIONS):
        func = option(func)
    return func


def _make_run(
    job_name: str,
    build_number: int,
    build_url: str | None,
    causes: tuple[str, ...],
    job_type: str,
    **extra: Any,
) -> LocalRun:
    return LocalRun(
        job_name,
        build_number,
        job_type=JobType(job_type),
        build_url=build_url,
        causes=list(causes),
        sink=lambda line: click.echo(line, err=True),
        **extra,
    )


def _report(results: list[DeliveryResult]) -> None:
    delivered = sum(1 for r in results if r.succeeded)
    click.echo(f"Notified {delivered}/{len(results)} webhook(s)")


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--targets", "targets_path", default=None, help="Path to webhook targets YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, targets_path: str | None, log_level: str | None) -> None:
    """Send build lifecycle notifications to webhooks."""
    config_error: str | None = None
    try:
        settings = load_settings(config_path)
    except (OSError, TypeError, yaml.YAMLError, ValidationError) as e:
        # Fall back to defaults; a broken config must not fail the calling build.
        settings = Settings.model_construct()
        config_error = str(e)
    if targets_path:
        settings.targets_file = targets_path
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    if config_error is not None:
        log.error("config_invalid", path=config_path, error=config_error)
    ctx.obj = settings


@cli.command()
@run_options
@click.pass_obj
def started(settings: Settings, **run_kwargs: Any) -> None:
    """Report that a build has started."""
    run = _make_run(**run_kwargs)

    async def action(notifier: Notifier) -> list[DeliveryResult]:
        # Both phases are announced; the notifier keeps the one matching the job type.
        results = await notifier.on_start(is_pre_build_phase=True)
        results += await notifier.on_start(is_pre_build_phase=False)
        return results

    _report(asyncio.run(notify(settings, run, action)))


@cli.command()
@run_options
@click.option("--result", "result", type=_RESULTS, required=True, help="Outcome of the build")
@click.option("--previous-result", type=_RESULTS, default=None, help="Outcome of the previous build")
@click.option("--duration", type=float, default=None, help="Build duration in seconds")
@click.pass_obj
def completed(
    settings: Settings,
    result: str,
    previous_result: str | None,
    duration: float | None,
    **run_kwargs: Any,
) -> None:
    """Report that a build has completed."""
    run = _make_run(
        **run_kwargs,
        result=Result.parse(result),
        previous_result=Result.parse(previous_result) if previous_result else None,
        duration=duration,
    )
    _report(asyncio.run(notify(settings, run, lambda n: n.on_complete())))


@cli.command()
@run_options
@click.argument("text", default="")
@click.option("--webhook-url", default="", help="Used when the job has no configured webhooks")
@click.option("--status", default="", help="Status shown on the card")
@click.option("--color", default="", help="Theme color of the card, e.g. 00FF00")
@click.pass_obj
def message(
    settings: Settings,
    text: str,
    webhook_url: str,
    status: str,
    color: str,
    **run_kwargs: Any,
) -> None:
    """Send a custom notification now."""
    run = _make_run(**run_kwargs)
    params = StepParameters(message=text, webhook_url=webhook_url, status=status, color=color)
    _report(asyncio.run(notify(settings, run, lambda n: n.on_custom_message(params))))


if __name__ == "__main__":
    cli()
