"""Fan lifecycle events out to the configured webhook targets."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from functools import partial

from cardhook.card.builder import CardBuilder
from cardhook.card.models import Card
from cardhook.card.wire import encode_card
from cardhook.config import Target
from cardhook.dispatch import Dispatcher
from cardhook.environment import EnvVars, TemplateExpansionError
from cardhook.host import LOG_TAG, HostRun
from cardhook.models import (
    DeliveryResult,
    DeliveryStatus,
    Event,
    EventKind,
    JobType,
    StepParameters,
)
from cardhook.rules import should_notify
from cardhook.utils.logging import get_logger, redact_url

log = get_logger(__name__)


class Notifier:
    """Sends the notifications for one host run.

    ``targets`` is a read-only snapshot of the job's webhook configuration.
    Every entry point is best effort: failures are logged and returned as
    DeliveryResult values, never raised to the host.
    """

    def __init__(
        self,
        run: HostRun,
        targets: Sequence[Target],
        dispatcher: Dispatcher,
    ) -> None:
        self._run = run
        self._targets = tuple(targets)
        self._dispatcher = dispatcher
        self._cards = CardBuilder(run)

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    async def on_start(self, is_pre_build_phase: bool) -> list[DeliveryResult]:
        if not self._targets:
            return []
        # Freestyle builds report from the pre-build phase, pipelines from the
        # started phase. The other phase is ignored so each run notifies once.
        if (self._run.job_type is JobType.FREESTYLE) != is_pre_build_phase:
            return []

        event = Event(kind=EventKind.STARTED, env=self._environment())
        builds = [
            (target, partial(self._cards.build_started_card, event, target.custom_messages))
            for target in self._targets
            if should_notify(target, event)
        ]
        return await self._dispatch_all(event, builds)

    async def on_complete(self) -> list[DeliveryResult]:
        if not self._targets:
            return []

        event = Event(
            kind=EventKind.COMPLETED,
            env=self._environment(),
            result=self._run.result,
            previous_result=self._run.previous_result,
        )
        builds = [
            (target, partial(self._cards.build_completed_card, event, target.custom_messages))
            for target in self._targets
            if should_notify(target, event)
        ]
        return await self._dispatch_all(event, builds)

    async def on_custom_message(self, params: StepParameters) -> list[DeliveryResult]:
        """Send an on-demand notification to every target, bypassing rules.

        Without configured targets the step's own webhook URL is used.
        """
        targets = self._targets
        if not targets:
            if not params.webhook_url.strip():
                log.info("custom_message_no_targets", job=self._run.job_name)
                return []
            targets = (Target(url=params.webhook_url.strip()),)

        event = Event(
            kind=EventKind.MESSAGE,
            env=self._environment(),
            result=self._run.result,
            previous_result=self._run.previous_result,
        )
        build = partial(self._cards.build_message_card, params, event)
        return await self._dispatch_all(event, [(target, build) for target in targets])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _environment(self) -> EnvVars:
        try:
            return self._run.get_environment()
        except Exception as e:
            log.exception("environment_unavailable", job=self._run.job_name)
            self._run.log(f"{LOG_TAG} Build environment unavailable, variables left unexpanded ({e})")
            return EnvVars()

    async def _dispatch_all(
        self,
        event: Event,
        builds: list[tuple[Target, Callable[[], Card]]],
    ) -> list[DeliveryResult]:
        if not builds:
            return []

        results = await asyncio.gather(
            *(self._dispatch(target, build, event.env) for target, build in builds)
        )
        log.info(
            "notification_dispatched",
            job=self._run.job_name,
            build=self._run.build_number,
            event_kind=event.kind.value,
            targets=len(results),
            failed=sum(1 for r in results if not r.succeeded),
        )
        return list(results)

    async def _dispatch(
        self, target: Target, build: Callable[[], Card], env: EnvVars
    ) -> DeliveryResult:
        name = target.display_name
        try:
            url = self._expand_url(target, env)
            payload = encode_card(build())
            return await self._dispatcher.deliver(
                url,
                payload,
                target.timeout,
                target=name,
                sink=self._run.log,
            )
        except Exception as e:
            log.exception("webhook_dispatch_error", target=name)
            self._run.log(redact_url(f"{LOG_TAG} Failed to notify webhook: {name} ({e})"))
            return DeliveryResult(
                target=name,
                status=DeliveryStatus.CONNECTION_ERROR,
                error=str(e),
            )

    def _expand_url(self, target: Target, env: EnvVars) -> str:
        try:
            return env.expand(target.url)
        except TemplateExpansionError as e:
            log.warning("webhook_url_expansion_failed", target=target.display_name, reason=e.reason)
            return target.url
