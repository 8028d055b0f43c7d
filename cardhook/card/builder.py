"""Build notification cards for lifecycle events."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from cardhook.card.models import Action, Card, Fact, Section
from cardhook.config import CustomMessage
from cardhook.environment import EnvVars, TemplateExpansionError
from cardhook.host import HostRun
from cardhook.models import Event, Result, StepParameters
from cardhook.utils.logging import get_logger

log = get_logger(__name__)

STARTED_COLOR = "3479BF"

_RESULT_COLORS: dict[Result, str] = {
    Result.SUCCESS: "2EB886",
    Result.FAILURE: "D00000",
    Result.UNSTABLE: "FFC107",
    Result.ABORTED: "9E9E9E",
    Result.NOT_BUILT: "9E9E9E",
}


def format_duration(seconds: float) -> str:
    """Format a duration like ``1 hr 2 min`` or ``3 min 4 sec``."""
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours} hr {minutes} min"
    if minutes:
        return f"{minutes} min {secs} sec"
    return f"{secs} sec"


def describe_result(result: Result, previous: Result | None) -> tuple[str, str]:
    """Return the (status, summary suffix) pair for a completed build."""
    previous = previous or Result.SUCCESS
    if result is Result.SUCCESS:
        if previous in (Result.FAILURE, Result.UNSTABLE):
            return "Back to Normal", "Back to Normal"
        return "Build Success", "Success"
    if result is Result.FAILURE:
        if previous is Result.FAILURE:
            return "Repeated Failure", "Repeated Failure"
        return "Build Failed", "Failed"
    if result is Result.ABORTED:
        return "Build Aborted", "Aborted"
    if result is Result.UNSTABLE:
        return "Build Unstable", "Unstable"
    return "Not Built", "Not Built"


def expand_custom_messages(messages: Iterable[CustomMessage], env: EnvVars) -> list[Fact]:
    """One fact per custom message, values expanded against ``env``.

    A malformed template keeps its literal text so the other facts still go out.
    """
    facts: list[Fact] = []
    for message in messages:
        try:
            value = env.expand(message.value)
        except TemplateExpansionError as e:
            log.warning("custom_message_expansion_failed", name=message.name, reason=e.reason)
            value = message.value
        facts.append(Fact(message.name, value))
    return facts


class CardBuilder:
    """Creates cards for one host run. Holds no mutable state."""

    def __init__(self, run: HostRun) -> None:
        self._run = run

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def build_started_card(
        self, event: Event, custom_messages: Iterable[CustomMessage] = ()
    ) -> Card:
        status = "Build Started"
        facts = self._standard_facts(status)
        facts.extend(self._context_facts())
        facts.extend(expand_custom_messages(custom_messages, event.env))
        return Card(
            title=status,
            summary=f"{self._run_title()} Started",
            sections=(self._section(facts),),
            theme_color=STARTED_COLOR,
            actions=self._actions(),
        )

    def build_completed_card(
        self, event: Event, custom_messages: Iterable[CustomMessage] = ()
    ) -> Card:
        # A pipeline that is still running when it reports completion has no
        # result yet and is reported as successful so far.
        result = event.result or Result.SUCCESS
        status, suffix = describe_result(result, event.previous_result)

        facts = self._standard_facts(status)
        if self._run.duration is not None:
            facts.append(Fact("Duration", format_duration(self._run.duration)))
        if result is Result.FAILURE and self._run.failing_since is not None:
            facts.append(Fact("Failing since", f"#{self._run.failing_since}"))
        facts.extend(self._context_facts())
        facts.extend(expand_custom_messages(custom_messages, event.env))
        return Card(
            title=status,
            summary=f"{self._run_title()} {suffix}",
            sections=(self._section(facts),),
            theme_color=_RESULT_COLORS[result],
            actions=self._actions(),
        )

    def build_message_card(self, params: StepParameters, event: Event) -> Card:
        """Card for an on-demand notification step."""
        if params.message.strip():
            status = params.status.strip() or "Build Notification"
            facts = self._standard_facts(status)
            facts.extend(self._context_facts())
            card = Card(
                title=status,
                summary=self._run_title(),
                sections=(self._section(facts, text=params.message),),
                actions=self._actions(),
            )
        elif params.status.strip().lower() == "started":
            card = self.build_started_card(event)
        else:
            card = self.build_completed_card(event)

        if params.color.strip():
            card = replace(card, theme_color=params.color.strip())
        return card

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_title(self) -> str:
        return f"{self._run.display_name}: Build #{self._run.build_number}"

    def _standard_facts(self, status: str) -> list[Fact]:
        return [
            Fact("Status", status),
            Fact("Job", self._run.job_name),
            Fact("Build", f"#{self._run.build_number}"),
        ]

    def _context_facts(self) -> list[Fact]:
        facts: list[Fact] = []
        causes = self._run.causes
        if causes:
            facts.append(Fact("Remarks", ". ".join(causes)))
        changes = self._run.changes
        if changes:
            authors = list(dict.fromkeys(change.author for change in changes))
            facts.append(Fact("Changes", f"{len(changes)} change(s) by {', '.join(authors)}"))
        return facts

    def _section(self, facts: list[Fact], text: str | None = None) -> Section:
        return Section(
            title=f"Notification from {self._run.display_name}",
            subtitle=f"Latest status of build #{self._run.build_number}",
            text=text,
            facts=tuple(facts),
        )

    def _actions(self) -> tuple[Action, ...]:
        if not self._run.build_url:
            return ()
        return (Action("View Build", (self._run.build_url,)),)
