"""Capabilities the notifier needs from the host build system."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from cardhook.environment import EnvVars
from cardhook.models import JobType, Result

LOG_TAG = "[cardhook]"


class EnvironmentUnavailable(RuntimeError):
    """The host could not produce an environment snapshot for the run."""


@dataclass(frozen=True)
class Change:
    author: str
    message: str = ""


class HostRun(ABC):
    """One run of a job, as seen by the notifier.

    Only the abstract members are required; the rest enrich the card when
    the host knows them.
    """

    @property
    @abstractmethod
    def job_name(self) -> str: ...

    @property
    @abstractmethod
    def build_number(self) -> int: ...

    @property
    @abstractmethod
    def job_type(self) -> JobType: ...

    @property
    @abstractmethod
    def result(self) -> Result | None: ...

    @abstractmethod
    def get_environment(self) -> EnvVars:
        """Snapshot the run's environment. May raise EnvironmentUnavailable."""
        ...

    @abstractmethod
    def log(self, line: str) -> None:
        """Append a line to the run's console log."""
        ...

    @property
    def display_name(self) -> str:
        return self.job_name

    @property
    def previous_result(self) -> Result | None:
        return None

    @property
    def build_url(self) -> str | None:
        return None

    @property
    def duration(self) -> float | None:
        """Run duration in seconds, once completed."""
        return None

    @property
    def causes(self) -> list[str]:
        return []

    @property
    def changes(self) -> list[Change]:
        return []

    @property
    def failing_since(self) -> int | None:
        """Number of the first build in the current failure streak."""
        return None


class LocalRun(HostRun):
    """Host adapter for runs driven from the command line."""

    def __init__(
        self,
        job_name: str,
        build_number: int,
        *,
        job_type: JobType = JobType.PIPELINE,
        result: Result | None = None,
        previous_result: Result | None = None,
        build_url: str | None = None,
        duration: float | None = None,
        causes: list[str] | None = None,
        environ: Mapping[str, str] | None = None,
        sink: Callable[[str], None] = print,
    ) -> None:
        self._job_name = job_name
        self._build_number = build_number
        self._job_type = job_type
        self._result = result
        self._previous_result = previous_result
        self._build_url = build_url
        self._duration = duration
        self._causes = list(causes or [])
        self._environ = environ if environ is not None else os.environ
        self._sink = sink

    @property
    def job_name(self) -> str:
        return self._job_name

    @property
    def build_number(self) -> int:
        return self._build_number

    @property
    def job_type(self) -> JobType:
        return self._job_type

    @property
    def result(self) -> Result | None:
        return self._result

    @property
    def previous_result(self) -> Result | None:
        return self._previous_result

    @property
    def build_url(self) -> str | None:
        return self._build_url

    @property
    def duration(self) -> float | None:
        return self._duration

    @property
    def causes(self) -> list[str]:
        return list(self._causes)

    def get_environment(self) -> EnvVars:
        env = dict(self._environ)
        env.setdefault("JOB_NAME", self._job_name)
        env.setdefault("BUILD_NUMBER", str(self._build_number))
        if self._build_url:
            env.setdefault("BUILD_URL", self._build_url)
        return EnvVars(env)

    def log(self, line: str) -> None:
        self._sink(line)
