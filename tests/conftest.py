"""Shared fixtures: an in-memory host run."""

from __future__ import annotations

import pytest

from cardhook.environment import EnvVars
from cardhook.host import Change, HostRun
from cardhook.models import JobType, Result


class FakeRun(HostRun):
    def __init__(
        self,
        job_name: str = "api-server",
        build_number: int = 42,
        *,
        job_type: JobType = JobType.PIPELINE,
        result: Result | None = None,
        previous_result: Result | None = None,
        env: dict[str, str] | None = None,
        env_error: Exception | None = None,
        build_url: str | None = None,
        duration: float | None = None,
        causes: list[str] | None = None,
        changes: list[Change] | None = None,
        failing_since: int | None = None,
    ) -> None:
        self._job_name = job_name
        self._build_number = build_number
        self._job_type = job_type
        self._result = result
        self._previous_result = previous_result
        self._env = env or {}
        self._env_error = env_error
        self._build_url = build_url
        self._duration = duration
        self._causes = causes or []
        self._changes = changes or []
        self._failing_since = failing_since
        self.lines: list[str] = []

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

    @property
    def changes(self) -> list[Change]:
        return list(self._changes)

    @property
    def failing_since(self) -> int | None:
        return self._failing_since

    def get_environment(self) -> EnvVars:
        if self._env_error is not None:
            raise self._env_error
        return EnvVars(self._env)

    def log(self, line: str) -> None:
        self.lines.append(line)


@pytest.fixture
def run():
    return FakeRun()


@pytest.fixture
def make_run():
    return FakeRun
