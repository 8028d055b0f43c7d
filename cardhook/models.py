"""Typed models for lifecycle events and delivery outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from cardhook.environment import EnvVars


class Result(str, Enum):
    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    NOT_BUILT = "NOT_BUILT"
    ABORTED = "ABORTED"

    @classmethod
    def parse(cls, value: str) -> Result:
        """Look up a result by name, ignoring case and ``-``/``_`` differences."""
        return cls(value.strip().upper().replace("-", "_"))


class EventKind(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    MESSAGE = "message"


class JobType(str, Enum):
    # Freestyle builds announce their start before the workspace is set up,
    # pipelines once the run has actually started.
    FREESTYLE = "freestyle"
    PIPELINE = "pipeline"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    env: EnvVars = field(default_factory=EnvVars)
    result: Result | None = None
    previous_result: Result | None = None


@dataclass(frozen=True)
class StepParameters:
    """Arguments of an on-demand "send notification now" step."""

    message: str = ""
    webhook_url: str = ""
    status: str = ""
    color: str = ""


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    REJECTED_CAPACITY = "rejected_capacity"


@dataclass(frozen=True)
class DeliveryResult:
    target: str
    status: DeliveryStatus
    status_code: int | None = None
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return (
            self.status is DeliveryStatus.DELIVERED
            and self.status_code is not None
            and 200 <= self.status_code < 300
        )
