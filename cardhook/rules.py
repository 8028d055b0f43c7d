"""Decide whether a target is notified about a lifecycle event.

Two independent gates must both pass: the status gate (does the target care
about this kind of outcome at all) and the rule conjunction (do all of the
target's detailed rules match the event).
"""

from __future__ import annotations

from cardhook.config import Rule, Target
from cardhook.models import Event, EventKind, Result


def is_status_matched(target: Target, event: Event) -> bool:
    if event.kind is EventKind.STARTED:
        return target.start_notification
    if event.kind is not EventKind.COMPLETED:
        return False

    result = event.result
    previous = event.previous_result or Result.SUCCESS
    return (
        (result is Result.ABORTED and target.notify_aborted)
        or (result is Result.FAILURE and previous is Result.FAILURE and target.notify_repeated_failure)
        or (result is Result.FAILURE and target.notify_failure)
        or (result is Result.NOT_BUILT and target.notify_not_built)
        or (
            result is Result.SUCCESS
            and previous in (Result.FAILURE, Result.UNSTABLE)
            and target.notify_back_to_normal
        )
        or (result is Result.SUCCESS and target.notify_success)
        or (result is Result.UNSTABLE and target.notify_unstable)
    )


def rule_matches(rule: Rule, event: Event) -> bool:
    if event.kind is EventKind.STARTED:
        return rule.kind == "started"
    if event.kind is EventKind.COMPLETED:
        if rule.kind != "completed":
            return False
        if rule.status is None:
            return True
        return event.result is not None and Result.parse(rule.status) is event.result
    return False


def are_rules_matched(target: Target, event: Event) -> bool:
    """All rules must match; an empty rule set adds no filtering."""
    return all(rule_matches(rule, event) for rule in target.rules)


def should_notify(target: Target, event: Event) -> bool:
    return is_status_matched(target, event) and are_rules_matched(target, event)
