"""Build the single entry node of a workflow graph."""

from __future__ import annotations

import re
from typing import Any

from .ids import IdGenerator
from .schema import NodeDescriptor, TriggerKind, WorkflowGraph, WorkflowRequest

LAYOUT_ORIGIN = (250, 300)

DEFAULT_SCHEDULE_HOUR = 9
DEFAULT_SCHEDULE_MINUTE = 0
DEFAULT_SCHEDULE_ITEM = {"mode": "everyDay", "hour": DEFAULT_SCHEDULE_HOUR, "minute": DEFAULT_SCHEDULE_MINUTE}

_CRON_FIELD = r"[\d*/,\-]+"
_CRON_EXPRESSION = re.compile(rf"^\s*{_CRON_FIELD}(\s+{_CRON_FIELD}){{4}}\s*$")
_EVERY_N = re.compile(r"every\s+(\d+)\s*(minute|min|hour|hr)s?", re.IGNORECASE)
_AT_TIME = re.compile(r"\b(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", re.IGNORECASE)
_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _time_of_day(detail: str) -> tuple[int, int] | None:
    """Extract an hour/minute from phrases like "at 7:30 pm" or "9am"."""
    for match in _AT_TIME.finditer(detail):
        hour_text, minute_text, meridiem = match.groups()
        # A bare number is only a time when it carries ":MM", am/pm or "at"
        if minute_text is None and meridiem is None and not match.group(0).lower().startswith("at"):
            continue
        hour = int(hour_text)
        minute = int(minute_text or 0)
        if meridiem:
            hour = hour % 12 + (12 if meridiem.lower() == "pm" else 0)
        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return hour, minute
    return None


def parse_schedule(detail: str | None) -> tuple[dict[str, Any], bool]:
    """Translate a schedule description into a cron trigger time item.

    Returns the item and whether the detail was understood. Anything not
    understood falls back to the daily default.
    """
    default = dict(DEFAULT_SCHEDULE_ITEM)
    if not detail:
        return default, False

    if _CRON_EXPRESSION.match(detail):
        return {"mode": "custom", "cronExpression": detail.strip()}, True

    lowered = detail.lower()
    every = _EVERY_N.search(lowered)
    if every:
        value = int(every.group(1))
        unit = "minutes" if every.group(2).startswith("min") else "hours"
        return {"mode": "everyX", "value": value, "unit": unit}, True

    if "every minute" in lowered:
        return {"mode": "everyMinute"}, True
    if "hourly" in lowered or "every hour" in lowered:
        return {"mode": "everyHour", "minute": 0}, True

    hour, minute = _time_of_day(lowered) or (DEFAULT_SCHEDULE_HOUR, DEFAULT_SCHEDULE_MINUTE)

    weekday = next((day for day in _WEEKDAYS if day in lowered), None)
    if "weekly" in lowered or weekday:
        # cron numbering: Sunday is 0, Monday 1
        day_number = (_WEEKDAYS.index(weekday or "monday") + 1) % 7
        return {
            "mode": "everyWeek",
            "hour": hour,
            "minute": minute,
            "weekday": str(day_number),
        }, True
    if "monthly" in lowered:
        return {"mode": "everyMonth", "hour": hour, "minute": minute, "dayOfMonth": 1}, True
    if "daily" in lowered or "every day" in lowered or _time_of_day(lowered):
        return {"mode": "everyDay", "hour": hour, "minute": minute}, True

    return default, False


def build_trigger(kind: TriggerKind, detail: str | None, ids: IdGenerator) -> NodeDescriptor:
    """Create the trigger node placed at the layout origin."""
    if kind == "scheduled":
        item, understood = parse_schedule(detail)
        return NodeDescriptor(
            id="trigger",
            display_name="Schedule Trigger",
            kind="n8n-nodes-base.cron",
            position=LAYOUT_ORIGIN,
            parameters={"triggerTimes": {"item": [item]}},
            notes=detail if detail and not understood else None,
        )

    if kind == "inbound-request":
        token = ids.new_id("webhook")
        return NodeDescriptor(
            id="trigger",
            display_name="Webhook",
            kind="n8n-nodes-base.webhook",
            position=LAYOUT_ORIGIN,
            parameters={
                "httpMethod": "POST",
                "path": token,
                "responseMode": "onReceived",
            },
            webhook_id=token,
            notes=detail,
        )

    return NodeDescriptor(
        id="trigger",
        display_name="Manual Trigger",
        kind="n8n-nodes-base.manualTrigger",
        position=LAYOUT_ORIGIN,
        notes=detail,
    )


def describe_trigger(request: WorkflowRequest) -> str:
    if request.trigger_detail:
        return request.trigger_detail
    return {
        "scheduled": "Default schedule (daily at 09:00)",
        "inbound-request": "Webhook configuration needed",
        "ad-hoc": "Run on demand",
    }[request.trigger_kind]


def default_schedule_applied(graph: WorkflowGraph, detail: str | None) -> bool:
    """True when a schedule trigger in the graph runs on the daily default
    because ``detail`` was missing or not understood."""
    if parse_schedule(detail)[1]:
        return False
    for node in graph.nodes:
        if node.kind != "n8n-nodes-base.cron":
            continue
        times = node.parameters.get("triggerTimes")
        items = times.get("item") if isinstance(times, dict) else None
        if isinstance(items, list) and DEFAULT_SCHEDULE_ITEM in items:
            return True
    return False
