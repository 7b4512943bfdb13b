"""Trigger planning and binding for collector compute targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from aws_cdk import Duration, aws_events as events, aws_events_targets as targets
from constructs import Construct

from infrastructure.config.settings import CollectorSettings
from infrastructure.core.compute import COLLECTOR_NAME, EVENTS_COLLECTOR_NAME, ComputeTarget
from infrastructure.core.errors import ConfigurationError


@dataclass(frozen=True)
class ScheduleTrigger:
    """Fixed-interval schedule invoking one entry point."""

    entry_point: str
    interval_minutes: int
    construct_id: str = "CollectorSchedule"

    def schedule(self) -> events.Schedule:
        return events.Schedule.rate(Duration.minutes(self.interval_minutes))


@dataclass(frozen=True)
class EventPatternTrigger:
    """Event-pattern subscription invoking one entry point."""

    entry_point: str
    sources: Tuple[str, ...]
    construct_id: str = "EventsCollectorRule"

    def pattern(self) -> events.EventPattern:
        return events.EventPattern(source=list(self.sources))


TriggerSpec = Union[ScheduleTrigger, EventPatternTrigger]


def plan_triggers(settings: CollectorSettings) -> list[TriggerSpec]:
    """Return the triggers the variant needs; a continuous run mode has no schedule."""
    variant = settings.variant
    triggers: list[TriggerSpec] = []
    if variant.scheduled:
        triggers.append(ScheduleTrigger(COLLECTOR_NAME, settings.schedule_interval_minutes))
    if variant.events_trigger:
        triggers.append(EventPatternTrigger(EVENTS_COLLECTOR_NAME, settings.events_sources))
    return triggers


def bind_trigger(scope: Construct, *, env_name: str, trigger: TriggerSpec, target: ComputeTarget) -> events.Rule:
    """Create the EventBridge rule for ``trigger`` and point it at ``target``."""
    if trigger.entry_point != target.entry_point.name:
        raise ConfigurationError(
            f"Trigger for {trigger.entry_point} cannot be bound to entry point {target.entry_point.name}"
        )
    if target.function is None:
        raise ConfigurationError(f"Entry point {target.entry_point.name} is not invocable by a trigger")

    if isinstance(trigger, ScheduleTrigger):
        rule = events.Rule(
            scope,
            trigger.construct_id,
            rule_name=f"{env_name}-{trigger.entry_point}-schedule",
            description=f"Run {trigger.entry_point} every {trigger.interval_minutes} minutes",
            schedule=trigger.schedule(),
        )
    else:
        rule = events.Rule(
            scope,
            trigger.construct_id,
            rule_name=f"{env_name}-{trigger.entry_point}-events",
            description=f"Forward {', '.join(trigger.sources)} events to {trigger.entry_point}",
            event_pattern=trigger.pattern(),
        )

    rule.add_target(targets.LambdaFunction(target.function))
    return rule
