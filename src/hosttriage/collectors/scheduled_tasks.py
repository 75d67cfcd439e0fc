"""Scheduled task collector.

Emits one Finding per task action: a task with three actions yields
three Findings under the same Location and Name, and a task with no
actions yields none.
"""

from collections.abc import Iterator
from typing import ClassVar

from hosttriage.collectors.base import BaseCollector, CollectorRegistry
from hosttriage.core.config import TriageConfig
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import RawTask, RawTaskAction, SourceSet, TaskSchedulerSource


@CollectorRegistry.register
class ScheduledTaskCollector(BaseCollector):
    """Task actions with run state and run-as principal."""

    name: ClassVar[str] = "scheduled_tasks"
    category: ClassVar[FindingCategory] = FindingCategory.SCHEDULED_TASK
    description: ClassVar[str] = "Scheduled task actions"

    def __init__(self, scheduler: TaskSchedulerSource, normalizer: FindingNormalizer) -> None:
        super().__init__(normalizer)
        self.scheduler = scheduler

    @classmethod
    def from_config(
        cls,
        sources: SourceSet,
        config: TriageConfig,
        normalizer: FindingNormalizer,
    ) -> "ScheduledTaskCollector":
        return cls(sources.tasks, normalizer)

    @property
    def marker_location(self) -> str:
        return "TaskScheduler"

    def collect(self) -> Iterator[Finding]:
        for task in self.scheduler.iter_tasks():
            for action in task.actions:
                yield self._action_finding(task, action)

    def _action_finding(self, task: RawTask, action: RawTaskAction) -> Finding:
        command = f"{action.execute or ''} {action.arguments or ''}".strip()

        extra = task.state
        if task.principal_error:
            # User stays empty either way; Extra tells "lookup failed" apart
            extra = f"{task.state}; user lookup failed: {task.principal_error}"

        return self.normalizer.normalize(
            self.category,
            location=task.path,
            name=task.name,
            value=command,
            user=task.principal,
            extra=extra,
        )
