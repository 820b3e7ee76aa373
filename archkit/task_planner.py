from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from archkit.dependency_rules import Violation
from archkit.errors import BindingMissing, UnresolvedPlaceholder
from archkit.placeholders import Binding, resolve
from archkit.rule_evaluator import RuleResult
from archkit.spec_types import TaskStep, TaskTemplate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedStep:
    order: int
    layer: str
    description: str
    template: str | None = None
    validation: str | None = None
    findings: tuple[str, ...] = ()


def _resolve_step(task: TaskTemplate, step: TaskStep, binding: Binding) -> PlannedStep:
    def text(value: str | None) -> str | None:
        if value is None:
            return None
        try:
            return resolve(value, binding)
        except UnresolvedPlaceholder as exc:
            raise BindingMissing(
                exc.token, task_id=task.id, step_order=step.order, tokens=exc.tokens
            ) from exc

    return PlannedStep(
        order=step.order,
        layer=step.layer,
        description=text(step.description) or "",
        template=text(step.template),
        validation=text(step.validation),
    )


def plan(task_template: TaskTemplate, bindings: Binding | Mapping[str, str]) -> tuple[PlannedStep, ...]:
    """Expand a task template into its checklist; nothing is returned unless every step resolves."""

    binding = Binding.of(bindings)
    steps = tuple(_resolve_step(task_template, step, binding) for step in task_template.steps)
    logger.debug("Planned %s: %d steps", task_template.id, len(steps))
    return steps


def annotate_plan(
    steps: Iterable[PlannedStep],
    *,
    violations: Iterable[Violation] = (),
    results: Iterable[RuleResult] = (),
) -> tuple[PlannedStep, ...]:
    """Attach dependency violations and failed rules to the steps touching the same layer."""

    by_layer: dict[str, list[str]] = {}
    for violation in violations:
        by_layer.setdefault(violation.from_layer, []).append(violation.describe())
    for result in results:
        if result.status != "fail":
            continue
        note = f"[{result.severity}] {result.rule_id}: {result.detail}".rstrip(": ")
        by_layer.setdefault(result.layer, []).append(note)

    annotated: list[PlannedStep] = []
    for step in steps:
        notes = tuple(by_layer.get(step.layer, ()))
        annotated.append(replace(step, findings=step.findings + notes) if notes else step)
    return tuple(annotated)
