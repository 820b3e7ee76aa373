import pytest

from archkit.dependency_rules import Violation
from archkit.errors import BindingMissing, UnresolvedPlaceholder
from archkit.rule_evaluator import RuleResult
from archkit.spec_types import TaskStep, TaskTemplate
from archkit.task_planner import annotate_plan, plan


def _crud_task() -> TaskTemplate:
    return TaskTemplate(
        id="add-crud-endpoint",
        steps=(
            TaskStep(1, "Create DTOs for {{ResourceName}}", "dto", "export interface Create{{ResourceName}}DTO {}"),
            TaskStep(2, "Implement {{ResourceName}}Service", "service", validation="Service owns business rules"),
            TaskStep(3, "Expose /{resource-name-plural}", "controller"),
        ),
    )


def test_plan_resolves_every_step_in_order():
    steps = plan(_crud_task(), {"ResourceName": "Order"})

    assert [s.order for s in steps] == [1, 2, 3]
    assert steps[0].description == "Create DTOs for Order"
    assert steps[0].template == "export interface CreateOrderDTO {}"
    assert steps[1].validation == "Service owns business rules"
    assert steps[2].description == "Expose /orders"
    assert all(s.findings == () for s in steps)


def test_plan_is_all_or_nothing():
    task = TaskTemplate(
        id="add-crud-endpoint",
        steps=(
            TaskStep(1, "Create {{ResourceName}}", "service"),
            TaskStep(2, "Wire {{UnknownToken}} into {{ResourceName}}", "controller"),
        ),
    )

    result = None
    with pytest.raises(BindingMissing) as excinfo:
        result = plan(task, {"ResourceName": "Order"})

    assert result is None
    assert excinfo.value.token == "UnknownToken"
    assert excinfo.value.task_id == "add-crud-endpoint"
    assert excinfo.value.step_order == 2
    assert isinstance(excinfo.value, UnresolvedPlaceholder)
    assert "UnknownToken" in str(excinfo.value)


def test_plan_of_empty_task_is_empty():
    assert plan(TaskTemplate(id="noop", steps=()), {}) == ()


def test_annotate_plan_attaches_findings_by_layer():
    steps = plan(_crud_task(), {"ResourceName": "Order"})
    violation = Violation(
        kind="ImportNotDeclared",
        from_layer="service",
        to_layer="http",
        detail="http is not in the can_import list of service",
    )
    failed = RuleResult(
        rule_id="controller-error-handling",
        layer="controller",
        severity="error",
        status="fail",
        detail="missing try-catch: a.ts",
        rule_set="required",
    )
    passed = RuleResult(
        rule_id="service-returns-dtos",
        layer="service",
        severity="error",
        status="pass",
        detail="ok",
        rule_set="required",
    )

    annotated = annotate_plan(steps, violations=[violation], results=[failed, passed])

    assert annotated[0].findings == ()
    assert annotated[1].findings == (violation.describe(),)
    assert annotated[2].findings == ("[error] controller-error-handling: missing try-catch: a.ts",)
    assert annotated[0] is steps[0]
