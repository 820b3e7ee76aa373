import pytest

from archkit.errors import InvalidSpec
from archkit.placeholders import render_layer_template
from archkit.rule_evaluator import FileFacts, StaticFacts, evaluate
from archkit.task_planner import plan
from archspec.catalog import (
    build_registry,
    catalog_predicates,
    load_builtin_specs,
    load_shared_rules,
    load_spec_files,
    shared_rules_for,
)


def test_builtin_catalog_loads_both_architectures():
    registry = build_registry()

    assert registry.available() == ("controller-service-repository", "queue-architecture")
    csr = registry.get("controller-service-repository")
    assert csr.base.layers == ("controller", "service", "repository")
    assert csr.options["repository_returns"].default == "entity"
    assert set(csr.templates["repository"].data_access_variants) == {"prisma", "typeorm", "knex"}
    assert csr.style.guide == "airbnb"
    assert csr.ai_guidance.preferred_libraries["validation"] == "joi"


def test_render_controller_template_for_order():
    spec = build_registry().get("controller-service-repository")

    rendered = render_layer_template(spec.templates["controller"], {"ResourceName": "Order"})

    assert rendered.file_name == "order.controller.ts"
    assert "export class OrderController {" in rendered.body
    assert "this.orderService.findById(id)" in rendered.body
    assert "import { Request, Response, NextFunction } from 'express';" in rendered.body


def test_render_knex_repository_uses_plural_table_name():
    spec = build_registry().get("controller-service-repository")

    rendered = render_layer_template(
        spec.templates["repository"], {"ResourceName": "OrderItem"}, variant="knex"
    )
    assert "private readonly table = 'order_items';" in rendered.body


def test_render_queue_consumer_casings():
    spec = build_registry().get("queue-architecture")

    rendered = render_layer_template(spec.templates["consumer"], {"QueueName": "EmailQueue"})
    assert rendered.file_name == "emailQueue.consumer.ts"
    assert "export class EmailQueueConsumer" in rendered.body
    assert "this.jobHandler.run('EMAIL_QUEUE', message)" in rendered.body


def test_plan_add_crud_endpoint():
    spec = build_registry().get("controller-service-repository")

    steps = plan(spec.task_template("add-crud-endpoint"), {"ResourceName": "Order"})

    assert [s.order for s in steps] == [1, 2, 3, 4, 5, 6]
    assert steps[0].layer == "dto"
    assert steps[4].description == "Create OrderController endpoints under /orders"


def test_plan_add_new_queue_uses_kebab_token():
    spec = build_registry().get("queue-architecture")

    steps = plan(spec.task_template("add-new-queue"), {"QueueName": "EmailQueue"})

    assert len(steps) == 7
    assert steps[4].description == "Add monitoring and metrics for the email-queue queue"


def test_shared_rules_for_filters_by_layer():
    registry = build_registry()
    rules = load_shared_rules()

    csr_rules = shared_rules_for(registry.get("controller-service-repository"), rules)
    queue_rules = shared_rules_for(registry.get("queue-architecture"), rules)

    assert len(rules) == 22
    assert len(csr_rules) == 22
    assert {r.layer for r in queue_rules} == {"*"}
    assert [r.layer for r in csr_rules if r.id == "no-business-logic"] == ["controller", "repository"]


def test_catalog_predicates_evaluate_csr_rules():
    spec = build_registry().get("controller-service-repository")
    facts = StaticFacts(
        file_facts=(
            FileFacts("src/orders/order.controller.ts", "controller", 40, {"try-catch"}, ("service",)),
            FileFacts("src/orders/order.service.ts", "service", 60, {"returns-dto"}, ("repository", "express")),
        ),
        attributes={"repository_returns": "entity"},
    )

    results = evaluate(spec, facts, predicates=catalog_predicates())
    statuses = {r.rule_id: r.status for r in results}

    assert statuses == {
        "controller-error-handling": "pass",
        "service-returns-dtos": "pass",
        "repository-returns-entities": "pass",
        "controller-database-imports": "pass",
        "service-http-imports": "fail",
    }


def test_extra_spec_paths_and_invalid_documents(tmp_path):
    (tmp_path / "broken.yaml").write_text(
        "id: broken\nname: Broken\nbase:\n  layers: [a]\nlayers:\n  - name: a\nflavour: x\n",
        encoding="utf-8",
    )

    with pytest.raises(InvalidSpec, match=r"Unknown keys under .*broken.yaml: flavour"):
        load_spec_files([tmp_path])

    with pytest.raises(FileNotFoundError, match=r"Spec catalog path not found"):
        build_registry(paths=[tmp_path / "missing"])


def test_extra_spec_file_joins_builtin_catalog(tmp_path):
    (tmp_path / "two-tier.yaml").write_text(
        "\n".join(
            [
                "id: two-tier",
                "name: Two tier",
                "base:",
                "  layers: [web, db]",
                "layers:",
                "  - name: web",
                "    dependencies:",
                "      can_import: [db, graphql]",
                "  - name: db",
                "",
            ]
        ),
        encoding="utf-8",
    )

    registry = build_registry(paths=[tmp_path], external_categories=["graphql"])
    assert "two-tier" in registry
    assert len(registry) == 3


def test_load_builtin_specs_skips_shared_rules_file():
    specs = load_builtin_specs()
    assert [spec.id for spec in specs] == ["controller-service-repository", "queue-architecture"]
