from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence

from archkit.dependency_rules import check_graph
from archkit.errors import ArchkitError
from archkit.placeholders import render_layer_template
from archkit.rule_evaluator import StaticFacts, evaluate
from archkit.spec_registry import SpecRegistry
from archkit.task_planner import annotate_plan, plan
from archspec.app_config import AppConfig
from archspec.catalog import build_registry, catalog_predicates, shared_rules_for
from archspec.facts_io import load_facts
from archspec.foundation.config_io import load_config
from archspec.foundation.logging_utils import setup_logger
from archspec.project_config import ProjectConfig, pick_variant, render_component, validate_project
from archspec.reporting import (
    plan_frame,
    render_text_table,
    rule_results_frame,
    summarize_results,
    violations_frame,
    write_csv,
)

logger = logging.getLogger("archspec.cli")

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2


def _pairs(values: Sequence[str] | None, *, flag: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for raw in values or ():
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"{flag} expects KEY=VALUE (got {raw!r})")
        out[key.strip()] = value.strip()
    return out


def _edge(raw: str) -> tuple[str, str]:
    source, sep, target = raw.partition(":")
    if not sep or not source.strip() or not target.strip():
        raise ValueError(f"--edge expects FROM:TO (got {raw!r})")
    return source.strip(), target.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="archspec", add_help=True)
    parser.add_argument(
        "--config",
        "--config-path",
        dest="config_path",
        help="Host config.yaml (default: $ARCHSPEC_CONFIG or config/config.yaml under the repo root).",
    )
    parser.add_argument("--log-level", dest="log_level", help="Override logging.level from config.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list-specs", help="List registered architecture specs")

    show = sub.add_parser("show", help="Show layers, options, templates and tasks of a spec")
    show.add_argument("spec_id")

    render = sub.add_parser("render", help="Render layer templates with placeholder bindings")
    render.add_argument("spec_id", nargs="?")
    render.add_argument("--bind", action="append", default=[], help="Placeholder binding KEY=VALUE (repeatable)")
    render.add_argument("--template", action="append", dest="templates", help="Template name (repeatable; default: all)")
    render.add_argument("--variant", help="Data-access variant to render")
    render.add_argument("--option", action="append", default=[], help="Architecture option KEY=VALUE (repeatable)")
    render.add_argument("--project", help="Project file; render a component's templates into project paths")
    render.add_argument("--component", help="Component name inside --project")
    render.add_argument("--out", help="Write rendered files under this directory instead of printing")

    plan_cmd = sub.add_parser("plan", help="Expand a task template into an ordered checklist")
    plan_cmd.add_argument("spec_id")
    plan_cmd.add_argument("task_id")
    plan_cmd.add_argument("--bind", action="append", default=[], help="Placeholder binding KEY=VALUE (repeatable)")
    plan_cmd.add_argument("--facts", help="Facts file (CSV or YAML) used to annotate steps with findings")
    plan_cmd.add_argument("--csv", dest="csv_path", help="Write the plan as CSV")

    check = sub.add_parser("check", help="Check layer import edges against a spec")
    check.add_argument("spec_id")
    check.add_argument("--edge", action="append", default=[], help="Import edge FROM:TO (repeatable)")
    check.add_argument("--facts", help="Facts file (CSV or YAML) providing import edges")
    check.add_argument("--csv", dest="csv_path", help="Write violations as CSV")

    evaluate_cmd = sub.add_parser("evaluate", help="Evaluate a spec's rules against codebase facts")
    evaluate_cmd.add_argument("spec_id")
    evaluate_cmd.add_argument("--facts", required=True, help="Facts file (CSV or YAML)")
    evaluate_cmd.add_argument("--no-shared", action="store_true", dest="no_shared", help="Skip shared rules")
    evaluate_cmd.add_argument("--csv", dest="csv_path", help="Write rule results as CSV")

    validate = sub.add_parser("validate-project", help="Validate a project file against the registry")
    validate.add_argument("project")

    return parser


def _load_app(args: argparse.Namespace) -> tuple[AppConfig, SpecRegistry]:
    cfg, meta = load_config(config_path=args.config_path)
    app, warnings = AppConfig.from_dict(cfg)
    level = (args.log_level or app.logging.level).upper()
    setup_logger(level=getattr(logging, level, logging.INFO), log_file=app.logging.file)
    logger.debug("Config mode=%s paths=%s", meta.get("mode"), meta.get("paths"))
    for warning in warnings:
        logger.warning(warning)

    registry = build_registry(
        include_builtin=app.catalog.include_builtin,
        paths=app.catalog.paths,
        external_categories=app.external_categories,
    )
    return app, registry


def list_specs(registry: SpecRegistry) -> int:
    for row in registry.describe():
        print(f"{row['spec_id']}\t{row['name']}\t{' -> '.join(row['layers'])}\t{row['dependency_flow']}")
    return EXIT_OK


def show_spec(registry: SpecRegistry, spec_id: str) -> int:
    spec = registry.get(spec_id)
    print(f"{spec.id}: {spec.name}")
    if spec.description:
        print(spec.description)
    print(f"flow: {spec.base.dependency_flow}  error_handling: {spec.base.error_handling}")
    print("layers:")
    for layer in spec.layers:
        allowed = ", ".join(sorted(layer.dependencies.can_import)) or "<none>"
        print(f"  {layer.name}\t{layer.purpose}\tcan_import: {allowed}")
    if spec.options:
        print("options:")
        for key, option in spec.options.items():
            print(f"  {key}\tdefault={option.default}\tchoices={', '.join(option.choices)}")
    if spec.templates:
        print("templates:")
        for name, template in spec.templates.items():
            variants = ", ".join(template.data_access_variants) or "<none>"
            print(f"  {name}\t{template.file_name_pattern}\tvariants: {variants}")
    if spec.task_templates:
        print("tasks:")
        for task in spec.task_templates:
            print(f"  {task.id}\t{len(task.steps)} steps\t{task.description or ''}")
    return EXIT_OK


def _emit_file(path: str, body: str, out_dir: str | None) -> None:
    if not out_dir:
        print(f"--- {path}")
        print(body)
        return
    target = os.path.join(out_dir, path)
    os.makedirs(os.path.dirname(os.path.abspath(target)), exist_ok=True)
    with open(target, "w", encoding="utf-8") as handle:
        handle.write(body)
    logger.info("Wrote %s", target)


def render_templates(registry: SpecRegistry, args: argparse.Namespace) -> int:
    bindings = _pairs(args.bind, flag="--bind")

    if args.project:
        project = ProjectConfig.from_file(args.project)
        if not args.component:
            raise ValueError("--project requires --component")
        placed = render_component(registry, project.component(args.component), bindings)
        for item in placed:
            _emit_file(item.path, item.rendered.body, args.out)
        return EXIT_OK

    if not args.spec_id:
        raise ValueError("render requires a spec id or --project/--component")
    spec = registry.get(args.spec_id)
    overrides = _pairs(args.option, flag="--option")
    options = registry.resolve_options(spec.id, overrides)

    names = args.templates or list(spec.templates)
    for name in names:
        if name not in spec.templates:
            available = ", ".join(sorted(spec.templates)) or "<none>"
            raise ValueError(f"Unknown template for {spec.id}: {name} (available: {available})")
    selected = {name: spec.templates[name] for name in names}

    if args.variant and not any(args.variant in t.data_access_variants for t in selected.values()):
        offered = sorted({v for t in selected.values() for v in t.data_access_variants})
        raise ValueError(
            f"Unknown data access variant for {', '.join(selected)}: {args.variant} "
            f"(available: {', '.join(offered) or '<none>'})"
        )

    candidates = [args.variant, *overrides.values(), *options.values()]
    for name, layer_template in selected.items():
        variant = pick_variant(layer_template, candidates)
        rendered = render_layer_template(layer_template, bindings, template_name=name, variant=variant)
        _emit_file(rendered.file_name, rendered.body, args.out)
    return EXIT_OK


def plan_task(registry: SpecRegistry, args: argparse.Namespace) -> int:
    spec = registry.get(args.spec_id)
    steps = plan(spec.task_template(args.task_id), _pairs(args.bind, flag="--bind"))

    if args.facts:
        facts = load_facts(args.facts)
        steps = annotate_plan(
            steps,
            violations=check_graph(spec, facts.import_edges()),
            results=evaluate(spec, facts, predicates=catalog_predicates()),
        )

    for step in steps:
        print(f"{step.order}. [{step.layer}] {step.description}")
        if step.validation:
            print(f"     check: {step.validation}")
        for finding in step.findings:
            print(f"     ! {finding}")
    if args.csv_path:
        logger.info("Wrote %s", write_csv(plan_frame(steps), args.csv_path))
    return EXIT_OK


def check_edges(registry: SpecRegistry, args: argparse.Namespace) -> int:
    spec = registry.get(args.spec_id)
    edges = {_edge(raw) for raw in args.edge}
    if args.facts:
        edges |= set(load_facts(args.facts).import_edges())
    if not edges:
        raise ValueError("check requires at least one --edge or --facts")

    violations = check_graph(spec, edges)

    df = violations_frame(violations)
    print(render_text_table(df))
    if args.csv_path:
        logger.info("Wrote %s", write_csv(df, args.csv_path))
    return EXIT_FINDINGS if violations else EXIT_OK


def evaluate_rules(app: AppConfig, registry: SpecRegistry, args: argparse.Namespace) -> int:
    spec = registry.get(args.spec_id)
    facts: StaticFacts = load_facts(args.facts)
    extra = () if (args.no_shared or not app.catalog.shared_rules) else shared_rules_for(spec)
    results = evaluate(spec, facts, predicates=catalog_predicates(), extra_rules=extra)

    df = rule_results_frame(results)
    print(render_text_table(df))
    print()
    print(render_text_table(summarize_results(results)))
    if args.csv_path:
        logger.info("Wrote %s", write_csv(df, args.csv_path))
    return EXIT_FINDINGS if any(r.failed for r in results) else EXIT_OK


def validate_project_file(registry: SpecRegistry, path: str) -> int:
    project = ProjectConfig.from_file(path)
    resolved = validate_project(registry, project)
    for name, component in resolved.items():
        options = ", ".join(f"{k}={v}" for k, v in sorted(component.options.items())) or "<none>"
        print(f"{name}\t{component.spec.id}\t{options}")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    try:
        app, registry = _load_app(args)

        if args.command == "list-specs":
            return list_specs(registry)
        if args.command == "show":
            return show_spec(registry, args.spec_id)
        if args.command == "render":
            return render_templates(registry, args)
        if args.command == "plan":
            return plan_task(registry, args)
        if args.command == "check":
            return check_edges(registry, args)
        if args.command == "evaluate":
            return evaluate_rules(app, registry, args)
        if args.command == "validate-project":
            return validate_project_file(registry, args.project)
    except (ArchkitError, ValueError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
