"""Bundled architecture catalog and the predicates that make its rules checkable.

Catalog predicates read pattern tags from `FileFacts.patterns`. The tags are a
contract with whatever fact provider scans the real code base (see
`archspec.facts_io`): e.g. a controller file tagged `try-catch` satisfies
`controller-error-handling`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Iterator

from archkit.config_namespace import ConfigNamespace
from archkit.rule_evaluator import (
    PredicateRegistry,
    default_predicates,
    forbids_imports,
    forbids_pattern,
    requires_attribute,
    requires_pattern,
)
from archkit.spec_parsing import rule_from_namespace, spec_from_mapping
from archkit.spec_registry import DEFAULT_EXTERNAL_CATEGORIES, SpecRegistry, load_specs
from archkit.spec_types import ArchitectureSpec, Rule
from archspec.foundation.config_io import load_yaml_document, load_yaml_mapping

logger = logging.getLogger(__name__)

CATALOG_DIR = Path(__file__).resolve().parent
SHARED_RULES_FILE = CATALOG_DIR / "shared-rules.yaml"


def _spec_files(path: str | os.PathLike[str]) -> list[Path]:
    target = Path(path)
    if target.is_dir():
        return sorted(
            p
            for p in target.iterdir()
            if p.suffix in (".yaml", ".yml") and p.name != SHARED_RULES_FILE.name
        )
    if not target.exists():
        raise FileNotFoundError(f"Spec catalog path not found: {target}")
    return [target]


def iter_spec_documents(paths: Iterable[str | os.PathLike[str]]) -> Iterator[tuple[str, Any]]:
    """Yield (source, document) for every YAML spec file under `paths`.

    A file may hold a single spec mapping or a list of them.
    """

    for path in paths:
        for file_path in _spec_files(path):
            payload = load_yaml_document(file_path)
            if isinstance(payload, list):
                for idx, item in enumerate(payload):
                    yield f"{file_path}[{idx}]", item
            elif payload is not None:
                yield str(file_path), payload


def load_spec_files(paths: Iterable[str | os.PathLike[str]]) -> list[ArchitectureSpec]:
    specs = [spec_from_mapping(document, path=source) for source, document in iter_spec_documents(paths)]
    logger.debug("Parsed %d spec documents", len(specs))
    return specs


def load_builtin_specs() -> list[ArchitectureSpec]:
    return load_spec_files([CATALOG_DIR])


def build_registry(
    *,
    include_builtin: bool = True,
    paths: Iterable[str | os.PathLike[str]] = (),
    external_categories: Iterable[str] = (),
) -> SpecRegistry:
    """Load the bundled catalog and/or extra spec files into one registry."""

    sources: list[str | os.PathLike[str]] = [CATALOG_DIR] if include_builtin else []
    sources.extend(paths)
    categories = DEFAULT_EXTERNAL_CATEGORIES | frozenset(external_categories)
    return load_specs(load_spec_files(sources), external_categories=categories)


def load_shared_rules(path: str | os.PathLike[str] = SHARED_RULES_FILE) -> tuple[Rule, ...]:
    """All shared rules followed by the per-layer rule lists, in file order."""

    ns = ConfigNamespace(load_yaml_mapping(path), path=str(path))
    rules = [rule_from_namespace(item) for item in ns.namespaces("shared", default=[])]
    layers_ns = ns.namespace("layers", default=None)
    for layer in layers_ns.keys():
        rules.extend(rule_from_namespace(item) for item in layers_ns.namespaces(layer))
    ns.assert_consumed()
    return tuple(rules)


def shared_rules_for(spec: ArchitectureSpec, rules: Iterable[Rule] | None = None) -> tuple[Rule, ...]:
    """Shared rules that apply to `spec`: wildcard rules plus rules for its layers."""

    pool = load_shared_rules() if rules is None else tuple(rules)
    return tuple(rule for rule in pool if any(rule.applies_to(name) for name in spec.layer_names()))


def catalog_predicates() -> PredicateRegistry:
    registry = PredicateRegistry(
        {
            # controller-service-repository
            "controller-error-handling": requires_pattern("try-catch"),
            "service-returns-dtos": requires_pattern("returns-dto"),
            "repository-returns-entities": requires_attribute("repository_returns", "entity"),
            "controller-database-imports": forbids_imports("database", "orm", "model", "repository"),
            "service-http-imports": forbids_imports("http", "express", "request", "response"),
            # queue-architecture
            "consumer-processing-result": requires_pattern("processing-result"),
            "consumer-queue-settings": requires_pattern("queue-settings"),
            "queue-manager-monitoring": requires_pattern("monitoring"),
            "job-handler-retry-limits": requires_pattern("retry-limit"),
            "consumer-manages-infrastructure": forbids_pattern("queue-infrastructure"),
            "queue-manager-business-logic": forbids_pattern("business-logic"),
            "job-handler-consumer-coupling": forbids_imports("consumer"),
            # shared
            "explicit-error-handling": requires_pattern("error-handling"),
            "input-validation": requires_pattern("input-validation"),
            "no-business-logic": forbids_pattern("business-logic"),
            "sql-injection-prevention": forbids_pattern("raw-sql"),
        }
    )
    return default_predicates().merged(registry)
