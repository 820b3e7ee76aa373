from __future__ import annotations

import difflib
import logging
import threading
from collections import Counter
from typing import Any, Iterable, Mapping

from archkit.errors import (
    DuplicateSpecId,
    InvalidChoice,
    InvalidSpec,
    SpecNotFound,
    UnknownOption,
)
from archkit.spec_parsing import spec_from_mapping
from archkit.spec_types import WILDCARD_LAYER, ArchitectureSpec

logger = logging.getLogger(__name__)

# Dependency targets that are not layers of a spec but are still meaningful in
# can_import/cannot_import lists (libraries, shared modules, infrastructure).
DEFAULT_EXTERNAL_CATEGORIES: frozenset[str] = frozenset(
    {
        "config",
        "database",
        "database-direct",
        "dto",
        "express",
        "external-services",
        "http",
        "logging",
        "middleware",
        "model",
        "models",
        "monitoring",
        "orm",
        "other-consumers",
        "producer",
        "query-builder",
        "request",
        "response",
        "types",
        "utils",
        "validation",
    }
)


def spec_problems(spec: ArchitectureSpec, *, external_categories: frozenset[str]) -> list[str]:
    """Cross-field invariants that a single dataclass cannot check on its own."""

    problems: list[str] = []
    names = spec.layer_names()
    known_layers = set(names)

    duplicates = sorted(name for name, count in Counter(names).items() if count > 1)
    if duplicates:
        problems.append(f"duplicate layer names: {', '.join(duplicates)}")

    missing = [name for name in spec.base.layers if name not in known_layers]
    if missing:
        problems.append(f"base.layers references undefined layers: {', '.join(missing)}")

    allowed_targets = known_layers | external_categories
    for layer in spec.layers:
        unknown = sorted(t for t in layer.dependencies.referenced() if t not in allowed_targets)
        if unknown:
            problems.append(
                f"layer {layer.name} dependencies reference unknown layers: {', '.join(unknown)}"
            )

    seen_rules: set[tuple[str, str]] = set()
    for rule in spec.rules.evaluable():
        if rule.layer != WILDCARD_LAYER and rule.layer not in allowed_targets:
            problems.append(f"rule {rule.id} targets unknown layer: {rule.layer}")
        key = (rule.id, rule.layer)
        if key in seen_rules:
            problems.append(f"duplicate rule: {rule.id} (layer {rule.layer})")
        seen_rules.add(key)

    task_ids = [task.id for task in spec.task_templates]
    task_duplicates = sorted(tid for tid, count in Counter(task_ids).items() if count > 1)
    if task_duplicates:
        problems.append(f"duplicate task template ids: {', '.join(task_duplicates)}")

    return problems


class SpecRegistry:
    """Read-mostly store of architecture specs keyed by id.

    Writes go through a lock and publish a fresh dict, so readers never see a
    half-registered spec and never need to lock.
    """

    def __init__(self, *, external_categories: Iterable[str] = DEFAULT_EXTERNAL_CATEGORIES):
        self.external_categories = frozenset(
            str(item).strip() for item in external_categories if str(item).strip()
        )
        self._by_id: Mapping[str, ArchitectureSpec] = {}
        self._write_lock = threading.Lock()

    @classmethod
    def from_specs(
        cls,
        specs: Iterable[ArchitectureSpec],
        *,
        external_categories: Iterable[str] = DEFAULT_EXTERNAL_CATEGORIES,
    ) -> "SpecRegistry":
        registry = cls(external_categories=external_categories)
        for spec in specs:
            registry.register(spec)
        return registry

    def __contains__(self, spec_id: object) -> bool:
        return isinstance(spec_id, str) and spec_id.strip() in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def register(self, spec: ArchitectureSpec) -> ArchitectureSpec:
        if not isinstance(spec, ArchitectureSpec):
            raise TypeError(f"register() expects an ArchitectureSpec (type={type(spec).__name__})")

        problems = spec_problems(spec, external_categories=self.external_categories)
        if problems:
            raise InvalidSpec(spec.id, problems)

        with self._write_lock:
            if spec.id in self._by_id:
                raise DuplicateSpecId(spec.id)
            updated = dict(self._by_id)
            updated[spec.id] = spec
            self._by_id = updated

        logger.debug("Registered architecture spec %s (%d layers)", spec.id, len(spec.layers))
        return spec

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_id.keys()))

    def describe(self) -> tuple[dict[str, Any], ...]:
        rows: list[dict[str, Any]] = []
        for spec in sorted(self._by_id.values(), key=lambda s: s.id):
            rows.append(
                {
                    "spec_id": spec.id,
                    "name": spec.name,
                    "description": spec.description,
                    "layers": list(spec.base.layers),
                    "dependency_flow": spec.base.dependency_flow,
                    "options": {key: option.default for key, option in spec.options.items()},
                    "templates": sorted(spec.templates.keys()),
                    "task_templates": [task.id for task in spec.task_templates],
                }
            )
        return tuple(rows)

    def get(self, spec_id: str) -> ArchitectureSpec:
        key = (spec_id or "").strip()
        spec = self._by_id.get(key)
        if spec is None:
            raise SpecNotFound(spec_id, self.suggest(key))
        return spec

    def suggest(self, spec_id: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (spec_id or "").strip()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))

    def validate_option(self, spec_id: str, option_key: str, value: str) -> None:
        spec = self.get(spec_id)
        option = spec.options.get((option_key or "").strip())
        if option is None:
            raise UnknownOption(spec.id, option_key, sorted(spec.options.keys()))
        if not isinstance(value, str) or value.strip() not in option.choices:
            raise InvalidChoice(spec.id, option_key, value, option.choices)

    def resolve_options(self, spec_id: str, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return every option of the spec, defaults filled in, overrides validated."""

        spec = self.get(spec_id)
        resolved = {key: option.default for key, option in spec.options.items()}
        for key, value in (overrides or {}).items():
            self.validate_option(spec.id, key, value)
            resolved[key.strip()] = value.strip()
        return resolved


def load_specs(
    source: Iterable[ArchitectureSpec | Mapping[str, Any]],
    *,
    external_categories: Iterable[str] = DEFAULT_EXTERNAL_CATEGORIES,
) -> SpecRegistry:
    """Build a registry from spec values or raw spec mappings."""

    registry = SpecRegistry(external_categories=external_categories)
    for idx, item in enumerate(source):
        spec = item if isinstance(item, ArchitectureSpec) else spec_from_mapping(item, path=f"specs[{idx}]")
        registry.register(spec)
    logger.info("Loaded %d architecture specs: %s", len(registry), ", ".join(registry.available()))
    return registry
