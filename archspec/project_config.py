"""Per-project configuration: which architecture each component follows.

A project file names its components, and for each one the architecture id,
option choices, data-access backend, naming patterns and file layout. The
architecture itself stays in the catalog; this module only validates the
references and turns them into concrete file paths and rendered templates.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Mapping

from archkit.config_namespace import ConfigNamespace
from archkit.placeholders import Binding, RenderedFile, kebab_case, pluralize, render_layer_template, resolve
from archkit.spec_registry import SpecRegistry
from archkit.spec_types import ArchitectureSpec, LayerTemplate
from archspec.foundation.config_io import load_yaml_mapping

logger = logging.getLogger(__name__)

Language = Literal["nodejs", "typescript", "python", "java"]
FileStructurePattern = Literal["domain-grouped", "layer-grouped", "feature-grouped"]

LANGUAGES = ("nodejs", "typescript", "python", "java")
FILE_STRUCTURE_PATTERNS = ("domain-grouped", "layer-grouped", "feature-grouped")
NAMING_KEYS = ("controllers", "services", "repositories", "models", "interfaces")

DEFAULT_NAMING: Mapping[str, str] = {
    "controllers": "{Resource}Controller",
    "services": "{Resource}Service",
    "repositories": "{Resource}Repository",
    "models": "{Resource}Model",
    "interfaces": "I{Resource}",
}


@dataclass(frozen=True)
class FileStructureConfig:
    root: str = "src"
    pattern: FileStructurePattern = "domain-grouped"


@dataclass(frozen=True)
class ComponentConfig:
    name: str
    language: Language
    framework: str
    architecture: str
    architecture_options: Mapping[str, str] = field(default_factory=dict)
    data_access: str | None = None
    naming: Mapping[str, str] = field(default_factory=dict)
    file_structure: FileStructureConfig = FileStructureConfig()


@dataclass(frozen=True)
class ProjectConfig:
    project: str
    components: Mapping[str, ComponentConfig]

    @staticmethod
    def from_dict(cfg: Mapping[str, Any], *, path: str = "") -> "ProjectConfig":
        ns = ConfigNamespace(dict(cfg), path=path)
        components_ns = ns.namespace("components")
        components: dict[str, ComponentConfig] = {}
        for name in components_ns.keys():
            comp_ns = components_ns.namespace(name)
            structure_ns = comp_ns.namespace("file_structure", default=None)
            naming_ns = comp_ns.namespace("naming", default=None)
            naming = {key: naming_ns.get_str(key) for key in naming_ns.keys() if key in NAMING_KEYS}
            components[name] = ComponentConfig(
                name=name,
                language=comp_ns.get_str("language", choices=LANGUAGES),
                framework=comp_ns.get_str("framework"),
                architecture=comp_ns.get_str("architecture"),
                architecture_options=comp_ns.get_str_mapping("architecture_options", default={}),
                data_access=comp_ns.get_str("data_access", default=None),
                naming=naming,
                file_structure=FileStructureConfig(
                    root=structure_ns.get_str("root", default="src"),
                    pattern=structure_ns.get_str(
                        "pattern", default="domain-grouped", choices=FILE_STRUCTURE_PATTERNS
                    ),
                ),
            )
        if not components:
            raise ValueError(f"{_label(path, 'components')} cannot be empty")
        project = ProjectConfig(project=ns.get_str("project"), components=components)
        ns.assert_consumed()
        return project

    @staticmethod
    def from_file(path: str) -> "ProjectConfig":
        return ProjectConfig.from_dict(load_yaml_mapping(path), path="")

    def component(self, name: str) -> ComponentConfig:
        component = self.components.get((name or "").strip())
        if component is None:
            available = ", ".join(sorted(self.components)) or "<none>"
            raise ValueError(f"Unknown component: {name} (available: {available})")
        return component


def _label(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def pick_variant(template: LayerTemplate, candidates: Iterable[str | None]) -> str | None:
    """The first candidate that names one of the template's data-access variants."""

    for candidate in candidates:
        if candidate and candidate in template.data_access_variants:
            return candidate
    return None


@dataclass(frozen=True)
class ResolvedComponent:
    config: ComponentConfig
    spec: ArchitectureSpec
    options: Mapping[str, str]

    def variant_for(self, template_name: str) -> str | None:
        """The data-access variant to render, if the template offers one.

        `data_access` wins, then an explicitly chosen option value that names a
        variant (e.g. `consumer_pattern: functional`), then option defaults
        (e.g. `queue_backend: bullmq`).
        """

        return pick_variant(
            self.spec.templates[template_name],
            [
                self.config.data_access,
                *self.config.architecture_options.values(),
                *self.options.values(),
            ],
        )


def resolve_component(registry: SpecRegistry, component: ComponentConfig) -> ResolvedComponent:
    spec = registry.get(component.architecture)
    options = registry.resolve_options(spec.id, component.architecture_options)
    return ResolvedComponent(config=component, spec=spec, options=options)


def validate_project(registry: SpecRegistry, project: ProjectConfig) -> dict[str, ResolvedComponent]:
    """Resolve every component; raises on the first unknown spec id or bad option."""

    resolved: dict[str, ResolvedComponent] = {}
    for name, component in project.components.items():
        resolved[name] = resolve_component(registry, component)
        logger.info(
            "Component %s uses %s (options: %s)",
            name,
            component.architecture,
            ", ".join(f"{k}={v}" for k, v in sorted(resolved[name].options.items())) or "<none>",
        )
    return resolved


def component_names(component: ComponentConfig, bindings: Binding | Mapping[str, str]) -> dict[str, str]:
    """Resolve naming patterns such as `{Resource}Controller` for one resource."""

    patterns = dict(DEFAULT_NAMING)
    patterns.update(component.naming)
    binding = Binding.of(bindings)
    return {key: resolve(pattern, binding) for key, pattern in patterns.items()}


def component_file_path(
    component: ComponentConfig,
    *,
    layer: str,
    file_name: str,
    bindings: Binding | Mapping[str, str],
) -> str:
    structure = component.file_structure
    if structure.pattern == "layer-grouped":
        directory = pluralize(kebab_case(layer))
    else:
        binding = Binding.of(bindings)
        if not binding.values:
            raise ValueError(f"{structure.pattern} layout needs at least one binding")
        # Domain folders are named after the first bound resource: Order -> orders/
        directory = pluralize(kebab_case(next(iter(binding.values.values()))))
        if structure.pattern == "feature-grouped":
            directory = posixpath.join("features", directory)
    return posixpath.join(structure.root, directory, file_name)


@dataclass(frozen=True)
class PlacedFile:
    path: str
    rendered: RenderedFile


def render_component(
    registry: SpecRegistry,
    component: ComponentConfig,
    bindings: Binding | Mapping[str, str],
) -> tuple[PlacedFile, ...]:
    """Render every template of the component's architecture into project-relative paths."""

    resolved = resolve_component(registry, component)
    binding = Binding.of(bindings)
    placed: list[PlacedFile] = []
    for template_name, layer_template in resolved.spec.templates.items():
        rendered = render_layer_template(
            layer_template,
            binding,
            template_name=template_name,
            variant=resolved.variant_for(template_name),
        )
        path = component_file_path(
            component, layer=template_name, file_name=rendered.file_name, bindings=binding
        )
        placed.append(PlacedFile(path=path, rendered=rendered))
    return tuple(placed)
