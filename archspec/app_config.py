from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from archkit.config_namespace import ConfigNamespace

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class CatalogConfig:
    include_builtin: bool = True
    shared_rules: bool = True
    paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None

    @property
    def level_number(self) -> int:
        return getattr(logging, self.level)


@dataclass(frozen=True)
class AppConfig:
    catalog: CatalogConfig = CatalogConfig()
    external_categories: tuple[str, ...] = ()
    logging: LoggingConfig = LoggingConfig()

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> tuple["AppConfig", list[str]]:
        """
        Parse host settings, returning (AppConfig, warnings).

        Unknown keys produce warnings, or a ValueError when `strict: true`.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Config must be a mapping")

        root = ConfigNamespace(dict(cfg), path="")
        strict = root.get_bool("strict", default=False)

        catalog_ns = root.namespace("catalog", default=None)
        catalog = CatalogConfig(
            include_builtin=catalog_ns.get_bool("include_builtin", default=True),
            shared_rules=catalog_ns.get_bool("shared_rules", default=True),
            paths=tuple(catalog_ns.get_list_str("paths", default=[])),
        )

        registry_ns = root.namespace("registry", default=None)
        external = tuple(registry_ns.get_list_str("external_categories", default=[]))

        logging_ns = root.namespace("logging", default=None)
        level = (logging_ns.get_str("level", default="INFO") or "INFO").upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of: {', '.join(LOG_LEVELS)} (got {level!r})")
        log_cfg = LoggingConfig(level=level, file=logging_ns.get_str("file", default=None))

        unknown: list[str] = []
        for ns in (root, catalog_ns, registry_ns, logging_ns):
            unknown.extend(
                f"{ns.path}.{key}" if ns.path else key for key in ns.unconsumed_keys()
            )
        if unknown and strict:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        warnings = [f"Unknown config key: {key}" for key in unknown]

        return AppConfig(catalog=catalog, external_categories=external, logging=log_cfg), warnings
