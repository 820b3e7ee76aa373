from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "ARCHSPEC_CONFIG"


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str:
    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    markers = ("pyproject.toml", ".git")
    for candidate in (start_path, *start_path.parents):
        if (candidate / "pyproject.toml").is_file():
            return str(candidate)
        if (candidate / ".git").exists():
            return str(candidate)

    raise FileNotFoundError(
        "Cannot locate repo root: searched from "
        f"{start_path} for {', '.join(markers)}"
    )


def load_yaml_document(path: str | os.PathLike[str]) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc


def load_yaml_mapping(path: str | os.PathLike[str]) -> dict[str, Any]:
    payload = load_yaml_document(path)
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def deep_merge(base: Any, overlay: Any, *, path: str) -> Any:
    if overlay is None:
        return None

    if base is None:
        return overlay

    if isinstance(base, Mapping):
        if not isinstance(overlay, Mapping):
            raise ValueError(
                f"Invalid config overlay merge at {path}: base is mapping but overlay is {type(overlay).__name__}"
            )
        merged: dict[str, Any] = dict(base)
        for key, overlay_value in overlay.items():
            next_path = f"{path}.{key}" if path else str(key)
            if key in base:
                merged[key] = deep_merge(base[key], overlay_value, path=next_path)
            else:
                merged[key] = overlay_value
        return merged

    if isinstance(base, (list, tuple)):
        if not isinstance(overlay, (list, tuple)):
            raise ValueError(
                f"Invalid config overlay merge at {path}: base is list but overlay is {type(overlay).__name__}"
            )
        return list(overlay)

    if isinstance(overlay, (Mapping, list, tuple)):
        raise ValueError(
            f"Invalid config overlay merge at {path}: base is {type(base).__name__} but overlay is {type(overlay).__name__}"
        )

    return overlay


def load_config(
    *,
    config_path: str | None = None,
    env_var: str = CONFIG_ENV_VAR,
    config_dir: str = "config",
    config_name: str = "config.yaml",
    start_dir: str | None = None,
    required: bool = False,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load host settings from YAML.

    Resolution order:
      1. `config_path` (explicit) or the `env_var` environment variable: one file, no overlay.
      2. `<config_dir>/<config_name>` plus an optional `<config_dir>/config.local.yaml`
         overlay, relative to the repo root unless `config_dir` is absolute.

    A missing base file yields an empty config unless `required` is set.
    """

    explicit_path = None
    if config_path is not None:
        explicit_path = str(config_path).strip() or None
    elif env_var:
        explicit_path = os.environ.get(str(env_var), "").strip() or None

    if explicit_path:
        expanded = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit_path)))
        if not os.path.exists(expanded):
            raise FileNotFoundError(f"Config file not found: {expanded}")
        cfg = load_yaml_mapping(expanded)
        meta = {
            "mode": "env" if config_path is None else "explicit",
            "paths": [expanded],
            "env_var": env_var,
            "repo_root": None,
        }
        return cfg, meta

    if os.path.isabs(config_dir):
        config_directory = config_dir
        repo_root = None
    else:
        try:
            repo_root = find_repo_root(start_dir)
        except FileNotFoundError:
            if required:
                raise
            return {}, {"mode": "defaults", "paths": [], "env_var": env_var, "repo_root": None}
        config_directory = os.path.join(repo_root, config_dir)

    base_config_path = os.path.join(config_directory, config_name)
    local_overlay_path = os.path.join(config_directory, "config.local.yaml")

    if not os.path.exists(base_config_path):
        if required:
            raise FileNotFoundError(f"Missing base config file: {base_config_path}")
        return {}, {"mode": "defaults", "paths": [], "env_var": env_var, "repo_root": repo_root}

    cfg = load_yaml_mapping(base_config_path)
    loaded_paths = [os.path.abspath(base_config_path)]
    mode = "base"

    if os.path.exists(local_overlay_path):
        overlay = load_yaml_mapping(local_overlay_path)
        cfg = deep_merge(cfg, overlay, path="")
        loaded_paths.append(os.path.abspath(local_overlay_path))
        mode = "base+local"

    meta = {"mode": mode, "paths": loaded_paths, "env_var": env_var, "repo_root": repo_root}
    return cfg, meta
