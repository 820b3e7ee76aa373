from __future__ import annotations

import os
from typing import Any, Mapping

import pandas as pd

from archkit.config_namespace import ConfigNamespace
from archkit.rule_evaluator import FileFacts, StaticFacts
from archspec.foundation.config_io import load_yaml_mapping

REQUIRED_COLUMNS = ("path", "layer")
LIST_SEPARATOR = ";"


def _split_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    return tuple(part.strip() for part in str(value).split(LIST_SEPARATOR) if part.strip())


def _line_count(value: Any, *, row: int) -> int | None:
    if value is None:
        return None
    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Facts row {row}: line_count must be an int (got {value!r})") from exc
    if count < 0:
        raise ValueError(f"Facts row {row}: line_count must be >= 0 (got {count})")
    return count


def facts_from_frame(df: pd.DataFrame, *, attributes: Mapping[str, Any] | None = None) -> StaticFacts:
    """
    Build facts from a per-file table.

    Columns: path, layer (required); line_count, patterns, imports (optional).
    `patterns` and `imports` hold `;`-separated values.
    """

    if df is None or df.empty:
        return StaticFacts(attributes=dict(attributes or {}))

    columns = {str(col).strip().lower(): col for col in df.columns}
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise ValueError(
            f"Facts table is missing columns: {', '.join(missing)} (got columns: {list(df.columns)})"
        )

    files: list[FileFacts] = []
    for idx, row in enumerate(df.to_dict(orient="records")):
        def cell(name: str) -> Any:
            column = columns.get(name)
            value = row.get(column) if column is not None else None
            if isinstance(value, float) and pd.isna(value):
                return None
            return value

        path = str(cell("path") or "").strip()
        layer = str(cell("layer") or "").strip()
        if not path or not layer:
            raise ValueError(f"Facts row {idx}: path and layer are required")
        files.append(
            FileFacts(
                path=path,
                layer=layer,
                line_count=_line_count(cell("line_count"), row=idx),
                patterns=frozenset(_split_list(cell("patterns"))),
                imports=_split_list(cell("imports")),
            )
        )
    return StaticFacts(file_facts=tuple(files), attributes=dict(attributes or {}))


def load_facts_csv(path: str, *, attributes: Mapping[str, Any] | None = None) -> StaticFacts:
    facts_path = str(path or "").strip()
    if not facts_path:
        raise ValueError("Facts path is required")
    if not os.path.exists(facts_path):
        raise FileNotFoundError(f"Facts file not found: {facts_path}")
    if os.path.getsize(facts_path) == 0:
        return StaticFacts(attributes=dict(attributes or {}))

    df = pd.read_csv(facts_path, dtype={"patterns": str, "imports": str})
    return facts_from_frame(df, attributes=attributes)


def _yaml_names(row: ConfigNamespace, key: str) -> str:
    """`patterns`/`imports` as a `;`-joined cell: a scalar string or a list of strings."""

    if isinstance(row.data.get(key), str):
        return LIST_SEPARATOR.join(_split_list(row.get_str(key, allow_empty=True)))
    return LIST_SEPARATOR.join(row.get_list_str(key, default=[]))


def _yaml_edge(edge: Any, *, idx: int) -> tuple[str, str]:
    if not isinstance(edge, (list, tuple)) or len(edge) != 2:
        raise ValueError(f"edges[{idx}] must be a [from, to] pair (got {edge!r})")
    if not all(isinstance(item, str) for item in edge):
        raise ValueError(f"edges[{idx}] must hold two layer names (got {edge!r})")
    return edge[0].strip(), edge[1].strip()


def load_facts_yaml(path: str) -> StaticFacts:
    """YAML facts: `files` (list of rows), `attributes` (mapping), `edges` (list of [from, to])."""

    ns = ConfigNamespace(load_yaml_mapping(path), path="")
    try:
        rows = ns.get_list_mapping("files", default=[], allow_empty=True)
        records = []
        for idx, row in enumerate(rows):
            row_ns = ConfigNamespace(row, path=f"files[{idx}]")
            records.append(
                {
                    **row,
                    "patterns": _yaml_names(row_ns, "patterns"),
                    "imports": _yaml_names(row_ns, "imports"),
                }
            )
        attributes = ns.get_mapping("attributes", default={})
        raw_edges = ns.get_list("edges", default=[])
    except TypeError as exc:
        raise ValueError(f"Invalid facts file {path}: {exc}") from exc

    edges = {_yaml_edge(edge, idx=idx) for idx, edge in enumerate(raw_edges)}
    ns.assert_consumed()

    facts = facts_from_frame(pd.DataFrame(records), attributes=attributes)
    return StaticFacts(file_facts=facts.file_facts, attributes=facts.attributes, extra_edges=frozenset(edges))


def load_facts(path: str) -> StaticFacts:
    lowered = str(path).lower()
    if lowered.endswith((".yaml", ".yml")):
        return load_facts_yaml(path)
    return load_facts_csv(path)
