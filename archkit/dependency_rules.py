from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Literal

from archkit.spec_types import ArchitectureSpec

logger = logging.getLogger(__name__)

ViolationKind = Literal[
    "DependencyDirectionViolation",
    "ImportForbidden",
    "ImportNotDeclared",
    "UnknownLayer",
    "InvalidEdge",
]

Edge = tuple[str, str]


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    from_layer: str
    to_layer: str
    detail: str
    spec_id: str = ""

    def describe(self) -> str:
        return f"{self.kind}: {self.from_layer} -> {self.to_layer} ({self.detail})"


def _direction_violation(spec: ArchitectureSpec, from_layer: str, to_layer: str) -> Violation | None:
    if spec.base.dependency_flow != "unidirectional":
        return None
    from_pos = spec.base.position(from_layer)
    to_pos = spec.base.position(to_layer)
    if from_pos is None or to_pos is None or to_pos >= from_pos:
        return None
    order = " -> ".join(spec.base.layers)
    return Violation(
        kind="DependencyDirectionViolation",
        from_layer=from_layer,
        to_layer=to_layer,
        detail=f"{from_layer} comes after {to_layer} in the dependency order {order}",
        spec_id=spec.id,
    )


def _allow_list_violation(spec: ArchitectureSpec, from_layer: str, to_layer: str) -> Violation | None:
    layer = spec.layer(from_layer)
    if layer is None:
        return Violation(
            kind="UnknownLayer",
            from_layer=from_layer,
            to_layer=to_layer,
            detail=f"{from_layer} is not a layer of {spec.id}",
            spec_id=spec.id,
        )

    deps = layer.dependencies
    if to_layer in deps.cannot_import:
        return Violation(
            kind="ImportForbidden",
            from_layer=from_layer,
            to_layer=to_layer,
            detail=f"{from_layer} lists {to_layer} in cannot_import",
            spec_id=spec.id,
        )
    if to_layer not in deps.can_import:
        # Allow-lists only: anything not declared is denied.
        return Violation(
            kind="ImportNotDeclared",
            from_layer=from_layer,
            to_layer=to_layer,
            detail=f"{to_layer} is not in the can_import list of {from_layer}",
            spec_id=spec.id,
        )
    return None


def check_edge(spec: ArchitectureSpec, from_layer: str, to_layer: str) -> tuple[Violation, ...]:
    """All violations for one import edge; the direction violation comes first."""

    from_layer = (from_layer or "").strip()
    to_layer = (to_layer or "").strip()
    if not from_layer or not to_layer:
        raise ValueError("Import edge layers must be non-empty strings")
    if from_layer == to_layer:
        return ()

    found = [
        violation
        for violation in (
            _direction_violation(spec, from_layer, to_layer),
            _allow_list_violation(spec, from_layer, to_layer),
        )
        if violation is not None
    ]
    return tuple(found)


def check_import(spec: ArchitectureSpec, from_layer: str, to_layer: str) -> Violation | None:
    violations = check_edge(spec, from_layer, to_layer)
    return violations[0] if violations else None


def _edge_layer(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _invalid_edge(spec: ArchitectureSpec, src: object, dst: object) -> Violation:
    return Violation(
        kind="InvalidEdge",
        from_layer=src if isinstance(src, str) else repr(src),
        to_layer=dst if isinstance(dst, str) else repr(dst),
        detail="import edge layers must be non-empty strings",
        spec_id=spec.id,
    )


def check_graph(spec: ArchitectureSpec, edges: Iterable[Edge]) -> tuple[Violation, ...]:
    """Check every edge and return every violation (sorted by edge, direction first).

    An edge with a blank or non-string layer is reported as an ``InvalidEdge``
    violation; the remaining edges are still checked.
    """

    valid: set[Edge] = set()
    invalid: list[Violation] = []
    for src, dst in edges:
        from_layer, to_layer = _edge_layer(src), _edge_layer(dst)
        if from_layer and to_layer:
            valid.add((from_layer, to_layer))
        else:
            invalid.append(_invalid_edge(spec, src, dst))

    unique_edges = sorted(valid)
    violations: list[Violation] = []
    for from_layer, to_layer in unique_edges:
        violations.extend(check_edge(spec, from_layer, to_layer))
    violations.extend(sorted(set(invalid), key=lambda v: (v.from_layer, v.to_layer)))
    if violations:
        logger.debug(
            "Dependency check for %s: %d violations across %d edges (%d invalid)",
            spec.id,
            len(violations),
            len(unique_edges),
            len(invalid),
        )
    return tuple(violations)


def find_cycles(edges: Iterable[Edge]) -> tuple[tuple[str, ...], ...]:
    """Return each elementary cycle once, as a node path starting at its smallest node.

    Self-edges are ignored (intra-layer imports are not layer cycles), as are
    edges with a blank layer.
    """

    graph: dict[str, set[str]] = defaultdict(set)
    for raw_src, raw_dst in edges:
        src, dst = _edge_layer(raw_src), _edge_layer(raw_dst)
        if src and dst and src != dst:
            graph[src].add(dst)
            graph.setdefault(dst, set())

    cycles: set[tuple[str, ...]] = set()
    for start in sorted(graph):
        stack: list[tuple[str, list[str]]] = [(start, [start])]
        while stack:
            node, path = stack.pop()
            for nxt in sorted(graph[node]):
                if nxt == start:
                    cycles.add(tuple(path))
                elif nxt not in path and nxt > start:
                    stack.append((nxt, path + [nxt]))
    return tuple(sorted(cycles, key=lambda c: (len(c), c)))
