"""Placeholder resolution for layer templates and task steps.

Two token forms are recognised:

- ``{{ResourceName}}`` (double brace, used in template bodies)
- ``{resource}`` (single brace, used in file name patterns)

The casing of the substituted text follows the shape of the token itself, not
the raw binding value: ``{{ResourceName}}`` -> ``OrderItem``,
``{{resourceName}}`` -> ``orderItem``, ``{{RESOURCE_NAME}}`` -> ``ORDER_ITEM``,
``{resource_name}`` -> ``order_item``, ``{resource-name}`` -> ``order-item``.
A ``Plural`` suffix pluralises the
last word (``s``/``es`` only; irregular plurals are not handled).

Lookup is case-insensitive and ignores ``_``/``-``. A binding key ending in
``Name`` also answers its stem, so ``{resource}`` resolves from ``ResourceName``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal, Mapping

from archkit.errors import UnresolvedPlaceholder
from archkit.spec_types import LayerTemplate

Casing = Literal["pascal", "camel", "constant", "snake", "kebab"]

_TOKEN_RE = re.compile(
    r"\{\{\s*(?P<double>[A-Za-z][A-Za-z0-9_-]*)\s*\}\}"
    r"|(?<![{$])\{(?P<single>[A-Za-z][A-Za-z0-9_-]*)\}(?!\})"
)
_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")
_PLURAL_SUFFIXES = ("_plural", "-plural", "plural")
_ES_ENDINGS = ("s", "x", "z", "ch", "sh")


def split_words(value: str) -> list[str]:
    words: list[str] = []
    for chunk in re.split(r"[^A-Za-z0-9]+", value or ""):
        words.extend(_WORD_RE.findall(chunk))
    return words


def pascal_case(value: str) -> str:
    return "".join(word[:1].upper() + word[1:] for word in split_words(value))


def camel_case(value: str) -> str:
    pascal = pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def kebab_case(value: str) -> str:
    return "-".join(word.lower() for word in split_words(value))


def constant_case(value: str) -> str:
    return "_".join(word.upper() for word in split_words(value))


def snake_case(value: str) -> str:
    return "_".join(word.lower() for word in split_words(value))


def pluralize(value: str) -> str:
    if not value:
        return value
    suffix = "es" if value.lower().endswith(_ES_ENDINGS) else "s"
    if value[-1].isupper():
        suffix = suffix.upper()
    return value + suffix


_CASERS = {
    "pascal": pascal_case,
    "camel": camel_case,
    "constant": constant_case,
    "snake": snake_case,
    "kebab": kebab_case,
}
_PLURAL_TOKEN_SUFFIX = {"constant": "_PLURAL", "snake": "_plural", "kebab": "-plural"}


def _normalize_key(key: str) -> str:
    return re.sub(r"[_-]", "", key).lower()


@dataclass(frozen=True)
class Placeholder:
    """One parsed token occurrence."""

    token: str
    name: str
    key: str
    casing: Casing
    plural: bool
    double_brace: bool
    start: int
    end: int


def _token_casing(name: str) -> Casing:
    if "-" in name:
        return "kebab"
    letters = [ch for ch in name if ch.isalpha()]
    shouting = len(letters) > 1 and all(ch.isupper() for ch in letters)
    if shouting:
        return "constant"
    if "_" in name:
        return "snake"
    if name[:1].isupper():
        return "pascal"
    return "camel"


def _strip_plural(name: str) -> tuple[str, bool]:
    lowered = name.lower()
    for suffix in _PLURAL_SUFFIXES:
        if lowered.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)], True
    return name, False


def find_placeholders(template: str) -> tuple[Placeholder, ...]:
    found: list[Placeholder] = []
    for match in _TOKEN_RE.finditer(template or ""):
        double = match.group("double")
        name = double if double is not None else match.group("single")
        stem, plural = _strip_plural(name)
        found.append(
            Placeholder(
                token=match.group(0),
                name=name,
                key=_normalize_key(stem),
                casing=_token_casing(stem),
                plural=plural,
                double_brace=double is not None,
                start=match.start(),
                end=match.end(),
            )
        )
    return tuple(found)


@dataclass(frozen=True)
class Binding:
    """Raw values keyed by logical name; every derived form is computed on demand."""

    values: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        cleaned: dict[str, str] = {}
        for key, value in dict(self.values).items():
            if not isinstance(key, str) or not key.strip():
                raise TypeError("Binding keys must be non-empty strings")
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Binding value for {key} must be a non-empty string")
            cleaned[key.strip()] = value.strip()
        object.__setattr__(self, "values", cleaned)

    @classmethod
    def of(cls, bindings: "Binding | Mapping[str, str]") -> "Binding":
        if isinstance(bindings, Binding):
            return bindings
        return cls(dict(bindings or {}))

    def lookup(self, key: str) -> str | None:
        """Find the raw value for a normalized token key."""

        wanted = _normalize_key(key)
        stems: dict[str, str] = {}
        for name, value in self.values.items():
            normalized = _normalize_key(name)
            if normalized == wanted:
                return value
            if normalized.endswith("name") and len(normalized) > len("name"):
                stems.setdefault(normalized[: -len("name")], value)
        return stems.get(wanted)

    def derive(self, key: str) -> dict[str, str]:
        """Every derived form of one binding, keyed by the token that produces it."""

        raw = self.values.get(key)
        if raw is None:
            raise KeyError(key)
        forms: dict[str, str] = {}
        for casing, caser in _CASERS.items():
            token = caser(key)
            forms[token] = caser(raw)
            forms[token + _PLURAL_TOKEN_SUFFIX.get(casing, "Plural")] = pluralize(caser(raw))
        return forms


def render_placeholder(placeholder: Placeholder, raw: str) -> str:
    text = _CASERS[placeholder.casing](raw)
    return pluralize(text) if placeholder.plural else text


def resolve(template: str, bindings: Binding | Mapping[str, str]) -> str:
    if not isinstance(template, str):
        raise TypeError(f"template must be a string (type={type(template).__name__})")
    binding = Binding.of(bindings)

    placeholders = find_placeholders(template)
    missing = [p.name for p in placeholders if binding.lookup(p.key) is None]
    if missing:
        unique = list(dict.fromkeys(missing))
        raise UnresolvedPlaceholder(unique[0], unique)

    parts: list[str] = []
    cursor = 0
    for placeholder in placeholders:
        parts.append(template[cursor : placeholder.start])
        parts.append(render_placeholder(placeholder, binding.lookup(placeholder.key) or ""))
        cursor = placeholder.end
    parts.append(template[cursor:])
    return "".join(parts)


@dataclass(frozen=True)
class RenderedFile:
    template_name: str
    file_name: str
    body: str
    variant: str | None = None


def render_layer_template(
    layer_template: LayerTemplate,
    bindings: Binding | Mapping[str, str],
    *,
    template_name: str = "",
    variant: str | None = None,
) -> RenderedFile:
    body = layer_template.template
    if variant is not None:
        key = variant.strip()
        if key not in layer_template.data_access_variants:
            available = ", ".join(sorted(layer_template.data_access_variants)) or "<none>"
            raise ValueError(
                f"Unknown data access variant for {template_name or 'template'}: {variant} "
                f"(available: {available})"
            )
        body = layer_template.data_access_variants[key]
        variant = key

    binding = Binding.of(bindings)
    return RenderedFile(
        template_name=template_name,
        file_name=resolve(layer_template.file_name_pattern, binding),
        body=resolve(body, binding),
        variant=variant,
    )
