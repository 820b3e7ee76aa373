"""Strict mapping reader used to parse spec documents and host config."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

_MISSING = object()


def _join_path(parent: str, key: str) -> str:
    if not parent:
        return key
    return f"{parent}.{key}"


@dataclass
class ConfigNamespace:
    """Reads typed values from a mapping and remembers which keys were consumed.

    `assert_consumed()` raises for keys nobody read, which is how unknown or
    misspelled fields in a spec document surface instead of being ignored.
    """

    data: Mapping[str, Any]
    path: str
    _consumed: set[str] = field(default_factory=set, init=False, repr=False)
    _children: dict[str, "ConfigNamespace"] = field(default_factory=dict, init=False, repr=False)

    def keys(self) -> tuple[str, ...]:
        return tuple(str(key) for key in self.data.keys())

    def consumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._consumed))

    def unconsumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(str(k) for k in self.data.keys() if k not in self._consumed))

    def assert_consumed(self) -> None:
        unknown = list(self.unconsumed_keys())
        if unknown:
            path = self.path or "<root>"
            consumed = ", ".join(self.consumed_keys()) or "<none>"
            raise ValueError(
                f"Unknown keys under {path}: {', '.join(unknown)} (consumed: {consumed})"
            )
        for child in self._children.values():
            child.assert_consumed()

    def _get_raw(self, key: str, *, default: Any) -> Any:
        if not isinstance(key, str) or not key.strip():
            raise TypeError("ConfigNamespace key must be a non-empty string")
        normalized = key.strip()
        if normalized in self._children:
            raise ValueError(
                f"{_join_path(self.path, normalized)} already accessed as a nested namespace"
            )

        self._consumed.add(normalized)
        if normalized not in self.data:
            if default is _MISSING:
                raise ValueError(f"Missing required key: {_join_path(self.path, normalized)}")
            return default
        return self.data.get(normalized)

    def namespace(
        self,
        key: str,
        *,
        default: Mapping[str, Any] | None | object = _MISSING,
    ) -> "ConfigNamespace":
        normalized = (key or "").strip()
        if not normalized:
            raise TypeError("ConfigNamespace key must be a non-empty string")
        if normalized in self._children:
            return self._children[normalized]

        raw = self.data.get(normalized)
        self._consumed.add(normalized)
        child_path = _join_path(self.path, normalized)

        if raw is None:
            if default is _MISSING:
                raise ValueError(f"Missing required namespace: {child_path}")
            if default is not None and not isinstance(default, Mapping):
                raise TypeError(f"default for {child_path} must be a mapping or None")
            raw = dict(default or {})

        if not isinstance(raw, Mapping):
            raise TypeError(f"{child_path} must be a mapping (type={type(raw).__name__})")

        child = ConfigNamespace(dict(raw), path=child_path)
        self._children[normalized] = child
        return child

    def namespaces(self, key: str, *, default: list[Any] | object = _MISSING) -> list["ConfigNamespace"]:
        """Parse a list of mappings as child namespaces (`path.key[idx]`)."""

        items = self.get_list_mapping(key, default=default, allow_empty=True)
        base = _join_path(self.path, key.strip())
        children = [ConfigNamespace(item, path=f"{base}[{idx}]") for idx, item in enumerate(items)]
        for idx, child in enumerate(children):
            self._children[f"{key.strip()}[{idx}]"] = child
        return children

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        value = self._get_raw(key, default=default)
        if not isinstance(value, bool):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a boolean (type={type(value).__name__})"
            )
        return value

    def get_int(self, key: str, *, default: int | object = _MISSING, min_value: int | None = None) -> int:
        raw = self._get_raw(key, default=default)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be an int (type={type(raw).__name__})"
            )
        if min_value is not None and raw < int(min_value):
            raise ValueError(
                f"{_join_path(self.path, key.strip())} must be >= {int(min_value)} (got {raw})"
            )
        return int(raw)

    def get_str(
        self,
        key: str,
        *,
        default: str | None | object = _MISSING,
        allow_empty: bool = False,
        choices: Iterable[str] | None = None,
    ) -> str | None:
        raw = self._get_raw(key, default=default)
        if raw is None:
            return None

        if not isinstance(raw, str):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a string (type={type(raw).__name__})"
            )
        value = raw.strip()
        if not value and not allow_empty:
            raise ValueError(f"{_join_path(self.path, key.strip())} cannot be empty")
        if choices is not None:
            choice_set = {str(item).strip() for item in choices if str(item).strip()}
            if value not in choice_set:
                allowed = ", ".join(sorted(choice_set)) or "<none>"
                raise ValueError(
                    f"{_join_path(self.path, key.strip())} must be one of: {allowed} (got {value!r})"
                )
        return value

    def get_text(self, key: str, *, default: str | None | object = _MISSING) -> str | None:
        """Like `get_str` but keeps surrounding whitespace (template bodies)."""

        raw = self._get_raw(key, default=default)
        if raw is None:
            return None
        if not isinstance(raw, str):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a string (type={type(raw).__name__})"
            )
        return raw

    def get_list_str(
        self,
        key: str,
        *,
        default: list[str] | tuple[str, ...] | object = _MISSING,
        allow_empty: bool = True,
    ) -> list[str]:
        raw = self._get_raw(key, default=default)
        if raw is None:
            raw = []
        if not isinstance(raw, (list, tuple)):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a list[str] (type={type(raw).__name__})"
            )

        items: list[str] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, str):
                raise TypeError(
                    f"{_join_path(self.path, key.strip())}[{idx}] must be a string (type={type(item).__name__})"
                )
            trimmed = item.strip()
            if not trimmed:
                raise ValueError(f"{_join_path(self.path, key.strip())}[{idx}] cannot be empty")
            items.append(trimmed)

        if not items and not allow_empty:
            raise ValueError(f"{_join_path(self.path, key.strip())} cannot be empty")
        return items

    def get_list_mapping(
        self,
        key: str,
        *,
        default: list[Mapping[str, Any]] | tuple[Mapping[str, Any], ...] | object = _MISSING,
        allow_empty: bool = False,
    ) -> list[dict[str, Any]]:
        raw = self._get_raw(key, default=default)
        if raw is None:
            raw = []
        if not isinstance(raw, (list, tuple)):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a list[dict] (type={type(raw).__name__})"
            )

        items: list[dict[str, Any]] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, Mapping):
                raise TypeError(
                    f"{_join_path(self.path, key.strip())}[{idx}] must be a mapping (type={type(item).__name__})"
                )
            items.append(dict(item))

        if not items and not allow_empty:
            raise ValueError(f"{_join_path(self.path, key.strip())} cannot be empty")
        return items

    def get_mapping(self, key: str, *, default: Mapping[str, Any] | object = _MISSING) -> dict[str, Any]:
        """Raw mapping value, consumed as a whole (free-form payload)."""

        raw = self._get_raw(key, default=default)
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a mapping (type={type(raw).__name__})"
            )
        return dict(raw)

    def get_list(self, key: str, *, default: list[Any] | object = _MISSING) -> list[Any]:
        raw = self._get_raw(key, default=default)
        if raw is None:
            return []
        if not isinstance(raw, (list, tuple)):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a list (type={type(raw).__name__})"
            )
        return list(raw)

    def get_str_mapping(self, key: str, *, default: Mapping[str, str] | object = _MISSING) -> dict[str, str]:
        """Parse a flat mapping of string -> string (opaque payload tables)."""

        raw = self._get_raw(key, default=default)
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a mapping (type={type(raw).__name__})"
            )
        out: dict[str, str] = {}
        for raw_key, raw_value in raw.items():
            if not isinstance(raw_value, str):
                raise TypeError(
                    f"{_join_path(self.path, key.strip())}.{raw_key} must be a string "
                    f"(type={type(raw_value).__name__})"
                )
            out[str(raw_key).strip()] = raw_value
        return out
