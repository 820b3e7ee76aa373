from __future__ import annotations

from typing import Iterable


class ArchkitError(ValueError):
    """Base class for structural/configuration errors raised by `archkit`."""


class InvalidSpec(ArchkitError):
    def __init__(self, spec_id: str | None, problems: Iterable[str]):
        self.spec_id = spec_id
        self.problems = tuple(problems)
        label = spec_id or "<unnamed>"
        super().__init__(f"Invalid architecture spec {label}: " + "; ".join(self.problems))


class DuplicateSpecId(ArchkitError):
    def __init__(self, spec_id: str):
        self.spec_id = spec_id
        super().__init__(f"Duplicate architecture spec id: {spec_id}")


class SpecNotFound(ArchkitError, LookupError):
    def __init__(self, spec_id: str, suggestions: Iterable[str] = ()):
        self.spec_id = spec_id
        self.suggestions = tuple(suggestions)
        message = f"Unknown architecture spec id: {spec_id}"
        if self.suggestions:
            message += f" (did you mean: {', '.join(self.suggestions)})"
        super().__init__(message)


class UnknownOption(ArchkitError):
    def __init__(self, spec_id: str, option_key: str, available: Iterable[str] = ()):
        self.spec_id = spec_id
        self.option_key = option_key
        self.available = tuple(available)
        super().__init__(
            f"Unknown option for {spec_id}: {option_key} "
            f"(available: {', '.join(self.available) or '<none>'})"
        )


class InvalidChoice(ArchkitError):
    def __init__(self, spec_id: str, option_key: str, value: object, choices: Iterable[str]):
        self.spec_id = spec_id
        self.option_key = option_key
        self.value = value
        self.choices = tuple(choices)
        super().__init__(
            f"Invalid choice for {spec_id}.{option_key}: {value!r} "
            f"(choices: {', '.join(self.choices)})"
        )


class UnresolvedPlaceholder(ArchkitError):
    def __init__(self, token: str, tokens: Iterable[str] = ()):
        self.token = token
        self.tokens = tuple(tokens) or (token,)
        super().__init__(f"Unresolved placeholder: {token}" + self._others())

    def _others(self) -> str:
        rest = [t for t in self.tokens if t != self.token]
        if not rest:
            return ""
        return f" (also unresolved: {', '.join(rest)})"


class BindingMissing(UnresolvedPlaceholder):
    def __init__(self, token: str, *, task_id: str, step_order: int, tokens: Iterable[str] = ()):
        self.task_id = task_id
        self.step_order = step_order
        super().__init__(token, tokens)
        self.args = (
            f"Binding missing for placeholder {token} "
            f"(task: {task_id}, step: {step_order})" + self._others(),
        )
