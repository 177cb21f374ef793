"""
Rule-list input validation.

Rules are declared per field, either as a pipe string or as a list:

    POST_RULES = {
        "title": "required|string|max:255",
        "body": ["required", "string"],
    }

`validate()` never raises for bad user input; it returns a ValidationResult with
per-field error messages. Malformed rule declarations raise RuleError, since
those are programming mistakes rather than bad input.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


class RuleError(ValueError):
    pass


class ValidationError(Exception):
    def __init__(self, errors: dict[str, list[str]]):
        super().__init__("The given data was invalid.")
        self.errors = errors

    @property
    def messages(self) -> list[str]:
        return [m for msgs in self.errors.values() for m in msgs]


@dataclass(frozen=True)
class Rule:
    name: str
    arg: str | None = None


@dataclass
class ValidationResult:
    errors: dict[str, list[str]] = field(default_factory=dict)
    cleaned: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def first(self, name: str) -> str | None:
        msgs = self.errors.get(name) or []
        return msgs[0] if msgs else None

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


_NO_ARG_RULES = frozenset({"required", "nullable", "string", "integer", "email"})
_INT_ARG_RULES = frozenset({"min", "max"})
_LIST_ARG_RULES = frozenset({"in"})

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_rules(declared: str | Iterable[str]) -> list[Rule]:
    """Parse `"required|max:255"` (or `["required", "max:255"]`) into Rule objects."""
    parts = declared.split("|") if isinstance(declared, str) else list(declared)
    rules: list[Rule] = []
    for raw in parts:
        raw = (raw or "").strip()
        if not raw:
            continue
        name, sep, arg = raw.partition(":")
        name = name.strip().lower()
        arg = arg.strip()
        if name in _NO_ARG_RULES:
            if sep:
                raise RuleError(f"Rule '{name}' takes no argument (got {raw!r}).")
            rules.append(Rule(name))
        elif name in _INT_ARG_RULES:
            try:
                int(arg)
            except ValueError as e:
                raise RuleError(f"Rule '{name}' needs an integer argument (got {raw!r}).") from e
            rules.append(Rule(name, arg))
        elif name in _LIST_ARG_RULES:
            if not arg:
                raise RuleError(f"Rule '{name}' needs a comma-separated list (got {raw!r}).")
            rules.append(Rule(name, arg))
        else:
            raise RuleError(f"Unknown validation rule {name!r}.")
    return rules


def _label(name: str) -> str:
    return name.replace("_", " ")


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _check_field(name: str, value: Any, rules: list[Rule]) -> tuple[Any, list[str]]:
    label = _label(name)
    names = {r.name for r in rules}
    numeric = "integer" in names
    errors: list[str] = []

    if isinstance(value, str):
        value = value.strip()

    if numeric:
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            return value, [f"The {label} must be an integer."]
        try:
            value = int(value)
        except (TypeError, ValueError):
            return value, [f"The {label} must be an integer."]

    for rule in rules:
        if rule.name == "string" and not numeric:
            if not isinstance(value, str):
                errors.append(f"The {label} must be a string.")
                # later size checks assume a string
                break
        elif rule.name == "email":
            if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
                errors.append(f"The {label} must be a valid email address.")
        elif rule.name == "min":
            n = int(rule.arg or 0)
            if numeric and value < n:
                errors.append(f"The {label} must be at least {n}.")
            elif not numeric and len(str(value)) < n:
                errors.append(f"The {label} must be at least {n} characters.")
        elif rule.name == "max":
            n = int(rule.arg or 0)
            if numeric and value > n:
                errors.append(f"The {label} may not be greater than {n}.")
            elif not numeric and len(str(value)) > n:
                errors.append(f"The {label} may not be greater than {n} characters.")
        elif rule.name == "in":
            options = [o.strip() for o in (rule.arg or "").split(",")]
            if str(value) not in options:
                errors.append(f"The selected {label} is invalid.")
    return value, errors


def validate(data: Mapping[str, Any], rules: Mapping[str, str | Iterable[str]]) -> ValidationResult:
    """
    Validate `data` against per-field rules.

    Only fields named in `rules` end up in `cleaned`; anything else in `data` is dropped.
    """
    result = ValidationResult()
    for name, declared in rules.items():
        parsed = parse_rules(declared)
        value = data.get(name)

        if _is_empty(value):
            if any(r.name == "required" for r in parsed):
                result.errors[name] = [f"The {_label(name)} field is required."]
            else:
                # optional/nullable: skip remaining rules
                result.cleaned[name] = None
            continue

        cleaned, errors = _check_field(name, value, parsed)
        if errors:
            result.errors[name] = errors
        else:
            result.cleaned[name] = cleaned
    return result
