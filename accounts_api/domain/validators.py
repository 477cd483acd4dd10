"""
Field validators pluggable into the request validation pipeline.

Every rule is a callable ``(value, args, field) -> Verdict``. Rules skip
absent values (anything falsy) so that ``required`` alone decides whether a
field must be present. Messages may carry a ``{{field}}`` placeholder that
the registry fills in.
"""
from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Callable, Mapping, Optional, Sequence

from accounts_api.core.errors import ConfigurationError, FieldError, ValidationFailed

DIGIT_PATTERN = re.compile(r"^\d+")
# 24 hex chars that mix at least one digit and one a-f letter.
OBJECT_ID_PATTERN = re.compile(r"^(?=[a-f\d]{24}$)(\d+[a-f]|[a-f]+\d)", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class Verdict:
    status: str
    message: str = ""

    @property
    def rejected(self) -> bool:
        return self.status == "rejected"


VALID = Verdict("valid")
SKIP = Verdict("skip")


def rejected(message: str = "") -> Verdict:
    return Verdict("rejected", message)


RuleFn = Callable[[Any, Sequence[Any], str], Verdict]


def _arg(args: Sequence[Any], index: int) -> Any:
    return args[index] if len(args) > index else None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _leading_int(value: Any) -> Optional[int]:
    """Integer prefix of ``value`` ("4x" -> 4); None when there is none."""
    if _is_number(value):
        return int(value)
    match = LEADING_INT_PATTERN.match(str(value)) if isinstance(value, str) else None
    return int(match.group(1)) if match else None


def _compare(value: Any, bound: Any, check: Callable[[Any, Any], bool]) -> Verdict:
    if bound is None:
        return rejected()
    # A number on either side makes it a numeric comparison ("10" >= 5).
    if _is_number(value) or _is_number(bound):
        value, bound = _number(value), _number(bound)
        if value is None or bound is None:
            return rejected()
    try:
        return VALID if check(value, bound) else rejected()
    except TypeError:
        return rejected()


# ----------------------------------------------------------------- custom rules
def digit(value, args=(), field=""):
    if not value:
        return SKIP
    return VALID if DIGIT_PATTERN.match(str(value)) else rejected()


def numeric(value, args=(), field=""):
    if not value:
        return SKIP
    return VALID if _is_number(value) else rejected()


def length(value, args=(), field=""):
    if not value:
        return SKIP
    expected = _leading_int(_arg(args, 0))
    if expected is None or not hasattr(value, "__len__"):
        return rejected()
    return VALID if len(value) == expected else rejected()


def object_id(value, args=(), field=""):
    if not value:
        return SKIP
    return VALID if OBJECT_ID_PATTERN.match(str(value)) else rejected()


def min_value(value, args=(), field=""):
    if not value:
        return SKIP
    return _compare(value, _arg(args, 0), lambda v, b: v >= b)


def max_value(value, args=(), field=""):
    if not value:
        return SKIP
    return _compare(value, _arg(args, 0), lambda v, b: v <= b)


class ExistRule:
    """
    Passes when no record in ``args[0]`` has ``args[1]`` (default: the field
    name) equal to the value. ``args[2]``/``args[3]`` add an extra equality
    filter when both are given. Used for "must be unique" checks.
    """

    def __init__(self, repository) -> None:
        self.repository = repository

    def __call__(self, value, args=(), field=""):
        if not value:
            return SKIP
        collection = _arg(args, 0)
        if not collection:
            raise ConfigurationError("Unique rule require collection name")
        filters = {_arg(args, 1) or field: value}
        scope_field, scope_value = _arg(args, 2), _arg(args, 3)
        if scope_field and scope_value:
            filters[scope_field] = scope_value
        return rejected() if self.repository.exists_where(collection, filters) else VALID


# ---------------------------------------------------------------- general rules
def required(value, args=(), field=""):
    if value is None or (isinstance(value, (str, list, tuple, dict)) and len(value) == 0):
        return rejected()
    return VALID


def string(value, args=(), field=""):
    if value is None:
        return SKIP
    return VALID if isinstance(value, str) else rejected()


def email(value, args=(), field=""):
    if not value:
        return SKIP
    return VALID if isinstance(value, str) and EMAIL_PATTERN.match(value) else rejected()


def min_length(value, args=(), field=""):
    if not value:
        return SKIP
    bound = _number(_arg(args, 0))
    return VALID if bound is not None and len(str(value)) >= bound else rejected()


def max_length(value, args=(), field=""):
    if not value:
        return SKIP
    bound = _number(_arg(args, 0))
    return VALID if bound is not None and len(str(value)) <= bound else rejected()


def one_of(value, args=(), field=""):
    if not value:
        return SKIP
    return VALID if str(value) in {str(a) for a in args} else rejected()


# --------------------------------------------------------------------- registry
DEFAULT_MESSAGES = {
    "exist": "{{field}} is not exists",
    "objectId": "{{field}} is not valid ObjectID",
    "digit": "{{field}} is not valid digit",
    "numeric": "{{field}} is not valid numeric",
    "length": "{{field}} is not valid length",
    "minValue": "{{field}} is not valid minValue",
    "maxValue": "{{field}} is not valid maxValue",
    "required": "{{field}} is required",
    "string": "{{field}} must be a string",
    "email": "{{field}} must be a valid email",
    "min": "{{field}} is too short",
    "max": "{{field}} is too long",
    "same": "{{field}} does not match",
    "in": "{{field}} is not an accepted value",
}


def render_message(template: str, field: str) -> str:
    return template.replace("{{field}}", field)


@dataclass(frozen=True)
class Rule:
    """One entry of a field's rule list: name, positional args, optional message."""

    name: str
    args: tuple = ()
    message: Optional[str] = None


def rule(name: str, *args: Any, message: Optional[str] = None) -> Rule:
    return Rule(name, tuple(args), message)


class Registry:
    """Rule name -> (callable, default message)."""

    def __init__(self) -> None:
        self._rules: dict[str, tuple[RuleFn, str]] = {}

    def extend(self, name: str, fn: RuleFn, message: str) -> None:
        self._rules[name] = (fn, message)

    def names(self) -> list[str]:
        return sorted(self._rules)

    def validate(
        self,
        name: str,
        value: Any,
        args: Sequence[Any] = (),
        field: str = "",
        message: Optional[str] = None,
    ) -> Verdict:
        entry = self._rules.get(name)
        if entry is None:
            raise ConfigurationError(f"Unknown validation rule '{name}'")
        fn, default_message = entry
        verdict = fn(value, tuple(args), field)
        if verdict.rejected:
            return rejected(render_message(message or verdict.message or default_message, field))
        return verdict


def build_registry(repository=None) -> Registry:
    """Compose the registry; ``exist`` is only available with a repository."""
    registry = Registry()
    if repository is not None:
        registry.extend("exist", ExistRule(repository), DEFAULT_MESSAGES["exist"])
    registry.extend("objectId", object_id, DEFAULT_MESSAGES["objectId"])
    registry.extend("digit", digit, DEFAULT_MESSAGES["digit"])
    registry.extend("numeric", numeric, DEFAULT_MESSAGES["numeric"])
    registry.extend("length", length, DEFAULT_MESSAGES["length"])
    registry.extend("minValue", min_value, DEFAULT_MESSAGES["minValue"])
    registry.extend("maxValue", max_value, DEFAULT_MESSAGES["maxValue"])
    registry.extend("required", required, DEFAULT_MESSAGES["required"])
    registry.extend("string", string, DEFAULT_MESSAGES["string"])
    registry.extend("email", email, DEFAULT_MESSAGES["email"])
    registry.extend("min", min_length, DEFAULT_MESSAGES["min"])
    registry.extend("max", max_length, DEFAULT_MESSAGES["max"])
    registry.extend("in", one_of, DEFAULT_MESSAGES["in"])
    return registry


class Validator:
    """Runs a ``{field: [Rule, ...]}`` schema over a payload."""

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def errors(self, data: Mapping[str, Any], schema: Mapping[str, Sequence[Rule]]) -> list[FieldError]:
        found: list[FieldError] = []
        for field, rules in schema.items():
            value = data.get(field)
            for item in rules:
                if item.name == "same":
                    # Needs the sibling field, so it is resolved here rather than in the registry.
                    other = item.args[0] if item.args else ""
                    if value and value != data.get(other):
                        template = item.message or DEFAULT_MESSAGES["same"]
                        found.append(FieldError(field, render_message(template, field), "same"))
                        break
                    continue
                verdict = self.registry.validate(item.name, value, item.args, field=field, message=item.message)
                if verdict.rejected:
                    found.append(FieldError(field, verdict.message, item.name))
                    break
        return found

    def check(self, data: Mapping[str, Any], schema: Mapping[str, Sequence[Rule]]) -> None:
        found = self.errors(data, schema)
        if found:
            raise ValidationFailed(found)
