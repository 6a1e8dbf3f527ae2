"""
Field validation for action payloads.

Rules are small predicates looked up by name. The dispatcher calls
``validate_fields`` for every field an action references before the action's
handler runs; the first failing rule aborts the dispatch.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from trellis.errors import ValidationError
from trellis.specs.field import MISSING

if TYPE_CHECKING:
    from trellis.specs.field import FieldSpec, RuleSpec

logger = logging.getLogger(__name__)

RulePredicate = Callable[[Any, str | None], bool]
ArgumentCheck = Callable[[str | None], None]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_TRUE_VALUES = {"1", "true", "on", "yes"}
_FALSE_VALUES = {"0", "false", "off", "no"}


@dataclass(frozen=True)
class _Rule:
    predicate: RulePredicate
    message: str
    # Rules that also run on empty values; everything else skips them
    checks_empty: bool = False
    # Raises ValueError for an argument the predicate cannot use
    check_argument: ArgumentCheck | None = None


def is_empty(value: Any) -> bool:
    """True for absent, None, blank strings and empty collections."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list | tuple | dict | set):
        return len(value) == 0
    return False


def _length(value: Any) -> int:
    if isinstance(value, str | list | tuple | dict | set):
        return len(value)
    return len(str(value))


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _length_argument(argument: str | None) -> None:
    if argument is None or not argument.strip().isdigit():
        raise ValueError(f"expects a non-negative integer, got {argument!r}")


def _number_argument(argument: str | None) -> None:
    try:
        float(argument or "")
    except ValueError:
        raise ValueError(f"expects a number, got {argument!r}") from None


def _pattern_argument(argument: str | None) -> None:
    if not argument:
        raise ValueError("expects a regular expression")
    try:
        re.compile(argument)
    except re.error as e:
        raise ValueError(f"has an invalid regular expression: {e}") from None


def _choices_argument(argument: str | None) -> None:
    if not argument or not any(item.strip() for item in argument.split(",")):
        raise ValueError("expects a comma-separated list of values")


def _required(value: Any, argument: str | None) -> bool:
    return not is_empty(value)


def _min_length(value: Any, argument: str | None) -> bool:
    return _length(value) >= int(argument or 0)


def _max_length(value: Any, argument: str | None) -> bool:
    return _length(value) <= int(argument or 0)


def _min(value: Any, argument: str | None) -> bool:
    number = _as_number(value)
    return number is not None and number >= float(argument or 0)


def _max(value: Any, argument: str | None) -> bool:
    number = _as_number(value)
    return number is not None and number <= float(argument or 0)


def _pattern(value: Any, argument: str | None) -> bool:
    return re.fullmatch(argument or "", str(value)) is not None


def _email(value: Any, argument: str | None) -> bool:
    return _EMAIL_RE.match(str(value)) is not None


def _in(value: Any, argument: str | None) -> bool:
    allowed = [item.strip() for item in (argument or "").split(",")]
    return str(value) in allowed


def _boolean(value: Any, argument: str | None) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return value in (0, 1)
    return str(value).strip().lower() in _TRUE_VALUES | _FALSE_VALUES


def _integer(value: Any, argument: str | None) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    try:
        int(str(value).strip())
    except ValueError:
        return False
    return True


def _numeric(value: Any, argument: str | None) -> bool:
    return _as_number(value) is not None


_RULES: dict[str, _Rule] = {
    "required": _Rule(_required, "The {label} field is required.", checks_empty=True),
    "minLength": _Rule(
        _min_length,
        "The {label} field must be at least {arg} characters.",
        check_argument=_length_argument,
    ),
    "maxLength": _Rule(
        _max_length,
        "The {label} field may not be greater than {arg} characters.",
        check_argument=_length_argument,
    ),
    "min": _Rule(
        _min, "The {label} field must be at least {arg}.", check_argument=_number_argument
    ),
    "max": _Rule(
        _max, "The {label} field may not be greater than {arg}.", check_argument=_number_argument
    ),
    "pattern": _Rule(
        _pattern, "The {label} field format is invalid.", check_argument=_pattern_argument
    ),
    "email": _Rule(_email, "The {label} field must be a valid email address."),
    "in": _Rule(_in, "The selected {label} is invalid.", check_argument=_choices_argument),
    "boolean": _Rule(_boolean, "The {label} field must be true or false."),
    "integer": _Rule(_integer, "The {label} field must be an integer."),
    "numeric": _Rule(_numeric, "The {label} field must be a number."),
}


def check_rule_spec(rule: RuleSpec) -> None:
    """
    Check that a rule is registered and its argument is usable.

    Raises:
        ValueError: Unknown rule, or an argument the rule cannot evaluate
    """
    spec = _RULES.get(rule.name)
    if spec is None:
        raise ValueError(f"Unknown validation rule '{rule.name}'")
    if spec.check_argument is not None:
        try:
            spec.check_argument(rule.argument)
        except ValueError as e:
            raise ValueError(f"Validation rule '{rule}' {e}") from None


def register_rule(
    name: str,
    predicate: RulePredicate,
    message: str = "The {label} field is invalid.",
    *,
    checks_empty: bool = False,
    check_argument: ArgumentCheck | None = None,
) -> None:
    """
    Register an additional validation rule.

    Must be called before any FieldSpec using the rule is constructed.

    Args:
        name: Rule name as used in rule expressions
        predicate: Callable receiving (value, argument) and returning True when valid
        message: Error template; ``{label}`` and ``{arg}`` are substituted
        checks_empty: Run the predicate on empty values too
        check_argument: Raises ValueError for unusable arguments at field construction
    """
    if name in _RULES:
        raise ValueError(f"Validation rule '{name}' is already registered")
    _RULES[name] = _Rule(predicate, message, checks_empty, check_argument)
    logger.debug("Registered validation rule %s", name)


def check_rule(field: FieldSpec, rule: RuleSpec, value: Any) -> None:
    """Raise ValidationError if value fails rule."""
    spec = _RULES[rule.name]
    if not spec.checks_empty and is_empty(value):
        return
    if spec.predicate(value, rule.argument):
        return

    label = field.label or field.name.leaf.replace("_", " ")
    raise ValidationError(
        field=field.path,
        rule=str(rule),
        message=spec.message.format(label=label.lower(), arg=rule.argument),
    )


def validate_fields(fields: Iterable[FieldSpec], payload: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate payload values for the given fields.

    Fields are checked in order and each field's rules in declaration order;
    the first failure raises.

    Returns:
        Mapping of dotted field path to the submitted value, for present values only.

    Raises:
        ValidationError: On the first rule failure
    """
    values: dict[str, Any] = {}
    for field in fields:
        value = field.name.extract(payload)
        for rule in field.rules:
            check_rule(field, rule, value)
        if value is not MISSING:
            values[field.path] = value
    return values
