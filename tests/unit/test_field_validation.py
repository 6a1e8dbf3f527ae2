"""Unit tests for field paths, rule parsing and payload validation."""

from __future__ import annotations

import pytest

from trellis.errors import ValidationError
from trellis.runtime.validation import is_empty, register_rule, validate_fields
from trellis.specs.field import MISSING, FieldPath, FieldSpec, InputKind, RuleSpec, parse_rules


class TestFieldPath:
    """Tests for dot-path parsing and resolution."""

    def test_parse_splits_segments(self) -> None:
        path = FieldPath.parse("task.name")
        assert path.parts == ("task", "name")
        assert path.head == "task"
        assert path.leaf == "name"
        assert path.tail == ("name",)
        assert str(path) == "task.name"

    def test_parse_is_idempotent(self) -> None:
        path = FieldPath.parse("task.name")
        assert FieldPath.parse(path) is path

    @pytest.mark.parametrize("value", ["", "task..name", ".name", "task."])
    def test_empty_segments_rejected(self, value: str) -> None:
        with pytest.raises(ValueError):
            FieldPath.parse(value)

    def test_extract_nested(self) -> None:
        path = FieldPath.parse("task.name")
        assert path.extract({"task": {"name": "Buy milk"}}) == "Buy milk"

    def test_extract_flat_form_key(self) -> None:
        path = FieldPath.parse("task.name")
        assert path.extract({"task.name": "Buy milk"}) == "Buy milk"

    def test_flat_key_wins_over_nested(self) -> None:
        path = FieldPath.parse("task.name")
        payload = {"task.name": "flat", "task": {"name": "nested"}}
        assert path.extract(payload) == "flat"

    def test_extract_missing(self) -> None:
        path = FieldPath.parse("task.name")
        assert path.extract({}) is MISSING
        assert path.extract({"task": "not a mapping"}) is MISSING
        assert path.extract({"task": {"name": None}}) is None

    def test_assign_creates_levels(self) -> None:
        target: dict = {}
        FieldPath.parse("task.owner.email").assign(target, "a@example.com")
        assert target == {"task": {"owner": {"email": "a@example.com"}}}

    def test_paths_hash_by_value(self) -> None:
        assert FieldPath.parse("task.name") == FieldPath.parse("task.name")
        assert len({FieldPath.parse("a.b"), FieldPath.parse("a.b")}) == 1


class TestRuleParsing:
    """Tests for rule expressions."""

    def test_parse_with_argument(self) -> None:
        rule = RuleSpec.parse("maxLength:255")
        assert rule.name == "maxLength"
        assert rule.argument == "255"
        assert str(rule) == "maxLength:255"

    def test_parse_without_argument(self) -> None:
        rule = RuleSpec.parse("required")
        assert rule.argument is None
        assert str(rule) == "required"

    def test_pipe_expression(self) -> None:
        rules = parse_rules("required|maxLength:255")
        assert [str(r) for r in rules] == ["required", "maxLength:255"]

    def test_mixed_list(self) -> None:
        rules = parse_rules(["required", RuleSpec(name="email")])
        assert [r.name for r in rules] == ["required", "email"]

    def test_field_spec_parses_rules(self) -> None:
        field = FieldSpec(name="task.name", rules="required|maxLength:255")
        assert field.is_required
        assert field.path == "task.name"
        assert len(field.rules) == 2

    def test_unknown_rule_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown validation rule"):
            FieldSpec(name="task.name", rules="required|shiny")

    @pytest.mark.parametrize(
        "rules",
        ["maxLength:abc", "minLength", "maxLength:-1", "min:x", "max:", "pattern:[", "in:", "in: , "],
    )
    def test_unusable_argument_rejected(self, rules: str) -> None:
        with pytest.raises(ValueError, match="Validation rule"):
            FieldSpec(name="task.name", rules=rules)

    def test_usable_arguments_accepted(self) -> None:
        field = FieldSpec(name="value", rules="minLength:0|max:2.5|pattern:^[a-z]+$|in:a, b")
        assert [rule.name for rule in field.rules] == ["minLength", "max", "pattern", "in"]



class TestFieldDescribe:
    """Tests for the render-ready field description."""

    def test_label_defaults_to_leaf(self) -> None:
        described = FieldSpec(name="task.due_date").describe()
        assert described["label"] == "Due Date"
        assert described["kind"] == "input"
        assert described["required"] is False

    def test_explicit_values(self) -> None:
        field = FieldSpec(
            name="task.name",
            label="Name",
            placeholder="Enter task name",
            help="The name of the task to be created.",
            kind=InputKind.TEXTAREA,
            rules="required",
        )
        described = field.describe()
        assert described["label"] == "Name"
        assert described["placeholder"] == "Enter task name"
        assert described["kind"] == "textarea"
        assert described["rules"] == ["required"]


class TestValidateFields:
    """Tests for validate_fields."""

    @pytest.fixture
    def name_field(self) -> FieldSpec:
        return FieldSpec(name="task.name", label="Name", rules="required|maxLength:255")

    def test_valid_payload_returns_values(self, name_field: FieldSpec) -> None:
        values = validate_fields([name_field], {"task": {"name": "Buy milk"}})
        assert values == {"task.name": "Buy milk"}

    def test_missing_required(self, name_field: FieldSpec) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_fields([name_field], {})
        assert exc_info.value.field == "task.name"
        assert exc_info.value.rule == "required"
        assert exc_info.value.message == "The name field is required."

    def test_blank_string_is_missing(self, name_field: FieldSpec) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_fields([name_field], {"task.name": "   "})
        assert exc_info.value.rule == "required"

    def test_max_length(self, name_field: FieldSpec) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_fields([name_field], {"task": {"name": "x" * 256}})
        assert exc_info.value.rule == "maxLength:255"
        assert "255" in exc_info.value.message

    def test_max_length_boundary(self, name_field: FieldSpec) -> None:
        values = validate_fields([name_field], {"task": {"name": "x" * 255}})
        assert len(values["task.name"]) == 255

    def test_optional_empty_value_skips_rules(self) -> None:
        field = FieldSpec(name="user.email", rules="email|maxLength:5")
        assert validate_fields([field], {}) == {}
        assert validate_fields([field], {"user": {"email": ""}}) == {"user.email": ""}

    def test_first_failure_wins(self) -> None:
        fields = [
            FieldSpec(name="a", rules="required"),
            FieldSpec(name="b", rules="required"),
        ]
        with pytest.raises(ValidationError) as exc_info:
            validate_fields(fields, {})
        assert exc_info.value.field == "a"

    @pytest.mark.parametrize(
        ("rules", "value", "valid"),
        [
            ("minLength:3", "ab", False),
            ("minLength:3", "abc", True),
            ("min:1", "0", False),
            ("max:10", 10, True),
            ("integer", "12", True),
            ("integer", "1.5", False),
            ("numeric", "1.5", True),
            ("numeric", "abc", False),
            ("boolean", "on", True),
            ("boolean", "maybe", False),
            ("email", "a@example.com", True),
            ("email", "not-an-email", False),
            ("in:low,high", "high", True),
            ("in:low,high", "medium", False),
            ("pattern:[a-z]+", "abc", True),
            ("pattern:[a-z]+", "ABC", False),
        ],
    )
    def test_builtin_rules(self, rules: str, value: object, valid: bool) -> None:
        field = FieldSpec(name="value", rules=rules)
        if valid:
            assert validate_fields([field], {"value": value}) == {"value": value}
        else:
            with pytest.raises(ValidationError):
                validate_fields([field], {"value": value})

    def test_is_empty(self) -> None:
        assert is_empty(MISSING)
        assert is_empty(None)
        assert is_empty("  ")
        assert is_empty([])
        assert not is_empty(0)
        assert not is_empty(False)


class TestRegisterRule:
    """Tests for custom rules."""

    def test_custom_rule(self) -> None:
        register_rule(
            "uppercase",
            lambda value, _: str(value).isupper(),
            "The {label} field must be upper case.",
        )
        field = FieldSpec(name="code", label="Code", rules="required|uppercase")

        assert validate_fields([field], {"code": "ABC"}) == {"code": "ABC"}
        with pytest.raises(ValidationError) as exc_info:
            validate_fields([field], {"code": "abc"})
        assert exc_info.value.message == "The code field must be upper case."

    def test_duplicate_rule_rejected(self) -> None:
        with pytest.raises(ValueError, match="already registered"):
            register_rule("required", lambda value, _: True)

    def test_custom_argument_check(self) -> None:
        def check_divisor(argument: str | None) -> None:
            if not (argument or "").isdigit() or int(argument or "0") == 0:
                raise ValueError("expects a positive integer")

        register_rule(
            "divisibleBy",
            lambda value, argument: int(value) % int(argument or "1") == 0,
            "The {label} field must be divisible by {arg}.",
            check_argument=check_divisor,
        )

        assert FieldSpec(name="count", rules="divisibleBy:3").rules[0].argument == "3"
        with pytest.raises(ValueError, match="positive integer"):
            FieldSpec(name="count", rules="divisibleBy:0")
