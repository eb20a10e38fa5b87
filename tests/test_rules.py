"""Tests for the functional rule library."""

import pytest

from ruleforge.validation import rules
from ruleforge.validation.types import ValidationContext


async def run(rule, value, context=None):
    return await rule.validate(value, context or ValidationContext())


class TestRequired:
    @pytest.mark.asyncio
    async def test_none_fails(self):
        result = await run(rules.required(), None)
        assert result.valid is False
        assert result.errors[0].message_ids == ("validation.required",)
        assert result.errors[0].expected == ("required", True)

    @pytest.mark.asyncio
    async def test_empty_string_passes(self):
        assert (await run(rules.required(), "")).valid is True

    @pytest.mark.asyncio
    async def test_custom_message(self):
        result = await run(rules.required(message="Name please"), None)
        assert result.errors[0].message == "Name please"


class TestStrings:
    @pytest.mark.asyncio
    async def test_min_length_reports_actual_length(self):
        result = await run(rules.min_length(3), "ab")
        error = result.errors[0]
        assert error.message_ids == ("validation.minlength",)
        assert error.expected == ("minLength", 3)
        assert error.received == ("ab", 2)

    @pytest.mark.asyncio
    async def test_max_length(self):
        assert (await run(rules.max_length(3), "abc")).valid is True
        assert (await run(rules.max_length(3), "abcd")).valid is False

    @pytest.mark.asyncio
    async def test_none_is_not_checked(self):
        assert (await run(rules.min_length(3), None)).valid is True
        assert (await run(rules.pattern(r"^\d+$"), None)).valid is True

    @pytest.mark.asyncio
    async def test_pattern(self):
        rule = rules.pattern(r"^\d{3}$")
        assert (await run(rule, "123")).valid is True
        result = await run(rule, "12a")
        assert result.errors[0].expected == ("pattern", r"^\d{3}$")

    @pytest.mark.asyncio
    async def test_email(self):
        assert (await run(rules.email(), "a@example.com")).valid is True
        result = await run(rules.email(), "not-an-email")
        assert result.errors[0].message_ids == ("validation.email",)


class TestNumbers:
    @pytest.mark.asyncio
    async def test_numeric_accepts_numeric_strings(self):
        assert (await run(rules.numeric(), "3.5")).valid is True
        assert (await run(rules.numeric(), 7)).valid is True
        assert (await run(rules.numeric(), "seven")).valid is False

    @pytest.mark.asyncio
    async def test_bool_is_not_numeric(self):
        assert (await run(rules.numeric(), True)).valid is False

    @pytest.mark.asyncio
    async def test_bounds(self):
        assert (await run(rules.min_value(5), 5)).valid is True
        assert (await run(rules.min_value(5), 4)).valid is False
        assert (await run(rules.max_value(5), "6")).valid is False

    @pytest.mark.asyncio
    async def test_comparison_type_mismatch_fails(self):
        result = await run(rules.gt(3), "abc")
        assert result.valid is False
        assert result.errors[0].message_ids == ("validation.gt",)

    @pytest.mark.parametrize(
        "factory,value,valid",
        [
            (rules.eq, 3, True),
            (rules.neq, 3, False),
            (rules.gt, 4, True),
            (rules.gte, 3, True),
            (rules.lt, 3, False),
            (rules.lte, 3, True),
        ],
    )
    @pytest.mark.asyncio
    async def test_comparisons(self, factory, value, valid):
        assert (await run(factory(3), value)).valid is valid


class TestMembership:
    @pytest.mark.asyncio
    async def test_one_of(self):
        rule = rules.one_of(["draft", "published"])
        assert (await run(rule, "draft")).valid is True
        result = await run(rule, "archived")
        assert result.errors[0].expected == ("inList", ["draft", "published"])

    @pytest.mark.asyncio
    async def test_not_in_list(self):
        rule = rules.not_in_list(["root"])
        assert (await run(rule, "root")).valid is False
        assert (await run(rule, "alice")).valid is True


class TestDatatype:
    @pytest.mark.parametrize(
        "name,value,valid",
        [
            ("string", "x", True),
            ("string", 1, False),
            ("number", 1.5, True),
            ("number", True, False),
            ("boolean", False, True),
            ("array", [1], True),
            ("object", {"a": 1}, True),
            ("object", [1], False),
            ("ipv4", "10.0.0.1", True),
            ("ipv6", "10.0.0.1", False),
            ("httpUrl", "https://example.com/a", True),
            ("uuid", "123e4567-e89b-12d3-a456-426614174000", True),
            ("json", '{"a": 1}', True),
            ("json", "{a", False),
            ("date", "2024-02-29", True),
        ],
    )
    @pytest.mark.asyncio
    async def test_types(self, name, value, valid):
        assert (await run(rules.datatype(name), value)).valid is valid

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError, match="Unknown datatype"):
            rules.datatype("colour")


class TestCustom:
    @pytest.mark.asyncio
    async def test_sync_predicate(self):
        rule = rules.custom(lambda v, ctx: v % 2 == 0, message="Must be even")
        assert (await run(rule, 4)).valid is True
        result = await run(rule, 3)
        assert result.errors[0].message == "Must be even"
        assert result.errors[0].message_ids == ("validation.custom",)

    @pytest.mark.asyncio
    async def test_async_predicate_sees_context(self):
        async def owned(value, context):
            return context.data["owner"] == value

        rule = rules.custom(owned)
        context = ValidationContext(data={"owner": "alice"})
        assert (await run(rule, "alice", context)).valid is True
        assert (await run(rule, "bob", context)).valid is False

    @pytest.mark.asyncio
    async def test_raising_predicate_is_captured(self):
        def broken(value, context):
            raise RuntimeError("lookup failed")

        result = await run(rules.custom(broken), 1)
        assert result.errors[0].message == "lookup failed"


class TestCombinators:
    @pytest.mark.asyncio
    async def test_all_of_collects_every_failure(self):
        rule = rules.all_of([rules.min_length(5), rules.pattern(r"^\d+$")])
        result = await run(rule, "ab")
        assert [e.message_ids for e in result.errors] == [
            ("validation.minlength",),
            ("validation.pattern",),
        ]

    @pytest.mark.asyncio
    async def test_any_of_first_pass_wins(self):
        rule = rules.any_of([rules.email(), rules.pattern(r"^\+\d+$")])
        assert (await run(rule, "+123")).valid is True
        result = await run(rule, "nope")
        assert len(result.errors) == 2

    @pytest.mark.asyncio
    async def test_any_of_without_rules_passes(self):
        assert (await run(rules.any_of([]), "anything")).valid is True
