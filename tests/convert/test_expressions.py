"""Tests for ingestbridge.convert.expressions."""

from datetime import datetime, timezone

import pytest

from ingestbridge.convert.context import EvaluationContext
from ingestbridge.convert.expressions import FUNCTIONS, compile_expression, register_function
from ingestbridge.core.errors import ConfigurationError
from ingestbridge.schema.types import Point


def evaluate(text, args=None, ctx=None):
    return compile_expression(text).evaluate(args or [], ctx or EvaluationContext())


class TestCompile:
    @pytest.mark.parametrize(
        "text",
        ["", "   ", "nope($1)", "toDouble($1", "toDouble($1))", "$1 $2", "concat(,)", "#"],
    )
    def test_invalid(self, text):
        with pytest.raises(ConfigurationError):
            compile_expression(text)

    @pytest.mark.parametrize("text", ["point($3)", "toDouble($1, $2)", "now(1)", "date($1)"])
    def test_wrong_argument_count(self, text):
        with pytest.raises(ConfigurationError, match="Wrong number of arguments"):
            compile_expression(text)

    def test_variadic_functions_accept_any_count(self):
        compile_expression("concat()")
        compile_expression("concat($1, $2, $3, $4)")


class TestEvaluate:
    def test_column_refs(self):
        assert evaluate("$0", ["raw", "a"]) == "raw"
        assert evaluate("$1", ["raw", "a"]) == "a"

    def test_column_out_of_range(self):
        with pytest.raises(ValueError, match=r"\$3"):
            evaluate("$3", ["raw", "a"])

    def test_literals(self):
        assert evaluate("'it\\'s'") == "it's"
        assert evaluate('"x"') == "x"
        assert evaluate("42") == 42
        assert evaluate("-1.5") == -1.5
        assert evaluate("true") is True
        assert evaluate("null") is None

    def test_nested_calls(self):
        assert evaluate("point(toDouble($3), toDouble($4))", ["r", "a", "t", "10", "20"]) == Point(
            10.0, 20.0
        )

    def test_field_and_global_refs(self):
        ctx = EvaluationContext(globals={"inputFilePath": "/in/obs.csv"})
        ctx.fields["id"] = "a"
        assert evaluate("concat($id, '@', $inputFilePath)", ctx=ctx) == "a@/in/obs.csv"

    def test_unknown_field_ref(self):
        with pytest.raises(ValueError, match="Unknown field"):
            evaluate("$missing")

    def test_date_functions(self):
        expected = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert evaluate("dateTime($1)", ["r", "2020-01-01T00:00:00Z"]) == expected
        assert evaluate("date('%Y%m%d', $1)", ["r", "20200101"]) == expected
        assert evaluate("millisToDate($1)", ["r", "1577836800000"]) == expected
        assert evaluate("secsToDate($1)", ["r", "1577836800"]) == expected

    def test_string_functions(self):
        assert evaluate("trim($1)", ["r", "  a "]) == "a"
        assert evaluate("uppercase($1)", ["r", "a"]) == "A"
        assert evaluate("regexReplace('[0-9]', 'x', $1)", ["r", "a1b2"]) == "axbx"
        assert evaluate("md5($0)", ["abc"]) == "900150983cd24fb0d6963f7d28e17f72"

    def test_defaults(self):
        assert evaluate("withDefault($1, 'n/a')", ["r", ""]) == "n/a"
        assert evaluate("stringToDouble($1, 0.0)", ["r", "x"]) == 0.0
        assert evaluate("toInt($1)", ["r", ""]) is None

    def test_register_function(self, monkeypatch):
        monkeypatch.setitem(FUNCTIONS, "double", lambda v: v * 2)
        assert evaluate("double(toInt($1))", ["r", "21"]) == 42

    def test_register_function_helper(self):
        register_function("reverse", lambda v: v[::-1])
        try:
            assert evaluate("reverse($1)", ["r", "ab"]) == "ba"
        finally:
            FUNCTIONS.pop("reverse")
