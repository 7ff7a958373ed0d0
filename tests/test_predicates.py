"""
Unit tests for value coercion, record lookup and condition predicates
"""

import math
import pytest

from dxrules.schemas import Operator
from dxrules.modules.coercion import split_csv, try_parse_number
from dxrules.modules.record_access import get_field, get_value, is_missing
from dxrules.modules.predicates import evaluate, strict_equals


class TestCoercion:
    """Test numeric parsing and CSV splitting"""

    @pytest.mark.parametrize("raw,expected", [
        (45, 45),
        (3.5, 3.5),
        ("45", 45),
        (" 3.5 ", 3.5),
        ("-0.2", -0.2),
        ("1e3", 1000.0),
        ("", None),
        ("abc", None),
        ("nan", None),
        ("inf", None),
        (True, None),
        (None, None),
        ([1], None),
    ])
    def test_try_parse_number(self, raw, expected):
        assert try_parse_number(raw) == expected

    def test_non_finite_float_is_not_a_number(self):
        assert try_parse_number(math.inf) is None
        assert try_parse_number(float("nan")) is None

    def test_split_csv(self):
        assert split_csv("CBC, LFT ,,  ") == ["CBC", "LFT"]
        assert split_csv(None) == []
        assert split_csv("") == []
        assert split_csv(["a", " ", "b"]) == ["a", "b"]


class TestRecordAccess:
    """Test dotted-path lookup"""

    def test_get_value(self, aki_record):
        assert get_value(aki_record, "labs.egfr") == 45
        assert get_value(aki_record, "symptoms.fever") == "Yes"

    @pytest.mark.parametrize("path", [
        "labs.missing",
        "nosection.egfr",
        "labs.egfr.deeper",
        "",
        None,
    ])
    def test_unresolvable_paths_return_none(self, aki_record, path):
        assert get_value(aki_record, path) is None

    def test_non_mapping_record(self):
        assert get_value(None, "labs.egfr") is None
        assert get_field(None, "labs", "egfr") is None
        assert get_field({"labs": "oops"}, "labs", "egfr") is None

    def test_get_field(self, aki_record):
        assert get_field(aki_record, "history", "contrast") == "Yes"
        assert get_field(aki_record, "history", "smoking") is None

    def test_blank_values_are_missing(self):
        assert is_missing(None)
        assert is_missing("")
        assert is_missing("   ")
        assert not is_missing(0)
        assert not is_missing(False)
        assert not is_missing("No")


class TestEquality:
    """Test type-sensitive equality"""

    def test_same_type(self):
        assert strict_equals("Yes", "Yes")
        assert strict_equals(2, 2.0)
        assert not strict_equals("Yes", "yes")

    def test_no_cross_type_coercion(self):
        assert not strict_equals("45", 45)
        assert not strict_equals(1, True)
        assert not strict_equals("Yes", True)
        assert strict_equals(True, True)

    def test_eq_and_ne(self):
        assert evaluate(Operator.EQ, "Yes", "Yes")
        assert not evaluate("==", "45", 45)
        assert evaluate("!=", "No", "Yes")
        assert evaluate("!=", "45", 45)


class TestOperators:
    """Test the comparison and membership operators"""

    @pytest.mark.parametrize("operator", ["==", "!=", ">", "<", ">=", "<=", "in"])
    @pytest.mark.parametrize("actual", [None, "", "  "])
    def test_missing_value_never_satisfies(self, operator, actual):
        assert evaluate(operator, actual, "Yes") is False
        assert evaluate(operator, actual, 5) is False
        assert evaluate(operator, actual, ["Yes"]) is False

    @pytest.mark.parametrize("operator,actual,expected,result", [
        (">", 2.4, 1.5, True),
        (">", 1.5, 1.5, False),
        (">=", 1.5, 1.5, True),
        ("<", 45, 60, True),
        ("<=", 60, 60, True),
        ("<=", 61, 60, False),
        (">", 2.4, "1.5", True),
    ])
    def test_numeric(self, operator, actual, expected, result):
        assert evaluate(operator, actual, expected) is result

    @pytest.mark.parametrize("operator", [">", "<", ">=", "<="])
    def test_numeric_requires_numeric_record_value(self, operator):
        assert evaluate(operator, "45", 60) is False
        assert evaluate(operator, True, 0) is False
        assert evaluate(operator, 45, "sixty") is False

    def test_in_list(self):
        assert evaluate("in", "NSAID", ["NSAID", "Aminoglycoside"])
        assert not evaluate("in", "Lithium", ["NSAID", "Aminoglycoside"])
        assert not evaluate("in", "1", [1, 2])

    def test_in_csv_string(self):
        assert evaluate("in", "B", "A, B, C")
        assert evaluate("in", " C ", "A,B,C")
        assert not evaluate("in", "D", "A, B, C")
        assert not evaluate("in", 1, "1, 2")

    def test_in_with_other_expected(self):
        assert not evaluate("in", 5, 5)
        assert not evaluate("in", "A", None)

    def test_unknown_operator(self):
        assert evaluate("~=", 5, 5) is False
