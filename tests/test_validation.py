"""
Unit tests for the validator engine
"""

import pytest

from dxrules.schemas import Check, FailureReason, ValidatorRule
from dxrules.modules.validation import RangeValidator, describe_failure


def validator_rule(checks, rule_id="lab_range", label="Lab range"):
    return ValidatorRule.model_validate({
        "id": rule_id, "label": label, "type": "validator", "checks": checks,
    })


class TestCheckValue:
    """Test a single range check"""

    def test_in_range(self):
        check = Check(path="labs.k", min=1.5, max=9)
        assert RangeValidator.check_value(check, 4.2) == []
        assert RangeValidator.check_value(check, 1.5) == []
        assert RangeValidator.check_value(check, 9) == []

    def test_below_min(self):
        failures = RangeValidator.check_value(Check(path="labs.k", min=1.5, max=9), 0.4)
        assert [f.reason for f in failures] == [FailureReason.BELOW_MIN]

    def test_above_max(self):
        failures = RangeValidator.check_value(Check(path="labs.k", min=1.5, max=9), 12)
        assert [f.reason for f in failures] == [FailureReason.ABOVE_MAX]

    def test_numeric_string_is_accepted(self):
        check = Check(path="labs.na", min=100, max=180)
        assert RangeValidator.check_value(check, "138") == []
        failures = RangeValidator.check_value(check, " 95 ")
        assert failures[0].reason == FailureReason.BELOW_MIN

    def test_non_numeric(self):
        failures = RangeValidator.check_value(Check(path="labs.k", max=9), "high")
        assert len(failures) == 1
        assert failures[0].reason == FailureReason.NON_NUMERIC
        assert failures[0].value == "high"

    def test_single_bound(self):
        assert RangeValidator.check_value(Check(path="vitals.sbp", min=40), 300) == []
        failures = RangeValidator.check_value(Check(path="vitals.sbp", max=300), 310)
        assert failures[0].reason == FailureReason.ABOVE_MAX

    def test_check_needs_a_bound(self):
        with pytest.raises(ValueError):
            Check(path="labs.k")


class TestRangeValidator:
    """Test validator rules over a record"""

    def test_missing_value_is_not_a_failure(self):
        rule = validator_rule([{"path": "labs.k", "min": 1.5, "max": 9}])
        validator = RangeValidator()

        assert validator.evaluate([rule], {}) == []
        assert validator.evaluate([rule], {"labs": {"k": ""}}) == []
        assert validator.evaluate([rule], {"labs": {"k": None}}) == []

    def test_implausible_value_reported(self):
        rule = validator_rule([
            {"path": "labs.k", "min": 1.5, "max": 9},
            {"path": "labs.na", "min": 100, "max": 180},
        ])
        record = {"labs": {"k": 15, "na": 138}}

        hits = RangeValidator().evaluate([rule], record)

        assert len(hits) == 1
        hit = hits[0]
        assert hit.id == "lab_range"
        assert len(hit.failures) == 1
        assert hit.failures[0].path == "labs.k"
        assert hit.message == "Lab range: labs.k=15 above max 9"

    def test_every_failing_check_listed(self):
        rule = validator_rule([
            {"path": "labs.k", "min": 1.5, "max": 9},
            {"path": "labs.na", "min": 100, "max": 180},
        ])
        record = {"labs": {"k": "abc", "na": 90}}

        hit = RangeValidator().evaluate([rule], record)[0]

        assert [f.reason for f in hit.failures] == [
            FailureReason.NON_NUMERIC, FailureReason.BELOW_MIN
        ]
        assert hit.message == (
            "Lab range: labs.k='abc' is not numeric; labs.na=90 below min 100"
        )

    def test_hits_in_rule_order(self):
        rules = [
            validator_rule([{"path": "labs.k", "max": 9}], "first", "First"),
            validator_rule([{"path": "labs.na", "max": 180}], "second", "Second"),
        ]
        record = {"labs": {"k": 10, "na": 200}}

        hits = RangeValidator().evaluate(rules, record)

        assert [h.id for h in hits] == ["first", "second"]

    def test_describe_failure(self):
        failure = RangeValidator.check_value(Check(path="labs.k", min=1.5), 0.5)[0]
        assert describe_failure(failure) == "labs.k=0.5 below min 1.5"
