"""
dxrules Validator Engine
Plausibility-range checks over patient record values
"""

import logging
from typing import List, Optional

from dxrules.schemas import (
    Check, FailureReason, PatientRecord, ValidatorFailure, ValidatorHit, ValidatorRule
)
from dxrules.modules.coercion import try_parse_number
from dxrules.modules.record_access import get_value, is_missing

logger = logging.getLogger(__name__)


def _bound(value: Optional[float]) -> str:
    return f"{value:g}" if value is not None else "?"


def describe_failure(failure: ValidatorFailure) -> str:
    """Human-readable text for one failing check"""
    if failure.reason == FailureReason.NON_NUMERIC:
        return f"{failure.path}={failure.value!r} is not numeric"
    if failure.reason == FailureReason.BELOW_MIN:
        return f"{failure.path}={failure.value} below min {_bound(failure.min_value)}"
    return f"{failure.path}={failure.value} above max {_bound(failure.max_value)}"


class RangeValidator:
    """
    Evaluates validator rules

    A value that is absent is skipped: absence is not implausibility.
    """

    @staticmethod
    def check_value(check: Check, value) -> List[ValidatorFailure]:
        """
        Validate one present value against one check

        Returns:
            Zero or more failures (non-numeric, below-min, above-max)
        """
        number = try_parse_number(value)
        if number is None:
            return [ValidatorFailure(
                path=check.path,
                value=value,
                reason=FailureReason.NON_NUMERIC,
                min_value=check.min_value,
                max_value=check.max_value,
            )]

        failures = []
        if check.min_value is not None and number < check.min_value:
            failures.append(ValidatorFailure(
                path=check.path, value=value, reason=FailureReason.BELOW_MIN,
                min_value=check.min_value, max_value=check.max_value,
            ))
        if check.max_value is not None and number > check.max_value:
            failures.append(ValidatorFailure(
                path=check.path, value=value, reason=FailureReason.ABOVE_MAX,
                min_value=check.min_value, max_value=check.max_value,
            ))
        return failures

    def evaluate_rule(self, rule: ValidatorRule, record: PatientRecord) -> Optional[ValidatorHit]:
        failures: List[ValidatorFailure] = []
        for check in rule.checks:
            value = get_value(record, check.path)
            if is_missing(value):
                continue
            failures.extend(self.check_value(check, value))

        if not failures:
            return None

        message = f"{rule.label}: " + "; ".join(describe_failure(f) for f in failures)
        return ValidatorHit(
            id=rule.id,
            label=rule.label,
            doctor_reason=rule.doctor_reason,
            failures=failures,
            message=message,
        )

    def evaluate(self, rules: List[ValidatorRule], record: PatientRecord) -> List[ValidatorHit]:
        """
        Evaluate validator rules in rule-set order

        Args:
            rules: Validator rules
            record: Patient record

        Returns:
            One hit per rule with at least one failing check
        """
        hits = []
        for rule in rules:
            hit = self.evaluate_rule(rule, record)
            if hit:
                hits.append(hit)

        if hits:
            logger.info(f"Validators: {len(hits)} implausible value rule(s) - " + ", ".join(h.id for h in hits))
        return hits
