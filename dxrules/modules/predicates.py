"""
dxrules Predicate Evaluator
Evaluates one condition operator against one record value

The evaluator is total: no operator raises, and anything ambiguous
(missing value, wrong type, unknown operator) is simply unsatisfied.
"""

from typing import Any, Union

from dxrules.schemas import Operator
from dxrules.modules.coercion import is_numeric, try_parse_number, split_csv
from dxrules.modules.record_access import is_missing


def strict_equals(actual: Any, expected: Any) -> bool:
    """Type-sensitive equality: "Yes" != True and 1 != True"""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if is_numeric(actual) and is_numeric(expected):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def _compare(op: str, actual: Any, expected: Any) -> bool:
    # Record values must already be numbers; authored bounds may be numeric strings
    if not is_numeric(actual):
        return False
    bound = try_parse_number(expected)
    if bound is None:
        return False

    if op == Operator.GT.value:
        return actual > bound
    if op == Operator.LT.value:
        return actual < bound
    if op == Operator.GE.value:
        return actual >= bound
    return actual <= bound


def _membership(actual: Any, expected: Any) -> bool:
    if isinstance(expected, (list, tuple)):
        return any(strict_equals(actual, item) for item in expected)
    if isinstance(expected, str):
        # Loosely authored rules write "A, B, C" instead of a JSON array
        return isinstance(actual, str) and actual.strip() in split_csv(expected)
    return False


_NUMERIC_OPERATORS = {Operator.GT.value, Operator.LT.value, Operator.GE.value, Operator.LE.value}


def evaluate(operator: Union[Operator, str], actual: Any, expected: Any) -> bool:
    """
    Evaluate `actual <operator> expected`

    Args:
        operator: Operator member or its string form
        actual: Value looked up in the patient record
        expected: Value authored in the rule

    Returns:
        True only when the condition is definitely satisfied
    """
    if is_missing(actual):
        return False

    op = operator.value if isinstance(operator, Operator) else operator

    if op == Operator.EQ.value:
        return strict_equals(actual, expected)
    if op == Operator.NE.value:
        return not strict_equals(actual, expected)
    if op in _NUMERIC_OPERATORS:
        return _compare(op, actual, expected)
    if op == Operator.IN.value:
        return _membership(actual, expected)
    return False
