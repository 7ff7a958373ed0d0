"""
dxrules Order Aggregator
Merges recommended tests and medicines across diagnoses
"""

from typing import Iterable, List

from dxrules.schemas import DiagnosisMatch, OrderSet


def _union(groups: Iterable[List[str]]) -> List[str]:
    seen = set()
    merged = []
    for items in groups:
        for item in items:
            if item not in seen:
                seen.add(item)
                merged.append(item)
    return merged


def collect_orders(matches: Iterable[DiagnosisMatch]) -> OrderSet:
    """
    Set-union of tests and medicines, first-seen order

    Args:
        matches: Diagnoses (typically primary followed by consider)

    Returns:
        OrderSet with deduplicated tests and medicines
    """
    matches = list(matches)
    return OrderSet(
        tests=_union(m.recommended_tests for m in matches),
        medicines=_union(m.suggested_medicines for m in matches),
    )
