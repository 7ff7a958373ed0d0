"""
dxrules Flag Engine
All-or-nothing alert rules with a severity tag
"""

import logging
from typing import List

from dxrules.schemas import FlagHit, FlagRule, PatientRecord
from dxrules.modules.predicates import evaluate as evaluate_predicate
from dxrules.modules.record_access import get_field

logger = logging.getLogger(__name__)


class FlagEngine:
    """
    Fires a flag only when every one of its conditions is true

    Partial satisfaction never fires a flag. No scoring, no ranking:
    hits come back in rule-set order.
    """

    @staticmethod
    def fires(rule: FlagRule, record: PatientRecord) -> bool:
        return all(
            evaluate_predicate(c.operator, get_field(record, c.section, c.field), c.value)
            for c in rule.conditions
        )

    def evaluate(self, rules: List[FlagRule], record: PatientRecord) -> List[FlagHit]:
        hits = [
            FlagHit(
                id=rule.id,
                label=rule.label,
                severity=rule.severity,
                doctor_reason=rule.doctor_reason,
                recommended_tests=list(rule.recommended_tests),
            )
            for rule in rules
            if self.fires(rule, record)
        ]

        if hits:
            logger.info("Flags raised: " + ", ".join(f"{h.id} ({h.severity})" for h in hits))
        return hits
