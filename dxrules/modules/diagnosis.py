"""
dxrules Diagnosis Engine
Scores diagnosis rules, applies thresholds, resolves mutex groups and ranks

Scoring policy:
  - score starts at the rule's baseScore
  - every satisfied condition adds its weight (DEFAULT_CONDITION_WEIGHT if unset)
  - a rule matches when satisfied >= minSatisfied; the score is clamped to [0, 1]
  - inside a mutex group only the best match stays primary; the others become
    "consider" with a flat CONSIDER_PENALTY taken off their score

All conditions of all rules are evaluated (no short-circuit), so the
satisfied count and the missing-field report reflect the full evidence
even for rules that end up below threshold.
"""

import logging
from typing import Dict, List, Optional, Tuple

from dxrules.schemas import (
    Decision, DiagnosisMatch, DiagnosisRule, MissingField, PatientRecord
)
from dxrules.modules.predicates import evaluate as evaluate_predicate
from dxrules.modules.record_access import get_field, is_missing

logger = logging.getLogger(__name__)

# Policy values; they must match the published scoring behaviour exactly
DEFAULT_CONDITION_WEIGHT = 0.2
CONSIDER_PENALTY = 0.15


def clamp_score(score: float) -> float:
    return max(0.0, min(1.0, score))


def _rank_key(match: DiagnosisMatch):
    return (-match.score, -match.priority)


class DiagnosisEngine:
    """Evaluates `single` and `multi` rules against a patient record"""

    def __init__(
        self,
        condition_weight: float = DEFAULT_CONDITION_WEIGHT,
        consider_penalty: float = CONSIDER_PENALTY
    ):
        self.condition_weight = condition_weight
        self.consider_penalty = consider_penalty

    def score_rule(
        self,
        rule: DiagnosisRule,
        record: PatientRecord,
        missing: Dict[Tuple[str, str], MissingField]
    ) -> Optional[DiagnosisMatch]:
        """
        Score one rule

        Args:
            rule: Diagnosis rule
            record: Patient record
            missing: Accumulator of missing addresses, in first-seen order

        Returns:
            DiagnosisMatch when the rule meets minSatisfied, else None
        """
        score = rule.base_score
        satisfied = 0

        for condition in rule.conditions:
            actual = get_field(record, condition.section, condition.field)
            if is_missing(actual):
                key = (condition.section, condition.field)
                if key not in missing:
                    missing[key] = MissingField(section=condition.section, field=condition.field)

            if evaluate_predicate(condition.operator, actual, condition.value):
                satisfied += 1
                weight = condition.weight if condition.weight is not None else self.condition_weight
                score += weight

        if satisfied < rule.min_satisfied:
            logger.debug(f"Rule {rule.id}: {satisfied}/{rule.min_satisfied} conditions, no match")
            return None

        return DiagnosisMatch(
            id=rule.id,
            label=rule.label,
            type=rule.type,
            mutex_group=rule.mutex_group,
            score=clamp_score(score),
            priority=rule.priority,
            satisfied=satisfied,
            min_satisfied=rule.min_satisfied,
            decision=Decision.PRIMARY,
            doctor_reason=rule.doctor_reason,
            patient_explanation=rule.patient_explanation,
            recommended_tests=list(rule.recommended_tests),
            suggested_medicines=list(rule.suggested_medicines),
            follow_up_advice=rule.follow_up_advice,
        )

    def resolve_mutex(
        self,
        matches: List[DiagnosisMatch]
    ) -> Tuple[List[DiagnosisMatch], List[DiagnosisMatch]]:
        """
        Split matches into primary and consider lists

        Rules without a mutex group are always primary. Within a group the
        best (score, then priority) is primary; the rest are demoted.
        """
        primary: List[DiagnosisMatch] = []
        consider: List[DiagnosisMatch] = []
        groups: Dict[str, List[DiagnosisMatch]] = {}

        for match in matches:
            if not match.mutex_group:
                primary.append(match)
            else:
                groups.setdefault(match.mutex_group, []).append(match)

        for group, members in groups.items():
            ranked = sorted(members, key=_rank_key)
            primary.append(ranked[0])
            for demoted in ranked[1:]:
                consider.append(demoted.model_copy(update={
                    "decision": Decision.CONSIDER,
                    "score": max(0.0, demoted.score - self.consider_penalty),
                }))
            if len(ranked) > 1:
                logger.debug(
                    f"Mutex group '{group}': {ranked[0].id} primary, "
                    f"{len(ranked) - 1} demoted to consider"
                )

        primary.sort(key=_rank_key)
        return primary, consider

    def evaluate(
        self,
        rules: List[DiagnosisRule],
        record: PatientRecord
    ) -> Tuple[List[DiagnosisMatch], List[DiagnosisMatch], List[MissingField]]:
        """
        Evaluate diagnosis rules

        Args:
            rules: Diagnosis rules in rule-set order
            record: Patient record

        Returns:
            Tuple of (primary, consider, missing fields)
        """
        missing: Dict[Tuple[str, str], MissingField] = {}
        matches = []

        for rule in rules:
            match = self.score_rule(rule, record, missing)
            if match:
                matches.append(match)

        primary, consider = self.resolve_mutex(matches)

        logger.info(
            f"Diagnoses: {len(primary)} primary, {len(consider)} consider, "
            f"{len(missing)} missing field(s) across {len(rules)} rules"
        )
        return primary, consider, list(missing.values())
