"""
dxrules Rule Evaluation
Runs validators, flags and diagnosis scoring over one patient record
"""

import logging
from typing import Optional

from dxrules.schemas import CompiledRuleSet, EvaluationResult, PatientRecord
from dxrules.modules.diagnosis import DiagnosisEngine
from dxrules.modules.flags import FlagEngine
from dxrules.modules.validation import RangeValidator

logger = logging.getLogger(__name__)


class RuleEvaluator:
    """
    Main evaluation engine
    Combines the three rule-type engines over a compiled rule set

    Stateless apart from its policy constants: safe to share between
    concurrent requests. Evaluation never raises for record content.
    """

    def __init__(self, diagnosis_engine: Optional[DiagnosisEngine] = None):
        self.diagnosis_engine = diagnosis_engine or DiagnosisEngine()
        self.flag_engine = FlagEngine()
        self.validator = RangeValidator()

    def evaluate(self, record: Optional[PatientRecord], rule_set: CompiledRuleSet) -> EvaluationResult:
        """
        Evaluate a compiled rule set against a patient record

        Args:
            record: Patient record (section -> field -> value)
            rule_set: Compiled rule set; inactive rules are ignored

        Returns:
            EvaluationResult with primary/consider diagnoses, flags,
            validator hits and missing fields
        """
        record = record or {}

        diagnosis_rules = [r for r in rule_set.diagnosis_rules() if r.active]
        flag_rules = [r for r in rule_set.flag_rules() if r.active]
        validator_rules = [r for r in rule_set.validator_rules() if r.active]

        logger.info(
            f"Evaluating namespace '{rule_set.namespace}': {len(diagnosis_rules)} diagnosis, "
            f"{len(flag_rules)} flag, {len(validator_rules)} validator rules"
        )

        validators = self.validator.evaluate(validator_rules, record)
        flags = self.flag_engine.evaluate(flag_rules, record)
        primary, consider, missing = self.diagnosis_engine.evaluate(diagnosis_rules, record)

        return EvaluationResult(
            primary=primary,
            consider=consider,
            flags=flags,
            validators=validators,
            missing_fields=missing,
        )


# =============================================================================
# Public API
# =============================================================================

_default_evaluator = RuleEvaluator()


def evaluate(record: Optional[PatientRecord], rule_set: CompiledRuleSet) -> EvaluationResult:
    """
    Evaluate a compiled rule set against a patient record

    Args:
        record: Patient record
        rule_set: Compiled rule set

    Returns:
        EvaluationResult
    """
    return _default_evaluator.evaluate(record, rule_set)
