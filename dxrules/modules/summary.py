"""
dxrules Evaluation Summaries
Plain-text renderings of an evaluation for doctor and patient views
"""

from typing import Iterable, List

from dxrules.schemas import EvaluationResult, MissingField, OrderSet
from dxrules.modules.orders import collect_orders

NO_PRIMARY_DOCTOR = "No primary diagnosis yet. Please add more data."
NO_PRIMARY_PATIENT = "We need a few more tests or information to be sure."


def format_missing_fields(missing: Iterable[MissingField]) -> List[str]:
    """Dotted addresses ("labs.egfr") for the missing-data prompt"""
    return [m.path for m in missing]


def doctor_summary(result: EvaluationResult) -> str:
    blocks = [
        f"• {d.label} — {round(d.score * 100)}%\n  {d.doctor_reason}"
        for d in result.primary
    ]
    return "\n\n".join(blocks) or NO_PRIMARY_DOCTOR


def patient_summary(result: EvaluationResult) -> str:
    lines = [f"• {d.label}: {d.patient_explanation}" for d in result.primary]
    return "\n".join(lines) or NO_PRIMARY_PATIENT


def alert_summary(result: EvaluationResult) -> str:
    """Flags first (SEVERITY: label), then validator hits"""
    parts = [f"{(f.severity or 'info').upper()}: {f.label}" for f in result.flags]
    parts += [f"VALIDATOR: {v.label}" for v in result.validators]
    return " | ".join(parts)


def suggested_orders(result: EvaluationResult) -> OrderSet:
    """Orders across primary then consider diagnoses"""
    return collect_orders(result.primary + result.consider)
