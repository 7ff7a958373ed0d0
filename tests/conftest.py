"""
Pytest Configuration and Fixtures

Shared rule rows, records and rule sets for the rule engine tests.
"""
import json
import pytest
from datetime import datetime, timezone
from pathlib import Path
import sys

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dxrules.modules.rule_compiler import compile_rules


GENERATED_AT = datetime(2026, 1, 15, 8, 30, tzinfo=timezone.utc)


def cond(section, field, operator, value, **extra):
    """Condition dict as authored in conditionsJSON"""
    return {"section": section, "field": field, "operator": operator, "value": value, **extra}


def make_row(rule_id, label, rule_type="single", conditions=None, checks=None, **columns):
    """Raw sheet row: every cell is a string, JSON columns are serialized"""
    row = {"id": rule_id, "label": label, "type": rule_type}
    if conditions is not None:
        row["conditionsJSON"] = json.dumps(conditions)
    if checks is not None:
        row["checksJSON"] = json.dumps(checks)
    row.update(columns)
    return row


@pytest.fixture
def ckd_conditions():
    return [cond("labs", "egfr", "<", 60), cond("labs", "egfr", ">=", 30)]


@pytest.fixture
def sample_rows(ckd_conditions):
    """A small nephrology sheet covering every rule type"""
    return [
        make_row(
            "ckd3", "CKD Stage 3", "single", ckd_conditions,
            priority="5", minSatisfied="1", tags="ckd, chronic",
            recommendedTests="Urine ACR, Renal ultrasound",
            suggestedMedicines="ACE inhibitor",
            doctorReason="eGFR 30-59 consistent with CKD stage 3.",
            patientExplanation="Kidney function is moderately reduced.",
        ),
        make_row(
            "aki", "Acute Kidney Injury", "multi",
            [
                cond("labs", "creatinine", ">", 1.5),
                cond("symptoms", "oliguria", "==", "Yes"),
                cond("history", "contrast", "==", "Yes"),
                cond("history", "nephrotoxins", "in", ["NSAID", "Aminoglycoside"]),
            ],
            priority="8", mutexGroup="renal_acute",
            recommendedTests="Urine output chart, Renal ultrasound",
            suggestedMedicines="IV fluids",
            doctorReason="Rising creatinine with oliguria after exposure.",
            patientExplanation="Kidneys are under sudden stress.",
        ),
        make_row(
            "pyelo", "Acute Pyelonephritis", "multi",
            [
                cond("symptoms", "fever", "==", "Yes"),
                cond("symptoms", "flank_pain", "==", "Yes"),
                cond("symptoms", "dysuria", "==", "Yes"),
            ],
            priority="6", mutexGroup="renal_acute",
            recommendedTests="Urine culture, Renal ultrasound",
            suggestedMedicines="Ceftriaxone",
            doctorReason="Fever with flank pain suggests upper UTI.",
            patientExplanation="Possible kidney infection.",
        ),
        make_row(
            "hyperk", "Hyperkalaemia with ECG changes", "flag",
            [cond("labs", "k", ">=", 6), cond("advanced", "ecg", "==", "Abnormal")],
            priority="10", severity="critical",
            recommendedTests="Repeat K+, ECG",
            doctorReason="Potassium >= 6 with abnormal ECG.",
        ),
        make_row(
            "sepsis_renal", "Sepsis with renal impairment", "flag",
            [cond("symptoms", "fever", "==", "Yes"), cond("labs", "creatinine", ">", 2)],
            priority="9", severity="high",
        ),
        make_row(
            "lab_plausibility", "Lab plausibility", "validator",
            checks=[
                {"path": "labs.k", "min": 1.5, "max": 9},
                {"path": "labs.na", "min": 100, "max": 180},
            ],
            doctorReason="Check for transcription errors.",
        ),
        make_row("", "Row without id", "single", ckd_conditions),
        make_row(
            "retired", "Retired rule", "single", ckd_conditions, active="FALSE",
        ),
    ]


@pytest.fixture
def sample_rule_set(sample_rows):
    return compile_rules(sample_rows, "core", generated_at=GENERATED_AT)


@pytest.fixture
def aki_record():
    """Encounter with AKI + pyelonephritis evidence and hyperkalaemia"""
    return {
        "info": {"name": "Test Patient", "age": 61, "sex": "F"},
        "labs": {"egfr": 45, "creatinine": 2.4, "k": 6.3, "na": 138},
        "symptoms": {"fever": "Yes", "flank_pain": "Yes", "dysuria": "No", "oliguria": "Yes"},
        "history": {"contrast": "Yes", "nephrotoxins": "NSAID"},
        "advanced": {"ecg": "Abnormal"},
    }
