"""
dxrules - Rule and Evaluation Schemas
Pydantic models for compiled rule sets and evaluation results
"""

import math
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, List, Dict, Any, Literal, Union
from datetime import datetime
from enum import Enum


# Section name -> field name -> value ("Yes"/"No", numbers, free text)
PatientRecord = Dict[str, Dict[str, Any]]


# ============================================================================
# Enumerations
# ============================================================================

class RuleType(str, Enum):
    """Rule kinds understood by the engines"""
    SINGLE = "single"
    MULTI = "multi"
    FLAG = "flag"
    VALIDATOR = "validator"


class Operator(str, Enum):
    """Condition comparison operators"""
    EQ = "=="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    IN = "in"


class Decision(str, Enum):
    """Presentation decision after mutex resolution"""
    PRIMARY = "primary"
    CONSIDER = "consider"


class FailureReason(str, Enum):
    """Why a validator check failed"""
    NON_NUMERIC = "non-numeric"
    BELOW_MIN = "below-min"
    ABOVE_MAX = "above-max"


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    """Immutable rule building block; NaN and infinity are rejected"""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, allow_inf_nan=False
    )


def default_min_satisfied(rule_type: Optional[str], condition_count: int) -> int:
    """1 for single rules, half the conditions (rounded up) for multi rules"""
    if rule_type == RuleType.MULTI.value:
        return math.ceil(condition_count / 2)
    return 1


# ============================================================================
# Rule Building Blocks
# ============================================================================

class Condition(FrozenCamelModel):
    """One predicate over a single record leaf"""
    section: str = Field(..., min_length=1, description="Record section, e.g. labs")
    field: str = Field(..., min_length=1, description="Field inside the section")
    operator: Operator
    # Kept exactly as authored: equality is type-sensitive
    value: Any = None
    weight: Optional[float] = Field(None, description="Score contribution when satisfied")

    @property
    def path(self) -> str:
        return f"{self.section}.{self.field}"


class Check(FrozenCamelModel):
    """Plausibility range for one dotted record path"""
    path: str = Field(..., min_length=1)
    min_value: Optional[float] = Field(None, alias="min")
    max_value: Optional[float] = Field(None, alias="max")

    @model_validator(mode="after")
    def require_a_bound(self) -> "Check":
        if self.min_value is None and self.max_value is None:
            raise ValueError(f"check for '{self.path}' needs min or max")
        return self


# ============================================================================
# Rules (tagged union on `type`)
# ============================================================================

class RuleBase(FrozenCamelModel):
    """Fields shared by every rule kind"""
    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    priority: float = 0
    active: bool = True
    namespace: str = "core"
    tags: List[str] = Field(default_factory=list)
    doctor_reason: str = ""
    patient_explanation: str = ""
    recommended_tests: List[str] = Field(default_factory=list)
    suggested_medicines: List[str] = Field(default_factory=list)
    follow_up_advice: str = ""


class DiagnosisRule(RuleBase):
    """Scored rule; `single` and `multi` differ only in the minSatisfied default"""
    type: Literal["single", "multi"]
    conditions: List[Condition] = Field(..., min_length=1)
    base_score: float = 0
    min_satisfied: int
    mutex_group: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def fill_min_satisfied(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("minSatisfied") is None and data.get("min_satisfied") is None:
            conditions = data.get("conditions") or []
            data = dict(data)
            data["minSatisfied"] = default_min_satisfied(data.get("type"), len(conditions))
        return data


class FlagRule(RuleBase):
    """Alert rule: fires only when every condition holds"""
    type: Literal["flag"]
    conditions: List[Condition] = Field(..., min_length=1)
    severity: str = "info"


class ValidatorRule(RuleBase):
    """Plausibility rule made of range checks"""
    type: Literal["validator"]
    checks: List[Check] = Field(..., min_length=1)


Rule = Annotated[Union[DiagnosisRule, FlagRule, ValidatorRule], Field(discriminator="type")]


class CompiledRuleSet(FrozenCamelModel):
    """Immutable, versioned artifact published per namespace"""
    namespace: str
    generated_at: datetime
    rules: List[Rule] = Field(default_factory=list)

    def diagnosis_rules(self) -> List[DiagnosisRule]:
        return [r for r in self.rules if isinstance(r, DiagnosisRule)]

    def flag_rules(self) -> List[FlagRule]:
        return [r for r in self.rules if isinstance(r, FlagRule)]

    def validator_rules(self) -> List[ValidatorRule]:
        return [r for r in self.rules if isinstance(r, ValidatorRule)]

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize to the published artifact format"""
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> "CompiledRuleSet":
        return cls.model_validate_json(payload)


# ============================================================================
# Evaluation Results
# ============================================================================

class MissingField(FrozenCamelModel):
    """Record address referenced by a rule but absent or empty"""
    section: str
    field: str

    @property
    def path(self) -> str:
        return f"{self.section}.{self.field}"


class DiagnosisMatch(CamelModel):
    """A scoring rule that met its threshold"""
    id: str
    label: str
    type: str
    mutex_group: Optional[str] = None
    score: float = Field(..., ge=0.0, le=1.0)
    priority: float = 0
    satisfied: int
    min_satisfied: int
    decision: Decision = Decision.PRIMARY
    doctor_reason: str = ""
    patient_explanation: str = ""
    recommended_tests: List[str] = Field(default_factory=list)
    suggested_medicines: List[str] = Field(default_factory=list)
    follow_up_advice: str = ""


class FlagHit(CamelModel):
    """A flag rule whose conditions all held"""
    id: str
    label: str
    severity: str = "info"
    doctor_reason: str = ""
    recommended_tests: List[str] = Field(default_factory=list)


class ValidatorFailure(CamelModel):
    """One failing check inside a validator rule"""
    path: str
    value: Any = None
    reason: FailureReason
    min_value: Optional[float] = Field(None, alias="min")
    max_value: Optional[float] = Field(None, alias="max")


class ValidatorHit(CamelModel):
    """A validator rule with at least one failing check"""
    id: str
    label: str
    doctor_reason: str = ""
    failures: List[ValidatorFailure] = Field(default_factory=list)
    message: str = ""


class EvaluationResult(CamelModel):
    """Everything one evaluation produces for the UI boundary"""
    primary: List[DiagnosisMatch] = Field(default_factory=list)
    consider: List[DiagnosisMatch] = Field(default_factory=list)
    flags: List[FlagHit] = Field(default_factory=list)
    validators: List[ValidatorHit] = Field(default_factory=list)
    missing_fields: List[MissingField] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class OrderSet(CamelModel):
    """Deduplicated follow-up orders across diagnoses"""
    tests: List[str] = Field(default_factory=list)
    medicines: List[str] = Field(default_factory=list)
