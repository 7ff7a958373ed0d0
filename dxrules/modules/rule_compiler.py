"""
dxrules Rule Compiler
Turns spreadsheet-authored rule rows into a validated, sorted rule set
"""

import json
import logging
import unicodedata
from typing import Any, Dict, Iterable, List, Mapping, Optional
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

from dxrules.schemas import (
    Rule, RuleType, CompiledRuleSet, default_min_satisfied
)
from dxrules.modules.coercion import clean_text, is_blank, split_csv, try_parse_number
from dxrules.exceptions import CompileError

logger = logging.getLogger(__name__)

_rule_adapter = TypeAdapter(Rule)

# Column groups of the authoring sheet
NUMERIC_COLUMNS = ("priority", "baseScore", "minSatisfied")
CSV_COLUMNS = ("tags", "recommendedTests", "suggestedMedicines")
TEXT_COLUMNS = ("doctorReason", "patientExplanation", "followUpAdvice")

DEFAULT_RULE_TYPE = RuleType.MULTI.value
KNOWN_TYPES = {t.value for t in RuleType}


# =============================================================================
# Cell Helpers
# =============================================================================

def coerce_number(value: Any) -> Any:
    """Numeric cell -> number; anything unparseable passes through unchanged"""
    if isinstance(value, str):
        value = value.strip()
    number = try_parse_number(value)
    return value if number is None else number


def parse_json_cell(rule_id: str, column: str, value: Any) -> Any:
    """
    Parse a JSON-valued cell

    Returns:
        Parsed value, or None for an empty cell

    Raises:
        CompileError: cell is not valid JSON
    """
    if is_blank(value):
        return None
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise CompileError(
            f"Rule {rule_id}: {column} is not valid JSON ({e.msg})",
            rule_id=rule_id,
            field=column,
        ) from e


def is_active(value: Any) -> bool:
    """Only a literal "false" (any case) disables a rule"""
    return clean_text(value).lower() != "false"


# =============================================================================
# Row Normalization
# =============================================================================

def normalize_row(row: Mapping[str, Any], namespace: str = "core") -> Dict[str, Any]:
    """
    Normalize one raw row into a rule payload (camelCase keys)

    Args:
        row: Column header -> raw cell value
        namespace: Namespace used when the row does not name one

    Returns:
        Dictionary ready for rule validation

    Raises:
        CompileError: missing id/label, unknown type, bad or empty condition/check JSON
    """
    rule_id = clean_text(row.get("id"))
    if not rule_id:
        raise CompileError("Rule row missing id", field="id")

    label = clean_text(row.get("label"))
    if not label:
        raise CompileError(f"Rule {rule_id} missing label", rule_id=rule_id, field="label")

    rule_type = clean_text(row.get("type")).lower() or DEFAULT_RULE_TYPE
    if rule_type not in KNOWN_TYPES:
        raise CompileError(
            f"Rule {rule_id}: unknown type '{rule_type}'", rule_id=rule_id, field="type"
        )

    payload: Dict[str, Any] = {
        "id": rule_id,
        "label": label,
        "type": rule_type,
        "active": is_active(row.get("active")),
        "namespace": clean_text(row.get("namespace")) or namespace,
    }

    for column in NUMERIC_COLUMNS:
        if not is_blank(row.get(column)):
            payload[column] = coerce_number(row.get(column))

    for column in CSV_COLUMNS:
        payload[column] = split_csv(row.get(column))

    for column in TEXT_COLUMNS:
        payload[column] = clean_text(row.get(column))

    if rule_type == RuleType.VALIDATOR.value:
        payload["checks"] = _required_list(rule_id, "checksJSON", row.get("checksJSON"))
    else:
        conditions = _required_list(rule_id, "conditionsJSON", row.get("conditionsJSON"))
        payload["conditions"] = conditions

        if rule_type == RuleType.FLAG.value:
            payload["severity"] = clean_text(row.get("severity")) or "info"
        else:
            payload["mutexGroup"] = clean_text(row.get("mutexGroup")) or None
            if "minSatisfied" not in payload:
                payload["minSatisfied"] = default_min_satisfied(rule_type, len(conditions))

    return payload


def _required_list(rule_id: str, column: str, value: Any) -> List[Any]:
    parsed = parse_json_cell(rule_id, column, value)
    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list) or not parsed:
        raise CompileError(
            f"Rule {rule_id}: {column} required", rule_id=rule_id, field=column
        )
    return parsed


def build_rule(row: Mapping[str, Any], namespace: str = "core") -> Rule:
    """Normalize and validate one row into a typed rule"""
    payload = normalize_row(row, namespace)
    try:
        return _rule_adapter.validate_python(payload)
    except ValidationError as e:
        problems = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        first = problems[0] if problems else {"loc": "", "msg": str(e)}
        raise CompileError(
            f"Rule {payload['id']}: invalid {first['loc'] or 'rule'} ({first['msg']})",
            rule_id=payload["id"],
            field=first["loc"] or None,
            details={"errors": problems},
        ) from e


# =============================================================================
# Batch Compilation
# =============================================================================

def collation_key(label: str) -> str:
    """Accent- and case-insensitive form of a label ("Ménière" sorts as "meniere")"""
    decomposed = unicodedata.normalize("NFKD", label)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def sort_key(rule: Rule):
    """priority descending, then label ascending (accents and case ignored first)"""
    return (-rule.priority, collation_key(rule.label), rule.label.casefold(), rule.label)


def compile_rules(
    rows: Iterable[Mapping[str, Any]],
    namespace: str = "core",
    generated_at: Optional[datetime] = None
) -> CompiledRuleSet:
    """
    Compile raw rule rows into a CompiledRuleSet

    Rows with an empty id are skipped. Any other problem rejects the whole
    batch, so a publisher never overwrites a good artifact with a partial one.

    Args:
        rows: Ordered raw rows (column header -> cell)
        namespace: Target namespace
        generated_at: Generation timestamp (defaults to now, UTC)

    Returns:
        Compiled, deterministically sorted rule set

    Raises:
        CompileError: duplicate id or any invalid row
    """
    rules: List[Rule] = []
    seen = set()
    skipped = 0

    for row in rows:
        if not row or is_blank(row.get("id")):
            skipped += 1
            continue

        rule = build_rule(row, namespace)
        if rule.id in seen:
            raise CompileError(f"Duplicate id: {rule.id}", rule_id=rule.id, field="id")
        seen.add(rule.id)
        rules.append(rule)

    rules.sort(key=sort_key)

    logger.info(
        f"Compiled {len(rules)} rules for namespace '{namespace}'"
        + (f" ({skipped} rows without id skipped)" if skipped else "")
    )

    return CompiledRuleSet(
        namespace=namespace,
        generated_at=generated_at or datetime.now(timezone.utc),
        rules=rules,
    )
