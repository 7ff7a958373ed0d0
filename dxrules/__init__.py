"""
dxrules - Clinical decision-support rule engine

Compiles spreadsheet-authored rules into a versioned rule set and evaluates
it against a patient encounter record.

Usage:
    from dxrules import compile_rules, load_rule_set, evaluate, collect_orders

    rule_set = await load_rule_set("core")
    result = evaluate(record, rule_set)
    orders = collect_orders(result.primary + result.consider)
"""
from .exceptions import DxRulesError, CompileError, RuleSourceUnavailable
from .schemas import (
    CompiledRuleSet,
    Condition,
    Check,
    DiagnosisRule,
    FlagRule,
    ValidatorRule,
    DiagnosisMatch,
    FlagHit,
    ValidatorHit,
    MissingField,
    EvaluationResult,
    OrderSet,
    Decision,
    Operator,
    RuleType,
)
from .modules.rule_compiler import compile_rules
from .modules.evaluation import RuleEvaluator, evaluate
from .modules.orders import collect_orders
from .services.rule_store import RuleStore, get_rule_store, load_rule_set

__all__ = [
    "DxRulesError",
    "CompileError",
    "RuleSourceUnavailable",
    "CompiledRuleSet",
    "Condition",
    "Check",
    "DiagnosisRule",
    "FlagRule",
    "ValidatorRule",
    "DiagnosisMatch",
    "FlagHit",
    "ValidatorHit",
    "MissingField",
    "EvaluationResult",
    "OrderSet",
    "Decision",
    "Operator",
    "RuleType",
    "compile_rules",
    "RuleEvaluator",
    "evaluate",
    "collect_orders",
    "RuleStore",
    "get_rule_store",
    "load_rule_set",
]
