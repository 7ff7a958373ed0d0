"""
Custom Exception Hierarchy

Compile and fetch failures are explicit error values for the caller.
Evaluation never raises for record content, so it has no error type here.
"""
from typing import Optional, Dict, Any


class DxRulesError(Exception):
    """Base exception for all rule engine errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class CompileError(DxRulesError):
    """A rule row could not be compiled. Fatal for the whole batch."""

    def __init__(
        self,
        message: str,
        rule_id: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="COMPILE_ERROR",
            details={"rule_id": rule_id, "field": field, **(details or {})}
        )
        self.rule_id = rule_id
        self.field = field


class RuleSourceUnavailable(DxRulesError):
    """The compiled rule set could not be fetched from its source."""

    def __init__(
        self,
        message: str,
        namespace: str = "unknown",
        source: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="RULE_SOURCE_UNAVAILABLE",
            details={"namespace": namespace, "source": source, **(details or {})}
        )
        self.namespace = namespace
        self.source = source
