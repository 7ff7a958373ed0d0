"""
dxrules Record Accessor
Safe dotted-path lookup over a patient record

Missing data is never an error: every lookup that cannot be resolved returns
None, and every engine treats None (or an empty string) as "missing".
"""

from collections.abc import Mapping
from typing import Any, Optional

from dxrules.modules.coercion import is_blank


def get_value(record: Optional[Mapping], path: Any) -> Any:
    """
    Resolve a dotted path such as "labs.egfr"

    Args:
        record: Patient record (section -> field -> value)
        path: Dotted path

    Returns:
        The leaf value, or None if any segment is missing
    """
    if not isinstance(path, str) or not path:
        return None

    current: Any = record
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return None
        current = current[segment]
    return current


def get_field(record: Optional[Mapping], section: str, field: str) -> Any:
    """Lookup by section + field, the address form used in conditions"""
    section_values = record.get(section) if isinstance(record, Mapping) else None
    if not isinstance(section_values, Mapping):
        return None
    return section_values.get(field)


def is_missing(value: Any) -> bool:
    """A record value counts as missing when absent or empty"""
    return is_blank(value)
