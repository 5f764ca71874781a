"""
Visibility resolution for schema fields with a ``dependsOn`` condition.
"""

from typing import Any, Dict, List

from .field_schema import FieldSchema
from .path_resolver import MISSING, get_path


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality that does not treat True/1 or 1/1.0-vs-'1' as interchangeable."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def is_visible(field: FieldSchema, document: Dict[str, Any]) -> bool:
    """Return True when the field has no condition or its condition holds."""
    condition = field.depends_on
    if condition is None:
        return True
    current = get_path(document, condition.field)
    if current is MISSING:
        current = None
    return _strict_equals(current, condition.value)


def visible_fields(fields: List[FieldSchema], document: Dict[str, Any]) -> List[FieldSchema]:
    """Filter a field list down to those that render for ``document``."""
    return [field for field in fields if is_visible(field, document)]
