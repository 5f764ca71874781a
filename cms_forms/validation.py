"""
Validation engine for the CMS form engine.
Per-field rules (required, format, length, pattern, custom) plus the
document-wide error map used on submit and the per-field touched/error state.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from .field_schema import FieldSchema, FieldType, is_empty_value
from .path_resolver import get_path, join_path, reindex_keys
from .visibility import is_visible

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

MESSAGES = {
    'required': "{label} es requerido",
    'email': "Email inválido",
    'url': "URL inválida",
    'number': "Debe ser un número válido",
    'number_min': "Debe ser mayor o igual a {min}",
    'number_max': "Debe ser menor o igual a {max}",
    'length_min': "Debe tener al menos {min} caracteres",
    'length_max': "Debe tener máximo {max} caracteres",
    'items_min': "Debe tener al menos {min} elementos",
    'items_max': "Debe tener máximo {max} elementos",
    'pattern': "Formato inválido",
}

# Named rules that YAML schemas can reference through validation.customRule
CUSTOM_RULES: Dict[str, Callable[[Any], Optional[str]]] = {}


def register_rule(name: str) -> Callable:
    """Decorator registering a named custom validation rule."""
    def decorator(func: Callable[[Any], Optional[str]]) -> Callable[[Any], Optional[str]]:
        CUSTOM_RULES[name] = func
        return func
    return decorator


@register_rule('slug')
def _slug_rule(value: Any) -> Optional[str]:
    if not re.fullmatch(r'[a-z0-9]+(?:-[a-z0-9]+)*', str(value)):
        return "Solo minúsculas, números y guiones"
    return None


@register_rule('hex_color')
def _hex_color_rule(value: Any) -> Optional[str]:
    if not re.fullmatch(r'#(?:[0-9a-fA-F]{3}){1,2}', str(value)):
        return "Color hexadecimal inválido"
    return None


def _format_bound(bound: Any) -> str:
    if isinstance(bound, float) and bound.is_integer():
        return str(int(bound))
    return str(bound)


def _coerce_number(value: Any) -> Optional[float]:
    """Numeric coercion in the spirit of a form input: numbers and numeric strings."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def is_valid_url(value: Any) -> bool:
    """Accept absolute URLs with scheme and host, or root-relative paths."""
    text = str(value).strip()
    if text.startswith('/') and not text.startswith('//'):
        return ' ' not in text
    try:
        parts = urlsplit(text)
    except ValueError:
        return False
    if not parts.scheme or ' ' in text:
        return False
    if parts.scheme in ('mailto', 'tel', 'data'):
        return bool(parts.path)
    return bool(parts.netloc)


def _check_format(field: FieldSchema, value: Any) -> Optional[str]:
    rules = field.validation

    if field.type == FieldType.EMAIL:
        if not EMAIL_PATTERN.match(str(value)):
            return MESSAGES['email']

    elif field.type == FieldType.URL:
        if not is_valid_url(value):
            return MESSAGES['url']

    elif field.type == FieldType.NUMBER:
        number = _coerce_number(value)
        if number is None:
            return MESSAGES['number']
        if rules and rules.min is not None and number < rules.min:
            return MESSAGES['number_min'].format(min=_format_bound(rules.min))
        if rules and rules.max is not None and number > rules.max:
            return MESSAGES['number_max'].format(max=_format_bound(rules.max))

    return None


def _check_length(field: FieldSchema, value: Any) -> Optional[str]:
    rules = field.validation
    if rules is None or field.type == FieldType.NUMBER:
        return None

    if isinstance(value, str):
        min_key, max_key = 'length_min', 'length_max'
    elif isinstance(value, (list, tuple)):
        min_key, max_key = 'items_min', 'items_max'
    else:
        return None

    if rules.min is not None and len(value) < rules.min:
        return MESSAGES[min_key].format(min=_format_bound(rules.min))
    if rules.max is not None and len(value) > rules.max:
        return MESSAGES[max_key].format(max=_format_bound(rules.max))
    return None


def _check_pattern(field: FieldSchema, value: Any) -> Optional[str]:
    rules = field.validation
    if rules is None or not rules.pattern or isinstance(value, (list, tuple, dict)):
        return None
    try:
        matched = re.search(rules.pattern, str(value))
    except re.error as e:
        logger.warning(f"Invalid pattern for field '{field.key}': {e}")
        return None
    return None if matched else MESSAGES['pattern']


def _check_custom(field: FieldSchema, value: Any) -> Optional[str]:
    rules = field.validation
    if rules is None or rules.custom_rule is None:
        return None

    rule = rules.custom_rule
    if isinstance(rule, str):
        if rule not in CUSTOM_RULES:
            logger.warning(f"Unknown custom rule '{rule}' on field '{field.key}'")
            return None
        rule = CUSTOM_RULES[rule]

    return rule(value) or None


def validate_field(field: FieldSchema, value: Any, touched: bool = False) -> Optional[str]:
    """
    Validate a single value against its field schema.

    Rules run in order and the first failure wins: required, type format,
    length bounds, pattern, custom rule. Empty values that pass the required
    check skip the remaining rules.

    Args:
        field: Field schema
        value: Current value (MISSING and None count as empty)
        touched: Whether the user has already interacted with the field

    Returns:
        Error message, or None when the value is valid
    """
    if field.required and is_empty_value(value):
        # Untouched selects are not reported until the user has visited them
        if field.type == FieldType.SELECT and not touched and value not in field.option_values():
            return None
        return MESSAGES['required'].format(label=field.label)

    if is_empty_value(value):
        return None

    for check in (_check_format, _check_length, _check_pattern, _check_custom):
        error = check(field, value)
        if error:
            return error
    return None


def validate_document(
    fields: List[FieldSchema],
    document: Dict[str, Any],
    prefix: str = '',
    touched: Optional[Callable[[str], bool]] = None
) -> Dict[str, str]:
    """
    Validate every visible field of a document.

    Array fields are validated themselves and then each element is validated
    recursively against the array item schema, rooted at ``<path>.<index>``.

    Args:
        fields: Field schemas for this level of the document
        document: Record these fields are resolved against
        prefix: Path of ``document`` inside the full form document
        touched: Optional lookup of touch state by full path; every field is
            treated as touched when omitted

    Returns:
        Mapping of full dot-path to error message
    """
    errors: Dict[str, str] = {}

    for field in fields:
        if not is_visible(field, document):
            continue

        path = join_path(prefix, field.key)
        value = get_path(document, field.key)
        is_touched = touched(path) if touched else True

        error = validate_field(field, value, touched=is_touched)
        if error:
            errors[path] = error

        if field.type == FieldType.ARRAY and isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, dict):
                    errors.update(validate_document(
                        field.array_item_schema, item, join_path(path, index), touched
                    ))

    return errors


@dataclass
class FieldState:
    """Touched/error record for one field path."""
    touched: bool = False
    error: Optional[str] = None


class ValidationState:
    """Per-path touched and error tracking for one form instance."""

    def __init__(self):
        self.fields: Dict[str, FieldState] = {}
        self.hints: Dict[str, str] = {}

    def _state(self, path: str) -> FieldState:
        if path not in self.fields:
            self.fields[path] = FieldState()
        return self.fields[path]

    def is_touched(self, path: str) -> bool:
        state = self.fields.get(path)
        return bool(state and state.touched)

    def error_for(self, path: str) -> Optional[str]:
        state = self.fields.get(path)
        return state.error if state else None

    @property
    def errors(self) -> Dict[str, str]:
        return {path: state.error for path, state in self.fields.items() if state.error}

    def blur(self, path: str, field: FieldSchema, value: Any) -> Optional[str]:
        """Mark a field touched and validate only that field."""
        state = self._state(path)
        state.touched = True
        state.error = validate_field(field, value, touched=True)
        if state.error:
            logger.debug(f"Blur validation failed for '{path}': {state.error}")
        return state.error

    def clear(self, path: str) -> None:
        """Drop the error for a field the user just edited."""
        state = self.fields.get(path)
        if state and state.error:
            state.error = None
        self.hints.pop(path, None)

    def hint(self, path: str, field: FieldSchema, value: Any) -> Optional[str]:
        """Compute an advisory message without touching the error map."""
        message = validate_field(field, value, touched=self.is_touched(path))
        if message:
            self.hints[path] = message
        else:
            self.hints.pop(path, None)
        return message

    def validate_all(self, fields: List[FieldSchema], document: Dict[str, Any]) -> Dict[str, str]:
        """
        Full-document validation used on submit.

        Marks every field touched, replaces the error map with the fresh
        result and returns it. Invisible fields never appear in the map.
        """
        errors = validate_document(fields, document)

        for state in self.fields.values():
            state.touched = True
            state.error = None
        for path in _all_paths(fields, document):
            self._state(path).touched = True
        for path, message in errors.items():
            self._state(path).error = message

        logger.info(f"Full validation finished with {len(errors)} errors")
        return errors

    def preview_errors(self, fields: List[FieldSchema], document: Dict[str, Any]) -> Dict[str, str]:
        """Errors the validation panel shows, without marking anything touched."""
        return validate_document(fields, document, touched=self.is_touched)

    def reindex(self, array_path: str, index_map: Dict[int, Optional[int]]) -> None:
        """Follow array elements that moved or were removed."""
        self.fields = reindex_keys(self.fields, array_path, index_map)
        self.hints = reindex_keys(self.hints, array_path, index_map)

    def reset(self) -> None:
        self.fields.clear()
        self.hints.clear()


def _all_paths(fields: List[FieldSchema], document: Dict[str, Any], prefix: str = '') -> List[str]:
    """Full paths of every field at this level and inside existing array items."""
    paths: List[str] = []
    for field in fields:
        path = join_path(prefix, field.key)
        paths.append(path)
        if field.type == FieldType.ARRAY:
            items = get_path(document, field.key)
            if isinstance(items, list):
                for index, item in enumerate(items):
                    if isinstance(item, dict):
                        paths.extend(_all_paths(field.array_item_schema, item, join_path(path, index)))
    return paths
