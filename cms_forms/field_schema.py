"""
Field schema model for the CMS form engine.
Declarative pydantic models describing form fields, groups and whole forms,
plus default seeding for documents edited through a schema.
"""

import copy
import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .path_resolver import MISSING, get_path, set_path

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    """Closed set of field kinds the engine knows how to render and validate."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    EMAIL = "email"
    URL = "url"
    PASSWORD = "password"
    TAGS = "tags"
    MARKDOWN = "markdown"
    MEDIA_REFERENCE = "media-reference"
    ARRAY = "array"
    CUSTOM = "custom"


class FieldWidth(str, Enum):
    FULL = "full"
    HALF = "half"
    THIRD = "third"


# Legacy type names found in older page schemas
FIELD_TYPE_ALIASES = {
    'datetime-local': FieldType.DATETIME.value,
    'media': FieldType.MEDIA_REFERENCE.value,
    'image': FieldType.MEDIA_REFERENCE.value,
    'video': FieldType.MEDIA_REFERENCE.value,
    'media_reference': FieldType.MEDIA_REFERENCE.value,
}

CustomRule = Union[str, Callable[[Any], Optional[str]]]


class ValidationRules(BaseModel):
    """Constraints applied by the validation engine."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    pattern: Optional[str] = None
    custom_rule: Optional[CustomRule] = Field(default=None, alias='customRule')

    @model_validator(mode='before')
    @classmethod
    def _accept_legacy_custom(cls, data: Any) -> Any:
        if isinstance(data, dict) and 'custom' in data and 'customRule' not in data and 'custom_rule' not in data:
            data = dict(data)
            data['customRule'] = data.pop('custom')
        return data


class DependsOn(BaseModel):
    """Visibility condition: render the field only when ``field`` equals ``value``."""
    field: str
    value: Any = None


class FieldOption(BaseModel):
    value: Any
    label: str

    @model_validator(mode='before')
    @classmethod
    def _from_scalar(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {'value': data, 'label': str(data)}
        if 'label' not in data and 'value' in data:
            return {**data, 'label': str(data['value'])}
        return data


class FieldSchema(BaseModel):
    """Declarative description of one editable path in a document."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    key: str
    label: str = ''
    type: FieldType = FieldType.TEXT
    required: bool = False
    validation: Optional[ValidationRules] = None
    group: Optional[str] = None
    depends_on: Optional[DependsOn] = Field(default=None, alias='dependsOn')
    default_value: Any = Field(default=None, alias='defaultValue')
    width: FieldWidth = FieldWidth.FULL
    array_item_schema: Optional[List['FieldSchema']] = Field(default=None, alias='arrayItemSchema')

    placeholder: Optional[str] = None
    description: Optional[str] = None
    options: List[FieldOption] = Field(default_factory=list)
    disabled: bool = False
    multiple: bool = False
    component: Optional[str] = None
    custom_props: Dict[str, Any] = Field(default_factory=dict, alias='customProps')

    @model_validator(mode='before')
    @classmethod
    def _normalize_legacy_keys(cls, data: Any) -> Any:
        """Fold legacy schema spellings into the canonical attributes."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        raw_type = data.get('type')
        if isinstance(raw_type, str) and raw_type in FIELD_TYPE_ALIASES:
            data['type'] = FIELD_TYPE_ALIASES[raw_type]

        if 'arrayFields' in data and 'arrayItemSchema' not in data and 'array_item_schema' not in data:
            data['arrayItemSchema'] = data.pop('arrayFields')

        for bound in ('min', 'max', 'pattern'):
            if bound in data:
                rules = dict(data.get('validation') or {})
                rules.setdefault(bound, data.pop(bound))
                data['validation'] = rules

        if 'default' in data and 'defaultValue' not in data and 'default_value' not in data:
            data['defaultValue'] = data.pop('default')

        return data

    @model_validator(mode='after')
    def _check_array_item_schema(self) -> 'FieldSchema':
        if not self.label:
            self.label = self.key.split('.')[-1].replace('_', ' ').title()
        if self.type == FieldType.ARRAY:
            if not self.array_item_schema:
                raise ValueError(f"Array field '{self.key}' requires a non-empty arrayItemSchema")
            _ensure_unique_keys(self.array_item_schema, f"arrayItemSchema of '{self.key}'")
        elif self.array_item_schema is not None:
            raise ValueError(f"Field '{self.key}' of type '{self.type.value}' cannot define arrayItemSchema")
        return self

    def option_values(self) -> List[Any]:
        return [option.value for option in self.options]

    def option_label(self, value: Any) -> str:
        for option in self.options:
            if option.value == value:
                return option.label
        return str(value)


class FieldGroup(BaseModel):
    """Named partition of fields rendered under one heading or tab."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    name: str = Field(min_length=1)
    label: str = ''
    description: Optional[str] = None
    collapsible: bool = False
    default_expanded: bool = Field(default=True, alias='defaultExpanded')

    @model_validator(mode='after')
    def _label_fallback(self) -> 'FieldGroup':
        if not self.label:
            self.label = self.name.replace('_', ' ').title()
        return self


class FormSchema(BaseModel):
    """A complete form: groups, fields and preview template."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    title: str = ''
    description: Optional[str] = None
    groups: List[FieldGroup] = Field(default_factory=list)
    fields: List[FieldSchema] = Field(default_factory=list)
    preview_template: Optional[str] = Field(default=None, alias='previewTemplate')

    @model_validator(mode='after')
    def _check_unique_names(self) -> 'FormSchema':
        _ensure_unique_keys(self.fields, 'form fields')
        names = [group.name for group in self.groups]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate group names: {duplicates}")
        return self

    def field_by_key(self, key: str) -> Optional[FieldSchema]:
        for field in self.fields:
            if field.key == key:
                return field
        return None


FieldSchema.model_rebuild()


def _ensure_unique_keys(fields: List[FieldSchema], where: str) -> None:
    keys = [field.key for field in fields]
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise ValueError(f"Duplicate keys in {where}: {duplicates}")


def iter_fields(fields: List[FieldSchema]) -> Iterator[FieldSchema]:
    """Yield fields depth-first, descending into array item schemas."""
    for field in fields:
        yield field
        if field.array_item_schema:
            yield from iter_fields(field.array_item_schema)


def is_empty_value(value: Any) -> bool:
    """True for the values treated as 'not filled in': missing, None, '' and []."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, str) and value == '':
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def _needs_default(value: Any) -> bool:
    return value is MISSING or value is None or (isinstance(value, str) and value == '')


def apply_defaults(document: Optional[Dict[str, Any]], fields: List[FieldSchema]) -> Dict[str, Any]:
    """
    Seed schema defaults into a document.

    Every field whose current value is missing, None or an empty string gets a
    copy of its ``defaultValue``. Present falsy values such as ``0`` or
    ``False`` are left alone, so applying defaults twice is the same as once.

    Args:
        document: Document to seed (not modified)
        fields: Field schemas to take defaults from

    Returns:
        Seeded document
    """
    seeded: Dict[str, Any] = dict(document or {})
    applied = 0

    for field in fields:
        if field.default_value is None:
            continue
        current = get_path(seeded, field.key)
        if _needs_default(current):
            seeded = set_path(seeded, field.key, copy.deepcopy(field.default_value))
            applied += 1

    if applied:
        logger.debug(f"Applied {applied} schema defaults")
    return seeded


def new_item_from_schema(item_schema: List[FieldSchema]) -> Dict[str, Any]:
    """Build a fresh array element seeded with its item schema defaults."""
    return apply_defaults({}, item_schema)
