"""
Schema loader for the CMS admin panel.
Handles loading and validation of YAML/JSON form schema definitions.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import streamlit as st
import yaml
from pydantic import ValidationError

from .exceptions import SchemaDefinitionError
from .field_schema import FormSchema

logger = logging.getLogger(__name__)

SCHEMAS_DIR = Path("schemas")
SCHEMA_SUFFIXES = ('.yaml', '.yml', '.json')


def _format_validation_errors(error: ValidationError) -> List[str]:
    messages = []
    for item in error.errors():
        location = '.'.join(str(part) for part in item.get('loc', ()))
        messages.append(f"{location}: {item.get('msg')}" if location else str(item.get('msg')))
    return messages


def parse_schema(data: Any, schema_path: Optional[Path] = None) -> FormSchema:
    """
    Validate raw schema data into a ``FormSchema``.

    Args:
        data: Parsed YAML/JSON content
        schema_path: Source file, used in error reports

    Returns:
        Validated FormSchema

    Raises:
        SchemaDefinitionError: If the data does not describe a valid form
    """
    if not isinstance(data, dict):
        raise SchemaDefinitionError(schema_path, ["Schema root must be a mapping"])

    try:
        schema = FormSchema.model_validate(data)
    except ValidationError as e:
        raise SchemaDefinitionError(schema_path, _format_validation_errors(e)) from e

    if not schema.fields:
        logger.warning(f"Schema {schema_path or '<inline>'} defines no fields")
    return schema


def load_schema(schema_path: Union[str, Path]) -> FormSchema:
    """
    Load a form schema from a YAML or JSON file.

    Args:
        schema_path: Path to the schema file

    Returns:
        Validated FormSchema

    Raises:
        SchemaDefinitionError: If the file is missing, unparsable or invalid
    """
    path = Path(schema_path)

    if not path.exists():
        raise SchemaDefinitionError(path, [f"Schema file not found: {path}"])

    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        logger.error(f"Failed to parse schema {path}: {e}")
        raise SchemaDefinitionError(path, [f"Parse error: {e}"]) from e
    except (IOError, OSError) as e:
        logger.error(f"Failed to read schema {path}: {e}")
        raise SchemaDefinitionError(path, [f"Read error: {e}"]) from e

    schema = parse_schema(data, path)
    logger.info(f"Loaded schema {path.name} with {len(schema.fields)} fields and {len(schema.groups)} groups")
    return schema


def list_available_schemas(schemas_dir: Optional[Path] = None) -> List[str]:
    """
    List schema files available in the schemas directory.

    Returns:
        Sorted file names
    """
    directory = Path(schemas_dir) if schemas_dir else SCHEMAS_DIR
    if not directory.exists():
        logger.warning(f"Schemas directory not found: {directory}")
        return []
    return sorted(p.name for p in directory.iterdir() if p.is_file() and p.suffix.lower() in SCHEMA_SUFFIXES)


def get_schema_info(schema: FormSchema) -> Dict[str, Any]:
    """Short summary of a schema for the sidebar."""
    return {
        'title': schema.title,
        'description': schema.description,
        'field_count': len(schema.fields),
        'group_count': len(schema.groups),
        'preview_template': schema.preview_template,
    }


@st.cache_resource(show_spinner=False)
def _load_schema_with_mtime(path: str, mtime: float) -> FormSchema:
    return load_schema(path)


def load_active_schema(path: Union[str, Path]) -> FormSchema:
    """
    Cached variant of ``load_schema`` keyed by file modification time, so an
    edited schema file is picked up on the next rerun.
    """
    resolved = Path(path)
    if not resolved.exists():
        raise SchemaDefinitionError(resolved, [f"Schema file not found: {resolved}"])
    return _load_schema_with_mtime(str(resolved), resolved.stat().st_mtime)
