"""
Diff utilities for the CMS admin panel.
Compares content documents with DeepDiff and turns the result into change
counts and rows for display (backup history, unsaved-changes summary).
"""

from typing import Dict, Any, List, Optional
from deepdiff import DeepDiff
import json
import re
import logging

logger = logging.getLogger(__name__)

# root['team'][0]['name'] -> ('team', '0', 'name')
_PATH_SEGMENT = re.compile(r"\[(?:'((?:[^'\\]|\\.)*)'|\"((?:[^\"\\]|\\.)*)\"|(-?\d+))\]")

_SECTIONS = {
    'values_changed': 'Modified',
    'type_changes': 'Type Changed',
    'dictionary_item_added': 'Added',
    'iterable_item_added': 'Added',
    'dictionary_item_removed': 'Removed',
    'iterable_item_removed': 'Removed',
}


def deepdiff_path_to_dot(path: str) -> str:
    """
    Convert a DeepDiff path string into the dot-path notation used by forms.

    Args:
        path: DeepDiff path such as ``root['team'][0]['name']``

    Returns:
        Dot path such as ``team.0.name``
    """
    segments = []
    for single, double, index in _PATH_SEGMENT.findall(str(path)):
        segments.append(index if index else (single or double))
    return '.'.join(segments)


def calculate_diff(original: Optional[Dict[str, Any]], modified: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Calculate differences between two documents.

    List order is significant: reordering array elements in the editor is a
    content change.

    Args:
        original: Baseline document
        modified: Current document

    Returns:
        DeepDiff result as a plain dictionary (empty when identical)
    """
    diff = DeepDiff(original or {}, modified or {}, ignore_order=False, verbose_level=1)
    return diff.to_dict() if hasattr(diff, 'to_dict') else dict(diff)


def has_changes(diff: Dict[str, Any]) -> bool:
    """Check whether a diff dictionary reports any change."""
    return any(diff.get(section) for section in _SECTIONS)


def _iter_section(section: Any):
    """Yield (path, detail) pairs from the shapes DeepDiff uses for a section."""
    if section is None:
        return
    if hasattr(section, 'items'):
        for path, detail in section.items():
            yield path, detail
        return
    for path in section:
        yield path, None


def get_change_summary(diff: Dict[str, Any]) -> Dict[str, int]:
    """
    Get a summary of changes by type.

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        Dictionary with change counts by type
    """
    summary = {
        'modified': 0,
        'added': 0,
        'removed': 0,
        'type_changed': 0,
        'total': 0
    }

    for section, label in _SECTIONS.items():
        count = sum(1 for _ in _iter_section(diff.get(section)))
        if label == 'Modified':
            summary['modified'] += count
        elif label == 'Added':
            summary['added'] += count
        elif label == 'Removed':
            summary['removed'] += count
        else:
            summary['type_changed'] += count

    summary['total'] = summary['modified'] + summary['added'] + summary['removed'] + summary['type_changed']
    return summary


def count_changes(original: Optional[Dict[str, Any]], modified: Optional[Dict[str, Any]]) -> int:
    """Total number of changed paths between two documents."""
    return get_change_summary(calculate_diff(original, modified))['total']


def changed_paths(original: Optional[Dict[str, Any]], modified: Optional[Dict[str, Any]]) -> List[str]:
    """Dot paths touched by the differences between two documents, in stable order."""
    diff = calculate_diff(original, modified)
    paths = []
    for section in _SECTIONS:
        for path, _ in _iter_section(diff.get(section)):
            dot = deepdiff_path_to_dot(path)
            if dot not in paths:
                paths.append(dot)
    return sorted(paths)


def _format_value(value: Any) -> str:
    if value is None:
        return "None"
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value)


def format_diff_for_streamlit(diff: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Format diff for Streamlit display (one row per changed path).

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        List of change dictionaries with type, field, old_value and new_value
    """
    if not has_changes(diff):
        return []

    changes: List[Dict[str, Any]] = []
    for section, label in _SECTIONS.items():
        for path, detail in _iter_section(diff.get(section)):
            old_value = new_value = ''
            if label in ('Modified', 'Type Changed') and isinstance(detail, dict):
                old_value = _format_value(detail.get('old_value'))
                new_value = _format_value(detail.get('new_value'))
            elif label == 'Added':
                new_value = _format_value(detail) if detail is not None else ''
            elif label == 'Removed':
                old_value = _format_value(detail) if detail is not None else ''
            changes.append({
                'type': label,
                'field': deepdiff_path_to_dot(path),
                'old_value': old_value,
                'new_value': new_value,
            })

    changes.sort(key=lambda change: change['field'])
    logger.debug(f"Formatted {len(changes)} changes for display")
    return changes
