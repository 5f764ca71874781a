"""
Dot-path access for nested content documents.
Resolves keys like ``hero.buttons.primary.text`` or ``team.0.name`` against
a document made of dicts, lists and scalars.
"""

import logging
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class _Missing:
    """Sentinel for a path that does not resolve."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

Container = Union[Dict[str, Any], List[Any]]


def split_path(path: str) -> List[str]:
    """Split a dot-path into its segments, ignoring empty ones."""
    return [segment for segment in str(path).split('.') if segment != '']


def join_path(*parts: Any) -> str:
    """Join path fragments, skipping empty prefixes."""
    return '.'.join(str(part) for part in parts if part is not None and str(part) != '')


def _as_index(segment: str, sequence: List[Any]) -> Optional[int]:
    """Return the list index for a segment, or None if it is not a valid index."""
    if not segment.isdigit():
        return None
    index = int(segment)
    if index >= len(sequence):
        return None
    return index


def get_path(document: Any, path: str, default: Any = MISSING) -> Any:
    """
    Resolve a dot-path inside a document.

    Args:
        document: Nested document (dicts, lists, scalars)
        path: Dot-separated path
        default: Value returned when any segment is missing

    Returns:
        The value at ``path`` or ``default``
    """
    current = document
    for segment in split_path(path):
        if isinstance(current, dict):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, list):
            index = _as_index(segment, current)
            if index is None:
                return default
            current = current[index]
        else:
            return default
    return current


def has_path(document: Any, path: str) -> bool:
    """Check whether a dot-path resolves to a value (None counts as present)."""
    return get_path(document, path) is not MISSING


def set_path(document: Optional[Dict[str, Any]], path: str, value: Any) -> Dict[str, Any]:
    """
    Assign a value at a dot-path and return a new top-level document.

    Containers along the path are shallow-copied so the returned document is a
    new object while sibling branches stay shared with the original. Missing
    intermediate nodes are always created as dicts, even for numeric segments.
    Existing lists along the path are indexed by position; an index past the
    end grows the list, padding any gap with empty records. A list reached by
    a non-numeric segment is replaced with a dict, as a scalar would be.

    Args:
        document: Document to update (not modified)
        path: Dot-separated path
        value: Value to store at the leaf

    Returns:
        Updated copy of the document
    """
    segments = split_path(path)
    if not segments:
        raise ValueError("Cannot set an empty path")

    root: Dict[str, Any] = dict(document) if isinstance(document, dict) else {}
    parent: Container = root

    for position, segment in enumerate(segments):
        if isinstance(parent, list):
            key: Union[str, int] = int(segment)
            while len(parent) <= key:
                parent.append({})
            child = parent[key]
        else:
            key = segment
            child = parent.get(segment, MISSING)

        if position == len(segments) - 1:
            parent[key] = value
            break

        copied = _copy_container(child, path, segment, segments[position + 1])
        parent[key] = copied
        parent = copied

    return root


def _copy_container(child: Any, path: str, segment: str, next_segment: str) -> Container:
    """Copy an intermediate container, creating a dict when absent or unusable."""
    if isinstance(child, dict):
        return dict(child)
    if isinstance(child, list) and next_segment.isdigit():
        return list(child)
    if child is not MISSING and child is not None:
        logger.warning(f"Replacing {type(child).__name__} at '{segment}' while setting '{path}'")
    return {}


def reindex_keys(entries: Dict[str, Any], array_path: str, index_map: Dict[int, Optional[int]]) -> Dict[str, Any]:
    """
    Re-key path-indexed entries after an array was reordered or shrunk.

    Keys of the form ``<array_path>.<i>`` or ``<array_path>.<i>.<rest>`` are
    moved to ``index_map[i]``; entries whose index maps to None are dropped.
    Indices absent from ``index_map`` and unrelated keys are kept unchanged.

    Args:
        entries: Mapping keyed by full dot-paths
        array_path: Path of the array field
        index_map: Old index -> new index (or None to drop)

    Returns:
        New mapping with re-keyed entries
    """
    marker = f"{array_path}."
    result: Dict[str, Any] = {}

    for key, value in entries.items():
        if not key.startswith(marker):
            result[key] = value
            continue
        head, _, rest = key[len(marker):].partition('.')
        if not head.isdigit() or int(head) not in index_map:
            result[key] = value
            continue
        new_index = index_map[int(head)]
        if new_index is None:
            continue
        result[join_path(array_path, new_index, rest)] = value

    return result
