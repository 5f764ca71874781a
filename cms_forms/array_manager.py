"""
Array sub-form manager for the CMS form engine.

Handles array-of-record fields (team members, timeline events, statistics):
insert/remove/move of elements through the path resolver, and per-element
expand state keyed by a stable item id so the state follows its element
when indices change.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .field_schema import FieldSchema, new_item_from_schema
from .path_resolver import get_path, reindex_keys, set_path

logger = logging.getLogger(__name__)

IndexMap = Dict[int, Optional[int]]

DISPLAY_NAME_KEYS = ('title', 'name', 'author')


@dataclass
class ItemState:
    """UI state of one array element."""
    expanded: bool = False


def display_name(item: Any, index: int) -> str:
    """
    Human label for a collapsed array row.

    Probes ``title`` or ``name``, then ``author``, and falls back to a
    positional ``Item N`` label (1-based).
    """
    if isinstance(item, dict):
        for key in DISPLAY_NAME_KEYS:
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if value not in (None, '') and not isinstance(value, (dict, list, bool)):
                return str(value)
    return f"Item {index + 1}"


class ArrayFieldManager:
    """Element bookkeeping for the array field stored at ``path``."""

    def __init__(self, path: str, item_schema: List[FieldSchema]):
        self.path = path
        self.item_schema = item_schema
        self._ids: List[str] = []
        self.states: Dict[str, ItemState] = {}

    def items(self, document: Dict[str, Any]) -> List[Any]:
        value = get_path(document, self.path)
        return list(value) if isinstance(value, list) else []

    def sync(self, document: Dict[str, Any]) -> None:
        """Keep one id per element when the array changed outside this manager."""
        count = len(self.items(document))
        while len(self._ids) < count:
            self._ids.append(uuid.uuid4().hex)
        for stale in self._ids[count:]:
            self.states.pop(stale, None)
        del self._ids[count:]

    def item_id(self, index: int) -> str:
        return self._ids[index]

    def state(self, index: int) -> ItemState:
        item_id = self._ids[index]
        if item_id not in self.states:
            self.states[item_id] = ItemState()
        return self.states[item_id]

    def is_expanded(self, index: int) -> bool:
        if index >= len(self._ids):
            return False
        item_state = self.states.get(self._ids[index])
        return bool(item_state and item_state.expanded)

    def expanded_indices(self) -> List[int]:
        return [index for index in range(len(self._ids)) if self.is_expanded(index)]

    def set_expanded(self, index: int, expanded: bool) -> None:
        self.state(index).expanded = expanded

    def toggle(self, index: int) -> bool:
        item_state = self.state(index)
        item_state.expanded = not item_state.expanded
        return item_state.expanded

    def insert(self, document: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
        """
        Append a new element seeded with item schema defaults.

        Returns:
            Tuple of (updated document, index of the new element)
        """
        self.sync(document)
        items = self.items(document)
        items.append(new_item_from_schema(self.item_schema))
        updated = set_path(document, self.path, items)

        self._ids.append(uuid.uuid4().hex)
        index = len(items) - 1
        self.set_expanded(index, True)

        logger.info(f"Inserted element {index} into '{self.path}'")
        return updated, index

    def remove(self, document: Dict[str, Any], index: int) -> Tuple[Dict[str, Any], IndexMap]:
        """
        Remove the element at ``index``.

        State of the removed element is dropped and state of later elements
        shifts down by one together with them.

        Returns:
            Tuple of (updated document, old index -> new index map)
        """
        self.sync(document)
        items = self.items(document)
        if not 0 <= index < len(items):
            logger.warning(f"Remove ignored: index {index} out of range for '{self.path}'")
            return document, {}

        del items[index]
        removed_id = self._ids.pop(index)
        self.states.pop(removed_id, None)

        index_map: IndexMap = {}
        for old in range(len(items) + 1):
            if old < index:
                index_map[old] = old
            elif old == index:
                index_map[old] = None
            else:
                index_map[old] = old - 1

        logger.info(f"Removed element {index} from '{self.path}'")
        return set_path(document, self.path, items), index_map

    def move(self, document: Dict[str, Any], from_index: int, to_index: int) -> Tuple[Dict[str, Any], IndexMap]:
        """
        Reposition an element. Out-of-range positions are a no-op.

        Returns:
            Tuple of (updated document, old index -> new index map)
        """
        self.sync(document)
        items = self.items(document)
        count = len(items)
        if not (0 <= from_index < count and 0 <= to_index < count) or from_index == to_index:
            return document, {}

        order = list(range(count))
        order.insert(to_index, order.pop(from_index))
        items.insert(to_index, items.pop(from_index))
        self._ids.insert(to_index, self._ids.pop(from_index))

        index_map: IndexMap = {old: new for new, old in enumerate(order)}
        logger.info(f"Moved element {from_index} -> {to_index} in '{self.path}'")
        return set_path(document, self.path, items), index_map


class ArrayRegistry:
    """All array managers of one form, keyed by the full path of each array."""

    def __init__(self):
        self.managers: Dict[str, ArrayFieldManager] = {}

    def manager_for(self, path: str, item_schema: List[FieldSchema]) -> ArrayFieldManager:
        if path not in self.managers:
            self.managers[path] = ArrayFieldManager(path, item_schema)
        return self.managers[path]

    def get(self, path: str) -> Optional[ArrayFieldManager]:
        return self.managers.get(path)

    def reindex(self, array_path: str, index_map: IndexMap) -> None:
        """Re-key managers of arrays nested inside elements that moved or were removed."""
        if not index_map:
            return
        self.managers = reindex_keys(self.managers, array_path, index_map)
        for path, manager in self.managers.items():
            manager.path = path

    def clear(self) -> None:
        self.managers.clear()
