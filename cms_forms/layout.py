"""
Layout controller for grouped forms.
Partitions fields into groups, picks single/tabs/accordion presentation from
the viewport width and keeps per-group expand state plus the active tab.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .field_schema import FieldGroup, FieldSchema

logger = logging.getLogger(__name__)

# Declared group names are non-empty, so the implicit bucket cannot collide
DEFAULT_GROUP = ""
DEFAULT_BREAKPOINT = 768


class LayoutMode(str, Enum):
    SINGLE = "single"
    TABS = "tabs"
    ACCORDION = "accordion"


def choose_layout(viewport_width: int, group_count: int, breakpoint: int = DEFAULT_BREAKPOINT) -> LayoutMode:
    """Pick the presentation for a form from viewport width and number of groups."""
    if group_count <= 1:
        return LayoutMode.SINGLE
    if viewport_width >= breakpoint:
        return LayoutMode.TABS
    return LayoutMode.ACCORDION


def partition_fields(fields: List[FieldSchema], groups: List[FieldGroup]) -> Dict[str, List[FieldSchema]]:
    """
    Split fields into ordered groups.

    Declared groups come first in declaration order, followed by the implicit
    default group holding fields whose ``group`` matches no declaration.
    Groups without fields are omitted.
    """
    declared = [group.name for group in groups]
    buckets: Dict[str, List[FieldSchema]] = {name: [] for name in declared}
    buckets[DEFAULT_GROUP] = []

    for field in fields:
        name = field.group if field.group in buckets else DEFAULT_GROUP
        buckets[name].append(field)

    return {name: buckets[name] for name in declared + [DEFAULT_GROUP] if buckets[name]}


@dataclass
class GroupState:
    """Expand/collapse record for one accordion group."""
    name: str
    collapsible: bool = False
    expanded: bool = True

    def toggle(self) -> bool:
        if self.collapsible:
            self.expanded = not self.expanded
        return self.expanded


class LayoutController:
    """Owns group partitioning, accordion state and the active tab."""

    def __init__(self, fields: List[FieldSchema], groups: List[FieldGroup], breakpoint: int = DEFAULT_BREAKPOINT):
        self.breakpoint = breakpoint
        self.declared: Dict[str, FieldGroup] = {group.name: group for group in groups}
        self.partitions = partition_fields(fields, groups)
        self.states: Dict[str, GroupState] = {}

        for name in self.partitions:
            group = self.declared.get(name)
            if group is None:
                self.states[name] = GroupState(name=name)
            else:
                expanded = group.default_expanded if group.collapsible else True
                self.states[name] = GroupState(name=name, collapsible=group.collapsible, expanded=expanded)

        self.active_group: Optional[str] = self._first_group()
        logger.debug(f"Layout initialized with groups: {list(self.partitions)}")

    def _first_group(self) -> Optional[str]:
        for group in self.declared.values():
            if group.name in self.partitions:
                return group.name
        return next(iter(self.partitions), None)

    @property
    def group_names(self) -> List[str]:
        return list(self.partitions)

    def mode(self, viewport_width: int) -> LayoutMode:
        return choose_layout(viewport_width, len(self.partitions), self.breakpoint)

    def label(self, name: str) -> str:
        group = self.declared.get(name)
        return group.label if group else ''

    def description(self, name: str) -> Optional[str]:
        group = self.declared.get(name)
        return group.description if group else None

    def is_expanded(self, name: str) -> bool:
        state = self.states.get(name)
        return state.expanded if state else True

    def toggle(self, name: str) -> bool:
        """Flip an accordion group; non-collapsible groups stay expanded."""
        state = self.states.get(name)
        if state is None:
            logger.warning(f"Toggle requested for unknown group '{name}'")
            return True
        expanded = state.toggle()
        logger.debug(f"Group '{name}' expanded={expanded}")
        return expanded

    def select(self, name: str) -> None:
        """Make ``name`` the active tab."""
        if name not in self.partitions:
            logger.warning(f"Cannot activate unknown group '{name}'")
            return
        self.active_group = name
