"""
Unit tests for group partitioning and layout selection.
"""

import pytest

from cms_forms.field_schema import FieldGroup, FieldSchema
from cms_forms.layout import (
    DEFAULT_GROUP,
    LayoutController,
    LayoutMode,
    choose_layout,
    partition_fields,
)
from test_fixtures import SchemaFixtures, build_schema


@pytest.mark.parametrize("width,groups,expected", [
    (1280, 1, LayoutMode.SINGLE),
    (320, 0, LayoutMode.SINGLE),
    (1280, 3, LayoutMode.TABS),
    (768, 2, LayoutMode.TABS),
    (767, 2, LayoutMode.ACCORDION),
])
def test_choose_layout(width, groups, expected):
    assert choose_layout(width, groups) == expected


def test_custom_breakpoint():
    assert choose_layout(900, 2, breakpoint=1024) == LayoutMode.ACCORDION


class TestPartitionFields:
    """Test cases for partition_fields."""

    def test_declared_groups_then_default(self):
        schema = build_schema(SchemaFixtures.get_grouped_schema())
        partitions = partition_fields(schema.fields, schema.groups)

        assert list(partitions) == ['page_info', 'hero', DEFAULT_GROUP]
        assert [f.key for f in partitions[DEFAULT_GROUP]] == ['footer.note', 'extra']

    def test_empty_groups_omitted(self):
        schema = build_schema(SchemaFixtures.get_grouped_schema())
        assert 'empty' not in partition_fields(schema.fields, schema.groups)

    def test_no_groups(self):
        fields = [FieldSchema(key='a'), FieldSchema(key='b')]
        assert list(partition_fields(fields, [])) == [DEFAULT_GROUP]

    def test_group_named_default_is_not_the_implicit_group(self):
        groups = [FieldGroup(name='default', label='General'), FieldGroup(name='seo')]
        fields = [
            FieldSchema(key='a', group='seo'),
            FieldSchema(key='b', group='default'),
            FieldSchema(key='c'),
        ]

        partitions = partition_fields(fields, groups)

        assert list(partitions) == ['default', 'seo', DEFAULT_GROUP]
        assert [f.key for f in partitions['default']] == ['b']
        assert [f.key for f in partitions[DEFAULT_GROUP]] == ['c']


class TestLayoutController:
    """Test cases for LayoutController state."""

    def _controller(self):
        schema = build_schema(SchemaFixtures.get_grouped_schema())
        return LayoutController(schema.fields, schema.groups)

    def test_initial_state(self):
        layout = self._controller()
        assert layout.group_names == ['page_info', 'hero', DEFAULT_GROUP]
        assert layout.active_group == 'page_info'
        assert layout.is_expanded('page_info')
        assert not layout.is_expanded('hero')
        assert layout.is_expanded(DEFAULT_GROUP)

    def test_mode_depends_on_width(self):
        layout = self._controller()
        assert layout.mode(1280) == LayoutMode.TABS
        assert layout.mode(400) == LayoutMode.ACCORDION

    def test_toggle_collapsible(self):
        layout = self._controller()
        assert layout.toggle('hero') is True
        assert layout.toggle('hero') is False

    def test_toggle_non_collapsible_stays_expanded(self):
        layout = self._controller()
        assert layout.toggle(DEFAULT_GROUP) is True
        assert layout.is_expanded(DEFAULT_GROUP)

    def test_toggle_unknown_group(self):
        assert self._controller().toggle('missing') is True

    def test_select(self):
        layout = self._controller()
        layout.select('hero')
        assert layout.active_group == 'hero'
        layout.select('missing')
        assert layout.active_group == 'hero'

    def test_labels(self):
        layout = self._controller()
        assert layout.label('page_info') == 'Página'
        assert layout.label(DEFAULT_GROUP) == ''
        assert layout.description('hero') is None

    def test_non_collapsible_ignores_default_expanded(self):
        groups = [FieldGroup(name='a', defaultExpanded=False), FieldGroup(name='b')]
        fields = [FieldSchema(key='x', group='a'), FieldSchema(key='y', group='b')]
        layout = LayoutController(fields, groups)
        assert layout.is_expanded('a')

    def test_empty_form(self):
        layout = LayoutController([], [])
        assert layout.group_names == []
        assert layout.active_group is None
        assert layout.mode(1280) == LayoutMode.SINGLE
