"""
Unit tests for array element bookkeeping.
"""

import pytest

from cms_forms.array_manager import ArrayFieldManager, ArrayRegistry, ItemState, display_name
from test_fixtures import SchemaFixtures, build_schema


@pytest.fixture
def item_schema():
    return build_schema(SchemaFixtures.get_team_schema()).fields[0].array_item_schema


@pytest.fixture
def document():
    return SchemaFixtures.get_team_document()


class TestDisplayName:
    """Test cases for display_name."""

    @pytest.mark.parametrize("item,expected", [
        ({'title': 'Calidad', 'name': 'x'}, 'Calidad'),
        ({'name': '  Ana  '}, 'Ana'),
        ({'author': 'Eva'}, 'Eva'),
        ({'title': '', 'name': 'Luis'}, 'Luis'),
        ({'name': 2024}, '2024'),
        ({'name': True}, 'Item 3'),
        ({}, 'Item 3'),
        ('scalar', 'Item 3'),
    ])
    def test_probing_order(self, item, expected):
        assert display_name(item, 2) == expected


class TestArrayFieldManager:
    """Test cases for insert/remove/move."""

    def test_insert_appends_defaulted_item(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        updated, index = manager.insert(document)

        assert index == 3
        assert updated['team'][3] == {'role': 'Ingeniero'}
        assert len(document['team']) == 3
        assert manager.is_expanded(3)

    def test_toggle_flips_item_state(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        manager.sync(document)

        assert manager.toggle(1) is True
        assert manager.state(1) == ItemState(expanded=True)
        assert manager.toggle(1) is False
        assert manager.state(1) == ItemState()

    def test_insert_into_missing_array(self, item_schema):
        manager = ArrayFieldManager('team', item_schema)
        updated, index = manager.insert({})
        assert index == 0
        assert updated == {'team': [{'role': 'Ingeniero'}]}

    def test_remove_shifts_state(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        manager.sync(document)
        manager.set_expanded(2, True)
        eva_id = manager.item_id(2)

        updated, index_map = manager.remove(document, 1)

        assert [m['name'] for m in updated['team']] == ['Ana', 'Eva']
        assert index_map == {0: 0, 1: None, 2: 1}
        assert manager.item_id(1) == eva_id
        assert manager.is_expanded(1)
        assert manager.expanded_indices() == [1]

    def test_remove_drops_removed_state(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        manager.sync(document)
        manager.set_expanded(0, True)
        removed_id = manager.item_id(0)

        manager.remove(document, 0)

        assert removed_id not in manager.states

    def test_remove_out_of_range_is_noop(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        updated, index_map = manager.remove(document, 7)
        assert updated is document
        assert index_map == {}

    def test_move_reorders_and_keeps_state(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        manager.sync(document)
        manager.set_expanded(0, True)

        updated, index_map = manager.move(document, 0, 2)

        assert [m['name'] for m in updated['team']] == ['Luis', 'Eva', 'Ana']
        assert index_map == {1: 0, 2: 1, 0: 2}
        assert manager.expanded_indices() == [2]

    @pytest.mark.parametrize("from_index,to_index", [(0, 0), (-1, 1), (0, 3), (5, 0)])
    def test_move_out_of_range_is_noop(self, item_schema, document, from_index, to_index):
        manager = ArrayFieldManager('team', item_schema)
        updated, index_map = manager.move(document, from_index, to_index)
        assert updated is document
        assert index_map == {}

    def test_toggle(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        manager.sync(document)
        assert manager.toggle(1) is True
        assert manager.toggle(1) is False
        assert not manager.is_expanded(99)

    def test_sync_follows_external_changes(self, item_schema, document):
        manager = ArrayFieldManager('team', item_schema)
        manager.sync(document)
        manager.set_expanded(2, True)

        manager.sync({'team': document['team'][:2]})

        assert manager.expanded_indices() == []
        assert len(manager.states) == 0


class TestArrayRegistry:
    """Test cases for nested array managers."""

    def test_manager_for_is_cached(self, item_schema):
        registry = ArrayRegistry()
        assert registry.manager_for('team', item_schema) is registry.manager_for('team', item_schema)
        assert registry.get('other') is None

    def test_reindex_moves_nested_managers(self, item_schema):
        registry = ArrayRegistry()
        skills_schema = item_schema[-1].array_item_schema
        first = registry.manager_for('team.0.skills', skills_schema)
        third = registry.manager_for('team.2.skills', skills_schema)

        registry.reindex('team', {0: None, 1: 0, 2: 1})

        assert registry.get('team.1.skills') is third
        assert third.path == 'team.1.skills'
        assert first not in registry.managers.values()

    def test_clear(self, item_schema):
        registry = ArrayRegistry()
        registry.manager_for('team', item_schema)
        registry.clear()
        assert registry.managers == {}
