"""
Unit tests for the field schema model and default seeding.
"""

import pytest
from pydantic import ValidationError

from cms_forms.field_schema import (
    FieldGroup,
    FieldSchema,
    FieldType,
    FieldWidth,
    FormSchema,
    apply_defaults,
    is_empty_value,
    iter_fields,
    new_item_from_schema,
)
from cms_forms.path_resolver import MISSING
from test_fixtures import SchemaFixtures, build_schema


class TestFieldSchema:
    """Test cases for FieldSchema parsing."""

    def test_minimal_field(self):
        field = FieldSchema(key='page.title')
        assert field.type == FieldType.TEXT
        assert field.width == FieldWidth.FULL
        assert field.required is False
        assert field.label == 'Title'

    def test_camel_case_aliases(self):
        field = FieldSchema.model_validate({
            'key': 'bg',
            'type': 'select',
            'defaultValue': 'image',
            'dependsOn': {'field': 'hero.mode', 'value': 'advanced'},
            'options': ['image', {'value': 'video', 'label': 'Video'}],
        })
        assert field.default_value == 'image'
        assert field.depends_on.field == 'hero.mode'
        assert field.option_values() == ['image', 'video']
        assert field.option_label('image') == 'image'
        assert field.option_label('video') == 'Video'
        assert field.option_label('other') == 'other'

    @pytest.mark.parametrize("legacy,expected", [
        ('image', FieldType.MEDIA_REFERENCE),
        ('video', FieldType.MEDIA_REFERENCE),
        ('media', FieldType.MEDIA_REFERENCE),
        ('datetime-local', FieldType.DATETIME),
    ])
    def test_legacy_type_names(self, legacy, expected):
        assert FieldSchema(key='x', type=legacy).type == expected

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            FieldSchema(key='x', type='rich-text')

    def test_top_level_bounds_fold_into_validation(self):
        field = FieldSchema.model_validate({'key': 'x', 'type': 'textarea', 'min': 50, 'max': 160})
        assert field.validation.min == 50
        assert field.validation.max == 160

    def test_explicit_validation_wins_over_top_level(self):
        field = FieldSchema.model_validate({'key': 'x', 'max': 5, 'validation': {'max': 10}})
        assert field.validation.max == 10

    def test_legacy_array_fields(self):
        field = FieldSchema.model_validate({
            'key': 'stats',
            'type': 'array',
            'arrayFields': [{'key': 'number', 'type': 'text'}],
        })
        assert [f.key for f in field.array_item_schema] == ['number']

    def test_array_requires_item_schema(self):
        with pytest.raises(ValidationError):
            FieldSchema(key='team', type='array')
        with pytest.raises(ValidationError):
            FieldSchema.model_validate({'key': 'team', 'type': 'array', 'arrayItemSchema': []})

    def test_item_schema_only_on_arrays(self):
        with pytest.raises(ValidationError):
            FieldSchema.model_validate({'key': 'x', 'type': 'text', 'arrayItemSchema': [{'key': 'a'}]})

    def test_duplicate_item_keys_rejected(self):
        with pytest.raises(ValidationError):
            FieldSchema.model_validate({
                'key': 'team',
                'type': 'array',
                'arrayItemSchema': [{'key': 'name'}, {'key': 'name'}],
            })

    def test_legacy_custom_rule_key(self):
        field = FieldSchema.model_validate({'key': 'slug', 'validation': {'custom': 'slug'}})
        assert field.validation.custom_rule == 'slug'


class TestFormSchema:
    """Test cases for FormSchema."""

    def test_duplicate_field_keys_rejected(self):
        with pytest.raises(ValidationError):
            FormSchema.model_validate({'fields': [{'key': 'a'}, {'key': 'a'}]})

    def test_duplicate_group_names_rejected(self):
        with pytest.raises(ValidationError):
            FormSchema.model_validate({'groups': [{'name': 'g'}, {'name': 'g'}], 'fields': []})

    def test_group_defaults(self):
        group = FieldGroup(name='page_info')
        assert group.label == 'Page Info'
        assert group.collapsible is False
        assert group.default_expanded is True

    def test_group_name_required(self):
        with pytest.raises(ValidationError):
            FieldGroup(name='')

    def test_preview_template_alias(self):
        schema = build_schema(SchemaFixtures.get_hero_schema())
        assert schema.preview_template == 'HomePage'
        assert schema.field_by_key('hero.background.type').type == FieldType.SELECT
        assert schema.field_by_key('nope') is None

    def test_iter_fields_descends_into_arrays(self):
        schema = build_schema(SchemaFixtures.get_team_schema())
        keys = [field.key for field in iter_fields(schema.fields)]
        assert keys == ['team', 'name', 'role', 'has_bio', 'bio', 'skills', 'name']


class TestDefaults:
    """Test cases for default seeding."""

    def _fields(self):
        return [
            FieldSchema(key='hero.background.type', defaultValue='image'),
            FieldSchema(key='hero.opacity', type='number', defaultValue=0.5),
            FieldSchema(key='visible', type='checkbox', defaultValue=True),
            FieldSchema(key='tags', type='tags', defaultValue=['a']),
        ]

    def test_seeds_missing_values(self):
        doc = apply_defaults({}, self._fields())
        assert doc == {
            'hero': {'background': {'type': 'image'}, 'opacity': 0.5},
            'visible': True,
            'tags': ['a'],
        }

    def test_empty_string_and_none_are_seeded(self):
        doc = apply_defaults({'hero': {'background': {'type': ''}, 'opacity': None}}, self._fields())
        assert doc['hero']['background']['type'] == 'image'
        assert doc['hero']['opacity'] == 0.5

    def test_falsy_present_values_kept(self):
        doc = apply_defaults({'hero': {'opacity': 0}, 'visible': False}, self._fields())
        assert doc['hero']['opacity'] == 0
        assert doc['visible'] is False

    def test_idempotent(self):
        once = apply_defaults({}, self._fields())
        assert apply_defaults(once, self._fields()) == once

    def test_input_not_modified_and_defaults_copied(self):
        fields = self._fields()
        original = {'hero': {}}
        doc = apply_defaults(original, fields)
        assert original == {'hero': {}}
        doc['tags'].append('b')
        assert fields[3].default_value == ['a']

    def test_new_item_from_schema(self):
        schema = build_schema(SchemaFixtures.get_team_schema())
        item = new_item_from_schema(schema.fields[0].array_item_schema)
        assert item == {'role': 'Ingeniero'}


@pytest.mark.parametrize("value,expected", [
    (MISSING, True),
    (None, True),
    ('', True),
    ([], True),
    (0, False),
    (False, False),
    (' ', False),
    ({}, False),
])
def test_is_empty_value(value, expected):
    assert is_empty_value(value) is expected
