"""
Unit tests for dependsOn visibility.
"""

import pytest

from cms_forms.field_schema import FieldSchema
from cms_forms.visibility import is_visible, visible_fields


def _dependent(value):
    return FieldSchema.model_validate({
        'key': 'hero.background.video_url',
        'dependsOn': {'field': 'hero.background.type', 'value': value},
    })


def test_field_without_condition_is_visible():
    assert is_visible(FieldSchema(key='title'), {})


def test_condition_matches():
    field = _dependent('video')
    assert is_visible(field, {'hero': {'background': {'type': 'video'}}})
    assert not is_visible(field, {'hero': {'background': {'type': 'image'}}})


def test_missing_dependency_counts_as_none():
    assert not is_visible(_dependent('video'), {})
    assert is_visible(_dependent(None), {})


@pytest.mark.parametrize("stored,expected,visible", [
    (True, True, True),
    (1, True, False),
    (True, 1, False),
    ('1', 1, False),
    (1, 1.0, True),
    (False, None, False),
    ('', None, False),
])
def test_strict_equality(stored, expected, visible):
    field = FieldSchema.model_validate({'key': 'x', 'dependsOn': {'field': 'flag', 'value': expected}})
    assert is_visible(field, {'flag': stored}) is visible


def test_visible_fields_preserves_order():
    fields = [
        FieldSchema(key='a'),
        _dependent('video'),
        FieldSchema(key='b'),
    ]
    doc = {'hero': {'background': {'type': 'image'}}}
    assert [f.key for f in visible_fields(fields, doc)] == ['a', 'b']
