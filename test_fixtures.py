"""
Test fixtures for the form engine tests.

Provides reusable schemas, documents, a controllable clock and a dict-backed
stand-in for ``st.session_state``.
"""

from typing import Any, Dict, List, Optional

from cms_forms.config_loader import FormConfig
from cms_forms.controller import FormController
from cms_forms.field_schema import FormSchema
from cms_forms.scheduler import Scheduler


class FakeClock:
    """Manually advanced clock (seconds) for the scheduler."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000.0


class MockSessionState(dict):
    """Dict that also supports attribute access, like st.session_state."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name)

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        del self[name]


class SchemaFixtures:
    """Schemas covering the shapes the engine has to handle."""

    @staticmethod
    def get_simple_schema() -> Dict[str, Any]:
        return {
            'title': 'Simple',
            'fields': [
                {'key': 'title', 'type': 'text', 'required': True},
                {'key': 'email', 'label': 'Email', 'type': 'email'},
            ]
        }

    @staticmethod
    def get_hero_schema() -> Dict[str, Any]:
        """Background selector with dependent image/video fields."""
        return {
            'title': 'Home',
            'previewTemplate': 'HomePage',
            'fields': [
                {
                    'key': 'hero.background.type',
                    'label': 'Tipo de Fondo',
                    'type': 'select',
                    'required': True,
                    'defaultValue': 'image',
                    'options': [
                        {'value': 'image', 'label': 'Imagen'},
                        {'value': 'video', 'label': 'Video'},
                    ]
                },
                {
                    'key': 'hero.background.image_url',
                    'label': 'Imagen',
                    'type': 'image',
                    'required': True,
                    'dependsOn': {'field': 'hero.background.type', 'value': 'image'}
                },
                {
                    'key': 'hero.background.video_url',
                    'label': 'Video',
                    'type': 'video',
                    'required': True,
                    'dependsOn': {'field': 'hero.background.type', 'value': 'video'}
                },
            ]
        }

    @staticmethod
    def get_team_schema() -> Dict[str, Any]:
        """Array of members, each with a nested array of skills."""
        return {
            'title': 'Equipo',
            'fields': [
                {
                    'key': 'team',
                    'label': 'Equipo',
                    'type': 'array',
                    'arrayItemSchema': [
                        {'key': 'name', 'label': 'Nombre', 'type': 'text', 'required': True},
                        {'key': 'role', 'label': 'Cargo', 'type': 'text', 'defaultValue': 'Ingeniero'},
                        {'key': 'has_bio', 'label': 'Tiene Bio', 'type': 'checkbox'},
                        {
                            'key': 'bio',
                            'label': 'Bio',
                            'type': 'textarea',
                            'required': True,
                            'dependsOn': {'field': 'has_bio', 'value': True}
                        },
                        {
                            'key': 'skills',
                            'label': 'Especialidades',
                            'type': 'array',
                            'arrayItemSchema': [
                                {'key': 'name', 'label': 'Especialidad', 'type': 'text', 'required': True},
                            ]
                        },
                    ]
                }
            ]
        }

    @staticmethod
    def get_grouped_schema() -> Dict[str, Any]:
        return {
            'title': 'Agrupado',
            'groups': [
                {'name': 'page_info', 'label': 'Página', 'collapsible': True},
                {'name': 'hero', 'label': 'Hero', 'collapsible': True, 'defaultExpanded': False},
                {'name': 'empty', 'label': 'Sin campos'},
            ],
            'fields': [
                {'key': 'page.title', 'type': 'text', 'group': 'page_info'},
                {'key': 'hero.title', 'type': 'text', 'group': 'hero'},
                {'key': 'footer.note', 'type': 'text', 'group': 'unknown'},
                {'key': 'extra', 'type': 'text'},
            ]
        }

    @staticmethod
    def get_team_document() -> Dict[str, Any]:
        return {
            'team': [
                {'name': 'Ana', 'role': 'Gerente', 'skills': [{'name': 'BIM'}]},
                {'name': 'Luis', 'role': 'Supervisor', 'skills': []},
                {'name': 'Eva', 'role': 'Arquitecta', 'skills': [{'name': 'Revit'}, {'name': 'CAD'}]},
            ]
        }


def build_schema(data: Dict[str, Any]) -> FormSchema:
    return FormSchema.model_validate(data)


def build_controller(
    schema_data: Dict[str, Any],
    initial: Optional[Dict[str, Any]] = None,
    clock: Optional[FakeClock] = None,
    saves: Optional[List[Dict[str, Any]]] = None,
    submits: Optional[List[Dict[str, Any]]] = None,
    **config_values
) -> FormController:
    """
    Controller wired to recording callbacks and a fake clock.

    ``saves``/``submits`` lists receive the documents passed to the callbacks.
    """
    config = FormConfig(**config_values)
    on_save = None
    if saves is not None:
        def on_save(document):
            saves.append(document)
            return True
    on_submit = None
    if submits is not None:
        def on_submit(document):
            submits.append(document)

    return FormController(
        build_schema(schema_data),
        initial,
        on_submit=on_submit,
        on_save=on_save,
        config=config,
        scheduler=Scheduler(clock or FakeClock()),
    )
