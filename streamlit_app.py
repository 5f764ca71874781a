"""
Main Streamlit application for the CMS admin panel.
Schema-driven editor for the structured content of the marketing website.
"""

import streamlit as st
from pathlib import Path
import logging

from cms_forms.backup_manager import BackupManager
from cms_forms.collaborators import MediaLibrary
from cms_forms.config_loader import get_config, get_config_value, get_form_config
from cms_forms.content_store import ContentStore
from cms_forms.controller import FormController
from cms_forms.diff_utils import changed_paths
from cms_forms.error_handler import ErrorHandler, ErrorType
from cms_forms.exceptions import CollaboratorError, SchemaDefinitionError
from cms_forms.renderers import (
    render_autosave_status,
    render_backup_panel,
    render_form,
    render_preview,
    render_validation_panel,
)
from cms_forms.schema_loader import SCHEMAS_DIR, get_schema_info, list_available_schemas, load_active_schema
from cms_forms.session_manager import SessionManager
from cms_forms.ui_feedback import Notify, submit_status_label


def get_logging_level(level_str):
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    return level_map.get(str(level_str).upper(), logging.INFO)


# Configure logging dynamically from config
log_level_str = get_config_value('logging', 'level', 'INFO')
logging.basicConfig(level=get_logging_level(log_level_str))
logger = logging.getLogger(__name__)
logger.info(f"Logging configured to level: {log_level_str}")

config = get_config()
page_title = get_config_value('ui', 'page_title', 'Panel de Contenido')

st.set_page_config(
    page_title=page_title,
    page_icon="🗂️",
    layout="wide",
    initial_sidebar_state="expanded"
)

content_store = ContentStore(Path(get_config_value('storage', 'content_dir', 'content')))
backup_manager = BackupManager(Path(get_config_value('storage', 'backup_dir', 'backups')))
MAX_BACKUPS = int(get_config_value('storage', 'max_backups', 20))
SCHEMAS_PATH = Path(get_config_value('schemas', 'directory', str(SCHEMAS_DIR)))


def main():
    """Main application entry point."""
    try:
        SessionManager.initialize(get_config_value('ui', 'viewport_width', 1280))
        render_header()
        render_sidebar()
        render_main_content()
    except Exception as e:
        ErrorHandler.handle_error(e, "application", ErrorType.SYSTEM, show_details=config['app'].get('debug', False))


def render_header():
    st.title(f"🗂️ {page_title}")
    resource = SessionManager.get_current_resource()
    controller = SessionManager.get_controller()
    if resource and controller:
        mode_label = "Editando" if controller.config.mode == 'edit' else "Creando"
        st.caption(f"{mode_label}: **{controller.schema.title or resource}** (`{resource}`)")


def build_controller(resource: str, schema_name: str) -> FormController:
    """Mount a form for ``resource`` with callbacks wired to the content store."""
    schema = load_active_schema(SCHEMAS_PATH / schema_name)
    initial = content_store.load(resource)
    form_config = get_form_config(config, {'mode': 'edit' if initial is not None else 'create'})

    def on_submit(document):
        if not content_store.save(resource, document):
            raise CollaboratorError("Content store", IOError(f"could not write {resource}"))
        SessionManager.set_original_data(document)

    def on_save(document):
        if not content_store.save(resource, document):
            return False
        SessionManager.set_original_data(document)
        if form_config.show_backup_manager:
            try:
                backup_manager.create_backup(resource, document, 'auto', "Guardado automático")
                backup_manager.cleanup_old_backups(resource, MAX_BACKUPS)
            except CollaboratorError as e:
                logger.warning(f"Automatic backup skipped: {e}")
        return True

    def on_cancel():
        controller.load(content_store.load(resource))
        SessionManager.bump_form_version()
        Notify.info("Cambios descartados")

    def on_preview(request):
        SessionManager.set_ui_state('show_preview', True)

    controller = FormController(
        schema,
        initial,
        on_submit=on_submit,
        on_save=on_save,
        on_cancel=on_cancel,
        config=form_config,
        media_selector=MediaLibrary(get_config_value('media', 'library', [])),
        on_preview=on_preview,
        breakpoint=int(get_config_value('ui', 'tabs_breakpoint', 768)),
    )
    SessionManager.set_original_data(initial or {})
    return controller


def _on_viewport_change():
    SessionManager.set_viewport_width(st.session_state['viewport_width_input'])


def _on_shortcut():
    chord = st.session_state.get('shortcut_input', '')
    controller = SessionManager.get_controller()
    if controller and chord and not controller.handle_shortcut(chord):
        Notify.warn(f"Atajo no reconocido: {chord}")
    st.session_state['shortcut_input'] = ''


@st.fragment(run_every=1)
def autosave_ticker():
    """Fire due autosave timers and refresh the indicator."""
    controller = SessionManager.get_controller()
    if controller is None or controller.autosave is None:
        return
    controller.scheduler.run_due()
    render_autosave_status(controller)


def render_sidebar():
    """Render application sidebar."""
    with st.sidebar:
        st.header(get_config_value('ui', 'sidebar_title', 'Contenido'))

        schemas = list_available_schemas(SCHEMAS_PATH)
        if not schemas:
            st.warning(f"No hay esquemas en {SCHEMAS_PATH}")
            return

        current = SessionManager.get_current_schema()
        schema_name = st.selectbox(
            "Sección del sitio",
            options=schemas,
            index=schemas.index(current) if current in schemas else 0,
            format_func=lambda name: Path(name).stem.replace('_', ' ').title(),
        )
        SessionManager.set_current_resource(Path(schema_name).stem, schema_name)

        st.divider()
        st.header("Ajustes")
        st.slider(
            "Ancho de la vista (px)",
            min_value=320,
            max_value=1920,
            step=16,
            value=SessionManager.get_viewport_width(),
            key='viewport_width_input',
            on_change=_on_viewport_change,
            help="Por debajo del punto de quiebre los grupos se muestran como acordeón",
        )

        controller = SessionManager.get_controller()
        if controller and controller.config.enable_keyboard_shortcuts:
            st.text_input(
                "Atajo de teclado",
                key='shortcut_input',
                placeholder="ctrl+s, escape, ctrl+p",
                on_change=_on_shortcut,
            )

        if controller:
            st.divider()
            st.header("Estado")
            autosave_ticker()
            pending = changed_paths(SessionManager.get_original_data(), controller.document)
            if pending:
                st.caption(f"📝 {len(pending)} campos difieren de lo guardado")
                with st.expander("Ver campos"):
                    for path in pending:
                        st.markdown(f"- `{path}`")
            info = get_schema_info(controller.schema)
            st.caption(f"{info['field_count']} campos · {info['group_count']} grupos")


def _submit(controller: FormController):
    if controller.submit():
        Notify.success("Contenido guardado")
    elif controller.submit_error:
        ErrorHandler.handle_error(CollaboratorError("Content store", RuntimeError(controller.submit_error)),
                                  "form submit", ErrorType.SUBMIT)


def render_main_content():
    resource = SessionManager.get_current_resource()
    schema_name = SessionManager.get_current_schema()
    if not resource or not schema_name:
        st.info("Selecciona una sección en la barra lateral")
        return

    controller = SessionManager.get_controller()
    if controller is None:
        try:
            controller = build_controller(resource, schema_name)
        except SchemaDefinitionError as e:
            ErrorHandler.handle_error(e, f"loading schema {schema_name}", ErrorType.SCHEMA)
            return
        SessionManager.set_controller(controller)

    if controller.schema.description:
        st.caption(controller.schema.description)

    render_form(controller, SessionManager.get_viewport_width())

    st.divider()
    cols = st.columns([1, 1, 4])
    with cols[0]:
        st.button("💾 Guardar", type="primary", key="form_submit", on_click=_submit, args=(controller,))
    with cols[1]:
        st.button("✖️ Cancelar", key="form_cancel", on_click=controller.cancel)
    if controller.config.show_preview_button:
        with cols[2]:
            st.button("👁️ Vista previa", key="form_preview", on_click=controller.preview)

    message = submit_status_label(controller.submit_status, controller.submit_error)
    if message:
        st.caption(message)

    if SessionManager.get_ui_state().get('show_preview') and controller.last_preview:
        render_preview(controller.last_preview)
        if st.button("Cerrar vista previa", key="preview_close"):
            SessionManager.set_ui_state('show_preview', False)
            st.rerun()

    if controller.config.show_validation_panel:
        render_validation_panel(controller)

    if controller.config.show_backup_manager:
        render_backup_panel(controller, backup_manager, resource, MAX_BACKUPS)


if __name__ == "__main__":
    main()
