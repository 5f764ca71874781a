"""
Streamlit renderers for schema-driven forms.

Every field type maps to one renderer in ``FIELD_RENDERERS``. Widgets are
keyed with the session form version and write back through the controller
in their ``on_change`` callbacks, which run the change and blur handlers
(Streamlit has no separate blur event). Array elements re-enter
``render_fields`` so nested arrays render recursively.
"""

import json
import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional

import streamlit as st
from dateutil import parser as date_parser

from .array_manager import display_name
from .backup_manager import BackupManager, format_size
from .collaborators import MediaLibrary, PreviewRequest, thaw
from .controller import FormController
from .diff_utils import calculate_diff, format_diff_for_streamlit
from .error_handler import ErrorHandler, ErrorType
from .field_schema import FieldSchema, FieldType, FieldWidth
from .layout import LayoutMode
from .path_resolver import join_path
from .session_manager import SessionManager
from .ui_feedback import Notify, autosave_status_label
from .visibility import is_visible

logger = logging.getLogger(__name__)

Renderer = Callable[[FormController, FieldSchema, str], None]

ROW_UNITS = 6
WIDTH_UNITS = {
    FieldWidth.FULL: 6,
    FieldWidth.HALF: 3,
    FieldWidth.THIRD: 2,
}

CUSTOM_COMPONENTS: Dict[str, Renderer] = {}


def register_component(name: str) -> Callable[[Renderer], Renderer]:
    """Register a renderer for ``type: custom`` fields with ``component: <name>``."""
    def decorator(func: Renderer) -> Renderer:
        CUSTOM_COMPONENTS[name] = func
        return func
    return decorator


# --- value conversion -------------------------------------------------------

def to_date(value: Any) -> Optional[date]:
    """Parse a stored date value; unparsable values become None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.parse(str(value)).date()
    except (ValueError, OverflowError) as e:
        logger.warning(f"Failed to parse date string '{value}': {e}")
        return None


def to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError) as e:
        logger.warning(f"Failed to parse datetime string '{value}': {e}")
        return None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None


def format_datetime(day: Optional[date], moment: Optional[time]) -> Optional[str]:
    """Combine date and time widgets into the ``YYYY-MM-DDTHH:MM`` form."""
    if day is None:
        return None
    combined = datetime.combine(day, moment or time.min)
    return combined.strftime("%Y-%m-%dT%H:%M")


def normalize_number(raw: Any) -> Any:
    """Keep integral numbers as ints so documents do not gain a trailing .0."""
    if raw is None or raw == '':
        return None
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    return raw


def tags_to_text(value: Any) -> str:
    if isinstance(value, list):
        return ', '.join(str(tag) for tag in value)
    return '' if value is None else str(value)


def text_to_tags(text: Any) -> List[str]:
    """Comma-separated text to a tag list, dropping blanks and duplicates."""
    tags: List[str] = []
    for part in str(text or '').split(','):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def parse_json_text(text: Any) -> Any:
    """Parse the JSON fallback editor; raises ValueError on bad input."""
    if text is None or str(text).strip() == '':
        return None
    return json.loads(str(text))


def pack_rows(fields: List[FieldSchema]) -> List[List[FieldSchema]]:
    """
    Group fields into rows by width (full, half, third of a row).

    A field that does not fit in the remaining space starts a new row.
    """
    rows: List[List[FieldSchema]] = []
    current: List[FieldSchema] = []
    used = 0
    for field in fields:
        units = WIDTH_UNITS.get(field.width, ROW_UNITS)
        if current and used + units > ROW_UNITS:
            rows.append(current)
            current, used = [], 0
        current.append(field)
        used += units
    if current:
        rows.append(current)
    return rows


# --- widget callbacks -------------------------------------------------------

def _commit(controller: FormController, path: str, key: str, convert: Optional[Callable[[Any], Any]] = None) -> None:
    """Widget on_change: write the widget value, then validate like a blur."""
    raw = st.session_state.get(key)
    value = convert(raw) if convert else raw
    controller.handle_change(path, value)
    controller.handle_blur(path)


def _commit_datetime(controller: FormController, path: str, key: str) -> None:
    day = st.session_state.get(f"{key}_date")
    moment = st.session_state.get(f"{key}_time")
    controller.handle_change(path, format_datetime(day, moment))
    controller.handle_blur(path)


def _commit_json(controller: FormController, path: str, key: str) -> None:
    try:
        value = parse_json_text(st.session_state.get(key))
    except ValueError as e:
        logger.warning(f"Ignoring invalid JSON for '{path}': {e}")
        return
    controller.handle_change(path, value)
    controller.handle_blur(path)


def _select_media(controller: FormController, path: str, pick_key: str) -> None:
    selector = controller.media_selector
    if isinstance(selector, MediaLibrary):
        selector.stage(st.session_state.get(pick_key))
    if controller.select_media(path):
        SessionManager.bump_form_version()
    else:
        Notify.warn("No se seleccionó ningún archivo")


def _clear_media(controller: FormController, path: str) -> None:
    controller.handle_change(path, None)
    SessionManager.bump_form_version()


def _add_item(controller: FormController, path: str) -> None:
    controller.add_item(path)
    SessionManager.bump_form_version()


def _remove_item(controller: FormController, path: str, index: int) -> None:
    if controller.remove_item(path, index):
        SessionManager.bump_form_version()


def _move_item(controller: FormController, path: str, from_index: int, to_index: int) -> None:
    if controller.move_item(path, from_index, to_index):
        SessionManager.bump_form_version()


def _toggle_item(controller: FormController, path: str, index: int) -> None:
    controller.array_manager(path).toggle(index)


def _widget_kwargs(controller: FormController, field: FieldSchema, path: str, key: str) -> Dict[str, Any]:
    label = f"{field.label} *" if field.required else field.label
    return {
        'label': label,
        'key': key,
        'help': field.description,
        'disabled': field.disabled,
        'on_change': _commit,
        'args': (controller, path, key),
    }


# --- field renderers --------------------------------------------------------

def render_text(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    input_type = 'password' if field.type == FieldType.PASSWORD else 'default'
    current = controller.value(path)
    st.text_input(
        value='' if current is None else str(current),
        placeholder=field.placeholder,
        type=input_type,
        **_widget_kwargs(controller, field, path, key)
    )


def render_textarea(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    current = controller.value(path)
    st.text_area(
        value='' if current is None else str(current),
        placeholder=field.placeholder,
        **_widget_kwargs(controller, field, path, key)
    )


def render_markdown(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    current = controller.value(path) or ''
    show_preview = st.toggle("👁️ Vista previa", key=SessionManager.widget_key(path, 'preview'))
    if show_preview:
        st.markdown(f"**{field.label}**")
        with st.container(border=True):
            st.markdown(current or "_Sin contenido_")
        return
    st.text_area(
        value=str(current),
        placeholder=field.placeholder or "Escribe en Markdown...",
        height=200,
        **_widget_kwargs(controller, field, path, key)
    )


def render_number(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    current = controller.value(path)
    try:
        value = None if current in (None, '') else float(current)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric value at '{path}': {current!r}")
        value = None

    kwargs = _widget_kwargs(controller, field, path, key)
    kwargs['args'] = (controller, path, key, normalize_number)
    st.number_input(
        value=value,
        placeholder=field.placeholder,
        **kwargs
    )


def render_checkbox(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    st.checkbox(value=bool(controller.value(path)), **_widget_kwargs(controller, field, path, key))


def render_select(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    values = field.option_values()
    current = controller.value(path)
    options = [None] + values
    index = options.index(current) if current in values else 0
    st.selectbox(
        options=options,
        index=index,
        format_func=lambda v: (field.placeholder or "Selecciona una opción") if v is None else field.option_label(v),
        **_widget_kwargs(controller, field, path, key)
    )


def render_multiselect(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    values = field.option_values()
    current = controller.value(path)
    selected = [v for v in current if v in values] if isinstance(current, list) else []
    st.multiselect(
        options=values,
        default=selected,
        format_func=field.option_label,
        placeholder=field.placeholder or "Selecciona opciones",
        **_widget_kwargs(controller, field, path, key)
    )


def render_tags(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    kwargs = _widget_kwargs(controller, field, path, key)
    kwargs['args'] = (controller, path, key, text_to_tags)
    st.text_input(
        value=tags_to_text(controller.value(path)),
        placeholder=field.placeholder or "etiqueta1, etiqueta2",
        **kwargs
    )
    tags = controller.value(path)
    if isinstance(tags, list) and tags:
        st.caption(' '.join(f"`{tag}`" for tag in tags))


def render_date(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    kwargs = _widget_kwargs(controller, field, path, key)
    kwargs['args'] = (controller, path, key, format_date)
    st.date_input(value=to_date(controller.value(path)), format="YYYY-MM-DD", **kwargs)


def render_datetime(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    current = to_datetime(controller.value(path))
    label = f"{field.label} *" if field.required else field.label
    col1, col2 = st.columns(2)
    with col1:
        st.date_input(
            f"{label} (fecha)",
            value=current.date() if current else None,
            key=f"{key}_date",
            help=field.description,
            disabled=field.disabled,
            on_change=_commit_datetime,
            args=(controller, path, key),
        )
    with col2:
        st.time_input(
            f"{label} (hora)",
            value=current.time() if current else None,
            key=f"{key}_time",
            disabled=field.disabled,
            on_change=_commit_datetime,
            args=(controller, path, key),
        )


def render_media_reference(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    current = controller.value(path)
    st.markdown(f"**{field.label}{' *' if field.required else ''}**")
    if field.description:
        st.caption(field.description)

    urls = current if isinstance(current, list) else ([current] if current else [])
    for url in urls:
        if str(url).lower().endswith(('.png', '.jpg', '.jpeg', '.gif', '.webp', '.svg')):
            st.image(url, width=160, caption=url)
        else:
            st.code(url, language=None)

    selector = controller.media_selector
    if isinstance(selector, MediaLibrary) and selector.urls:
        pick_key = SessionManager.widget_key(path, 'pick')
        if field.multiple:
            st.multiselect("Biblioteca de medios", options=selector.urls, key=pick_key, disabled=field.disabled)
        else:
            st.selectbox("Biblioteca de medios", options=selector.urls, key=pick_key, disabled=field.disabled)
        col1, col2 = st.columns(2)
        with col1:
            st.button("🖼️ Seleccionar", key=f"{key}_select", disabled=field.disabled,
                      on_click=_select_media, args=(controller, path, pick_key))
        with col2:
            st.button("🧹 Quitar", key=f"{key}_clear", disabled=field.disabled or not urls,
                      on_click=_clear_media, args=(controller, path))
    elif not field.multiple:
        # No library configured: edit the URL directly
        st.text_input(
            "URL", value=current or '', key=key, disabled=field.disabled,
            on_change=_commit, args=(controller, path, key),
        )


def render_custom(controller: FormController, field: FieldSchema, path: str) -> None:
    component = CUSTOM_COMPONENTS.get(field.component or '')
    if component is not None:
        component(controller, field, path)
        return

    if field.component:
        logger.warning(f"Unknown custom component '{field.component}' for '{path}', using JSON editor")
    render_json_editor(controller, field, path)


def render_json_editor(controller: FormController, field: FieldSchema, path: str) -> None:
    """Fallback editor for values without a dedicated widget."""
    key = SessionManager.widget_key(path)
    current = controller.value(path)
    kwargs = _widget_kwargs(controller, field, path, key)
    kwargs['on_change'] = _commit_json
    st.text_area(
        value=json.dumps(current, indent=2, ensure_ascii=False) if current is not None else '',
        height=150,
        **kwargs
    )
    try:
        parse_json_text(st.session_state.get(key))
    except ValueError:
        st.error("JSON inválido: el valor anterior se mantiene")


@register_component('color-picker')
def render_color_picker(controller: FormController, field: FieldSchema, path: str) -> None:
    key = SessionManager.widget_key(path)
    st.color_picker(value=controller.value(path) or '#000000', **_widget_kwargs(controller, field, path, key))


def render_array(controller: FormController, field: FieldSchema, path: str) -> None:
    manager = controller.array_manager(path)
    items = manager.items(controller.document)
    last = len(items) - 1

    st.markdown(f"**{field.label}{' *' if field.required else ''}** ({len(items)})")
    if field.description:
        st.caption(field.description)

    for index, item in enumerate(items):
        item_path = join_path(path, index)
        item_key = f"array_{path}_{manager.item_id(index)}"
        expanded = manager.is_expanded(index)
        with st.container(border=True):
            header, up, down, remove = st.columns([6, 1, 1, 1])
            with header:
                st.button(
                    f"{'▾' if expanded else '▸'} {display_name(item, index)}",
                    key=f"{item_key}_toggle",
                    on_click=_toggle_item, args=(controller, path, index),
                )
            with up:
                st.button("⬆️", key=f"{item_key}_up", disabled=index == 0 or field.disabled,
                          on_click=_move_item, args=(controller, path, index, index - 1))
            with down:
                st.button("⬇️", key=f"{item_key}_down", disabled=index == last or field.disabled,
                          on_click=_move_item, args=(controller, path, index, index + 1))
            with remove:
                st.button("🗑️", key=f"{item_key}_remove", disabled=field.disabled,
                          on_click=_remove_item, args=(controller, path, index))
            if expanded and isinstance(item, dict):
                render_fields(controller, field.array_item_schema, item_path, item)

    st.button(f"➕ Agregar {field.label}", key=f"array_{path}_add", disabled=field.disabled,
              on_click=_add_item, args=(controller, path))


FIELD_RENDERERS: Dict[FieldType, Renderer] = {
    FieldType.TEXT: render_text,
    FieldType.EMAIL: render_text,
    FieldType.URL: render_text,
    FieldType.PASSWORD: render_text,
    FieldType.TEXTAREA: render_textarea,
    FieldType.MARKDOWN: render_markdown,
    FieldType.NUMBER: render_number,
    FieldType.CHECKBOX: render_checkbox,
    FieldType.SELECT: render_select,
    FieldType.MULTISELECT: render_multiselect,
    FieldType.TAGS: render_tags,
    FieldType.DATE: render_date,
    FieldType.DATETIME: render_datetime,
    FieldType.MEDIA_REFERENCE: render_media_reference,
    FieldType.ARRAY: render_array,
    FieldType.CUSTOM: render_custom,
}


# --- composition ------------------------------------------------------------

def render_field(controller: FormController, field: FieldSchema, path: str, scope: Dict[str, Any]) -> None:
    """Render one visible field with its inline error or hint."""
    if not is_visible(field, scope):
        return

    FIELD_RENDERERS[field.type](controller, field, path)

    error = controller.error_for(path)
    if error:
        st.markdown(f":red[⚠️ {error}]")
    elif controller.config.enable_smart_validation:
        hint = controller.validation.hints.get(path)
        if hint:
            st.caption(f"💡 {hint}")


def render_fields(controller: FormController, fields: List[FieldSchema], prefix: str = '',
                  scope: Optional[Dict[str, Any]] = None) -> None:
    """
    Render a list of fields in width-packed rows.

    Args:
        controller: Form controller
        fields: Fields of this level (top level or an array item schema)
        prefix: Full path of the record these fields belong to
        scope: The record itself; dependsOn conditions resolve against it
    """
    record = controller.document if scope is None else scope
    visible = [field for field in fields if is_visible(field, record)]

    for row in pack_rows(visible):
        units = [WIDTH_UNITS.get(field.width, ROW_UNITS) for field in row]
        if len(row) == 1 and units[0] == ROW_UNITS:
            render_field(controller, row[0], join_path(prefix, row[0].key), record)
            continue
        if sum(units) < ROW_UNITS:
            units.append(ROW_UNITS - sum(units))
        columns = st.columns(units)
        for column, field in zip(columns, row):
            with column:
                render_field(controller, field, join_path(prefix, field.key), record)


def _toggle_group(controller: FormController, name: str) -> None:
    controller.layout.toggle(name)


def _select_group(controller: FormController, key: str) -> None:
    controller.layout.select(st.session_state.get(key))


def render_form(controller: FormController, viewport_width: int) -> None:
    """Render all groups using the layout mode for the given viewport width."""
    layout = controller.layout
    names = layout.group_names
    mode = layout.mode(viewport_width)

    if not names:
        st.info("Este formulario no tiene campos")
        return

    if mode == LayoutMode.SINGLE:
        name = names[0]
        if layout.label(name):
            st.subheader(layout.label(name))
        render_fields(controller, layout.partitions[name])
        return

    if mode == LayoutMode.TABS:
        key = f"layout_tabs_{SessionManager.get_form_version()}"
        st.radio(
            "Sección",
            options=names,
            index=names.index(layout.active_group) if layout.active_group in names else 0,
            format_func=lambda n: layout.label(n) or "General",
            horizontal=True,
            label_visibility="collapsed",
            key=key,
            on_change=_select_group,
            args=(controller, key),
        )
        active = layout.active_group or names[0]
        if layout.description(active):
            st.caption(layout.description(active))
        render_fields(controller, layout.partitions[active])
        return

    for name in names:
        state = layout.states[name]
        title = layout.label(name) or "General"
        if state.collapsible:
            st.button(f"{'▾' if state.expanded else '▸'} {title}", key=f"group_{name}_toggle",
                      on_click=_toggle_group, args=(controller, name))
        else:
            st.markdown(f"#### {title}")
        if layout.is_expanded(name):
            if layout.description(name):
                st.caption(layout.description(name))
            with st.container(border=True):
                render_fields(controller, layout.partitions[name])


def render_validation_panel(controller: FormController) -> None:
    """Summary of every current issue without marking fields touched."""
    issues = controller.preview_errors()
    with st.expander(f"🩺 Validación ({len(issues)})", expanded=bool(issues)):
        if not issues:
            st.success("✅ Sin problemas de validación")
            return
        for path, message in sorted(issues.items()):
            st.markdown(f"- `{path}`: {message}")


def render_autosave_status(controller: FormController) -> None:
    st.caption(autosave_status_label(controller.autosave))
    if controller.autosave and controller.autosave.state.has_unsaved_changes:
        st.button("💾 Guardar ahora", key="autosave_save_now", on_click=controller.save_now)


def render_preview(request: PreviewRequest) -> None:
    with st.container(border=True):
        st.subheader(f"👁️ Vista previa: {request.template}")
        st.json(thaw(request.snapshot))


def _create_backup(controller: FormController, manager: BackupManager, resource: str,
                   description_key: str, max_backups: int) -> None:
    def _run():
        entry = manager.create_backup(resource, controller.document, 'manual',
                                      st.session_state.get(description_key) or None)
        manager.cleanup_old_backups(resource, max_backups)
        Notify.success(f"Respaldo creado ({entry.changes} cambios)")

    ErrorHandler.with_error_handling(_run, "backup creation", ErrorType.STORAGE)


def _restore_backup(controller: FormController, manager: BackupManager, resource: str, backup_id: str) -> None:
    document = manager.load_backup(resource, backup_id)
    if document is None:
        Notify.error("No se pudo leer el respaldo")
        return
    controller.restore(document)
    SessionManager.bump_form_version()
    Notify.success("Respaldo restaurado")


def _delete_backup(manager: BackupManager, resource: str, backup_id: str) -> None:
    if manager.delete_backup(resource, backup_id):
        Notify.info("Respaldo eliminado")


def render_backup_panel(controller: FormController, manager: BackupManager, resource: str,
                        max_backups: int) -> None:
    with st.expander("🗄️ Respaldos"):
        description_key = f"backup_description_{resource}"
        st.text_input("Descripción", key=description_key, placeholder="Antes de cambiar el hero...")
        st.button("📦 Crear respaldo", key=f"backup_create_{resource}",
                  on_click=_create_backup,
                  args=(controller, manager, resource, description_key, max_backups))

        backups = manager.list_backups(resource)
        if not backups:
            st.caption("No hay respaldos todavía")
            return

        for entry in backups:
            with st.container(border=True):
                icon = "🤖" if entry.type == 'auto' else "👤"
                st.markdown(f"{icon} **{entry.timestamp:%Y-%m-%d %H:%M:%S}** · "
                            f"{format_size(entry.size)} · {entry.changes} cambios")
                if entry.description:
                    st.caption(entry.description)
                col1, col2, col3 = st.columns(3)
                with col1:
                    st.button("↩️ Restaurar", key=f"backup_restore_{entry.id}",
                              on_click=_restore_backup, args=(controller, manager, resource, entry.id))
                with col2:
                    show_diff = st.toggle("Comparar", key=f"backup_diff_{entry.id}")
                with col3:
                    st.button("🗑️ Eliminar", key=f"backup_delete_{entry.id}",
                              on_click=_delete_backup, args=(manager, resource, entry.id))
                if show_diff:
                    rows = format_diff_for_streamlit(
                        calculate_diff(manager.load_backup(resource, entry.id), controller.document)
                    )
                    if rows:
                        st.table(rows)
                    else:
                        st.caption("Sin diferencias con el contenido actual")
