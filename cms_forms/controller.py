"""
Form controller for schema-driven content editing.

Owns the document being edited and routes every mutation, blur, submit and
array operation through the path resolver, validation state, array managers
and the autosave coordinator. UI code only reads from the controller and
calls its handlers.
"""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .array_manager import ArrayFieldManager, ArrayRegistry
from .autosave import AutoSaveCoordinator
from .collaborators import (
    KeyboardShortcuts,
    MediaSelector,
    PreviewRequest,
    freeze,
    resolve_result,
    selected_urls,
)
from .config_loader import FormConfig
from .exceptions import UnknownFieldError
from .field_schema import FieldSchema, FieldType, FormSchema, apply_defaults
from .layout import DEFAULT_BREAKPOINT, LayoutController
from .path_resolver import MISSING, get_path, join_path, set_path
from .scheduler import Scheduler
from .validation import ValidationState
from .visibility import is_visible

logger = logging.getLogger(__name__)


class SubmitStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    INVALID = "invalid"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class FieldRef:
    """A field schema located in the document, plus the record it belongs to."""
    field: FieldSchema
    path: str
    # Path of the enclosing array element ('' for top-level fields)
    scope: str = ''


def _resolve_field(fields: List[FieldSchema], path: str, scope: str = '') -> Optional[FieldRef]:
    for field in fields:
        full_path = join_path(scope, field.key)
        if path == full_path:
            return FieldRef(field, full_path, scope)
        if field.type == FieldType.ARRAY and path.startswith(f"{full_path}."):
            index, _, rest = path[len(full_path) + 1:].partition('.')
            if index.isdigit() and rest:
                found = _resolve_field(field.array_item_schema, path, join_path(full_path, index))
                if found:
                    return found
    return None


class FormController:
    """
    State owner for one mounted form.

    Args:
        schema: Form schema
        initial_values: Document to seed the form with
        on_submit: Called with the document after full validation passes
        on_save: Persistence callback used by autosave; returns False on failure
        on_cancel: Called when the user cancels
        config: Feature flags
        scheduler: Timer source for autosave (a fresh one when omitted)
        media_selector: Media library collaborator
        on_preview: Receives a PreviewRequest when preview is requested
        breakpoint: Viewport width at which grouped forms switch to tabs
    """

    def __init__(
        self,
        schema: FormSchema,
        initial_values: Optional[Dict[str, Any]] = None,
        on_submit: Optional[Callable[[Dict[str, Any]], Any]] = None,
        on_save: Optional[Callable[[Dict[str, Any]], Any]] = None,
        on_cancel: Optional[Callable[[], Any]] = None,
        config: Optional[FormConfig] = None,
        scheduler: Optional[Scheduler] = None,
        media_selector: Optional[MediaSelector] = None,
        on_preview: Optional[Callable[[PreviewRequest], Any]] = None,
        breakpoint: int = DEFAULT_BREAKPOINT
    ):
        self.schema = schema
        self.config = config or FormConfig()
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        self.media_selector = media_selector
        self.on_preview = on_preview
        self.scheduler = scheduler or Scheduler()

        self.validation = ValidationState()
        self.layout = LayoutController(schema.fields, schema.groups, breakpoint)
        self.arrays = ArrayRegistry()

        self.autosave: Optional[AutoSaveCoordinator] = None
        if self.config.enable_auto_save and on_save is not None:
            self.autosave = AutoSaveCoordinator(
                on_save, lambda: self.document, self.scheduler, self.config.auto_save_interval
            )

        handlers: Dict[str, Callable[[], Any]] = {'save': self._save_shortcut}
        if on_cancel is not None:
            handlers['cancel'] = self.cancel
        if self.config.show_preview_button:
            handlers['preview'] = self.preview
        self.shortcuts = KeyboardShortcuts(handlers, enabled=self.config.enable_keyboard_shortcuts)

        self.document: Dict[str, Any] = {}
        self.submit_status = SubmitStatus.IDLE
        self.submit_error: Optional[str] = None
        self.last_preview: Optional[PreviewRequest] = None
        self.load(initial_values)

    def load(self, initial_values: Optional[Dict[str, Any]]) -> None:
        """
        Replace the document with a new record.

        Defaults are applied once here; validation, array and autosave state
        start over and a pending debounce is cancelled.
        """
        self.document = apply_defaults(copy.deepcopy(initial_values or {}), self.schema.fields)
        self.validation.reset()
        self.arrays.clear()
        if self.autosave:
            self.autosave.reset()
        self.submit_status = SubmitStatus.IDLE
        self.submit_error = None
        logger.info(f"Loaded document into form '{self.schema.title}' ({self.config.mode} mode)")

    def restore(self, document: Dict[str, Any]) -> None:
        """Replace the values with a backup; counts as an edit for autosave."""
        self.document = copy.deepcopy(document)
        self.validation.reset()
        self.arrays.clear()
        if self.autosave:
            self.autosave.notify_change()
        logger.info("Restored document from backup")

    def value(self, path: str, default: Any = None) -> Any:
        result = get_path(self.document, path)
        return default if result is MISSING else result

    def find_field(self, path: str) -> FieldRef:
        """
        Locate the schema of a full dot-path, descending into array elements.

        Raises:
            UnknownFieldError: If no field matches
        """
        ref = _resolve_field(self.schema.fields, path)
        if ref is None:
            raise UnknownFieldError(path)
        return ref

    def scope_document(self, ref: FieldRef) -> Dict[str, Any]:
        """The record a field's dependsOn condition is evaluated against."""
        if not ref.scope:
            return self.document
        record = get_path(self.document, ref.scope)
        return record if isinstance(record, dict) else {}

    def is_visible(self, path: str) -> bool:
        """A field is visible when its own condition and those of enclosing arrays hold."""
        return self._path_visible(self.find_field(path))

    def _path_visible(self, ref: FieldRef) -> bool:
        if not is_visible(ref.field, self.scope_document(ref)):
            return False
        if not ref.scope:
            return True
        parent = _resolve_field(self.schema.fields, ref.scope.rpartition('.')[0])
        return parent is None or self._path_visible(parent)

    def _drop_hidden_errors(self) -> None:
        """Forget errors of fields whose dependsOn condition no longer holds."""
        for path in list(self.validation.errors):
            ref = _resolve_field(self.schema.fields, path)
            if ref is None or not self._path_visible(ref):
                self.validation.clear(path)
                logger.debug(f"Dropped error of hidden field: {path}")

    def handle_change(self, path: str, value: Any) -> None:
        """Write a field value, clear its error and notify autosave."""
        ref = self.find_field(path)
        self.document = set_path(self.document, path, value)
        self.validation.clear(path)
        self._drop_hidden_errors()

        if self.config.enable_smart_validation:
            self.validation.hint(path, ref.field, value)
        array_path = path if ref.field.type == FieldType.ARRAY else ref.scope.rpartition('.')[0]
        manager = self.arrays.get(array_path) if array_path else None
        if manager:
            manager.sync(self.document)
        if self.autosave:
            self.autosave.notify_change()

        logger.debug(f"Field changed: {path}")

    def handle_blur(self, path: str) -> Optional[str]:
        """Validate one field after the user leaves it."""
        ref = self.find_field(path)
        if not self._path_visible(ref):
            return None
        return self.validation.blur(path, ref.field, get_path(self.document, path))

    def error_for(self, path: str) -> Optional[str]:
        return self.validation.error_for(path)

    @property
    def errors(self) -> Dict[str, str]:
        return self.validation.errors

    def submit(self) -> bool:
        """
        Validate the whole document and hand it to ``on_submit``.

        Returns:
            True when the submit callback ran without raising
        """
        if self.submit_status == SubmitStatus.SUBMITTING:
            logger.warning("Submit ignored: a submit is already running")
            return False

        errors = self.validation.validate_all(self.schema.fields, self.document)
        if errors:
            self.submit_status = SubmitStatus.INVALID
            logger.info(f"Submit blocked by {len(errors)} validation errors")
            return False

        if self.on_submit is None:
            logger.warning("Submit requested but no submit callback is configured")
            self.submit_status = SubmitStatus.SUCCEEDED
            return True

        self.submit_status = SubmitStatus.SUBMITTING
        self.submit_error = None
        try:
            resolve_result(self.on_submit(copy.deepcopy(self.document)))
        except Exception as e:
            logger.error(f"Form submission error: {e}", exc_info=True)
            self.submit_status = SubmitStatus.FAILED
            self.submit_error = str(e) or type(e).__name__
            return False

        self.submit_status = SubmitStatus.SUCCEEDED
        logger.info(f"Submitted form '{self.schema.title}'")
        return True

    def cancel(self) -> None:
        if self.on_cancel is None:
            return
        logger.info("Form cancelled")
        self.on_cancel()

    def preview(self) -> PreviewRequest:
        """Build a read-only snapshot for the preview collaborator."""
        template = self.schema.preview_template or self.schema.title
        request = PreviewRequest(snapshot=freeze(self.document), template=template)
        self.last_preview = request
        if self.on_preview is not None:
            self.on_preview(request)
        return request

    def save_now(self) -> bool:
        """Manual save that skips the autosave debounce."""
        if self.autosave is None:
            return False
        return self.autosave.save_now()

    def _save_shortcut(self) -> None:
        if self.autosave is not None:
            self.save_now()
        else:
            self.submit()

    def handle_shortcut(self, chord: str) -> bool:
        return self.shortcuts.dispatch(chord)

    def select_media(self, path: str, multiple: Optional[bool] = None) -> bool:
        """
        Ask the media collaborator for a selection and store the URL(s).

        A failed or cancelled selection leaves the document unchanged.

        Returns:
            True when the field value was updated
        """
        ref = self.find_field(path)
        if multiple is None:
            multiple = ref.field.multiple
        if self.media_selector is None:
            logger.warning(f"Media selection requested for '{path}' but no selector is configured")
            return False

        try:
            records = resolve_result(self.media_selector(self.value(path), multiple))
        except Exception as e:
            logger.error(f"Media selection failed for '{path}': {e}", exc_info=True)
            return False

        value = selected_urls(records, multiple)
        if value is None:
            logger.debug(f"Media selection for '{path}' cancelled")
            return False

        self.handle_change(path, value)
        return True

    def array_manager(self, path: str) -> ArrayFieldManager:
        """Manager for the array field at a full path, synced to the document."""
        ref = self.find_field(path)
        if ref.field.type != FieldType.ARRAY:
            raise UnknownFieldError(path)
        manager = self.arrays.manager_for(path, ref.field.array_item_schema)
        manager.sync(self.document)
        return manager

    def add_item(self, path: str) -> int:
        """Append a defaulted element to an array field; returns its index."""
        manager = self.array_manager(path)
        self.document, index = manager.insert(self.document)
        self.validation.clear(path)
        if self.autosave:
            self.autosave.notify_change()
        return index

    def remove_item(self, path: str, index: int) -> bool:
        manager = self.array_manager(path)
        self.document, index_map = manager.remove(self.document, index)
        if not index_map:
            return False
        self._reindex(path, index_map)
        return True

    def move_item(self, path: str, from_index: int, to_index: int) -> bool:
        manager = self.array_manager(path)
        self.document, index_map = manager.move(self.document, from_index, to_index)
        if not index_map:
            return False
        self._reindex(path, index_map)
        return True

    def _reindex(self, path: str, index_map: Dict[int, Optional[int]]) -> None:
        self.arrays.reindex(path, index_map)
        self.validation.reindex(path, index_map)
        if self.autosave:
            self.autosave.notify_change()

    def preview_errors(self) -> Dict[str, str]:
        return self.validation.preview_errors(self.schema.fields, self.document)

    def unmount(self) -> None:
        """Cancel pending autosave work when the form goes away."""
        if self.autosave:
            self.autosave.dispose()
        logger.debug(f"Unmounted form '{self.schema.title}'")
