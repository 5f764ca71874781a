"""
Session state management for the Streamlit CMS admin panel.
Holds the mounted form controller, the current resource and widget versioning.
"""

import streamlit as st
from typing import Dict, Any, Optional
from datetime import datetime
import logging

from .controller import FormController

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT_WIDTH = 1280


class SessionManager:
    """Manages Streamlit session state for the admin panel."""

    @staticmethod
    def initialize(viewport_width: int = DEFAULT_VIEWPORT_WIDTH):
        """Initialize all session state variables with default values."""
        defaults = {
            'current_resource': None,
            'current_schema': None,
            'controller': None,
            'form_version': 0,
            'original_data': {},
            'viewport_width': viewport_width,
            'last_activity': datetime.now(),
            'session_id': None,
            'ui_state': {
                'show_preview': False,
                'markdown_preview': {},
            }
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if not st.session_state.session_id:
            st.session_state.session_id = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        logger.debug(f"Session initialized: {st.session_state.session_id}")

    @staticmethod
    def get_current_resource() -> Optional[str]:
        """Get the resource being edited."""
        return st.session_state.get('current_resource')

    @staticmethod
    def set_current_resource(resource: Optional[str], schema_name: Optional[str] = None):
        """Switch to another resource; the mounted form is discarded."""
        old_resource = st.session_state.get('current_resource')
        old_schema = st.session_state.get('current_schema')

        if old_resource != resource or old_schema != schema_name:
            logger.info(f"Resource changed: {old_resource} -> {resource}")
            SessionManager.unmount_controller()
            st.session_state.current_resource = resource
            st.session_state.current_schema = schema_name
            st.session_state.original_data = {}
            SessionManager.update_activity()

    @staticmethod
    def get_current_schema() -> Optional[str]:
        return st.session_state.get('current_schema')

    @staticmethod
    def get_controller() -> Optional[FormController]:
        """Get the mounted form controller."""
        return st.session_state.get('controller')

    @staticmethod
    def set_controller(controller: FormController):
        """Mount a controller, unmounting any previous one."""
        previous = st.session_state.get('controller')
        if previous is not None and previous is not controller:
            previous.unmount()
        st.session_state.controller = controller
        SessionManager.bump_form_version()

    @staticmethod
    def unmount_controller():
        controller = st.session_state.get('controller')
        if controller is not None:
            controller.unmount()
        st.session_state.controller = None

    @staticmethod
    def get_form_version() -> int:
        return st.session_state.get('form_version', 0)

    @staticmethod
    def bump_form_version() -> int:
        """
        Invalidate every field widget.

        Widgets are keyed with the form version, so after a programmatic change
        to the document (load, restore, array reorder) they are recreated from
        the controller's values instead of keeping stale widget state.
        """
        st.session_state.form_version = SessionManager.get_form_version() + 1
        return st.session_state.form_version

    @staticmethod
    def widget_key(path: str, suffix: str = '') -> str:
        """Versioned widget key for a field path."""
        version = SessionManager.get_form_version()
        base = f"field_{path}_v{version}"
        return f"{base}_{suffix}" if suffix else base

    @staticmethod
    def get_original_data() -> Dict[str, Any]:
        """Last persisted version of the current document."""
        return st.session_state.get('original_data', {})

    @staticmethod
    def set_original_data(data: Dict[str, Any]):
        st.session_state.original_data = data

    @staticmethod
    def get_viewport_width() -> int:
        return st.session_state.get('viewport_width', DEFAULT_VIEWPORT_WIDTH)

    @staticmethod
    def set_viewport_width(width: int):
        st.session_state.viewport_width = max(320, int(width))

    @staticmethod
    def get_ui_state() -> Dict[str, Any]:
        """Get UI state preferences."""
        return st.session_state.get('ui_state', {})

    @staticmethod
    def set_ui_state(key: str, value: Any):
        """Set a UI state preference."""
        if 'ui_state' not in st.session_state:
            st.session_state.ui_state = {}

        st.session_state.ui_state[key] = value

    @staticmethod
    def update_activity():
        """Update last activity timestamp."""
        st.session_state.last_activity = datetime.now()

    @staticmethod
    def get_session_id() -> str:
        return st.session_state.get('session_id', 'unknown')

    @staticmethod
    def reset_session():
        """Reset the entire session state, keeping the viewport preference."""
        logger.info(f"Resetting session: {SessionManager.get_session_id()}")

        viewport_width = SessionManager.get_viewport_width()
        SessionManager.unmount_controller()

        for key in list(st.session_state.keys()):
            del st.session_state[key]

        SessionManager.initialize(viewport_width)

    @staticmethod
    def get_session_info() -> Dict[str, Any]:
        """Get session information for debugging."""
        controller = SessionManager.get_controller()
        return {
            'session_id': SessionManager.get_session_id(),
            'current_resource': SessionManager.get_current_resource(),
            'current_schema': SessionManager.get_current_schema(),
            'form_version': SessionManager.get_form_version(),
            'viewport_width': SessionManager.get_viewport_width(),
            'controller_mounted': controller is not None,
            'error_count': len(controller.errors) if controller else 0,
        }
