"""
UI feedback utilities for the CMS admin panel.
Toast notifications and status labels for autosave and submit.
"""

import streamlit as st
import time
from datetime import datetime
from typing import Optional
import logging

from .autosave import AutoSaveCoordinator, AutoSaveStatus
from .controller import SubmitStatus

logger = logging.getLogger(__name__)


class Notify:
    """
    Toast-first notification helper.
    Prefers st.toast for non-blocking notifications; falls back to an
    ephemeral placeholder when toasts are unavailable.

    Usage:
    Notify.success("Contenido guardado")
    Notify.once("Bienvenido", notification_type="info", key="welcome_once")
    """

    ICONS = {
        'success': '✅',
        'info': 'ℹ️',
        'warning': '⚠️',
        'error': '❌'
    }

    @staticmethod
    def _display_notification(message: str, notification_type: str = 'info') -> None:
        icon = Notify.ICONS.get(notification_type, 'ℹ️')

        if hasattr(st, 'toast'):
            st.toast(message, icon=icon)
            return

        placeholder = st.empty()
        full_message = f"{icon} {message}"
        if notification_type == 'success':
            placeholder.success(full_message)
        elif notification_type == 'warning':
            placeholder.warning(full_message)
        elif notification_type == 'error':
            placeholder.error(full_message)
        else:
            placeholder.info(full_message)
        time.sleep(3)
        placeholder.empty()

    @staticmethod
    def success(message: str) -> None:
        Notify._display_notification(message, 'success')

    @staticmethod
    def info(message: str) -> None:
        Notify._display_notification(message, 'info')

    @staticmethod
    def warn(message: str) -> None:
        Notify._display_notification(message, 'warning')

    @staticmethod
    def error(message: str) -> None:
        Notify._display_notification(message, 'error')

    @staticmethod
    def once(message: str, notification_type: str = 'info', key: str = 'default_once') -> bool:
        """
        Show notification only once per session for the given key.
        Returns True if shown, False if already shown.
        """
        if key not in st.session_state:
            st.session_state[key] = False
        if not st.session_state[key]:
            Notify._display_notification(message, notification_type)
            st.session_state[key] = True
            return True
        return False


def format_timestamp(moment: Optional[datetime]) -> str:
    return moment.strftime('%H:%M:%S') if moment else '—'


def autosave_status_label(coordinator: Optional[AutoSaveCoordinator]) -> str:
    """One-line autosave indicator text."""
    if coordinator is None:
        return "⏸️ Guardado automático desactivado"

    state = coordinator.state
    if coordinator.status == AutoSaveStatus.SAVING:
        return "🔄 Guardando..."
    if coordinator.status == AutoSaveStatus.ERROR:
        return f"❌ Error al guardar: {state.last_error}"
    if state.has_unsaved_changes:
        return "📝 Cambios sin guardar"
    if state.last_saved_at:
        return f"✅ Guardado a las {format_timestamp(state.last_saved_at)}"
    return "✅ Sin cambios"


def submit_status_label(status: SubmitStatus, error: Optional[str] = None) -> Optional[str]:
    """Message for the last submit attempt, or None when there is nothing to say."""
    if status == SubmitStatus.INVALID:
        return "⚠️ Corrige los errores marcados antes de guardar"
    if status == SubmitStatus.FAILED:
        return f"❌ No se pudo guardar: {error}" if error else "❌ No se pudo guardar"
    if status == SubmitStatus.SUCCEEDED:
        return "✅ Contenido guardado"
    return None
