"""
Error handling utilities for the CMS admin panel.
Logs failures and shows user-friendly messages without interrupting editing.
"""

import json
import logging
import traceback
from typing import Any, Callable, Optional

import streamlit as st
import yaml
from pydantic import ValidationError

from .exceptions import FormEngineError

logger = logging.getLogger(__name__)


class ErrorType:
    """Error type constants."""
    FIELD_VALIDATION = "field_validation"
    SUBMIT = "submit"
    AUTOSAVE = "autosave"
    MEDIA_SELECTION = "media_selection"
    SCHEMA = "schema"
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    SYSTEM = "system"


class ErrorHandler:
    """Central error reporting for the admin UI."""

    @staticmethod
    def handle_error(
        error: Exception,
        context: str,
        error_type: str = ErrorType.SYSTEM,
        user_message: Optional[str] = None,
        show_details: bool = False
    ) -> str:
        """
        Log an error and show a friendly message.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            error_type: Type of error (from ErrorType constants)
            user_message: Custom user-friendly message
            show_details: Whether to show technical details

        Returns:
            The message shown to the user
        """
        logger.error(f"Error in {context}: {str(error)}", exc_info=True)

        if not user_message:
            user_message = ErrorHandler.get_user_friendly_message(error, error_type)

        ErrorHandler._display_error(user_message, error, context, show_details)
        return user_message

    @staticmethod
    def get_user_friendly_message(error: Exception, error_type: str) -> str:
        """Generate user-friendly error messages based on error type."""
        error_messages = {
            ErrorType.FIELD_VALIDATION: {
                "default": "✅ Revisa los campos marcados antes de continuar."
            },
            ErrorType.SUBMIT: {
                ConnectionError: "🌐 No se pudo contactar el servidor. Tus cambios siguen en el formulario.",
                TimeoutError: "⏱️ El servidor tardó demasiado. Tus cambios siguen en el formulario.",
                "default": "💾 No se pudo guardar. Tus cambios siguen en el formulario; inténtalo de nuevo."
            },
            ErrorType.AUTOSAVE: {
                "default": "🔄 El guardado automático falló. Se reintentará con tu próxima edición."
            },
            ErrorType.MEDIA_SELECTION: {
                "default": "🖼️ No se pudo seleccionar el archivo. El valor anterior se mantiene."
            },
            ErrorType.SCHEMA: {
                ValidationError: "📋 El esquema del formulario contiene valores inválidos.",
                yaml.YAMLError: "📋 El archivo de esquema no es YAML válido.",
                json.JSONDecodeError: "📋 El archivo de esquema no es JSON válido.",
                FileNotFoundError: "📋 No se encontró el archivo de esquema.",
                "default": "📋 Error en el esquema del formulario."
            },
            ErrorType.CONFIGURATION: {
                yaml.YAMLError: "⚙️ config.yaml contiene YAML inválido; se usan valores por defecto.",
                "default": "⚙️ Error de configuración; se usan valores por defecto."
            },
            ErrorType.STORAGE: {
                FileNotFoundError: "📁 No se encontró el contenido solicitado.",
                PermissionError: "🔒 Permiso denegado al acceder al contenido.",
                json.JSONDecodeError: "🔧 El archivo de contenido está dañado o no es JSON válido.",
                "default": "📁 Error al acceder al contenido."
            },
            ErrorType.SYSTEM: {
                MemoryError: "💻 El sistema se quedó sin memoria.",
                ImportError: "💻 Falta un componente requerido.",
                "default": "💻 Ocurrió un error inesperado."
            }
        }

        error_type_messages = error_messages.get(error_type, error_messages[ErrorType.SYSTEM])

        for exception_type, message in error_type_messages.items():
            if exception_type != "default" and isinstance(error, exception_type):
                return message

        return error_type_messages.get("default", "Ocurrió un error inesperado.")

    @staticmethod
    def _display_error(user_message: str, error: Exception, context: str, show_details: bool = False) -> None:
        st.error(user_message)

        if isinstance(error, FormEngineError) and error.recovery_suggestions:
            for suggestion in error.recovery_suggestions:
                st.caption(f"• {suggestion}")

        if show_details:
            with st.expander("🔍 Detalles técnicos"):
                st.write(f"**Error Type:** {type(error).__name__}")
                st.write(f"**Context:** {context}")
                st.write(f"**Error Message:** {str(error)}")
                st.code(traceback.format_exc())

    @staticmethod
    def with_error_handling(
        func: Callable,
        context: str,
        error_type: str = ErrorType.SYSTEM,
        user_message: Optional[str] = None,
        show_details: bool = False,
        default_return: Any = None
    ) -> Any:
        """
        Run ``func`` and report any exception instead of propagating it.

        Returns:
            Function result or ``default_return`` on error
        """
        try:
            return func()
        except Exception as e:
            ErrorHandler.handle_error(e, context, error_type, user_message, show_details)
            return default_return


def handle_error(error: Exception, context: str, error_type: str = ErrorType.SYSTEM) -> str:
    """Convenience function for error handling."""
    return ErrorHandler.handle_error(error, context, error_type)


def with_error_handling(func: Callable, context: str, **kwargs) -> Any:
    """Convenience function for wrapping operations with error handling."""
    return ErrorHandler.with_error_handling(func, context, **kwargs)
