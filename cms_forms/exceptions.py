"""
Custom exception classes for the CMS form engine.

Each exception carries context and recovery suggestions so the admin UI can
show something actionable next to the logged error.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class FormEngineError(Exception):
    """
    Base exception for form engine errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaDefinitionError(FormEngineError):
    """Raised when a form schema file cannot be read or does not validate."""

    def __init__(self, schema_path: Optional[Path], errors: List[str], message: Optional[str] = None):
        self.schema_path = schema_path
        self.errors = errors

        if message is None:
            where = schema_path if schema_path else "inline schema"
            message = f"Invalid form schema ({where}): {'; '.join(errors)}"

        context = {
            'schema_path': str(schema_path) if schema_path else None,
            'error_count': len(errors),
            'errors': errors
        }

        recovery_suggestions = [
            "Check that every field has a unique 'key'",
            "Array fields need a non-empty 'arrayItemSchema'",
            "Verify field 'type' values against the supported list",
            "Verify YAML syntax is correct"
        ]

        super().__init__(message, context, recovery_suggestions)


class ConfigurationLoadError(FormEngineError):
    """Raised when the configuration file cannot be turned into settings."""

    def __init__(self, config_path: Path, original_error: Exception, message: Optional[str] = None):
        self.config_path = config_path
        self.original_error = original_error

        if message is None:
            message = f"Failed to load configuration from {config_path}: {str(original_error)}"

        context = {
            'config_path': str(config_path),
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Check if config.yaml exists and is readable",
            "Verify YAML syntax is correct",
            "Application will use default configuration as fallback"
        ]

        super().__init__(message, context, recovery_suggestions)


class UnknownFieldError(FormEngineError):
    """Raised when a path does not resolve to any field of the form schema."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"No field in the form schema matches path '{path}'",
            {'path': path},
            ["Check the field key and any array index in the path"]
        )


class CollaboratorError(FormEngineError):
    """Raised by collaborator adapters (content store, media library, backups)."""

    def __init__(self, collaborator: str, original_error: Exception, message: Optional[str] = None):
        self.collaborator = collaborator
        self.original_error = original_error

        if message is None:
            message = f"{collaborator} failed: {str(original_error)}"

        super().__init__(
            message,
            {
                'collaborator': collaborator,
                'original_error_type': type(original_error).__name__,
                'original_error_message': str(original_error)
            },
            ["Retry the action", "Check the application logs for details"]
        )
