"""
File-backed backups of content documents.

Each backup is one JSON file under ``<backup_dir>/<resource>/`` holding the
entry metadata and a full copy of the document.
"""

import json
import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ValidationError

from .diff_utils import count_changes
from .exceptions import CollaboratorError

logger = logging.getLogger(__name__)

_RESOURCE_NAME = re.compile(r'^[A-Za-z0-9_-]+$')


class BackupEntry(BaseModel):
    """Metadata of one stored backup."""
    id: str
    resource: str
    timestamp: datetime
    size: int
    type: Literal['manual', 'auto'] = 'manual'
    description: Optional[str] = None
    changes: int = 0


def format_size(size: int) -> str:
    """Human readable byte count, one decimal (``2.0 KB``)."""
    units = ['B', 'KB', 'MB', 'GB']
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.1f} {units[unit_index]}"


def validate_resource_name(resource: str) -> str:
    """Reject resource names that could escape the storage directory."""
    if not isinstance(resource, str) or not _RESOURCE_NAME.match(resource):
        raise ValueError(f"Invalid resource name: {resource!r}")
    return resource


class BackupManager:
    """Create, list, restore and prune backups per resource."""

    def __init__(self, backup_dir: Path):
        self.backup_dir = Path(backup_dir)

    def _resource_dir(self, resource: str) -> Path:
        return self.backup_dir / validate_resource_name(resource)

    def _backup_path(self, resource: str, backup_id: str) -> Path:
        if not _RESOURCE_NAME.match(backup_id):
            raise ValueError(f"Invalid backup id: {backup_id!r}")
        return self._resource_dir(resource) / f"{backup_id}.json"

    def create_backup(
        self,
        resource: str,
        document: Dict[str, Any],
        backup_type: str = 'manual',
        description: Optional[str] = None
    ) -> BackupEntry:
        """
        Store a snapshot of ``document``.

        Args:
            resource: Content resource name (e.g. 'iso_page')
            document: Document to snapshot
            backup_type: 'manual' or 'auto'
            description: Optional free text

        Returns:
            The stored BackupEntry

        Raises:
            CollaboratorError: If the backup cannot be written
        """
        resource_dir = self._resource_dir(resource)
        previous = self.list_backups(resource)
        previous_document = self.load_backup(resource, previous[0].id) if previous else {}

        now = datetime.now()
        backup_id = f"{now:%Y%m%d%H%M%S%f}-{uuid.uuid4().hex[:8]}"
        document_json = json.dumps(document, indent=2, ensure_ascii=False)

        entry = BackupEntry(
            id=backup_id,
            resource=resource,
            timestamp=now,
            size=len(document_json.encode('utf-8')),
            type=backup_type,
            description=description or None,
            changes=count_changes(previous_document, document)
        )

        try:
            resource_dir.mkdir(parents=True, exist_ok=True)
            with open(self._backup_path(resource, backup_id), 'w', encoding='utf-8') as f:
                json.dump({'entry': entry.model_dump(mode='json'), 'document': document},
                          f, indent=2, ensure_ascii=False)
        except (IOError, OSError) as e:
            logger.error(f"Failed to write backup for {resource}: {e}", exc_info=True)
            raise CollaboratorError("Backup manager", e)

        logger.info(f"Created {backup_type} backup {backup_id} for {resource} ({entry.changes} changes)")
        return entry

    def list_backups(self, resource: str) -> List[BackupEntry]:
        """All backups of a resource, newest first. Unreadable files are skipped."""
        resource_dir = self._resource_dir(resource)
        if not resource_dir.exists():
            return []

        entries: List[BackupEntry] = []
        for path in resource_dir.glob('*.json'):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    entries.append(BackupEntry.model_validate(json.load(f)['entry']))
            except (IOError, OSError, json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
                logger.warning(f"Skipping unreadable backup {path}: {e}")

        entries.sort(key=lambda entry: (entry.timestamp, entry.id), reverse=True)
        return entries

    def load_backup(self, resource: str, backup_id: str) -> Optional[Dict[str, Any]]:
        """Document stored in a backup, or None when it does not exist."""
        path = self._backup_path(resource, backup_id)
        if not path.exists():
            logger.warning(f"Backup not found: {resource}/{backup_id}")
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)['document']
        except (IOError, OSError, json.JSONDecodeError, KeyError) as e:
            logger.error(f"Failed to read backup {path}: {e}")
            return None

    def delete_backup(self, resource: str, backup_id: str) -> bool:
        path = self._backup_path(resource, backup_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete backup {path}: {e}")
            return False
        logger.info(f"Deleted backup {resource}/{backup_id}")
        return True

    def cleanup_old_backups(self, resource: str, max_backups: int) -> int:
        """
        Keep only the newest ``max_backups`` backups of a resource.

        Returns:
            Number of backups removed
        """
        if max_backups < 0:
            raise ValueError("max_backups must not be negative")
        removed = 0
        for entry in self.list_backups(resource)[max_backups:]:
            if self.delete_backup(resource, entry.id):
                removed += 1
        if removed:
            logger.info(f"Removed {removed} old backups for {resource}")
        return removed
