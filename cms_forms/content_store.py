"""
JSON file content store.
Demo persistence backend for the admin panel: one JSON document per resource.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .backup_manager import validate_resource_name

logger = logging.getLogger(__name__)


class ContentStore:
    """Loads and saves content documents under ``content_dir``."""

    def __init__(self, content_dir: Path):
        self.content_dir = Path(content_dir)

    def _path(self, resource: str) -> Path:
        return self.content_dir / f"{validate_resource_name(resource)}.json"

    def list_resources(self) -> List[str]:
        if not self.content_dir.exists():
            return []
        return sorted(p.stem for p in self.content_dir.glob('*.json'))

    def exists(self, resource: str) -> bool:
        return self._path(resource).exists()

    def load(self, resource: str) -> Optional[Dict[str, Any]]:
        """Load a document; None when it is missing or unreadable."""
        path = self._path(resource)
        if not path.exists():
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (IOError, OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load content {resource}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Content {resource} is not a JSON object")
            return None
        return data

    def save(self, resource: str, data: Dict[str, Any]) -> bool:
        """
        Save a document, writing through a temporary file.
        Returns True if successful, False otherwise.
        """
        path = self._path(resource)
        tmp_path = path.with_suffix('.json.tmp')

        try:
            self.content_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            tmp_path.replace(path)
        except (IOError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save content {resource}: {e}")
            return False

        logger.info(f"Saved content: {resource}")
        return True
