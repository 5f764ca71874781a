"""
Autosave coordinator.
Debounces document changes and hands the latest snapshot to the external
persistence callback, tracking saving/unsaved/error state.
"""

import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .collaborators import resolve_result
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 2000


class AutoSaveStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    ERROR = "error"


@dataclass
class AutoSaveState:
    is_saving: bool = False
    has_unsaved_changes: bool = False
    last_saved_at: Optional[datetime] = None
    last_error: Optional[str] = None


class AutoSaveCoordinator:
    """
    Trailing-edge debounced autosave.

    Every change (re)arms a timer; when the quiet period elapses the current
    document is passed to ``on_save``. A failed save leaves the changes marked
    unsaved and waits for the next change or a manual save; there is no
    automatic retry.
    """

    def __init__(
        self,
        on_save: Callable[[Dict[str, Any]], Any],
        get_document: Callable[[], Dict[str, Any]],
        scheduler: Scheduler,
        interval_ms: int = DEFAULT_INTERVAL_MS
    ):
        self.on_save = on_save
        self.get_document = get_document
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.state = AutoSaveState()
        self.status = AutoSaveStatus.IDLE
        self._timer: Optional[int] = None
        self._generation = 0
        self._revision = 0

    def notify_change(self) -> None:
        """Record a document mutation and restart the debounce window."""
        self._revision += 1
        self.state.has_unsaved_changes = True
        self.scheduler.cancel(self._timer)
        self._timer = self.scheduler.schedule(self.interval_ms, self._on_timer)
        if not self.state.is_saving:
            self.status = AutoSaveStatus.PENDING

    def _on_timer(self) -> None:
        self._timer = None
        self._save("debounce")

    def save_now(self) -> bool:
        """
        Manual save that skips the debounce.

        Returns:
            True if a save was attempted, False when there was nothing to save
        """
        if not self.state.has_unsaved_changes:
            logger.debug("Manual save skipped: no unsaved changes")
            return False
        self.scheduler.cancel(self._timer)
        self._timer = None
        return self._save("manual")

    def _save(self, reason: str) -> bool:
        generation = self._generation
        revision = self._revision
        snapshot = copy.deepcopy(self.get_document())

        self.state.is_saving = True
        self.status = AutoSaveStatus.SAVING
        logger.info(f"Autosave started ({reason})")

        error: Optional[str] = None
        try:
            accepted = resolve_result(self.on_save(snapshot))
            if accepted is False:
                error = "El guardado fue rechazado"
        except Exception as e:
            logger.error(f"Autosave failed: {e}", exc_info=True)
            error = str(e) or type(e).__name__

        if generation != self._generation:
            # A different record was loaded while this save was in flight
            logger.info("Autosave result discarded: document was replaced")
            return True

        self.state.is_saving = False
        if error:
            self.state.last_error = error
            self.state.has_unsaved_changes = True
            self.status = AutoSaveStatus.ERROR
            logger.warning(f"Autosave error: {error}")
            return True

        self.state.last_error = None
        self.state.last_saved_at = datetime.now()
        if revision == self._revision:
            self.state.has_unsaved_changes = False
            self.status = AutoSaveStatus.IDLE
        else:
            self.status = AutoSaveStatus.PENDING
        logger.info("Autosave completed")
        return True

    def reset(self) -> None:
        """Forget all state; used when another record is loaded into the form."""
        self.scheduler.cancel(self._timer)
        self._timer = None
        self._generation += 1
        self._revision = 0
        self.state = AutoSaveState()
        self.status = AutoSaveStatus.IDLE

    def dispose(self) -> None:
        """Cancel the pending debounce on unmount; a save in flight is left alone."""
        self.scheduler.cancel(self._timer)
        self._timer = None
        self._generation += 1

    @property
    def is_pending(self) -> bool:
        return self._timer is not None
