"""
Call contracts with the collaborators the form engine delegates to:
persistence callbacks, media selection, keyboard shortcuts and preview.
"""

import asyncio
import copy
import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

MediaReference = Union[str, List[str], None]
# (current reference, allow multiple) -> list of {"url": ...} records, or None when cancelled
MediaSelector = Callable[[MediaReference, bool], Optional[List[Dict[str, Any]]]]

SHORTCUT_ACTIONS = ('save', 'cancel', 'preview')

DEFAULT_SHORTCUTS = {
    'ctrl+s': 'save',
    'escape': 'cancel',
    'ctrl+p': 'preview',
}


def resolve_result(result: Any) -> Any:
    """Drive an awaitable collaborator result to completion; plain values pass through."""
    if inspect.isawaitable(result):
        async def _await():
            return await result
        return asyncio.run(_await())
    return result


def selected_urls(records: Optional[List[Dict[str, Any]]], multiple: bool) -> MediaReference:
    """
    Turn media-selection records into the value stored in the document.

    Returns a single URL string, a list of URLs when ``multiple`` is set, or
    None when nothing usable was selected.
    """
    urls = [str(record['url']) for record in records or [] if isinstance(record, dict) and record.get('url')]
    if not urls:
        return None
    return urls if multiple else urls[0]


class MediaLibrary:
    """
    Media selector backed by a fixed list of URLs.

    The UI stages the user's pick with ``stage`` and then asks the form to
    select media; the form calls the library, which hands back the staged
    records once.
    """

    def __init__(self, urls: Optional[List[str]] = None):
        self.urls = [str(url) for url in urls or []]
        self._staged: Optional[List[str]] = None

    def stage(self, urls: Union[str, List[str], None]) -> None:
        if urls is None:
            self._staged = None
        elif isinstance(urls, str):
            self._staged = [urls]
        else:
            self._staged = list(urls)

    def __call__(self, current: MediaReference, multiple: bool) -> Optional[List[Dict[str, Any]]]:
        staged, self._staged = self._staged, None
        if not staged:
            return None
        return [{'url': url} for url in staged]


def freeze(document: Dict[str, Any]) -> Mapping[str, Any]:
    """Read-only deep snapshot of a document."""
    def _freeze(value: Any) -> Any:
        if isinstance(value, dict):
            return MappingProxyType({k: _freeze(v) for k, v in value.items()})
        if isinstance(value, list):
            return tuple(_freeze(v) for v in value)
        return value
    return _freeze(copy.deepcopy(document))


def thaw(snapshot: Any) -> Any:
    """Plain dict/list copy of a frozen snapshot (for JSON display)."""
    if isinstance(snapshot, Mapping):
        return {k: thaw(v) for k, v in snapshot.items()}
    if isinstance(snapshot, tuple):
        return [thaw(v) for v in snapshot]
    return snapshot


@dataclass(frozen=True)
class PreviewRequest:
    """What the preview collaborator receives: a frozen snapshot and a template."""
    snapshot: Mapping[str, Any]
    template: str


class KeyboardShortcuts:
    """Maps key chords to form actions (save, cancel, preview)."""

    def __init__(
        self,
        handlers: Dict[str, Callable[[], Any]],
        bindings: Optional[Dict[str, str]] = None,
        enabled: bool = True
    ):
        unknown = set(handlers) - set(SHORTCUT_ACTIONS)
        if unknown:
            raise ValueError(f"Unknown shortcut actions: {sorted(unknown)}")
        self.handlers = handlers
        self.bindings = {self.normalize(k): v for k, v in (bindings or DEFAULT_SHORTCUTS).items()}
        self.enabled = enabled

    @staticmethod
    def normalize(chord: str) -> str:
        parts = [part.strip().lower() for part in chord.split('+') if part.strip()]
        parts = ['ctrl' if part in ('control', 'cmd', 'meta') else part for part in parts]
        modifiers = sorted(part for part in parts[:-1])
        return '+'.join(modifiers + parts[-1:])

    def dispatch(self, chord: str) -> bool:
        """Run the handler bound to ``chord``. Returns True when something ran."""
        if not self.enabled:
            return False
        action = self.bindings.get(self.normalize(chord))
        if action is None or action not in self.handlers:
            return False
        logger.debug(f"Shortcut {chord} -> {action}")
        self.handlers[action]()
        return True
