"""
Paste tracking loop: turns host change notifications into classifier calls
and counts accepted pastes in the stats store.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import pyperclip

from .classifier import (
    ChangeEvent,
    Classification,
    ClassificationContext,
    ContentChange,
    DocumentInfo,
    DocumentProfile,
    PasteClassifier,
    Position,
    Range,
    ShortcutDetector,
    has_code_patterns,
    profile_document,
)
from .config import Settings
from .exceptions import StatsStoreError
from .stats import StatsStore
from ..util.logging import logger


@dataclass
class DocumentChangeEvent:
    """A host notification: one document, one or more simultaneous changes."""
    document: DocumentInfo
    changes: List[ContentChange] = field(default_factory=list)
    timestamp_ms: Optional[float] = None


class EditorHost:
    """What the tracker needs from the editor. Subclass for a real host."""

    def read_clipboard(self) -> str:
        return pyperclip.paste() or ""

    def active_document_uri(self) -> Optional[str]:
        return None


Notifier = Callable[[str, str], None]


def log_notifier(level: str, message: str):
    getattr(logger, level, logger.info)(message)


def now_ms() -> float:
    return time.monotonic() * 1000


class PasteTracker:
    """Owns all timing state (throttle, keystroke and shortcut clocks)."""

    def __init__(self, store: StatsStore, settings: Settings = None,
                 host: EditorHost = None, classifier: PasteClassifier = None,
                 notify: Notifier = log_notifier):
        self.settings = settings or Settings()
        self.store = store
        self.host = host or EditorHost()
        self.classifier = classifier or PasteClassifier(self.settings.classifier)
        self.shortcuts = ShortcutDetector(self.settings.classifier)
        self.notify = notify
        self.tracking = True
        self.last_edit_ms: Optional[float] = None

    def toggle_tracking(self) -> bool:
        self.tracking = not self.tracking
        logger.info(f"Tracking toggled: {self.tracking}")
        self.notify("info", f"CopyJedi: Paste tracking {'enabled' if self.tracking else 'disabled'}")
        return self.tracking

    def observe_keystroke(self, event: DocumentChangeEvent, timestamp: float):
        if event.changes:
            self.shortcuts.observe(event.changes[0].text, timestamp)

    def handle_event(self, event: DocumentChangeEvent) -> Optional[Classification]:
        """Process one notification. Returns the classification of the
        change that was examined, or None when the event was skipped."""
        try:
            timestamp = event.timestamp_ms if event.timestamp_ms is not None else now_ms()
            self.observe_keystroke(event, timestamp)
            return self._handle(event, timestamp)
        except Exception as e:
            logger.exception(f"Error in paste tracking: {e}")
            return None

    def _handle(self, event: DocumentChangeEvent, timestamp: float) -> Optional[Classification]:
        if not self.tracking:
            return None

        active_uri = self.host.active_document_uri()
        if active_uri is not None and active_uri != event.document.uri:
            logger.log_change_skipped("inactive_document", {"uri": event.document.uri})
            return None

        profile = profile_document(event.document)
        if profile is DocumentProfile.IGNORE:
            logger.log_change_skipped("ignored_document", {"uri": event.document.uri})
            return None

        if self.settings.require_code_patterns and event.document.text is not None:
            sample = event.document.text[:self.settings.classifier.code_sample_chars]
            if not has_code_patterns(sample):
                logger.log_change_skipped("no_code_patterns", {"uri": event.document.uri})
                return None

        elapsed = None if self.last_edit_ms is None else timestamp - self.last_edit_ms
        if elapsed is not None and elapsed < self.settings.classifier.throttle_ms:
            logger.log_change_skipped("throttled", {"elapsed_ms": elapsed})
            return None
        self.last_edit_ms = timestamp

        if self.settings.debug_mode:
            logger.debug(f"Document changed: {event.document.uri}")
            logger.debug(f"Change count: {len(event.changes)}")

        if not event.changes:
            return None

        change = next((c for c in event.changes if not self.classifier.is_too_small(c.text)), None)
        if change is None:
            return None

        if self.settings.debug_mode:
            logger.log_change_preview(change.text)

        shortcut_recent, ms_since_shortcut = self.shortcuts.snapshot(timestamp)
        context = ClassificationContext(
            clipboard=self._read_clipboard(),
            ms_since_last_edit=elapsed,
            ms_since_shortcut=ms_since_shortcut,
            shortcut_recent=shortcut_recent,
            profile=profile,
        )
        result = self.classifier.classify(
            ChangeEvent(change.text, change.range, event.document, timestamp), context
        )

        if result.is_paste:
            self._count(result)
        return result

    def _read_clipboard(self) -> str:
        try:
            return self.host.read_clipboard() or ""
        except Exception as e:
            logger.warning(f"Clipboard read failed: {e}")
            return ""

    def _count(self, result: Classification):
        self.shortcuts.clear()
        try:
            stats = self.store.record_paste(result.line_count)
        except StatsStoreError as e:
            logger.error(str(e))
            self.notify("error", f"CopyJedi: Error saving statistics - {e}")
            return
        logger.log_paste_detected(result.reason, result.line_count, stats.totalPastes)

        if self.settings.enable_notifications:
            plural = "s" if result.line_count != 1 else ""
            self.notify("info", f"CopyJedi: Pasted {result.line_count} line{plural}! Total: {stats.totalPastes}")

    def status_text(self) -> str:
        if not self.tracking:
            return "Tracking Off"
        stats = self.store.stats
        return f"Pastes: {stats.totalPastes} | Lines: {stats.totalLinesPasted}"


def _position(data: Optional[dict]) -> Position:
    data = data or {}
    return Position(int(data.get("line", 0)), int(data.get("character", 0)))


def event_from_dict(record: dict) -> DocumentChangeEvent:
    """Build a DocumentChangeEvent from a JSON record.

    Expected shape::

        {"uri": "file:///a.py", "languageId": "python", "text": "...",
         "timestamp": 1234.5,
         "changes": [{"text": "...", "range": {"start": {...}, "end": {...}}}]}
    """
    document = DocumentInfo(
        uri=record["uri"],
        language_id=record.get("languageId", ""),
        text=record.get("text"),
    )
    changes = []
    for change in record.get("changes", []):
        span = change.get("range") or {}
        changes.append(ContentChange(
            text=change.get("text", ""),
            range=Range(_position(span.get("start")), _position(span.get("end"))),
        ))
    return DocumentChangeEvent(document, changes, record.get("timestamp"))
