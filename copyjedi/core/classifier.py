"""
Paste detection heuristic.

The host editor never says "this was a paste". PasteClassifier looks at one
document change plus a few side signals (clipboard snapshot, keystroke
timing, document metadata) and decides whether the edit came from the
clipboard or from typing.

Rule precedence:
    1. pre-filters: ignored document, assistant attribution marker, tiny edit
    2. clipboard match
    3. bulk insertion (long and either multi-line or wide-range)
    4. paste-shortcut corroboration
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .config import ClassifierConfig
from ..util.logging import logger


EDITABLE_SCHEMES = ("file", "untitled")

IGNORED_URI_FRAGMENTS = (
    "extension-output",
    "debug-console",
    "output-channel",
    "extension-editor",
)

IGNORED_LANGUAGES = frozenset([
    "log",
    "output",
    "scm",
    "debug",
    "terminal",
    "plaintext",
    "markdown",
    "json",
    "jsonc",
    "git-commit",
    "git-rebase",
    "search-result",
    "diff",
    "shellscript",
    "console",
])

PROGRAMMING_LANGUAGES = frozenset([
    "javascript",
    "typescript",
    "java",
    "python",
    "csharp",
    "c",
    "cpp",
    "go",
    "rust",
    "ruby",
    "php",
    "swift",
    "kotlin",
    "scala",
    "dart",
    "html",
    "css",
    "vue",
    "jsx",
    "tsx",
])

ASSISTANT_MARKERS = (
    "// Copilot suggestion",
    "// Suggested by",
    "// Generated by",
    "// Via GitHub Copilot",
    "<!-- GitHub Copilot",
    "/* Copilot suggestion",
    "// This code was suggested by",
    "// Auto-generated",
)

_CODE_KEYWORDS = re.compile(r"function|const|let|var|import|export|if|for|while|class|=>|return", re.IGNORECASE)
_CODE_PUNCTUATION = re.compile(r"[{}\[\]();=+\-*/%]")


@dataclass(frozen=True)
class Position:
    line: int = 0
    character: int = 0


@dataclass(frozen=True)
class Range:
    start: Position = field(default_factory=Position)
    end: Position = field(default_factory=Position)

    @property
    def column_span(self) -> int:
        return abs(self.end.character - self.start.character)


@dataclass(frozen=True)
class DocumentInfo:
    """Document metadata the host exposes for a change."""
    uri: str
    language_id: str
    text: Optional[str] = None

    @property
    def scheme(self) -> str:
        scheme, sep, _ = self.uri.partition(":")
        return scheme.lower() if sep else ""


@dataclass(frozen=True)
class ContentChange:
    text: str
    range: Range = field(default_factory=Range)


@dataclass(frozen=True)
class ChangeEvent:
    """One text modification, ready for classification."""
    text: str
    range: Range
    document: DocumentInfo
    timestamp_ms: float


class DocumentProfile(Enum):
    EDITABLE = "editable"
    IGNORE = "ignore"


@dataclass(frozen=True)
class ClassificationContext:
    """Side signals for a single classification call."""
    clipboard: str = ""
    ms_since_last_edit: Optional[float] = None
    ms_since_shortcut: Optional[float] = None
    shortcut_recent: bool = False
    profile: DocumentProfile = DocumentProfile.EDITABLE


@dataclass(frozen=True)
class Classification:
    is_paste: bool
    line_count: int = 0
    reason: str = ""


def profile_document(document: DocumentInfo) -> DocumentProfile:
    """Classify a document as real source code or something to ignore.

    Only file and untitled documents count. Output, debug and SCM panes are
    rejected by URI, non-programming languages by their language tag.
    Unknown language tags that are not explicitly denied stay editable.
    """
    try:
        if document.scheme not in EDITABLE_SCHEMES:
            logger.debug(f"Skipping non-file document: {document.scheme}")
            return DocumentProfile.IGNORE

        uri = document.uri.lower()
        if any(fragment in uri for fragment in IGNORED_URI_FRAGMENTS):
            logger.debug(f"Skipping extension-related document: {uri}")
            return DocumentProfile.IGNORE

        if document.language_id in IGNORED_LANGUAGES:
            logger.debug(f"Skipping non-editable language: {document.language_id}")
            return DocumentProfile.IGNORE

        if document.language_id not in PROGRAMMING_LANGUAGES:
            logger.debug(f"Document language not in allowed list: {document.language_id}")

        return DocumentProfile.EDITABLE
    except Exception as e:
        logger.error(f"Error profiling document: {e}")
        return DocumentProfile.IGNORE


def is_assistant_generated(text: str) -> bool:
    """True when the text carries an in-editor assistant signature."""
    return any(marker in text for marker in ASSISTANT_MARKERS)


def has_code_patterns(text: str) -> bool:
    """Cheap check that a document sample looks like code."""
    return bool(_CODE_KEYWORDS.search(text) or _CODE_PUNCTUATION.search(text))


def count_lines(text: str) -> int:
    return text.count("\n") + 1


class PasteClassifier:
    """Decides whether a single change event is a paste.

    The classifier holds only its thresholds; every call is a pure function
    of the event and its context, so classifying the same inputs twice gives
    the same answer.
    """

    def __init__(self, config: ClassifierConfig = None):
        self.config = config or ClassifierConfig()

    def is_too_small(self, text: str) -> bool:
        return not text or (len(text) < self.config.min_text_len and "\n" not in text)

    def classify(self, event: ChangeEvent, context: ClassificationContext) -> Classification:
        """Classify one change. Never raises; errors count as "not a paste"."""
        try:
            return self._classify(event, context)
        except Exception as e:
            logger.error(f"Paste classification failed: {e}")
            return Classification(False, 0, "error")

    def _classify(self, event: ChangeEvent, context: ClassificationContext) -> Classification:
        text = event.text or ""

        rejected = self._prefilter(text, context)
        if rejected:
            return Classification(False, 0, rejected)

        reason = self._positive_signal(text, event.range, context)
        if reason is None:
            return Classification(False, 0, "no_signal")

        logger.debug(f"Paste detected with confidence ({reason})")
        return Classification(True, count_lines(text), reason)

    def _prefilter(self, text: str, context: ClassificationContext) -> Optional[str]:
        if context.profile is not DocumentProfile.EDITABLE:
            return "ignored_document"
        if is_assistant_generated(text):
            logger.debug("Skipping assistant generated code")
            return "assistant_generated"
        if self.is_too_small(text):
            return "too_small"
        return None

    def _positive_signal(self, text: str, change_range: Range, context: ClassificationContext) -> Optional[str]:
        cfg = self.config

        clipboard = context.clipboard or ""
        if clipboard and clipboard[:cfg.clipboard_prefix_len] in text:
            return "clipboard_match"

        if len(text) > cfg.bulk_min_len:
            multi_line = count_lines(text) > cfg.bulk_min_lines
            wide_range = change_range is not None and change_range.column_span > cfg.bulk_min_columns
            if multi_line or wide_range:
                return "bulk_insert"

        if context.shortcut_recent and (len(text) > cfg.shortcut_min_len or "\n" in text):
            return "shortcut"

        return None


class ShortcutDetector:
    """Infers a Ctrl/Cmd+V keypress from keystroke timing.

    A lone "v" arriving less than shortcut_interval_ms after the previous
    keystroke is taken as a paste shortcut, valid for shortcut_validity_ms.
    Modifier keys are invisible here, so a fast typist's "v" also trips it
    and a slow Ctrl+V does not.
    """

    def __init__(self, config: ClassifierConfig = None):
        self.config = config or ClassifierConfig()
        self.last_keypress_ms: Optional[float] = None
        self.last_shortcut_ms: Optional[float] = None
        self._valid_until_ms: Optional[float] = None

    def observe(self, text: str, now_ms: float) -> bool:
        """Record a keystroke; return True when it looked like a paste shortcut."""
        detected = False
        if text == "v" and self.last_keypress_ms is not None:
            if now_ms - self.last_keypress_ms < self.config.shortcut_interval_ms:
                self.last_shortcut_ms = now_ms
                self._valid_until_ms = now_ms + self.config.shortcut_validity_ms
                detected = True
                logger.debug("Potential paste operation detected")

        self.last_keypress_ms = now_ms
        return detected

    def is_active(self, now_ms: float) -> bool:
        if self._valid_until_ms is None:
            return False
        if now_ms >= self._valid_until_ms:
            self._valid_until_ms = None
            return False
        return True

    def ms_since_shortcut(self, now_ms: float) -> Optional[float]:
        if self.last_shortcut_ms is None:
            return None
        return now_ms - self.last_shortcut_ms

    def clear(self):
        self._valid_until_ms = None

    def snapshot(self, now_ms: float) -> Tuple[bool, Optional[float]]:
        return self.is_active(now_ms), self.ms_since_shortcut(now_ms)
