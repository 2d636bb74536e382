"""
Paste classifier - pre-filters, positive signals, line counting and the
keystroke-timing shortcut detector.
"""

import pytest
from unittest.mock import patch

from copyjedi.core.classifier import (
    ASSISTANT_MARKERS,
    ChangeEvent,
    ClassificationContext,
    DocumentInfo,
    DocumentProfile,
    PasteClassifier,
    Position,
    Range,
    ShortcutDetector,
    has_code_patterns,
    is_assistant_generated,
    profile_document,
)


PY_DOC = DocumentInfo(uri="file:///project/app.py", language_id="python")


def make_event(text, start_char=0, end_char=0, start_line=0, end_line=0, document=PY_DOC):
    return ChangeEvent(
        text=text,
        range=Range(Position(start_line, start_char), Position(end_line, end_char)),
        document=document,
        timestamp_ms=1000.0,
    )


@pytest.fixture
def classifier():
    return PasteClassifier()


class TestDocumentProfile:
    """Test editable-document detection."""

    @pytest.mark.parametrize("uri", ["file:///a.py", "untitled:Untitled-1"])
    def test_file_and_untitled_are_editable(self, uri):
        assert profile_document(DocumentInfo(uri, "python")) is DocumentProfile.EDITABLE

    @pytest.mark.parametrize("uri", ["output:extension-output-1", "git:/repo/a.py", "vscode-settings:/x", "no-scheme"])
    def test_other_schemes_are_ignored(self, uri):
        assert profile_document(DocumentInfo(uri, "python")) is DocumentProfile.IGNORE

    def test_extension_panes_are_ignored(self):
        """File URIs that point at output or debug panes are skipped."""
        doc = DocumentInfo("file:///tmp/Extension-Output/log.py", "python")
        assert profile_document(doc) is DocumentProfile.IGNORE

    @pytest.mark.parametrize("language", ["plaintext", "markdown", "json", "jsonc", "log", "diff", "shellscript", "git-commit"])
    def test_denied_languages_are_ignored(self, language):
        assert profile_document(DocumentInfo("file:///notes", language)) is DocumentProfile.IGNORE

    def test_unknown_language_stays_editable(self):
        assert profile_document(DocumentInfo("file:///a.zig", "zig")) is DocumentProfile.EDITABLE


class TestPrefilters:
    """Pre-filters short-circuit to not-a-paste."""

    @pytest.mark.parametrize("text", ["x", "ab", "abcd", "v"])
    def test_tiny_single_line_text_never_pastes(self, classifier, text):
        context = ClassificationContext(clipboard=text, shortcut_recent=True)
        result = classifier.classify(make_event(text, 0, 40), context)
        assert result.is_paste is False
        assert result.reason == "too_small"

    def test_empty_text_is_not_a_paste(self, classifier):
        result = classifier.classify(make_event(""), ClassificationContext(clipboard="anything"))
        assert result.is_paste is False

    def test_single_typed_character(self, classifier):
        result = classifier.classify(make_event("x"), ClassificationContext())
        assert result.is_paste is False
        assert result.line_count == 0

    def test_ignored_document_wins_over_clipboard_match(self, classifier):
        text = "function foo() {\n  return 1;\n}"
        context = ClassificationContext(clipboard=text, profile=DocumentProfile.IGNORE)
        result = classifier.classify(make_event(text), context)
        assert result.is_paste is False
        assert result.reason == "ignored_document"

    @pytest.mark.parametrize("marker", ASSISTANT_MARKERS)
    def test_assistant_markers_are_excluded(self, classifier, marker):
        text = f"{marker}\nconst x = compute();\nexport default x;\n"
        context = ClassificationContext(clipboard=text, shortcut_recent=True)
        result = classifier.classify(make_event(text, 0, 30), context)
        assert result.is_paste is False
        assert result.reason == "assistant_generated"

    def test_short_text_with_newline_passes_prefilter(self, classifier):
        """A newline keeps even a short insertion in play for the shortcut signal."""
        result = classifier.classify(make_event("a\n"), ClassificationContext(shortcut_recent=True))
        assert result.is_paste is True
        assert result.line_count == 2


class TestClipboardMatch:
    """Clipboard prefix match is sufficient on its own."""

    def test_clipboard_prefix_match(self, classifier):
        context = ClassificationContext(clipboard="function foo() {")
        result = classifier.classify(make_event("function foo() {\n  return 1;\n}"), context)
        assert result.is_paste is True
        assert result.line_count == 3
        assert result.reason == "clipboard_match"

    def test_only_first_twenty_characters_must_match(self, classifier):
        clipboard = "abcdefghijklmnopqrst" + "DIFFERENT TAIL"
        result = classifier.classify(make_event("abcdefghijklmnopqrst and more"), ClassificationContext(clipboard=clipboard))
        assert result.is_paste is True

    def test_clipboard_mismatch_small_text(self, classifier):
        result = classifier.classify(make_event("hello world"), ClassificationContext(clipboard="unrelated text"))
        assert result.is_paste is False
        assert result.reason == "no_signal"

    def test_empty_clipboard_does_not_match(self, classifier):
        result = classifier.classify(make_event("hello world"), ClassificationContext(clipboard=""))
        assert result.is_paste is False


class TestBulkHeuristic:
    """Long insertions count when multi-line or wide-range."""

    def test_wide_range_single_line(self, classifier):
        text = "y" * 80
        result = classifier.classify(make_event(text, 5, 20), ClassificationContext(clipboard="nope nope nope"))
        assert result.is_paste is True
        assert result.line_count == 1
        assert result.reason == "bulk_insert"

    def test_multi_line_insertion(self, classifier):
        text = "line one is here\n" + "line two is here\n" + "line three is longer than the rest"
        assert len(text) > 50
        result = classifier.classify(make_event(text), ClassificationContext())
        assert result.is_paste is True
        assert result.line_count == 3

    def test_long_narrow_single_line_is_typing(self, classifier):
        result = classifier.classify(make_event("z" * 80, 3, 3), ClassificationContext())
        assert result.is_paste is False

    def test_two_lines_is_not_enough(self, classifier):
        text = "a" * 40 + "\n" + "b" * 40
        result = classifier.classify(make_event(text), ClassificationContext())
        assert result.is_paste is False

    def test_exactly_fifty_characters_is_not_bulk(self, classifier):
        text = "q" * 50
        result = classifier.classify(make_event(text, 0, 30), ClassificationContext())
        assert result.is_paste is False

    def test_range_span_is_absolute(self, classifier):
        result = classifier.classify(make_event("w" * 60, 30, 2), ClassificationContext())
        assert result.is_paste is True


class TestShortcutCorroboration:
    """Recent paste shortcut raises sensitivity but needs some size."""

    def test_shortcut_with_medium_text(self, classifier):
        result = classifier.classify(make_event("some_value_x"), ClassificationContext(shortcut_recent=True))
        assert result.is_paste is True
        assert result.reason == "shortcut"

    def test_shortcut_with_ten_characters_is_not_enough(self, classifier):
        result = classifier.classify(make_event("0123456789"), ClassificationContext(shortcut_recent=True))
        assert result.is_paste is False

    def test_no_shortcut_medium_text(self, classifier):
        result = classifier.classify(make_event("some_value_x"), ClassificationContext(shortcut_recent=False))
        assert result.is_paste is False


class TestPurity:
    """Same inputs give the same answer."""

    def test_classify_twice(self, classifier):
        event = make_event("function foo() {\n  return 1;\n}")
        context = ClassificationContext(clipboard="function foo() {")
        assert classifier.classify(event, context) == classifier.classify(event, context)

    def test_internal_error_degrades_to_false(self, classifier):
        with patch.object(classifier, "_positive_signal", side_effect=RuntimeError("boom")):
            result = classifier.classify(make_event("x" * 80, 0, 20), ClassificationContext())
        assert result.is_paste is False
        assert result.reason == "error"


class TestHelpers:

    def test_has_code_patterns(self):
        assert has_code_patterns("def main(): return 1")
        assert has_code_patterns("x = 1")
        assert not has_code_patterns("Dear diary today was nice")

    def test_is_assistant_generated(self):
        assert is_assistant_generated("// Generated by a tool\nint x;")
        assert not is_assistant_generated("# Generated by hand")


class TestShortcutDetector:
    """Keystroke-timing proxy for Ctrl/Cmd+V."""

    def test_fast_v_sets_flag(self):
        detector = ShortcutDetector()
        detector.observe("a", 1000)
        assert detector.observe("v", 1100) is True
        assert detector.is_active(1200) is True
        assert detector.ms_since_shortcut(1200) == 100

    def test_slow_v_does_not_set_flag(self):
        detector = ShortcutDetector()
        detector.observe("a", 1000)
        assert detector.observe("v", 1400) is False
        assert detector.is_active(1400) is False

    def test_first_keystroke_cannot_be_a_shortcut(self):
        detector = ShortcutDetector()
        assert detector.observe("v", 1000) is False

    def test_flag_expires_after_validity_window(self):
        detector = ShortcutDetector()
        detector.observe("a", 1000)
        detector.observe("v", 1100)
        assert detector.is_active(1599) is True
        assert detector.is_active(1600) is False

    def test_clear(self):
        detector = ShortcutDetector()
        detector.observe("a", 1000)
        detector.observe("v", 1050)
        detector.clear()
        assert detector.is_active(1060) is False

    def test_other_characters_only_update_clock(self):
        detector = ShortcutDetector()
        detector.observe("a", 1000)
        assert detector.observe("b", 1010) is False
        assert detector.last_keypress_ms == 1010
