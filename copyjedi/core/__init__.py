"""
Paste detection core - classifier, tracker loop, local stats and leaderboard sync.
"""

# Package initialization for core module
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
)
from .config import ClassifierConfig, Settings
from .stats import PasteStats, StatsStore
from .tracker import DocumentChangeEvent, EditorHost, PasteTracker

__all__ = [
    'ChangeEvent',
    'Classification',
    'ClassificationContext',
    'ContentChange',
    'DocumentInfo',
    'DocumentProfile',
    'PasteClassifier',
    'Position',
    'Range',
    'ShortcutDetector',
    'ClassifierConfig',
    'Settings',
    'PasteStats',
    'StatsStore',
    'DocumentChangeEvent',
    'EditorHost',
    'PasteTracker',
]
