"""Appointment conflict detection and alternative-slot suggestion for the clinic."""
from .conflicts import ConflictDetector, check_conflicts
from .suggestions import AlternativeSuggester, suggest_alternatives
from .timeutils import overlaps

__all__ = [
    "AlternativeSuggester",
    "ConflictDetector",
    "check_conflicts",
    "overlaps",
    "suggest_alternatives",
]
