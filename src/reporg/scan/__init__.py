"""Scan orchestration and progress reporting."""

from .orchestrator import DiscoveredRepository, ScanOrchestrator, ScanSummary
from .progress import ScanProgress, ScanProgressTracker, format_progress_event

__all__ = [
    "DiscoveredRepository",
    "ScanOrchestrator",
    "ScanProgress",
    "ScanProgressTracker",
    "ScanSummary",
    "format_progress_event",
]
