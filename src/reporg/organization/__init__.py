"""Move planning and execution."""

from .executor import INVALIDATED_VIEWS, MoveExecutor
from .models import MoveBatchResult, MoveOptions, MovePreviewEntry, MoveResult
from .planner import MovePlanner

__all__ = [
    "INVALIDATED_VIEWS",
    "MoveBatchResult",
    "MoveExecutor",
    "MoveOptions",
    "MovePlanner",
    "MovePreviewEntry",
    "MoveResult",
]
