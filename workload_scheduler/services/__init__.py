"""
Services for snapshot migration, validation, store mutation and persistence.
"""

from .migrations import normalize, LegacyShape, detect_shape
from .validator import ScheduleValidator, validate
from .persistence import SnapshotRepository
from .workspace import Workspace, get_workspace

__all__ = [
    "normalize",
    "LegacyShape",
    "detect_shape",
    "ScheduleValidator",
    "validate",
    "SnapshotRepository",
    "Workspace",
    "get_workspace",
]
