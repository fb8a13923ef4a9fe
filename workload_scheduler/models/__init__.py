"""
Data models for the scheduling system.
"""

from .models import (
    DiagnosticKind,
    AssignmentKey,
    Program,
    Course,
    Instructor,
    Classroom,
    Placement,
    ScheduleVariant,
    Store,
    Diagnostic,
    InstructorWorkload,
    Grid,
    empty_grid,
    empty_timeslots,
)

__all__ = [
    "DiagnosticKind",
    "AssignmentKey",
    "Program",
    "Course",
    "Instructor",
    "Classroom",
    "Placement",
    "ScheduleVariant",
    "Store",
    "Diagnostic",
    "InstructorWorkload",
    "Grid",
    "empty_grid",
    "empty_timeslots",
]
