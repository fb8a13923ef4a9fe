"""
Read accessors over the store used by the presentation layer and the CLI.
"""

from typing import Dict, List, Optional

from workload_scheduler.models import (
    Store, ScheduleVariant, Course, AssignmentKey, InstructorWorkload
)
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason


def get_current_variant(store: Store) -> ScheduleVariant:
    """Resolve the current variant. Call this at every use; never keep the result around."""
    return store.schedules[store.current_schedule]


def get_variant(store: Store, name: Optional[str] = None) -> ScheduleVariant:
    if name is None:
        return get_current_variant(store)
    variant = store.schedules.get(name)
    if variant is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Schedule '{name}' does not exist")
    return variant


def course_display_name(store: Store, course: Course) -> str:
    """'<Program> <Number> - <Name>', dropping whichever prefix part is missing."""
    program = store.find_program(course.program_id)
    prefix = " ".join(part for part in (program.name if program else "", course.course_number) if part)
    if prefix:
        return f"{prefix} - {course.name}"
    return course.name


def is_course_placed(store: Store, course_id: str, variant_name: Optional[str] = None) -> bool:
    variant = get_variant(store, variant_name)
    return any(placement.course_id == course_id for placement in variant.iter_placements())


def placed_pairs(variant: ScheduleVariant) -> List[AssignmentKey]:
    """Unique (course, section) pairs that appear anywhere in the grid, in grid order."""
    pairs: Dict[AssignmentKey, None] = {}
    for placement in variant.iter_placements():
        pairs.setdefault(placement.key, None)
    return list(pairs)


def instructor_workload(store: Store, instructor_id: str, variant_name: Optional[str] = None) -> int:
    """
    Credits an instructor teaches in a variant: the sum over unique
    (course, section) pairs assigned to them that are actually placed.
    """
    variant = get_variant(store, variant_name)
    total = 0
    for key in placed_pairs(variant):
        if variant.course_instructors.get(key) != instructor_id:
            continue
        course = store.find_course(key.course_id)
        if course:
            total += course.credits
    return total


def workload_report(store: Store, variant_name: Optional[str] = None) -> List[InstructorWorkload]:
    variant = get_variant(store, variant_name)
    pairs = placed_pairs(variant)
    report = []
    for instructor in store.instructors:
        workload = InstructorWorkload(instructor=instructor)
        for key in pairs:
            if variant.course_instructors.get(key) != instructor.id:
                continue
            course = store.find_course(key.course_id)
            if course:
                workload.total_credits += course.credits
                workload.assignments.append(key)
        report.append(workload)
    return report
