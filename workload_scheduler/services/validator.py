"""
Schedule validation module for the Course Workload Scheduler.
Checks a schedule variant for advisory conflicts.

The validator never raises and never mutates the store: conflicts are
reported as data and the schedule stays exactly as the user placed it.
"""

from typing import List, Dict, Set, Tuple, Any
from collections import defaultdict
from dataclasses import dataclass

from workload_scheduler.models import (
    Store, ScheduleVariant, Course, Diagnostic, DiagnosticKind, AssignmentKey
)
from workload_scheduler.core.config import (
    ARRANGED_DAY, ARRANGED_SLOT, MODALITY_IN_PERSON, MAX_IN_PERSON_PER_SLOT
)


@dataclass
class CellEntry:
    course_id: str
    classroom_id: str
    room_number: str
    modality: str
    section: str


CellKey = Tuple[str, str]


def format_slot(day: str, slot_key: str) -> str:
    if day == ARRANGED_DAY or slot_key == ARRANGED_SLOT:
        return ARRANGED_DAY
    return f"{day} {slot_key}"


class ScheduleValidator:
    """
    Validates a schedule variant against the department's conflict rules.
    Rules are independent and all evaluated; diagnostics come out in rule
    order, then in grid order.
    """

    def __init__(self, store: Store):
        self.store = store
        self._courses: Dict[str, Course] = {course.id: course for course in store.course_catalog}

    def validate(self, variant_name: str) -> List[Diagnostic]:
        """
        Validate one schedule variant.

        Args:
            variant_name: Name of the variant to check

        Returns:
            Ordered list of diagnostics (empty if the variant is unknown)
        """
        variant = self.store.schedules.get(variant_name)
        if variant is None:
            return []

        cell_index, scheduled_course_ids = self._index_cells(variant)

        diagnostics: List[Diagnostic] = []
        diagnostics.extend(self._check_instructor_double_booking(variant, cell_index))
        diagnostics.extend(self._check_cohort_overlap(cell_index))
        diagnostics.extend(self._check_missing_program(scheduled_course_ids))
        diagnostics.extend(self._check_quarter_mismatch(variant, scheduled_course_ids))
        diagnostics.extend(self._check_missing_quarter(variant, variant_name))
        return diagnostics

    def _index_cells(self, variant: ScheduleVariant) -> Tuple[Dict[CellKey, List[CellEntry]], List[str]]:
        """Single pass over the grid: entries per (day, slot) and every placed course."""
        room_numbers = {classroom.id: classroom.room_number for classroom in variant.classrooms}
        cell_index: Dict[CellKey, List[CellEntry]] = defaultdict(list)
        scheduled: Dict[str, None] = {}

        for classroom_id, day, slot_key, placements in variant.iter_cells():
            for placement in placements:
                cell_index[(day, slot_key)].append(CellEntry(
                    course_id=placement.course_id,
                    classroom_id=classroom_id,
                    room_number=room_numbers.get(classroom_id, classroom_id),
                    modality=placement.modality,
                    section=placement.section,
                ))
                scheduled.setdefault(placement.course_id, None)

        return cell_index, list(scheduled)

    def _course_name(self, course_id: str) -> str:
        course = self._courses.get(course_id)
        return course.name if course else "Unknown course"

    def _entry_label(self, entry: CellEntry) -> str:
        name = self._course_name(entry.course_id)
        if entry.section:
            name = f"{name} - Section {entry.section}"
        return f"{name} (Room {entry.room_number})"

    def _check_instructor_double_booking(self, variant: ScheduleVariant,
                                         cell_index: Dict[CellKey, List[CellEntry]]) -> List[Diagnostic]:
        """
        One instructor cannot teach two different (course, section) pairs at once.
        The same pair placed in several rooms is a cross-listing, not a conflict.
        """
        diagnostics = []
        for (day, slot_key), entries in cell_index.items():
            by_instructor: Dict[str, List[CellEntry]] = defaultdict(list)
            for entry in entries:
                instructor_id = variant.course_instructors.get(AssignmentKey(entry.course_id, entry.section))
                if instructor_id:
                    by_instructor[instructor_id].append(entry)

            for instructor_id, group in by_instructor.items():
                pairs = {(entry.course_id, entry.section) for entry in group}
                if len(pairs) <= 1:
                    continue
                instructor = self.store.find_instructor(instructor_id)
                instructor_name = instructor.name if instructor else instructor_id
                courses = [self._entry_label(entry) for entry in group]
                diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.INSTRUCTOR,
                    message=f"{instructor_name} is double-booked on {format_slot(day, slot_key)}: {', '.join(courses)}",
                    data={
                        "instructorId": instructor_id,
                        "instructorName": instructor_name,
                        "day": day,
                        "slot": slot_key,
                        "courses": courses,
                        "rooms": [entry.room_number for entry in group],
                    },
                ))
        return diagnostics

    def _check_cohort_overlap(self, cell_index: Dict[CellKey, List[CellEntry]]) -> List[Diagnostic]:
        """A cohort cannot attend two different courses at the same time."""
        diagnostics = []
        for (day, slot_key), entries in cell_index.items():
            by_cohort: Dict[str, List[CellEntry]] = defaultdict(list)
            labels: Dict[str, str] = {}
            for entry in entries:
                course = self._courses.get(entry.course_id)
                if course is None or not course.cohort_label():
                    continue
                cohort = course.cohort_label()
                labels.setdefault(cohort, course.quarter_taken.strip())
                by_cohort[cohort].append(entry)

            for cohort, group in by_cohort.items():
                if len({entry.course_id for entry in group}) <= 1:
                    continue
                courses = [self._entry_label(entry) for entry in group]
                diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.COHORT,
                    message=f"Cohort {labels[cohort]} has overlapping courses on {format_slot(day, slot_key)}: {', '.join(courses)}",
                    data={
                        "cohort": labels[cohort],
                        "day": day,
                        "slot": slot_key,
                        "courses": courses,
                        "rooms": [entry.room_number for entry in group],
                    },
                ))
        return diagnostics

    def _check_missing_program(self, scheduled_course_ids: List[str]) -> List[Diagnostic]:
        """Every scheduled course should belong to a program."""
        diagnostics = []
        for course_id in scheduled_course_ids:
            course = self._courses.get(course_id)
            if course is None or course.program_id:
                continue
            diagnostics.append(Diagnostic(
                kind=DiagnosticKind.PROGRAM,
                message=f"{course.name} is scheduled but has no program",
                data={"courseId": course_id, "courseName": course.name},
            ))
        return diagnostics

    def _check_quarter_mismatch(self, variant: ScheduleVariant, scheduled_course_ids: List[str]) -> List[Diagnostic]:
        """Courses with a restricted offering must run in one of their quarters."""
        if not variant.quarter:
            return []

        diagnostics = []
        for course_id in scheduled_course_ids:
            course = self._courses.get(course_id)
            if course is None or course.is_offered_in(variant.quarter):
                continue
            allowed = ", ".join(course.quarters_offered)
            diagnostics.append(Diagnostic(
                kind=DiagnosticKind.QUARTER,
                message=f"{course.name} is only offered in {allowed}, not {variant.quarter}",
                data={
                    "courseId": course_id,
                    "courseName": course.name,
                    "quarter": variant.quarter,
                    "allowedQuarters": list(course.quarters_offered),
                },
            ))
        return diagnostics

    def _check_missing_quarter(self, variant: ScheduleVariant, variant_name: str) -> List[Diagnostic]:
        if variant.quarter:
            return []
        return [Diagnostic(
            kind=DiagnosticKind.MISSING_QUARTER,
            message=f"Schedule '{variant_name}' has no quarter set; quarter offerings cannot be checked",
            data={"schedule": variant_name},
        )]


def validate(store: Store, variant_name: str) -> List[Diagnostic]:
    """Validate ``variant_name`` in ``store``; see ``ScheduleValidator``."""
    return ScheduleValidator(store).validate(variant_name)


def in_person_counts(variant: ScheduleVariant) -> Dict[CellKey, int]:
    """Number of in-person placements per (day, slot) across all classrooms."""
    counts: Dict[CellKey, int] = defaultdict(int)
    for _, day, slot_key, placements in variant.iter_cells():
        if day == ARRANGED_DAY:
            continue
        counts[(day, slot_key)] += sum(1 for p in placements if p.modality == MODALITY_IN_PERSON)
    return counts


def has_in_person_conflict(variant: ScheduleVariant, day: str, slot_key: str) -> bool:
    """Only one room department-wide may require in-person attendance at a time."""
    if day == ARRANGED_DAY:
        return False
    return in_person_counts(variant).get((day, slot_key), 0) > MAX_IN_PERSON_PER_SLOT


def over_capacity_slots(variant: ScheduleVariant) -> Set[CellKey]:
    return {key for key, count in in_person_counts(variant).items() if count > MAX_IN_PERSON_PER_SLOT}


def over_capacity_cells(variant: ScheduleVariant) -> Set[Tuple[str, str, str]]:
    """Occupied (classroom_id, day, slot) cells that sit in an over-capacity slot."""
    slots = over_capacity_slots(variant)
    return {
        (classroom_id, day, slot_key)
        for classroom_id, day, slot_key, placements in variant.iter_cells()
        if placements and (day, slot_key) in slots
    }


def summarize(diagnostics: List[Diagnostic]) -> Dict[str, Any]:
    counts: Dict[str, int] = defaultdict(int)
    for diagnostic in diagnostics:
        counts[diagnostic.kind.value] += 1
    return {"total": len(diagnostics), "by_kind": dict(counts)}
