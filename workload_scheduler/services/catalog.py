"""
Catalog mutators: programs, the course catalog and instructors.

These entities are global, shared by every schedule variant. They are deleted
only when nothing references them; course deletion cascades instead.
"""

from typing import Iterable, List, Optional

from workload_scheduler.models import Store, Program, Course, Instructor
from workload_scheduler.services.variants import new_id, remove_course_from_variant
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason
from workload_scheduler.core.config import DEFAULT_INSTRUCTOR_COLOR, QUARTERS
from workload_scheduler.core.logging_config import get_logger

logger = get_logger(__name__)


def _require_name(name: str, what: str) -> str:
    name = (name or "").strip()
    if not name:
        raise MutationRefused(RefusalReason.INVALID_NAME, f"{what} name cannot be empty")
    return name


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------

def _require_program(store: Store, program_id: str) -> Program:
    program = store.find_program(program_id)
    if program is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Program {program_id} does not exist")
    return program


def add_program(store: Store, name: str) -> Program:
    program = Program(id=new_id(), name=_require_name(name, "Program"))
    store.programs.append(program)
    return program


def edit_program(store: Store, program_id: str, name: str) -> Program:
    program = _require_program(store, program_id)
    program.name = _require_name(name, "Program")
    return program


def delete_program(store: Store, program_id: str) -> None:
    _require_program(store, program_id)
    dependents = [course.name for course in store.course_catalog if course.program_id == program_id]
    if dependents:
        raise MutationRefused(
            RefusalReason.HAS_DEPENDENT_COURSES,
            f"Program is used by {len(dependents)} course(s): {', '.join(dependents)}"
        )

    store.programs = [program for program in store.programs if program.id != program_id]
    if store.program_filter == program_id:
        store.program_filter = ""


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------

def _require_course(store: Store, course_id: str) -> Course:
    course = store.find_course(course_id)
    if course is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Course {course_id} does not exist")
    return course


def _check_course_fields(store: Store, credits, program_id: Optional[str],
                         quarters_offered: Optional[Iterable[str]]) -> List[str]:
    if isinstance(credits, bool) or not isinstance(credits, int) or credits <= 0:
        raise MutationRefused(RefusalReason.INVALID_VALUE, "Credits must be a positive whole number")
    if program_id:
        _require_program(store, program_id)

    quarters: List[str] = []
    for quarter in quarters_offered or []:
        if quarter not in QUARTERS:
            raise MutationRefused(RefusalReason.INVALID_VALUE, f"Unknown quarter '{quarter}'")
        if quarter not in quarters:
            quarters.append(quarter)
    return quarters


def add_course(store: Store, name: str, credits: int, program_id: Optional[str] = None,
               course_number: str = "", quarter_taken: Optional[str] = None,
               quarters_offered: Optional[Iterable[str]] = None) -> Course:
    name = _require_name(name, "Course")
    quarters = _check_course_fields(store, credits, program_id, quarters_offered)

    course = Course(
        id=new_id(),
        name=name,
        credits=credits,
        program_id=program_id or None,
        course_number=(course_number or "").strip(),
        quarter_taken=(quarter_taken or "").strip() or None,
        quarters_offered=quarters,
    )
    store.course_catalog.append(course)
    return course


def edit_course(store: Store, course_id: str, name: str, credits: int, program_id: Optional[str] = None,
                course_number: str = "", quarter_taken: Optional[str] = None,
                quarters_offered: Optional[Iterable[str]] = None) -> Course:
    """Replace every editable field of a catalog course."""
    course = _require_course(store, course_id)
    name = _require_name(name, "Course")
    quarters = _check_course_fields(store, credits, program_id, quarters_offered)

    course.name = name
    course.credits = credits
    course.program_id = program_id or None
    course.course_number = (course_number or "").strip()
    course.quarter_taken = (quarter_taken or "").strip() or None
    course.quarters_offered = quarters
    return course


def delete_course(store: Store, course_id: str) -> None:
    """Remove a course from the catalog and from every variant's grid and assignments."""
    _require_course(store, course_id)

    for variant in store.schedules.values():
        remove_course_from_variant(variant, course_id)
    store.course_catalog = [course for course in store.course_catalog if course.id != course_id]
    logger.info(f"Deleted course {course_id} from the catalog and all schedules")


# ---------------------------------------------------------------------------
# Instructors
# ---------------------------------------------------------------------------

def _require_instructor(store: Store, instructor_id: str) -> Instructor:
    instructor = store.find_instructor(instructor_id)
    if instructor is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Instructor {instructor_id} does not exist")
    return instructor


def add_instructor(store: Store, name: str, color: Optional[str] = None) -> Instructor:
    instructor = Instructor(
        id=new_id(),
        name=_require_name(name, "Instructor"),
        color=color or DEFAULT_INSTRUCTOR_COLOR,
    )
    store.instructors.append(instructor)
    return instructor


def edit_instructor(store: Store, instructor_id: str, name: str, color: Optional[str] = None) -> Instructor:
    instructor = _require_instructor(store, instructor_id)
    instructor.name = _require_name(name, "Instructor")
    if color:
        instructor.color = color
    return instructor


def delete_instructor(store: Store, instructor_id: str) -> None:
    _require_instructor(store, instructor_id)
    assigned_in = [
        name for name, variant in store.schedules.items()
        if instructor_id in variant.course_instructors.values()
    ]
    if assigned_in:
        raise MutationRefused(
            RefusalReason.HAS_ASSIGNMENTS,
            f"Instructor has course assignments in: {', '.join(assigned_in)}"
        )

    store.instructors = [i for i in store.instructors if i.id != instructor_id]
    store.instructor_filter = [i for i in store.instructor_filter if i != instructor_id]


# ---------------------------------------------------------------------------
# UI state
# ---------------------------------------------------------------------------

def toggle_collapsed_section(store: Store, section: str) -> bool:
    """Returns True if the section is now collapsed."""
    if section in store.collapsed_sections:
        store.collapsed_sections.remove(section)
        return False
    store.collapsed_sections.append(section)
    return True


def set_instructor_filter(store: Store, instructor_ids: Iterable[str]) -> None:
    selected = []
    for instructor_id in instructor_ids:
        _require_instructor(store, instructor_id)
        if instructor_id not in selected:
            selected.append(instructor_id)
    store.instructor_filter = selected


def set_program_filter(store: Store, program_id: Optional[str]) -> None:
    if program_id:
        _require_program(store, program_id)
    store.program_filter = program_id or ""
