"""
Schedule variant mutators: variants, classrooms, time slots, placements and
instructor assignments.

Every mutator checks all of its refusal conditions before touching the store,
so a ``MutationRefused`` always leaves the store unchanged.
"""

import copy
import re
import uuid
from typing import Callable, List, Optional

from workload_scheduler.models import (
    Store, ScheduleVariant, Classroom, Placement, AssignmentKey, empty_grid
)
from workload_scheduler.services.queries import get_current_variant, get_variant
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason
from workload_scheduler.core.config import (
    DAYS, WEEKDAYS, MODALITIES, MODALITY_IN_PERSON, QUARTERS
)
from workload_scheduler.core.logging_config import get_logger

logger = get_logger(__name__)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def new_id() -> str:
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# Grid helpers
# ---------------------------------------------------------------------------

def prune_empty_slots(variant: ScheduleVariant) -> None:
    """No grid cell may map to an empty placement list."""
    for days in variant.schedule.values():
        for slots in days.values():
            for slot_key in [key for key, placements in slots.items() if not placements]:
                del slots[slot_key]


def prune_section_assignments(variant: ScheduleVariant) -> None:
    """Drop sectioned assignment keys whose section has no placement left."""
    placed = {placement.key for placement in variant.iter_placements()}
    stale = [key for key in variant.course_instructors if key.section and key not in placed]
    for key in stale:
        del variant.course_instructors[key]


def remove_course_from_variant(variant: ScheduleVariant, course_id: str) -> None:
    for days in variant.schedule.values():
        for slots in days.values():
            for slot_key in list(slots):
                slots[slot_key] = [p for p in slots[slot_key] if p.course_id != course_id]
    prune_empty_slots(variant)

    for key in [key for key in variant.course_instructors if key.course_id == course_id]:
        del variant.course_instructors[key]


def _require_classroom(variant: ScheduleVariant, classroom_id: str) -> Classroom:
    classroom = variant.find_classroom(classroom_id)
    if classroom is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Classroom {classroom_id} does not exist")
    return classroom


def _require_weekday(day: str) -> None:
    if day not in WEEKDAYS:
        raise MutationRefused(RefusalReason.INVALID_SLOT, f"{day} does not hold time intervals")


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

def _require_new_name(store: Store, name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise MutationRefused(RefusalReason.INVALID_NAME, "Schedule name cannot be empty")
    if name in store.schedules:
        raise MutationRefused(RefusalReason.NAME_EXISTS, f"Schedule '{name}' already exists")
    return name


def _require_quarter(quarter: str) -> str:
    quarter = quarter or ""
    if quarter and quarter not in QUARTERS:
        raise MutationRefused(RefusalReason.INVALID_VALUE, f"Unknown quarter '{quarter}'")
    return quarter


def create_variant(store: Store, name: str, quarter: str = "", copy_from_current: bool = False) -> ScheduleVariant:
    """Create a variant (optionally a deep copy of the current one) and make it current."""
    name = _require_new_name(store, name)
    quarter = _require_quarter(quarter)

    if copy_from_current:
        variant = copy.deepcopy(get_current_variant(store))
        variant.quarter = quarter
    else:
        variant = ScheduleVariant(quarter=quarter)

    store.schedules[name] = variant
    store.current_schedule = name
    logger.info(f"Created schedule '{name}'")
    return variant


def rename_variant(store: Store, old_name: str, new_name: str) -> None:
    """Rename in place, keeping the variant's position among the schedules."""
    get_variant(store, old_name)
    if (new_name or "").strip() == old_name:
        return
    new_name = _require_new_name(store, new_name)

    store.schedules = {
        (new_name if name == old_name else name): variant
        for name, variant in store.schedules.items()
    }
    if store.current_schedule == old_name:
        store.current_schedule = new_name


def delete_variant(store: Store, name: str) -> None:
    get_variant(store, name)
    if len(store.schedules) <= 1:
        raise MutationRefused(RefusalReason.LAST_VARIANT, "Cannot delete the only schedule")

    del store.schedules[name]
    if store.current_schedule == name:
        store.current_schedule = next(iter(store.schedules))
    logger.info(f"Deleted schedule '{name}', current is now '{store.current_schedule}'")


def switch_variant(store: Store, name: str) -> None:
    get_variant(store, name)
    store.current_schedule = name


def set_variant_quarter(store: Store, quarter: str, name: Optional[str] = None) -> None:
    variant = get_variant(store, name)
    variant.quarter = _require_quarter(quarter)


# ---------------------------------------------------------------------------
# Classrooms
# ---------------------------------------------------------------------------

def add_classroom(store: Store, room_number: str) -> Classroom:
    room_number = (room_number or "").strip()
    if not room_number:
        raise MutationRefused(RefusalReason.INVALID_NAME, "Room number cannot be empty")

    variant = get_current_variant(store)
    classroom = Classroom(id=new_id(), room_number=room_number)
    variant.classrooms.append(classroom)
    variant.schedule[classroom.id] = empty_grid()
    return classroom


def delete_classroom(store: Store, classroom_id: str) -> None:
    variant = get_current_variant(store)
    _require_classroom(variant, classroom_id)

    variant.classrooms = [c for c in variant.classrooms if c.id != classroom_id]
    variant.schedule.pop(classroom_id, None)
    prune_section_assignments(variant)


def toggle_visible(store: Store, classroom_id: str) -> bool:
    classroom = _require_classroom(get_current_variant(store), classroom_id)
    classroom.visible = not classroom.visible
    return classroom.visible


def set_form_expanded(store: Store, classroom_id: str, expanded: bool) -> None:
    classroom = _require_classroom(get_current_variant(store), classroom_id)
    classroom.timeslot_form_expanded = bool(expanded)


# ---------------------------------------------------------------------------
# Time slots
# ---------------------------------------------------------------------------

def add_timeslot(store: Store, classroom_id: str, day: str, start: str, end: str) -> str:
    """Add "start-end" to the day's intervals. Idempotent for an existing interval."""
    classroom = _require_classroom(get_current_variant(store), classroom_id)
    _require_weekday(day)
    if not (TIME_PATTERN.match(start or "") and TIME_PATTERN.match(end or "")):
        raise MutationRefused(RefusalReason.INVALID_INTERVAL, "Times must be HH:MM")
    # Zero-padded times compare chronologically as strings
    if start >= end:
        raise MutationRefused(RefusalReason.INVALID_INTERVAL, "End time must be after start time")

    interval = f"{start}-{end}"
    intervals = classroom.timeslots.setdefault(day, [])
    if interval not in intervals:
        intervals.append(interval)
        intervals.sort()
    return interval


def _drop_cells(variant: ScheduleVariant, classroom_id: str, day: str, keep: Callable[[str], bool]) -> None:
    slots = variant.schedule.get(classroom_id, {}).get(day, {})
    for slot_key in [key for key in slots if not keep(key)]:
        del slots[slot_key]


def remove_timeslot(store: Store, classroom_id: str, day: str, interval: str) -> None:
    """Remove an interval together with everything placed under it."""
    variant = get_current_variant(store)
    classroom = _require_classroom(variant, classroom_id)
    _require_weekday(day)

    classroom.timeslots[day] = [slot for slot in classroom.timeslots.get(day, []) if slot != interval]
    _drop_cells(variant, classroom_id, day, lambda key: key != interval)
    prune_section_assignments(variant)


def copy_timeslots(store: Store, classroom_id: str, source_day: str) -> None:
    """
    Overwrite every other weekday's intervals with the source day's.
    Placements under intervals that no longer exist are removed.
    """
    variant = get_current_variant(store)
    classroom = _require_classroom(variant, classroom_id)
    _require_weekday(source_day)

    intervals = list(classroom.timeslots.get(source_day, []))
    for day in WEEKDAYS:
        if day == source_day:
            continue
        classroom.timeslots[day] = list(intervals)
        _drop_cells(variant, classroom_id, day, lambda key: key in intervals)
    prune_section_assignments(variant)


# ---------------------------------------------------------------------------
# Placements
# ---------------------------------------------------------------------------

def place(store: Store, classroom_id: str, day: str, slot_key: str, course_id: str,
          modality: str = MODALITY_IN_PERSON, section: str = "") -> Placement:
    """
    Append a placement. Conflicts are never a reason to refuse; the validator
    reports them afterwards.
    """
    variant = get_current_variant(store)
    classroom = _require_classroom(variant, classroom_id)
    if store.find_course(course_id) is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Course {course_id} does not exist")
    if modality not in MODALITIES:
        raise MutationRefused(RefusalReason.INVALID_VALUE, f"Unknown modality '{modality}'")
    if day not in DAYS or not classroom.offers_slot(day, slot_key):
        raise MutationRefused(
            RefusalReason.INVALID_SLOT,
            f"Room {classroom.room_number} has no slot {slot_key} on {day}"
        )

    placement = Placement(course_id=course_id, modality=modality, section=(section or "").strip())
    days = variant.schedule.setdefault(classroom_id, empty_grid())
    days.setdefault(day, {}).setdefault(slot_key, []).append(placement)
    return placement


def _require_placement_list(variant: ScheduleVariant, classroom_id: str, day: str,
                            slot_key: str, index: int) -> List[Placement]:
    placements = variant.schedule.get(classroom_id, {}).get(day, {}).get(slot_key)
    if not placements or not 0 <= index < len(placements):
        raise MutationRefused(
            RefusalReason.NOT_FOUND,
            f"No placement #{index} at {day} {slot_key} in classroom {classroom_id}"
        )
    return placements


def unplace(store: Store, classroom_id: str, day: str, slot_key: str, index: int) -> Placement:
    """Remove one placement by position; an emptied slot disappears."""
    variant = get_current_variant(store)
    placements = _require_placement_list(variant, classroom_id, day, slot_key, index)

    removed = placements.pop(index)
    if not placements:
        del variant.schedule[classroom_id][day][slot_key]
    prune_section_assignments(variant)
    return removed


def set_placement_modality(store: Store, classroom_id: str, day: str, slot_key: str,
                           index: int, modality: str) -> None:
    variant = get_current_variant(store)
    placements = _require_placement_list(variant, classroom_id, day, slot_key, index)
    if modality not in MODALITIES:
        raise MutationRefused(RefusalReason.INVALID_VALUE, f"Unknown modality '{modality}'")
    placements[index].modality = modality


# ---------------------------------------------------------------------------
# Instructor assignments
# ---------------------------------------------------------------------------

def assign_instructor(store: Store, course_id: str, section: str, instructor_id: Optional[str]) -> None:
    """Set or clear the instructor of a (course, section) in the current variant."""
    variant = get_current_variant(store)
    section = (section or "").strip()
    key = AssignmentKey(course_id, section)

    if store.find_course(course_id) is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Course {course_id} does not exist")

    if not instructor_id:
        variant.course_instructors.pop(key, None)
        return

    if store.find_instructor(instructor_id) is None:
        raise MutationRefused(RefusalReason.NOT_FOUND, f"Instructor {instructor_id} does not exist")
    if section and all(p.key != key for p in variant.iter_placements()):
        raise MutationRefused(
            RefusalReason.INVALID_VALUE,
            f"Section '{section}' of course {course_id} is not placed in this schedule"
        )
    variant.course_instructors[key] = instructor_id
