"""
Snapshot migration for the Course Workload Scheduler.
Upgrades any historical snapshot shape to the current store shape.

Every shape the application has ever persisted is a member of ``LegacyShape``.
Each legacy member has exactly one upgrade step that turns it into the next
newer shape, so an old snapshot walks the chain

    SINGLE_VARIANT -> MULTI_VARIANT_NO_CATALOG -> PRE_GLOBAL_INSTRUCTORS -> CURRENT

after which ``apply_defaults`` fills every missing field.
"""

import copy
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from workload_scheduler.models import Store
from workload_scheduler.core.config import (
    DAYS, WEEKDAYS, ARRANGED_DAY,
    DEFAULT_SCHEDULE_NAME, DEFAULT_INSTRUCTOR_COLOR, DEFAULT_COURSE_CREDITS,
    MODALITIES, MODALITY_IN_PERSON, SECTION_SEPARATOR
)
from workload_scheduler.core.logging_config import get_logger

logger = get_logger(__name__)

LEGACY_VARIANT_KEYS = ("instructors", "courses", "classrooms", "schedule")
UI_STATE_KEYS = ("collapsedSections", "instructorFilter", "programFilter")


class LegacyShape(Enum):
    CURRENT = "current"
    PRE_GLOBAL_INSTRUCTORS = "pre_global_instructors"
    MULTI_VARIANT_NO_CATALOG = "multi_variant_no_catalog"
    SINGLE_VARIANT = "single_variant"
    UNRECOGNIZED = "unrecognized"


def detect_shape(raw: Any) -> LegacyShape:
    """Classify a raw snapshot. First match wins."""
    if not isinstance(raw, dict):
        return LegacyShape.UNRECOGNIZED

    has_programs = "programs" in raw
    has_catalog = "courseCatalog" in raw

    if has_programs and has_catalog and isinstance(raw.get("instructors"), list):
        return LegacyShape.CURRENT
    if has_programs or has_catalog:
        return LegacyShape.PRE_GLOBAL_INSTRUCTORS
    if "schedules" in raw and "currentSchedule" in raw:
        return LegacyShape.MULTI_VARIANT_NO_CATALOG
    if "schedules" not in raw and any(key in raw for key in LEGACY_VARIANT_KEYS):
        return LegacyShape.SINGLE_VARIANT
    return LegacyShape.UNRECOGNIZED


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_dict(value: Any) -> Dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List:
    return value if isinstance(value, list) else []


def _dedupe_by_id(items: Any) -> List[Dict]:
    """Keep dict entries that carry an id; the first entry for an id wins."""
    result = []
    seen: Set[str] = set()
    for item in _as_list(items):
        if not isinstance(item, dict) or item.get("id") in (None, ""):
            continue
        item["id"] = str(item["id"])
        if item["id"] in seen:
            continue
        seen.add(item["id"])
        result.append(item)
    return result


def _unique_strings(values: Any) -> List[str]:
    result = []
    for value in _as_list(values):
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            value = str(value)
            if value not in result:
                result.append(value)
    return result


def _coerce_credits(value: Any) -> int:
    try:
        credits = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_COURSE_CREDITS
    return credits if credits > 0 else DEFAULT_COURSE_CREDITS


def apply_course_defaults(course: Dict) -> Dict:
    course.pop("instructorId", None)
    course["name"] = str(course.get("name") or "")
    course["credits"] = _coerce_credits(course.get("credits"))
    program_id = course.get("programId")
    course["programId"] = str(program_id) if program_id not in (None, "") else None
    course["courseNumber"] = str(course.get("courseNumber") or "")
    quarter_taken = course.get("quarterTaken")
    course["quarterTaken"] = str(quarter_taken) if quarter_taken not in (None, "") else None
    course["quartersOffered"] = _unique_strings(course.get("quartersOffered"))
    return course


def apply_instructor_defaults(instructor: Dict) -> Dict:
    instructor["name"] = str(instructor.get("name") or "")
    if not instructor.get("color"):
        instructor["color"] = DEFAULT_INSTRUCTOR_COLOR
    return instructor


def sanitize_course_ids(catalog: List[Dict], remap: Dict[str, str]) -> None:
    """
    Rewrite course ids containing the section separator, recording old -> new
    in ``remap``. Such ids cannot be told apart from sectioned assignment keys.
    """
    taken = {course["id"] for course in catalog}
    for course in catalog:
        if SECTION_SEPARATOR not in course["id"]:
            continue
        new_id = course["id"].replace(SECTION_SEPARATOR, "-")
        while new_id in taken:
            new_id += "-"
        logger.info(f"Renaming course id '{course['id']}' to '{new_id}'")
        remap[course["id"]] = new_id
        taken.add(new_id)
        course["id"] = new_id


def _resolve_assignment_key(key: str, remap: Dict[str, str]) -> Tuple[str, str]:
    """Split a stored assignment key into (course_id, section), following renamed ids."""
    if key in remap:
        return remap[key], ""
    for old_id, new_id in remap.items():
        prefix = old_id + SECTION_SEPARATOR
        if key.startswith(prefix):
            return new_id, key[len(prefix):]
    course_id, _, section = key.partition(SECTION_SEPARATOR)
    return course_id, section


def extract_embedded_courses(variant: Dict, catalog: List[Dict],
                             remap: Optional[Dict[str, str]] = None) -> None:
    """
    Move a variant's embedded ``courses`` into the global catalog.

    The first copy of each course id wins; an embedded ``instructorId`` becomes
    the variant-level assignment for the bare course id. ``remap`` holds ids
    already renamed by ``sanitize_course_ids``.
    """
    courses = variant.pop("courses", None)
    if not isinstance(courses, list):
        return

    remap = remap or {}
    catalog_ids = {course["id"] for course in catalog}
    assignments = _as_dict(variant.get("courseInstructors"))
    variant["courseInstructors"] = assignments

    for course in courses:
        if not isinstance(course, dict) or course.get("id") in (None, ""):
            continue
        course_id = str(course["id"])
        instructor_id = course.get("instructorId")
        if remap.get(course_id, course_id) not in catalog_ids:
            entry = {key: value for key, value in course.items() if key != "instructorId"}
            entry["id"] = course_id
            catalog.append(apply_course_defaults(entry))
            catalog_ids.add(course_id)
        if instructor_id not in (None, ""):
            assignments.setdefault(course_id, str(instructor_id))


# ---------------------------------------------------------------------------
# Upgrade steps, one per legacy shape
# ---------------------------------------------------------------------------

def upgrade_single_variant(raw: Dict) -> Dict:
    """Wrap a top-level legacy variant as the lone entry of ``schedules``."""
    variant = {key: raw[key] for key in LEGACY_VARIANT_KEYS if key in raw}
    for key in ("quarter", "courseInstructors"):
        if key in raw:
            variant[key] = raw[key]

    upgraded = {
        "schedules": {DEFAULT_SCHEDULE_NAME: variant},
        "currentSchedule": DEFAULT_SCHEDULE_NAME,
    }
    for key in UI_STATE_KEYS:
        if key in raw:
            upgraded[key] = raw[key]
    return upgraded


def upgrade_multi_variant(raw: Dict) -> Dict:
    """Build the global course catalog out of every variant's embedded courses."""
    catalog: List[Dict] = []
    schedules = _as_dict(raw.get("schedules"))
    for variant in schedules.values():
        if isinstance(variant, dict):
            extract_embedded_courses(variant, catalog)

    raw["schedules"] = schedules
    raw["programs"] = []
    raw["courseCatalog"] = catalog
    return raw


def upgrade_pre_global_instructors(raw: Dict) -> Dict:
    """Harvest per-variant instructors into one global, id-deduplicated list."""
    harvested = list(_as_list(raw.get("instructors")))
    for variant in _as_dict(raw.get("schedules")).values():
        if isinstance(variant, dict):
            harvested.extend(_as_list(variant.pop("instructors", None)))

    raw["instructors"] = _dedupe_by_id(harvested)
    return raw


UPGRADE_STEPS: Dict[LegacyShape, Callable[[Dict], Dict]] = {
    LegacyShape.SINGLE_VARIANT: upgrade_single_variant,
    LegacyShape.MULTI_VARIANT_NO_CATALOG: upgrade_multi_variant,
    LegacyShape.PRE_GLOBAL_INSTRUCTORS: upgrade_pre_global_instructors,
}

NEXT_SHAPE: Dict[LegacyShape, LegacyShape] = {
    LegacyShape.SINGLE_VARIANT: LegacyShape.MULTI_VARIANT_NO_CATALOG,
    LegacyShape.MULTI_VARIANT_NO_CATALOG: LegacyShape.PRE_GLOBAL_INSTRUCTORS,
    LegacyShape.PRE_GLOBAL_INSTRUCTORS: LegacyShape.CURRENT,
}


# ---------------------------------------------------------------------------
# Defaults, applied to every snapshot after upgrading
# ---------------------------------------------------------------------------

def _normalize_timeslots(timeslots: Any) -> Dict[str, List[str]]:
    if isinstance(timeslots, list):
        # Oldest shape: one list shared by every weekday
        timeslots = {day: list(timeslots) for day in WEEKDAYS}
    timeslots = _as_dict(timeslots)

    normalized = {}
    for day in WEEKDAYS:
        intervals = [slot for slot in _as_list(timeslots.get(day)) if isinstance(slot, str) and slot]
        normalized[day] = sorted(set(intervals))
    normalized[ARRANGED_DAY] = []
    return normalized


def _normalize_placement(value: Any) -> Optional[Dict]:
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        # Oldest grid cells held the bare course id
        return {"courseId": str(value), "modality": MODALITY_IN_PERSON, "section": ""}
    if not isinstance(value, dict) or value.get("courseId") in (None, ""):
        return None

    value["courseId"] = str(value["courseId"])
    if value.get("modality") not in MODALITIES:
        value["modality"] = MODALITY_IN_PERSON
    value["section"] = str(value.get("section") or "")
    return value


def _normalize_cell(value: Any) -> List[Dict]:
    if isinstance(value, list):
        candidates = value
    else:
        candidates = [value]
    placements = []
    for candidate in candidates:
        placement = _normalize_placement(candidate)
        if placement is not None:
            placements.append(placement)
    return placements


def _normalize_grid(variant: Dict, classroom_ids: List[str], course_ids: Set[str],
                    remap: Dict[str, str]) -> Dict:
    raw_grid = _as_dict(variant.get("schedule"))
    grid = {}
    for classroom_id in classroom_ids:
        raw_days = _as_dict(raw_grid.get(classroom_id))
        days = {}
        for day in DAYS:
            slots = {}
            for slot_key, value in _as_dict(raw_days.get(day)).items():
                placements = []
                for placement in _normalize_cell(value):
                    placement["courseId"] = remap.get(placement["courseId"], placement["courseId"])
                    if placement["courseId"] in course_ids:
                        placements.append(placement)
                if placements:
                    slots[str(slot_key)] = placements
            days[day] = slots
        grid[classroom_id] = days

    dropped = [key for key in raw_grid if key not in grid]
    if dropped:
        logger.debug(f"Dropping grid entries for unknown classrooms: {dropped}")
    return grid


def prune_assignments(variant: Dict, course_ids: Set[str], instructor_ids: Set[str],
                      remap: Optional[Dict[str, str]] = None) -> None:
    """
    Drop assignment keys that point at unknown courses or instructors, or
    whose section no longer has a placement in the variant. Surviving keys
    are rewritten in canonical form.
    """
    placed_sections = set()
    for days in variant["schedule"].values():
        for slots in days.values():
            for placements in slots.values():
                for placement in placements:
                    placed_sections.add((placement["courseId"], placement["section"]))

    assignments = {}
    for key, instructor_id in _as_dict(variant.get("courseInstructors")).items():
        if instructor_id in (None, ""):
            continue
        instructor_id = str(instructor_id)
        course_id, section = _resolve_assignment_key(str(key), remap or {})
        if course_id not in course_ids or instructor_id not in instructor_ids:
            continue
        if section and (course_id, section) not in placed_sections:
            continue
        canonical = f"{course_id}{SECTION_SEPARATOR}{section}" if section else course_id
        assignments.setdefault(canonical, instructor_id)
    variant["courseInstructors"] = assignments


def normalize_variant(variant: Any, catalog: List[Dict], instructors: List[Dict],
                      course_remap: Optional[Dict[str, str]] = None) -> Dict:
    """
    Bring one variant payload to the current shape.

    ``catalog`` and ``instructors`` are the root lists; stray embedded courses
    and instructors found in the variant are merged into them.
    ``course_remap`` maps renamed course ids (see ``sanitize_course_ids``).
    """
    variant = _as_dict(variant)
    remap = course_remap if course_remap is not None else {}

    if "courses" in variant:
        extract_embedded_courses(variant, catalog, remap)
        for course in catalog:
            apply_course_defaults(course)
    sanitize_course_ids(catalog, remap)

    stray_instructors = variant.pop("instructors", None)
    if isinstance(stray_instructors, list):
        known = {instructor["id"] for instructor in instructors}
        for instructor in _dedupe_by_id(stray_instructors):
            if instructor["id"] not in known:
                instructors.append(apply_instructor_defaults(instructor))
                known.add(instructor["id"])

    quarter = variant.get("quarter")
    variant["quarter"] = quarter if isinstance(quarter, str) else ""
    variant["courseInstructors"] = _as_dict(variant.get("courseInstructors"))

    classrooms = _dedupe_by_id(variant.get("classrooms"))
    for classroom in classrooms:
        classroom["roomNumber"] = str(classroom.get("roomNumber") or "")
        classroom["timeslots"] = _normalize_timeslots(classroom.get("timeslots"))
        classroom["visible"] = bool(classroom.get("visible", True))
        if classroom.get("timeslotFormExpanded") is None:
            classroom["timeslotFormExpanded"] = True
        classroom["timeslotFormExpanded"] = bool(classroom["timeslotFormExpanded"])
    variant["classrooms"] = classrooms

    course_ids = {course["id"] for course in catalog}
    variant["schedule"] = _normalize_grid(variant, [c["id"] for c in classrooms], course_ids, remap)

    instructor_ids = {instructor["id"] for instructor in instructors}
    prune_assignments(variant, course_ids, instructor_ids, remap)
    return variant


def _normalize_collapsed_sections(value: Any) -> List[str]:
    if isinstance(value, dict):
        return [str(key) for key, collapsed in value.items() if collapsed]
    return _unique_strings(value)


def apply_defaults(raw: Dict) -> Dict:
    """Fill every field a current-shape snapshot is allowed to omit."""
    raw["programs"] = _dedupe_by_id(raw.get("programs"))
    for program in raw["programs"]:
        program["name"] = str(program.get("name") or "")
    raw["courseCatalog"] = _dedupe_by_id(raw.get("courseCatalog"))
    raw["instructors"] = _dedupe_by_id(raw.get("instructors"))
    raw["collapsedSections"] = _normalize_collapsed_sections(raw.get("collapsedSections"))
    raw["instructorFilter"] = _unique_strings(raw.get("instructorFilter"))
    program_filter = raw.get("programFilter")
    raw["programFilter"] = str(program_filter) if program_filter not in (None, "") else ""

    schedules = {
        str(name): variant
        for name, variant in _as_dict(raw.get("schedules")).items()
        if str(name)
    }
    if not schedules:
        schedules = {DEFAULT_SCHEDULE_NAME: {}}
    raw["schedules"] = schedules
    current = raw.get("currentSchedule")
    if not isinstance(current, str) or current not in schedules:
        raw["currentSchedule"] = next(iter(schedules))

    for course in raw["courseCatalog"]:
        apply_course_defaults(course)
    course_remap: Dict[str, str] = {}
    sanitize_course_ids(raw["courseCatalog"], course_remap)

    for instructor in raw["instructors"]:
        apply_instructor_defaults(instructor)

    for name in list(schedules):
        schedules[name] = normalize_variant(
            schedules[name], raw["courseCatalog"], raw["instructors"], course_remap
        )

    program_ids = {program["id"] for program in raw["programs"]}
    instructor_ids = {instructor["id"] for instructor in raw["instructors"]}
    raw["instructorFilter"] = [i for i in raw["instructorFilter"] if i in instructor_ids]
    if raw["programFilter"] and raw["programFilter"] not in program_ids:
        raw["programFilter"] = ""

    for key in list(raw):
        if key not in ("programs", "courseCatalog", "instructors", "schedules", "currentSchedule") + UI_STATE_KEYS:
            del raw[key]
    return raw


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def upgrade_snapshot(raw: Any) -> Optional[Dict]:
    """
    Upgrade a raw snapshot to a normalized current-shape dict.

    Returns None if the snapshot is not recognizable. The input is not
    modified.
    """
    shape = detect_shape(raw)
    if shape == LegacyShape.UNRECOGNIZED:
        return None

    data = copy.deepcopy(raw)
    if shape != LegacyShape.CURRENT:
        logger.info(f"Migrating snapshot from legacy shape '{shape.value}'")
    while shape != LegacyShape.CURRENT:
        data = UPGRADE_STEPS[shape](data)
        shape = NEXT_SHAPE[shape]

    return apply_defaults(data)


def recover(raw: Any) -> Optional[Store]:
    """Like ``normalize``, but returns None when ``raw`` holds nothing recoverable."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Persisted snapshot is not valid JSON: {e}")
            return None

    try:
        data = upgrade_snapshot(raw)
        if data is None:
            logger.warning("Unrecognized snapshot shape")
            return None
        return Store.from_dict(data)
    except (TypeError, ValueError, KeyError, AttributeError, ArithmeticError) as e:
        logger.warning(f"Could not migrate persisted snapshot: {e}", exc_info=True)
        return None


def normalize(raw: Any) -> Store:
    """
    Produce a fully normalized store from any persisted snapshot.

    Never raises: absent data yields the default store, and unrecognizable
    data is logged and replaced by the default store.
    """
    if raw is None:
        return Store()
    store = recover(raw)
    if store is None:
        logger.warning("Starting with an empty store")
        return Store()
    return store
