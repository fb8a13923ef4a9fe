"""
Export and import of single schedule variants as standalone documents.

Exports are always written at the newest document version. Imports accept
every version ever exported ("1.0" to "4.0") as well as a bare legacy
snapshot, and merge catalogs into the store instead of replacing them.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from workload_scheduler.models import Store, Program, Course, Instructor, ScheduleVariant
from workload_scheduler.services.migrations import (
    LegacyShape, detect_shape, apply_course_defaults, apply_instructor_defaults,
    extract_embedded_courses, sanitize_course_ids, normalize_variant
)
from workload_scheduler.services.queries import get_variant
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason
from workload_scheduler.core.config import (
    EXPORT_VERSION, SUPPORTED_IMPORT_VERSIONS
)
from workload_scheduler.core.logging_config import get_logger

logger = get_logger(__name__)


def export_schedule(store: Store, variant_name: Optional[str] = None) -> Dict[str, Any]:
    name = variant_name or store.current_schedule
    variant = get_variant(store, name)
    return {
        "version": EXPORT_VERSION,
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "scheduleName": name,
        "programs": [program.to_dict() for program in store.programs],
        "courseCatalog": [course.to_dict() for course in store.course_catalog],
        "instructors": [instructor.to_dict() for instructor in store.instructors],
        "data": variant.to_dict(),
    }


def _entries_with_ids(items: Any) -> List[Dict]:
    result = []
    seen = set()
    for item in items if isinstance(items, list) else []:
        if isinstance(item, dict) and item.get("id") not in (None, ""):
            item_id = str(item["id"])
            if item_id not in seen:
                seen.add(item_id)
                result.append(dict(item, id=item_id))
    return result


def _payload_of(document: Any) -> Dict:
    if not isinstance(document, dict):
        raise MutationRefused(RefusalReason.INVALID_VALUE, "Import document must be a JSON object")

    if "data" not in document:
        # Exports from the first release were the bare legacy snapshot
        if detect_shape(document) == LegacyShape.SINGLE_VARIANT:
            return document
        raise MutationRefused(RefusalReason.INVALID_VALUE, "Import document has no schedule data")

    version = document.get("version")
    if version is not None and str(version) not in SUPPORTED_IMPORT_VERSIONS:
        raise MutationRefused(RefusalReason.INVALID_VALUE, f"Unsupported export version {version}")
    if not isinstance(document["data"], dict):
        raise MutationRefused(RefusalReason.INVALID_VALUE, "Schedule data must be a JSON object")
    return document["data"]


def _merge_programs(store: Store, programs: List[Dict]) -> Dict[str, str]:
    """Merge by id, then by name. Returns imported id -> store id."""
    remap: Dict[str, str] = {}
    by_name = {program.name.strip().lower(): program.id for program in store.programs}
    for entry in programs:
        if store.find_program(entry["id"]) is not None:
            remap[entry["id"]] = entry["id"]
            continue
        name = str(entry.get("name") or "").strip()
        existing_id = by_name.get(name.lower())
        if existing_id is not None:
            remap[entry["id"]] = existing_id
            continue
        store.programs.append(Program(id=entry["id"], name=name))
        by_name[name.lower()] = entry["id"]
        remap[entry["id"]] = entry["id"]
    return remap


def _merge_courses(store: Store, courses: List[Dict], program_remap: Dict[str, str]) -> int:
    added = 0
    for entry in courses:
        if store.find_course(entry["id"]) is not None:
            continue
        program_id = entry.get("programId")
        if program_id in program_remap:
            program_id = program_remap[program_id]
        elif store.find_program(program_id) is None:
            program_id = None
        entry["programId"] = program_id
        store.course_catalog.append(Course.from_dict(entry))
        added += 1
    return added


def _merge_instructors(store: Store, instructors: List[Dict]) -> int:
    added = 0
    for entry in instructors:
        if store.find_instructor(entry["id"]) is not None:
            continue
        store.instructors.append(Instructor.from_dict(apply_instructor_defaults(entry)))
        added += 1
    return added


def import_schedule(store: Store, document: Any, target_name: str, overwrite: bool = False) -> ScheduleVariant:
    """
    Import an exported schedule under ``target_name`` and make it current.

    An existing variant of that name is only replaced with ``overwrite=True``.
    Programs, courses and instructors are merged by id (programs also by name).
    """
    name = (target_name or "").strip()
    if not name:
        raise MutationRefused(RefusalReason.INVALID_NAME, "Schedule name cannot be empty")
    if name in store.schedules and not overwrite:
        raise MutationRefused(RefusalReason.NAME_EXISTS, f"Schedule '{name}' already exists")

    payload = copy.deepcopy(_payload_of(document))
    if "data" not in document:
        document = {}

    imported_courses = _entries_with_ids(document.get("courseCatalog"))
    extract_embedded_courses(payload, imported_courses)
    embedded_instructors = payload.pop("instructors", None)
    imported_instructors = _entries_with_ids(
        (document.get("instructors") if isinstance(document.get("instructors"), list) else [])
        + (embedded_instructors if isinstance(embedded_instructors, list) else [])
    )

    program_remap = _merge_programs(store, _entries_with_ids(document.get("programs")))
    catalog = [apply_course_defaults(course) for course in imported_courses]
    course_remap: Dict[str, str] = {}
    sanitize_course_ids(catalog, course_remap)
    added_courses = _merge_courses(store, catalog, program_remap)
    added_instructors = _merge_instructors(store, imported_instructors)

    catalog_dicts = [course.to_dict() for course in store.course_catalog]
    instructor_dicts = [instructor.to_dict() for instructor in store.instructors]
    variant = ScheduleVariant.from_dict(
        normalize_variant(payload, catalog_dicts, instructor_dicts, course_remap)
    )

    store.schedules[name] = variant
    store.current_schedule = name
    logger.info(
        f"Imported schedule '{name}' ({added_courses} new courses, {added_instructors} new instructors)"
    )
    return variant
