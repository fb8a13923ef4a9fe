"""
Test script for catalog mutators: programs, courses and instructors.
Checks referential integrity after cascades and every refusal reason.
"""

import sys
import os
import copy

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workload_scheduler.models import Store, AssignmentKey
from workload_scheduler.services import catalog
from workload_scheduler.services.variants import (
    add_classroom, add_timeslot, place, assign_instructor, create_variant, switch_variant
)
from workload_scheduler.services.queries import (
    course_display_name, is_course_placed, instructor_workload, workload_report
)
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason
from workload_scheduler.core.config import DEFAULT_INSTRUCTOR_COLOR

SLOT = "09:00-10:00"


def refusal(excinfo):
    return excinfo.value.reason


def test_program_with_courses_cannot_be_deleted():
    store = Store()
    program = catalog.add_program(store, "MATH")
    catalog.add_course(store, "Algebra", 5, program.id)
    before = copy.deepcopy(store)

    with pytest.raises(MutationRefused) as excinfo:
        catalog.delete_program(store, program.id)

    assert refusal(excinfo) == RefusalReason.HAS_DEPENDENT_COURSES
    assert store == before


def test_delete_program_clears_filter():
    store = Store()
    program = catalog.add_program(store, "MATH")
    catalog.set_program_filter(store, program.id)

    catalog.delete_program(store, program.id)

    assert store.programs == []
    assert store.program_filter == ""


def test_edit_program_and_empty_name():
    store = Store()
    program = catalog.add_program(store, "MATH")
    catalog.edit_program(store, program.id, "  Mathematics ")
    assert store.programs[0].name == "Mathematics"

    with pytest.raises(MutationRefused) as excinfo:
        catalog.edit_program(store, program.id, "   ")
    assert refusal(excinfo) == RefusalReason.INVALID_NAME

    with pytest.raises(MutationRefused) as excinfo:
        catalog.edit_program(store, "missing", "X")
    assert refusal(excinfo) == RefusalReason.NOT_FOUND


def test_course_field_validation():
    store = Store()
    for credits in (0, -3, True, "5"):
        with pytest.raises(MutationRefused) as excinfo:
            catalog.add_course(store, "Algebra", credits)
        assert refusal(excinfo) == RefusalReason.INVALID_VALUE

    with pytest.raises(MutationRefused) as excinfo:
        catalog.add_course(store, "Algebra", 5, quarters_offered=["Autumn"])
    assert refusal(excinfo) == RefusalReason.INVALID_VALUE

    with pytest.raises(MutationRefused) as excinfo:
        catalog.add_course(store, "Algebra", 5, program_id="missing")
    assert refusal(excinfo) == RefusalReason.NOT_FOUND

    assert store.course_catalog == []


def test_edit_course_replaces_fields():
    store = Store()
    program = catalog.add_program(store, "MATH")
    course = catalog.add_course(store, "Algebra", 5, program.id, "101", "Q1", ["Fall", "Fall", "Winter"])
    assert course.quarters_offered == ["Fall", "Winter"]

    catalog.edit_course(store, course.id, "Linear Algebra", 4)

    edited = store.find_course(course.id)
    assert edited.name == "Linear Algebra"
    assert edited.credits == 4
    assert edited.program_id is None
    assert edited.course_number == ""
    assert edited.quarter_taken is None
    assert edited.quarters_offered == []


def test_delete_course_cascades_across_variants():
    """No variant's grid or assignments reference a deleted course, sectioned keys included."""
    print("=" * 60)
    print("TESTING COURSE DELETION CASCADE")
    print("=" * 60)

    store = Store()
    course = catalog.add_course(store, "Algebra", 5)
    other = catalog.add_course(store, "Geometry", 3)
    instructor = catalog.add_instructor(store, "Ada Lovelace")

    for name in ("Fall Plan", "Spring Plan"):
        create_variant(store, name)
        room = add_classroom(store, "101")
        add_timeslot(store, room.id, "Monday", "09:00", "10:00")
        place(store, room.id, "Monday", SLOT, course.id, "in-person", "A")
        place(store, room.id, "Monday", SLOT, other.id)
        place(store, room.id, "Arranged", "arranged", course.id)
        assign_instructor(store, course.id, "A", instructor.id)
        assign_instructor(store, course.id, "", instructor.id)

    catalog.delete_course(store, course.id)

    assert store.find_course(course.id) is None
    for name, variant in store.schedules.items():
        assert all(p.course_id != course.id for p in variant.iter_placements())
        assert all(key.course_id != course.id for key in variant.course_instructors)
        for _, _, _, placements in variant.iter_cells():
            assert placements, f"empty cell left in {name}"
        print(f"  {name}: clean")
    assert [p.course_id for p in store.schedules["Fall Plan"].iter_placements()] == [other.id]


def test_instructor_with_assignments_cannot_be_deleted():
    store = Store()
    course = catalog.add_course(store, "Algebra", 5)
    instructor = catalog.add_instructor(store, "Ada Lovelace")
    create_variant(store, "Other")
    assign_instructor(store, course.id, "", instructor.id)
    switch_variant(store, "Default Schedule")
    before = copy.deepcopy(store)

    with pytest.raises(MutationRefused) as excinfo:
        catalog.delete_instructor(store, instructor.id)

    assert refusal(excinfo) == RefusalReason.HAS_ASSIGNMENTS
    assert "Other" in excinfo.value.detail
    assert store == before


def test_delete_instructor_cleans_filter():
    store = Store()
    ada = catalog.add_instructor(store, "Ada Lovelace")
    grace = catalog.add_instructor(store, "Grace Hopper", "#ff8800")
    catalog.set_instructor_filter(store, [ada.id, grace.id, ada.id])
    assert store.instructor_filter == [ada.id, grace.id]

    catalog.delete_instructor(store, ada.id)

    assert [i.id for i in store.instructors] == [grace.id]
    assert store.instructor_filter == [grace.id]


def test_instructor_color_defaults_and_edits():
    store = Store()
    instructor = catalog.add_instructor(store, "Ada Lovelace")
    assert instructor.color == DEFAULT_INSTRUCTOR_COLOR

    catalog.edit_instructor(store, instructor.id, "Ada King", "#222222")
    assert store.instructors[0].name == "Ada King"
    assert store.instructors[0].color == "#222222"

    with pytest.raises(MutationRefused) as excinfo:
        catalog.set_instructor_filter(store, ["missing"])
    assert refusal(excinfo) == RefusalReason.NOT_FOUND


def test_toggle_collapsed_section():
    store = Store()
    assert catalog.toggle_collapsed_section(store, "courses") is True
    assert store.collapsed_sections == ["courses"]
    assert catalog.toggle_collapsed_section(store, "courses") is False
    assert store.collapsed_sections == []


def test_course_display_name():
    store = Store()
    program = catalog.add_program(store, "MATH")
    full = catalog.add_course(store, "Algebra", 5, program.id, "101")
    no_number = catalog.add_course(store, "Geometry", 5, program.id)
    no_program = catalog.add_course(store, "Statistics", 5, course_number="210")
    bare = catalog.add_course(store, "Orientation", 1)

    assert course_display_name(store, full) == "MATH 101 - Algebra"
    assert course_display_name(store, no_number) == "MATH - Geometry"
    assert course_display_name(store, no_program) == "210 - Statistics"
    assert course_display_name(store, bare) == "Orientation"


def test_workload_counts_unique_placed_pairs():
    """A cross-listed pair counts once; an unplaced assignment counts zero."""
    store = Store()
    algebra = catalog.add_course(store, "Algebra", 5)
    geometry = catalog.add_course(store, "Geometry", 3)
    unplaced = catalog.add_course(store, "Statistics", 4)
    instructor = catalog.add_instructor(store, "Ada Lovelace")
    room_a = add_classroom(store, "101")
    room_b = add_classroom(store, "102")
    for room in (room_a, room_b):
        add_timeslot(store, room.id, "Monday", "09:00", "10:00")

    place(store, room_a.id, "Monday", SLOT, algebra.id)
    place(store, room_b.id, "Monday", SLOT, algebra.id, "online")
    place(store, room_a.id, "Arranged", "arranged", geometry.id, "online", "B")
    assign_instructor(store, algebra.id, "", instructor.id)
    assign_instructor(store, geometry.id, "B", instructor.id)
    assign_instructor(store, unplaced.id, "", instructor.id)

    assert instructor_workload(store, instructor.id) == 8
    assert is_course_placed(store, algebra.id)
    assert not is_course_placed(store, unplaced.id)

    report = workload_report(store)
    assert len(report) == 1
    assert report[0].total_credits == 8
    assert report[0].assignments == [AssignmentKey(algebra.id), AssignmentKey(geometry.id, "B")]
