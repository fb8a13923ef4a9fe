"""
Test script for schedule variant mutators.
Checks:
1. Variant lifecycle (create, copy, rename, delete, last-variant guard)
2. Time slot editing never leaves orphaned grid cells
3. Placement and assignment refusals
4. Assignment key round-trip
"""

import sys
import os
import copy

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workload_scheduler.models import Store, AssignmentKey, Placement
from workload_scheduler.services import variants
from workload_scheduler.services.catalog import add_course, add_instructor
from workload_scheduler.services.queries import get_current_variant
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason
from workload_scheduler.core.config import DEFAULT_SCHEDULE_NAME, WEEKDAYS

SLOT = "09:00-10:00"


def store_with_room():
    store = Store()
    course = add_course(store, "Algebra", 5)
    room = variants.add_classroom(store, "101")
    variants.add_timeslot(store, room.id, "Monday", "09:00", "10:00")
    return store, course, room


def assert_no_empty_cells(store):
    for variant in store.schedules.values():
        for classroom_id, day, slot_key, placements in variant.iter_cells():
            assert placements, f"empty cell {classroom_id} {day} {slot_key}"


def test_assignment_key_round_trip():
    assert AssignmentKey("c1").to_string() == "c1"
    assert AssignmentKey("c1", "").to_string() == "c1"
    assert AssignmentKey("c1", "A").to_string() == "c1::A"
    assert AssignmentKey.parse("c1") == AssignmentKey("c1")
    assert AssignmentKey.parse("c1::A") == AssignmentKey("c1", "A")
    assert AssignmentKey.parse(AssignmentKey("c1", "B").to_string()) == AssignmentKey("c1", "B")


def test_last_variant_cannot_be_deleted():
    print("=" * 60)
    print("TESTING LAST-VARIANT GUARD")
    print("=" * 60)

    store = Store()
    before = copy.deepcopy(store)

    with pytest.raises(MutationRefused) as excinfo:
        variants.delete_variant(store, DEFAULT_SCHEDULE_NAME)

    assert excinfo.value.reason == RefusalReason.LAST_VARIANT
    assert store == before


def test_create_copy_and_delete_variant():
    store, course, room = store_with_room()
    variants.set_variant_quarter(store, "Fall")
    variants.place(store, room.id, "Monday", SLOT, course.id)

    copied = variants.create_variant(store, "Winter Plan", "Winter", copy_from_current=True)
    assert store.current_schedule == "Winter Plan"
    assert copied.quarter == "Winter"
    assert [p.course_id for p in copied.iter_placements()] == [course.id]

    # The copy is independent of its source
    variants.unplace(store, room.id, "Monday", SLOT, 0)
    assert list(store.schedules[DEFAULT_SCHEDULE_NAME].iter_placements()) == [Placement(course.id)]

    variants.create_variant(store, "Empty Plan")
    assert get_current_variant(store).classrooms == []

    variants.delete_variant(store, "Empty Plan")
    assert store.current_schedule == DEFAULT_SCHEDULE_NAME
    assert list(store.schedules) == [DEFAULT_SCHEDULE_NAME, "Winter Plan"]


def test_variant_name_refusals():
    store = Store()
    with pytest.raises(MutationRefused) as excinfo:
        variants.create_variant(store, DEFAULT_SCHEDULE_NAME)
    assert excinfo.value.reason == RefusalReason.NAME_EXISTS

    with pytest.raises(MutationRefused) as excinfo:
        variants.create_variant(store, "   ")
    assert excinfo.value.reason == RefusalReason.INVALID_NAME

    with pytest.raises(MutationRefused) as excinfo:
        variants.create_variant(store, "Plan", "Autumn")
    assert excinfo.value.reason == RefusalReason.INVALID_VALUE

    with pytest.raises(MutationRefused) as excinfo:
        variants.switch_variant(store, "Nope")
    assert excinfo.value.reason == RefusalReason.NOT_FOUND


def test_rename_keeps_order_and_current():
    store = Store()
    variants.create_variant(store, "B")
    variants.create_variant(store, "C")
    variants.switch_variant(store, "B")

    variants.rename_variant(store, "B", "Bravo")

    assert list(store.schedules) == [DEFAULT_SCHEDULE_NAME, "Bravo", "C"]
    assert store.current_schedule == "Bravo"

    with pytest.raises(MutationRefused) as excinfo:
        variants.rename_variant(store, "Bravo", "C")
    assert excinfo.value.reason == RefusalReason.NAME_EXISTS


def test_add_timeslot_keeps_sorted_unique_intervals():
    store, _, room = store_with_room()
    variants.add_timeslot(store, room.id, "Monday", "08:00", "09:00")
    variants.add_timeslot(store, room.id, "Monday", "09:00", "10:00")

    assert room.timeslots["Monday"] == ["08:00-09:00", "09:00-10:00"]


def test_add_timeslot_refusals():
    store, _, room = store_with_room()
    before = copy.deepcopy(store)

    for start, end in (("10:00", "09:00"), ("10:00", "10:00"), ("9:00", "10:00"), ("24:00", "25:00")):
        with pytest.raises(MutationRefused) as excinfo:
            variants.add_timeslot(store, room.id, "Tuesday", start, end)
        assert excinfo.value.reason == RefusalReason.INVALID_INTERVAL

    with pytest.raises(MutationRefused) as excinfo:
        variants.add_timeslot(store, room.id, "Arranged", "09:00", "10:00")
    assert excinfo.value.reason == RefusalReason.INVALID_SLOT

    assert store == before


def test_remove_timeslot_drops_cells_and_section_assignments():
    store, course, room = store_with_room()
    instructor = add_instructor(store, "Ada Lovelace")
    variants.place(store, room.id, "Monday", SLOT, course.id, "in-person", "A")
    variants.assign_instructor(store, course.id, "A", instructor.id)
    variants.assign_instructor(store, course.id, "", instructor.id)

    variants.remove_timeslot(store, room.id, "Monday", SLOT)

    variant = get_current_variant(store)
    assert room.timeslots["Monday"] == []
    assert SLOT not in variant.schedule[room.id]["Monday"]
    assert variant.course_instructors == {AssignmentKey(course.id): instructor.id}
    assert_no_empty_cells(store)


def test_copy_timeslots_to_other_weekdays():
    store, course, room = store_with_room()
    variants.add_timeslot(store, room.id, "Tuesday", "13:00", "14:00")
    variants.place(store, room.id, "Tuesday", "13:00-14:00", course.id)
    variants.place(store, room.id, "Arranged", "arranged", course.id)

    variants.copy_timeslots(store, room.id, "Monday")

    for day in WEEKDAYS:
        assert room.timeslots[day] == [SLOT]
    assert room.timeslots["Arranged"] == []
    variant = get_current_variant(store)
    assert variant.schedule[room.id]["Tuesday"] == {}
    assert variant.schedule[room.id]["Arranged"]["arranged"] == [Placement(course.id)]


def test_place_refusals():
    store, course, room = store_with_room()
    before = copy.deepcopy(store)

    cases = [
        ((room.id, "Monday", "11:00-12:00", course.id), RefusalReason.INVALID_SLOT),
        ((room.id, "Arranged", SLOT, course.id), RefusalReason.INVALID_SLOT),
        ((room.id, "Sunday", SLOT, course.id), RefusalReason.INVALID_SLOT),
        (("missing", "Monday", SLOT, course.id), RefusalReason.NOT_FOUND),
        ((room.id, "Monday", SLOT, "missing"), RefusalReason.NOT_FOUND),
    ]
    for args, reason in cases:
        with pytest.raises(MutationRefused) as excinfo:
            variants.place(store, *args)
        assert excinfo.value.reason == reason

    with pytest.raises(MutationRefused) as excinfo:
        variants.place(store, room.id, "Monday", SLOT, course.id, "carrier-pigeon")
    assert excinfo.value.reason == RefusalReason.INVALID_VALUE

    assert store == before


def test_unplace_and_modality():
    store, course, room = store_with_room()
    variants.place(store, room.id, "Monday", SLOT, course.id)
    variants.place(store, room.id, "Monday", SLOT, course.id, "online", "B")

    variants.set_placement_modality(store, room.id, "Monday", SLOT, 0, "hybrid")
    cell = get_current_variant(store).schedule[room.id]["Monday"][SLOT]
    assert [p.modality for p in cell] == ["hybrid", "online"]

    removed = variants.unplace(store, room.id, "Monday", SLOT, 1)
    assert removed == Placement(course.id, "online", "B")
    variants.unplace(store, room.id, "Monday", SLOT, 0)
    assert SLOT not in get_current_variant(store).schedule[room.id]["Monday"]
    assert_no_empty_cells(store)

    with pytest.raises(MutationRefused) as excinfo:
        variants.unplace(store, room.id, "Monday", SLOT, 0)
    assert excinfo.value.reason == RefusalReason.NOT_FOUND


def test_assign_instructor_refusals_and_clear():
    store, course, room = store_with_room()
    instructor = add_instructor(store, "Ada Lovelace")

    with pytest.raises(MutationRefused) as excinfo:
        variants.assign_instructor(store, course.id, "Z", instructor.id)
    assert excinfo.value.reason == RefusalReason.INVALID_VALUE

    with pytest.raises(MutationRefused) as excinfo:
        variants.assign_instructor(store, course.id, "", "missing")
    assert excinfo.value.reason == RefusalReason.NOT_FOUND

    variants.assign_instructor(store, course.id, "", instructor.id)
    assert get_current_variant(store).instructor_for(course.id) == instructor.id
    variants.assign_instructor(store, course.id, "", None)
    assert get_current_variant(store).course_instructors == {}


def test_delete_classroom_prunes_grid():
    store, course, room = store_with_room()
    instructor = add_instructor(store, "Ada Lovelace")
    variants.place(store, room.id, "Monday", SLOT, course.id, "in-person", "A")
    variants.assign_instructor(store, course.id, "A", instructor.id)

    variants.delete_classroom(store, room.id)

    variant = get_current_variant(store)
    assert variant.classrooms == []
    assert variant.schedule == {}
    assert variant.course_instructors == {}


def test_classroom_ui_flags():
    store, _, room = store_with_room()
    assert variants.toggle_visible(store, room.id) is False
    assert variants.toggle_visible(store, room.id) is True
    variants.set_form_expanded(store, room.id, False)
    assert room.timeslot_form_expanded is False

    with pytest.raises(MutationRefused) as excinfo:
        variants.add_classroom(store, "  ")
    assert excinfo.value.reason == RefusalReason.INVALID_NAME
