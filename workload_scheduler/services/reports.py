"""
Plain-text reports for the command line.
"""

from collections import defaultdict
from typing import Optional

from workload_scheduler.models import Store
from workload_scheduler.services.queries import get_variant, course_display_name, workload_report
from workload_scheduler.services.validator import ScheduleValidator, over_capacity_slots, format_slot
from workload_scheduler.core.config import DAYS


def schedule_report(store: Store, variant_name: Optional[str] = None) -> str:
    """
    Generate a report of one schedule variant: rooms, placements per day,
    instructor workload and every diagnostic.

    Args:
        store: The store to report on
        variant_name: Variant to report (the current one by default)

    Returns:
        Formatted report string
    """
    name = variant_name or store.current_schedule
    variant = get_variant(store, name)

    report = []
    report.append("=" * 80)
    report.append(f"SCHEDULE REPORT: {name}")
    report.append("=" * 80)
    report.append(f"Quarter: {variant.quarter or '(not set)'}")
    report.append(f"Classrooms: {len(variant.classrooms)}")
    report.append(f"Placements: {sum(1 for _ in variant.iter_placements())}")
    report.append("")

    # Placements by day
    report.append("Placements by Day:")
    by_day = defaultdict(int)
    for _, day, _, placements in variant.iter_cells():
        by_day[day] += len(placements)
    for day in DAYS:
        if by_day[day]:
            report.append(f"  {day}: {by_day[day]}")
    report.append("")

    # Room contents
    report.append("Classrooms:")
    for classroom in variant.classrooms:
        report.append(f"  Room {classroom.room_number}:")
        for day, slots in variant.schedule.get(classroom.id, {}).items():
            for slot_key, placements in slots.items():
                for placement in placements:
                    course = store.find_course(placement.course_id)
                    label = course_display_name(store, course) if course else placement.course_id
                    if placement.section:
                        label += f" - Section {placement.section}"
                    report.append(f"    {format_slot(day, slot_key)}: {label} ({placement.modality})")
    report.append("")

    over_capacity = over_capacity_slots(variant)
    if over_capacity:
        report.append("Over In-Person Capacity:")
        for day, slot_key in sorted(over_capacity):
            report.append(f"  {format_slot(day, slot_key)}")
        report.append("")

    report.append("Instructor Workload:")
    for entry in workload_report(store, name):
        report.append(f"  {entry.instructor.name}: {entry.total_credits} credits")
        for key in entry.assignments:
            course = store.find_course(key.course_id)
            label = course.name if course else key.course_id
            if key.section:
                label += f" - Section {key.section}"
            report.append(f"    {label}")
    report.append("")

    diagnostics = ScheduleValidator(store).validate(name)
    report.append(f"Diagnostics: {len(diagnostics)}")
    for diagnostic in diagnostics:
        report.append(f"  [{diagnostic.kind.value}] {diagnostic.message}")
    report.append("=" * 80)

    return "\n".join(report)
