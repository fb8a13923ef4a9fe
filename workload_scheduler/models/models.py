"""
Data models for the Course Workload Scheduler.
Defines all data structures used throughout the application.

The dataclasses use snake_case attributes; the persisted snapshot and the
export documents use the camelCase keys produced by ``to_dict``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple
from enum import Enum

from workload_scheduler.core.config import (
    DAYS, ARRANGED_DAY, ARRANGED_SLOT,
    DEFAULT_SCHEDULE_NAME, DEFAULT_INSTRUCTOR_COLOR,
    MODALITY_IN_PERSON, SECTION_SEPARATOR
)


class DiagnosticKind(Enum):
    INSTRUCTOR = "instructor"
    COHORT = "cohort"
    PROGRAM = "program"
    QUARTER = "quarter"
    MISSING_QUARTER = "missing_quarter"


@dataclass(frozen=True)
class AssignmentKey:
    """Compound identity of a (course, section) pair inside a variant."""
    course_id: str
    section: str = ""

    def to_string(self) -> str:
        if not self.section:
            return self.course_id
        return f"{self.course_id}{SECTION_SEPARATOR}{self.section}"

    @classmethod
    def parse(cls, value: str) -> "AssignmentKey":
        course_id, sep, section = value.partition(SECTION_SEPARATOR)
        if not sep:
            return cls(course_id=value)
        return cls(course_id=course_id, section=section)

    def __str__(self):
        return self.to_string()


@dataclass
class Program:
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Program":
        return cls(id=str(data["id"]), name=str(data.get("name") or ""))


@dataclass
class Course:
    id: str
    name: str
    credits: int
    program_id: Optional[str] = None
    course_number: str = ""
    quarter_taken: Optional[str] = None
    quarters_offered: List[str] = field(default_factory=list)

    def is_offered_in(self, quarter: str) -> bool:
        """Empty ``quarters_offered`` means the course runs on demand."""
        if not self.quarters_offered:
            return True
        return quarter in self.quarters_offered

    def cohort_label(self) -> str:
        return (self.quarter_taken or "").strip().lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "credits": self.credits,
            "programId": self.program_id,
            "courseNumber": self.course_number,
            "quarterTaken": self.quarter_taken,
            "quartersOffered": list(self.quarters_offered),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            credits=int(data.get("credits", 1)),
            program_id=data.get("programId"),
            course_number=str(data.get("courseNumber") or ""),
            quarter_taken=data.get("quarterTaken"),
            quarters_offered=list(data.get("quartersOffered") or []),
        )


@dataclass
class Instructor:
    id: str
    name: str
    color: str = DEFAULT_INSTRUCTOR_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instructor":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            color=data.get("color") or DEFAULT_INSTRUCTOR_COLOR,
        )


def empty_timeslots() -> Dict[str, List[str]]:
    return {day: [] for day in DAYS}


def empty_grid() -> Dict[str, Dict[str, List["Placement"]]]:
    return {day: {} for day in DAYS}


@dataclass
class Classroom:
    id: str
    room_number: str
    timeslots: Dict[str, List[str]] = field(default_factory=empty_timeslots)
    visible: bool = True
    timeslot_form_expanded: bool = True

    def offers_slot(self, day: str, slot_key: str) -> bool:
        if day == ARRANGED_DAY:
            return slot_key == ARRANGED_SLOT
        return slot_key in self.timeslots.get(day, [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "roomNumber": self.room_number,
            "timeslots": {day: list(slots) for day, slots in self.timeslots.items()},
            "visible": self.visible,
            "timeslotFormExpanded": self.timeslot_form_expanded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Classroom":
        return cls(
            id=str(data["id"]),
            room_number=str(data.get("roomNumber") or ""),
            timeslots={day: list(slots) for day, slots in data.get("timeslots", {}).items()},
            visible=bool(data.get("visible", True)),
            timeslot_form_expanded=bool(data.get("timeslotFormExpanded", True)),
        )


@dataclass
class Placement:
    course_id: str
    modality: str = MODALITY_IN_PERSON
    section: str = ""

    @property
    def key(self) -> AssignmentKey:
        return AssignmentKey(self.course_id, self.section)

    def to_dict(self) -> Dict[str, Any]:
        return {"courseId": self.course_id, "modality": self.modality, "section": self.section}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Placement":
        return cls(
            course_id=str(data["courseId"]),
            modality=data.get("modality") or MODALITY_IN_PERSON,
            section=str(data.get("section") or ""),
        )


Grid = Dict[str, Dict[str, Dict[str, List[Placement]]]]


@dataclass
class ScheduleVariant:
    quarter: str = ""
    course_instructors: Dict[AssignmentKey, str] = field(default_factory=dict)
    classrooms: List[Classroom] = field(default_factory=list)
    schedule: Grid = field(default_factory=dict)

    def find_classroom(self, classroom_id: str) -> Optional[Classroom]:
        for classroom in self.classrooms:
            if classroom.id == classroom_id:
                return classroom
        return None

    def iter_cells(self) -> Iterator[Tuple[str, str, str, List[Placement]]]:
        """Yield (classroom_id, day, slot_key, placements) in insertion order."""
        for classroom_id, days in self.schedule.items():
            for day, slots in days.items():
                for slot_key, placements in slots.items():
                    yield classroom_id, day, slot_key, placements

    def iter_placements(self) -> Iterator[Placement]:
        for _, _, _, placements in self.iter_cells():
            yield from placements

    def instructor_for(self, course_id: str, section: str = "") -> Optional[str]:
        return self.course_instructors.get(AssignmentKey(course_id, section))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quarter": self.quarter,
            "courseInstructors": {
                key.to_string(): instructor_id
                for key, instructor_id in self.course_instructors.items()
            },
            "classrooms": [classroom.to_dict() for classroom in self.classrooms],
            "schedule": {
                classroom_id: {
                    day: {
                        slot_key: [placement.to_dict() for placement in placements]
                        for slot_key, placements in slots.items()
                    }
                    for day, slots in days.items()
                }
                for classroom_id, days in self.schedule.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleVariant":
        return cls(
            quarter=data.get("quarter") or "",
            course_instructors={
                AssignmentKey.parse(key): str(instructor_id)
                for key, instructor_id in data.get("courseInstructors", {}).items()
            },
            classrooms=[Classroom.from_dict(c) for c in data.get("classrooms", [])],
            schedule={
                classroom_id: {
                    day: {
                        slot_key: [Placement.from_dict(p) for p in placements]
                        for slot_key, placements in slots.items()
                    }
                    for day, slots in days.items()
                }
                for classroom_id, days in data.get("schedule", {}).items()
            },
        )


def default_variants() -> Dict[str, ScheduleVariant]:
    return {DEFAULT_SCHEDULE_NAME: ScheduleVariant()}


@dataclass
class Store:
    programs: List[Program] = field(default_factory=list)
    course_catalog: List[Course] = field(default_factory=list)
    instructors: List[Instructor] = field(default_factory=list)
    schedules: Dict[str, ScheduleVariant] = field(default_factory=default_variants)
    current_schedule: str = DEFAULT_SCHEDULE_NAME
    collapsed_sections: List[str] = field(default_factory=list)
    instructor_filter: List[str] = field(default_factory=list)
    program_filter: str = ""

    def find_program(self, program_id: Optional[str]) -> Optional[Program]:
        for program in self.programs:
            if program.id == program_id:
                return program
        return None

    def find_course(self, course_id: Optional[str]) -> Optional[Course]:
        for course in self.course_catalog:
            if course.id == course_id:
                return course
        return None

    def find_instructor(self, instructor_id: Optional[str]) -> Optional[Instructor]:
        for instructor in self.instructors:
            if instructor.id == instructor_id:
                return instructor
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "programs": [program.to_dict() for program in self.programs],
            "courseCatalog": [course.to_dict() for course in self.course_catalog],
            "instructors": [instructor.to_dict() for instructor in self.instructors],
            "schedules": {name: variant.to_dict() for name, variant in self.schedules.items()},
            "currentSchedule": self.current_schedule,
            "collapsedSections": list(self.collapsed_sections),
            "instructorFilter": list(self.instructor_filter),
            "programFilter": self.program_filter,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Store":
        """Build a store from an already normalized snapshot."""
        return cls(
            programs=[Program.from_dict(p) for p in data.get("programs", [])],
            course_catalog=[Course.from_dict(c) for c in data.get("courseCatalog", [])],
            instructors=[Instructor.from_dict(i) for i in data.get("instructors", [])],
            schedules={
                name: ScheduleVariant.from_dict(variant)
                for name, variant in data.get("schedules", {}).items()
            },
            current_schedule=data.get("currentSchedule", DEFAULT_SCHEDULE_NAME),
            collapsed_sections=list(data.get("collapsedSections", [])),
            instructor_filter=list(data.get("instructorFilter", [])),
            program_filter=data.get("programFilter") or "",
        )


@dataclass
class Diagnostic:
    kind: DiagnosticKind
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "data": self.data}


@dataclass
class InstructorWorkload:
    instructor: Instructor
    total_credits: int = 0
    assignments: List[AssignmentKey] = field(default_factory=list)
