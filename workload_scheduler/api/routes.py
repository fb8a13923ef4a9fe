"""
API routes for the collaborator-facing surface: store mutations, validation
and read accessors.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional, Callable
from datetime import datetime

from workload_scheduler.models import Store
from workload_scheduler.services import catalog, variants, transfer
from workload_scheduler.services.queries import (
    get_variant, course_display_name, is_course_placed, workload_report
)
from workload_scheduler.services.validator import over_capacity_cells, summarize
from workload_scheduler.services.workspace import Workspace, get_workspace
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason
from workload_scheduler.core.config import MODALITY_IN_PERSON, DAYS, QUARTERS, MODALITIES
from workload_scheduler.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["schedule"])


class NameRequest(BaseModel):
    name: str


class CourseRequest(BaseModel):
    name: str
    credits: int
    program_id: Optional[str] = None
    course_number: str = ""
    quarter_taken: Optional[str] = None
    quarters_offered: List[str] = Field(default_factory=list)


class InstructorRequest(BaseModel):
    name: str
    color: Optional[str] = None


class ScheduleRequest(BaseModel):
    name: str
    quarter: str = ""
    copy_from_current: bool = False


class QuarterRequest(BaseModel):
    quarter: str = ""


class ClassroomRequest(BaseModel):
    room_number: str


class FormExpandedRequest(BaseModel):
    expanded: bool


class TimeslotRequest(BaseModel):
    day: str
    start: str
    end: str


class CopyTimeslotsRequest(BaseModel):
    source_day: str


class PlacementRequest(BaseModel):
    classroom_id: str
    day: str
    slot: str
    course_id: str
    modality: str = MODALITY_IN_PERSON
    section: str = ""


class ModalityRequest(BaseModel):
    classroom_id: str
    day: str
    slot: str
    index: int
    modality: str


class AssignmentRequest(BaseModel):
    course_id: str
    section: str = ""
    instructor_id: Optional[str] = None


class InstructorFilterRequest(BaseModel):
    instructor_ids: List[str] = Field(default_factory=list)


class ProgramFilterRequest(BaseModel):
    program_id: Optional[str] = None


class ImportRequest(BaseModel):
    name: str
    overwrite: bool = False
    document: Dict[str, Any]


class DiagnosticResponse(BaseModel):
    """Response model for a single diagnostic."""
    kind: str
    message: str
    data: Dict[str, Any]


class ValidationResponse(BaseModel):
    """Response model for schedule validation."""
    schedule: str
    diagnostics: List[DiagnosticResponse]
    summary: Dict[str, Any]
    over_capacity_cells: List[Dict[str, str]]


class WorkloadResponse(BaseModel):
    """Credits per instructor in one schedule."""
    instructor_id: str
    name: str
    color: str
    credits: int
    assignments: List[str]


def _apply(workspace: Workspace, mutator: Callable, *args, **kwargs):
    """Run a mutator through the workspace, mapping refusals to HTTP errors."""
    try:
        return workspace.apply(mutator, *args, **kwargs)
    except MutationRefused as e:
        status_code = 404 if e.reason == RefusalReason.NOT_FOUND else 409
        raise HTTPException(status_code=status_code, detail={"reason": e.reason.value, "detail": e.detail})


def _read_variant(store: Store, schedule: Optional[str]) -> str:
    name = schedule or store.current_schedule
    try:
        get_variant(store, name)
    except MutationRefused as e:
        raise HTTPException(status_code=404, detail={"reason": e.reason.value, "detail": e.detail})
    return name


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@router.get("/options")
async def get_options():
    """Fixed vocabularies the forms offer."""
    return {"days": DAYS, "quarters": QUARTERS, "modalities": MODALITIES}


@router.get("/store")
async def get_store(workspace: Workspace = Depends(get_workspace)):
    return workspace.store.to_dict()


@router.get("/validation", response_model=ValidationResponse)
async def get_validation(schedule: Optional[str] = None, workspace: Workspace = Depends(get_workspace)):
    """
    Validate a schedule variant (the current one by default).

    Returns the ordered diagnostics plus the occupied cells that are over
    the in-person capacity.
    """
    store = workspace.store
    name = _read_variant(store, schedule)
    diagnostics = workspace.validate(name)
    cells = sorted(over_capacity_cells(store.schedules[name]))
    return ValidationResponse(
        schedule=name,
        diagnostics=[DiagnosticResponse(**d.to_dict()) for d in diagnostics],
        summary=summarize(diagnostics),
        over_capacity_cells=[
            {"classroom_id": classroom_id, "day": day, "slot": slot}
            for classroom_id, day, slot in cells
        ],
    )


@router.get("/workload", response_model=List[WorkloadResponse])
async def get_workload(schedule: Optional[str] = None, workspace: Workspace = Depends(get_workspace)):
    store = workspace.store
    name = _read_variant(store, schedule)
    return [
        WorkloadResponse(
            instructor_id=entry.instructor.id,
            name=entry.instructor.name,
            color=entry.instructor.color,
            credits=entry.total_credits,
            assignments=[key.to_string() for key in entry.assignments],
        )
        for entry in workload_report(store, name)
    ]


# Programs

@router.post("/programs")
async def create_program(request: NameRequest, workspace: Workspace = Depends(get_workspace)):
    return _apply(workspace, catalog.add_program, request.name).to_dict()


@router.put("/programs/{program_id}")
async def update_program(program_id: str, request: NameRequest, workspace: Workspace = Depends(get_workspace)):
    return _apply(workspace, catalog.edit_program, program_id, request.name).to_dict()


@router.delete("/programs/{program_id}")
async def remove_program(program_id: str, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, catalog.delete_program, program_id)
    return {"success": True}


# Courses

@router.get("/courses")
async def list_courses(workspace: Workspace = Depends(get_workspace)):
    """Catalog courses with their display name and whether the current schedule places them."""
    store = workspace.store
    return [
        dict(
            course.to_dict(),
            displayName=course_display_name(store, course),
            placed=is_course_placed(store, course.id),
        )
        for course in store.course_catalog
    ]


@router.post("/courses")
async def create_course(request: CourseRequest, workspace: Workspace = Depends(get_workspace)):
    course = _apply(
        workspace, catalog.add_course,
        request.name, request.credits, request.program_id,
        request.course_number, request.quarter_taken, request.quarters_offered,
    )
    return course.to_dict()


@router.put("/courses/{course_id}")
async def update_course(course_id: str, request: CourseRequest, workspace: Workspace = Depends(get_workspace)):
    course = _apply(
        workspace, catalog.edit_course, course_id,
        request.name, request.credits, request.program_id,
        request.course_number, request.quarter_taken, request.quarters_offered,
    )
    return course.to_dict()


@router.delete("/courses/{course_id}")
async def remove_course(course_id: str, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, catalog.delete_course, course_id)
    return {"success": True}


# Instructors

@router.post("/instructors")
async def create_instructor(request: InstructorRequest, workspace: Workspace = Depends(get_workspace)):
    return _apply(workspace, catalog.add_instructor, request.name, request.color).to_dict()


@router.put("/instructors/{instructor_id}")
async def update_instructor(instructor_id: str, request: InstructorRequest,
                            workspace: Workspace = Depends(get_workspace)):
    return _apply(workspace, catalog.edit_instructor, instructor_id, request.name, request.color).to_dict()


@router.delete("/instructors/{instructor_id}")
async def remove_instructor(instructor_id: str, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, catalog.delete_instructor, instructor_id)
    return {"success": True}


# Schedule variants

@router.post("/schedules")
async def create_schedule(request: ScheduleRequest, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.create_variant, request.name, request.quarter, request.copy_from_current)
    return {"success": True, "current_schedule": workspace.store.current_schedule}


@router.put("/schedules/{name}")
async def rename_schedule(name: str, request: NameRequest, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.rename_variant, name, request.name)
    return {"success": True, "current_schedule": workspace.store.current_schedule}


@router.delete("/schedules/{name}")
async def remove_schedule(name: str, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.delete_variant, name)
    return {"success": True, "current_schedule": workspace.store.current_schedule}


@router.post("/schedules/{name}/activate")
async def activate_schedule(name: str, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.switch_variant, name)
    return {"success": True, "current_schedule": name}


@router.put("/schedules/{name}/quarter")
async def update_schedule_quarter(name: str, request: QuarterRequest, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.set_variant_quarter, request.quarter, name)
    return {"success": True}


# Classrooms and time slots (current schedule)

@router.post("/classrooms")
async def create_classroom(request: ClassroomRequest, workspace: Workspace = Depends(get_workspace)):
    return _apply(workspace, variants.add_classroom, request.room_number).to_dict()


@router.delete("/classrooms/{classroom_id}")
async def remove_classroom(classroom_id: str, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.delete_classroom, classroom_id)
    return {"success": True}


@router.post("/classrooms/{classroom_id}/toggle-visible")
async def toggle_classroom(classroom_id: str, workspace: Workspace = Depends(get_workspace)):
    visible = _apply(workspace, variants.toggle_visible, classroom_id)
    return {"success": True, "visible": visible}


@router.put("/classrooms/{classroom_id}/form-expanded")
async def update_form_expanded(classroom_id: str, request: FormExpandedRequest,
                               workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.set_form_expanded, classroom_id, request.expanded)
    return {"success": True}


@router.post("/classrooms/{classroom_id}/timeslots")
async def create_timeslot(classroom_id: str, request: TimeslotRequest, workspace: Workspace = Depends(get_workspace)):
    interval = _apply(workspace, variants.add_timeslot, classroom_id, request.day, request.start, request.end)
    return {"success": True, "interval": interval}


@router.delete("/classrooms/{classroom_id}/timeslots")
async def remove_timeslot(classroom_id: str, day: str, interval: str, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.remove_timeslot, classroom_id, day, interval)
    return {"success": True}


@router.post("/classrooms/{classroom_id}/timeslots/copy")
async def copy_timeslots(classroom_id: str, request: CopyTimeslotsRequest,
                         workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.copy_timeslots, classroom_id, request.source_day)
    return {"success": True}


# Placements and assignments (current schedule)

@router.post("/placements")
async def create_placement(request: PlacementRequest, workspace: Workspace = Depends(get_workspace)):
    placement = _apply(
        workspace, variants.place,
        request.classroom_id, request.day, request.slot,
        request.course_id, request.modality, request.section,
    )
    return placement.to_dict()


@router.delete("/placements")
async def remove_placement(classroom_id: str, day: str, slot: str, index: int,
                           workspace: Workspace = Depends(get_workspace)):
    return _apply(workspace, variants.unplace, classroom_id, day, slot, index).to_dict()


@router.put("/placements/modality")
async def update_placement_modality(request: ModalityRequest, workspace: Workspace = Depends(get_workspace)):
    _apply(
        workspace, variants.set_placement_modality,
        request.classroom_id, request.day, request.slot, request.index, request.modality,
    )
    return {"success": True}


@router.put("/assignments")
async def update_assignment(request: AssignmentRequest, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, variants.assign_instructor, request.course_id, request.section, request.instructor_id)
    return {"success": True}


# UI state

@router.post("/ui/collapsed-sections/{section}/toggle")
async def toggle_section(section: str, workspace: Workspace = Depends(get_workspace)):
    collapsed = _apply(workspace, catalog.toggle_collapsed_section, section)
    return {"success": True, "collapsed": collapsed}


@router.put("/ui/instructor-filter")
async def update_instructor_filter(request: InstructorFilterRequest, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, catalog.set_instructor_filter, request.instructor_ids)
    return {"success": True}


@router.put("/ui/program-filter")
async def update_program_filter(request: ProgramFilterRequest, workspace: Workspace = Depends(get_workspace)):
    _apply(workspace, catalog.set_program_filter, request.program_id)
    return {"success": True}


# Export / import

@router.get("/export")
async def export_schedule(schedule: Optional[str] = None, workspace: Workspace = Depends(get_workspace)):
    name = _read_variant(workspace.store, schedule)
    return transfer.export_schedule(workspace.store, name)


@router.post("/import")
async def import_schedule(request: ImportRequest, workspace: Workspace = Depends(get_workspace)):
    """
    Import an exported schedule under a new name.

    An existing name is refused (409) unless ``overwrite`` is set.
    """
    _apply(workspace, transfer.import_schedule, request.document, request.name, request.overwrite)
    logger.info(f"Imported schedule '{request.name}' via API")
    return {"success": True, "current_schedule": workspace.store.current_schedule}
