"""Pydantic schemas for request/response validation."""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from .models import StageStatus, TaskPriority


Advancement = Literal["stage", "phase", "none"]


# ============================================================================
# Transition results
# ============================================================================

class TransitionResult(BaseModel):
    """Outcome of a mutating roadmap call.

    - advanced="stage": a stage was activated; next_id is that stage
    - advanced="phase": the phase completed and the next one started; next_id is
      the new phase, activated_stage_id its first stage (if it has one)
    - advanced="none": nothing moved forward (no-op retry, or the roadmap ended)
    """

    advanced: Advancement = "none"
    next_id: Optional[UUID] = None
    activated_stage_id: Optional[UUID] = None
    completed_stage_id: Optional[UUID] = None
    completed_phase_id: Optional[UUID] = None
    tasks_materialized: int = 0
    no_op: bool = False
    roadmap_complete: bool = False
    message: str = ""


class AttachTemplateResult(TransitionResult):
    """Outcome of attaching a template to a project."""

    template_id: UUID
    created_stage_ids: list[UUID] = Field(default_factory=list)
    skipped_stage_count: int = Field(0, description="Template stages already present on the project")


class StageReadiness(BaseModel):
    """Whether a stage can be completed right now."""

    stage_id: UUID
    status: StageStatus
    all_tasks_terminal: bool
    total_tasks: int
    open_tasks: int


# ============================================================================
# Catalog
# ============================================================================

class PhaseResponse(BaseModel):
    """Schema for a top-level phase."""

    id: UUID
    name: str
    order_index: int
    color: Optional[str] = None
    icon: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RoadmapTemplateResponse(BaseModel):
    """Schema for a roadmap template."""

    id: UUID
    organization_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    service_type: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class StageTemplateResponse(BaseModel):
    """Schema for a stage template."""

    id: UUID
    template_id: UUID
    phase_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    order_index: int
    duration_days: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class TaskBlueprintResponse(BaseModel):
    """Schema for a task blueprint."""

    id: UUID
    stage_template_id: UUID
    title: str
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    order_index: int
    estimated_hours: Optional[Decimal] = None
    duration_days: Optional[int] = None
    required_capability: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Project roadmap
# ============================================================================

class AttachTemplateRequest(BaseModel):
    """Schema for attaching a template to a project."""

    template_id: UUID = Field(..., description="Template UUID")


class ManualStageCreate(BaseModel):
    """Schema for creating a stage without a template."""

    phase_id: UUID = Field(..., description="Phase the stage belongs to")
    name: str = Field(..., min_length=1, max_length=255, description="Stage name")
    description: Optional[str] = Field(None, description="Stage description")
    color: Optional[str] = Field(None, max_length=20)
    duration_days: Optional[int] = Field(None, gt=0, description="Planned stage duration (default from settings)")


class StageTaskCreate(BaseModel):
    """Schema for adding a user-authored task to a manual stage."""

    title: str = Field(..., min_length=1, max_length=255, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    duration_days: Optional[int] = Field(None, gt=0, description="Days of work (default from settings)")
    estimated_hours: Optional[Decimal] = Field(None, ge=0)
    assignee_id: Optional[UUID] = Field(None, description="User doing the work")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    tags: list[str] = Field(default_factory=list)


class ProjectStageResponse(BaseModel):
    """Schema for a project stage."""

    id: UUID
    project_id: UUID
    phase_id: UUID
    template_stage_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    status: StageStatus
    order_index: int
    duration_days: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaskResponse(BaseModel):
    """Schema for a roadmap task."""

    id: UUID
    project_id: Optional[UUID] = None
    stage_id: Optional[UUID] = None
    blueprint_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    status: str
    priority: str
    duration_days: Optional[int] = None
    estimated_hours: Optional[Decimal] = None
    required_capability: Optional[str] = None
    assignee_id: Optional[UUID] = None
    auto_assigned: bool
    deadline: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StageSnapshot(ProjectStageResponse):
    """Stage with its tasks and progress."""

    is_manual: bool
    total_tasks: int
    completed_tasks: int
    tasks: list[TaskResponse] = Field(default_factory=list)


class PhaseSnapshot(BaseModel):
    """Phase with its per-project status and stages."""

    phase_id: UUID
    name: str
    order_index: int
    color: Optional[str] = None
    icon: Optional[str] = None
    status: Optional[StageStatus] = Field(None, description="Null until the project is bootstrapped")
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    stages: list[StageSnapshot] = Field(default_factory=list)


class RoadmapSnapshot(BaseModel):
    """Full roadmap view of one project."""

    project_id: UUID
    active_phase_id: Optional[UUID] = None
    active_stage_id: Optional[UUID] = None
    roadmap_complete: bool = False
    phases: list[PhaseSnapshot] = Field(default_factory=list)
