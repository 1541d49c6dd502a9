"""Project roadmap instance: per-project copy of phases and stages.

A project is bootstrapped with one status row per catalog phase, the first
one active. Attaching a template copies its stage templates into locked
project stages; manual stages are created directly and collect user-authored
tasks until they are activated.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from . import crud, models
from .errors import InvalidTransitionError
from .schemas import (
    PhaseSnapshot,
    ProjectStageResponse,
    RoadmapSnapshot,
    StageSnapshot,
    StageTaskCreate,
    TaskResponse,
)

logger = logging.getLogger("roadmap-core.roadmap")


# =============================================================================
# Bootstrap
# =============================================================================

def bootstrap_project(
    db: Session,
    project: models.Project,
    phases: list[models.Phase],
    now: datetime,
) -> list[models.ProjectPhaseStatus]:
    """
    Create the project's phase status rows, first phase active.

    Args:
        db: Database session
        project: Project to bootstrap
        phases: Catalog phases ordered by index
        now: Start timestamp of the first phase

    Returns:
        Phase status rows ordered by index; existing rows are returned unchanged
    """
    existing = crud.get_phase_statuses(db, project)
    if existing:
        logger.debug(f"Project {project.id} already bootstrapped")
        return existing

    rows = []
    for position, phase in enumerate(phases):
        is_first = position == 0
        row = models.ProjectPhaseStatus(
            project_id=project.id,
            phase_id=phase.id,
            order_index=phase.order_index,
            status=models.StageStatus.ACTIVE if is_first else models.StageStatus.LOCKED,
            started_at=now if is_first else None,
        )
        db.add(row)
        rows.append(row)

    db.flush()
    logger.info(f"Bootstrapped roadmap of project {project.id} with {len(rows)} phases")
    return rows


def _phase_status_map(db: Session, project: models.Project) -> dict:
    return {row.phase_id: row for row in crud.get_phase_statuses(db, project)}


# =============================================================================
# Template attach
# =============================================================================

def attach_template(
    db: Session,
    project: models.Project,
    template: models.RoadmapTemplate,
    stage_templates: list[models.StageTemplate],
    first_phase: models.Phase,
    default_stage_duration_days: int = 7,
) -> tuple[list[models.ProjectStage], int]:
    """
    Copy a template's stages into the project as locked stages.

    Stage templates already copied to the project are skipped, so attaching
    the same template twice changes nothing. New stages are appended after
    the existing stages of their phase.

    Args:
        db: Database session
        project: Bootstrapped project
        template: Template being attached
        stage_templates: The template's stages ordered by phase, then index
        first_phase: Phase for stage templates without one
        default_stage_duration_days: Duration for stage templates without one

    Returns:
        (created stages, number of skipped stage templates)
    """
    already_copied = {
        row.template_stage_id
        for row in db.query(models.ProjectStage.template_stage_id).filter(
            models.ProjectStage.project_id == project.id,
            models.ProjectStage.template_stage_id.isnot(None),
        )
    }
    phase_statuses = _phase_status_map(db, project)

    next_order: dict = {}
    created = []
    skipped = 0
    for stage_template in stage_templates:
        if stage_template.id in already_copied:
            skipped += 1
            continue

        target_phase_id = stage_template.phase_id or first_phase.id
        if target_phase_id not in next_order:
            next_order[target_phase_id] = crud.next_stage_order_index(db, project.id, target_phase_id)

        stage = models.ProjectStage(
            organization_id=project.organization_id,
            project_id=project.id,
            phase_id=target_phase_id,
            template_stage_id=stage_template.id,
            name=stage_template.name,
            description=stage_template.description,
            color=stage_template.color,
            status=models.StageStatus.LOCKED,
            order_index=next_order[target_phase_id],
            duration_days=stage_template.duration_days or default_stage_duration_days,
        )
        next_order[target_phase_id] += 1
        db.add(stage)
        created.append(stage)

        phase_status = phase_statuses.get(target_phase_id)
        if phase_status is not None and phase_status.status == models.StageStatus.COMPLETED:
            logger.warning(
                f"Stage '{stage.name}' added to completed phase {target_phase_id} "
                f"of project {project.id}; it will stay locked"
            )

    attached = db.query(models.ProjectRoadmapTemplate).filter(
        models.ProjectRoadmapTemplate.project_id == project.id,
        models.ProjectRoadmapTemplate.template_id == template.id,
    ).first()
    if attached is None:
        db.add(models.ProjectRoadmapTemplate(project_id=project.id, template_id=template.id))

    db.flush()
    logger.info(
        f"Attached template {template.id} ({template.name}) to project {project.id}: "
        f"{len(created)} stages created, {skipped} skipped"
    )
    return created, skipped


# =============================================================================
# Manual stages
# =============================================================================

def create_manual_stage(
    db: Session,
    project: models.Project,
    phase: models.Phase,
    name: str,
    description: Optional[str] = None,
    color: Optional[str] = None,
    duration_days: Optional[int] = None,
    default_stage_duration_days: int = 7,
) -> models.ProjectStage:
    """
    Append a locked stage with no template to a phase.

    The stage is not activated, even when its phase has no active stage:
    tasks are added first, then the stage is activated explicitly.

    Raises:
        InvalidTransitionError: If the phase is already completed for the project
    """
    phase_status = crud.lock_phase_status(db, project.id, phase.id)
    if phase_status.status == models.StageStatus.COMPLETED:
        raise InvalidTransitionError(
            f"Cannot add a stage to phase {phase.name}: it is already completed",
            current_status=phase_status.status.value,
        )

    stage = models.ProjectStage(
        organization_id=project.organization_id,
        project_id=project.id,
        phase_id=phase.id,
        name=name,
        description=description,
        color=color,
        status=models.StageStatus.LOCKED,
        order_index=crud.next_stage_order_index(db, project.id, phase.id),
        duration_days=duration_days or default_stage_duration_days,
    )
    db.add(stage)
    db.flush()
    logger.info(f"Created manual stage {stage.id} ({name}) in phase {phase.name} of project {project.id}")
    return stage


def add_stage_task(
    db: Session,
    stage: models.ProjectStage,
    data: StageTaskCreate,
    now: datetime,
) -> models.Task:
    """
    Add a user-authored task to a manual stage that has not started yet.

    Its deadline is computed when the stage activates.

    Raises:
        InvalidTransitionError: If the stage is template-bound or already started
    """
    if not stage.is_manual:
        raise InvalidTransitionError(
            f"Stage {stage.id} is created from a template; its tasks come from the template"
        )
    if stage.status != models.StageStatus.LOCKED:
        raise InvalidTransitionError(
            f"Tasks can only be added to a manual stage before it is activated (stage is {stage.status.value})",
            current_status=stage.status.value,
        )

    project = crud.get_project(db, stage.project_id)
    task = models.Task(
        organization_id=stage.organization_id or project.organization_id,
        project_id=stage.project_id,
        stage_id=stage.id,
        title=data.title,
        description=data.description,
        tags=list(data.tags),
        status=models.TaskStatus.TODO.value,
        priority=data.priority.value,
        duration_days=data.duration_days,
        estimated_hours=data.estimated_hours,
        assignee_id=data.assignee_id,
        auto_assigned=False,
        order_index=crud.count_stage_tasks(db, stage),
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    db.flush()
    logger.info(f"Added task {task.id} ({task.title}) to manual stage {stage.id}")
    return task


# =============================================================================
# Snapshot
# =============================================================================

def _stage_snapshot(db: Session, stage: models.ProjectStage, terminal_statuses: list[str]) -> StageSnapshot:
    tasks = [TaskResponse.model_validate(task) for task in crud.get_stage_tasks(db, stage)]
    return StageSnapshot(
        **ProjectStageResponse.model_validate(stage).model_dump(),
        is_manual=stage.is_manual,
        total_tasks=len(tasks),
        completed_tasks=sum(1 for task in tasks if task.status in terminal_statuses),
        tasks=tasks,
    )


def get_roadmap_snapshot(
    db: Session,
    project: models.Project,
    phases: list[models.Phase],
    terminal_statuses: list[str],
) -> RoadmapSnapshot:
    """Build the phases -> stages -> tasks view of a project."""
    phase_statuses = _phase_status_map(db, project)

    stages_by_phase: dict = {}
    for stage in crud.get_project_stages(db, project):
        stages_by_phase.setdefault(stage.phase_id, []).append(stage)

    snapshot = RoadmapSnapshot(project_id=project.id)
    for phase in phases:
        phase_status = phase_statuses.get(phase.id)
        stages = [_stage_snapshot(db, s, terminal_statuses) for s in stages_by_phase.get(phase.id, [])]
        snapshot.phases.append(PhaseSnapshot(
            phase_id=phase.id,
            name=phase.name,
            order_index=phase.order_index,
            color=phase.color,
            icon=phase.icon,
            status=phase_status.status if phase_status else None,
            started_at=phase_status.started_at if phase_status else None,
            completed_at=phase_status.completed_at if phase_status else None,
            stages=stages,
        ))

        if phase_status is not None and phase_status.status == models.StageStatus.ACTIVE:
            snapshot.active_phase_id = phase.id
            for stage in stages:
                if stage.status == models.StageStatus.ACTIVE:
                    snapshot.active_stage_id = stage.id

    snapshot.roadmap_complete = bool(phase_statuses) and all(
        row.status == models.StageStatus.COMPLETED for row in phase_statuses.values()
    )
    return snapshot
