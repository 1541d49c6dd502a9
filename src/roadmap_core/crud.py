"""Database queries for project roadmaps.

Lookups used by the roadmap operations, including the row locks taken before
a stage or phase status is read for a transition. Helpers take model objects
rather than bare ids where they can, so query parameters never shadow column
names.
"""
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models
from .errors import NotFoundError


# =============================================================================
# Projects
# =============================================================================

def get_project(db: Session, lookup_id: UUID) -> models.Project:
    """Get a project or raise NotFoundError."""
    project = db.get(models.Project, lookup_id)
    if project is None:
        raise NotFoundError("Project", lookup_id)
    return project


def get_phase_statuses(db: Session, project: models.Project) -> list[models.ProjectPhaseStatus]:
    """Get a project's phase rows ordered by index."""
    return db.query(models.ProjectPhaseStatus).filter(
        models.ProjectPhaseStatus.project_id == project.id
    ).order_by(
        models.ProjectPhaseStatus.order_index.asc()
    ).all()


def get_active_phase_status(db: Session, project_ref: UUID) -> Optional[models.ProjectPhaseStatus]:
    """Get the active phase row of a project, if any."""
    return db.query(models.ProjectPhaseStatus).filter(
        models.ProjectPhaseStatus.project_id == project_ref,
        models.ProjectPhaseStatus.status == models.StageStatus.ACTIVE,
    ).first()


def get_project_stages(db: Session, project: models.Project) -> list[models.ProjectStage]:
    """Get all stages of a project ordered by order index."""
    return db.query(models.ProjectStage).filter(
        models.ProjectStage.project_id == project.id
    ).order_by(
        models.ProjectStage.order_index.asc()
    ).all()


# =============================================================================
# Stages
# =============================================================================

def get_stage(db: Session, lookup_id: UUID) -> models.ProjectStage:
    """Get a stage or raise NotFoundError."""
    stage = db.get(models.ProjectStage, lookup_id)
    if stage is None:
        raise NotFoundError("Stage", lookup_id)
    return stage


def lock_stage(db: Session, lookup_id: UUID, nowait: bool = False) -> models.ProjectStage:
    """
    Lock a stage row for the rest of the transaction and return fresh state.

    Args:
        db: Database session
        lookup_id: Stage UUID
        nowait: Fail immediately instead of waiting on a held lock

    Returns:
        The locked ProjectStage

    Raises:
        NotFoundError: If the stage does not exist
    """
    stage = db.query(models.ProjectStage).filter(
        models.ProjectStage.id == lookup_id
    ).with_for_update(nowait=nowait).populate_existing().one_or_none()
    if stage is None:
        raise NotFoundError("Stage", lookup_id)
    return stage


def lock_phase_status(
    db: Session,
    project_ref: UUID,
    phase_ref: UUID,
    nowait: bool = False,
) -> models.ProjectPhaseStatus:
    """Lock a project's phase row and return fresh state.

    Raises:
        NotFoundError: If the project has no row for the phase
    """
    phase_status = db.query(models.ProjectPhaseStatus).filter(
        models.ProjectPhaseStatus.project_id == project_ref,
        models.ProjectPhaseStatus.phase_id == phase_ref,
    ).with_for_update(nowait=nowait).populate_existing().one_or_none()
    if phase_status is None:
        raise NotFoundError("Project phase", f"{project_ref}/{phase_ref}")
    return phase_status


def find_next_locked_stage(db: Session, after: models.ProjectStage) -> Optional[models.ProjectStage]:
    """Locked stage with the smallest order index after ``after`` in the same project and phase."""
    return db.query(models.ProjectStage).filter(
        models.ProjectStage.project_id == after.project_id,
        models.ProjectStage.phase_id == after.phase_id,
        models.ProjectStage.order_index > after.order_index,
        models.ProjectStage.status == models.StageStatus.LOCKED,
    ).order_by(
        models.ProjectStage.order_index.asc()
    ).first()


def find_first_locked_stage(
    db: Session,
    phase_status: models.ProjectPhaseStatus,
) -> Optional[models.ProjectStage]:
    """Lowest-order locked stage of a project's phase."""
    return db.query(models.ProjectStage).filter(
        models.ProjectStage.project_id == phase_status.project_id,
        models.ProjectStage.phase_id == phase_status.phase_id,
        models.ProjectStage.status == models.StageStatus.LOCKED,
    ).order_by(
        models.ProjectStage.order_index.asc()
    ).first()


def find_active_stage(
    db: Session,
    project_ref: UUID,
    phase_ref: UUID,
) -> Optional[models.ProjectStage]:
    """The active stage of a project's phase, if any."""
    return db.query(models.ProjectStage).filter(
        models.ProjectStage.project_id == project_ref,
        models.ProjectStage.phase_id == phase_ref,
        models.ProjectStage.status == models.StageStatus.ACTIVE,
    ).first()


def count_unfinished_stages(db: Session, phase_status: models.ProjectPhaseStatus) -> int:
    """Number of stages in a project's phase that are not completed."""
    return db.query(func.count(models.ProjectStage.id)).filter(
        models.ProjectStage.project_id == phase_status.project_id,
        models.ProjectStage.phase_id == phase_status.phase_id,
        models.ProjectStage.status != models.StageStatus.COMPLETED,
    ).scalar()


def next_stage_order_index(db: Session, project_ref: UUID, phase_ref: UUID) -> int:
    """Order index for a stage appended to a project's phase."""
    current_max = db.query(func.max(models.ProjectStage.order_index)).filter(
        models.ProjectStage.project_id == project_ref,
        models.ProjectStage.phase_id == phase_ref,
    ).scalar()
    return 0 if current_max is None else current_max + 1


def find_next_locked_phase(
    db: Session,
    after: models.ProjectPhaseStatus,
    nowait: bool = False,
) -> Optional[models.ProjectPhaseStatus]:
    """Locked phase row with the smallest order index after ``after``."""
    return db.query(models.ProjectPhaseStatus).filter(
        models.ProjectPhaseStatus.project_id == after.project_id,
        models.ProjectPhaseStatus.order_index > after.order_index,
        models.ProjectPhaseStatus.status == models.StageStatus.LOCKED,
    ).order_by(
        models.ProjectPhaseStatus.order_index.asc()
    ).with_for_update(nowait=nowait).first()


# =============================================================================
# Tasks
# =============================================================================

def get_stage_tasks(db: Session, stage: models.ProjectStage) -> list[models.Task]:
    """Tasks of a stage in creation order."""
    return db.query(models.Task).filter(
        models.Task.stage_id == stage.id
    ).order_by(
        models.Task.created_at.asc(),
        models.Task.order_index.asc(),
    ).all()


def count_open_tasks(db: Session, stage: models.ProjectStage, terminal_statuses: list[str]) -> int:
    """Number of tasks in a stage whose status is not terminal."""
    return db.query(func.count(models.Task.id)).filter(
        models.Task.stage_id == stage.id,
        models.Task.status.notin_(terminal_statuses),
    ).scalar()


def count_stage_tasks(db: Session, stage: models.ProjectStage) -> int:
    """Number of tasks in a stage."""
    return db.query(func.count(models.Task.id)).filter(
        models.Task.stage_id == stage.id
    ).scalar()
