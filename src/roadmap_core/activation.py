"""Stage activation and task materialization.

Activating a stage turns its definitions into scheduled work:

- a template-bound stage copies its task blueprints into new tasks, assigning
  each one by required capability
- a manual stage already owns user-authored tasks; only their deadlines are
  computed

Deadlines follow the waterfall rule in ``scheduling``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from sqlalchemy.orm import Session

from . import crud, models
from .assignment import RosterProvider, auto_assign, normalize_capability
from .catalog import TemplateCatalog
from .scheduling import WaterfallPlanner, executor_key
from .state_machine import validate_transition

logger = logging.getLogger("roadmap-core.activation")


@dataclass
class TemplateSource:
    """Blueprints of the stage template the stage was copied from."""

    blueprints: list[models.TaskBlueprint]


@dataclass
class ManualSource:
    """Tasks already attached to a manual stage, in creation order."""

    tasks: list[models.Task]


StageSource = Union[TemplateSource, ManualSource]


def resolve_stage_source(db: Session, stage: models.ProjectStage, catalog: TemplateCatalog) -> StageSource:
    """Decide once whether a stage materializes from blueprints or from its own tasks."""
    if stage.template_stage_id is not None:
        return TemplateSource(blueprints=catalog.list_task_blueprints(stage.template_stage_id))
    return ManualSource(tasks=crud.get_stage_tasks(db, stage))


def _stage_organization_id(db: Session, stage: models.ProjectStage):
    if stage.organization_id is not None:
        return stage.organization_id
    project = db.get(models.Project, stage.project_id)
    return project.organization_id if project is not None else None


def _blueprint_task(
    blueprint: models.TaskBlueprint,
    stage: models.ProjectStage,
    position: int,
    organization_id,
) -> models.Task:
    capability = (blueprint.required_capability or "").strip() or None

    description = blueprint.description
    if not description and capability:
        description = f"Required: {capability}"

    tags = list(blueprint.tags or [])
    if not tags and capability:
        tags = [capability]

    return models.Task(
        organization_id=organization_id,
        project_id=stage.project_id,
        stage_id=stage.id,
        blueprint_id=blueprint.id,
        title=blueprint.title,
        description=description,
        tags=tags,
        status=models.TaskStatus.TODO.value,
        priority=models.TaskPriority.MEDIUM.value,
        duration_days=blueprint.duration_days,
        estimated_hours=blueprint.estimated_hours,
        required_capability=capability,
        order_index=position,
    )


def materialize_template_tasks(
    db: Session,
    stage: models.ProjectStage,
    source: TemplateSource,
    planner: WaterfallPlanner,
    roster: RosterProvider,
    created_at: datetime,
) -> list[models.Task]:
    """
    Create one task per blueprint, assigned by capability and scheduled per capability track.

    Args:
        db: Database session
        stage: Stage being activated
        source: Blueprints in order
        planner: Waterfall planner started at the stage start
        roster: Project roster provider
        created_at: Creation timestamp for the new tasks

    Returns:
        The created tasks, in blueprint order
    """
    members = roster.get_project_members(stage.project_id)
    organization_id = _stage_organization_id(db, stage)

    tasks = []
    for position, blueprint in enumerate(source.blueprints):
        task = _blueprint_task(blueprint, stage, position, organization_id)

        assignee_id = auto_assign(members, stage.project_id, task.required_capability)
        task.assignee_id = assignee_id
        task.auto_assigned = assignee_id is not None

        key = executor_key(normalize_capability(task.required_capability))
        task.deadline = planner.schedule(key, blueprint.duration_days)
        task.created_at = created_at
        task.updated_at = created_at

        db.add(task)
        tasks.append(task)

    return tasks


def schedule_manual_tasks(source: ManualSource, planner: WaterfallPlanner) -> list[models.Task]:
    """Set deadlines on a manual stage's tasks, one track per assignee."""
    for task in source.tasks:
        key = executor_key(task.assignee_id)
        task.deadline = planner.schedule(key, task.duration_days)
    return source.tasks


def activate(
    db: Session,
    stage: models.ProjectStage,
    catalog: TemplateCatalog,
    roster: RosterProvider,
    now: datetime,
    default_task_duration_days: int = 3,
) -> int:
    """
    Mark a locked stage active and materialize its work.

    The caller holds the stage row lock and has checked the phase-level
    preconditions. Nothing is committed here.

    Args:
        db: Database session
        stage: Locked stage row
        catalog: Template catalog
        roster: Project roster provider
        now: Activation timestamp, used as the waterfall start
        default_task_duration_days: Duration for tasks without one

    Returns:
        Number of tasks created or rescheduled

    Raises:
        InvalidTransitionError: If the stage is not locked
    """
    validate_transition(stage.status, models.StageStatus.ACTIVE)

    stage.status = models.StageStatus.ACTIVE
    stage.started_at = now

    planner = WaterfallPlanner(now, default_duration_days=default_task_duration_days)
    source = resolve_stage_source(db, stage, catalog)

    if isinstance(source, TemplateSource):
        tasks = materialize_template_tasks(db, stage, source, planner, roster, now)
        logger.info(f"Activated stage {stage.id} ({stage.name}): materialized {len(tasks)} tasks")
    else:
        tasks = schedule_manual_tasks(source, planner)
        logger.info(f"Activated manual stage {stage.id} ({stage.name}): scheduled {len(tasks)} tasks")

    db.flush()
    return len(tasks)
