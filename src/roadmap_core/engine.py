"""Roadmap engine: the public, transactional entry points.

Each mutating method is one transaction. Row-lock contention and uniqueness
races roll back and surface as ``ConcurrentModificationError`` so the caller
can retry; every other failure rolls back and propagates unchanged.

Usage:
    engine = RoadmapEngine(db)
    engine.attach_template(project_id, template_id)
    engine.complete_stage(stage_id)
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from . import crud, models, roadmap
from .assignment import RosterProvider, SqlRoster
from .catalog import SqlTemplateCatalog, TemplateCatalog
from .config import Settings, get_settings
from .errors import ConcurrentModificationError
from .progression import (
    ActivateStage,
    CompletePhase,
    CompleteStage,
    TransitionRunner,
    all_tasks_terminal,
    stage_readiness,
)
from .schemas import (
    AttachTemplateResult,
    RoadmapSnapshot,
    StageReadiness,
    StageTaskCreate,
    TransitionResult,
)

logger = logging.getLogger("roadmap-core.engine")

Clock = Callable[[], datetime]

# Unique constraints that only trip when two transactions race on one roadmap
RACE_CONSTRAINTS = (
    "unique_project_phase",
    "unique_project_template",
    "unique_project_template_stage",
    "unique_project_phase_stage_order",
    "uq_project_phase_status_one_active",
    "uq_project_roadmap_stages_one_active",
)


def _constraint_columns(name: str) -> Optional[str]:
    for table in models.Base.metadata.tables.values():
        for item in list(table.constraints) + list(table.indexes):
            if item.name == name:
                return ", ".join(f"{table.name}.{column.name}" for column in item.columns)
    return None


def is_concurrency_conflict(error: IntegrityError) -> bool:
    """
    Check whether an integrity error comes from one of the race constraints.

    PostgreSQL reports the violated constraint by name; SQLite only lists
    the constrained columns.
    """
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name:
        return constraint_name in RACE_CONSTRAINTS

    message = str(error.orig)
    for name in RACE_CONSTRAINTS:
        columns = _constraint_columns(name)
        if name in message or (columns and f"UNIQUE constraint failed: {columns}" in message):
            return True
    return False


class RoadmapEngine:
    """Stage progression engine bound to one database session.

    Catalog, roster, clock and settings default to the SQL-backed
    implementations, wall-clock UTC and the environment settings.
    """

    def __init__(
        self,
        db: Session,
        catalog: Optional[TemplateCatalog] = None,
        roster: Optional[RosterProvider] = None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.catalog = catalog or SqlTemplateCatalog(db)
        self.roster = roster or SqlRoster(db)
        self.clock = clock or models.utcnow
        self.settings = settings or get_settings()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit on success, roll back on any error."""
        try:
            yield self.db
            self.db.commit()
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Lock contention, transaction rolled back: {e.orig}")
            raise ConcurrentModificationError(
                "Roadmap rows are locked by another operation; retry the request"
            ) from e
        except IntegrityError as e:
            self.db.rollback()
            if not is_concurrency_conflict(e):
                raise
            logger.warning(f"Uniqueness race, transaction rolled back: {e.orig}")
            raise ConcurrentModificationError(
                "Roadmap was modified concurrently; retry the request"
            ) from e
        except Exception:
            self.db.rollback()
            raise

    def _runner(self, now: datetime) -> TransitionRunner:
        return TransitionRunner(self.db, self.catalog, self.roster, self.settings, now)

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def list_phases(self) -> list[models.Phase]:
        return self.catalog.list_phases()

    def list_templates(self, organization_id: Optional[UUID] = None) -> list[models.RoadmapTemplate]:
        return self.catalog.list_templates(organization_id)

    def list_template_stages(self, template_id: UUID) -> list[models.StageTemplate]:
        return self.catalog.list_template_stages(template_id)

    def list_task_blueprints(self, stage_template_id: UUID) -> list[models.TaskBlueprint]:
        return self.catalog.list_task_blueprints(stage_template_id)

    # -------------------------------------------------------------------------
    # Roadmap instance
    # -------------------------------------------------------------------------

    def bootstrap_project(self, project_id: UUID) -> list[models.ProjectPhaseStatus]:
        """
        Create the project's phase rows with the first phase active.

        Idempotent: an already bootstrapped project is returned unchanged.

        Raises:
            NotFoundError: If the project does not exist
            CatalogIntegrityError: If the phase catalog is malformed
        """
        with self.transaction():
            project = crud.get_project(self.db, project_id)
            return roadmap.bootstrap_project(self.db, project, self.catalog.list_phases(), self.clock())

    def attach_template(self, project_id: UUID, template_id: UUID) -> AttachTemplateResult:
        """
        Copy a template's stages into a project, bootstrapping it if needed.

        When the attach adds stages to the active phase and that phase has no
        active stage, its first locked stage is activated in the same
        transaction.

        Raises:
            NotFoundError: If the project or template does not exist
            ConcurrentModificationError: If a concurrent attach won the race
        """
        with self.transaction():
            now = self.clock()
            project = crud.get_project(self.db, project_id)
            template = self.catalog.get_template(template_id)
            phases = self.catalog.list_phases()

            roadmap.bootstrap_project(self.db, project, phases, now)
            created, skipped = roadmap.attach_template(
                self.db,
                project,
                template,
                self.catalog.list_template_stages(template_id),
                phases[0],
                default_stage_duration_days=self.settings.default_stage_duration_days,
            )

            transition = TransitionResult()
            active_phase = crud.get_active_phase_status(self.db, project.id)
            if (
                active_phase is not None
                and any(stage.phase_id == active_phase.phase_id for stage in created)
                and crud.find_active_stage(self.db, project.id, active_phase.phase_id) is None
            ):
                first_stage = crud.find_first_locked_stage(self.db, active_phase)
                if first_stage is not None:
                    transition = self._runner(now).run(ActivateStage(first_stage.id))

            message = f"{len(created)} stage(s) created, {skipped} already present"
            if transition.advanced != "none":
                message += f"; {transition.message}"

            return AttachTemplateResult(
                **transition.model_dump(exclude={"message"}),
                message=message,
                template_id=template.id,
                created_stage_ids=[stage.id for stage in created],
                skipped_stage_count=skipped,
            )

    def create_manual_stage(
        self,
        project_id: UUID,
        phase_id: UUID,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        duration_days: Optional[int] = None,
    ) -> models.ProjectStage:
        """Append a locked manual stage to a phase, bootstrapping the project if needed."""
        with self.transaction():
            project = crud.get_project(self.db, project_id)
            phase = self.catalog.get_phase(phase_id)
            roadmap.bootstrap_project(self.db, project, self.catalog.list_phases(), self.clock())
            return roadmap.create_manual_stage(
                self.db,
                project,
                phase,
                name,
                description=description,
                color=color,
                duration_days=duration_days,
                default_stage_duration_days=self.settings.default_stage_duration_days,
            )

    def add_stage_task(self, stage_id: UUID, data: StageTaskCreate) -> models.Task:
        """Add a user-authored task to a manual stage that has not started."""
        with self.transaction():
            stage = crud.lock_stage(self.db, stage_id, nowait=self.settings.lock_nowait)
            return roadmap.add_stage_task(self.db, stage, data, self.clock())

    def get_roadmap_snapshot(self, project_id: UUID) -> RoadmapSnapshot:
        project = crud.get_project(self.db, project_id)
        return roadmap.get_roadmap_snapshot(
            self.db, project, self.catalog.list_phases(), self.settings.terminal_task_statuses
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def activate_stage(self, stage_id: UUID) -> TransitionResult:
        """
        Activate a locked stage and materialize its tasks.

        Activating an already active stage is a no-op.

        Raises:
            NotFoundError: If the stage does not exist
            InvalidTransitionError: If the stage is completed, its phase is not
                active, or another stage of the phase is active
        """
        with self.transaction():
            return self._runner(self.clock()).run(ActivateStage(stage_id))

    def complete_stage(self, stage_id: UUID) -> TransitionResult:
        """
        Complete an active stage and advance the roadmap.

        Raises:
            NotFoundError: If the stage does not exist
            InvalidTransitionError: If the stage is locked or has unfinished tasks
        """
        with self.transaction():
            return self._runner(self.clock()).run(CompleteStage(stage_id))

    def complete_phase(self, project_id: UUID, phase_id: UUID) -> TransitionResult:
        """
        Complete an active phase whose stages are all completed, and advance.

        Raises:
            NotFoundError: If the project has no row for the phase
            InvalidTransitionError: If the phase is locked or has unfinished stages
        """
        with self.transaction():
            return self._runner(self.clock()).run(CompletePhase(project_id, phase_id))

    def all_tasks_terminal(self, stage_id: UUID) -> bool:
        return all_tasks_terminal(self.db, stage_id, self.settings.terminal_task_statuses)

    def stage_readiness(self, stage_id: UUID) -> StageReadiness:
        return stage_readiness(self.db, stage_id, self.settings.terminal_task_statuses)
