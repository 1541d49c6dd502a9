"""Stage and phase progression.

Completing a stage can ripple upward: the next stage of the phase starts, or,
when the phase has no stages left, the phase completes and the next phase and
its first stage start. These cascades run as a queue of pending transitions
processed inside the caller's transaction:

    CompleteStage(s1) -> ActivateStage(s2)
    CompleteStage(s2) -> CompletePhase(p1) -> ActivateStage(first stage of p2)

Every row is locked before its status is read.
"""
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Union
from uuid import UUID

from sqlalchemy.orm import Session

from . import crud, models
from .activation import activate
from .assignment import RosterProvider
from .catalog import TemplateCatalog
from .config import Settings
from .errors import InvalidTransitionError
from .schemas import StageReadiness, TransitionResult
from .state_machine import validate_transition

logger = logging.getLogger("roadmap-core.progression")


@dataclass(frozen=True)
class ActivateStage:
    stage_id: UUID


@dataclass(frozen=True)
class CompleteStage:
    stage_id: UUID


@dataclass(frozen=True)
class CompletePhase:
    project_id: UUID
    phase_id: UUID


PendingTransition = Union[ActivateStage, CompleteStage, CompletePhase]


# =============================================================================
# Readiness
# =============================================================================

def all_tasks_terminal(db: Session, stage_id: UUID, terminal_statuses: list[str]) -> bool:
    """
    Check whether every task of a stage has a terminal status.

    A stage without tasks counts as terminal.

    Raises:
        NotFoundError: If the stage does not exist
    """
    stage = crud.get_stage(db, stage_id)
    return crud.count_open_tasks(db, stage, terminal_statuses) == 0


def stage_readiness(db: Session, stage_id: UUID, terminal_statuses: list[str]) -> StageReadiness:
    """Task counts behind ``all_tasks_terminal``, for display."""
    stage = crud.get_stage(db, stage_id)
    open_tasks = crud.count_open_tasks(db, stage, terminal_statuses)
    return StageReadiness(
        stage_id=stage.id,
        status=stage.status,
        all_tasks_terminal=open_tasks == 0,
        total_tasks=crud.count_stage_tasks(db, stage),
        open_tasks=open_tasks,
    )


# =============================================================================
# Transition runner
# =============================================================================

class TransitionRunner:
    """Processes one requested transition and everything it cascades into.

    The runner only flushes; committing or rolling back is up to the caller.
    """

    def __init__(
        self,
        db: Session,
        catalog: TemplateCatalog,
        roster: RosterProvider,
        settings: Settings,
        now: datetime,
    ):
        self.db = db
        self.catalog = catalog
        self.roster = roster
        self.settings = settings
        self.now = now
        self.result = TransitionResult()
        self._queue: deque[PendingTransition] = deque()

    def run(self, requested: PendingTransition) -> TransitionResult:
        """
        Apply a transition and its cascade.

        Only the requested transition may be a no-op; cascaded ones always
        target rows in the expected state.

        Returns:
            TransitionResult describing how far the roadmap moved

        Raises:
            NotFoundError: If the target row does not exist
            InvalidTransitionError: If a precondition fails
        """
        self._queue.append(requested)
        first = True
        while self._queue:
            item = self._queue.popleft()
            if isinstance(item, ActivateStage):
                self._activate_stage(item, first)
            elif isinstance(item, CompleteStage):
                self._complete_stage(item, first)
            else:
                self._complete_phase(item, first)
            first = False

        self.result.message = self._describe()
        return self.result

    def enqueue(self, item: PendingTransition) -> None:
        self._queue.append(item)

    def _activate_stage(self, item: ActivateStage, requested: bool) -> None:
        stage = crud.lock_stage(self.db, item.stage_id, nowait=self.settings.lock_nowait)

        if stage.status == models.StageStatus.ACTIVE:
            logger.debug(f"Stage {stage.id} is already active")
            if requested:
                self.result.no_op = True
                self.result.next_id = stage.id
            return

        validate_transition(stage.status, models.StageStatus.ACTIVE)

        phase_status = crud.lock_phase_status(
            self.db, stage.project_id, stage.phase_id, nowait=self.settings.lock_nowait
        )
        if phase_status.status != models.StageStatus.ACTIVE:
            message = (
                f"Cannot activate stage {stage.id}: its phase is {phase_status.status.value}. "
                f"Only stages of the active phase can be activated."
            )
            logger.warning(f"Blocked transition: {message}")
            raise InvalidTransitionError(
                message,
                current_status=stage.status.value,
                requested_status=models.StageStatus.ACTIVE.value,
            )

        other = crud.find_active_stage(self.db, stage.project_id, stage.phase_id)
        if other is not None and other.id != stage.id:
            message = (
                f"Cannot activate stage {stage.id}: stage {other.id} ({other.name}) "
                f"is already active in this phase. Complete it first."
            )
            logger.warning(f"Blocked transition: {message}")
            raise InvalidTransitionError(
                message,
                current_status=stage.status.value,
                requested_status=models.StageStatus.ACTIVE.value,
            )

        # Stages of a phase run strictly in order
        first_locked = crud.find_first_locked_stage(self.db, phase_status)
        if first_locked is not None and first_locked.id != stage.id:
            message = (
                f"Cannot activate stage {stage.id}: stage {first_locked.id} ({first_locked.name}) "
                f"comes first in this phase and must run first."
            )
            logger.warning(f"Blocked transition: {message}")
            raise InvalidTransitionError(
                message,
                current_status=stage.status.value,
                requested_status=models.StageStatus.ACTIVE.value,
            )

        count = activate(
            self.db,
            stage,
            self.catalog,
            self.roster,
            self.now,
            default_task_duration_days=self.settings.default_task_duration_days,
        )

        self.result.activated_stage_id = stage.id
        self.result.tasks_materialized += count
        if self.result.advanced == "none":
            self.result.advanced = "stage"
            self.result.next_id = stage.id

    def _complete_stage(self, item: CompleteStage, requested: bool) -> None:
        stage = crud.lock_stage(self.db, item.stage_id, nowait=self.settings.lock_nowait)

        if stage.status == models.StageStatus.COMPLETED:
            logger.debug(f"Stage {stage.id} is already completed")
            if requested:
                self.result.no_op = True
            return

        validate_transition(stage.status, models.StageStatus.COMPLETED)

        open_tasks = crud.count_open_tasks(self.db, stage, self.settings.terminal_task_statuses)
        if open_tasks:
            message = (
                f"Cannot complete stage {stage.id}: {open_tasks} task(s) are not finished. "
                f"Tasks must be in one of: {', '.join(self.settings.terminal_task_statuses)}."
            )
            logger.warning(f"Blocked transition: {message}")
            raise InvalidTransitionError(
                message,
                current_status=stage.status.value,
                requested_status=models.StageStatus.COMPLETED.value,
            )

        stage.status = models.StageStatus.COMPLETED
        stage.completed_at = self.now
        self.db.flush()
        self.result.completed_stage_id = stage.id
        logger.info(f"Completed stage {stage.id} ({stage.name})")

        next_stage = crud.find_next_locked_stage(self.db, stage)
        if next_stage is not None:
            self.enqueue(ActivateStage(next_stage.id))
        else:
            self.enqueue(CompletePhase(stage.project_id, stage.phase_id))

    def _complete_phase(self, item: CompletePhase, requested: bool) -> None:
        phase_status = crud.lock_phase_status(
            self.db, item.project_id, item.phase_id, nowait=self.settings.lock_nowait
        )

        if phase_status.status == models.StageStatus.COMPLETED:
            logger.debug(f"Phase {item.phase_id} of project {item.project_id} is already completed")
            if requested:
                self.result.no_op = True
            return

        validate_transition(phase_status.status, models.StageStatus.COMPLETED, subject="Phase")

        unfinished = crud.count_unfinished_stages(self.db, phase_status)
        if unfinished:
            message = (
                f"Cannot complete phase {item.phase_id}: {unfinished} stage(s) are not completed."
            )
            logger.warning(f"Blocked transition: {message}")
            raise InvalidTransitionError(
                message,
                current_status=phase_status.status.value,
                requested_status=models.StageStatus.COMPLETED.value,
            )

        phase_status.status = models.StageStatus.COMPLETED
        phase_status.completed_at = self.now
        self.db.flush()
        self.result.completed_phase_id = phase_status.phase_id
        logger.info(f"Completed phase {phase_status.phase_id} of project {phase_status.project_id}")

        next_phase = crud.find_next_locked_phase(self.db, phase_status, nowait=self.settings.lock_nowait)
        if next_phase is None:
            self.result.roadmap_complete = True
            logger.info(f"Roadmap of project {phase_status.project_id} is complete")
            return

        next_phase.status = models.StageStatus.ACTIVE
        next_phase.started_at = self.now
        self.db.flush()
        self.result.advanced = "phase"
        self.result.next_id = next_phase.phase_id
        logger.info(f"Activated phase {next_phase.phase_id} of project {next_phase.project_id}")

        first_stage = crud.find_first_locked_stage(self.db, next_phase)
        if first_stage is not None:
            self.enqueue(ActivateStage(first_stage.id))
        else:
            logger.info(f"Phase {next_phase.phase_id} has no stages yet; nothing to activate")

    def _describe(self) -> str:
        result = self.result
        if result.no_op:
            return "Nothing to do: already in the requested state"
        if result.roadmap_complete:
            return "Roadmap complete"
        if result.advanced == "phase":
            if result.activated_stage_id is not None:
                return f"Advanced to phase {result.next_id}, activated stage {result.activated_stage_id}"
            return f"Advanced to phase {result.next_id} (no stages to activate)"
        if result.advanced == "stage":
            return f"Activated stage {result.next_id} ({result.tasks_materialized} tasks)"
        return "No transition"
