"""Stage transition API endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from ... import schemas
from ...engine import RoadmapEngine
from ..dependencies import get_engine, roadmap_errors

logger = logging.getLogger("roadmap-core.stages-api")

router = APIRouter(tags=["stages"])


@router.post("/{stage_id}/activate", response_model=schemas.TransitionResult)
def activate_stage(stage_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """
    Activate a locked stage and materialize its tasks.

    Activating an already active stage returns `no_op: true`.
    """
    with roadmap_errors():
        return engine.activate_stage(stage_id)


@router.post("/{stage_id}/complete", response_model=schemas.TransitionResult)
def complete_stage(stage_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """
    Complete an active stage once all its tasks are finished.

    Activates the next stage of the phase, or completes the phase and starts
    the next one.
    """
    with roadmap_errors():
        return engine.complete_stage(stage_id)


@router.get("/{stage_id}/ready", response_model=schemas.StageReadiness)
def check_stage_ready(stage_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """Report whether every task of the stage is in a terminal status."""
    with roadmap_errors():
        return engine.stage_readiness(stage_id)


@router.post("/{stage_id}/tasks", response_model=schemas.TaskResponse, status_code=201)
def add_stage_task(
    stage_id: UUID,
    data: schemas.StageTaskCreate,
    engine: RoadmapEngine = Depends(get_engine),
):
    """
    Add a task to a manual stage before it is activated.

    - **title**: Task title
    - **assignee_id**: Person doing the work; tasks of one person are scheduled back to back
    - **duration_days**: Days of work (default from settings)
    """
    with roadmap_errors():
        return engine.add_stage_task(stage_id, data)
