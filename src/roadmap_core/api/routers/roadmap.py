"""Project roadmap API endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from ... import schemas
from ...engine import RoadmapEngine
from ..dependencies import get_engine, roadmap_errors

logger = logging.getLogger("roadmap-core.roadmap-api")

router = APIRouter(tags=["roadmap"])


@router.get("/{project_id}/roadmap", response_model=schemas.RoadmapSnapshot)
def get_roadmap(project_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """
    Get the project's roadmap: phases, their stages and the stages' tasks.

    Phase status is null until the project is bootstrapped.
    """
    with roadmap_errors():
        return engine.get_roadmap_snapshot(project_id)


@router.post("/{project_id}/roadmap/bootstrap", response_model=schemas.RoadmapSnapshot)
def bootstrap_roadmap(project_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """Create the project's phase rows with the first phase active. Safe to repeat."""
    with roadmap_errors():
        engine.bootstrap_project(project_id)
        return engine.get_roadmap_snapshot(project_id)


@router.post("/{project_id}/roadmap/templates", response_model=schemas.AttachTemplateResult)
def attach_template(
    project_id: UUID,
    data: schemas.AttachTemplateRequest,
    engine: RoadmapEngine = Depends(get_engine),
):
    """
    Attach a template to the project.

    - **template_id**: Template to copy stages from

    Stages already copied from the template are skipped. If the active phase
    gains stages and has none active, its first stage is activated.
    """
    with roadmap_errors():
        result = engine.attach_template(project_id, data.template_id)
        logger.info(f"Attached template {data.template_id} to project {project_id}: {result.message}")
        return result


@router.post("/{project_id}/roadmap/stages", response_model=schemas.ProjectStageResponse, status_code=201)
def create_manual_stage(
    project_id: UUID,
    data: schemas.ManualStageCreate,
    engine: RoadmapEngine = Depends(get_engine),
):
    """
    Create a manual stage at the end of a phase.

    - **phase_id**: Phase the stage belongs to
    - **name**: Stage name
    - **duration_days**: Planned duration (default from settings)

    The stage starts locked; add tasks, then activate it.
    """
    with roadmap_errors():
        return engine.create_manual_stage(
            project_id,
            data.phase_id,
            data.name,
            description=data.description,
            color=data.color,
            duration_days=data.duration_days,
        )


@router.post("/{project_id}/roadmap/phases/{phase_id}/complete", response_model=schemas.TransitionResult)
def complete_phase(project_id: UUID, phase_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """Complete an active phase whose stages are all done and start the next one."""
    with roadmap_errors():
        return engine.complete_phase(project_id, phase_id)
