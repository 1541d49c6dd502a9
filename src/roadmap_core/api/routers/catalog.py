"""Template catalog API endpoints (read-only)."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ... import schemas
from ...engine import RoadmapEngine
from ..dependencies import get_engine, roadmap_errors

logger = logging.getLogger("roadmap-core.catalog-api")

router = APIRouter(tags=["catalog"])


@router.get("/phases", response_model=list[schemas.PhaseResponse])
def list_phases(engine: RoadmapEngine = Depends(get_engine)):
    """List the top-level phases in order."""
    with roadmap_errors():
        return engine.list_phases()


@router.get("/templates", response_model=list[schemas.RoadmapTemplateResponse])
def list_templates(
    organization_id: Optional[UUID] = Query(None, description="Include this organization's own templates"),
    engine: RoadmapEngine = Depends(get_engine),
):
    """
    List active roadmap templates.

    - **organization_id**: Without it, every active template is returned;
      with it, global templates plus that organization's templates
    """
    return engine.list_templates(organization_id)


@router.get("/templates/{template_id}/stages", response_model=list[schemas.StageTemplateResponse])
def list_template_stages(template_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """List a template's stages ordered by phase, then by position."""
    with roadmap_errors():
        return engine.list_template_stages(template_id)


@router.get("/template-stages/{stage_template_id}/tasks", response_model=list[schemas.TaskBlueprintResponse])
def list_task_blueprints(stage_template_id: UUID, engine: RoadmapEngine = Depends(get_engine)):
    """List the task blueprints of a template stage."""
    with roadmap_errors():
        return engine.list_task_blueprints(stage_template_id)
