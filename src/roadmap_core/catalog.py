"""Template Catalog: read-only access to phases, stage templates and task blueprints.

The engine receives a ``TemplateCatalog`` instead of querying template tables
directly, so activation and attach logic can be exercised against any
implementation. ``SqlTemplateCatalog`` is the database-backed one.
"""
import logging
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from . import models
from .errors import CatalogIntegrityError, NotFoundError

logger = logging.getLogger("roadmap-core.catalog")


class TemplateCatalog(Protocol):
    """Read-only template repository."""

    def list_phases(self) -> list[models.Phase]: ...

    def get_phase(self, phase_id: UUID) -> models.Phase: ...

    def get_template(self, template_id: UUID) -> models.RoadmapTemplate: ...

    def list_templates(self, organization_id: Optional[UUID] = None) -> list[models.RoadmapTemplate]: ...

    def list_stage_templates(self, phase_id: UUID) -> list[models.StageTemplate]: ...

    def list_template_stages(self, template_id: UUID) -> list[models.StageTemplate]: ...

    def get_stage_template(self, stage_template_id: UUID) -> models.StageTemplate: ...

    def list_task_blueprints(self, stage_template_id: UUID) -> list[models.TaskBlueprint]: ...


def validate_phase_ordering(phases: list[models.Phase]) -> None:
    """
    Check that phases form a usable sequence.

    Args:
        phases: Phases sorted by order_index

    Raises:
        CatalogIntegrityError: If the list is empty, has duplicate indices, or has gaps
    """
    if not phases:
        raise CatalogIntegrityError("Phase catalog is empty")

    indices = [p.order_index for p in phases]
    if len(set(indices)) != len(indices):
        raise CatalogIntegrityError(f"Phase catalog has duplicate order indices: {indices}")

    expected = list(range(indices[0], indices[0] + len(indices)))
    if indices != expected:
        raise CatalogIntegrityError(f"Phase catalog ordering is not contiguous: {indices}")


class SqlTemplateCatalog:
    """TemplateCatalog backed by the roadmap template tables."""

    def __init__(self, db: Session):
        self.db = db

    def list_phases(self) -> list[models.Phase]:
        """Return all phases ordered by index."""
        phases = self.db.query(models.Phase).order_by(models.Phase.order_index.asc()).all()
        validate_phase_ordering(phases)
        return phases

    def get_phase(self, phase_id: UUID) -> models.Phase:
        phase = self.db.get(models.Phase, phase_id)
        if phase is None:
            raise NotFoundError("Phase", phase_id)
        return phase

    def get_template(self, template_id: UUID) -> models.RoadmapTemplate:
        template = self.db.get(models.RoadmapTemplate, template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    def list_templates(self, organization_id: Optional[UUID] = None) -> list[models.RoadmapTemplate]:
        """Return active templates: global ones plus those owned by the organization."""
        query = self.db.query(models.RoadmapTemplate).filter(models.RoadmapTemplate.is_active.is_(True))
        if organization_id:
            query = query.filter(
                (models.RoadmapTemplate.organization_id.is_(None))
                | (models.RoadmapTemplate.organization_id == organization_id)
            )
        return query.order_by(models.RoadmapTemplate.name.asc()).all()

    def list_stage_templates(self, phase_id: UUID) -> list[models.StageTemplate]:
        """Return stage templates of a phase ordered by index."""
        self.get_phase(phase_id)
        return self.db.query(models.StageTemplate).filter(
            models.StageTemplate.phase_id == phase_id
        ).order_by(
            models.StageTemplate.order_index.asc()
        ).all()

    def list_template_stages(self, template_id: UUID) -> list[models.StageTemplate]:
        """Return a template's stages ordered by phase, then by stage index.

        Stages with no phase sort first, since attach places them in the first phase.
        """
        self.get_template(template_id)
        stages = self.db.query(models.StageTemplate).filter(
            models.StageTemplate.template_id == template_id
        ).all()

        def sort_key(stage: models.StageTemplate) -> tuple[int, int]:
            phase_order = stage.phase.order_index if stage.phase is not None else -1
            return phase_order, stage.order_index

        return sorted(stages, key=sort_key)

    def get_stage_template(self, stage_template_id: UUID) -> models.StageTemplate:
        stage_template = self.db.get(models.StageTemplate, stage_template_id)
        if stage_template is None:
            raise NotFoundError("Stage template", stage_template_id)
        return stage_template

    def list_task_blueprints(self, stage_template_id: UUID) -> list[models.TaskBlueprint]:
        """Return task blueprints of a stage template ordered by index."""
        self.get_stage_template(stage_template_id)
        return self.db.query(models.TaskBlueprint).filter(
            models.TaskBlueprint.stage_template_id == stage_template_id
        ).order_by(
            models.TaskBlueprint.order_index.asc()
        ).all()
