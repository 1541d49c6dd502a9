"""Tests for the template catalog."""
from uuid import uuid4

import pytest
from roadmap_core import models
from roadmap_core.catalog import SqlTemplateCatalog, validate_phase_ordering
from roadmap_core.errors import CatalogIntegrityError, NotFoundError


def _phases(*indices):
    return [models.Phase(name=f"P{i}", order_index=i) for i in indices]


class TestPhaseOrdering:
    """Test phase catalog validation."""

    def test_contiguous_ordering_is_valid(self):
        validate_phase_ordering(_phases(0, 1, 2, 3))  # Should not raise
        validate_phase_ordering(_phases(1, 2))

    def test_empty_catalog_rejected(self):
        with pytest.raises(CatalogIntegrityError, match="empty"):
            validate_phase_ordering([])

    def test_duplicates_rejected(self):
        with pytest.raises(CatalogIntegrityError, match="duplicate"):
            validate_phase_ordering(_phases(0, 1, 1))

    def test_gaps_rejected(self):
        with pytest.raises(CatalogIntegrityError, match="not contiguous"):
            validate_phase_ordering(_phases(0, 2, 3))


class TestSqlTemplateCatalog:
    """Test catalog reads."""

    def test_list_phases_ordered(self, db, phases):
        names = [p.name for p in SqlTemplateCatalog(db).list_phases()]
        assert names == ["Preparation", "Production", "Launch", "Final"]

    def test_list_phases_empty_is_integrity_error(self, db):
        with pytest.raises(CatalogIntegrityError):
            SqlTemplateCatalog(db).list_phases()

    def test_list_template_stages_by_phase_then_index(self, db, phases, template):
        # Phase-less stage sorts first: it lands in the first phase on attach
        db.add(models.StageTemplate(template_id=template.id, phase_id=None, name="Kickoff", order_index=5))
        db.commit()

        names = [s.name for s in SqlTemplateCatalog(db).list_template_stages(template.id)]

        assert names == ["Kickoff", "Briefing", "Content plan", "Shooting", "Go live"]

    def test_list_stage_templates_of_phase(self, db, phases, template):
        names = [s.name for s in SqlTemplateCatalog(db).list_stage_templates(phases.preparation.id)]
        assert names == ["Briefing", "Content plan"]

    def test_list_task_blueprints_ordered(self, db, template):
        titles = [b.title for b in SqlTemplateCatalog(db).list_task_blueprints(template.briefing.id)]
        assert titles == ["A", "B", "C"]

    def test_unknown_ids_raise_not_found(self, db, phases):
        catalog = SqlTemplateCatalog(db)
        for call in (
            catalog.get_template,
            catalog.get_phase,
            catalog.get_stage_template,
            catalog.list_template_stages,
            catalog.list_task_blueprints,
        ):
            with pytest.raises(NotFoundError):
                call(uuid4())

    def test_list_templates_scoping(self, db, template):
        organization_id = uuid4()
        db.add_all([
            models.RoadmapTemplate(name="Org only", organization_id=organization_id),
            models.RoadmapTemplate(name="Other org", organization_id=uuid4()),
            models.RoadmapTemplate(name="Retired", is_active=False),
        ])
        db.commit()
        catalog = SqlTemplateCatalog(db)

        scoped = [t.name for t in catalog.list_templates(organization_id)]
        everything = [t.name for t in catalog.list_templates()]

        assert scoped == ["Org only", "SMM launch"]
        assert everything == ["Org only", "Other org", "SMM launch"]
