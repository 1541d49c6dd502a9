"""Tests for stage activation and task materialization."""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from roadmap_core import models
from roadmap_core.activation import ManualSource, TemplateSource, resolve_stage_source
from roadmap_core.catalog import SqlTemplateCatalog
from roadmap_core.engine import RoadmapEngine
from roadmap_core.errors import InvalidTransitionError, NotFoundError
from roadmap_core.schemas import StageTaskCreate

from helpers import finish_tasks, stage_for


def _tasks(db, stage):
    return db.query(models.Task).filter(models.Task.stage_id == stage.id).order_by(models.Task.order_index).all()


class TestTemplateActivation:
    """Test activation of template-bound stages."""

    def test_waterfall_deadlines(self, db, engine, project, template):
        """A(Editor, 2d) → 02-03, B(Editor, 3d) → 02-06, C(Designer, 1d) → 02-02."""
        engine.attach_template(project.id, template.id)
        briefing = stage_for(db, project, template.briefing)

        deadlines = {task.title: task.deadline for task in _tasks(db, briefing)}

        assert deadlines == {
            "A": datetime(2026, 2, 3),
            "B": datetime(2026, 2, 6),
            "C": datetime(2026, 2, 2),
        }

    def test_stage_marked_active_at_clock_time(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        briefing = stage_for(db, project, template.briefing)

        assert briefing.status == models.StageStatus.ACTIVE
        assert briefing.started_at == datetime(2026, 2, 1)

    def test_tasks_auto_assigned_by_capability(self, db, engine, project, template, editor, designer):
        engine.attach_template(project.id, template.id)
        tasks = {task.title: task for task in _tasks(db, stage_for(db, project, template.briefing))}

        assert tasks["A"].assignee_id == editor.id
        assert tasks["B"].assignee_id == editor.id
        # Job title " designer " still matches "Designer"
        assert tasks["C"].assignee_id == designer.id
        assert all(task.auto_assigned for task in tasks.values())

    def test_blueprint_fields_copied_with_fallbacks(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        task = _tasks(db, stage_for(db, project, template.briefing))[0]

        assert task.title == "A"
        assert task.description == "Required: Editor"
        assert task.tags == ["Editor"]
        assert task.status == "To Do"
        assert task.priority == "Medium"
        assert task.required_capability == "Editor"
        assert task.project_id == project.id
        assert task.organization_id == project.organization_id
        assert task.blueprint_id is not None
        assert task.duration_days == 2

    def test_blueprint_description_and_tags_kept(self, db, engine, project, template):
        blueprint = db.query(models.TaskBlueprint).filter(models.TaskBlueprint.title == "A").one()
        blueprint.description = "Write the brief"
        blueprint.tags = ["copy", "brief"]
        db.commit()

        engine.attach_template(project.id, template.id)
        task = _tasks(db, stage_for(db, project, template.briefing))[0]

        assert task.description == "Write the brief"
        assert task.tags == ["copy", "brief"]

    def test_no_capable_member_leaves_task_unassigned(self, db, engine, clock, project, template):
        engine.attach_template(project.id, template.id)
        for stage_template in (template.briefing, template.content_plan):
            stage = stage_for(db, project, stage_template)
            finish_tasks(db, stage)
            engine.complete_stage(stage.id)

        shooting = stage_for(db, project, template.shooting)
        task = _tasks(db, shooting)[0]

        assert shooting.status == models.StageStatus.ACTIVE
        assert task.assignee_id is None
        assert task.auto_assigned is False
        assert task.deadline is not None

    def test_task_without_capability_or_duration(self, db, engine, clock, project, template):
        engine.attach_template(project.id, template.id)
        briefing = stage_for(db, project, template.briefing)
        finish_tasks(db, briefing)
        clock.advance(days=10)

        engine.complete_stage(briefing.id)
        task = _tasks(db, stage_for(db, project, template.content_plan))[0]

        assert task.assignee_id is None
        assert task.description is None
        assert task.tags == []
        assert task.deadline == datetime(2026, 2, 11) + timedelta(days=3)


class TestActivationRules:
    """Test activation preconditions and idempotency."""

    def test_activate_twice_equals_once(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        briefing = stage_for(db, project, template.briefing)
        before = {task.id: task.deadline for task in _tasks(db, briefing)}

        result = engine.activate_stage(briefing.id)

        assert result.no_op is True
        assert result.advanced == "none"
        assert result.tasks_materialized == 0
        assert {task.id: task.deadline for task in _tasks(db, briefing)} == before

    def test_activate_completed_stage_rejected(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        briefing = stage_for(db, project, template.briefing)
        finish_tasks(db, briefing)
        engine.complete_stage(briefing.id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            engine.activate_stage(briefing.id)
        assert exc_info.value.current_status == "completed"

    def test_second_active_stage_in_phase_rejected(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        content_plan = stage_for(db, project, template.content_plan)

        with pytest.raises(InvalidTransitionError, match="already active"):
            engine.activate_stage(content_plan.id)

        db.refresh(content_plan)
        assert content_plan.status == models.StageStatus.LOCKED
        assert _tasks(db, content_plan) == []

    def test_stage_of_locked_phase_rejected(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        shooting = stage_for(db, project, template.shooting)

        with pytest.raises(InvalidTransitionError, match="phase is locked"):
            engine.activate_stage(shooting.id)

    def test_later_stage_cannot_jump_ahead(self, db, engine, project, phases):
        first = engine.create_manual_stage(project.id, phases.preparation.id, "First")
        second = engine.create_manual_stage(project.id, phases.preparation.id, "Second")

        with pytest.raises(InvalidTransitionError, match="must run first") as exc_info:
            engine.activate_stage(second.id)

        assert exc_info.value.current_status == "locked"
        db.refresh(first)
        db.refresh(second)
        assert first.status == models.StageStatus.LOCKED
        assert second.status == models.StageStatus.LOCKED

    def test_stages_run_in_order_through_phase_end(self, db, engine, project, phases):
        """First → Second → phase advance, with no stage left behind."""
        first = engine.create_manual_stage(project.id, phases.preparation.id, "First")
        second = engine.create_manual_stage(project.id, phases.preparation.id, "Second")

        engine.activate_stage(first.id)
        result = engine.complete_stage(first.id)
        assert result.advanced == "stage"
        assert result.next_id == second.id

        result = engine.complete_stage(second.id)
        assert result.advanced == "phase"
        assert result.next_id == phases.production.id
        assert result.completed_phase_id == phases.preparation.id

    def test_unknown_stage(self, engine, phases):
        with pytest.raises(NotFoundError):
            engine.activate_stage(uuid4())

    def test_failed_materialization_rolls_back(self, db, clock, settings, project, template):
        class BrokenRoster:
            def get_project_members(self, project_id):
                raise RuntimeError("roster unavailable")

        engine = RoadmapEngine(db, roster=BrokenRoster(), clock=clock, settings=settings)

        with pytest.raises(RuntimeError):
            engine.attach_template(project.id, template.id)

        assert db.query(models.ProjectStage).count() == 0
        assert db.query(models.Task).count() == 0
        assert db.query(models.ProjectPhaseStatus).count() == 0


class TestManualActivation:
    """Test activation of manual stages."""

    def _manual_stage(self, engine, project, phases):
        return engine.create_manual_stage(project.id, phases.preparation.id, "Photo day")

    def test_manual_stage_not_auto_activated(self, engine, project, phases):
        stage = self._manual_stage(engine, project, phases)
        assert stage.status == models.StageStatus.LOCKED
        assert stage.is_manual

    def test_deadlines_queue_per_assignee(self, db, engine, clock, project, phases, editor, designer):
        stage = self._manual_stage(engine, project, phases)
        engine.add_stage_task(stage.id, StageTaskCreate(title="Shoot", assignee_id=editor.id, duration_days=2))
        engine.add_stage_task(stage.id, StageTaskCreate(title="Retouch", assignee_id=editor.id, duration_days=1))
        engine.add_stage_task(stage.id, StageTaskCreate(title="Props", assignee_id=designer.id, duration_days=4))
        engine.add_stage_task(stage.id, StageTaskCreate(title="Catering"))
        clock.advance(days=1)

        result = engine.activate_stage(stage.id)
        deadlines = {task.title: task.deadline for task in _tasks(db, stage)}

        assert result.advanced == "stage"
        assert result.tasks_materialized == 4
        assert deadlines == {
            "Shoot": datetime(2026, 2, 4),
            "Retouch": datetime(2026, 2, 5),
            "Props": datetime(2026, 2, 6),
            "Catering": datetime(2026, 2, 5),
        }

    def test_manual_tasks_not_duplicated(self, db, engine, project, phases, editor):
        stage = self._manual_stage(engine, project, phases)
        engine.add_stage_task(stage.id, StageTaskCreate(title="Shoot", assignee_id=editor.id))

        engine.activate_stage(stage.id)

        tasks = _tasks(db, stage)
        assert len(tasks) == 1
        assert tasks[0].auto_assigned is False

    def test_add_task_after_activation_rejected(self, engine, project, phases):
        stage = self._manual_stage(engine, project, phases)
        engine.activate_stage(stage.id)

        with pytest.raises(InvalidTransitionError):
            engine.add_stage_task(stage.id, StageTaskCreate(title="Late"))

    def test_add_task_to_template_stage_rejected(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        content_plan = stage_for(db, project, template.content_plan)

        with pytest.raises(InvalidTransitionError, match="from a template"):
            engine.add_stage_task(content_plan.id, StageTaskCreate(title="Extra"))


class TestStageSource:
    """Test template/manual source resolution."""

    def test_template_stage_uses_blueprints(self, db, engine, project, template):
        engine.attach_template(project.id, template.id)
        stage = stage_for(db, project, template.content_plan)

        source = resolve_stage_source(db, stage, SqlTemplateCatalog(db))

        assert isinstance(source, TemplateSource)
        assert [b.title for b in source.blueprints] == ["Plan"]

    def test_manual_stage_uses_own_tasks(self, db, engine, project, phases):
        stage = engine.create_manual_stage(project.id, phases.preparation.id, "Photo day")
        engine.add_stage_task(stage.id, StageTaskCreate(title="First"))
        engine.add_stage_task(stage.id, StageTaskCreate(title="Second"))

        source = resolve_stage_source(db, stage, SqlTemplateCatalog(db))

        assert isinstance(source, ManualSource)
        assert [t.title for t in source.tasks] == ["First", "Second"]
