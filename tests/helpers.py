"""Test helpers for reading and nudging roadmap state."""
from roadmap_core import models


def stage_for(db, project, stage_template) -> models.ProjectStage:
    """Project stage copied from a stage template."""
    return db.query(models.ProjectStage).filter(
        models.ProjectStage.project_id == project.id,
        models.ProjectStage.template_stage_id == stage_template.id,
    ).one()


def finish_tasks(db, stage, status: str = "Done") -> None:
    """Move every task of a stage to a terminal status."""
    for task in db.query(models.Task).filter(models.Task.stage_id == stage.id):
        task.status = status
    db.commit()


def active_phase_ids(db, project) -> list:
    return [
        row.phase_id
        for row in db.query(models.ProjectPhaseStatus).filter(
            models.ProjectPhaseStatus.project_id == project.id,
            models.ProjectPhaseStatus.status == models.StageStatus.ACTIVE,
        )
    ]
