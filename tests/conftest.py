"""Shared fixtures: in-memory database, fixed clock and a seeded roadmap catalog."""
from datetime import datetime, timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roadmap_core import models
from roadmap_core.config import Settings
from roadmap_core.engine import RoadmapEngine

START = datetime(2026, 2, 1, 0, 0)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now = self.now + timedelta(days=days, hours=hours)


@pytest.fixture
def db():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://")


@pytest.fixture
def engine(db, clock, settings) -> RoadmapEngine:
    return RoadmapEngine(db, clock=clock, settings=settings)


@pytest.fixture
def phases(db) -> SimpleNamespace:
    """The four fixed phases."""
    rows = {
        "preparation": models.Phase(name="Preparation", order_index=0, color="#3b82f6"),
        "production": models.Phase(name="Production", order_index=1, color="#f59e0b"),
        "launch": models.Phase(name="Launch", order_index=2, color="#10b981"),
        "final": models.Phase(name="Final", order_index=3, color="#8b5cf6"),
    }
    db.add_all(rows.values())
    db.commit()
    return SimpleNamespace(**rows)


@pytest.fixture
def project(db) -> models.Project:
    """Project with an editor and a designer on the team."""
    organization_id = uuid4()
    project = models.Project(organization_id=organization_id, name="Bakery SMM")
    db.add(project)
    db.flush()

    for email, full_name, job_title in [
        ("ed@agency.test", "Alice Editor", "Editor"),
        ("dee@agency.test", "Dee Designer", " designer "),
    ]:
        user = models.User(organization_id=organization_id, email=email, full_name=full_name, job_title=job_title)
        db.add(user)
        db.flush()
        db.add(models.ProjectMember(project_id=project.id, user_id=user.id))

    db.commit()
    return project


@pytest.fixture
def editor(db, project) -> models.User:
    return db.query(models.User).filter(models.User.email == "ed@agency.test").one()


@pytest.fixture
def designer(db, project) -> models.User:
    return db.query(models.User).filter(models.User.email == "dee@agency.test").one()


@pytest.fixture
def template(db, phases) -> SimpleNamespace:
    """
    SMM launch template:

    - Preparation: Briefing (A Editor 2d, B Editor 3d, C Designer 1d), Content plan (Plan)
    - Production: Shooting (Shoot, needs a Videographer nobody has)
    - Launch: Go live (Publish, Editor 1d)
    - Final: nothing
    """
    tpl = models.RoadmapTemplate(name="SMM launch", service_type="smm")
    db.add(tpl)
    db.flush()

    def stage(phase, name, order_index, blueprints):
        st = models.StageTemplate(template_id=tpl.id, phase_id=phase.id, name=name, order_index=order_index)
        db.add(st)
        db.flush()
        for position, (title, capability, duration) in enumerate(blueprints):
            db.add(models.TaskBlueprint(
                stage_template_id=st.id,
                title=title,
                required_capability=capability,
                duration_days=duration,
                order_index=position,
            ))
        return st

    briefing = stage(phases.preparation, "Briefing", 0, [
        ("A", "Editor", 2),
        ("B", "Editor", 3),
        ("C", "Designer", 1),
    ])
    content_plan = stage(phases.preparation, "Content plan", 1, [("Plan", None, None)])
    shooting = stage(phases.production, "Shooting", 0, [("Shoot", "Videographer", 2)])
    go_live = stage(phases.launch, "Go live", 0, [("Publish", "Editor", 1)])
    db.commit()

    return SimpleNamespace(
        id=tpl.id,
        briefing=briefing,
        content_plan=content_plan,
        shooting=shooting,
        go_live=go_live,
    )
