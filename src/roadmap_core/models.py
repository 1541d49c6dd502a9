"""SQLAlchemy database models."""
from datetime import datetime, timezone
from uuid import uuid4
import enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

# Base class for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StageStatus(str, enum.Enum):
    """Lifecycle status shared by phases and stages.

    Lifecycle: locked -> active -> completed
    """

    LOCKED = "locked"
    ACTIVE = "active"
    COMPLETED = "completed"


class TaskStatus(str, enum.Enum):
    """Known task statuses.

    Stored as plain strings: the task tracker owns the workflow, and which of
    these count as finished is configured via ``terminal_task_statuses``.
    """

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    PENDING_CLIENT = "Pending Client"
    READY = "Ready"
    REJECTED = "Rejected"
    DONE = "Done"
    APPROVED = "Approved"


class TaskPriority(str, enum.Enum):
    """Task priority enum."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def _stage_status_column(**kwargs) -> Column:
    return Column(
        Enum(StageStatus, values_callable=lambda x: [e.value for e in x], name="stagestatus"),
        nullable=False,
        default=StageStatus.LOCKED,
        **kwargs,
    )


# ============================================================================
# Collaborator-owned tables (read by the roster lookup)
# ============================================================================


class Project(Base):
    """
    Client project.

    Owned by the projects module; the roadmap engine only reads it for
    organization scoping.
    """

    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)
    organization_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


class User(Base):
    """
    Team member.

    ``job_title`` is the capability the roadmap engine matches against a
    blueprint's required capability.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    organization_id = Column(Uuid, nullable=False, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255))
    job_title = Column(String(100), index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.job_title})>"


class ProjectMember(Base):
    """
    Junction table linking users to projects.

    The project roster used for capability-based auto-assignment.
    """

    __tablename__ = "project_members"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False, default="member")
    joined_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    project = relationship("Project", back_populates="members")
    user = relationship("User", backref="project_memberships")

    # Constraints
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="unique_project_user"),
    )

    def __repr__(self) -> str:
        return f"<ProjectMember {self.user_id} in {self.project_id}>"


# ============================================================================
# Template Catalog
# ============================================================================


class Phase(Base):
    """
    Fixed top-level roadmap phase (Preparation, Production, Launch, Final).

    Global catalog rows, not editable per project or per template.
    """

    __tablename__ = "roadmap_phases"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    order_index = Column(Integer, nullable=False, unique=True)
    color = Column(String(20), nullable=False, default="#64748b")
    icon = Column(String(20))

    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Phase {self.order_index}: {self.name}>"


class RoadmapTemplate(Base):
    """
    Reusable roadmap template (e.g. "SMM launch", "Website build").

    ``organization_id`` is null for global templates.
    """

    __tablename__ = "roadmap_templates"

    id = Column(Uuid, primary_key=True, default=uuid4)
    organization_id = Column(Uuid, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    service_type = Column(String(100))
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    stages = relationship(
        "StageTemplate",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="StageTemplate.order_index",
    )

    def __repr__(self) -> str:
        return f"<RoadmapTemplate {self.name}>"


class StageTemplate(Base):
    """Sub-stage blueprint belonging to a template and a phase."""

    __tablename__ = "roadmap_template_stages"

    id = Column(Uuid, primary_key=True, default=uuid4)
    template_id = Column(Uuid, ForeignKey("roadmap_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    # Null phase lands in the first phase when attached
    phase_id = Column(Uuid, ForeignKey("roadmap_phases.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    color = Column(String(20))
    order_index = Column(Integer, nullable=False, default=0)
    duration_days = Column(Integer, nullable=True, default=7)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    template = relationship("RoadmapTemplate", back_populates="stages")
    phase = relationship("Phase")
    blueprints = relationship(
        "TaskBlueprint",
        back_populates="stage_template",
        cascade="all, delete-orphan",
        order_by="TaskBlueprint.order_index",
    )

    __table_args__ = (
        CheckConstraint("duration_days IS NULL OR duration_days > 0", name="positive_stage_template_duration"),
    )

    def __repr__(self) -> str:
        return f"<StageTemplate {self.order_index}: {self.name}>"


class TaskBlueprint(Base):
    """Task definition materialized into a Task when its stage activates."""

    __tablename__ = "roadmap_template_tasks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    stage_template_id = Column(
        Uuid, ForeignKey("roadmap_template_stages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text)
    tags = Column(JSON, nullable=False, default=list)
    order_index = Column(Integer, nullable=False, default=0)
    estimated_hours = Column(Numeric(6, 2))
    duration_days = Column(Integer, nullable=True, default=3)
    # Job title of the person expected to do the work
    required_capability = Column(String(100), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    stage_template = relationship("StageTemplate", back_populates="blueprints")

    __table_args__ = (
        CheckConstraint("duration_days IS NULL OR duration_days > 0", name="positive_blueprint_duration"),
    )

    def __repr__(self) -> str:
        return f"<TaskBlueprint {self.order_index}: {self.title[:30]}>"


# ============================================================================
# Project Roadmap Instance
# ============================================================================


class ProjectPhaseStatus(Base):
    """
    Per-project status of a top-level phase.

    At most one row per project is active; everything before it is completed
    and everything after it is locked.
    """

    __tablename__ = "project_phase_status"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    phase_id = Column(Uuid, ForeignKey("roadmap_phases.id", ondelete="CASCADE"), nullable=False, index=True)
    status = _stage_status_column(index=True)
    order_index = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    phase = relationship("Phase")

    __table_args__ = (
        UniqueConstraint("project_id", "phase_id", name="unique_project_phase"),
        Index("ix_project_phase_status_order", "project_id", "order_index"),
        Index(
            "uq_project_phase_status_one_active",
            "project_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<ProjectPhaseStatus {self.order_index} {self.status.value}>"


class ProjectRoadmapTemplate(Base):
    """Record of a template attached to a project."""

    __tablename__ = "project_roadmap_templates"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id = Column(Uuid, ForeignKey("roadmap_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("project_id", "template_id", name="unique_project_template"),
    )


class ProjectStage(Base):
    """
    Level 2 stage of a project roadmap.

    Either copied from a StageTemplate (``template_stage_id`` set) or created
    manually, in which case its tasks are authored by users before activation.
    """

    __tablename__ = "project_roadmap_stages"

    id = Column(Uuid, primary_key=True, default=uuid4)
    organization_id = Column(Uuid, nullable=True, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    phase_id = Column(Uuid, ForeignKey("roadmap_phases.id", ondelete="CASCADE"), nullable=False, index=True)
    template_stage_id = Column(
        Uuid, ForeignKey("roadmap_template_stages.id", ondelete="SET NULL"), nullable=True, index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text)
    color = Column(String(20))
    status = _stage_status_column()
    order_index = Column(Integer, nullable=False, default=0)
    duration_days = Column(Integer, nullable=False, default=7)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    phase = relationship("Phase")
    template_stage = relationship("StageTemplate")
    tasks = relationship("Task", back_populates="stage", order_by=lambda: [Task.created_at, Task.order_index])

    __table_args__ = (
        UniqueConstraint("project_id", "phase_id", "order_index", name="unique_project_phase_stage_order"),
        UniqueConstraint("project_id", "template_stage_id", name="unique_project_template_stage"),
        Index("ix_project_roadmap_stages_status", "project_id", "status"),
        Index(
            "uq_project_roadmap_stages_one_active",
            "project_id",
            "phase_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    @property
    def is_manual(self) -> bool:
        return self.template_stage_id is None

    def __repr__(self) -> str:
        return f"<ProjectStage {self.order_index}: {self.name} ({self.status.value})>"


class Task(Base):
    """Executable unit of work.

    Created by stage activation from a TaskBlueprint, or directly by a user
    inside a manual stage. Tasks with no stage live outside the roadmap.
    """

    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    organization_id = Column(Uuid, nullable=True, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    stage_id = Column(Uuid, ForeignKey("project_roadmap_stages.id", ondelete="SET NULL"), nullable=True, index=True)
    blueprint_id = Column(Uuid, ForeignKey("roadmap_template_tasks.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String(50), nullable=False, default=TaskStatus.TODO.value, index=True)
    priority = Column(String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    duration_days = Column(Integer, nullable=True, default=3)
    estimated_hours = Column(Numeric(6, 2))
    required_capability = Column(String(100), nullable=True)
    # Position within the stage; breaks created_at ties
    order_index = Column(Integer, nullable=False, default=0)

    assignee_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    auto_assigned = Column(Boolean, nullable=False, default=False)
    deadline = Column(DateTime, nullable=True, index=True)

    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)

    stage = relationship("ProjectStage", back_populates="tasks")
    assignee = relationship("User", foreign_keys=[assignee_id])

    __table_args__ = (
        Index("ix_tasks_stage_status", "stage_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Task {self.title[:30]} ({self.status})>"
