"""Error taxonomy for roadmap operations.

Callers map these onto their transport (HTTP status codes, MCP text):
- NotFoundError: unknown stage, phase, template or project
- InvalidTransitionError: the requested status change is not allowed
- NoCapableAssigneeError: no roster member has the required capability
  (non-fatal, the task is created unassigned)
- ConcurrentModificationError: row lock or uniqueness race, safe to retry
- CatalogIntegrityError: the phase catalog is malformed
"""
from typing import Optional, Union
from uuid import UUID


class RoadmapError(Exception):
    """Base class for all roadmap engine errors."""


class NotFoundError(RoadmapError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Union[UUID, str]):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransitionError(RoadmapError):
    """Raised when a stage or phase status change is not allowed."""

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        requested_status: Optional[str] = None,
        allowed_transitions: Optional[list[str]] = None,
    ):
        super().__init__(message)
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed_transitions = allowed_transitions or []


class NoCapableAssigneeError(RoadmapError):
    """Raised when no project member matches a required capability."""

    def __init__(self, project_id: UUID, capability: str):
        super().__init__(f"No member of project {project_id} has capability '{capability}'")
        self.project_id = project_id
        self.capability = capability


class ConcurrentModificationError(RoadmapError):
    """Raised when another transaction holds or changed the rows being transitioned."""


class CatalogIntegrityError(RoadmapError):
    """Raised when the phase catalog violates its ordering rules."""
