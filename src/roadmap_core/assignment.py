"""Capability-based task assignment.

A blueprint names the job title it needs ("Editor", "Designer"). When its
stage activates, the task goes to the first project member holding that job
title. The roster comes from a ``RosterProvider`` so the team module can be
swapped out; ``SqlRoster`` reads project_members joined with users.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from . import models
from .errors import NoCapableAssigneeError

logger = logging.getLogger("roadmap-core.assignment")


@dataclass(frozen=True)
class RosterEntry:
    """One project member and the capability they bring."""

    user_id: UUID
    role: Optional[str]
    full_name: Optional[str] = None


class RosterProvider(Protocol):
    """Project roster lookup owned by the team module."""

    def get_project_members(self, project_id: UUID) -> list[RosterEntry]: ...


class SqlRoster:
    """RosterProvider reading project members and their job titles.

    Members are returned in a stable order (full name, then user id) so the
    same roster always yields the same assignee.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_project_members(self, project_id: UUID) -> list[RosterEntry]:
        rows = self.db.query(models.User).join(
            models.ProjectMember, models.ProjectMember.user_id == models.User.id
        ).filter(
            models.ProjectMember.project_id == project_id,
            models.User.is_active.is_(True),
        ).all()

        entries = [RosterEntry(user_id=u.id, role=u.job_title, full_name=u.full_name) for u in rows]
        return sorted(entries, key=lambda e: ((e.full_name or "").casefold(), str(e.user_id)))


def normalize_capability(capability: Optional[str]) -> Optional[str]:
    """Trim and casefold a capability string; blank becomes None."""
    if capability is None:
        return None
    normalized = capability.strip().casefold()
    return normalized or None


def resolve_assignee_by_capability(
    roster: list[RosterEntry],
    project_id: UUID,
    capability: str,
) -> UUID:
    """
    Pick the first roster member whose role matches the capability.

    Args:
        roster: Project members in stable order
        project_id: Project the task belongs to (for error context)
        capability: Required job title

    Returns:
        User UUID of the matching member

    Raises:
        NoCapableAssigneeError: If nobody on the roster has the capability
    """
    wanted = normalize_capability(capability)
    for entry in roster:
        if wanted is not None and normalize_capability(entry.role) == wanted:
            return entry.user_id
    raise NoCapableAssigneeError(project_id, capability)


def auto_assign(
    roster: list[RosterEntry],
    project_id: UUID,
    capability: Optional[str],
) -> Optional[UUID]:
    """Resolve an assignee, degrading to unassigned when nobody matches.

    Returns None for tasks without a capability and for unmatched ones; the
    latter is logged for triage.
    """
    if normalize_capability(capability) is None:
        return None

    try:
        return resolve_assignee_by_capability(roster, project_id, capability)
    except NoCapableAssigneeError as e:
        logger.warning(f"{e}; task will be unassigned")
        return None
