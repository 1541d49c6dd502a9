"""MCP tool handlers.

All handlers follow a consistent pattern:
- Accept: arguments dict, httpx.AsyncClient, and optional current_scope
- Return: tuple of (list[TextContent], Optional[dict]) where second element is updated scope
- Use formatters for consistent output
"""
from typing import Optional
import logging

import httpx
from mcp.types import TextContent

from . import formatters

logger = logging.getLogger("roadmap-mcp.handlers")

# Tools whose project_id defaults to the session project
PROJECT_SCOPED_TOOLS = {"get_roadmap", "attach_template", "complete_phase"}


def apply_project_scope_defaults(
    tool_name: str,
    arguments: dict,
    current_scope: Optional[dict] = None
) -> dict:
    """Fill in project_id from the session scope when the tool takes one and it was omitted."""
    if tool_name not in PROJECT_SCOPED_TOOLS or current_scope is None:
        return arguments

    if not arguments.get("project_id"):
        arguments["project_id"] = current_scope["project_id"]
        logger.info(f"Using session project scope: {current_scope['project_id']}")
    return arguments


def _require_project(arguments: dict) -> Optional[list[TextContent]]:
    if arguments.get("project_id"):
        return None
    return [TextContent(
        type="text",
        text="No project given. Pass project_id or call select_project(project_id=...) first."
    )]


# ============================================================================
# Project Scope Handlers
# ============================================================================

async def handle_select_project(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Select the default project after checking it exists."""
    project_id = arguments["project_id"]
    response = await client.get(f"/projects/{project_id}/roadmap")
    response.raise_for_status()
    logger.info(f"Selected project {project_id}")

    new_scope = {"project_id": project_id}
    return [TextContent(type="text", text=f"Project {project_id} selected for roadmap tools.")], new_scope


# ============================================================================
# Catalog Handlers
# ============================================================================

async def handle_list_phases(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """List top-level phases."""
    response = await client.get("/phases")
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully listed {len(result)} phases")

    text = "\n".join(formatters.format_phase(phase) for phase in result)
    return [TextContent(type="text", text=text)], current_scope


async def handle_list_templates(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """List active templates."""
    params = {k: v for k, v in arguments.items() if v is not None}
    response = await client.get("/templates", params=params)
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully listed {len(result)} templates")

    if not result:
        return [TextContent(type="text", text="No templates found.")], current_scope

    items_text = "\n\n".join(formatters.format_template(item) for item in result)
    return [TextContent(type="text", text=f"Found {len(result)} templates\n\n{items_text}")], current_scope


# ============================================================================
# Roadmap Handlers
# ============================================================================

async def handle_get_roadmap(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Show a project's roadmap."""
    missing = _require_project(arguments)
    if missing:
        return missing, current_scope

    project_id = arguments["project_id"]
    response = await client.get(f"/projects/{project_id}/roadmap")
    response.raise_for_status()
    logger.info(f"Successfully retrieved roadmap for project {project_id}")

    return [TextContent(type="text", text=formatters.format_roadmap(response.json()))], current_scope


async def handle_attach_template(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Attach a template to a project."""
    missing = _require_project(arguments)
    if missing:
        return missing, current_scope

    project_id = arguments["project_id"]
    response = await client.post(
        f"/projects/{project_id}/roadmap/templates",
        json={"template_id": arguments["template_id"]},
    )
    response.raise_for_status()
    result = response.json()
    logger.info(f"Attached template {arguments['template_id']} to project {project_id}")

    text = (f"Attached template {result['template_id']}\n"
            f"Stages created: {len(result['created_stage_ids'])}\n"
            f"Already present: {result['skipped_stage_count']}\n\n"
            f"{formatters.format_transition(result)}")
    return [TextContent(type="text", text=text)], current_scope


async def handle_complete_phase(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Complete a phase with no unfinished stages."""
    missing = _require_project(arguments)
    if missing:
        return missing, current_scope

    project_id = arguments["project_id"]
    phase_id = arguments["phase_id"]
    response = await client.post(f"/projects/{project_id}/roadmap/phases/{phase_id}/complete")
    response.raise_for_status()
    logger.info(f"Completed phase {phase_id} of project {project_id}")

    return [TextContent(type="text", text=formatters.format_transition(response.json()))], current_scope


# ============================================================================
# Stage Handlers
# ============================================================================

async def handle_activate_stage(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Activate a locked stage."""
    stage_id = arguments["stage_id"]
    response = await client.post(f"/stages/{stage_id}/activate")
    response.raise_for_status()
    logger.info(f"Activated stage {stage_id}")

    return [TextContent(type="text", text=formatters.format_transition(response.json()))], current_scope


async def handle_check_stage_ready(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Report whether a stage's tasks are all finished."""
    stage_id = arguments["stage_id"]
    response = await client.get(f"/stages/{stage_id}/ready")
    response.raise_for_status()

    return [TextContent(type="text", text=formatters.format_readiness(response.json()))], current_scope


async def handle_complete_stage(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Complete a stage and advance the roadmap."""
    stage_id = arguments["stage_id"]
    response = await client.post(f"/stages/{stage_id}/complete")
    response.raise_for_status()
    logger.info(f"Completed stage {stage_id}")

    return [TextContent(type="text", text=formatters.format_transition(response.json()))], current_scope


HANDLERS = {
    "select_project": handle_select_project,
    "list_phases": handle_list_phases,
    "list_templates": handle_list_templates,
    "get_roadmap": handle_get_roadmap,
    "attach_template": handle_attach_template,
    "complete_phase": handle_complete_phase,
    "activate_stage": handle_activate_stage,
    "check_stage_ready": handle_check_stage_ready,
    "complete_stage": handle_complete_stage,
}
