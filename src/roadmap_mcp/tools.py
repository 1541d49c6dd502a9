"""MCP tool definitions for the Roadmap Engine."""

from mcp.types import Tool


def _project_id_property() -> dict:
    return {
        "type": "string",
        "description": "UUID of the project (defaults to the project chosen with select_project)"
    }


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for roadmap progression."""
    return [
        # ============================================================================
        # Project Scope Tools
        # ============================================================================
        Tool(
            name="select_project",
            description="Set the default project for roadmap tools in this session. "
                       "Tools that take project_id use it when project_id is omitted.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {
                        "type": "string",
                        "description": "UUID of the project"
                    }
                },
                "required": ["project_id"]
            }
        ),
        # ============================================================================
        # Catalog Tools
        # ============================================================================
        Tool(
            name="list_phases",
            description="List the fixed top-level roadmap phases in order "
                       "(Preparation → Production → Launch → Final).",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="list_templates",
            description="List active roadmap templates. "
                       "Common pattern: list_templates() → attach_template(template_id=...) → get_roadmap().",
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {
                        "type": "string",
                        "description": "Only global templates and this organization's own"
                    }
                }
            }
        ),
        # ============================================================================
        # Roadmap Tools
        # ============================================================================
        Tool(
            name="get_roadmap",
            description="Show a project's roadmap: phases with status, their stages, and each stage's tasks "
                       "with assignee and deadline.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _project_id_property()
                }
            }
        ),
        Tool(
            name="attach_template",
            description="Copy a template's stages into a project. Safe to repeat: stages already copied are skipped. "
                       "If the current phase gains stages and none is active, the first one is activated "
                       "and its tasks are created.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _project_id_property(),
                    "template_id": {
                        "type": "string",
                        "description": "UUID of the template to attach"
                    }
                },
                "required": ["template_id"]
            }
        ),
        Tool(
            name="complete_phase",
            description="Complete the active phase when it has no unfinished stages (for example a phase with "
                       "no stages at all) and start the next phase. "
                       "Errors: 409 (phase locked or stages still open).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _project_id_property(),
                    "phase_id": {
                        "type": "string",
                        "description": "UUID of the phase to complete"
                    }
                },
                "required": ["phase_id"]
            }
        ),
        # ============================================================================
        # Stage Tools
        # ============================================================================
        Tool(
            name="activate_stage",
            description="Activate a locked stage: creates its tasks, assigns them by capability and schedules "
                       "deadlines. Activating an active stage changes nothing. "
                       "Errors: 409 (stage completed, phase not active, or another stage active).",
            inputSchema={
                "type": "object",
                "properties": {
                    "stage_id": {
                        "type": "string",
                        "description": "UUID of the stage"
                    }
                },
                "required": ["stage_id"]
            }
        ),
        Tool(
            name="check_stage_ready",
            description="Check whether every task of a stage is finished (Done or Approved). "
                       "Use before complete_stage.",
            inputSchema={
                "type": "object",
                "properties": {
                    "stage_id": {
                        "type": "string",
                        "description": "UUID of the stage"
                    }
                },
                "required": ["stage_id"]
            }
        ),
        Tool(
            name="complete_stage",
            description="Complete an active stage whose tasks are all finished. Activates the next stage, or "
                       "completes the phase and starts the next phase's first stage. "
                       "Errors: 409 (stage locked or tasks still open).",
            inputSchema={
                "type": "object",
                "properties": {
                    "stage_id": {
                        "type": "string",
                        "description": "UUID of the stage"
                    }
                },
                "required": ["stage_id"]
            }
        ),
    ]
