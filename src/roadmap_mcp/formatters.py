"""Formatting functions for MCP responses."""

STATUS_ICONS = {
    "locked": "🔒",
    "active": "▶️",
    "completed": "✅",
}


def format_status(status) -> str:
    """Status with its icon; phases of a project that is not bootstrapped show as not started."""
    if status is None:
        return "⏸️ not started"
    return f"{STATUS_ICONS.get(status, '•')} {status}"


def format_phase(phase: dict) -> str:
    """Format a catalog phase for display."""
    icon = f" {phase['icon']}" if phase.get('icon') else ""
    return f"{phase['order_index']}. **{phase['name']}**{icon}\n   ID: {phase['id']}"


def format_template(template: dict) -> str:
    """Format a roadmap template for display."""
    desc_info = f"\nDescription: {template['description']}" if template.get('description') else ""
    service_info = f"\nService Type: {template['service_type']}" if template.get('service_type') else ""
    scope = "global" if template.get('organization_id') is None else f"organization {template['organization_id']}"

    return f"""**{template['name']}**
ID: {template['id']}
Scope: {scope}{service_info}{desc_info}"""


def format_task(task: dict) -> str:
    """Format a roadmap task as one line."""
    assignee = task.get('assignee_id') or "unassigned"
    auto = " (auto)" if task.get('auto_assigned') else ""
    deadline = task.get('deadline') or "no deadline"
    return f"    - [{task['status']}] {task['title']} | {assignee}{auto} | due {deadline}"


def format_stage(stage: dict) -> str:
    """Format a project stage with its tasks."""
    kind = "manual" if stage.get('is_manual') else "template"
    lines = [
        f"  {format_status(stage['status'])} **{stage['name']}** ({kind}, "
        f"{stage['completed_tasks']}/{stage['total_tasks']} tasks done)",
        f"    ID: {stage['id']}",
    ]
    lines.extend(format_task(task) for task in stage.get('tasks', []))
    return "\n".join(lines)


def format_roadmap(snapshot: dict) -> str:
    """Format a full project roadmap."""
    header = f"# Roadmap for project {snapshot['project_id']}"
    if snapshot.get('roadmap_complete'):
        header += " (complete)"

    sections = [header]
    for phase in snapshot['phases']:
        phase_lines = [f"## {phase['order_index']}. {phase['name']} - {format_status(phase['status'])}"]
        phase_lines.append(f"Phase ID: {phase['phase_id']}")
        if phase['stages']:
            phase_lines.extend(format_stage(stage) for stage in phase['stages'])
        else:
            phase_lines.append("  (no stages)")
        sections.append("\n".join(phase_lines))

    return "\n\n".join(sections)


def format_transition(result: dict) -> str:
    """Format a TransitionResult."""
    lines = [result.get('message') or "Done"]
    if result.get('no_op'):
        lines.append("No changes were made.")
    if result.get('completed_stage_id'):
        lines.append(f"Completed stage: {result['completed_stage_id']}")
    if result.get('completed_phase_id'):
        lines.append(f"Completed phase: {result['completed_phase_id']}")
    if result.get('advanced') == "phase":
        lines.append(f"Now in phase: {result['next_id']}")
    if result.get('activated_stage_id'):
        lines.append(
            f"Activated stage: {result['activated_stage_id']} "
            f"({result.get('tasks_materialized', 0)} tasks scheduled)"
        )
    if result.get('roadmap_complete'):
        lines.append("🎉 The roadmap is complete.")
    return "\n".join(lines)


def format_readiness(readiness: dict) -> str:
    """Format a stage readiness check."""
    if readiness['all_tasks_terminal']:
        verdict = "✅ Ready to complete"
    else:
        verdict = f"⏳ Not ready: {readiness['open_tasks']} of {readiness['total_tasks']} tasks still open"
    return f"""Stage {readiness['stage_id']} ({readiness['status']})
{verdict}"""
