"""Render generated packages as n8n import JSON and markdown guides."""

from __future__ import annotations

import json
from typing import Any, Literal, get_args

from .schema import GeneratedPackage
from .trigger import describe_trigger

ExportFormat = Literal[
    "summary",
    "detailed",
    "json",
    "setup-guide",
    "troubleshooting",
    "documentation",
    "setup-script",
]
EXPORT_FORMATS: tuple[str, ...] = get_args(ExportFormat)

FOOTER = "*Generated by FlowBuilder*"


def _unique_names(package: GeneratedPackage) -> dict[str, str]:
    """Node id -> display name, suffixed where n8n would see a duplicate."""
    names: dict[str, str] = {}
    used: set[str] = set()
    for node in package.graph.nodes:
        name = node.display_name
        suffix = 1
        while name in used:
            name = f"{node.display_name} {suffix}"
            suffix += 1
        used.add(name)
        names[node.id] = name
    return names


def to_n8n_workflow(package: GeneratedPackage) -> dict[str, Any]:
    """Build the document n8n accepts under Workflows → Import from JSON.

    n8n keys connections by node name, so ids are translated here.
    """
    graph = package.graph
    names = _unique_names(package)

    nodes = []
    for node in graph.nodes:
        entry: dict[str, Any] = {
            "id": node.id,
            "name": names[node.id],
            "type": node.kind,
            "typeVersion": node.type_version,
            "position": list(node.position),
            "parameters": node.parameters,
        }
        if node.credential_ref:
            entry["credentials"] = {
                node.credential_ref: {"id": None, "name": f"{node.display_name} account"}
            }
        if node.webhook_id:
            entry["webhookId"] = node.webhook_id
        if node.notes:
            entry["notes"] = node.notes
        if node.disabled:
            entry["disabled"] = True
        nodes.append(entry)

    connections: dict[str, Any] = {}
    for source, edges in graph.connections.items():
        ports: list[list[dict[str, Any]]] = []
        for edge in edges:
            while len(ports) <= edge.port:
                ports.append([])
            ports[edge.port].append({"node": names[edge.target], "type": "main", "index": 0})
        connections[names[source]] = {"main": ports}

    settings: dict[str, Any] = {"executionOrder": "v1", "saveManualExecutions": True}
    return {
        "name": package.request.name,
        "nodes": nodes,
        "connections": connections,
        "active": False,
        "settings": settings,
        "staticData": None,
        "tags": [{"name": tag} for tag in graph.tags],
    }


def _bullets(items: list[str], empty: str = "None") -> list[str]:
    if not items:
        return [f"- {empty}"]
    return [f"- {item}" for item in items]


def render_summary(package: GeneratedPackage) -> str:
    request = package.request
    analysis = package.analysis
    lines = [
        f"# {request.name}",
        "",
        f"**Type:** {request.trigger_kind.upper()} workflow",
        f"**Complexity:** {analysis.complexity_tier.upper()}",
        f"**Nodes:** {analysis.node_count}",
        f"**Source:** {package.source}",
        "",
        "## Description",
        request.description or "No description provided",
        "",
        "## Integrations",
        *_bullets(request.integrations),
        "",
        "## Setup Requirements",
        *_bullets([cred.name for cred in package.credential_requirements], "No credentials required"),
        "",
        "## Analysis",
        f"- **Estimated execution time:** {analysis.estimated_execution_seconds} seconds (estimate)",
        f"- **Complexity:** {analysis.complexity_tier}",
        f"- **Potential issues:** {len(analysis.potential_issues)}",
        "",
        "## Quick Setup",
        "1. Import the workflow JSON into n8n",
        "2. Configure required credentials",
        "3. Test the workflow",
        "4. Activate when ready",
        "",
        "---",
        FOOTER,
    ]
    return "\n".join(lines)


def render_detailed(package: GeneratedPackage) -> str:
    request = package.request
    analysis = package.analysis
    lines = [
        f"# {request.name} - Detailed Documentation",
        "",
        "## Overview",
        f"- **Workflow ID:** `{package.id}`",
        f"- **Trigger:** {request.trigger_kind} - {describe_trigger(request)}",
        f"- **Nodes:** {analysis.node_count}",
        f"- **Connections:** {analysis.connection_count}",
        f"- **Complexity:** {analysis.complexity_tier}",
        f"- **Estimated execution time:** {analysis.estimated_execution_seconds}s",
        "",
        "## What This Workflow Does",
        request.action_narrative,
        "",
        "## Nodes",
        "",
        "| # | Node | Type | Credential |",
        "|---|------|------|------------|",
    ]
    for i, node in enumerate(package.graph.nodes, 1):
        lines.append(f"| {i} | {node.display_name} | `{node.kind}` | {node.credential_ref or '-'} |")

    lines += ["", "## Setup Instructions"]
    lines += [f"{i}. {step}" for i, step in enumerate(package.setup_steps, 1)]

    lines += ["", "## Required Credentials"]
    if not package.credential_requirements:
        lines.append("No credentials required.")
    for cred in package.credential_requirements:
        lines += [
            "",
            f"### {cred.name}",
            f"- **Type:** {cred.auth_type}",
            f"- **Service:** {cred.related_service}",
            f"- **Setup guide:** [{cred.setup_link}]({cred.setup_link})",
            f"- **Priority:** {cred.priority}",
        ]

    lines += ["", "## Testing Guidelines", *_bullets(package.testing_guidance)]
    lines += ["", "## Troubleshooting", *_bullets(package.troubleshooting)]
    lines += [
        "",
        "## Analysis & Recommendations",
        "",
        "### Potential Issues",
        *_bullets(analysis.potential_issues),
        "",
        "### Optimization Suggestions",
        *_bullets(analysis.optimization_suggestions),
        "",
        "### Security Considerations",
        *_bullets(analysis.security_considerations),
        "",
        "### Scalability Notes",
        *_bullets(analysis.scalability_notes),
        "",
        "## Workflow JSON",
        "```json",
        json.dumps(to_n8n_workflow(package), indent=2),
        "```",
        "",
        "---",
        FOOTER,
    ]
    return "\n".join(lines)


def render_setup_guide(package: GeneratedPackage) -> str:
    lines = [
        f"# Setup Guide: {package.request.name}",
        "",
        "## Prerequisites",
        "- n8n instance (cloud or self-hosted)",
        "- Admin access to configure credentials",
        "- Access to required third-party services",
        "",
        "## Step-by-Step Setup",
    ]
    for i, step in enumerate(package.setup_steps, 1):
        lines += ["", f"### Step {i}: {step}"]

    if package.credential_requirements:
        lines += ["", "## Credential Configuration"]
    for cred in package.credential_requirements:
        lines += [
            "",
            f"### {cred.name}",
            "1. Go to the n8n Credentials page",
            '2. Click "Add Credential"',
            f'3. Select "{cred.credential_class}" ({cred.auth_type})',
            f"4. Follow the setup guide: [{cred.setup_link}]({cred.setup_link})",
            "5. Test the connection and save",
        ]

    lines += ["", "## Testing Your Workflow"]
    lines += [f"{i}. {item}" for i, item in enumerate(package.testing_guidance, 1)]
    lines += [
        "",
        "## Going Live",
        "1. Complete all testing",
        "2. Set up monitoring",
        "3. Configure error notifications",
        "4. Activate the workflow",
        "5. Monitor initial executions",
    ]
    return "\n".join(lines)


def render_troubleshooting(package: GeneratedPackage) -> str:
    lines = [f"# Troubleshooting Guide: {package.request.name}", "", "## Common Issues"]
    for item in package.troubleshooting:
        lines += ["", f"### {item}", "", "Check the configuration named in the error message."]

    lines += ["", "## Potential Issues"]
    if not package.analysis.potential_issues:
        lines += ["", "No structural issues detected."]
    for issue in package.analysis.potential_issues:
        lines += [
            "",
            f"### {issue}",
            "",
            "**Resolution:** review the workflow configuration and add error handling where needed.",
        ]

    lines += [
        "",
        "## Performance Issues",
        "- **Slow execution:** check API rate limits and network connectivity",
        "- **Timeouts:** increase timeout settings or process less data per run",
        "- **Memory issues:** process data in smaller batches",
        "",
        "## Integration-Specific Troubleshooting",
    ]
    for integration in package.request.integrations:
        lines += [
            "",
            f"### {integration}",
            "- Check API credentials and permissions",
            "- Verify service status and rate limits",
            "- Test with minimal data first",
        ]
    return "\n".join(lines)


def render_documentation(package: GeneratedPackage) -> str:
    """Short markdown README shipped alongside the import JSON."""
    request = package.request
    lines = [
        f"# {request.name}",
        "",
        "## Description",
        request.description or "n8n workflow generated automatically",
        "",
        "## Workflow Overview",
        f"- **Trigger:** {request.trigger_kind} - {describe_trigger(request)}",
        f"- **Integrations:** {', '.join(request.integrations)}",
        f"- **Nodes:** {package.analysis.node_count}",
        f"- **Complexity:** {package.analysis.complexity_tier}",
        "",
        "## What This Workflow Does",
        request.action_narrative,
        "",
        "## Setup Requirements",
        *_bullets(
            [f"{cred.name} ({cred.auth_type})" for cred in package.credential_requirements],
            "No credentials required",
        ),
        "",
        "## Goals",
        *_bullets(request.goals, "General automation goals"),
        "",
        "---",
        FOOTER,
    ]
    return "\n".join(lines)


def render_setup_script(package: GeneratedPackage, n8n_url: str = "http://localhost:5678") -> str:
    """Shell script that checks n8n is reachable and lists credentials to create."""
    name = package.request.name.replace('"', "'")
    lines = [
        "#!/bin/bash",
        f"# n8n workflow setup script for: {name}",
        "",
        f'echo "Setting up n8n workflow: {name}"',
        "",
        f"if ! curl -f -s {n8n_url}/healthz > /dev/null; then",
        f'  echo "Error: n8n is not reachable at {n8n_url}"',
        "  exit 1",
        "fi",
        "",
        'echo "Please create the following credentials in the n8n UI:"',
    ]
    for cred in package.credential_requirements:
        lines.append(f'echo "- {cred.name} ({cred.credential_class})"')
    lines.append('echo "Then import the workflow JSON."')
    return "\n".join(lines)


def render_export(package: GeneratedPackage, fmt: str) -> str:
    """Render one of ``EXPORT_FORMATS``; raises ValueError for anything else."""
    if fmt == "summary":
        return render_summary(package)
    if fmt == "detailed":
        return render_detailed(package)
    if fmt == "json":
        return json.dumps(to_n8n_workflow(package), indent=2)
    if fmt == "setup-guide":
        return render_setup_guide(package)
    if fmt == "troubleshooting":
        return render_troubleshooting(package)
    if fmt == "documentation":
        return render_documentation(package)
    if fmt == "setup-script":
        return render_setup_script(package)
    raise ValueError(f"Unknown export format '{fmt}'. Expected one of: {', '.join(EXPORT_FORMATS)}")
