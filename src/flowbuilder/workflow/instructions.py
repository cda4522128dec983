"""Setup steps, testing guidance and credential requirements for a graph."""

from __future__ import annotations

from .resolver import CREDENTIAL_DOCS_URL, credential_binding
from .schema import CredentialRequirement, WorkflowGraph, WorkflowRequest

TESTING_GUIDANCE = [
    "Use the Execute Workflow button to test manually",
    "Check each node's output for proper data flow",
    "Verify integrations are connecting successfully",
    "Test error scenarios to ensure proper handling",
]

TROUBLESHOOTING = [
    "Check credential configuration if nodes fail",
    "Verify API permissions and rate limits",
    "Review node-specific documentation for parameter requirements",
    "Use n8n's execution log to debug issues",
]

_TRIGGER_STEPS = {
    "scheduled": "Review the Schedule Trigger times and the workflow timezone",
    "inbound-request": "Copy the production webhook URL and register it with the calling system",
    "ad-hoc": "Run the workflow from the editor whenever it is needed",
}


def credential_requirements(graph: WorkflowGraph) -> list[CredentialRequirement]:
    """One requirement per distinct credential class, in node order."""
    requirements: list[CredentialRequirement] = []
    seen: set[str] = set()

    for node in graph.nodes:
        credential_class = node.credential_ref
        if not credential_class or credential_class in seen:
            continue
        seen.add(credential_class)

        binding = credential_binding(credential_class)
        if binding is not None:
            name = binding.credential_name
            auth_type = binding.auth_type
            setup_link = binding.setup_link
        else:
            name = credential_class
            auth_type = "API Key"
            setup_link = CREDENTIAL_DOCS_URL

        requirements.append(
            CredentialRequirement(
                name=name,
                credential_class=credential_class,
                related_service=node.display_name,
                priority="optional" if node.disabled else "required",
                auth_type=auth_type,
                setup_link=setup_link,
                description=f"{auth_type} credentials for {node.display_name}",
            )
        )

    return requirements


def setup_steps(request: WorkflowRequest, graph: WorkflowGraph) -> list[str]:
    steps = ["Import this workflow JSON into your n8n instance"]
    if any(node.credential_ref for node in graph.nodes):
        steps.append("Set up required credentials for each integration")
    steps.append(_TRIGGER_STEPS[request.trigger_kind])
    steps.append("Test the workflow with sample data")
    steps.append("Activate the workflow when ready")
    return steps
