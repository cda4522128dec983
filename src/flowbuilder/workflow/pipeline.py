"""Workflow generation pipeline: cache → completion → parse, or fallback synthesis."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from typing import TYPE_CHECKING, Any, Optional

from ..agents.completion import CompletionClient
from .analyzer import analyze, merge_suggested_analysis
from .cache import PackageCache
from .ids import IdGenerator, UuidIdGenerator
from .instructions import (
    TESTING_GUIDANCE,
    TROUBLESHOOTING,
    credential_requirements,
    setup_steps,
)
from .payload import GeneratedPayload, parse_generated_payload
from .resolver import resolve
from .schema import GeneratedPackage, WorkflowAlternatives, WorkflowRequest
from .synthesizer import synthesize, synthesize_advanced, synthesize_simplified
from .trigger import describe_trigger
from .vocabulary import AnalysisTuning

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_CACHE_TTL_SECONDS = 86400
DEFAULT_CACHE_PREFIX = "flowbuilder:workflow"

# Changing any of these invalidates the graph and analysis
REGENERATING_FIELDS = ("integrations", "action_narrative", "trigger_kind", "trigger_detail")

SYSTEM_PROMPT = """\
You are an expert n8n workflow automation specialist.

You design production-ready n8n workflows that are properly structured with
correct node types and parameters, secure in their credential handling,
resistant to errors, and documented with clear setup instructions.

## Design guidance
- Use the node type given for each integration in the request
- Add an Error Trigger node when the workflow has more than three nodes
- Use IF or Switch nodes for conditional logic and Set nodes for data transformation
- Reference credentials by credential type, never hardcode secrets
- Lay nodes out left to right, 200px apart
- Connections must form a directed acyclic graph over existing node ids

Respond with a single JSON object in a ```json fenced block and nothing else.
"""

PACKAGE_SCHEMA_DESCRIPTION = """\
The JSON object must conform to this schema:

```json
{
  "graph": {
    "nodes": [
      {
        "id": "string — unique node id (snake_case)",
        "display_name": "string — node name shown in the editor",
        "kind": "string — n8n node type, e.g. n8n-nodes-base.slack",
        "type_version": 1,
        "parameters": {"any": "node parameters for the n8n node type"},
        "credential_ref": "string or null — n8n credential type, e.g. slackApi",
        "position": [250, 300],
        "notes": "string or null"
      }
    ],
    "connections": {
      "source_node_id": [{"target": "target_node_id", "port": 0}]
    },
    "tags": ["generated", "automation"]
  },
  "analysis": {
    "node_count": "int — must equal len(graph.nodes)",
    "connection_count": "int — must equal the number of connection entries",
    "complexity_tier": "simple | moderate | complex",
    "estimated_execution_seconds": "int",
    "potential_issues": ["string"],
    "optimization_suggestions": ["string"],
    "security_considerations": ["string"],
    "scalability_notes": ["string"]
  },
  "setup_steps": ["string — at least one step"],
  "testing_guidance": ["string"],
  "troubleshooting": ["string"]
}
```
"""

EXAMPLE_PACKAGE_JSON = """\
{
  "graph": {
    "nodes": [
      {
        "id": "trigger",
        "display_name": "Schedule Trigger",
        "kind": "n8n-nodes-base.cron",
        "type_version": 1,
        "parameters": {"triggerTimes": {"item": [{"mode": "everyDay", "hour": 9, "minute": 0}]}},
        "credential_ref": null,
        "position": [250, 300]
      },
      {
        "id": "post_summary",
        "display_name": "Post Summary to Slack",
        "kind": "n8n-nodes-base.slack",
        "type_version": 1,
        "parameters": {"resource": "message", "operation": "post", "channel": "#reports", "text": "={{ $json.summary }}"},
        "credential_ref": "slackApi",
        "position": [450, 300]
      }
    ],
    "connections": {
      "trigger": [{"target": "post_summary", "port": 0}]
    },
    "tags": ["generated", "scheduled", "automation"]
  },
  "analysis": {
    "node_count": 2,
    "connection_count": 1,
    "complexity_tier": "simple",
    "estimated_execution_seconds": 9,
    "potential_issues": ["API rate limiting may affect execution - consider implementing delays"],
    "optimization_suggestions": ["Add descriptive names and notes to nodes for better documentation"],
    "security_considerations": ["Store all sensitive data in n8n credentials, never in node parameters"],
    "scalability_notes": ["Monitor execution times for high-frequency workflows"]
  },
  "setup_steps": [
    "Import this workflow JSON into your n8n instance",
    "Create a Slack API credential",
    "Activate the workflow"
  ],
  "testing_guidance": ["Execute the workflow manually and check the Slack channel"],
  "troubleshooting": ["If the Slack node fails, verify the bot is a member of the channel"]
}
"""


def _bullets(items: list[str], empty: str) -> str:
    if not items:
        return empty
    return "\n".join(f"- {item}" for item in items)


def integration_guidance(integrations: list[str]) -> str:
    lines = []
    for integration in integrations:
        binding = resolve(integration)
        line = f'- {integration}: use "{binding.kind}"'
        if binding.credential_class:
            line += f' with a "{binding.credential_class}" credential ({binding.auth_type})'
        if not binding.matched:
            line += " (no dedicated node known; configure the HTTP request explicitly)"
        lines.append(line)
    return "\n".join(lines)


def build_prompt(request: WorkflowRequest) -> str:
    return (
        "N8N WORKFLOW GENERATION REQUEST\n\n"
        "<workflow_context>\n"
        f"- Name: {request.name}\n"
        f"- Description: {request.description or 'Not provided'}\n"
        f"- Trigger type: {request.trigger_kind}\n"
        f"- Trigger details: {describe_trigger(request)}\n"
        f"- Trigger data: {request.trigger_data or 'Standard data for the trigger type'}\n"
        f"- Integrations: {', '.join(request.integrations)}\n"
        "</workflow_context>\n\n"
        f"<action_description>\n{request.action_narrative}\n</action_description>\n\n"
        "<additional_context>\n"
        f"{request.additional_context or 'No additional context provided'}\n"
        "</additional_context>\n\n"
        "<specific_requirements>\n"
        f"{_bullets(request.specific_requirements, 'No specific requirements')}\n"
        "</specific_requirements>\n\n"
        f"<goals>\n{_bullets(request.goals, 'General automation goals')}\n</goals>\n\n"
        f"Integration guidance:\n{integration_guidance(request.integrations)}\n\n"
        f"{PACKAGE_SCHEMA_DESCRIPTION}\n"
        f"Example package JSON:\n{EXAMPLE_PACKAGE_JSON}"
    )


def request_cache_key(
    request: WorkflowRequest, namespace: str, prefix: str = DEFAULT_CACHE_PREFIX
) -> str:
    """Stable key: same normalized request in the same namespace → same key."""
    canonical = request.model_dump(mode="json")
    canonical["integrations"] = sorted(canonical["integrations"], key=str.casefold)
    digest = hashlib.sha256(
        json.dumps(canonical, sort_keys=True, separators=(",", ":")).encode("utf-8")
    ).hexdigest()
    return f"{prefix}:{namespace}:{digest}"


class WorkflowGenerator:
    """Produces a ``GeneratedPackage`` for every valid request.

    The completion call is the only step allowed to fail; timeouts, transport
    errors and unusable payloads all lead to the deterministic fallback.
    """

    def __init__(
        self,
        client: Optional[CompletionClient],
        cache: PackageCache,
        *,
        ids: Optional[IdGenerator] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        cache_prefix: str = DEFAULT_CACHE_PREFIX,
        tuning: Optional[AnalysisTuning] = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.ids = ids or UuidIdGenerator()
        self.timeout_seconds = timeout_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache_prefix = cache_prefix
        self.tuning = tuning or AnalysisTuning()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: Optional[CompletionClient],
        cache: PackageCache,
        ids: Optional[IdGenerator] = None,
    ) -> WorkflowGenerator:
        return cls(
            client,
            cache,
            ids=ids,
            timeout_seconds=settings.generation_timeout_seconds,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            cache_prefix=settings.cache_key_prefix,
            tuning=settings.analysis,
        )

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()

    async def generate(self, request: WorkflowRequest, namespace: str = "default") -> GeneratedPackage:
        started = time.perf_counter()
        key = request_cache_key(request, namespace, self.cache_prefix)

        cached = await self._cache_get(key)
        if cached is not None:
            logger.info("Workflow '%s': cache hit (%s)", request.name, cached.id)
            return cached

        package = await self._try_generate(request, started)
        if package is None:
            package = self.build_fallback(request, started)

        await self._cache_set(key, package)
        return package

    async def _try_generate(self, request: WorkflowRequest, started: float) -> GeneratedPackage | None:
        if self.client is None:
            logger.info("Workflow '%s': no completion client, using fallback", request.name)
            return None

        try:
            result = await asyncio.wait_for(
                self.client.complete(SYSTEM_PROMPT, build_prompt(request)),
                timeout=self.timeout_seconds,
            )
            payload = parse_generated_payload(result.content)
        except asyncio.TimeoutError:
            logger.warning(
                "Workflow '%s': completion timed out after %ss, using fallback",
                request.name,
                self.timeout_seconds,
            )
            return None
        except Exception as e:
            logger.warning("Workflow '%s': generation failed (%s), using fallback", request.name, e)
            return None

        logger.info("Workflow '%s': generated with %s tokens", request.name, result.tokens_used)
        return self._package_from_payload(request, payload, result.tokens_used, started)

    def _package_from_payload(
        self,
        request: WorkflowRequest,
        payload: GeneratedPayload,
        tokens_used: int,
        started: float,
    ) -> GeneratedPackage:
        return GeneratedPackage(
            id=self.ids.new_id("workflow"),
            request=request,
            graph=payload.graph,
            analysis=merge_suggested_analysis(
                analyze(payload.graph, request, self.tuning), payload.analysis
            ),
            setup_steps=payload.setup_steps,
            credential_requirements=credential_requirements(payload.graph),
            testing_guidance=payload.testing_guidance or list(TESTING_GUIDANCE),
            troubleshooting=payload.troubleshooting or list(TROUBLESHOOTING),
            alternatives=payload.alternatives,
            source="generated",
            tokens_used=tokens_used,
            processing_time_ms=_elapsed_ms(started),
        )

    async def update(
        self, package: GeneratedPackage, changes: dict[str, Any], namespace: str = "default"
    ) -> GeneratedPackage:
        """Apply request changes to a saved package, keeping its id.

        Structural changes regenerate the graph; anything else only rewrites
        the request metadata. Raises ``pydantic.ValidationError`` if the merged
        request is invalid.
        """
        request = WorkflowRequest.model_validate({**package.request.model_dump(), **changes})
        if not needs_regeneration(package.request, request):
            logger.info("Workflow %s: metadata-only update", package.id)
            return package.model_copy(update={"request": request})

        logger.info("Workflow %s: regenerating after structural change", package.id)
        regenerated = await self.generate(request, namespace)
        return regenerated.model_copy(update={"id": package.id})

    def build_fallback(self, request: WorkflowRequest, started: float | None = None) -> GeneratedPackage:
        """Synthesize and analyze a package without the completion service."""
        if started is None:
            started = time.perf_counter()
        graph = synthesize(request, self.ids)
        return GeneratedPackage(
            id=self.ids.new_id("workflow"),
            request=request,
            graph=graph,
            analysis=analyze(graph, request, self.tuning),
            setup_steps=setup_steps(request, graph),
            credential_requirements=credential_requirements(graph),
            testing_guidance=list(TESTING_GUIDANCE),
            troubleshooting=list(TROUBLESHOOTING),
            alternatives=WorkflowAlternatives(
                simplified=synthesize_simplified(request, self.ids),
                advanced=synthesize_advanced(request, self.ids),
            ),
            source="fallback",
            # Rough estimate of what the prompt would have cost
            tokens_used=len(request.action_narrative) // 4,
            processing_time_ms=_elapsed_ms(started),
        )

    async def _cache_get(self, key: str) -> GeneratedPackage | None:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

    async def _cache_set(self, key: str, package: GeneratedPackage) -> None:
        try:
            await self.cache.set(key, package, self.cache_ttl_seconds)
        except Exception as e:
            logger.warning("Cache write failed for %s: %s", key, e)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def needs_regeneration(before: WorkflowRequest, after: WorkflowRequest) -> bool:
    return any(getattr(before, field) != getattr(after, field) for field in REGENERATING_FIELDS)
