"""Strict parsing of the structured payload embedded in a completion.

A payload is accepted whole or not at all: anything that fails validation is
reported as a ``PayloadError`` and the caller falls back to synthesis.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from .schema import WorkflowAlternatives, WorkflowAnalysis, WorkflowGraph

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n(.*?)```", re.DOTALL | re.IGNORECASE)


class PayloadError(Exception):
    """Raised when a completion does not carry a usable workflow package."""


class GeneratedPayload(BaseModel):
    """The part of a package the generative service is asked to produce."""

    graph: WorkflowGraph
    analysis: WorkflowAnalysis
    setup_steps: list[str] = Field(..., min_length=1)
    testing_guidance: list[str] = []
    troubleshooting: list[str] = []
    alternatives: WorkflowAlternatives = WorkflowAlternatives()

    @model_validator(mode="after")
    def _analysis_matches_graph(self) -> GeneratedPayload:
        if not self.graph.nodes:
            raise ValueError("Graph has no nodes")
        if self.analysis.node_count != len(self.graph.nodes):
            raise ValueError(
                f"analysis.node_count={self.analysis.node_count} but graph has "
                f"{len(self.graph.nodes)} nodes"
            )
        if self.analysis.connection_count != self.graph.connection_count:
            raise ValueError(
                f"analysis.connection_count={self.analysis.connection_count} but graph has "
                f"{self.graph.connection_count} connections"
            )
        return self


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the JSON object in a fenced ```json block, else the first one in the text."""
    fenced = _FENCED_BLOCK.search(text)
    candidate = fenced.group(1) if fenced else text

    start = candidate.find("{")
    if start == -1:
        raise PayloadError("Completion contains no JSON object")

    try:
        obj, _ = json.JSONDecoder().raw_decode(candidate, start)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Malformed JSON in completion: {e}") from e

    if not isinstance(obj, dict):
        raise PayloadError("Completion JSON is not an object")
    return obj


def parse_generated_payload(text: str) -> GeneratedPayload:
    """Extract and validate the payload, raising ``PayloadError`` on any defect."""
    data = extract_json_object(text)
    try:
        return GeneratedPayload.model_validate(data)
    except ValidationError as e:
        raise PayloadError(f"Completion payload failed validation: {e}") from e
