"""Workflow graph synthesis, analysis, generation and export."""
