"""FlowBuilder: n8n workflow generation and analysis."""

__version__ = "0.1.0"
