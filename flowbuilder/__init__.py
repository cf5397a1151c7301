"""Flow builder: a workflow execution service for visual LLM pipelines."""

__version__ = "1.0.0"
