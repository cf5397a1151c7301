"""REST API for the flow builder service."""
