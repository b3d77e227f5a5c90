"""Nodes of the creative generation pipeline, in execution order."""
