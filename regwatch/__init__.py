"""Regulatory source monitoring with LLM-assisted change summaries."""

__version__ = "1.0.0"
