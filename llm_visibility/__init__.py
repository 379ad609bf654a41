"""LLM brand visibility pipeline."""

__version__ = "1.0.0"
