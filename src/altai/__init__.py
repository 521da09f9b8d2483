"""altai - context-aware LLM assistant for structured content editing."""

__version__ = "0.1.0"
