"""Convert plain-text documents to markdown passages with an LLM-driven sliding window."""

__version__ = "0.1.0"
