"""Sliding-window conversion loop.

Exports the WindowController and the pure state transitions it is built on.
"""

from markdown_pipeline.window.controller import WindowController, convert_chunks_to_markdown
from markdown_pipeline.window.state import IterationState, Phase, Window, WindowReply, WindowRequest

__all__ = [
    "IterationState",
    "Phase",
    "Window",
    "WindowController",
    "WindowReply",
    "WindowRequest",
    "convert_chunks_to_markdown",
]
