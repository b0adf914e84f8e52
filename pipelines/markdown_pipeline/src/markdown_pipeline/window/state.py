"""Iteration state for the sliding-window conversion loop.

The loop is modelled as a tagged phase plus pure transitions:

    RUNNING --reply ok, not finished--> RUNNING (window advanced)
    RUNNING --reply ok, finished-----> FINISHED
    RUNNING --malformed reply--------> AWAITING_RETRY (same window, retry flag set)
    AWAITING_RETRY --request sent----> RUNNING
    any --malformed reply after retry--> FAILED
    any --window out of bounds-------> FAILED

Nothing here talks to the oracle; the controller threads an IterationState
through these functions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as ModelValidationError

from textchunk_contracts.validate import (
    WINDOW_REPLY_SCHEMA,
    ValidationError,
    assert_window_bounds,
    load_schema,
    validate_json,
)


class Phase(str, Enum):
    RUNNING = "RUNNING"
    AWAITING_RETRY = "AWAITING_RETRY"
    FINISHED = "FINISHED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Window:
    """Inclusive range of segment indices sent in one request."""

    start: int
    end: int

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


@dataclass(frozen=True)
class IterationState:
    max_index: int
    window: Window
    phase: Phase = Phase.RUNNING
    iteration: int = 0
    retry_requested: bool = False
    retry_count: int = 0
    accumulated: tuple[str, ...] = ()
    failure: str | None = None


class WindowRequest(BaseModel):
    """User message payload for one oracle call."""

    model_config = ConfigDict(frozen=True)

    iteration: int = Field(..., ge=0)
    retry_last_iteration: bool
    max_index: int = Field(..., ge=0)
    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)
    chunks: list[str]


class WindowReply(BaseModel):
    """Arguments of the oracle's `output` function call."""

    model_config = ConfigDict(frozen=True)

    finished: bool
    store: bool
    markdown: str
    next_start_index: int
    next_end_index: int


def initial_state(max_index: int) -> IterationState:
    return IterationState(max_index=max_index, window=Window(0, min(2, max_index)))


def build_request(state: IterationState, segments: Sequence[str]) -> WindowRequest:
    window = state.window
    return WindowRequest(
        iteration=state.iteration,
        retry_last_iteration=state.retry_requested,
        max_index=state.max_index,
        start_index=window.start,
        end_index=window.end,
        chunks=list(segments[window.start : window.end + 1]),
    )


def consume_retry(state: IterationState) -> IterationState:
    """The retry flag only rides on the request that was just built."""
    return replace(state, phase=Phase.RUNNING, retry_requested=False)


def parse_reply(arguments: str, schema: dict[str, Any] | None = None) -> WindowReply:
    """Raises ValidationError when the arguments are not a conforming reply object."""
    try:
        obj = json.loads(arguments)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"unable to unmarshal output data: {exc}") from exc
    except RecursionError as exc:
        # Deeply nested arrays/objects exhaust the decoder's stack.
        raise ValidationError("unable to unmarshal output data: nesting too deep") from exc
    validate_json(obj, schema if schema is not None else load_schema(WINDOW_REPLY_SCHEMA))
    try:
        return WindowReply.model_validate(obj)
    except ModelValidationError as exc:
        raise ValidationError(str(exc)) from exc


def on_parse_failure(state: IterationState, reason: str) -> IterationState:
    # One retry for malformed structure; the counter only resets on a successful parse.
    if state.retry_count >= 1:
        return replace(
            state,
            phase=Phase.FAILED,
            failure=f"unable to unmarshal output data, retry count {state.retry_count}: {reason}",
        )
    return replace(
        state,
        phase=Phase.AWAITING_RETRY,
        retry_requested=True,
        retry_count=state.retry_count + 1,
    )


def on_reply(state: IterationState, reply: WindowReply) -> IterationState:
    state = replace(state, retry_count=0)

    if reply.finished:
        return replace(state, phase=Phase.FINISHED)

    try:
        assert_window_bounds(reply.next_start_index, reply.next_end_index, state.max_index)
    except ValidationError as exc:
        return replace(state, phase=Phase.FAILED, failure=exc.message)

    accumulated = state.accumulated + (reply.markdown,) if reply.store else state.accumulated
    return replace(
        state,
        phase=Phase.RUNNING,
        window=Window(reply.next_start_index, reply.next_end_index),
        iteration=state.iteration + 1,
        accumulated=accumulated,
    )
