"""Sliding-window controller.

Feeds windows of segments to the oracle, validates each `output` function
call, and advances, retries or stops according to `window.state`. A
conversion either returns the full ordered markdown sequence or raises a
ConversionError subclass; partial output is never returned.
"""

from __future__ import annotations

import sys
import threading
from typing import Any, Sequence

from textchunk_contracts.validate import WINDOW_REPLY_SCHEMA, ValidationError, load_schema

from markdown_pipeline.errors import (
    ConversionCancelled,
    ConversionError,
    InvariantError,
    SchemaError,
    SegmentationError,
    TransportError,
)
from markdown_pipeline.llm.client import OracleClient, OracleResponse
from markdown_pipeline.window.prompts import OUTPUT_FUNCTION_NAME, build_output_function, render_system_prompt
from markdown_pipeline.window.state import (
    IterationState,
    Phase,
    build_request,
    consume_retry,
    initial_state,
    on_parse_failure,
    on_reply,
    parse_reply,
)


def _log(message: str) -> None:
    print(f"[convert] {message}", file=sys.stderr)


def _check_cancel(cancel: threading.Event | None, state: IterationState, where: str) -> None:
    if cancel is not None and cancel.is_set():
        raise ConversionCancelled(
            f"conversion cancelled {where}", iteration=state.iteration, window=state.window.as_tuple()
        )


class WindowController:
    """Drives one document conversion at a time; holds no per-document state between runs."""

    def __init__(
        self,
        oracle: OracleClient,
        *,
        max_iterations: int = 1000,
        verbose: bool = True,
    ):
        self.oracle = oracle
        self.max_iterations = max_iterations
        self.verbose = verbose
        # Same contract on every call.
        self.function = build_output_function()
        self.system_prompt = render_system_prompt()
        self._reply_schema = load_schema(WINDOW_REPLY_SCHEMA)

    def run(self, segments: Sequence[str], *, cancel: threading.Event | None = None) -> list[str]:
        if not segments:
            raise SegmentationError("No segments to convert.")

        state = initial_state(len(segments) - 1)
        calls = 0
        while True:
            if calls >= self.max_iterations:
                raise InvariantError(
                    f"oracle did not finish within {self.max_iterations} calls",
                    iteration=state.iteration,
                    window=state.window.as_tuple(),
                )

            request = build_request(state, segments)
            sent = state
            state = consume_retry(state)

            _check_cancel(cancel, sent, "before oracle call")

            if self.verbose:
                _log(
                    f"iteration={request.iteration} window=[{request.start_index}, {request.end_index}] "
                    f"max_index={request.max_index} retry={request.retry_last_iteration}"
                )
            calls += 1
            response = self._call_oracle(sent, request.model_dump())
            # A cancel that fired while the call was blocking wins over its reply.
            _check_cancel(cancel, sent, "during oracle call")

            if len(response.calls) != 1:
                raise TransportError(
                    f"choices should be 1 but received: {len(response.calls)}",
                    iteration=sent.iteration,
                    window=sent.window.as_tuple(),
                )
            call = response.calls[0]
            if call.name != OUTPUT_FUNCTION_NAME:
                raise TransportError(
                    f"function call name not {OUTPUT_FUNCTION_NAME} but: {call.name}",
                    iteration=sent.iteration,
                    window=sent.window.as_tuple(),
                    raw=call.arguments,
                )

            if self.verbose:
                _log(f"received arguments:\n------\n{call.arguments}\n------")

            try:
                reply = parse_reply(call.arguments, self._reply_schema)
            except ValidationError as exc:
                state = on_parse_failure(state, exc.message)
                if state.phase is Phase.FAILED:
                    raise SchemaError(
                        state.failure or exc.message,
                        iteration=sent.iteration,
                        window=sent.window.as_tuple(),
                        raw=call.arguments,
                    ) from exc
                if self.verbose:
                    _log(f"malformed reply, retrying iteration={sent.iteration}: {exc.message}")
                continue

            state = on_reply(state, reply)
            if state.phase is Phase.FINISHED:
                if self.verbose:
                    _log(f"finished after {calls} calls, passages={len(state.accumulated)}")
                return list(state.accumulated)
            if state.phase is Phase.FAILED:
                raise InvariantError(
                    state.failure or "invalid window",
                    iteration=sent.iteration,
                    window=sent.window.as_tuple(),
                    raw=call.arguments,
                )

    def _call_oracle(self, state: IterationState, payload: dict[str, Any]) -> OracleResponse:
        try:
            return self.oracle.complete(
                system_prompt=self.system_prompt,
                payload=payload,
                function=self.function,
            )
        except TransportError as exc:
            raise TransportError(
                exc.message,
                iteration=state.iteration,
                window=state.window.as_tuple(),
                raw=exc.raw,
                details=exc.details,
            ) from exc
        except ConversionError:
            raise
        except Exception as exc:
            raise TransportError(
                f"oracle call failed: {exc!r}",
                iteration=state.iteration,
                window=state.window.as_tuple(),
            ) from exc


def convert_chunks_to_markdown(
    segments: Sequence[str],
    oracle: OracleClient,
    *,
    max_iterations: int = 1000,
    cancel: threading.Event | None = None,
    verbose: bool = True,
) -> list[str]:
    """Convenience wrapper around WindowController.run."""
    controller = WindowController(oracle, max_iterations=max_iterations, verbose=verbose)
    return controller.run(segments, cancel=cancel)
