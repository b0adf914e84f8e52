"""Pure transition tests; no oracle involved."""

from __future__ import annotations

import pytest

from conftest import FINISHED, reply
from markdown_pipeline.window.state import (
    Phase,
    Window,
    build_request,
    consume_retry,
    initial_state,
    on_parse_failure,
    on_reply,
    parse_reply,
)
from textchunk_contracts.validate import ValidationError


def test_initial_window_covers_first_three_segments():
    state = initial_state(4)
    assert state.window == Window(0, 2)
    assert state.phase is Phase.RUNNING
    assert (state.iteration, state.retry_requested, state.retry_count, state.accumulated) == (0, False, 0, ())


def test_initial_window_is_clamped_for_short_documents():
    assert initial_state(0).window == Window(0, 0)
    assert initial_state(1).window == Window(0, 1)


def test_build_request_slices_window_inclusively(segments):
    state = initial_state(len(segments) - 1)
    request = build_request(state, segments)
    assert request.model_dump() == {
        "iteration": 0,
        "retry_last_iteration": False,
        "max_index": 4,
        "start_index": 0,
        "end_index": 2,
        "chunks": ["segment 0", "segment 1", "segment 2"],
    }


def test_first_parse_failure_requests_retry_of_same_window():
    state = on_parse_failure(initial_state(4), "bad json")
    assert state.phase is Phase.AWAITING_RETRY
    assert state.retry_requested is True
    assert state.retry_count == 1
    assert state.window == Window(0, 2)
    assert state.iteration == 0


def test_retry_flag_is_one_shot(segments):
    state = on_parse_failure(initial_state(4), "bad json")
    assert build_request(state, segments).retry_last_iteration is True

    state = consume_retry(state)
    assert state.phase is Phase.RUNNING
    assert build_request(state, segments).retry_last_iteration is False
    # The counter survives until a reply parses.
    assert state.retry_count == 1


def test_second_consecutive_parse_failure_fails():
    state = consume_retry(on_parse_failure(initial_state(4), "bad json"))
    state = on_parse_failure(state, "still bad")
    assert state.phase is Phase.FAILED
    assert "retry count 1" in state.failure


def test_successful_parse_resets_retry_count():
    state = consume_retry(on_parse_failure(initial_state(4), "bad json"))
    state = on_reply(state, parse_reply(reply(next_start=0, next_end=3)))
    assert state.retry_count == 0
    assert on_parse_failure(state, "bad again").phase is Phase.AWAITING_RETRY


def test_store_appends_and_advances_window():
    state = on_reply(initial_state(4), parse_reply(reply(store=True, markdown="# Title", next_start=3, next_end=4)))
    assert state.accumulated == ("# Title",)
    assert state.window == Window(3, 4)
    assert state.iteration == 1
    assert state.phase is Phase.RUNNING


def test_no_store_keeps_accumulated_but_advances():
    state = on_reply(initial_state(4), parse_reply(reply(store=False, markdown="ignored", next_start=0, next_end=4)))
    assert state.accumulated == ()
    assert state.window == Window(0, 4)


def test_finished_ignores_store_and_indices():
    state = on_reply(
        initial_state(4),
        parse_reply(reply(finished=True, store=True, markdown="dropped", next_start=9, next_end=2)),
    )
    assert state.phase is Phase.FINISHED
    assert state.accumulated == ()


def test_end_equal_to_max_index_is_accepted():
    state = on_reply(initial_state(4), parse_reply(reply(next_start=2, next_end=4)))
    assert state.phase is Phase.RUNNING
    assert state.window == Window(2, 4)


@pytest.mark.parametrize(
    "next_start,next_end,message",
    [
        (0, 5, "larger than max index"),
        (3, 2, "larger than next end index"),
        (-1, 2, "negative"),
    ],
)
def test_out_of_bounds_window_fails_without_clamping(next_start, next_end, message):
    state = on_reply(initial_state(4), parse_reply(reply(next_start=next_start, next_end=next_end)))
    assert state.phase is Phase.FAILED
    assert message in state.failure
    assert state.window == Window(0, 2)


@pytest.mark.parametrize(
    "arguments",
    [
        "{not json",
        '{"finished": false, "store": true, "markdown": "x", "next_start_index": 0}',
        '{"finished": "no", "store": true, "markdown": "x", "next_start_index": 0, "next_end_index": 1}',
        '{"finished": false, "store": true, "markdown": 7, "next_start_index": 0, "next_end_index": 1}',
        '{"finished": false, "store": true, "markdown": "x", "next_start_index": 0.5, "next_end_index": 1}',
        "[]",
        "[" * 200_000,
    ],
)
def test_parse_reply_rejects_malformed_arguments(arguments):
    with pytest.raises(ValidationError):
        parse_reply(arguments)


def test_parse_reply_accepts_finishing_reply():
    parsed = parse_reply(FINISHED)
    assert parsed.finished is True
    assert parsed.next_end_index == -1
